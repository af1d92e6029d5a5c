"""Review job and per-model result models."""

from dataclasses import dataclass, field
from enum import Enum

from consensus_reviewer.errors import ErrorCategory
from consensus_reviewer.prompts import summarize_review


@dataclass(frozen=True)
class ModelSpec:
    """Identifies one backend instance, e.g. ``openai/gpt-4.1``."""

    provider: str
    model: str

    @classmethod
    def parse(cls, value: str) -> "ModelSpec":
        """Parse a ``provider/model`` string.

        A bare provider name (``"openai"``) is accepted and resolves to the
        provider's default model.

        Args:
            value: Model string from configuration or the command line

        Returns:
            Parsed ModelSpec
        """
        value = value.strip()
        if not value:
            raise ValueError("Model spec must not be empty")

        # Imported here to keep models free of provider imports at module load
        from consensus_reviewer.providers.registry import (
            default_model_for,
            resolve_provider_name,
        )

        provider, _, model = value.partition("/")
        provider = resolve_provider_name(provider)
        model = model.strip()
        if not provider:
            raise ValueError(f"Model spec '{value}' has no provider")
        if not model:
            model = default_model_for(provider)
        return cls(provider=provider, model=model)

    def __str__(self) -> str:
        return f"{self.provider}/{self.model}"


@dataclass(frozen=True)
class BaseUsage:
    """Normalized token accounting shared by all providers."""

    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "input_tokens": self.input_tokens,
            "output_tokens": self.output_tokens,
            "total_tokens": self.total_tokens,
        }


class ReviewStatus(Enum):
    """Outcome of a single backend run."""

    SUCCESS = "success"
    ERROR = "error"


@dataclass
class ReviewJob:
    """The unit of work: one prompt fanned out to several backends."""

    prompt: str
    model_specs: list[ModelSpec]
    token_limit: int = 100_000
    fail_on_error: bool = False
    pass_threshold: str = "lenient"
    # Token count reported by the codebase packager, when known
    prompt_tokens: int | None = None

    @property
    def exceeds_token_limit(self) -> bool:
        """Check whether the packaged prompt is larger than the configured limit."""
        return (
            self.prompt_tokens is not None
            and self.token_limit > 0
            and self.prompt_tokens > self.token_limit
        )


@dataclass(frozen=True)
class ModelReviewResult:
    """One outcome per ModelSpec, written exactly once by the orchestrator."""

    model: ModelSpec
    raw_text: str
    usage: BaseUsage
    latency_ms: int
    status: ReviewStatus
    error_category: ErrorCategory | None = None
    error_message: str | None = None
    attempts: int = 1
    cost: float = 0.0

    @property
    def succeeded(self) -> bool:
        """Whether the backend produced a usable review."""
        return self.status == ReviewStatus.SUCCESS

    @property
    def summary(self) -> str:
        """Short summary of the review text."""
        if not self.succeeded:
            return f"ERROR: {self.error_message or 'unknown error'}"
        return summarize_review(self.raw_text)

    def to_dict(self) -> dict:
        return {
            "model": str(self.model),
            "status": self.status.value,
            "raw_text": self.raw_text,
            "summary": self.summary,
            "usage": self.usage.to_dict(),
            "latency_ms": self.latency_ms,
            "attempts": self.attempts,
            "cost": self.cost,
            "error_category": self.error_category.value if self.error_category else None,
            "error_message": self.error_message,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ModelReviewResult":
        """Rebuild a result from its JSON form (as written by ``to_dict``)."""
        usage = data.get("usage") or {}
        category = data.get("error_category")
        return cls(
            model=ModelSpec.parse(data["model"]),
            raw_text=data.get("raw_text", ""),
            usage=BaseUsage(
                input_tokens=int(usage.get("input_tokens", 0)),
                output_tokens=int(usage.get("output_tokens", 0)),
                total_tokens=int(usage.get("total_tokens", 0)),
            ),
            latency_ms=int(data.get("latency_ms", 0)),
            status=ReviewStatus(data.get("status", ReviewStatus.ERROR.value)),
            error_category=ErrorCategory(category) if category else None,
            error_message=data.get("error_message"),
            attempts=int(data.get("attempts", 1)),
            cost=float(data.get("cost", 0.0)),
        )


@dataclass
class OrchestrationResult:
    """Full result set of a job plus the failure signal for the caller."""

    results: list[ModelReviewResult] = field(default_factory=list)
    fail_on_error: bool = False

    @property
    def successful(self) -> list[ModelReviewResult]:
        return [r for r in self.results if r.succeeded]

    @property
    def failed(self) -> list[ModelReviewResult]:
        return [r for r in self.results if not r.succeeded]

    @property
    def has_errors(self) -> bool:
        return any(not r.succeeded for r in self.results)

    @property
    def should_exit_nonzero(self) -> bool:
        """Whether ``fail_on_error`` requires a nonzero exit for this run."""
        return self.fail_on_error and self.has_errors
