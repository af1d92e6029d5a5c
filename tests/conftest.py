"""Pytest configuration and shared fixtures."""

import asyncio
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from consensus_reviewer.models.findings import Category, Finding
from consensus_reviewer.models.job import BaseUsage, ModelReviewResult, ModelSpec, ReviewStatus
from consensus_reviewer.providers.base import Completion
from consensus_reviewer.retry import RetryExecutor

OPENAI = "openai/gpt-4.1"
ANTHROPIC = "anthropic/claude-sonnet-4-5"
GEMINI = "gemini/gemini-2.5-pro"

SAMPLE_REVIEW = """\
## Security
The login handler interpolates user input directly into SQL.

## Performance
find_duplicates is quadratic in the number of items.

## Code Quality
Naming is consistent and functions are small.
"""


class FakeAdapter:
    """Stand-in adapter returning scripted outcomes, one per call."""

    def __init__(self, outcomes, delay: float = 0.0) -> None:
        self.outcomes = list(outcomes)
        self.delay = delay
        self.calls = 0
        self.closed = False
        self.finished = False

    async def run_completion(self, prompt: str) -> Completion:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        outcome = self.outcomes[min(self.calls, len(self.outcomes)) - 1]
        if isinstance(outcome, BaseException):
            raise outcome
        self.finished = True
        return outcome

    async def close(self) -> None:
        self.closed = True


def make_finding(
    title: str,
    category: str = "security",
    agreements: dict[str, bool] | None = None,
    is_strength: bool = False,
    **kwargs,
) -> Finding:
    """Build a finding with the given agreement flags."""
    return Finding(
        title=title,
        description=kwargs.pop("description", f"{title} description"),
        category=Category(category),
        is_strength=is_strength,
        model_agreements=dict(agreements or {}),
        **kwargs,
    )


def make_result(
    model: str,
    status: ReviewStatus = ReviewStatus.SUCCESS,
    latency_ms: int = 1000,
    usage: BaseUsage | None = None,
    cost: float = 0.0,
    **kwargs,
) -> ModelReviewResult:
    """Build a ModelReviewResult for a ``provider/model`` string."""
    return ModelReviewResult(
        model=ModelSpec.parse(model),
        raw_text=SAMPLE_REVIEW if status == ReviewStatus.SUCCESS else "",
        usage=usage or BaseUsage(100, 50, 150),
        latency_ms=latency_ms,
        status=status,
        cost=cost,
        **kwargs,
    )


@pytest.fixture
def model_names() -> list[str]:
    """The three default backends."""
    return [OPENAI, ANTHROPIC, GEMINI]


@pytest.fixture
def model_specs(model_names) -> list[ModelSpec]:
    return [ModelSpec.parse(name) for name in model_names]


@pytest.fixture
def categories() -> list[Category]:
    """Official category list used by the extraction step."""
    return [
        Category("security", "Security vulnerabilities"),
        Category("performance", "Performance problems"),
        Category("code quality", "Readability and maintainability"),
    ]


@pytest.fixture
def sample_review() -> str:
    return SAMPLE_REVIEW


@pytest.fixture
def fast_retry() -> RetryExecutor:
    """Retry executor whose backoff sleeps return immediately."""
    return RetryExecutor(max_retries=3, timeout_seconds=5.0, sleep=AsyncMock())


@pytest.fixture
def fixtures_dir() -> Path:
    """Path to test fixtures directory."""
    return Path(__file__).parent / "fixtures"
