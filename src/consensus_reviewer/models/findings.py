"""Finding models for cross-model review results."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


@dataclass(frozen=True)
class Category:
    """A stable review topic, e.g. security or performance."""

    name: str
    description: str = ""

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "description": self.description}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | str) -> "Category":
        if isinstance(data, str):
            return cls(name=data)
        return cls(name=str(data["name"]), description=str(data.get("description", "")))


class AgreementTier(Enum):
    """How many successful backends independently raised a finding.

    - HIGH: every successful backend raised it.
    - PARTIAL: more than one, but not all, raised it.
    - DISAGREEMENT: exactly one backend raised it.
    """

    HIGH = "high"
    PARTIAL = "partial"
    DISAGREEMENT = "disagreement"

    @classmethod
    def classify(cls, agreed_count: int, success_count: int) -> "AgreementTier":
        """Classify an agreement count against the number of successful backends.

        A single successful backend can never produce more than a
        disagreement-tier finding.
        """
        agreed_count = min(agreed_count, success_count)
        if agreed_count <= 1:
            return cls.DISAGREEMENT
        if agreed_count == success_count:
            return cls.HIGH
        return cls.PARTIAL


@dataclass(frozen=True)
class CodeExample:
    """Code snippet attached to a finding."""

    code: str
    language: str = ""

    def to_dict(self) -> dict[str, str]:
        return {"code": self.code, "language": self.language}


@dataclass
class Finding:
    """A canonical, category-tagged review observation.

    ``model_agreements`` maps each successful backend (``provider/model``) to
    whether it raised this finding. ``match_key`` is the equivalence hint from
    the extraction step: findings in the same category with the same key are
    the same underlying issue.
    """

    title: str
    description: str
    category: Category
    is_strength: bool = False
    model_agreements: dict[str, bool] = field(default_factory=dict)
    recommendation: str | None = None
    file_path: str | None = None
    start_line: int | None = None
    end_line: int | None = None
    code_example: CodeExample | None = None
    match_key: str | None = None

    @property
    def agreed_count(self) -> int:
        """Number of backends that raised this finding."""
        return sum(1 for agreed in self.model_agreements.values() if agreed)

    @property
    def agreeing_models(self) -> list[str]:
        return [model for model, agreed in self.model_agreements.items() if agreed]

    def tier(self, success_count: int) -> AgreementTier:
        """Agreement tier relative to the job's successful backend count."""
        return AgreementTier.classify(self.agreed_count, success_count)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "title": self.title,
            "description": self.description,
            "category": self.category.to_dict(),
            "is_strength": self.is_strength,
            "model_agreements": dict(self.model_agreements),
        }
        if self.recommendation:
            data["recommendation"] = self.recommendation
        if self.file_path:
            data["file_path"] = self.file_path
        if self.start_line is not None:
            data["start_line"] = self.start_line
        if self.end_line is not None:
            data["end_line"] = self.end_line
        if self.code_example:
            data["code_example"] = self.code_example.to_dict()
        if self.match_key:
            data["match_key"] = self.match_key
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any], category: Category | None = None) -> "Finding":
        """Build a finding from extraction output.

        Args:
            data: Finding object as produced by the extraction step
            category: Category to use when ``data`` does not name one
        """
        raw_category = data.get("category")
        if raw_category is not None:
            category = Category.from_dict(raw_category)
        if category is None:
            raise ValueError(f"Finding '{data.get('title', '')}' has no category")

        example = data.get("code_example")
        if isinstance(example, str):
            code_example = CodeExample(code=example)
        elif isinstance(example, dict) and example.get("code"):
            code_example = CodeExample(
                code=str(example["code"]), language=str(example.get("language", ""))
            )
        else:
            code_example = None

        return cls(
            title=str(data.get("title", "")).strip(),
            description=str(data.get("description", "")).strip(),
            category=category,
            is_strength=bool(data.get("is_strength", False)),
            model_agreements={
                str(model): bool(agreed)
                for model, agreed in (data.get("model_agreements") or {}).items()
            },
            recommendation=data.get("recommendation") or None,
            file_path=data.get("file_path") or None,
            start_line=data.get("start_line"),
            end_line=data.get("end_line"),
            code_example=code_example,
            match_key=data.get("match_key") or None,
        )
