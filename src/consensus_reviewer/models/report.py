"""Report models produced by the synthesizer."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from consensus_reviewer.models.findings import AgreementTier, Category, Finding


class Priority(Enum):
    """Recommendation priority buckets."""

    HIGH = "High Priority"
    MEDIUM = "Medium Priority"
    LOW = "Low Priority"


@dataclass
class ModelMetrics:
    """Cost and latency accounting for one backend."""

    model: str
    status: str
    latency_ms: int
    input_tokens: int
    output_tokens: int
    total_tokens: int
    cost: float
    error_category: str | None = None
    error_message: str | None = None

    @property
    def cost_per_1k_tokens(self) -> float:
        if not self.total_tokens:
            return 0.0
        return self.cost * 1000 / self.total_tokens

    def to_dict(self) -> dict[str, Any]:
        return {
            "model": self.model,
            "status": self.status,
            "latency_ms": self.latency_ms,
            "input_tokens": self.input_tokens,
            "output_tokens": self.output_tokens,
            "total_tokens": self.total_tokens,
            "cost": self.cost,
            "cost_per_1k_tokens": self.cost_per_1k_tokens,
            "error_category": self.error_category,
            "error_message": self.error_message,
        }


@dataclass
class AgreementStatistics:
    """Per-category counts of findings in each agreement tier."""

    category: str
    high: int = 0
    partial: int = 0
    disagreement: int = 0

    def add(self, tier: AgreementTier) -> None:
        if tier == AgreementTier.HIGH:
            self.high += 1
        elif tier == AgreementTier.PARTIAL:
            self.partial += 1
        else:
            self.disagreement += 1

    @property
    def total(self) -> int:
        return self.high + self.partial + self.disagreement

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": self.category,
            "high": self.high,
            "partial": self.partial,
            "disagreement": self.disagreement,
        }


@dataclass
class CategoryAgreementAnalysis:
    """Finding titles in one category grouped by agreement tier."""

    area: str
    high_agreement: list[str] = field(default_factory=list)
    partial_agreement: list[str] = field(default_factory=list)
    disagreement: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "area": self.area,
            "high_agreement": list(self.high_agreement),
            "partial_agreement": list(self.partial_agreement),
            "disagreement": list(self.disagreement),
        }


@dataclass
class ExecutiveSummary:
    """Headline statistics for report rendering."""

    total_findings: int = 0
    total_strengths: int = 0
    total_improvements: int = 0
    high_agreement: int = 0
    partial_agreement: int = 0
    disagreement: int = 0
    models_succeeded: int = 0
    models_failed: int = 0
    total_cost: float = 0.0
    total_tokens: int = 0
    wall_time_ms: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_findings": self.total_findings,
            "total_strengths": self.total_strengths,
            "total_improvements": self.total_improvements,
            "high_agreement": self.high_agreement,
            "partial_agreement": self.partial_agreement,
            "disagreement": self.disagreement,
            "models_succeeded": self.models_succeeded,
            "models_failed": self.models_failed,
            "total_cost": self.total_cost,
            "total_tokens": self.total_tokens,
            "wall_time_ms": self.wall_time_ms,
        }


@dataclass
class CodeReviewReport:
    """Terminal artifact of a review job."""

    categories: list[Category]
    findings_by_category: dict[str, list[Finding]]
    key_strengths: list[Finding]
    key_areas_for_improvement: list[Finding]
    model_metrics: list[ModelMetrics]
    agreement_statistics: list[AgreementStatistics]
    agreement_analysis: list[CategoryAgreementAnalysis]

    # Models that completed successfully; the denominator for agreement tiers
    successful_models: list[str] = field(default_factory=list)
    prioritized_recommendations: dict[Priority, list[str]] = field(default_factory=dict)
    summary: ExecutiveSummary = field(default_factory=ExecutiveSummary)
    project_name: str = "Consensus Review"
    review_date: datetime = field(default_factory=datetime.now)

    @property
    def success_count(self) -> int:
        return len(self.successful_models)

    @property
    def all_findings(self) -> list[Finding]:
        """Every canonical finding, in category declaration order."""
        return [f for findings in self.findings_by_category.values() for f in findings]

    @property
    def improvements(self) -> list[Finding]:
        return [f for f in self.all_findings if not f.is_strength]

    @property
    def strengths(self) -> list[Finding]:
        return [f for f in self.all_findings if f.is_strength]

    def tier_of(self, finding: Finding) -> AgreementTier:
        return finding.tier(self.success_count)

    def to_dict(self) -> dict[str, Any]:
        """JSON-serializable form of the report."""
        return {
            "project_name": self.project_name,
            "review_date": self.review_date.isoformat(),
            "categories": [c.to_dict() for c in self.categories],
            "successful_models": list(self.successful_models),
            "findings_by_category": {
                name: [f.to_dict() for f in findings]
                for name, findings in self.findings_by_category.items()
            },
            "key_strengths": [f.to_dict() for f in self.key_strengths],
            "key_areas_for_improvement": [f.to_dict() for f in self.key_areas_for_improvement],
            "model_metrics": [m.to_dict() for m in self.model_metrics],
            "agreement_statistics": [s.to_dict() for s in self.agreement_statistics],
            "agreement_analysis": [a.to_dict() for a in self.agreement_analysis],
            "prioritized_recommendations": {
                priority.value: list(items)
                for priority, items in self.prioritized_recommendations.items()
            },
            "summary": self.summary.to_dict(),
        }
