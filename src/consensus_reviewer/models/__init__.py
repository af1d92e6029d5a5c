"""Data models for Consensus Reviewer."""

from consensus_reviewer.models.findings import AgreementTier, Category, CodeExample, Finding
from consensus_reviewer.models.job import (
    BaseUsage,
    ModelReviewResult,
    ModelSpec,
    OrchestrationResult,
    ReviewJob,
    ReviewStatus,
)
from consensus_reviewer.models.report import (
    AgreementStatistics,
    CategoryAgreementAnalysis,
    CodeReviewReport,
    ExecutiveSummary,
    ModelMetrics,
    Priority,
)

__all__ = [
    "AgreementStatistics",
    "AgreementTier",
    "BaseUsage",
    "Category",
    "CategoryAgreementAnalysis",
    "CodeExample",
    "CodeReviewReport",
    "ExecutiveSummary",
    "Finding",
    "ModelMetrics",
    "ModelReviewResult",
    "ModelSpec",
    "OrchestrationResult",
    "Priority",
    "ReviewJob",
    "ReviewStatus",
]
