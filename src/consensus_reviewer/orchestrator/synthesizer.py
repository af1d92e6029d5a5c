"""Report synthesizer: turns aggregated findings into a CodeReviewReport."""

import json
import logging
from datetime import datetime
from pathlib import Path

from consensus_reviewer.call_log import CallLog
from consensus_reviewer.models.findings import AgreementTier, Finding
from consensus_reviewer.models.job import ModelReviewResult
from consensus_reviewer.models.report import (
    AgreementStatistics,
    CategoryAgreementAnalysis,
    CodeReviewReport,
    ExecutiveSummary,
    ModelMetrics,
    Priority,
)
from consensus_reviewer.orchestrator.aggregator import AggregatedFindings

logger = logging.getLogger(__name__)

_TIER_PRIORITY = {
    AgreementTier.HIGH: Priority.HIGH,
    AgreementTier.PARTIAL: Priority.MEDIUM,
    AgreementTier.DISAGREEMENT: Priority.LOW,
}


class ReportSynthesizer:
    """Assembles the final report from aggregated findings and backend results."""

    def __init__(self, project_name: str = "Consensus Review") -> None:
        self.project_name = project_name

    def build(
        self,
        aggregated: AggregatedFindings,
        results: list[ModelReviewResult],
        call_log: CallLog | None = None,
    ) -> CodeReviewReport:
        """Build the report.

        Args:
            aggregated: Output of the FindingAggregator
            results: Every backend result, successful or not
            call_log: Optional call log; when given, its records (which may
                include extraction calls) are the source of total cost and tokens

        Returns:
            The synthesized report
        """
        success_count = aggregated.success_count
        category_order = {c.name: i for i, c in enumerate(aggregated.categories)}

        ranked = sorted(
            aggregated.all_findings,
            key=lambda f: (-f.agreed_count, category_order.get(f.category.name, 0)),
        )
        strengths = [f for f in ranked if f.is_strength]
        improvements = [f for f in ranked if not f.is_strength]

        statistics = []
        analysis = []
        for category in aggregated.categories:
            findings = aggregated.findings_by_category.get(category.name, [])
            stats = AgreementStatistics(category=category.name)
            area = CategoryAgreementAnalysis(area=category.name)
            for finding in findings:
                tier = finding.tier(success_count)
                stats.add(tier)
                if tier == AgreementTier.HIGH:
                    area.high_agreement.append(finding.title)
                elif tier == AgreementTier.PARTIAL:
                    area.partial_agreement.append(finding.title)
                else:
                    area.disagreement.append(finding.title)
            statistics.append(stats)
            analysis.append(area)

        metrics = [self._metrics_for(result) for result in results]

        report = CodeReviewReport(
            categories=list(aggregated.categories),
            findings_by_category={
                name: list(findings)
                for name, findings in aggregated.findings_by_category.items()
            },
            key_strengths=strengths,
            key_areas_for_improvement=improvements,
            model_metrics=metrics,
            agreement_statistics=statistics,
            agreement_analysis=analysis,
            successful_models=list(aggregated.successful_models),
            prioritized_recommendations=self._prioritize(improvements, success_count),
            project_name=self.project_name,
        )
        report.summary = self._summarize(report, results, statistics, call_log)

        logger.info(
            f"Report built: {report.summary.total_findings} findings, "
            f"{report.summary.high_agreement} high-agreement"
        )
        return report

    @staticmethod
    def _metrics_for(result: ModelReviewResult) -> ModelMetrics:
        return ModelMetrics(
            model=str(result.model),
            status=result.status.value,
            latency_ms=result.latency_ms,
            input_tokens=result.usage.input_tokens,
            output_tokens=result.usage.output_tokens,
            total_tokens=result.usage.total_tokens,
            cost=result.cost,
            error_category=result.error_category.value if result.error_category else None,
            error_message=result.error_message,
        )

    @staticmethod
    def _prioritize(
        improvements: list[Finding], success_count: int
    ) -> dict[Priority, list[str]]:
        recommendations: dict[Priority, list[str]] = {p: [] for p in Priority}
        for finding in improvements:
            priority = _TIER_PRIORITY[finding.tier(success_count)]
            recommendations[priority].append(finding.recommendation or finding.title)
        return recommendations

    @staticmethod
    def _summarize(
        report: CodeReviewReport,
        results: list[ModelReviewResult],
        statistics: list[AgreementStatistics],
        call_log: CallLog | None,
    ) -> ExecutiveSummary:
        if call_log is not None and len(call_log):
            total_cost = call_log.total_cost
            total_tokens = call_log.total_tokens
        else:
            total_cost = sum(r.cost for r in results)
            total_tokens = sum(r.usage.total_tokens for r in results)

        succeeded = sum(1 for r in results if r.succeeded)
        return ExecutiveSummary(
            total_findings=len(report.all_findings),
            total_strengths=len(report.key_strengths),
            total_improvements=len(report.key_areas_for_improvement),
            high_agreement=sum(s.high for s in statistics),
            partial_agreement=sum(s.partial for s in statistics),
            disagreement=sum(s.disagreement for s in statistics),
            models_succeeded=succeeded,
            models_failed=len(results) - succeeded,
            total_cost=total_cost,
            total_tokens=total_tokens,
            wall_time_ms=max((r.latency_ms for r in results), default=0),
        )


def write_report_json(report: CodeReviewReport, path: Path | str) -> Path:
    """Write the report as JSON.

    A directory path gets a timestamped file name inside it.

    Returns:
        The path written
    """
    target = Path(path)
    if target.is_dir() or str(path).endswith(("/", "\\")):
        timestamp = report.review_date.strftime("%Y%m%d_%H%M%S")
        target = target / f"code_review_report_{timestamp}.json"

    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(json.dumps(report.to_dict(), indent=2), encoding="utf-8")
    logger.info(f"Report written to {target}")
    return target


def write_results_json(results: list[ModelReviewResult], path: Path | str) -> Path:
    """Write raw backend results as JSON (the input of ``read_results_json``)."""
    target = Path(path)
    if target.is_dir() or str(path).endswith(("/", "\\")):
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        target = target / f"review_results_{timestamp}.json"

    target.parent.mkdir(parents=True, exist_ok=True)
    payload = {"results": [r.to_dict() for r in results]}
    target.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    return target


def read_results_json(path: Path | str) -> list[ModelReviewResult]:
    """Load backend results written by ``write_results_json``."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    items = data.get("results", []) if isinstance(data, dict) else data
    return [ModelReviewResult.from_dict(item) for item in items]
