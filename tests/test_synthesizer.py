"""Tests for report synthesis."""

import json

import pytest

from conftest import ANTHROPIC, GEMINI, OPENAI, make_finding, make_result
from consensus_reviewer.call_log import ApiCallRecord, CallLog
from consensus_reviewer.errors import ErrorCategory
from consensus_reviewer.models.job import BaseUsage, ReviewStatus
from consensus_reviewer.models.report import Priority
from consensus_reviewer.orchestrator import (
    FindingAggregator,
    ReportSynthesizer,
    read_results_json,
    write_report_json,
    write_results_json,
)


@pytest.fixture
def three_model_report(categories, model_names):
    """Report with one high, one partial and one disagreement improvement plus a strength."""
    findings_by_model = {
        OPENAI: [
            make_finding("SQL injection", recommendation="Use parameterized queries"),
            make_finding("Quadratic search", "performance"),
            make_finding("Clear naming", "code quality", is_strength=True),
        ],
        ANTHROPIC: [
            make_finding("SQL injection"),
            make_finding("Quadratic search", "performance"),
            make_finding("Missing docstrings", "code quality"),
        ],
        GEMINI: [make_finding("SQL injection")],
    }
    results = [
        make_result(OPENAI, latency_ms=1200, usage=BaseUsage(1000, 200, 1200), cost=0.01),
        make_result(ANTHROPIC, latency_ms=2500, usage=BaseUsage(1000, 300, 1300), cost=0.02),
        make_result(GEMINI, latency_ms=900, usage=BaseUsage(1000, 100, 1100), cost=0.005),
    ]
    aggregated = FindingAggregator().aggregate(findings_by_model, categories, model_names)
    return ReportSynthesizer("demo").build(aggregated, results)


class TestReportSynthesizer:
    """Tests for ReportSynthesizer."""

    def test_key_lists(self, three_model_report):
        """Test strengths and improvements are split and ranked by agreement."""
        report = three_model_report

        assert [f.title for f in report.key_strengths] == ["Clear naming"]
        assert [f.title for f in report.key_areas_for_improvement] == [
            "SQL injection",
            "Quadratic search",
            "Missing docstrings",
        ]

    def test_agreement_statistics(self, three_model_report):
        stats = {s.category: s.to_dict() for s in three_model_report.agreement_statistics}

        assert stats["security"] == {"category": "security", "high": 1, "partial": 0, "disagreement": 0}
        assert stats["performance"]["partial"] == 1
        assert stats["code quality"]["disagreement"] == 2

    def test_agreement_analysis(self, three_model_report):
        analysis = {a.area: a for a in three_model_report.agreement_analysis}

        assert analysis["security"].high_agreement == ["SQL injection"]
        assert analysis["performance"].partial_agreement == ["Quadratic search"]
        assert set(analysis["code quality"].disagreement) == {"Clear naming", "Missing docstrings"}

    def test_prioritized_recommendations(self, three_model_report):
        """Test tiers map to priorities, preferring recommendation text over titles."""
        recs = three_model_report.prioritized_recommendations

        assert recs[Priority.HIGH] == ["Use parameterized queries"]
        assert recs[Priority.MEDIUM] == ["Quadratic search"]
        assert recs[Priority.LOW] == ["Missing docstrings"]

    def test_executive_summary(self, three_model_report):
        summary = three_model_report.summary

        assert summary.total_findings == 4
        assert summary.total_strengths == 1
        assert summary.total_improvements == 3
        assert (summary.high_agreement, summary.partial_agreement, summary.disagreement) == (1, 1, 2)
        assert summary.models_succeeded == 3
        assert summary.total_tokens == 3600
        assert summary.total_cost == pytest.approx(0.035)
        assert summary.wall_time_ms == 2500

    def test_model_metrics(self, three_model_report):
        metrics = three_model_report.model_metrics[0]

        assert metrics.model == OPENAI
        assert metrics.status == "success"
        assert metrics.cost_per_1k_tokens == pytest.approx(0.01 * 1000 / 1200)

    def test_failed_backend_metrics(self, categories):
        results = [
            make_result(OPENAI),
            make_result(
                GEMINI,
                status=ReviewStatus.ERROR,
                usage=BaseUsage(),
                error_category=ErrorCategory.TIMEOUT,
                error_message="timed out",
            ),
        ]
        aggregated = FindingAggregator().aggregate({}, categories, [OPENAI])

        report = ReportSynthesizer().build(aggregated, results)

        assert report.summary.models_failed == 1
        failed = report.model_metrics[1]
        assert failed.error_category == "timeout"
        assert failed.cost_per_1k_tokens == 0.0

    def test_empty_input(self, categories):
        """Test zero successful backends yields an empty report."""
        aggregated = FindingAggregator().aggregate({}, categories, [])

        report = ReportSynthesizer().build(aggregated, [])

        assert report.findings_by_category == {}
        assert report.key_strengths == []
        assert report.key_areas_for_improvement == []
        assert report.summary.total_findings == 0
        assert report.summary.wall_time_ms == 0

    def test_call_log_totals_include_extraction_calls(self, categories):
        """Test totals come from the call log when one is supplied."""
        results = [make_result(OPENAI, usage=BaseUsage(10, 5, 15), cost=0.1)]
        call_log = CallLog()
        call_log.record_result(results[0])
        call_log.record(
            ApiCallRecord(
                model=OPENAI,
                operation="extraction",
                input_tokens=20,
                output_tokens=5,
                total_tokens=25,
                latency_ms=300,
                success=True,
                cost=0.05,
            )
        )
        aggregated = FindingAggregator().aggregate({}, categories, [OPENAI])

        report = ReportSynthesizer().build(aggregated, results, call_log=call_log)

        assert report.summary.total_tokens == 40
        assert report.summary.total_cost == pytest.approx(0.15)


class TestJsonPersistence:
    """Tests for report and result JSON files."""

    def test_write_report_to_directory(self, three_model_report, tmp_path):
        """Test a directory target gets a timestamped file name."""
        path = write_report_json(three_model_report, tmp_path)

        assert path.parent == tmp_path
        assert path.name.startswith("code_review_report_")
        data = json.loads(path.read_text())
        assert data["project_name"] == "demo"
        assert data["successful_models"] == [OPENAI, ANTHROPIC, GEMINI]
        assert data["prioritized_recommendations"]["High Priority"] == [
            "Use parameterized queries"
        ]

    def test_write_report_to_file(self, three_model_report, tmp_path):
        path = write_report_json(three_model_report, tmp_path / "out" / "report.json")

        assert path == tmp_path / "out" / "report.json"
        assert path.exists()

    def test_results_round_trip(self, tmp_path):
        results = [
            make_result(OPENAI, cost=0.25),
            make_result(
                ANTHROPIC,
                status=ReviewStatus.ERROR,
                usage=BaseUsage(),
                error_category=ErrorCategory.RATE_LIMIT,
                error_message="slow down",
                attempts=4,
            ),
        ]

        path = write_results_json(results, tmp_path / "results.json")
        loaded = read_results_json(path)

        assert loaded == results
