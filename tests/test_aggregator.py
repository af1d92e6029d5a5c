"""Tests for the finding aggregator."""

import pytest

from conftest import ANTHROPIC, GEMINI, OPENAI, make_finding
from consensus_reviewer.models.findings import AgreementTier, Category, CodeExample


class TestAgreementTier:
    """Tests for agreement tier boundaries."""

    @pytest.mark.parametrize(
        "agreed,success,expected",
        [
            (3, 3, AgreementTier.HIGH),
            (2, 3, AgreementTier.PARTIAL),
            (1, 3, AgreementTier.DISAGREEMENT),
            (2, 2, AgreementTier.HIGH),
            (1, 2, AgreementTier.DISAGREEMENT),
            (1, 1, AgreementTier.DISAGREEMENT),
            (0, 0, AgreementTier.DISAGREEMENT),
        ],
    )
    def test_classify(self, agreed, success, expected):
        assert AgreementTier.classify(agreed, success) == expected


class TestFindingAggregator:
    """Tests for FindingAggregator."""

    def test_merges_same_key_across_models(self, categories, model_names):
        """Test findings sharing a key become one canonical finding."""
        from consensus_reviewer.orchestrator.aggregator import FindingAggregator

        findings_by_model = {
            OPENAI: [make_finding("SQL injection in login", match_key="sql-injection")],
            ANTHROPIC: [make_finding("Unsafe SQL query", match_key="sql-injection")],
            GEMINI: [make_finding("Quadratic duplicate search", "performance")],
        }

        aggregated = FindingAggregator().aggregate(findings_by_model, categories, model_names)

        security = aggregated.findings_by_category["security"]
        assert len(security) == 1
        merged = security[0]
        # First contributor is the base
        assert merged.title == "SQL injection in login"
        assert merged.model_agreements == {OPENAI: True, ANTHROPIC: True, GEMINI: False}
        assert aggregated.tier_of(merged) == AgreementTier.PARTIAL

        performance = aggregated.findings_by_category["performance"]
        assert aggregated.tier_of(performance[0]) == AgreementTier.DISAGREEMENT

    def test_tier_boundaries_with_three_backends(self, categories, model_names):
        """Test flagged by 3 is High, by 2 Partial, by 1 Disagreement."""
        from consensus_reviewer.orchestrator.aggregator import FindingAggregator

        findings_by_model = {
            OPENAI: [make_finding("A"), make_finding("B"), make_finding("C")],
            ANTHROPIC: [make_finding("A"), make_finding("B")],
            GEMINI: [make_finding("A")],
        }

        aggregated = FindingAggregator().aggregate(findings_by_model, categories, model_names)

        tiers = {f.title: aggregated.tier_of(f) for f in aggregated.all_findings}
        assert tiers == {
            "A": AgreementTier.HIGH,
            "B": AgreementTier.PARTIAL,
            "C": AgreementTier.DISAGREEMENT,
        }

    def test_single_successful_backend_is_disagreement(self, categories):
        """Test one successful backend can never produce High or Partial."""
        from consensus_reviewer.orchestrator.aggregator import FindingAggregator

        aggregated = FindingAggregator().aggregate(
            {OPENAI: [make_finding("A"), make_finding("B", "performance")]},
            categories,
            [OPENAI],
        )

        assert all(
            aggregated.tier_of(f) == AgreementTier.DISAGREEMENT for f in aggregated.all_findings
        )

    def test_agreements_only_cover_successful_models(self, categories):
        """Test failed backends are neither counted nor listed."""
        from consensus_reviewer.orchestrator.aggregator import FindingAggregator

        findings_by_model = {
            OPENAI: [make_finding("A")],
            ANTHROPIC: [make_finding("A")],
            GEMINI: [make_finding("A")],
        }

        aggregated = FindingAggregator().aggregate(
            findings_by_model, categories, [OPENAI, ANTHROPIC]
        )

        (finding,) = aggregated.all_findings
        assert set(finding.model_agreements) == {OPENAI, ANTHROPIC}
        assert aggregated.tier_of(finding) == AgreementTier.HIGH

    def test_title_key_is_normalized(self, categories, model_names):
        from consensus_reviewer.orchestrator.aggregator import FindingAggregator

        aggregated = FindingAggregator().aggregate(
            {OPENAI: [make_finding("Missing  Tests")], ANTHROPIC: [make_finding("missing tests ")]},
            categories,
            model_names,
        )

        assert len(aggregated.all_findings) == 1
        assert aggregated.all_findings[0].agreed_count == 2

    def test_same_title_in_different_categories_stays_separate(self, categories, model_names):
        from consensus_reviewer.orchestrator.aggregator import FindingAggregator

        aggregated = FindingAggregator().aggregate(
            {OPENAI: [make_finding("Caching")], ANTHROPIC: [make_finding("Caching", "performance")]},
            categories,
            model_names,
        )

        assert len(aggregated.all_findings) == 2

    def test_fills_missing_details_from_later_contributors(self, categories, model_names):
        from consensus_reviewer.orchestrator.aggregator import FindingAggregator

        aggregated = FindingAggregator().aggregate(
            {
                OPENAI: [make_finding("A")],
                ANTHROPIC: [
                    make_finding(
                        "A",
                        recommendation="Use parameterized queries",
                        file_path="auth/login.py",
                        start_line=15,
                        code_example=CodeExample("db.execute(q, (u,))", "python"),
                    )
                ],
            },
            categories,
            model_names,
        )

        (finding,) = aggregated.all_findings
        assert finding.recommendation == "Use parameterized queries"
        assert finding.file_path == "auth/login.py"
        assert finding.start_line == 15
        assert finding.code_example.language == "python"

    def test_unknown_category_is_appended(self, categories, model_names):
        from consensus_reviewer.orchestrator.aggregator import FindingAggregator

        aggregated = FindingAggregator().aggregate(
            {OPENAI: [make_finding("Flaky CI", "testing")]}, categories, model_names
        )

        assert [c.name for c in aggregated.categories] == [
            "security",
            "performance",
            "code quality",
            "testing",
        ]
        assert "testing" in aggregated.findings_by_category

    def test_category_matching_ignores_case(self, categories, model_names):
        from consensus_reviewer.orchestrator.aggregator import FindingAggregator

        aggregated = FindingAggregator().aggregate(
            {OPENAI: [make_finding("A", "Security")]}, categories, model_names
        )

        (finding,) = aggregated.all_findings
        assert finding.category == Category("security", "Security vulnerabilities")

    def test_empty_input(self, categories):
        """Test no successful backends yields an empty aggregate."""
        from consensus_reviewer.orchestrator.aggregator import FindingAggregator

        aggregated = FindingAggregator().aggregate({}, categories, [])

        assert aggregated.findings_by_category == {}
        assert aggregated.success_count == 0
        assert [c.name for c in aggregated.categories] == [c.name for c in categories]

    def test_findings_from_failed_backend_ignored(self, categories):
        from consensus_reviewer.orchestrator.aggregator import FindingAggregator

        aggregated = FindingAggregator().aggregate(
            {GEMINI: [make_finding("A")]}, categories, [OPENAI]
        )

        assert aggregated.all_findings == []


class TestBatchedAggregation:
    """Tests for aggregation of a single batched extraction call."""

    def test_uses_reported_agreement_flags(self, categories, model_names):
        from consensus_reviewer.orchestrator.aggregator import FindingAggregator

        findings = [
            make_finding("A", agreements={OPENAI: True, ANTHROPIC: True, GEMINI: True}),
            make_finding("B", agreements={OPENAI: True, ANTHROPIC: False, GEMINI: True}),
            make_finding("C", "performance", agreements={GEMINI: True}),
        ]

        aggregated = FindingAggregator().aggregate_batched(findings, categories, model_names)

        tiers = {f.title: aggregated.tier_of(f) for f in aggregated.all_findings}
        assert tiers == {
            "A": AgreementTier.HIGH,
            "B": AgreementTier.PARTIAL,
            "C": AgreementTier.DISAGREEMENT,
        }

    def test_drops_flags_for_failed_backends(self, categories):
        from consensus_reviewer.orchestrator.aggregator import FindingAggregator

        findings = [
            make_finding("A", agreements={OPENAI: True, GEMINI: True}),
            make_finding("Only failed", agreements={GEMINI: True}),
        ]

        aggregated = FindingAggregator().aggregate_batched(
            findings, categories, [OPENAI, ANTHROPIC]
        )

        (finding,) = aggregated.all_findings
        assert finding.title == "A"
        assert finding.model_agreements == {OPENAI: True, ANTHROPIC: False}

    def test_aggregate_extracted_dispatches_on_layout(self, categories, model_names):
        from consensus_reviewer.extraction import ExtractedFindings
        from consensus_reviewer.orchestrator.aggregator import FindingAggregator

        extracted = ExtractedFindings(
            categories=categories,
            batched=[make_finding("A", agreements={OPENAI: True, ANTHROPIC: True})],
        )

        aggregated = FindingAggregator().aggregate_extracted(extracted, model_names)

        assert aggregated.all_findings[0].agreed_count == 2
