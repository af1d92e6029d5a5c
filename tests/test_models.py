"""Tests for data models."""

import pytest

from consensus_reviewer.errors import ErrorCategory
from consensus_reviewer.models.findings import Category, CodeExample, Finding
from consensus_reviewer.models.job import (
    BaseUsage,
    ModelReviewResult,
    ModelSpec,
    OrchestrationResult,
    ReviewJob,
    ReviewStatus,
)


class TestModelSpec:
    """Tests for ModelSpec."""

    def test_parse(self):
        spec = ModelSpec.parse("openai/gpt-4.1")
        assert spec == ModelSpec("openai", "gpt-4.1")
        assert str(spec) == "openai/gpt-4.1"

    def test_parse_normalizes_provider(self):
        """Test provider names are lowercased and aliases resolved."""
        assert ModelSpec.parse(" Claude/claude-sonnet-4-5 ") == ModelSpec(
            "anthropic", "claude-sonnet-4-5"
        )

    def test_bare_provider_uses_default_model(self):
        assert ModelSpec.parse("gemini") == ModelSpec("gemini", "gemini-2.5-pro")

    def test_model_names_may_contain_slashes(self):
        spec = ModelSpec.parse("openai/ft:gpt-4.1/org")
        assert spec.model == "ft:gpt-4.1/org"

    @pytest.mark.parametrize("value", ["", "   ", "/gpt-4.1"])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            ModelSpec.parse(value)

    def test_hashable(self):
        assert len({ModelSpec.parse("openai/gpt-4.1"), ModelSpec("openai", "gpt-4.1")}) == 1


class TestReviewJob:
    """Tests for ReviewJob."""

    def test_defaults(self):
        job = ReviewJob(prompt="p", model_specs=[])
        assert job.token_limit == 100_000
        assert job.fail_on_error is False
        assert job.pass_threshold == "lenient"
        assert job.exceeds_token_limit is False

    def test_exceeds_token_limit(self):
        assert ReviewJob("p", [], token_limit=10, prompt_tokens=11).exceeds_token_limit
        assert not ReviewJob("p", [], token_limit=10, prompt_tokens=10).exceeds_token_limit
        # A zero limit disables the check
        assert not ReviewJob("p", [], token_limit=0, prompt_tokens=10).exceeds_token_limit


class TestModelReviewResult:
    """Tests for ModelReviewResult."""

    def test_error_summary(self):
        result = ModelReviewResult(
            model=ModelSpec("openai", "gpt-4.1"),
            raw_text="",
            usage=BaseUsage(),
            latency_ms=10,
            status=ReviewStatus.ERROR,
            error_category=ErrorCategory.TIMEOUT,
            error_message="timed out",
        )
        assert not result.succeeded
        assert result.summary == "ERROR: timed out"
        assert result.to_dict()["error_category"] == "timeout"

    def test_orchestration_result_flags(self):
        ok = ModelReviewResult(ModelSpec("a", "b"), "x", BaseUsage(), 1, ReviewStatus.SUCCESS)
        bad = ModelReviewResult(ModelSpec("c", "d"), "", BaseUsage(), 1, ReviewStatus.ERROR)

        assert not OrchestrationResult([ok, bad]).should_exit_nonzero
        outcome = OrchestrationResult([ok, bad], fail_on_error=True)
        assert outcome.should_exit_nonzero
        assert outcome.successful == [ok]
        assert outcome.failed == [bad]


class TestFinding:
    """Tests for Finding."""

    def test_agreement_helpers(self):
        finding = Finding(
            title="SQL injection",
            description="d",
            category=Category("security"),
            model_agreements={"a/x": True, "b/y": False, "c/z": True},
        )
        assert finding.agreed_count == 2
        assert finding.agreeing_models == ["a/x", "c/z"]

    def test_from_dict(self):
        finding = Finding.from_dict(
            {
                "title": " SQL injection ",
                "description": "User input in query",
                "category": {"name": "security", "description": "Security"},
                "model_agreements": {"openai/gpt-4.1": True},
                "recommendation": "Use parameters",
                "file_path": "auth/login.py",
                "start_line": 15,
                "code_example": {"code": "db.execute(q, (u,))", "language": "python"},
                "match_key": "sqli",
            }
        )
        assert finding.title == "SQL injection"
        assert finding.category == Category("security", "Security")
        assert finding.code_example == CodeExample("db.execute(q, (u,))", "python")
        assert finding.match_key == "sqli"
        assert finding.to_dict()["match_key"] == "sqli"

    def test_from_dict_category_string(self):
        finding = Finding.from_dict({"title": "t", "category": "performance"})
        assert finding.category == Category("performance")
        assert finding.is_strength is False

    def test_from_dict_requires_category(self):
        with pytest.raises(ValueError, match="no category"):
            Finding.from_dict({"title": "t"})

    def test_to_dict_omits_empty_optionals(self):
        data = Finding(title="t", description="d", category=Category("c")).to_dict()
        assert "recommendation" not in data
        assert "code_example" not in data
        assert data["category"] == {"name": "c", "description": ""}
