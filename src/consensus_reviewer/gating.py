"""Pass-threshold evaluation, badge status and README badge embedding.

Everything here is a pure function of the report except
``update_readme_badge``, which rewrites a file.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from urllib.parse import quote

from consensus_reviewer.models.findings import AgreementTier
from consensus_reviewer.models.job import ModelReviewResult, ReviewJob
from consensus_reviewer.models.report import CodeReviewReport

logger = logging.getLogger(__name__)

BADGE_LABEL = "AI Review"
BADGE_START_MARKER = "<!-- consensus-review-badge:start -->"
BADGE_END_MARKER = "<!-- consensus-review-badge:end -->"


class PassThreshold(Enum):
    """How much cross-model agreement on an improvement fails the review."""

    STRICT = "strict"
    LENIENT = "lenient"
    NONE = "none"

    @classmethod
    def parse(cls, value: "str | PassThreshold") -> "PassThreshold":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            valid = ", ".join(t.value for t in cls)
            raise ValueError(f"Invalid pass threshold '{value}'. Valid: {valid}") from None


class BadgeStatus(Enum):
    """Status shown on the review badge."""

    PASSED = "passed"
    WARNINGS = "warnings"
    FAILED = "failed"
    ERROR = "error"

    @property
    def color(self) -> str:
        return _BADGE_COLORS[self]


_BADGE_COLORS = {
    BadgeStatus.PASSED: "brightgreen",
    BadgeStatus.WARNINGS: "yellow",
    BadgeStatus.FAILED: "red",
    BadgeStatus.ERROR: "lightgrey",
}


def review_passed(report: CodeReviewReport, threshold: "str | PassThreshold") -> bool:
    """Evaluate the pass threshold over the report's areas for improvement.

    - strict: fails if any improvement was raised by two or more backends.
    - lenient: fails if any improvement was raised by every successful
      backend, including a lone one.
    - none: never fails on agreement.
    """
    threshold = PassThreshold.parse(threshold)
    improvements = report.key_areas_for_improvement

    if threshold == PassThreshold.STRICT:
        return not any(f.agreed_count >= 2 for f in improvements)
    if threshold == PassThreshold.LENIENT:
        n_success = report.success_count
        return not any(n_success > 0 and f.agreed_count == n_success for f in improvements)
    return True


def resolve_badge_status(report: CodeReviewReport) -> BadgeStatus:
    """Badge status from improvement tiers, independent of ``fail_on_error``."""
    if report.success_count == 0:
        return BadgeStatus.ERROR

    tiers = {report.tier_of(f) for f in report.key_areas_for_improvement}
    if AgreementTier.HIGH in tiers:
        return BadgeStatus.FAILED
    if AgreementTier.PARTIAL in tiers:
        return BadgeStatus.WARNINGS
    return BadgeStatus.PASSED


@dataclass(frozen=True)
class BadgeResult:
    """Rendered badge for a report."""

    status: BadgeStatus
    url: str
    markdown: str
    summary: str


def badge_summary(report: CodeReviewReport) -> str:
    tiers = [report.tier_of(f) for f in report.key_areas_for_improvement]
    high = tiers.count(AgreementTier.HIGH)
    partial = tiers.count(AgreementTier.PARTIAL)
    return (
        f"{len(report.key_strengths)} strengths, {len(tiers)} improvements "
        f"({high} high-agreement, {partial} partial-agreement)"
    )


def _shields_escape(text: str) -> str:
    # shields.io path segments use doubled dashes and underscores as literals
    return quote(text.replace("-", "--").replace("_", "__"), safe="")


def generate_badge(report: CodeReviewReport, label: str = BADGE_LABEL) -> BadgeResult:
    """Build the shields.io badge for a report."""
    status = resolve_badge_status(report)
    url = (
        f"https://img.shields.io/badge/{_shields_escape(label)}-"
        f"{_shields_escape(status.value)}-{status.color}"
    )
    summary = badge_summary(report)
    return BadgeResult(
        status=status,
        url=url,
        markdown=f"![{label}: {status.value}]({url} \"{summary}\")",
        summary=summary,
    )


def update_readme_badge(path: Path | str, badge: BadgeResult) -> bool:
    """Embed the badge in a README between marker comments.

    An existing marker block is replaced; otherwise the block is inserted
    after the first top-level heading, or at the top of the file.

    Returns:
        True if the file content changed
    """
    readme = Path(path)
    content = readme.read_text(encoding="utf-8") if readme.exists() else ""
    block = f"{BADGE_START_MARKER}\n{badge.markdown}\n{BADGE_END_MARKER}"

    pattern = re.compile(
        re.escape(BADGE_START_MARKER) + r".*?" + re.escape(BADGE_END_MARKER), re.DOTALL
    )
    if pattern.search(content):
        updated = pattern.sub(lambda _: block, content, count=1)
    else:
        lines = content.splitlines(keepends=True)
        heading = next((i for i, line in enumerate(lines) if line.startswith("# ")), None)
        if heading is None:
            updated = block + "\n\n" + content if content else block + "\n"
        else:
            head = "".join(lines[: heading + 1])
            if not head.endswith("\n"):
                head += "\n"
            updated = head + "\n" + block + "\n" + "".join(lines[heading + 1 :])

    if updated == content:
        return False
    readme.write_text(updated, encoding="utf-8")
    logger.info(f"Updated review badge in {readme}")
    return True


@dataclass(frozen=True)
class JobDecision:
    """Final verdict for an automated pipeline."""

    review_passed: bool
    badge: BadgeResult
    exit_code: int

    @property
    def status(self) -> BadgeStatus:
        return self.badge.status


def evaluate_job(
    report: CodeReviewReport,
    results: list[ModelReviewResult],
    job: ReviewJob,
) -> JobDecision:
    """Combine the pass threshold and ``fail_on_error`` into an exit code."""
    passed = review_passed(report, job.pass_threshold)
    badge = generate_badge(report)
    backend_failed = job.fail_on_error and any(not r.succeeded for r in results)

    if backend_failed:
        logger.warning("At least one backend failed and fail_on_error is set")
    if not passed:
        logger.warning(f"Review failed the '{job.pass_threshold}' pass threshold")

    exit_code = 1 if backend_failed or not passed else 0
    return JobDecision(review_passed=passed, badge=badge, exit_code=exit_code)
