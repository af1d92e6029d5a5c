"""Finding aggregator: merges per-backend findings and computes agreement."""

import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace

from consensus_reviewer.extraction import ExtractedFindings
from consensus_reviewer.models.findings import AgreementTier, Category, Finding

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")
_OPTIONAL_FIELDS = ("recommendation", "file_path", "start_line", "end_line", "code_example")


@dataclass
class AggregatedFindings:
    """Canonical findings per category plus the agreement denominator."""

    categories: list[Category]
    findings_by_category: dict[str, list[Finding]]
    successful_models: list[str] = field(default_factory=list)

    @property
    def success_count(self) -> int:
        return len(self.successful_models)

    @property
    def all_findings(self) -> list[Finding]:
        return [f for findings in self.findings_by_category.values() for f in findings]

    def tier_of(self, finding: Finding) -> AgreementTier:
        return finding.tier(self.success_count)


def clustering_key(finding: Finding) -> str:
    """Key under which findings in one category count as the same issue.

    The extraction step's ``match_key`` wins; otherwise the normalized title.
    """
    raw = finding.match_key or finding.title
    return _WHITESPACE.sub(" ", raw).strip().casefold()


class FindingAggregator:
    """Combines structured findings from several backends.

    Findings are grouped by category and merged when they share a clustering
    key. The equivalence itself is decided by the extraction step; no text
    similarity is computed here. Each canonical finding records which of the
    successful backends raised it, and its tier follows from that count.
    """

    def aggregate(
        self,
        findings_by_model: Mapping[str, Iterable[Finding]],
        categories: list[Category],
        successful_models: list[str],
    ) -> AggregatedFindings:
        """Merge one finding list per backend.

        Args:
            findings_by_model: Extraction output keyed by ``provider/model``
            categories: Official category list, in declaration order
            successful_models: Backends that completed successfully

        Returns:
            Canonical findings grouped by category
        """
        successful = list(dict.fromkeys(successful_models))
        merger = _Merger(categories, successful)

        for model, findings in findings_by_model.items():
            if model not in successful:
                logger.warning(f"Ignoring findings from {model}: not a successful backend")
                continue
            for finding in findings:
                merger.add(finding, {model})

        return merger.result()

    def aggregate_batched(
        self,
        findings: Iterable[Finding],
        categories: list[Category],
        successful_models: list[str],
    ) -> AggregatedFindings:
        """Merge findings from a single batched extraction call.

        Each finding already carries per-model agreement flags; flags for
        backends outside ``successful_models`` are dropped.
        """
        successful = list(dict.fromkeys(successful_models))
        merger = _Merger(categories, successful)

        for finding in findings:
            agreeing = {
                model
                for model, agreed in finding.model_agreements.items()
                if agreed and model in successful
            }
            if not agreeing:
                logger.warning(
                    f"Dropping finding '{finding.title}': no successful backend raised it"
                )
                continue
            merger.add(finding, agreeing)

        return merger.result()

    def aggregate_extracted(
        self, extracted: ExtractedFindings, successful_models: list[str]
    ) -> AggregatedFindings:
        """Aggregate whichever layout the extraction step produced."""
        if extracted.is_batched:
            return self.aggregate_batched(
                extracted.batched, extracted.categories, successful_models
            )
        return self.aggregate(
            extracted.findings_by_model, extracted.categories, successful_models
        )


class _Merger:
    """Accumulates canonical findings for one aggregation run."""

    def __init__(self, categories: list[Category], successful_models: list[str]) -> None:
        self.successful_models = successful_models
        self.categories: list[Category] = []
        self._by_name: dict[str, Category] = {}
        for category in categories:
            self._register(category)
        self._clusters: dict[str, dict[str, Finding]] = {
            c.name: {} for c in self.categories
        }

    def _register(self, category: Category) -> Category:
        key = category.name.casefold()
        if key not in self._by_name:
            self._by_name[key] = category
            self.categories.append(category)
        return self._by_name[key]

    def _resolve_category(self, category: Category) -> Category:
        known = self._by_name.get(category.name.casefold())
        if known is not None:
            return known
        logger.warning(f"Unknown category '{category.name}', appending to category list")
        registered = self._register(category)
        self._clusters[registered.name] = {}
        return registered

    def add(self, finding: Finding, models: set[str]) -> None:
        category = self._resolve_category(finding.category)
        clusters = self._clusters[category.name]
        key = clustering_key(finding)

        canonical = clusters.get(key)
        if canonical is None:
            canonical = replace(
                finding,
                category=category,
                model_agreements={m: False for m in self.successful_models},
            )
            clusters[key] = canonical
        else:
            _fill_missing(canonical, finding)

        for model in models:
            canonical.model_agreements[model] = True

    def result(self) -> AggregatedFindings:
        findings_by_category = {
            name: list(clusters.values())
            for name, clusters in self._clusters.items()
            if clusters
        }
        total = sum(len(f) for f in findings_by_category.values())
        logger.info(
            f"Aggregated {total} canonical findings across "
            f"{len(self.categories)} categories from {len(self.successful_models)} backends"
        )
        return AggregatedFindings(
            categories=list(self.categories),
            findings_by_category=findings_by_category,
            successful_models=list(self.successful_models),
        )


def _fill_missing(canonical: Finding, other: Finding) -> None:
    """Copy optional details the canonical finding lacks from another contributor."""
    if not canonical.description and other.description:
        canonical.description = other.description
    for name in _OPTIONAL_FIELDS:
        if getattr(canonical, name) is None and getattr(other, name) is not None:
            setattr(canonical, name, getattr(other, name))
