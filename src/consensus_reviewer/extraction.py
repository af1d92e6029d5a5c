"""Contract with the finding-extraction step.

Extraction turns free-text reviews into category-tagged findings. It calls a
language model itself, so it lives outside this package; what is consumed
here is its structured output, loaded from the JSON file it wrote.

Two JSON layouts are accepted::

    {"categories": [...], "findings_by_model": {"openai/gpt-4.1": [...], ...}}
    {"categories": [...], "findings": [{..., "model_agreements": {...}}, ...]}

The first is one extraction call per backend; the second is a single batched
call that already reports per-model agreement flags.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from consensus_reviewer.models.findings import Category, Finding

logger = logging.getLogger(__name__)


@dataclass
class ExtractedFindings:
    """Structured extraction output for one job."""

    categories: list[Category] = field(default_factory=list)
    findings_by_model: dict[str, list[Finding]] = field(default_factory=dict)
    batched: list[Finding] = field(default_factory=list)

    @property
    def is_batched(self) -> bool:
        return bool(self.batched) and not self.findings_by_model


def parse_extracted_findings(data: dict[str, Any]) -> ExtractedFindings:
    """Parse extraction output from its JSON form.

    Raises:
        ValueError: If the payload is not an object or a finding lacks a category
    """
    if not isinstance(data, dict):
        raise ValueError("Extraction output must be a JSON object")

    categories = [Category.from_dict(c) for c in data.get("categories") or []]

    findings_by_model: dict[str, list[Finding]] = {}
    for model, items in (data.get("findings_by_model") or {}).items():
        findings_by_model[str(model)] = [Finding.from_dict(item) for item in items or []]

    batched = [Finding.from_dict(item) for item in data.get("findings") or []]

    logger.debug(
        f"Parsed extraction output: {len(categories)} categories, "
        f"{len(findings_by_model)} per-model lists, {len(batched)} batched findings"
    )
    return ExtractedFindings(
        categories=categories,
        findings_by_model=findings_by_model,
        batched=batched,
    )


def load_extracted_findings(path: Path | str) -> ExtractedFindings:
    """Load extraction output written to a JSON file."""
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    return parse_extracted_findings(data)
