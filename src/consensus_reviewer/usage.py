"""Token usage normalization across provider response shapes.

Providers report token accounting under different field names. Each known
shape is detected explicitly and decoded; anything else goes through a
documented fallback that probes every known alias. Absent or non-numeric
fields count as zero and normalization never raises.
"""

import logging
import math
from collections.abc import Mapping
from enum import Enum
from typing import Any

from consensus_reviewer.models.job import BaseUsage

logger = logging.getLogger(__name__)


class UsageShape(Enum):
    """Known token-accounting shapes."""

    BASE = "base"  # input_tokens / output_tokens (/ total_tokens)
    CHAT_COMPLETIONS = "chat_completions"  # prompt_tokens / completion_tokens
    GEMINI = "gemini"  # promptTokenCount / candidatesTokenCount / totalTokenCount
    UNKNOWN = "unknown"


INPUT_ALIASES = ("input_tokens", "prompt_tokens", "promptTokenCount")
OUTPUT_ALIASES = ("output_tokens", "completion_tokens", "candidatesTokenCount")
TOTAL_ALIASES = ("total_tokens", "totalTokenCount")

_GEMINI_FIELDS = ("promptTokenCount", "candidatesTokenCount", "totalTokenCount")
_CHAT_FIELDS = ("prompt_tokens", "completion_tokens")


def _count(value: Any) -> int:
    """Coerce a token count to a non-negative int, or 0."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, float) and not math.isfinite(value):
        return 0
    if isinstance(value, (int, float)):
        return max(int(value), 0)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return 0


def _first(data: Mapping[str, Any], keys: tuple[str, ...]) -> int:
    for key in keys:
        count = _count(data.get(key))
        if count:
            return count
    return 0


def _as_mapping(usage: Any) -> Mapping[str, Any] | None:
    if isinstance(usage, Mapping):
        return usage
    # SDK response objects expose usage as attributes
    if hasattr(usage, "__dict__"):
        return vars(usage)
    return None


def detect_usage_shape(usage: Any) -> UsageShape:
    """Detect which provider shape a raw usage object has."""
    data = _as_mapping(usage)
    if not data:
        return UsageShape.UNKNOWN
    if any(key in data for key in _GEMINI_FIELDS):
        return UsageShape.GEMINI
    if any(key in data for key in _CHAT_FIELDS):
        return UsageShape.CHAT_COMPLETIONS
    if "input_tokens" in data and "output_tokens" in data:
        return UsageShape.BASE
    return UsageShape.UNKNOWN


def normalize_usage(usage: Any) -> BaseUsage:
    """Map any provider's usage object to BaseUsage.

    Args:
        usage: Raw usage data (mapping or attribute object), or None

    Returns:
        Normalized usage; total defaults to input + output when not reported
    """
    data = _as_mapping(usage)
    if not data:
        return BaseUsage()

    shape = detect_usage_shape(data)
    if shape == UsageShape.BASE:
        input_tokens = _count(data.get("input_tokens"))
        output_tokens = _count(data.get("output_tokens"))
        total_tokens = _count(data.get("total_tokens"))
    elif shape == UsageShape.CHAT_COMPLETIONS:
        input_tokens = _count(data.get("prompt_tokens")) or _count(data.get("input_tokens"))
        output_tokens = _count(data.get("completion_tokens")) or _count(
            data.get("output_tokens")
        )
        total_tokens = _count(data.get("total_tokens"))
    elif shape == UsageShape.GEMINI:
        input_tokens = _count(data.get("promptTokenCount")) or _count(data.get("input_tokens"))
        output_tokens = _count(data.get("candidatesTokenCount")) or _count(
            data.get("output_tokens")
        )
        total_tokens = _count(data.get("totalTokenCount")) or _count(data.get("total_tokens"))
    else:
        logger.debug(f"Unknown usage shape, probing aliases: {sorted(data)}")
        input_tokens = _first(data, INPUT_ALIASES)
        output_tokens = _first(data, OUTPUT_ALIASES)
        total_tokens = _first(data, TOTAL_ALIASES)

    return BaseUsage(
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        total_tokens=total_tokens or input_tokens + output_tokens,
    )
