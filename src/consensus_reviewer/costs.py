"""Static provider-rate table and cost estimation.

Rates are USD per token. Models missing from the table fall back to
``DEFAULT_RATE``.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass

from consensus_reviewer.models.job import BaseUsage, ModelSpec

logger = logging.getLogger(__name__)

_PER_MILLION = 1_000_000


@dataclass(frozen=True)
class TokenRate:
    """Input and output price per token."""

    input_rate: float
    output_rate: float

    @classmethod
    def per_million(cls, input_price: float, output_price: float) -> "TokenRate":
        return cls(input_price / _PER_MILLION, output_price / _PER_MILLION)


MODEL_RATES: dict[str, TokenRate] = {
    "openai/gpt-4.1": TokenRate.per_million(2.00, 8.00),
    "openai/gpt-4.1-mini": TokenRate.per_million(0.40, 1.60),
    "openai/gpt-4.1-nano": TokenRate.per_million(0.10, 0.40),
    "openai/gpt-4o": TokenRate.per_million(2.50, 10.00),
    "openai/gpt-4o-mini": TokenRate.per_million(0.15, 0.60),
    "anthropic/claude-sonnet-4-5": TokenRate.per_million(3.00, 15.00),
    "anthropic/claude-haiku-4-5": TokenRate.per_million(1.00, 5.00),
    "anthropic/claude-opus-4-5": TokenRate.per_million(5.00, 25.00),
    "gemini/gemini-2.5-pro": TokenRate.per_million(1.25, 10.00),
    "gemini/gemini-2.5-flash": TokenRate.per_million(0.30, 2.50),
    "gemini/gemini-2.0-flash": TokenRate.per_million(0.10, 0.40),
}

DEFAULT_RATE = MODEL_RATES["openai/gpt-4.1"]


def lookup_rate(
    spec: ModelSpec | str,
    overrides: Mapping[str, TokenRate] | None = None,
) -> TokenRate:
    """Find the rate for a model, preferring configured overrides.

    Args:
        spec: ModelSpec or ``provider/model`` string
        overrides: Optional per-model rates from configuration

    Returns:
        The matching rate, or ``DEFAULT_RATE`` for unlisted models
    """
    key = str(spec)
    if overrides and key in overrides:
        return overrides[key]
    rate = MODEL_RATES.get(key)
    if rate is None:
        logger.debug(f"No rate listed for {key}, using default rate")
        return DEFAULT_RATE
    return rate


def estimate_cost(
    spec: ModelSpec | str,
    usage: BaseUsage,
    overrides: Mapping[str, TokenRate] | None = None,
) -> float:
    """Estimate the USD cost of one call: ``input * in_rate + output * out_rate``."""
    rate = lookup_rate(spec, overrides)
    return usage.input_tokens * rate.input_rate + usage.output_tokens * rate.output_rate
