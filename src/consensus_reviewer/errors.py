"""Error taxonomy shared by all providers.

Every provider-specific exception is translated into a ``ProviderError``
carrying an ``ErrorCategory``; the category decides whether a retry is
worthwhile.
"""

import asyncio
import json
import logging
from enum import Enum

import httpx

logger = logging.getLogger(__name__)


class ErrorCategory(Enum):
    """Categories for provider failures."""

    TIMEOUT = "timeout"
    RATE_LIMIT = "rate_limit"
    NETWORK = "network"
    INVALID_RESPONSE = "invalid_response"
    AUTHENTICATION = "authentication"
    INPUT_TOO_LARGE = "input_too_large"
    UNKNOWN = "unknown"

    @property
    def retryable(self) -> bool:
        """Whether a failure in this category may succeed on retry."""
        return self in RETRYABLE_CATEGORIES


RETRYABLE_CATEGORIES = frozenset(
    {
        ErrorCategory.TIMEOUT,
        ErrorCategory.RATE_LIMIT,
        ErrorCategory.NETWORK,
        ErrorCategory.INVALID_RESPONSE,
    }
)

_INPUT_TOO_LARGE_MARKERS = ("too large", "maximum context length", "token limit", "too many tokens")
_NETWORK_STATUS_CODES = {500, 502, 503, 504}


class ProviderError(Exception):
    """A categorized failure from a model backend."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        component: str = "unknown",
        retryable: bool | None = None,
        attempts: int = 1,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.category = category
        self.component = component
        self.retryable = category.retryable if retryable is None else retryable
        self.attempts = attempts

    @property
    def detailed_message(self) -> str:
        return f"[{self.category.value}] {self.component}: {self.message}"

    def __str__(self) -> str:
        return self.message


def categorize_error(error: BaseException, component: str) -> ProviderError:
    """Translate any exception raised by a backend call into a ProviderError.

    Args:
        error: The exception raised by the provider call
        component: Name of the backend, used in messages

    Returns:
        A ProviderError with an appropriate category
    """
    if isinstance(error, ProviderError):
        return error

    message = str(error) or type(error).__name__
    lowered = message.lower()

    if isinstance(error, (asyncio.TimeoutError, TimeoutError, httpx.TimeoutException)):
        return ProviderError(
            f"{component} API call timed out",
            ErrorCategory.TIMEOUT,
            component,
        )

    if isinstance(error, httpx.HTTPStatusError):
        return _categorize_status(error, component)

    if isinstance(error, (httpx.TransportError, ConnectionError)):
        return ProviderError(
            f"Network error when calling {component} API: {message}",
            ErrorCategory.NETWORK,
            component,
        )

    if isinstance(error, (json.JSONDecodeError, KeyError, TypeError)):
        return ProviderError(
            f"Received invalid response from {component} API: {message}",
            ErrorCategory.INVALID_RESPONSE,
            component,
        )

    # Message-based fallbacks for SDK errors that carry no structured status
    if "timeout" in lowered or "timed out" in lowered:
        category = ErrorCategory.TIMEOUT
    elif "rate limit" in lowered or "too many requests" in lowered:
        category = ErrorCategory.RATE_LIMIT
    elif "api key" in lowered or "authentication" in lowered or "unauthorized" in lowered:
        category = ErrorCategory.AUTHENTICATION
    elif any(marker in lowered for marker in _INPUT_TOO_LARGE_MARKERS):
        category = ErrorCategory.INPUT_TOO_LARGE
    elif "network" in lowered or "connection" in lowered:
        category = ErrorCategory.NETWORK
    elif (
        "invalid response" in lowered
        or "unexpected response" in lowered
        or "parsing" in lowered
    ):
        category = ErrorCategory.INVALID_RESPONSE
    else:
        category = ErrorCategory.UNKNOWN

    return ProviderError(f"{component} API error: {message}", category, component)


def _categorize_status(error: httpx.HTTPStatusError, component: str) -> ProviderError:
    """Categorize an HTTP error response by status code and body."""
    status = error.response.status_code
    try:
        body = error.response.text
    except httpx.ResponseNotRead:
        body = ""
    lowered = body.lower()

    if status in (401, 403):
        return ProviderError(
            f"Invalid {component} API key. Please check your API key and try again.",
            ErrorCategory.AUTHENTICATION,
            component,
        )
    if status == 429:
        return ProviderError(
            f"{component} API rate limit exceeded",
            ErrorCategory.RATE_LIMIT,
            component,
        )
    if status == 408:
        return ProviderError(
            f"{component} API request timed out (408)",
            ErrorCategory.TIMEOUT,
            component,
        )
    if status in (400, 413) and (
        status == 413 or any(marker in lowered for marker in _INPUT_TOO_LARGE_MARKERS)
    ):
        return ProviderError(
            "Input is too large for the model. Please reduce the size of your input.",
            ErrorCategory.INPUT_TOO_LARGE,
            component,
        )
    if status in _NETWORK_STATUS_CODES:
        return ProviderError(
            f"{component} API unavailable ({status})",
            ErrorCategory.NETWORK,
            component,
        )
    return ProviderError(
        f"{component} API error ({status}): {body[:200]}",
        ErrorCategory.UNKNOWN,
        component,
    )
