"""Retry with per-attempt deadlines and exponential backoff."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from consensus_reviewer.errors import categorize_error

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_RETRIES = 3
DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_BACKOFF_BASE_SECONDS = 1.0


class RetryExecutor:
    """Runs one async operation with a deadline, retries and backoff.

    Each attempt gets an independent deadline; when it expires the in-flight
    attempt is cancelled. Failures are categorized and retried only when the
    category is retryable and attempts remain. Successive waits are
    ``backoff_base_seconds * 2**attempt`` (1s, 2s, 4s with the defaults).
    """

    def __init__(
        self,
        max_retries: int = DEFAULT_MAX_RETRIES,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        backoff_base_seconds: float = DEFAULT_BACKOFF_BASE_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize the executor.

        Args:
            max_retries: Retries after the first attempt
            timeout_seconds: Deadline for each individual attempt
            backoff_base_seconds: Base delay for exponential backoff
            sleep: Awaitable sleep used between attempts
        """
        self.max_retries = max_retries
        self.timeout_seconds = timeout_seconds
        self.backoff_base_seconds = backoff_base_seconds
        self._sleep = sleep

    def backoff_delay(self, attempt: int) -> float:
        """Delay before the retry following zero-based ``attempt``."""
        return self.backoff_base_seconds * (2**attempt)

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        component: str = "operation",
        max_retries: int | None = None,
        timeout_seconds: float | None = None,
    ) -> T:
        """Run ``operation`` until it succeeds or retrying stops making sense.

        Args:
            operation: Zero-argument factory returning a fresh awaitable per attempt
            component: Name used in logs and error messages
            max_retries: Override for the configured retry budget
            timeout_seconds: Override for the configured per-attempt deadline

        Returns:
            The operation's result

        Raises:
            ProviderError: When the error is not retryable or retries are exhausted
        """
        retries = self.max_retries if max_retries is None else max_retries
        timeout = self.timeout_seconds if timeout_seconds is None else timeout_seconds
        attempt = 0

        while True:
            if attempt > 0:
                logger.debug(f"Attempt {attempt + 1}/{retries + 1} for {component}")
            try:
                result = await asyncio.wait_for(operation(), timeout=timeout)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                error = categorize_error(e, component)
                error.attempts = attempt + 1

                if error.retryable and attempt < retries:
                    delay = self.backoff_delay(attempt)
                    logger.warning(
                        f"{error.detailed_message}. Retrying in {delay:.1f}s "
                        f"({attempt + 1}/{retries})"
                    )
                    await self._sleep(delay)
                    attempt += 1
                    continue

                logger.error(f"{component} failed after {attempt + 1} attempt(s): {error}")
                if error is e:
                    raise
                raise error from e

            if attempt > 0:
                logger.info(f"{component} succeeded after {attempt} retries")
            return result
