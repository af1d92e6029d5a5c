"""Review orchestrator for parallel fan-out across model backends."""

import asyncio
import logging
import time
from collections.abc import Callable, Mapping

from consensus_reviewer.call_log import CallLog
from consensus_reviewer.costs import TokenRate, estimate_cost
from consensus_reviewer.errors import ErrorCategory, ProviderError, categorize_error
from consensus_reviewer.models.job import (
    BaseUsage,
    ModelReviewResult,
    ModelSpec,
    OrchestrationResult,
    ReviewJob,
    ReviewStatus,
)
from consensus_reviewer.providers.base import ProviderAdapter, ProviderSettings
from consensus_reviewer.providers.registry import create_adapter, resolve_provider_name
from consensus_reviewer.retry import RetryExecutor
from consensus_reviewer.usage import normalize_usage

logger = logging.getLogger(__name__)

AdapterFactory = Callable[[ModelSpec], ProviderAdapter]


class ReviewOrchestrator:
    """Runs one prompt against every configured backend concurrently.

    Every backend gets its own task; a failure in one never cancels or blocks
    the others. Results come back in ``job.model_specs`` order and every
    backend produces exactly one ModelReviewResult, even when all of them
    fail.
    """

    def __init__(
        self,
        retry: RetryExecutor | None = None,
        call_log: CallLog | None = None,
        adapter_factory: AdapterFactory | None = None,
        provider_settings: Mapping[str, ProviderSettings] | None = None,
        cost_rates: Mapping[str, TokenRate] | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            retry: Retry policy applied to each backend call
            call_log: Call log receiving one record per backend
            adapter_factory: Builds the adapter for a ModelSpec; defaults to
                the provider registry
            provider_settings: Per-provider connection settings for the
                default factory
            cost_rates: Per-model rate overrides for cost estimation
        """
        self.retry = retry or RetryExecutor()
        self.call_log = call_log if call_log is not None else CallLog()
        self.provider_settings = dict(provider_settings or {})
        self.cost_rates = dict(cost_rates or {})
        self._adapter_factory = adapter_factory or self._default_factory
        self._adapters: dict[ModelSpec, ProviderAdapter] = {}

    def _default_factory(self, spec: ModelSpec) -> ProviderAdapter:
        settings = self.provider_settings.get(resolve_provider_name(spec.provider))
        return create_adapter(spec, settings)

    def get_adapter(self, spec: ModelSpec) -> ProviderAdapter:
        """Return the cached adapter for a spec, creating it on first use."""
        if spec not in self._adapters:
            self._adapters[spec] = self._adapter_factory(spec)
        return self._adapters[spec]

    async def close(self) -> None:
        """Close every adapter created by this orchestrator."""
        for adapter in self._adapters.values():
            await adapter.close()
        self._adapters.clear()

    async def run(self, job: ReviewJob) -> OrchestrationResult:
        """Run the job and wrap the results with the ``fail_on_error`` signal."""
        results = await self.run_all(job)
        outcome = OrchestrationResult(results=results, fail_on_error=job.fail_on_error)
        if outcome.should_exit_nonzero:
            logger.warning(
                f"{len(outcome.failed)} backend(s) failed and fail_on_error is set"
            )
        return outcome

    async def run_all(self, job: ReviewJob) -> list[ModelReviewResult]:
        """Execute every backend in parallel and collect one result per spec.

        Args:
            job: Prompt, backends and limits for this review

        Returns:
            Results in the same order as ``job.model_specs``
        """
        if job.exceeds_token_limit:
            logger.error(
                f"Prompt has {job.prompt_tokens} tokens, over the limit of {job.token_limit}"
            )
            results = [
                self._error_result(
                    spec,
                    ProviderError(
                        f"Prompt has {job.prompt_tokens} tokens, "
                        f"limit is {job.token_limit}",
                        ErrorCategory.INPUT_TOO_LARGE,
                        str(spec),
                        attempts=0,
                    ),
                    latency_ms=0,
                )
                for spec in job.model_specs
            ]
            for result in results:
                self.call_log.record_result(result)
            return results

        logger.info(f"Starting review with {len(job.model_specs)} backends")

        tasks = [
            asyncio.create_task(self._run_model(spec, job.prompt), name=f"review-{spec}")
            for spec in job.model_specs
        ]

        # Wait for all tasks; a failing backend never cancels the others
        settled = await asyncio.gather(*tasks, return_exceptions=True)

        results: list[ModelReviewResult] = []
        for spec, outcome in zip(job.model_specs, settled):
            if isinstance(outcome, ModelReviewResult):
                result = outcome
            elif isinstance(outcome, BaseException):
                logger.error(f"Backend {spec} task raised unexpectedly: {outcome!r}")
                result = self._error_result(spec, categorize_error(outcome, str(spec)), 0)
            else:
                logger.error(f"Backend {spec} returned unexpected: {outcome!r}")
                result = self._error_result(
                    spec,
                    ProviderError(
                        f"unexpected task result {type(outcome).__name__}",
                        ErrorCategory.UNKNOWN,
                        str(spec),
                    ),
                    0,
                )
            self.call_log.record_result(result)
            results.append(result)

        succeeded = sum(1 for r in results if r.succeeded)
        logger.info(
            f"Review complete: {succeeded} successful, {len(results) - succeeded} failed"
        )
        return results

    async def _run_model(self, spec: ModelSpec, prompt: str) -> ModelReviewResult:
        """Run one backend through the retry executor; never raises."""
        component = str(spec)
        attempts = 0
        start = time.monotonic()

        try:
            adapter = self.get_adapter(spec)
        except ValueError as e:
            error = ProviderError(str(e), ErrorCategory.UNKNOWN, component, attempts=0)
            logger.error(f"Cannot create adapter for {component}: {e}")
            return self._error_result(spec, error, 0)

        def attempt():
            nonlocal attempts
            attempts += 1
            return adapter.run_completion(prompt)

        try:
            completion = await self.retry.execute(attempt, component=component)
        except ProviderError as e:
            return self._error_result(spec, e, _elapsed_ms(start))

        usage = normalize_usage(completion.usage)
        latency_ms = _elapsed_ms(start)
        logger.info(
            f"{component} completed in {latency_ms}ms "
            f"({usage.total_tokens} tokens, {attempts} attempt(s))"
        )
        return ModelReviewResult(
            model=spec,
            raw_text=completion.text,
            usage=usage,
            latency_ms=latency_ms,
            status=ReviewStatus.SUCCESS,
            attempts=attempts,
            cost=estimate_cost(spec, usage, self.cost_rates),
        )

    @staticmethod
    def _error_result(
        spec: ModelSpec, error: ProviderError, latency_ms: int
    ) -> ModelReviewResult:
        return ModelReviewResult(
            model=spec,
            raw_text="",
            usage=BaseUsage(),
            latency_ms=latency_ms,
            status=ReviewStatus.ERROR,
            error_category=error.category,
            error_message=error.message,
            attempts=error.attempts,
        )


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)
