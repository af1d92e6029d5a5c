"""Configuration loading and validation for Consensus Reviewer."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from consensus_reviewer.costs import TokenRate
from consensus_reviewer.gating import PassThreshold
from consensus_reviewer.models.job import ModelSpec, ReviewJob
from consensus_reviewer.prompts import ReviewType
from consensus_reviewer.providers import (
    get_provider_class,
    is_valid_provider,
    list_providers,
    resolve_provider_name,
)
from consensus_reviewer.providers.base import (
    DEFAULT_MAX_TOKENS,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    ProviderSettings,
)
from consensus_reviewer.retry import (
    DEFAULT_BACKOFF_BASE_SECONDS,
    DEFAULT_MAX_RETRIES,
    DEFAULT_TIMEOUT_SECONDS,
    RetryExecutor,
)

DEFAULT_CONFIG_PATH = Path("consensus-reviewer.yaml")
EXAMPLE_CONFIG_PATH = Path("consensus-reviewer.example.yaml")

DEFAULT_MODELS = [
    "openai/gpt-4.1",
    "anthropic/claude-sonnet-4-5",
    "gemini/gemini-2.5-pro",
]


@dataclass
class ProviderConfig:
    """Connection settings for one provider family."""

    api_key: str = ""
    base_url: str | None = None
    max_tokens: int = DEFAULT_MAX_TOKENS
    request_timeout_seconds: float = DEFAULT_REQUEST_TIMEOUT_SECONDS

    def to_settings(self) -> ProviderSettings:
        return ProviderSettings(
            api_key=self.api_key or None,
            base_url=self.base_url,
            max_tokens=self.max_tokens,
            request_timeout_seconds=self.request_timeout_seconds,
        )


@dataclass
class RetrySettings:
    """Retry configuration."""

    max_retries: int = DEFAULT_MAX_RETRIES
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    backoff_base_seconds: float = DEFAULT_BACKOFF_BASE_SECONDS


@dataclass
class ReviewSettings:
    """Review job configuration."""

    token_limit: int = 100_000
    fail_on_error: bool = False
    pass_threshold: str = PassThreshold.LENIENT.value
    review_type: str = ReviewType.GENERAL.value
    project_name: str = "Consensus Review"


@dataclass
class LoggingSettings:
    """Call-log configuration."""

    call_log_path: str | None = None


@dataclass
class Config:
    """Complete application configuration."""

    models: list[str] = field(default_factory=lambda: list(DEFAULT_MODELS))
    providers: dict[str, ProviderConfig] = field(default_factory=dict)
    retry: RetrySettings = field(default_factory=RetrySettings)
    review: ReviewSettings = field(default_factory=ReviewSettings)
    costs: dict[str, TokenRate] = field(default_factory=dict)
    logging: LoggingSettings = field(default_factory=LoggingSettings)

    def model_specs(self) -> list[ModelSpec]:
        """Parse the configured model strings."""
        return [ModelSpec.parse(model) for model in self.models]

    def provider_settings(self) -> dict[str, ProviderSettings]:
        return {name: provider.to_settings() for name, provider in self.providers.items()}

    def retry_executor(self) -> RetryExecutor:
        return RetryExecutor(
            max_retries=self.retry.max_retries,
            timeout_seconds=self.retry.timeout_seconds,
            backoff_base_seconds=self.retry.backoff_base_seconds,
        )

    def build_job(self, prompt: str, prompt_tokens: int | None = None) -> ReviewJob:
        """Create a ReviewJob for a prompt using the configured review settings."""
        return ReviewJob(
            prompt=prompt,
            model_specs=self.model_specs(),
            token_limit=self.review.token_limit,
            fail_on_error=self.review.fail_on_error,
            pass_threshold=self.review.pass_threshold,
            prompt_tokens=prompt_tokens,
        )


def load_config(config_path: Path | None = None) -> Config:
    """Load configuration from file and environment.

    Args:
        config_path: Path to config file (default: consensus-reviewer.yaml)

    Returns:
        Loaded configuration
    """
    # Find config file
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH
        if not config_path.exists():
            config_path = EXAMPLE_CONFIG_PATH

    # Load from file if exists
    raw_config: dict[str, Any] = {}
    if config_path.exists():
        with open(config_path) as f:
            raw_config = yaml.safe_load(f) or {}

    # Expand environment variables
    raw_config = _expand_env_vars(raw_config)

    # Parse configuration
    return _parse_config(raw_config)


def _expand_env_vars(obj: Any) -> Any:
    """Recursively expand environment variables in config."""
    if isinstance(obj, str):
        if obj.startswith("${") and obj.endswith("}"):
            env_var = obj[2:-1]
            return os.environ.get(env_var, "")
        return obj
    elif isinstance(obj, dict):
        return {k: _expand_env_vars(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_expand_env_vars(v) for v in obj]
    return obj


def _parse_config(raw: dict[str, Any]) -> Config:
    """Parse raw config dict into Config object."""
    models = [str(m) for m in raw.get("models") or []] or list(DEFAULT_MODELS)

    # Provider settings; API keys fall back to each provider's environment variable
    providers_raw = raw.get("providers") or {}
    providers: dict[str, ProviderConfig] = {}
    for name in list_providers():
        provider_raw: dict[str, Any] = {}
        for key, value in providers_raw.items():
            if resolve_provider_name(key) == name:
                provider_raw = value or {}
        env_var = get_provider_class(name).API_KEY_ENV
        providers[name] = ProviderConfig(
            api_key=provider_raw.get("api_key") or os.environ.get(env_var, ""),
            base_url=provider_raw.get("base_url"),
            max_tokens=provider_raw.get("max_tokens", DEFAULT_MAX_TOKENS),
            request_timeout_seconds=provider_raw.get(
                "request_timeout_seconds", DEFAULT_REQUEST_TIMEOUT_SECONDS
            ),
        )

    # Retry settings
    retry_raw = raw.get("retry") or {}
    retry = RetrySettings(
        max_retries=retry_raw.get("max_retries", DEFAULT_MAX_RETRIES),
        timeout_seconds=retry_raw.get("timeout_seconds", DEFAULT_TIMEOUT_SECONDS),
        backoff_base_seconds=retry_raw.get("backoff_base_seconds", DEFAULT_BACKOFF_BASE_SECONDS),
    )

    # Review settings
    review_raw = raw.get("review") or {}
    review = ReviewSettings(
        token_limit=review_raw.get("token_limit", 100_000),
        fail_on_error=review_raw.get("fail_on_error", False),
        pass_threshold=str(review_raw.get("pass_threshold", PassThreshold.LENIENT.value)),
        review_type=str(review_raw.get("review_type", ReviewType.GENERAL.value)),
        project_name=review_raw.get("project_name", "Consensus Review"),
    )

    # Per-model cost overrides, USD per token
    costs = {
        str(model): TokenRate(
            input_rate=float(rate.get("input", 0.0)),
            output_rate=float(rate.get("output", 0.0)),
        )
        for model, rate in (raw.get("costs") or {}).items()
    }

    logging_raw = raw.get("logging") or {}
    logging_settings = LoggingSettings(call_log_path=logging_raw.get("call_log_path") or None)

    return Config(
        models=models,
        providers=providers,
        retry=retry,
        review=review,
        costs=costs,
        logging=logging_settings,
    )


def missing_api_keys(config: Config) -> list[str]:
    """Messages for configured providers that have no API key.

    Unknown providers are skipped; ``validate_config`` reports those.
    """
    missing = []
    seen: set[str] = set()
    for model in config.models:
        provider = model.partition("/")[0]
        if not is_valid_provider(provider):
            continue
        canonical = resolve_provider_name(provider)
        if canonical in seen:
            continue
        seen.add(canonical)
        provider_config = config.providers.get(canonical)
        if provider_config is None or not provider_config.api_key:
            env_var = get_provider_class(canonical).API_KEY_ENV
            missing.append(
                f"Missing API key for {canonical} "
                f"(set {env_var} or providers.{canonical}.api_key)"
            )
    return missing


def validate_config(config: Config) -> list[str]:
    """Validate configuration and return list of errors.

    Args:
        config: Configuration to validate

    Returns:
        List of validation error messages (empty if valid)
    """
    errors = []

    if not config.models:
        errors.append("No models configured")

    for model in config.models:
        provider = model.partition("/")[0]
        if not is_valid_provider(provider):
            errors.append(
                f"Unknown provider '{provider}' in model '{model}' "
                f"(available: {', '.join(list_providers())})"
            )

    errors.extend(missing_api_keys(config))

    try:
        PassThreshold.parse(config.review.pass_threshold)
    except ValueError as e:
        errors.append(str(e))

    if config.retry.max_retries < 0:
        errors.append(f"retry.max_retries must not be negative ({config.retry.max_retries})")
    if config.retry.timeout_seconds <= 0:
        errors.append(
            f"retry.timeout_seconds must be positive ({config.retry.timeout_seconds})"
        )
    if config.retry.backoff_base_seconds < 0:
        errors.append(
            f"retry.backoff_base_seconds must not be negative "
            f"({config.retry.backoff_base_seconds})"
        )
    if config.review.token_limit < 0:
        errors.append(f"review.token_limit must not be negative ({config.review.token_limit})")

    return errors
