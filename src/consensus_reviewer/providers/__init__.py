"""Model provider adapters for Consensus Reviewer."""

from consensus_reviewer.providers.base import (
    Completion,
    ProviderAdapter,
    ProviderRequest,
    ProviderSettings,
)
from consensus_reviewer.providers.registry import (
    create_adapter,
    default_model_for,
    get_provider_class,
    is_valid_provider,
    list_providers,
    register_provider,
    resolve_provider_name,
)

# Built-in adapters register themselves on import
from consensus_reviewer.providers.anthropic import AnthropicAdapter  # noqa: E402
from consensus_reviewer.providers.gemini import GeminiAdapter  # noqa: E402
from consensus_reviewer.providers.openai import OpenAIAdapter  # noqa: E402

__all__ = [
    "AnthropicAdapter",
    "Completion",
    "GeminiAdapter",
    "OpenAIAdapter",
    "ProviderAdapter",
    "ProviderRequest",
    "ProviderSettings",
    "create_adapter",
    "default_model_for",
    "get_provider_class",
    "is_valid_provider",
    "list_providers",
    "register_provider",
    "resolve_provider_name",
]
