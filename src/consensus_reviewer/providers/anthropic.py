"""Anthropic Messages API adapter."""

from typing import Any

from consensus_reviewer.providers.base import Completion, ProviderAdapter, ProviderRequest
from consensus_reviewer.providers.registry import register_provider

ANTHROPIC_VERSION = "2023-06-01"


@register_provider("anthropic", "claude")
class AnthropicAdapter(ProviderAdapter):
    """Adapter for the Anthropic Messages API."""

    PROVIDER_NAME = "anthropic"
    API_KEY_ENV = "ANTHROPIC_API_KEY"
    DEFAULT_BASE_URL = "https://api.anthropic.com/v1"
    DEFAULT_MODEL = "claude-sonnet-4-5"

    def build_request(self, prompt: str) -> ProviderRequest:
        return ProviderRequest(
            path="/messages",
            headers={
                "x-api-key": self.api_key,
                "anthropic-version": ANTHROPIC_VERSION,
            },
            body={
                "model": self.model,
                "max_tokens": self.settings.max_tokens,
                "messages": [{"role": "user", "content": prompt}],
            },
        )

    def parse_response(self, data: dict[str, Any]) -> Completion:
        content = data.get("content")
        if not isinstance(content, list) or not content:
            raise self.invalid_response("missing content blocks")

        text = "".join(
            block.get("text", "")
            for block in content
            if isinstance(block, dict) and block.get("type") == "text"
        )
        return Completion(text=text, usage=data.get("usage") or {})
