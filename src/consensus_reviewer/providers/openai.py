"""OpenAI Chat Completions adapter."""

from typing import Any

from consensus_reviewer.providers.base import Completion, ProviderAdapter, ProviderRequest
from consensus_reviewer.providers.registry import register_provider


@register_provider("openai", "gpt")
class OpenAIAdapter(ProviderAdapter):
    """Adapter for the OpenAI Chat Completions API."""

    PROVIDER_NAME = "openai"
    API_KEY_ENV = "OPENAI_API_KEY"
    DEFAULT_BASE_URL = "https://api.openai.com/v1"
    DEFAULT_MODEL = "gpt-4.1"

    def build_request(self, prompt: str) -> ProviderRequest:
        return ProviderRequest(
            path="/chat/completions",
            headers={"Authorization": f"Bearer {self.api_key}"},
            body={
                "model": self.model,
                "messages": [{"role": "user", "content": prompt}],
                "temperature": 0.2,
            },
        )

    def parse_response(self, data: dict[str, Any]) -> Completion:
        choices = data.get("choices")
        if not choices or not isinstance(choices, list):
            raise self.invalid_response("missing choices")

        message = choices[0].get("message") if isinstance(choices[0], dict) else None
        if not isinstance(message, dict):
            raise self.invalid_response("missing message in first choice")

        return Completion(
            text=message.get("content") or "",
            usage=data.get("usage") or {},
        )
