"""Google Gemini generateContent adapter."""

from typing import Any

from consensus_reviewer.providers.base import Completion, ProviderAdapter, ProviderRequest
from consensus_reviewer.providers.registry import register_provider


@register_provider("gemini", "google")
class GeminiAdapter(ProviderAdapter):
    """Adapter for the Gemini ``generateContent`` REST endpoint."""

    PROVIDER_NAME = "gemini"
    API_KEY_ENV = "GOOGLE_API_KEY"
    DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
    DEFAULT_MODEL = "gemini-2.5-pro"

    def build_request(self, prompt: str) -> ProviderRequest:
        return ProviderRequest(
            path=f"/models/{self.model}:generateContent",
            params={"key": self.api_key},
            body={
                "contents": [{"role": "user", "parts": [{"text": prompt}]}],
                "generationConfig": {"maxOutputTokens": self.settings.max_tokens},
            },
        )

    def parse_response(self, data: dict[str, Any]) -> Completion:
        candidates = data.get("candidates")
        if not candidates or not isinstance(candidates, list):
            feedback = data.get("promptFeedback", {})
            raise self.invalid_response(f"no candidates returned {feedback}".strip())

        content = candidates[0].get("content") if isinstance(candidates[0], dict) else None
        parts = content.get("parts") if isinstance(content, dict) else None
        if not isinstance(parts, list):
            raise self.invalid_response("candidate has no content parts")

        text = "".join(part.get("text", "") for part in parts if isinstance(part, dict))
        return Completion(text=text, usage=data.get("usageMetadata") or {})
