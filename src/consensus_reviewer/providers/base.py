"""Base class for model provider adapters.

An adapter only knows how to build a request for its backend and parse the
raw response into text plus the backend's own usage object. Retries,
deadlines and error categorization of transport failures live in
``consensus_reviewer.retry``.
"""

import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

import httpx

from consensus_reviewer.errors import ErrorCategory, ProviderError

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOKENS = 4096
DEFAULT_REQUEST_TIMEOUT_SECONDS = 120.0


@dataclass
class ProviderSettings:
    """Connection settings for one provider family."""

    api_key: str | None = None
    base_url: str | None = None
    max_tokens: int = DEFAULT_MAX_TOKENS
    request_timeout_seconds: float = DEFAULT_REQUEST_TIMEOUT_SECONDS


@dataclass
class ProviderRequest:
    """HTTP request description produced by an adapter."""

    path: str
    body: dict[str, Any]
    headers: dict[str, str] = field(default_factory=dict)
    params: dict[str, str] = field(default_factory=dict)


@dataclass
class Completion:
    """Raw completion: review text plus the provider's own usage object."""

    text: str
    usage: dict[str, Any] = field(default_factory=dict)


class ProviderAdapter(ABC):
    """Uniform ``run_completion`` contract over one backend family."""

    # Subclasses should override these
    PROVIDER_NAME: str = "base"
    API_KEY_ENV: str = ""
    DEFAULT_BASE_URL: str = ""
    DEFAULT_MODEL: str = ""

    def __init__(
        self,
        model: str | None = None,
        settings: ProviderSettings | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the adapter.

        Args:
            model: Model name (defaults to the provider's default model)
            settings: Optional connection settings; the API key falls back to
                the provider's environment variable
            client: Optional preconfigured HTTP client (mainly for tests)
        """
        self.settings = settings or ProviderSettings()
        self.model = model or self.DEFAULT_MODEL
        self.api_key = self.settings.api_key or os.environ.get(self.API_KEY_ENV, "")
        self.base_url = self.settings.base_url or self.DEFAULT_BASE_URL
        self._client = client
        self._owns_client = client is None

    @property
    def name(self) -> str:
        """Identifier used in logs and results, ``provider/model``."""
        return f"{self.PROVIDER_NAME}/{self.model}"

    def is_available(self) -> bool:
        """Whether credentials are configured for this backend."""
        return bool(self.api_key)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.settings.request_timeout_seconds,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if this adapter created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "ProviderAdapter":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def run_completion(self, prompt: str) -> Completion:
        """Send one prompt and return the completion text and raw usage.

        Raises:
            ProviderError: For missing credentials, an empty prompt or a
                malformed response body
            httpx.HTTPError: For transport and HTTP status failures, which
                the caller categorizes
        """
        if not self.is_available():
            raise ProviderError(
                f"{self.API_KEY_ENV} is not set",
                ErrorCategory.AUTHENTICATION,
                self.name,
            )
        if not prompt or not prompt.strip():
            raise ProviderError(
                "Invalid prompt: must be a non-empty string",
                ErrorCategory.INVALID_RESPONSE,
                self.name,
                retryable=False,
            )

        request = self.build_request(prompt)
        logger.debug(f"POST {request.path} for {self.name} ({len(prompt)} chars)")

        response = await self._get_client().post(
            request.path,
            json=request.body,
            headers=request.headers,
            params=request.params or None,
        )
        response.raise_for_status()

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderError(
                f"{self.name} returned a body that is not JSON",
                ErrorCategory.INVALID_RESPONSE,
                self.name,
            ) from e

        if not isinstance(data, dict):
            raise self.invalid_response("response body is not an object")
        return self.parse_response(data)

    def invalid_response(self, detail: str) -> ProviderError:
        """Build the error raised for an unexpected response shape."""
        return ProviderError(
            f"{self.name} returned an unexpected response format: {detail}",
            ErrorCategory.INVALID_RESPONSE,
            self.name,
        )

    @abstractmethod
    def build_request(self, prompt: str) -> ProviderRequest:
        """Build the backend-specific request for a prompt."""

    @abstractmethod
    def parse_response(self, data: dict[str, Any]) -> Completion:
        """Parse the backend's JSON response."""
