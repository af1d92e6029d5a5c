"""Provider registry.

Adapters register themselves under a canonical name plus optional aliases.
``ModelSpec.provider`` is resolved against this registry instead of being
branched on by string comparisons.
"""

from collections.abc import Callable
from typing import TYPE_CHECKING

import httpx

from consensus_reviewer.providers.base import ProviderAdapter, ProviderSettings

if TYPE_CHECKING:
    from consensus_reviewer.models.job import ModelSpec

_PROVIDERS: dict[str, type[ProviderAdapter]] = {}
_ALIASES: dict[str, str] = {}

AdapterClass = type[ProviderAdapter]


def register_provider(name: str, *aliases: str) -> Callable[[AdapterClass], AdapterClass]:
    """Class decorator registering an adapter under ``name`` and ``aliases``."""

    def decorator(cls: AdapterClass) -> AdapterClass:
        canonical = name.lower()
        _PROVIDERS[canonical] = cls
        for alias in aliases:
            _ALIASES[alias.lower()] = canonical
        return cls

    return decorator


def resolve_provider_name(name: str) -> str:
    """Map an alias to its canonical provider name; unknown names pass through."""
    lowered = name.strip().lower()
    return _ALIASES.get(lowered, lowered)


def is_valid_provider(name: str) -> bool:
    return resolve_provider_name(name) in _PROVIDERS


def list_providers() -> list[str]:
    return sorted(_PROVIDERS)


def get_provider_class(name: str) -> AdapterClass:
    """Look up the adapter class for a provider name.

    Raises:
        ValueError: If no adapter is registered under that name
    """
    canonical = resolve_provider_name(name)
    try:
        return _PROVIDERS[canonical]
    except KeyError:
        raise ValueError(
            f"Unknown provider '{name}'. Available: {', '.join(list_providers())}"
        ) from None


def default_model_for(provider: str) -> str:
    return get_provider_class(provider).DEFAULT_MODEL


def create_adapter(
    spec: "ModelSpec",
    settings: ProviderSettings | None = None,
    client: httpx.AsyncClient | None = None,
) -> ProviderAdapter:
    """Instantiate the adapter for a ModelSpec."""
    adapter_cls = get_provider_class(spec.provider)
    return adapter_cls(model=spec.model, settings=settings, client=client)
