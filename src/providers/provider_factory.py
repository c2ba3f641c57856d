# src/providers/provider_factory.py - v1
"""Factory: instantiate CEP provider adapters and their weighted descriptor set.

The registry is closed. Adding a provider means adding an adapter module, a
row here and its settings fields.
"""

from __future__ import annotations

import importlib
import logging
from typing import Any

from cepgateway.config.settings import Settings
from cepgateway.core.errors import ConfigurationError
from cepgateway.core.models import ProviderDescriptor
from cepgateway.providers.base_provider import BaseCepProvider

logger = logging.getLogger(__name__)

# Registry of provider id → adapter class path (lazy import).
_PROVIDER_REGISTRY: dict[str, str] = {
    "viacep": "cepgateway.providers.viacep_provider.ViaCepProvider",
    "brasilapi": "cepgateway.providers.brasilapi_provider.BrasilApiProvider",
}


class UnsupportedProviderError(ConfigurationError):
    """Raised when a provider id is not registered."""


def available_providers() -> list[str]:
    return sorted(_PROVIDER_REGISTRY)


def create_provider(
    provider: str,
    settings: Settings | None = None,
    **kwargs: Any,
) -> BaseCepProvider:
    """Instantiate the adapter registered under *provider*.

    Args:
        provider: Provider id (viacep, brasilapi).
        settings: Application settings (base URL and timeouts).
        **kwargs: Overrides passed to the adapter, e.g. ``transport``.

    Returns:
        Configured BaseCepProvider instance.

    Raises:
        UnsupportedProviderError: If provider is not registered.
    """
    if provider not in _PROVIDER_REGISTRY:
        raise UnsupportedProviderError(
            f"Unsupported CEP provider: {provider!r}. "
            f"Available: {', '.join(available_providers())}"
        )

    adapter_cls = _import_class(_PROVIDER_REGISTRY[provider])

    init_kwargs: dict[str, Any] = {}
    if settings is not None:
        init_kwargs.update(settings.provider_options(provider))
    init_kwargs.update(kwargs)

    logger.debug("Creating CEP provider: %s (%s)", provider, init_kwargs.get("base_url"))
    return adapter_cls(**init_kwargs)


def build_descriptors(
    settings: Settings, **kwargs: Any
) -> tuple[ProviderDescriptor, ...]:
    """Build the weighted provider set once at startup.

    Order follows ENABLED_PROVIDERS; weights come from ``<id>_weight``.
    """
    descriptors = tuple(
        ProviderDescriptor(
            provider=create_provider(name, settings, **kwargs),
            weight=settings.provider_weight(name),
        )
        for name in settings.enabled_providers_list
    )
    logger.info(
        "Configured CEP providers: %s",
        ", ".join(f"{d.name}={d.weight:g}" for d in descriptors),
    )
    return descriptors


def _import_class(class_path: str) -> type:
    """Dynamically import a class from its fully qualified path."""
    module_path, class_name = class_path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    return getattr(module, class_name)
