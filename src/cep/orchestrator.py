# src/cep/orchestrator.py - v1
"""CEP lookup service: cache-aside, weighted cascading fallback, failure aggregation.

Usage:
    service = build_service(load_settings())
    address = await service.find_address("01310100")

Flow for one lookup:
  1. Consult the cache; a hit returns immediately with no provider traffic
  2. Ask the selector for an attempt order over the static provider set
  3. Try providers one after another, stopping at the first success
  4. On success, stamp provenance and fetch time, write through, return
  5. On exhaustion, reduce the recorded failures to a single error
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Sequence

from cepgateway.cache.base_cache_store import BaseCacheStore
from cepgateway.config.settings import Settings
from cepgateway.core.errors import (
    ERROR_MESSAGES,
    CepLookupError,
    ConfigurationError,
    ErrorCode,
    LookupFailure,
)
from cepgateway.core.models import AddressRecord, AttemptResult, ProviderDescriptor
from cepgateway.logging.context import set_lookup_context, set_provider_context
from cepgateway.providers.base_provider import BaseCepProvider
from cepgateway.providers.selector import ProviderSelector

logger = logging.getLogger(__name__)

CACHE_KEY_PREFIX = "cep:"
SUCCESS_TTL_SECONDS = 60 * 60 * 24


def cache_key(cep: str) -> str:
    return f"{CACHE_KEY_PREFIX}{cep}"


def aggregate_failures(cep: str, attempts: Sequence[AttemptResult]) -> LookupFailure:
    """Reduce the failures of an exhausted cascade to one surfaced error.

    Priority:
      a. every attempt CEP_NOT_FOUND          -> CEP_NOT_FOUND
      b. every attempt GATEWAY_TIMEOUT        -> GATEWAY_TIMEOUT
      c. at least one GATEWAY_TIMEOUT (mixed) -> GATEWAY_TIMEOUT
      d. anything else                        -> UPSTREAM_UNAVAILABLE

    Args:
        cep: Canonical code that was looked up.
        attempts: Failed attempts in the order they were made.

    Returns:
        LookupFailure whose details list every attempt.
    """
    failures = [a.failure for a in attempts if a.failure is not None]
    codes = [f.code for f in failures]

    if codes and all(c == ErrorCode.CEP_NOT_FOUND for c in codes):
        code = ErrorCode.CEP_NOT_FOUND
    elif codes and all(c == ErrorCode.GATEWAY_TIMEOUT for c in codes):
        code = ErrorCode.GATEWAY_TIMEOUT
    elif ErrorCode.GATEWAY_TIMEOUT in codes:
        code = ErrorCode.GATEWAY_TIMEOUT
    else:
        code = ErrorCode.UPSTREAM_UNAVAILABLE

    details: dict[str, Any] = {
        "cep": cep,
        "attempts": len(attempts),
        "providers": [a.provider for a in attempts],
        "errors": [
            {
                "provider": a.provider,
                "code": a.failure.code.value,
                "message": a.failure.message,
            }
            for a in attempts
            if a.failure is not None
        ],
    }
    return LookupFailure(code=code, message=ERROR_MESSAGES[code], details=details)


class CepService:
    """Single entry point for address lookups.

    Args:
        descriptors: Weighted provider set, fixed for the service lifetime.
        cache_store: Cache-aside store. Consulted first, written on success only.
        selector: Attempt-order producer. A fresh one with real randomness if None.
        success_ttl: TTL in seconds for successful lookups.
    """

    def __init__(
        self,
        descriptors: Sequence[ProviderDescriptor],
        cache_store: BaseCacheStore,
        selector: ProviderSelector | None = None,
        success_ttl: int = SUCCESS_TTL_SECONDS,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        if not descriptors:
            raise ConfigurationError("At least one provider must be configured")
        names = [d.name for d in descriptors]
        if len(set(names)) != len(names):
            raise ConfigurationError(f"Duplicate providers configured: {', '.join(names)}")
        if sum(d.weight for d in descriptors) <= 0:
            raise ConfigurationError("The sum of provider weights must be greater than zero")

        self._descriptors = tuple(descriptors)
        self._cache = cache_store
        self._selector = selector or ProviderSelector()
        self._success_ttl = success_ttl
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @property
    def descriptors(self) -> tuple[ProviderDescriptor, ...]:
        return self._descriptors

    @property
    def selector(self) -> ProviderSelector:
        return self._selector

    async def find_address(self, cep: str) -> AddressRecord:
        """Resolve a canonical CEP to an address.

        Raises:
            CepLookupError: Aggregated failure once every provider failed.
        """
        set_lookup_context(cep)
        key = cache_key(cep)

        cached = await self._cache.get(key)
        if cached is not None:
            logger.info("Cache hit for CEP %s", cep)
            return cached

        selection = self._selector.select(self._descriptors)
        attempts: list[AttemptResult] = []

        for provider in selection.ordered:
            result = await self._attempt(provider, cep)
            attempts.append(result)
            if result.address is None:
                continue

            address = result.address.model_copy(
                update={"source": provider.name, "timestamp": self._clock()}
            )
            await self._cache.set(key, address, self._success_ttl)
            logger.info(
                "CEP %s resolved by %s after %d attempt(s)",
                cep, provider.name, len(attempts),
            )
            return address

        failure = aggregate_failures(cep, attempts)
        logger.error(
            "All providers failed for CEP %s: %s",
            cep, failure.code.value,
            extra={"data": failure.details},
        )
        raise CepLookupError(failure)

    async def _attempt(self, provider: BaseCepProvider, cep: str) -> AttemptResult:
        """Run one provider call and capture its outcome as a value."""
        set_provider_context(provider.name)
        try:
            address = await provider.find_by_cep(cep)
        except CepLookupError as e:
            logger.warning(
                "Provider %s failed for CEP %s (%s): %s",
                provider.name, cep, e.code.value, e.failure.message,
            )
            return AttemptResult(provider=provider.name, failure=e.failure)
        except Exception as e:
            # Unclassified adapter errors stay inside the taxonomy.
            logger.error(
                "Unexpected error from provider %s for CEP %s: %s",
                provider.name, cep, e, exc_info=True,
            )
            failure = LookupFailure(
                code=ErrorCode.UPSTREAM_UNAVAILABLE,
                message=f"Error querying provider {provider.name}",
                details={"cep": cep, "provider": provider.name, "error": str(e)},
            )
            return AttemptResult(provider=provider.name, failure=failure)
        finally:
            set_provider_context(None)
        return AttemptResult(provider=provider.name, address=address)

    async def provider_status(self) -> dict[str, bool]:
        """Probe every provider concurrently."""
        results = await asyncio.gather(
            *(d.provider.is_available() for d in self._descriptors)
        )
        return {d.name: ok for d, ok in zip(self._descriptors, results)}

    async def invalidate(self, cep: str) -> None:
        """Drop a cached address so the next lookup hits the providers."""
        await self._cache.delete(cache_key(cep))

    async def aclose(self) -> None:
        """Close provider clients and the cache backend."""
        for descriptor in self._descriptors:
            await descriptor.provider.aclose()
        await self._cache.close()


def build_service(
    settings: Settings,
    selector: ProviderSelector | None = None,
    **provider_kwargs: Any,
) -> CepService:
    """Wire providers, cache and selector from settings.

    Args:
        settings: Validated application settings.
        selector: Optional selector (tests inject a deterministic one).
        **provider_kwargs: Passed to every adapter, e.g. ``transport``.
    """
    from cepgateway.cache.cache_factory import create_cache_store
    from cepgateway.providers.provider_factory import build_descriptors

    return CepService(
        descriptors=build_descriptors(settings, **provider_kwargs),
        cache_store=create_cache_store(settings),
        selector=selector,
        success_ttl=settings.cache_ttl_seconds,
    )
