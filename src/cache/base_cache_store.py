# src/cache/base_cache_store.py - v1
"""Abstract cache store interface (cache-aside).

The cache is never authoritative. Implementations must absorb their own I/O
errors: ``get`` failures read as a miss, ``set``/``delete``/``clear`` failures
are logged and swallowed so a successful lookup is never turned into an error.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from cepgateway.core.models import AddressRecord


class BaseCacheStore(ABC):
    """Unified interface for cache storage backends."""

    @abstractmethod
    async def get(self, key: str) -> AddressRecord | None:
        """Retrieve a cached address, or None on miss or backend failure."""

    @abstractmethod
    async def set(self, key: str, value: AddressRecord, ttl: int | None = None) -> None:
        """Store an address, replacing any previous value.

        Args:
            key: Cache key.
            value: Address to store.
            ttl: Seconds to live. None uses the store default; 0 never expires.
        """

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove a cache entry."""

    @abstractmethod
    async def clear(self) -> None:
        """Remove every entry owned by this store."""

    async def close(self) -> None:
        """Release backend connections."""


class NullCacheStore(BaseCacheStore):
    """Always-miss store used when CACHE_ENABLED=false."""

    async def get(self, key: str) -> AddressRecord | None:
        return None

    async def set(self, key: str, value: AddressRecord, ttl: int | None = None) -> None:
        return None

    async def delete(self, key: str) -> None:
        return None

    async def clear(self) -> None:
        return None
