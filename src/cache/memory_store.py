# src/cache/memory_store.py - v1
"""In-process TTL cache store (CACHE_BACKEND=memory).

Bounded by entry count; the oldest write is evicted first. Suitable for a
single-instance deployment.
"""

from __future__ import annotations

import logging
import time
from collections import OrderedDict
from typing import Callable

from cepgateway.cache.base_cache_store import BaseCacheStore
from cepgateway.core.models import AddressRecord

logger = logging.getLogger(__name__)


class MemoryCacheStore(BaseCacheStore):
    """Dict-backed cache with per-entry expiry."""

    def __init__(
        self,
        default_ttl: int = 300,
        max_entries: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._default_ttl = default_ttl
        self._max_entries = max_entries
        self._clock = clock
        # key -> (value, expires_at or None)
        self._entries: OrderedDict[str, tuple[AddressRecord, float | None]] = OrderedDict()

    async def get(self, key: str) -> AddressRecord | None:
        item = self._entries.get(key)
        if item is None:
            logger.debug("Cache MISS: %s", key)
            return None
        value, expires_at = item
        if expires_at is not None and self._clock() >= expires_at:
            del self._entries[key]
            logger.debug("Cache EXPIRED: %s", key)
            return None
        logger.debug("Cache HIT: %s", key)
        return value

    async def set(self, key: str, value: AddressRecord, ttl: int | None = None) -> None:
        ttl = self._default_ttl if ttl is None else ttl
        expires_at = self._clock() + ttl if ttl > 0 else None

        self._entries.pop(key, None)
        self._entries[key] = (value, expires_at)
        while len(self._entries) > self._max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("Cache EVICT: %s", evicted)
        logger.debug("Cache SET: %s (TTL: %ss)", key, ttl)

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)
        logger.debug("Cache DEL: %s", key)

    async def clear(self) -> None:
        self._entries.clear()
        logger.info("Cache cleared")

    def __len__(self) -> int:
        return len(self._entries)
