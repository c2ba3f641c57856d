# src/cache/redis_store.py - v1
"""Redis-based cache store (CACHE_BACKEND=redis).

Requires 'redis' package: pip install redis.
Suitable for distributed/multi-instance deployments. Concurrent writers for
the same key race; the last write wins.
"""

from __future__ import annotations

import logging
from typing import Any

from cepgateway.cache.base_cache_store import BaseCacheStore
from cepgateway.core.models import AddressRecord

logger = logging.getLogger(__name__)

_DEFAULT_PREFIX = "cepgateway:"


class RedisCacheStore(BaseCacheStore):
    """Redis-backed cache store. All backend errors are absorbed."""

    def __init__(
        self,
        redis_url: str,
        default_ttl: int = 300,
        key_prefix: str = _DEFAULT_PREFIX,
    ) -> None:
        try:
            import redis.asyncio as aioredis
        except ImportError as e:
            raise ImportError(
                "redis package required: pip install redis"
            ) from e

        self._client: Any = aioredis.Redis.from_url(redis_url, decode_responses=True)
        self._default_ttl = default_ttl
        self._prefix = key_prefix

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    async def get(self, key: str) -> AddressRecord | None:
        try:
            data = await self._client.get(self._key(key))
        except Exception as e:
            logger.error("Redis GET failed for %s, treating as miss: %s", key, e)
            return None

        if data is None:
            logger.debug("Redis cache MISS: %s", key)
            return None

        try:
            value = AddressRecord.model_validate_json(data)
        except ValueError as e:
            logger.warning("Failed to deserialize cache entry %s: %s", key, e)
            return None
        logger.debug("Redis cache HIT: %s", key)
        return value

    async def set(self, key: str, value: AddressRecord, ttl: int | None = None) -> None:
        ttl = self._default_ttl if ttl is None else ttl
        try:
            serialized = value.model_dump_json()
            if ttl > 0:
                await self._client.setex(self._key(key), ttl, serialized)
            else:
                await self._client.set(self._key(key), serialized)
        except Exception as e:
            logger.error("Redis SET failed for %s: %s", key, e)
            return
        logger.debug("Redis cache SET: %s (TTL: %ss)", key, ttl)

    async def delete(self, key: str) -> None:
        try:
            await self._client.delete(self._key(key))
        except Exception as e:
            logger.error("Redis DEL failed for %s: %s", key, e)
            return
        logger.debug("Redis cache DEL: %s", key)

    async def clear(self) -> None:
        """Delete keys under this store's prefix only."""
        try:
            keys = [k async for k in self._client.scan_iter(match=f"{self._prefix}*")]
            if keys:
                await self._client.delete(*keys)
        except Exception as e:
            logger.error("Redis clear failed: %s", e)
            return
        logger.info("Redis cache cleared (%d keys)", len(keys))

    async def close(self) -> None:
        """Close the Redis connection."""
        try:
            await self._client.aclose()
        except Exception as e:
            logger.warning("Error closing Redis connection: %s", e)
