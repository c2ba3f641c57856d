# src/cache/cache_factory.py - v1
"""Factory for cache store instantiation."""

from __future__ import annotations

from cepgateway.cache.base_cache_store import BaseCacheStore, NullCacheStore
from cepgateway.config.settings import Settings


def create_cache_store(settings: Settings | None = None) -> BaseCacheStore:
    """Instantiate the configured cache backend.

    Args:
        settings: Application settings. Defaults to the in-memory backend.

    Returns:
        Configured BaseCacheStore implementation.
    """
    if settings is not None and not settings.cache_enabled:
        return NullCacheStore()

    backend = "memory" if settings is None else settings.cache_backend
    default_ttl = 300 if settings is None else settings.cache_default_ttl_seconds

    if backend == "memory":
        from cepgateway.cache.memory_store import MemoryCacheStore
        max_entries = 1000 if settings is None else settings.cache_max_entries
        return MemoryCacheStore(default_ttl=default_ttl, max_entries=max_entries)

    if backend == "redis":
        from cepgateway.cache.redis_store import RedisCacheStore
        if settings is None or not settings.cache_redis_url:
            raise ValueError(
                "CACHE_REDIS_URL must be set when CACHE_BACKEND=redis"
            )
        return RedisCacheStore(
            redis_url=settings.cache_redis_url,
            default_ttl=default_ttl,
            key_prefix=settings.cache_key_prefix,
        )

    raise ValueError(f"Unsupported cache backend: {backend!r}")
