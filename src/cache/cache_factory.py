# src/cache/cache_factory.py — v3
"""Factory for cache store instantiation."""

from __future__ import annotations

from masterchef.cache.base_cache_store import BaseCacheStore
from masterchef.config.settings import Settings


class UnsupportedBackendError(ValueError):
    """Raised when CACHE_BACKEND names no known store."""


def create_cache_store(settings: Settings | None = None) -> BaseCacheStore:
    """Instantiate the configured cache backend.

    Args:
        settings: Application settings. Defaults to the in-memory backend.

    Returns:
        Configured BaseCacheStore implementation.
    """
    backend = "memory" if settings is None else settings.cache_backend

    if backend == "memory":
        from masterchef.cache.memory_store import MemoryCacheStore
        return MemoryCacheStore()

    if backend == "json":
        from masterchef.cache.json_store import JsonCacheStore
        return JsonCacheStore(cache_root=settings.cache_root)

    if backend == "sqlite":
        from masterchef.cache.sqlite_store import SqliteCacheStore
        db_path = settings.cache_root.expanduser() / "masterchef_cache.db"
        return SqliteCacheStore(db_path=db_path)

    if backend == "redis":
        from masterchef.cache.redis_store import RedisCacheStore
        if not settings.cache_redis_url:
            raise ValueError(
                "CACHE_REDIS_URL must be set when CACHE_BACKEND=redis"
            )
        return RedisCacheStore(redis_url=settings.cache_redis_url)

    raise UnsupportedBackendError(f"Unsupported cache backend: {backend!r}")
