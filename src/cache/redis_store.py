# src/cache/redis_store.py — v3
"""Redis-based cache store (CACHE_BACKEND=redis).

Requires 'redis' package: pip install redis.
Suitable for distributed/multi-instance deployments.

Each entry is a plain string key written with SET NX. A sorted set scored
by expiry epoch indexes all fingerprints so counts and the expiry sweep
never need a keyspace scan. Redis-native TTLs are not used: expired
entries must remain readable through get() until swept.
"""

from __future__ import annotations

import logging
from datetime import datetime

from pydantic import ValidationError

from masterchef.cache.base_cache_store import BaseCacheStore
from masterchef.cache.models import CacheEntry
from masterchef.core.errors import CacheStoreError

logger = logging.getLogger(__name__)

_KEY_PREFIX = "masterchef:cache:"
_INDEX_KEY = "masterchef:cache:__expiry__"

# KEYS: entry key, index key. ARGV: fingerprint, now (epoch seconds).
_DELETE_IF_EXPIRED = """
local score = redis.call('ZSCORE', KEYS[2], ARGV[1])
if score and tonumber(score) <= tonumber(ARGV[2]) then
    redis.call('DEL', KEYS[1])
    redis.call('ZREM', KEYS[2], ARGV[1])
    return 1
end
return 0
"""

# KEYS: entry key, index key. ARGV: fingerprint, payload seen by the caller.
_DELETE_IF_UNCHANGED = """
if redis.call('GET', KEYS[1]) == ARGV[2] then
    redis.call('DEL', KEYS[1])
    redis.call('ZREM', KEYS[2], ARGV[1])
    return 1
end
return 0
"""


class RedisCacheStore(BaseCacheStore):
    """Redis-backed cache store for distributed deployments."""

    def __init__(self, redis_url: str) -> None:
        try:
            import redis
        except ImportError as e:
            raise ImportError(
                "redis package required: pip install redis"
            ) from e

        self._client = redis.Redis.from_url(redis_url, decode_responses=True)
        self._redis_error: type[Exception] = redis.RedisError

    async def exists(self, fingerprint: str, now: datetime) -> bool:
        score = self._call(self._client.zscore, _INDEX_KEY, fingerprint)
        return score is not None and float(score) > now.timestamp()

    async def get(self, fingerprint: str) -> CacheEntry | None:
        """Retrieve cache entry by fingerprint, expired or not."""
        data = self._call(self._client.get, f"{_KEY_PREFIX}{fingerprint}")
        if data is None:
            return None
        try:
            return CacheEntry.model_validate_json(data)
        except ValidationError as e:
            logger.warning("Dropping unreadable cache entry %s: %s", fingerprint, e)
            self._call(
                self._client.eval, _DELETE_IF_UNCHANGED, 2,
                f"{_KEY_PREFIX}{fingerprint}", _INDEX_KEY, fingerprint, data,
            )
            return None

    async def put(self, entry: CacheEntry) -> bool:
        """SET NX the entry and index it in one MULTI block."""
        pipe = self._client.pipeline(transaction=True)
        pipe.set(f"{_KEY_PREFIX}{entry.fingerprint}", entry.model_dump_json(), nx=True)
        pipe.zadd(_INDEX_KEY, {entry.fingerprint: entry.expires_at.timestamp()}, nx=True)
        created, _ = self._call(pipe.execute)
        return bool(created)

    async def delete(self, fingerprint: str) -> bool:
        """Remove a cache entry and its index slot."""
        pipe = self._client.pipeline(transaction=True)
        pipe.delete(f"{_KEY_PREFIX}{fingerprint}")
        pipe.zrem(_INDEX_KEY, fingerprint)
        removed, _ = self._call(pipe.execute)
        return bool(removed)

    async def delete_if_expired(self, fingerprint: str, now: datetime) -> bool:
        """Check the expiry score and delete in one server-side script."""
        removed = self._call(
            self._client.eval, _DELETE_IF_EXPIRED, 2,
            f"{_KEY_PREFIX}{fingerprint}", _INDEX_KEY, fingerprint, now.timestamp(),
        )
        return bool(removed)

    async def delete_expired(self, now: datetime) -> int:
        # Candidates are re-checked one by one: an entry replaced since the
        # range query is live again and must survive.
        expired = self._call(
            self._client.zrangebyscore, _INDEX_KEY, "-inf", now.timestamp()
        )
        removed = 0
        for fingerprint in expired or []:
            if await self.delete_if_expired(fingerprint, now):
                removed += 1
        return removed

    async def count_valid(self, now: datetime) -> int:
        return int(self._call(self._client.zcount, _INDEX_KEY, f"({now.timestamp()}", "+inf"))

    async def count_total(self) -> int:
        return int(self._call(self._client.zcard, _INDEX_KEY))

    def close(self) -> None:
        """Close the Redis connection."""
        self._client.close()

    def _call(self, fn, *args):
        try:
            return fn(*args)
        except self._redis_error as e:
            raise CacheStoreError(f"Redis cache operation failed: {e}") from e
