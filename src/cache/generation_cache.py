# src/cache/generation_cache.py — v2
"""Generation cache service: TTL, validity-aware reads, guarded inserts.

Sits between the orchestrator and a BaseCacheStore. The store only knows
raw entries; this layer decides what counts as a hit and when an entry
may be written.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable

from masterchef.cache.base_cache_store import BaseCacheStore
from masterchef.cache.fingerprint import fingerprint_request
from masterchef.cache.models import CacheConfig, CacheEntry, CacheStats
from masterchef.core.models import (
    STATUS_CACHE_HIT,
    STATUS_SUCCESS,
    GenerationRequest,
    GenerationResult,
)

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class GenerationCache:
    """Fingerprint-keyed cache of successful backend responses.

    Args:
        store: Persistent key-value backend.
        config: Cache options (TTL).
        clock: Returns the current time; injectable for tests.
    """

    def __init__(
        self,
        store: BaseCacheStore,
        config: CacheConfig | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._config = config or CacheConfig()
        self._clock = clock

    @property
    def store(self) -> BaseCacheStore:
        return self._store

    @property
    def ttl(self):
        return self._config.ttl

    async def is_cached(self, request: GenerationRequest) -> bool:
        """True iff a non-expired entry exists for the request."""
        return await self._store.exists(fingerprint_request(request), self._clock())

    async def get_cached_result(
        self, request: GenerationRequest, fingerprint: str | None = None
    ) -> GenerationResult | None:
        """Return a CACHE_HIT result for a valid entry, else None.

        Uses the raw store lookup and filters expiry here.
        """
        fingerprint = fingerprint or fingerprint_request(request)
        entry = await self._store.get(fingerprint)
        if entry is None:
            return None

        now = self._clock()
        if entry.is_expired(now):
            logger.debug("Cache entry %s expired at %s", fingerprint[:12], entry.expires_at)
            return None

        logger.debug(
            "Cache hit %s (age %.0fs)",
            fingerprint[:12], (now - entry.created_at).total_seconds(),
        )
        return GenerationResult(
            content=entry.response,
            model=entry.model,
            tokens_used=entry.tokens_used,
            cached=True,
            status=STATUS_CACHE_HIT,
            latency_ms=0,
            fingerprint=fingerprint,
        )

    async def cache_result(
        self,
        request: GenerationRequest,
        result: GenerationResult,
        fingerprint: str | None = None,
    ) -> bool:
        """Guarded insert of a successful backend result.

        First writer wins: a live entry for the fingerprint is left alone.
        An expired one is evicted through the store's conditional delete,
        so a concurrent writer's fresh entry is never removed, and then
        recreated.

        Returns:
            True if this call created the entry.
        """
        if result.status != STATUS_SUCCESS or result.content is None:
            logger.warning("Refusing to cache a %s result", result.status)
            return False

        fingerprint = fingerprint or fingerprint_request(request)
        now = self._clock()

        existing = await self._store.get(fingerprint)
        if existing is not None:
            if not existing.is_expired(now):
                logger.debug("Cache entry %s already present, skipping", fingerprint[:12])
                return False
            await self._store.delete_if_expired(fingerprint, now)

        entry = CacheEntry(
            fingerprint=fingerprint,
            response=result.content,
            model=result.model,
            tokens_used=result.tokens_used,
            created_at=now,
            expires_at=now + self._config.ttl,
        )
        created = await self._store.put(entry)
        if created:
            logger.info("Cached response %s (expires %s)", fingerprint[:12], entry.expires_at)
        else:
            logger.debug("Lost insert race for %s", fingerprint[:12])
        return created

    async def cleanup_expired(self) -> int:
        """Sweep expired entries; returns how many were removed."""
        deleted = await self._store.delete_expired(self._clock())
        if deleted:
            logger.info("Removed %d expired cache entries", deleted)
        return deleted

    async def get_stats(self) -> CacheStats:
        valid = await self._store.count_valid(self._clock())
        total = await self._store.count_total()
        return CacheStats(valid_entries=valid, total_entries=total)
