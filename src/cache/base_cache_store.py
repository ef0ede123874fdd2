# src/cache/base_cache_store.py — v3
"""Abstract cache store interface.

Implementations must make put() an atomic insert-if-absent so that two
concurrent writers for one fingerprint leave exactly one entry behind,
and must evict only by an atomic expiry check (delete_if_expired,
delete_expired) so a sweep never removes a live entry.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from masterchef.cache.models import CacheEntry


class BaseCacheStore(ABC):
    """Unified interface for cache storage backends."""

    @abstractmethod
    async def exists(self, fingerprint: str, now: datetime) -> bool:
        """True iff a non-expired entry exists. Does not evict."""

    @abstractmethod
    async def get(self, fingerprint: str) -> CacheEntry | None:
        """Raw lookup; returns the entry even when it has expired."""

    @abstractmethod
    async def put(self, entry: CacheEntry) -> bool:
        """Insert if absent. Returns False when the fingerprint is taken."""

    @abstractmethod
    async def delete(self, fingerprint: str) -> bool:
        """Remove one entry. Returns True if something was deleted."""

    @abstractmethod
    async def delete_if_expired(self, fingerprint: str, now: datetime) -> bool:
        """Atomically remove the entry only if expires_at <= now.

        A live entry, including one that replaced the expired entry since
        the caller looked, is left alone.
        """

    @abstractmethod
    async def delete_expired(self, now: datetime) -> int:
        """Remove every entry with expires_at <= now and return the count."""

    @abstractmethod
    async def count_valid(self, now: datetime) -> int:
        """Number of entries with expires_at > now."""

    @abstractmethod
    async def count_total(self) -> int:
        """Number of entries, expired or not."""

    def close(self) -> None:
        """Release backend resources."""
