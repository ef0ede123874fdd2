# src/cache/memory_store.py — v2
"""In-process cache store (CACHE_BACKEND=memory).

Entries live in a dict guarded by a lock, so the store can be shared by
tasks on one loop and by worker threads alike. Nothing survives a restart.
"""

from __future__ import annotations

import threading
from datetime import datetime

from masterchef.cache.base_cache_store import BaseCacheStore
from masterchef.cache.models import CacheEntry


class MemoryCacheStore(BaseCacheStore):
    """Dict-backed cache store for tests and single-process deployments."""

    def __init__(self) -> None:
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    async def exists(self, fingerprint: str, now: datetime) -> bool:
        with self._lock:
            entry = self._entries.get(fingerprint)
        return entry is not None and not entry.is_expired(now)

    async def get(self, fingerprint: str) -> CacheEntry | None:
        with self._lock:
            return self._entries.get(fingerprint)

    async def put(self, entry: CacheEntry) -> bool:
        with self._lock:
            if entry.fingerprint in self._entries:
                return False
            self._entries[entry.fingerprint] = entry
            return True

    async def delete(self, fingerprint: str) -> bool:
        with self._lock:
            return self._entries.pop(fingerprint, None) is not None

    async def delete_if_expired(self, fingerprint: str, now: datetime) -> bool:
        with self._lock:
            entry = self._entries.get(fingerprint)
            if entry is None or not entry.is_expired(now):
                return False
            del self._entries[fingerprint]
            return True

    async def delete_expired(self, now: datetime) -> int:
        with self._lock:
            expired = [k for k, e in self._entries.items() if e.is_expired(now)]
            for key in expired:
                del self._entries[key]
        return len(expired)

    async def count_valid(self, now: datetime) -> int:
        with self._lock:
            return sum(1 for e in self._entries.values() if not e.is_expired(now))

    async def count_total(self) -> int:
        with self._lock:
            return len(self._entries)
