# src/cache/sqlite_store.py — v3
"""SQLite-based cache store (CACHE_BACKEND=sqlite).

Uses stdlib sqlite3, no external dependency.
The fingerprint is the primary key, so INSERT OR IGNORE gives atomic
insert-if-absent; expires_at is stored as epoch seconds and indexed for
the expiry sweep.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from datetime import datetime
from pathlib import Path

from pydantic import ValidationError

from masterchef.cache.base_cache_store import BaseCacheStore
from masterchef.cache.models import CacheEntry
from masterchef.core.errors import CacheStoreError

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS llm_cache (
    fingerprint TEXT PRIMARY KEY,
    data TEXT NOT NULL,
    model TEXT,
    created_at REAL NOT NULL,
    expires_at REAL NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_llm_cache_expires_at ON llm_cache(expires_at);
"""


class SqliteCacheStore(BaseCacheStore):
    """SQLite-backed cache store shared safely across threads."""

    def __init__(self, db_path: Path | str) -> None:
        self._db_path = Path(db_path).expanduser()
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA)

    async def exists(self, fingerprint: str, now: datetime) -> bool:
        row = self._fetchone(
            "SELECT 1 FROM llm_cache WHERE fingerprint = ? AND expires_at > ?",
            (fingerprint, now.timestamp()),
        )
        return row is not None

    async def get(self, fingerprint: str) -> CacheEntry | None:
        """Retrieve cache entry by fingerprint, expired or not."""
        row = self._fetchone(
            "SELECT data FROM llm_cache WHERE fingerprint = ?", (fingerprint,)
        )
        if row is None:
            return None
        try:
            return CacheEntry.model_validate_json(row[0])
        except ValidationError as e:
            # Unreadable rows would block put() forever; drop them.
            logger.warning("Dropping unreadable cache entry %s: %s", fingerprint, e)
            self._execute(
                "DELETE FROM llm_cache WHERE fingerprint = ? AND data = ?",
                (fingerprint, row[0]),
            )
            return None

    async def put(self, entry: CacheEntry) -> bool:
        """Insert unless the fingerprint is already present."""
        cursor = self._execute(
            """INSERT OR IGNORE INTO llm_cache
               (fingerprint, data, model, created_at, expires_at)
               VALUES (?, ?, ?, ?, ?)""",
            (
                entry.fingerprint,
                entry.model_dump_json(),
                entry.model,
                entry.created_at.timestamp(),
                entry.expires_at.timestamp(),
            ),
        )
        return cursor.rowcount == 1

    async def delete(self, fingerprint: str) -> bool:
        """Remove a cache entry."""
        cursor = self._execute(
            "DELETE FROM llm_cache WHERE fingerprint = ?", (fingerprint,)
        )
        return cursor.rowcount > 0

    async def delete_if_expired(self, fingerprint: str, now: datetime) -> bool:
        cursor = self._execute(
            "DELETE FROM llm_cache WHERE fingerprint = ? AND expires_at <= ?",
            (fingerprint, now.timestamp()),
        )
        return cursor.rowcount > 0

    async def delete_expired(self, now: datetime) -> int:
        cursor = self._execute(
            "DELETE FROM llm_cache WHERE expires_at <= ?", (now.timestamp(),)
        )
        return cursor.rowcount

    async def count_valid(self, now: datetime) -> int:
        row = self._fetchone(
            "SELECT COUNT(*) FROM llm_cache WHERE expires_at > ?", (now.timestamp(),)
        )
        return int(row[0]) if row else 0

    async def count_total(self) -> int:
        row = self._fetchone("SELECT COUNT(*) FROM llm_cache", ())
        return int(row[0]) if row else 0

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            self._conn.close()

    def _execute(self, sql: str, params: tuple) -> sqlite3.Cursor:
        with self._lock:
            try:
                cursor = self._conn.execute(sql, params)
                self._conn.commit()
            except sqlite3.Error as e:
                raise CacheStoreError(f"SQLite cache write failed: {e}") from e
        return cursor

    def _fetchone(self, sql: str, params: tuple) -> tuple | None:
        with self._lock:
            try:
                return self._conn.execute(sql, params).fetchone()
            except sqlite3.Error as e:
                raise CacheStoreError(f"SQLite cache read failed: {e}") from e
