# src/cache/json_store.py — v3
"""JSON file-based cache store (CACHE_BACKEND=json).

Stores one JSON file per fingerprint under CACHE_ROOT. An entry is
written to a private temp file and then hard-linked into place, so the
entry file appears complete or not at all and an existing one is never
overwritten. Conditional removals rename the file aside before re-checking
it, and put it back if it turns out to be live.
"""

from __future__ import annotations

import logging
import os
import threading
import uuid
from datetime import datetime
from pathlib import Path
from typing import Callable

from pydantic import ValidationError

from masterchef.cache.base_cache_store import BaseCacheStore
from masterchef.cache.models import CacheEntry
from masterchef.core.errors import CacheStoreError

logger = logging.getLogger(__name__)


class JsonCacheStore(BaseCacheStore):
    """File-based cache store using JSON files."""

    def __init__(self, cache_root: Path | str) -> None:
        self._root = Path(cache_root).expanduser()
        self._root.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    async def exists(self, fingerprint: str, now: datetime) -> bool:
        entry = await self.get(fingerprint)
        return entry is not None and not entry.is_expired(now)

    async def get(self, fingerprint: str) -> CacheEntry | None:
        """Retrieve cache entry by fingerprint.

        An unreadable entry file is removed and reported as a miss.
        """
        path = self._entry_path(fingerprint)
        entry, readable = self._read(path)
        if not readable:
            logger.warning("Dropping unreadable cache entry %s", path.stem)
            self._remove_if(path, lambda e: e is None)
        return entry

    async def put(self, entry: CacheEntry) -> bool:
        """Link a fully written temp file into place; False if already taken."""
        path = self._entry_path(entry.fingerprint)
        tmp = self._scratch_path(path, "tmp")
        try:
            tmp.write_text(entry.model_dump_json(indent=2), encoding="utf-8")
            # Serialized with _remove_if so a put cannot slip into the
            # window where a live entry is renamed aside.
            with self._lock:
                os.link(tmp, path)
        except FileExistsError:
            return False
        except OSError as e:
            raise CacheStoreError(f"Failed to write cache entry {entry.fingerprint}: {e}") from e
        finally:
            self._unlink(tmp)
        return True

    async def delete(self, fingerprint: str) -> bool:
        """Remove a cache entry."""
        return self._unlink(self._entry_path(fingerprint))

    async def delete_if_expired(self, fingerprint: str, now: datetime) -> bool:
        return self._remove_if(
            self._entry_path(fingerprint),
            lambda e: e is not None and e.is_expired(now),
        )

    async def delete_expired(self, now: datetime) -> int:
        """Remove expired entries, and unreadable ones along the way."""
        deleted = 0
        for path in self._root.glob("*.json"):
            if self._remove_if(path, lambda e: e is None or e.is_expired(now)):
                deleted += 1
        return deleted

    async def count_valid(self, now: datetime) -> int:
        return sum(1 for e in self._list_entries() if not e.is_expired(now))

    async def count_total(self) -> int:
        return sum(1 for _ in self._root.glob("*.json"))

    def _list_entries(self) -> list[CacheEntry]:
        entries: list[CacheEntry] = []
        for path in self._root.glob("*.json"):
            entry, _ = self._read(path)
            if entry is not None:
                entries.append(entry)
        return entries

    def _remove_if(
        self, path: Path, should_remove: Callable[[CacheEntry | None], bool]
    ) -> bool:
        """Remove path only if its entry (None when unreadable) matches.

        The file is renamed aside and re-read before it is unlinked, so an
        entry that replaced the one the caller looked at survives.
        """
        if not path.exists():
            return False
        entry, _ = self._read(path)
        if not should_remove(entry):
            return False

        aside = self._scratch_path(path, "dead")
        with self._lock:
            try:
                path.rename(aside)
            except FileNotFoundError:
                return False
            except OSError as e:
                raise CacheStoreError(f"Failed to remove cache entry {path.stem}: {e}") from e
            try:
                entry, _ = self._read(aside)
                if should_remove(entry):
                    return True
                try:
                    os.link(aside, path)
                except FileExistsError:
                    logger.debug("Cache entry %s recreated during removal", path.stem)
                except OSError as e:
                    raise CacheStoreError(
                        f"Failed to restore cache entry {path.stem}: {e}"
                    ) from e
                return False
            finally:
                self._unlink(aside)

    def _read(self, path: Path) -> tuple[CacheEntry | None, bool]:
        """Return (entry, readable); a missing file counts as readable."""
        try:
            data = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None, True
        except OSError as e:
            raise CacheStoreError(f"Failed to read cache file {path.name}: {e}") from e
        try:
            return CacheEntry.model_validate_json(data), True
        except ValidationError as e:
            logger.debug("Invalid cache file %s: %s", path.name, e)
            return None, False

    def _unlink(self, path: Path) -> bool:
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise CacheStoreError(f"Failed to delete cache file {path.name}: {e}") from e
        return True

    def _scratch_path(self, path: Path, suffix: str) -> Path:
        return path.with_name(f".{path.stem}.{uuid.uuid4().hex}.{suffix}")

    def _entry_path(self, fingerprint: str) -> Path:
        """Return file path for a fingerprint."""
        safe_key = fingerprint.replace("/", "_").replace("\\", "_")
        return self._root / f"{safe_key}.json"
