# src/storage/local_export_store.py — v1
"""Local filesystem export store (EXPORT_BACKEND=local, default)."""

from __future__ import annotations

import logging
from pathlib import Path

from masterchef.core.errors import StorageError
from masterchef.storage.base_export_store import BaseExportStore

logger = logging.getLogger(__name__)


class LocalExportStore(BaseExportStore):
    """Write exports below a root directory."""

    def __init__(self, root: Path | str) -> None:
        self._root = Path(root).expanduser()

    def _resolve(self, key: str) -> Path:
        path = (self._root / key).resolve()
        if not path.is_relative_to(self._root.resolve()):
            raise StorageError(f"Export key escapes export root: {key!r}")
        return path

    async def initialize(self) -> None:
        try:
            self._root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Export root initialization failed: {e}") from e

    async def put(self, key: str, content: bytes | str, content_type: str) -> str:
        path = self._resolve(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, bytes):
                path.write_bytes(content)
            else:
                path.write_text(content, encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Failed to write export {key}: {e}") from e
        logger.debug("Exported %s (%s) to %s", key, content_type, path)
        return key

    async def delete(self, key: str) -> None:
        try:
            self._resolve(key).unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to delete export {key}: {e}") from e

    async def head_check(self) -> bool:
        return self._root.is_dir()
