# src/storage/base_export_store.py — v1
"""Abstract export store interface for generated recipes.

Keys follow exports/{user_id}/{recipe_id}.{json|pdf}.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

EXPORT_PREFIX = "exports"
_EXTENSIONS = {"json", "pdf"}


def export_key(user_id: str, recipe_id: str, fmt: str = "json") -> str:
    """Object key for a recipe export.

    Raises:
        ValueError: If fmt is not json or pdf, or an id is blank.
    """
    if fmt not in _EXTENSIONS:
        raise ValueError(f"Unsupported export format: {fmt!r}")
    if not str(user_id).strip() or not str(recipe_id).strip():
        raise ValueError("user_id and recipe_id are required")
    return f"{EXPORT_PREFIX}/{user_id}/{recipe_id}.{fmt}"


class BaseExportStore(ABC):
    """Narrow object-storage interface used by the recipe service."""

    @abstractmethod
    async def initialize(self) -> None:
        """Make sure the target bucket/directory exists."""

    @abstractmethod
    async def put(self, key: str, content: bytes | str, content_type: str) -> str:
        """Store content under key; returns the key."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove the object at key (missing objects are not an error)."""

    @abstractmethod
    async def head_check(self) -> bool:
        """True if the store is reachable. Never raises."""
