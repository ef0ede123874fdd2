# src/core/errors.py — v1
"""Exception hierarchy.

Backend and content faults never surface through these: the orchestrator
and the recipe parser turn them into values. What remains here are store
faults, caller-layer failures, storage and configuration problems.
"""

from __future__ import annotations


class MasterchefError(Exception):
    """Base class for all masterchef errors."""


class CacheStoreError(MasterchefError):
    """Underlying cache store is unavailable or returned corrupt data."""


class RecipeGenerationError(MasterchefError):
    """Raised by the recipe service when generation produced no usable content."""

    def __init__(self, message: str, status: str | None = None) -> None:
        self.status = status
        super().__init__(message)


class StorageError(MasterchefError):
    """Object storage export failed."""


class ConfigurationError(MasterchefError):
    """Raised when configuration is internally inconsistent."""
