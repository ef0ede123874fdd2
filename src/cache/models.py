# src/cache/models.py — v2
"""Cache domain models: CanonicalForm, CacheEntry, CacheStats, CacheConfig."""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timedelta

from pydantic import BaseModel, ConfigDict


class CanonicalForm(BaseModel):
    """Normalized view of a GenerationRequest; the only input to hashing."""

    model_config = ConfigDict(frozen=True)

    ingredients: tuple[str, ...]
    prompt: str
    model: str
    temperature: str

    def serialize(self) -> str:
        """Stable serialization hashed into the fingerprint."""
        return json.dumps(
            {
                "ingredients": list(self.ingredients),
                "prompt": self.prompt,
                "model": self.model,
                "temperature": self.temperature,
            },
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
        )


class CacheEntry(BaseModel):
    """Single cached backend response, keyed by request fingerprint.

    Never mutated after creation; a refresh is delete-then-recreate.
    """

    model_config = ConfigDict(frozen=True)

    fingerprint: str
    response: str
    model: str
    tokens_used: int = 0
    created_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        """Entries expire at exactly expires_at."""
        return self.expires_at <= now


class CacheStats(BaseModel):
    """Aggregate counts; hit_rate is derived, never stored."""

    valid_entries: int
    total_entries: int

    @property
    def hit_rate(self) -> float:
        if self.total_entries == 0:
            return 0.0
        return self.valid_entries / self.total_entries


@dataclass(frozen=True)
class CacheConfig:
    """Cache options. ttl applies uniformly at insert time."""

    ttl: timedelta = timedelta(days=7)

    def __post_init__(self) -> None:
        if self.ttl <= timedelta(0):
            raise ValueError("cache ttl must be positive")
