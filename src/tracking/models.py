# src/tracking/models.py — v2
"""Tracking domain models: GenerationRecord.

One record per generation attempt made through the recipe service,
whatever its outcome.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class GenerationRecord(BaseModel):
    """Audit entry for a single generation attempt."""

    record_id: str
    caller_id: str
    timestamp: datetime
    ingredients: list[str] = Field(default_factory=list)
    prompt: str = ""
    fingerprint: str | None = None
    model: str
    status: Literal["SUCCESS", "CACHE_HIT", "ERROR"]
    cached: bool = False
    tokens_used: int = 0
    latency_ms: int = 0
    error_message: str | None = None
