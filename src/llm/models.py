# src/llm/models.py — v3
"""LLM-specific types: BackendResponse."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel


class BackendResponse(BaseModel):
    """Normalized response from a generation backend.

    A backend that reached the model but got nothing usable reports
    status ERROR with a message instead of raising.
    """

    content: str | None = None
    model: str
    tokens_used: int = 0
    status: Literal["SUCCESS", "ERROR"] = "SUCCESS"
    error_message: str | None = None
    latency_ms: int = 0
    raw_response: Any = None

    @property
    def is_success(self) -> bool:
        return self.status == "SUCCESS"
