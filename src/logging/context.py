# src/logging/context.py — v2
"""Contextual logging support: attach request_id, caller_id, fingerprint to log records."""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

# Context variables for structured logging, set per generation request.
_request_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "request_id", default=None
)
_caller_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "caller_id", default=None
)
_fingerprint: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "fingerprint", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    request_id: str | None = None
    caller_id: str | None = None
    fingerprint: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        request_id=_request_id.get(),
        caller_id=_caller_id.get(),
        fingerprint=_fingerprint.get(),
    )


def set_request_context(request_id: str, caller_id: str | None = None) -> None:
    """Set request-level context (called once per service call)."""
    _request_id.set(request_id)
    _caller_id.set(caller_id)


def set_fingerprint_context(fingerprint: str | None) -> None:
    """Set the cache fingerprint being served."""
    _fingerprint.set(fingerprint)


def clear_context() -> None:
    """Reset all context variables."""
    _request_id.set(None)
    _caller_id.set(None)
    _fingerprint.set(None)
