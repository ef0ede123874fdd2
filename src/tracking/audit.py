# src/tracking/audit.py — v3
"""Audit recording: one GenerationRecord per attempt, with per-caller aggregates.

InMemoryAuditRecorder keeps a bounded window of recent records.
JsonlAuditRecorder appends every record to a JSON Lines file and reads it
back lazily when a question is asked.
"""

from __future__ import annotations

import logging
import threading
import uuid
from abc import ABC, abstractmethod
from collections import deque
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator

from pydantic import ValidationError

from masterchef.core.models import STATUS_CACHE_HIT, STATUS_SUCCESS, GenerationResult
from masterchef.tracking.models import GenerationRecord

logger = logging.getLogger(__name__)

DEFAULT_MAX_RECORDS = 10_000


def build_record(
    caller_id: str,
    result: GenerationResult,
    ingredients: list[str] | None = None,
    prompt: str = "",
    timestamp: datetime | None = None,
) -> GenerationRecord:
    """Build an audit record from an orchestration result."""
    return GenerationRecord(
        record_id=str(uuid.uuid4()),
        caller_id=caller_id,
        timestamp=timestamp or datetime.now(timezone.utc),
        ingredients=list(ingredients or []),
        prompt=prompt,
        fingerprint=result.fingerprint,
        model=result.model,
        status=result.status,
        cached=result.cached,
        tokens_used=result.tokens_used,
        latency_ms=result.latency_ms,
        error_message=result.error_message,
    )





class BaseAuditRecorder(ABC):
    """Records generation attempts and answers per-caller questions.

    Aggregates walk iter_records() once per call, so a recorder never has
    to hold its whole history in memory.
    """

    @abstractmethod
    def record(self, attempt: GenerationRecord) -> None:
        """Persist one attempt."""

    @abstractmethod
    def iter_records(self) -> Iterator[GenerationRecord]:
        """Yield recorded attempts, oldest first."""

    def records(self) -> list[GenerationRecord]:
        return list(self.iter_records())

    def _for(self, caller_id: str) -> Iterator[GenerationRecord]:
        return (r for r in self.iter_records() if r.caller_id == caller_id)

    def count_for(self, caller_id: str) -> int:
        return sum(1 for _ in self._for(caller_id))

    def count_cache_hits(self, caller_id: str) -> int:
        return sum(1 for r in self._for(caller_id) if r.status == STATUS_CACHE_HIT)

    def average_latency_ms(self, caller_id: str) -> float | None:
        """Mean latency of SUCCESS attempts (cache hits excluded), None if none."""
        count = total = 0
        for r in self._for(caller_id):
            if r.status == STATUS_SUCCESS:
                count += 1
                total += r.latency_ms
        if not count:
            return None
        return total / count

    def total_tokens(self, caller_id: str) -> int:
        return sum(r.tokens_used for r in self._for(caller_id))

    def history(
        self, caller_id: str, since: datetime | None = None
    ) -> list[GenerationRecord]:
        """Attempts for a caller, newest first, optionally from `since` on."""
        items = [r for r in self._for(caller_id) if since is None or r.timestamp >= since]
        return sorted(items, key=lambda r: r.timestamp, reverse=True)


class InMemoryAuditRecorder(BaseAuditRecorder):
    """Keeps the most recent records in process memory.

    Args:
        max_records: Oldest records are dropped beyond this many; None keeps all.
    """

    def __init__(self, max_records: int | None = DEFAULT_MAX_RECORDS) -> None:
        self._records: deque[GenerationRecord] = deque(maxlen=max_records)
        self._lock = threading.Lock()

    def record(self, attempt: GenerationRecord) -> None:
        with self._lock:
            self._records.append(attempt)

    def iter_records(self) -> Iterator[GenerationRecord]:
        with self._lock:
            snapshot = list(self._records)
        return iter(snapshot)


class JsonlAuditRecorder(BaseAuditRecorder):
    """Append-only JSON Lines audit log; queries stream the file."""

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path).expanduser()
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def record(self, attempt: GenerationRecord) -> None:
        with self._lock:
            with self._path.open("a", encoding="utf-8") as f:
                f.write(attempt.model_dump_json() + "\n")

    def iter_records(self) -> Iterator[GenerationRecord]:
        if not self._path.exists():
            return
        with self._path.open(encoding="utf-8") as f:
            for lineno, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    yield GenerationRecord.model_validate_json(line)
                except ValidationError as e:
                    logger.warning("Skipping bad audit line %s:%d: %s", self._path, lineno, e)


def create_audit_recorder(
    audit_log_file: Path | str | None = None,
    max_records: int | None = DEFAULT_MAX_RECORDS,
) -> BaseAuditRecorder:
    if audit_log_file:
        return JsonlAuditRecorder(audit_log_file)
    return InMemoryAuditRecorder(max_records=max_records)
