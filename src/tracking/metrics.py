# src/tracking/metrics.py — v1
"""Metrics sinks: counters and latency histograms.

Metric names used by the orchestrator: requests, cache_hits,
cache_misses, errors (counters) and generation_latency_ms (histogram).
"""

from __future__ import annotations

import bisect
import threading
from abc import ABC, abstractmethod
from typing import Any

DEFAULT_BUCKETS_MS: tuple[float, ...] = (
    10, 50, 100, 250, 500, 1000, 2500, 5000, 10000, 30000, 60000,
)


class BaseMetricsSink(ABC):
    """Where orchestration metrics go."""

    @abstractmethod
    def increment(self, name: str, value: int = 1) -> None:
        """Add to a counter."""

    @abstractmethod
    def observe(self, name: str, value: float) -> None:
        """Record one histogram observation."""


class NoOpMetricsSink(BaseMetricsSink):
    """Discards everything."""

    def increment(self, name: str, value: int = 1) -> None:
        pass

    def observe(self, name: str, value: float) -> None:
        pass


class _Histogram:
    def __init__(self, buckets: tuple[float, ...]) -> None:
        self.buckets = buckets
        # Last slot counts observations above the highest bound.
        self.counts = [0] * (len(buckets) + 1)
        self.count = 0
        self.total = 0.0
        self.min: float | None = None
        self.max: float | None = None

    def add(self, value: float) -> None:
        self.counts[bisect.bisect_left(self.buckets, value)] += 1
        self.count += 1
        self.total += value
        self.min = value if self.min is None else min(self.min, value)
        self.max = value if self.max is None else max(self.max, value)

    def as_dict(self) -> dict[str, Any]:
        cumulative: dict[str, int] = {}
        running = 0
        for bound, n in zip(self.buckets, self.counts):
            running += n
            cumulative[f"le_{bound:g}"] = running
        cumulative["le_inf"] = self.count
        return {
            "count": self.count,
            "sum": self.total,
            "min": self.min,
            "max": self.max,
            "avg": self.total / self.count if self.count else None,
            "buckets": cumulative,
        }


class InMemoryMetricsSink(BaseMetricsSink):
    """Thread-safe in-process counters and histograms."""

    def __init__(self, buckets: tuple[float, ...] = DEFAULT_BUCKETS_MS) -> None:
        self._buckets = tuple(sorted(buckets))
        self._counters: dict[str, int] = {}
        self._histograms: dict[str, _Histogram] = {}
        self._lock = threading.Lock()

    def increment(self, name: str, value: int = 1) -> None:
        with self._lock:
            self._counters[name] = self._counters.get(name, 0) + value

    def observe(self, name: str, value: float) -> None:
        with self._lock:
            hist = self._histograms.get(name)
            if hist is None:
                hist = self._histograms[name] = _Histogram(self._buckets)
            hist.add(value)

    def counter(self, name: str) -> int:
        with self._lock:
            return self._counters.get(name, 0)

    def snapshot(self) -> dict[str, Any]:
        """Point-in-time copy of every counter and histogram."""
        with self._lock:
            return {
                "counters": dict(self._counters),
                "histograms": {k: h.as_dict() for k, h in self._histograms.items()},
            }

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()
            self._histograms.clear()
