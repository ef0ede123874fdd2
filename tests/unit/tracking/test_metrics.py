# tests/unit/tracking/test_metrics.py — v1
"""Tests for tracking/metrics.py."""

from __future__ import annotations

from masterchef.tracking.metrics import InMemoryMetricsSink, NoOpMetricsSink


class TestNoOpMetricsSink:
    def test_accepts_everything(self):
        sink = NoOpMetricsSink()
        sink.increment("requests")
        sink.observe("generation_latency_ms", 12.0)


class TestInMemoryMetricsSink:
    def test_counters(self):
        sink = InMemoryMetricsSink()
        sink.increment("requests")
        sink.increment("requests", 2)
        assert sink.counter("requests") == 3
        assert sink.counter("errors") == 0

    def test_histogram(self):
        sink = InMemoryMetricsSink(buckets=(100, 1000))
        for v in (50, 100, 500, 5000):
            sink.observe("latency", v)

        hist = sink.snapshot()["histograms"]["latency"]
        assert hist["count"] == 4
        assert hist["sum"] == 5650
        assert hist["min"] == 50
        assert hist["max"] == 5000
        assert hist["buckets"] == {"le_100": 2, "le_1000": 3, "le_inf": 4}

    def test_snapshot_is_a_copy(self):
        sink = InMemoryMetricsSink()
        sink.increment("requests")
        snap = sink.snapshot()
        sink.increment("requests")
        assert snap["counters"]["requests"] == 1

    def test_reset(self):
        sink = InMemoryMetricsSink()
        sink.increment("requests")
        sink.observe("latency", 1)
        sink.reset()
        assert sink.snapshot() == {"counters": {}, "histograms": {}}
