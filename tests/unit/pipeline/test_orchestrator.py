# tests/unit/pipeline/test_orchestrator.py — v1
"""Tests for pipeline/orchestrator.py — cache-first generation."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from masterchef.core.errors import CacheStoreError
from masterchef.llm.models import BackendResponse
from masterchef.llm.retry import RetryConfig
from masterchef.pipeline.orchestrator import GenerationOrchestrator
from masterchef.tracking.metrics import InMemoryMetricsSink


@pytest.fixture
def metrics():
    return InMemoryMetricsSink()


def _orchestrator(backend, cache=None, metrics=None, **kwargs):
    kwargs.setdefault("retry_configs", {})
    return GenerationOrchestrator(backend=backend, cache=cache, metrics=metrics, **kwargs)


class TestGenerate:
    @pytest.mark.asyncio
    async def test_none_request_raises(self, success_backend, generation_cache):
        with pytest.raises(TypeError):
            await _orchestrator(success_backend, generation_cache).generate(None)  # type: ignore[arg-type]

    @pytest.mark.asyncio
    async def test_miss_calls_backend_and_caches(
        self, success_backend, generation_cache, sample_request, recipe_json
    ):
        orch = _orchestrator(success_backend, generation_cache)
        result = await orch.generate(sample_request)

        assert result.status == "SUCCESS"
        assert result.cached is False
        assert result.content == recipe_json
        assert result.tokens_used == 120
        assert result.latency_ms >= 0
        success_backend.generate.assert_awaited_once_with(sample_request)
        assert await generation_cache.is_cached(sample_request)

    @pytest.mark.asyncio
    async def test_second_call_is_cache_hit(
        self, success_backend, generation_cache, sample_request, recipe_json
    ):
        orch = _orchestrator(success_backend, generation_cache)
        await orch.generate(sample_request)
        result = await orch.generate(sample_request)

        assert result.status == "CACHE_HIT"
        assert result.cached is True
        assert result.latency_ms == 0
        assert result.content == recipe_json
        assert success_backend.generate.await_count == 1

    @pytest.mark.asyncio
    async def test_reordered_ingredients_hit(self, success_backend, generation_cache, sample_request):
        orch = _orchestrator(success_backend, generation_cache)
        await orch.generate(sample_request)
        reordered = sample_request.model_copy(update={"ingredients": (" GARLIC", "Chicken")})
        assert (await orch.generate(reordered)).status == "CACHE_HIT"

    @pytest.mark.asyncio
    async def test_error_payload_not_cached(self, backend_factory, generation_cache, sample_request):
        backend = backend_factory(None, status="ERROR", error_message="model not loaded")
        result = await _orchestrator(backend, generation_cache).generate(sample_request)

        assert result.status == "ERROR"
        assert result.cached is False
        assert result.error_message == "model not loaded"
        assert (await generation_cache.get_stats()).total_entries == 0

    @pytest.mark.asyncio
    async def test_connection_refused_becomes_error_result(
        self, backend_factory, generation_cache, sample_request
    ):
        backend = backend_factory(side_effect=ConnectionRefusedError("Connection refused"))
        orch = GenerationOrchestrator(backend=backend, cache=generation_cache)
        result = await orch.generate(sample_request)

        assert result.status == "ERROR"
        assert result.error_message.startswith("Failed to generate response after retries")
        assert "Connection refused" in result.error_message
        assert (await generation_cache.get_stats()).total_entries == 0
        assert backend.generate.await_count == 1

    @pytest.mark.asyncio
    async def test_timeout_becomes_error_result(self, generation_cache, sample_request):
        backend = AsyncMock()

        async def slow(request):
            await asyncio.sleep(10)

        backend.generate.side_effect = slow
        orch = _orchestrator(backend, generation_cache, timeout_s=0.01)
        result = await orch.generate(sample_request)

        assert result.status == "ERROR"
        assert result.error_message.startswith("Failed to generate response after retries: ")
        assert (await generation_cache.get_stats()).total_entries == 0

    @pytest.mark.asyncio
    async def test_transient_error_retried(self, backend_factory, generation_cache, sample_request, recipe_json):
        backend = backend_factory(side_effect=[
            RuntimeError("503 Service Unavailable"),
            BackendResponse(content=recipe_json, model="mistral", tokens_used=7),
        ])
        orch = _orchestrator(
            backend, generation_cache,
            retry_configs={"server_error": RetryConfig(max_retries=2, base_delay_s=0.0, jitter=False)},
        )
        result = await orch.generate(sample_request)

        assert result.status == "SUCCESS"
        assert backend.generate.await_count == 2

    @pytest.mark.asyncio
    async def test_store_fault_on_lookup_is_forced_miss(self, success_backend, generation_cache, sample_request):
        with patch.object(
            generation_cache.store, "get", AsyncMock(side_effect=CacheStoreError("disk gone"))
        ):
            result = await _orchestrator(success_backend, generation_cache).generate(sample_request)

        assert result.status == "SUCCESS"
        success_backend.generate.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_store_fault_on_insert_still_returns_success(
        self, success_backend, generation_cache, sample_request
    ):
        with patch.object(
            generation_cache.store, "put", AsyncMock(side_effect=CacheStoreError("read-only"))
        ):
            result = await _orchestrator(success_backend, generation_cache).generate(sample_request)
        assert result.status == "SUCCESS"

    @pytest.mark.asyncio
    async def test_without_cache_always_calls_backend(self, success_backend, sample_request):
        orch = _orchestrator(success_backend, None)
        await orch.generate(sample_request)
        await orch.generate(sample_request)
        assert success_backend.generate.await_count == 2
        assert await orch.get_cache_stats() is None
        assert await orch.cleanup_cache() == 0

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self, generation_cache, sample_request):
        backend = AsyncMock()
        started = asyncio.Event()

        async def hang(request):
            started.set()
            await asyncio.sleep(10)

        backend.generate.side_effect = hang
        orch = _orchestrator(backend, generation_cache, timeout_s=30)
        task = asyncio.create_task(orch.generate(sample_request))
        await started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert (await generation_cache.get_stats()).total_entries == 0


class TestMetrics:
    @pytest.mark.asyncio
    async def test_counts_hits_misses_errors(
        self, success_backend, backend_factory, generation_cache, sample_request, metrics
    ):
        orch = _orchestrator(success_backend, generation_cache, metrics)
        await orch.generate(sample_request)
        await orch.generate(sample_request)

        failing = _orchestrator(
            backend_factory(None, status="ERROR", error_message="x"), None, metrics
        )
        await failing.generate(sample_request)

        assert metrics.counter("requests") == 3
        assert metrics.counter("cache_hits") == 1
        assert metrics.counter("cache_misses") == 2
        assert metrics.counter("errors") == 1
        hist = metrics.snapshot()["histograms"]["generation_latency_ms"]
        assert hist["count"] == 2


class TestPassthroughs:
    @pytest.mark.asyncio
    async def test_is_available(self, success_backend):
        assert await _orchestrator(success_backend).is_available() is True

    @pytest.mark.asyncio
    async def test_is_available_false_when_check_raises(self, success_backend):
        success_backend.is_available.side_effect = ConnectionError("down")
        assert await _orchestrator(success_backend).is_available() is False

    def test_get_model_name(self, success_backend):
        assert _orchestrator(success_backend).get_model_name() == "mistral"

    @pytest.mark.asyncio
    async def test_cache_stats_and_cleanup(self, success_backend, generation_cache, sample_request, clock):
        orch = _orchestrator(success_backend, generation_cache)
        await orch.generate(sample_request)

        stats = await orch.get_cache_stats()
        assert (stats.valid_entries, stats.total_entries) == (1, 1)

        clock.advance(days=8)
        assert await orch.cleanup_cache() == 1
