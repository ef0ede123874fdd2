# src/pipeline/orchestrator.py — v3
"""Generation orchestrator: cache-first, backend on miss.

Flow for one request:
  1. Fingerprint the request.
  2. Look it up in the cache service. A valid entry is served as
     CACHE_HIT without touching the backend.
  3. On a miss, call the backend under a timeout and the retry policy.
  4. Cache only SUCCESS payloads, via the guarded insert.

Backend faults never escape generate(); they come back as ERROR results.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING

from masterchef.cache.fingerprint import fingerprint_request
from masterchef.core.errors import CacheStoreError
from masterchef.core.models import (
    STATUS_ERROR,
    STATUS_SUCCESS,
    GenerationRequest,
    GenerationResult,
)
from masterchef.llm.retry import LLMRetryExhausted, RetryConfig, with_retry
from masterchef.logging.context import set_fingerprint_context
from masterchef.tracking.metrics import BaseMetricsSink, NoOpMetricsSink

if TYPE_CHECKING:
    from masterchef.cache.generation_cache import GenerationCache
    from masterchef.cache.models import CacheStats
    from masterchef.llm.base_client import BaseLLMClient
    from masterchef.llm.models import BackendResponse

logger = logging.getLogger(__name__)

RETRY_FAILURE_PREFIX = "Failed to generate response after retries"


class GenerationOrchestrator:
    """Serve generation requests from cache or backend.

    Args:
        backend: Generation backend.
        cache: Cache service. None disables caching entirely.
        metrics: Metrics sink (no-op by default).
        retry_configs: Per-error-type retry budgets (None = defaults,
            empty dict = no retries).
        timeout_s: Upper bound for a single backend attempt.
    """

    def __init__(
        self,
        backend: BaseLLMClient,
        cache: GenerationCache | None = None,
        metrics: BaseMetricsSink | None = None,
        retry_configs: dict[str, RetryConfig] | None = None,
        timeout_s: float = 60.0,
    ) -> None:
        self._backend = backend
        self._cache = cache
        self._metrics = metrics or NoOpMetricsSink()
        self._retry_configs = retry_configs
        self._timeout_s = timeout_s

    @property
    def backend(self) -> BaseLLMClient:
        return self._backend

    @property
    def cache(self) -> GenerationCache | None:
        return self._cache

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        """Serve one request. Never raises for backend failures.

        Raises:
            TypeError: If request is None.
        """
        fingerprint = fingerprint_request(request)
        set_fingerprint_context(fingerprint)
        self._metrics.increment("requests")

        cached = await self._lookup(request, fingerprint)
        if cached is not None:
            self._metrics.increment("cache_hits")
            logger.info("Serving %s from cache", fingerprint[:12])
            return cached

        self._metrics.increment("cache_misses")
        start = time.monotonic()
        try:
            response = await with_retry(
                self._call_backend, request,
                operation=f"generate:{request.model}",
                retry_configs=self._retry_configs,
            )
        except Exception as e:
            cause = e.last_error if isinstance(e, LLMRetryExhausted) else e
            latency_ms = _elapsed_ms(start)
            self._record_error(latency_ms)
            logger.error("Generation failed for %s: %r", fingerprint[:12], cause)
            return GenerationResult(
                model=request.model,
                status=STATUS_ERROR,
                error_message=f"{RETRY_FAILURE_PREFIX}: {_describe(cause)}",
                latency_ms=latency_ms,
                fingerprint=fingerprint,
            )

        latency_ms = _elapsed_ms(start)

        if not response.is_success:
            self._record_error(latency_ms)
            logger.warning(
                "Backend returned an error for %s: %s",
                fingerprint[:12], response.error_message,
            )
            return GenerationResult(
                model=response.model or request.model,
                tokens_used=response.tokens_used,
                status=STATUS_ERROR,
                error_message=response.error_message or "Backend returned an error",
                latency_ms=latency_ms,
                fingerprint=fingerprint,
            )

        result = GenerationResult(
            content=response.content,
            model=response.model or request.model,
            tokens_used=response.tokens_used,
            cached=False,
            status=STATUS_SUCCESS,
            latency_ms=latency_ms,
            fingerprint=fingerprint,
        )
        self._metrics.observe("generation_latency_ms", latency_ms)
        await self._store(request, result, fingerprint)
        return result

    async def is_available(self) -> bool:
        try:
            return await self._backend.is_available()
        except Exception as e:
            logger.warning("Backend availability check failed: %s", e)
            return False

    def get_model_name(self) -> str:
        return self._backend.get_model_name()

    async def get_cache_stats(self) -> CacheStats | None:
        """Cache counts, or None when caching is disabled."""
        if self._cache is None:
            return None
        return await self._cache.get_stats()

    async def cleanup_cache(self) -> int:
        if self._cache is None:
            return 0
        return await self._cache.cleanup_expired()

    # --- internals ---

    async def _call_backend(self, request: GenerationRequest) -> BackendResponse:
        return await asyncio.wait_for(self._backend.generate(request), self._timeout_s)

    async def _lookup(
        self, request: GenerationRequest, fingerprint: str
    ) -> GenerationResult | None:
        if self._cache is None:
            return None
        try:
            return await self._cache.get_cached_result(request, fingerprint)
        except CacheStoreError as e:
            logger.warning("Cache lookup failed for %s, treating as miss: %s", fingerprint[:12], e)
            return None

    async def _store(
        self, request: GenerationRequest, result: GenerationResult, fingerprint: str
    ) -> None:
        if self._cache is None:
            return
        try:
            await self._cache.cache_result(request, result, fingerprint)
        except CacheStoreError as e:
            logger.warning("Failed to cache response %s: %s", fingerprint[:12], e)

    def _record_error(self, latency_ms: int) -> None:
        self._metrics.increment("errors")
        self._metrics.observe("generation_latency_ms", latency_ms)


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


def _describe(error: BaseException) -> str:
    return str(error) or type(error).__name__
