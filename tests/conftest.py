# tests/conftest.py — v3
"""Shared test fixtures for unit tests.

Provides sample requests, a scripted fake backend, a controllable clock
and in-memory cache wiring. No network or external services.
"""

from __future__ import annotations

import asyncio
import json
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from masterchef.cache.generation_cache import GenerationCache
from masterchef.cache.memory_store import MemoryCacheStore
from masterchef.cache.models import CacheConfig
from masterchef.core.models import GenerationRequest
from masterchef.llm.base_client import BaseLLMClient
from masterchef.llm.models import BackendResponse

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

SAMPLE_RECIPE = {
    "title": "Garlic Chicken",
    "description": "Pan-seared chicken with garlic.",
    "prepTime": 10,
    "cookTime": 25,
    "servings": 2,
    "difficulty": "easy",
    "cuisine": "French",
    "ingredients": [
        {"name": "chicken", "amount": "2", "unit": "breasts"},
        {"name": "garlic", "amount": 4, "unit": "cloves"},
    ],
    "instructions": ["Season the chicken.", "Sear with garlic."],
    "nutritionInfo": {"calories": 420, "protein": 48, "carbs": 3, "fat": 22},
    "tags": ["quick"],
}


class FakeClock:
    """Mutable clock handed to GenerationCache."""

    def __init__(self, now: datetime = T0) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


def make_backend(
    content: str | None = None,
    *,
    status: str = "SUCCESS",
    error_message: str | None = None,
    side_effect: object = None,
    model: str = "mistral",
) -> AsyncMock:
    """AsyncMock backend returning one scripted BackendResponse."""
    backend = AsyncMock(spec=BaseLLMClient)
    if side_effect is not None:
        backend.generate.side_effect = side_effect
    else:
        backend.generate.return_value = BackendResponse(
            content=content,
            model=model,
            tokens_used=120,
            status=status,
            error_message=error_message,
            latency_ms=5,
        )
    backend.is_available.return_value = True
    backend.get_model_name.return_value = model
    backend.provider_name = "fake"
    return backend


# === FIXTURES ===


@pytest.fixture
def sample_request() -> GenerationRequest:
    return GenerationRequest(
        prompt="Make dinner",
        ingredients=("chicken", "chicken", "garlic"),
        model="mistral",
        temperature=0.7,
        caller_id="alice",
    )


@pytest.fixture
def recipe_json() -> str:
    return json.dumps(SAMPLE_RECIPE)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def memory_store() -> MemoryCacheStore:
    return MemoryCacheStore()


@pytest.fixture
def generation_cache(memory_store, clock) -> GenerationCache:
    return GenerationCache(memory_store, CacheConfig(ttl=timedelta(days=7)), clock=clock)


@pytest.fixture
def success_backend(recipe_json) -> AsyncMock:
    return make_backend(recipe_json)


@pytest.fixture
def backend_factory():
    """Build scripted backends inside a test: backend_factory(content, status=...)."""
    return make_backend


class YieldingMemoryStore(MemoryCacheStore):
    """Memory store that hands control back to the loop before reads and evictions.

    Lets asyncio.gather interleave concurrent cache operations the way a
    networked store would.
    """

    async def get(self, fingerprint):
        await asyncio.sleep(0)
        return await super().get(fingerprint)

    async def delete_if_expired(self, fingerprint, now):
        await asyncio.sleep(0)
        return await super().delete_if_expired(fingerprint, now)


@pytest.fixture
def yielding_cache(clock) -> GenerationCache:
    return GenerationCache(YieldingMemoryStore(), CacheConfig(ttl=timedelta(days=7)), clock=clock)
