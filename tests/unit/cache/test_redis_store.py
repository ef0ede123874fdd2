# tests/unit/cache/test_redis_store.py — v2
"""Tests for cache/redis_store.py — mocked Redis client."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import pytest

from masterchef.cache.models import CacheEntry
from masterchef.cache.redis_store import RedisCacheStore
from masterchef.core.errors import CacheStoreError

NOW = datetime(2026, 3, 1, tzinfo=timezone.utc)


class FakeRedisError(Exception):
    pass


def _entry(fp="a" * 64):
    return CacheEntry(
        fingerprint=fp,
        response="{}",
        model="mistral",
        created_at=NOW,
        expires_at=NOW + timedelta(days=7),
    )


def _store(client):
    with patch.object(RedisCacheStore, "__init__", return_value=None):
        store = RedisCacheStore.__new__(RedisCacheStore)
    store._client = client
    store._redis_error = FakeRedisError
    return store


class TestRedisCacheStore:
    def test_import_error_without_redis(self):
        """Clear ImportError when redis is not available."""
        import sys
        redis_mod = sys.modules.get("redis")
        sys.modules["redis"] = None  # type: ignore[assignment]
        try:
            with pytest.raises(ImportError, match="redis"):
                RedisCacheStore(redis_url="redis://localhost")
        finally:
            if redis_mod is not None:
                sys.modules["redis"] = redis_mod
            else:
                sys.modules.pop("redis", None)

    @pytest.mark.asyncio
    async def test_put_uses_set_nx_and_index(self):
        client = MagicMock()
        pipe = client.pipeline.return_value
        pipe.execute.return_value = [True, 1]
        store = _store(client)

        assert await store.put(_entry()) is True
        client.pipeline.assert_called_once_with(transaction=True)
        key, payload = pipe.set.call_args.args
        assert key == "masterchef:cache:" + "a" * 64
        assert pipe.set.call_args.kwargs == {"nx": True}
        assert CacheEntry.model_validate_json(payload).fingerprint == "a" * 64
        pipe.zadd.assert_called_once_with(
            "masterchef:cache:__expiry__",
            {"a" * 64: (NOW + timedelta(days=7)).timestamp()},
            nx=True,
        )

    @pytest.mark.asyncio
    async def test_put_existing_returns_false(self):
        client = MagicMock()
        client.pipeline.return_value.execute.return_value = [None, 0]
        assert await _store(client).put(_entry()) is False

    @pytest.mark.asyncio
    async def test_get_roundtrip_and_missing(self):
        client = MagicMock()
        client.get.return_value = _entry().model_dump_json()
        store = _store(client)
        assert (await store.get("a" * 64)).model == "mistral"

        client.get.return_value = None
        assert await store.get("a" * 64) is None

    @pytest.mark.asyncio
    async def test_exists_checks_expiry_score(self):
        client = MagicMock()
        client.zscore.return_value = (NOW + timedelta(days=1)).timestamp()
        store = _store(client)
        assert await store.exists("a" * 64, NOW) is True
        assert await store.exists("a" * 64, NOW + timedelta(days=1)) is False

        client.zscore.return_value = None
        assert await store.exists("a" * 64, NOW) is False

    @pytest.mark.asyncio
    async def test_delete_if_expired_runs_conditional_script(self):
        client = MagicMock()
        client.eval.return_value = 1
        store = _store(client)

        assert await store.delete_if_expired("a" * 64, NOW) is True
        script, numkeys, *rest = client.eval.call_args.args
        assert "ZSCORE" in script and "<=" in script
        assert numkeys == 2
        assert rest == [
            "masterchef:cache:" + "a" * 64,
            "masterchef:cache:__expiry__",
            "a" * 64,
            NOW.timestamp(),
        ]

        client.eval.return_value = 0
        assert await store.delete_if_expired("a" * 64, NOW) is False

    @pytest.mark.asyncio
    async def test_delete_expired_rechecks_each_candidate(self):
        client = MagicMock()
        client.zrangebyscore.return_value = ["a" * 64, "b" * 64]
        # "b" was replaced by a live entry after the range query.
        client.eval.side_effect = [1, 0]
        store = _store(client)

        assert await store.delete_expired(NOW) == 1
        client.zrangebyscore.assert_called_once_with(
            "masterchef:cache:__expiry__", "-inf", NOW.timestamp()
        )
        assert [c.args[4] for c in client.eval.call_args_list] == ["a" * 64, "b" * 64]
        client.pipeline.assert_not_called()

    @pytest.mark.asyncio
    async def test_delete_expired_nothing(self):
        client = MagicMock()
        client.zrangebyscore.return_value = []
        assert await _store(client).delete_expired(NOW) == 0
        client.eval.assert_not_called()

    @pytest.mark.asyncio
    async def test_unreadable_entry_is_dropped_if_unchanged(self):
        client = MagicMock()
        client.get.return_value = "{torn"
        store = _store(client)

        assert await store.get("a" * 64) is None
        script, numkeys, *rest = client.eval.call_args.args
        assert "GET" in script
        assert rest[-1] == "{torn"

    @pytest.mark.asyncio
    async def test_counts(self):
        client = MagicMock()
        client.zcount.return_value = 3
        client.zcard.return_value = 5
        store = _store(client)
        assert await store.count_valid(NOW) == 3
        client.zcount.assert_called_once_with(
            "masterchef:cache:__expiry__", f"({NOW.timestamp()}", "+inf"
        )
        assert await store.count_total() == 5

    @pytest.mark.asyncio
    async def test_redis_errors_become_cache_store_errors(self):
        client = MagicMock()
        client.get.side_effect = FakeRedisError("connection lost")
        with pytest.raises(CacheStoreError, match="connection lost"):
            await _store(client).get("a" * 64)
