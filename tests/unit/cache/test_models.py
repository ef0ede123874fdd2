# tests/unit/cache/test_models.py — v1
"""Tests for cache/models.py."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from masterchef.cache.models import CacheConfig, CacheEntry, CacheStats, CanonicalForm

NOW = datetime(2026, 3, 1, tzinfo=timezone.utc)


def _entry(**overrides):
    defaults = dict(
        fingerprint="f" * 64,
        response="{}",
        model="mistral",
        created_at=NOW,
        expires_at=NOW + timedelta(days=7),
    )
    defaults.update(overrides)
    return CacheEntry(**defaults)


class TestCacheEntry:
    def test_expiry_boundary(self):
        entry = _entry()
        assert not entry.is_expired(NOW + timedelta(days=7) - timedelta(seconds=1))
        assert entry.is_expired(NOW + timedelta(days=7))

    def test_frozen(self):
        with pytest.raises(ValidationError):
            _entry().response = "changed"  # type: ignore[misc]

    def test_json_roundtrip_keeps_timezone(self):
        entry = _entry()
        restored = CacheEntry.model_validate_json(entry.model_dump_json())
        assert restored.expires_at == entry.expires_at


class TestCacheStats:
    def test_hit_rate_empty(self):
        assert CacheStats(valid_entries=0, total_entries=0).hit_rate == 0.0

    def test_hit_rate(self):
        assert CacheStats(valid_entries=1, total_entries=4).hit_rate == 0.25


class TestCacheConfig:
    def test_default_ttl(self):
        assert CacheConfig().ttl == timedelta(days=7)

    def test_rejects_non_positive_ttl(self):
        with pytest.raises(ValueError):
            CacheConfig(ttl=timedelta(0))


class TestCanonicalForm:
    def test_serialize_is_compact_and_sorted(self):
        canonical = CanonicalForm(
            ingredients=("garlic",), prompt="p", model="m", temperature="0.7000"
        )
        assert canonical.serialize() == (
            '{"ingredients":["garlic"],"model":"m","prompt":"p","temperature":"0.7000"}'
        )
