# tests/unit/logging/test_context.py — v1
"""Tests for logging/context.py."""

from __future__ import annotations

from masterchef.logging.context import (
    clear_context,
    get_context,
    set_fingerprint_context,
    set_request_context,
)


class TestLogContext:
    def teardown_method(self):
        clear_context()

    def test_empty_by_default(self):
        clear_context()
        assert get_context().as_dict() == {}

    def test_set_and_clear(self):
        set_request_context("req-1", "bob")
        set_fingerprint_context("ff")
        ctx = get_context()
        assert (ctx.request_id, ctx.caller_id, ctx.fingerprint) == ("req-1", "bob", "ff")
        clear_context()
        assert get_context().request_id is None
