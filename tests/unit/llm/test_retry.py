# tests/unit/llm/test_retry.py — v1
"""Tests for llm/retry.py — classification and backoff loop."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from masterchef.llm.retry import (
    LLMRetryExhausted,
    RetryConfig,
    classify_error,
    with_retry,
)

_NO_DELAY = RetryConfig(max_retries=2, base_delay_s=0.0, jitter=False)


class TestClassifyError:
    @pytest.mark.parametrize(
        "error,expected",
        [
            (RuntimeError("HTTP 429 Too Many Requests"), "rate_limit"),
            (asyncio.TimeoutError(), "timeout"),
            (RuntimeError("read timed out"), "timeout"),
            (RuntimeError("502 Bad Gateway"), "server_error"),
            (ConnectionRefusedError("Connection refused"), "unknown"),
            (ValueError("bad input"), "unknown"),
        ],
    )
    def test_classification(self, error, expected):
        assert classify_error(error) == expected


class TestWithRetry:
    @pytest.mark.asyncio
    async def test_success_first_try(self):
        fn = AsyncMock(return_value="ok")
        assert await with_retry(fn, 1, operation="op", retry_configs={}) == "ok"
        fn.assert_awaited_once_with(1)

    @pytest.mark.asyncio
    async def test_retries_then_succeeds(self):
        fn = AsyncMock(side_effect=[RuntimeError("503"), "ok"])
        result = await with_retry(fn, retry_configs={"server_error": _NO_DELAY})
        assert result == "ok"
        assert fn.await_count == 2

    @pytest.mark.asyncio
    async def test_exhausted(self):
        fn = AsyncMock(side_effect=RuntimeError("503"))
        with pytest.raises(LLMRetryExhausted) as exc_info:
            await with_retry(fn, operation="gen", retry_configs={"server_error": _NO_DELAY})
        assert exc_info.value.attempts == 3
        assert exc_info.value.error_type == "server_error"
        assert isinstance(exc_info.value.last_error, RuntimeError)
        assert fn.await_count == 3

    @pytest.mark.asyncio
    async def test_unknown_error_not_retried(self):
        fn = AsyncMock(side_effect=ConnectionRefusedError("Connection refused"))
        with pytest.raises(LLMRetryExhausted):
            await with_retry(fn)
        assert fn.await_count == 1

    @pytest.mark.asyncio
    async def test_empty_configs_disable_retries(self):
        fn = AsyncMock(side_effect=RuntimeError("503"))
        with pytest.raises(LLMRetryExhausted):
            await with_retry(fn, retry_configs={})
        assert fn.await_count == 1

    @pytest.mark.asyncio
    async def test_sleeps_between_attempts(self):
        fn = AsyncMock(side_effect=[RuntimeError("429"), "ok"])
        config = RetryConfig(max_retries=1, base_delay_s=2.0, jitter=False)
        with patch("masterchef.llm.retry.asyncio.sleep", new=AsyncMock()) as sleep:
            await with_retry(fn, retry_configs={"rate_limit": config})
        sleep.assert_awaited_once_with(2.0)
