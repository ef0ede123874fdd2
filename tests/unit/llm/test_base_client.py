# tests/unit/llm/test_base_client.py — v1
"""Tests for llm/base_client.py and llm/models.py."""

from __future__ import annotations

import pytest

from masterchef.llm.base_client import BaseLLMClient
from masterchef.llm.models import BackendResponse


class TestBaseLLMClient:
    def test_cannot_instantiate(self):
        with pytest.raises(TypeError):
            BaseLLMClient()  # type: ignore[abstract]

    def test_has_required_methods(self):
        for method in ["generate", "is_available", "get_model_name", "provider_name"]:
            assert hasattr(BaseLLMClient, method)


class TestBackendResponse:
    def test_defaults_to_success(self):
        resp = BackendResponse(content="{}", model="mistral")
        assert resp.is_success
        assert resp.tokens_used == 0

    def test_error(self):
        resp = BackendResponse(model="mistral", status="ERROR", error_message="x")
        assert not resp.is_success
