# src/llm/base_client.py — v2
"""Abstract generation backend interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from masterchef.core.models import GenerationRequest
from masterchef.llm.models import BackendResponse


class BaseLLMClient(ABC):
    """Unified interface for all generation backends."""

    @abstractmethod
    async def generate(self, request: GenerationRequest) -> BackendResponse:
        """Produce a completion for the request."""

    @abstractmethod
    async def is_available(self) -> bool:
        """Whether the backend is reachable and the model is loaded."""

    @abstractmethod
    def get_model_name(self) -> str:
        """Model identifier used for generation."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier (ollama, ...)."""
