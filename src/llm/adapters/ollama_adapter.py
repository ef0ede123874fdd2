# src/llm/adapters/ollama_adapter.py — v2
"""Ollama local LLM adapter implementing BaseLLMClient.

Uses the ollama Python SDK. Requests JSON-formatted output; an empty
completion is reported as an error payload rather than raised.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from masterchef.core.models import GenerationRequest
from masterchef.llm.base_client import BaseLLMClient
from masterchef.llm.models import BackendResponse

logger = logging.getLogger(__name__)

_SYSTEM_PROMPT = (
    "You are a professional chef and recipe writer. "
    "Respond only with a single valid JSON object."
)


class OllamaAdapter(BaseLLMClient):
    """Ollama local inference adapter."""

    def __init__(
        self,
        model: str = "mistral",
        base_url: str = "http://localhost:11434",
        max_tokens: int = 2048,
        **kwargs: Any,
    ):
        self._model = model
        self._host = base_url
        self._max_tokens = max_tokens

    async def generate(self, request: GenerationRequest) -> BackendResponse:
        import ollama

        client = ollama.AsyncClient(host=self._host)
        model = request.model or self._model
        msgs = [
            {"role": "system", "content": _SYSTEM_PROMPT},
            {"role": "user", "content": request.prompt},
        ]
        options: dict[str, Any] = {
            "num_predict": self._max_tokens,
            "temperature": request.temperature,
        }

        t0 = time.monotonic()
        resp = await client.chat(model=model, messages=msgs, options=options, format="json")
        latency = int((time.monotonic() - t0) * 1000)

        content = (resp["message"]["content"] or "").strip()
        tokens = (resp.get("prompt_eval_count") or 0) + (resp.get("eval_count") or 0)

        if not content:
            logger.warning("Ollama returned an empty completion for model %s", model)
            return BackendResponse(
                model=model,
                tokens_used=tokens,
                status="ERROR",
                error_message="Empty response from model",
                latency_ms=latency,
            )

        return BackendResponse(
            content=content,
            model=model,
            tokens_used=tokens,
            latency_ms=latency,
            raw_response=resp,
        )

    async def is_available(self) -> bool:
        """True if the server answers and the configured model is pulled."""
        import ollama

        client = ollama.AsyncClient(host=self._host)
        resp = await client.list()
        names = [_model_name(m) for m in resp["models"]]
        wanted = self._model if ":" in self._model else f"{self._model}:"
        return any(n == self._model or n.startswith(wanted) for n in names)

    def get_model_name(self) -> str:
        return self._model

    @property
    def provider_name(self) -> str:
        return "ollama"


def _model_name(entry: Any) -> str:
    """Model tag from a list() entry (field is 'model' or legacy 'name')."""
    for key in ("model", "name"):
        try:
            value = entry[key]
        except (KeyError, AttributeError):
            continue
        if value:
            return str(value)
    return ""
