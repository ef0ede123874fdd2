# src/api/facade.py — v3
"""Public API facade: recipe generation over the cached orchestrator.

Usage:
    from masterchef.api.facade import build_service
    service = build_service(settings)
    response = await service.generate_recipe(RecipeRequest(ingredients=["egg"]), "alice")
"""

from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable, Sequence

from masterchef.api.models import RecipeMetadata, RecipeRequest, RecipeResponse
from masterchef.cache.generation_cache import GenerationCache, utc_now
from masterchef.config.settings import Settings
from masterchef.core.errors import RecipeGenerationError, StorageError
from masterchef.core.models import STATUS_ERROR, GenerationRequest, StructuredRecipe
from masterchef.llm.recipe_prompt import build_recipe_prompt
from masterchef.logging.context import clear_context, set_request_context
from masterchef.parsing.recipe_parser import RecipeParser
from masterchef.pipeline.orchestrator import GenerationOrchestrator
from masterchef.storage.base_export_store import export_key
from masterchef.tracking.audit import BaseAuditRecorder, InMemoryAuditRecorder, build_record

if TYPE_CHECKING:
    from masterchef.cache.base_cache_store import BaseCacheStore
    from masterchef.llm.base_client import BaseLLMClient
    from masterchef.llm.retry import RetryConfig
    from masterchef.storage.base_export_store import BaseExportStore
    from masterchef.tracking.metrics import BaseMetricsSink

logger = logging.getLogger(__name__)


def normalize_ingredient_list(ingredients: Sequence[str]) -> list[str]:
    """Trim, lowercase and dedupe, keeping first-seen order."""
    seen: dict[str, None] = {}
    for item in ingredients:
        cleaned = item.strip().lower()
        if cleaned:
            seen.setdefault(cleaned, None)
    return list(seen)


class RecipeService:
    """Turn ingredient lists into parsed recipes, recording every attempt.

    Args:
        orchestrator: Cache-first generation orchestrator.
        model: Model name put on every request.
        temperature: Sampling temperature put on every request.
        audit: Audit recorder (in-memory by default).
        export_store: Where exports go. None disables export_recipe().
        parser: Recipe parser.
    """

    def __init__(
        self,
        orchestrator: GenerationOrchestrator,
        model: str,
        temperature: float = 0.7,
        audit: BaseAuditRecorder | None = None,
        export_store: BaseExportStore | None = None,
        parser: RecipeParser | None = None,
    ) -> None:
        self._orchestrator = orchestrator
        self._model = model
        self._temperature = temperature
        self._audit = audit or InMemoryAuditRecorder()
        self._export_store = export_store
        self._export_ready = False
        self._parser = parser or RecipeParser()

    @property
    def orchestrator(self) -> GenerationOrchestrator:
        return self._orchestrator

    @property
    def audit(self) -> BaseAuditRecorder:
        return self._audit

    async def generate_recipe(self, request: RecipeRequest, user_id: str) -> RecipeResponse:
        """Generate (or serve from cache) a recipe for the caller.

        The attempt is recorded before any failure is raised.

        Raises:
            RecipeGenerationError: If generation failed or returned no content.
        """
        ingredients = normalize_ingredient_list(request.ingredients)
        request_id = _generate_recipe_id()
        set_request_context(request_id, user_id)
        try:
            prompt = build_recipe_prompt(
                ingredients,
                servings=request.servings,
                difficulty=request.difficulty,
                extra_instructions=request.extra_instructions,
            )
            gen_request = GenerationRequest(
                prompt=prompt,
                ingredients=tuple(ingredients),
                model=self._model,
                temperature=self._temperature,
                caller_id=user_id,
            )

            logger.info(
                "Generating recipe for %s with %d ingredients", user_id, len(ingredients)
            )
            result = await self._orchestrator.generate(gen_request)
            self._audit.record(build_record(user_id, result, ingredients, prompt))

            if result.status == STATUS_ERROR or not result.content:
                reason = result.error_message or "empty response"
                raise RecipeGenerationError(
                    f"LLM generation failed: {reason}", status=result.status
                )

            recipe = self._parser.parse(result.content, servings=request.servings)
            return RecipeResponse(
                recipe_id=request_id,
                recipe=recipe,
                metadata=RecipeMetadata(
                    model=result.model,
                    cached=result.cached,
                    tokens_used=result.tokens_used,
                    latency_ms=result.latency_ms,
                    status=result.status,
                    fingerprint=result.fingerprint,
                ),
            )
        finally:
            clear_context()

    def export_recipe_json(self, recipe: StructuredRecipe, recipe_id: str) -> str:
        """Serialize a recipe for download (camelCase keys)."""
        payload = {"id": recipe_id, **recipe.model_dump(mode="json", by_alias=True)}
        payload["totalTime"] = recipe.total_time
        return json.dumps(payload, indent=2, ensure_ascii=False)

    async def export_recipe(
        self, user_id: str, recipe_id: str, response: RecipeResponse
    ) -> str:
        """Upload the JSON export; returns the object key.

        The export store is initialized (bucket or root created) on first use.

        Raises:
            StorageError: If no export store is configured or the upload fails.
        """
        if self._export_store is None:
            raise StorageError("No export store configured")
        await self._ensure_export_store()
        key = export_key(user_id, recipe_id, "json")
        body = self.export_recipe_json(response.recipe, recipe_id)
        await self._export_store.put(key, body, "application/json")
        logger.info("Exported recipe %s for %s to %s", recipe_id, user_id, key)
        return key

    async def check_export_store(self) -> bool | None:
        """Initialize and check the export store; None if none is configured."""
        if self._export_store is None:
            return None
        try:
            await self._ensure_export_store()
        except StorageError as e:
            logger.warning("Export store unavailable: %s", e)
            return False
        return await self._export_store.head_check()

    async def _ensure_export_store(self) -> None:
        if not self._export_ready:
            await self._export_store.initialize()
            self._export_ready = True


def build_orchestrator(
    settings: Settings | None = None,
    backend: BaseLLMClient | None = None,
    cache_store: BaseCacheStore | None = None,
    metrics: BaseMetricsSink | None = None,
    retry_configs: dict[str, RetryConfig] | None = None,
    clock: Callable[[], datetime] = utc_now,
) -> GenerationOrchestrator:
    """Wire an orchestrator from settings; explicit arguments win."""
    settings = settings or Settings()

    if backend is None:
        from masterchef.llm.client_factory import create_llm_client
        backend = create_llm_client(settings.llm_provider, settings.llm_model, settings)

    cache: GenerationCache | None = None
    if settings.cache_enabled:
        if cache_store is None:
            from masterchef.cache.cache_factory import create_cache_store
            cache_store = create_cache_store(settings)
        cache = GenerationCache(cache_store, settings.cache_config, clock=clock)

    return GenerationOrchestrator(
        backend=backend,
        cache=cache,
        metrics=metrics,
        retry_configs=retry_configs,
        timeout_s=settings.llm_timeout_seconds,
    )


def build_service(
    settings: Settings | None = None,
    orchestrator: GenerationOrchestrator | None = None,
    audit: BaseAuditRecorder | None = None,
    export_store: BaseExportStore | None = None,
) -> RecipeService:
    """Wire a RecipeService from settings; explicit arguments win."""
    settings = settings or Settings()
    orchestrator = orchestrator or build_orchestrator(settings)

    if audit is None:
        from masterchef.tracking.audit import create_audit_recorder
        audit = create_audit_recorder(settings.audit_log_file)

    if export_store is None:
        from masterchef.storage.export_factory import create_export_store
        export_store = create_export_store(settings)

    return RecipeService(
        orchestrator=orchestrator,
        model=settings.llm_model,
        temperature=settings.llm_temperature,
        audit=audit,
        export_store=export_store,
    )


def _generate_recipe_id() -> str:
    """Generate a unique recipe ID: yyyymmdd_hhmmss_{uuid4_short}."""
    ts = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    return f"{ts}_{uuid.uuid4().hex[:8]}"
