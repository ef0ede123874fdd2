# src/api/models.py — v2
"""API-level models: RecipeRequest, RecipeMetadata, RecipeResponse."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, field_validator

from masterchef.core.models import GenerationStatus, StructuredRecipe


class RecipeRequest(BaseModel):
    """What a caller asks the recipe service for."""

    ingredients: list[str] = Field(min_length=1)
    extra_instructions: str | None = None
    servings: int | None = Field(default=None, ge=1)
    difficulty: Literal["easy", "medium", "hard"] | None = None

    @field_validator("ingredients")
    @classmethod
    def require_non_blank(cls, v: list[str]) -> list[str]:  # noqa: N805
        if not any(item.strip() for item in v):
            raise ValueError("at least one non-blank ingredient is required")
        return v


class RecipeMetadata(BaseModel):
    """How a recipe was produced."""

    model: str
    cached: bool
    tokens_used: int = 0
    latency_ms: int = 0
    status: GenerationStatus
    fingerprint: str | None = None


class RecipeResponse(BaseModel):
    """Parsed recipe plus generation metadata."""

    recipe_id: str
    recipe: StructuredRecipe
    metadata: RecipeMetadata
