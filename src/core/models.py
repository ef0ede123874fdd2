# src/core/models.py — v1
"""Shared Pydantic domain models used across modules.

No module redefines these types; all imports come from core.models.
GenerationRequest is the unit of work handed to the orchestrator;
GenerationResult is what every orchestration call returns, success or not.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

GenerationStatus = Literal["SUCCESS", "CACHE_HIT", "ERROR"]

STATUS_SUCCESS: GenerationStatus = "SUCCESS"
STATUS_CACHE_HIT: GenerationStatus = "CACHE_HIT"
STATUS_ERROR: GenerationStatus = "ERROR"


# === REQUEST ===


class GenerationRequest(BaseModel):
    """Immutable generation request passed to the orchestrator."""

    model_config = ConfigDict(frozen=True)

    prompt: str
    ingredients: tuple[str, ...] = ()
    model: str
    temperature: float = 0.7
    caller_id: str | None = None


# === RESULT ===


class GenerationResult(BaseModel):
    """Outcome of one orchestration call.

    Backend failures are represented here (status ERROR) rather than raised.
    """

    content: str | None = None
    model: str
    tokens_used: int = 0
    cached: bool = False
    status: GenerationStatus
    error_message: str | None = None
    latency_ms: int = 0
    fingerprint: str | None = None

    @property
    def is_success(self) -> bool:
        """True for SUCCESS and CACHE_HIT results."""
        return self.status != STATUS_ERROR


# === STRUCTURED RECIPE ===


class RecipeIngredient(BaseModel):
    """One ingredient line of a parsed recipe."""

    name: str
    amount: str | None = None
    unit: str | None = None

    @field_validator("amount", mode="before")
    @classmethod
    def amount_as_text(cls, v: object) -> object:  # noqa: N805
        # Models emit both "2" and 2.
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return f"{v:g}"
        return v


class NutritionInfo(BaseModel):
    """Per-serving nutrition block."""

    calories: float | None = None
    protein: float | None = None
    carbs: float | None = None
    fat: float | None = None


class StructuredRecipe(BaseModel):
    """Validated recipe decoded from backend output.

    Accepts the camelCase keys models tend to emit (prepTime, nutritionInfo)
    as well as snake_case.
    """

    model_config = ConfigDict(populate_by_name=True)

    title: str
    description: str = ""
    prep_time: int = Field(default=0, ge=0, alias="prepTime")
    cook_time: int = Field(default=0, ge=0, alias="cookTime")
    servings: int = Field(default=4, ge=1)
    difficulty: str | None = None
    cuisine: str | None = None
    ingredients: list[RecipeIngredient] = Field(default_factory=list)
    instructions: list[str] = Field(default_factory=list)
    nutrition_info: NutritionInfo | None = Field(default=None, alias="nutritionInfo")
    tags: list[str] = Field(default_factory=list)

    @field_validator("ingredients", mode="before")
    @classmethod
    def ingredient_lines(cls, v: object) -> object:  # noqa: N805
        """Accept bare strings ("2 eggs") as ingredient names."""
        if isinstance(v, list):
            return [{"name": item} if isinstance(item, str) else item for item in v]
        return v

    @property
    def total_time(self) -> int:
        """Preparation plus cooking time in minutes."""
        return self.prep_time + self.cook_time
