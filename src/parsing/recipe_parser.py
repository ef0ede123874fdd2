# src/parsing/recipe_parser.py — v1
"""Resilient parsing of backend output into a StructuredRecipe.

Models wrap JSON in markdown fences, drift from the schema, or answer in
prose. Anything that does not decode and validate becomes a minimal
fallback recipe; parsing never raises.
"""

from __future__ import annotations

import logging

from pydantic import ValidationError

from masterchef.core.models import StructuredRecipe

logger = logging.getLogger(__name__)

FALLBACK_TITLE = "Recipe from Ingredients"
FALLBACK_DESCRIPTION = "Generated recipe (parsing failed)"
DEFAULT_SERVINGS = 4


def strip_code_fences(text: str) -> str:
    """Remove enclosing ``` / ```json fence lines."""
    text = text.strip()
    if text.startswith("```"):
        lines = [l for l in text.split("\n") if not l.strip().startswith("```")]
        text = "\n".join(lines).strip()
    return text


def fallback_recipe(servings: int | None = None) -> StructuredRecipe:
    return StructuredRecipe(
        title=FALLBACK_TITLE,
        description=FALLBACK_DESCRIPTION,
        prep_time=0,
        cook_time=0,
        servings=servings if servings and servings > 0 else DEFAULT_SERVINGS,
    )


def parse_recipe(raw_text: str | None, *, servings: int | None = None) -> StructuredRecipe:
    """Decode backend output, falling back on any failure.

    Args:
        raw_text: Backend completion, fenced or not.
        servings: Servings the caller asked for; used by the fallback.
    """
    text = strip_code_fences(raw_text or "")
    if not text:
        logger.warning("Empty recipe text, using fallback")
        return fallback_recipe(servings)

    try:
        return StructuredRecipe.model_validate_json(text)
    except ValidationError as e:
        logger.warning(
            "Recipe parse failed (%d errors), using fallback: %s",
            e.error_count(), text[:80].replace("\n", " "),
        )
        return fallback_recipe(servings)


class RecipeParser:
    """Stateless parser object for injection into services."""

    def parse(self, raw_text: str | None, *, servings: int | None = None) -> StructuredRecipe:
        return parse_recipe(raw_text, servings=servings)
