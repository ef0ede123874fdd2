# src/llm/recipe_prompt.py — v1
"""Recipe prompt template loading and formatting."""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

_PROMPT_PATH = Path(__file__).parent / "prompts" / "recipe_generation.txt"

_template: str | None = None


def load_template() -> str:
    """Load and cache the prompt template."""
    global _template
    if _template is None:
        _template = _PROMPT_PATH.read_text(encoding="utf-8")
    return _template


def build_recipe_prompt(
    ingredients: Sequence[str],
    servings: int | None = None,
    difficulty: str | None = None,
    extra_instructions: str | None = None,
) -> str:
    """Fill the template for a list of already-normalized ingredients."""
    return load_template().format(
        ingredients=", ".join(ingredients),
        servings=servings or 4,
        difficulty=difficulty or "any",
        extra_instructions=(extra_instructions or "").strip(),
    )
