# src/cache/fingerprint.py — v3
"""Request fingerprinting for the generation cache.

Two requests that differ only in ingredient order, case, surrounding
whitespace or duplicate ingredients produce the same fingerprint.
Prompt, model and temperature are hashed as given.
"""

from __future__ import annotations

import hashlib

from masterchef.cache.models import CanonicalForm
from masterchef.core.models import GenerationRequest

_TEMPERATURE_PRECISION = 4


def normalize_request(request: GenerationRequest) -> CanonicalForm:
    """Canonicalize a request.

    Raises:
        TypeError: If request is None.
    """
    if request is None:
        raise TypeError("Cannot fingerprint a None request")

    return CanonicalForm(
        ingredients=normalize_ingredients(request.ingredients),
        prompt=request.prompt,
        model=request.model,
        temperature=f"{request.temperature:.{_TEMPERATURE_PRECISION}f}",
    )


def normalize_ingredients(ingredients: tuple[str, ...] | list[str]) -> tuple[str, ...]:
    """Trim, lowercase, drop blanks and duplicates, then sort."""
    cleaned = {item.strip().lower() for item in ingredients}
    cleaned.discard("")
    return tuple(sorted(cleaned))


def compute_fingerprint(canonical: CanonicalForm) -> str:
    """SHA-256 of the canonical serialization (64 lowercase hex chars)."""
    return hashlib.sha256(canonical.serialize().encode("utf-8")).hexdigest()


def fingerprint_request(request: GenerationRequest) -> str:
    """Normalize and hash in one step."""
    return compute_fingerprint(normalize_request(request))
