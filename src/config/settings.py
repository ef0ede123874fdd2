# src/config/settings.py — v2
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for all deployment-specific settings.
"""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from masterchef.cache.models import CacheConfig
from masterchef.core.errors import ConfigurationError


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === LLM BACKEND ===
    llm_provider: str = "ollama"
    llm_model: str = "mistral"
    llm_temperature: float = 0.7
    llm_timeout_seconds: float = 60.0
    ollama_base_url: str = "http://localhost:11434"

    # === Cache ===
    cache_enabled: bool = True
    cache_backend: Literal["memory", "json", "sqlite", "redis"] = "sqlite"
    cache_ttl_days: int = 7
    cache_root: Path = Path("~/.masterchef/cache")
    cache_redis_url: str = ""

    # === Audit ===
    audit_log_file: Path | None = None

    # === Recipe export ===
    export_backend: Literal["local", "s3"] = "local"
    export_root: Path = Path("~/.masterchef/exports")
    export_s3_bucket: str = ""
    export_s3_region: str = ""
    export_s3_endpoint: str = ""

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator("cache_ttl_days")
    @classmethod
    def validate_cache_ttl(cls, v: int) -> int:  # noqa: N805
        if v <= 0:
            raise ValueError("cache_ttl_days must be > 0")
        return v

    @field_validator("llm_temperature")
    @classmethod
    def validate_temperature(cls, v: float) -> float:  # noqa: N805
        if not 0.0 <= v <= 2.0:
            raise ValueError("llm_temperature must be between 0.0 and 2.0")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.cache_backend == "redis" and not self.cache_redis_url:
            errors.append("CACHE_BACKEND=redis requires CACHE_REDIS_URL")

        if self.export_backend == "s3" and not self.export_s3_bucket:
            errors.append("EXPORT_BACKEND=s3 requires EXPORT_S3_BUCKET")

        if self.llm_timeout_seconds <= 0:
            errors.append("LLM_TIMEOUT_SECONDS must be > 0")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def cache_config(self) -> CacheConfig:
        """Cache options as the explicit struct the cache service takes."""
        return CacheConfig(ttl=timedelta(days=self.cache_ttl_days))


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or per-run config).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
