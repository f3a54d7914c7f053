# src/config/settings.py — v3
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for engine-wide settings. Variables are read with
the WEBPEXPRESS_ prefix, e.g. WEBPEXPRESS_MAX_WORKERS=4.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from webpexpress.core.models import (
    QUALITY_MAX,
    QUALITY_MIN,
    QUALITY_STEP,
    ConversionConfig,
    Preset,
)


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="WEBPEXPRESS_",
        extra="ignore",
    )

    # === Conversion defaults ===
    default_quality: int = 80
    default_preset: Preset = "default"

    # === Encoder ===
    encoder_backend: Literal["pillow"] = "pillow"
    encoder_method: int = 4

    # === Worker pool ===
    max_workers: int | None = None

    # === Job list ===
    purge_success_on_add: bool = True

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "text"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 5

    # --- Validators ---

    @field_validator("max_workers")
    @classmethod
    def validate_max_workers(cls, v: int | None) -> int | None:  # noqa: N805
        if v is not None and v < 1:
            raise ValueError("max_workers must be >= 1")
        return v

    @field_validator("encoder_method")
    @classmethod
    def validate_encoder_method(cls, v: int) -> int:  # noqa: N805
        if not 0 <= v <= 6:
            raise ValueError("encoder_method must be between 0 and 6")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if not QUALITY_MIN <= self.default_quality <= QUALITY_MAX:
            errors.append(
                f"DEFAULT_QUALITY must be within {QUALITY_MIN}..{QUALITY_MAX}"
            )
        elif self.default_quality % QUALITY_STEP:
            errors.append(f"DEFAULT_QUALITY must be a multiple of {QUALITY_STEP}")

        if self.log_retention < 0:
            errors.append("LOG_RETENTION must be >= 0")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def effective_max_workers(self) -> int:
        """Worker count, falling back to the machine's parallelism."""
        return self.max_workers or os.cpu_count() or 1

    def default_conversion_config(self) -> ConversionConfig:
        """Build the ConversionConfig matching the configured defaults."""
        return ConversionConfig(
            quality=self.default_quality, preset=self.default_preset,
        )


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
