# src/core/models.py — v2
"""Shared Pydantic domain models used across modules.

No module redefines these types — all imports come from core.models.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Literal, get_args

from pydantic import BaseModel, ConfigDict, field_validator


# === STATES & PRESETS ===

JobState = Literal["unstarted", "processing", "success", "fail"]
TERMINAL_STATES: frozenset[str] = frozenset({"success", "fail"})

Preset = Literal["default", "picture", "photo", "drawing", "icon", "text"]
PRESETS: tuple[str, ...] = get_args(Preset)

ErrorKind = Literal["source_read", "encode", "destination_write"]

QUALITY_MIN = 50
QUALITY_MAX = 100
QUALITY_STEP = 5


# === CONVERSION CONFIG ===


class ConversionConfig(BaseModel):
    """Encoder options captured once per submitted batch."""

    model_config = ConfigDict(frozen=True)

    quality: int = 80
    preset: Preset = "default"

    @field_validator("quality")
    @classmethod
    def validate_quality(cls, v: int) -> int:  # noqa: N805
        if not QUALITY_MIN <= v <= QUALITY_MAX:
            raise ValueError(
                f"quality must be between {QUALITY_MIN} and {QUALITY_MAX}, got {v}"
            )
        if v % QUALITY_STEP:
            raise ValueError(f"quality must be a multiple of {QUALITY_STEP}, got {v}")
        return v


# === JOB PROJECTIONS ===


class JobSnapshot(BaseModel):
    """Read-only copy of a JobItem taken under its lock."""

    model_config = ConfigDict(frozen=True)

    source_path: Path
    state: JobState
    output_name: str
    source_size_bytes: int | None = None
    output_size_bytes: int | None = None
    last_error: str | None = None
    error_kind: ErrorKind | None = None

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES


# === BATCH RESULT ===


class BatchResult(BaseModel):
    """Aggregate outcome of one settled BatchRun."""

    batch_id: str
    destination: Path
    config: ConversionConfig
    total_items: int
    success_count: int
    failure_count: int
    removed_count: int = 0
    raw_bytes_delta: int
    total_bytes_saved: int
    started_at: datetime
    finished_at: datetime
    duration_seconds: float

    @property
    def all_succeeded(self) -> bool:
        return self.failure_count == 0
