# src/logging/context.py — v2
"""Contextual logging support — attach batch_id and source file to log records.

Context variables are per-thread under the worker pool, so each task sets
its own context before doing any work.
"""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

_batch_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "batch_id", default=None
)
_source: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "source", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    batch_id: str | None = None
    source: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(batch_id=_batch_id.get(), source=_source.get())


def set_batch_context(batch_id: str, source: str | None = None) -> None:
    """Set batch-level context (called once per task or submission)."""
    _batch_id.set(batch_id)
    _source.set(source)


def clear_context() -> None:
    """Reset all context variables."""
    _batch_id.set(None)
    _source.set(None)
