# src/core/errors.py — v1
"""Conversion error taxonomy.

Every per-item failure is one of the three ConversionError subclasses.
The pool catches them and records the outcome on the JobItem; they never
escape a worker task.
"""

from __future__ import annotations

from pathlib import Path


class ConversionError(Exception):
    """Base class for a single item's conversion failure."""

    kind: str = "conversion"

    def __init__(self, reason: str, path: Path | str | None = None) -> None:
        self.reason = reason
        self.path = Path(path) if path is not None else None
        if self.path is not None:
            super().__init__(f"{self.path.name}: {reason}")
        else:
            super().__init__(reason)


class SourceReadError(ConversionError):
    """Source file is missing or unreadable."""

    kind = "source_read"


class EncodeError(ConversionError):
    """Input is not a decodable image, or the codec rejected the options."""

    kind = "encode"


class DestinationWriteError(ConversionError):
    """Output could not be written (permissions, disk space, collision)."""

    kind = "destination_write"


class InvalidTransitionError(Exception):
    """A JobItem was asked to move to a state its current state forbids."""

    def __init__(self, path: Path, current: str, target: str) -> None:
        self.path = path
        self.current = current
        self.target = target
        super().__init__(f"{path.name}: cannot move from {current!r} to {target!r}")
