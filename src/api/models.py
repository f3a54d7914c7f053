# src/api/models.py — v2
"""API-level models: FileRow projection for the presentation layer."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel

from webpexpress.core.models import JobSnapshot, JobState
from webpexpress.tracking.savings_calculator import format_bytes, item_savings_display


class FileRow(BaseModel):
    """One line of the file table: name, folder, state and savings."""

    source_path: Path
    filename: str
    directory: str
    state: JobState
    space_saved: str = ""
    size_before: str = ""
    size_after: str = ""
    error: str | None = None

    @classmethod
    def from_snapshot(cls, snap: JobSnapshot) -> FileRow:
        succeeded = snap.state == "success"
        return cls(
            source_path=snap.source_path,
            filename=snap.source_path.name,
            directory=str(snap.source_path.parent),
            state=snap.state,
            space_saved=item_savings_display(snap),
            size_before=format_bytes(snap.source_size_bytes),
            size_after=format_bytes(snap.output_size_bytes) if succeeded else "",
            error=snap.last_error if snap.state == "fail" else None,
        )
