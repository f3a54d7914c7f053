# src/engine/batch_run.py — v1
"""One submission: the snapshot of dispatched items plus its settings.

A BatchRun tracks which of its items are still pending. It settles once
every item has reached success/fail or was removed from the job list, and
then carries the BatchResult computed by the CompletionAggregator.
"""

from __future__ import annotations

import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

from webpexpress.core.models import BatchResult, ConversionConfig, JobSnapshot

if TYPE_CHECKING:
    from webpexpress.jobs.job_item import JobItem
    from webpexpress.jobs.job_list import JobEvent


def _generate_batch_id() -> str:
    """Generate a batch ID: {yyyymmdd_hhmmss}_{uuid8}."""
    ts = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    return f"{ts}_{uuid.uuid4().hex[:8]}"


class BatchRun:
    """Handle for one submitted batch.

    Args:
        items: Items moved to processing for this batch, in dispatch order.
        destination: Directory outputs are written to.
        config: Encoder options captured at submission.
        batch_id: Explicit ID (generated if omitted).
    """

    def __init__(
        self,
        items: list[JobItem],
        destination: Path,
        config: ConversionConfig,
        batch_id: str | None = None,
    ) -> None:
        self.batch_id = batch_id or _generate_batch_id()
        self.destination = Path(destination)
        self.config = config
        self.started_at = datetime.now(timezone.utc)
        self._items: dict[Path, JobItem] = {i.source_path: i for i in items}
        self._lock = threading.Lock()
        self._pending: set[Path] = set(self._items)
        self._outcomes: dict[Path, JobSnapshot] = {}
        self._removed: set[Path] = set()
        self._settled = False
        self._done = threading.Event()
        self._result: BatchResult | None = None

    def __repr__(self) -> str:
        return (
            f"BatchRun({self.batch_id!r}, items={len(self._items)}, "
            f"pending={self.pending_count})"
        )

    # --- Read accessors ---

    @property
    def items(self) -> list[JobItem]:
        return list(self._items.values())

    @property
    def source_paths(self) -> list[Path]:
        return list(self._items)

    @property
    def total_items(self) -> int:
        return len(self._items)

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    @property
    def removed_count(self) -> int:
        with self._lock:
            return len(self._removed)

    def outcomes(self) -> dict[Path, JobSnapshot]:
        """Terminal snapshots recorded so far, keyed by source path."""
        with self._lock:
            return dict(self._outcomes)

    def is_settled(self) -> bool:
        with self._lock:
            return self._settled

    @property
    def result(self) -> BatchResult | None:
        return self._result

    # --- Settlement ---

    def observe(self, event: JobEvent) -> bool:
        """Record a job event; True exactly once, when the run settles.

        Events for items outside the snapshot, for a different item object
        with the same path, or for items already settled are ignored.
        """
        path = event.item.source_path
        with self._lock:
            if path not in self._pending or self._items.get(path) is not event.item:
                return False
            if event.kind == "removed":
                self._removed.add(path)
            elif event.kind == "state" and event.snapshot.is_terminal:
                self._outcomes[path] = event.snapshot
            else:
                return False
            self._pending.discard(path)
            return self._settle_locked()

    def mark_removed(self, item: JobItem) -> bool:
        """Settle an item that left the job list before tracking began."""
        path = item.source_path
        with self._lock:
            if path not in self._pending or self._items.get(path) is not item:
                return False
            self._pending.discard(path)
            self._removed.add(path)
            return self._settle_locked()

    def _settle_locked(self) -> bool:
        if self._pending or self._settled:
            return False
        self._settled = True
        return True

    def complete(self, result: BatchResult) -> None:
        """Attach the final result and release waiters."""
        self._result = result
        self._done.set()

    def wait(self, timeout: float | None = None) -> BatchResult | None:
        """Block until the result is available; None on timeout."""
        if not self._done.wait(timeout):
            return None
        return self._result
