# src/jobs/job_list.py — v1
"""Ordered, deduplicated collection of JobItems for one session.

The list is the single owner of job state. The presentation layer reads it
through accessors and snapshots, and subscribes to JobEvents instead of
holding a copy of its own.

Locking: a short-held structural lock guards membership and order only.
Item state is guarded by each item's own lock, so worker threads finishing
different items never wait on each other.
"""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Iterator, Literal

from webpexpress.core.errors import ConversionError
from webpexpress.core.models import JobSnapshot
from webpexpress.jobs.job_item import JobItem
from webpexpress.storage.layout import DEFAULT_OUTPUT_EXTENSION

logger = logging.getLogger(__name__)

EventKind = Literal["added", "removed", "state"]


@dataclass(frozen=True)
class JobEvent:
    """Change notification emitted after a JobList mutation."""

    kind: EventKind
    item: JobItem
    snapshot: JobSnapshot


JobListener = Callable[[JobEvent], None]


def normalize_path(path: Path | str) -> Path:
    """Canonical key for a source path (absolute, user-expanded)."""
    return Path(os.path.abspath(os.path.expanduser(str(path))))


def _stat_size(path: Path) -> int | None:
    try:
        return path.stat().st_size
    except OSError:
        return None


class JobList:
    """Deduplicated JobItems kept sorted by source path.

    Args:
        output_extension: Extension used to derive each item's output name.
        purge_success_on_add: Default for add(): drop succeeded items first.
    """

    def __init__(
        self,
        output_extension: str = DEFAULT_OUTPUT_EXTENSION,
        purge_success_on_add: bool = True,
    ) -> None:
        self._output_extension = output_extension
        self._purge_success_on_add = purge_success_on_add
        self._lock = threading.Lock()
        self._items: dict[Path, JobItem] = {}
        self._order: list[Path] = []
        self._listeners: list[JobListener] = []

    # --- Read accessors ---

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, (str, Path)):
            return False
        with self._lock:
            return normalize_path(path) in self._items

    def __iter__(self) -> Iterator[JobItem]:
        return iter(self.items())

    def items(self) -> list[JobItem]:
        """Items in sorted order (a copy; safe to iterate while mutating)."""
        with self._lock:
            return [self._items[p] for p in self._order]

    def snapshots(self) -> list[JobSnapshot]:
        return [item.snapshot() for item in self.items()]

    def get(self, path: Path | str) -> JobItem | None:
        with self._lock:
            return self._items.get(normalize_path(path))

    def is_member(self, item: JobItem) -> bool:
        """True if this exact item object is still in the list."""
        with self._lock:
            return self._items.get(item.source_path) is item

    def eligible_for_conversion(self) -> list[JobItem]:
        """Items a new submission should dispatch, in sorted order.

        Succeeded items are skipped; failed items are retried. Items
        already processing belong to an earlier run and are left alone.
        """
        return [i for i in self.items() if i.state in ("unstarted", "fail")]

    def is_busy(self) -> bool:
        """True while any item is processing."""
        return any(i.state == "processing" for i in self.items())

    # --- Mutations ---

    def add(
        self,
        paths: Iterable[Path | str],
        purge_success: bool | None = None,
    ) -> list[JobItem]:
        """Insert unstarted items for paths not already present.

        Args:
            paths: Source paths; duplicates are collapsed.
            purge_success: Drop succeeded items before inserting, so a
                re-added file gets a fresh unstarted entry. Processing and
                failed items are never purged. None uses the list default.

        Returns:
            The newly inserted items.
        """
        purge = self._purge_success_on_add if purge_success is None else purge_success

        candidates: dict[Path, int | None] = {}
        for raw in paths:
            key = normalize_path(raw)
            if key not in candidates:
                candidates[key] = _stat_size(key)

        purged: list[JobItem] = []
        added: list[JobItem] = []
        with self._lock:
            if purge:
                for key, item in list(self._items.items()):
                    if item.state == "success":
                        del self._items[key]
                        purged.append(item)
            for key, size in candidates.items():
                if key in self._items:
                    continue
                item = JobItem(key, self._output_extension, source_size_bytes=size)
                self._items[key] = item
                added.append(item)
            if purged or added:
                self._order = sorted(self._items, key=str)

        if purged:
            logger.debug("Purged %d succeeded item(s) before add", len(purged))
        if added:
            logger.info("Added %d file(s) to job list (%d total)", len(added), len(self))

        for item in purged:
            self._emit("removed", item)
        for item in added:
            self._emit("added", item)
        return added

    def remove(self, paths: Iterable[Path | str]) -> list[JobItem]:
        """Delete matching items regardless of state.

        A removed in-flight item keeps running; its final update is
        discarded by finish_*().
        """
        keys = {normalize_path(p) for p in paths}
        removed: list[JobItem] = []
        with self._lock:
            for key in keys:
                item = self._items.pop(key, None)
                if item is not None:
                    removed.append(item)
            if removed:
                self._order = [p for p in self._order if p in self._items]

        for item in removed:
            if item.state == "processing":
                logger.info("Removed %s while processing; its result will be discarded",
                            item.source_path.name)
            self._emit("removed", item)
        return removed

    def clear(self) -> list[JobItem]:
        """Remove every item."""
        return self.remove([item.source_path for item in self.items()])

    def begin_processing(self, item: JobItem) -> bool:
        """Move a member item to processing; False if not eligible."""
        if not self.is_member(item):
            return False
        if not item.try_begin_processing():
            return False
        self._emit("state", item)
        return True

    def finish_success(
        self, item: JobItem, source_size_bytes: int, output_size_bytes: int,
    ) -> bool:
        """Record a successful conversion; False if the item was removed."""
        if not self.is_member(item):
            logger.debug("Discarding success of removed item %s", item.source_path.name)
            return False
        item.mark_success(source_size_bytes, output_size_bytes)
        return self._emit_if_member(item)

    def finish_fail(
        self,
        item: JobItem,
        error: ConversionError | str,
        source_size_bytes: int | None = None,
    ) -> bool:
        """Record a failed conversion; False if the item was removed."""
        if not self.is_member(item):
            logger.debug("Discarding failure of removed item %s", item.source_path.name)
            return False
        item.mark_fail(error, source_size_bytes)
        return self._emit_if_member(item)

    # --- Notifications ---

    def subscribe(self, listener: JobListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def unsubscribe(self, listener: JobListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def _emit_if_member(self, item: JobItem) -> bool:
        # Removed between the membership check and the write: discard.
        if not self.is_member(item):
            return False
        self._emit("state", item)
        return True

    def _emit(self, kind: EventKind, item: JobItem) -> None:
        with self._lock:
            listeners = list(self._listeners)
        if not listeners:
            return
        event = JobEvent(kind=kind, item=item, snapshot=item.snapshot())
        for listener in listeners:
            try:
                listener(event)
            except Exception:
                logger.warning(
                    "Job listener %r failed on %s event for %s",
                    listener, kind, item.source_path.name, exc_info=True,
                )
