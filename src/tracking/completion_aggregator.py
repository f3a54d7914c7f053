# src/tracking/completion_aggregator.py — v1
"""Batch completion detection and savings aggregation.

Observes every JobList event, tracks each active BatchRun independently,
and emits exactly one BatchResult per run once its snapshot has settled.
Outcomes are recorded as they happen, so totals do not depend on the
order in which tasks finish.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable

from webpexpress.core.models import BatchResult
from webpexpress.tracking.savings_calculator import bytes_delta, format_bytes

if TYPE_CHECKING:
    from webpexpress.engine.batch_run import BatchRun
    from webpexpress.jobs.job_list import JobEvent, JobList

logger = logging.getLogger(__name__)

CompletionListener = Callable[[BatchResult], None]


def build_batch_result(
    run: BatchRun,
    finished_at: datetime | None = None,
) -> BatchResult:
    """Aggregate the recorded outcomes of a settled run.

    Args:
        run: A BatchRun whose items are all terminal or removed.
        finished_at: Completion timestamp (defaults to now).

    Returns:
        BatchResult. total_bytes_saved is the raw delta clamped at zero.
    """
    finished_at = finished_at or datetime.now(timezone.utc)
    outcomes = run.outcomes()

    success_count = 0
    failure_count = 0
    raw_delta = 0
    for snap in outcomes.values():
        if snap.state == "success":
            success_count += 1
            raw_delta += bytes_delta(snap.source_size_bytes, snap.output_size_bytes) or 0
        elif snap.state == "fail":
            failure_count += 1

    return BatchResult(
        batch_id=run.batch_id,
        destination=run.destination,
        config=run.config,
        total_items=run.total_items,
        success_count=success_count,
        failure_count=failure_count,
        removed_count=run.removed_count,
        raw_bytes_delta=raw_delta,
        total_bytes_saved=max(0, raw_delta),
        started_at=run.started_at,
        finished_at=finished_at,
        duration_seconds=round((finished_at - run.started_at).total_seconds(), 3),
    )


class CompletionAggregator:
    """Turn per-item transitions into one completion event per BatchRun.

    Args:
        job_list: List to observe. The aggregator subscribes itself.
    """

    def __init__(self, job_list: JobList) -> None:
        self._job_list = job_list
        self._lock = threading.Lock()
        self._active: dict[str, BatchRun] = {}
        self._listeners: list[CompletionListener] = []
        job_list.subscribe(self.on_event)

    def close(self) -> None:
        """Stop observing the job list."""
        self._job_list.unsubscribe(self.on_event)

    # --- Tracking ---

    def track(self, run: BatchRun) -> None:
        """Start tracking a run. Call before its tasks are enqueued."""
        with self._lock:
            self._active[run.batch_id] = run
        # Items removed between dispatch and registration would never
        # produce an event for this run.
        for item in run.items:
            if not self._job_list.is_member(item) and run.mark_removed(item):
                self._finish(run)
                break

    def active_runs(self) -> list[BatchRun]:
        with self._lock:
            return list(self._active.values())

    def has_active_runs(self) -> bool:
        with self._lock:
            return bool(self._active)

    def on_event(self, event: JobEvent) -> None:
        """JobList listener: feed the event to every active run."""
        if event.kind == "added":
            return
        for run in self.active_runs():
            if run.observe(event):
                self._finish(run)

    def _finish(self, run: BatchRun) -> None:
        result = build_batch_result(run)
        with self._lock:
            self._active.pop(run.batch_id, None)
        logger.info(
            "Batch %s complete: %d/%d succeeded, %d failed, %d removed, %s saved in %.1fs",
            result.batch_id, result.success_count, result.total_items,
            result.failure_count, result.removed_count,
            format_bytes(result.total_bytes_saved), result.duration_seconds,
        )
        if result.raw_bytes_delta < 0:
            logger.warning(
                "Batch %s output is %s larger than its sources",
                result.batch_id, format_bytes(-result.raw_bytes_delta),
            )
        self._emit(result)
        # Waiters are released after listeners ran.
        run.complete(result)

    # --- Notifications ---

    def subscribe(self, listener: CompletionListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def unsubscribe(self, listener: CompletionListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def _emit(self, result: BatchResult) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(result)
            except Exception:
                logger.warning(
                    "Completion listener %r failed for batch %s",
                    listener, result.batch_id, exc_info=True,
                )
