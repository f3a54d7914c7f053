# src/api/facade.py — v3
"""Public API facade — one conversion session.

Usage:
    from webpexpress.api.facade import ConversionSession

    with ConversionSession() as session:
        session.add_files(paths)
        session.on_complete(notify_user)
        session.start(destination)

The session owns the JobList, WorkerPool and CompletionAggregator. The
presentation layer reads rows(), subscribes to job events through
job_list, and receives one BatchResult per started batch.
"""

from __future__ import annotations

import logging
import threading
import time
from pathlib import Path
from typing import TYPE_CHECKING, Iterable

from webpexpress.api.models import FileRow
from webpexpress.config.settings import Settings
from webpexpress.core.models import BatchResult, ConversionConfig, JobSnapshot
from webpexpress.encoder.encoder_factory import create_encoder
from webpexpress.engine.worker_pool import WorkerPool
from webpexpress.jobs.job_list import JobList
from webpexpress.tracking.completion_aggregator import (
    CompletionAggregator,
    CompletionListener,
)

if TYPE_CHECKING:
    from webpexpress.encoder.base_encoder import BaseEncoder
    from webpexpress.engine.batch_run import BatchRun

logger = logging.getLogger(__name__)


class ConversionSession:
    """A user's conversion session.

    Args:
        settings: Global settings. Loaded from .env if None.
        encoder: Encoder adapter. Built from settings if None.
        max_workers: Override settings.max_workers.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        encoder: BaseEncoder | None = None,
        max_workers: int | None = None,
    ) -> None:
        self._settings = settings or Settings()
        self._encoder = encoder or create_encoder(self._settings)
        self._job_list = JobList(
            output_extension=self._encoder.output_extension,
            purge_success_on_add=self._settings.purge_success_on_add,
        )
        self._aggregator = CompletionAggregator(self._job_list)
        self._pool = WorkerPool(
            self._job_list,
            self._encoder,
            max_workers=max_workers or self._settings.effective_max_workers,
            aggregator=self._aggregator,
        )
        # Unsettled runs only; settled ones leave a result for wait() to collect.
        self._runs: list[BatchRun] = []
        self._unclaimed: list[BatchResult] = []
        self._runs_lock = threading.Lock()
        self._last_result: BatchResult | None = None
        self._finished = False
        self._aggregator.subscribe(self._on_batch_complete)

    def __enter__(self) -> ConversionSession:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    # --- Accessors ---

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def job_list(self) -> JobList:
        return self._job_list

    @property
    def last_result(self) -> BatchResult | None:
        return self._last_result

    @property
    def is_converting(self) -> bool:
        return self._aggregator.has_active_runs()

    @property
    def conversion_finished(self) -> bool:
        """True once the latest batch settled and nothing changed since."""
        return self._finished

    def rows(self) -> list[FileRow]:
        return [FileRow.from_snapshot(s) for s in self._job_list.snapshots()]

    # --- Actions ---

    def add_files(
        self,
        paths: Iterable[Path | str],
        purge_success: bool | None = None,
    ) -> list[JobSnapshot]:
        """Add files to the job list; returns the newly added entries."""
        added = self._job_list.add(paths, purge_success=purge_success)
        if added:
            self._finished = False
        return [item.snapshot() for item in added]

    def remove_files(self, paths: Iterable[Path | str]) -> int:
        """Remove files regardless of state; returns how many were removed."""
        return len(self._job_list.remove(paths))

    def start(
        self,
        destination: Path | str,
        config: ConversionConfig | None = None,
    ) -> BatchRun | None:
        """Convert every eligible file into destination.

        Returns:
            The BatchRun, or None if no file was eligible.
        """
        config = config or self._settings.default_conversion_config()
        previous, self._finished = self._finished, False
        run = self._pool.submit(destination, config)
        if run is None:
            self._finished = previous
            return None
        with self._runs_lock:
            # The batch may already have settled on a worker thread.
            if not any(r.batch_id == run.batch_id for r in self._unclaimed):
                self._runs.append(run)
        return run

    def on_complete(self, listener: CompletionListener) -> None:
        """Register a callback receiving one BatchResult per batch.

        Called on the worker thread that settled the batch.
        """
        self._aggregator.subscribe(listener)

    def wait(self, timeout: float | None = None) -> list[BatchResult]:
        """Block until every started batch has settled.

        Each settled batch is returned once, by the first call after it
        settles.

        Returns:
            Results of the batches that settled within the timeout.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._runs_lock:
            runs = list(self._runs)
        for run in runs:
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            run.wait(remaining)
        with self._runs_lock:
            self._runs = [r for r in self._runs if r.result is None]
            results, self._unclaimed = self._unclaimed, []
        return results

    def close(self) -> None:
        """Finish queued work and release the worker threads."""
        self._pool.shutdown(wait=True)
        self._aggregator.close()

    def _on_batch_complete(self, result: BatchResult) -> None:
        with self._runs_lock:
            self._runs = [r for r in self._runs if r.batch_id != result.batch_id]
            self._unclaimed.append(result)
        self._last_result = result
        if not self._aggregator.has_active_runs():
            self._finished = True
