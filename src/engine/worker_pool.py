# src/engine/worker_pool.py — v2
"""Bounded worker pool that converts JobItems.

submit() runs on the caller's thread and never waits for conversions:
it moves eligible items to processing, registers the BatchRun with the
CompletionAggregator and enqueues one task per item on a fixed-size
ThreadPoolExecutor. Extra tasks queue behind the running ones.

Each task reads the source, encodes it and writes the output. Any
ConversionError moves the item to fail; nothing is retried.
"""

from __future__ import annotations

import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import TYPE_CHECKING

from webpexpress.core.errors import ConversionError, DestinationWriteError, EncodeError
from webpexpress.core.models import ConversionConfig
from webpexpress.engine.batch_run import BatchRun
from webpexpress.logging.context import clear_context, set_batch_context
from webpexpress.storage.local_writer import LocalWriter
from webpexpress.tracking.completion_aggregator import CompletionAggregator
from webpexpress.tracking.savings_calculator import format_percentage, savings_ratio

if TYPE_CHECKING:
    from webpexpress.encoder.base_encoder import BaseEncoder
    from webpexpress.jobs.job_item import JobItem
    from webpexpress.jobs.job_list import JobList

logger = logging.getLogger(__name__)


class WorkerPool:
    """Dispatch conversions for one JobList.

    Args:
        job_list: The session's job list.
        encoder: Encoder adapter shared by all tasks (must be stateless).
        max_workers: Worker thread count. None uses os.cpu_count().
        aggregator: Completion aggregator; one is created if omitted.
        writer: Filesystem access for sources and outputs.
    """

    def __init__(
        self,
        job_list: JobList,
        encoder: BaseEncoder,
        max_workers: int | None = None,
        aggregator: CompletionAggregator | None = None,
        writer: LocalWriter | None = None,
    ) -> None:
        self._job_list = job_list
        self._encoder = encoder
        self._aggregator = aggregator or CompletionAggregator(job_list)
        self._writer = writer or LocalWriter()
        self._max_workers = max_workers or os.cpu_count() or 1
        self._executor = ThreadPoolExecutor(
            max_workers=self._max_workers, thread_name_prefix="webp-worker",
        )
        self._claims: set[Path] = set()
        self._claims_lock = threading.Lock()
        self._closed = False

    def __enter__(self) -> WorkerPool:
        return self

    def __exit__(self, *exc: object) -> None:
        self.shutdown(wait=True)

    @property
    def aggregator(self) -> CompletionAggregator:
        return self._aggregator

    @property
    def max_workers(self) -> int:
        return self._max_workers

    # --- Submission ---

    def submit(
        self,
        destination: Path | str,
        config: ConversionConfig,
    ) -> BatchRun | None:
        """Dispatch every eligible item of the job list.

        Args:
            destination: Directory outputs are written to (flat).
            config: Encoder options, captured for the whole batch.

        Returns:
            The BatchRun handle, or None when nothing was eligible.

        Raises:
            RuntimeError: If the pool has been shut down.
        """
        if self._closed:
            raise RuntimeError("WorkerPool is shut down")

        destination = Path(destination)
        dispatched = [
            item for item in self._job_list.eligible_for_conversion()
            if self._job_list.begin_processing(item)
        ]
        if not dispatched:
            logger.info("Nothing to convert: no eligible items")
            return None

        run = BatchRun(dispatched, destination, config)
        set_batch_context(run.batch_id)
        try:
            logger.info(
                "Submitting batch %s: %d item(s) -> %s (quality=%d, preset=%s, workers=%d)",
                run.batch_id, len(dispatched), destination,
                config.quality, config.preset, self._max_workers,
            )
            self._aggregator.track(run)
            self._enqueue(run, dispatched)
        finally:
            clear_context()
        return run

    def _enqueue(self, run: BatchRun, items: list[JobItem]) -> None:
        enqueued = 0
        try:
            for item in items:
                target = item.output_path(run.destination)
                claimed = self._claim(target)
                try:
                    self._executor.submit(self._run_task, run, item, target, claimed)
                except RuntimeError:
                    if claimed:
                        self._release(target)
                    raise
                enqueued += 1
        except RuntimeError:
            # Executor shut down mid-submission: items already in processing
            # would otherwise never settle.
            stranded = items[enqueued:]
            logger.error(
                "Executor refused tasks; failing %d unscheduled item(s) of batch %s",
                len(stranded), run.batch_id,
            )
            for item in stranded:
                self._job_list.finish_fail(
                    item, "worker pool shut down before the task started",
                )

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting batches; optionally wait for queued tasks."""
        self._closed = True
        self._executor.shutdown(wait=wait)

    # --- Tasks ---

    def _run_task(
        self, run: BatchRun, item: JobItem, target: Path, claimed: bool,
    ) -> None:
        set_batch_context(run.batch_id, item.source_path.name)
        try:
            error: ConversionError | None = None
            sizes: tuple[int, int] | None = None
            try:
                sizes = self._convert(item, run.config, target, claimed)
            except ConversionError as e:
                error = e
                logger.warning("Conversion failed (%s): %s", e.kind, e)
            except Exception as e:
                error = EncodeError(f"unexpected error: {e}", item.source_path)
                logger.exception("Unexpected error converting %s", item.source_path.name)
            finally:
                # Released before the list update: completion listeners may resubmit.
                if claimed:
                    self._release(target)

            if error is not None:
                self._job_list.finish_fail(item, error)
                return

            source_size, output_size = sizes
            if not self._job_list.finish_success(item, source_size, output_size):
                logger.info("%s was removed during conversion; result discarded",
                            item.source_path.name)
                return
            logger.info(
                "Converted %s -> %s (%d -> %d bytes, %s saved)",
                item.source_path.name, target.name, source_size, output_size,
                format_percentage(savings_ratio(source_size, output_size)) or "n/a",
            )
        finally:
            clear_context()

    def _convert(
        self, item: JobItem, config: ConversionConfig, target: Path, claimed: bool,
    ) -> tuple[int, int]:
        """Read, encode and write one item; return (source, output) sizes."""
        if not claimed:
            raise DestinationWriteError(
                "another file in flight writes to the same output", target,
            )
        if target.resolve() == item.source_path.resolve():
            raise DestinationWriteError("output would overwrite its source", target)
        data = self._writer.read(item.source_path)
        item.set_source_size(len(data))
        encoded = self._encoder.encode(data, config)
        self._writer.write(target, encoded)
        return len(data), len(encoded)

    def _claim(self, target: Path) -> bool:
        with self._claims_lock:
            if target in self._claims:
                return False
            self._claims.add(target)
            return True

    def _release(self, target: Path) -> None:
        with self._claims_lock:
            self._claims.discard(target)
