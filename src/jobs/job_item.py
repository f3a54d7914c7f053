# src/jobs/job_item.py — v1
"""One file's unit of conversion work and its state machine.

States:
    unstarted -> processing -> success | fail
    fail -> processing          (resubmission)

Every read and write of an item goes through its own lock, so an item is
never seen in two states at once, and different items never contend.
"""

from __future__ import annotations

import threading
from pathlib import Path

from webpexpress.core.errors import ConversionError, InvalidTransitionError
from webpexpress.core.models import ErrorKind, JobSnapshot, JobState
from webpexpress.storage.layout import DEFAULT_OUTPUT_EXTENSION, output_name, output_path

_ALLOWED: dict[str, frozenset[str]] = {
    "unstarted": frozenset({"processing"}),
    "processing": frozenset({"success", "fail"}),
    "fail": frozenset({"processing"}),
    "success": frozenset(),
}


class JobItem:
    """A source file queued for conversion.

    Args:
        source_path: Input file; the item's identity within a JobList.
        output_extension: Extension of the derived output name.
        source_size_bytes: Known source size, if already stat'ed.
    """

    def __init__(
        self,
        source_path: Path | str,
        output_extension: str = DEFAULT_OUTPUT_EXTENSION,
        source_size_bytes: int | None = None,
    ) -> None:
        self._source_path = Path(source_path)
        self._output_extension = output_extension
        self._lock = threading.Lock()
        self._state: JobState = "unstarted"
        self._source_size_bytes = source_size_bytes
        self._output_size_bytes: int | None = None
        self._last_error: str | None = None
        self._error_kind: ErrorKind | None = None

    def __repr__(self) -> str:
        return f"JobItem({self._source_path.name!r}, state={self.state!r})"

    # --- Identity / derived paths ---

    @property
    def source_path(self) -> Path:
        return self._source_path

    @property
    def output_name(self) -> str:
        return output_name(self._source_path, self._output_extension)

    def output_path(self, destination: Path) -> Path:
        return output_path(destination, self._source_path, self._output_extension)

    # --- Locked reads ---

    @property
    def state(self) -> JobState:
        with self._lock:
            return self._state

    @property
    def source_size_bytes(self) -> int | None:
        with self._lock:
            return self._source_size_bytes

    @property
    def output_size_bytes(self) -> int | None:
        with self._lock:
            return self._output_size_bytes

    @property
    def last_error(self) -> str | None:
        with self._lock:
            return self._last_error

    def snapshot(self) -> JobSnapshot:
        """Consistent copy of every field, taken under the item lock."""
        with self._lock:
            return JobSnapshot(
                source_path=self._source_path,
                state=self._state,
                output_name=self.output_name,
                source_size_bytes=self._source_size_bytes,
                output_size_bytes=self._output_size_bytes,
                last_error=self._last_error,
                error_kind=self._error_kind,
            )

    # --- Transitions ---

    def _check(self, target: JobState) -> None:
        if target not in _ALLOWED[self._state]:
            raise InvalidTransitionError(self._source_path, self._state, target)

    def try_begin_processing(self) -> bool:
        """Move unstarted|fail -> processing; False if not eligible.

        A retried item loses its previous output size and error.
        """
        with self._lock:
            if self._state not in ("unstarted", "fail"):
                return False
            self._state = "processing"
            self._output_size_bytes = None
            self._last_error = None
            self._error_kind = None
            return True

    def mark_success(self, source_size_bytes: int, output_size_bytes: int) -> None:
        with self._lock:
            self._check("success")
            self._state = "success"
            self._source_size_bytes = source_size_bytes
            self._output_size_bytes = output_size_bytes

    def mark_fail(
        self,
        error: ConversionError | str,
        source_size_bytes: int | None = None,
    ) -> None:
        with self._lock:
            self._check("fail")
            self._state = "fail"
            if isinstance(error, ConversionError):
                self._last_error = str(error)
                self._error_kind = error.kind  # type: ignore[assignment]
            else:
                self._last_error = error
                self._error_kind = None
            if source_size_bytes is not None:
                self._source_size_bytes = source_size_bytes

    def set_source_size(self, size: int | None) -> None:
        with self._lock:
            self._source_size_bytes = size
