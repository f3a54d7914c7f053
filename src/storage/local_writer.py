# src/storage/local_writer.py — v3
"""Local filesystem reads and writes for conversion tasks.

Writes are atomic: bytes go to a '.part' sibling that is moved over the
final name with os.replace(), and the partial file is removed on failure.
OSError is translated into the conversion error taxonomy here.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from webpexpress.core.errors import DestinationWriteError, SourceReadError
from webpexpress.storage.layout import partial_path

logger = logging.getLogger(__name__)


class LocalWriter:
    """Read sources from and write outputs to the local filesystem."""

    def read(self, path: Path) -> bytes:
        """Read a source file.

        Raises:
            SourceReadError: If the file is missing or unreadable.
        """
        try:
            return Path(path).read_bytes()
        except IsADirectoryError as e:
            raise SourceReadError("source is a directory", path) from e
        except OSError as e:
            raise SourceReadError(e.strerror or str(e), path) from e

    def write(self, path: Path, content: bytes) -> int:
        """Atomically write content to path; return bytes written.

        The destination directory must already exist; it is never created
        here, so a mistyped destination fails instead of spawning folders.

        Raises:
            DestinationWriteError: On permission, space or path problems.
        """
        final = Path(path)
        if not final.parent.is_dir():
            raise DestinationWriteError("destination directory does not exist", final)

        tmp = partial_path(final)
        try:
            with open(tmp, "wb") as fh:
                fh.write(content)
            os.replace(tmp, final)
        except OSError as e:
            self.remove(tmp)
            raise DestinationWriteError(e.strerror or str(e), final) from e
        return len(content)

    def exists(self, path: Path) -> bool:
        return Path(path).exists()

    def size(self, path: Path) -> int | None:
        """Return the size of a file, or None if it cannot be stat'ed."""
        try:
            return Path(path).stat().st_size
        except OSError:
            return None

    def remove(self, path: Path) -> bool:
        """Delete a file if present; return True if something was removed."""
        try:
            Path(path).unlink()
        except FileNotFoundError:
            return False
        except OSError:
            logger.warning("Could not remove %s", path, exc_info=True)
            return False
        return True
