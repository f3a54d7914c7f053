# src/batch/intake.py — v1
"""Input intake — reduce picked or dropped paths to image files.

File pickers and drag-and-drop hand the engine arbitrary paths. This keeps
the regular files whose extension is a known image type, without
descending into directories.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

logger = logging.getLogger(__name__)

# Extensions accepted as image input
SUPPORTED_EXTENSIONS: frozenset[str] = frozenset({
    ".png",
    ".jpg",
    ".jpeg",
    ".jpe",
    ".gif",
    ".bmp",
    ".tif",
    ".tiff",
    ".webp",
    ".ico",
    ".ppm",
    ".pgm",
    ".pbm",
    ".tga",
})


def is_supported_image(path: Path) -> bool:
    """True if the path has an accepted image extension."""
    return path.suffix.lower() in SUPPORTED_EXTENSIONS


def filter_image_paths(
    paths: Iterable[Path | str],
    extensions: Iterable[str] | None = None,
) -> list[Path]:
    """Keep existing image files from a flat list of paths.

    Args:
        paths: Candidate paths; directories and unknown types are dropped.
        extensions: Override the accepted extensions (with leading dot).

    Returns:
        Deduplicated, sorted list of image file paths.
    """
    allowed = (
        {e.lower() for e in extensions} if extensions is not None
        else SUPPORTED_EXTENSIONS
    )

    kept: set[Path] = set()
    skipped = 0
    for raw in paths:
        path = Path(raw).expanduser()
        if not path.is_file() or path.suffix.lower() not in allowed:
            skipped += 1
            continue
        kept.add(path.resolve())

    if skipped:
        logger.debug("Intake skipped %d non-image path(s)", skipped)
    return sorted(kept, key=str)
