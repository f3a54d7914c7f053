# src/storage/layout.py — v2
"""Output path conventions.

Outputs are placed flat in the destination directory: the source's stem
plus the encoder's extension. Sub-directories are never mirrored.
"""

from __future__ import annotations

from pathlib import Path

DEFAULT_OUTPUT_EXTENSION = ".webp"
PARTIAL_SUFFIX = ".part"


def output_name(source_path: Path, extension: str = DEFAULT_OUTPUT_EXTENSION) -> str:
    """Return the output file name for a source, e.g. 'a.png' -> 'a.webp'."""
    return Path(source_path).with_suffix(extension).name


def output_path(
    destination: Path,
    source_path: Path,
    extension: str = DEFAULT_OUTPUT_EXTENSION,
) -> Path:
    """Return the full output path of a source under a destination."""
    return Path(destination) / output_name(source_path, extension)


def partial_path(final_path: Path) -> Path:
    """Return the temporary sibling used while an output is being written."""
    return final_path.with_name(final_path.name + PARTIAL_SUFFIX)
