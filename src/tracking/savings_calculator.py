# src/tracking/savings_calculator.py — v1
"""Space savings between a source file and its converted output.

Used per item (the "Space Saved" column) and by the completion
aggregator for batch totals.
"""

from __future__ import annotations

from webpexpress.core.models import JobSnapshot

_UNITS = ("B", "KB", "MB", "GB")


def bytes_delta(source_size: int | None, output_size: int | None) -> int | None:
    """Bytes saved (negative if the output grew); None if a size is missing."""
    if source_size is None or output_size is None:
        return None
    return source_size - output_size


def savings_ratio(source_size: int | None, output_size: int | None) -> float | None:
    """Fraction of the source saved: (source - output) / source.

    Returns None when either size is unknown or the source is empty.
    A result <= 0 means the output is not smaller.
    """
    if source_size is None or output_size is None or source_size == 0:
        return None
    return (source_size - output_size) / source_size


def format_percentage(ratio: float | None) -> str:
    """Format a ratio as a whole percentage ('60%'); '' when undefined."""
    if ratio is None:
        return ""
    return f"{round(ratio * 100):d}%"


def format_bytes(size: int | float | None) -> str:
    """Human-scaled byte count, dividing by 1024 while above 1024, up to GB."""
    if size is None:
        return ""
    sign = "-" if size < 0 else ""
    value = float(abs(size))
    unit = 0
    while value > 1024 and unit < len(_UNITS) - 1:
        value /= 1024
        unit += 1
    if unit == 0:
        return f"{sign}{int(value)} B"
    return f"{sign}{value:.2f} {_UNITS[unit]}"


def item_savings_display(snapshot: JobSnapshot) -> str:
    """Percentage shown for a succeeded item; '' for any other state."""
    if snapshot.state != "success":
        return ""
    return format_percentage(
        savings_ratio(snapshot.source_size_bytes, snapshot.output_size_bytes)
    )
