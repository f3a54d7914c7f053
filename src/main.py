# src/main.py — v2
"""CLI entry point — convert and presets commands.

Usage:
    webpexpress convert <files...> -o <destination> [options]
    webpexpress presets
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from webpexpress.version import __version__

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_PARTIAL = 2


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return EXIT_ERROR

    try:
        return args.func(args)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return EXIT_ERROR


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    from webpexpress.core.models import PRESETS

    parser = argparse.ArgumentParser(
        prog="webpexpress",
        description=f"webpexpress v{__version__} - batch image to WebP converter",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- convert ---
    p_convert = subparsers.add_parser(
        "convert", help="Convert image files to WebP",
    )
    p_convert.add_argument("files", nargs="+", type=Path, help="Image files")
    p_convert.add_argument(
        "-o", "--output", type=Path, required=True,
        help="Destination directory (must exist)",
    )
    p_convert.add_argument(
        "-q", "--quality", type=int, default=None,
        help="Quality 50-100 in steps of 5 (default: from settings)",
    )
    p_convert.add_argument(
        "-p", "--preset", choices=PRESETS, default=None,
        help="Encoder preset (default: from settings)",
    )
    p_convert.add_argument(
        "-j", "--workers", type=int, default=None,
        help="Worker threads (default: CPU count)",
    )
    p_convert.set_defaults(func=_cmd_convert)

    # --- presets ---
    p_presets = subparsers.add_parser("presets", help="List encoder presets")
    p_presets.set_defaults(func=_cmd_presets)

    return parser


def _cmd_convert(args: argparse.Namespace) -> int:
    """Convert the given files and print a summary."""
    from pydantic import ValidationError

    from webpexpress.api.facade import ConversionSession
    from webpexpress.batch.intake import filter_image_paths
    from webpexpress.config.settings import load_settings
    from webpexpress.core.models import ConversionConfig
    from webpexpress.logging.logger import setup_logging_from_settings

    settings = load_settings()
    setup_logging_from_settings(settings, verbose=args.verbose)

    destination: Path = args.output
    if not destination.is_dir():
        logger.error("Destination is not a directory: %s", destination)
        return EXIT_ERROR

    try:
        config = ConversionConfig(
            quality=args.quality if args.quality is not None else settings.default_quality,
            preset=args.preset or settings.default_preset,
        )
    except ValidationError as exc:
        logger.error("Invalid options: %s", exc.errors()[0]["msg"])
        return EXIT_ERROR

    files = filter_image_paths(args.files)
    if not files:
        logger.error("No image files given")
        return EXIT_ERROR

    with ConversionSession(settings=settings, max_workers=args.workers) as session:
        session.add_files(files)
        run = session.start(destination, config)
        if run is None:
            logger.error("Nothing to convert")
            return EXIT_ERROR
        result = run.wait()
        rows = session.rows()

    _print_rows(rows)
    _print_result_summary(result)
    return EXIT_OK if result.failure_count == 0 else EXIT_PARTIAL


def _cmd_presets(args: argparse.Namespace) -> int:
    """List available presets."""
    from webpexpress.core.models import PRESETS

    for preset in PRESETS:
        print(preset)
    return EXIT_OK


def _print_rows(rows: list) -> None:
    """Print one line per file."""
    marks = {"success": "ok", "fail": "FAIL", "processing": "...", "unstarted": "-"}
    width = max((len(r.filename) for r in rows), default=8)
    for row in rows:
        line = f"  {marks[row.state]:4s} {row.filename:<{width}}  {row.space_saved:>5s}"
        if row.error:
            line += f"  {row.error}"
        print(line)


def _print_result_summary(result: object) -> None:
    """Print a human-readable summary of a BatchResult."""
    from webpexpress.tracking.savings_calculator import format_bytes

    print("\nBatch complete:")
    print(f"  Files:        {result.total_items}")
    print(f"  Converted:    {result.success_count}")
    print(f"  Failed:       {result.failure_count}")
    print(f"  Space saved:  {format_bytes(result.total_bytes_saved)}")
    print(f"  Duration:     {result.duration_seconds:.1f}s")


if __name__ == "__main__":
    sys.exit(main())
