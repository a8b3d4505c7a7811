"""DR Measure CLI - Dynamic Range meter for lossless audio folders."""
from __future__ import annotations
import argparse
import logging
import os
import sys
from typing import Sequence

from drmeasure.version import __version__
from drmeasure.analysis.batch import collect_outcomes, iter_analyses
from drmeasure.config import MeasureConfig
from drmeasure.errors import InvalidFolder, ReportWriteError
from drmeasure.io.discovery import find_audio_files
from drmeasure.reporting.text_report import write_report, write_report_json
from drmeasure.types import TrackResult

EXIT_OK = 0
EXIT_ERROR = 1

logger = logging.getLogger(__name__)


def _progress_line(item, total: int) -> str:
    name = item.outcome.filename
    head = f"  [{item.index + 1}/{total}] Analysing {name} … "
    if isinstance(item.outcome, TrackResult):
        return f"{head}DR{item.outcome.dr} ({item.elapsed:.1f}s)"
    return f"{head}ERROR: {item.outcome.error_message}"


def cmd_measure(args) -> int:
    """Measure every audio file in a folder and write the report."""
    cfg = MeasureConfig.from_args(args)
    logger.debug("Run config: %s", cfg)

    try:
        paths = find_audio_files(cfg.folder, recursive=cfg.recursive)
    except InvalidFolder as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR

    if not paths:
        print(f"No audio files found in '{cfg.folder}'.", file=sys.stderr)
        return EXIT_OK

    total = len(paths)
    if not cfg.quiet:
        print(f"DR Measure — found {total} audio file(s) in {cfg.folder}\n")

    items = []
    for item in iter_analyses(paths, root=cfg.folder, workers=cfg.workers):
        items.append(item)
        if not cfg.quiet:
            print(_progress_line(item, total), flush=True)
    outcomes = collect_outcomes(items)

    try:
        write_report(outcomes, cfg.folder, cfg.output)
        if cfg.json_output is not None:
            write_report_json(outcomes, cfg.folder, cfg.json_output)
    except ReportWriteError as e:
        print(str(e), file=sys.stderr)
        return EXIT_ERROR

    if not cfg.quiet:
        print(f"\n  Report written → {cfg.output}")
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="drmeasure",
        description=(
            "Dynamic Range meter for lossless audio. Computes the DR value "
            "per the DR Loudness Standard for every file in a folder."
        ),
    )
    parser.add_argument(
        "--version", action="version",
        version=f"drmeasure {__version__}"
    )
    parser.add_argument(
        "folder",
        nargs="?",
        default=".",
        help="Folder containing FLAC/WAV/AIFF files (default: current directory)"
    )
    parser.add_argument(
        "--output", "-o",
        help="Output report file path (default: <folder>/dr_report.txt)"
    )
    parser.add_argument(
        "--json",
        help="Also write the report as JSON to this path"
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Suppress console output"
    )
    parser.add_argument(
        "--recursive", "-r",
        action="store_true",
        help="Recurse into subfolders"
    )
    parser.add_argument(
        "--workers", "-j",
        type=int,
        default=1,
        help=f"Parallel workers (default: 1, this machine has {os.cpu_count() or 1})"
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        help="Logging level (DEBUG, INFO, WARNING, ...)"
    )
    parser.set_defaults(func=cmd_measure)
    return parser


def main(argv: Sequence[str] | None = None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
        format="%(levelname)s %(name)s: %(message)s",
    )
    sys.exit(args.func(args))


if __name__ == "__main__":
    main()
