"""Run configuration."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

DEFAULT_REPORT_NAME = "dr_report.txt"


@dataclass(frozen=True)
class MeasureConfig:
    """Options for one folder measurement run."""

    folder: Path
    output: Path
    json_output: Optional[Path] = None
    quiet: bool = False
    recursive: bool = False
    workers: int = 1
    log_level: str = "WARNING"

    @classmethod
    def from_args(cls, args) -> "MeasureConfig":
        folder = Path(args.folder)
        output = Path(args.output) if args.output else folder / DEFAULT_REPORT_NAME
        return cls(
            folder=folder,
            output=output,
            json_output=Path(args.json) if getattr(args, "json", None) else None,
            quiet=bool(args.quiet),
            recursive=bool(getattr(args, "recursive", False)),
            workers=max(1, int(getattr(args, "workers", 1) or 1)),
            log_level=str(getattr(args, "log_level", "WARNING")).upper(),
        )
