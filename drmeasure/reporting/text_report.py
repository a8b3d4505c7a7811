"""Plain-text and JSON DR reports."""
from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Sequence

from drmeasure.errors import ReportWriteError
from drmeasure.types import TrackFailure, TrackOutcome, TrackResult
from drmeasure.utils.rounding import mean_rounded
from drmeasure.version import __version__

RULE = "═" * 75
TABLE_RULE = "─" * 73
SECTION_RULE = "─" * 31
FOOTER = "DR Loudness Standard — https://www.dynamicrange.de"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

# (minimum album DR, label), checked top-down
RATING_THRESHOLDS = (
    (14, "Excellent"),
    (10, "Good"),
    (8, "Acceptable"),
    (6, "Compressed"),
)
RATING_FLOOR = "Heavily brick-walled/clipped"


def format_duration(secs: float) -> str:
    """``MM:SS``, or ``HH:MM:SS`` from one hour up; fractions are truncated."""
    total = max(0, int(secs))
    h, rem = divmod(total, 3600)
    m, s = divmod(rem, 60)
    if h > 0:
        return f"{h:02d}:{m:02d}:{s:02d}"
    return f"{m:02d}:{s:02d}"


def album_dr(values: Sequence[int]) -> int:
    return mean_rounded([float(v) for v in values])


def dr_rating(dr: int) -> str:
    for minimum, label in RATING_THRESHOLDS:
        if dr >= minimum:
            return label
    return RATING_FLOOR


def _split(outcomes: Sequence[TrackOutcome]) -> tuple[list[TrackResult], list[TrackFailure]]:
    tracks = [o for o in outcomes if isinstance(o, TrackResult)]
    failures = [o for o in outcomes if isinstance(o, TrackFailure)]
    return tracks, failures


def _folder_str(folder: Path) -> str:
    try:
        return str(Path(folder).resolve(strict=True))
    except OSError:
        return str(folder)


def render_report(
    outcomes: Sequence[TrackOutcome],
    folder: Path,
    *,
    generated: datetime | None = None,
) -> str:
    """Render the fixed-layout text report."""
    generated = generated or datetime.now()
    tracks, failures = _split(outcomes)

    lines = [
        RULE,
        "  Dynamic Range Report",
        f"  Generated : {generated.strftime(TIMESTAMP_FORMAT)}",
        f"  Folder    : {_folder_str(folder)}",
        RULE,
        "",
        f"  {'DR':<4}  {'Peak dB':<8}  {'RMS dB':<8}  {'Duration':<8}  {'Info':<8}  File",
        f"  {TABLE_RULE}",
    ]
    for t in tracks:
        lines.append(
            f"  {'DR' + str(t.dr):<4}  {t.peak_db:>+8.2f}  {t.rms_db:>+8.2f}  "
            f"{format_duration(t.duration_secs):<8}  {t.info:<8}  {t.filename}"
        )
    lines.append(f"  {TABLE_RULE}")
    lines.append("")

    if tracks:
        drs = [t.dr for t in tracks]
        album = album_dr(drs)
        lines.extend([
            "  Summary",
            f"  {SECTION_RULE}",
            f"  Tracks analysed : {len(drs)}",
            f"  Album DR        : DR{album}",
            f"  DR range        : DR{min(drs)} – DR{max(drs)}",
            "",
            f"  DR Rating : {dr_rating(album)}",
            "",
        ])

    if failures:
        lines.extend(["  Errors", f"  {SECTION_RULE}"])
        for f in failures:
            lines.append(f"  ✗ {f.filename} — {f.error_message}")
        lines.append("")

    lines.extend([RULE, f"  {FOOTER}", RULE])
    return "\n".join(lines) + "\n"


def write_report(
    outcomes: Sequence[TrackOutcome],
    folder: Path,
    output_path: Path,
    *,
    generated: datetime | None = None,
) -> Path:
    """Write the text report; raises ReportWriteError on I/O failure."""
    text = render_report(outcomes, folder, generated=generated)
    output_path = Path(output_path)
    try:
        output_path.write_text(text, encoding="utf-8")
    except OSError as exc:
        raise ReportWriteError(f"Failed to write report: {exc}") from exc
    return output_path


def build_report_dict(
    outcomes: Sequence[TrackOutcome],
    folder: Path,
    *,
    generated: datetime | None = None,
) -> dict:
    """Same content as the text report as a JSON-serializable dict."""
    generated = generated or datetime.now()
    tracks, failures = _split(outcomes)
    summary = None
    if tracks:
        drs = [t.dr for t in tracks]
        album = album_dr(drs)
        summary = {
            "tracks_analysed": len(drs),
            "album_dr": album,
            "dr_min": min(drs),
            "dr_max": max(drs),
            "rating": dr_rating(album),
        }
    return {
        "engine": {"name": "drmeasure", "version": __version__},
        "generated": generated.strftime(TIMESTAMP_FORMAT),
        "folder": _folder_str(folder),
        "tracks": [
            {
                "filename": t.filename,
                "dr": t.dr,
                "channel_drs": [float(v) for v in t.channel_drs],
                "peak_db": float(t.peak_db),
                "rms_db": float(t.rms_db),
                "duration_secs": float(t.duration_secs),
                "channels": t.channels,
                "sample_rate": t.sample_rate,
                "bit_depth": t.bit_depth,
                "warnings": list(t.warnings),
            }
            for t in tracks
        ],
        "summary": summary,
        "errors": [{"filename": f.filename, "error": f.error_message} for f in failures],
    }


def write_report_json(
    outcomes: Sequence[TrackOutcome],
    folder: Path,
    output_path: Path,
    *,
    generated: datetime | None = None,
) -> Path:
    report = build_report_dict(outcomes, folder, generated=generated)
    output_path = Path(output_path)
    try:
        output_path.write_text(json.dumps(report, indent=2), encoding="utf-8")
    except OSError as exc:
        raise ReportWriteError(f"Failed to write report: {exc}") from exc
    return output_path
