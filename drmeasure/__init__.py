"""
DR Measure - Dynamic Range meter

Measures the DR value of lossless audio tracks per the DR Loudness Standard
and writes a per-folder text report.
"""
from drmeasure.version import __version__
from drmeasure.types import (
    StreamInfo,
    BlockStats,
    TrackResult,
    TrackFailure,
)
from drmeasure.errors import (
    DrMeasureError,
    DecodeError,
    DecodeOpenError,
    DecodeReadError,
    InvalidArgument,
    InvalidFolder,
    ReportWriteError,
)

__all__ = [
    "__version__",
    "StreamInfo",
    "BlockStats",
    "TrackResult",
    "TrackFailure",
    "DrMeasureError",
    "DecodeError",
    "DecodeOpenError",
    "DecodeReadError",
    "InvalidArgument",
    "InvalidFolder",
    "ReportWriteError",
]
