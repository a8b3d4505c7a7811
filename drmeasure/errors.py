"""Exception types raised by DR Measure."""
from __future__ import annotations


class DrMeasureError(Exception):
    """Base class for all DR Measure errors."""


class DecodeError(DrMeasureError, ValueError):
    """Audio could not be decoded."""


class DecodeOpenError(DecodeError):
    """File cannot be opened or parsed as a supported container."""


class DecodeReadError(DecodeError):
    """Stream error while reading samples."""


class InvalidArgument(DrMeasureError, ValueError):
    """Invalid input to a numeric routine."""


class InvalidFolder(DrMeasureError, ValueError):
    """Input path is missing or not a directory."""


class ReportWriteError(DrMeasureError, OSError):
    """Report file could not be written."""
