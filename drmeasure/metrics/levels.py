"""Linear level to dB conversions."""
from __future__ import annotations

import numpy as np

from drmeasure.types import BlockStats

# Levels below this are reported at the floor value.
SILENCE_LINEAR = 1e-10
SILENCE_FLOOR_DB = -100.0


def to_db(linear: float) -> float:
    """Convert a linear amplitude to dB, clamped at -100 dB for silence."""
    linear = float(linear)
    if linear < SILENCE_LINEAR:
        return SILENCE_FLOOR_DB
    return float(20.0 * np.log10(linear))


def pooled_peak(blocks: list[BlockStats]) -> float:
    """Largest block peak, 0.0 when there are no blocks."""
    if not blocks:
        return 0.0
    return float(np.max(np.array([b.peak for b in blocks], dtype=np.float64)))


def pooled_rms(blocks: list[BlockStats]) -> float:
    """Quadratic mean of block RMS values, 0.0 when there are no blocks."""
    if not blocks:
        return 0.0
    rms = np.array([b.rms for b in blocks], dtype=np.float64)
    return float(np.sqrt(np.mean(rms ** 2)))
