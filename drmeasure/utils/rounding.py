from __future__ import annotations
import math


def round_half_away(x: float) -> int:
    """Round to the nearest integer, ties away from zero (11.5 -> 12, -2.5 -> -3)."""
    if math.isnan(x) or math.isinf(x):
        raise ValueError(f"Cannot round non-finite value {x!r}.")
    if x >= 0:
        return int(math.floor(x + 0.5))
    return -int(math.floor(-x + 0.5))


def mean_rounded(values: list[float]) -> int:
    """Arithmetic mean rounded half away from zero; 0 for an empty list."""
    if not values:
        return 0
    return round_half_away(math.fsum(values) / len(values))
