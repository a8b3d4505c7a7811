from __future__ import annotations

import pytest

from drmeasure.utils.rounding import mean_rounded, round_half_away


def test_round_half_away_ties():
    assert round_half_away(11.5) == 12
    assert round_half_away(12.5) == 13
    assert round_half_away(-2.5) == -3
    assert round_half_away(0.49) == 0
    assert round_half_away(-0.49) == 0


def test_round_half_away_rejects_non_finite():
    with pytest.raises(ValueError):
        round_half_away(float("nan"))
    with pytest.raises(ValueError):
        round_half_away(float("-inf"))


def test_mean_rounded():
    assert mean_rounded([11, 12]) == 12
    assert mean_rounded([8, 9, 9]) == 9
    assert mean_rounded([]) == 0
