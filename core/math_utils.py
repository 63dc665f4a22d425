"""
Mathematical utilities for circular and descriptive statistics.

This module provides small numeric helpers shared by the scoring and
warning components: compass heading arithmetic, population statistics and
the rounding convention used in reports.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence


def normalize_heading_delta(delta: float) -> float:
    """
    Wrap a heading difference into the [-180, 180] range.

    Compass headings are circular, so a change from 350 to 10 degrees is a
    20 degree turn, not a 340 degree one.

    Example:
        >>> normalize_heading_delta(20.0)
        20.0
        >>> normalize_heading_delta(-340.0)
        20.0
    """
    d = math.fmod(delta, 360.0)
    if d > 180.0:
        d -= 360.0
    if d < -180.0:
        d += 360.0
    return d


def heading_change(start: float, end: float) -> float:
    """Absolute shortest angular distance between two headings."""
    return abs(normalize_heading_delta(end - start))


def mean(values: Sequence[float]) -> float:
    """Arithmetic mean, 0.0 for an empty sequence."""
    if not values:
        return 0.0
    return sum(values) / len(values)


def population_variance(values: Sequence[float]) -> float:
    """Population variance, 0.0 for fewer than two values."""
    if len(values) < 2:
        return 0.0
    avg = mean(values)
    return sum((v - avg) ** 2 for v in values) / len(values)


def round_half_up(value: float, digits: int = 0) -> float:
    """
    Round half away from zero for positives, matching display rounding.

    Python's built-in round() uses banker's rounding, which would report
    an eco score of 72.5 as 72.
    """
    factor = 10**digits
    return math.floor(value * factor + 0.5) / factor


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))
