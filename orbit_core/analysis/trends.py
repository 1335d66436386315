"""Time-series helpers used by the analysis engine."""

from __future__ import annotations

import re
from typing import Sequence

DEFAULT_DAYS = 7
TREND_THRESHOLD = 0.05

_DAYS_PATTERN = re.compile(r"^\s*(\d+)\s*d?\s*$", re.IGNORECASE)


def linear_trend(values: Sequence[float]) -> float:
    """
    Ordinary-least-squares slope of ``values`` against their index.

    Returns 0.0 for fewer than two points.
    """
    n = len(values)
    if n < 2:
        return 0.0

    sum_x = n * (n - 1) / 2
    sum_y = sum(values)
    sum_xy = sum(i * y for i, y in enumerate(values))
    sum_x2 = n * (n - 1) * (2 * n - 1) / 6

    denominator = n * sum_x2 - sum_x * sum_x
    if denominator == 0:
        return 0.0
    return (n * sum_xy - sum_x * sum_y) / denominator


def classify_slope(slope: float, threshold: float = TREND_THRESHOLD) -> str:
    """Map a slope to "up", "down" or "stable"."""
    if slope > threshold:
        return "up"
    if slope < -threshold:
        return "down"
    return "stable"


def parse_days(period: str, default: int = DEFAULT_DAYS) -> int:
    """Parse "7d" style periods into days. Unparseable or zero yields ``default``."""
    match = _DAYS_PATTERN.match(period or "")
    if not match:
        return default
    days = int(match.group(1))
    return days or default


def mean(values: Sequence[float], default: float = 0.0) -> float:
    return sum(values) / len(values) if values else default
