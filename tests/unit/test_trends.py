"""Unit tests for time-series helpers."""

import pytest

from orbit_core.analysis.trends import classify_slope, linear_trend, mean, parse_days


class TestLinearTrend:
    def test_constant_series_is_flat(self):
        assert linear_trend([5, 5, 5, 5]) == 0.0

    def test_exact_line(self):
        assert linear_trend([1, 3, 5, 7]) == pytest.approx(2.0)

    def test_too_few_points(self):
        assert linear_trend([]) == 0.0
        assert linear_trend([42]) == 0.0

    def test_late_jump_reads_as_up(self):
        """A single jump at the end of a flat week is an upward trend."""
        assert classify_slope(linear_trend([100] * 6 + [200])) == "up"


class TestClassifySlope:
    @pytest.mark.parametrize(
        "slope, expected",
        [(0.06, "up"), (0.05, "stable"), (-0.05, "stable"), (-0.06, "down")],
    )
    def test_threshold_is_exclusive(self, slope, expected):
        assert classify_slope(slope) == expected


class TestParseDays:
    @pytest.mark.parametrize(
        "period, expected",
        [("7d", 7), ("30D", 30), (" 14 ", 14), ("0d", 7), ("week", 7), ("", 7)],
    )
    def test_periods(self, period, expected):
        assert parse_days(period) == expected


def test_mean_default():
    assert mean([]) == 0.0
    assert mean([], default=0.7) == 0.7
    assert mean([1, 2, 3]) == 2.0
