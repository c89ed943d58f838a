"""
Tests for drawdown calculation utilities.
Uses crafted series with known drawdown patterns for verification.
"""

import pytest

from returns_engine.calculations.drawdown import (
    max_drawdowns,
    max_drawdown,
    DrawdownError
)


class TestMaxDrawdowns:
    """Tests for max_drawdowns function."""

    def test_peak_trough_recovery(self):
        """Drawdown is measured from the running peak."""
        # 100 -> 120 (peak) -> 90 (trough) -> 125 (recovery)
        prices = [100.0, 110.0, 120.0, 110.0, 90.0, 100.0, 115.0, 125.0]

        drawdowns = max_drawdowns(prices)

        assert len(drawdowns) == len(prices)
        assert drawdowns[:3] == [0.0, 0.0, 0.0]
        assert drawdowns[3] == pytest.approx(10.0 / 120.0)
        assert drawdowns[4] == pytest.approx(0.25)
        assert drawdowns[7] == 0.0

    def test_monotonic_increase_has_no_drawdown(self):
        """Rising prices never draw down."""
        assert max_drawdowns([1.0, 2.0, 3.0, 3.5, 10.0]) == [0.0] * 5

    def test_drawdowns_are_non_negative_magnitudes(self):
        """Drawdowns are reported as positive fractions in [0, 1]."""
        drawdowns = max_drawdowns([50.0, 20.0, 70.0, 10.0, 35.0])

        assert all(0.0 <= d <= 1.0 for d in drawdowns)
        assert drawdowns[3] == pytest.approx(60.0 / 70.0)

    def test_single_price(self):
        """A single price has no drawdown."""
        assert max_drawdowns([42.0]) == [0.0]

    def test_zero_peak(self):
        """A zero running peak gives zero drawdown."""
        assert max_drawdowns([0.0, 0.0, 5.0]) == [0.0, 0.0, 0.0]

    def test_empty_rejected(self):
        """Empty input raises."""
        with pytest.raises(DrawdownError, match="at least 1 price"):
            max_drawdowns([])


class TestMaxDrawdown:
    """Tests for max_drawdown function."""

    def test_largest_drawdown(self):
        prices = [100.0, 120.0, 90.0, 125.0, 100.0]
        assert max_drawdown(prices) == pytest.approx(0.25)

    def test_no_drawdown(self):
        assert max_drawdown([1.0, 2.0]) == 0.0
