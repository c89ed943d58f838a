"""
Tests for dividend processing utilities.
"""

import pytest

from returns_engine.calculations.dividends import (
    total_dividends,
    filter_by_date_range,
    dividends_between,
    dividend_sums_by_interval,
    dividend_yield,
    reinvested_value,
    DividendError
)
from returns_engine.models import DividendEvent


DAY = 24 * 60 * 60
T0 = 1704153600  # 2024-01-02 00:00 UTC


@pytest.fixture
def quarterly():
    """Four dividends, one every 90 days."""
    return [DividendEvent(T0 + i * 90 * DAY, 0.25) for i in range(4)]


class TestTotals:
    """Tests for total_dividends and dividend_yield."""

    def test_total(self, quarterly):
        assert total_dividends(quarterly) == pytest.approx(1.0)

    def test_total_empty(self):
        assert total_dividends([]) == 0.0
        assert total_dividends(None) == 0.0

    def test_yield(self, quarterly):
        """Yield is total over average price."""
        assert dividend_yield(quarterly, 50.0) == pytest.approx(0.02)

    def test_yield_guards(self, quarterly):
        """Non-positive price or no dividends give 0."""
        assert dividend_yield(quarterly, 0.0) == 0.0
        assert dividend_yield(quarterly, -10.0) == 0.0
        assert dividend_yield([], 50.0) == 0.0


class TestFilters:
    """Tests for date-range filters."""

    def test_filter_inclusive(self, quarterly):
        """Both bounds are inclusive."""
        kept = filter_by_date_range(quarterly, T0, T0 + 90 * DAY)
        assert [d.timestamp for d in kept] == [T0, T0 + 90 * DAY]

    def test_between_excludes_start(self, quarterly):
        """The window is (after, until]."""
        kept = dividends_between(quarterly, T0, T0 + 90 * DAY)
        assert [d.timestamp for d in kept] == [T0 + 90 * DAY]

    def test_empty_input(self):
        assert filter_by_date_range(None, T0, T0 + DAY) == []
        assert dividends_between([], T0, T0 + DAY) == []


class TestDividendSumsByInterval:
    """Tests for mapping dividends onto price indices."""

    def test_exact_and_between_dates(self):
        """A dividend lands on the first observation at or after its date."""
        timestamps = [T0, T0 + DAY, T0 + 3 * DAY, T0 + 4 * DAY]
        dividends = [
            DividendEvent(T0 + DAY, 1.0),            # exact match, index 1
            DividendEvent(T0 + 2 * DAY, 0.5),        # weekend gap, index 2
            DividendEvent(T0 + 3 * DAY - 60, 0.25),  # also index 2
        ]

        assert dividend_sums_by_interval(timestamps, dividends) == pytest.approx([0.0, 1.0, 0.75, 0.0])

    def test_outside_series_ignored(self):
        """Dividends on/before the first date or after the last are dropped."""
        timestamps = [T0, T0 + DAY]
        dividends = [
            DividendEvent(T0, 1.0),
            DividendEvent(T0 - DAY, 1.0),
            DividendEvent(T0 + 5 * DAY, 1.0),
        ]

        assert dividend_sums_by_interval(timestamps, dividends) == [0.0, 0.0]

    def test_unsorted_input(self):
        """Events may arrive in any order."""
        timestamps = [T0, T0 + DAY, T0 + 2 * DAY]
        dividends = [DividendEvent(T0 + 2 * DAY, 2.0), DividendEvent(T0 + DAY, 1.0)]

        assert dividend_sums_by_interval(timestamps, dividends) == [0.0, 1.0, 2.0]


class TestReinvestedValue:
    """Tests for reinvested_value function."""

    def test_single_dividend(self):
        """1.0 bought at 50 and valued at 60 is worth 1.2."""
        prices = [40.0, 50.0, 60.0]
        timestamps = [T0, T0 + DAY, T0 + 2 * DAY]
        dividends = [DividendEvent(T0 + DAY, 1.0)]

        assert reinvested_value(dividends, prices, timestamps) == pytest.approx(1.2)

    def test_after_last_uses_last_price(self):
        prices = [40.0, 50.0]
        timestamps = [T0, T0 + DAY]

        assert reinvested_value([DividendEvent(T0 + 9 * DAY, 1.0)], prices, timestamps) == pytest.approx(1.0)

    def test_empty_inputs(self):
        assert reinvested_value([], [1.0], [T0]) == 0.0
        assert reinvested_value([DividendEvent(T0, 1.0)], [], []) == 0.0

    def test_misaligned_rejected(self):
        with pytest.raises(DividendError, match="same size"):
            reinvested_value([DividendEvent(T0, 1.0)], [1.0, 2.0], [T0])
