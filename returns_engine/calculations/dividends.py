"""
Dividend processing utilities.
Pure functions for dividend totals, yields and reinvestment estimates.
"""

import logging
from typing import List, Optional, Sequence

from returns_engine.models import DividendEvent


logger = logging.getLogger(__name__)


class DividendError(ValueError):
    """Raised when dividend calculation fails."""
    pass


def total_dividends(dividends: Optional[Sequence[DividendEvent]]) -> float:
    """
    Sum per-share dividend amounts.

    Args:
        dividends: Dividend events (None or empty allowed)

    Returns:
        Total amount per share, 0.0 when there are no dividends
    """
    if not dividends:
        return 0.0

    return float(sum(d.amount for d in dividends))


def filter_by_date_range(
    dividends: Optional[Sequence[DividendEvent]],
    start: int,
    end: int
) -> List[DividendEvent]:
    """
    Keep dividends paid between start and end (both inclusive, epoch seconds).
    """
    if not dividends:
        return []

    return [d for d in dividends if start <= d.timestamp <= end]


def dividends_between(
    dividends: Optional[Sequence[DividendEvent]],
    after: int,
    until: int
) -> List[DividendEvent]:
    """
    Keep dividends paid in the half-open window (after, until].

    This is the window a dividend is attributed to when it falls between two
    consecutive price observations.
    """
    if not dividends:
        return []

    return [d for d in dividends if after < d.timestamp <= until]


def dividend_sums_by_interval(
    timestamps: Sequence[int],
    dividends: Optional[Sequence[DividendEvent]]
) -> List[float]:
    """
    Map dividends onto price indices.

    Entry i holds the per-share dividend total paid in
    (timestamps[i-1], timestamps[i]]. Entry 0 is always 0.0: dividends at or
    before the first observation, or after the last, are not attributed.

    Args:
        timestamps: Strictly increasing price timestamps
        dividends: Dividend events in any order

    Returns:
        List of per-share dividend sums, same length as timestamps
    """
    sums = [0.0] * len(timestamps)
    if not dividends or len(timestamps) < 2:
        return sums

    ordered = sorted(dividends, key=lambda d: d.timestamp)
    idx = 1
    for dividend in ordered:
        if dividend.timestamp <= timestamps[0]:
            continue
        # Advance to the first observation at or after the dividend date
        while idx < len(timestamps) and timestamps[idx] < dividend.timestamp:
            idx += 1
        if idx >= len(timestamps):
            break
        sums[idx] += dividend.amount

    return sums


def dividend_yield(
    dividends: Optional[Sequence[DividendEvent]],
    average_price: float
) -> float:
    """
    Calculate dividend yield.

    Formula: total_dividends / average_price

    Returns:
        Yield as decimal, 0.0 if there are no dividends or the price is not positive
    """
    if not dividends or average_price <= 0:
        return 0.0

    return total_dividends(dividends) / average_price


def _price_at_or_after(target: int, prices: Sequence[float], timestamps: Sequence[int]) -> float:
    for price, ts in zip(prices, timestamps):
        if ts >= target:
            return price
    # Paid after the last observation
    return prices[-1]


def reinvested_value(
    dividends: Optional[Sequence[DividendEvent]],
    prices: Sequence[float],
    timestamps: Sequence[int]
) -> float:
    """
    Estimate the end value of reinvesting each dividend once.

    For every dividend, buy amount / price shares at the first observation on
    or after the dividend date (the last price if none), and value those
    shares at the final price. This is a what-if estimate; it does not
    compound the extra shares into later dividends.

    Args:
        dividends: Dividend events (per share)
        prices: Price series in chronological order
        timestamps: Timestamps aligned with prices

    Returns:
        Total value contributed by reinvested dividends, 0.0 if any input is empty

    Raises:
        DividendError: If prices and timestamps differ in length
    """
    if not dividends or not prices or not timestamps:
        return 0.0

    if len(prices) != len(timestamps):
        raise DividendError("Prices and timestamps must have the same size")

    final_price = prices[-1]
    total = 0.0

    for dividend in dividends:
        price = _price_at_or_after(dividend.timestamp, prices, timestamps)
        if price > 0:
            shares_bought = dividend.amount / price
            total += shares_bought * final_price
        else:
            logger.warning(f"Skipping dividend at {dividend.timestamp}: non-positive price {price}")

    return total
