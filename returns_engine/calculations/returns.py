"""
Returns calculation utilities.
Pure functions for price/total returns, CAGR, periodic and cumulative return
series, and the dividend-reinvestment amount simulation.
"""

import logging
from typing import List, Optional, Sequence

from returns_engine.calculations.dividends import (
    dividend_sums_by_interval,
    dividends_between,
    total_dividends,
)
from returns_engine.dates import SECONDS_PER_YEAR
from returns_engine.models import Amount, CAGR, DividendEvent, ReturnRate


logger = logging.getLogger(__name__)


class ReturnsError(ValueError):
    """Raised when returns calculation fails."""
    pass


def _validate_prices_for_return(prices: Sequence[float]) -> None:
    if prices is None or len(prices) < 2:
        raise ReturnsError("At least two prices are required")


def _validate_series(prices: Sequence[float], timestamps: Sequence[int]) -> None:
    if not prices or not timestamps:
        raise ReturnsError("Prices and timestamps cannot be None or empty")

    if len(prices) != len(timestamps):
        raise ReturnsError("Prices and timestamps must have the same size")


def price_return(prices: Sequence[float]) -> ReturnRate:
    """
    Calculate price return from the first to the last price.

    Formula: (P_last - P_0) / P_0

    Args:
        prices: At least two prices in chronological order

    Returns:
        ReturnRate over the whole series

    Raises:
        ReturnsError: If fewer than two prices are supplied
    """
    _validate_prices_for_return(prices)
    return ReturnRate(prices[0], prices[-1])


def total_return(
    prices: Sequence[float],
    timestamps: Sequence[int],
    dividends: Optional[Sequence[DividendEvent]]
) -> ReturnRate:
    """
    Calculate total return with dividend cash added to the end price.

    Formula: (P_last + D - P_0) / P_0, where D is the per-share dividend
    total paid after the first observation and up to the last one.
    Dividends are not reinvested here; see calculate_cumulative_amounts.

    Args:
        prices: At least two prices in chronological order
        timestamps: Timestamps aligned with prices
        dividends: Dividend events; None or empty gives the price return

    Returns:
        ReturnRate over the whole series

    Raises:
        ReturnsError: If fewer than two prices or misaligned timestamps
    """
    _validate_prices_for_return(prices)

    if not dividends:
        return price_return(prices)

    _validate_series(prices, timestamps)

    paid = total_dividends(dividends_between(dividends, timestamps[0], timestamps[-1]))
    return ReturnRate(prices[0], prices[-1] + paid)


def years_between(timestamps: Sequence[int]) -> float:
    """
    Whole years between first and last timestamp, at least 1.

    Formula: max(1, floor((ts_last - ts_0) / (365 * 24 * 3600)))
    No leap-year adjustment.
    """
    if timestamps is None or len(timestamps) < 2:
        return 1

    years = (timestamps[-1] - timestamps[0]) // SECONDS_PER_YEAR
    return max(1, years)


def cagr(start_value: float, end_value: float, years: float) -> CAGR:
    """
    Calculate compound annual growth rate.

    Formula: (End / Start)^(1/years) - 1

    Args:
        start_value: Value at start, must be positive
        end_value: Value at end, must be positive
        years: Holding period in years, must be positive

    Returns:
        CAGR value type

    Raises:
        ReturnsError: If any input is non-positive
    """
    if start_value <= 0:
        raise ReturnsError("Start value must be positive")
    if end_value <= 0:
        raise ReturnsError("End value must be positive")
    if years <= 0:
        raise ReturnsError("Years must be positive")

    return CAGR(start_value, end_value, years)


def periodic_return_rates(
    prices: Sequence[float],
    timestamps: Sequence[int],
    dividends: Optional[Sequence[DividendEvent]] = None
) -> List[ReturnRate]:
    """
    Calculate return between each consecutive pair of observations.

    Formula: r_i = (P_i - P_{i-1} + D_i) / P_{i-1}
    where D_i is the dividend cash per share paid in (t_{i-1}, t_i]
    (0 when dividends are not supplied).

    Args:
        prices: Prices in chronological order
        timestamps: Timestamps aligned with prices
        dividends: Optional dividend events

    Returns:
        List of ReturnRate, one fewer than prices

    Raises:
        ReturnsError: If inputs are empty, misaligned, or a price is zero
    """
    _validate_series(prices, timestamps)

    paid = dividend_sums_by_interval(timestamps, dividends)

    rates = []
    for i in range(1, len(prices)):
        prev = prices[i - 1]
        if prev == 0:
            raise ReturnsError(f"Zero price at index {i - 1} not allowed for periodic returns")
        rates.append(ReturnRate(prev, prices[i] + paid[i]))

    return rates


def cumulative_returns(
    prices: Sequence[float],
    timestamps: Sequence[int],
    dividends: Optional[Sequence[DividendEvent]] = None
) -> List[ReturnRate]:
    """
    Calculate return from the first observation to every observation.

    Formula: R_i = (P_i + D_(0,i] - P_0) / P_0
    Dividends are added as cash in the same way as total_return, so the last
    entry equals total_return and the first entry is always 0.

    Args:
        prices: Prices in chronological order
        timestamps: Timestamps aligned with prices
        dividends: Optional dividend events

    Returns:
        List of ReturnRate, same length as prices

    Raises:
        ReturnsError: If inputs are empty/misaligned or the start price is not positive
    """
    _validate_series(prices, timestamps)

    start_price = prices[0]
    if start_price <= 0:
        raise ReturnsError("Start price must be positive for cumulative return calculation")

    paid = dividend_sums_by_interval(timestamps, dividends)

    rates = []
    accrued = 0.0
    for price, cash in zip(prices, paid):
        accrued += cash
        rates.append(ReturnRate(start_price, price + accrued))

    return rates


def cumulative_price_returns(prices: Sequence[float]) -> List[ReturnRate]:
    """
    Price-only cumulative returns; no timestamps needed.

    Raises:
        ReturnsError: If prices are empty or the start price is not positive
    """
    if not prices:
        raise ReturnsError("Prices cannot be None or empty")

    if prices[0] <= 0:
        raise ReturnsError("Start price must be positive for cumulative return calculation")

    return [ReturnRate(prices[0], p) for p in prices]


def calculate_cumulative_amounts(
    include_dividends: bool,
    prices: Sequence[float],
    timestamps: Sequence[int],
    dividends: Optional[Sequence[DividendEvent]],
    initial_amount: float,
    weight: float = 1.0
) -> List[Amount]:
    """
    Simulate holding value over time with dividend reinvestment.

    Buys (initial_amount * weight) / P_0 shares at the first observation.
    At every later observation i, dividend cash for the events paid in
    (t_{i-1}, t_i] is computed on the shares held before the event and
    reinvested at P_i. Without dividends the share count stays constant.

    Args:
        include_dividends: Whether to reinvest dividends at all
        prices: Prices in chronological order
        timestamps: Timestamps aligned with prices
        dividends: Dividend events
        initial_amount: Total amount to invest; <= 0 disables tracking
        weight: Fraction of initial_amount allocated to this instrument

    Returns:
        List of Amount, one per observation (empty when initial_amount <= 0)

    Raises:
        ReturnsError: If inputs are empty/misaligned, weight or start price not positive
    """
    if initial_amount <= 0:
        return []

    _validate_series(prices, timestamps)

    if weight <= 0:
        raise ReturnsError(f"Weight must be positive, got {weight}")

    start_price = prices[0]
    if start_price <= 0:
        raise ReturnsError("Start price must be positive for amount simulation")

    paid = dividend_sums_by_interval(timestamps, dividends if include_dividends else None)

    shares = (initial_amount * weight) / start_price
    pending_cash = 0.0
    received = 0.0

    amounts = [Amount(shares, start_price, 0.0)]

    for i in range(1, len(prices)):
        price = prices[i]

        if paid[i] > 0:
            cash = shares * paid[i]
            pending_cash += cash
            received += cash

        # Reinvest at the current price; a non-positive price defers the purchase
        if pending_cash > 0 and price > 0:
            shares += pending_cash / price
            pending_cash = 0.0

        amounts.append(Amount(shares, price, received))

    logger.debug(
        f"calculate_cumulative_amounts: start={amounts[0].amount():.4f} "
        f"end={amounts[-1].amount():.4f} dividend_cash={received:.4f}"
    )

    return amounts


def max_value(values: Sequence[float]) -> float:
    """Largest value, 0.0 for an empty sequence."""
    if not values:
        return 0.0

    return max(values)


def rates_of(returns: Sequence[ReturnRate]) -> List[float]:
    """Unwrap ReturnRate values into plain floats."""
    return [r.rate() for r in returns]
