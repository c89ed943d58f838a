"""
Stock return assembler - composes all per-ticker calculations into one result.
Pure function over one ticker's aligned series plus an optional benchmark.
"""

import logging
import math
from typing import Dict, List, Optional, Sequence

from returns_engine.calculations.beta import beta as calculate_beta
from returns_engine.calculations.drawdown import max_drawdowns
from returns_engine.calculations.returns import (
    calculate_cumulative_amounts,
    cagr as calculate_cagr,
    cumulative_price_returns,
    cumulative_returns,
    max_value,
    periodic_return_rates,
    price_return,
    rates_of,
    total_return,
    years_between,
)
from returns_engine.calculations.volatility import sharpe_ratio, volatility
from returns_engine.dates import extract_dates
from returns_engine.models import (
    DividendEvent,
    IndexSeries,
    InstrumentReturnResult,
    InstrumentSeries,
)
from returns_engine.portfolio_analyzer import resolve_weights


logger = logging.getLogger(__name__)


class StockReturnError(ValueError):
    """Raised when a per-ticker result cannot be assembled."""
    pass


def calculate_stock_return(
    ticker: str,
    prices: Sequence[float],
    timestamps: Sequence[int],
    dividends: Optional[Sequence[DividendEvent]] = None,
    index_prices: Optional[Sequence[float]] = None,
    initial_amount: float = 0.0,
    weight: float = 1.0,
    include_dividends: bool = False,
    risk_free_rate: float = 0.0
) -> InstrumentReturnResult:
    """
    Calculate all return and risk figures for one ticker.

    Args:
        ticker: Stock ticker symbol
        prices: Prices in chronological order
        timestamps: Epoch-second timestamps aligned with prices
        dividends: Dividend events for the ticker
        index_prices: Benchmark prices aligned with prices; beta is skipped when None
        initial_amount: Total amount invested across the portfolio (0 disables amount tracking)
        weight: Fraction of initial_amount allocated to this ticker
        include_dividends: Whether dividends count toward returns and reinvestment
        risk_free_rate: Per-period risk-free rate for the Sharpe ratio

    Returns:
        InstrumentReturnResult; a zero-valued result when prices are empty

    Raises:
        StockReturnError: If weight is not positive, prices and index prices
            differ in length, or prices and timestamps are misaligned
    """
    if weight is None or not math.isfinite(weight) or weight <= 0:
        raise StockReturnError(f"{ticker}: weight must be positive, got {weight}")

    allocated = initial_amount * weight

    if not prices:
        logger.error(f"{ticker} prices is empty")
        return InstrumentReturnResult.zero(
            ticker,
            weight=weight,
            initial_allocated_amount=allocated,
            beta=0.0 if index_prices is not None else None
        )

    if index_prices is not None and len(prices) != len(index_prices):
        raise StockReturnError("Prices and index prices must have the same size")

    if timestamps is None or len(prices) != len(timestamps):
        raise StockReturnError(f"{ticker}: prices and timestamps must have the same size")

    effective_dividends = list(dividends or []) if include_dividends else []

    # Returns
    price_rate = price_return(prices).rate()
    total_rate = total_return(prices, timestamps, effective_dividends).rate()

    # CAGR over whole years, total-return end value
    start_price = prices[0]
    end_value = start_price * total_rate + start_price
    years = years_between(timestamps)
    cagr = _guarded_cagr(ticker, start_price, end_value, years)

    # Risk
    periodic = periodic_return_rates(prices, timestamps, effective_dividends)
    vol = volatility(periodic)
    sharpe = _guarded_sharpe(ticker, periodic, vol, risk_free_rate)
    logger.debug(f"calculate_stock_return.ticker:{ticker} volatility:{vol} sharpe:{sharpe}")

    # Cumulative curves with and without dividends
    cumulative = rates_of(cumulative_returns(prices, timestamps, effective_dividends))
    cumulative_price = rates_of(cumulative_price_returns(prices))

    drawdowns = max_drawdowns(prices)

    beta_value = None
    if index_prices is not None:
        index_rates = rates_of(cumulative_price_returns(index_prices))
        beta_value = calculate_beta(cumulative_price, index_rates)

    amounts = calculate_cumulative_amounts(
        include_dividends,
        prices,
        timestamps,
        effective_dividends,
        initial_amount,
        weight
    )

    return InstrumentReturnResult(
        ticker=ticker,
        price_return=price_rate,
        total_return=total_rate,
        cagr=cagr,
        volatility=vol,
        sharpe_ratio=sharpe,
        beta=beta_value,
        max_drawdown=max_value(drawdowns),
        weight=weight,
        initial_allocated_amount=allocated,
        prices=list(prices),
        timestamps=list(timestamps),
        dividends=effective_dividends,
        dates=extract_dates(timestamps),
        max_drawdowns=drawdowns,
        periodic_return_rates=rates_of(periodic),
        cumulative_returns=cumulative,
        cumulative_price_returns=cumulative_price,
        amount_changes=[a.amount() for a in amounts],
        dividend_cash=[a.cash for a in amounts],
    )


def _guarded_cagr(ticker: str, start_value: float, end_value: float, years: float) -> float:
    if years <= 0 or start_value <= 0 or end_value <= 0:
        logger.warning(
            f"{ticker}: CAGR undefined (start={start_value}, end={end_value}, years={years}), using 0"
        )
        return 0.0
    return calculate_cagr(start_value, end_value, years).rate()


def _guarded_sharpe(ticker: str, periodic, vol: float, risk_free_rate: float) -> float:
    if vol == 0:
        logger.warning(f"{ticker}: zero volatility, Sharpe ratio set to 0")
        return 0.0
    return sharpe_ratio(periodic, risk_free_rate)


def calculate_series_return(
    series: InstrumentSeries,
    index: Optional[IndexSeries] = None,
    initial_amount: float = 0.0,
    weight: float = 1.0,
    include_dividends: bool = False,
    risk_free_rate: float = 0.0
) -> InstrumentReturnResult:
    """Calculate a ticker result from an InstrumentSeries."""
    return calculate_stock_return(
        ticker=series.ticker,
        prices=series.prices,
        timestamps=series.timestamps,
        dividends=series.dividends,
        index_prices=index.prices if index is not None else None,
        initial_amount=initial_amount,
        weight=weight,
        include_dividends=include_dividends,
        risk_free_rate=risk_free_rate
    )


def calculate_stock_returns(
    tickers: Sequence[str],
    series_by_ticker: Dict[str, InstrumentSeries],
    index: Optional[IndexSeries] = None,
    weights: Optional[Sequence[float]] = None,
    initial_amount: float = 0.0,
    include_dividends: bool = False,
    risk_free_rate: float = 0.0
) -> List[InstrumentReturnResult]:
    """
    Calculate results for several tickers sequentially, in ticker order.

    Weights align with tickers by position; no weights means 1/N each.

    Raises:
        StockReturnError: If a ticker has no series
        PortfolioAnalyzerError: If weights do not match tickers or are not positive
    """
    resolved = resolve_weights(len(tickers), weights)

    results = []
    for i, ticker in enumerate(tickers):
        series = series_by_ticker.get(ticker)
        if series is None:
            raise StockReturnError(f"No price data supplied for ticker {ticker}")

        results.append(calculate_series_return(
            series,
            index=index,
            initial_amount=initial_amount,
            weight=resolved[i],
            include_dividends=include_dividends,
            risk_free_rate=risk_free_rate
        ))

    return results
