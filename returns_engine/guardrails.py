"""
Guardrails for the portfolio engine - validation and safety checks.
Cross-ticker alignment checks before analysis, numeric sanity checks after.
"""

import math
import warnings
from typing import Any, Dict, List, Optional, Sequence

from returns_engine.dates import to_local_date
from returns_engine.models import IndexSeries, InstrumentSeries, PortfolioReturnResult


class DataQualityError(ValueError):
    """Raised when data quality issues require user intervention."""
    pass


class DataQualityWarning(UserWarning):
    """Raised when data quality issues should be noted but don't block execution."""
    pass


def validate_aligned_start_dates(series: Sequence[InstrumentSeries]) -> None:
    """
    Ensure every instrument starts on the same calendar date.

    Dates are compared as UTC calendar dates of the first timestamp;
    instruments without data are skipped.

    Args:
        series: Instrument series in request order

    Raises:
        DataQualityError: If start dates differ; the message names the
            latest start date so the caller knows where to trim
    """
    start_dates = [s.start_date for s in series if len(s) > 0]
    if len(set(start_dates)) <= 1:
        return

    latest = max(start_dates)
    raise DataQualityError(
        f"Stock data has different start dates. Please align them. "
        f"The latest start date is {latest.isoformat()}."
    )


def validate_index_alignment(series: Sequence[InstrumentSeries], index: Optional[IndexSeries]) -> None:
    """
    Ensure the benchmark lines up with every instrument.

    Lengths must match; when the index carries timestamps, its first
    calendar date must match each instrument's start date too.

    Raises:
        DataQualityError: If the index is misaligned with any instrument
    """
    if index is None:
        return

    for s in series:
        if len(s) == 0:
            continue

        if len(index) != len(s):
            raise DataQualityError(
                f"Prices and index prices must have the same size "
                f"({s.ticker}: {len(s)} != {len(index)})"
            )

        if index.timestamps and to_local_date(index.timestamps[0]) != s.start_date:
            raise DataQualityError(
                f"Index starts on {to_local_date(index.timestamps[0]).isoformat()} "
                f"but {s.ticker} starts on {s.start_date.isoformat()}"
            )


def validate_sufficient_data(series: Sequence[InstrumentSeries], min_points: int = 2) -> List[str]:
    """
    Check that each instrument has enough observations for return statistics.

    Empty instruments are tolerated (they produce a zero result) and are
    reported back; instruments with some data but fewer than min_points
    cannot be analyzed.

    Returns:
        Tickers with no data

    Raises:
        DataQualityError: If an instrument has between 1 and min_points - 1 observations
    """
    empty = []
    for s in series:
        if len(s) == 0:
            empty.append(s.ticker)
        elif len(s) < min_points:
            raise DataQualityError(
                f"Insufficient data for {s.ticker}: have {len(s)} observations, "
                f"need at least {min_points}"
            )
    return empty


def check_price_integrity(series: InstrumentSeries, max_move: float = 0.5) -> List[str]:
    """
    Detect suspicious observations in one instrument's prices.

    Flags non-positive prices and moves larger than max_move between
    consecutive observations. Findings are also emitted as DataQualityWarning.

    Returns:
        List of integrity warnings
    """
    findings = []
    prices = series.prices

    for i, price in enumerate(prices):
        if price <= 0:
            findings.append(f"{series.ticker}: non-positive price {price} at index {i}")

    for i in range(1, len(prices)):
        prev = prices[i - 1]
        if prev <= 0:
            continue
        change = abs(prices[i] / prev - 1)
        if change > max_move:
            day = to_local_date(series.timestamps[i]).isoformat()
            findings.append(
                f"{series.ticker}: large price movement on {day}: "
                f"{change:.1%} change ({prev:.2f} -> {prices[i]:.2f})"
            )

    for finding in findings:
        warnings.warn(finding, DataQualityWarning)

    return findings


def validate_numeric_outputs(result: PortfolioReturnResult) -> None:
    """
    Validate that headline figures are finite.

    Args:
        result: Assembled portfolio result

    Raises:
        DataQualityError: If NaN or infinite values found
    """
    def check_value(value: Any, path: str):
        if value is None:
            return

        if isinstance(value, (int, float)):
            if math.isnan(value):
                raise DataQualityError(f"NaN value found in {path}")
            if math.isinf(value):
                raise DataQualityError(f"Infinite value found in {path}")

    for name in (
        'portfolio_price_return',
        'portfolio_total_return',
        'portfolio_cagr',
        'portfolio_volatility',
        'portfolio_sharpe_ratio',
        'portfolio_max_drawdown',
    ):
        check_value(getattr(result, name), name)

    for r in result.stock_returns:
        for name in ('price_return', 'total_return', 'cagr', 'volatility', 'sharpe_ratio', 'beta', 'max_drawdown'):
            check_value(getattr(r, name), f'{r.ticker}.{name}')

    for pair, value in (result.correlations or {}).items():
        check_value(value, f'correlations.{pair[0]}/{pair[1]}')


def run_input_guardrails(
    series: Sequence[InstrumentSeries],
    index: Optional[IndexSeries] = None
) -> Dict[str, Any]:
    """
    Run all pre-analysis checks and compile results.

    Returns:
        Dictionary with empty tickers and integrity warnings

    Raises:
        DataQualityError: If critical issues found that require user intervention
    """
    validate_aligned_start_dates(series)
    validate_index_alignment(series, index)
    empty = validate_sufficient_data(series)

    integrity = []
    for s in series:
        integrity.extend(check_price_integrity(s))

    return {
        'empty_tickers': empty,
        'warnings': integrity,
    }
