"""
Orchestrated portfolio job - request to PortfolioReturnResult.
Validates inputs, runs the per-ticker assembler, aggregates, persists JSON.
"""

import json
import logging
import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from returns_engine.calculations.drawdown import max_drawdowns
from returns_engine.calculations.returns import max_value
from returns_engine.guardrails import run_input_guardrails, validate_numeric_outputs
from returns_engine.models import (
    IndexSeries,
    InstrumentReturnResult,
    InstrumentSeries,
    PortfolioReturnResult,
)
from returns_engine.portfolio_analyzer import (
    correlation_matrix,
    portfolio_cagr,
    portfolio_price_return,
    portfolio_total_return,
    portfolio_value_curve,
    resolve_weights,
    sharpe_ratio,
    weighted_series,
    weighted_volatility,
)
from returns_engine.stock_returns import calculate_series_return


logger = logging.getLogger(__name__)


class PortfolioJobError(ValueError):
    """Raised when a portfolio job cannot run."""
    pass


@dataclass(frozen=True)
class PortfolioRequest:
    """
    What to analyze: tickers, their weights and the simulation settings.

    Weights align with tickers by position; an empty list means 1/N each.
    """
    tickers: List[str]
    weights: List[float] = field(default_factory=list)
    initial_amount: float = 0.0
    include_dividends: bool = False
    risk_free_rate: float = 0.0

    def __post_init__(self):
        object.__setattr__(self, 'tickers', [str(t).strip().upper() for t in self.tickers or []])
        object.__setattr__(self, 'weights', [float(w) for w in self.weights or []])

        if not self.tickers:
            raise PortfolioJobError("At least one ticker is required")

        if any(not t for t in self.tickers):
            raise PortfolioJobError("Tickers must be non-empty strings")

        if len(set(self.tickers)) != len(self.tickers):
            raise PortfolioJobError(f"Duplicate tickers in request: {self.tickers}")

        if self.weights and len(self.weights) != len(self.tickers):
            raise PortfolioJobError(
                f"Weights must match tickers ({len(self.weights)} != {len(self.tickers)})"
            )

        if any(w <= 0 for w in self.weights):
            raise PortfolioJobError("Weights must be positive")

        if self.initial_amount < 0 or not math.isfinite(self.initial_amount):
            raise PortfolioJobError(f"Initial amount must be >= 0, got {self.initial_amount}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PortfolioRequest':
        """Build a request from a parsed YAML/JSON mapping."""
        if not isinstance(data, dict) or 'tickers' not in data:
            raise PortfolioJobError("Request must be a mapping with a 'tickers' list")

        return cls(
            tickers=data['tickers'],
            weights=data.get('weights') or [],
            initial_amount=float(data.get('initial_amount', 0.0) or 0.0),
            include_dividends=bool(data.get('include_dividends', False)),
            risk_free_rate=float(data.get('risk_free_rate', 0.0) or 0.0),
        )


def analyze_portfolio(
    request: PortfolioRequest,
    series_by_ticker: Dict[str, InstrumentSeries],
    index: Optional[IndexSeries] = None,
    max_workers: int = 1,
    include_correlations: bool = True
) -> PortfolioReturnResult:
    """
    Run the full analysis for a portfolio request.

    Per-ticker results are independent; with max_workers > 1 they are
    computed in a thread pool and collected back in request order before
    aggregation.

    Args:
        request: Tickers, weights and simulation settings
        series_by_ticker: Price series keyed by ticker (keys matched case-insensitively)
        index: Optional benchmark for beta
        max_workers: Thread pool size for per-ticker work (1 = sequential)
        include_correlations: Whether to compute pairwise correlations

    Returns:
        PortfolioReturnResult

    Raises:
        PortfolioJobError: If a requested ticker has no series
        DataQualityError: If the series are not aligned
        ValueError: Any calculation precondition failure, unchanged
    """
    by_ticker = {str(k).strip().upper(): v for k, v in series_by_ticker.items()}

    missing = [t for t in request.tickers if t not in by_ticker]
    if missing:
        raise PortfolioJobError(f"No price data supplied for tickers: {missing}")

    series = [_with_ticker(by_ticker[t], t) for t in request.tickers]

    checks = run_input_guardrails(series, index)
    for ticker in checks['empty_tickers']:
        logger.warning(f"{ticker}: no price data, reporting zero result")

    weights = resolve_weights(len(request.tickers), request.weights)

    start_time = datetime.now()
    stock_returns = _calculate_all(request, series, weights, index, max_workers)
    logger.info(
        f"analyze_portfolio: {len(stock_returns)} tickers in "
        f"{(datetime.now() - start_time).total_seconds():.3f}s"
    )

    result = _aggregate(request, stock_returns, weights, include_correlations)
    validate_numeric_outputs(result)

    return result


def _with_ticker(series: InstrumentSeries, ticker: str) -> InstrumentSeries:
    if series.ticker == ticker:
        return series
    return replace(series, ticker=ticker)


def _calculate_all(
    request: PortfolioRequest,
    series: Sequence[InstrumentSeries],
    weights: Sequence[float],
    index: Optional[IndexSeries],
    max_workers: int
) -> List[InstrumentReturnResult]:
    def run(i: int) -> InstrumentReturnResult:
        return calculate_series_return(
            series[i],
            index=index,
            initial_amount=request.initial_amount,
            weight=weights[i],
            include_dividends=request.include_dividends,
            risk_free_rate=request.risk_free_rate
        )

    if max_workers is None or max_workers <= 1 or len(series) == 1:
        return [run(i) for i in range(len(series))]

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        # map preserves input order
        return list(executor.map(run, range(len(series))))


def _aggregate(
    request: PortfolioRequest,
    stock_returns: List[InstrumentReturnResult],
    weights: List[float],
    include_correlations: bool
) -> PortfolioReturnResult:
    total = portfolio_total_return(stock_returns, weights)
    volatility = weighted_volatility(stock_returns, weights)

    if volatility == 0:
        logger.warning("Portfolio volatility is zero, Sharpe ratio set to 0")
        sharpe = 0.0
    else:
        sharpe = sharpe_ratio(total, volatility, request.risk_free_rate)

    correlations = None
    if include_correlations and len(stock_returns) > 1:
        correlations = correlation_matrix(stock_returns)

    # Curves only combine when every instrument has data
    with_data = [r for r in stock_returns if r.prices]
    dates = with_data[0].dates if with_data else []

    cumulative = []
    cumulative_price = []
    drawdowns = []
    aligned = (
        bool(with_data)
        and len(with_data) == len(stock_returns)
        and len({len(r.prices) for r in stock_returns}) == 1
    )
    if not aligned and with_data:
        logger.warning("Instrument series differ in length, portfolio curves skipped")

    if aligned:
        cumulative = weighted_series([r.cumulative_returns for r in stock_returns], weights)
        cumulative_price = weighted_series([r.cumulative_price_returns for r in stock_returns], weights)
        # Drawdowns of the growth-of-1 curve
        drawdowns = max_drawdowns([1.0 + v for v in cumulative_price])

    amounts = portfolio_value_curve(stock_returns) if aligned else []

    return PortfolioReturnResult(
        stock_returns=stock_returns,
        portfolio_price_return=portfolio_price_return(stock_returns, weights),
        portfolio_total_return=total,
        portfolio_cagr=portfolio_cagr(stock_returns, weights),
        portfolio_volatility=volatility,
        portfolio_sharpe_ratio=sharpe,
        correlations=correlations,
        weights=list(weights),
        start_date=dates[0] if dates else None,
        end_date=dates[-1] if dates else None,
        dates=list(dates),
        portfolio_cumulative_returns=cumulative,
        portfolio_cumulative_price_returns=cumulative_price,
        portfolio_amounts=amounts,
        portfolio_max_drawdowns=drawdowns,
        portfolio_max_drawdown=max_value(drawdowns),
    )


def run_portfolio_job(
    request: PortfolioRequest,
    series_by_ticker: Dict[str, InstrumentSeries],
    output_path: Path,
    index: Optional[IndexSeries] = None,
    max_workers: int = 1,
    include_correlations: bool = True
) -> Dict[str, Any]:
    """
    Run analysis and save the result to JSON.

    Input and calculation failures are reported in the returned summary
    instead of being raised.

    Args:
        request: Portfolio request
        series_by_ticker: Price series keyed by ticker
        output_path: Path to save the result JSON
        index: Optional benchmark
        max_workers: Thread pool size for per-ticker work
        include_correlations: Whether to compute pairwise correlations

    Returns:
        Dictionary with job status and summary
    """
    start_time = datetime.now()

    try:
        result = analyze_portfolio(
            request,
            series_by_ticker,
            index=index,
            max_workers=max_workers,
            include_correlations=include_correlations
        )
    except ValueError as e:
        logger.error(f"Portfolio job failed for {request.tickers}: {e}")
        return {
            'tickers': request.tickers,
            'status': 'failed',
            'error_message': str(e),
            'output_path': None,
            'duration_seconds': (datetime.now() - start_time).total_seconds()
        }

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, 'w') as f:
        json.dump(result.to_dict(), f, indent=2, default=str)

    return {
        'tickers': request.tickers,
        'status': 'completed',
        'output_path': str(output_path),
        'portfolio_total_return': result.portfolio_total_return,
        'portfolio_volatility': result.portfolio_volatility,
        'portfolio_sharpe_ratio': result.portfolio_sharpe_ratio,
        'price_data_points': max((len(s) for s in series_by_ticker.values()), default=0),
        'duration_seconds': (datetime.now() - start_time).total_seconds()
    }
