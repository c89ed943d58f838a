"""
Portfolio analyzer - combines per-ticker results into portfolio statistics.
Weighted returns, dispersion of instrument returns, pairwise correlations.
"""

import logging
import math
from typing import Dict, List, Optional, Sequence, Tuple, Union

import numpy as np

from returns_engine.models import InstrumentReturnResult


logger = logging.getLogger(__name__)

ReturnLike = Union[InstrumentReturnResult, float]


class PortfolioAnalyzerError(ValueError):
    """Raised when portfolio aggregation fails."""
    pass


def resolve_weights(count: int, weights: Optional[Sequence[float]] = None) -> List[float]:
    """
    Resolve per-instrument weights.

    No weights means an equal split (1/N each). Supplied weights must match
    the instrument count and be positive; they are not renormalized.

    Args:
        count: Number of instruments
        weights: Optional explicit weights in instrument order

    Returns:
        List of weights, one per instrument

    Raises:
        PortfolioAnalyzerError: If count is not positive, lengths differ, or a
            weight is not positive
    """
    if count <= 0:
        raise PortfolioAnalyzerError("At least one instrument is required")

    if not weights:
        return [1.0 / count] * count

    if len(weights) != count:
        raise PortfolioAnalyzerError(
            f"Weights must match the number of instruments ({len(weights)} != {count})"
        )

    for i, w in enumerate(weights):
        if w is None or not math.isfinite(w) or w <= 0:
            raise PortfolioAnalyzerError(f"Weight at position {i} must be positive, got {w}")

    total = sum(weights)
    if abs(total - 1.0) > 1e-6:
        logger.warning(f"resolve_weights: weights sum to {total:.6f}, not 1")

    return [float(w) for w in weights]


def _values(returns: Sequence[ReturnLike]) -> List[float]:
    return [r.total_return if isinstance(r, InstrumentReturnResult) else float(r) for r in returns]


def weighted_return(returns: Sequence[ReturnLike], weights: Sequence[float]) -> float:
    """
    Weighted sum of instrument returns.

    Formula: Σ w_i × r_i

    Args:
        returns: Instrument returns (floats, or results whose total_return is used)
        weights: Weights aligned with returns

    Returns:
        Portfolio return as decimal

    Raises:
        PortfolioAnalyzerError: If lengths differ or inputs are empty
    """
    if not returns or not weights:
        raise PortfolioAnalyzerError("Returns and weights cannot be None or empty")

    if len(returns) != len(weights):
        raise PortfolioAnalyzerError("Returns and weights must have the same size")

    values = np.array(_values(returns), dtype=float)
    return float(np.dot(values, np.array(weights, dtype=float)))


def weighted_volatility(returns: Sequence[ReturnLike], weights: Sequence[float]) -> float:
    """
    Dispersion of instrument returns around their simple mean.

    Formula: sqrt(Σ w_i × (r_i - mean(r))^2)

    The deviation term uses the unweighted mean of the instrument returns;
    only the squared deviations are weighted.

    Raises:
        PortfolioAnalyzerError: If lengths differ or inputs are empty
    """
    if not returns or not weights:
        raise PortfolioAnalyzerError("Returns and weights cannot be None or empty")

    if len(returns) != len(weights):
        raise PortfolioAnalyzerError("Returns and weights must have the same size")

    values = np.array(_values(returns), dtype=float)
    mean = values.mean()
    variance = float(np.dot(np.array(weights, dtype=float), (values - mean) ** 2))

    return math.sqrt(variance)


def sharpe_ratio(
    portfolio_return: float,
    portfolio_volatility: float,
    risk_free_rate: float = 0.0
) -> float:
    """
    Portfolio Sharpe ratio.

    Formula: (R_p - R_f) / σ_p

    Raises:
        PortfolioAnalyzerError: If volatility is zero
    """
    if portfolio_volatility == 0:
        raise PortfolioAnalyzerError("Cannot calculate Sharpe ratio when volatility is zero")

    return (portfolio_return - risk_free_rate) / portfolio_volatility


def correlation(returns1: Sequence[float], returns2: Sequence[float]) -> float:
    """
    Pearson correlation of two return series.

    Formula: cov(x, y) / (σ_x × σ_y), population statistics (divided by n)

    Args:
        returns1: First return series
        returns2: Second return series, same length

    Returns:
        Correlation in [-1, 1]

    Raises:
        PortfolioAnalyzerError: If series are missing, misaligned, shorter
            than 2, or either has zero standard deviation
    """
    if returns1 is None or returns2 is None:
        raise PortfolioAnalyzerError("Return series cannot be None")

    if len(returns1) != len(returns2):
        raise PortfolioAnalyzerError("Return series must have the same size")

    if len(returns1) < 2:
        raise PortfolioAnalyzerError("At least 2 returns are required to calculate correlation")

    x = np.array(returns1, dtype=float)
    y = np.array(returns2, dtype=float)

    std_x = float(np.std(x, ddof=0))
    std_y = float(np.std(y, ddof=0))
    if std_x == 0 or std_y == 0:
        raise PortfolioAnalyzerError("Cannot calculate correlation when standard deviation is zero")

    covariance = float(np.mean((x - x.mean()) * (y - y.mean())))
    result = covariance / (std_x * std_y)

    # Clamp float noise so self-correlation is exactly 1
    return max(-1.0, min(1.0, result))


def correlation_matrix(results: Sequence[InstrumentReturnResult]) -> Dict[Tuple[str, str], float]:
    """
    Correlation of periodic returns for every unordered pair of instruments.

    Keys are (ticker_a, ticker_b) with ticker_a earlier in the input order.
    Pairs where either instrument has fewer than 2 periodic returns, or
    where the return series differ in length, are left out of the matrix.

    Raises:
        PortfolioAnalyzerError: If a pair with enough aligned data cannot be
            correlated
    """
    matrix = {}
    for i in range(len(results)):
        for j in range(i + 1, len(results)):
            a, b = results[i], results[j]
            ra, rb = a.periodic_return_rates, b.periodic_return_rates
            if len(ra) < 2 or len(rb) < 2 or len(ra) != len(rb):
                logger.warning(
                    f"correlation_matrix: skipping {a.ticker}/{b.ticker} "
                    f"({len(ra)} and {len(rb)} periodic returns)"
                )
                continue

            try:
                matrix[(a.ticker, b.ticker)] = correlation(
                    a.periodic_return_rates,
                    b.periodic_return_rates
                )
            except PortfolioAnalyzerError as e:
                raise PortfolioAnalyzerError(f"{a.ticker}/{b.ticker}: {e}") from e

    logger.debug(f"correlation_matrix: {len(matrix)} pairs")
    return matrix


def portfolio_price_return(results: Sequence[InstrumentReturnResult], weights: Sequence[float]) -> float:
    """Weighted sum of instrument price returns."""
    return weighted_return([r.price_return for r in results], weights)


def portfolio_total_return(results: Sequence[InstrumentReturnResult], weights: Sequence[float]) -> float:
    """Weighted sum of instrument total returns."""
    return weighted_return([r.total_return for r in results], weights)


def portfolio_cagr(results: Sequence[InstrumentReturnResult], weights: Sequence[float]) -> float:
    """Weighted sum of instrument CAGRs."""
    return weighted_return([r.cagr for r in results], weights)


def weighted_series(series: Sequence[Sequence[float]], weights: Sequence[float]) -> List[float]:
    """
    Position-wise weighted sum of aligned per-instrument series.

    Formula: s_t = Σ w_i × x_i,t

    Raises:
        PortfolioAnalyzerError: If series are misaligned or weights do not match
    """
    if not series:
        return []

    if len(series) != len(weights):
        raise PortfolioAnalyzerError("Series and weights must have the same size")

    lengths = {len(s) for s in series}
    if len(lengths) != 1:
        raise PortfolioAnalyzerError(f"Series must have the same length, got {sorted(lengths)}")

    matrix = np.array(series, dtype=float)
    combined = np.array(weights, dtype=float) @ matrix

    return [float(v) for v in combined]


def portfolio_value_curve(results: Sequence[InstrumentReturnResult]) -> List[float]:
    """
    Total holding value per observation, summed across instruments.

    Empty when amount tracking was not requested for the instruments.

    Raises:
        PortfolioAnalyzerError: If amount series are misaligned
    """
    curves = [r.amount_changes for r in results if r.amount_changes]
    if not curves:
        return []

    if len(curves) != len(results):
        raise PortfolioAnalyzerError("Amount series are missing for some instruments")

    return weighted_series(curves, [1.0] * len(curves))
