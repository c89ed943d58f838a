"""
Volatility calculation utilities.
Pure functions for dispersion of periodic returns and the Sharpe ratio.
"""

import logging
import math
from typing import Sequence, Union

import numpy as np

from returns_engine.models import ReturnRate


logger = logging.getLogger(__name__)

RateLike = Union[ReturnRate, float]


class VolatilityError(ValueError):
    """Raised when volatility calculation fails."""
    pass


def _as_array(rates: Sequence[RateLike]) -> np.ndarray:
    if rates is None or len(rates) == 0:
        raise VolatilityError("Insufficient data: need at least 1 periodic return")

    values = np.array(
        [r.rate() if isinstance(r, ReturnRate) else float(r) for r in rates],
        dtype=float
    )

    if np.any(np.isnan(values)):
        raise VolatilityError("NaN values not allowed in periodic returns")

    if np.any(np.isinf(values)):
        raise VolatilityError("Infinite values not allowed in periodic returns")

    return values


def standard_deviation(rates: Sequence[RateLike]) -> float:
    """
    Population standard deviation of periodic returns.

    Formula: σ = sqrt(mean((r - mean(r))^2))

    Raises:
        VolatilityError: If no rates are supplied or values are not finite
    """
    values = _as_array(rates)
    return float(np.std(values, ddof=0))


def volatility(rates: Sequence[RateLike]) -> float:
    """
    Calculate volatility of periodic returns.

    Formula: σ × √(n - 1), with σ the population standard deviation and
    n the number of periodic returns. The √(n - 1) factor scales the
    per-period figure to the whole observation window rather than to a year.

    Args:
        rates: Periodic returns (ReturnRate or plain floats)

    Returns:
        Volatility as decimal

    Raises:
        VolatilityError: If no rates are supplied or values are not finite
    """
    values = _as_array(rates)
    std_dev = float(np.std(values, ddof=0))
    result = std_dev * math.sqrt(len(values) - 1)

    logger.debug(f"volatility: n={len(values)} std={std_dev:.6f} volatility={result:.6f}")

    return result


def sharpe_ratio(rates: Sequence[RateLike], risk_free_rate: float = 0.0) -> float:
    """
    Calculate Sharpe ratio of periodic returns.

    Formula: (mean(r) - risk_free_rate) / volatility(r)

    Args:
        rates: Periodic returns
        risk_free_rate: Per-period risk-free rate (default 0)

    Returns:
        Sharpe ratio

    Raises:
        VolatilityError: If volatility is zero or inputs are invalid
    """
    values = _as_array(rates)
    vol = volatility(values)

    if vol == 0:
        raise VolatilityError("Cannot calculate Sharpe ratio when volatility is zero")

    return (float(np.mean(values)) - risk_free_rate) / vol
