"""
Beta calculation against a benchmark index.
"""

from typing import Sequence

import numpy as np


class BetaError(ValueError):
    """Raised when beta calculation fails."""
    pass


def beta(instrument_returns: Sequence[float], index_returns: Sequence[float]) -> float:
    """
    Calculate beta of an instrument against a benchmark.

    Formula: β = Cov(R_i, R_m) / Var(R_m)

    Both series are aligned by position. Covariance and variance use the
    same normalization, so the ratio does not depend on it.

    Args:
        instrument_returns: Instrument return series (e.g. cumulative price returns)
        index_returns: Benchmark return series of the same length

    Returns:
        Beta value

    Raises:
        BetaError: If inputs are missing, misaligned, too short, or the
            benchmark has zero variance
    """
    if instrument_returns is None or index_returns is None:
        raise BetaError("Return series cannot be None")

    if len(instrument_returns) != len(index_returns):
        raise BetaError("Instrument and index returns must have the same size")

    if len(instrument_returns) < 2:
        raise BetaError("At least 2 returns are required to calculate beta")

    x = np.array(instrument_returns, dtype=float)
    y = np.array(index_returns, dtype=float)

    variance = float(np.var(y, ddof=0))
    if variance == 0:
        raise BetaError("Cannot calculate beta when index variance is zero")

    covariance = float(np.mean((x - x.mean()) * (y - y.mean())))

    return covariance / variance
