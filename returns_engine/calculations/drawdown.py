"""
Drawdown calculation utilities.
Pure functions for running-peak drawdown series.
"""

from typing import List, Sequence

import numpy as np

from returns_engine.calculations.returns import max_value


class DrawdownError(ValueError):
    """Raised when drawdown calculation fails."""
    pass


def max_drawdowns(prices: Sequence[float]) -> List[float]:
    """
    Calculate drawdown from the running peak at every observation.

    Formula: dd_i = (peak_i - P_i) / peak_i, peak_i = max(P_0..P_i)

    Drawdowns are positive magnitudes (0.25 = 25% below peak); flipping the
    sign for display is left to the presentation layer. A zero peak yields 0.

    Args:
        prices: Prices in chronological order

    Returns:
        List of drawdowns, same length as prices ([0.0] for a single price)

    Raises:
        DrawdownError: If prices are None or empty
    """
    if prices is None or len(prices) == 0:
        raise DrawdownError("Insufficient data: need at least 1 price")

    if len(prices) < 2:
        return [0.0]

    prices_array = np.array(prices, dtype=float)

    # Track running maximum (peak)
    running_max = np.maximum.accumulate(prices_array)

    drawdowns = np.zeros_like(prices_array)
    nonzero = running_max != 0
    drawdowns[nonzero] = (running_max[nonzero] - prices_array[nonzero]) / running_max[nonzero]

    return [float(d) for d in drawdowns]


def max_drawdown(prices: Sequence[float]) -> float:
    """
    Largest running-peak drawdown of a price series.

    Raises:
        DrawdownError: If prices are None or empty
    """
    return max_value(max_drawdowns(prices))
