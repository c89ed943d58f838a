"""
Tests for portfolio aggregation statistics.
"""

import math

import pytest

from returns_engine.models import InstrumentReturnResult
from returns_engine.portfolio_analyzer import (
    resolve_weights,
    weighted_return,
    weighted_volatility,
    sharpe_ratio,
    correlation,
    correlation_matrix,
    portfolio_price_return,
    portfolio_total_return,
    portfolio_cagr,
    weighted_series,
    portfolio_value_curve,
    PortfolioAnalyzerError
)


def result(ticker, total=0.0, price=0.0, cagr=0.0, periodic=None, amounts=None):
    return InstrumentReturnResult(
        ticker=ticker,
        price_return=price,
        total_return=total,
        cagr=cagr,
        prices=[1.0] * (len(periodic) + 1) if periodic else [],
        periodic_return_rates=periodic or [],
        amount_changes=amounts or [],
    )


class TestWeights:
    """Tests for resolve_weights function."""

    def test_equal_split(self):
        assert resolve_weights(4) == [0.25, 0.25, 0.25, 0.25]
        assert resolve_weights(2, []) == [0.5, 0.5]

    def test_explicit_kept(self):
        """Weights are not renormalized."""
        assert resolve_weights(2, [0.6, 0.6]) == [0.6, 0.6]

    def test_length_mismatch_rejected(self):
        with pytest.raises(PortfolioAnalyzerError, match="must match"):
            resolve_weights(3, [0.5, 0.5])

    def test_non_positive_rejected(self):
        with pytest.raises(PortfolioAnalyzerError, match="must be positive"):
            resolve_weights(2, [1.0, 0.0])

    def test_no_instruments_rejected(self):
        with pytest.raises(PortfolioAnalyzerError, match="At least one instrument"):
            resolve_weights(0)


class TestWeightedReturn:
    """Tests for weighted_return function."""

    def test_scenario(self):
        """Weights [0.4, 0.3, 0.3] over [0.10, 0.20, 0.15] give 0.145."""
        assert weighted_return([0.10, 0.20, 0.15], [0.4, 0.3, 0.3]) == pytest.approx(0.145)

    def test_accepts_results(self):
        """Results contribute their total return."""
        results = [result('A', total=0.10), result('B', total=0.20), result('C', total=0.15)]
        assert weighted_return(results, [0.4, 0.3, 0.3]) == pytest.approx(0.145)

    def test_length_mismatch_rejected(self):
        with pytest.raises(PortfolioAnalyzerError, match="same size"):
            weighted_return([0.1, 0.2], [1.0])

    def test_empty_rejected(self):
        with pytest.raises(PortfolioAnalyzerError):
            weighted_return([], [])


class TestWeightedVolatility:
    """Tests for weighted_volatility function."""

    def test_unweighted_mean_in_deviation(self):
        """Deviations are taken from the simple mean, then weighted."""
        returns = [0.10, 0.20, 0.30]
        weights = [0.5, 0.25, 0.25]

        # mean = 0.2; 0.5 * 0.01 + 0.25 * 0 + 0.25 * 0.01
        assert weighted_volatility(returns, weights) == pytest.approx(math.sqrt(0.0075))

    def test_identical_returns(self):
        assert weighted_volatility([0.5, 0.5], [0.5, 0.5]) == 0.0

    def test_length_mismatch_rejected(self):
        with pytest.raises(PortfolioAnalyzerError, match="same size"):
            weighted_volatility([0.1, 0.2], [1.0])


class TestSharpeRatio:
    """Tests for portfolio sharpe_ratio function."""

    def test_basic(self):
        assert sharpe_ratio(0.12, 0.2) == pytest.approx(0.6)

    def test_risk_free(self):
        assert sharpe_ratio(0.12, 0.2, 0.02) == pytest.approx(0.5)

    def test_zero_volatility_rejected(self):
        with pytest.raises(PortfolioAnalyzerError, match="volatility is zero"):
            sharpe_ratio(0.12, 0.0)


class TestCorrelation:
    """Tests for correlation and correlation_matrix."""

    def test_self_correlation(self):
        """Any non-constant series correlates perfectly with itself."""
        x = [0.01, -0.02, 0.035, 0.0, 0.012]
        assert correlation(x, x) == pytest.approx(1.0)

    def test_perfect_negative(self):
        x = [0.1, 0.2, 0.3]
        y = [-0.1, -0.2, -0.3]
        assert correlation(x, y) == pytest.approx(-1.0)

    def test_known_value(self):
        """x = [1, 2, 3], y = [1, 3, 2] has correlation 0.5."""
        assert correlation([1.0, 2.0, 3.0], [1.0, 3.0, 2.0]) == pytest.approx(0.5)

    def test_constant_rejected(self):
        with pytest.raises(PortfolioAnalyzerError, match="standard deviation is zero"):
            correlation([0.5, 0.5, 0.5], [0.1, 0.2, 0.3])

    def test_short_rejected(self):
        with pytest.raises(PortfolioAnalyzerError, match="At least 2"):
            correlation([0.1], [0.2])

    def test_length_mismatch_rejected(self):
        with pytest.raises(PortfolioAnalyzerError, match="same size"):
            correlation([0.1, 0.2], [0.1, 0.2, 0.3])

    def test_matrix_pairs_in_order(self):
        """Every unordered pair appears once, keyed in input order."""
        results = [
            result('A', periodic=[0.1, 0.2, 0.3]),
            result('B', periodic=[0.3, 0.2, 0.1]),
            result('C', periodic=[0.1, 0.3, 0.2]),
        ]

        matrix = correlation_matrix(results)

        assert set(matrix.keys()) == {('A', 'B'), ('A', 'C'), ('B', 'C')}
        assert matrix[('A', 'B')] == pytest.approx(-1.0)
        assert matrix[('A', 'C')] == pytest.approx(0.5)

    def test_matrix_skips_instrument_without_data(self):
        """An instrument with no periodic returns is left out of every pair."""
        results = [
            result('A', periodic=[0.1, 0.2, 0.3]),
            result('NEW'),
            result('B', periodic=[0.3, 0.2, 0.1]),
        ]

        matrix = correlation_matrix(results)

        assert list(matrix.keys()) == [('A', 'B')]

    def test_matrix_skips_single_return(self):
        results = [result('A', periodic=[0.1]), result('B', periodic=[0.2])]
        assert correlation_matrix(results) == {}

    def test_matrix_skips_misaligned_pair(self):
        results = [result('A', periodic=[0.1, 0.2, 0.3]), result('B', periodic=[0.2, 0.1])]
        assert correlation_matrix(results) == {}

    def test_matrix_names_failing_pair(self):
        results = [result('A', periodic=[0.1, 0.2]), result('FLAT', periodic=[0.5, 0.5])]

        with pytest.raises(PortfolioAnalyzerError, match="A/FLAT"):
            correlation_matrix(results)


class TestPortfolioFigures:
    """Tests for weighted portfolio figures and curves."""

    def test_price_total_cagr(self):
        results = [
            result('A', total=0.12, price=0.10, cagr=0.05),
            result('B', total=0.02, price=0.00, cagr=0.01),
        ]
        weights = [0.5, 0.5]

        assert portfolio_price_return(results, weights) == pytest.approx(0.05)
        assert portfolio_total_return(results, weights) == pytest.approx(0.07)
        assert portfolio_cagr(results, weights) == pytest.approx(0.03)

    def test_weighted_series(self):
        series = [[0.0, 0.1, 0.2], [0.0, -0.1, 0.4]]
        assert weighted_series(series, [0.75, 0.25]) == pytest.approx([0.0, 0.05, 0.25])

    def test_weighted_series_misaligned(self):
        with pytest.raises(PortfolioAnalyzerError, match="same length"):
            weighted_series([[0.0, 0.1], [0.0]], [0.5, 0.5])

    def test_weighted_series_empty(self):
        assert weighted_series([], []) == []

    def test_value_curve_sums_holdings(self):
        results = [
            result('A', periodic=[0.1], amounts=[600.0, 660.0]),
            result('B', periodic=[0.0], amounts=[400.0, 400.0]),
        ]
        assert portfolio_value_curve(results) == pytest.approx([1000.0, 1060.0])

    def test_value_curve_without_amounts(self):
        assert portfolio_value_curve([result('A', periodic=[0.1])]) == []
