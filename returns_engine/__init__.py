"""
Return & Risk Engine Module

Calculates return and risk figures for instruments and portfolios:
- Price return, total return, CAGR
- Periodic and cumulative return series, dividend reinvestment
- Volatility, Sharpe ratio, beta
- Maximum drawdown
- Weighted portfolio figures and pairwise correlations
"""

__version__ = "0.1.0"
