"""
Value types and records shared by the return engine.
Immutable containers: created once per analysis call, never mutated.
"""

from dataclasses import dataclass, field, asdict
from datetime import date
from typing import Dict, List, Optional, Sequence, Tuple

import pandas as pd

from returns_engine.dates import to_local_date


# =============================================================================
# VALUE TYPES
# =============================================================================

@dataclass(frozen=True)
class ReturnRate:
    """
    Fractional change between two values.

    Formula: (end_value - start_value) / start_value
    """
    start_value: float
    end_value: float

    @classmethod
    def from_rate(cls, rate: float) -> 'ReturnRate':
        """Wrap a bare rate so it composes with value-based returns."""
        return cls(1.0, 1.0 + rate)

    def rate(self) -> float:
        if self.start_value == 0:
            raise ValueError("Start value must be non-zero to compute a return rate")
        return (self.end_value - self.start_value) / self.start_value


@dataclass(frozen=True)
class CAGR:
    """
    Compound annual growth rate.

    Formula: (end_value / start_value)^(1 / years) - 1
    """
    start_value: float
    end_value: float
    years: float

    def rate(self) -> float:
        if self.start_value <= 0:
            raise ValueError("Start value must be positive")
        if self.end_value <= 0:
            raise ValueError("End value must be positive")
        if self.years <= 0:
            raise ValueError("Years must be positive")
        return (self.end_value / self.start_value) ** (1.0 / self.years) - 1.0


@dataclass(frozen=True)
class Amount:
    """Holding value at one point of the reinvestment simulation."""
    shares: float
    price: float
    # Dividend cash received by the holding so far
    cash: float = 0.0

    def amount(self) -> float:
        return self.shares * self.price


# =============================================================================
# INPUT SERIES
# =============================================================================

@dataclass(frozen=True)
class DividendEvent:
    """Cash dividend paid per share on a given timestamp (epoch seconds)."""
    timestamp: int
    amount: float

    def __post_init__(self):
        if self.amount < 0:
            raise ValueError(f"Dividend amount must be non-negative, got {self.amount}")


@dataclass(frozen=True)
class InstrumentSeries:
    """
    Aligned price/timestamp series and dividend events for one ticker.

    Timestamps are epoch seconds and must be strictly increasing.
    """
    ticker: str
    prices: Tuple[float, ...]
    timestamps: Tuple[int, ...]
    dividends: Tuple[DividendEvent, ...] = ()

    def __post_init__(self):
        if not self.ticker or not isinstance(self.ticker, str):
            raise ValueError("ticker must be non-empty string")

        # Accept any sequence, store tuples
        object.__setattr__(self, 'prices', tuple(float(p) for p in self.prices))
        object.__setattr__(self, 'timestamps', tuple(int(t) for t in self.timestamps))
        object.__setattr__(self, 'dividends', tuple(self.dividends or ()))

        if len(self.prices) != len(self.timestamps):
            raise ValueError(
                f"{self.ticker}: prices and timestamps must have the same size "
                f"({len(self.prices)} != {len(self.timestamps)})"
            )

        for i in range(1, len(self.timestamps)):
            if self.timestamps[i] <= self.timestamps[i - 1]:
                raise ValueError(f"{self.ticker}: timestamps must be strictly increasing")

    def __len__(self) -> int:
        return len(self.prices)

    @property
    def first_timestamp(self) -> Optional[int]:
        return self.timestamps[0] if self.timestamps else None

    @property
    def start_date(self) -> Optional[date]:
        if not self.timestamps:
            return None
        return to_local_date(self.timestamps[0])


@dataclass(frozen=True)
class IndexSeries:
    """Benchmark price series used for beta."""
    prices: Tuple[float, ...]
    timestamps: Tuple[int, ...] = ()
    symbol: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, 'prices', tuple(float(p) for p in self.prices))
        object.__setattr__(self, 'timestamps', tuple(int(t) for t in self.timestamps))

        if self.timestamps and len(self.timestamps) != len(self.prices):
            raise ValueError("Index prices and timestamps must have the same size")

    def __len__(self) -> int:
        return len(self.prices)


# =============================================================================
# RESULTS
# =============================================================================

@dataclass(frozen=True)
class InstrumentReturnResult:
    """
    Per-ticker return and risk figures.

    Rates are fractions (0.1 = 10%), amounts are in the price currency.
    Series fields are aligned 1:1 with the input prices, except
    periodic_return_rates which has one entry fewer.
    """
    ticker: str
    price_return: float = 0.0
    total_return: float = 0.0
    cagr: float = 0.0
    volatility: float = 0.0
    sharpe_ratio: float = 0.0
    beta: Optional[float] = None
    max_drawdown: float = 0.0
    weight: float = 1.0
    initial_allocated_amount: float = 0.0

    prices: List[float] = field(default_factory=list)
    timestamps: List[int] = field(default_factory=list)
    dividends: List[DividendEvent] = field(default_factory=list)
    dates: List[date] = field(default_factory=list)

    max_drawdowns: List[float] = field(default_factory=list)
    periodic_return_rates: List[float] = field(default_factory=list)
    cumulative_returns: List[float] = field(default_factory=list)
    cumulative_price_returns: List[float] = field(default_factory=list)
    amount_changes: List[float] = field(default_factory=list)
    dividend_cash: List[float] = field(default_factory=list)

    @classmethod
    def zero(
        cls,
        ticker: str,
        weight: float = 1.0,
        initial_allocated_amount: float = 0.0,
        beta: Optional[float] = None
    ) -> 'InstrumentReturnResult':
        """Result for a ticker with no price data; beta is 0 only when a benchmark was given."""
        return cls(
            ticker=ticker,
            beta=beta,
            weight=weight,
            initial_allocated_amount=initial_allocated_amount
        )

    def to_dict(self) -> Dict:
        data = asdict(self)
        data['dates'] = [d.isoformat() for d in self.dates]
        return data

    def to_frame(self) -> pd.DataFrame:
        """
        Per-date series as a DataFrame indexed by date.

        Amount columns are only present when amount tracking was requested.
        """
        columns = {
            'timestamp': self.timestamps,
            'price': self.prices,
            'periodic_return': [float('nan')] + list(self.periodic_return_rates) if self.prices else [],
            'cumulative_return': self.cumulative_returns,
            'cumulative_price_return': self.cumulative_price_returns,
            'drawdown': self.max_drawdowns,
        }
        if self.amount_changes:
            columns['amount'] = self.amount_changes
            columns['dividend_cash'] = self.dividend_cash

        return pd.DataFrame(columns, index=pd.Index(self.dates, name='date'))


@dataclass(frozen=True)
class PortfolioReturnResult:
    """Portfolio-level aggregation of instrument results."""
    stock_returns: List[InstrumentReturnResult]
    portfolio_price_return: float = 0.0
    portfolio_total_return: float = 0.0
    portfolio_cagr: float = 0.0
    portfolio_volatility: float = 0.0
    portfolio_sharpe_ratio: float = 0.0
    correlations: Optional[Dict[Tuple[str, str], float]] = None

    weights: List[float] = field(default_factory=list)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    dates: List[date] = field(default_factory=list)
    portfolio_cumulative_returns: List[float] = field(default_factory=list)
    portfolio_cumulative_price_returns: List[float] = field(default_factory=list)
    portfolio_amounts: List[float] = field(default_factory=list)
    portfolio_max_drawdowns: List[float] = field(default_factory=list)
    portfolio_max_drawdown: float = 0.0

    @property
    def tickers(self) -> List[str]:
        return [r.ticker for r in self.stock_returns]

    def correlation(self, ticker_a: str, ticker_b: str) -> Optional[float]:
        """Look up a pair correlation regardless of pair order."""
        if not self.correlations:
            return None
        if (ticker_a, ticker_b) in self.correlations:
            return self.correlations[(ticker_a, ticker_b)]
        return self.correlations.get((ticker_b, ticker_a))

    def to_dict(self) -> Dict:
        return {
            'tickers': self.tickers,
            'weights': list(self.weights),
            'start_date': self.start_date.isoformat() if self.start_date else None,
            'end_date': self.end_date.isoformat() if self.end_date else None,
            'portfolio_price_return': self.portfolio_price_return,
            'portfolio_total_return': self.portfolio_total_return,
            'portfolio_cagr': self.portfolio_cagr,
            'portfolio_volatility': self.portfolio_volatility,
            'portfolio_sharpe_ratio': self.portfolio_sharpe_ratio,
            'portfolio_max_drawdown': self.portfolio_max_drawdown,
            'correlations': (
                {f"{a}/{b}": value for (a, b), value in self.correlations.items()}
                if self.correlations is not None else None
            ),
            'dates': [d.isoformat() for d in self.dates],
            'portfolio_cumulative_returns': list(self.portfolio_cumulative_returns),
            'portfolio_cumulative_price_returns': list(self.portfolio_cumulative_price_returns),
            'portfolio_amounts': list(self.portfolio_amounts),
            'portfolio_max_drawdowns': list(self.portfolio_max_drawdowns),
            'stock_returns': [r.to_dict() for r in self.stock_returns],
        }


def dividend_events(raw: Sequence) -> List[DividendEvent]:
    """
    Coerce (timestamp, amount) pairs or {'timestamp'|'date', 'amount'} dicts
    into DividendEvent instances.
    """
    events = []
    for item in raw or []:
        if isinstance(item, DividendEvent):
            events.append(item)
        elif isinstance(item, dict):
            ts = item.get('timestamp', item.get('date'))
            events.append(DividendEvent(int(ts), float(item['amount'])))
        else:
            ts, amount = item
            events.append(DividendEvent(int(ts), float(amount)))
    return events
