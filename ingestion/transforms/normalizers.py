"""
Normalizers for transforming provider data to engine input series.
Pure functions - no IO, network, or side effects.
Minimal normalization - only when necessary.
"""

import logging
from typing import Any, Dict, List, Optional

import pandas as pd

from ingestion.transforms.validators import (
    ValidationError,
    validate_dividend_row,
    validate_price_rows,
)
from returns_engine.models import DividendEvent, IndexSeries, InstrumentSeries


logger = logging.getLogger(__name__)


def _first_chart_result(payload: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Accept either a full chart response or its first result element."""
    if not payload:
        return None

    if 'chart' in payload:
        results = (payload.get('chart') or {}).get('result') or []
        return results[0] if results else None

    return payload


def normalize_chart_rows(payload: Optional[Dict[str, Any]], *, ticker: str) -> List[Dict[str, Any]]:
    """
    Transform a chart payload into canonical price rows.

    Minimal normalization:
    - Parallel timestamp/close arrays zipped into rows
    - Rows with a null close dropped (provider gaps on halted days)

    Args:
        payload: Chart response ({'chart': {'result': [...]}}) or one result
        ticker: Stock ticker symbol

    Returns:
        List of {'ticker', 'timestamp', 'close'} dictionaries
    """
    result = _first_chart_result(payload)
    if result is None:
        return []

    timestamps = result.get('timestamp') or []
    quotes = (result.get('indicators') or {}).get('quote') or []
    closes = (quotes[0].get('close') if quotes else None) or []

    if len(timestamps) != len(closes):
        raise ValidationError(
            f"{ticker}: chart timestamps and closes differ in length "
            f"({len(timestamps)} != {len(closes)})"
        )

    rows = []
    dropped = 0
    for ts, close in zip(timestamps, closes):
        if close is None:
            dropped += 1
            continue
        rows.append({'ticker': ticker, 'timestamp': int(ts), 'close': float(close)})

    if dropped:
        logger.warning(f"{ticker}: dropped {dropped} chart rows with no close")

    return rows


def normalize_chart_dividends(payload: Optional[Dict[str, Any]]) -> List[DividendEvent]:
    """
    Extract dividend events from a chart payload.

    The provider keys events.dividends by timestamp string; each value holds
    'amount' and 'date'. Events are returned sorted by timestamp.
    """
    result = _first_chart_result(payload)
    if result is None:
        return []

    raw = (result.get('events') or {}).get('dividends') or {}

    events = []
    for key, value in raw.items():
        row = {
            'timestamp': int(value.get('date', key)),
            'amount': float(value.get('amount', 0.0)),
        }
        validate_dividend_row(row)
        events.append(DividendEvent(row['timestamp'], row['amount']))

    return sorted(events, key=lambda d: d.timestamp)


def series_from_chart(ticker: str, payload: Optional[Dict[str, Any]]) -> InstrumentSeries:
    """
    Build an InstrumentSeries from a chart payload.

    An empty or missing payload gives an empty series, which the engine
    reports as a zero result.

    Raises:
        ValidationError: If the payload rows fail validation
    """
    rows = normalize_chart_rows(payload, ticker=ticker)
    validate_price_rows(rows)

    return InstrumentSeries(
        ticker=ticker,
        prices=[r['close'] for r in rows],
        timestamps=[r['timestamp'] for r in rows],
        dividends=normalize_chart_dividends(payload),
    )


def index_from_chart(payload: Optional[Dict[str, Any]], symbol: Optional[str] = None) -> IndexSeries:
    """Build a benchmark IndexSeries from a chart payload."""
    rows = normalize_chart_rows(payload, ticker=symbol or 'INDEX')
    return IndexSeries(
        prices=[r['close'] for r in rows],
        timestamps=[r['timestamp'] for r in rows],
        symbol=symbol,
    )


def _frame_timestamps(df: pd.DataFrame) -> pd.Series:
    """
    Epoch-second timestamps from a 'timestamp' column, or from a 'date'
    column interpreted as UTC midnight.
    """
    if 'timestamp' in df.columns:
        return df['timestamp'].astype('int64')

    if 'date' in df.columns:
        dates = pd.to_datetime(df['date'], utc=True)
        return (dates - pd.Timestamp(0, tz='UTC')) // pd.Timedelta(seconds=1)

    raise ValidationError("Frame must have a 'timestamp' or 'date' column")


def _dividends_from_frame(dividends_df: Optional[pd.DataFrame], ticker: str) -> List[DividendEvent]:
    if dividends_df is None or dividends_df.empty:
        return []

    if 'amount' not in dividends_df.columns:
        raise ValidationError("Dividends frame must have an 'amount' column")

    df = dividends_df
    if 'ticker' in df.columns:
        df = df[df['ticker'].astype(str).str.upper() == ticker]
    if df.empty:
        return []

    timestamps = _frame_timestamps(df)
    events = []
    for ts, amount in zip(timestamps.tolist(), df['amount'].tolist()):
        row = {'timestamp': int(ts), 'amount': float(amount)}
        validate_dividend_row(row)
        events.append(DividendEvent(row['timestamp'], row['amount']))

    return sorted(events, key=lambda d: d.timestamp)


def series_from_frame(
    price_df: pd.DataFrame,
    ticker: str,
    dividends_df: Optional[pd.DataFrame] = None
) -> InstrumentSeries:
    """
    Build an InstrumentSeries for one ticker from price/dividend frames.

    Minimal normalization:
    - Rows filtered to the ticker when a 'ticker' column is present
    - Rows with a missing close dropped
    - Sorted by timestamp; duplicate timestamps keep the last row

    Args:
        price_df: Columns close and timestamp|date, optionally ticker
        ticker: Stock ticker symbol
        dividends_df: Optional frame with amount and timestamp|date, optionally ticker

    Returns:
        InstrumentSeries

    Raises:
        ValidationError: If required columns are missing or rows fail validation
    """
    ticker = ticker.upper()

    if 'close' not in price_df.columns:
        raise ValidationError("Price frame must have a 'close' column")

    df = price_df
    if 'ticker' in df.columns:
        df = df[df['ticker'].astype(str).str.upper() == ticker]

    df = df.dropna(subset=['close'])

    frame = pd.DataFrame({
        'timestamp': _frame_timestamps(df).to_numpy() if not df.empty else [],
        'close': df['close'].astype(float).to_numpy(),
    })
    frame = frame.drop_duplicates(subset='timestamp', keep='last').sort_values('timestamp')

    rows = [
        {'ticker': ticker, 'timestamp': int(ts), 'close': float(close)}
        for ts, close in zip(frame['timestamp'].tolist(), frame['close'].tolist())
    ]
    validate_price_rows(rows)

    return InstrumentSeries(
        ticker=ticker,
        prices=[r['close'] for r in rows],
        timestamps=[r['timestamp'] for r in rows],
        dividends=_dividends_from_frame(dividends_df, ticker),
    )


def series_map_from_frames(
    price_df: pd.DataFrame,
    dividends_df: Optional[pd.DataFrame] = None
) -> Dict[str, InstrumentSeries]:
    """
    Build one InstrumentSeries per ticker found in a long-format price frame.

    Raises:
        ValidationError: If the frame has no 'ticker' column
    """
    if 'ticker' not in price_df.columns:
        raise ValidationError("Price frame must have a 'ticker' column")

    tickers = price_df['ticker'].astype(str).str.upper().unique().tolist()
    return {t: series_from_frame(price_df, t, dividends_df) for t in tickers}


def index_from_frame(index_df: pd.DataFrame, symbol: Optional[str] = None) -> IndexSeries:
    """
    Build a benchmark IndexSeries from a frame with close and timestamp|date.

    Raises:
        ValidationError: If required columns are missing
    """
    if 'close' not in index_df.columns:
        raise ValidationError("Index frame must have a 'close' column")

    df = index_df.dropna(subset=['close'])
    timestamps = _frame_timestamps(df)
    order = timestamps.to_numpy().argsort(kind='stable')

    return IndexSeries(
        prices=df['close'].astype(float).to_numpy()[order].tolist(),
        timestamps=timestamps.to_numpy()[order].tolist(),
        symbol=symbol,
    )
