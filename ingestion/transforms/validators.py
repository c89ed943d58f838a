"""
Core validators for canonical price and dividend rows.
Pure functions - no IO, network, or side effects.
"""

import math
from typing import Any, Dict, List


class ValidationError(ValueError):
    """Raised when data validation fails."""
    pass


def validate_price_row(row: Dict[str, Any]) -> None:
    """
    Validate a canonical price row.

    Args:
        row: Dictionary with ticker, timestamp and close

    Raises:
        ValidationError: If validation fails
    """
    required_keys = {'ticker', 'timestamp', 'close'}

    missing = required_keys - set(row.keys())
    if missing:
        raise ValidationError(f"Missing required keys: {missing}")

    if not isinstance(row['ticker'], str) or not row['ticker']:
        raise ValidationError(f"ticker must be non-empty string, got {row['ticker']!r}")

    if not isinstance(row['timestamp'], int) or isinstance(row['timestamp'], bool):
        raise ValidationError(f"timestamp must be integer, got {type(row['timestamp'])}")

    if row['timestamp'] < 0:
        raise ValidationError(f"timestamp must be non-negative, got {row['timestamp']}")

    close = row['close']
    if not isinstance(close, (int, float)) or isinstance(close, bool):
        raise ValidationError(f"close must be numeric, got {type(close)}")

    if not math.isfinite(close):
        raise ValidationError(f"close must be finite, got {close}")

    if close <= 0:
        raise ValidationError(f"close must be positive, got {close}")


def validate_dividend_row(row: Dict[str, Any]) -> None:
    """
    Validate a canonical dividend row.

    Args:
        row: Dictionary with timestamp and amount

    Raises:
        ValidationError: If validation fails
    """
    required_keys = {'timestamp', 'amount'}

    missing = required_keys - set(row.keys())
    if missing:
        raise ValidationError(f"Missing required keys: {missing}")

    if not isinstance(row['timestamp'], int) or isinstance(row['timestamp'], bool):
        raise ValidationError(f"timestamp must be integer, got {type(row['timestamp'])}")

    amount = row['amount']
    if not isinstance(amount, (int, float)) or isinstance(amount, bool):
        raise ValidationError(f"amount must be numeric, got {type(amount)}")

    if not math.isfinite(amount):
        raise ValidationError(f"amount must be finite, got {amount}")

    if amount < 0:
        raise ValidationError(f"amount must be non-negative, got {amount}")


def validate_timestamps(timestamps: List[int], ticker: str) -> None:
    """
    Validate that timestamps are strictly increasing.

    Raises:
        ValidationError: If a timestamp repeats or goes backwards
    """
    for i in range(1, len(timestamps)):
        if timestamps[i] <= timestamps[i - 1]:
            raise ValidationError(
                f"{ticker}: timestamps must be strictly increasing "
                f"(index {i}: {timestamps[i - 1]} -> {timestamps[i]})"
            )


def validate_price_rows(rows: List[Dict[str, Any]]) -> None:
    """Validate every row, then the ordering of each ticker's timestamps."""
    by_ticker: Dict[str, List[int]] = {}
    for row in rows:
        validate_price_row(row)
        by_ticker.setdefault(row['ticker'], []).append(row['timestamp'])

    for ticker, timestamps in by_ticker.items():
        validate_timestamps(timestamps, ticker)
