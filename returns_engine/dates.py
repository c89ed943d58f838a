"""
Date helpers for epoch-second timestamps.
All conversions interpret timestamps in UTC.
"""

from datetime import date, datetime, timedelta, timezone
from typing import List, Sequence


SECONDS_PER_YEAR = 365 * 24 * 60 * 60


def to_local_date(epoch_seconds: int) -> date:
    """Convert a unix timestamp (seconds) to its UTC calendar date."""
    return datetime.fromtimestamp(epoch_seconds, tz=timezone.utc).date()


def to_unix_seconds(day: date) -> int:
    """Convert a calendar date to the unix timestamp of its UTC midnight."""
    return int(datetime(day.year, day.month, day.day, tzinfo=timezone.utc).timestamp())


def extract_dates(timestamps: Sequence[int]) -> List[date]:
    """
    Map each timestamp to a calendar date.

    One date per timestamp, no deduplication, so the output stays aligned
    with the price series it came from.
    """
    if not timestamps:
        return []
    return [to_local_date(ts) for ts in timestamps]


def validate_period(start_date: date, end_date: date) -> None:
    """
    Validate an analysis period.

    Raises:
        ValueError: If either bound is missing or start is after end
    """
    if start_date is None:
        raise ValueError("Start date cannot be None")
    if end_date is None:
        raise ValueError("End date cannot be None")
    if start_date > end_date:
        raise ValueError("Start date must be before or equal to end date")


def trading_days(start_date: date, end_date: date) -> int:
    """
    Count weekdays between two dates, both ends inclusive.

    Exchange holidays are not modeled.
    """
    validate_period(start_date, end_date)

    count = 0
    current = start_date
    while current <= end_date:
        if current.weekday() < 5:
            count += 1
        current += timedelta(days=1)
    return count


def sort_dates(dates: Sequence[date]) -> List[date]:
    if dates is None:
        raise ValueError("Dates list cannot be None")
    return sorted(dates)
