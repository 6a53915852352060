"""
Common date/time utility functions for consistent date/time handling across the application

Storage: All timestamps are stored in UTC in the backend
Reports: Timestamps are bucketed by their UTC calendar day

SQLite hands back naive datetimes even for timezone-aware columns, so every
comparison goes through as_utc() first.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Iterator


def as_utc(dt: datetime) -> datetime:
    """
    Convert dt to tz-aware UTC.
    If dt is naive, we treat it as UTC (consistent with existing behavior).

    Args:
        dt: datetime object (naive or timezone-aware)

    Returns:
        datetime object in UTC timezone
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def utc_now() -> datetime:
    """
    Get current UTC datetime.

    Returns:
        Current datetime in UTC timezone
    """
    return datetime.now(timezone.utc)


def utc_today() -> date:
    return utc_now().date()


def to_date(value: date | datetime) -> date:
    """
    Reduce a date or datetime to its UTC calendar day.
    """
    if isinstance(value, datetime):
        return as_utc(value).date()
    return value


def iter_days(start: date, end: date) -> Iterator[date]:
    """
    Yield every calendar day from start to end, both inclusive.
    Yields nothing when end is before start.
    """
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def trailing_range(days: int, end: date | None = None) -> tuple[date, date]:
    """
    Date range covering the last `days` days, today included.

    Example: trailing_range(7) on 2024-12-28 -> (2024-12-22, 2024-12-28)
    """
    end = end or utc_today()
    return end - timedelta(days=max(days, 1) - 1), end
