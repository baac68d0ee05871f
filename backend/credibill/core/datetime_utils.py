"""Datetime utilities for the epoch millisecond timestamps used across billing."""

from datetime import datetime, timezone

MS_PER_SECOND = 1_000
MS_PER_MINUTE = 60 * MS_PER_SECOND
MS_PER_HOUR = 60 * MS_PER_MINUTE
MS_PER_DAY = 24 * MS_PER_HOUR


def utc_now() -> datetime:
    """Get current UTC time as a timezone-aware datetime."""
    return datetime.now(timezone.utc)


def utc_now_naive() -> datetime:
    """Get current UTC time as naive datetime for database operations.

    Returns:
        Current datetime in UTC as naive datetime (no timezone info).

    Note:
        Used for the created_at/modified_at audit columns, which are stored as
        TIMESTAMP WITHOUT TIME ZONE.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def utc_now_ms() -> int:
    """Get current UTC time in epoch milliseconds.

    Only callers at the edge (scheduler ticks, API requests) read the clock;
    billing functions receive `now` as an argument.
    """
    return int(utc_now().timestamp() * MS_PER_SECOND)


def ms_to_datetime(value: int) -> datetime:
    """Convert epoch milliseconds to a timezone-aware UTC datetime."""
    return datetime.fromtimestamp(value / MS_PER_SECOND, tz=timezone.utc)


def datetime_to_ms(value: datetime) -> int:
    """Convert a datetime to epoch milliseconds, treating naive values as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp() * MS_PER_SECOND)
