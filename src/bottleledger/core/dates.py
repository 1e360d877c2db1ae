"""
Date-range arithmetic shared by the ledger.

Every instant handled by bottleledger is a timezone-aware UTC datetime at
millisecond precision, matching the persisted form (integer milliseconds
since the Unix epoch). Naive datetimes are interpreted as UTC and plain
``date`` values mean midnight UTC.

Month boundaries:
    start = day 1 at 00:00:00.000
    end   = "day 0 of the following month" (the last calendar day) at
            23:59:59.999, the last instant representable in storage
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
END_OF_DAY = time(23, 59, 59, 999000)

_ONE_MS = timedelta(milliseconds=1)


def to_utc(value: datetime | date) -> datetime:
    """Normalize a date or datetime to an aware UTC datetime truncated to milliseconds."""
    if not isinstance(value, datetime):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)

    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    else:
        value = value.astimezone(timezone.utc)
    return value.replace(microsecond=value.microsecond - value.microsecond % 1000)


def to_timestamp_ms(value: datetime | date) -> int:
    """Milliseconds since the epoch for ``value``."""
    return (to_utc(value) - EPOCH) // _ONE_MS


def from_timestamp_ms(value: int) -> datetime:
    """Inverse of :func:`to_timestamp_ms`."""
    return EPOCH + timedelta(milliseconds=value)


def _normalize_month(year: int, month: int) -> tuple[int, int]:
    # month 13 of Y is January of Y+1, month 0 is December of Y-1
    return year + (month - 1) // 12, (month - 1) % 12 + 1


def month_start(year: int, month: int) -> datetime:
    """First instant of the given month (month may overflow either way)."""
    year, month = _normalize_month(year, month)
    return datetime(year, month, 1, tzinfo=timezone.utc)


def month_range(year: int, month: int) -> tuple[datetime, datetime]:
    """
    Inclusive ``(start, end)`` bounds of a calendar month.

    Args:
        year: Calendar year
        month: Month number; values outside 1-12 roll over into adjacent years

    Returns:
        Tuple of first and last instant of the month
    """
    start = month_start(year, month)
    last_day = month_start(year, month + 1) - timedelta(days=1)
    end = datetime.combine(last_day.date(), END_OF_DAY, tzinfo=timezone.utc)
    return start, end


def day_range(day: datetime | date) -> tuple[datetime, datetime]:
    """Inclusive ``(start, end)`` bounds of the UTC calendar day containing ``day``."""
    day_date = to_utc(day).date()
    return (
        datetime.combine(day_date, time.min, tzinfo=timezone.utc),
        datetime.combine(day_date, END_OF_DAY, tzinfo=timezone.utc),
    )


def shift_month(current: datetime | date, delta: int) -> date:
    """
    Move ``delta`` months away from the month containing ``current``.

    Returns the first day of the target month. Rolls over year boundaries in
    both directions, e.g. January 2024 shifted by -1 is December 2023.
    """
    year, month = _normalize_month(current.year, current.month + delta)
    return date(year, month, 1)
