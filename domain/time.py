"""
Domain time utilities (pure).

Centralized timestamp validation and day arithmetic.

Behavior and error messages must remain consistent across the domain model.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

ONE_DAY = timedelta(days=1)


def require_utc_timestamp(name: str, value: datetime) -> None:
    """
    Enforces that timestamps are UTC.

    Invariants:
    - Timestamps must be timezone-aware.
    - Timestamps must have UTC offset 0.
    """

    if value.tzinfo is None or value.utcoffset() is None:
        raise ValueError(f"{name} must be timezone-aware (UTC)")
    if value.utcoffset() != timedelta(0):
        raise ValueError(f"{name} must be a UTC timestamp (offset 0)")


def whole_days_between(start: datetime, end: datetime) -> int:
    """
    Whole 24-hour days from start to end:

    days = floor((end - start) / 24 hours)

    The result is negative when end precedes start.
    """

    require_utc_timestamp("start", start)
    require_utc_timestamp("end", end)
    return int((end - start) // ONE_DAY)


def utc_now() -> datetime:
    """Wall-clock time as a UTC timestamp. Only entry points should call this."""

    return datetime.now(timezone.utc)
