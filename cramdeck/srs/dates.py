"""Day-granularity date arithmetic.

Everything the scheduler compares is a calendar day. Datetimes are floored to their
date before any comparison so time-of-day never shifts a due date.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta

from cramdeck.config import utcnow


def today() -> date:
    """Return the current UTC calendar day."""
    return utcnow().date()


def day_floor(value: date | datetime) -> date:
    """Strip the time-of-day from a datetime; dates pass through unchanged."""
    if isinstance(value, datetime):
        return value.date()
    return value


def days_between(start: date | datetime, end: date | datetime) -> int:
    """Whole days from ``start`` to ``end`` (negative when ``end`` is earlier)."""
    return (day_floor(end) - day_floor(start)).days


def add_days(value: date | datetime, days: int) -> date:
    return day_floor(value) + timedelta(days=days)


def day_before(value: date | datetime) -> date:
    return add_days(value, -1)
