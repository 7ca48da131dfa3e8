"""UTC-everywhere time handling. Timestamps are UTC; calendar dates are UTC dates."""

from datetime import date, datetime, timezone


def now_utc() -> datetime:
    """
    Current time in UTC.

    Use this instead of datetime.now() everywhere.
    """
    return datetime.now(timezone.utc)


def today_utc() -> date:
    """Current calendar date in UTC. Used for due-date comparisons."""
    return now_utc().date()
