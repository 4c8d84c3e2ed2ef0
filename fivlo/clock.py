"""Clock and timezone helpers.

Core functions never read the wall clock themselves; they receive a `Clock`
(or an explicit `today`). Stored timestamps are naive UTC.
"""

from datetime import date, datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fivlo.models.constants import DEFAULT_TIMEZONE


def resolve_timezone(name: Optional[str]) -> ZoneInfo:
    """Return the ZoneInfo for `name`, falling back to the default timezone."""
    try:
        return ZoneInfo(name or DEFAULT_TIMEZONE)
    except (ZoneInfoNotFoundError, ValueError):
        return ZoneInfo(DEFAULT_TIMEZONE)


def to_utc_naive(dt: datetime) -> datetime:
    """Normalize an aware datetime to naive UTC (naive input is assumed UTC already)."""
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def to_local(dt: datetime, tz: ZoneInfo) -> datetime:
    """Convert a stored (naive UTC) or aware datetime into `tz`."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(tz)


class Clock:
    """Wall clock. Override `now()` in tests."""

    def now(self) -> datetime:
        """Current time, timezone-aware UTC."""
        return datetime.now(timezone.utc)

    def utcnow(self) -> datetime:
        """Current time as naive UTC, the storage representation."""
        return self.now().replace(tzinfo=None)

    def today(self, tz_name: Optional[str] = None) -> date:
        """Calendar day in the given timezone."""
        return self.now().astimezone(resolve_timezone(tz_name)).date()


class FixedClock(Clock):
    """Clock frozen at a given instant."""

    def __init__(self, at: datetime):
        if at.tzinfo is None:
            at = at.replace(tzinfo=timezone.utc)
        self.at = at

    def now(self) -> datetime:
        return self.at


system_clock = Clock()


def get_clock() -> Clock:
    """Clock dependency (for FastAPI)."""
    return system_clock
