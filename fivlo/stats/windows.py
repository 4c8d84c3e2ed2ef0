"""Daily / weekly / monthly windows anchored to a local calendar day."""

from datetime import date, datetime, time, timedelta
from typing import Tuple, Union
from zoneinfo import ZoneInfo

from fivlo.clock import resolve_timezone, to_utc_naive
from fivlo.models.stats import PeriodType, PeriodWindow


def _local_midnight(day: date, tz: ZoneInfo) -> datetime:
    return datetime.combine(day, time(0, 0), tzinfo=tz)


def _first_of_next_month(day: date) -> date:
    if day.month == 12:
        return date(day.year + 1, 1, 1)
    return date(day.year, day.month + 1, 1)


def period_window(period: Union[PeriodType, str], reference: date, tz: Union[ZoneInfo, str, None] = None) -> PeriodWindow:
    """Compute the [start, end) window containing `reference`.

    Weeks start on Monday. Boundaries are local midnights, so a window keeps its
    calendar days across DST changes.
    """
    period = PeriodType(period)
    if not isinstance(tz, ZoneInfo):
        tz = resolve_timezone(tz)

    if period == PeriodType.DAILY:
        first_day = reference
        next_day = reference + timedelta(days=1)
        label = reference.isoformat()
    elif period == PeriodType.WEEKLY:
        first_day = reference - timedelta(days=reference.weekday())
        next_day = first_day + timedelta(days=7)
        label = f"{first_day.isoformat()} ~ {(next_day - timedelta(days=1)).isoformat()}"
    else:
        first_day = reference.replace(day=1)
        next_day = _first_of_next_month(first_day)
        label = f"{first_day.year:04d}-{first_day.month:02d}"

    return PeriodWindow(
        period=period,
        timezone=tz.key,
        reference=reference,
        start=_local_midnight(first_day, tz),
        end=_local_midnight(next_day, tz),
        first_day=first_day,
        last_day=next_day - timedelta(days=1),
        label=label,
    )


def utc_bounds(window: PeriodWindow) -> Tuple[datetime, datetime]:
    """Window bounds as naive UTC, the representation stored timestamps use."""
    return to_utc_naive(window.start), to_utc_naive(window.end)


def window_days(window: PeriodWindow):
    """Calendar days covered by the window, in order."""
    day = window.first_day
    while day <= window.last_day:
        yield day
        day += timedelta(days=1)
