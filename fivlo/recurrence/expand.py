"""Expand a recurrence rule into the ordered dates it occurs on.

Pure: no storage, no clock. Persisting the dates is `fivlo.recurrence.materialize`.
"""

from __future__ import annotations

import calendar
from datetime import date, timedelta
from typing import Iterator

from fivlo.errors import InvalidRecurrenceError, RecurrenceRangeExceededError
from fivlo.models.constants import MAX_RECURRENCE_SPAN_DAYS
from fivlo.models.recurrence import RecurrenceRule, RepeatType, Weekday, weekday_of


def _daterange(start: date, end_inclusive: date) -> Iterator[date]:
    cur = start
    while cur <= end_inclusive:
        yield cur
        cur = cur + timedelta(days=1)


def _add_months(anchor: date, months: int) -> date:
    """Same day-of-month `months` later, clamped to the last day of shorter months."""
    month_index = anchor.month - 1 + months
    year = anchor.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(anchor.day, last_day))


def validate_rule(rule: RecurrenceRule) -> None:
    """Raise InvalidRecurrenceError / RecurrenceRangeExceededError for a bad rule."""
    repeat_type = RepeatType(rule.type)
    if repeat_type == RepeatType.NONE:
        return

    if rule.end_date is None:
        raise InvalidRecurrenceError(
            f"end_date is required for {repeat_type.value} recurrence", field="end_date"
        )
    if rule.end_date < rule.start_date:
        raise InvalidRecurrenceError(
            f"end_date {rule.end_date} is before start_date {rule.start_date}", field="end_date"
        )
    if repeat_type == RepeatType.WEEKLY and not rule.weekdays:
        raise InvalidRecurrenceError("weekly recurrence needs at least one weekday", field="weekdays")

    span = (rule.end_date - rule.start_date).days
    if span > MAX_RECURRENCE_SPAN_DAYS:
        raise RecurrenceRangeExceededError(
            f"recurrence spans {span} days; at most {MAX_RECURRENCE_SPAN_DAYS} are allowed",
            max_days=MAX_RECURRENCE_SPAN_DAYS,
        )


class RecurrenceExpansion:
    """Lazy, finite sequence of occurrence dates.

    Iterating again restarts from the start date.
    """

    def __init__(self, rule: RecurrenceRule):
        self.rule = rule

    def __iter__(self) -> Iterator[date]:
        rule = self.rule
        repeat_type = RepeatType(rule.type)

        if repeat_type == RepeatType.NONE:
            yield rule.start_date
            return

        if repeat_type == RepeatType.DAILY:
            yield from _daterange(rule.start_date, rule.end_date)
            return

        if repeat_type == RepeatType.WEEKLY:
            weekdays = {Weekday(d) for d in rule.weekdays}
            for day in _daterange(rule.start_date, rule.end_date):
                if weekday_of(day) in weekdays:
                    yield day
            return

        # monthly
        months = 0
        while True:
            day = _add_months(rule.start_date, months)
            if day > rule.end_date:
                return
            yield day
            months += 1

    def __repr__(self) -> str:
        return f"RecurrenceExpansion({self.rule!r})"


def expand_recurrence(rule: RecurrenceRule) -> RecurrenceExpansion:
    """Validate `rule` and return the dates it occurs on, in ascending order.

    Validation happens here, before anything is iterated or persisted.
    """
    validate_rule(rule)
    return RecurrenceExpansion(rule)
