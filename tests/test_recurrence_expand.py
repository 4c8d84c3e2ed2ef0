"""Tests for recurrence expansion (pure date generation)."""

import pytest
from datetime import date

from fivlo.errors import InvalidRecurrenceError, RecurrenceRangeExceededError
from fivlo.models.recurrence import RecurrenceRule, RepeatType, Weekday
from fivlo.recurrence.expand import expand_recurrence


class TestExpandRecurrence:

    def test_weekly_mon_wed_fri_over_three_weeks(self):
        rule = RecurrenceRule(
            type=RepeatType.WEEKLY,
            start_date=date(2025, 1, 6),
            end_date=date(2025, 1, 24),
            weekdays=[Weekday.MON, Weekday.WED, Weekday.FRI],
        )
        dates = list(expand_recurrence(rule))
        assert dates == [
            date(2025, 1, 6), date(2025, 1, 8), date(2025, 1, 10),
            date(2025, 1, 13), date(2025, 1, 15), date(2025, 1, 17),
            date(2025, 1, 20), date(2025, 1, 22), date(2025, 1, 24),
        ]

    def test_weekly_starting_mid_week_skips_earlier_weekdays(self):
        rule = RecurrenceRule(
            type=RepeatType.WEEKLY,
            start_date=date(2025, 1, 9),  # Thursday
            end_date=date(2025, 1, 14),
            weekdays=[Weekday.MON, Weekday.THU],
        )
        assert list(expand_recurrence(rule)) == [date(2025, 1, 9), date(2025, 1, 13)]

    def test_daily_is_inclusive_of_both_ends(self):
        rule = RecurrenceRule(type=RepeatType.DAILY, start_date=date(2025, 2, 27), end_date=date(2025, 3, 2))
        assert list(expand_recurrence(rule)) == [
            date(2025, 2, 27), date(2025, 2, 28), date(2025, 3, 1), date(2025, 3, 2)
        ]

    def test_monthly_clamps_to_month_end(self):
        rule = RecurrenceRule(type=RepeatType.MONTHLY, start_date=date(2025, 1, 31), end_date=date(2025, 4, 30))
        assert list(expand_recurrence(rule)) == [
            date(2025, 1, 31), date(2025, 2, 28), date(2025, 3, 31), date(2025, 4, 30)
        ]

    def test_monthly_leap_year(self):
        rule = RecurrenceRule(type=RepeatType.MONTHLY, start_date=date(2024, 1, 30), end_date=date(2024, 3, 1))
        assert list(expand_recurrence(rule)) == [date(2024, 1, 30), date(2024, 2, 29)]

    def test_none_yields_only_start_date(self):
        rule = RecurrenceRule(type=RepeatType.NONE, start_date=date(2025, 5, 5))
        assert list(expand_recurrence(rule)) == [date(2025, 5, 5)]

    def test_single_day_range(self):
        rule = RecurrenceRule(type=RepeatType.DAILY, start_date=date(2025, 5, 5), end_date=date(2025, 5, 5))
        assert list(expand_recurrence(rule)) == [date(2025, 5, 5)]

    def test_expansion_is_restartable(self):
        rule = RecurrenceRule(type=RepeatType.DAILY, start_date=date(2025, 1, 1), end_date=date(2025, 1, 3))
        expansion = expand_recurrence(rule)
        assert list(expansion) == list(expansion)
        assert len(list(expansion)) == 3

    def test_dates_are_strictly_increasing(self):
        rule = RecurrenceRule(
            type=RepeatType.WEEKLY,
            start_date=date(2025, 1, 1),
            end_date=date(2025, 3, 31),
            weekdays=[Weekday.SUN, Weekday.MON, Weekday.MON],
        )
        dates = list(expand_recurrence(rule))
        assert dates == sorted(set(dates))


class TestRecurrenceValidation:

    def test_missing_end_date(self):
        rule = RecurrenceRule(type=RepeatType.DAILY, start_date=date(2025, 1, 1))
        with pytest.raises(InvalidRecurrenceError) as exc:
            expand_recurrence(rule)
        assert exc.value.field == "end_date"

    def test_end_before_start(self):
        rule = RecurrenceRule(type=RepeatType.DAILY, start_date=date(2025, 1, 10), end_date=date(2025, 1, 9))
        with pytest.raises(InvalidRecurrenceError) as exc:
            expand_recurrence(rule)
        assert exc.value.field == "end_date"

    def test_weekly_without_weekdays(self):
        rule = RecurrenceRule(type=RepeatType.WEEKLY, start_date=date(2025, 1, 1), end_date=date(2025, 1, 31))
        with pytest.raises(InvalidRecurrenceError) as exc:
            expand_recurrence(rule)
        assert exc.value.field == "weekdays"

    def test_validation_is_eager(self):
        """Errors surface on the call, not when iteration starts."""
        rule = RecurrenceRule(type=RepeatType.MONTHLY, start_date=date(2025, 1, 1))
        with pytest.raises(InvalidRecurrenceError):
            expand_recurrence(rule)

    def test_span_cap(self):
        rule = RecurrenceRule(type=RepeatType.DAILY, start_date=date(2025, 1, 1), end_date=date(2027, 1, 2))
        with pytest.raises(RecurrenceRangeExceededError) as exc:
            expand_recurrence(rule)
        assert exc.value.max_days == 730

    def test_span_at_cap_is_allowed(self):
        rule = RecurrenceRule(type=RepeatType.DAILY, start_date=date(2025, 1, 1), end_date=date(2027, 1, 1))
        assert len(list(expand_recurrence(rule))) == 731

    def test_errors_are_value_errors(self):
        rule = RecurrenceRule(type=RepeatType.DAILY, start_date=date(2025, 1, 1))
        with pytest.raises(ValueError):
            expand_recurrence(rule)
