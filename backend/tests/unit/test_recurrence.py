"""
Tests for RecurrenceCalculator date arithmetic and rule validation.
"""

from datetime import date, datetime, timezone
from uuid import uuid4

import pytest

from taskcore.core.exceptions import InvalidRecurrenceRuleError
from taskcore.models.enums import RecurrenceType, RecurrenceUnit
from taskcore.models.task import TaskCreate
from taskcore.services.recurrence import (
    RecurrenceCalculator,
    recurrence_fields_changed,
    validate_recurrence_rule,
)


def _rule(recurrence_type: RecurrenceType, **fields) -> TaskCreate:
    """Helper to create a task carrying a recurrence rule."""
    return TaskCreate(name="Recurring", recurrence_type=recurrence_type, **fields)


@pytest.fixture
def calc():
    return RecurrenceCalculator()


class TestNextOccurrenceDaily:
    def test_daily_returns_next_day(self, calc):
        assert calc.next_occurrence(_rule(RecurrenceType.DAILY), date(2025, 3, 10)) == date(2025, 3, 11)

    def test_daily_interval(self, calc):
        rule = _rule(RecurrenceType.DAILY, recurrence_interval=3)
        assert calc.next_occurrence(rule, date(2025, 12, 30)) == date(2026, 1, 2)

    def test_non_positive_interval_is_one(self, calc):
        rule = _rule(RecurrenceType.DAILY, recurrence_interval=0)
        assert calc.next_occurrence(rule, date(2025, 3, 10)) == date(2025, 3, 11)

    def test_datetime_keeps_time_of_day(self, calc):
        start = datetime(2025, 3, 10, 9, 30, tzinfo=timezone.utc)
        result = calc.next_occurrence(_rule(RecurrenceType.DAILY), start)
        assert result == datetime(2025, 3, 11, 9, 30, tzinfo=timezone.utc)

    def test_none_rule_has_no_next(self, calc):
        assert calc.next_occurrence(_rule(RecurrenceType.NONE), date(2025, 3, 10)) is None


class TestNextOccurrenceWeekly:
    def test_same_weekday_moves_a_full_week(self, calc):
        # Wednesday -> next Wednesday
        rule = _rule(RecurrenceType.WEEKLY, recurrence_weekday=2)
        assert calc.next_occurrence(rule, date(2025, 3, 12)) == date(2025, 3, 19)

    def test_later_weekday_in_same_week(self, calc):
        rule = _rule(RecurrenceType.WEEKLY, recurrence_weekday=4)
        assert calc.next_occurrence(rule, date(2025, 3, 10)) == date(2025, 3, 14)

    def test_earlier_weekday_wraps(self, calc):
        rule = _rule(RecurrenceType.WEEKLY, recurrence_weekday=1)
        assert calc.next_occurrence(rule, date(2025, 3, 14)) == date(2025, 3, 18)

    def test_biweekly_same_weekday(self, calc):
        rule = _rule(RecurrenceType.WEEKLY, recurrence_weekday=2, recurrence_interval=2)
        assert calc.next_occurrence(rule, date(2025, 3, 12)) == date(2025, 3, 26)

    def test_without_weekday_steps_by_weeks(self, calc):
        rule = _rule(RecurrenceType.WEEKLY, recurrence_interval=2)
        assert calc.next_occurrence(rule, date(2025, 3, 12)) == date(2025, 3, 26)


class TestNextOccurrenceWeekdays:
    def test_nearest_listed_weekday(self, calc):
        # Mon/Wed/Fri, from Wednesday -> Friday
        rule = _rule(RecurrenceType.WEEKLY, recurrence_weekdays=[0, 2, 4])
        assert calc.next_occurrence(rule, date(2025, 3, 12)) == date(2025, 3, 14)

    def test_wraps_to_first_listed_weekday(self, calc):
        rule = _rule(RecurrenceType.WEEKLY, recurrence_weekdays=[4, 0, 2])
        assert calc.next_occurrence(rule, date(2025, 3, 14)) == date(2025, 3, 17)

    def test_from_unlisted_day(self, calc):
        rule = _rule(RecurrenceType.WEEKLY, recurrence_weekdays=[1, 3])
        assert calc.next_occurrence(rule, date(2025, 3, 15)) == date(2025, 3, 18)

    def test_interval_skips_weeks_on_wrap(self, calc):
        rule = _rule(RecurrenceType.WEEKLY, recurrence_weekdays=[0, 4], recurrence_interval=2)
        assert calc.next_occurrence(rule, date(2025, 3, 10)) == date(2025, 3, 14)
        assert calc.next_occurrence(rule, date(2025, 3, 14)) == date(2025, 3, 24)

    def test_weekdays_take_precedence_over_weekday(self, calc):
        rule = _rule(RecurrenceType.WEEKLY, recurrence_weekday=0, recurrence_weekdays=[3])
        assert calc.next_occurrence(rule, date(2025, 3, 12)) == date(2025, 3, 13)

    def test_empty_list_falls_back_to_weekday(self, calc):
        rule = _rule(RecurrenceType.WEEKLY, recurrence_weekday=0, recurrence_weekdays=[])
        assert calc.next_occurrence(rule, date(2025, 3, 12)) == date(2025, 3, 17)

    def test_preview(self, calc):
        rule = _rule(RecurrenceType.WEEKLY, recurrence_weekdays=[1, 3])
        assert calc.preview_iterations(rule, date(2025, 3, 12), count=4) == [
            date(2025, 3, 13),
            date(2025, 3, 18),
            date(2025, 3, 20),
            date(2025, 3, 25),
        ]


class TestCompletionBased:
    def test_counts_from_completion_day(self, calc):
        # Due Mar 3, completed late on Mar 12: the next one is a week after completion
        rule = _rule(RecurrenceType.WEEKLY, completion_based=True)
        due_based = calc.next_occurrence(rule, date(2025, 3, 3))
        from_completion = calc.next_occurrence(rule, date(2025, 3, 12))
        assert due_based == date(2025, 3, 10)
        assert from_completion == date(2025, 3, 19)

    def test_flag_is_a_rule_field(self):
        assert recurrence_fields_changed({"completion_based": True})
        assert recurrence_fields_changed({"recurrence_weekdays": [0, 2]})



class TestNextOccurrenceMonthly:
    def test_day_31_clamps_in_february(self, calc):
        rule = _rule(RecurrenceType.MONTHLY, recurrence_month_day=31)
        assert calc.next_occurrence(rule, date(2025, 1, 31)) == date(2025, 2, 28)
        assert calc.next_occurrence(rule, date(2024, 1, 31)) == date(2024, 2, 29)

    def test_day_31_returns_after_short_month(self, calc):
        rule = _rule(RecurrenceType.MONTHLY, recurrence_month_day=31)
        assert calc.next_occurrence(rule, date(2025, 2, 28)) == date(2025, 3, 31)

    def test_year_boundary(self, calc):
        rule = _rule(RecurrenceType.MONTHLY, recurrence_month_day=15)
        assert calc.next_occurrence(rule, date(2025, 12, 15)) == date(2026, 1, 15)

    def test_month_day_defaults_to_current_day(self, calc):
        rule = _rule(RecurrenceType.MONTHLY)
        assert calc.next_occurrence(rule, date(2025, 3, 10)) == date(2025, 4, 10)

    def test_last_day_of_month(self, calc):
        rule = _rule(RecurrenceType.MONTHLY_LAST_DAY)
        assert calc.next_occurrence(rule, date(2025, 1, 31)) == date(2025, 2, 28)
        assert calc.next_occurrence(rule, date(2025, 2, 28)) == date(2025, 3, 31)

    def test_nth_weekday(self, calc):
        # Second Tuesday
        rule = _rule(
            RecurrenceType.MONTHLY_WEEKDAY, recurrence_weekday=1, recurrence_week_of_month=2
        )
        assert calc.next_occurrence(rule, date(2025, 3, 11)) == date(2025, 4, 8)

    def test_fifth_weekday_falls_back_to_last(self, calc):
        # February 2025 has only four Fridays
        rule = _rule(
            RecurrenceType.MONTHLY_WEEKDAY, recurrence_weekday=4, recurrence_week_of_month=5
        )
        assert calc.next_occurrence(rule, date(2025, 1, 31)) == date(2025, 2, 28)


class TestNextOccurrenceCustom:
    def test_custom_weeks(self, calc):
        rule = _rule(
            RecurrenceType.CUSTOM, recurrence_interval=2, recurrence_unit=RecurrenceUnit.WEEK
        )
        assert calc.next_occurrence(rule, date(2025, 3, 12)) == date(2025, 3, 26)

    def test_custom_days(self, calc):
        rule = _rule(
            RecurrenceType.CUSTOM, recurrence_interval=10, recurrence_unit=RecurrenceUnit.DAY
        )
        assert calc.next_occurrence(rule, date(2025, 3, 25)) == date(2025, 4, 4)

    def test_custom_year_from_leap_day(self, calc):
        rule = _rule(RecurrenceType.CUSTOM, recurrence_unit=RecurrenceUnit.YEAR)
        assert calc.next_occurrence(rule, date(2024, 2, 29)) == date(2025, 2, 28)


class TestEndDate:
    def test_end_date_is_inclusive(self, calc):
        rule = _rule(RecurrenceType.DAILY, recurrence_end_date=date(2025, 3, 11))
        assert calc.next_occurrence(rule, date(2025, 3, 10)) == date(2025, 3, 11)
        assert calc.next_occurrence(rule, date(2025, 3, 11)) is None

    def test_iteration_stops_at_end_date(self, calc):
        rule = _rule(RecurrenceType.DAILY, recurrence_end_date=date(2025, 3, 12))
        days = list(calc.iter_occurrences(rule, date(2025, 3, 1), date(2025, 3, 31), date(2025, 3, 10)))
        assert days == [date(2025, 3, 10), date(2025, 3, 11), date(2025, 3, 12)]

    def test_anchor_after_end_date_yields_nothing(self, calc):
        rule = _rule(RecurrenceType.DAILY, recurrence_end_date=date(2025, 3, 1))
        assert list(calc.iter_occurrences(rule, date(2025, 3, 1), date(2025, 3, 31), date(2025, 3, 10))) == []


class TestIterOccurrences:
    def test_anchor_on_31st_does_not_drift(self, calc):
        rule = _rule(RecurrenceType.MONTHLY)
        days = list(calc.iter_occurrences(rule, date(2025, 1, 1), date(2025, 5, 31), date(2025, 1, 31)))
        assert days == [
            date(2025, 1, 31),
            date(2025, 2, 28),
            date(2025, 3, 31),
            date(2025, 4, 30),
            date(2025, 5, 31),
        ]

    def test_dates_before_window_are_skipped(self, calc):
        rule = _rule(RecurrenceType.WEEKLY, recurrence_weekday=2)
        days = list(calc.iter_occurrences(rule, date(2025, 3, 13), date(2025, 3, 31), date(2025, 3, 5)))
        assert days == [date(2025, 3, 19), date(2025, 3, 26)]

    def test_iteration_cap(self):
        calc = RecurrenceCalculator(max_iterations=5)
        rule = _rule(RecurrenceType.DAILY)
        days = list(calc.iter_occurrences(rule, date(2025, 1, 1), date(2025, 12, 31), date(2025, 1, 1)))
        assert len(days) == 5

    def test_none_rule_yields_nothing(self, calc):
        rule = _rule(RecurrenceType.NONE)
        assert list(calc.iter_occurrences(rule, date(2025, 1, 1), date(2025, 1, 31), date(2025, 1, 1))) == []


class TestPreviewIterations:
    def test_default_count_is_six(self, calc):
        rule = _rule(RecurrenceType.WEEKLY, recurrence_weekday=0)
        days = calc.preview_iterations(rule, date(2025, 3, 12))
        assert days == [
            date(2025, 3, 17),
            date(2025, 3, 24),
            date(2025, 3, 31),
            date(2025, 4, 7),
            date(2025, 4, 14),
            date(2025, 4, 21),
        ]

    def test_preview_is_strictly_after_start(self, calc):
        rule = _rule(RecurrenceType.DAILY)
        assert calc.preview_iterations(rule, date(2025, 3, 12), count=2) == [
            date(2025, 3, 13),
            date(2025, 3, 14),
        ]

    def test_preview_stops_at_end_date(self, calc):
        rule = _rule(RecurrenceType.DAILY, recurrence_end_date=date(2025, 3, 14))
        assert calc.preview_iterations(rule, date(2025, 3, 12)) == [
            date(2025, 3, 13),
            date(2025, 3, 14),
        ]


class TestValidation:
    def test_plain_task_is_valid(self):
        validate_recurrence_rule(TaskCreate(name="Plain"))

    @pytest.mark.parametrize(
        "fields",
        [
            {"recurrence_weekday": 7},
            {"recurrence_weekday": -1},
            {"recurrence_month_day": 0},
            {"recurrence_month_day": 32},
            {"recurrence_week_of_month": 6},
        ],
    )
    def test_out_of_range_fields(self, fields):
        with pytest.raises(InvalidRecurrenceRuleError):
            validate_recurrence_rule(_rule(RecurrenceType.MONTHLY_WEEKDAY, **fields))

    @pytest.mark.parametrize("weekdays", [[7], [0, -1], [2, 9]])
    def test_out_of_range_weekdays(self, weekdays):
        with pytest.raises(InvalidRecurrenceRuleError):
            validate_recurrence_rule(_rule(RecurrenceType.WEEKLY, recurrence_weekdays=weekdays))

    def test_occurrence_cannot_recur(self):
        with pytest.raises(InvalidRecurrenceRuleError):
            validate_recurrence_rule(_rule(RecurrenceType.DAILY, recurring_parent_id=uuid4()))

    def test_subtask_cannot_recur(self):
        with pytest.raises(InvalidRecurrenceRuleError):
            validate_recurrence_rule(_rule(RecurrenceType.DAILY, parent_task_id=uuid4()))


class TestRecurrenceFieldsChanged:
    def test_rule_fields(self):
        assert recurrence_fields_changed({"recurrence_type": RecurrenceType.WEEKLY})
        assert recurrence_fields_changed({"due_date": None})
        assert recurrence_fields_changed({"name": "Renamed"})

    def test_unrelated_fields(self):
        assert not recurrence_fields_changed({"status": "done"})
        assert not recurrence_fields_changed({"today": True})
        assert not recurrence_fields_changed({})
