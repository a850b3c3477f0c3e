"""
Recurrence calculator.

Pure date arithmetic for recurring task rules. Works on calendar dates; when a
datetime is given its time-of-day (and tzinfo) is carried over to the result.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime, timedelta
from typing import Iterator, Optional, Union

from taskcore.core.exceptions import InvalidRecurrenceRuleError
from taskcore.models.enums import RecurrenceType, RecurrenceUnit
from taskcore.models.task import TaskBase

DateLike = Union[date, datetime]

# Upcoming-dates preview length
DEFAULT_PREVIEW_COUNT = 6

# Fields whose change invalidates already generated future occurrences
RECURRENCE_FIELDS = frozenset(
    {
        "recurrence_type",
        "recurrence_interval",
        "recurrence_weekday",
        "recurrence_weekdays",
        "recurrence_month_day",
        "recurrence_week_of_month",
        "recurrence_unit",
        "recurrence_end_date",
        "completion_based",
        "due_date",
    }
)

# Template fields copied onto occurrences
PROPAGATED_FIELDS = frozenset({"name", "note", "priority", "project_id"})


def validate_recurrence_rule(task: TaskBase) -> None:
    """
    Reject rules that cannot be evaluated or that break task invariants.

    Raises:
        InvalidRecurrenceRuleError: On out-of-range fields, a recurring
            occurrence or a recurring subtask
    """
    if task.recurrence_type == RecurrenceType.NONE:
        return

    parent = getattr(task, "recurring_parent_id", None)
    if parent is not None:
        raise InvalidRecurrenceRuleError(
            "Generated occurrences cannot carry a recurrence rule",
            details={"recurring_parent_id": str(parent)},
        )
    if task.parent_task_id is not None:
        raise InvalidRecurrenceRuleError(
            "Subtasks cannot recur",
            details={"parent_task_id": str(task.parent_task_id)},
        )

    weekday = task.recurrence_weekday
    if weekday is not None and not 0 <= weekday <= 6:
        raise InvalidRecurrenceRuleError(
            "recurrence_weekday must be between 0 (Monday) and 6 (Sunday)",
            details={"recurrence_weekday": weekday},
        )
    weekdays = task.recurrence_weekdays
    if weekdays is not None and any(not 0 <= day <= 6 for day in weekdays):
        raise InvalidRecurrenceRuleError(
            "recurrence_weekdays must only hold 0 (Monday) to 6 (Sunday)",
            details={"recurrence_weekdays": weekdays},
        )
    month_day = task.recurrence_month_day
    if month_day is not None and not 1 <= month_day <= 31:
        raise InvalidRecurrenceRuleError(
            "recurrence_month_day must be between 1 and 31",
            details={"recurrence_month_day": month_day},
        )
    week = task.recurrence_week_of_month
    if week is not None and not 1 <= week <= 5:
        raise InvalidRecurrenceRuleError(
            "recurrence_week_of_month must be between 1 and 5",
            details={"recurrence_week_of_month": week},
        )


def recurrence_fields_changed(changes: dict) -> bool:
    """True when an update touches fields that require regenerating occurrences."""
    return bool((RECURRENCE_FIELDS | PROPAGATED_FIELDS | {"tags"}) & set(changes))


def _add_months(day: date, months: int, month_day: int) -> date:
    """Shift by whole months, clamping ``month_day`` to the target month."""
    index = day.year * 12 + (day.month - 1) + months
    year, month = divmod(index, 12)
    month += 1
    last = calendar.monthrange(year, month)[1]
    return date(year, month, min(month_day, last))


def _last_day_of_month(year: int, month: int) -> date:
    return date(year, month, calendar.monthrange(year, month)[1])


def _nth_weekday_of_month(year: int, month: int, weekday: int, n: int) -> date:
    """n-th ``weekday`` of the month; falls back to the last one when it does not exist."""
    first = date(year, month, 1)
    candidate = first + timedelta(days=(weekday - first.weekday()) % 7 + (n - 1) * 7)
    if candidate.month != month:
        last = _last_day_of_month(year, month)
        candidate = last - timedelta(days=(last.weekday() - weekday) % 7)
    return candidate


def _next_listed_weekday(current: date, weekdays: list[int], interval: int) -> date:
    """Nearest listed weekday strictly after ``current``.

    Crossing into a new week skips ``interval - 1`` further weeks.
    """
    ahead = min((day - current.weekday()) % 7 or 7 for day in set(weekdays))
    result = current + timedelta(days=ahead)
    if result.weekday() <= current.weekday():
        result += timedelta(weeks=interval - 1)
    return result


class RecurrenceCalculator:
    """Computes occurrence dates for recurring task rules."""

    def __init__(self, max_iterations: int = 1000):
        self.max_iterations = max_iterations

    def next_occurrence(self, template: TaskBase, from_date: DateLike) -> Optional[DateLike]:
        """
        Next occurrence strictly after ``from_date``.

        Args:
            template: Task carrying the recurrence rule
            from_date: Date (or datetime) of the previous occurrence

        Returns:
            The next date (a datetime with the same time-of-day when given a
            datetime), or None when the rule is NONE or the series has ended
        """
        if isinstance(from_date, datetime):
            next_day = self._next_day(template, from_date.date())
            if next_day is None:
                return None
            return datetime.combine(next_day, from_date.timetz())
        return self._next_day(template, from_date)

    def _next_day(self, template: TaskBase, current: date) -> Optional[date]:
        rule = template.recurrence_type
        interval = template.recurrence_interval if template.recurrence_interval > 0 else 1

        if rule == RecurrenceType.DAILY:
            result = current + timedelta(days=interval)

        elif rule == RecurrenceType.WEEKLY:
            if template.recurrence_weekdays:
                result = _next_listed_weekday(current, template.recurrence_weekdays, interval)
            elif template.recurrence_weekday is None:
                result = current + timedelta(weeks=interval)
            else:
                delta = (template.recurrence_weekday - current.weekday()) % 7
                result = current + timedelta(days=delta or interval * 7)

        elif rule == RecurrenceType.MONTHLY:
            month_day = template.recurrence_month_day or current.day
            result = _add_months(current, interval, month_day)

        elif rule == RecurrenceType.MONTHLY_WEEKDAY:
            weekday = template.recurrence_weekday
            if weekday is None:
                weekday = current.weekday()
            week = template.recurrence_week_of_month or (current.day - 1) // 7 + 1
            target = _add_months(current, interval, 1)
            result = _nth_weekday_of_month(target.year, target.month, weekday, week)

        elif rule == RecurrenceType.MONTHLY_LAST_DAY:
            target = _add_months(current, interval, 1)
            result = _last_day_of_month(target.year, target.month)

        elif rule == RecurrenceType.CUSTOM:
            result = self._step_unit(template, current, interval)

        else:
            return None

        if template.recurrence_end_date and result > template.recurrence_end_date:
            return None
        return result

    @staticmethod
    def _step_unit(template: TaskBase, current: date, interval: int) -> date:
        unit = template.recurrence_unit
        if unit == RecurrenceUnit.DAY:
            return current + timedelta(days=interval)
        if unit == RecurrenceUnit.WEEK:
            return current + timedelta(weeks=interval)
        month_day = template.recurrence_month_day or current.day
        months = interval * 12 if unit == RecurrenceUnit.YEAR else interval
        return _add_months(current, months, month_day)

    @staticmethod
    def _pin_to_anchor(template: TaskBase, anchor: date) -> TaskBase:
        """Fill rule fields left open with the values implied by the anchor date."""
        pinned: dict = {}
        if template.recurrence_month_day is None and template.recurrence_type in (
            RecurrenceType.MONTHLY,
            RecurrenceType.CUSTOM,
        ):
            pinned["recurrence_month_day"] = anchor.day
        if template.recurrence_type == RecurrenceType.MONTHLY_WEEKDAY:
            if template.recurrence_weekday is None:
                pinned["recurrence_weekday"] = anchor.weekday()
            if template.recurrence_week_of_month is None:
                pinned["recurrence_week_of_month"] = (anchor.day - 1) // 7 + 1
        return template.model_copy(update=pinned) if pinned else template

    def iter_occurrences(
        self,
        template: TaskBase,
        start: date,
        end: date,
        anchor: date,
    ) -> Iterator[date]:
        """
        Yield series dates within ``[start, end]``.

        The series begins at ``anchor`` (the template's own due day). When no
        month day is set the anchor's day is pinned, so a series started on
        the 31st keeps returning to the 31st instead of drifting after a short
        month.
        """
        if template.recurrence_type == RecurrenceType.NONE:
            return
        template = self._pin_to_anchor(template, anchor)

        current: Optional[date] = anchor
        if template.recurrence_end_date and anchor > template.recurrence_end_date:
            return
        yielded = 0
        while current is not None and current <= end and yielded < self.max_iterations:
            if current >= start:
                yield current
                yielded += 1
            current = self._next_day(template, current)

    def preview_iterations(
        self,
        template: TaskBase,
        from_date: date,
        count: int = DEFAULT_PREVIEW_COUNT,
    ) -> list[date]:
        """Next ``count`` occurrence dates strictly after ``from_date``."""
        template = self._pin_to_anchor(template, from_date)
        dates: list[date] = []
        current: Optional[date] = from_date
        while len(dates) < count:
            current = self._next_day(template, current)
            if current is None:
                break
            dates.append(current)
        return dates
