"""
Enum definitions for the application.

These enums are used across models and provide type-safe status/priority values.
"""

from enum import Enum


class TaskStatus(str, Enum):
    """Task status."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    WAITING = "waiting"
    PLANNED = "planned"
    DONE = "done"
    ARCHIVED = "archived"


class Priority(int, Enum):
    """Task priority. Ordinal so that sorting by value ranks HIGH first when descending."""

    LOW = 0
    MEDIUM = 1
    HIGH = 2


class RecurrenceType(str, Enum):
    """Supported recurrence rules."""

    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    MONTHLY_WEEKDAY = "monthly_weekday"  # n-th weekday of the month
    MONTHLY_LAST_DAY = "monthly_last_day"
    CUSTOM = "custom"  # interval x recurrence_unit


class RecurrenceUnit(str, Enum):
    """Calendar unit stepped by CUSTOM rules."""

    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


class ResourceType(str, Enum):
    """Resources that can be shared through permission grants."""

    TASK = "task"
    PROJECT = "project"
    NOTE = "note"


class AccessLevel(str, Enum):
    """Access granted on a resource."""

    NONE = "none"
    RO = "ro"  # read-only
    RW = "rw"  # read-write
    ADMIN = "admin"


ACCESS_RANK: dict[AccessLevel, int] = {
    AccessLevel.NONE: 0,
    AccessLevel.RO: 1,
    AccessLevel.RW: 2,
    AccessLevel.ADMIN: 3,
}
