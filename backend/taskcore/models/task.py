"""
Task model definitions.

A task is either a plain task, a recurring template (recurrence_type != none,
no recurring_parent_id) or an occurrence generated from a template
(recurring_parent_id set, never recurring itself).
"""

from datetime import date, datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from taskcore.models.enums import Priority, RecurrenceType, RecurrenceUnit, TaskStatus


class TaskBase(BaseModel):
    """Base task fields shared across create/read."""

    name: str = Field(..., min_length=1, max_length=255, description="Task name")
    note: Optional[str] = Field(None, max_length=10000)
    status: TaskStatus = TaskStatus.NOT_STARTED
    priority: Priority = Priority.MEDIUM
    due_date: Optional[datetime] = Field(None, description="Due instant (UTC)")
    defer_until: Optional[datetime] = Field(
        None, description="Task does not surface before this instant"
    )
    today: bool = Field(False, description="Explicitly planned for today")
    project_id: Optional[UUID] = None
    parent_task_id: Optional[UUID] = Field(None, description="Parent task (subtasks only)")

    recurrence_type: RecurrenceType = RecurrenceType.NONE
    recurrence_interval: int = Field(1, description="Values <= 0 are treated as 1")
    recurrence_weekday: Optional[int] = Field(None, description="0=Monday ... 6=Sunday")
    recurrence_weekdays: Optional[list[int]] = Field(
        None, description="Several weekdays for WEEKLY, 0=Monday ... 6=Sunday"
    )
    recurrence_month_day: Optional[int] = Field(None, description="Day of month for MONTHLY")
    recurrence_week_of_month: Optional[int] = Field(
        None, description="1-5 for MONTHLY_WEEKDAY, 5 means last"
    )
    recurrence_unit: RecurrenceUnit = RecurrenceUnit.MONTH
    recurrence_end_date: Optional[date] = Field(None, description="Last allowed occurrence day")
    completion_based: bool = Field(
        False, description="Next occurrence counts from the last completion, not the due date"
    )

    tags: list[str] = Field(default_factory=list)


class TaskCreate(TaskBase):
    """Schema for creating a new task."""

    recurring_parent_id: Optional[UUID] = None
    completed_at: Optional[datetime] = Field(
        None, description="Completion instant for imported done tasks"
    )
    created_at: Optional[datetime] = Field(None, description="Backdated creation (imports)")


class TaskUpdate(BaseModel):
    """Schema for updating a task (all fields optional)."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    note: Optional[str] = Field(None, max_length=10000)
    status: Optional[TaskStatus] = None
    priority: Optional[Priority] = None
    due_date: Optional[datetime] = None
    defer_until: Optional[datetime] = None
    today: Optional[bool] = None
    completed_at: Optional[datetime] = None
    project_id: Optional[UUID] = None
    recurrence_type: Optional[RecurrenceType] = None
    recurrence_interval: Optional[int] = None
    recurrence_weekday: Optional[int] = None
    recurrence_weekdays: Optional[list[int]] = None
    recurrence_month_day: Optional[int] = None
    recurrence_week_of_month: Optional[int] = None
    recurrence_unit: Optional[RecurrenceUnit] = None
    recurrence_end_date: Optional[date] = None
    completion_based: Optional[bool] = None
    tags: Optional[list[str]] = None


class Task(TaskBase):
    """Complete task model with all fields."""

    id: UUID
    uid: str
    user_id: str
    completed_at: Optional[datetime] = None
    recurring_parent_id: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

    @property
    def is_template(self) -> bool:
        return self.recurrence_type != RecurrenceType.NONE and self.recurring_parent_id is None

    @property
    def is_occurrence(self) -> bool:
        return self.recurring_parent_id is not None

    @property
    def is_subtask(self) -> bool:
        return self.parent_task_id is not None
