"""
Dashboard metrics models.
"""

from datetime import date

from pydantic import BaseModel, Field

from taskcore.models.task import Task


class WeeklyCompletion(BaseModel):
    """Completed-task count for one local calendar day."""

    date: date
    count: int = Field(0, ge=0)
    day_name: str = Field(..., description="Short weekday name, e.g. Mon")


class TaskMetrics(BaseModel):
    """Per-user dashboard figures."""

    total_open_tasks: int = 0
    pending_over_month: int = 0
    in_progress_count: int = 0
    in_progress: list[Task] = Field(default_factory=list)
    today_plan: list[Task] = Field(default_factory=list)
    due_today: list[Task] = Field(default_factory=list)
    overdue: list[Task] = Field(default_factory=list)
    completed_today: list[Task] = Field(default_factory=list)
    suggested_tasks: list[Task] = Field(default_factory=list)
    weekly_completions: list[WeeklyCompletion] = Field(default_factory=list)
