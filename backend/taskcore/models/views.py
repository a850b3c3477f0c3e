"""
Response and request schemas for the task views.
"""

from pydantic import BaseModel, Field

from taskcore.models.enums import TaskStatus
from taskcore.models.recurrence import GenerationResult, Iteration
from taskcore.models.task import Task


class UpcomingTasks(BaseModel):
    """Upcoming tasks grouped by local day, in display order."""

    days: int
    groups: dict[str, list[Task]] = Field(default_factory=dict)
    generation: GenerationResult = Field(default_factory=GenerationResult)


class IterationList(BaseModel):
    iterations: list[Iteration] = Field(default_factory=list)


class StatusChange(BaseModel):
    """Request body for changing a task's status."""

    status: TaskStatus
