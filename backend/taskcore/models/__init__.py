"""Pydantic models (schemas) for the application."""

from taskcore.models.enums import (
    AccessLevel,
    Priority,
    RecurrenceType,
    RecurrenceUnit,
    ResourceType,
    TaskStatus,
)
from taskcore.models.metrics import TaskMetrics, WeeklyCompletion
from taskcore.models.permission import Permission, PermissionCreate
from taskcore.models.project import Project, ProjectCreate
from taskcore.models.recurrence import GenerationResult, Iteration, RecurrenceChangeResult
from taskcore.models.task import Task, TaskCreate, TaskUpdate
from taskcore.models.task_query import TaskQuery
from taskcore.models.visibility import VisibilityPredicate
from taskcore.models.views import IterationList, StatusChange, UpcomingTasks

__all__ = [
    # Enums
    "AccessLevel",
    "Priority",
    "RecurrenceType",
    "RecurrenceUnit",
    "ResourceType",
    "TaskStatus",
    # Task
    "Task",
    "TaskCreate",
    "TaskUpdate",
    "TaskQuery",
    # Project
    "Project",
    "ProjectCreate",
    # Permission
    "Permission",
    "PermissionCreate",
    "VisibilityPredicate",
    # Metrics
    "TaskMetrics",
    "WeeklyCompletion",
    # Recurrence
    "GenerationResult",
    "Iteration",
    "RecurrenceChangeResult",
    # Views
    "IterationList",
    "StatusChange",
    "UpcomingTasks",
]
