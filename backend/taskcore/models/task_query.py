"""
Declarative task query.

Services describe what they need; repositories translate it into storage
filters. Every filter is ANDed with the visibility predicate.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Collection, Optional, Sequence
from uuid import UUID

from taskcore.models.enums import TaskStatus
from taskcore.models.visibility import VisibilityPredicate
from taskcore.utils.datetime_utils import DayBounds

# Shared ordering for dashboard lists
PRIORITY_DUE_PROJECT_ORDER: tuple[tuple[str, str], ...] = (
    ("priority", "desc"),
    ("due_date", "asc"),
    ("project_id", "asc"),
)

ORDERABLE_FIELDS = frozenset(
    {"priority", "due_date", "project_id", "created_at", "completed_at", "name", "status"}
)


@dataclass
class TaskQuery:
    visibility: Optional[VisibilityPredicate] = None
    user_id: Optional[str] = None

    statuses: Optional[Collection[TaskStatus]] = None
    exclude_statuses: Collection[TaskStatus] = ()

    top_level_only: bool = True
    exclude_templates: bool = False
    exclude_occurrences: bool = False
    flagged_today: Optional[bool] = None
    has_project: Optional[bool] = None

    # Due-date window; with include_project_due the project's due date may match instead
    due_between: Optional[DayBounds] = None
    due_before: Optional[datetime] = None
    include_project_due: bool = False
    include_no_due_date: bool = False

    completed_between: Optional[DayBounds] = None
    created_before: Optional[datetime] = None
    # defer_until is null or not after this instant
    available_at: Optional[datetime] = None

    ids_in: Optional[Collection[UUID]] = None
    ids_not_in: Collection[UUID] = ()
    with_tag: Optional[str] = None
    without_tag: Optional[str] = None

    order_by: Sequence[tuple[str, str]] = ()
    limit: Optional[int] = None

    def __post_init__(self) -> None:
        for field_name, direction in self.order_by:
            if field_name not in ORDERABLE_FIELDS:
                raise ValueError(f"Cannot order tasks by {field_name!r}")
            if direction not in ("asc", "desc"):
                raise ValueError(f"Invalid sort direction {direction!r}")
