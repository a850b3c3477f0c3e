"""
SQL translation of declarative filters.

Turns VisibilityPredicate and TaskQuery values into SQLAlchemy clauses that
compose with any other filter on the tasks and projects tables.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import and_, exists, false, not_, or_, select

from taskcore.infrastructure.local.database import ProjectORM, TagORM, TaskORM, task_tags
from taskcore.models.enums import RecurrenceType
from taskcore.models.task_query import TaskQuery
from taskcore.models.visibility import VisibilityPredicate
from taskcore.utils.datetime_utils import to_naive_utc


def visibility_clause(predicate: VisibilityPredicate, orm: Any):
    """
    Build the single OR clause for "owned, shared directly, or in a shared project".

    A denied predicate compiles to ``false()`` so nothing matches.
    """
    if predicate.denied:
        return false()

    conditions = [orm.user_id == predicate.user_id]
    if predicate.shared_uids:
        conditions.append(orm.uid.in_(sorted(predicate.shared_uids)))
    if predicate.shared_project_ids and hasattr(orm, "project_id"):
        conditions.append(orm.project_id.in_(sorted(str(pid) for pid in predicate.shared_project_ids)))
    return or_(*conditions)


def _has_tag(name: str):
    return TaskORM.id.in_(
        select(task_tags.c.task_id)
        .join(TagORM, TagORM.id == task_tags.c.tag_id)
        .where(TagORM.name == name)
    )


def _project_due(*conditions):
    return exists(
        select(ProjectORM.id).where(ProjectORM.id == TaskORM.project_id, *conditions)
    )


def task_query_conditions(query: TaskQuery) -> list:
    """Translate a TaskQuery into WHERE conditions (combined with AND by the caller)."""
    conditions: list = []

    if query.visibility is not None:
        conditions.append(visibility_clause(query.visibility, TaskORM))
    if query.user_id is not None:
        conditions.append(TaskORM.user_id == query.user_id)

    if query.statuses is not None:
        conditions.append(TaskORM.status.in_([s.value for s in query.statuses]))
    if query.exclude_statuses:
        conditions.append(TaskORM.status.notin_([s.value for s in query.exclude_statuses]))

    if query.top_level_only:
        conditions.append(TaskORM.parent_task_id.is_(None))
    if query.exclude_templates:
        conditions.append(
            or_(
                TaskORM.recurrence_type == RecurrenceType.NONE.value,
                TaskORM.recurring_parent_id.isnot(None),
            )
        )
    if query.exclude_occurrences:
        conditions.append(TaskORM.recurring_parent_id.is_(None))
    if query.flagged_today is not None:
        conditions.append(TaskORM.today == query.flagged_today)
    if query.has_project is True:
        conditions.append(and_(TaskORM.project_id.isnot(None), TaskORM.project_id != ""))
    elif query.has_project is False:
        conditions.append(or_(TaskORM.project_id.is_(None), TaskORM.project_id == ""))

    if query.due_between is not None:
        start = to_naive_utc(query.due_between.start)
        end = to_naive_utc(query.due_between.end)
        due = TaskORM.due_date.between(start, end)
        if query.include_project_due:
            due = or_(due, _project_due(ProjectORM.due_date_at.between(start, end)))
        if query.include_no_due_date:
            due = or_(due, TaskORM.due_date.is_(None))
        conditions.append(due)
    if query.due_before is not None:
        cutoff = to_naive_utc(query.due_before)
        due = TaskORM.due_date < cutoff
        if query.include_project_due:
            due = or_(due, _project_due(ProjectORM.due_date_at < cutoff))
        conditions.append(due)

    if query.completed_between is not None:
        conditions.append(
            TaskORM.completed_at.between(
                to_naive_utc(query.completed_between.start),
                to_naive_utc(query.completed_between.end),
            )
        )
    if query.created_before is not None:
        conditions.append(TaskORM.created_at < to_naive_utc(query.created_before))
    if query.available_at is not None:
        conditions.append(
            or_(
                TaskORM.defer_until.is_(None),
                TaskORM.defer_until <= to_naive_utc(query.available_at),
            )
        )

    if query.ids_in is not None:
        conditions.append(TaskORM.id.in_([str(i) for i in query.ids_in]))
    if query.ids_not_in:
        conditions.append(TaskORM.id.notin_([str(i) for i in query.ids_not_in]))
    if query.with_tag:
        conditions.append(_has_tag(query.with_tag))
    if query.without_tag:
        conditions.append(not_(_has_tag(query.without_tag)))

    return conditions


def task_query_order(query: TaskQuery) -> list:
    """ORDER BY clauses; nullable columns sort nulls last in both directions."""
    clauses: list = []
    for field_name, direction in query.order_by:
        column = getattr(TaskORM, field_name)
        if field_name in ("due_date", "project_id", "completed_at"):
            clauses.append(column.is_(None))
        clauses.append(column.desc() if direction == "desc" else column.asc())
    # Stable tiebreak
    clauses.append(TaskORM.created_at.asc())
    clauses.append(TaskORM.id.asc())
    return clauses
