"""
SQLite implementation of Task repository.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional
from uuid import UUID, uuid4

from sqlalchemy import and_, delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from taskcore.core.exceptions import DuplicateError, NotFoundError, OccurrenceConflictError
from taskcore.infrastructure.local.database import TagORM, TaskORM, get_session_factory
from taskcore.infrastructure.local.filters import task_query_conditions, task_query_order
from taskcore.interfaces.task_repository import ITaskRepository
from taskcore.models.enums import Priority, RecurrenceType, RecurrenceUnit, TaskStatus
from taskcore.models.task import Task, TaskCreate, TaskUpdate
from taskcore.models.task_query import TaskQuery
from taskcore.utils.datetime_utils import DayBounds, ensure_utc, to_naive_utc

_DATETIME_FIELDS = ("due_date", "defer_until", "completed_at")


class SqliteTaskRepository(ITaskRepository):
    """SQLite implementation of task repository."""

    def __init__(self, session_factory=None):
        """
        Initialize repository.

        Args:
            session_factory: Optional session factory (for testing)
        """
        self._session_factory = session_factory or get_session_factory()

    def _orm_to_model(self, orm: TaskORM) -> Task:
        """Convert ORM object to Pydantic model."""
        return Task(
            id=UUID(orm.id),
            uid=orm.uid,
            user_id=orm.user_id,
            name=orm.name,
            note=orm.note,
            status=TaskStatus(orm.status),
            priority=Priority(orm.priority if orm.priority is not None else 1),
            due_date=ensure_utc(orm.due_date),
            defer_until=ensure_utc(orm.defer_until),
            completed_at=ensure_utc(orm.completed_at),
            today=bool(orm.today),
            project_id=UUID(orm.project_id) if orm.project_id else None,
            parent_task_id=UUID(orm.parent_task_id) if orm.parent_task_id else None,
            recurring_parent_id=UUID(orm.recurring_parent_id) if orm.recurring_parent_id else None,
            recurrence_type=RecurrenceType(orm.recurrence_type or "none"),
            recurrence_interval=orm.recurrence_interval or 1,
            recurrence_weekday=orm.recurrence_weekday,
            recurrence_weekdays=orm.recurrence_weekdays,
            recurrence_month_day=orm.recurrence_month_day,
            recurrence_week_of_month=orm.recurrence_week_of_month,
            recurrence_unit=RecurrenceUnit(orm.recurrence_unit or "month"),
            recurrence_end_date=orm.recurrence_end_date,
            completion_based=bool(orm.completion_based),
            tags=sorted(tag.name for tag in orm.tags),
            created_at=ensure_utc(orm.created_at),
            updated_at=ensure_utc(orm.updated_at),
        )

    async def _resolve_tags(
        self, session: AsyncSession, user_id: str, names: Iterable[str]
    ) -> list[TagORM]:
        """Load the owner's tags by name, creating missing ones."""
        wanted = sorted({name.strip() for name in names if name and name.strip()})
        if not wanted:
            return []
        result = await session.execute(
            select(TagORM).where(TagORM.user_id == user_id, TagORM.name.in_(wanted))
        )
        existing = {tag.name: tag for tag in result.scalars().all()}
        tags = []
        for name in wanted:
            tag = existing.get(name)
            if tag is None:
                tag = TagORM(id=str(uuid4()), user_id=user_id, name=name)
                session.add(tag)
            tags.append(tag)
        return tags

    async def _get_orm(
        self, session: AsyncSession, task_id, reload: bool = False
    ) -> Optional[TaskORM]:
        stmt = select(TaskORM).where(TaskORM.id == str(task_id))
        if reload:
            stmt = stmt.execution_options(populate_existing=True)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def create(self, user_id: str, task: TaskCreate) -> Task:
        """Create a new task."""
        async with self._session_factory() as session:
            orm = TaskORM(
                id=str(uuid4()),
                uid=uuid4().hex,
                user_id=user_id,
                name=task.name,
                note=task.note,
                status=task.status.value,
                priority=int(task.priority),
                today=task.today,
                due_date=to_naive_utc(task.due_date),
                defer_until=to_naive_utc(task.defer_until),
                completed_at=to_naive_utc(task.completed_at),
                project_id=str(task.project_id) if task.project_id else None,
                parent_task_id=str(task.parent_task_id) if task.parent_task_id else None,
                recurring_parent_id=(
                    str(task.recurring_parent_id) if task.recurring_parent_id else None
                ),
                recurrence_type=task.recurrence_type.value,
                recurrence_interval=task.recurrence_interval,
                recurrence_weekday=task.recurrence_weekday,
                recurrence_weekdays=task.recurrence_weekdays,
                recurrence_month_day=task.recurrence_month_day,
                recurrence_week_of_month=task.recurrence_week_of_month,
                recurrence_unit=task.recurrence_unit.value,
                recurrence_end_date=task.recurrence_end_date,
                completion_based=task.completion_based,
            )
            if task.created_at is not None:
                orm.created_at = to_naive_utc(task.created_at)
                orm.updated_at = orm.created_at
            orm.tags = await self._resolve_tags(session, user_id, task.tags)
            session.add(orm)
            try:
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                if task.recurring_parent_id is not None:
                    raise OccurrenceConflictError(
                        "Occurrence already exists for this due date",
                        details={
                            "recurring_parent_id": str(task.recurring_parent_id),
                            "due_date": task.due_date.isoformat() if task.due_date else None,
                        },
                    ) from exc
                raise DuplicateError("Task conflicts with an existing row") from exc
            orm = await self._get_orm(session, orm.id, reload=True)
            return self._orm_to_model(orm)

    async def get(self, task_id: UUID) -> Optional[Task]:
        """Get a task by ID."""
        async with self._session_factory() as session:
            orm = await self._get_orm(session, task_id)
            return self._orm_to_model(orm) if orm else None

    async def update(self, task_id: UUID, update: TaskUpdate) -> Task:
        """Update an existing task."""
        async with self._session_factory() as session:
            orm = await self._get_orm(session, task_id)
            if not orm:
                raise NotFoundError(f"Task {task_id} not found")

            update_data = update.model_dump(exclude_unset=True)
            tags = update_data.pop("tags", None)
            for field, value in update_data.items():
                if field in _DATETIME_FIELDS:
                    value = to_naive_utc(value)
                elif field == "project_id":
                    value = str(value) if value else None
                elif field == "priority" and value is not None:
                    value = int(value)
                elif hasattr(value, "value"):
                    value = value.value
                setattr(orm, field, value)
            if tags is not None:
                orm.tags = await self._resolve_tags(session, orm.user_id, tags)

            await session.commit()
            orm = await self._get_orm(session, orm.id, reload=True)
            return self._orm_to_model(orm)

    async def delete(self, task_id: UUID) -> bool:
        """Delete a task."""
        async with self._session_factory() as session:
            orm = await self._get_orm(session, task_id)
            if not orm:
                return False
            await session.delete(orm)
            await session.commit()
            return True

    async def query(self, query: TaskQuery) -> list[Task]:
        """List tasks matching a declarative query."""
        async with self._session_factory() as session:
            stmt = select(TaskORM)
            conditions = task_query_conditions(query)
            if conditions:
                stmt = stmt.where(and_(*conditions))
            stmt = stmt.order_by(*task_query_order(query))
            if query.limit is not None:
                stmt = stmt.limit(query.limit)
            result = await session.execute(stmt)
            return [self._orm_to_model(orm) for orm in result.scalars().all()]

    async def count(self, query: TaskQuery) -> int:
        """Count tasks matching a query."""
        async with self._session_factory() as session:
            stmt = select(func.count(TaskORM.id))
            conditions = task_query_conditions(query)
            if conditions:
                stmt = stmt.where(and_(*conditions))
            result = await session.execute(stmt)
            return int(result.scalar_one())

    async def list_templates(self, user_id: str) -> list[Task]:
        """List the user's open recurring templates."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(TaskORM)
                .where(
                    TaskORM.user_id == user_id,
                    TaskORM.recurrence_type != RecurrenceType.NONE.value,
                    TaskORM.recurrence_type.isnot(None),
                    TaskORM.recurring_parent_id.is_(None),
                    TaskORM.status.notin_([TaskStatus.DONE.value, TaskStatus.ARCHIVED.value]),
                )
                .order_by(TaskORM.created_at.asc())
            )
            return [self._orm_to_model(orm) for orm in result.scalars().all()]

    async def list_occurrences(
        self,
        template_id: UUID,
        due_between: Optional[DayBounds] = None,
    ) -> list[Task]:
        """List occurrences generated from a template."""
        async with self._session_factory() as session:
            stmt = select(TaskORM).where(TaskORM.recurring_parent_id == str(template_id))
            if due_between is not None:
                stmt = stmt.where(
                    TaskORM.due_date.between(
                        to_naive_utc(due_between.start), to_naive_utc(due_between.end)
                    )
                )
            result = await session.execute(stmt.order_by(TaskORM.due_date.asc()))
            return [self._orm_to_model(orm) for orm in result.scalars().all()]

    async def delete_occurrences_due_after(
        self, template_id: UUID, after: datetime, open_only: bool = False
    ) -> int:
        """Delete a template's occurrences due strictly after ``after``."""
        async with self._session_factory() as session:
            stmt = delete(TaskORM).where(
                TaskORM.recurring_parent_id == str(template_id),
                TaskORM.due_date > to_naive_utc(after),
            )
            if open_only:
                stmt = stmt.where(
                    TaskORM.status.notin_([TaskStatus.DONE.value, TaskStatus.ARCHIVED.value])
                )
            result = await session.execute(stmt)
            await session.commit()
            return result.rowcount or 0

    async def list_children(self, parent_id: UUID) -> list[Task]:
        """List direct subtasks of a task."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(TaskORM)
                .where(TaskORM.parent_task_id == str(parent_id))
                .order_by(TaskORM.created_at.asc())
            )
            return [self._orm_to_model(orm) for orm in result.scalars().all()]
