"""
SQLite implementation of Project repository.
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import select

from taskcore.infrastructure.local.database import ProjectORM, get_session_factory
from taskcore.interfaces.project_repository import IProjectRepository
from taskcore.models.project import Project, ProjectCreate
from taskcore.utils.datetime_utils import ensure_utc, now_utc, to_naive_utc


class SqliteProjectRepository(IProjectRepository):
    """SQLite implementation of project repository."""

    def __init__(self, session_factory=None):
        self._session_factory = session_factory or get_session_factory()

    def _orm_to_model(self, orm: ProjectORM) -> Project:
        return Project(
            id=UUID(orm.id),
            uid=orm.uid,
            user_id=orm.user_id,
            name=orm.name,
            due_date_at=ensure_utc(orm.due_date_at),
            created_at=ensure_utc(orm.created_at),
            updated_at=ensure_utc(orm.updated_at),
        )

    async def create(self, user_id: str, project: ProjectCreate) -> Project:
        async with self._session_factory() as session:
            now = to_naive_utc(now_utc())
            orm = ProjectORM(
                id=str(uuid4()),
                uid=uuid4().hex,
                user_id=user_id,
                name=project.name,
                due_date_at=to_naive_utc(project.due_date_at),
                created_at=now,
                updated_at=now,
            )
            session.add(orm)
            await session.commit()
            return self._orm_to_model(orm)

    async def get(self, project_id: UUID) -> Optional[Project]:
        async with self._session_factory() as session:
            result = await session.execute(select(ProjectORM).where(ProjectORM.id == str(project_id)))
            orm = result.scalar_one_or_none()
            return self._orm_to_model(orm) if orm else None

    async def list(self, user_id: str) -> list[Project]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(ProjectORM)
                .where(ProjectORM.user_id == user_id)
                .order_by(ProjectORM.created_at.asc())
            )
            return [self._orm_to_model(orm) for orm in result.scalars().all()]
