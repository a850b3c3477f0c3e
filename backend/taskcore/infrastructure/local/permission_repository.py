"""
SQLite implementation of Permission repository.
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError

from taskcore.core.exceptions import PermissionStoreUnavailableError
from taskcore.infrastructure.local.database import PermissionORM, ProjectORM, get_session_factory
from taskcore.interfaces.permission_repository import IPermissionRepository
from taskcore.models.enums import AccessLevel, ResourceType
from taskcore.models.permission import Permission, PermissionCreate
from taskcore.utils.datetime_utils import ensure_utc


class SqlitePermissionRepository(IPermissionRepository):
    """SQLite implementation of permission repository."""

    def __init__(self, session_factory=None):
        self._session_factory = session_factory or get_session_factory()

    def _orm_to_model(self, orm: PermissionORM) -> Permission:
        return Permission(
            id=UUID(orm.id),
            resource_type=ResourceType(orm.resource_type),
            resource_uid=orm.resource_uid,
            user_id=orm.user_id,
            access_level=AccessLevel(orm.access_level),
            granted_by_user_id=orm.granted_by_user_id,
            created_at=ensure_utc(orm.created_at),
        )

    async def grant(self, permission: PermissionCreate) -> Permission:
        """Create or update a grant."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(PermissionORM).where(
                    PermissionORM.resource_type == permission.resource_type.value,
                    PermissionORM.resource_uid == permission.resource_uid,
                    PermissionORM.user_id == permission.user_id,
                )
            )
            orm = result.scalar_one_or_none()
            if orm:
                orm.access_level = permission.access_level.value
                orm.granted_by_user_id = permission.granted_by_user_id
            else:
                orm = PermissionORM(
                    id=str(uuid4()),
                    resource_type=permission.resource_type.value,
                    resource_uid=permission.resource_uid,
                    user_id=permission.user_id,
                    access_level=permission.access_level.value,
                    granted_by_user_id=permission.granted_by_user_id,
                )
                session.add(orm)
            await session.commit()
            return self._orm_to_model(orm)

    async def revoke(self, resource_type: ResourceType, resource_uid: str, user_id: str) -> bool:
        """Remove a grant."""
        async with self._session_factory() as session:
            result = await session.execute(
                delete(PermissionORM).where(
                    PermissionORM.resource_type == resource_type.value,
                    PermissionORM.resource_uid == resource_uid,
                    PermissionORM.user_id == user_id,
                )
            )
            await session.commit()
            return bool(result.rowcount)

    async def list_shared_uids(self, user_id: str, resource_type: ResourceType) -> set[str]:
        """UIDs of resources of ``resource_type`` shared with the user."""
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(PermissionORM.resource_uid).where(
                        PermissionORM.user_id == user_id,
                        PermissionORM.resource_type == resource_type.value,
                        PermissionORM.access_level != AccessLevel.NONE.value,
                    )
                )
                return set(result.scalars().all())
        except SQLAlchemyError as exc:
            raise PermissionStoreUnavailableError(
                "Failed to read permission grants",
                details={"user_id": user_id, "resource_type": resource_type.value},
            ) from exc

    async def list_shared_project_ids(self, user_id: str) -> set[UUID]:
        """IDs of projects shared with the user."""
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(ProjectORM.id)
                    .join(PermissionORM, PermissionORM.resource_uid == ProjectORM.uid)
                    .where(
                        PermissionORM.user_id == user_id,
                        PermissionORM.resource_type == ResourceType.PROJECT.value,
                        PermissionORM.access_level != AccessLevel.NONE.value,
                    )
                )
                return {UUID(project_id) for project_id in result.scalars().all()}
        except SQLAlchemyError as exc:
            raise PermissionStoreUnavailableError(
                "Failed to read project grants",
                details={"user_id": user_id},
            ) from exc

    async def get_access_level(
        self,
        user_id: str,
        resource_type: ResourceType,
        resource_uid: str,
    ) -> Optional[AccessLevel]:
        """Get the explicit grant level."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(PermissionORM.access_level).where(
                    PermissionORM.user_id == user_id,
                    PermissionORM.resource_type == resource_type.value,
                    PermissionORM.resource_uid == resource_uid,
                )
            )
            level = result.scalar_one_or_none()
            return AccessLevel(level) if level else None
