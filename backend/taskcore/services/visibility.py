"""
Visibility predicate builder.

Decides which tasks, projects and notes a user may see: their own, those
shared with them directly, and (for tasks and notes) those inside a project
shared with them.
"""

from __future__ import annotations

from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError

from taskcore.core.exceptions import ForbiddenError, InfrastructureError
from taskcore.core.logger import setup_logger
from taskcore.interfaces.permission_repository import IPermissionRepository
from taskcore.interfaces.project_repository import IProjectRepository
from taskcore.models.enums import ACCESS_RANK, AccessLevel, ResourceType
from taskcore.models.visibility import VisibilityPredicate

logger = setup_logger(__name__)

# Request-scoped memo of built predicates
VisibilityCache = dict[tuple[ResourceType, str], VisibilityPredicate]

PROJECT_SCOPED_TYPES = frozenset({ResourceType.TASK, ResourceType.NOTE})


class VisibilityPredicateBuilder:
    """Builds VisibilityPredicate values from permission grants."""

    def __init__(
        self,
        permission_repo: IPermissionRepository,
        project_repo: Optional[IProjectRepository] = None,
    ):
        self.permission_repo = permission_repo
        self.project_repo = project_repo

    async def build(
        self,
        resource_type: ResourceType,
        user_id: str,
        cache: Optional[VisibilityCache] = None,
    ) -> VisibilityPredicate:
        """
        Build the visibility predicate for ``user_id``.

        If the permission store cannot be read the result is a denied
        predicate that matches nothing, never an unscoped one.
        """
        cache_key = (resource_type, user_id)
        if cache is not None and cache_key in cache:
            return cache[cache_key]

        try:
            shared_uids = await self.permission_repo.list_shared_uids(user_id, resource_type)
            shared_project_ids = (
                await self.permission_repo.list_shared_project_ids(user_id)
                if resource_type in PROJECT_SCOPED_TYPES
                else set()
            )
        except (InfrastructureError, SQLAlchemyError) as exc:
            logger.error(
                f"Permission lookup failed for user {user_id} ({resource_type.value}); "
                f"denying access: {exc}",
                exc_info=True,
            )
            # Not cached so the next request retries
            return VisibilityPredicate.deny(resource_type, user_id)

        predicate = VisibilityPredicate(
            resource_type=resource_type,
            user_id=user_id,
            shared_uids=frozenset(shared_uids),
            shared_project_ids=frozenset(shared_project_ids),
        )
        if cache is not None:
            cache[cache_key] = predicate
        return predicate

    async def get_access(
        self,
        user_id: str,
        resource_type: ResourceType,
        resource: Any,
    ) -> AccessLevel:
        """Effective access level of ``user_id`` on a single resource."""
        if getattr(resource, "user_id", None) == user_id:
            return AccessLevel.RW

        levels = [AccessLevel.NONE]
        direct = await self.permission_repo.get_access_level(user_id, resource_type, resource.uid)
        if direct is not None:
            levels.append(direct)

        project_id = getattr(resource, "project_id", None)
        if (
            resource_type in PROJECT_SCOPED_TYPES
            and project_id is not None
            and self.project_repo is not None
        ):
            project = await self.project_repo.get(project_id)
            if project is not None:
                if project.user_id == user_id:
                    levels.append(AccessLevel.RW)
                else:
                    inherited = await self.permission_repo.get_access_level(
                        user_id, ResourceType.PROJECT, project.uid
                    )
                    if inherited is not None:
                        levels.append(inherited)

        return max(levels, key=lambda level: ACCESS_RANK[level])


def has_access(level: AccessLevel, required: AccessLevel) -> bool:
    return ACCESS_RANK[level] >= ACCESS_RANK[required]


def ensure_access(level: AccessLevel, required: AccessLevel = AccessLevel.RO) -> AccessLevel:
    if not has_access(level, required):
        raise ForbiddenError(
            "Insufficient access",
            details={"access_level": level.value, "required": required.value},
        )
    return level
