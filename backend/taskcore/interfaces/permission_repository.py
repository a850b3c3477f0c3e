"""
Permission repository interface.

Explicit grants giving a user access to a resource owned by someone else.
Project-level grants also expose every task and note inside the project.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from taskcore.models.enums import AccessLevel, ResourceType
from taskcore.models.permission import Permission, PermissionCreate


class IPermissionRepository(ABC):
    """Abstract interface for permission grants."""

    @abstractmethod
    async def grant(self, permission: PermissionCreate) -> Permission:
        """
        Create or update a grant.

        An existing grant for the same (resource, grantee) has its access
        level replaced.
        """
        pass

    @abstractmethod
    async def revoke(self, resource_type: ResourceType, resource_uid: str, user_id: str) -> bool:
        """Remove a grant. Returns True if one existed."""
        pass

    @abstractmethod
    async def list_shared_uids(self, user_id: str, resource_type: ResourceType) -> set[str]:
        """
        UIDs of resources of ``resource_type`` shared with the user.

        Raises:
            PermissionStoreUnavailableError: If grants cannot be read
        """
        pass

    @abstractmethod
    async def list_shared_project_ids(self, user_id: str) -> set[UUID]:
        """
        IDs of projects shared with the user.

        Raises:
            PermissionStoreUnavailableError: If grants cannot be read
        """
        pass

    @abstractmethod
    async def get_access_level(
        self,
        user_id: str,
        resource_type: ResourceType,
        resource_uid: str,
    ) -> Optional[AccessLevel]:
        """Get the explicit grant level, or None without a grant."""
        pass
