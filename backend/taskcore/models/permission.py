"""
Permission grant models.

Ownership is implicit (resource.user_id == viewer); grants add access for
non-owners on top of it.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from taskcore.models.enums import AccessLevel, ResourceType


class PermissionCreate(BaseModel):
    """Grant access on a resource to another user."""

    resource_type: ResourceType
    resource_uid: str = Field(..., min_length=1)
    user_id: str = Field(..., min_length=1, description="Grantee")
    access_level: AccessLevel = AccessLevel.RO
    granted_by_user_id: Optional[str] = None


class Permission(PermissionCreate):
    """Stored permission grant."""

    id: UUID
    created_at: datetime

    class Config:
        from_attributes = True
