"""
Project model definitions.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class ProjectBase(BaseModel):
    """Base project fields."""

    name: str = Field(..., min_length=1, max_length=255)
    due_date_at: Optional[datetime] = Field(None, description="Project due instant (UTC)")


class ProjectCreate(ProjectBase):
    """Schema for creating a new project."""

    pass


class Project(ProjectBase):
    """Complete project model."""

    id: UUID
    uid: str
    user_id: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
