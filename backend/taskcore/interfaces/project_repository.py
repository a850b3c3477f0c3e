"""
Project repository interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from taskcore.models.project import Project, ProjectCreate


class IProjectRepository(ABC):
    """Abstract interface for project persistence."""

    @abstractmethod
    async def create(self, user_id: str, project: ProjectCreate) -> Project:
        """Create a new project owned by ``user_id``."""
        pass

    @abstractmethod
    async def get(self, project_id: UUID) -> Optional[Project]:
        """Get a project by ID regardless of owner."""
        pass

    @abstractmethod
    async def list(self, user_id: str) -> list[Project]:
        """List projects owned by the user."""
        pass
