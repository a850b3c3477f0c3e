"""
Task repository interface.

Defines the contract for task persistence operations.
Implementations: SQLite
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional
from uuid import UUID

from taskcore.models.task import Task, TaskCreate, TaskUpdate
from taskcore.models.task_query import TaskQuery
from taskcore.utils.datetime_utils import DayBounds


class ITaskRepository(ABC):
    """Abstract interface for task persistence."""

    @abstractmethod
    async def create(self, user_id: str, task: TaskCreate) -> Task:
        """
        Create a new task.

        Args:
            user_id: Owner user ID
            task: Task creation data

        Returns:
            Created task with generated ID, uid and timestamps

        Raises:
            OccurrenceConflictError: If an occurrence with the same template
                and due date already exists
        """
        pass

    @abstractmethod
    async def get(self, task_id: UUID) -> Optional[Task]:
        """
        Get a task by ID regardless of owner.

        Callers check visibility; the repository does not.
        """
        pass

    @abstractmethod
    async def update(self, task_id: UUID, update: TaskUpdate) -> Task:
        """
        Update an existing task.

        Raises:
            NotFoundError: If task doesn't exist
        """
        pass

    @abstractmethod
    async def delete(self, task_id: UUID) -> bool:
        """Delete a task. Returns True if deleted."""
        pass

    @abstractmethod
    async def query(self, query: TaskQuery) -> list[Task]:
        """
        List tasks matching a declarative query.

        All filters are combined with AND, including the visibility predicate.
        """
        pass

    @abstractmethod
    async def count(self, query: TaskQuery) -> int:
        """Count tasks matching a query (ordering and limit ignored)."""
        pass

    @abstractmethod
    async def list_templates(self, user_id: str) -> list[Task]:
        """
        List the user's open recurring templates.

        Templates have a recurrence rule, no recurring parent, and are not
        done or archived.
        """
        pass

    @abstractmethod
    async def list_occurrences(
        self,
        template_id: UUID,
        due_between: Optional[DayBounds] = None,
    ) -> list[Task]:
        """List occurrences generated from a template, optionally by due window."""
        pass

    @abstractmethod
    async def delete_occurrences_due_after(
        self, template_id: UUID, after: datetime, open_only: bool = False
    ) -> int:
        """
        Delete a template's occurrences due strictly after ``after``.

        With ``open_only`` done and archived occurrences are kept.

        Returns:
            Number of occurrences deleted
        """
        pass

    @abstractmethod
    async def list_children(self, parent_id: UUID) -> list[Task]:
        """List direct subtasks of a task."""
        pass
