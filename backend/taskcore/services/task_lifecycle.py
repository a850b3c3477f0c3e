"""
Task completion lifecycle.

Two-state machine (OPEN / DONE) over task statuses. ``completed_at`` is set
exactly when a task enters DONE and cleared when it leaves it. Status changes
cascade between a parent task and its subtasks.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from taskcore.core.exceptions import BusinessLogicError, NotFoundError
from taskcore.core.logger import setup_logger
from taskcore.infrastructure.local.system_clock import SystemClock
from taskcore.interfaces.clock import IClock
from taskcore.interfaces.task_repository import ITaskRepository
from taskcore.models.enums import TaskStatus
from taskcore.models.task import Task, TaskUpdate

logger = setup_logger(__name__)


class CompletionState(str, Enum):
    OPEN = "open"
    DONE = "done"


def completion_state(status: TaskStatus) -> CompletionState:
    return CompletionState.DONE if status == TaskStatus.DONE else CompletionState.OPEN


@dataclass(frozen=True)
class TaskStatusChange:
    """Result of applying a status to a task, ready to persist."""

    old_state: CompletionState
    new_state: CompletionState
    update: TaskUpdate

    @property
    def completed(self) -> bool:
        return self.old_state == CompletionState.OPEN and self.new_state == CompletionState.DONE

    @property
    def reopened(self) -> bool:
        return self.old_state == CompletionState.DONE and self.new_state == CompletionState.OPEN


def apply_status(task: Task, new_status: TaskStatus, now: datetime) -> TaskStatusChange:
    """Compute the update for moving ``task`` to ``new_status``."""
    old_state = completion_state(task.status)
    new_state = completion_state(new_status)

    changes: dict = {"status": new_status}
    if old_state == CompletionState.OPEN and new_state == CompletionState.DONE:
        changes["completed_at"] = now
    elif old_state == CompletionState.DONE and new_state == CompletionState.OPEN:
        changes["completed_at"] = None
    return TaskStatusChange(
        old_state=old_state, new_state=new_state, update=TaskUpdate(**changes)
    )


class TaskLifecycleService:
    """Applies status changes with parent/subtask cascade."""

    def __init__(self, task_repo: ITaskRepository, clock: Optional[IClock] = None):
        self.task_repo = task_repo
        self.clock = clock or SystemClock()

    async def _get(self, task_id: UUID) -> Task:
        task = await self.task_repo.get(task_id)
        if task is None:
            raise NotFoundError(f"Task {task_id} not found")
        return task

    @staticmethod
    def _refuse_template(task: Task) -> None:
        if task.is_template:
            raise BusinessLogicError(
                "Recurring templates are not completed; archive the template instead",
                details={"task_id": str(task.id)},
            )

    async def change_status(self, task_id: UUID, new_status: TaskStatus) -> Task:
        """Set a task's status and propagate completion to parent or subtasks."""
        task = await self._get(task_id)
        change = apply_status(task, new_status, self.clock.now())
        if change.new_state == CompletionState.DONE:
            self._refuse_template(task)

        updated = await self.task_repo.update(task_id, change.update)

        if task.parent_task_id is not None:
            if change.completed:
                await self.complete_parent_if_all_children_done(task.parent_task_id)
            elif change.reopened:
                await self.reopen_parent_if_any_child_reopened(task.parent_task_id)
        elif not task.is_template:
            if change.completed:
                await self.complete_all_children(task_id)
            elif change.reopened:
                await self.reopen_all_children(task_id)

        if change.completed and task.is_occurrence:
            await self.restart_completion_based_series(task.recurring_parent_id)
        return updated

    async def complete_parent_if_all_children_done(self, parent_id: UUID) -> bool:
        """Mark the parent done once every subtask is done. Returns True if changed."""
        children = await self.task_repo.list_children(parent_id)
        if not children or any(child.status != TaskStatus.DONE for child in children):
            return False

        parent = await self._get(parent_id)
        if parent.is_template:
            return False
        change = apply_status(parent, TaskStatus.DONE, self.clock.now())
        if not change.completed:
            return False
        await self.task_repo.update(parent_id, change.update)
        logger.info(f"Completed parent task {parent_id}: all subtasks done")
        return True

    async def restart_completion_based_series(self, template_id: UUID) -> int:
        """
        Drop a completion-based template's pending occurrences after a completion.

        Open occurrences due after now are deleted so the next generation
        pass counts the series from the completion day. Other templates are
        left alone.

        Returns:
            Number of deleted occurrences
        """
        template = await self.task_repo.get(template_id)
        if template is None or not template.completion_based:
            return 0
        deleted = await self.task_repo.delete_occurrences_due_after(
            template_id, self.clock.now(), open_only=True
        )
        if deleted:
            logger.info(f"Restarted completion-based series {template_id}: dropped {deleted}")
        return deleted

    async def reopen_parent_if_any_child_reopened(self, parent_id: UUID) -> bool:
        """Reopen a done parent when one of its subtasks is open again."""
        parent = await self._get(parent_id)
        if parent.status != TaskStatus.DONE:
            return False
        children = await self.task_repo.list_children(parent_id)
        if all(child.status == TaskStatus.DONE for child in children):
            return False

        change = apply_status(parent, TaskStatus.NOT_STARTED, self.clock.now())
        await self.task_repo.update(parent_id, change.update)
        logger.info(f"Reopened parent task {parent_id}: a subtask was reopened")
        return True

    async def complete_all_children(self, parent_id: UUID) -> int:
        """Complete every open subtask. Returns the number changed."""
        parent = await self._get(parent_id)
        self._refuse_template(parent)
        now = self.clock.now()
        changed = 0
        for child in await self.task_repo.list_children(parent_id):
            change = apply_status(child, TaskStatus.DONE, now)
            if change.completed:
                await self.task_repo.update(child.id, change.update)
                changed += 1
        return changed

    async def reopen_all_children(self, parent_id: UUID) -> int:
        """Reopen every done subtask. Returns the number changed."""
        parent = await self._get(parent_id)
        self._refuse_template(parent)
        now = self.clock.now()
        changed = 0
        for child in await self.task_repo.list_children(parent_id):
            if child.status != TaskStatus.DONE:
                continue
            change = apply_status(child, TaskStatus.NOT_STARTED, now)
            await self.task_repo.update(child.id, change.update)
            changed += 1
        return changed
