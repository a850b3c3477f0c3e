"""
Integration tests for status changes with parent/subtask cascade.
"""

from uuid import uuid4

import pytest

from taskcore.core.exceptions import BusinessLogicError, NotFoundError
from taskcore.infrastructure.local.task_repository import SqliteTaskRepository
from taskcore.models.enums import RecurrenceType, TaskStatus
from taskcore.models.task import TaskCreate
from taskcore.services.task_lifecycle import TaskLifecycleService


@pytest.fixture
def task_repo(session_factory):
    return SqliteTaskRepository(session_factory=session_factory)


@pytest.fixture
def lifecycle(task_repo, clock):
    return TaskLifecycleService(task_repo, clock=clock)


async def _family(task_repo, user_id, children=2):
    parent = await task_repo.create(user_id, TaskCreate(name="parent"))
    kids = [
        await task_repo.create(user_id, TaskCreate(name=f"child {i}", parent_task_id=parent.id))
        for i in range(children)
    ]
    return parent, kids


@pytest.mark.asyncio
async def test_complete_and_reopen(lifecycle, task_repo, clock, test_user_id):
    task = await task_repo.create(test_user_id, TaskCreate(name="Write report"))

    done = await lifecycle.change_status(task.id, TaskStatus.DONE)
    assert done.status == TaskStatus.DONE
    assert done.completed_at == clock.now()

    reopened = await lifecycle.change_status(task.id, TaskStatus.IN_PROGRESS)
    assert reopened.status == TaskStatus.IN_PROGRESS
    assert reopened.completed_at is None


@pytest.mark.asyncio
async def test_last_child_completes_parent(lifecycle, task_repo, test_user_id):
    parent, (first, second) = await _family(task_repo, test_user_id)

    await lifecycle.change_status(first.id, TaskStatus.DONE)
    assert (await task_repo.get(parent.id)).status == TaskStatus.NOT_STARTED

    await lifecycle.change_status(second.id, TaskStatus.DONE)
    parent = await task_repo.get(parent.id)
    assert parent.status == TaskStatus.DONE
    assert parent.completed_at is not None


@pytest.mark.asyncio
async def test_reopened_child_reopens_parent(lifecycle, task_repo, test_user_id):
    parent, (first, second) = await _family(task_repo, test_user_id)
    await lifecycle.change_status(first.id, TaskStatus.DONE)
    await lifecycle.change_status(second.id, TaskStatus.DONE)

    await lifecycle.change_status(first.id, TaskStatus.NOT_STARTED)

    parent = await task_repo.get(parent.id)
    assert parent.status == TaskStatus.NOT_STARTED
    assert parent.completed_at is None


@pytest.mark.asyncio
async def test_completing_parent_completes_children(lifecycle, task_repo, test_user_id):
    parent, kids = await _family(task_repo, test_user_id, children=3)

    await lifecycle.change_status(parent.id, TaskStatus.DONE)

    children = await task_repo.list_children(parent.id)
    assert len(children) == 3
    assert all(child.status == TaskStatus.DONE for child in children)
    assert all(child.completed_at is not None for child in children)


@pytest.mark.asyncio
async def test_reopening_parent_reopens_children(lifecycle, task_repo, test_user_id):
    parent, _ = await _family(task_repo, test_user_id)
    await lifecycle.change_status(parent.id, TaskStatus.DONE)

    await lifecycle.change_status(parent.id, TaskStatus.WAITING)

    children = await task_repo.list_children(parent.id)
    assert all(child.status == TaskStatus.NOT_STARTED for child in children)
    assert all(child.completed_at is None for child in children)


@pytest.mark.asyncio
async def test_template_cannot_be_completed(lifecycle, task_repo, test_user_id):
    template = await task_repo.create(
        test_user_id, TaskCreate(name="Daily", recurrence_type=RecurrenceType.DAILY)
    )

    with pytest.raises(BusinessLogicError):
        await lifecycle.change_status(template.id, TaskStatus.DONE)
    assert (await task_repo.get(template.id)).status == TaskStatus.NOT_STARTED


@pytest.mark.asyncio
async def test_finished_checklist_leaves_template_open(lifecycle, task_repo, test_user_id):
    template = await task_repo.create(
        test_user_id,
        TaskCreate(name="Weekly review", recurrence_type=RecurrenceType.WEEKLY),
    )
    child = await task_repo.create(
        test_user_id, TaskCreate(name="Inbox zero", parent_task_id=template.id)
    )

    done = await lifecycle.change_status(child.id, TaskStatus.DONE)

    assert done.status == TaskStatus.DONE
    assert (await task_repo.get(child.id)).completed_at is not None
    template = await task_repo.get(template.id)
    assert template.status == TaskStatus.NOT_STARTED
    assert template.completed_at is None


@pytest.mark.asyncio
async def test_template_can_be_archived(lifecycle, task_repo, test_user_id):
    template = await task_repo.create(
        test_user_id, TaskCreate(name="Daily", recurrence_type=RecurrenceType.DAILY)
    )

    archived = await lifecycle.change_status(template.id, TaskStatus.ARCHIVED)

    assert archived.status == TaskStatus.ARCHIVED
    assert await task_repo.list_templates(test_user_id) == []


@pytest.mark.asyncio
async def test_missing_task(lifecycle):
    with pytest.raises(NotFoundError):
        await lifecycle.change_status(uuid4(), TaskStatus.DONE)
