"""
Unit tests for Task repository.
"""

from datetime import date, datetime, timedelta, timezone
from uuid import uuid4

import pytest

from taskcore.core.exceptions import NotFoundError, OccurrenceConflictError
from taskcore.infrastructure.local.task_repository import SqliteTaskRepository
from taskcore.models.enums import Priority, RecurrenceType, TaskStatus
from taskcore.models.task import TaskCreate, TaskUpdate
from taskcore.models.task_query import TaskQuery
from taskcore.utils.datetime_utils import DayBounds, end_of_user_day

UTC = timezone.utc


@pytest.mark.asyncio
async def test_create_task(session_factory, test_user_id):
    """Test creating a task."""
    repo = SqliteTaskRepository(session_factory=session_factory)

    task = await repo.create(
        test_user_id,
        TaskCreate(
            name="Test Task",
            note="Test note",
            priority=Priority.HIGH,
            due_date=datetime(2025, 3, 12, 9, 0, tzinfo=UTC),
            tags=["home", "errand"],
        ),
    )

    assert task.id is not None
    assert task.uid
    assert task.name == "Test Task"
    assert task.user_id == test_user_id
    assert task.status == TaskStatus.NOT_STARTED
    assert task.priority == Priority.HIGH
    assert task.due_date == datetime(2025, 3, 12, 9, 0, tzinfo=UTC)
    assert task.tags == ["errand", "home"]
    assert task.created_at.tzinfo is not None


@pytest.mark.asyncio
async def test_get_missing_task(session_factory):
    repo = SqliteTaskRepository(session_factory=session_factory)

    assert await repo.get(uuid4()) is None


@pytest.mark.asyncio
async def test_update_task(session_factory, test_user_id):
    """Test updating a task."""
    repo = SqliteTaskRepository(session_factory=session_factory)
    created = await repo.create(
        test_user_id,
        TaskCreate(name="Original", completed_at=datetime(2025, 3, 1, tzinfo=UTC), tags=["a"]),
    )

    updated = await repo.update(
        created.id,
        TaskUpdate(name="Renamed", status=TaskStatus.WAITING, completed_at=None, tags=["b"]),
    )

    assert updated.name == "Renamed"
    assert updated.status == TaskStatus.WAITING
    assert updated.completed_at is None
    assert updated.tags == ["b"]


@pytest.mark.asyncio
async def test_update_missing_task(session_factory):
    repo = SqliteTaskRepository(session_factory=session_factory)

    with pytest.raises(NotFoundError):
        await repo.update(uuid4(), TaskUpdate(name="Nope"))


@pytest.mark.asyncio
async def test_delete_task(session_factory, test_user_id):
    repo = SqliteTaskRepository(session_factory=session_factory)
    created = await repo.create(test_user_id, TaskCreate(name="Doomed"))

    assert await repo.delete(created.id) is True
    assert await repo.get(created.id) is None
    assert await repo.delete(created.id) is False


@pytest.mark.asyncio
async def test_duplicate_occurrence_is_rejected(session_factory, test_user_id):
    repo = SqliteTaskRepository(session_factory=session_factory)
    template = await repo.create(
        test_user_id, TaskCreate(name="Daily", recurrence_type=RecurrenceType.DAILY)
    )
    due = end_of_user_day(date(2025, 3, 12), "UTC")
    occurrence = TaskCreate(name="Daily", due_date=due, recurring_parent_id=template.id)

    await repo.create(test_user_id, occurrence)
    with pytest.raises(OccurrenceConflictError):
        await repo.create(test_user_id, occurrence)

    assert len(await repo.list_occurrences(template.id)) == 1


@pytest.mark.asyncio
async def test_query_orders_nulls_last(session_factory, test_user_id):
    repo = SqliteTaskRepository(session_factory=session_factory)
    await repo.create(test_user_id, TaskCreate(name="undated"))
    await repo.create(
        test_user_id, TaskCreate(name="later", due_date=datetime(2025, 3, 20, tzinfo=UTC))
    )
    await repo.create(
        test_user_id, TaskCreate(name="sooner", due_date=datetime(2025, 3, 13, tzinfo=UTC))
    )

    asc = await repo.query(TaskQuery(user_id=test_user_id, order_by=(("due_date", "asc"),)))
    desc = await repo.query(TaskQuery(user_id=test_user_id, order_by=(("due_date", "desc"),)))

    assert [t.name for t in asc] == ["sooner", "later", "undated"]
    assert [t.name for t in desc] == ["later", "sooner", "undated"]


@pytest.mark.asyncio
async def test_query_filters(session_factory, test_user_id):
    repo = SqliteTaskRepository(session_factory=session_factory)
    parent = await repo.create(test_user_id, TaskCreate(name="parent", tags=["someday"]))
    await repo.create(test_user_id, TaskCreate(name="child", parent_task_id=parent.id))
    await repo.create(
        test_user_id,
        TaskCreate(name="deferred", defer_until=datetime(2025, 4, 1, tzinfo=UTC)),
    )
    await repo.create(test_user_id, TaskCreate(name="done", status=TaskStatus.DONE))
    await repo.create("someone_else", TaskCreate(name="foreign"))

    top_level = await repo.query(TaskQuery(user_id=test_user_id))
    assert {t.name for t in top_level} == {"parent", "deferred", "done"}

    open_tasks = await repo.count(
        TaskQuery(user_id=test_user_id, exclude_statuses=[TaskStatus.DONE])
    )
    assert open_tasks == 2

    available = await repo.query(
        TaskQuery(user_id=test_user_id, available_at=datetime(2025, 3, 12, tzinfo=UTC))
    )
    assert "deferred" not in {t.name for t in available}

    tagged = await repo.query(TaskQuery(user_id=test_user_id, with_tag="someday"))
    untagged = await repo.query(TaskQuery(user_id=test_user_id, without_tag="someday"))
    assert [t.name for t in tagged] == ["parent"]
    assert "parent" not in {t.name for t in untagged}


@pytest.mark.asyncio
async def test_query_due_window(session_factory, test_user_id):
    repo = SqliteTaskRepository(session_factory=session_factory)
    window = DayBounds(
        start=datetime(2025, 3, 12, tzinfo=UTC),
        end=datetime(2025, 3, 12, 23, 59, 59, 999000, tzinfo=UTC),
    )
    await repo.create(test_user_id, TaskCreate(name="edge", due_date=window.end))
    await repo.create(
        test_user_id,
        TaskCreate(name="after", due_date=window.end + timedelta(milliseconds=1)),
    )
    await repo.create(test_user_id, TaskCreate(name="undated"))

    inside = await repo.query(TaskQuery(user_id=test_user_id, due_between=window))
    with_undated = await repo.query(
        TaskQuery(user_id=test_user_id, due_between=window, include_no_due_date=True)
    )

    assert [t.name for t in inside] == ["edge"]
    assert {t.name for t in with_undated} == {"edge", "undated"}


@pytest.mark.asyncio
async def test_list_templates(session_factory, test_user_id):
    repo = SqliteTaskRepository(session_factory=session_factory)
    template = await repo.create(
        test_user_id, TaskCreate(name="weekly", recurrence_type=RecurrenceType.WEEKLY)
    )
    await repo.create(
        test_user_id,
        TaskCreate(
            name="archived",
            recurrence_type=RecurrenceType.DAILY,
            status=TaskStatus.ARCHIVED,
        ),
    )
    await repo.create(test_user_id, TaskCreate(name="plain"))
    await repo.create(test_user_id, TaskCreate(name="weekly", recurring_parent_id=template.id))

    templates = await repo.list_templates(test_user_id)

    assert [t.id for t in templates] == [template.id]
    assert templates[0].is_template


@pytest.mark.asyncio
async def test_delete_occurrences_due_after(session_factory, test_user_id):
    repo = SqliteTaskRepository(session_factory=session_factory)
    template = await repo.create(
        test_user_id, TaskCreate(name="daily", recurrence_type=RecurrenceType.DAILY)
    )
    for day in range(10, 15):
        await repo.create(
            test_user_id,
            TaskCreate(
                name="daily",
                due_date=end_of_user_day(date(2025, 3, day), "UTC"),
                recurring_parent_id=template.id,
            ),
        )

    deleted = await repo.delete_occurrences_due_after(
        template.id, datetime(2025, 3, 12, 12, 0, tzinfo=UTC)
    )

    assert deleted == 3
    remaining = await repo.list_occurrences(template.id)
    assert [t.due_date.date() for t in remaining] == [date(2025, 3, 10), date(2025, 3, 11)]


@pytest.mark.asyncio
async def test_delete_open_occurrences_keeps_done(session_factory, test_user_id):
    repo = SqliteTaskRepository(session_factory=session_factory)
    template = await repo.create(
        test_user_id, TaskCreate(name="weekly", recurrence_type=RecurrenceType.WEEKLY)
    )
    done = await repo.create(
        test_user_id,
        TaskCreate(
            name="weekly",
            status=TaskStatus.DONE,
            due_date=end_of_user_day(date(2025, 3, 17), "UTC"),
            recurring_parent_id=template.id,
        ),
    )
    await repo.create(
        test_user_id,
        TaskCreate(
            name="weekly",
            due_date=end_of_user_day(date(2025, 3, 24), "UTC"),
            recurring_parent_id=template.id,
        ),
    )

    deleted = await repo.delete_occurrences_due_after(
        template.id, datetime(2025, 3, 12, tzinfo=UTC), open_only=True
    )

    assert deleted == 1
    assert [t.id for t in await repo.list_occurrences(template.id)] == [done.id]


@pytest.mark.asyncio
async def test_list_children(session_factory, test_user_id):
    repo = SqliteTaskRepository(session_factory=session_factory)
    parent = await repo.create(test_user_id, TaskCreate(name="parent"))
    first = await repo.create(test_user_id, TaskCreate(name="first", parent_task_id=parent.id))
    second = await repo.create(test_user_id, TaskCreate(name="second", parent_task_id=parent.id))

    children = await repo.list_children(parent.id)

    assert [c.id for c in children] == [first.id, second.id]
    assert all(c.is_subtask for c in children)
