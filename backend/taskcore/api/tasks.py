"""
Task view API endpoints.

Dashboard metrics, the upcoming and today views, and recurring task
maintenance. Plain task CRUD lives outside this service.
"""

from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status

from taskcore.api.deps import (
    AppSettings,
    Clock,
    CurrentUser,
    LockProvider,
    PermissionRepo,
    ProjectRepo,
    TaskRepo,
)
from taskcore.core.exceptions import (
    BusinessLogicError,
    ForbiddenError,
    InvalidRecurrenceRuleError,
    NotFoundError,
    ValidationError,
)
from taskcore.models.enums import AccessLevel, ResourceType, TaskStatus
from taskcore.models.metrics import TaskMetrics
from taskcore.models.recurrence import GenerationResult, Iteration, RecurrenceChangeResult
from taskcore.models.task import Task
from taskcore.models.task_query import TaskQuery
from taskcore.models.views import IterationList, StatusChange, UpcomingTasks
from taskcore.services.day_grouping import group_by_day, parse_order_by
from taskcore.services.metrics_service import MetricsService
from taskcore.services.occurrence_generator import OccurrenceGenerator
from taskcore.services.recurrence import RecurrenceCalculator
from taskcore.services.task_lifecycle import TaskLifecycleService
from taskcore.services.visibility import VisibilityPredicateBuilder, ensure_access
from taskcore.utils.datetime_utils import end_of_user_day, get_user_today, upcoming_range

router = APIRouter()


def _generator(settings, task_repo, lock_provider, clock) -> OccurrenceGenerator:
    return OccurrenceGenerator(
        task_repo=task_repo,
        lock_provider=lock_provider,
        clock=clock,
        calculator=RecurrenceCalculator(max_iterations=settings.RECURRENCE_MAX_ITERATIONS),
        horizon_days=settings.RECURRING_HORIZON_DAYS,
        lock_ttl_seconds=settings.GENERATION_LOCK_TTL_SECONDS,
        acquire_timeout_seconds=settings.GENERATION_LOCK_ACQUIRE_TIMEOUT_SECONDS,
    )


def _metrics_service(settings, task_repo, visibility_builder, clock) -> MetricsService:
    return MetricsService(
        task_repo=task_repo,
        visibility_builder=visibility_builder,
        clock=clock,
        someday_tag=settings.SOMEDAY_TAG_NAME,
        suggestion_min_results=settings.SUGGESTION_MIN_RESULTS,
        suggestion_max_results=settings.SUGGESTION_MAX_RESULTS,
        pending_over_days=settings.PENDING_OVER_MONTH_DAYS,
    )


async def _get_accessible_task(
    task_id: UUID,
    user_id: str,
    task_repo,
    visibility_builder: VisibilityPredicateBuilder,
    required: AccessLevel,
) -> Task:
    """Load a task the user may access; invisible tasks look missing."""
    task = await task_repo.get(task_id)
    if task is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")
    level = await visibility_builder.get_access(user_id, ResourceType.TASK, task)
    if level == AccessLevel.NONE:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")
    try:
        ensure_access(level, required)
    except ForbiddenError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.message)
    return task


@router.get("/metrics", response_model=TaskMetrics)
async def get_task_metrics(
    user: CurrentUser,
    settings: AppSettings,
    task_repo: TaskRepo,
    permission_repo: PermissionRepo,
    project_repo: ProjectRepo,
    clock: Clock,
    timezone: Optional[str] = Query(None, description="IANA timezone, defaults to the user's"),
):
    """Dashboard metrics for the current user."""
    builder = VisibilityPredicateBuilder(permission_repo, project_repo)
    service = _metrics_service(settings, task_repo, builder, clock)
    return await service.compute_metrics(user.id, timezone or user.timezone)


@router.get("/upcoming", response_model=UpcomingTasks)
async def get_upcoming_tasks(
    user: CurrentUser,
    settings: AppSettings,
    task_repo: TaskRepo,
    permission_repo: PermissionRepo,
    project_repo: ProjectRepo,
    lock_provider: LockProvider,
    clock: Clock,
    days: Optional[int] = Query(None, ge=0, le=366),
    order_by: Optional[str] = Query(None, description="e.g. priority:desc,due_date:asc"),
    include_no_due_date: bool = Query(False),
):
    """Upcoming tasks grouped by day, after materializing recurring occurrences."""
    try:
        order_keys = parse_order_by(order_by)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=e.message)

    days = settings.UPCOMING_MAX_DAYS if days is None else days
    generation = await _generator(settings, task_repo, lock_provider, clock).generate_upcoming(
        user.id, timezone=user.timezone
    )

    builder = VisibilityPredicateBuilder(permission_repo, project_repo)
    visibility = await builder.build(ResourceType.TASK, user.id)
    now = clock.now()
    tasks = await task_repo.query(
        TaskQuery(
            visibility=visibility,
            exclude_statuses=[TaskStatus.DONE, TaskStatus.ARCHIVED],
            exclude_templates=True,
            due_between=upcoming_range(user.timezone, days=days, now=now),
            include_no_due_date=include_no_due_date,
        )
    )
    groups = group_by_day(
        tasks,
        user.timezone,
        max_days=days,
        order_by=[f"{field}:{direction}" for field, direction in order_keys],
        now=now,
        include_no_due_date=include_no_due_date,
        language=user.language,
    )
    return UpcomingTasks(days=days, groups=groups, generation=generation)


@router.get("/today", response_model=TaskMetrics)
async def get_today_tasks(
    user: CurrentUser,
    settings: AppSettings,
    task_repo: TaskRepo,
    permission_repo: PermissionRepo,
    project_repo: ProjectRepo,
    lock_provider: LockProvider,
    clock: Clock,
):
    """Today's lists, after materializing recurring occurrences."""
    await _generator(settings, task_repo, lock_provider, clock).generate_upcoming(
        user.id, timezone=user.timezone
    )
    builder = VisibilityPredicateBuilder(permission_repo, project_repo)
    service = _metrics_service(settings, task_repo, builder, clock)
    return await service.compute_metrics(user.id, user.timezone)


@router.post("/generate-recurring", response_model=GenerationResult)
async def generate_recurring_tasks(
    user: CurrentUser,
    settings: AppSettings,
    task_repo: TaskRepo,
    lock_provider: LockProvider,
    clock: Clock,
    horizon_days: Optional[int] = Query(None, ge=0, le=366),
):
    """Generate upcoming occurrences for all of the user's recurring templates."""
    generator = _generator(settings, task_repo, lock_provider, clock)
    return await generator.generate_upcoming(
        user.id, horizon_days=horizon_days, timezone=user.timezone
    )


@router.post("/{task_id}/recurrence-changed", response_model=RecurrenceChangeResult)
async def recurrence_changed(
    task_id: UUID,
    user: CurrentUser,
    settings: AppSettings,
    task_repo: TaskRepo,
    permission_repo: PermissionRepo,
    project_repo: ProjectRepo,
    lock_provider: LockProvider,
    clock: Clock,
):
    """Drop future occurrences of a template whose rule changed, then regenerate."""
    builder = VisibilityPredicateBuilder(permission_repo, project_repo)
    template = await _get_accessible_task(task_id, user.id, task_repo, builder, AccessLevel.RW)

    generator = _generator(settings, task_repo, lock_provider, clock)
    try:
        deleted = await generator.apply_recurrence_rule_change(template)
    except InvalidRecurrenceRuleError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"message": e.message, "details": e.details},
        )
    except BusinessLogicError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)

    regenerated = None
    if template.user_id == user.id:
        regenerated = await generator.generate_upcoming(user.id, timezone=user.timezone)
    return RecurrenceChangeResult(
        template_id=str(template.id), deleted_count=deleted, regenerated=regenerated
    )


@router.get("/{task_id}/next-iterations", response_model=IterationList)
async def get_next_iterations(
    task_id: UUID,
    user: CurrentUser,
    settings: AppSettings,
    task_repo: TaskRepo,
    permission_repo: PermissionRepo,
    project_repo: ProjectRepo,
    clock: Clock,
    count: int = Query(6, ge=1, le=50),
    start_from: Optional[date] = Query(None, description="Preview dates after this day"),
):
    """Preview the next occurrence dates of a recurring task."""
    builder = VisibilityPredicateBuilder(permission_repo, project_repo)
    task = await _get_accessible_task(task_id, user.id, task_repo, builder, AccessLevel.RO)
    if not task.is_template:
        return IterationList()

    from_day = start_from or get_user_today(user.timezone, now=clock.now())
    calculator = RecurrenceCalculator(max_iterations=settings.RECURRENCE_MAX_ITERATIONS)
    days = calculator.preview_iterations(task, from_day, count=count)
    return IterationList(
        iterations=[
            Iteration(date=day, utc_date=end_of_user_day(day, user.timezone)) for day in days
        ]
    )


@router.patch("/{task_id}/status", response_model=Task)
async def change_task_status(
    task_id: UUID,
    payload: StatusChange,
    user: CurrentUser,
    task_repo: TaskRepo,
    permission_repo: PermissionRepo,
    project_repo: ProjectRepo,
    clock: Clock,
):
    """Change a task's status, cascading completion between parent and subtasks."""
    builder = VisibilityPredicateBuilder(permission_repo, project_repo)
    await _get_accessible_task(task_id, user.id, task_repo, builder, AccessLevel.RW)

    service = TaskLifecycleService(task_repo, clock=clock)
    try:
        return await service.change_status(task_id, payload.status)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    except BusinessLogicError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
