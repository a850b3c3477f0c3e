"""
Dashboard metrics service.

Aggregates the per-user task dashboard: open-task counts, today's lists,
a weekly completion histogram and, when the user has little on their plate,
a ranked list of suggested backlog tasks.
"""

from __future__ import annotations

import asyncio
from collections import Counter
from datetime import timedelta
from typing import Optional

from taskcore.core.logger import setup_logger
from taskcore.infrastructure.local.system_clock import SystemClock
from taskcore.interfaces.clock import IClock
from taskcore.interfaces.task_repository import ITaskRepository
from taskcore.models.enums import ResourceType, TaskStatus
from taskcore.models.metrics import TaskMetrics, WeeklyCompletion
from taskcore.models.task import Task
from taskcore.models.task_query import PRIORITY_DUE_PROJECT_ORDER, TaskQuery
from taskcore.models.visibility import VisibilityPredicate
from taskcore.services.visibility import VisibilityCache, VisibilityPredicateBuilder
from taskcore.utils.datetime_utils import (
    DayBounds,
    day_bounds,
    get_user_today,
    today_bounds,
    utc_to_user_date,
)

logger = setup_logger(__name__)

CLOSED_STATUSES = (TaskStatus.DONE, TaskStatus.ARCHIVED)
SUGGESTABLE_STATUSES = (TaskStatus.NOT_STARTED, TaskStatus.WAITING)
WEEK_DAYS = 7


class MetricsService:
    """Computes TaskMetrics for a user in their timezone."""

    def __init__(
        self,
        task_repo: ITaskRepository,
        visibility_builder: VisibilityPredicateBuilder,
        clock: Optional[IClock] = None,
        someday_tag: str = "someday",
        suggestion_min_results: int = 6,
        suggestion_max_results: int = 12,
        pending_over_days: int = 30,
    ):
        self.task_repo = task_repo
        self.visibility_builder = visibility_builder
        self.clock = clock or SystemClock()
        self.someday_tag = someday_tag
        self.suggestion_min_results = suggestion_min_results
        self.suggestion_max_results = suggestion_max_results
        self.pending_over_days = pending_over_days

    async def compute_metrics(
        self,
        user_id: str,
        timezone: Optional[str] = "UTC",
        cache: Optional[VisibilityCache] = None,
    ) -> TaskMetrics:
        """Compute all dashboard metrics for ``user_id``."""
        now = self.clock.now()
        today = today_bounds(timezone, now=now)
        visibility = await self.visibility_builder.build(ResourceType.TASK, user_id, cache)

        (
            total_open,
            pending_over_month,
            in_progress,
            today_plan,
            due_today,
            overdue,
            completed_today,
            weekly,
        ) = await asyncio.gather(
            self.task_repo.count(self._open_query(visibility)),
            self.task_repo.count(
                self._open_query(
                    visibility, created_before=now - timedelta(days=self.pending_over_days)
                )
            ),
            self.task_repo.query(
                TaskQuery(
                    visibility=visibility,
                    statuses=[TaskStatus.IN_PROGRESS],
                    exclude_templates=True,
                    order_by=PRIORITY_DUE_PROJECT_ORDER,
                )
            ),
            self.task_repo.query(
                TaskQuery(
                    visibility=visibility,
                    flagged_today=True,
                    exclude_statuses=CLOSED_STATUSES,
                    exclude_templates=True,
                    order_by=PRIORITY_DUE_PROJECT_ORDER,
                )
            ),
            self.task_repo.query(
                TaskQuery(
                    visibility=visibility,
                    flagged_today=False,
                    exclude_statuses=CLOSED_STATUSES,
                    exclude_templates=True,
                    due_between=today,
                    include_project_due=True,
                    order_by=PRIORITY_DUE_PROJECT_ORDER,
                )
            ),
            self.task_repo.query(
                TaskQuery(
                    visibility=visibility,
                    flagged_today=False,
                    exclude_statuses=CLOSED_STATUSES,
                    exclude_templates=True,
                    due_before=today.start,
                    include_project_due=True,
                    order_by=PRIORITY_DUE_PROJECT_ORDER,
                )
            ),
            self.task_repo.query(
                TaskQuery(
                    visibility=visibility,
                    statuses=[TaskStatus.DONE],
                    completed_between=today,
                    order_by=(("completed_at", "desc"),),
                )
            ),
            self.weekly_completions(visibility, timezone),
        )

        suggested: list[Task] = []
        if total_open < 3 and not in_progress and not due_today:
            suggested = await self.suggested_tasks(
                visibility,
                surfaced=[*in_progress, *due_today, *today_plan],
                now=now,
            )

        return TaskMetrics(
            total_open_tasks=total_open,
            pending_over_month=pending_over_month,
            in_progress_count=len(in_progress),
            in_progress=in_progress,
            today_plan=today_plan,
            due_today=due_today,
            overdue=overdue,
            completed_today=completed_today,
            suggested_tasks=suggested,
            weekly_completions=weekly,
        )

    @staticmethod
    def _open_query(visibility: VisibilityPredicate, created_before=None) -> TaskQuery:
        # Occurrences excluded so a recurring series counts once, via its template
        return TaskQuery(
            visibility=visibility,
            exclude_statuses=[TaskStatus.DONE],
            exclude_occurrences=True,
            created_before=created_before,
        )

    async def weekly_completions(
        self,
        visibility: VisibilityPredicate,
        timezone: Optional[str] = "UTC",
    ) -> list[WeeklyCompletion]:
        """Completed-task counts for the last seven local days, oldest first."""
        today = get_user_today(timezone, now=self.clock.now())
        days = [today - timedelta(days=offset) for offset in range(WEEK_DAYS - 1, -1, -1)]
        window = DayBounds(
            start=day_bounds(days[0], timezone).start,
            end=day_bounds(days[-1], timezone).end,
        )
        completed = await self.task_repo.query(
            TaskQuery(
                visibility=visibility,
                statuses=[TaskStatus.DONE],
                completed_between=window,
            )
        )
        counts = Counter(utc_to_user_date(task.completed_at, timezone) for task in completed)
        return [
            WeeklyCompletion(date=day, count=counts.get(day, 0), day_name=day.strftime("%a"))
            for day in days
        ]

    async def suggested_tasks(
        self,
        visibility: VisibilityPredicate,
        surfaced: list[Task],
        now=None,
    ) -> list[Task]:
        """
        Rank backlog tasks worth picking up.

        Tasks without a project come first, then project tasks. Someday-tagged
        tasks only backfill when fewer than ``suggestion_min_results`` remain.
        """
        now = now or self.clock.now()
        excluded = {task.id for task in surfaced}

        def backlog(has_project: bool) -> TaskQuery:
            return TaskQuery(
                visibility=visibility,
                statuses=SUGGESTABLE_STATUSES,
                exclude_templates=True,
                exclude_occurrences=True,
                has_project=has_project,
                ids_not_in=excluded,
                without_tag=self.someday_tag,
                available_at=now,
                order_by=PRIORITY_DUE_PROJECT_ORDER,
            )

        without_project, with_project = await asyncio.gather(
            self.task_repo.query(backlog(has_project=False)),
            self.task_repo.query(backlog(has_project=True)),
        )
        suggestions = [*without_project, *with_project]

        if len(suggestions) < self.suggestion_min_results and not visibility.denied:
            used = excluded | {task.id for task in suggestions}
            someday = await self.task_repo.query(
                TaskQuery(
                    user_id=visibility.user_id,
                    statuses=SUGGESTABLE_STATUSES,
                    exclude_templates=True,
                    exclude_occurrences=True,
                    ids_not_in=used,
                    with_tag=self.someday_tag,
                    available_at=now,
                    order_by=PRIORITY_DUE_PROJECT_ORDER,
                    limit=self.suggestion_max_results - len(suggestions),
                )
            )
            suggestions.extend(someday)

        logger.debug(f"Suggested {len(suggestions)} tasks for user {visibility.user_id}")
        return suggestions
