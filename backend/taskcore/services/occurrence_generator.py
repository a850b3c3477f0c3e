"""
Occurrence generator.

Materializes upcoming occurrences of recurring task templates. Runs lazily
from the "today" and "upcoming" views, so a pass must be cheap to repeat and
safe when two requests for the same user race each other.
"""

from __future__ import annotations

import asyncio
from datetime import date, timedelta
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from taskcore.core.exceptions import (
    BusinessLogicError,
    LockUnavailableError,
    OccurrenceConflictError,
    TaskcoreError,
)
from taskcore.core.logger import setup_logger
from taskcore.infrastructure.local.system_clock import SystemClock
from taskcore.interfaces.clock import IClock
from taskcore.interfaces.lock_provider import ILockProvider, LockToken
from taskcore.interfaces.task_repository import ITaskRepository
from taskcore.models.enums import TaskStatus
from taskcore.models.recurrence import GenerationResult
from taskcore.models.task import Task, TaskCreate
from taskcore.services.recurrence import RecurrenceCalculator, validate_recurrence_rule
from taskcore.utils.datetime_utils import (
    DayBounds,
    day_bounds,
    end_of_user_day,
    get_user_today,
    utc_to_user_date,
)

logger = setup_logger(__name__)

LOCK_KEY_PREFIX = "generate_recurring"


def generation_lock_key(user_id: str) -> str:
    return f"{LOCK_KEY_PREFIX}:{user_id}"


class OccurrenceGenerator:
    """Creates task occurrences from recurring templates within a horizon."""

    def __init__(
        self,
        task_repo: ITaskRepository,
        lock_provider: ILockProvider,
        clock: Optional[IClock] = None,
        calculator: Optional[RecurrenceCalculator] = None,
        horizon_days: int = 7,
        lock_ttl_seconds: float = 30.0,
        acquire_timeout_seconds: float = 2.0,
    ):
        self.task_repo = task_repo
        self.lock_provider = lock_provider
        self.clock = clock or SystemClock()
        self.calculator = calculator or RecurrenceCalculator()
        self.horizon_days = horizon_days
        self.lock_ttl_seconds = lock_ttl_seconds
        self.acquire_timeout_seconds = acquire_timeout_seconds

    async def _acquire(self, key: str) -> LockToken:
        try:
            token = await asyncio.wait_for(
                self.lock_provider.try_acquire(key, self.lock_ttl_seconds),
                timeout=self.acquire_timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            raise LockUnavailableError(
                f"Timed out acquiring {key}", details={"key": key}
            ) from exc
        if token is None:
            raise LockUnavailableError(f"{key} is held by another pass", details={"key": key})
        return token

    async def generate_upcoming(
        self,
        user_id: str,
        horizon_days: Optional[int] = None,
        timezone: Optional[str] = "UTC",
    ) -> GenerationResult:
        """Ensure occurrences exist for every template date in [today, today + horizon].

        A pass that loses the lock race returns ``skipped=True`` and creates
        nothing; the winning pass covers the same dates.
        """
        horizon = self.horizon_days if horizon_days is None else max(horizon_days, 0)
        key = generation_lock_key(user_id)

        try:
            token = await self._acquire(key)
        except LockUnavailableError as exc:
            logger.debug(f"Skipping recurring generation for user {user_id}: {exc.message}")
            return GenerationResult(skipped=True)

        result = GenerationResult()
        try:
            today = get_user_today(timezone, now=self.clock.now())
            end = today + timedelta(days=horizon)
            templates = await self.task_repo.list_templates(user_id)
            for template in templates:
                try:
                    created = await self._generate_for_template(template, today, end, timezone)
                except (TaskcoreError, SQLAlchemyError) as exc:
                    logger.error(
                        f"Failed to generate occurrences for template {template.id}: {exc}",
                        exc_info=True,
                    )
                    result.failed_template_ids.append(str(template.id))
                    continue
                result.tasks.extend(created)
        finally:
            await self.lock_provider.release(token)

        result.created_count = len(result.tasks)
        if result.created_count:
            logger.info(
                f"Generated {result.created_count} recurring occurrences for user {user_id}"
            )
        return result

    def _anchor_for(self, template: Task, timezone: Optional[str]) -> date:
        """Local day the series starts on: the template's due day, else its creation day."""
        if template.due_date is not None:
            return utc_to_user_date(template.due_date, timezone)
        return utc_to_user_date(template.created_at, timezone)

    async def _last_completed_day(
        self, template: Task, timezone: Optional[str]
    ) -> Optional[date]:
        """Local day the template's most recent occurrence was completed on."""
        completions = [
            task.completed_at
            for task in await self.task_repo.list_occurrences(template.id)
            if task.status == TaskStatus.DONE and task.completed_at is not None
        ]
        if not completions:
            return None
        return utc_to_user_date(max(completions), timezone)

    async def _generate_for_template(
        self,
        template: Task,
        today: date,
        end: date,
        timezone: Optional[str],
    ) -> list[Task]:
        validate_recurrence_rule(template)

        window = DayBounds(
            start=day_bounds(today, timezone).start,
            end=day_bounds(end, timezone).end,
        )
        existing = await self.task_repo.list_occurrences(template.id, due_between=window)
        existing_days = {utc_to_user_date(task.due_date, timezone) for task in existing}

        created: list[Task] = []
        anchor = self._anchor_for(template, timezone)
        if template.completion_based:
            completed_day = await self._last_completed_day(template, timezone)
            if completed_day is not None:
                anchor = self.calculator.next_occurrence(template, completed_day)
                if anchor is None:
                    return created
        for occurrence_day in self.calculator.iter_occurrences(template, today, end, anchor):
            if occurrence_day in existing_days:
                continue
            try:
                task = await self.task_repo.create(
                    template.user_id, self._build_occurrence(template, occurrence_day, timezone)
                )
            except OccurrenceConflictError as exc:
                logger.warning(f"Skipping duplicate occurrence: {exc.message} {exc.details}")
                continue
            existing_days.add(occurrence_day)
            created.append(task)
        return created

    @staticmethod
    def _build_occurrence(template: Task, day: date, timezone: Optional[str]) -> TaskCreate:
        due = end_of_user_day(day, timezone)
        defer_until = None
        if template.defer_until is not None and template.due_date is not None:
            defer_until = due - (template.due_date - template.defer_until)
        return TaskCreate(
            name=template.name,
            note=template.note,
            priority=template.priority,
            project_id=template.project_id,
            tags=list(template.tags),
            status=TaskStatus.NOT_STARTED,
            due_date=due,
            defer_until=defer_until,
            recurring_parent_id=template.id,
        )

    async def apply_recurrence_rule_change(self, template: Task) -> int:
        """
        Drop future occurrences after a template's rule changed.

        Occurrences due strictly after now are deleted so the next pass
        regenerates them under the new rule; past and currently due ones are
        kept.

        Returns:
            Number of deleted occurrences

        Raises:
            InvalidRecurrenceRuleError: If the new rule is invalid
            BusinessLogicError: If ``template`` is itself an occurrence
        """
        if template.is_occurrence:
            raise BusinessLogicError(
                "Recurrence rules belong to templates, not occurrences",
                details={"task_id": str(template.id)},
            )
        validate_recurrence_rule(template)

        deleted = await self.task_repo.delete_occurrences_due_after(template.id, self.clock.now())
        if deleted:
            logger.info(f"Deleted {deleted} future occurrences of template {template.id}")
        return deleted
