"""
Recurring task generation models.
"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field

from taskcore.models.task import Task


class GenerationResult(BaseModel):
    """Outcome of one occurrence generation pass."""

    created_count: int = 0
    tasks: list[Task] = Field(default_factory=list)
    skipped: bool = Field(False, description="True when another pass held the lock")
    failed_template_ids: list[str] = Field(default_factory=list)


class Iteration(BaseModel):
    """Preview of an upcoming occurrence date."""

    date: date
    utc_date: datetime


class RecurrenceChangeResult(BaseModel):
    """Outcome of a template rule change."""

    template_id: str
    deleted_count: int = 0
    regenerated: Optional[GenerationResult] = None
