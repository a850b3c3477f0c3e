"""
SQLite database configuration and ORM models.

This module defines the SQLAlchemy ORM models and database initialization.
All DateTime columns hold naive UTC values.
"""

from functools import lru_cache
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    JSON,
    String,
    Table,
    Text,
    UniqueConstraint,
)
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import DeclarativeBase, relationship, sessionmaker

from taskcore.core.config import get_settings
from taskcore.utils.datetime_utils import now_utc, to_naive_utc


class Base(DeclarativeBase):
    """SQLAlchemy declarative base."""

    pass


def _utcnow_naive():
    return to_naive_utc(now_utc())


def _new_uid() -> str:
    return uuid4().hex


# ===========================================
# ORM Models
# ===========================================


task_tags = Table(
    "task_tags",
    Base.metadata,
    Column("task_id", String(36), ForeignKey("tasks.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", String(36), ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True),
)


class TagORM(Base):
    """Tag ORM model."""

    __tablename__ = "tags"
    __table_args__ = (UniqueConstraint("user_id", "name", name="uq_tag_user_name"),)

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    user_id = Column(String(255), nullable=False, index=True)
    name = Column(String(100), nullable=False)


class TaskORM(Base):
    """Task ORM model."""

    __tablename__ = "tasks"
    # One occurrence per template and due instant
    __table_args__ = (
        UniqueConstraint("recurring_parent_id", "due_date", name="uq_task_occurrence_due"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    uid = Column(String(64), nullable=False, unique=True, default=_new_uid)
    user_id = Column(String(255), nullable=False, index=True)
    project_id = Column(String(36), nullable=True, index=True)
    parent_task_id = Column(String(36), nullable=True, index=True)
    recurring_parent_id = Column(String(36), nullable=True, index=True)
    name = Column(String(255), nullable=False)
    note = Column(Text, nullable=True)
    status = Column(String(20), default="not_started", index=True)
    priority = Column(Integer, default=1)
    today = Column(Boolean, default=False)
    due_date = Column(DateTime, nullable=True, index=True)
    defer_until = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    recurrence_type = Column(String(20), default="none")
    recurrence_interval = Column(Integer, default=1)
    recurrence_weekday = Column(Integer, nullable=True)
    recurrence_weekdays = Column(JSON, nullable=True)
    recurrence_month_day = Column(Integer, nullable=True)
    recurrence_week_of_month = Column(Integer, nullable=True)
    recurrence_unit = Column(String(10), default="month")
    recurrence_end_date = Column(Date, nullable=True)
    completion_based = Column(Boolean, default=False)
    created_at = Column(DateTime, default=_utcnow_naive)
    updated_at = Column(DateTime, default=_utcnow_naive, onupdate=_utcnow_naive)

    tags = relationship(TagORM, secondary=task_tags, lazy="selectin")


class ProjectORM(Base):
    """Project ORM model."""

    __tablename__ = "projects"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    uid = Column(String(64), nullable=False, unique=True, default=_new_uid)
    user_id = Column(String(255), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    due_date_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=_utcnow_naive)
    updated_at = Column(DateTime, default=_utcnow_naive, onupdate=_utcnow_naive)


class PermissionORM(Base):
    """Permission grant ORM model."""

    __tablename__ = "permissions"
    __table_args__ = (
        UniqueConstraint("resource_type", "resource_uid", "user_id", name="uq_permission_grant"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    resource_type = Column(String(20), nullable=False)
    resource_uid = Column(String(64), nullable=False, index=True)
    user_id = Column(String(255), nullable=False, index=True)
    access_level = Column(String(10), nullable=False, default="ro")
    granted_by_user_id = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=_utcnow_naive)


class GenerationLockORM(Base):
    """Short-lived lease row guarding recurring task generation."""

    __tablename__ = "generation_locks"

    key = Column(String(255), primary_key=True)
    owner = Column(String(64), nullable=False)
    expires_at = Column(DateTime, nullable=False)


# ===========================================
# Database Engine & Session
# ===========================================


@lru_cache()
def get_engine():
    """Get async engine instance."""
    settings = get_settings()
    return create_async_engine(settings.DATABASE_URL, echo=settings.DEBUG)


def get_session_factory():
    """Get async session factory."""
    engine = get_engine()
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_db(engine=None):
    """Initialize database tables."""
    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
