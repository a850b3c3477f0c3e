"""
Shared pytest fixtures.
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from taskcore.infrastructure.local.database import init_db
from taskcore.interfaces.clock import IClock


class FixedClock(IClock):
    """Clock frozen at a given instant; ``advance`` moves it forward."""

    def __init__(self, now: datetime):
        self._now = now

    def now(self) -> datetime:
        return self._now

    def advance(self, **kwargs) -> None:
        self._now = self._now + timedelta(**kwargs)


@pytest.fixture
async def engine(tmp_path):
    """File-backed SQLite engine so concurrent sessions share one database."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'taskcore.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def test_user_id():
    return "test_user"


@pytest.fixture
def other_user_id():
    return "other_user"


@pytest.fixture
def fixed_now():
    # Wednesday
    return datetime(2025, 3, 12, 3, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock(fixed_now):
    return FixedClock(fixed_now)
