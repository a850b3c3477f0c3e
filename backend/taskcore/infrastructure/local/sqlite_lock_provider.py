"""
Database-backed implementation of the generation lock.

A lease is a row in ``generation_locks``; the primary key on ``key`` makes
acquisition atomic across processes sharing the database.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Optional
from uuid import uuid4

from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError

from taskcore.core.logger import setup_logger
from taskcore.infrastructure.local.database import GenerationLockORM, get_session_factory
from taskcore.infrastructure.local.system_clock import SystemClock
from taskcore.interfaces.clock import IClock
from taskcore.interfaces.lock_provider import ILockProvider, LockToken
from taskcore.utils.datetime_utils import to_naive_utc

logger = setup_logger(__name__)


class SqliteLockProvider(ILockProvider):
    """Lease rows with expiry; expired rows are taken over."""

    def __init__(self, session_factory=None, clock: Optional[IClock] = None):
        self._session_factory = session_factory or get_session_factory()
        self._clock = clock or SystemClock()

    async def try_acquire(self, key: str, ttl_seconds: float) -> Optional[LockToken]:
        now = self._clock.now()
        token = LockToken(
            key=key,
            owner=uuid4().hex,
            expires_at=now + timedelta(seconds=ttl_seconds),
        )
        async with self._session_factory() as session:
            await session.execute(
                delete(GenerationLockORM).where(
                    GenerationLockORM.key == key,
                    GenerationLockORM.expires_at <= to_naive_utc(now),
                )
            )
            session.add(
                GenerationLockORM(
                    key=key,
                    owner=token.owner,
                    expires_at=to_naive_utc(token.expires_at),
                )
            )
            try:
                await session.commit()
            except IntegrityError:
                await session.rollback()
                logger.debug(f"Lock {key} is held by another worker")
                return None
        return token

    async def release(self, token: LockToken) -> None:
        async with self._session_factory() as session:
            await session.execute(
                delete(GenerationLockORM).where(
                    GenerationLockORM.key == token.key,
                    GenerationLockORM.owner == token.owner,
                )
            )
            await session.commit()
