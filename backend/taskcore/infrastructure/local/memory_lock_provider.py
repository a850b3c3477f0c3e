"""
In-process implementation of the generation lock.

Valid for a single worker process; use SqliteLockProvider when several
processes share one database.
"""

from __future__ import annotations

import asyncio
from datetime import timedelta
from typing import Optional
from uuid import uuid4

from taskcore.interfaces.clock import IClock
from taskcore.interfaces.lock_provider import ILockProvider, LockToken
from taskcore.infrastructure.local.system_clock import SystemClock


class InMemoryLockProvider(ILockProvider):
    """Keyed leases held in a dict, guarded by an asyncio lock."""

    def __init__(self, clock: Optional[IClock] = None):
        self._clock = clock or SystemClock()
        self._guard = asyncio.Lock()
        self._leases: dict[str, LockToken] = {}

    async def try_acquire(self, key: str, ttl_seconds: float) -> Optional[LockToken]:
        async with self._guard:
            now = self._clock.now()
            current = self._leases.get(key)
            if current is not None and current.expires_at > now:
                return None
            token = LockToken(
                key=key,
                owner=uuid4().hex,
                expires_at=now + timedelta(seconds=ttl_seconds),
            )
            self._leases[key] = token
            return token

    async def release(self, token: LockToken) -> None:
        async with self._guard:
            if self._leases.get(token.key) == token:
                del self._leases[token.key]

    def is_held(self, key: str) -> bool:
        """True while a live lease exists for ``key``."""
        current = self._leases.get(key)
        return current is not None and current.expires_at > self._clock.now()
