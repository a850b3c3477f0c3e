"""
Generation lock interface.

Serializes occurrence generation per user across concurrent requests.
Implementations: in-memory (single process), SQLite table (shared database)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class LockToken:
    """Proof of lock ownership, required to release."""

    key: str
    owner: str
    expires_at: datetime


class ILockProvider(ABC):
    """Abstract interface for short-lived keyed locks."""

    @abstractmethod
    async def try_acquire(self, key: str, ttl_seconds: float) -> Optional[LockToken]:
        """
        Try to take the lock without blocking.

        Args:
            key: Lock key, e.g. "generate_recurring:<user_id>"
            ttl_seconds: Lease length; an unreleased lock expires after this

        Returns:
            Token if acquired, None if another holder has a live lease
        """
        pass

    @abstractmethod
    async def release(self, token: LockToken) -> None:
        """
        Release a held lock.

        Releasing a lock that expired or was taken over is a no-op.
        """
        pass
