"""
Wall-clock implementation of IClock.
"""

from datetime import datetime

from taskcore.interfaces.clock import IClock
from taskcore.utils.datetime_utils import now_utc


class SystemClock(IClock):
    """Reads the system clock in UTC."""

    def now(self) -> datetime:
        return now_utc()
