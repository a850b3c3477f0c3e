"""
Clock interface.

Services read "now" through this seam so day boundaries can be pinned in tests.
"""

from abc import ABC, abstractmethod
from datetime import datetime


class IClock(ABC):
    """Source of the current instant."""

    @abstractmethod
    def now(self) -> datetime:
        """Return the current time as a timezone-aware UTC datetime."""
        pass
