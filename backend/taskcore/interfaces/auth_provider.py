"""
Authentication provider interface.

Resolves a bearer token to the calling user. The user's timezone drives every
day-relative computation in the engine.
"""

from abc import ABC, abstractmethod
from typing import Optional

from pydantic import BaseModel


class User(BaseModel):
    """Authenticated user."""

    id: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    timezone: str = "UTC"
    language: str = "en"


class IAuthProvider(ABC):
    """Abstract interface for authentication."""

    @abstractmethod
    async def verify_token(self, token: str) -> User:
        """
        Verify a bearer token.

        Args:
            token: Raw token from the Authorization header

        Returns:
            Authenticated user

        Raises:
            AuthorizationError: If the token is invalid
        """
        pass

    @abstractmethod
    async def get_user(self, user_id: str) -> Optional[User]:
        """Get user by ID."""
        pass

    @abstractmethod
    def is_enabled(self) -> bool:
        """Check if authentication is enforced."""
        pass
