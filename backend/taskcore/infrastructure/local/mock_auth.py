"""
Mock authentication provider for local development.
"""

from typing import Optional

from taskcore.interfaces.auth_provider import IAuthProvider, User


class MockAuthProvider(IAuthProvider):
    """Mock auth provider: the bearer token is the user ID."""

    def __init__(self, enabled: bool = False, default_timezone: str = "UTC"):
        """
        Initialize mock auth provider.

        Args:
            enabled: Whether authentication is required
            default_timezone: Timezone assigned to users not registered below
        """
        self._enabled = enabled
        self._default_timezone = default_timezone
        self._mock_users = {
            "dev_user": User(
                id="dev_user",
                email="dev@example.com",
                display_name="Developer",
                timezone=default_timezone,
            ),
            "test_user": User(
                id="test_user",
                email="test@example.com",
                display_name="Test User",
                timezone=default_timezone,
            ),
        }

    def register(self, user: User) -> None:
        """Add or replace a known user (e.g. to give them a timezone)."""
        self._mock_users[user.id] = user

    async def verify_token(self, token: str) -> User:
        """
        Verify token - in mock mode, token is treated as user_id.

        Args:
            token: User ID (in mock mode)

        Returns:
            Mock user
        """
        if token in self._mock_users:
            return self._mock_users[token]
        # Default user for any token
        if "@" in token:
            return User(id=token, email=token, display_name=token, timezone=self._default_timezone)
        return User(
            id=token,
            email=f"{token}@example.com",
            display_name=token,
            timezone=self._default_timezone,
        )

    async def get_user(self, user_id: str) -> Optional[User]:
        """Get user by ID."""
        return self._mock_users.get(user_id)

    def is_enabled(self) -> bool:
        """Check if authentication is enabled."""
        return self._enabled
