"""
Dependency injection for API endpoints.

This module provides FastAPI dependencies that inject the infrastructure
implementations selected by configuration.
"""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Header, HTTPException, status

from taskcore.core.config import Settings, get_settings
from taskcore.core.exceptions import AuthorizationError
from taskcore.interfaces.auth_provider import IAuthProvider, User
from taskcore.interfaces.clock import IClock
from taskcore.interfaces.lock_provider import ILockProvider
from taskcore.interfaces.permission_repository import IPermissionRepository
from taskcore.interfaces.project_repository import IProjectRepository
from taskcore.interfaces.task_repository import ITaskRepository


# ===========================================
# Repository Dependencies
# ===========================================


@lru_cache()
def get_task_repository() -> ITaskRepository:
    """Get task repository instance."""
    from taskcore.infrastructure.local.task_repository import SqliteTaskRepository

    return SqliteTaskRepository()


@lru_cache()
def get_project_repository() -> IProjectRepository:
    """Get project repository instance."""
    from taskcore.infrastructure.local.project_repository import SqliteProjectRepository

    return SqliteProjectRepository()


@lru_cache()
def get_permission_repository() -> IPermissionRepository:
    """Get permission repository instance."""
    from taskcore.infrastructure.local.permission_repository import SqlitePermissionRepository

    return SqlitePermissionRepository()


# ===========================================
# Provider Dependencies
# ===========================================


@lru_cache()
def get_clock() -> IClock:
    """Get clock instance."""
    from taskcore.infrastructure.local.system_clock import SystemClock

    return SystemClock()


@lru_cache()
def get_lock_provider() -> ILockProvider:
    """Get the generation lock provider (shared for the process lifetime)."""
    settings = get_settings()
    if settings.GENERATION_LOCK_PROVIDER == "database":
        from taskcore.infrastructure.local.sqlite_lock_provider import SqliteLockProvider

        return SqliteLockProvider(clock=get_clock())

    from taskcore.infrastructure.local.memory_lock_provider import InMemoryLockProvider

    return InMemoryLockProvider(clock=get_clock())


@lru_cache()
def get_auth_provider() -> IAuthProvider:
    """Get auth provider instance."""
    settings = get_settings()
    from taskcore.infrastructure.local.mock_auth import MockAuthProvider

    return MockAuthProvider(enabled=True, default_timezone=settings.DEFAULT_TIMEZONE)


# ===========================================
# Authentication
# ===========================================


async def get_current_user(
    authorization: Annotated[str | None, Header()] = None,
    auth_provider: IAuthProvider = Depends(get_auth_provider),
) -> User:
    """
    Get current authenticated user.

    In mock mode the bearer token is the user ID.
    """
    if not auth_provider.is_enabled():
        # Mock user for development
        return User(id="dev_user", email="dev@example.com", display_name="Developer")

    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header required",
        )

    # Extract token from "Bearer <token>"
    try:
        scheme, token = authorization.split()
        if scheme.lower() != "bearer":
            raise ValueError("Invalid scheme")
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization header format",
        )

    try:
        return await auth_provider.verify_token(token)
    except AuthorizationError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.message,
        )


# ===========================================
# Type Aliases for Dependency Injection
# ===========================================

AppSettings = Annotated[Settings, Depends(get_settings)]
TaskRepo = Annotated[ITaskRepository, Depends(get_task_repository)]
ProjectRepo = Annotated[IProjectRepository, Depends(get_project_repository)]
PermissionRepo = Annotated[IPermissionRepository, Depends(get_permission_repository)]
LockProvider = Annotated[ILockProvider, Depends(get_lock_provider)]
Clock = Annotated[IClock, Depends(get_clock)]
CurrentUser = Annotated[User, Depends(get_current_user)]
