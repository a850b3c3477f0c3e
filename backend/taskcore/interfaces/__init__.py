"""Abstract interfaces for infrastructure abstraction."""

from taskcore.interfaces.auth_provider import IAuthProvider, User
from taskcore.interfaces.clock import IClock
from taskcore.interfaces.lock_provider import ILockProvider, LockToken
from taskcore.interfaces.permission_repository import IPermissionRepository
from taskcore.interfaces.project_repository import IProjectRepository
from taskcore.interfaces.task_repository import ITaskRepository

__all__ = [
    "ITaskRepository",
    "IProjectRepository",
    "IPermissionRepository",
    "ILockProvider",
    "LockToken",
    "IClock",
    "IAuthProvider",
    "User",
]
