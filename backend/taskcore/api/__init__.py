"""API routers."""

from taskcore.api import tasks

__all__ = [
    "tasks",
]
