"""
Custom exceptions for the application.
"""

from typing import Any, Optional


class TaskcoreError(Exception):
    """Base exception for taskcore."""

    def __init__(self, message: str, details: Optional[Any] = None):
        self.message = message
        self.details = details
        super().__init__(message)


class NotFoundError(TaskcoreError):
    """Resource not found."""

    pass


class DuplicateError(TaskcoreError):
    """Duplicate resource detected."""

    pass


class OccurrenceConflictError(DuplicateError):
    """An occurrence already exists for this template and due date."""

    pass


class ValidationError(TaskcoreError):
    """Validation error."""

    pass


class InvalidRecurrenceRuleError(ValidationError):
    """Recurrence rule fields are out of range or inconsistent."""

    pass


class InvalidTimezoneError(ValidationError):
    """Timezone identifier is not a known IANA zone."""

    pass


class AuthorizationError(TaskcoreError):
    """Authorization failed."""

    pass


class ForbiddenError(AuthorizationError):
    """Forbidden operation (authorization denied)."""

    pass


class InfrastructureError(TaskcoreError):
    """Infrastructure-related error (DB, external services, etc.)."""

    pass


class PermissionStoreUnavailableError(InfrastructureError):
    """Permission grants could not be read."""

    pass


class LockUnavailableError(TaskcoreError):
    """Generation lock is held elsewhere or could not be acquired in time."""

    pass


class BusinessLogicError(TaskcoreError):
    """Business logic constraint violation."""

    pass
