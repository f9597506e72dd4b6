from __future__ import annotations

from typing import Optional

from .enums import PermissionLevel


class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class AuthenticationError(DomainError):
    """Raised when login credentials are invalid."""


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""


class ForbiddenError(AuthorizationError):
    """Raised when an effective permission level does not satisfy a requirement."""

    def __init__(self, key: str, required: PermissionLevel, actual: Optional[PermissionLevel]):
        self.key = key
        self.required = required
        self.actual = actual
        has = actual.value if actual is not None else "none"
        super().__init__(f"Insufficient permissions for '{key}' (required: {required.value}, has: {has})")


class NotFoundError(DomainError):
    """Raised when a referenced record does not exist."""


class ConflictError(DomainError):
    """Raised on uniqueness violations (duplicate names, overlapping intervals, ...)."""

    def __init__(self, message: str, *, conflicting_id: Optional[int] = None):
        self.conflicting_id = conflicting_id
        super().__init__(message)


class InvalidStateError(DomainError):
    """Raised when an operation does not fit the record's lifecycle state."""


class UnsupportedOperationError(DomainError):
    """Raised for operations that exist in the API but are not implemented."""
