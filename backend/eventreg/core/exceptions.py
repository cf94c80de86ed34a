"""
Domain error taxonomy surfaced by the service layer.

Services raise these instead of HTTP exceptions; the API layer maps each
category to a status code (see eventreg.api.errors).
"""

from enum import Enum
from typing import Optional


class ErrorCategory(str, Enum):
    NOT_FOUND = "not_found"
    INVALID_STATE = "invalid_state"
    CONFLICT = "conflict"
    INTERNAL = "internal"


class Resource(str, Enum):
    EVENT = "event"
    USER = "user"
    REGISTRATION = "registration"


class InvalidStateReason(str, Enum):
    EVENT_EXPIRED = "event_expired"


class ConflictReason(str, Enum):
    EVENT_FULL = "event_full"
    ALREADY_REGISTERED = "already_registered"
    EMAIL_TAKEN = "email_taken"


class AppError(Exception):
    """Base application error with a category and a machine-readable reason."""

    category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(self, message: str, reason: str, details: Optional[dict] = None):
        self.message = message
        self.reason = reason
        self.details = details or {}
        super().__init__(message)


class NotFoundError(AppError):
    category = ErrorCategory.NOT_FOUND

    def __init__(self, resource: Resource, identifier=None):
        self.resource = resource
        message = f"{resource.value.capitalize()} not found"
        if identifier is not None:
            message = f"{resource.value.capitalize()} {identifier} not found"
        super().__init__(message, reason=f"{resource.value}_not_found")


class InvalidStateError(AppError):
    category = ErrorCategory.INVALID_STATE

    def __init__(self, reason: InvalidStateReason, message: str):
        super().__init__(message, reason=reason.value)


class ConflictError(AppError):
    category = ErrorCategory.CONFLICT

    def __init__(self, reason: ConflictReason, message: str):
        super().__init__(message, reason=reason.value)


class InternalError(AppError):
    """Storage or transport fault. The transaction has already been rolled back."""

    category = ErrorCategory.INTERNAL

    def __init__(self, message: str = "Registration could not be evaluated", retry_after: int = 5):
        self.retry_after = retry_after
        super().__init__(message, reason="internal")
