"""
Service interfaces for dependency inversion.
Allows swapping store implementations without changing business logic.
"""

from .store import (
    RegistrationStore,
    UnitOfWork,
    StoreError,
    ConstraintViolation,
    DuplicateRegistration,
    MissingReference,
    DuplicateEmail,
)

__all__ = [
    'RegistrationStore',
    'UnitOfWork',
    'StoreError',
    'ConstraintViolation',
    'DuplicateRegistration',
    'MissingReference',
    'DuplicateEmail',
]
