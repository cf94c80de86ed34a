"""
Registration store interface.
Lets the admission controller run against PostgreSQL, SQLite or memory
without changing its decision logic.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from datetime import datetime
from typing import Optional

from eventreg.models import Event, Registration, User


class StoreError(Exception):
    """Generic storage fault: connection loss, deadlock, unexpected constraint."""


class ConstraintViolation(StoreError):
    pass


class DuplicateRegistration(ConstraintViolation):
    """The (event, user) pair is already registered."""


class MissingReference(ConstraintViolation):
    """A foreign key points at a row that does not exist."""


class DuplicateEmail(ConstraintViolation):
    """Another user already owns this email."""


class UnitOfWork(ABC):
    """
    Operations available inside one store transaction.

    Everything done through a unit of work commits or rolls back together
    when the enclosing `RegistrationStore.transaction()` block exits.
    """

    @abstractmethod
    async def lock_event(self, event_id: int) -> Optional[Event]:
        """
        Read an event and hold an exclusive lock on it until the transaction ends.

        Returns:
            The event, or None if it does not exist
        """

    @abstractmethod
    async def get_event(self, event_id: int) -> Optional[Event]:
        """Plain read, no lock."""

    @abstractmethod
    async def count_registrations(self, event_id: int) -> int:
        pass

    @abstractmethod
    async def add_registration(self, event_id: int, user_id: int) -> Registration:
        """
        Insert a registration row.

        Raises:
            DuplicateRegistration: the pair already exists
            MissingReference: the user (or event) does not exist
            StoreError: any other failure
        """

    @abstractmethod
    async def remove_registration(self, event_id: int, user_id: int) -> bool:
        """
        Delete the registration for the pair.

        Returns:
            True if a row was deleted, False if none matched
        """

    @abstractmethod
    async def list_registrants(self, event_id: int) -> list[User]:
        """Users registered for the event, in registration order."""

    @abstractmethod
    async def list_events_after(self, instant: datetime) -> list[Event]:
        """Events strictly after `instant`, ordered by date then location."""

    @abstractmethod
    async def add_event(self, title: str, date: datetime, location: str, capacity: int) -> Event:
        pass

    @abstractmethod
    async def add_user(self, name: str, email: str) -> User:
        """
        Raises:
            DuplicateEmail: the email is already taken
        """


class RegistrationStore(ABC):
    """
    Transactional store the services depend on.

    Implementations:
    - SqlAlchemyStore: PostgreSQL row locks (SELECT ... FOR UPDATE) or SQLite BEGIN IMMEDIATE
    - InMemoryStore: per-event asyncio locks, same contract, for tests and local runs
    """

    @abstractmethod
    def transaction(self) -> AbstractAsyncContextManager[UnitOfWork]:
        """
        Open a unit of work.

        Commits when the block exits normally. Rolls back and releases every
        lock when the block raises, including on task cancellation.
        """
