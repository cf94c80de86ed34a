"""
SQLAlchemy implementation of the registration store.

Each `transaction()` opens its own AsyncSession, so concurrent requests hold
separate connections and the event row lock is the only thing they share.
"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from eventreg.db.session import BEGIN_IMMEDIATE
from eventreg.models import Event, Registration, User
from eventreg.services.interfaces.store import (
    DuplicateEmail,
    DuplicateRegistration,
    MissingReference,
    RegistrationStore,
    StoreError,
    UnitOfWork,
)

# PostgreSQL SQLSTATE codes
UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"


def classify_integrity_error(exc: IntegrityError) -> Optional[str]:
    """
    Tell a unique violation from a foreign-key violation.

    Returns "unique", "foreign_key" or None. asyncpg exposes the SQLSTATE;
    SQLite only has the message text.
    """
    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code == UNIQUE_VIOLATION:
        return "unique"
    if code == FOREIGN_KEY_VIOLATION:
        return "foreign_key"

    message = str(orig)
    if "UNIQUE constraint failed" in message:
        return "unique"
    if "FOREIGN KEY constraint failed" in message:
        return "foreign_key"
    return None


class SqlAlchemyUnitOfWork(UnitOfWork):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def lock_event(self, event_id: int) -> Optional[Event]:
        # First statement of the admission unit; on SQLite this opens it with
        # BEGIN IMMEDIATE, elsewhere the option is inert
        await self.session.connection(execution_options={BEGIN_IMMEDIATE: True})
        result = await self.session.execute(
            select(Event).where(Event.id == event_id).with_for_update()
        )
        return result.scalar_one_or_none()

    async def get_event(self, event_id: int) -> Optional[Event]:
        result = await self.session.execute(select(Event).where(Event.id == event_id))
        return result.scalar_one_or_none()

    async def count_registrations(self, event_id: int) -> int:
        result = await self.session.execute(
            select(func.count()).select_from(Registration).where(Registration.event_id == event_id)
        )
        return result.scalar_one()

    async def add_registration(self, event_id: int, user_id: int) -> Registration:
        registration = Registration(event_id=event_id, user_id=user_id)
        self.session.add(registration)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            kind = classify_integrity_error(exc)
            if kind == "unique":
                raise DuplicateRegistration(f"user {user_id} already registered for event {event_id}") from exc
            if kind == "foreign_key":
                raise MissingReference(f"user {user_id} does not exist") from exc
            raise StoreError(str(exc)) from exc
        return registration

    async def remove_registration(self, event_id: int, user_id: int) -> bool:
        result = await self.session.execute(
            delete(Registration).where(
                Registration.event_id == event_id,
                Registration.user_id == user_id,
            )
        )
        return result.rowcount > 0

    async def list_registrants(self, event_id: int) -> list[User]:
        result = await self.session.execute(
            select(User)
            .join(Registration, Registration.user_id == User.id)
            .where(Registration.event_id == event_id)
            .order_by(Registration.id.asc())
        )
        return list(result.scalars().all())

    async def list_events_after(self, instant: datetime) -> list[Event]:
        # Uses ix_events_date_location for both the filter and the ordering
        result = await self.session.execute(
            select(Event)
            .where(Event.date > instant)
            .order_by(Event.date.asc(), Event.location.asc())
        )
        return list(result.scalars().all())

    async def add_event(self, title: str, date: datetime, location: str, capacity: int) -> Event:
        event = Event(title=title, date=date, location=location, capacity=capacity)
        self.session.add(event)
        await self.session.flush()
        return event

    async def add_user(self, name: str, email: str) -> User:
        user = User(name=name, email=email)
        self.session.add(user)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            if classify_integrity_error(exc) == "unique":
                raise DuplicateEmail(f"email {email} already registered") from exc
            raise StoreError(str(exc)) from exc
        return user


class SqlAlchemyStore(RegistrationStore):
    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[SqlAlchemyUnitOfWork]:
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    yield SqlAlchemyUnitOfWork(session)
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc
