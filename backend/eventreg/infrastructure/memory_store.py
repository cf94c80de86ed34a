"""
In-memory registration store.

Implements the same locking contract as the SQL store: `lock_event` takes a
per-event asyncio.Lock held until the transaction ends, writes are staged
and only become visible on commit, and the (event, user) uniqueness and
foreign-key checks raise the same store errors.
"""

import asyncio
import itertools
from collections import defaultdict
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Optional

from eventreg.db.base import utcnow
from eventreg.models import Event, Registration, User
from eventreg.services.interfaces.store import (
    DuplicateEmail,
    DuplicateRegistration,
    MissingReference,
    RegistrationStore,
    UnitOfWork,
)


class InMemoryUnitOfWork(UnitOfWork):
    def __init__(self, store: "InMemoryStore"):
        self.store = store
        self.held_locks: list[asyncio.Lock] = []
        self.added_registrations: dict[tuple[int, int], Registration] = {}
        self.removed_registrations: set[tuple[int, int]] = set()
        self.added_events: dict[int, Event] = {}
        self.added_users: dict[int, User] = {}

    async def lock_event(self, event_id: int) -> Optional[Event]:
        # Events are never deleted, so a missing id needs no lock
        if event_id not in self.store.events and event_id not in self.added_events:
            return None
        lock = self.store.event_locks[event_id]
        if lock not in self.held_locks:
            await lock.acquire()
            self.held_locks.append(lock)
        return await self.get_event(event_id)

    async def get_event(self, event_id: int) -> Optional[Event]:
        await asyncio.sleep(0)
        return self.added_events.get(event_id) or self.store.events.get(event_id)

    def _visible_registrations(self) -> dict[tuple[int, int], Registration]:
        visible = {
            key: registration
            for key, registration in self.store.registrations.items()
            if key not in self.removed_registrations
        }
        visible.update(self.added_registrations)
        return visible

    async def count_registrations(self, event_id: int) -> int:
        # Yield so unlocked callers would interleave here
        await asyncio.sleep(0)
        return sum(1 for event, _ in self._visible_registrations() if event == event_id)

    async def add_registration(self, event_id: int, user_id: int) -> Registration:
        await asyncio.sleep(0)
        key = (event_id, user_id)
        if key in self._visible_registrations():
            raise DuplicateRegistration(f"user {user_id} already registered for event {event_id}")
        if user_id not in self.store.users and user_id not in self.added_users:
            raise MissingReference(f"user {user_id} does not exist")
        if event_id not in self.store.events and event_id not in self.added_events:
            raise MissingReference(f"event {event_id} does not exist")

        now = utcnow()
        registration = Registration(
            id=next(self.store.registration_ids),
            event_id=event_id,
            user_id=user_id,
            created_at=now,
            updated_at=now,
        )
        self.added_registrations[key] = registration
        return registration

    async def remove_registration(self, event_id: int, user_id: int) -> bool:
        await asyncio.sleep(0)
        key = (event_id, user_id)
        if key in self.added_registrations:
            del self.added_registrations[key]
            return True
        if key in self.store.registrations and key not in self.removed_registrations:
            self.removed_registrations.add(key)
            return True
        return False

    async def list_registrants(self, event_id: int) -> list[User]:
        registrations = sorted(
            (r for (event, _), r in self._visible_registrations().items() if event == event_id),
            key=lambda r: r.id,
        )
        users = {**self.store.users, **self.added_users}
        return [users[r.user_id] for r in registrations]

    async def list_events_after(self, instant: datetime) -> list[Event]:
        events = {**self.store.events, **self.added_events}.values()
        return sorted(
            (e for e in events if e.date > instant),
            key=lambda e: (e.date, e.location),
        )

    async def add_event(self, title: str, date: datetime, location: str, capacity: int) -> Event:
        now = utcnow()
        event = Event(
            id=next(self.store.event_ids),
            title=title,
            date=date,
            location=location,
            capacity=capacity,
            created_at=now,
            updated_at=now,
        )
        self.added_events[event.id] = event
        return event

    async def add_user(self, name: str, email: str) -> User:
        taken = {u.email for u in self.store.users.values()}
        taken.update(u.email for u in self.added_users.values())
        if email in taken:
            raise DuplicateEmail(f"email {email} already registered")

        now = utcnow()
        user = User(id=next(self.store.user_ids), name=name, email=email, created_at=now, updated_at=now)
        self.added_users[user.id] = user
        return user

    def commit(self) -> None:
        for key in self.removed_registrations:
            self.store.registrations.pop(key, None)
        self.store.registrations.update(self.added_registrations)
        self.store.events.update(self.added_events)
        self.store.users.update(self.added_users)

    def release(self) -> None:
        while self.held_locks:
            self.held_locks.pop().release()


class InMemoryStore(RegistrationStore):
    def __init__(self):
        self.events: dict[int, Event] = {}
        self.users: dict[int, User] = {}
        self.registrations: dict[tuple[int, int], Registration] = {}
        self.event_locks: defaultdict[int, asyncio.Lock] = defaultdict(asyncio.Lock)
        self.event_ids = itertools.count(1)
        self.user_ids = itertools.count(1)
        self.registration_ids = itertools.count(1)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[InMemoryUnitOfWork]:
        unit = InMemoryUnitOfWork(self)
        try:
            yield unit
            unit.commit()
        finally:
            # Staged writes of a failed unit are simply dropped
            unit.release()
