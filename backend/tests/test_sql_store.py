"""
Tests for the SQLAlchemy store: locking, constraint classification and the
listing order, run against SQLite with BEGIN IMMEDIATE transactions.
"""

import asyncio
from datetime import datetime, timezone

import pytest
from sqlalchemy.exc import IntegrityError

from eventreg.core.exceptions import ConflictError, ConflictReason, InternalError, NotFoundError, Resource
from eventreg.infrastructure.sql_store import classify_integrity_error
from eventreg.models import Registration
from eventreg.services.event_service import get_event, list_upcoming_events
from eventreg.services.interfaces.store import DuplicateEmail, DuplicateRegistration, MissingReference
from eventreg.services.registration_service import RegistrationService


@pytest.mark.asyncio
async def test_concurrent_registrations_respect_capacity(sql_store, add_event, add_users):
    event = await add_event(sql_store, capacity=4)
    users = await add_users(sql_store, count=12)
    service = RegistrationService(sql_store)

    results = await asyncio.gather(
        *(service.register(event.id, u.id) for u in users),
        return_exceptions=True,
    )

    admitted = [r for r in results if isinstance(r, Registration)]
    full = [
        r for r in results
        if isinstance(r, ConflictError) and r.reason == ConflictReason.EVENT_FULL
    ]
    assert len(admitted) == 4
    assert len(full) == 8
    assert (await service.stats(event.id)).total_registrations == 4


@pytest.mark.asyncio
async def test_unique_constraint_decides_duplicates(sql_store, add_event, add_users):
    event = await add_event(sql_store)
    [user] = await add_users(sql_store)

    async with sql_store.transaction() as tx:
        await tx.add_registration(event.id, user.id)

    with pytest.raises(DuplicateRegistration):
        async with sql_store.transaction() as tx:
            await tx.add_registration(event.id, user.id)


@pytest.mark.asyncio
async def test_foreign_key_reports_missing_user(sql_store, add_event):
    event = await add_event(sql_store)

    with pytest.raises(MissingReference):
        async with sql_store.transaction() as tx:
            await tx.add_registration(event.id, 12345)


@pytest.mark.asyncio
async def test_register_missing_user_maps_to_not_found(sql_store, add_event):
    event = await add_event(sql_store)

    with pytest.raises(NotFoundError) as exc_info:
        await RegistrationService(sql_store).register(event.id, 12345)

    assert exc_info.value.resource == Resource.USER


@pytest.mark.asyncio
async def test_duplicate_email(sql_store):
    async with sql_store.transaction() as tx:
        await tx.add_user(name="Ada", email="ada@example.com")

    with pytest.raises(DuplicateEmail):
        async with sql_store.transaction() as tx:
            await tx.add_user(name="Ada Again", email="ada@example.com")


@pytest.mark.asyncio
async def test_rejected_transaction_writes_nothing(sql_store, add_event, add_users):
    event = await add_event(sql_store)
    [user] = await add_users(sql_store)

    with pytest.raises(RuntimeError):
        async with sql_store.transaction() as tx:
            await tx.add_registration(event.id, user.id)
            raise RuntimeError("abort")

    async with sql_store.transaction() as tx:
        assert await tx.count_registrations(event.id) == 0


@pytest.mark.asyncio
async def test_upcoming_events_order_by_date_then_location(sql_store, add_event):
    for date, location in [
        (datetime(2025, 6, 1, tzinfo=timezone.utc), "Berlin"),
        (datetime(2025, 5, 1, tzinfo=timezone.utc), "Austin"),
        (datetime(2025, 5, 1, tzinfo=timezone.utc), "Boston"),
        (datetime(2024, 12, 31, tzinfo=timezone.utc), "Already Over"),
    ]:
        await add_event(sql_store, date=date, location=location)

    events = await list_upcoming_events(sql_store, now=datetime(2025, 1, 1, tzinfo=timezone.utc))

    assert [e.location for e in events] == ["Austin", "Boston", "Berlin"]
    assert all(e.date.tzinfo is not None for e in events)


@pytest.mark.asyncio
async def test_event_detail_joins_registrants(sql_store, add_event, add_users):
    event = await add_event(sql_store)
    users = await add_users(sql_store, count=3)
    service = RegistrationService(sql_store)
    for user in reversed(users):
        await service.register(event.id, user.id)

    loaded, registrants = await get_event(sql_store, event.id)

    assert loaded.id == event.id
    assert [u.id for u in registrants] == [u.id for u in reversed(users)]


@pytest.mark.asyncio
async def test_reads_proceed_while_admission_holds_the_lock(sql_store, add_event, add_users):
    event = await add_event(sql_store, capacity=2, location="Lisbon")
    [user] = await add_users(sql_store)
    service = RegistrationService(sql_store)
    await service.register(event.id, user.id)

    async with sql_store.transaction() as tx:
        await tx.lock_event(event.id)

        stats = await service.stats(event.id)
        loaded, registrants = await get_event(sql_store, event.id)
        upcoming = await list_upcoming_events(sql_store)

    assert stats.total_registrations == 1
    assert [u.id for u in registrants] == [user.id]
    assert [e.id for e in upcoming] == [loaded.id]


@pytest.mark.asyncio
async def test_timeout_rolls_back_and_releases_event_lock(sql_store, add_event, add_users):
    event = await add_event(sql_store)
    [user] = await add_users(sql_store)

    async with sql_store.transaction() as tx:
        await tx.lock_event(event.id)
        with pytest.raises(InternalError):
            await RegistrationService(sql_store, timeout=0.3).register(event.id, user.id)

    registration = await RegistrationService(sql_store).register(event.id, user.id)
    assert registration.user_id == user.id
    assert (await RegistrationService(sql_store).stats(event.id)).total_registrations == 1


class _FakeDriverError(Exception):
    def __init__(self, message, sqlstate=None):
        super().__init__(message)
        self.sqlstate = sqlstate


@pytest.mark.parametrize(
    "orig, expected",
    [
        (_FakeDriverError("duplicate key", sqlstate="23505"), "unique"),
        (_FakeDriverError("violates foreign key", sqlstate="23503"), "foreign_key"),
        (_FakeDriverError("UNIQUE constraint failed: registrations.event_id"), "unique"),
        (_FakeDriverError("FOREIGN KEY constraint failed"), "foreign_key"),
        (_FakeDriverError("CHECK constraint failed", sqlstate="23514"), None),
    ],
)
def test_classify_integrity_error(orig, expected):
    assert classify_integrity_error(IntegrityError("INSERT ...", {}, orig)) == expected
