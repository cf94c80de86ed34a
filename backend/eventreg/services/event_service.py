"""
Event service: creation, detail view and the upcoming listing.
"""

from datetime import datetime
from typing import Optional

from eventreg.core.exceptions import InternalError, NotFoundError, Resource
from eventreg.core.logging import get_logger
from eventreg.db.base import utcnow
from eventreg.models import Event, User
from eventreg.schemas.event import EventCreate
from eventreg.services.interfaces.store import RegistrationStore, StoreError

logger = get_logger(__name__)


async def create_event(store: RegistrationStore, event_data: EventCreate) -> Event:
    try:
        async with store.transaction() as tx:
            event = await tx.add_event(
                title=event_data.title,
                date=event_data.date,
                location=event_data.location,
                capacity=event_data.capacity,
            )
    except StoreError as exc:
        logger.error("event_create_failed", error=str(exc))
        raise InternalError("Event could not be created") from exc

    logger.info("event_created", event_id=event.id, title=event.title, capacity=event.capacity)
    return event


async def get_event(store: RegistrationStore, event_id: int) -> tuple[Event, list[User]]:
    """
    Get an event together with its registered users.
    Both reads share one transaction, so the pair is a consistent snapshot.
    """
    try:
        async with store.transaction() as tx:
            event = await tx.get_event(event_id)
            if event is None:
                raise NotFoundError(Resource.EVENT, event_id)
            registrants = await tx.list_registrants(event_id)
    except StoreError as exc:
        raise InternalError("Event could not be loaded") from exc
    return event, registrants


async def list_upcoming_events(store: RegistrationStore, now: Optional[datetime] = None) -> list[Event]:
    """
    Events dated strictly after `now`, ordered by date then location.
    The ordering is part of the API contract, not a storage default.
    """
    now = now or utcnow()
    try:
        async with store.transaction() as tx:
            return await tx.list_events_after(now)
    except StoreError as exc:
        raise InternalError("Upcoming events could not be listed") from exc
