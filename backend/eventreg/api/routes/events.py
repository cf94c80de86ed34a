"""
Event endpoints. The upcoming listing is cached in Redis.
"""

from fastapi import APIRouter, Depends, status

from eventreg.api.deps import get_registration_service, get_store
from eventreg.db.base import utcnow
from eventreg.schemas.event import (
    EventCreate, EventResponse, EventDetailResponse, EventStatsResponse,
)
from eventreg.schemas.user import UserResponse
from eventreg.services.event_service import create_event, get_event, list_upcoming_events
from eventreg.services.cache_service import (
    get_cached_upcoming, get_upcoming_generation, set_cached_upcoming, invalidate_upcoming_cache,
)
from eventreg.services.interfaces.store import RegistrationStore
from eventreg.services.registration_service import RegistrationService
from eventreg.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/events", tags=["Events"])


@router.post("/", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event_endpoint(
    event_data: EventCreate,
    store: RegistrationStore = Depends(get_store),
):
    event = await create_event(store, event_data)
    await invalidate_upcoming_cache()
    return event


# Declared before /{event_id} so "upcoming" is not parsed as an id
@router.get("/upcoming", response_model=list[EventResponse])
async def list_upcoming_events_endpoint(store: RegistrationStore = Depends(get_store)):
    """
    Events after now, ordered by date then location.
    Cached entries are re-filtered so an event that has since started drops out.
    """
    # Read before the query; an event created after this bumps the generation
    generation = await get_upcoming_generation()
    now = utcnow()

    cached = await get_cached_upcoming(generation)
    if cached is not None:
        logger.info("upcoming_events_cache_hit", generation=generation)
        events = [EventResponse.model_validate(e) for e in cached]
        return [e for e in events if e.date > now]

    events = [EventResponse.model_validate(e) for e in await list_upcoming_events(store, now)]
    await set_cached_upcoming([e.model_dump(mode="json") for e in events], generation)
    return events


@router.get("/{event_id}", response_model=EventDetailResponse)
async def get_event_endpoint(
    event_id: int,
    store: RegistrationStore = Depends(get_store),
):
    """Event details with the users registered for it. Never cached."""
    event, registrants = await get_event(store, event_id)
    return EventDetailResponse(
        **EventResponse.model_validate(event).model_dump(),
        registrations=[UserResponse.model_validate(u) for u in registrants],
    )


@router.get("/{event_id}/stats", response_model=EventStatsResponse)
async def get_event_stats_endpoint(
    event_id: int,
    service: RegistrationService = Depends(get_registration_service),
):
    stats = await service.stats(event_id)
    return EventStatsResponse(
        total_registrations=stats.total_registrations,
        remaining_capacity=stats.remaining_capacity,
        capacity_used_percentage=stats.capacity_used_percentage,
    )
