"""
Registration endpoints: admission and cancellation.
"""

from fastapi import APIRouter, Depends, status

from eventreg.api.deps import get_registration_service
from eventreg.schemas.registration import (
    RegistrationRequest, RegistrationResponse, RegistrationCancelResponse,
)
from eventreg.services.registration_service import RegistrationService

router = APIRouter(prefix="/events", tags=["Registrations"])


@router.post(
    "/{event_id}/register",
    response_model=RegistrationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def register_for_event(
    event_id: int,
    request: RegistrationRequest,
    service: RegistrationService = Depends(get_registration_service),
):
    """
    Register a user for an event.

    The event row is locked for the whole decision, so concurrent requests
    for the same event are admitted one at a time and never overbook it.
    Responds 404 (event or user missing), 400 (event in the past) or
    409 (event full, already registered).
    """
    return await service.register(event_id, request.user_id)


@router.delete("/{event_id}/register", response_model=RegistrationCancelResponse)
async def cancel_registration(
    event_id: int,
    request: RegistrationRequest,
    service: RegistrationService = Depends(get_registration_service),
):
    await service.cancel(event_id, request.user_id)
    return RegistrationCancelResponse(
        message="Registration cancelled successfully",
        event_id=event_id,
        user_id=request.user_id,
    )
