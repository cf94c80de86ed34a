from eventreg.schemas.user import UserCreate, UserResponse, UserCreateResponse
from eventreg.schemas.event import (
    EventCreate, EventResponse, EventDetailResponse, EventStatsResponse,
)
from eventreg.schemas.registration import (
    RegistrationRequest, RegistrationResponse, RegistrationCancelResponse,
)

__all__ = [
    "UserCreate", "UserResponse", "UserCreateResponse",
    "EventCreate", "EventResponse", "EventDetailResponse", "EventStatsResponse",
    "RegistrationRequest", "RegistrationResponse", "RegistrationCancelResponse",
]
