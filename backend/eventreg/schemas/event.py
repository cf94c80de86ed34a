"""
Pydantic schemas for event-related request/response validation.
"""

from datetime import datetime, timezone
from pydantic import BaseModel, Field, field_validator

from eventreg.schemas.user import UserResponse


class EventCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    date: datetime
    location: str = Field(..., min_length=1, max_length=255)
    capacity: int = Field(..., gt=0, le=1000)

    @field_validator("date")
    @classmethod
    def assume_utc(cls, value: datetime) -> datetime:
        # Naive timestamps are taken as UTC
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class EventResponse(BaseModel):
    id: int
    title: str
    date: datetime
    location: str
    capacity: int
    created_at: datetime

    model_config = {"from_attributes": True}


class EventDetailResponse(EventResponse):
    registrations: list[UserResponse]


class EventStatsResponse(BaseModel):
    total_registrations: int
    remaining_capacity: int
    capacity_used_percentage: str
