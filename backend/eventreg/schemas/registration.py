"""
Pydantic schemas for registration requests and responses.
"""

from datetime import datetime
from pydantic import BaseModel, Field


class RegistrationRequest(BaseModel):
    user_id: int = Field(..., gt=0)


class RegistrationResponse(BaseModel):
    id: int
    event_id: int
    user_id: int
    created_at: datetime

    model_config = {"from_attributes": True}


class RegistrationCancelResponse(BaseModel):
    message: str
    event_id: int
    user_id: int
