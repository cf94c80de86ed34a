"""
User endpoints.
"""

from fastapi import APIRouter, Depends, status

from eventreg.api.deps import get_store
from eventreg.schemas.user import UserCreate, UserCreateResponse
from eventreg.services.interfaces.store import RegistrationStore
from eventreg.services.user_service import create_user

router = APIRouter(prefix="/users", tags=["Users"])


@router.post("/", response_model=UserCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_user_endpoint(
    user_data: UserCreate,
    store: RegistrationStore = Depends(get_store),
):
    return await create_user(store, user_data)
