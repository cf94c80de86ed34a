"""
FastAPI dependencies wiring the store into the services.
Tests override `get_store` to run the same routes against another backend.
"""

from fastapi import Depends

from eventreg.core.config import get_settings
from eventreg.db.session import get_session_factory
from eventreg.infrastructure.sql_store import SqlAlchemyStore
from eventreg.services.interfaces.store import RegistrationStore
from eventreg.services.registration_service import RegistrationService


def get_store() -> RegistrationStore:
    return SqlAlchemyStore(get_session_factory())


def get_registration_service(store: RegistrationStore = Depends(get_store)) -> RegistrationService:
    return RegistrationService(store, timeout=get_settings().REGISTRATION_TIMEOUT_SECONDS)
