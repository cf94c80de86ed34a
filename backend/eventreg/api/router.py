"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from eventreg.api.routes import users, events, registrations

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(users.router)
api_router.include_router(events.router)
api_router.include_router(registrations.router)
