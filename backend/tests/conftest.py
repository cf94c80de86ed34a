"""
Pytest fixtures for stores, services and the HTTP client.

Each test gets a fresh SQLite database file, so the SQL store runs with real
constraints and real transaction locking. Redis is disabled unless a test
swaps in fakeredis.
"""

import os

os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("ENVIRONMENT", "test")

from datetime import datetime, timezone, timedelta
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncEngine

from eventreg.main import app
from eventreg.api.deps import get_store
from eventreg.db.base import Base
from eventreg.db.session import build_engine, build_session_factory
from eventreg.infrastructure import InMemoryStore, SqlAlchemyStore


def days_from_now(days: float) -> datetime:
    return datetime.now(timezone.utc) + timedelta(days=days)


@pytest_asyncio.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Create tables in a throwaway SQLite file, dispose afterwards."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'registration.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def sql_store(engine: AsyncEngine) -> SqlAlchemyStore:
    return SqlAlchemyStore(build_session_factory(engine))


@pytest.fixture
def memory_store() -> InMemoryStore:
    return InMemoryStore()


@pytest_asyncio.fixture
async def client(sql_store: SqlAlchemyStore) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client whose routes use the per-test SQL store."""
    app.dependency_overrides[get_store] = lambda: sql_store

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def add_event():
    """Insert an event straight through a store, bypassing API validation."""

    async def _add(store, *, capacity=10, date=None, title="Test Concert", location="Test Venue"):
        async with store.transaction() as tx:
            return await tx.add_event(
                title=title,
                date=date or days_from_now(30),
                location=location,
                capacity=capacity,
            )

    return _add


@pytest.fixture
def add_users():
    """Insert `count` users through a store and return them."""

    async def _add(store, count=1, prefix="user"):
        async with store.transaction() as tx:
            return [
                await tx.add_user(name=f"{prefix} {i}", email=f"{prefix}{i}@example.com")
                for i in range(count)
            ]

    return _add
