"""
Async engine and session factory.

PostgreSQL (asyncpg) is the production target. SQLite (aiosqlite) is
supported for local runs and tests, with foreign keys switched on and the
journal in WAL mode.

On SQLite a transaction opens with a deferred BEGIN unless its connection
carries the `begin_immediate` execution option, which the admission unit of
work sets before locking the event. BEGIN IMMEDIATE takes the database write
lock up front, so admissions serialize the way `SELECT ... FOR UPDATE`
serializes them on PostgreSQL, while readers keep going against the WAL
snapshot. SQLite has no row locks: admissions and other writes serialize
across ALL events, not per event.
"""

from functools import lru_cache

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine

from eventreg.core.config import get_settings

BEGIN_IMMEDIATE = "begin_immediate"


def _enable_sqlite_locking(engine: AsyncEngine) -> None:
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # Take over transaction control from the driver.
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        if conn.get_execution_options().get(BEGIN_IMMEDIATE):
            conn.exec_driver_sql("BEGIN IMMEDIATE")
        else:
            conn.exec_driver_sql("BEGIN")


def build_engine(url: str) -> AsyncEngine:
    """Create an async engine for `url` with the pool settings from config."""
    if url.startswith("sqlite"):
        engine = create_async_engine(url, echo=False)
        _enable_sqlite_locking(engine)
        return engine

    settings = get_settings()
    return create_async_engine(
        url,
        echo=settings.DEBUG,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_recycle=settings.DB_POOL_RECYCLE,
        pool_pre_ping=True,
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    # Rows are handed back to callers after commit; keep them loaded.
    return async_sessionmaker(engine, expire_on_commit=False)


@lru_cache()
def get_engine() -> AsyncEngine:
    return build_engine(get_settings().DATABASE_URL)


@lru_cache()
def get_session_factory() -> async_sessionmaker:
    return build_session_factory(get_engine())


async def dispose_engine() -> None:
    """Close pooled connections on shutdown, if the engine was ever created."""
    if get_engine.cache_info().currsize:
        await get_engine().dispose()
