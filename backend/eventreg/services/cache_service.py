"""
Redis caching service for the upcoming-events listing.

CACHING STRATEGY
================

What we cache:
  - The upcoming-events listing, JSON-serialized, under a key stamped with
    the current listing generation (events:upcoming:<generation>)

Invalidation strategy:
  - On event creation: INCR the generation and delete the old key
  - Readers take the generation BEFORE querying the database and write
    back under that generation. A listing read that raced an event
    creation lands under a key nobody reads any more
  - TTL-based expiry as safety net
  - Registrations and cancellations do not touch the listing, so they
    never invalidate it

Staleness:
  - An event can pass its date while the listing sits in the cache, so
    callers re-filter cached entries against the current time

Why NOT cache stats or event detail:
  - Both depend on the live registration count, which changes on every
    admission; a cached count is stale the instant another transaction commits
"""

import json
from typing import Optional

import redis.asyncio as redis
from eventreg.core.config import get_settings
from eventreg.core.logging import get_logger
from eventreg.core.metrics import record_cache_operation

logger = get_logger(__name__)
settings = get_settings()

UPCOMING_EVENTS_PREFIX = "events:upcoming"
UPCOMING_GENERATION_KEY = "events:upcoming:generation"

_redis_client: Optional[redis.Redis] = None


def upcoming_key(generation: int) -> str:
    return f"{UPCOMING_EVENTS_PREFIX}:{generation}"



async def get_redis() -> Optional[redis.Redis]:
    """Get or create Redis connection. Returns None if Redis is disabled or unreachable."""
    global _redis_client

    if not settings.REDIS_ENABLED:
        return None

    if _redis_client is None:
        client = redis.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
            retry_on_timeout=True,
        )
        try:
            await client.ping()
        except redis.RedisError as e:
            logger.error("redis_connection_failed", error=str(e))
            await client.aclose()
            return None
        logger.info("redis_connected", url=settings.REDIS_URL)
        _redis_client = client

    return _redis_client


async def close_redis() -> None:
    """Close Redis connection on shutdown."""
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None


async def get_upcoming_generation() -> Optional[int]:
    """Current listing generation, or None when the cache is unavailable."""
    client = await get_redis()
    if not client:
        return None

    try:
        value = await client.get(UPCOMING_GENERATION_KEY)
    except redis.RedisError as e:
        logger.error("cache_get_error", key=UPCOMING_GENERATION_KEY, error=str(e))
        return None
    return int(value) if value is not None else 0


async def get_cached_upcoming(generation: Optional[int]) -> Optional[list[dict]]:
    if generation is None:
        return None
    client = await get_redis()
    if not client:
        return None

    key = upcoming_key(generation)
    try:
        data = await client.get(key)
    except redis.RedisError as e:
        logger.error("cache_get_error", key=key, error=str(e))
        return None

    record_cache_operation("get", hit=data is not None)
    if data is None:
        logger.debug("cache_miss", key=key)
        return None
    logger.debug("cache_hit", key=key)
    return json.loads(data)


async def set_cached_upcoming(events: list[dict], generation: Optional[int]) -> None:
    """Store a listing read under `generation`, taken before the database query."""
    if generation is None:
        return
    client = await get_redis()
    if not client:
        return

    key = upcoming_key(generation)
    try:
        await client.setex(key, settings.REDIS_CACHE_TTL, json.dumps(events, default=str))
        record_cache_operation("set", hit=False)
        logger.debug("cache_set", key=key, ttl=settings.REDIS_CACHE_TTL)
    except redis.RedisError as e:
        logger.error("cache_set_error", key=key, error=str(e))


async def invalidate_upcoming_cache() -> None:
    client = await get_redis()
    if not client:
        return

    try:
        generation = await client.incr(UPCOMING_GENERATION_KEY)
        deleted = await client.delete(upcoming_key(generation - 1))
        logger.info("cache_invalidated", generation=generation, keys_deleted=deleted)
    except redis.RedisError as e:
        logger.error("cache_invalidation_error", error=str(e))


async def get_cache_stats() -> dict:
    """Get Redis cache statistics for monitoring."""
    client = await get_redis()
    if not client:
        return {"status": "disabled"}

    try:
        info = await client.info("stats")
        hits = info.get("keyspace_hits", 0)
        misses = info.get("keyspace_misses", 0)
        return {
            "status": "connected",
            "hits": hits,
            "misses": misses,
            "hit_rate": round(hits / max(hits + misses, 1) * 100, 2),
        }
    except redis.RedisError as e:
        return {"status": "error", "error": str(e)}
