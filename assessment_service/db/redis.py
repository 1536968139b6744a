"""Redis connection management.

Mirrors engine.py: with REDIS_URL set we create a connection pool; without
it redis_pool is None and the cache falls back to an in-memory dict, so
local dev and tests need no Redis server.

Redis only ever holds derived, disposable data here (cached dashboard
reads).  Submissions themselves live in the submission repository.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import redis.asyncio as aioredis

from assessment_service.core.config import SETTINGS

logger = logging.getLogger(__name__)

if SETTINGS.redis_url:
    redis_pool: aioredis.Redis | None = aioredis.from_url(  # type: ignore[type-arg]
        SETTINGS.redis_url,
        decode_responses=True,  # return str instead of bytes
        max_connections=20,
    )
else:
    redis_pool = None


@asynccontextmanager
async def lifespan_redis():
    """Startup/shutdown hook for Redis, mirrors lifespan_db()."""
    if redis_pool is None:
        logger.info("No REDIS_URL configured; cache uses in-memory fallback")
        yield
        return

    try:
        await redis_pool.ping()  # type: ignore[misc]
        logger.info("Redis connected: %s", SETTINGS.redis_url)
    except Exception:
        # Degrade instead of refusing to start: the cache is optional.
        logger.exception("Redis connection failed on startup")
        yield
        return

    yield

    await redis_pool.aclose()
    logger.info("Redis connection pool closed")
