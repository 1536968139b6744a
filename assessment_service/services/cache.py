"""Read-through cache for per-user dashboard reads.

Flow:  GET /v1/submissions/stats → cache → miss → repo → populate → return
                                   cache → hit  → return

Entries expire by TTL and are also deleted explicitly whenever a
submission is persisted or completed (the lifecycle controller's
on_change hook), so a dashboard opened right after an autosave never
shows stale progress for longer than it takes the write to land.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from assessment_service.core.metrics import CACHE_OPERATIONS
from assessment_service.db.redis import redis_pool


@runtime_checkable
class CacheService(Protocol):
    async def get(self, key: str) -> str | None:
        """Fetch a cached value.  Returns None on cache miss."""
        ...

    async def set(self, key: str, value: str, ttl_seconds: int) -> None: ...

    async def delete(self, *keys: str) -> None:
        """Explicitly invalidate cached entries."""
        ...


class InMemoryCacheService:
    """In-memory cache for dev and tests, no TTL enforcement."""

    def __init__(self) -> None:
        self._store: dict[str, str] = {}

    async def get(self, key: str) -> str | None:
        value = self._store.get(key)
        CACHE_OPERATIONS.labels(operation="miss" if value is None else "hit").inc()
        return value

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self._store[key] = value

    async def delete(self, *keys: str) -> None:
        for key in keys:
            self._store.pop(key, None)


class RedisCacheService:
    """Redis-backed cache shared across API instances."""

    _PREFIX = "cache:"

    def __init__(self, redis_client) -> None:
        self._redis = redis_client

    async def get(self, key: str) -> str | None:
        value = await self._redis.get(f"{self._PREFIX}{key}")
        CACHE_OPERATIONS.labels(operation="miss" if value is None else "hit").inc()
        return value

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        await self._redis.setex(f"{self._PREFIX}{key}", ttl_seconds, value)

    async def delete(self, *keys: str) -> None:
        if keys:
            await self._redis.delete(*(f"{self._PREFIX}{k}" for k in keys))


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

if redis_pool is not None:
    cache_service: CacheService = RedisCacheService(redis_pool)
else:
    cache_service = InMemoryCacheService()
