from __future__ import annotations

import asyncio

from assessment_service.models.submission import Submission
from assessment_service.services.backends import invalidate_user_cache, stats_cache_key
from assessment_service.services.cache import (
    CacheService,
    InMemoryCacheService,
    RedisCacheService,
    cache_service,
)


class _FakeRedis:
    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    async def get(self, key: str) -> str | None:
        return self.data.get(key)

    async def setex(self, key: str, ttl: int, value: str) -> None:
        self.data[key] = value
        self.ttls[key] = ttl

    async def delete(self, *keys: str) -> None:
        for key in keys:
            self.data.pop(key, None)


def test_backends_satisfy_protocol() -> None:
    assert isinstance(InMemoryCacheService(), CacheService)
    assert isinstance(RedisCacheService(_FakeRedis()), CacheService)


def test_in_memory_get_set_delete() -> None:
    async def scenario():
        cache = InMemoryCacheService()
        miss = await cache.get("k")
        await cache.set("k", "v", 60)
        hit = await cache.get("k")
        await cache.delete("k", "absent")
        return miss, hit, await cache.get("k")

    assert asyncio.run(scenario()) == (None, "v", None)


def test_redis_cache_prefixes_keys_and_sets_ttl() -> None:
    async def scenario():
        redis = _FakeRedis()
        cache = RedisCacheService(redis)
        await cache.set("stats:alice", "{}", 300)
        value = await cache.get("stats:alice")
        await cache.delete()
        return redis, value

    redis, value = asyncio.run(scenario())
    assert value == "{}"
    assert redis.ttls == {"cache:stats:alice": 300}


def test_invalidate_user_cache_drops_stats_entry() -> None:
    async def scenario():
        submission = Submission.new(user_id="alice", assessment_id="a1")
        await cache_service.set(stats_cache_key("alice"), "{}", 300)
        await cache_service.set(stats_cache_key("bob"), "{}", 300)
        await invalidate_user_cache(submission)
        return (
            await cache_service.get(stats_cache_key("alice")),
            await cache_service.get(stats_cache_key("bob")),
        )

    assert asyncio.run(scenario()) == (None, "{}")
