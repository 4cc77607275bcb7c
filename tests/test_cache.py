import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

from redis.exceptions import ConnectionError as RedisConnectionError

from goldcast_cog.cache import CachingClientWrapper

ID_MAP = {"scenario_id": "scn", "requestor_id": "usr", "request_id": "req"}


class FakeRedis:
    """Just enough of redis.asyncio.Redis for the cache wrapper."""

    def __init__(self) -> None:
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    async def get(self, key):
        return self.store.get(key)

    async def setex(self, key, ttl, value):
        self.store[key] = value
        self.ttls[key] = ttl

    async def delete(self, key):
        self.store.pop(key, None)


def _inner(payload='[{"id": 1}]') -> MagicMock:
    inner = MagicMock()
    inner.fetch_collection = AsyncMock(return_value=payload)
    inner.fetch_by_id = AsyncMock(return_value=payload)
    return inner


# ---------------------------------------------------------------------------
# Read-through
# ---------------------------------------------------------------------------

def test_second_fetch_is_served_from_cache():
    inner, redis = _inner(), FakeRedis()
    cache = CachingClientWrapper(inner, redis, ID_MAP)

    async def go():
        first = await cache.fetch_collection("events")
        second = await cache.fetch_collection("events")
        return first, second

    first, second = asyncio.run(go())
    assert first == second == '[{"id": 1}]'
    inner.fetch_collection.assert_awaited_once_with("events", None)

def test_keys_are_scoped_to_the_run():
    inner, redis = _inner(), FakeRedis()
    cache = CachingClientWrapper(inner, redis, ID_MAP, ttl=30)

    asyncio.run(cache.fetch_by_id("event_members", "42"))

    key = "Goldcast|event_members|42|scnusrreq"
    assert key in redis.store
    assert redis.ttls[key] == 30
    assert json.loads(redis.store["cachekeys|scnusrreq"]) == [key]

def test_falsy_results_are_not_cached():
    inner, redis = _inner(payload=""), FakeRedis()
    cache = CachingClientWrapper(inner, redis, ID_MAP)

    asyncio.run(cache.fetch_by_id("event_members", "42"))
    asyncio.run(cache.fetch_by_id("event_members", "42"))

    assert inner.fetch_by_id.await_count == 2
    assert redis.store == {}

def test_clear_cache_removes_every_run_key():
    inner, redis = _inner(), FakeRedis()
    cache = CachingClientWrapper(inner, redis, ID_MAP)

    async def go():
        await cache.fetch_collection("events")
        await cache.fetch_by_id("event_members", "42")
        await cache.clear_cache()

    asyncio.run(go())
    assert redis.store == {"cachekeys|scnusrreq": "[]"}

# ---------------------------------------------------------------------------
# Redis Outages
# ---------------------------------------------------------------------------

def test_redis_failure_falls_back_to_client():
    inner = _inner()
    redis = MagicMock()
    redis.get = AsyncMock(side_effect=RedisConnectionError("down"))
    redis.setex = AsyncMock(side_effect=RedisConnectionError("down"))
    cache = CachingClientWrapper(inner, redis, ID_MAP)

    result = asyncio.run(cache.fetch_collection("events"))

    assert result == '[{"id": 1}]'
    inner.fetch_collection.assert_awaited_once()
