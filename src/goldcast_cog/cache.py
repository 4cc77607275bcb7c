# cache.py
# Redis-backed response cache in front of a ResourceFetcher.
#
# Purely an optimisation: every Redis failure is logged and read as a miss,
# so a cache outage never changes a step's outcome. Keys are scoped to one
# scenario run (scenario + requestor + request) and tracked in an index key
# so the whole run can be cleared at once.

import json
import logging
from typing import Any

from redis.asyncio import Redis
from redis.exceptions import RedisError

from goldcast_cog.client import ResourceFetcher

logger = logging.getLogger(__name__)


class CachingClientWrapper:
    """ResourceFetcher that consults Redis before delegating to the live client."""

    def __init__(
        self,
        client: ResourceFetcher,
        redis_client: Redis,
        id_map: dict[str, str],
        ttl: int = 55,
    ) -> None:
        self._client = client
        self._redis = redis_client
        self._ttl = ttl
        self.cache_prefix = (
            f"{id_map.get('scenario_id', '')}"
            f"{id_map.get('requestor_id', '')}"
            f"{id_map.get('request_id', '')}"
        )

    @property
    def _index_key(self) -> str:
        return f"cachekeys|{self.cache_prefix}"

    # ------------------------------------------------------------------
    # ResourceFetcher
    # ------------------------------------------------------------------

    async def _cached(self, cache_key: str, fetch) -> Any:
        stored = await self.get_cache(cache_key)
        if stored is not None:
            logger.debug("Cache hit: %s", cache_key)
            return stored

        result = await fetch()
        if result:
            await self.set_cache(cache_key, result)
        return result

    async def fetch_by_id(self, category: str, resource_id: str) -> Any:
        key = f"Goldcast|{category}|{resource_id}|{self.cache_prefix}"
        return await self._cached(key, lambda: self._client.fetch_by_id(category, resource_id))

    async def fetch_collection(self, category: str, scope_id: str | None = None) -> Any:
        key = f"Goldcast|{category}|{scope_id or ''}|{self.cache_prefix}"
        return await self._cached(key, lambda: self._client.fetch_collection(category, scope_id))

    # ------------------------------------------------------------------
    # Redis primitives
    # ------------------------------------------------------------------

    async def get_cache(self, key: str) -> Any:
        try:
            stored = await self._redis.get(key)
        except RedisError as exc:
            logger.warning("Cache read failed for %s: %s", key, exc)
            return None
        if not stored:
            return None
        return json.loads(stored)

    async def set_cache(self, key: str, value: Any) -> None:
        try:
            keys = await self.get_cache(self._index_key) or []
            keys.append(key)
            await self._redis.setex(key, self._ttl, json.dumps(value))
            await self._redis.setex(self._index_key, self._ttl, json.dumps(keys))
        except RedisError as exc:
            logger.warning("Cache write failed for %s: %s", key, exc)

    async def del_cache(self, key: str) -> None:
        try:
            await self._redis.delete(key)
        except RedisError as exc:
            logger.warning("Cache delete failed for %s: %s", key, exc)

    async def clear_cache(self) -> None:
        """Drop every key written during this scenario run."""
        for key in await self.get_cache(self._index_key) or []:
            await self.del_cache(key)
        try:
            await self._redis.setex(self._index_key, self._ttl, "[]")
        except RedisError as exc:
            logger.warning("Cache index reset failed: %s", exc)
