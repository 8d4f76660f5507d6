import json
import logging

import redis.asyncio as redis

logger = logging.getLogger(__name__)

TAGS_KEY = "tags:list"


class CacheManager:
    """
    Cache-aside manager backed by Redis.

    Only relation-independent data goes through here (the tag list).
    Follow/favorite flags and counts are always read from the database.

    Every public method tolerates Redis being down: reads return None and
    writes are skipped, so the API keeps working without the cache.
    """

    def __init__(self) -> None:
        self._redis: redis.Redis | None = None

    async def connect(self, url: str) -> None:
        """Open the connection pool.  Called once at application startup."""
        self._redis = redis.from_url(
            url,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        try:
            await self._redis.ping()
            logger.info("Redis connected")
        except Exception as exc:  # pragma: no cover
            logger.warning("Redis ping failed, cache disabled: %s", exc)
            await self._redis.aclose()
            self._redis = None

    async def disconnect(self) -> None:
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    async def get(self, key: str) -> dict | list | None:
        if not self._redis:
            return None
        try:
            data = await self._redis.get(key)
            return json.loads(data) if data is not None else None
        except Exception as exc:
            logger.debug("Cache GET error for key=%r: %s", key, exc)
            return None

    async def set(self, key: str, value: dict | list, ttl: int | None = None) -> None:
        if not self._redis:
            return
        try:
            await self._redis.set(key, json.dumps(value), ex=ttl)
        except Exception as exc:
            logger.debug("Cache SET error for key=%r: %s", key, exc)

    async def delete(self, key: str) -> None:
        if not self._redis:
            return
        try:
            await self._redis.delete(key)
        except Exception as exc:
            logger.debug("Cache DELETE error for key=%r: %s", key, exc)

    async def invalidate_tags(self) -> None:
        """Drop the tag list after any article write that may add tags."""
        await self.delete(TAGS_KEY)


# Module-level singleton shared across all request handlers.
cache = CacheManager()
