"""Read-through cache for enrollment status reads.

Two complementary invalidation strategies:

  1. TTL: every entry expires after a short time.  This is the safety
     net if an invalidation is ever missed.
  2. Explicit invalidation: every enrollment mutation deletes the
     affected (user, course) entry right after the write commits.

The ledger is the source of truth.  A cache failure degrades to a
ledger read and is never reported as a business answer.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Protocol
from uuid import UUID

from redis.exceptions import RedisError

from learnhub.core.metrics import CACHE_OPERATIONS
from learnhub.db.redis import redis_pool

logger = logging.getLogger(__name__)

STATUS_TTL_SECONDS = 30


class CacheService(Protocol):
    async def get(self, key: str) -> str | None:
        """Fetch a cached value.  Returns None on cache miss."""
        ...

    async def set(self, key: str, value: str, ttl_seconds: int) -> None: ...

    async def delete(self, key: str) -> None: ...


class InMemoryCacheService:
    """In-memory cache for dev and tests.  No TTL enforcement."""

    def __init__(self) -> None:
        self._store: dict[str, str] = {}

    async def get(self, key: str) -> str | None:
        return self._store.get(key)

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self._store[key] = value

    async def delete(self, key: str) -> None:
        self._store.pop(key, None)

    def clear(self) -> None:
        self._store.clear()


class RedisCacheService:
    """Redis-backed cache shared across API instances."""

    _PREFIX = "cache:"

    def __init__(self, redis_client) -> None:
        self._redis = redis_client

    async def get(self, key: str) -> str | None:
        return await self._redis.get(f"{self._PREFIX}{key}")

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        await self._redis.setex(f"{self._PREFIX}{key}", ttl_seconds, value)

    async def delete(self, key: str) -> None:
        await self._redis.delete(f"{self._PREFIX}{key}")


def status_key(user_id: str, course_id: UUID) -> str:
    return f"enrollment:{user_id}:{course_id}"


async def read_through(
    cache: CacheService,
    key: str,
    load: Callable[[], Awaitable[dict[str, Any]]],
    *,
    ttl_seconds: int = STATUS_TTL_SECONDS,
) -> dict[str, Any]:
    """Return the cached JSON document for key, loading and storing it on a miss."""
    try:
        cached = await cache.get(key)
    except RedisError:
        logger.warning("Cache read failed, falling back to source: key=%s", key)
        cached = None
    if cached is not None:
        CACHE_OPERATIONS.labels(operation="hit").inc()
        return json.loads(cached)

    CACHE_OPERATIONS.labels(operation="miss").inc()
    value = await load()
    try:
        await cache.set(key, json.dumps(value), ttl_seconds)
    except RedisError:
        logger.warning("Cache write failed: key=%s", key)
    return value


async def invalidate(cache: CacheService, user_id: str, course_id: UUID) -> None:
    try:
        await cache.delete(status_key(user_id, course_id))
    except RedisError:
        # the TTL bounds staleness
        logger.warning(
            "Cache invalidation failed: user=%s course=%s", user_id, course_id
        )


if redis_pool is not None:
    cache_service: CacheService = RedisCacheService(redis_pool)
else:
    cache_service = InMemoryCacheService()
