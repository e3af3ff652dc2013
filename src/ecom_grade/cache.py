"""Cache layer for per-user dashboard views.

Two backends share the CacheService contract:
- RedisCache: redis.asyncio client, JSON-serialized values
- MemoryCache: in-process TTL cache (no Redis URL configured, tests)

Dashboard entries are versioned. Invalidation writes a fresh version stamp
before deleting the entry, and reads ignore entries stamped with any other
version. A reader that captured the old version and repopulates the cache
after the delete therefore writes an entry nobody will serve.
"""

import json
import logging
import time
import uuid
from functools import lru_cache
from typing import Any, Callable, Optional, Protocol

from redis.asyncio import Redis

from ecom_grade.config import Settings, get_settings
from ecom_grade.errors import CacheInconsistency

logger = logging.getLogger(__name__)


class CacheService(Protocol):
    """Key-value cache with per-entry TTL."""

    async def get(self, key: str) -> Optional[Any]: ...

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None: ...

    async def delete(self, key: str) -> None: ...

    async def exists(self, key: str) -> bool: ...


class RedisCache:
    """Redis-backed cache.

    Example:
        cache = RedisCache(Redis.from_url("redis://localhost:6379/0", decode_responses=True))
        await cache.set("key", {"a": 1}, ttl=300)
    """

    def __init__(self, client: Redis):
        self.client = client

    async def get(self, key: str) -> Optional[Any]:
        value = await self.client.get(key)
        if value is None:
            return None

        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return value

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        serialized = json.dumps(value, default=str)
        if ttl:
            await self.client.setex(key, ttl, serialized)
        else:
            await self.client.set(key, serialized)

    async def delete(self, key: str) -> None:
        await self.client.delete(key)

    async def exists(self, key: str) -> bool:
        return await self.client.exists(key) > 0

    async def close(self) -> None:
        await self.client.aclose()


class MemoryCache:
    """In-process cache with per-entry expiry."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: dict[str, tuple[Any, Optional[float]]] = {}

    def _live(self, key: str) -> Optional[tuple[Any, Optional[float]]]:
        entry = self._entries.get(key)
        if entry is None:
            return None

        _, expires = entry
        if expires is not None and expires <= self._clock():
            del self._entries[key]
            return None
        return entry

    async def get(self, key: str) -> Optional[Any]:
        entry = self._live(key)
        return entry[0] if entry else None

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        expires = self._clock() + ttl if ttl else None
        self._entries[key] = (value, expires)

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    async def exists(self, key: str) -> bool:
        return self._live(key) is not None


async def invalidate(cache: CacheService, key: str) -> bool:
    """Delete a key and verify it is gone, retrying the delete once.

    Cache errors are logged, never raised.

    Returns:
        True if the key is confirmed absent
    """
    try:
        await cache.delete(key)
        if not await cache.exists(key):
            logger.debug(f"Invalidated cache key {key}")
            return True

        logger.info(f"Cache key {key} still present after delete, retrying")
        await cache.delete(key)
        if not await cache.exists(key):
            return True

        logger.warning(str(CacheInconsistency(key)))
        return False

    except Exception as e:
        logger.warning(f"Cache invalidation failed for {key}: {e}")
        return False


class DashboardCache:
    """Versioned per-user dashboard cache.

    Readers capture the version before loading data from the store:

        version = await dashboards.current_version(user_id)
        data = await load_dashboard(...)
        await dashboards.set(user_id, data, version)
    """

    def __init__(self, cache: CacheService, settings: Settings | None = None):
        self.cache = cache
        self.settings = settings or get_settings()

    def key(self, user_id: str) -> str:
        return self.settings.dashboard_key(user_id)

    def version_key(self, user_id: str) -> str:
        return f"{self.key(user_id)}:version"

    async def current_version(self, user_id: str) -> str:
        """Current version stamp, created on first use."""
        version = await self.cache.get(self.version_key(user_id))
        if version is None:
            version = uuid.uuid4().hex
            await self.cache.set(self.version_key(user_id), version)
        return version

    async def get(self, user_id: str) -> Optional[Any]:
        """Cached dashboard data, None on miss or stale version."""
        entry = await self.cache.get(self.key(user_id))
        if not isinstance(entry, dict):
            return None

        version = await self.cache.get(self.version_key(user_id))
        if version is None or entry.get("version") != version:
            logger.debug(f"Ignoring stale dashboard entry for user {user_id}")
            return None

        return entry.get("data")

    async def set(self, user_id: str, data: Any, version: Optional[str] = None) -> None:
        if version is None:
            version = await self.current_version(user_id)

        await self.cache.set(
            self.key(user_id),
            {"version": version, "data": data},
            self.settings.cache_ttl_seconds,
        )

    async def invalidate(self, user_id: str) -> bool:
        """Bump the version, then delete the entry.

        Returns:
            True if the entry is confirmed absent
        """
        try:
            await self.cache.set(self.version_key(user_id), uuid.uuid4().hex)
        except Exception as e:
            logger.warning(f"Failed to bump dashboard version for user {user_id}: {e}")

        return await invalidate(self.cache, self.key(user_id))


def build_cache(settings: Settings | None = None) -> CacheService:
    """Redis cache when a URL is configured, else an in-process cache."""
    settings = settings or get_settings()

    if settings.redis_url:
        logger.info("Using Redis cache")
        return RedisCache(Redis.from_url(settings.redis_url, decode_responses=True))

    logger.info("No Redis URL configured, using in-process memory cache")
    return MemoryCache()


@lru_cache
def get_cache() -> CacheService:
    """Get the process-wide cache instance."""
    return build_cache()
