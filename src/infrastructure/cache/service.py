# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Read-through cache service.

CacheService sits between domain services and the Redis client. It
offers cache-aside reads (get_or_set) and prefix based invalidation.

The cache never decides the outcome of an operation: when Redis is
unreachable, reads behave as misses and writes/invalidations are logged
and skipped, so callers fall through to the datastore (fail open).

Example:
    cache = CacheService(get_redis())

    record = await cache.get_or_set(
        "challenge:id:123",
        lambda: repository.find_record("123"),
        ttl_seconds=600,
    )
    await cache.delete_prefix("challenge:list:")
"""

import logging
from typing import Any, Awaitable, Callable, Protocol

from src.infrastructure.cache.redis_client import RedisError, escape_glob

logger = logging.getLogger(__name__)


class CacheBackend(Protocol):
    """Subset of RedisClient used by the cache service."""

    async def get(self, key: str) -> Any: ...

    async def set(self, key: str, value: Any, expire_seconds: int | None = None) -> None: ...

    async def delete(self, *keys: str) -> int: ...

    async def scan_keys(self, pattern: str = "*") -> list[str]: ...

    async def delete_pattern(self, pattern: str) -> int: ...


class CacheService:
    """Cache-aside helper over a Redis-like backend.

    Attributes:
        _backend: The key-value backend (normally RedisClient).
        default_ttl: TTL used when a call does not pass one.
    """

    def __init__(self, backend: CacheBackend, default_ttl: int = 300) -> None:
        self._backend = backend
        self.default_ttl = default_ttl
        self._hits = 0
        self._misses = 0

    @staticmethod
    def _prefix_pattern(prefix: str) -> str:
        return escape_glob(prefix) + "*"

    async def get(self, key: str) -> Any:
        """Return the cached value, or None on a miss or backend failure."""
        try:
            return await self._backend.get(key)
        except RedisError as e:
            logger.warning("Cache read failed for %s: %s", key, e)
            return None

    async def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> bool:
        """Store a value.

        Returns:
            True if the value was written, False if the backend failed.
        """
        try:
            await self._backend.set(key, value, expire_seconds=ttl_seconds or self.default_ttl)
            return True
        except RedisError as e:
            logger.warning("Cache write failed for %s: %s", key, e)
            return False

    async def get_or_set(
        self,
        key: str,
        factory: Callable[[], Awaitable[Any]],
        ttl_seconds: int | None = None,
    ) -> Any:
        """Return the cached value, computing and storing it on a miss.

        None results from the factory are returned but not cached;
        callers that want to remember a miss store a sentinel instead.
        Exceptions raised by the factory propagate unchanged.

        Args:
            key: Cache key.
            factory: Async callable producing the value on a miss.
            ttl_seconds: Lifetime of the stored value.

        Returns:
            The cached or freshly computed value.
        """
        cached = await self.get(key)
        if cached is not None:
            self._hits += 1
            logger.debug("Cache hit: %s", key)
            return cached

        self._misses += 1
        logger.debug("Cache miss: %s", key)
        value = await factory()
        if value is not None:
            await self.set(key, value, ttl_seconds)
        return value

    async def delete(self, *keys: str) -> int:
        """Remove keys, returning how many existed."""
        try:
            return await self._backend.delete(*keys)
        except RedisError as e:
            logger.error("Cache delete failed for %s: %s", ", ".join(keys), e)
            return 0

    async def keys(self, prefix: str = "") -> list[str]:
        """List cached keys starting with prefix."""
        try:
            return await self._backend.scan_keys(self._prefix_pattern(prefix))
        except RedisError as e:
            logger.warning("Cache key scan failed for %s: %s", prefix, e)
            return []

    async def delete_prefix(self, prefix: str) -> int:
        """Remove every key starting with prefix."""
        try:
            deleted = await self._backend.delete_pattern(self._prefix_pattern(prefix))
        except RedisError as e:
            logger.error("Cache prefix invalidation failed for %s: %s", prefix, e)
            return 0
        if deleted:
            logger.debug("Invalidated %d cache keys with prefix %s", deleted, prefix)
        return deleted

    def get_stats(self) -> dict[str, int]:
        """Hit/miss counters since construction."""
        return {"hits": self._hits, "misses": self._misses}
