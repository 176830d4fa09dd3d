# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Cache infrastructure using Redis.

This package provides the Redis client and a read-through cache service.
All keys are namespaced with the configured prefix: {key_prefix}:*

Example:
    from src.infrastructure.cache import CacheService, init_redis, get_redis

    # Initialize at application startup
    await init_redis(settings)

    cache = CacheService(get_redis())
    record = await cache.get_or_set("challenge:id:123", loader, ttl_seconds=600)

    # Cleanup at shutdown
    await close_redis()
"""

from src.infrastructure.cache.redis_client import (
    RedisClient,
    RedisError,
    close_redis,
    get_redis,
    init_redis,
)
from src.infrastructure.cache.service import CacheBackend, CacheService

__all__ = [
    "CacheBackend",
    "CacheService",
    "RedisClient",
    "RedisError",
    "close_redis",
    "get_redis",
    "init_redis",
]
