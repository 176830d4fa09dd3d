# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the read-through cache service."""

from unittest.mock import AsyncMock

import pytest

from src.infrastructure.cache.service import CacheService


class TestGetOrSet:
    """Tests for cache-aside reads."""

    @pytest.mark.asyncio
    async def test_miss_then_hit(self, cache_service, cache_backend):
        """The loader runs once; the second read is served from cache."""
        loader = AsyncMock(return_value={"id": "c1"})

        first = await cache_service.get_or_set("challenge:id:c1", loader, ttl_seconds=600)
        second = await cache_service.get_or_set("challenge:id:c1", loader, ttl_seconds=600)

        assert first == second == {"id": "c1"}
        loader.assert_awaited_once()
        assert cache_backend.ttls["challenge:id:c1"] == 600
        assert cache_service.get_stats() == {"hits": 1, "misses": 1}

    @pytest.mark.asyncio
    async def test_none_is_not_cached(self, cache_service, cache_backend):
        """A None result is returned but not stored."""
        loader = AsyncMock(return_value=None)

        assert await cache_service.get_or_set("challenge:id:gone", loader) is None
        assert "challenge:id:gone" not in cache_backend.store

    @pytest.mark.asyncio
    async def test_default_ttl_applied(self, cache_backend):
        """Calls without a TTL use the service default."""
        service = CacheService(cache_backend, default_ttl=42)

        await service.get_or_set("k", AsyncMock(return_value=[1]))

        assert cache_backend.ttls["k"] == 42

    @pytest.mark.asyncio
    async def test_loader_errors_propagate(self, cache_service):
        """Exceptions from the loader are not swallowed."""
        loader = AsyncMock(side_effect=LookupError("db down"))

        with pytest.raises(LookupError):
            await cache_service.get_or_set("k", loader)


class TestFailOpen:
    """Backend failures never decide the outcome."""

    @pytest.mark.asyncio
    async def test_read_failure_falls_through(self, cache_service, cache_backend):
        """A failing backend behaves as a miss."""
        cache_backend.fail = True
        loader = AsyncMock(return_value={"id": "c1"})

        assert await cache_service.get_or_set("challenge:id:c1", loader) == {"id": "c1"}
        loader.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_write_and_delete_failures_reported(self, cache_service, cache_backend):
        """Writes return False and invalidations return zero."""
        cache_backend.fail = True

        assert await cache_service.set("k", 1) is False
        assert await cache_service.delete("k") == 0
        assert await cache_service.delete_prefix("challenge:") == 0
        assert await cache_service.keys("challenge:") == []


class TestPrefixes:
    """Tests for prefix listing and invalidation."""

    @pytest.mark.asyncio
    async def test_delete_prefix(self, cache_service, cache_backend):
        """Only keys under the prefix are removed."""
        await cache_service.set("challenge:user:email:a@x.io:all:1", [])
        await cache_service.set("challenge:user:email:a@x.io:recent:3", [])
        await cache_service.set("challenge:user:email:b@x.io:all:1", [])

        deleted = await cache_service.delete_prefix("challenge:user:email:a@x.io:")

        assert deleted == 2
        assert list(cache_backend.store) == ["challenge:user:email:b@x.io:all:1"]

    @pytest.mark.asyncio
    async def test_keys(self, cache_service):
        """Keys are listed by prefix."""
        await cache_service.set("challenge:list:a", [])
        await cache_service.set("challenge:search:b", [])

        assert await cache_service.keys("challenge:list:") == ["challenge:list:a"]

    def test_prefix_pattern_escapes_glob_characters(self):
        """Glob metacharacters in the prefix are matched literally."""
        assert CacheService._prefix_pattern("challenge:search:[x]*?") == (
            r"challenge:search:\[x\]\*\?*"
        )
