# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

This module provides fixtures used across the unit tests:
- Sample identities and challenge records
- An in-memory cache backend standing in for Redis
- An isolated event bus
"""

import json
import re
from typing import Any

import pytest

from src.core.config.settings import ChallengeCacheSettings
from src.domains.challenge.models import Challenge
from src.infrastructure.cache.redis_client import RedisError
from src.infrastructure.cache.service import CacheService
from src.infrastructure.events.bus import EventBus

SAMPLE_CHALLENGE_ID = "7d4f1e2a-9b3c-4d5e-8f60-1a2b3c4d5e6f"
SAMPLE_EMAIL = "ada@example.com"
SAMPLE_USER_ID = "550e8400-e29b-41d4-a716-446655440001"


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test (requires services)"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )


# =============================================================================
# Cache Fixtures
# =============================================================================


class InMemoryCacheBackend:
    """Dict-backed stand-in for RedisClient.

    Values are stored JSON-encoded, like the real client, so cached
    objects never alias the caller's objects. Set ``fail`` to make every
    call raise RedisError.
    """

    def __init__(self) -> None:
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int | None] = {}
        self.fail = False

    def _check(self) -> None:
        if self.fail:
            raise RedisError("backend unavailable")

    @staticmethod
    def _matches(key: str, pattern: str) -> bool:
        if pattern == "*":
            return True
        prefix = re.sub(r"\\(.)", r"\1", pattern[:-1]) if pattern.endswith("*") else pattern
        return key.startswith(prefix) if pattern.endswith("*") else key == prefix

    async def get(self, key: str) -> Any:
        self._check()
        raw = self.store.get(key)
        return json.loads(raw) if raw is not None else None

    async def set(self, key: str, value: Any, expire_seconds: int | None = None) -> None:
        self._check()
        self.store[key] = json.dumps(value)
        self.ttls[key] = expire_seconds

    async def delete(self, *keys: str) -> int:
        self._check()
        return sum(1 for key in keys if self.store.pop(key, None) is not None)

    async def scan_keys(self, pattern: str = "*") -> list[str]:
        self._check()
        return [key for key in self.store if self._matches(key, pattern)]

    async def delete_pattern(self, pattern: str) -> int:
        keys = await self.scan_keys(pattern)
        return await self.delete(*keys) if keys else 0


@pytest.fixture
def cache_backend() -> InMemoryCacheBackend:
    """Provide an empty in-memory cache backend."""
    return InMemoryCacheBackend()


@pytest.fixture
def cache_service(cache_backend: InMemoryCacheBackend) -> CacheService:
    """Provide a CacheService over the in-memory backend."""
    return CacheService(cache_backend)


@pytest.fixture
def cache_settings() -> ChallengeCacheSettings:
    """Provide default challenge cache lifetimes."""
    return ChallengeCacheSettings()


# =============================================================================
# Event Fixtures
# =============================================================================


@pytest.fixture
def event_bus() -> EventBus:
    """Provide an isolated event bus."""
    return EventBus()


# =============================================================================
# Challenge Fixtures
# =============================================================================


@pytest.fixture
def sample_email() -> str:
    """Provide a sample user email."""
    return SAMPLE_EMAIL


@pytest.fixture
def sample_user() -> dict[str, Any]:
    """Provide a sample user record as returned by the user directory."""
    return {
        "id": SAMPLE_USER_ID,
        "email": SAMPLE_EMAIL,
        "full_name": "Ada Lovelace",
        "professional_title": "Engineer",
        "focus_areas": ["ai_ethics"],
    }


@pytest.fixture
def challenge_record() -> dict[str, Any]:
    """Provide a canonical persisted record of a pending challenge."""
    return {
        "id": SAMPLE_CHALLENGE_ID,
        "title": "Bias in hiring models",
        "description": "Spot the bias",
        "content": {"instructions": "Review the scenario", "scenario": "A hiring model..."},
        "questions": [{"id": "q1", "text": "What is wrong?"}],
        "challenge_type": "ethical-dilemma",
        "format_type": "open-ended",
        "difficulty": "medium",
        "focus_area": "ai_ethics",
        "user_id": SAMPLE_USER_ID,
        "user_email": SAMPLE_EMAIL,
        "responses": [],
        "evaluation": None,
        "evaluation_criteria": ["identifies bias", "proposes mitigation"],
        "difficulty_settings": {
            "level": "medium",
            "complexity": 0.6,
            "depth": 0.6,
            "time_allocation": 480,
        },
        "score": None,
        "status": "pending",
        "created_at": "2025-01-15T10:00:00+00:00",
        "updated_at": "2025-01-15T10:00:00+00:00",
        "submitted_at": None,
        "completed_at": None,
    }


@pytest.fixture
def make_challenge(challenge_record: dict[str, Any]):
    """Provide a builder for Challenge entities based on challenge_record."""

    def build(**overrides: Any) -> Challenge:
        data = {**challenge_record, **overrides}
        return Challenge(**data)

    return build


@pytest.fixture
def pending_challenge(make_challenge) -> Challenge:
    """Provide a fresh pending challenge."""
    return make_challenge()
