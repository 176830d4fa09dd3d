# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Challenge CRUD service with read-through caching.

ChallengeService fronts a ChallengeRepository. Reads go through the
cache; writes go to the repository first and then:

1. refresh (or drop) the single-item cache entry,
2. invalidate every per-user list cache of the owner,
3. invalidate every list and search cache by prefix,
4. dispatch the entity's pending domain events.

Invalidation is coarse: every write drops all list and search caches
along with the owner's per-user lists.

Cache key layout (relative to the Redis key prefix):

    challenge:id:{id}                         item, item_ttl
    challenge:user:{email|user_id}:...        per-user lists, list_ttl
    challenge:list:...                        all challenges, list_ttl
    challenge:search:...                      criteria search, search_ttl
    challenge:focus_area:{code}:...           by focus area, search_ttl
    challenge:type:{type}:...                 by challenge type, search_ttl

Cached values are persisted records (see ChallengeMapper), never
entities, so a cache hit yields a fresh Challenge instance.
"""

import json
import logging
from typing import Any, Awaitable, Callable, Mapping

from src.core.config.settings import ChallengeCacheSettings, get_settings
from src.domains.challenge.exceptions import (
    ChallengeNotFoundError,
    ChallengeValidationError,
)
from src.domains.challenge.mapper import ChallengeMapper
from src.domains.challenge.models import Challenge, ChallengeStatus
from src.domains.challenge.repository import ChallengeRepository
from src.domains.common.value_objects import ChallengeId, Email, FocusArea, UserId
from src.infrastructure.cache.service import CacheService
from src.infrastructure.events.dispatcher import DomainEventDispatcher
from src.infrastructure.events.types import EventTypes

logger = logging.getLogger(__name__)

NOT_FOUND_SENTINEL = "__challenge_not_found__"


class CacheKeys:
    """Cache key prefixes used by ChallengeService."""

    BY_ID = "challenge:id:"
    BY_USER = "challenge:user:"
    LIST = "challenge:list:"
    SEARCH = "challenge:search:"
    BY_FOCUS_AREA = "challenge:focus_area:"
    BY_TYPE = "challenge:type:"

    # Prefixes dropped on every write.
    COLLECTIONS = (LIST, SEARCH, BY_FOCUS_AREA, BY_TYPE)

    @classmethod
    def item(cls, challenge_id: str) -> str:
        return f"{cls.BY_ID}{challenge_id}"

    @classmethod
    def user_prefix(cls, identifier: str) -> str:
        return f"{cls.BY_USER}{identifier}:"


class ChallengeService:
    """CRUD facade over a challenge repository.

    Attributes:
        _repository: Persistence backend.
        _cache: Read-through cache.
        _dispatcher: Publishes domain events after successful writes.
        _ttl: Cache lifetimes.
    """

    def __init__(
        self,
        repository: ChallengeRepository,
        cache: CacheService,
        dispatcher: DomainEventDispatcher | None = None,
        cache_settings: ChallengeCacheSettings | None = None,
        mapper: type[ChallengeMapper] = ChallengeMapper,
    ) -> None:
        self._repository = repository
        self._cache = cache
        self._dispatcher = dispatcher or DomainEventDispatcher()
        self._ttl = cache_settings or get_settings().challenge_cache
        self._mapper = mapper

    # =========================================================================
    # Input normalization
    # =========================================================================

    @staticmethod
    def _challenge_id(challenge_id: Any) -> str:
        result = ChallengeId.parse(challenge_id)
        if not result.ok:
            raise ChallengeValidationError(
                f"Invalid challenge ID: {challenge_id}",
                details={"challenge_id": str(challenge_id), "reason": result.error},
            )
        return result.value.value

    @staticmethod
    def _user_identifier(user: Any) -> tuple[str, str]:
        """Resolve a user reference to ("email" | "user_id", value)."""
        if isinstance(user, Email):
            return "email", user.value
        if isinstance(user, UserId):
            return "user_id", user.value
        if isinstance(user, str) and "@" in user:
            email = Email.create(user)
            if email is None:
                raise ChallengeValidationError(f"Invalid email format: {user}")
            return "email", email.value
        user_id = UserId.create(user)
        if user_id is None:
            raise ChallengeValidationError(f"Invalid user identifier: {user}")
        return "user_id", user_id.value

    @staticmethod
    def _options_key(options: Mapping[str, Any] | None) -> str:
        options = options or {}
        status = options.get("status")
        status_key = ChallengeStatus.parse(status).value if status else "all"
        return ":".join(
            [
                str(options.get("limit") or "default"),
                str(options.get("offset") or 0),
                status_key,
                str(options.get("order") or "desc"),
            ]
        )

    @staticmethod
    def _with_status(
        criteria: Mapping[str, Any], options: Mapping[str, Any] | None
    ) -> dict[str, Any]:
        merged = dict(criteria)
        if options and options.get("status"):
            merged["status"] = ChallengeStatus.parse(options["status"]).value
        return merged

    # =========================================================================
    # Cache helpers
    # =========================================================================

    async def _cached_list(
        self,
        key: str,
        loader: Callable[[], Awaitable[list[Challenge]]],
        ttl: int,
    ) -> list[Challenge]:
        async def load_records() -> list[dict[str, Any]]:
            challenges = await loader()
            records = self._mapper.to_database_collection(challenges)
            for record in records:
                await self._cache.set(CacheKeys.item(record["id"]), record, self._ttl.item_ttl)
            return records

        records = await self._cache.get_or_set(key, load_records, ttl)
        return self._mapper.to_domain_collection(records or [])

    async def _invalidate(self, challenge: Challenge, drop_item: bool) -> None:
        if drop_item:
            await self._cache.delete(CacheKeys.item(challenge.id))
        for identifier in {challenge.user_email, challenge.user_id}:
            if identifier:
                await self._cache.delete_prefix(CacheKeys.user_prefix(identifier))
        for prefix in CacheKeys.COLLECTIONS:
            await self._cache.delete_prefix(prefix)

    # =========================================================================
    # Reads
    # =========================================================================

    async def get_challenge_by_id(self, challenge_id: Any) -> Challenge:
        """Load a challenge through the cache.

        Misses are remembered with a sentinel for item_ttl, so repeated
        lookups of a missing id do not reach the repository.

        Raises:
            ChallengeValidationError: If the id is malformed.
            ChallengeNotFoundError: If the challenge does not exist.
        """
        cid = self._challenge_id(challenge_id)

        async def load() -> Any:
            logger.debug("Loading challenge %s from repository", cid)
            challenge = await self._repository.find_by_id(cid)
            if challenge is None:
                return NOT_FOUND_SENTINEL
            return self._mapper.to_database(challenge)

        cached = await self._cache.get_or_set(CacheKeys.item(cid), load, self._ttl.item_ttl)
        if cached is None or cached == NOT_FOUND_SENTINEL:
            raise ChallengeNotFoundError(
                f"Challenge not found with ID: {cid}",
                challenge_id=cid,
            )
        return self._mapper.to_domain(cached)

    async def get_challenges_for_user(
        self,
        user: Any,
        options: Mapping[str, Any] | None = None,
    ) -> list[Challenge]:
        """All challenges owned by a user (email or user id), newest first."""
        kind, identifier = self._user_identifier(user)
        key = f"{CacheKeys.user_prefix(identifier)}all:{self._options_key(options)}"

        async def load() -> list[Challenge]:
            if kind == "email":
                return await self._repository.find_by_user_email(identifier, options)
            return await self._repository.find_by_user_id(identifier, options)

        return await self._cached_list(key, load, self._ttl.list_ttl)

    async def get_recent_challenges_for_user(
        self,
        user: Any,
        limit: int | None = None,
    ) -> list[Challenge]:
        """The user's most recent challenges, used as generation context."""
        limit = limit or self._ttl.recent_limit
        kind, identifier = self._user_identifier(user)
        key = f"{CacheKeys.user_prefix(identifier)}recent:{limit}"
        options = {"limit": limit, "order": "desc"}

        async def load() -> list[Challenge]:
            if kind == "email":
                return await self._repository.find_by_user_email(identifier, options)
            return await self._repository.find_by_user_id(identifier, options)

        return await self._cached_list(key, load, self._ttl.list_ttl)

    async def find_challenges(
        self,
        criteria: Mapping[str, Any] | None = None,
        options: Mapping[str, Any] | None = None,
    ) -> list[Challenge]:
        """Search by criteria (user_email, focus_area, status, ...)."""
        criteria = self._with_status(criteria or {}, options)
        criteria_key = json.dumps(criteria, sort_keys=True, default=str)
        key = f"{CacheKeys.SEARCH}{criteria_key}:{self._options_key(options)}"
        return await self._cached_list(
            key,
            lambda: self._repository.find_by_criteria(criteria, options),
            self._ttl.search_ttl,
        )

    async def get_challenges_by_focus_area(
        self,
        focus_area: Any,
        options: Mapping[str, Any] | None = None,
    ) -> list[Challenge]:
        """Challenges in one focus area.

        Raises:
            ChallengeValidationError: If the focus area is invalid.
        """
        area = focus_area if isinstance(focus_area, FocusArea) else FocusArea.create(focus_area)
        if area is None:
            raise ChallengeValidationError(f"Invalid focus area: {focus_area}")
        criteria = self._with_status({"focus_area": area.code}, options)
        key = f"{CacheKeys.BY_FOCUS_AREA}{area.code}:{self._options_key(options)}"
        return await self._cached_list(
            key,
            lambda: self._repository.find_by_criteria(criteria, options),
            self._ttl.search_ttl,
        )

    async def get_challenges_by_type(
        self,
        challenge_type: str,
        options: Mapping[str, Any] | None = None,
    ) -> list[Challenge]:
        """Challenges of one challenge type.

        Raises:
            ChallengeValidationError: If the type is empty.
        """
        if not isinstance(challenge_type, str) or not challenge_type.strip():
            raise ChallengeValidationError("Challenge type is required")
        challenge_type = challenge_type.strip()
        criteria = self._with_status({"challenge_type": challenge_type}, options)
        key = f"{CacheKeys.BY_TYPE}{challenge_type}:{self._options_key(options)}"
        return await self._cached_list(
            key,
            lambda: self._repository.find_by_criteria(criteria, options),
            self._ttl.search_ttl,
        )

    async def get_all_challenges(
        self,
        options: Mapping[str, Any] | None = None,
    ) -> list[Challenge]:
        """All challenges, paged by options (limit, offset, status, order)."""
        criteria = self._with_status({}, options)
        key = f"{CacheKeys.LIST}{self._options_key(options)}"
        return await self._cached_list(
            key,
            lambda: self._repository.find_by_criteria(criteria, options),
            self._ttl.list_ttl,
        )

    # =========================================================================
    # Writes
    # =========================================================================

    async def save_challenge(self, challenge: Challenge) -> Challenge:
        """Persist a challenge and publish its pending events.

        Raises:
            ChallengeValidationError: If challenge is not a Challenge.
            ChallengePersistenceError: If the repository write fails; no
                cache change is made and no event is published.
        """
        if not isinstance(challenge, Challenge):
            raise ChallengeValidationError("A Challenge instance is required")

        saved = await self._repository.save(challenge)
        if saved is None:
            saved = challenge

        await self._cache.set(
            CacheKeys.item(saved.id),
            self._mapper.to_database(saved),
            self._ttl.item_ttl,
        )
        await self._invalidate(saved, drop_item=False)
        await self._dispatcher.dispatch(challenge)
        if saved is not challenge:
            await self._dispatcher.dispatch(saved)

        logger.info("Saved challenge %s (status=%s)", saved.id, saved.status.value)
        return saved

    async def update_challenge(self, challenge_id: Any, data: Mapping[str, Any]) -> Challenge:
        """Apply field changes to a stored challenge and save it.

        The current state is read from the repository, not the cache.

        Raises:
            ChallengeNotFoundError: If the challenge does not exist.
            ChallengeValidationError, ChallengeInvalidStateError: If the
                change is rejected by the entity.
        """
        cid = self._challenge_id(challenge_id)
        challenge = await self._repository.find_by_id(cid)
        if challenge is None:
            raise ChallengeNotFoundError(f"Challenge not found with ID: {cid}", challenge_id=cid)

        challenge.update(data)
        return await self.save_challenge(challenge)

    async def delete_challenge(self, challenge_id: Any) -> bool:
        """Delete a challenge and invalidate its caches.

        Raises:
            ChallengeNotFoundError: If the challenge does not exist.
        """
        cid = self._challenge_id(challenge_id)
        challenge = await self._repository.find_by_id(cid)
        if challenge is None:
            raise ChallengeNotFoundError(f"Challenge not found with ID: {cid}", challenge_id=cid)

        challenge.add_domain_event(
            EventTypes.Challenge.DELETED,
            {"user_email": challenge.user_email, "user_id": challenge.user_id},
        )
        deleted = await self._repository.delete_by_id(cid)

        await self._invalidate(challenge, drop_item=True)
        if deleted:
            await self._dispatcher.dispatch(challenge)
            logger.info("Deleted challenge %s", cid)
        else:
            challenge.clear_domain_events()
        return deleted
