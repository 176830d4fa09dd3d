# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Challenge persistence.

ChallengeRepository is the contract the service layer depends on. The
SQLAlchemy implementation stores challenges in the ``challenges`` table
through ChallengeMapper; every SQLAlchemy failure surfaces as
ChallengePersistenceError.

Example:
    repository = SQLAlchemyChallengeRepository(get_sessionmaker())
    challenge = await repository.find_by_id("7d4f...")
"""

import logging
from typing import Any, Mapping, Protocol, runtime_checkable

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.domains.challenge.exceptions import ChallengePersistenceError
from src.domains.challenge.mapper import ChallengeMapper
from src.domains.challenge.models import Challenge, ChallengeStatus
from src.infrastructure.database.models import ChallengeRecord
from src.utils.datetime import parse_iso

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 50
MAX_LIMIT = 500

# Criteria keys that map directly onto indexed columns.
FILTERABLE_COLUMNS = (
    "user_id",
    "user_email",
    "focus_area",
    "challenge_type",
    "format_type",
    "difficulty",
    "status",
)


@runtime_checkable
class ChallengeRepository(Protocol):
    """Persistence contract for challenges. IDs are opaque strings."""

    async def find_by_id(self, challenge_id: str) -> Challenge | None: ...

    async def find_by_user_id(
        self, user_id: str, options: Mapping[str, Any] | None = None
    ) -> list[Challenge]: ...

    async def find_by_user_email(
        self, email: str, options: Mapping[str, Any] | None = None
    ) -> list[Challenge]: ...

    async def find_by_criteria(
        self,
        criteria: Mapping[str, Any],
        options: Mapping[str, Any] | None = None,
    ) -> list[Challenge]: ...

    async def save(self, challenge: Challenge) -> Challenge: ...

    async def delete_by_id(self, challenge_id: str) -> bool: ...


class SQLAlchemyChallengeRepository:
    """ChallengeRepository backed by SQLAlchemy async sessions.

    Each call opens its own session and commits on success, so the
    repository can be shared across requests.

    Attributes:
        _sessionmaker: Factory for AsyncSession objects.
        _mapper: Record/entity mapper.
    """

    def __init__(
        self,
        sessionmaker: async_sessionmaker[AsyncSession],
        mapper: type[ChallengeMapper] = ChallengeMapper,
    ) -> None:
        self._sessionmaker = sessionmaker
        self._mapper = mapper

    @staticmethod
    def _page(options: Mapping[str, Any] | None) -> tuple[int, int, bool]:
        options = options or {}
        limit = int(options.get("limit") or DEFAULT_LIMIT)
        offset = int(options.get("offset") or 0)
        ascending = str(options.get("order", "desc")).lower() == "asc"
        return max(1, min(limit, MAX_LIMIT)), max(0, offset), ascending

    def _to_domain_list(self, records: list[ChallengeRecord]) -> list[Challenge]:
        return self._mapper.to_domain_collection(r.to_dict() for r in records)

    async def _select(
        self,
        filters: Mapping[str, Any],
        options: Mapping[str, Any] | None,
    ) -> list[Challenge]:
        limit, offset, ascending = self._page(options)
        order = ChallengeRecord.created_at.asc() if ascending else ChallengeRecord.created_at.desc()

        stmt = select(ChallengeRecord)
        for column, value in filters.items():
            if column == "status":
                value = ChallengeStatus.parse(value).value
            stmt = stmt.where(getattr(ChallengeRecord, column) == value)
        stmt = stmt.order_by(order).limit(limit).offset(offset)

        try:
            async with self._sessionmaker() as session:
                result = await session.execute(stmt)
                records = list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Challenge query failed: filters=%s, error=%s", dict(filters), str(e))
            raise ChallengePersistenceError(
                "Failed to query challenges",
                details={"filters": {k: str(v) for k, v in filters.items()}},
                cause=e,
            ) from e
        return self._to_domain_list(records)

    async def find_by_id(self, challenge_id: str) -> Challenge | None:
        """Load one challenge, or None if it does not exist."""
        try:
            async with self._sessionmaker() as session:
                record = await session.get(ChallengeRecord, str(challenge_id))
        except SQLAlchemyError as e:
            raise ChallengePersistenceError(
                f"Failed to load challenge {challenge_id}",
                details={"challenge_id": str(challenge_id)},
                cause=e,
            ) from e
        if record is None:
            return None
        return self._mapper.to_domain(record.to_dict())

    async def find_by_user_id(
        self, user_id: str, options: Mapping[str, Any] | None = None
    ) -> list[Challenge]:
        return await self._select({"user_id": str(user_id)}, options)

    async def find_by_user_email(
        self, email: str, options: Mapping[str, Any] | None = None
    ) -> list[Challenge]:
        return await self._select({"user_email": str(email)}, options)

    async def find_by_criteria(
        self,
        criteria: Mapping[str, Any],
        options: Mapping[str, Any] | None = None,
    ) -> list[Challenge]:
        """Filter on indexed columns; other criteria keys are ignored."""
        filters = {
            key: str(value)
            for key, value in (criteria or {}).items()
            if key in FILTERABLE_COLUMNS and value is not None
        }
        ignored = set(criteria or {}) - set(FILTERABLE_COLUMNS)
        if ignored:
            logger.debug("Ignoring unsupported challenge criteria: %s", sorted(ignored))
        return await self._select(filters, options)

    async def save(self, challenge: Challenge) -> Challenge:
        """Insert or update a challenge.

        Raises:
            ChallengePersistenceError: If the write fails.
        """
        data = self._mapper.to_database(challenge)
        for column in ("created_at", "updated_at", "submitted_at", "completed_at"):
            data[column] = parse_iso(data[column])

        try:
            async with self._sessionmaker() as session:
                async with session.begin():
                    await session.merge(ChallengeRecord(**data))
        except SQLAlchemyError as e:
            logger.error("Failed to save challenge %s: %s", challenge.id, str(e))
            raise ChallengePersistenceError(
                f"Failed to save challenge {challenge.id}",
                details={"challenge_id": challenge.id},
                cause=e,
            ) from e

        logger.debug("Saved challenge %s (status=%s)", challenge.id, challenge.status.value)
        return challenge

    async def delete_by_id(self, challenge_id: str) -> bool:
        """Delete a challenge.

        Returns:
            True if a row was deleted.
        """
        try:
            async with self._sessionmaker() as session:
                async with session.begin():
                    result = await session.execute(
                        delete(ChallengeRecord).where(ChallengeRecord.id == str(challenge_id))
                    )
        except SQLAlchemyError as e:
            raise ChallengePersistenceError(
                f"Failed to delete challenge {challenge_id}",
                details={"challenge_id": str(challenge_id)},
                cause=e,
            ) from e
        return (result.rowcount or 0) > 0
