# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for SQLAlchemyChallengeRepository.

The async sessionmaker is mocked; these tests check what the repository
asks of the session and how results and errors are translated.
"""

from datetime import datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from src.domains.challenge.exceptions import ChallengePersistenceError
from src.domains.challenge.repository import (
    MAX_LIMIT,
    ChallengeRepository,
    SQLAlchemyChallengeRepository,
)
from src.infrastructure.database.models import ChallengeRecord
from src.utils.datetime import parse_iso


def _async_cm(target: MagicMock) -> MagicMock:
    """Make a MagicMock usable with ``async with`` yielding target."""
    target.__aenter__ = AsyncMock(return_value=target)
    target.__aexit__ = AsyncMock(return_value=False)
    return target


@pytest.fixture
def session() -> MagicMock:
    """Create a mock AsyncSession."""
    mock_session = _async_cm(MagicMock())
    mock_session.get = AsyncMock(return_value=None)
    mock_session.merge = AsyncMock()
    mock_session.execute = AsyncMock()
    mock_session.begin = MagicMock(side_effect=lambda: _async_cm(MagicMock()))
    return mock_session


@pytest.fixture
def repository(session) -> SQLAlchemyChallengeRepository:
    """Create a repository over the mock session."""
    return SQLAlchemyChallengeRepository(MagicMock(return_value=session))


@pytest.fixture
def stored_record(challenge_record) -> ChallengeRecord:
    """A ChallengeRecord as loaded from the database."""
    data = dict(challenge_record)
    for column in ("created_at", "updated_at", "submitted_at", "completed_at"):
        data[column] = parse_iso(data[column])
    return ChallengeRecord(**data)


def _query_result(records: list) -> MagicMock:
    result = MagicMock()
    result.scalars.return_value.all.return_value = records
    return result


class TestProtocol:
    """The implementation satisfies the repository contract."""

    def test_is_a_challenge_repository(self, repository):
        """Runtime protocol check passes."""
        assert isinstance(repository, ChallengeRepository)


class TestFindById:
    """Tests for find_by_id."""

    @pytest.mark.asyncio
    async def test_returns_entity(self, repository, session, stored_record, challenge_record):
        """A stored row is mapped to a Challenge."""
        session.get.return_value = stored_record

        challenge = await repository.find_by_id(challenge_record["id"])

        assert challenge.id == challenge_record["id"]
        assert challenge.focus_area == "ai_ethics"
        session.get.assert_awaited_once_with(ChallengeRecord, challenge_record["id"])

    @pytest.mark.asyncio
    async def test_missing_returns_none(self, repository):
        """A missing row maps to None."""
        assert await repository.find_by_id("challenge-1700000000000-1") is None

    @pytest.mark.asyncio
    async def test_database_error_translated(self, repository, session):
        """SQLAlchemy errors become ChallengePersistenceError."""
        session.get.side_effect = OperationalError("SELECT", {}, Exception("gone"))

        with pytest.raises(ChallengePersistenceError) as exc_info:
            await repository.find_by_id("challenge-1700000000000-1")

        assert isinstance(exc_info.value.cause, OperationalError)


class TestQueries:
    """Tests for the list queries."""

    @pytest.mark.asyncio
    async def test_find_by_user_email(self, repository, session, stored_record):
        """Rows are filtered by email and mapped."""
        session.execute.return_value = _query_result([stored_record])

        challenges = await repository.find_by_user_email("ada@example.com")

        assert [c.id for c in challenges] == [stored_record.id]
        statement = str(session.execute.await_args.args[0])
        assert "challenges.user_email" in statement
        assert "ORDER BY challenges.created_at DESC" in statement

    @pytest.mark.asyncio
    async def test_find_by_user_id(self, repository, session):
        """Rows are filtered by user id."""
        session.execute.return_value = _query_result([])

        assert await repository.find_by_user_id("user_42", {"order": "asc"}) == []
        statement = str(session.execute.await_args.args[0])
        assert "challenges.user_id" in statement
        assert "ORDER BY challenges.created_at ASC" in statement

    @pytest.mark.asyncio
    async def test_find_by_criteria_ignores_unknown_keys(self, repository, session):
        """Only indexed columns are used as filters."""
        session.execute.return_value = _query_result([])

        await repository.find_by_criteria({"focus_area": "ai_ethics", "colour": "blue", "status": None})

        statement = str(session.execute.await_args.args[0])
        assert "challenges.focus_area" in statement
        assert "colour" not in statement
        assert "challenges.status =" not in statement

    def test_paging_is_clamped(self):
        """Limits are bounded and offsets are non-negative."""
        assert SQLAlchemyChallengeRepository._page({"limit": 10_000, "offset": -5}) == (
            MAX_LIMIT,
            0,
            False,
        )
        assert SQLAlchemyChallengeRepository._page(None) == (50, 0, False)

    @pytest.mark.asyncio
    async def test_query_error_translated(self, repository, session):
        """Query failures become ChallengePersistenceError."""
        session.execute.side_effect = OperationalError("SELECT", {}, Exception("gone"))

        with pytest.raises(ChallengePersistenceError):
            await repository.find_by_criteria({"status": "pending"})


class TestSave:
    """Tests for save."""

    @pytest.mark.asyncio
    async def test_merges_record(self, repository, session, pending_challenge):
        """The entity is merged as a ChallengeRecord with datetime columns."""
        saved = await repository.save(pending_challenge)

        assert saved is pending_challenge
        record = session.merge.await_args.args[0]
        assert isinstance(record, ChallengeRecord)
        assert record.id == pending_challenge.id
        assert record.status == "pending"
        assert isinstance(record.created_at, datetime)
        session.begin.assert_called_once()

    @pytest.mark.asyncio
    async def test_write_error_translated(self, repository, session, pending_challenge):
        """Write failures become ChallengePersistenceError."""
        session.merge.side_effect = OperationalError("INSERT", {}, Exception("gone"))

        with pytest.raises(ChallengePersistenceError):
            await repository.save(pending_challenge)


class TestDelete:
    """Tests for delete_by_id."""

    @pytest.mark.asyncio
    async def test_reports_deleted_row(self, repository, session):
        """True when a row was removed."""
        session.execute.return_value = MagicMock(rowcount=1)

        assert await repository.delete_by_id("challenge-1700000000000-1") is True

    @pytest.mark.asyncio
    async def test_reports_missing_row(self, repository, session):
        """False when nothing matched."""
        session.execute.return_value = MagicMock(rowcount=0)

        assert await repository.delete_by_id("challenge-1700000000000-1") is False
