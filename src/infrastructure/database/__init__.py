# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database infrastructure for PostgreSQL connections.

This package provides the SQLAlchemy async engine/session management and
the ORM models for persisted challenges.

Example:
    from src.infrastructure.database import get_session, ChallengeRecord

    async with get_session() as session:
        record = await session.get(ChallengeRecord, challenge_id)
"""

from src.infrastructure.database.connection import (
    DatabaseError,
    check_database_connection,
    close_database,
    create_schema,
    get_engine,
    get_session,
    get_sessionmaker,
    init_database,
)
from src.infrastructure.database.models import Base, ChallengeRecord, TimestampMixin

__all__ = [
    "DatabaseError",
    "check_database_connection",
    "close_database",
    "create_schema",
    "get_engine",
    "get_session",
    "get_sessionmaker",
    "init_database",
    # Models
    "Base",
    "ChallengeRecord",
    "TimestampMixin",
]
