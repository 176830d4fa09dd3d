# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""SQLAlchemy ORM models.

The challenges table keeps the persisted (snake_case) representation of
a Challenge. Nested structures are stored in JSON columns; the domain
mapper still re-parses them because legacy rows hold them as
JSON-encoded text.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Float, String, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""

    pass


class TimestampMixin:
    """Adds created_at/updated_at columns."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class ChallengeRecord(TimestampMixin, Base):
    """Persisted challenge row."""

    __tablename__ = "challenges"

    COLUMNS = (
        "id",
        "title",
        "description",
        "content",
        "questions",
        "challenge_type",
        "format_type",
        "difficulty",
        "focus_area",
        "user_id",
        "user_email",
        "responses",
        "evaluation",
        "evaluation_criteria",
        "difficulty_settings",
        "score",
        "status",
        "created_at",
        "updated_at",
        "submitted_at",
        "completed_at",
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    content: Mapped[Any] = mapped_column(JSON, nullable=True)
    questions: Mapped[Any] = mapped_column(JSON, nullable=True)
    challenge_type: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    format_type: Mapped[str | None] = mapped_column(String(64), nullable=True)
    difficulty: Mapped[str | None] = mapped_column(String(32), nullable=True)
    focus_area: Mapped[str | None] = mapped_column(String(128), nullable=True, index=True)
    user_id: Mapped[str | None] = mapped_column(String(128), nullable=True, index=True)
    user_email: Mapped[str | None] = mapped_column(String(254), nullable=True, index=True)
    responses: Mapped[Any] = mapped_column(JSON, nullable=True)
    evaluation: Mapped[Any] = mapped_column(JSON, nullable=True)
    evaluation_criteria: Mapped[Any] = mapped_column(JSON, nullable=True)
    difficulty_settings: Mapped[Any] = mapped_column(JSON, nullable=True)
    score: Mapped[float | None] = mapped_column(Float, nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending", index=True)
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def to_dict(self) -> dict[str, Any]:
        """Return the row as a plain record dict."""
        return {column: getattr(self, column) for column in self.COLUMNS}

    def __repr__(self) -> str:
        return f"<ChallengeRecord id={self.id} status={self.status}>"
