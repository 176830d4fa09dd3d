# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Mapping between persisted challenge records and Challenge entities.

Records use snake_case keys and keep nested structures (content,
questions, responses, evaluation, evaluation_criteria,
difficulty_settings) as JSON. Older rows stored those as JSON-encoded
text, and some were written with camelCase keys; both are accepted on
read. Malformed JSON never aborts a read: the field falls back to a safe
default and a warning is logged. A stored row that breaks a lifecycle
rule (for instance a completed row whose evaluation was lost to bad
JSON) is logged at ERROR and loaded without the lifecycle checks.

Round trip: ``to_database(to_domain(record)) == record`` for records in
canonical form (decoded nested fields, ISO timestamps with offset).
"""

import json
import logging
from typing import Any, Iterable, Mapping

from src.domains.challenge.exceptions import (
    ChallengeError,
    ChallengeInvalidStateError,
    ChallengeValidationError,
)
from src.domains.challenge.models import Challenge
from src.utils.datetime import format_iso

logger = logging.getLogger(__name__)

# snake_case column -> legacy camelCase key
_LEGACY_KEYS = {
    "challenge_type": "challengeType",
    "format_type": "formatType",
    "focus_area": "focusArea",
    "user_id": "userId",
    "user_email": "userEmail",
    "evaluation_criteria": "evaluationCriteria",
    "difficulty_settings": "difficultySettings",
    "created_at": "createdAt",
    "updated_at": "updatedAt",
    "submitted_at": "submittedAt",
    "completed_at": "completedAt",
}


class ChallengeMapper:
    """Converts between record dicts and Challenge entities."""

    @staticmethod
    def _get(record: Mapping[str, Any], key: str) -> Any:
        if key in record:
            return record[key]
        legacy = _LEGACY_KEYS.get(key)
        if legacy is not None:
            return record.get(legacy)
        return None

    @staticmethod
    def _safe_json(
        value: Any,
        default: Any,
        field_name: str,
        degraded: list[str] | None = None,
    ) -> Any:
        """Decode JSON text, returning default when it is malformed.

        Names of fields that fell back are appended to ``degraded``.
        """
        if value is None or value == "":
            return default
        if not isinstance(value, (str, bytes)):
            return value
        try:
            return json.loads(value)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning(
                "Malformed JSON in challenge field %s: %s",
                field_name,
                str(e),
            )
            if degraded is not None:
                degraded.append(field_name)
            return default

    @classmethod
    def _parse_content(cls, value: Any) -> dict[str, Any]:
        if isinstance(value, str):
            stripped = value.strip()
            if stripped.startswith("{"):
                parsed = cls._safe_json(stripped, None, "content")
                if isinstance(parsed, dict):
                    return parsed
            return {"instructions": value} if value else {}
        if isinstance(value, dict):
            return value
        if value is None:
            return {}
        return {"instructions": str(value)}

    @classmethod
    def _parse_list(
        cls, value: Any, field_name: str, degraded: list[str] | None = None
    ) -> list[Any]:
        parsed = cls._safe_json(value, [], field_name, degraded)
        if isinstance(parsed, list):
            return parsed
        return [parsed] if parsed else []

    @classmethod
    def _parse_mapping(
        cls, value: Any, field_name: str, default: Any, degraded: list[str] | None = None
    ) -> Any:
        parsed = cls._safe_json(value, default, field_name, degraded)
        if parsed is None or isinstance(parsed, dict):
            return parsed
        logger.warning(
            "Expected an object in challenge field %s, got %s",
            field_name,
            type(parsed).__name__,
        )
        if degraded is not None:
            degraded.append(field_name)
        return default

    @staticmethod
    def _parse_score(value: Any) -> float | None:
        if value is None or value == "" or isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            return value
        try:
            return float(value)
        except (TypeError, ValueError):
            logger.warning("Unparsable challenge score: %r", value)
            return None

    @classmethod
    def to_domain(cls, record: Mapping[str, Any] | None) -> Challenge | None:
        """Build a Challenge from a persisted record.

        Args:
            record: Row as a mapping, or None.

        Returns:
            The entity, or None when record is None.

        Raises:
            ChallengeValidationError: If the record cannot form a valid entity.
        """
        if record is None:
            return None
        if not isinstance(record, Mapping):
            raise ChallengeValidationError(
                f"Challenge record must be a mapping, got {type(record).__name__}"
            )

        def get(key: str) -> Any:
            return cls._get(record, key)

        degraded: list[str] = []

        # Evaluation criteria were historically lists; newer generators
        # return a mapping of criterion -> description.
        criteria = cls._safe_json(
            get("evaluation_criteria"), [], "evaluation_criteria", degraded
        )
        if criteria is None:
            criteria = []
        questions = cls._parse_list(get("questions"), "questions", degraded)
        responses = cls._parse_list(get("responses"), "responses", degraded)
        evaluation = cls._parse_mapping(get("evaluation"), "evaluation", None, degraded)
        difficulty_settings = cls._parse_mapping(
            get("difficulty_settings"), "difficulty_settings", {}, degraded
        )

        values = dict(
            id=get("id"),
            title=get("title") or "",
            description=get("description") or "",
            content=cls._parse_content(get("content")),
            questions=questions,
            challenge_type=get("challenge_type") or None,
            format_type=get("format_type") or None,
            difficulty=get("difficulty") or None,
            focus_area=get("focus_area") or None,
            user_id=get("user_id") or None,
            user_email=get("user_email") or None,
            responses=responses,
            evaluation=evaluation,
            evaluation_criteria=criteria,
            difficulty_settings=difficulty_settings or {},
            score=cls._parse_score(get("score")),
            status=get("status") or "pending",
            created_at=get("created_at"),
            updated_at=get("updated_at"),
            submitted_at=get("submitted_at"),
            completed_at=get("completed_at"),
        )

        try:
            try:
                return Challenge(**values)
            except ChallengeInvalidStateError as e:
                # Stored rows are loaded even when they break a lifecycle
                # rule, e.g. a completed row whose evaluation JSON was lost.
                logger.error(
                    "Stored challenge %s is inconsistent (%s); unreadable fields: %s",
                    record.get("id"),
                    e.message,
                    ", ".join(degraded) or "none",
                )
                return Challenge(**values, check_lifecycle=False)
        except ChallengeError:
            raise
        except (TypeError, ValueError) as e:
            raise ChallengeValidationError(
                f"Challenge record could not be mapped: {e}",
                details={"id": record.get("id")},
                cause=e,
            ) from e

    @staticmethod
    def to_database(challenge: Challenge | None) -> dict[str, Any] | None:
        """Produce the persisted record for an entity."""
        if challenge is None:
            return None
        return {
            "id": challenge.id,
            "title": challenge.title,
            "description": challenge.description,
            "content": dict(challenge.content),
            "questions": list(challenge.questions),
            "challenge_type": challenge.challenge_type,
            "format_type": challenge.format_type,
            "difficulty": challenge.difficulty,
            "focus_area": challenge.focus_area,
            "user_id": challenge.user_id,
            "user_email": challenge.user_email,
            "responses": [dict(r) for r in challenge.responses],
            "evaluation": dict(challenge.evaluation) if challenge.evaluation is not None else None,
            "evaluation_criteria": challenge.evaluation_criteria,
            "difficulty_settings": dict(challenge.difficulty_settings),
            "score": challenge.score,
            "status": challenge.status.value,
            "created_at": format_iso(challenge.created_at),
            "updated_at": format_iso(challenge.updated_at),
            "submitted_at": format_iso(challenge.submitted_at),
            "completed_at": format_iso(challenge.completed_at),
        }

    @classmethod
    def to_domain_collection(cls, records: Iterable[Mapping[str, Any]] | None) -> list[Challenge]:
        """Map many records, skipping (and logging) the ones that fail."""
        if records is None:
            return []
        challenges = []
        for index, record in enumerate(records):
            try:
                challenge = cls.to_domain(record)
            except ChallengeError as e:
                logger.warning(
                    "Skipping challenge record at index %d: %s",
                    index,
                    str(e),
                )
                continue
            if challenge is not None:
                challenges.append(challenge)
        return challenges

    @classmethod
    def to_database_collection(cls, challenges: Iterable[Challenge] | None) -> list[dict[str, Any]]:
        if challenges is None:
            return []
        return [cls.to_database(c) for c in challenges if c is not None]
