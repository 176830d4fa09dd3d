# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Construction of new Challenge entities.

The factory turns loosely typed input into a fresh, valid, pending
Challenge: identity values are normalized through value objects,
defaults are filled in and a CREATED domain event is recorded.
"""

import copy
import logging
from typing import Any, Mapping

from src.domains.challenge.catalog import ChallengeCatalog
from src.domains.challenge.exceptions import ChallengeValidationError
from src.domains.challenge.models import Challenge, ChallengeStatus
from src.domains.common.value_objects import (
    ChallengeId,
    DifficultyLevel,
    Email,
    FocusArea,
    UserId,
)
from src.infrastructure.events.types import EventTypes
from src.utils.datetime import utc_now

logger = logging.getLogger(__name__)

DEFAULT_DIFFICULTY = "intermediate"

# Fields copied from a template into a new challenge.
TEMPLATE_FIELDS = (
    "title",
    "description",
    "content",
    "questions",
    "challenge_type",
    "format_type",
    "difficulty",
    "focus_area",
    "evaluation_criteria",
    "difficulty_settings",
)


class ChallengeFactory:
    """Builds new challenges from raw data or templates.

    Example:
        factory = ChallengeFactory()
        challenge = factory.create_challenge({
            "user_email": "ada@example.com",
            "focus_area": "AI Ethics",
            "challenge_type": "Ethical Dilemma",
        })
        challenge.difficulty  # 'medium'
        challenge.challenge_type  # 'ethical-dilemma'
    """

    def __init__(
        self,
        default_difficulty: str = DEFAULT_DIFFICULTY,
        catalog: ChallengeCatalog | None = None,
    ) -> None:
        level = DifficultyLevel.create(default_difficulty)
        if level is None:
            raise ValueError(f"Invalid default difficulty: {default_difficulty!r}")
        self._default_difficulty = level
        self._catalog = catalog or ChallengeCatalog()

    @property
    def catalog(self) -> ChallengeCatalog:
        return self._catalog

    @staticmethod
    def calculate_default_difficulty_settings(level: Any = None) -> dict[str, Any]:
        """Complexity, depth and time allocation (seconds) for a tier.

        Hard and expert challenges get 0.8/0.8/600s, medium 0.6/0.6/480s,
        easy 0.4/0.4/360s. Unknown input is treated as medium.
        """
        difficulty = DifficultyLevel.create(level) or DifficultyLevel("medium")
        tier = difficulty.numeric_value
        if tier >= 3:
            weight, seconds = 0.8, 600
        elif tier == 2:
            weight, seconds = 0.6, 480
        else:
            weight, seconds = 0.4, 360
        return {
            "level": difficulty.value,
            "complexity": weight,
            "depth": weight,
            "time_allocation": seconds,
        }

    @staticmethod
    def _require_vo(value: Any, vo_type: type, field_name: str) -> Any:
        result = vo_type.parse(value)
        if not result.ok:
            raise ChallengeValidationError(
                f"Invalid {field_name}: {result.error}",
                details={field_name: value if isinstance(value, str) else str(value)},
            )
        return result.value

    def create_challenge(self, data: Mapping[str, Any]) -> Challenge:
        """Create a fresh pending challenge.

        Args:
            data: Challenge fields. ``user_email``, ``user_id``,
                ``focus_area`` and ``difficulty`` may be primitives or
                value objects. Missing ``id`` gets a new UUID and missing
                ``difficulty`` defaults to intermediate (medium).
                ``challenge_type`` and ``format_type`` must be active
                catalog entries and are stored as canonical codes.

        Returns:
            The new Challenge, with a CREATED event recorded.

        Raises:
            ChallengeValidationError: If data is missing or any supplied
                value is invalid.
        """
        if not isinstance(data, Mapping):
            raise ChallengeValidationError("Challenge data is required")

        user_email = data.get("user_email")
        email = self._require_vo(user_email, Email, "user_email") if user_email else None
        user_id = data.get("user_id")
        uid = self._require_vo(user_id, UserId, "user_id") if user_id else None
        focus_area = data.get("focus_area")
        area = self._require_vo(focus_area, FocusArea, "focus_area") if focus_area else None
        raw_difficulty = data.get("difficulty")
        difficulty = (
            self._require_vo(raw_difficulty, DifficultyLevel, "difficulty")
            if raw_difficulty
            else self._default_difficulty
        )
        raw_type = data.get("challenge_type")
        challenge_type = self._catalog.resolve_challenge_type(raw_type) if raw_type else None
        raw_format = data.get("format_type")
        format_type = self._catalog.resolve_format_type(raw_format) if raw_format else None

        challenge_id = data.get("id") or ChallengeId.generate().value
        now = utc_now()

        challenge = Challenge(
            id=str(challenge_id),
            title=data.get("title") or "",
            description=data.get("description") or "",
            content=copy.deepcopy(data.get("content")) or {},
            questions=copy.deepcopy(data.get("questions")) or [],
            challenge_type=challenge_type,
            format_type=format_type,
            difficulty=difficulty.value,
            focus_area=area.code if area else None,
            user_id=uid.value if uid else None,
            user_email=email.value if email else None,
            evaluation_criteria=copy.deepcopy(data.get("evaluation_criteria")) or [],
            difficulty_settings=copy.deepcopy(data.get("difficulty_settings"))
            or self.calculate_default_difficulty_settings(difficulty),
            status=ChallengeStatus.PENDING,
            created_at=now,
            updated_at=now,
        )

        challenge.add_domain_event(
            EventTypes.Challenge.CREATED,
            {
                "challenge_type": challenge.challenge_type,
                "focus_area": challenge.focus_area,
                "difficulty": challenge.difficulty,
                "user_email": challenge.user_email,
                "user_id": challenge.user_id,
            },
        )
        logger.debug("Created challenge %s", challenge.id)
        return challenge

    def create_from_template(
        self,
        template: Challenge | Mapping[str, Any] | None,
        user_info: Mapping[str, Any] | None,
    ) -> Challenge:
        """Clone a template for a user.

        The copy gets a new id, new timestamps and pending status; no
        responses or evaluation are carried over.

        Args:
            template: Challenge or record to copy.
            user_info: Must contain ``email`` or ``user_id``.

        Raises:
            ChallengeValidationError: If the template or user identity is
                missing.
        """
        if template is None:
            raise ChallengeValidationError("Template is required to create a challenge")
        source = template.to_dict() if isinstance(template, Challenge) else dict(template)

        user_info = user_info or {}
        email = user_info.get("email") or user_info.get("user_email")
        user_id = user_info.get("user_id") or user_info.get("id")
        if not email and not user_id:
            raise ChallengeValidationError(
                "User email or user id is required to create a challenge from a template"
            )

        data = {name: source.get(name) for name in TEMPLATE_FIELDS}
        data["user_email"] = email
        data["user_id"] = user_id
        return self.create_challenge(data)
