# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Challenge entity and lifecycle state machine.

A challenge moves through three states and never leaves the last one:

    pending ──submit_responses()──▶ submitted ──complete()──▶ completed

Every construction and every ``update()`` re-checks the entity
invariants, so an instance that exists is consistent (stored rows with
unreadable nested JSON are the one exception, see ChallengeMapper):

- ``id`` is a valid ChallengeId
- completed implies an evaluation and at least one response
- submitted implies at least one response
- an evaluation is only present on a completed challenge
- ``submitted_at`` is only set once submitted, ``completed_at`` only
  once completed

State changes are recorded as DomainEvent objects on the entity. They
are not published here: the service layer drains them with
``pull_domain_events()`` after the write succeeded.

Example:
    >>> challenge = Challenge(id=str(uuid4()), content={"instructions": "..."})
    >>> challenge.submit_responses(["My answer"])
    >>> challenge.complete({"score": 85, "feedback": "Good job"})
    >>> challenge.get_score()
    85
"""

import logging
from collections.abc import Mapping
from dataclasses import InitVar, dataclass, field, fields
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from src.domains.challenge.exceptions import (
    ChallengeError,
    ChallengeInvalidStateError,
    ChallengeValidationError,
)
from src.domains.common.value_objects import (
    ChallengeId,
    DifficultyLevel,
    Email,
    FocusArea,
    UserId,
)
from src.infrastructure.events.types import EventTypes
from src.utils.datetime import format_iso, minutes_between, parse_iso, utc_now

logger = logging.getLogger(__name__)


class ChallengeStatus(str, Enum):
    """Canonical challenge lifecycle states."""

    PENDING = "pending"
    SUBMITTED = "submitted"
    COMPLETED = "completed"

    @classmethod
    def parse(cls, value: Any) -> "ChallengeStatus":
        """Resolve a status, accepting legacy synonyms.

        Raises:
            ChallengeValidationError: If the value is not a known status.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().lower()
            key = _STATUS_SYNONYMS.get(key, key)
            try:
                return cls(key)
            except ValueError:
                pass
        raise ChallengeValidationError(
            f"Invalid challenge status: {value!r}",
            details={"status": value, "allowed": [s.value for s in cls]},
        )


_STATUS_SYNONYMS = {
    "active": "pending",
    "evaluated": "completed",
}

# Base minutes per difficulty tier (1-4).
_BASE_MINUTES = {1: 5, 2: 10, 3: 15, 4: 20}
_MINUTES_PER_QUESTION = 2
_FORMAT_MULTIPLIERS = {
    "multiple_choice": 0.8,
    "open_ended": 1.2,
    "coding": 1.5,
}


@dataclass(frozen=True)
class DomainEvent:
    """A state change recorded by an aggregate, awaiting dispatch.

    Attributes:
        event_type: One of the EventTypes.Challenge constants.
        payload: Event data.
        aggregate_id: ID of the entity that recorded the event.
        event_id: Unique event identifier.
        occurred_at: When the change happened.
    """

    event_type: str
    payload: dict[str, Any]
    aggregate_id: str
    event_id: str = field(default_factory=lambda: str(uuid4()))
    occurred_at: datetime = field(default_factory=utc_now)


@dataclass(eq=False)
class Challenge:
    """A generated learning exercise and its interaction state.

    Attributes:
        id: ChallengeId string (UUID or prefix-timestamp-number).
        title: Short title.
        description: One-paragraph summary.
        content: Structured body (instructions, context, scenario).
        questions: Questions the learner answers.
        challenge_type: Challenge type code.
        format_type: Presentation format (open-ended, multiple-choice, ...).
        difficulty: Difficulty name as stored (see ``difficulty_level``).
        focus_area: Focus area code as stored (see ``focus_area_vo``).
        user_id: Owner user ID, if known.
        user_email: Owner email, if known.
        responses: Submitted responses ({id, content, question_id, timestamp}).
        evaluation: Evaluation result (score, feedback, ...) once completed.
        evaluation_criteria: Criteria produced at generation time.
        difficulty_settings: Complexity, depth and time allocation.
        score: Evaluation score once completed.
        status: Lifecycle state.
        check_lifecycle: Init-only flag; False skips the lifecycle checks
            for stored rows that break them (see ChallengeMapper).
    """

    id: str
    title: str = ""
    description: str = ""
    content: dict[str, Any] = field(default_factory=dict)
    questions: list[Any] = field(default_factory=list)
    challenge_type: str | None = None
    format_type: str | None = None
    difficulty: str | None = None
    focus_area: str | None = None
    user_id: str | None = None
    user_email: str | None = None
    responses: list[dict[str, Any]] = field(default_factory=list)
    evaluation: dict[str, Any] | None = None
    evaluation_criteria: Any = field(default_factory=list)
    difficulty_settings: dict[str, Any] = field(default_factory=dict)
    score: float | None = None
    status: ChallengeStatus = ChallengeStatus.PENDING
    created_at: datetime | None = None
    updated_at: datetime | None = None
    submitted_at: datetime | None = None
    completed_at: datetime | None = None
    _domain_events: list[DomainEvent] = field(
        default_factory=list, init=False, repr=False
    )
    check_lifecycle: InitVar[bool] = True

    def __post_init__(self, check_lifecycle: bool) -> None:
        self._normalize()
        self._enforce_invariants(lifecycle=check_lifecycle)

    # =========================================================================
    # Construction helpers
    # =========================================================================

    @classmethod
    def field_names(cls) -> tuple[str, ...]:
        """Names of the persisted fields, in declaration order."""
        return tuple(f.name for f in fields(cls) if not f.name.startswith("_"))

    def _normalize(self) -> None:
        if isinstance(self.id, (ChallengeId, str)):
            self.id = str(self.id).strip()
        self.status = ChallengeStatus.parse(self.status)

        if self.content is None:
            self.content = {}
        elif isinstance(self.content, str):
            self.content = {"instructions": self.content}

        if self.questions is None:
            self.questions = []
        if self.responses is None:
            self.responses = []
        if self.evaluation_criteria is None:
            self.evaluation_criteria = []
        if self.difficulty_settings is None:
            self.difficulty_settings = {}
        if self.title is None:
            self.title = ""
        if self.description is None:
            self.description = ""

        if isinstance(self.difficulty, DifficultyLevel):
            self.difficulty = self.difficulty.value

        # Owner and focus area are stored in canonical form; cache keys
        # for a user's lists are derived from these values.
        for name, vo_type in (
            ("user_email", Email),
            ("user_id", UserId),
            ("focus_area", FocusArea),
        ):
            value = getattr(self, name)
            if value is None or value == "":
                setattr(self, name, None)
                continue
            parsed = vo_type.parse(value)
            if not parsed.ok:
                raise ChallengeValidationError(
                    f"Invalid {name}: {value!r}",
                    details={name: str(value)},
                )
            setattr(self, name, parsed.value.value)

        self.created_at = parse_iso(self.created_at) or utc_now()
        self.updated_at = parse_iso(self.updated_at) or self.created_at
        self.submitted_at = parse_iso(self.submitted_at)
        self.completed_at = parse_iso(self.completed_at)

    def _enforce_invariants(self, lifecycle: bool = True) -> None:
        """Raise if the entity is not in a consistent state.

        With lifecycle=False only the structural checks run; the mapper
        uses this for stored rows whose nested JSON could not be read.
        """
        if ChallengeId.create(self.id) is None:
            raise ChallengeValidationError(
                f"Invalid challenge id: {self.id!r}",
                details={"id": self.id},
            )
        if not isinstance(self.content, dict):
            raise ChallengeValidationError("Challenge content must be a mapping")
        if not isinstance(self.questions, list):
            raise ChallengeValidationError("Challenge questions must be a list")
        if not isinstance(self.responses, list):
            raise ChallengeValidationError("Challenge responses must be a list")
        if self.evaluation is not None and not isinstance(self.evaluation, dict):
            raise ChallengeValidationError("Challenge evaluation must be a mapping")
        if self.difficulty is not None and DifficultyLevel.create(self.difficulty) is None:
            raise ChallengeValidationError(
                f"Invalid difficulty level: {self.difficulty!r}",
                details={"difficulty": self.difficulty},
            )
        if not lifecycle:
            return

        status = self.status.value
        has_responses = len(self.responses) > 0

        if self.status is ChallengeStatus.COMPLETED:
            if self.evaluation is None:
                raise ChallengeInvalidStateError(
                    "A completed challenge must have an evaluation",
                    current_status=status,
                )
            if not has_responses:
                raise ChallengeInvalidStateError(
                    "A completed challenge must have at least one response",
                    current_status=status,
                )
        elif self.status is ChallengeStatus.SUBMITTED and not has_responses:
            raise ChallengeInvalidStateError(
                "A submitted challenge must have at least one response",
                current_status=status,
            )

        if self.evaluation is not None and self.status is not ChallengeStatus.COMPLETED:
            raise ChallengeInvalidStateError(
                "Only a completed challenge can carry an evaluation",
                current_status=status,
            )
        if self.submitted_at is not None and self.status is ChallengeStatus.PENDING:
            raise ChallengeInvalidStateError(
                "submitted_at is set on a challenge that was never submitted",
                current_status=status,
            )
        if self.completed_at is not None and self.status is not ChallengeStatus.COMPLETED:
            raise ChallengeInvalidStateError(
                "completed_at is set on a challenge that is not completed",
                current_status=status,
            )

    # =========================================================================
    # Value object accessors
    # =========================================================================

    @property
    def challenge_id(self) -> ChallengeId:
        return ChallengeId(self.id)

    @property
    def difficulty_level(self) -> DifficultyLevel | None:
        return DifficultyLevel.create(self.difficulty) if self.difficulty else None

    @property
    def focus_area_vo(self) -> FocusArea | None:
        return FocusArea.create(self.focus_area) if self.focus_area else None

    @property
    def email_vo(self) -> Email | None:
        return Email.create(self.user_email) if self.user_email else None

    # =========================================================================
    # State queries
    # =========================================================================

    @property
    def is_draft(self) -> bool:
        """Pending and without generated content yet."""
        return self.status is ChallengeStatus.PENDING and not self.content

    @property
    def is_active(self) -> bool:
        return self.status is ChallengeStatus.PENDING

    @property
    def is_submitted(self) -> bool:
        return self.status is ChallengeStatus.SUBMITTED

    @property
    def is_completed(self) -> bool:
        return self.status is ChallengeStatus.COMPLETED

    def get_score(self) -> float | None:
        """Evaluation score, or None before completion."""
        if self.score is not None:
            return self.score
        if self.evaluation:
            return self.evaluation.get("score")
        return None

    def get_feedback(self) -> str | None:
        if not self.evaluation:
            return None
        return self.evaluation.get("feedback")

    def calculate_completion_time(self) -> float | None:
        """Minutes between creation and submission, or None if not submitted."""
        return minutes_between(self.created_at, self.submitted_at)

    def get_expected_completion_time(self) -> int:
        """Estimated minutes needed to finish the challenge.

        Base time per difficulty tier plus two minutes per question,
        scaled by the format: multiple-choice x0.8, open-ended x1.2,
        coding x1.5, anything else x1.0.
        """
        level = self.difficulty_level
        tier = level.numeric_value if level else DifficultyLevel("medium").numeric_value
        minutes = _BASE_MINUTES[tier] + _MINUTES_PER_QUESTION * len(self.questions)

        format_key = (self.format_type or "").strip().lower().replace("-", "_").replace(" ", "_")
        multiplier = _FORMAT_MULTIPLIERS.get(format_key, 1.0)
        return round(minutes * multiplier)

    # =========================================================================
    # Transitions
    # =========================================================================

    def _event_context(self) -> dict[str, Any]:
        return {
            "challenge_type": self.challenge_type,
            "focus_area": self.focus_area,
            "difficulty": self.difficulty,
        }

    @staticmethod
    def _normalize_response(item: Any, position: int, now: datetime) -> dict[str, Any]:
        if isinstance(item, str):
            if not item.strip():
                raise ChallengeValidationError(
                    f"Response {position} is empty",
                    details={"position": position},
                )
            return {
                "id": str(uuid4()),
                "content": item,
                "question_id": None,
                "timestamp": format_iso(now),
            }

        if isinstance(item, Mapping):
            content = item.get("content", item.get("response"))
            if content is None or (isinstance(content, str) and not content.strip()):
                raise ChallengeValidationError(
                    f"Response {position} has no content",
                    details={"position": position},
                )
            timestamp = parse_iso(item.get("timestamp")) or now
            return {
                "id": str(item.get("id") or uuid4()),
                "content": content,
                "question_id": item.get("question_id", item.get("questionId")),
                "timestamp": format_iso(timestamp),
            }

        raise ChallengeValidationError(
            f"Response {position} must be a string or a mapping, got {type(item).__name__}",
            details={"position": position},
        )

    def submit_responses(self, responses: Any) -> None:
        """Record the learner's responses and move to submitted.

        Args:
            responses: A list of responses, or a single one. Each is a
                string or a mapping with ``content`` (or ``response``) and
                optionally ``id``, ``question_id`` and ``timestamp``.

        Raises:
            ChallengeInvalidStateError: If the challenge is already completed.
            ChallengeValidationError: If responses are empty or malformed.
        """
        if self.is_completed:
            raise ChallengeInvalidStateError(
                "Challenge is already completed",
                current_status=self.status.value,
            )

        items = list(responses) if isinstance(responses, (list, tuple)) else [responses]
        if not items or items == [None]:
            raise ChallengeValidationError("Responses must be a non-empty list")

        now = utc_now()
        normalized = [self._normalize_response(item, i, now) for i, item in enumerate(items)]

        self.responses = [*self.responses, *normalized]
        self.status = ChallengeStatus.SUBMITTED
        self.submitted_at = now
        self.updated_at = now

        self.add_domain_event(
            EventTypes.Challenge.RESPONSE_SUBMITTED,
            {**self._event_context(), "response_count": len(self.responses)},
        )

    def complete(self, evaluation: Any) -> None:
        """Attach the evaluation and move to completed.

        Args:
            evaluation: Mapping (or pydantic model) with a numeric ``score``
                >= 0 and a non-empty ``feedback`` string.

        Raises:
            ChallengeInvalidStateError: If already completed or not submitted.
            ChallengeValidationError: If the evaluation is malformed.
        """
        if self.is_completed:
            raise ChallengeInvalidStateError(
                "Challenge is already completed",
                current_status=self.status.value,
            )
        if self.status is not ChallengeStatus.SUBMITTED or not self.responses:
            raise ChallengeInvalidStateError(
                "Challenge must be submitted before it can be completed",
                current_status=self.status.value,
            )

        if hasattr(evaluation, "model_dump"):
            evaluation = evaluation.model_dump()
        if not isinstance(evaluation, Mapping):
            raise ChallengeValidationError("Evaluation must be a mapping")

        score = evaluation.get("score")
        if isinstance(score, bool) or not isinstance(score, (int, float)) or not score >= 0:
            raise ChallengeValidationError(
                "Evaluation score must be a number >= 0",
                details={"score": score},
            )
        feedback = evaluation.get("feedback")
        if not isinstance(feedback, str) or not feedback.strip():
            raise ChallengeValidationError("Evaluation feedback must be a non-empty string")

        now = utc_now()
        self.evaluation = dict(evaluation)
        self.score = score
        self.status = ChallengeStatus.COMPLETED
        self.completed_at = now
        self.updated_at = now

        self.add_domain_event(
            EventTypes.Challenge.EVALUATED,
            {"score": score, **self._event_context()},
        )

    def update(self, changes: Mapping[str, Any]) -> "Challenge":
        """Merge field changes, keeping the lifecycle rules.

        The whole change set is applied or none of it is.

        Raises:
            ChallengeValidationError: For unknown fields, protected fields
                or values that fail validation.
            ChallengeInvalidStateError: For changes the lifecycle forbids.
        """
        names = self.field_names()
        unknown = sorted(set(changes) - set(names))
        if unknown:
            raise ChallengeValidationError(
                f"Unknown challenge fields: {', '.join(unknown)}",
                details={"fields": unknown},
            )

        if "id" in changes and str(changes["id"]) != self.id:
            raise ChallengeValidationError("Challenge id cannot be changed")
        if "created_at" in changes and parse_iso(changes["created_at"]) != self.created_at:
            raise ChallengeValidationError("Challenge created_at cannot be changed")

        if self.status is not ChallengeStatus.PENDING:
            if "responses" in changes and changes["responses"] != self.responses:
                raise ChallengeInvalidStateError(
                    "Responses cannot be changed after submission",
                    current_status=self.status.value,
                )
            for name in ("submitted_at", "completed_at"):
                if name in changes and parse_iso(changes[name]) != getattr(self, name):
                    raise ChallengeInvalidStateError(
                        f"{name} cannot be changed after submission",
                        current_status=self.status.value,
                    )

        if "status" in changes and self.is_completed:
            if ChallengeStatus.parse(changes["status"]) is not ChallengeStatus.COMPLETED:
                raise ChallengeInvalidStateError(
                    "A completed challenge cannot change status",
                    current_status=self.status.value,
                )

        snapshot = {name: getattr(self, name) for name in names}
        previous_status = self.status
        try:
            for name, value in changes.items():
                setattr(self, name, value)
            self._normalize()
            self._enforce_invariants()
        except ChallengeError:
            for name, value in snapshot.items():
                setattr(self, name, value)
            raise

        self.updated_at = utc_now()
        if self.status is not previous_status:
            self.add_domain_event(
                EventTypes.Challenge.STATUS_CHANGED,
                {
                    "previous_status": previous_status.value,
                    "new_status": self.status.value,
                },
            )
        return self

    # =========================================================================
    # Domain events
    # =========================================================================

    def add_domain_event(self, event_type: str, payload: dict[str, Any] | None = None) -> DomainEvent:
        event = DomainEvent(
            event_type=event_type,
            payload={"challenge_id": self.id, **(payload or {})},
            aggregate_id=self.id,
        )
        self._domain_events.append(event)
        return event

    @property
    def domain_events(self) -> tuple[DomainEvent, ...]:
        return tuple(self._domain_events)

    def pull_domain_events(self) -> list[DomainEvent]:
        """Return pending events and forget them."""
        events = list(self._domain_events)
        self._domain_events.clear()
        return events

    def clear_domain_events(self) -> None:
        self._domain_events.clear()

    # =========================================================================
    # Serialization
    # =========================================================================

    def to_dict(self) -> dict[str, Any]:
        """Plain representation with ISO timestamps."""
        data = {name: getattr(self, name) for name in self.field_names()}
        data["status"] = self.status.value
        for name in ("created_at", "updated_at", "submitted_at", "completed_at"):
            data[name] = format_iso(data[name])
        return data

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Challenge):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)
