# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Immutable, self-validating value objects shared across domains.

Each value object normalizes its primitive on construction and compares
by value. The raw constructors raise ValueObjectError; the create_*
helpers (and the ``create`` classmethods) absorb that error and return
None, so coordinators can convert untrusted input and raise
their own domain error when a required value is missing. ``parse``
returns a ValueObjectResult that keeps the validation message.

Example:
    >>> email = create_email("  Ada@Example.COM ")
    >>> email.value
    'ada@example.com'
    >>> create_email("not-an-email") is None
    True
    >>> DifficultyLevel("hard").numeric_value
    3
"""

import re
import uuid
from dataclasses import dataclass, field
from typing import Any, ClassVar, Generic, TypeVar

T = TypeVar("T")


class ValueObjectError(ValueError):
    """Raised by value object constructors on invalid input."""

    pass


@dataclass(frozen=True)
class ValueObjectResult(Generic[T]):
    """Outcome of parsing a primitive into a value object.

    Attributes:
        value: The value object, or None when parsing failed.
        error: Validation message when parsing failed.
    """

    value: T | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        """Whether parsing succeeded."""
        return self.value is not None


class _ValueObject:
    """Mixin providing the safe construction helpers."""

    @classmethod
    def parse(cls, raw: Any) -> ValueObjectResult:
        """Parse a primitive, keeping the error message on failure."""
        if isinstance(raw, cls):
            return ValueObjectResult(value=raw)
        try:
            return ValueObjectResult(value=cls(raw))
        except (ValueError, TypeError) as e:
            return ValueObjectResult(error=str(e))

    @classmethod
    def create(cls, raw: Any):
        """Build the value object or return None if raw is invalid."""
        return cls.parse(raw).value


# =============================================================================
# Email
# =============================================================================

_EMAIL_PATTERN = re.compile(
    r"^[a-z0-9.!#$%&'*+/=?^_`{|}~-]+@[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?"
    r"(?:\.[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?)+$"
)


@dataclass(frozen=True)
class Email(_ValueObject):
    """Lower-cased, syntactically valid email address."""

    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str):
            raise ValueObjectError(f"Email must be a string, got {type(self.value).__name__}")
        normalized = self.value.strip().lower()
        if not normalized or len(normalized) > 254 or not _EMAIL_PATTERN.match(normalized):
            raise ValueObjectError(f"Invalid email address: {self.value!r}")
        object.__setattr__(self, "value", normalized)

    @property
    def local_part(self) -> str:
        return self.value.split("@", 1)[0]

    @property
    def domain(self) -> str:
        return self.value.split("@", 1)[1]

    def __str__(self) -> str:
        return self.value


# =============================================================================
# Identifiers
# =============================================================================

_SLUG_ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.:-]{0,127}$")
_PREFIXED_ID_PATTERN = re.compile(r"^[a-z][a-z0-9_]*-\d{10,13}-\d+$")


def _as_uuid(raw: str) -> str | None:
    try:
        return str(uuid.UUID(raw))
    except ValueError:
        return None


@dataclass(frozen=True)
class UserId(_ValueObject):
    """User identifier: a UUID or an opaque slug issued by the user store."""

    value: str

    def __post_init__(self) -> None:
        if isinstance(self.value, uuid.UUID):
            object.__setattr__(self, "value", str(self.value))
            return
        if not isinstance(self.value, str):
            raise ValueObjectError(f"UserId must be a string, got {type(self.value).__name__}")
        raw = self.value.strip()
        canonical = _as_uuid(raw)
        if canonical is None and not _SLUG_ID_PATTERN.match(raw):
            raise ValueObjectError(f"Invalid user id: {self.value!r}")
        object.__setattr__(self, "value", canonical or raw)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ChallengeId(_ValueObject):
    """Challenge identifier.

    Either a UUID (canonical lower-case form) or the legacy
    ``prefix-timestamp-number`` form, e.g. ``challenge-1700000000000-42``.
    """

    value: str

    def __post_init__(self) -> None:
        if isinstance(self.value, uuid.UUID):
            object.__setattr__(self, "value", str(self.value))
            return
        if not isinstance(self.value, str):
            raise ValueObjectError(
                f"ChallengeId must be a string, got {type(self.value).__name__}"
            )
        raw = self.value.strip()
        if not raw:
            raise ValueObjectError("ChallengeId cannot be empty")
        canonical = _as_uuid(raw)
        if canonical is None and not _PREFIXED_ID_PATTERN.match(raw):
            raise ValueObjectError(f"Invalid challenge id: {self.value!r}")
        object.__setattr__(self, "value", canonical or raw)

    @classmethod
    def generate(cls) -> "ChallengeId":
        """Create a fresh UUID-based identifier."""
        return cls(str(uuid.uuid4()))

    @property
    def is_uuid(self) -> bool:
        return _as_uuid(self.value) is not None

    def __str__(self) -> str:
        return self.value


# =============================================================================
# FocusArea
# =============================================================================

_FOCUS_AREA_CODE = re.compile(r"^[a-z][a-z0-9]*(?:_[a-z0-9]+)*$")


@dataclass(frozen=True)
class FocusArea(_ValueObject):
    """Topical category expressed as a canonical snake_case code.

    Accepts the code itself, its display name ("AI Ethics") or kebab and
    space separated variants ("ai-ethics"). Codes outside KNOWN_AREAS
    are accepted when well formed, since generated challenges may
    introduce new areas; ``is_known`` tells them apart.
    """

    KNOWN_AREAS: ClassVar[dict[str, str]] = {
        "ai_ethics": "AI Ethics",
        "ai_literacy": "AI Literacy",
        "human_ai_collaboration": "Human-AI Collaboration",
        "critical_thinking": "Critical Thinking",
        "critical_thinking_ai": "Critical Thinking with AI",
        "creative_thinking": "Creative Thinking",
        "ethical_decision_making": "Ethical Decision Making",
        "prompt_engineering": "Prompt Engineering",
        "problem_solving": "Problem Solving",
        "systems_thinking": "Systems Thinking",
        "communication": "Communication",
        "future_thinking": "Future Thinking",
    }

    value: str
    display_name: str = field(default="", compare=False)

    def __post_init__(self) -> None:
        if not isinstance(self.value, str):
            raise ValueObjectError(
                f"FocusArea must be a string, got {type(self.value).__name__}"
            )
        code = self.to_code(self.value)
        if not code or not _FOCUS_AREA_CODE.match(code):
            raise ValueObjectError(f"Invalid focus area: {self.value!r}")
        object.__setattr__(self, "value", code)
        object.__setattr__(self, "display_name", self.to_display_name(code))

    @classmethod
    def to_code(cls, raw: str) -> str:
        """Map a display name or loose spelling to its snake_case code."""
        stripped = raw.strip()
        for code, name in cls.KNOWN_AREAS.items():
            if stripped.lower() == name.lower():
                return code
        code = re.sub(r"[\s\-/]+", "_", stripped.lower())
        return re.sub(r"_+", "_", code).strip("_")

    @classmethod
    def to_display_name(cls, code: str) -> str:
        """Map a code to its human readable name."""
        if code in cls.KNOWN_AREAS:
            return cls.KNOWN_AREAS[code]
        return " ".join(
            part.upper() if part == "ai" else part.capitalize() for part in code.split("_")
        )

    @property
    def code(self) -> str:
        return self.value

    @property
    def is_known(self) -> bool:
        return self.value in self.KNOWN_AREAS

    def __str__(self) -> str:
        return self.value


# =============================================================================
# DifficultyLevel
# =============================================================================


@dataclass(frozen=True)
class DifficultyLevel(_ValueObject):
    """Difficulty tier with a 1-4 numeric scale.

    Canonical names are easy, medium, hard and expert; beginner,
    intermediate and advanced are accepted as synonyms. Integers 1-4
    (or their string forms) are accepted too.
    """

    TIERS: ClassVar[dict[str, int]] = {
        "easy": 1,
        "medium": 2,
        "hard": 3,
        "expert": 4,
    }
    SYNONYMS: ClassVar[dict[str, str]] = {
        "beginner": "easy",
        "intermediate": "medium",
        "advanced": "hard",
    }

    value: str

    def __post_init__(self) -> None:
        raw = self.value
        if isinstance(raw, bool):
            raise ValueObjectError(f"Invalid difficulty level: {raw!r}")
        if isinstance(raw, int):
            name = self._name_for_tier(raw)
        elif isinstance(raw, str):
            key = raw.strip().lower()
            if key.isascii() and key.isdecimal():
                name = self._name_for_tier(int(key))
            else:
                name = self.SYNONYMS.get(key, key)
                if name not in self.TIERS:
                    raise ValueObjectError(f"Invalid difficulty level: {raw!r}")
        else:
            raise ValueObjectError(
                f"DifficultyLevel must be a string or int, got {type(raw).__name__}"
            )
        object.__setattr__(self, "value", name)

    @classmethod
    def _name_for_tier(cls, tier: int) -> str:
        for name, numeric in cls.TIERS.items():
            if numeric == tier:
                return name
        raise ValueObjectError(f"Difficulty tier out of range 1-4: {tier}")

    @property
    def numeric_value(self) -> int:
        return self.TIERS[self.value]

    def is_higher_than(self, other: "DifficultyLevel") -> bool:
        return self.numeric_value > other.numeric_value

    def is_lower_than(self, other: "DifficultyLevel") -> bool:
        return self.numeric_value < other.numeric_value

    def __str__(self) -> str:
        return self.value


# =============================================================================
# TraitScore
# =============================================================================


@dataclass(frozen=True)
class TraitScore(_ValueObject):
    """Personality trait assessment on a 0-100 scale."""

    trait: str
    score: float = 50.0

    def __post_init__(self) -> None:
        if not isinstance(self.trait, str) or not self.trait.strip():
            raise ValueObjectError("Trait name cannot be empty")
        if isinstance(self.score, bool) or not isinstance(self.score, (int, float)):
            raise ValueObjectError(f"Trait score must be numeric, got {self.score!r}")
        if not 0 <= self.score <= 100:
            raise ValueObjectError(f"Trait score must be between 0 and 100, got {self.score}")
        trait = re.sub(r"[\s\-]+", "_", self.trait.strip().lower())
        object.__setattr__(self, "trait", trait)
        object.__setattr__(self, "score", float(self.score))

    @classmethod
    def parse(cls, raw: Any) -> ValueObjectResult:
        """Parse a (trait, score) pair or a mapping with those keys."""
        if isinstance(raw, cls):
            return ValueObjectResult(value=raw)
        try:
            if isinstance(raw, dict):
                return ValueObjectResult(value=cls(raw.get("trait"), raw.get("score", 50.0)))
            trait, score = raw
            return ValueObjectResult(value=cls(trait, score))
        except (ValueObjectError, TypeError, ValueError) as e:
            return ValueObjectResult(error=str(e))

    @property
    def level(self) -> str:
        if self.score >= 70:
            return "high"
        if self.score >= 40:
            return "medium"
        return "low"


# =============================================================================
# Safe factories
# =============================================================================

VO = TypeVar("VO", bound=_ValueObject)


def create_email(value: Any) -> Email | None:
    """Build an Email or return None."""
    return Email.create(value)


def create_user_id(value: Any) -> UserId | None:
    """Build a UserId or return None."""
    return UserId.create(value)


def create_challenge_id(value: Any) -> ChallengeId | None:
    """Build a ChallengeId or return None."""
    return ChallengeId.create(value)


def create_focus_area(value: Any) -> FocusArea | None:
    """Build a FocusArea or return None."""
    return FocusArea.create(value)


def create_difficulty_level(value: Any) -> DifficultyLevel | None:
    """Build a DifficultyLevel or return None."""
    return DifficultyLevel.create(value)


def create_trait_score(trait: Any, score: Any = 50.0) -> TraitScore | None:
    """Build a TraitScore or return None."""
    return TraitScore.create((trait, score))


def ensure_vo(value: Any, cls: type[VO]) -> VO | None:
    """Return value unchanged if it already is a cls instance, else parse it."""
    if value is None:
        return None
    if isinstance(value, cls):
        return value
    return cls.create(value)
