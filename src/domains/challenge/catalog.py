# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Catalog of challenge types and format types.

Codes are kebab-case ("critical-thinking", "open-ended"). Lookups accept
loose spellings ("Critical Thinking", "open_ended") and resolve them to
the canonical code.

The built-in entries are the system-defined types. Deployments can
register more with ``register_challenge_type`` / ``register_format_type``.

Example:
    >>> catalog = ChallengeCatalog()
    >>> catalog.resolve_challenge_type("Ethical Dilemma")
    'ethical-dilemma'
    >>> catalog.resolve_format_type("open_ended")
    'open-ended'
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Iterable

from src.domains.challenge.exceptions import ChallengeValidationError

logger = logging.getLogger(__name__)

_CODE_PATTERN = re.compile(r"^[a-z][a-z0-9]*(?:-[a-z0-9]+)*$")


@dataclass(frozen=True)
class ChallengeTypeConfig:
    """A challenge type and where it applies.

    Attributes:
        code: Canonical kebab-case code.
        name: Display name.
        description: What the challenge type asks of the user.
        format_types: Format codes this type is usually delivered in.
        focus_areas: Focus area codes this type suits.
        is_active: Inactive types are kept for stored challenges but
            rejected for new ones.
    """

    code: str
    name: str
    description: str = ""
    format_types: tuple[str, ...] = ()
    focus_areas: tuple[str, ...] = ()
    is_active: bool = True


@dataclass(frozen=True)
class FormatTypeConfig:
    """A response format (multiple choice, open ended, ...)."""

    code: str
    name: str
    description: str = ""
    is_active: bool = True


DEFAULT_CHALLENGE_TYPES: tuple[ChallengeTypeConfig, ...] = (
    ChallengeTypeConfig(
        "critical-thinking",
        "Critical Thinking",
        "Challenges that require analysis, evaluation, and complex problem-solving",
        format_types=("open-ended", "scenario", "multiple-choice"),
        focus_areas=("critical_thinking", "critical_thinking_ai", "ai_literacy"),
    ),
    ChallengeTypeConfig(
        "ethical-dilemma",
        "Ethical Dilemma",
        "Scenarios that pose ethical questions requiring thoughtful consideration",
        format_types=("scenario", "open-ended", "reflection"),
        focus_areas=("ai_ethics", "ethical_decision_making"),
    ),
    ChallengeTypeConfig(
        "creative-synthesis",
        "Creative Synthesis",
        "Challenges that involve combining ideas to create new solutions",
        format_types=("open-ended", "mixed"),
        focus_areas=("creative_thinking",),
    ),
    ChallengeTypeConfig(
        "future-scenario",
        "Future Scenario",
        "Forward-looking situations that require strategic thinking",
        format_types=("scenario", "simulation"),
        focus_areas=("future_thinking", "systems_thinking"),
    ),
    ChallengeTypeConfig(
        "human-ai-boundary",
        "Human-AI Boundary",
        "Exploration of the boundaries between human and AI capabilities",
        format_types=("open-ended", "reflection", "scenario"),
        focus_areas=("human_ai_collaboration", "ai_literacy"),
    ),
    ChallengeTypeConfig(
        "technical-implementation",
        "Technical Implementation",
        "Challenges focused on implementing technical solutions",
        format_types=("open-ended", "simulation"),
        focus_areas=("prompt_engineering", "problem_solving"),
    ),
    ChallengeTypeConfig(
        "communication",
        "Communication",
        "Challenges that test effective communication skills",
        format_types=("open-ended", "scenario"),
        focus_areas=("communication",),
    ),
    ChallengeTypeConfig(
        "problem-solving",
        "Problem Solving",
        "General problem-solving scenarios",
        format_types=("scenario", "open-ended", "multiple-choice"),
        focus_areas=("problem_solving",),
    ),
    ChallengeTypeConfig(
        "custom",
        "Custom",
        "Custom challenge type defined dynamically",
    ),
)

DEFAULT_FORMAT_TYPES: tuple[FormatTypeConfig, ...] = (
    FormatTypeConfig("multiple-choice", "Multiple Choice", "Questions with predetermined answer options"),
    FormatTypeConfig("open-ended", "Open Ended", "Questions requiring free-form responses"),
    FormatTypeConfig("scenario", "Scenario", "Detailed situations requiring analysis and response"),
    FormatTypeConfig("reflection", "Reflection", "Prompts that ask for personal reflection"),
    FormatTypeConfig("simulation", "Simulation", "Interactive scenarios simulating real-world situations"),
    FormatTypeConfig("mixed", "Mixed", "Combination of multiple format types"),
)


@dataclass
class ChallengeCatalog:
    """In-memory registry of challenge and format types."""

    challenge_types: Iterable[ChallengeTypeConfig] = DEFAULT_CHALLENGE_TYPES
    format_types: Iterable[FormatTypeConfig] = DEFAULT_FORMAT_TYPES
    _types: dict[str, ChallengeTypeConfig] = field(default_factory=dict, init=False, repr=False)
    _formats: dict[str, FormatTypeConfig] = field(default_factory=dict, init=False, repr=False)

    def __post_init__(self) -> None:
        for challenge_type in self.challenge_types:
            self.register_challenge_type(challenge_type)
        for format_type in self.format_types:
            self.register_format_type(format_type)

    @staticmethod
    def normalize_code(raw: Any) -> str | None:
        """Canonical kebab-case form of a code or display name."""
        if not isinstance(raw, str):
            return None
        code = re.sub(r"[\s_/]+", "-", raw.strip().lower())
        code = re.sub(r"-+", "-", code).strip("-")
        return code if _CODE_PATTERN.match(code) else None

    # =========================================================================
    # Registration
    # =========================================================================

    def register_challenge_type(self, challenge_type: ChallengeTypeConfig) -> None:
        code = self.normalize_code(challenge_type.code)
        if code is None or code != challenge_type.code:
            raise ValueError(f"Challenge type code must be kebab-case: {challenge_type.code!r}")
        if code in self._types:
            logger.debug("Replacing challenge type %s", code)
        self._types[code] = challenge_type

    def register_format_type(self, format_type: FormatTypeConfig) -> None:
        code = self.normalize_code(format_type.code)
        if code is None or code != format_type.code:
            raise ValueError(f"Format type code must be kebab-case: {format_type.code!r}")
        if code in self._formats:
            logger.debug("Replacing format type %s", code)
        self._formats[code] = format_type

    # =========================================================================
    # Lookups
    # =========================================================================

    def get_challenge_type(self, code: Any) -> ChallengeTypeConfig | None:
        return self._types.get(self.normalize_code(code) or "")

    def get_format_type(self, code: Any) -> FormatTypeConfig | None:
        return self._formats.get(self.normalize_code(code) or "")

    def list_challenge_types(self) -> list[ChallengeTypeConfig]:
        """Active challenge types ordered by code."""
        return sorted((t for t in self._types.values() if t.is_active), key=lambda t: t.code)

    def list_format_types(self) -> list[FormatTypeConfig]:
        """Active format types ordered by code."""
        return sorted((f for f in self._formats.values() if f.is_active), key=lambda f: f.code)

    def find_by_format_type(self, format_code: Any) -> list[ChallengeTypeConfig]:
        """Active challenge types that can be delivered in a format."""
        code = self.normalize_code(format_code)
        return [t for t in self.list_challenge_types() if code in t.format_types]

    def find_by_focus_area(self, focus_area: Any) -> list[ChallengeTypeConfig]:
        """Active challenge types suited to a focus area code."""
        return [t for t in self.list_challenge_types() if focus_area in t.focus_areas]

    # =========================================================================
    # Validation
    # =========================================================================

    def resolve_challenge_type(self, raw: Any) -> str:
        """Return the canonical code of an active challenge type.

        Raises:
            ChallengeValidationError: If the type is unknown or inactive.
        """
        challenge_type = self.get_challenge_type(raw)
        if challenge_type is None or not challenge_type.is_active:
            raise ChallengeValidationError(
                f"Invalid challenge type: {raw!r}",
                details={
                    "challenge_type": str(raw),
                    "allowed": [t.code for t in self.list_challenge_types()],
                },
            )
        return challenge_type.code

    def resolve_format_type(self, raw: Any) -> str:
        """Return the canonical code of an active format type.

        Raises:
            ChallengeValidationError: If the format is unknown or inactive.
        """
        format_type = self.get_format_type(raw)
        if format_type is None or not format_type.is_active:
            raise ChallengeValidationError(
                f"Invalid format type: {raw!r}",
                details={
                    "format_type": str(raw),
                    "allowed": [f.code for f in self.list_format_types()],
                },
            )
        return format_type.code
