# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Shared domain building blocks.

Value objects used by the challenge, user and progress domains.
"""

from src.domains.common.value_objects import (
    ChallengeId,
    DifficultyLevel,
    Email,
    FocusArea,
    TraitScore,
    UserId,
    ValueObjectError,
    ValueObjectResult,
    create_challenge_id,
    create_difficulty_level,
    create_email,
    create_focus_area,
    create_trait_score,
    create_user_id,
    ensure_vo,
)

__all__ = [
    "ChallengeId",
    "DifficultyLevel",
    "Email",
    "FocusArea",
    "TraitScore",
    "UserId",
    "ValueObjectError",
    "ValueObjectResult",
    "create_challenge_id",
    "create_difficulty_level",
    "create_email",
    "create_focus_area",
    "create_trait_score",
    "create_user_id",
    "ensure_vo",
]
