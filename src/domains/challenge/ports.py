# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Collaborators the challenge coordinator depends on.

These live in other bounded contexts (users, progress, journeys) or wrap
the LLM. Only the calls made from this package are described here.
"""

from typing import Any, Mapping, Protocol, Sequence, runtime_checkable

from src.domains.challenge.models import Challenge
from src.domains.challenge.schemas import ChallengeEvaluation, GeneratedChallenge


@runtime_checkable
class UserLookupService(Protocol):
    """User directory keyed by email."""

    async def get_user_by_email(self, email: str) -> Mapping[str, Any] | None: ...

    async def update_user(self, email: str, changes: Mapping[str, Any]) -> Any: ...


@runtime_checkable
class ProgressService(Protocol):
    async def update_progress_after_challenge(
        self,
        email: str,
        focus_area: str | None,
        challenge_id: str,
        evaluation: ChallengeEvaluation,
    ) -> Any: ...


@runtime_checkable
class UserJourneyService(Protocol):
    async def record_user_event(
        self,
        email: str,
        event_type: str,
        data: Mapping[str, Any],
    ) -> Any: ...


@runtime_checkable
class ChallengeContentGenerator(Protocol):
    """Produces content for a draft challenge."""

    async def generate_challenge(
        self,
        user: Mapping[str, Any],
        params: Mapping[str, Any],
        recent_challenges: Sequence[Challenge],
        options: Mapping[str, Any] | None = None,
    ) -> GeneratedChallenge: ...


@runtime_checkable
class ChallengeResponseEvaluator(Protocol):
    """Scores a user's responses to a challenge."""

    async def evaluate_responses(
        self,
        challenge: Challenge,
        responses: Sequence[Mapping[str, Any]],
        options: Mapping[str, Any] | None = None,
    ) -> ChallengeEvaluation: ...

