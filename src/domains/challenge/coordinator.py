# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Challenge use-case orchestration.

ChallengeCoordinator composes the user directory, the factory, the
LLM-backed generation and evaluation services and ChallengeService into
the two main flows of the product:

- generate_and_persist_challenge: build, generate and store a challenge
- submit_challenge_response: submit, evaluate, complete and store

Bookkeeping in other contexts (last-active timestamp, progress, journey
events) runs in the background after the primary result is ready and
never affects it.

Example:
    coordinator = ChallengeCoordinator(
        user_service=users,
        challenge_service=ChallengeService(repository, cache),
        challenge_factory=ChallengeFactory(),
        generation_service=ChallengeGenerationService(),
        evaluation_service=ChallengeEvaluationService(),
    )
    challenge = await coordinator.generate_and_persist_challenge({
        "user_email": "ada@example.com",
        "focus_area": "AI Ethics",
        "challenge_type": "ethical-dilemma",
    })
"""

from typing import Any, Mapping

from src.core.coordination import BaseCoordinator
from src.domains.challenge.exceptions import (
    ChallengeError,
    ChallengeGenerationError,
    ChallengeNotFoundError,
    ChallengeResponseError,
    ChallengeValidationError,
)
from src.domains.challenge.factory import ChallengeFactory
from src.domains.challenge.models import Challenge
from src.domains.challenge.ports import (
    ChallengeContentGenerator,
    ChallengeResponseEvaluator,
    ProgressService,
    UserJourneyService,
    UserLookupService,
)
from src.domains.challenge.schemas import ChallengeSubmissionResult
from src.domains.challenge.service import ChallengeService
from src.domains.common.value_objects import ChallengeId, Email
from src.utils.datetime import format_iso, utc_now

JOURNEY_EVENT_CHALLENGE_COMPLETED = "challenge_completed"

# Parameters forwarded from the request to the factory.
_DRAFT_FIELDS = ("focus_area", "challenge_type", "format_type", "difficulty", "title")


class ChallengeCoordinator(BaseCoordinator):
    """Orchestrates challenge generation and response submission.

    Attributes:
        user_service: User lookup and update.
        challenge_service: Cached challenge CRUD.
        challenge_factory: Builds draft challenges.
        generation_service: Produces challenge content.
        evaluation_service: Scores responses.
        progress_service: Optional progress tracking.
        journey_service: Optional user journey recording.
        recent_limit: Number of recent challenges given to the generator.
    """

    def __init__(
        self,
        user_service: UserLookupService,
        challenge_service: ChallengeService,
        challenge_factory: ChallengeFactory,
        generation_service: ChallengeContentGenerator,
        evaluation_service: ChallengeResponseEvaluator,
        progress_service: ProgressService | None = None,
        journey_service: UserJourneyService | None = None,
        recent_limit: int = 3,
    ) -> None:
        super().__init__()
        self.validate_dependencies(
            {
                "user_service": user_service,
                "challenge_service": challenge_service,
                "challenge_factory": challenge_factory,
                "generation_service": generation_service,
                "evaluation_service": evaluation_service,
            },
            (
                "user_service",
                "challenge_service",
                "challenge_factory",
                "generation_service",
                "evaluation_service",
            ),
        )
        self.user_service = user_service
        self.challenge_service = challenge_service
        self.challenge_factory = challenge_factory
        self.generation_service = generation_service
        self.evaluation_service = evaluation_service
        self.progress_service = progress_service
        self.journey_service = journey_service
        self.recent_limit = recent_limit

    # =========================================================================
    # Secondary operations
    # =========================================================================

    async def _update_last_active(self, email: str) -> None:
        await self.user_service.update_user(email, {"last_active": format_iso(utc_now())})
        self.logger.debug("Updated last_active for %s", email)

    # =========================================================================
    # Generation
    # =========================================================================

    async def generate_and_persist_challenge(self, params: Mapping[str, Any]) -> Challenge:
        """Generate a challenge for a user and store it.

        Args:
            params: ``user_email`` (required) plus optional ``focus_area``,
                ``challenge_type``, ``format_type``, ``difficulty``,
                ``title`` and ``options`` (passed to the generator).

        Returns:
            The persisted challenge.

        Raises:
            ChallengeGenerationError: For any failure, including a missing
                or unknown user.
        """
        return await self.execute_operation(
            lambda: self._generate_and_persist(params),
            "generate_and_persist_challenge",
            context={
                "user_email": params.get("user_email"),
                "focus_area": params.get("focus_area"),
                "challenge_type": params.get("challenge_type"),
            },
            error_type=ChallengeGenerationError,
        )

    async def _generate_and_persist(self, params: Mapping[str, Any]) -> Challenge:
        email = Email.create(params.get("user_email"))
        if email is None:
            raise ChallengeGenerationError(
                "A valid user email is required",
                details={"user_email": str(params.get("user_email"))},
            )

        user = await self.user_service.get_user_by_email(email.value)
        if not user:
            raise ChallengeGenerationError(
                f"User with email {email.value} not found",
                details={"user_email": email.value},
            )

        recent = await self.challenge_service.get_recent_challenges_for_user(
            email, self.recent_limit
        )

        draft_data = {name: params.get(name) for name in _DRAFT_FIELDS}
        draft_data["user_email"] = email.value
        if user.get("id"):
            draft_data["user_id"] = str(user["id"])
        draft = self.challenge_factory.create_challenge(draft_data)

        self.logger.info(
            "Generating challenge for %s: type=%s, focus_area=%s, difficulty=%s",
            email.value,
            draft.challenge_type,
            draft.focus_area,
            draft.difficulty,
        )
        generated = await self.generation_service.generate_challenge(
            user,
            {
                "challenge_type": draft.challenge_type,
                "format_type": draft.format_type,
                "focus_area": draft.focus_area,
                "difficulty": draft.difficulty,
                "difficulty_settings": draft.difficulty_settings,
            },
            recent,
            params.get("options"),
        )

        changes: dict[str, Any] = {
            "title": generated.title or draft.title,
            "description": generated.description or draft.description,
            "content": generated.content_with_instructions(),
        }
        if generated.questions:
            changes["questions"] = generated.questions
        if generated.evaluation_criteria:
            changes["evaluation_criteria"] = generated.evaluation_criteria
        draft.update(changes)

        saved = await self.challenge_service.save_challenge(draft)
        self.run_in_background(
            lambda: self._update_last_active(email.value), "update_last_active"
        )
        return saved

    # =========================================================================
    # Submission
    # =========================================================================

    async def submit_challenge_response(
        self, params: Mapping[str, Any]
    ) -> ChallengeSubmissionResult:
        """Submit responses, evaluate them and complete the challenge.

        Args:
            params: ``challenge_id`` and ``response`` (a string, a mapping
                or a list of either) are required; ``user_email`` enables
                progress, journey and last-active updates; ``options`` is
                passed to the evaluator.

        Returns:
            The completed challenge with its evaluation.

        Raises:
            ChallengeNotFoundError: If the challenge does not exist.
            ChallengeResponseError: For any other failure, including an
                already completed challenge.
        """
        return await self.execute_operation(
            lambda: self._submit_response(params),
            "submit_challenge_response",
            context={
                "challenge_id": params.get("challenge_id"),
                "user_email": params.get("user_email"),
            },
            error_type=ChallengeResponseError,
            preserve=(ChallengeNotFoundError,),
        )

    async def _submit_response(self, params: Mapping[str, Any]) -> ChallengeSubmissionResult:
        challenge_id = ChallengeId.create(params.get("challenge_id"))
        if challenge_id is None:
            raise ChallengeResponseError(
                "A valid challenge ID is required",
                details={"challenge_id": str(params.get("challenge_id"))},
            )
        response = params.get("responses") or params.get("response")
        if not response:
            raise ChallengeResponseError("Response is required")

        email = None
        if params.get("user_email"):
            email = Email.create(params["user_email"])
            if email is None:
                raise ChallengeResponseError(f"Invalid email format: {params['user_email']}")

        challenge = await self.challenge_service.get_challenge_by_id(challenge_id)
        if challenge.is_completed:
            raise ChallengeResponseError(
                f"Challenge with ID {challenge.id} is already completed",
                details={"challenge_id": challenge.id},
            )

        challenge.submit_responses(response)
        self.logger.info(
            "Evaluating %d responses for challenge %s",
            len(challenge.responses),
            challenge.id,
        )
        evaluation = await self.evaluation_service.evaluate_responses(
            challenge,
            challenge.responses,
            params.get("options"),
        )
        challenge.complete(evaluation)
        saved = await self.challenge_service.save_challenge(challenge)

        if email is not None:
            self._run_completion_side_effects(email.value, saved, evaluation)

        self.logger.info(
            "Challenge %s completed with score %s",
            saved.id,
            saved.get_score(),
        )
        return ChallengeSubmissionResult(challenge=saved, evaluation=evaluation)

    def _run_completion_side_effects(self, email: str, challenge: Challenge, evaluation: Any) -> None:
        operations = {}

        if self.progress_service is not None:
            progress_service = self.progress_service

            async def update_progress() -> None:
                await progress_service.update_progress_after_challenge(
                    email, challenge.focus_area, challenge.id, evaluation
                )

            operations["update_progress"] = update_progress

        if self.journey_service is not None:
            journey_service = self.journey_service

            async def record_journey() -> None:
                await journey_service.record_user_event(
                    email,
                    JOURNEY_EVENT_CHALLENGE_COMPLETED,
                    {
                        "challenge_id": challenge.id,
                        "challenge_type": challenge.challenge_type,
                        "focus_area": challenge.focus_area,
                        "score": challenge.get_score() or 0,
                    },
                )

            operations["record_journey_event"] = record_journey

        operations["update_last_active"] = lambda: self._update_last_active(email)
        self.run_secondary_operations(operations)

    # =========================================================================
    # Reads
    # =========================================================================

    async def get_challenge_by_id(self, challenge_id: Any) -> Challenge:
        """Load one challenge.

        Raises:
            ChallengeNotFoundError: If it does not exist.
            ChallengeValidationError: If the id is malformed.
        """
        return await self.execute_operation(
            lambda: self.challenge_service.get_challenge_by_id(challenge_id),
            "get_challenge_by_id",
            context={"challenge_id": str(challenge_id)},
            error_type=ChallengeError,
        )

    async def get_challenge_history_for_user(self, user_email: Any) -> list[Challenge]:
        """All challenges of a user, newest first.

        Raises:
            ChallengeValidationError: If the email is missing or invalid.
        """

        async def load() -> list[Challenge]:
            email = Email.create(user_email)
            if email is None:
                raise ChallengeValidationError(f"Invalid email format: {user_email}")
            challenges = await self.challenge_service.get_challenges_for_user(email)
            self.logger.info("Retrieved %d challenges for %s", len(challenges), email.value)
            return challenges

        return await self.execute_operation(
            load,
            "get_challenge_history_for_user",
            context={"user_email": str(user_email)},
            error_type=ChallengeError,
        )
