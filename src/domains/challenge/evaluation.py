# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""LLM-backed evaluation of challenge responses."""

import json
import logging
from typing import Any, Mapping, Sequence

from pydantic import ValidationError

from src.core.intelligence.llm import LLMClient, LLMError
from src.domains.challenge.exceptions import ChallengeResponseError
from src.domains.challenge.models import Challenge
from src.domains.challenge.schemas import ChallengeEvaluation

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You evaluate answers to learning challenges. Respond with a single "
    "JSON object with the keys: score (0-100), feedback (string), "
    "strengths (array of strings) and areas_for_improvement (array of strings)."
)


class ChallengeEvaluationService:
    """Scores responses to a challenge through an LLM."""

    def __init__(self, llm_client: LLMClient | None = None) -> None:
        self._llm = llm_client or LLMClient()

    @staticmethod
    def build_prompt(challenge: Challenge, responses: Sequence[Mapping[str, Any]]) -> str:
        answers = [
            {"question_id": r.get("question_id"), "answer": r.get("content") or r.get("response")}
            for r in responses
        ]
        return "\n\n".join(
            [
                f"Challenge: {challenge.title}",
                f"Content: {json.dumps(challenge.content, default=str)}",
                f"Questions: {json.dumps(challenge.questions, default=str)}",
                f"Evaluation criteria: {json.dumps(challenge.evaluation_criteria, default=str)}",
                f"Difficulty: {challenge.difficulty}",
                f"User responses: {json.dumps(answers, default=str)}",
            ]
        )

    async def evaluate_responses(
        self,
        challenge: Challenge,
        responses: Sequence[Mapping[str, Any]],
        options: Mapping[str, Any] | None = None,
    ) -> ChallengeEvaluation:
        """Evaluate responses against the challenge criteria.

        Raises:
            ChallengeResponseError: If there is nothing to evaluate, the
                model call fails or the result is malformed.
        """
        if not responses:
            raise ChallengeResponseError("No responses to evaluate")

        try:
            data = await self._llm.complete_json(
                self.build_prompt(challenge, responses),
                system_prompt=SYSTEM_PROMPT,
                **dict(options or {}),
            )
        except LLMError as e:
            raise ChallengeResponseError(
                f"Response evaluation failed: {e.message}",
                details={"challenge_id": challenge.id, "model": e.model},
                cause=e,
            ) from e

        data.setdefault("response_id", data.pop("_response_id", None))
        try:
            evaluation = ChallengeEvaluation.model_validate(data)
        except ValidationError as e:
            raise ChallengeResponseError(
                "Evaluation result has an invalid shape",
                details={"challenge_id": challenge.id, "errors": e.errors(include_url=False)},
                cause=e,
            ) from e

        logger.info("Evaluated challenge %s: score=%.1f", challenge.id, evaluation.score)
        return evaluation
