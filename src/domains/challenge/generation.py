# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""LLM-backed challenge content generation.

ChallengeGenerationService asks the model for a JSON challenge built for
a user, the draft's typed parameters and the user's recent challenges,
and validates the answer into a GeneratedChallenge.
"""

import json
import logging
from typing import Any, Mapping, Sequence

from pydantic import ValidationError

from src.core.intelligence.llm import LLMClient, LLMError
from src.domains.challenge.exceptions import ChallengeGenerationError
from src.domains.challenge.models import Challenge
from src.domains.challenge.schemas import GeneratedChallenge

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You design short, thought-provoking challenges that test how people "
    "reason about and work with AI. Respond with a single JSON object with "
    "the keys: title, description, instructions, content (object), "
    "questions (array) and evaluation_criteria (array)."
)


class ChallengeGenerationService:
    """Generates challenge content through an LLM.

    Attributes:
        _llm: Client used for JSON completions.
    """

    def __init__(self, llm_client: LLMClient | None = None) -> None:
        self._llm = llm_client or LLMClient()

    @staticmethod
    def build_prompt(
        user: Mapping[str, Any],
        params: Mapping[str, Any],
        recent_challenges: Sequence[Challenge],
    ) -> str:
        """Render the user prompt from the generation inputs."""
        profile = {
            "name": user.get("full_name") or user.get("name"),
            "professional_title": user.get("professional_title"),
            "focus_areas": user.get("focus_areas"),
            "personality_traits": user.get("personality_traits"),
        }
        recent = [
            {"title": c.title, "challenge_type": c.challenge_type, "focus_area": c.focus_area}
            for c in recent_challenges
        ]
        sections = [
            "Create a new challenge.",
            f"User profile: {json.dumps({k: v for k, v in profile.items() if v}, default=str)}",
            f"Challenge parameters: {json.dumps(dict(params), default=str)}",
        ]
        if recent:
            sections.append(
                f"Avoid repeating these recent challenges: {json.dumps(recent, default=str)}"
            )
        return "\n\n".join(sections)

    async def generate_challenge(
        self,
        user: Mapping[str, Any],
        params: Mapping[str, Any],
        recent_challenges: Sequence[Challenge] = (),
        options: Mapping[str, Any] | None = None,
    ) -> GeneratedChallenge:
        """Generate content for a challenge.

        Args:
            user: User record (name, title, focus areas, traits).
            params: Typed parameters of the draft (challenge_type,
                format_type, focus_area, difficulty, difficulty_settings).
            recent_challenges: The user's latest challenges, for variety.
            options: Extra LiteLLM parameters (e.g. ``temperature``).

        Raises:
            ChallengeGenerationError: If the model call fails or returns
                unusable content.
        """
        prompt = self.build_prompt(user, params, recent_challenges)
        try:
            data = await self._llm.complete_json(
                prompt,
                system_prompt=SYSTEM_PROMPT,
                **dict(options or {}),
            )
        except LLMError as e:
            raise ChallengeGenerationError(
                f"Challenge generation failed: {e.message}",
                details={"model": e.model, "error_code": e.error_code},
                cause=e,
            ) from e

        data.setdefault("response_id", data.pop("_response_id", None))
        try:
            generated = GeneratedChallenge.model_validate(data)
        except ValidationError as e:
            raise ChallengeGenerationError(
                "Generated challenge has an invalid shape",
                details={"errors": e.errors(include_url=False)},
                cause=e,
            ) from e

        if not generated.title and not generated.instructions and not generated.content:
            raise ChallengeGenerationError("Generated challenge is empty")

        logger.info(
            "Generated challenge content: type=%s, focus_area=%s",
            params.get("challenge_type"),
            params.get("focus_area"),
        )
        return generated
