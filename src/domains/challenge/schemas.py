# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Schemas for challenge generation and evaluation.

This module defines Pydantic models exchanged with the LLM-backed
services and returned by the coordinator:
- GeneratedChallenge: Content produced for a new challenge
- ChallengeEvaluation: Assessment of a user's responses
- ChallengeSubmissionResult: Outcome of a submission (challenge + evaluation)
- PerformanceMetrics, ProgressTrend: Summaries of a user's challenge history
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, InstanceOf, field_validator

from src.domains.challenge.models import Challenge

MIN_SCORE = 0.0
MAX_SCORE = 100.0


class GeneratedChallenge(BaseModel):
    """Challenge content returned by the generator."""

    model_config = ConfigDict(extra="ignore")

    title: str = Field(default="", description="Challenge title")
    description: str = Field(default="", description="Short description")
    instructions: str = Field(default="", description="What the user must do")
    content: dict[str, Any] = Field(
        default_factory=dict,
        description="Structured challenge content (scenario, context, ...)",
    )
    questions: list[Any] = Field(
        default_factory=list,
        description="Questions the user answers",
    )
    evaluation_criteria: list[Any] | dict[str, Any] = Field(
        default_factory=list,
        description="Criteria the evaluator scores against",
    )
    response_id: str | None = Field(
        default=None,
        description="Provider response id for conversation continuity",
    )

    def content_with_instructions(self) -> dict[str, Any]:
        """Content with the instructions folded in when not already present."""
        merged = dict(self.content)
        if self.instructions and "instructions" not in merged:
            merged["instructions"] = self.instructions
        return merged


class ChallengeEvaluation(BaseModel):
    """Evaluation of submitted responses.

    Scores outside 0-100 are clamped; non-numeric scores are rejected.
    """

    model_config = ConfigDict(extra="ignore")

    score: float = Field(description="Overall score (0-100)")
    feedback: str = Field(min_length=1, description="Feedback for the user")
    strengths: list[str] = Field(default_factory=list, description="What went well")
    areas_for_improvement: list[str] = Field(
        default_factory=list,
        description="What to work on next",
    )
    response_id: str | None = Field(
        default=None,
        description="Provider response id for conversation continuity",
    )

    @field_validator("score", mode="before")
    @classmethod
    def clamp_score(cls, value: Any) -> float:
        if isinstance(value, bool):
            raise ValueError("score must be a number")
        try:
            score = float(value)
        except (TypeError, ValueError) as e:
            raise ValueError("score must be a number") from e
        return max(MIN_SCORE, min(MAX_SCORE, score))


class ChallengeSubmissionResult(BaseModel):
    """Completed challenge together with its evaluation."""

    challenge: InstanceOf[Challenge]
    evaluation: ChallengeEvaluation


class PerformanceStreaks(BaseModel):
    """Runs of consecutive days with at least one completed challenge."""

    current: int = Field(default=0, ge=0, description="Streak ending at the latest completion")
    longest: int = Field(default=0, ge=0, description="Longest streak in the history")


class PerformanceMetrics(BaseModel):
    """Aggregate performance over a user's challenge history."""

    completed_challenges: int = Field(default=0, ge=0)
    average_score: int = Field(default=0, description="Rounded mean score of completed challenges")
    strength_areas: list[str] = Field(
        default_factory=list,
        description="Up to three traits with the highest average trait score",
    )
    improvement_areas: list[str] = Field(
        default_factory=list,
        description="Up to three traits with the lowest average trait score, lowest first",
    )
    streaks: PerformanceStreaks = Field(default_factory=PerformanceStreaks)


TrendLabel = Literal[
    "insufficient-data",
    "significant-improvement",
    "slight-improvement",
    "stable",
    "slight-decline",
    "significant-decline",
]


class ProgressTrend(BaseModel):
    """Score trend of the recent window against the window before it."""

    trend: TrendLabel = "insufficient-data"
    improvement: int = Field(default=0, description="Percent change of the average score")
    recent_average: float = 0
    previous_average: float = 0
