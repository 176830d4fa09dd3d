# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Performance analysis over a user's challenge history.

ChallengePerformanceService reads a user's challenges through
ChallengeService (and therefore its cache) and derives:

- completed count, rounded average score and completion streaks
- strength and improvement areas from evaluation trait scores
- the score trend of the last N days against the N days before

Averages and percentages round half up.
"""

import logging
import math
from collections import defaultdict
from datetime import datetime
from typing import Any, Sequence

from src.domains.challenge.models import Challenge
from src.domains.challenge.repository import MAX_LIMIT
from src.domains.challenge.schemas import (
    PerformanceMetrics,
    PerformanceStreaks,
    ProgressTrend,
)
from src.domains.challenge.service import ChallengeService
from src.domains.common.value_objects import TraitScore
from src.utils.datetime import ensure_utc, utc_now

logger = logging.getLogger(__name__)

DEFAULT_TREND_WINDOW_DAYS = 30
TOP_TRAITS = 3
SIGNIFICANT_CHANGE_PERCENT = 10

_SECONDS_PER_DAY = 24 * 60 * 60


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _mean(values: Sequence[float]) -> int:
    return _round_half_up(sum(values) / len(values)) if values else 0


class ChallengePerformanceService:
    """Computes performance metrics and progress trends for a user.

    Attributes:
        _challenges: Source of the user's challenge history.
    """

    def __init__(self, challenge_service: ChallengeService) -> None:
        if challenge_service is None:
            raise ValueError("challenge_service is required for ChallengePerformanceService")
        self._challenges = challenge_service

    async def _history(self, user: Any) -> list[Challenge]:
        return await self._challenges.get_challenges_for_user(
            user, {"limit": MAX_LIMIT, "order": "desc"}
        )

    # =========================================================================
    # Metrics
    # =========================================================================

    @staticmethod
    def _trait_scores(challenge: Challenge) -> list[TraitScore]:
        evaluation = challenge.evaluation or {}
        raw = evaluation.get("trait_scores") or evaluation.get("traitScores") or {}
        if not isinstance(raw, dict):
            return []
        scores = []
        for trait, score in raw.items():
            trait_score = TraitScore.create((trait, score))
            if trait_score is None:
                logger.debug("Ignoring trait score %r=%r on %s", trait, score, challenge.id)
                continue
            scores.append(trait_score)
        return scores

    @staticmethod
    def calculate_streaks(completion_times: Sequence[datetime]) -> PerformanceStreaks:
        """Consecutive-day streaks over completion timestamps (UTC days)."""
        days = sorted({ensure_utc(moment).date() for moment in completion_times})
        if not days:
            return PerformanceStreaks()

        current = longest = 1
        for previous, day in zip(days, days[1:]):
            if (day - previous).days == 1:
                current += 1
                longest = max(longest, current)
            else:
                current = 1
        return PerformanceStreaks(current=current, longest=longest)

    def summarize(self, challenges: Sequence[Challenge]) -> PerformanceMetrics:
        """Build metrics from an already loaded history."""
        if not challenges:
            return PerformanceMetrics()

        completed = [c for c in challenges if c.is_completed]
        scores = [c.get_score() for c in completed if c.get_score() is not None]

        by_trait: dict[str, list[float]] = defaultdict(list)
        for challenge in challenges:
            for trait_score in self._trait_scores(challenge):
                by_trait[trait_score.trait].append(trait_score.score)
        averages = {trait: _mean(values) for trait, values in by_trait.items()}
        ranked = [trait for trait, _ in sorted(averages.items(), key=lambda item: -item[1])]

        return PerformanceMetrics(
            completed_challenges=len(completed),
            average_score=_mean(scores),
            strength_areas=ranked[:TOP_TRAITS],
            improvement_areas=list(reversed(ranked[-TOP_TRAITS:])),
            streaks=self.calculate_streaks([c.completed_at for c in challenges if c.completed_at]),
        )

    async def calculate_performance_metrics(self, user: Any) -> PerformanceMetrics:
        """Performance metrics for a user (email or user id).

        Raises:
            ChallengeValidationError: If the user reference is invalid.
        """
        history = await self._history(user)
        metrics = self.summarize(history)
        logger.info(
            "Performance metrics for %s: completed=%d, average=%d",
            user,
            metrics.completed_challenges,
            metrics.average_score,
        )
        return metrics

    # =========================================================================
    # Trend
    # =========================================================================

    @staticmethod
    def classify(improvement: int) -> str:
        if improvement >= SIGNIFICANT_CHANGE_PERCENT:
            return "significant-improvement"
        if improvement > 0:
            return "slight-improvement"
        if improvement == 0:
            return "stable"
        if improvement > -SIGNIFICANT_CHANGE_PERCENT:
            return "slight-decline"
        return "significant-decline"

    def trend_for(
        self,
        challenges: Sequence[Challenge],
        time_window_days: int = DEFAULT_TREND_WINDOW_DAYS,
        now: datetime | None = None,
    ) -> ProgressTrend:
        """Compare the last window of completions with the one before it."""
        if len(challenges) < 2:
            return ProgressTrend()

        scored = sorted(
            (
                (c.completed_at, c.get_score())
                for c in challenges
                if c.is_completed and c.completed_at and c.get_score() is not None
            ),
            key=lambda item: item[0],
            reverse=True,
        )
        if len(scored) < 2:
            return ProgressTrend(recent_average=scored[0][1] if scored else 0)

        now = ensure_utc(now) or utc_now()
        recent: list[float] = []
        previous: list[float] = []
        for completed_at, score in scored:
            age_days = math.floor((now - completed_at).total_seconds() / _SECONDS_PER_DAY)
            if age_days <= time_window_days:
                recent.append(score)
            elif age_days <= time_window_days * 2:
                previous.append(score)

        recent_average = _mean(recent)
        previous_average = _mean(previous)
        improvement = (
            _round_half_up((recent_average - previous_average) / previous_average * 100)
            if previous_average > 0
            else 0
        )
        return ProgressTrend(
            trend=self.classify(improvement),
            improvement=improvement,
            recent_average=recent_average,
            previous_average=previous_average,
        )

    async def analyze_progress_trend(
        self,
        user: Any,
        time_window_days: int = DEFAULT_TREND_WINDOW_DAYS,
        now: datetime | None = None,
    ) -> ProgressTrend:
        """Score trend for a user over two consecutive windows.

        Args:
            user: Email or user id.
            time_window_days: Length of each window in days.
            now: Reference time, defaults to the current UTC time.

        Raises:
            ChallengeValidationError: If the user reference is invalid.
            ValueError: If time_window_days is not positive.
        """
        if time_window_days <= 0:
            raise ValueError("time_window_days must be positive")
        history = await self._history(user)
        trend = self.trend_for(history, time_window_days, now)
        logger.info(
            "Progress trend for %s over %d days: %s (%+d%%)",
            user,
            time_window_days,
            trend.trend,
            trend.improvement,
        )
        return trend
