# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for ChallengePerformanceService.

History is served by a real ChallengeService over a mocked repository
and the in-memory cache from conftest.
"""

import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.domains.challenge.exceptions import ChallengeValidationError
from src.domains.challenge.performance import ChallengePerformanceService
from src.domains.challenge.repository import MAX_LIMIT, ChallengeRepository
from src.domains.challenge.service import ChallengeService

NOW = datetime(2025, 3, 31, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def repository() -> MagicMock:
    """Create a mock repository with an empty history."""
    repo = MagicMock(spec=ChallengeRepository)
    repo.find_by_user_email = AsyncMock(return_value=[])
    repo.find_by_user_id = AsyncMock(return_value=[])
    return repo


@pytest.fixture
def performance(repository, cache_service, cache_settings) -> ChallengePerformanceService:
    """Create the performance service over a cached ChallengeService."""
    challenges = ChallengeService(repository, cache_service, cache_settings=cache_settings)
    return ChallengePerformanceService(challenges)


@pytest.fixture
def completed(make_challenge):
    """Build completed challenges with a score, completion time and traits."""

    def build(score: float, completed_at: datetime, traits: dict | None = None):
        evaluation = {"score": score, "feedback": "ok"}
        if traits is not None:
            evaluation["trait_scores"] = traits
        return make_challenge(
            id=str(uuid.uuid4()),
            responses=[{"id": "r1", "content": "answer", "question_id": "q1"}],
            evaluation=evaluation,
            score=score,
            status="completed",
            submitted_at=completed_at - timedelta(minutes=5),
            completed_at=completed_at,
        )

    return build


class TestCalculatePerformanceMetrics:
    """Tests for calculate_performance_metrics."""

    @pytest.mark.asyncio
    async def test_empty_history(self, performance, sample_email):
        """A user with no challenges gets zeroed metrics."""
        metrics = await performance.calculate_performance_metrics(sample_email)

        assert metrics.completed_challenges == 0
        assert metrics.average_score == 0
        assert metrics.strength_areas == []
        assert metrics.streaks.longest == 0

    @pytest.mark.asyncio
    async def test_history_loaded_by_email(self, performance, repository, sample_email):
        """The whole history is requested through the repository."""
        await performance.calculate_performance_metrics(sample_email)

        repository.find_by_user_email.assert_awaited_once()
        options = repository.find_by_user_email.await_args.args[1]
        assert options["limit"] == MAX_LIMIT

    @pytest.mark.asyncio
    async def test_counts_and_average(
        self, performance, repository, sample_email, completed, pending_challenge
    ):
        """Only completed challenges count; the average rounds half up."""
        repository.find_by_user_email.return_value = [
            completed(80, NOW),
            completed(71, NOW - timedelta(days=3)),
            pending_challenge,
        ]

        metrics = await performance.calculate_performance_metrics(sample_email)

        assert metrics.completed_challenges == 2
        assert metrics.average_score == 76

    @pytest.mark.asyncio
    async def test_strength_and_improvement_areas(
        self, performance, repository, sample_email, completed
    ):
        """Traits rank by average score; improvements list the lowest first."""
        repository.find_by_user_email.return_value = [
            completed(
                80,
                NOW,
                {"analysis": 90, "empathy": 40, "creativity": 70, "clarity": 60, "rigor": 20},
            ),
            completed(70, NOW - timedelta(days=1), {"analysis": 80, "empathy": 50}),
        ]

        metrics = await performance.calculate_performance_metrics(sample_email)

        assert metrics.strength_areas == ["analysis", "creativity", "clarity"]
        assert metrics.improvement_areas == ["rigor", "empathy", "clarity"]

    @pytest.mark.asyncio
    async def test_invalid_trait_scores_ignored(
        self, performance, repository, sample_email, completed
    ):
        """Out of range or non-numeric trait scores do not count."""
        repository.find_by_user_email.return_value = [
            completed(60, NOW, {"analysis": 150, "empathy": "high", "clarity": 55}),
        ]

        metrics = await performance.calculate_performance_metrics(sample_email)

        assert metrics.strength_areas == ["clarity"]

    @pytest.mark.asyncio
    async def test_invalid_user_rejected(self, performance):
        """A malformed email is a validation error."""
        with pytest.raises(ChallengeValidationError):
            await performance.calculate_performance_metrics("not@an@email")


class TestStreaks:
    """Tests for calculate_streaks."""

    def test_no_completions(self):
        """No timestamps means no streak."""
        streaks = ChallengePerformanceService.calculate_streaks([])

        assert (streaks.current, streaks.longest) == (0, 0)

    def test_consecutive_days(self):
        """Several completions on one day count once; gaps reset the run."""
        day = datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)
        times = [
            day,
            day + timedelta(hours=5),
            day + timedelta(days=1),
            day + timedelta(days=2),
            day + timedelta(days=5),
            day + timedelta(days=6),
        ]

        streaks = ChallengePerformanceService.calculate_streaks(times)

        assert streaks.longest == 3
        assert streaks.current == 2


class TestAnalyzeProgressTrend:
    """Tests for analyze_progress_trend."""

    @pytest.mark.asyncio
    async def test_insufficient_history(self, performance, repository, sample_email, completed):
        """A single challenge is not enough to call a trend."""
        repository.find_by_user_email.return_value = [completed(80, NOW)]

        trend = await performance.analyze_progress_trend(sample_email, now=NOW)

        assert trend.trend == "insufficient-data"
        assert trend.improvement == 0

    @pytest.mark.asyncio
    async def test_single_scored_completion(
        self, performance, repository, sample_email, completed, pending_challenge
    ):
        """With one scored completion the recent average is that score."""
        repository.find_by_user_email.return_value = [completed(64, NOW), pending_challenge]

        trend = await performance.analyze_progress_trend(sample_email, now=NOW)

        assert trend.trend == "insufficient-data"
        assert trend.recent_average == 64

    @pytest.mark.asyncio
    async def test_significant_improvement(self, performance, repository, sample_email, completed):
        """Recent scores well above the previous window."""
        repository.find_by_user_email.return_value = [
            completed(90, NOW - timedelta(days=2)),
            completed(80, NOW - timedelta(days=10)),
            completed(70, NOW - timedelta(days=40)),
            completed(70, NOW - timedelta(days=50)),
            completed(10, NOW - timedelta(days=90)),
        ]

        trend = await performance.analyze_progress_trend(sample_email, now=NOW)

        assert trend.recent_average == 85
        assert trend.previous_average == 70
        assert trend.improvement == 21
        assert trend.trend == "significant-improvement"

    @pytest.mark.asyncio
    async def test_slight_decline(self, performance, repository, sample_email, completed):
        """A small drop is a slight decline."""
        repository.find_by_user_email.return_value = [
            completed(76, NOW - timedelta(days=1)),
            completed(80, NOW - timedelta(days=10)),
        ]

        trend = await performance.analyze_progress_trend(
            sample_email, time_window_days=7, now=NOW
        )

        assert trend.improvement == -5
        assert trend.trend == "slight-decline"

    @pytest.mark.asyncio
    async def test_empty_previous_window_is_stable(
        self, performance, repository, sample_email, completed
    ):
        """Without a previous window the change is zero."""
        repository.find_by_user_email.return_value = [
            completed(76, NOW - timedelta(days=1)),
            completed(80, NOW - timedelta(days=2)),
        ]

        trend = await performance.analyze_progress_trend(sample_email, now=NOW)

        assert trend.previous_average == 0
        assert trend.trend == "stable"

    @pytest.mark.asyncio
    async def test_window_must_be_positive(self, performance, sample_email):
        """A zero-day window is rejected."""
        with pytest.raises(ValueError):
            await performance.analyze_progress_trend(sample_email, time_window_days=0)


class TestClassify:
    """Tests for the trend labels."""

    @pytest.mark.parametrize(
        "improvement,label",
        [
            (10, "significant-improvement"),
            (9, "slight-improvement"),
            (0, "stable"),
            (-9, "slight-decline"),
            (-10, "significant-decline"),
        ],
    )
    def test_thresholds(self, improvement, label):
        """Ten percent separates slight from significant."""
        assert ChallengePerformanceService.classify(improvement) == label
