# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Challenge domain.

This domain provides:
- The Challenge entity and its pending -> submitted -> completed lifecycle
- ChallengeFactory for building new challenges
- ChallengeMapper and the SQLAlchemy repository for persistence
- ChallengeService for cached CRUD with domain event dispatch
- LLM-backed generation and evaluation services
- ChallengeCoordinator for the generate and submit use cases
- ChallengeCatalog of challenge and format types
- ChallengePerformanceService for metrics and progress trends

Usage:
    from src.domains.challenge import ChallengeCoordinator, ChallengeService

    service = ChallengeService(repository, cache)
    challenge = await service.get_challenge_by_id(challenge_id)
"""

from src.domains.challenge.catalog import ChallengeCatalog
from src.domains.challenge.coordinator import ChallengeCoordinator
from src.domains.challenge.evaluation import ChallengeEvaluationService
from src.domains.challenge.exceptions import (
    ChallengeError,
    ChallengeGenerationError,
    ChallengeInvalidStateError,
    ChallengeNotFoundError,
    ChallengePersistenceError,
    ChallengeResponseError,
    ChallengeValidationError,
)
from src.domains.challenge.factory import ChallengeFactory
from src.domains.challenge.generation import ChallengeGenerationService
from src.domains.challenge.mapper import ChallengeMapper
from src.domains.challenge.models import Challenge, ChallengeStatus, DomainEvent
from src.domains.challenge.performance import ChallengePerformanceService
from src.domains.challenge.repository import (
    ChallengeRepository,
    SQLAlchemyChallengeRepository,
)
from src.domains.challenge.schemas import (
    ChallengeEvaluation,
    ChallengeSubmissionResult,
    GeneratedChallenge,
    PerformanceMetrics,
    ProgressTrend,
)
from src.domains.challenge.service import ChallengeService

__all__ = [
    # Entity
    "Challenge",
    "ChallengeStatus",
    "DomainEvent",
    # Construction and persistence
    "ChallengeFactory",
    "ChallengeCatalog",
    "ChallengeMapper",
    "ChallengeRepository",
    "SQLAlchemyChallengeRepository",
    # Services
    "ChallengeService",
    "ChallengeGenerationService",
    "ChallengeEvaluationService",
    "ChallengeCoordinator",
    "ChallengePerformanceService",
    # Schemas
    "GeneratedChallenge",
    "ChallengeEvaluation",
    "ChallengeSubmissionResult",
    "PerformanceMetrics",
    "ProgressTrend",
    # Errors
    "ChallengeError",
    "ChallengeValidationError",
    "ChallengeInvalidStateError",
    "ChallengeNotFoundError",
    "ChallengeGenerationError",
    "ChallengeResponseError",
    "ChallengePersistenceError",
]
