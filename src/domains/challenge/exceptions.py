# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Custom exceptions for the challenge domain.

This module defines the exception hierarchy for challenge operations:
- ChallengeError: Base exception for all challenge-related errors
- ChallengeValidationError: Malformed input or invariant violation (400)
- ChallengeInvalidStateError: Illegal lifecycle transition (400)
- ChallengeNotFoundError: Challenge does not exist (404)
- ChallengeGenerationError: Generation workflow failure (500)
- ChallengeResponseError: Response submission workflow failure (500)
- ChallengePersistenceError: Repository failure (500)
"""

from typing import Any


class ChallengeError(Exception):
    """Base exception for all challenge-related errors.

    Attributes:
        message: Human-readable error description.
        details: Additional structured context.
        cause: The original exception this error wraps, if any.
        status_code: HTTP status code a controller should respond with.
        error_code: Stable machine-readable error code.
    """

    status_code: int = 500
    error_code: str = "CHALLENGE_ERROR"

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ):
        """Initialize challenge error.

        Args:
            message: Human-readable error description.
            details: Optional dictionary with additional error context.
            cause: Original exception being wrapped.
        """
        self.message = message
        self.details = details or {}
        self.cause = cause
        super().__init__(message)

    def __str__(self) -> str:
        """Return string representation with details if available."""
        if self.details:
            return f"{self.message} - Details: {self.details}"
        return self.message

    def to_dict(self) -> dict[str, Any]:
        """Serialize for structured error responses."""
        payload: dict[str, Any] = {
            "success": False,
            "message": self.message,
            "error_code": self.error_code,
            "status_code": self.status_code,
        }
        if self.details:
            payload["details"] = self.details
        return payload


class ChallengeValidationError(ChallengeError):
    """Raised when input or entity state fails validation."""

    status_code = 400
    error_code = "CHALLENGE_VALIDATION_ERROR"


class ChallengeInvalidStateError(ChallengeError):
    """Raised when a lifecycle transition is not allowed.

    Attributes:
        current_status: Status the challenge was in when the transition
            was attempted.
    """

    status_code = 400
    error_code = "CHALLENGE_INVALID_STATE"

    def __init__(
        self,
        message: str,
        current_status: str | None = None,
        details: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ):
        self.current_status = current_status
        super().__init__(message, details, cause)

    def __str__(self) -> str:
        base = super().__str__()
        if self.current_status:
            return f"{base} (status: {self.current_status})"
        return base


class ChallengeNotFoundError(ChallengeError):
    """Raised when a challenge does not exist.

    Attributes:
        challenge_id: The ID that was looked up.
    """

    status_code = 404
    error_code = "CHALLENGE_NOT_FOUND"

    def __init__(
        self,
        message: str,
        challenge_id: str | None = None,
        details: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ):
        self.challenge_id = challenge_id
        super().__init__(message, details, cause)


class ChallengeGenerationError(ChallengeError):
    """Raised when generating and persisting a challenge fails."""

    status_code = 500
    error_code = "CHALLENGE_GENERATION_FAILED"


class ChallengeResponseError(ChallengeError):
    """Raised when submitting or evaluating a response fails."""

    status_code = 500
    error_code = "CHALLENGE_RESPONSE_FAILED"


class ChallengePersistenceError(ChallengeError):
    """Raised when the challenge repository cannot complete an operation."""

    status_code = 500
    error_code = "CHALLENGE_PERSISTENCE_FAILED"
