# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for BaseCoordinator."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from src.core.coordination import BaseCoordinator, CoordinationError


class _LookupFailed(CoordinationError):
    pass


class TestValidateDependencies:
    """Tests for dependency validation."""

    def test_all_present(self):
        """No error when every dependency is supplied."""
        BaseCoordinator.validate_dependencies({"a": 1, "b": object()}, ["a", "b"])

    def test_missing_listed(self):
        """Missing and None dependencies are named in the error."""
        with pytest.raises(ValueError, match="b, c"):
            BaseCoordinator.validate_dependencies({"a": 1, "b": None}, ["a", "b", "c"])


class TestExecuteOperation:
    """Tests for execute_operation."""

    @pytest.mark.asyncio
    async def test_returns_result(self):
        """The operation result is passed through."""
        coordinator = BaseCoordinator()

        assert await coordinator.execute_operation(AsyncMock(return_value=7), "compute") == 7

    @pytest.mark.asyncio
    async def test_unexpected_error_wrapped(self):
        """Foreign exceptions become the declared error type."""
        coordinator = BaseCoordinator(name="Lookup")
        failure = KeyError("user")

        with pytest.raises(_LookupFailed) as exc_info:
            await coordinator.execute_operation(
                AsyncMock(side_effect=failure),
                "find_user",
                context={"email": "ada@example.com"},
                error_type=_LookupFailed,
            )

        error = exc_info.value
        assert error.cause is failure
        assert error.__cause__ is failure
        assert error.message.startswith("find_user failed")
        assert error.details == {
            "coordinator": "Lookup",
            "operation": "find_user",
            "context": {"email": "ada@example.com"},
            "original_error": "KeyError",
        }

    @pytest.mark.asyncio
    async def test_declared_error_not_rewrapped(self):
        """Errors already of the declared type propagate unchanged."""
        coordinator = BaseCoordinator()
        original = _LookupFailed("User not found")

        with pytest.raises(_LookupFailed) as exc_info:
            await coordinator.execute_operation(
                AsyncMock(side_effect=original), "find_user", error_type=_LookupFailed
            )

        assert exc_info.value is original

    @pytest.mark.asyncio
    async def test_preserved_error_passes_through(self):
        """Errors listed in preserve are re-raised as-is."""
        coordinator = BaseCoordinator()

        with pytest.raises(LookupError):
            await coordinator.execute_operation(
                AsyncMock(side_effect=LookupError("gone")),
                "find_user",
                error_type=_LookupFailed,
                preserve=(LookupError,),
            )

    @pytest.mark.asyncio
    async def test_default_error_type(self):
        """Without error_type, failures become CoordinationError."""
        coordinator = BaseCoordinator()

        with pytest.raises(CoordinationError):
            await coordinator.execute_operation(AsyncMock(side_effect=RuntimeError()), "op")


class TestBackgroundOperations:
    """Tests for fire-and-forget side effects."""

    @pytest.mark.asyncio
    async def test_failure_does_not_propagate(self):
        """A failing side effect is logged and dropped."""
        coordinator = BaseCoordinator()
        failing = AsyncMock(side_effect=RuntimeError("journal offline"))
        healthy = AsyncMock()

        tasks = coordinator.run_secondary_operations({"journal": failing, "progress": healthy})
        await coordinator.wait_for_background_tasks()

        assert len(tasks) == 2
        assert all(task.exception() is None for task in tasks)
        failing.assert_awaited_once()
        healthy.assert_awaited_once()
        assert coordinator.pending_background_tasks == 0

    @pytest.mark.asyncio
    async def test_caller_not_blocked(self):
        """The caller continues before the side effect finishes."""
        coordinator = BaseCoordinator()
        release = asyncio.Event()

        async def slow() -> None:
            await release.wait()

        coordinator.run_in_background(slow, "slow")
        await asyncio.sleep(0)

        assert coordinator.pending_background_tasks == 1

        release.set()
        await coordinator.wait_for_background_tasks(timeout=1)
        assert coordinator.pending_background_tasks == 0

    @pytest.mark.asyncio
    async def test_wait_without_tasks(self):
        """Waiting with nothing scheduled returns immediately."""
        await BaseCoordinator().wait_for_background_tasks()
