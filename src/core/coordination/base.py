# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Base class for application-layer coordinators.

A coordinator method runs its body through ``execute_operation``, which
logs the call and converts any unexpected exception into the domain
error type the method declares. Callers therefore only ever see typed
errors, with the original exception kept as ``cause`` and chained via
``raise ... from``.

Side effects that must not delay or fail the primary result run through
``run_in_background``; their failures are logged and dropped.

Example:
    class ChallengeCoordinator(BaseCoordinator):
        async def generate(self, params):
            return await self.execute_operation(
                lambda: self._generate(params),
                "generate",
                context={"email": params.email},
                error_type=ChallengeGenerationError,
            )
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Iterable, Mapping, TypeVar

T = TypeVar("T")


class CoordinationError(Exception):
    """Default error raised when a coordinator operation fails.

    Domain error types passed as ``error_type`` share this constructor
    signature.
    """

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ):
        self.message = message
        self.details = details or {}
        self.cause = cause
        super().__init__(message)


class BaseCoordinator:
    """Shared behaviour for coordinators.

    Attributes:
        name: Coordinator name used in logs and error metadata.
        logger: Logger named after the concrete coordinator class.
    """

    def __init__(self, name: str | None = None) -> None:
        self.name = name or self.__class__.__name__
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self._background_tasks: set[asyncio.Task] = set()

    @staticmethod
    def validate_dependencies(
        dependencies: Mapping[str, Any],
        required: Iterable[str],
    ) -> None:
        """Ensure every required collaborator was supplied.

        Raises:
            ValueError: Listing the missing dependency names.
        """
        missing = [name for name in required if dependencies.get(name) is None]
        if missing:
            raise ValueError(f"Missing required dependencies: {', '.join(missing)}")

    async def execute_operation(
        self,
        operation: Callable[[], Awaitable[T]],
        operation_name: str,
        context: dict[str, Any] | None = None,
        error_type: type[Exception] = CoordinationError,
        preserve: tuple[type[BaseException], ...] = (),
    ) -> T:
        """Run an operation with logging and error wrapping.

        Args:
            operation: Zero-argument coroutine function with the body.
            operation_name: Name used in logs and error details.
            context: Structured values describing the call.
            error_type: Domain error raised for unexpected failures. Must
                accept (message, details=..., cause=...).
            preserve: Error types re-raised unchanged.

        Returns:
            Whatever the operation returns.

        Raises:
            error_type: For any failure not already of that type or in
                ``preserve``.
        """
        context = context or {}
        self.logger.debug("%s.%s started: %s", self.name, operation_name, context)

        try:
            result = await operation()
        except (error_type, *preserve) as e:
            self.logger.error(
                "%s.%s failed: %s",
                self.name,
                operation_name,
                e,
                exc_info=True,
            )
            raise
        except Exception as e:
            self.logger.error(
                "%s.%s failed: %s",
                self.name,
                operation_name,
                e,
                exc_info=True,
            )
            raise error_type(
                f"{operation_name} failed: {e}",
                details={
                    "coordinator": self.name,
                    "operation": operation_name,
                    "context": context,
                    "original_error": type(e).__name__,
                },
                cause=e,
            ) from e

        self.logger.debug("%s.%s completed", self.name, operation_name)
        return result

    def run_in_background(
        self,
        operation: Callable[[], Awaitable[Any]],
        label: str,
    ) -> asyncio.Task:
        """Start a best-effort side effect without awaiting it.

        Args:
            operation: Zero-argument coroutine function.
            label: Name used when logging a failure.

        Returns:
            The scheduled task.
        """

        async def guarded() -> None:
            try:
                await operation()
            except Exception as e:
                self.logger.warning(
                    "%s secondary operation %s failed: %s",
                    self.name,
                    label,
                    e,
                    exc_info=True,
                )

        task = asyncio.create_task(guarded(), name=f"{self.name}:{label}")
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)
        return task

    def run_secondary_operations(
        self,
        operations: Mapping[str, Callable[[], Awaitable[Any]]],
    ) -> list[asyncio.Task]:
        """Start several independent side effects concurrently."""
        return [self.run_in_background(op, label) for label, op in operations.items()]

    @property
    def pending_background_tasks(self) -> int:
        return len(self._background_tasks)

    async def wait_for_background_tasks(self, timeout: float | None = None) -> None:
        """Wait for in-flight side effects, e.g. during shutdown."""
        if not self._background_tasks:
            return
        done, pending = await asyncio.wait(set(self._background_tasks), timeout=timeout)
        if pending:
            self.logger.warning(
                "%s: %d background tasks still running after %ss",
                self.name,
                len(pending),
                timeout,
            )
