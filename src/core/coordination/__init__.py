# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Application-layer coordination helpers.

Coordinators compose domain services into use cases. BaseCoordinator
gives them uniform logging, error wrapping and background side effects.
"""

from src.core.coordination.base import BaseCoordinator, CoordinationError

__all__ = ["BaseCoordinator", "CoordinationError"]
