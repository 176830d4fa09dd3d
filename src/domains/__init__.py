# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Domain layer for AI Fight Club.

This package contains the business logic of each bounded context.

Domains:
    common: Value objects shared across domains.
    challenge: Challenge lifecycle, persistence, caching and orchestration.
"""
