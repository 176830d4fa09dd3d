# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Core package for AI Fight Club.

This package contains shared application building blocks:
- config: Application configuration and settings
- coordination: Base class for application-layer coordinators
- intelligence: LLM client
"""
