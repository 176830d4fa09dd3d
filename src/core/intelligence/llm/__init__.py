# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""LLM client module using LiteLLM.

This module provides a unified interface for LLM operations through LiteLLM,
used by the challenge generation and evaluation services.

Example:
    >>> from src.core.intelligence.llm import LLMClient
    >>> client = LLMClient()
    >>> response = await client.complete("What is 2+2?")
    >>> print(response.content)
    2+2 equals 4
"""

from src.core.intelligence.llm.client import (
    LLMClient,
    LLMError,
    LLMResponse,
)

__all__ = [
    "LLMClient",
    "LLMError",
    "LLMResponse",
]
