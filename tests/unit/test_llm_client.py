# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the LiteLLM-backed client.

LiteLLM's acompletion is patched; no provider is contacted.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.core.config.settings import LLMSettings
from src.core.intelligence.llm import LLMClient, LLMError


def _completion(content: str, response_id: str = "resp_1") -> MagicMock:
    response = MagicMock()
    response.id = response_id
    response.choices = [MagicMock()]
    response.choices[0].message.content = content
    response.choices[0].finish_reason = "stop"
    response.usage.prompt_tokens = 12
    response.usage.completion_tokens = 30
    return response


@pytest.fixture
def llm_settings() -> LLMSettings:
    """LLM settings with a fixed model."""
    return LLMSettings(default_model="gpt-4o-mini", max_retries=1, request_timeout=5.0)


@pytest.fixture
def client(llm_settings) -> LLMClient:
    """Create a client over the test settings."""
    return LLMClient(llm_settings=llm_settings)


class TestComplete:
    """Tests for LLMClient.complete."""

    @pytest.mark.asyncio
    async def test_returns_response(self, client):
        """Content, usage and response id are extracted."""
        with patch(
            "src.core.intelligence.llm.client.acompletion",
            new=AsyncMock(return_value=_completion("Hello")),
        ) as mock_completion:
            response = await client.complete("Say hello", system_prompt="Be brief")

        assert response.content == "Hello"
        assert response.model == "gpt-4o-mini"
        assert response.total_tokens == 42
        assert response.response_id == "resp_1"

        kwargs = mock_completion.await_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["messages"][0] == {"role": "system", "content": "Be brief"}
        assert kwargs["messages"][1] == {"role": "user", "content": "Say hello"}
        assert kwargs["num_retries"] == 1
        assert kwargs["timeout"] == 5.0

    @pytest.mark.asyncio
    async def test_empty_prompt_rejected(self, client):
        """Empty prompts raise ValueError before any call."""
        with pytest.raises(ValueError):
            await client.complete("   ")

    @pytest.mark.asyncio
    async def test_provider_error_wrapped(self, client):
        """Provider failures become LLMError."""
        with patch(
            "src.core.intelligence.llm.client.acompletion",
            new=AsyncMock(side_effect=RuntimeError("rate limited")),
        ):
            with pytest.raises(LLMError) as exc_info:
                await client.complete("Hi")

        assert exc_info.value.model == "gpt-4o-mini"
        assert isinstance(exc_info.value.original_error, RuntimeError)


class TestJson:
    """Tests for JSON completions."""

    @pytest.mark.parametrize(
        "content",
        [
            '{"title": "T"}',
            '```json\n{"title": "T"}\n```',
            '  ```\n{"title": "T"}\n```  ',
        ],
    )
    def test_parse_json_content(self, content):
        """Plain and fenced JSON objects are parsed."""
        assert LLMClient.parse_json_content(content) == {"title": "T"}

    @pytest.mark.parametrize("content", ["not json", "[1, 2]", ""])
    def test_parse_json_content_rejects_non_objects(self, content):
        """Malformed output or non-objects raise INVALID_JSON."""
        with pytest.raises(LLMError) as exc_info:
            LLMClient.parse_json_content(content)

        assert exc_info.value.error_code == "INVALID_JSON"

    @pytest.mark.asyncio
    async def test_complete_json(self, client):
        """JSON mode is requested and the response id is attached."""
        with patch(
            "src.core.intelligence.llm.client.acompletion",
            new=AsyncMock(return_value=_completion('{"score": 90}', "resp_9")),
        ) as mock_completion:
            data = await client.complete_json("Score this")

        assert data == {"score": 90, "_response_id": "resp_9"}
        assert mock_completion.await_args.kwargs["response_format"] == {"type": "json_object"}
