"""Tests for the OpenAI LLM adapter.

Tests the OpenAIAdapter implementation with a mocked OpenAI client.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import openai
import pytest

from resume_chat.providers.config import ProviderConfig
from resume_chat.providers.errors import (
    AuthenticationError,
    ContextLengthError,
    ModelNotFoundError,
    RateLimitError,
    TransientError,
)
from resume_chat.providers.llm.base import LLMMessage, TaskType
from resume_chat.providers.llm.openai_adapter import OpenAIAdapter

_OPENAI_URL = "https://api.openai.com/v1/chat/completions"


@pytest.fixture
def config():
    """Create a test provider config."""
    return ProviderConfig(
        llm_provider="openai",
        openai_api_key="test-api-key",
        default_max_tokens=1000,
        default_temperature=0.7,
    )


@pytest.fixture
def mock_openai_response():
    """Create a mock chat-completions response."""
    response = MagicMock()
    choice = MagicMock()
    choice.message.content = "Great! What's your email address?"
    choice.finish_reason = "stop"
    response.choices = [choice]
    response.usage = MagicMock(prompt_tokens=12, completion_tokens=8)
    return response


def make_http_response(status_code: int, headers: dict | None = None) -> httpx.Response:
    return httpx.Response(
        status_code,
        headers=headers or {},
        request=httpx.Request("POST", _OPENAI_URL),
    )


def make_adapter(config, create: AsyncMock) -> OpenAIAdapter:
    with patch("resume_chat.providers.llm.openai_adapter.AsyncOpenAI") as client_cls:
        client = MagicMock()
        client.chat.completions.create = create
        client_cls.return_value = client
        return OpenAIAdapter(config)


class TestOpenAIAdapterComplete:
    """Test OpenAIAdapter.complete()."""

    @pytest.mark.asyncio
    async def test_complete_returns_text_and_usage(self, config, mock_openai_response):
        adapter = make_adapter(config, AsyncMock(return_value=mock_openai_response))

        result = await adapter.complete(
            [LLMMessage(role="user", content="maria@example.com")],
            TaskType.CONVERSATION_TURN,
        )

        assert result.content == "Great! What's your email address?"
        assert result.input_tokens == 12
        assert result.output_tokens == 8
        assert result.finish_reason == "stop"
        assert result.model == "gpt-4o-mini"

    @pytest.mark.asyncio
    async def test_system_prompt_stays_in_messages(self, config, mock_openai_response):
        """OpenAI receives the system prompt as the first message."""
        create = AsyncMock(return_value=mock_openai_response)
        adapter = make_adapter(config, create)

        await adapter.complete(
            [
                LLMMessage(role="system", content="Be brief."),
                LLMMessage(role="user", content="Hi"),
            ],
            TaskType.CONVERSATION_TURN,
        )

        kwargs = create.call_args.kwargs
        assert kwargs["messages"][0] == {"role": "system", "content": "Be brief."}
        assert kwargs["max_tokens"] == 1000
        assert kwargs["temperature"] == 0.7

    @pytest.mark.asyncio
    async def test_missing_usage_counts_zero(self, config, mock_openai_response):
        mock_openai_response.usage = None
        adapter = make_adapter(config, AsyncMock(return_value=mock_openai_response))

        result = await adapter.complete(
            [LLMMessage(role="user", content="Hi")], TaskType.CONVERSATION_TURN
        )

        assert result.total_tokens == 0

    def test_config_routing_overrides_defaults(self):
        config = ProviderConfig(
            llm_provider="openai",
            openai_api_key="test-api-key",
            openai_model_routing={"conversation_turn": "gpt-4o"},
        )
        with patch("resume_chat.providers.llm.openai_adapter.AsyncOpenAI"):
            adapter = OpenAIAdapter(config)
        assert adapter.get_model_for_task(TaskType.CONVERSATION_TURN) == "gpt-4o"


class TestOpenAIAdapterErrorMapping:
    """Test error mapping from the OpenAI SDK to provider errors."""

    @pytest.mark.asyncio
    async def test_rate_limit_error_includes_retry_after(self, config):
        error = openai.RateLimitError(
            message="Rate limit reached",
            response=make_http_response(429, {"retry-after": "12"}),
            body=None,
        )
        adapter = make_adapter(config, AsyncMock(side_effect=error))

        with pytest.raises(RateLimitError) as exc_info:
            await adapter.complete(
                [LLMMessage(role="user", content="Hi")], TaskType.CONVERSATION_TURN
            )

        assert exc_info.value.retry_after_seconds == 12.0

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("error", "expected"),
        [
            (
                openai.AuthenticationError(
                    message="Incorrect API key", response=make_http_response(401), body=None
                ),
                AuthenticationError,
            ),
            (
                openai.NotFoundError(
                    message="model not found", response=make_http_response(404), body=None
                ),
                ModelNotFoundError,
            ),
            (
                openai.BadRequestError(
                    message="context_length_exceeded",
                    response=make_http_response(400),
                    body=None,
                ),
                ContextLengthError,
            ),
            (
                openai.InternalServerError(
                    message="server error", response=make_http_response(500), body=None
                ),
                TransientError,
            ),
            (
                openai.APIConnectionError(request=httpx.Request("POST", _OPENAI_URL)),
                TransientError,
            ),
        ],
    )
    async def test_sdk_errors_mapped(self, config, error, expected):
        adapter = make_adapter(config, AsyncMock(side_effect=error))

        with pytest.raises(expected):
            await adapter.complete(
                [LLMMessage(role="user", content="Hi")], TaskType.CONVERSATION_TURN
            )
