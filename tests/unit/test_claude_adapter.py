"""Tests for the Claude LLM adapter.

Tests the ClaudeAdapter implementation with a mocked Anthropic client.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import anthropic
import httpx
import pytest

from resume_chat.providers.config import ProviderConfig
from resume_chat.providers.errors import (
    AuthenticationError,
    ContentFilterError,
    ContextLengthError,
    ProviderError,
    RateLimitError,
    TransientError,
)
from resume_chat.providers.llm.base import LLMMessage, TaskType
from resume_chat.providers.llm.claude_adapter import ClaudeAdapter

_ANTHROPIC_URL = "https://api.anthropic.com/v1/messages"


@pytest.fixture
def config():
    """Create a test provider config using built-in defaults."""
    return ProviderConfig(
        llm_provider="claude",
        anthropic_api_key="test-api-key",
        default_max_tokens=1000,
        default_temperature=0.7,
    )


@pytest.fixture
def mock_anthropic_response():
    """Create a mock Anthropic API response."""
    response = MagicMock()
    response.content = [MagicMock(type="text", text="Hi! What's your full name?")]
    response.usage = MagicMock(input_tokens=10, output_tokens=20)
    response.stop_reason = "end_turn"
    return response


def make_http_response(status_code: int, headers: dict | None = None) -> httpx.Response:
    return httpx.Response(
        status_code,
        headers=headers or {},
        request=httpx.Request("POST", _ANTHROPIC_URL),
    )


def make_adapter(config, create: AsyncMock) -> ClaudeAdapter:
    with patch("resume_chat.providers.llm.claude_adapter.AsyncAnthropic") as client_cls:
        client = AsyncMock()
        client.messages.create = create
        client_cls.return_value = client
        return ClaudeAdapter(config)


# =============================================================================
# Initialization and Routing
# =============================================================================


class TestClaudeAdapterInit:
    """Test ClaudeAdapter initialization."""

    def test_init_creates_anthropic_client(self, config):
        """ClaudeAdapter should create an AsyncAnthropic client with the key."""
        with patch("resume_chat.providers.llm.claude_adapter.AsyncAnthropic") as client:
            adapter = ClaudeAdapter(config)
            client.assert_called_once_with(api_key="test-api-key")
            assert adapter.config is config

    def test_conversation_turns_use_haiku_by_default(self, config):
        """Conversation turns are short; the default model is Haiku."""
        with patch("resume_chat.providers.llm.claude_adapter.AsyncAnthropic"):
            adapter = ClaudeAdapter(config)
        assert "haiku" in adapter.get_model_for_task(TaskType.CONVERSATION_TURN)

    def test_config_routing_overrides_defaults(self):
        """Custom routing from config takes precedence."""
        config = ProviderConfig(
            anthropic_api_key="test-api-key",
            claude_model_routing={"conversation_turn": "my-custom-model"},
        )
        with patch("resume_chat.providers.llm.claude_adapter.AsyncAnthropic"):
            adapter = ClaudeAdapter(config)
        assert adapter.get_model_for_task(TaskType.CONVERSATION_TURN) == "my-custom-model"


# =============================================================================
# Completion
# =============================================================================


class TestClaudeAdapterComplete:
    """Test ClaudeAdapter.complete()."""

    @pytest.mark.asyncio
    async def test_complete_returns_text_and_usage(self, config, mock_anthropic_response):
        """Should return reply text, token counts and finish reason."""
        adapter = make_adapter(config, AsyncMock(return_value=mock_anthropic_response))

        result = await adapter.complete(
            [LLMMessage(role="user", content="Hello")], TaskType.CONVERSATION_TURN
        )

        assert result.content == "Hi! What's your full name?"
        assert result.input_tokens == 10
        assert result.output_tokens == 20
        assert result.total_tokens == 30
        assert result.finish_reason == "end_turn"
        assert result.latency_ms >= 0

    @pytest.mark.asyncio
    async def test_system_message_sent_separately(self, config, mock_anthropic_response):
        """The system prompt goes in the system parameter, not in messages."""
        create = AsyncMock(return_value=mock_anthropic_response)
        adapter = make_adapter(config, create)

        await adapter.complete(
            [
                LLMMessage(role="system", content="You are a resume assistant."),
                LLMMessage(role="user", content="Hello"),
            ],
            TaskType.CONVERSATION_TURN,
        )

        kwargs = create.call_args.kwargs
        assert kwargs["system"] == "You are a resume assistant."
        assert kwargs["messages"] == [{"role": "user", "content": "Hello"}]

    @pytest.mark.asyncio
    async def test_uses_config_defaults(self, config, mock_anthropic_response):
        """Without overrides, max_tokens and temperature come from config."""
        create = AsyncMock(return_value=mock_anthropic_response)
        adapter = make_adapter(config, create)

        await adapter.complete(
            [LLMMessage(role="user", content="Hello")], TaskType.CONVERSATION_TURN
        )

        kwargs = create.call_args.kwargs
        assert kwargs["max_tokens"] == 1000
        assert kwargs["temperature"] == 0.7
        assert "stop_sequences" not in kwargs

    @pytest.mark.asyncio
    async def test_overrides_are_passed_through(self, config, mock_anthropic_response):
        """Explicit max_tokens, temperature and stop sequences win."""
        create = AsyncMock(return_value=mock_anthropic_response)
        adapter = make_adapter(config, create)

        await adapter.complete(
            [LLMMessage(role="user", content="Hello")],
            TaskType.CONVERSATION_TURN,
            max_tokens=200,
            temperature=0.0,
            stop_sequences=["</extracted_data>"],
        )

        kwargs = create.call_args.kwargs
        assert kwargs["max_tokens"] == 200
        assert kwargs["temperature"] == 0.0
        assert kwargs["stop_sequences"] == ["</extracted_data>"]

    @pytest.mark.asyncio
    async def test_response_without_text_blocks_has_no_content(self, config):
        """A reply with no text blocks yields content None."""
        response = MagicMock()
        response.content = []
        response.usage = MagicMock(input_tokens=5, output_tokens=0)
        response.stop_reason = None
        adapter = make_adapter(config, AsyncMock(return_value=response))

        result = await adapter.complete(
            [LLMMessage(role="user", content="Hello")], TaskType.CONVERSATION_TURN
        )

        assert result.content is None
        assert result.finish_reason == "unknown"


# =============================================================================
# Error Mapping
# =============================================================================


class TestClaudeAdapterErrorMapping:
    """Test error mapping from the Anthropic SDK to provider errors."""

    @pytest.mark.asyncio
    async def test_rate_limit_error_includes_retry_after(self, config):
        """RateLimitError carries the retry-after header in seconds."""
        error = anthropic.RateLimitError(
            message="Rate limit exceeded",
            response=make_http_response(429, {"retry-after": "30"}),
            body=None,
        )
        adapter = make_adapter(config, AsyncMock(side_effect=error))

        with pytest.raises(RateLimitError) as exc_info:
            await adapter.complete(
                [LLMMessage(role="user", content="Hello")], TaskType.CONVERSATION_TURN
            )

        assert exc_info.value.retry_after_seconds == 30.0

    @pytest.mark.asyncio
    async def test_authentication_error_mapped(self, config):
        error = anthropic.AuthenticationError(
            message="Invalid API key", response=make_http_response(401), body=None
        )
        adapter = make_adapter(config, AsyncMock(side_effect=error))

        with pytest.raises(AuthenticationError, match="Invalid API key"):
            await adapter.complete(
                [LLMMessage(role="user", content="Hello")], TaskType.CONVERSATION_TURN
            )

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("message", "expected"),
        [
            ("prompt is too long: 250000 tokens", ContextLengthError),
            ("content_policy violation", ContentFilterError),
            ("invalid request", ProviderError),
        ],
    )
    async def test_bad_request_mapped_by_message(self, config, message, expected):
        """BadRequestError is classified from its message."""
        error = anthropic.BadRequestError(
            message=message, response=make_http_response(400), body=None
        )
        adapter = make_adapter(config, AsyncMock(side_effect=error))

        with pytest.raises(expected):
            await adapter.complete(
                [LLMMessage(role="user", content="Hello")], TaskType.CONVERSATION_TURN
            )

    @pytest.mark.asyncio
    async def test_server_error_mapped_to_transient(self, config):
        error = anthropic.InternalServerError(
            message="Overloaded", response=make_http_response(529), body=None
        )
        adapter = make_adapter(config, AsyncMock(side_effect=error))

        with pytest.raises(TransientError):
            await adapter.complete(
                [LLMMessage(role="user", content="Hello")], TaskType.CONVERSATION_TURN
            )

    @pytest.mark.asyncio
    async def test_connection_error_mapped_to_transient(self, config):
        error = anthropic.APIConnectionError(request=httpx.Request("POST", _ANTHROPIC_URL))
        adapter = make_adapter(config, AsyncMock(side_effect=error))

        with pytest.raises(TransientError):
            await adapter.complete(
                [LLMMessage(role="user", content="Hello")], TaskType.CONVERSATION_TURN
            )


# =============================================================================
# Logging
# =============================================================================


class TestClaudeAdapterLogging:
    """Test structured logging in the Claude adapter."""

    @pytest.mark.asyncio
    async def test_logs_request_start(self, config, mock_anthropic_response):
        """Should log llm_request_start before making the API call."""
        adapter = make_adapter(config, AsyncMock(return_value=mock_anthropic_response))

        with patch("resume_chat.providers.llm.claude_adapter.logger") as mock_logger:
            await adapter.complete(
                [LLMMessage(role="user", content="Hello!")], TaskType.CONVERSATION_TURN
            )

        mock_logger.info.assert_any_call(
            "llm_request_start",
            provider="claude",
            model=adapter.get_model_for_task(TaskType.CONVERSATION_TURN),
            task="conversation_turn",
            message_count=1,
        )

    @pytest.mark.asyncio
    async def test_logs_request_failed_on_error(self, config):
        """Should log llm_request_failed with the SDK error type."""
        error = anthropic.InternalServerError(
            message="Overloaded", response=make_http_response(500), body=None
        )
        adapter = make_adapter(config, AsyncMock(side_effect=error))

        with (
            patch("resume_chat.providers.llm.claude_adapter.logger") as mock_logger,
            pytest.raises(TransientError),
        ):
            await adapter.complete(
                [LLMMessage(role="user", content="Hello!")], TaskType.CONVERSATION_TURN
            )

        call = mock_logger.error.call_args
        assert call.args == ("llm_request_failed",)
        assert call.kwargs["error_type"] == "InternalServerError"
