"""LLM provider interface and adapters."""

from resume_chat.providers.llm.base import (
    LLMMessage,
    LLMProvider,
    LLMResponse,
    TaskType,
)
from resume_chat.providers.llm.claude_adapter import ClaudeAdapter
from resume_chat.providers.llm.mock_adapter import MockLLMProvider
from resume_chat.providers.llm.openai_adapter import OpenAIAdapter

__all__ = [
    # Base types
    "LLMMessage",
    "LLMProvider",
    "LLMResponse",
    "TaskType",
    # Adapters
    "ClaudeAdapter",
    "MockLLMProvider",
    "OpenAIAdapter",
]
