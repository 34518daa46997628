"""Abstract base class and types for LLM providers.

The conversation backend only needs non-streaming chat completions: each
assisted-mode turn is one request that returns the assistant reply plus an
``<extracted_data>`` block.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from resume_chat.providers.config import ProviderConfig


class TaskType(Enum):
    """Task types for model routing.

    WHY ENUM: Explicit task types prevent typos; the adapters' routing
    tables map these to concrete models.
    """

    CONVERSATION_TURN = "conversation_turn"


@dataclass
class LLMMessage:
    """Provider-agnostic message format.

    Attributes:
        role: Message role ("system", "user", "assistant").
        content: Text content.
    """

    role: str
    content: str | None = None


@dataclass
class LLMResponse:
    """Provider-agnostic response format.

    Attributes:
        content: Text response.
        model: Actual model used (for logging).
        input_tokens: Number of input tokens used.
        output_tokens: Number of output tokens generated.
        finish_reason: Why generation stopped ("stop", "max_tokens", ...).
        latency_ms: Response time in milliseconds.
    """

    content: str | None
    model: str
    input_tokens: int
    output_tokens: int
    finish_reason: str
    latency_ms: float

    @property
    def total_tokens(self) -> int:
        """Input plus output tokens."""
        return self.input_tokens + self.output_tokens


class LLMProvider(ABC):
    """Abstract base class for LLM providers.

    WHY ABSTRACT CLASS:
    - Consistent interface across Claude and OpenAI
    - Makes testing via MockLLMProvider trivial
    """

    def __init__(self, config: "ProviderConfig") -> None:
        """Initialize with provider configuration.

        Args:
            config: Provider configuration including API keys and defaults.
        """
        self.config = config

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider identifier (e.g., 'claude', 'openai')."""
        ...

    @abstractmethod
    async def complete(
        self,
        messages: list[LLMMessage],
        task: TaskType,
        max_tokens: int | None = None,
        temperature: float | None = None,
        stop_sequences: list[str] | None = None,
    ) -> LLMResponse:
        """Generate a completion.

        Args:
            messages: Conversation history as list of LLMMessage. A message
                with role "system" carries the system prompt.
            task: Task type for model routing.
            max_tokens: Override default max tokens.
            temperature: Override default temperature.
            stop_sequences: Custom stop sequences.

        Returns:
            LLMResponse with the generated content.

        Raises:
            ProviderError: On API failure.
            RateLimitError: If rate limited.
        """
        ...

    @abstractmethod
    def get_model_for_task(self, task: TaskType) -> str:
        """Return the model identifier for a given task.

        Args:
            task: The task type to get the model for.

        Returns:
            Model identifier string.
        """
        ...
