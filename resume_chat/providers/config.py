"""Provider configuration for the conversation model backend."""

import os
from dataclasses import dataclass

SUPPORTED_LLM_PROVIDERS = ("claude", "openai")


@dataclass
class ProviderConfig:
    """Centralized provider configuration.

    Attributes:
        llm_provider: Which LLM provider answers conversation turns
            ("claude" or "openai").
        anthropic_api_key: Anthropic API key (loaded from environment).
        openai_api_key: OpenAI API key (loaded from environment).
        claude_model_routing: Override model routing for Claude.
        openai_model_routing: Override model routing for OpenAI.
        default_max_tokens: Default max output tokens. A conversation turn
            is one short reply plus an extracted_data block.
        default_temperature: Default sampling temperature.
        max_retries: Max retry attempts for transient errors.
        retry_base_delay_ms: Base delay for exponential backoff.
        retry_max_delay_ms: Max delay cap for exponential backoff.
    """

    llm_provider: str = "claude"

    anthropic_api_key: str | None = None
    openai_api_key: str | None = None

    claude_model_routing: dict[str, str] | None = None
    openai_model_routing: dict[str, str] | None = None

    default_max_tokens: int = 1000
    default_temperature: float = 0.7

    max_retries: int = 3
    retry_base_delay_ms: int = 1000
    retry_max_delay_ms: int = 30000

    @classmethod
    def from_env(cls) -> "ProviderConfig":
        """Load configuration from environment variables.

        Returns:
            ProviderConfig instance with values from environment.
        """
        return cls(
            llm_provider=os.getenv("LLM_PROVIDER", "claude"),
            anthropic_api_key=os.getenv("ANTHROPIC_API_KEY"),
            openai_api_key=os.getenv("OPENAI_API_KEY"),
            default_max_tokens=int(os.getenv("DEFAULT_MAX_TOKENS", "1000")),
            default_temperature=float(os.getenv("DEFAULT_TEMPERATURE", "0.7")),
            max_retries=int(os.getenv("LLM_MAX_RETRIES", "3")),
        )
