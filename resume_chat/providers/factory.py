"""Provider factory functions.

One LLM provider instance per process, created lazily from the environment
on first use.
"""

from resume_chat.providers.config import ProviderConfig
from resume_chat.providers.llm.base import LLMProvider
from resume_chat.providers.llm.claude_adapter import ClaudeAdapter
from resume_chat.providers.llm.openai_adapter import OpenAIAdapter

_llm_provider: LLMProvider | None = None


def get_llm_provider(config: ProviderConfig | None = None) -> LLMProvider:
    """Get or create the LLM provider singleton.

    WHY SINGLETON:
    - Reuses HTTP connections held by the SDK clients
    - Consistent configuration across sessions

    Args:
        config: Optional provider configuration. If None and no provider
            exists, loads from environment.

    Returns:
        LLMProvider instance.

    Raises:
        ValueError: If the configured provider is unknown.
    """
    global _llm_provider

    if _llm_provider is None:
        if config is None:
            config = ProviderConfig.from_env()

        if config.llm_provider == "claude":
            _llm_provider = ClaudeAdapter(config)
        elif config.llm_provider == "openai":
            _llm_provider = OpenAIAdapter(config)
        else:
            raise ValueError(f"Unknown LLM provider: {config.llm_provider}")

    return _llm_provider


def reset_providers() -> None:
    """Reset the provider singleton.

    Used in tests to ensure isolation between test cases.
    """
    global _llm_provider
    _llm_provider = None
