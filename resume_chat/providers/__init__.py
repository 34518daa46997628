"""Provider abstraction layer.

Exports:
    Error classes for provider error handling
    ProviderConfig for configuration
    Factory functions for provider instances
"""

from resume_chat.providers.config import ProviderConfig
from resume_chat.providers.errors import (
    AuthenticationError,
    ContentFilterError,
    ContextLengthError,
    ModelNotFoundError,
    ProviderError,
    RateLimitError,
    TransientError,
)
from resume_chat.providers.factory import get_llm_provider, reset_providers

__all__ = [
    # Config
    "ProviderConfig",
    # Errors
    "ProviderError",
    "RateLimitError",
    "AuthenticationError",
    "ModelNotFoundError",
    "ContentFilterError",
    "ContextLengthError",
    "TransientError",
    # Factory
    "get_llm_provider",
    "reset_providers",
]
