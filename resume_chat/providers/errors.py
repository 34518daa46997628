"""Provider error taxonomy.

Adapters translate SDK-specific exceptions into these classes so the
extraction service can decide between retrying, falling back to a scripted
reply, or surfacing a configuration problem.

WHY SEPARATE ERROR CLASSES:
- Retryable failures (rate limits, transient outages) are distinguishable
  from failures that need a human (bad key, unknown model)
- The conversation layer maps them onto its own user-facing error codes
"""


__all__ = [
    "ProviderError",
    "RateLimitError",
    "AuthenticationError",
    "ModelNotFoundError",
    "ContentFilterError",
    "ContextLengthError",
    "TransientError",
]


class ProviderError(Exception):
    """Base class for all provider errors.

    Catching ProviderError catches every failure an adapter can raise.
    """

    pass


class RateLimitError(ProviderError):
    """Rate limit exceeded.

    WHY SEPARATE FROM TRANSIENT:
    - The provider may send a retry-after hint
    - The user sees a "wait a moment" message rather than a generic failure
    """

    def __init__(self, message: str, retry_after_seconds: float | None = None):
        """Initialize RateLimitError.

        Args:
            message: Error description from the provider.
            retry_after_seconds: Optional hint from provider on when to retry.
        """
        super().__init__(message)
        self.retry_after_seconds = retry_after_seconds


class AuthenticationError(ProviderError):
    """Invalid or expired API key. Not retryable."""

    pass


class ModelNotFoundError(ProviderError):
    """Requested model doesn't exist or isn't accessible with this key."""

    pass


class ContentFilterError(ProviderError):
    """Content blocked by the provider's safety filter."""

    pass


class ContextLengthError(ProviderError):
    """Input exceeded the model's context window.

    Long conversations hit this when the whole transcript is replayed;
    the caller should trim the transcript rather than retry.
    """

    pass


class TransientError(ProviderError):
    """Temporary failure (network, server overload, 5xx).

    Safe to retry with exponential backoff.
    """

    pass
