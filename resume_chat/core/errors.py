"""Conversation service error classes.

Every failure to obtain a model turn is classified into a small set of
codes. All of them are recoverable: the conversation continues on a
scripted fallback message.

WHY CUSTOM ERROR CLASSES:
- The caller picks the user-facing message from the code
- ``recoverable`` tells the caller whether a fallback reply is appropriate
- Transport (HTTP) and in-process (provider) backends raise the same types
"""

from enum import Enum


class ErrorCode(str, Enum):
    """Machine-readable conversation service error codes."""

    RATE_LIMIT = "RATE_LIMIT"
    SERVER_ERROR = "SERVER_ERROR"
    API_ERROR = "API_ERROR"
    RESPONSE_ERROR = "RESPONSE_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


class ConversationServiceError(Exception):
    """Base class for conversation service errors.

    Attributes:
        code: Machine-readable error code.
        message: Human-readable message safe to show the user.
        recoverable: True when the conversation can continue degraded.
        status_code: HTTP status when the failure came from a response.
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        recoverable: bool = True,
        status_code: int | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.recoverable = recoverable
        self.status_code = status_code
        super().__init__(message)


class RateLimitedError(ConversationServiceError):
    """Too many requests (429)."""

    def __init__(
        self,
        message: str = "Too many requests. Please wait a moment and try again.",
        status_code: int | None = 429,
    ) -> None:
        super().__init__(
            code=ErrorCode.RATE_LIMIT,
            message=message,
            status_code=status_code,
        )


class ServerUnavailableError(ConversationServiceError):
    """Chat backend failed with a server error (>= 500). Retryable."""

    def __init__(
        self,
        message: str = "The server is temporarily unavailable. Please try again.",
        status_code: int | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.SERVER_ERROR,
            message=message,
            status_code=status_code,
        )


class ChatAPIError(ConversationServiceError):
    """Any other non-success HTTP status."""

    def __init__(
        self,
        message: str = "Failed to communicate with the chat service.",
        status_code: int | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.API_ERROR,
            message=message,
            status_code=status_code,
        )


class ChatResponseError(ConversationServiceError):
    """The backend answered but reported ``success: false``."""

    def __init__(self, message: str = "An unexpected error occurred.") -> None:
        super().__init__(code=ErrorCode.RESPONSE_ERROR, message=message)


class NetworkError(ConversationServiceError):
    """The request never reached the backend."""

    def __init__(
        self,
        message: str = "Unable to connect. Please check your internet connection.",
    ) -> None:
        super().__init__(code=ErrorCode.NETWORK_ERROR, message=message)


class UnknownChatError(ConversationServiceError):
    """Anything else, such as a malformed response body."""

    def __init__(self, message: str = "An unexpected error occurred.") -> None:
        super().__init__(code=ErrorCode.UNKNOWN_ERROR, message=message)
