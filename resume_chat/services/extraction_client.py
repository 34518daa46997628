"""Extraction backends for assisted mode.

An extraction backend turns an ExtractionRequest into an ExtractionResponse.
Two implementations:

- HttpExtractionBackend: POSTs to a remote ``{base_url}/chat`` endpoint.
- ProviderExtractionBackend: generates the turn in-process through an
  LLMProvider.

Both raise ConversationServiceError subclasses on failure, so callers
handle one error family regardless of transport. Every error is
recoverable: the caller answers with ``generate_fallback_response``.
"""

import logging
from abc import ABC, abstractmethod

import httpx
from pydantic import ValidationError

from resume_chat.core.config import settings
from resume_chat.core.errors import (
    ChatAPIError,
    ChatResponseError,
    ConversationServiceError,
    NetworkError,
    RateLimitedError,
    ServerUnavailableError,
    UnknownChatError,
)
from resume_chat.providers.config import ProviderConfig
from resume_chat.providers.errors import ProviderError, RateLimitError, TransientError
from resume_chat.providers.factory import get_llm_provider
from resume_chat.providers.llm.base import LLMProvider
from resume_chat.schemas.chat import ExtractionRequest, ExtractionResponse
from resume_chat.services.extraction_service import generate_chat_turn

logger = logging.getLogger(__name__)

MAX_CONSECUTIVE_ERRORS = settings.max_consecutive_errors

SWITCH_TO_GUIDED_MESSAGE = (
    "I'm having trouble connecting to my AI features. Would you like to switch "
    "to Classic mode? It's a simpler step-by-step approach that doesn't require AI."
)
GENERIC_RETRY_MESSAGE = (
    "I'm sorry, I had trouble understanding that. Could you please try again?"
)

FALLBACK_MESSAGES: dict[str, str] = {
    "language": "What language would you like your resume to be in?",
    "intro": (
        "Hi! I'm here to help you build a professional resume. Let's start with "
        "your name - what's your full name?"
    ),
    "personal": (
        "Let's continue with your contact information. What's your email address?"
    ),
    "work": (
        "Now let's talk about your work experience. What was your most recent "
        "job? Tell me the company name and your job title."
    ),
    "education": (
        "Let's discuss your education. What school did you attend, and what "
        "degree did you earn?"
    ),
    "volunteering": (
        "Do you have any volunteer experience you'd like to include on your resume?"
    ),
    "skills": (
        "What skills would you like to highlight? This can include technical "
        "skills, soft skills, certifications, or languages."
    ),
    "references": (
        "Would you like to add professional references, or would you prefer to "
        "just put 'References available upon request'?"
    ),
    "review": (
        "Great! I've collected all your information. Would you like to review "
        "anything before we generate your resume?"
    ),
    "complete": (
        "Your resume is ready! Click the button below to preview and download it."
    ),
}


def generate_fallback_response(category: str) -> ExtractionResponse:
    """Scripted reply used when no model turn could be obtained.

    Unknown categories get the intro message.
    """
    return ExtractionResponse(
        success=True,
        assistant_message=FALLBACK_MESSAGES.get(category, FALLBACK_MESSAGES["intro"]),
        extracted_fields=[],
        suggested_section=None,
        is_complete=category == "complete",
        follow_up_needed=False,
        confidence=1.0,
    )


class ExtractionBackend(ABC):
    """Produces one assisted-mode turn from a request."""

    @abstractmethod
    async def extract(self, request: ExtractionRequest) -> ExtractionResponse:
        """Return the model turn for ``request``.

        Raises:
            ConversationServiceError: On any failure to obtain a turn.
        """
        ...


# =============================================================================
# HTTP Backend
# =============================================================================


class HttpExtractionBackend(ExtractionBackend):
    """Extraction through a remote chat endpoint.

    Args:
        base_url: API base URL; the request goes to ``{base_url}/chat``.
            Defaults to settings.
        timeout: Request timeout in seconds. Defaults to settings.
        transport: Optional httpx transport (tests pass a MockTransport).
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or settings.chat_api_base_url).rstrip("/")
        self.timeout = timeout or settings.chat_request_timeout_seconds
        self._transport = transport

    @property
    def url(self) -> str:
        return f"{self.base_url}/chat"

    async def extract(self, request: ExtractionRequest) -> ExtractionResponse:
        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                resp = await client.post(
                    self.url,
                    json=request.model_dump(by_alias=True, mode="json"),
                    timeout=self.timeout,
                )
        except httpx.TransportError as e:
            logger.warning("Chat request to %s failed: %s", self.url, e)
            raise NetworkError(
                "Unable to connect to the server. Please check your internet connection."
            ) from e

        if resp.status_code == 429:
            raise RateLimitedError(status_code=429)
        if resp.status_code >= 500:
            raise ServerUnavailableError(status_code=resp.status_code)
        if not resp.is_success:
            raise ChatAPIError(status_code=resp.status_code)

        try:
            response = ExtractionResponse.model_validate(resp.json())
        except (ValueError, ValidationError) as e:
            logger.warning("Malformed chat response from %s: %s", self.url, e)
            raise UnknownChatError("An unexpected error occurred. Please try again.") from e

        if not response.success:
            raise ChatResponseError(response.error or "An unexpected error occurred.")
        return response


# =============================================================================
# Provider Backend
# =============================================================================


def map_provider_error(error: ProviderError) -> ConversationServiceError:
    """Translate a provider failure into the conversation error taxonomy."""
    if isinstance(error, RateLimitError):
        return RateLimitedError(status_code=None)
    if isinstance(error, TransientError):
        return ServerUnavailableError()
    return ChatAPIError()


class ProviderExtractionBackend(ExtractionBackend):
    """In-process extraction through an LLMProvider.

    Args:
        provider: LLM provider. Defaults to the process-wide provider.
        retry_config: When given, transient provider errors are retried
            with exponential backoff using its retry settings.
    """

    def __init__(
        self,
        provider: LLMProvider | None = None,
        retry_config: ProviderConfig | None = None,
    ) -> None:
        self.provider = provider or get_llm_provider()
        self.retry_config = retry_config

    async def extract(self, request: ExtractionRequest) -> ExtractionResponse:
        try:
            return await generate_chat_turn(
                request, self.provider, retry_config=self.retry_config
            )
        except ProviderError as e:
            logger.warning("Provider failed to generate a chat turn: %s", e)
            raise map_provider_error(e) from e
