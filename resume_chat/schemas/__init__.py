"""Pydantic schemas for the chat wire contract."""

from resume_chat.schemas.chat import (
    Category,
    ConversationContextPayload,
    ExtractedField,
    ExtractionRequest,
    ExtractionResponse,
    SpecialContent,
    TokenUsage,
    TranscriptMessage,
    UserTone,
)

__all__ = [
    "Category",
    "ConversationContextPayload",
    "ExtractedField",
    "ExtractionRequest",
    "ExtractionResponse",
    "SpecialContent",
    "TokenUsage",
    "TranscriptMessage",
    "UserTone",
]
