"""Chat wire contract schemas.

Request and response bodies exchanged with the extraction backend. Field
names are camelCase on the wire (``userMessage``, ``extractedFields``) and
snake_case in Python; both spellings are accepted on input.

Paths inside ``ExtractedField.path`` use the record's dotted/indexed
syntax, e.g. ``workExperience[0].companyName``.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel

Category = Literal[
    "language",
    "intro",
    "personal",
    "work",
    "education",
    "volunteering",
    "skills",
    "references",
    "review",
    "complete",
]

UserTone = Literal["confident", "uncertain", "frustrated", "neutral"]


class _WireModel(BaseModel):
    """Base model with camelCase aliases for the wire format."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# Shared Schemas
# =============================================================================


class ExtractedField(_WireModel):
    """A candidate field value produced by the model.

    Attributes:
        path: Record path the value belongs to.
        value: The extracted value (string, bool, list, ...).
        confidence: Model-reported certainty in [0, 1].
        clear: True marks a contradiction reset of the whole section
            named by the path's top-level segment.
    """

    path: str = Field(..., min_length=1, description="Record path")
    value: Any = None
    confidence: float = Field(..., ge=0.0, le=1.0)
    clear: bool = False


class TranscriptMessage(_WireModel):
    """One transcript message as sent to the backend."""

    id: str | None = None
    role: Literal["user", "assistant", "system"]
    content: str
    timestamp: str | None = None
    question_id: str | None = None


class ConversationContextPayload(_WireModel):
    """Conversation context forwarded with each request."""

    mentioned_entities: list[str] = Field(default_factory=list)
    answered_topics: list[str] = Field(default_factory=list)
    user_tone: UserTone = "neutral"


class TokenUsage(_WireModel):
    """Token counts reported for one model call."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class SpecialContent(_WireModel):
    """Extra content shown alongside the reply (e.g. the email guide)."""

    type: Literal["email_guide", "help_link", "example"]
    content: str
    expandable: bool = False


# =============================================================================
# Request / Response
# =============================================================================


class ExtractionRequest(_WireModel):
    """Request body for POST {base_url}/chat."""

    user_message: str = Field(..., description="The user's latest message")
    messages: list[TranscriptMessage] = Field(default_factory=list)
    current_resume_data: dict[str, Any] = Field(default_factory=dict)
    current_section: Category
    language: str = "en"
    follow_up_count: int = Field(default=0, ge=0)
    conversation_context: ConversationContextPayload | None = None

    @field_validator("user_message", mode="before")
    @classmethod
    def strip_user_message(cls, v: str) -> str:
        """Strip whitespace from the user message."""
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("user_message")
    @classmethod
    def user_message_not_empty(cls, v: str) -> str:
        """Validate the user message is not empty after stripping."""
        if not v:
            msg = "User message cannot be empty"
            raise ValueError(msg)
        return v


class ExtractionResponse(_WireModel):
    """Response body of the extraction backend.

    ``success`` false means the backend reported a soft failure; ``error``
    then carries its message.
    """

    success: bool = True
    assistant_message: str = ""
    extracted_fields: list[ExtractedField] = Field(default_factory=list)
    suggested_section: Category | None = None
    is_complete: bool = False
    follow_up_needed: bool = False
    confidence: float = 0.5
    special_content: SpecialContent | None = None
    usage: TokenUsage | None = None
    error: str | None = None

    @field_validator(
        "assistant_message",
        "extracted_fields",
        "is_complete",
        "follow_up_needed",
        mode="before",
    )
    @classmethod
    def null_to_default(cls, v: Any, info: ValidationInfo) -> Any:
        """Treat explicit nulls like omitted keys."""
        if v is None:
            return {
                "assistant_message": "",
                "extracted_fields": [],
                "is_complete": False,
                "follow_up_needed": False,
            }[info.field_name]
        return v

    @field_validator("confidence", mode="before")
    @classmethod
    def falsy_confidence_to_default(cls, v: Any) -> Any:
        """A missing or zero confidence reads as 0.5."""
        return v or 0.5

    def to_wire(self) -> dict[str, Any]:
        """Serialize with camelCase keys."""
        return self.model_dump(by_alias=True, mode="json")
