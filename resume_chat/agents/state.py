"""Conversation state schemas.

Two layers:

1. Record views - ``TypedDict(total=False)`` classes describing the shape
   of the nested résumé record. The record itself is a plain dict with
   camelCase keys so wire-contract paths (``workExperience[0].jobTitle``)
   address it directly.

2. ConversationRecord - the single pydantic container both modes mutate.
   The mode-specific position lives in ``cursor``, a discriminated union
   on ``mode``:

    ┌──────────────────────┐
    │  ConversationRecord  │  record, transcript, entry/follow-up counts
    └──────────┬───────────┘
               │ cursor
        ┌──────┴──────┐
        ▼             ▼
   GuidedCursor   AssistedCursor
   (question      (category, pending
    index)         fields, context)

WHY ONE CONTAINER:
Switching between guided and assisted mode keeps the collected record,
transcript and entry counters; only the cursor is replaced.
"""

from datetime import UTC, datetime
from typing import Annotated, Any, Literal, TypedDict
from uuid import uuid4

from pydantic import BaseModel, Field

from resume_chat.agents.questions import (
    QUESTIONS,
    get_first_question_index,
)
from resume_chat.schemas.chat import (
    Category,
    ConversationContextPayload,
    ExtractedField,
    TokenUsage,
    UserTone,
)

# =============================================================================
# Record Views
# =============================================================================


class PersonalInfo(TypedDict, total=False):
    fullName: str
    email: str
    phone: str
    address: str
    zipCode: str
    city: str
    country: str


class WorkEntry(TypedDict, total=False):
    id: str
    companyName: str
    jobTitle: str
    startDate: str
    endDate: str
    isCurrentJob: bool
    location: str
    responsibilities: str


class EducationEntry(TypedDict, total=False):
    id: str
    schoolName: str
    degree: str
    fieldOfStudy: str
    startYear: str
    endYear: str
    isCurrentlyStudying: bool


class VolunteerEntry(TypedDict, total=False):
    id: str
    organizationName: str
    role: str
    startDate: str
    endDate: str
    responsibilities: str


class ReferenceEntry(TypedDict, total=False):
    id: str
    name: str
    jobTitle: str
    company: str
    phone: str
    email: str
    relationship: str


class LanguageSkill(TypedDict):
    language: str
    proficiency: str


class Skills(TypedDict, total=False):
    technicalSkills: list[str]
    softSkills: list[str]
    certifications: list[str]
    languages: list[LanguageSkill]


class ResumeRecord(TypedDict, total=False):
    """The nested résumé record collected by both modes.

    Gate flags (``hasWorkExperience`` etc.) are absent until answered; an
    explicit False means the section is empty and is skipped.
    """

    language: str
    templateStyle: Literal["classic", "modern", "professional"]
    personalInfo: PersonalInfo
    workExperience: list[WorkEntry]
    education: list[EducationEntry]
    volunteering: list[VolunteerEntry]
    references: list[ReferenceEntry]
    skills: Skills
    hasWorkExperience: bool
    hasEducation: bool
    hasVolunteering: bool
    hasReferences: bool
    hasTechnicalSkills: bool
    hasCertifications: bool
    hasLanguages: bool
    hasSoftSkills: bool
    referencesUponRequest: bool


def create_empty_record(language: str = "en") -> ResumeRecord:
    """Build the initial record: empty sections, no gate flags answered."""
    return {
        "language": language,
        "personalInfo": {},
        "workExperience": [],
        "education": [],
        "volunteering": [],
        "references": [],
        "skills": {
            "technicalSkills": [],
            "softSkills": [],
            "certifications": [],
            "languages": [],
        },
    }


# Sections with an entry counter.
ENTRY_COUNT_SECTIONS: tuple[str, ...] = ("work", "education", "volunteering", "references")


def _empty_entry_counts() -> dict[str, int]:
    return dict.fromkeys(ENTRY_COUNT_SECTIONS, 0)


def _now() -> datetime:
    return datetime.now(UTC)


# =============================================================================
# Conversation Models
# =============================================================================


class ChatTurn(BaseModel):
    """One transcript message."""

    id: str = Field(default_factory=lambda: uuid4().hex)
    role: Literal["user", "assistant", "system"]
    content: str
    timestamp: datetime = Field(default_factory=_now)
    question_id: str | None = None


class ConversationContext(BaseModel):
    """What the assisted conversation has learned about the user so far.

    Both lists behave as insertion-ordered sets: adding an existing item
    moves it to the end.
    """

    mentioned_entities: list[str] = Field(default_factory=list)
    answered_topics: list[str] = Field(default_factory=list)
    user_tone: UserTone = "neutral"

    def to_payload(self) -> ConversationContextPayload:
        return ConversationContextPayload(
            mentioned_entities=list(self.mentioned_entities),
            answered_topics=list(self.answered_topics),
            user_tone=self.user_tone,
        )


class GuidedCursor(BaseModel):
    """Position in the guided question graph.

    Attributes:
        question_index: Index into QUESTIONS of the question being asked.
        is_complete: True once the flow ran past the last question.
        section_phase: "summary" while a section recap is shown.
        section_confirmed: Category -> whether the user confirmed its recap.
        prefilled_paths: Entry paths already filled by a combined answer;
            their questions are skipped.
    """

    mode: Literal["guided"] = "guided"
    question_index: int = 0
    is_complete: bool = False
    section_phase: Literal["questioning", "summary"] = "questioning"
    section_confirmed: dict[str, bool] = Field(default_factory=dict)
    prefilled_paths: list[str] = Field(default_factory=list)


class AssistedCursor(BaseModel):
    """Position and bookkeeping of the free-form assisted conversation.

    Attributes:
        category: Section the conversation is currently in.
        is_complete: True once the model (or the user) finished.
        unconfirmed_fields: Low-confidence extractions awaiting confirmation,
            at most one per path.
        context: Entities, topics and tone forwarded to the model.
        user_escape_requested: Set when the user asked to move on.
        email_help_shown: Set once the email guide was shown.
        response_times_ms: Most recent extraction latencies.
        token_usage: Cumulative model token usage.
        consecutive_errors: Extraction failures since the last success.
    """

    mode: Literal["assisted"] = "assisted"
    category: Category = "language"
    is_complete: bool = False
    unconfirmed_fields: list[ExtractedField] = Field(default_factory=list)
    context: ConversationContext = Field(default_factory=ConversationContext)
    user_escape_requested: bool = False
    email_help_shown: bool = False
    response_times_ms: list[float] = Field(default_factory=list)
    token_usage: TokenUsage = Field(default_factory=TokenUsage)
    consecutive_errors: int = 0


Cursor = Annotated[GuidedCursor | AssistedCursor, Field(discriminator="mode")]


class ConversationRecord(BaseModel):
    """Unified conversation state shared by guided and assisted mode."""

    session_id: str = Field(default_factory=lambda: uuid4().hex)
    record: dict[str, Any] = Field(default_factory=create_empty_record)
    transcript: list[ChatTurn] = Field(default_factory=list)
    entry_counts: dict[str, int] = Field(default_factory=_empty_entry_counts)
    follow_up_counts: dict[str, int] = Field(default_factory=dict)
    cursor: Cursor = Field(default_factory=GuidedCursor)
    updated_at: datetime = Field(default_factory=_now)

    @classmethod
    def new_guided(cls, session_id: str | None = None) -> "ConversationRecord":
        if session_id is None:
            return cls(cursor=GuidedCursor())
        return cls(session_id=session_id, cursor=GuidedCursor())

    @classmethod
    def new_assisted(
        cls, session_id: str | None = None, category: Category = "language"
    ) -> "ConversationRecord":
        cursor = AssistedCursor(category=category)
        if session_id is None:
            return cls(cursor=cursor)
        return cls(session_id=session_id, cursor=cursor)

    @property
    def mode(self) -> str:
        return self.cursor.mode

    @property
    def current_category(self) -> str:
        """Category of the active cursor ("complete" once finished)."""
        cursor = self.cursor
        if cursor.is_complete:
            return "complete"
        if isinstance(cursor, AssistedCursor):
            return cursor.category
        if 0 <= cursor.question_index < len(QUESTIONS):
            return QUESTIONS[cursor.question_index].category
        return "complete"

    def add_turn(
        self,
        role: Literal["user", "assistant", "system"],
        content: str,
        question_id: str | None = None,
    ) -> ChatTurn:
        turn = ChatTurn(role=role, content=content, question_id=question_id)
        self.transcript.append(turn)
        self.touch()
        return turn

    def touch(self) -> None:
        self.updated_at = _now()

    def switch_to_guided(self) -> None:
        """Replace the cursor with a guided one at the current category.

        Record, transcript and counters are kept.
        """
        if isinstance(self.cursor, GuidedCursor):
            return
        category = self.current_category
        self.cursor = GuidedCursor(
            question_index=get_first_question_index(category),
            is_complete=category == "complete",
        )
        self.touch()

    def switch_to_assisted(self) -> None:
        if isinstance(self.cursor, AssistedCursor):
            return
        category = self.current_category
        self.cursor = AssistedCursor(
            category=category,  # type: ignore[arg-type]
            is_complete=category == "complete",
        )
        self.touch()

    def snapshot(self) -> dict[str, Any]:
        """JSON-ready copy for persistence."""
        return self.model_dump(mode="json")
