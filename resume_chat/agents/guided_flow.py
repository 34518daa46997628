"""Guided-mode state machine.

Walks the static question graph over a ConversationRecord whose cursor is
a GuidedCursor. Navigation evaluates each question's skip predicate with
the entry index of the question's section, and skips whole multi-entry
sections whose gate flag is False.

Answer pipeline (submit_answer):
    complete question   -> restart at personal_name, or finish
    personal_email      -> email help when the user has no email
    add-more question   -> next entry, back to the section's first question
    otherwise           -> parse, format, write at the current entry, advance
"""

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, NamedTuple

from resume_chat.agents.questions import (
    ADD_MORE_SECTION_MAP,
    MULTI_ENTRY_GATE_FLAGS,
    QUESTIONS,
    SUPPORTED_LANGUAGES,
    TEMPLATE_STYLES,
    TRANSIENT_FIELDS,
    Question,
    get_first_question_index,
    get_question_index,
    section_for_question,
)
from resume_chat.agents.state import ConversationRecord, GuidedCursor
from resume_chat.services.answer_parser import parse_answer, sibling_path
from resume_chat.services.formatters import format_field_value
from resume_chat.services.path_mutator import (
    SECTION_ARRAYS,
    set_path,
    top_level_key,
    transform_field_path,
)
from resume_chat.services.text_classifiers import detect_no_email

logger = logging.getLogger(__name__)

OnChange = Callable[[ConversationRecord], None]

GO_BACK_TO_EDIT_MESSAGE = (
    "No problem! Let's go back and make some changes. I'll take you back to "
    "your personal information - you can update anything from there."
)
EXPORT_READY_MESSAGE = (
    "Your resume is complete and ready to download! You can get it as a PDF "
    "for most job applications, or as a Word document if you need to make "
    "further edits."
)
NO_EMAIL_HELP_MESSAGE = (
    "No problem! Having a professional email is important for job "
    "applications. Let me help you create one - it's free and only takes a "
    "few minutes."
)
EMAIL_AFTER_GUIDE_MESSAGE = "Once you've created your email, come back and type it here:"

_EXTRACTED_FIELD_LABELS: dict[str, str] = {
    "jobTitle": "job title",
    "companyName": "company",
    "endDate": "end date",
}

_SIMPLE_NO_EMAIL = re.compile(r"^(no|nope|none|i don'?t|no i don'?t)\.?$", re.IGNORECASE)
_LANGUAGE_ENTRY = re.compile(r"^(.+?)\s*\((.+?)\)\s*$")
_DEFAULT_PROFICIENCY = "conversational"


class GuidedOutcomeKind(str, Enum):
    """What an answer did to the conversation."""

    ANSWERED = "answered"
    ENTRY_ADDED = "entry_added"
    EMAIL_HELP = "email_help"
    RESTARTED = "restarted"
    COMPLETED = "completed"


@dataclass(frozen=True)
class GuidedAnswerOutcome:
    """Result of submitting one guided answer.

    Attributes:
        kind: What the answer did.
        messages: Assistant messages added to the transcript, in order.
        next_question: The question now being asked (None when complete).
    """

    kind: GuidedOutcomeKind
    messages: tuple[str, ...] = ()
    next_question: Question | None = None
    extracted_fields: dict[str, Any] = field(default_factory=dict)


class GuidedProgress(NamedTuple):
    current: int
    total: int
    percentage: int


# =============================================================================
# Answer Value Helpers
# =============================================================================


def _shows_no_email(answer: str) -> bool:
    return bool(_SIMPLE_NO_EMAIL.match(answer.strip())) or detect_no_email(answer)


def _contains_any(answer: str, words: tuple[str, ...]) -> bool:
    lowered = answer.lower()
    return any(word in lowered for word in words)


def parse_language_list(answer: str) -> list[dict[str, str]]:
    """Parse "Spanish (fluent), French" into language/proficiency pairs."""
    entries = []
    for part in answer.split(","):
        item = part.strip()
        if not item:
            continue
        match = _LANGUAGE_ENTRY.match(item)
        if match:
            entries.append(
                {"language": match.group(1).strip(), "proficiency": match.group(2).strip()}
            )
        else:
            entries.append({"language": item, "proficiency": _DEFAULT_PROFICIENCY})
    return entries


def parse_language_choice(answer: str) -> str | None:
    """Map a language answer ("Espanol", "Spanish", "es", an option) to its code."""
    lowered = answer.strip().lower()
    for code, label, native in SUPPORTED_LANGUAGES:
        option = f"{native} ({label})".lower()
        if lowered in (code, label.lower(), native.lower(), option):
            return code
    return None


def parse_template_choice(answer: str) -> str | None:
    """Map "1"/"2"/"3" or a style name to a template style."""
    lowered = answer.strip().lower().rstrip(".")
    if lowered.isdigit() and 1 <= int(lowered) <= len(TEMPLATE_STYLES):
        return TEMPLATE_STYLES[int(lowered) - 1]
    for style in TEMPLATE_STYLES:
        if style in lowered:
            return style
    return None


# =============================================================================
# Guided Flow
# =============================================================================


class GuidedFlow:
    """State machine over the guided question graph.

    Args:
        conversation: Conversation with a GuidedCursor.
        on_change: Called with the conversation after every mutation.

    Raises:
        ValueError: If the conversation is not in guided mode.
    """

    def __init__(
        self, conversation: ConversationRecord, on_change: OnChange | None = None
    ) -> None:
        if not isinstance(conversation.cursor, GuidedCursor):
            msg = f"Conversation {conversation.session_id} is not in guided mode"
            raise ValueError(msg)
        self.conversation = conversation
        self._on_change = on_change

    # -------------------------------------------------------------------------
    # Derived state
    # -------------------------------------------------------------------------

    @property
    def cursor(self) -> GuidedCursor:
        return self.conversation.cursor  # type: ignore[return-value]

    @property
    def is_complete(self) -> bool:
        return self.cursor.is_complete

    @property
    def current_question(self) -> Question | None:
        if self.cursor.is_complete:
            return None
        return QUESTIONS[self.cursor.question_index]

    @property
    def category(self) -> str:
        question = self.current_question
        return "complete" if question is None else question.category

    def entry_index_for(self, question: Question) -> int:
        section = section_for_question(question)
        if section is None:
            return 0
        return self.conversation.entry_counts.get(section, 0)

    def entry_path(self, question: Question) -> str:
        """The question's field path rewritten to the current entry."""
        section = section_for_question(question)
        if section is None:
            return question.field_path
        return transform_field_path(
            question.field_path, section, self.entry_index_for(question)
        )

    def is_skipped(self, index: int) -> bool:
        """Whether the question at ``index`` is skipped right now.

        A question is skipped when its own predicate says so, when its
        multi-entry section has a False gate flag (the gate question itself
        excepted), or when a combined answer already filled its field.
        """
        question = QUESTIONS[index]
        record = self.conversation.record
        if question.should_skip(record, self.entry_index_for(question)):
            return True
        gate = MULTI_ENTRY_GATE_FLAGS.get(question.category)
        if gate and question.field_path != gate and record.get(gate) is False:
            return True
        return self.entry_path(question) in self.cursor.prefilled_paths

    # -------------------------------------------------------------------------
    # Navigation
    # -------------------------------------------------------------------------

    def advance(self) -> Question | None:
        """Move to the next question that is not skipped.

        Returns:
            The new current question, or None when the flow ran past the end
            (the conversation is then complete).
        """
        index = self.cursor.question_index + 1
        while index < len(QUESTIONS) and self.is_skipped(index):
            logger.debug("Skipping guided question %s", QUESTIONS[index].id)
            index += 1

        if index >= len(QUESTIONS):
            self.cursor.is_complete = True
            logger.info("Guided conversation %s complete", self.conversation.session_id)
            self._changed()
            return None

        self._position(index)
        return self.current_question

    def retreat(self) -> Question | None:
        """Move to the previous question that is not skipped.

        The index stays put when every earlier question is skipped.
        """
        index = self.cursor.question_index - 1
        while index >= 0 and self.is_skipped(index):
            index -= 1
        if index >= 0:
            self._position(index)
        return self.current_question

    def go_to_question(self, index: int) -> Question:
        """Position at ``index``, clamped to the graph; reopens a finished flow."""
        self._position(max(0, min(index, len(QUESTIONS) - 1)))
        return QUESTIONS[self.cursor.question_index]

    def jump_to_section(self, category: str) -> Question | None:
        """Position at the first question of ``category`` that is not skipped.

        Raises:
            ValueError: If the category is unknown.
        """
        start = get_first_question_index(category)
        self.conversation.follow_up_counts[category] = 0
        self._position(start)
        if self.is_skipped(start):
            return self.advance()
        return self.current_question

    def record_entry_added(self, section: str) -> int:
        """Increment a multi-entry section's counter and return the new value."""
        if section not in self.conversation.entry_counts:
            msg = f"Unknown multi-entry section: {section!r}"
            raise ValueError(msg)
        self.conversation.entry_counts[section] += 1
        self._changed()
        return self.conversation.entry_counts[section]

    def confirm_section(self, category: str) -> None:
        self.cursor.section_confirmed[category] = True
        self._changed()

    def unconfirm_section(self, category: str) -> None:
        self.cursor.section_confirmed[category] = False
        self._changed()

    def set_section_phase(self, phase: str) -> None:
        if phase not in ("questioning", "summary"):
            msg = f"Unknown section phase: {phase!r}"
            raise ValueError(msg)
        self.cursor.section_phase = phase  # type: ignore[assignment]
        self._changed()

    def complete_conversation(self) -> None:
        self.cursor.is_complete = True
        self._changed()

    def get_progress(self) -> GuidedProgress:
        total = len(QUESTIONS)
        current = self.cursor.question_index + 1
        return GuidedProgress(current, total, round(current / total * 100))

    # -------------------------------------------------------------------------
    # Answers
    # -------------------------------------------------------------------------

    def start(self) -> Question | None:
        """Ask the current question if nothing has been said yet."""
        question = self.current_question
        if question is not None and not self.conversation.transcript:
            self._say(question.prompt, question_id=question.id)
            self._changed()
        return question

    def submit_answer(self, text: str) -> GuidedAnswerOutcome:
        """Apply the user's answer to the current question.

        Args:
            text: The raw answer.

        Returns:
            GuidedAnswerOutcome describing what happened.

        Raises:
            ValueError: If the conversation is already complete.
        """
        question = self.current_question
        if question is None:
            msg = "Guided conversation is already complete"
            raise ValueError(msg)

        answer = text.strip()
        self.conversation.add_turn("user", answer, question.id)

        if question.id == "complete":
            outcome = self._answer_complete(answer)
        elif question.id == "personal_email" and _shows_no_email(answer):
            outcome = GuidedAnswerOutcome(
                kind=GuidedOutcomeKind.EMAIL_HELP,
                messages=self._say(NO_EMAIL_HELP_MESSAGE, EMAIL_AFTER_GUIDE_MESSAGE),
                next_question=question,
            )
        elif question.id in ADD_MORE_SECTION_MAP and _contains_any(
            answer, ("yes", "another", "add")
        ):
            outcome = self._add_another_entry(question)
        else:
            outcome = self._store_answer(question, answer)

        self._changed()
        return outcome

    def _answer_complete(self, answer: str) -> GuidedAnswerOutcome:
        if _contains_any(answer, ("yes", "change", "edit")):
            messages = self._say(GO_BACK_TO_EDIT_MESSAGE)
            self.cursor.prefilled_paths = []
            question = self.go_to_question(get_question_index("personal_name"))
            messages += self._say(question.prompt, question_id=question.id)
            return GuidedAnswerOutcome(GuidedOutcomeKind.RESTARTED, messages, question)

        self.cursor.is_complete = True
        logger.info("Guided conversation %s complete", self.conversation.session_id)
        return GuidedAnswerOutcome(
            GuidedOutcomeKind.COMPLETED, self._say(EXPORT_READY_MESSAGE), None
        )

    def _add_another_entry(self, question: Question) -> GuidedAnswerOutcome:
        target = ADD_MORE_SECTION_MAP[question.id]
        self.record_entry_added(target.section)
        messages = self._say(f"Great! Let's add another {target.label}.")
        next_question = self.go_to_question(get_question_index(target.first_question_id))
        messages += self._say(next_question.prompt, question_id=next_question.id)
        return GuidedAnswerOutcome(GuidedOutcomeKind.ENTRY_ADDED, messages, next_question)

    def _store_answer(self, question: Question, answer: str) -> GuidedAnswerOutcome:
        parsed = parse_answer(answer, question.field_path, question.id)
        path = self.entry_path(question)

        if question.field_path not in TRANSIENT_FIELDS:
            value = self._process_value(question, answer, parsed.primary_value)
            self._write(path, value)
            if question.field_path in MULTI_ENTRY_GATE_FLAGS.values() and value is False:
                self._clear_section(question.category)

        for name, value in parsed.extracted_fields.items():
            extra_path = sibling_path(path, name)
            self._write(extra_path, value)
            if name in parsed.fields_to_skip:
                self.cursor.prefilled_paths.append(extra_path)

        messages: tuple[str, ...] = ()
        if parsed.extracted_fields:
            noted = ", ".join(
                f"{_EXTRACTED_FIELD_LABELS.get(name, name)}: {value}"
                for name, value in parsed.extracted_fields.items()
            )
            messages += self._say(
                f"Got it! I also noted your {noted}. Let me continue with the next question."
            )

        next_question = self.advance()
        if next_question is not None:
            messages += self._say(next_question.prompt, question_id=next_question.id)
        return GuidedAnswerOutcome(
            GuidedOutcomeKind.ANSWERED,
            messages,
            next_question,
            dict(parsed.extracted_fields),
        )

    def _process_value(self, question: Question, answer: str, primary: str) -> Any:
        if question.input_kind == "confirm":
            return answer.lower() == "yes"
        if question.field_path == "language":
            return parse_language_choice(answer) or self.conversation.record.get(
                "language", "en"
            )
        if question.field_path == "templateStyle":
            return parse_template_choice(answer) or TEMPLATE_STYLES[0]
        if question.field_path == "skills.languages":
            return parse_language_list(answer)
        if question.field_path.startswith("skills.") and question.input_kind in (
            "text",
            "textarea",
        ):
            return [item.strip() for item in answer.split(",") if item.strip()]
        return primary

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _write(self, path: str, value: Any) -> None:
        self.conversation.record = set_path(
            self.conversation.record, path, format_field_value(path, value)
        )

    def _clear_section(self, section: str) -> None:
        """Empty a multi-entry section after its gate flag was set to False."""
        array_name = SECTION_ARRAYS[section]
        self.conversation.record = set_path(self.conversation.record, array_name, [])
        self.conversation.entry_counts[section] = 0
        self.cursor.prefilled_paths = [
            p for p in self.cursor.prefilled_paths if top_level_key(p) != array_name
        ]
        logger.info("Section %s declined; cleared its entries", section)

    def _position(self, index: int) -> None:
        previous = self.category
        self.cursor.question_index = index
        self.cursor.is_complete = False
        self.cursor.section_phase = "questioning"
        if self.category != previous:
            logger.info("Guided flow moved from %s to %s", previous, self.category)
        self._changed()

    def _say(self, *contents: str, question_id: str | None = None) -> tuple[str, ...]:
        for content in contents:
            self.conversation.add_turn("assistant", content, question_id)
        return contents

    def _changed(self) -> None:
        self.conversation.touch()
        if self._on_change is not None:
            self._on_change(self.conversation)
