"""Assisted-mode conversation orchestrator.

Merges model extractions into the shared record:

    extracted fields
          │
    ┌─────┴──────┐
    clear      regular
    │            │
    reset     confidence >= threshold ?
    section     ├── yes: normalize, set_path, mark topic answered
                └── no:  hold as unconfirmed (one per path)

Everything else here is bookkeeping the extraction backend reads back on
the next turn: current section, follow-up counters, conversation context,
response times and token usage.
"""

import logging
from collections.abc import Callable
from typing import Any

from resume_chat.agents.state import AssistedCursor, ConversationRecord
from resume_chat.core.config import settings
from resume_chat.schemas.chat import (
    ExtractedField,
    ExtractionRequest,
    ExtractionResponse,
    TokenUsage,
    TranscriptMessage,
)
from resume_chat.services.normalizers import normalize_city_state, normalize_phone
from resume_chat.services.path_mutator import set_path, top_level_key
from resume_chat.services.response_analysis import SECTION_ORDER, get_next_section

logger = logging.getLogger(__name__)

OnChange = Callable[[ConversationRecord], None]

# Top-level section -> (gate flag, entry counter) reset by a clear field.
CLEAR_SECTION_MAP: dict[str, tuple[str, str]] = {
    "volunteering": ("hasVolunteering", "volunteering"),
    "workExperience": ("hasWorkExperience", "work"),
    "education": ("hasEducation", "education"),
    "references": ("hasReferences", "references"),
}

# Sections that allow more follow-up questions.
MULTI_ENTRY_FOLLOW_UP_SECTIONS: frozenset[str] = frozenset({"work", "education"})

_FIELD_NORMALIZERS: dict[str, Callable[[str], str]] = {
    "personalInfo.phone": normalize_phone,
    "personalInfo.city": normalize_city_state,
}


def _check_category(category: str) -> None:
    if category not in SECTION_ORDER:
        msg = f"Unknown category: {category!r}"
        raise ValueError(msg)


def _move_to_end(items: list[str], item: str) -> None:
    if item in items:
        items.remove(item)
    items.append(item)


class AssistedOrchestrator:
    """Applies extraction results to a ConversationRecord in assisted mode.

    Args:
        conversation: Conversation with an AssistedCursor.
        on_change: Called with the conversation after every mutation.
        confidence_threshold: Minimum confidence applied directly.
            Defaults to settings.

    Raises:
        ValueError: If the conversation is not in assisted mode.
    """

    def __init__(
        self,
        conversation: ConversationRecord,
        on_change: OnChange | None = None,
        confidence_threshold: float | None = None,
    ) -> None:
        if not isinstance(conversation.cursor, AssistedCursor):
            msg = f"Conversation {conversation.session_id} is not in assisted mode"
            raise ValueError(msg)
        self.conversation = conversation
        self._on_change = on_change
        self.confidence_threshold = (
            settings.confidence_threshold
            if confidence_threshold is None
            else confidence_threshold
        )

    @property
    def cursor(self) -> AssistedCursor:
        return self.conversation.cursor  # type: ignore[return-value]

    @property
    def category(self) -> str:
        return self.cursor.category

    @property
    def is_complete(self) -> bool:
        return self.cursor.is_complete

    @property
    def record(self) -> dict[str, Any]:
        return self.conversation.record

    @property
    def unconfirmed_fields(self) -> list[ExtractedField]:
        return self.cursor.unconfirmed_fields

    def follow_up_count(self, category: str | None = None) -> int:
        return self.conversation.follow_up_counts.get(category or self.category, 0)

    # =========================================================================
    # Field Merging
    # =========================================================================

    def apply_extracted_fields(self, fields: list[ExtractedField]) -> None:
        """Merge extracted fields into the record.

        Clear fields reset whole sections first. Regular fields at or above
        the confidence threshold are normalized and written; the rest are
        held for confirmation, replacing pending entries with the same path.
        """
        clear_fields = [f for f in fields if f.clear]
        regular_fields = [f for f in fields if not f.clear]

        for field in clear_fields:
            self._clear_section(field)

        high = [f for f in regular_fields if f.confidence >= self.confidence_threshold]
        low = [f for f in regular_fields if f.confidence < self.confidence_threshold]

        for field in high:
            value = field.value
            normalizer = _FIELD_NORMALIZERS.get(field.path)
            if normalizer is not None and isinstance(value, str):
                value = normalizer(value)
            self.conversation.record = set_path(self.conversation.record, field.path, value)
            self._sync_gate_flag(field.path)
            _move_to_end(self.cursor.context.answered_topics, top_level_key(field.path))

        if low:
            low_paths = {f.path for f in low}
            self.cursor.unconfirmed_fields = [
                f for f in self.cursor.unconfirmed_fields if f.path not in low_paths
            ] + low
            logger.debug("Holding %d low-confidence fields for confirmation", len(low))

        self._changed()

    def _clear_section(self, field: ExtractedField) -> None:
        section = top_level_key(field.path)
        self.conversation.record = {**self.conversation.record, section: field.value}
        mapping = CLEAR_SECTION_MAP.get(section)
        if mapping is not None:
            flag, counter = mapping
            self.conversation.record[flag] = False
            self.conversation.entry_counts[counter] = 0
        logger.info("Cleared section %s after a contradiction", section)

    def _sync_gate_flag(self, path: str) -> None:
        """Keep a multi-entry section and its gate flag consistent after a write.

        A flag set to False empties its section and zeroes the counter; an
        entry written into a section sets its flag to True.
        """
        key = top_level_key(path)
        record = self.conversation.record
        for section, (flag, counter) in CLEAR_SECTION_MAP.items():
            if key == flag and record.get(flag) is False:
                if record.get(section) or self.conversation.entry_counts.get(counter):
                    logger.info("Emptied %s after %s was set to False", section, flag)
                self.conversation.record = {**record, section: []}
                self.conversation.entry_counts[counter] = 0
                return
            if key == section and record.get(section) and record.get(flag) is not True:
                self.conversation.record = {**record, flag: True}
                return

    def confirm_extracted_field(self, path: str) -> bool:
        """Apply a pending field as extracted. Returns False if none is pending."""
        pending = next((f for f in self.cursor.unconfirmed_fields if f.path == path), None)
        if pending is None:
            return False
        self.conversation.record = set_path(self.conversation.record, path, pending.value)
        self._sync_gate_flag(path)
        self.cursor.unconfirmed_fields = [
            f for f in self.cursor.unconfirmed_fields if f.path != path
        ]
        self._changed()
        return True

    def reject_extracted_field(self, path: str) -> bool:
        before = len(self.cursor.unconfirmed_fields)
        self.cursor.unconfirmed_fields = [
            f for f in self.cursor.unconfirmed_fields if f.path != path
        ]
        self._changed()
        return len(self.cursor.unconfirmed_fields) != before

    # =========================================================================
    # Responses
    # =========================================================================

    def handle_ai_response(self, response: ExtractionResponse) -> None:
        """Apply one extraction response to the conversation.

        Order matters: the follow-up counter is incremented for the section
        the response moved to, not the one it came from.
        """
        self.add_assistant_message(response.assistant_message)

        if response.extracted_fields:
            self.apply_extracted_fields(response.extracted_fields)

        if response.suggested_section:
            self.set_current_section(response.suggested_section)

        if response.follow_up_needed:
            self.increment_follow_up_count(self.category)

        if response.is_complete:
            self.complete_conversation()

        if response.usage is not None:
            self.update_token_usage(response.usage)

        self.cursor.consecutive_errors = 0
        self._changed()

    def build_request(self, message: str, language: str | None = None) -> ExtractionRequest:
        """Build the extraction request for ``message``.

        The transcript sent is everything before the message itself.
        """
        history = self.conversation.transcript
        if history and history[-1].role == "user" and history[-1].content == message:
            history = history[:-1]
        return ExtractionRequest(
            user_message=message,
            messages=[
                TranscriptMessage(
                    id=turn.id,
                    role=turn.role,
                    content=turn.content,
                    timestamp=turn.timestamp.isoformat(),
                    question_id=turn.question_id,
                )
                for turn in history
            ],
            current_resume_data=self.conversation.record,
            current_section=self.category,  # type: ignore[arg-type]
            language=language or self.conversation.record.get("language", "en"),
            follow_up_count=self.follow_up_count(),
            conversation_context=self.cursor.context.to_payload(),
        )

    def record_error(self) -> int:
        """Count a failed extraction and return the consecutive failure count."""
        self.cursor.consecutive_errors += 1
        self._changed()
        return self.cursor.consecutive_errors

    # =========================================================================
    # Sections and Follow-Ups
    # =========================================================================

    def should_continue_follow_up(self, category: str | None = None) -> bool:
        """Whether another follow-up question is allowed in the section."""
        section = category or self.category
        limit = (
            settings.multi_entry_follow_up_limit
            if section in MULTI_ENTRY_FOLLOW_UP_SECTIONS
            else settings.follow_up_limit
        )
        return self.follow_up_count(section) < limit

    def set_current_section(self, category: str) -> None:
        """Enter a section: resets its follow-up counter and the escape flag.

        Raises:
            ValueError: If the category is unknown.
        """
        _check_category(category)
        if category != self.cursor.category:
            logger.info(
                "Assisted conversation moved from %s to %s",
                self.cursor.category,
                category,
            )
        self.cursor.category = category  # type: ignore[assignment]
        self.cursor.user_escape_requested = False
        self.conversation.follow_up_counts[category] = 0
        self._changed()

    def move_to_next_section(self) -> str:
        """Advance past sections the user has no content for.

        Returns:
            The new current category.
        """
        if self.category == "complete":
            self.complete_conversation()
            return self.category
        next_section = get_next_section(self.category, self.conversation.record)
        self.set_current_section(next_section)
        if next_section == "complete":
            self.complete_conversation()
        return next_section

    def complete_conversation(self) -> None:
        self.cursor.is_complete = True
        logger.info("Assisted conversation %s complete", self.conversation.session_id)
        self._changed()

    def increment_follow_up_count(self, category: str | None = None) -> int:
        section = category or self.category
        _check_category(section)
        counts = self.conversation.follow_up_counts
        counts[section] = counts.get(section, 0) + 1
        self._changed()
        return counts[section]

    # =========================================================================
    # Context and Metrics
    # =========================================================================

    def add_mentioned_entity(self, entity: str) -> None:
        _move_to_end(self.cursor.context.mentioned_entities, entity)
        self._changed()

    def add_answered_topic(self, topic: str) -> None:
        _move_to_end(self.cursor.context.answered_topics, topic)
        self._changed()

    def set_user_tone(self, tone: str) -> None:
        if tone not in ("confident", "uncertain", "frustrated", "neutral"):
            msg = f"Unknown user tone: {tone!r}"
            raise ValueError(msg)
        self.cursor.context.user_tone = tone  # type: ignore[assignment]
        self._changed()

    def set_email_help_shown(self, shown: bool = True) -> None:
        self.cursor.email_help_shown = shown
        self._changed()

    def set_user_escape_requested(self, requested: bool = True) -> None:
        self.cursor.user_escape_requested = requested
        self._changed()

    def record_response_time(self, ms: float) -> None:
        """Keep the most recent response times (20 by default)."""
        history_size = settings.response_time_history_size
        self.cursor.response_times_ms = [*self.cursor.response_times_ms, ms][-history_size:]
        self._changed()

    def average_response_time(self) -> float:
        times = self.cursor.response_times_ms
        return sum(times) / len(times) if times else 0.0

    def update_token_usage(self, usage: TokenUsage) -> None:
        total = self.cursor.token_usage
        self.cursor.token_usage = TokenUsage(
            prompt_tokens=total.prompt_tokens + usage.prompt_tokens,
            completion_tokens=total.completion_tokens + usage.completion_tokens,
            total_tokens=total.total_tokens + usage.total_tokens,
        )

    # =========================================================================
    # Transcript
    # =========================================================================

    def add_user_message(self, content: str) -> None:
        self.conversation.add_turn("user", content)
        self._changed()

    def add_assistant_message(self, content: str) -> None:
        self.conversation.add_turn("assistant", content)
        self._changed()

    def _changed(self) -> None:
        self.conversation.touch()
        if self._on_change is not None:
            self._on_change(self.conversation)
