"""Conversation sessions.

A ConversationSession owns one ConversationRecord and drives it with the
mode's driver (GuidedFlow or AssistedOrchestrator). All state transitions
are synchronous on the event loop; the only suspension point is the
extraction call of an assisted turn.

Ordering guarantee for assisted turns:
- Each message gets a generation number.
- Sending a new message cancels the in-flight turn of the previous one.
- A turn whose generation is no longer current applies nothing.

After every mutation the record snapshot is handed to the store in the
background (``schedule_save``).
"""

import asyncio
import contextlib
import logging
from dataclasses import dataclass

from resume_chat.agents.assisted import AssistedOrchestrator
from resume_chat.agents.assisted_graph import run_assisted_turn
from resume_chat.agents.guided_flow import GuidedAnswerOutcome, GuidedFlow
from resume_chat.agents.state import AssistedCursor, ConversationRecord
from resume_chat.core.errors import ConversationServiceError
from resume_chat.schemas.chat import SpecialContent
from resume_chat.services.extraction_client import (
    ExtractionBackend,
    HttpExtractionBackend,
)
from resume_chat.services.persistence import (
    ConversationStore,
    get_conversation_store,
    schedule_save,
    wait_for_pending_saves,
)
from resume_chat.services.progress import get_welcome_message

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TurnResult:
    """What one user message produced.

    Attributes:
        messages: Assistant messages added for the user, in order.
        mode: Conversation mode after the turn.
        is_complete: Whether the conversation is finished.
        special_content: Extra content to show (assisted mode only).
        suggest_guided_mode: True when assisted mode keeps failing.
        guided_outcome: Full outcome of a guided answer.
        error: Why the model turn failed, when it did (assisted mode only).
            The messages then hold the scripted fallback.
    """

    messages: tuple[str, ...]
    mode: str
    is_complete: bool
    special_content: SpecialContent | None = None
    suggest_guided_mode: bool = False
    guided_outcome: GuidedAnswerOutcome | None = None
    error: ConversationServiceError | None = None


class ConversationSession:
    """One user's conversation, in either mode.

    Args:
        conversation: Existing conversation to continue. Defaults to a new
            guided conversation.
        backend: Extraction backend for assisted turns. Defaults to the
            HTTP backend.
        store: Snapshot store. Defaults to the store from settings.
    """

    def __init__(
        self,
        conversation: ConversationRecord | None = None,
        backend: ExtractionBackend | None = None,
        store: ConversationStore | None = None,
    ) -> None:
        self.conversation = conversation or ConversationRecord.new_guided()
        self.backend = backend or HttpExtractionBackend()
        self.store = store or get_conversation_store()
        self._generation = 0
        self._pending: asyncio.Task | None = None
        self._driver: GuidedFlow | AssistedOrchestrator = self._make_driver()

    @classmethod
    async def resume(
        cls,
        session_id: str,
        store: ConversationStore,
        backend: ExtractionBackend | None = None,
    ) -> "ConversationSession | None":
        """Reopen a stored conversation. Returns None if it is unknown."""
        conversation = await store.load(session_id)
        if conversation is None:
            return None
        return cls(conversation, backend=backend, store=store)

    def _make_driver(self) -> GuidedFlow | AssistedOrchestrator:
        if isinstance(self.conversation.cursor, AssistedCursor):
            return AssistedOrchestrator(self.conversation, on_change=self._persist)
        return GuidedFlow(self.conversation, on_change=self._persist)

    def _persist(self, conversation: ConversationRecord) -> None:
        schedule_save(self.store, conversation)

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def session_id(self) -> str:
        return self.conversation.session_id

    @property
    def mode(self) -> str:
        return self.conversation.mode

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def is_waiting(self) -> bool:
        """True while an assisted turn is waiting for its extraction."""
        return self._pending is not None and not self._pending.done()

    @property
    def is_complete(self) -> bool:
        return self.conversation.cursor.is_complete

    @property
    def guided(self) -> GuidedFlow:
        if not isinstance(self._driver, GuidedFlow):
            msg = "Session is not in guided mode"
            raise ValueError(msg)
        return self._driver

    @property
    def assisted(self) -> AssistedOrchestrator:
        if not isinstance(self._driver, AssistedOrchestrator):
            msg = "Session is not in assisted mode"
            raise ValueError(msg)
        return self._driver

    # =========================================================================
    # Conversation
    # =========================================================================

    def start(self) -> tuple[str, ...]:
        """Open the conversation if nothing has been said yet.

        Returns:
            The opening assistant messages (empty when already started).
        """
        if self.conversation.transcript:
            return ()
        if isinstance(self._driver, GuidedFlow):
            question = self._driver.start()
            return (question.prompt,) if question is not None else ()
        welcome = get_welcome_message()
        self._driver.add_assistant_message(welcome)
        return (welcome,)

    async def send(self, message: str) -> TurnResult | None:
        """Submit a user message.

        Returns:
            The turn result, or None when a newer message superseded this
            one before it finished.

        Raises:
            ValueError: If the message is empty, or a guided conversation
                is already complete.
        """
        if not message.strip():
            raise ValueError("message is required")

        self._generation += 1
        generation = self._generation

        if isinstance(self._driver, GuidedFlow):
            self._cancel_pending()
            outcome = self._driver.submit_answer(message)
            return TurnResult(
                messages=outcome.messages,
                mode=self.mode,
                is_complete=self.is_complete,
                guided_outcome=outcome,
            )

        self._cancel_pending()
        task = asyncio.create_task(
            run_assisted_turn(
                self._driver,
                self.backend,
                message,
                is_stale=lambda: generation != self._generation,
            )
        )
        self._pending = task

        try:
            state = await task
        except asyncio.CancelledError:
            if task.cancelled() and generation != self._generation:
                logger.debug("Turn %d superseded by turn %d", generation, self._generation)
                return None
            raise
        finally:
            if self._pending is task:
                self._pending = None

        if state.get("discarded", False):
            return None

        return TurnResult(
            messages=tuple(state.get("replies", [])),
            mode=self.mode,
            is_complete=self.is_complete,
            special_content=state.get("special_content"),
            suggest_guided_mode=state.get("suggest_guided_mode", False),
            error=state.get("service_error"),
        )

    def _cancel_pending(self) -> None:
        if self._pending is not None and not self._pending.done():
            logger.debug("Cancelling in-flight turn")
            self._pending.cancel()

    def switch_mode(self, mode: str) -> None:
        """Switch between "guided" and "assisted", keeping collected data.

        Any in-flight assisted turn is cancelled.

        Raises:
            ValueError: If the mode is unknown.
        """
        if mode not in ("guided", "assisted"):
            msg = f"Unknown mode: {mode!r}"
            raise ValueError(msg)
        if mode == self.mode:
            return

        self._generation += 1
        self._cancel_pending()
        if mode == "guided":
            self.conversation.switch_to_guided()
        else:
            self.conversation.switch_to_assisted()
        self._driver = self._make_driver()
        logger.info("Session %s switched to %s mode", self.session_id, mode)
        self._persist(self.conversation)

    async def close(self) -> None:
        """Cancel any in-flight turn and wait for pending saves."""
        self._generation += 1
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._pending
        self._pending = None
        await wait_for_pending_saves()
