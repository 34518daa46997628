"""Assisted-mode turn LangGraph graph.

One graph invocation handles one user message:

    screen_message → [route_screened]
        ├─ "escape" → advance_section → END      (scripted, no model call)
        ├─ "vague"  → scripted_follow_up → END
        └─ "model"  → request_extraction → [route_extraction]
                        ├─ "ok"        → apply_response → END
                        ├─ "failed"    → apply_fallback → END
                        └─ "discarded" → END

The orchestrator and the extraction backend travel in the state; nodes
mutate the conversation through the orchestrator. A turn superseded while
its extraction was in flight ends as "discarded" and applies nothing.
"""

import logging
import time
from collections.abc import Callable
from typing import TypedDict

from langgraph.graph import END, StateGraph

from resume_chat.agents.assisted import AssistedOrchestrator
from resume_chat.core.config import settings
from resume_chat.core.errors import (
    ConversationServiceError,
    ErrorCode,
    UnknownChatError,
)
from resume_chat.schemas.chat import ExtractionResponse, SpecialContent
from resume_chat.services.extraction_client import (
    FALLBACK_MESSAGES,
    GENERIC_RETRY_MESSAGE,
    SWITCH_TO_GUIDED_MESSAGE,
    ExtractionBackend,
    generate_fallback_response,
)
from resume_chat.services.response_analysis import (
    REQUIRED_FIRST_MESSAGES,
    is_yes_no_response,
)
from resume_chat.services.text_classifiers import (
    detect_escape_phrase,
    detect_no_email,
    detect_user_tone,
    detect_vague_answer,
)

logger = logging.getLogger(__name__)

MOVE_ON_ACKNOWLEDGEMENT = "No problem, let's move on."


class AssistedTurnState(TypedDict, total=False):
    """State for one assisted-mode turn.

    Attributes:
        orchestrator: Orchestrator of the conversation being advanced.
        backend: Extraction backend used for model turns.
        message: The user's message.
        is_stale: Returns True once a newer message superseded this turn.
        route: Screening decision ("escape", "vague" or "model").
        follow_up: Scripted follow-up for a vague reply.
        response: Extraction response on success.
        error: Extraction failure, if any.
        service_error: The failure as a service error, for the caller.
        discarded: True when the turn was superseded before applying.
        special_content: Extra content to show with the reply.
        suggest_guided_mode: True after too many consecutive failures.
        replies: Assistant messages added during the turn.
    """

    orchestrator: AssistedOrchestrator
    backend: ExtractionBackend
    message: str
    is_stale: Callable[[], bool] | None
    route: str
    follow_up: str | None
    response: ExtractionResponse | None
    error: Exception | None
    service_error: ConversationServiceError | None
    discarded: bool
    special_content: SpecialContent | None
    suggest_guided_mode: bool
    replies: list[str]


def _reply(
    orchestrator: AssistedOrchestrator, replies: list[str], content: str
) -> list[str]:
    orchestrator.add_assistant_message(content)
    return [*replies, content]


# =============================================================================
# Node Functions
# =============================================================================


def screen_message_node(state: AssistedTurnState) -> AssistedTurnState:
    """Record the message and decide whether the model is needed.

    Updates the user's tone and the email-help flag, then picks a route:
    escape phrases advance the section directly, vague filler replies on
    the first exchange of a section get a scripted follow-up, everything
    else goes to the model.
    """
    orchestrator = state["orchestrator"]
    message = state["message"]
    category = orchestrator.category

    orchestrator.add_user_message(message)
    orchestrator.set_user_tone(detect_user_tone(message))
    if detect_no_email(message) and not orchestrator.cursor.email_help_shown:
        orchestrator.set_email_help_shown()

    if detect_escape_phrase(message, category):
        orchestrator.set_user_escape_requested()
        return {**state, "route": "escape"}

    vague = detect_vague_answer(message, category)
    if (
        vague.is_vague
        and is_yes_no_response(message) is None
        and orchestrator.follow_up_count() == 0
    ):
        return {**state, "route": "vague", "follow_up": vague.follow_up}

    return {**state, "route": "model"}


def advance_section_node(state: AssistedTurnState) -> AssistedTurnState:
    """Move to the next section with a scripted transition message."""
    orchestrator = state["orchestrator"]
    previous = orchestrator.category
    next_section = orchestrator.move_to_next_section()
    logger.info("User asked to move on from %s to %s", previous, next_section)

    opener = REQUIRED_FIRST_MESSAGES.get(next_section) or FALLBACK_MESSAGES.get(
        next_section, FALLBACK_MESSAGES["review"]
    )
    replies = _reply(
        orchestrator, state.get("replies", []), f"{MOVE_ON_ACKNOWLEDGEMENT} {opener}"
    )
    return {**state, "replies": replies}


def scripted_follow_up_node(state: AssistedTurnState) -> AssistedTurnState:
    orchestrator = state["orchestrator"]
    follow_up = state.get("follow_up") or GENERIC_RETRY_MESSAGE
    orchestrator.increment_follow_up_count()
    replies = _reply(orchestrator, state.get("replies", []), follow_up)
    return {**state, "replies": replies}


async def request_extraction_node(state: AssistedTurnState) -> AssistedTurnState:
    """Call the extraction backend and time the round trip.

    Service errors are carried in the state for apply_fallback; anything
    else is logged with its traceback and carried the same way.
    """
    orchestrator = state["orchestrator"]
    request = orchestrator.build_request(state["message"])

    response: ExtractionResponse | None = None
    error: Exception | None = None
    started = time.perf_counter()
    try:
        response = await state["backend"].extract(request)
    except ConversationServiceError as e:
        logger.warning("Extraction failed (%s): %s", e.code.value, e.message)
        error = e
    except Exception as e:  # noqa: BLE001
        logger.exception("Unexpected extraction failure")
        error = e

    is_stale = state.get("is_stale")
    if is_stale is not None and is_stale():
        logger.debug("Discarding superseded extraction outcome")
        return {**state, "response": None, "error": None, "discarded": True}

    if response is not None:
        orchestrator.record_response_time((time.perf_counter() - started) * 1000)
    return {**state, "response": response, "error": error}


def apply_response_node(state: AssistedTurnState) -> AssistedTurnState:
    orchestrator = state["orchestrator"]
    response: ExtractionResponse = state["response"]  # type: ignore[assignment]

    orchestrator.handle_ai_response(response)
    special = response.special_content
    if special is not None and special.type == "email_guide":
        orchestrator.set_email_help_shown()

    return {
        **state,
        "special_content": special,
        "replies": [*state.get("replies", []), response.assistant_message],
    }


def apply_fallback_node(state: AssistedTurnState) -> AssistedTurnState:
    """Answer with a scripted message after a failed extraction.

    Recoverable service errors get the current section's fallback message;
    other failures get a generic retry prompt. A rate limit also tells the
    user to wait before the fallback. After too many consecutive failures
    the user is offered guided mode.

    The failure is returned as ``service_error`` so the caller can show it;
    unexpected exceptions are reported as UnknownChatError.
    """
    orchestrator = state["orchestrator"]
    error = state.get("error")
    failures = orchestrator.record_error()
    replies = state.get("replies", [])

    if isinstance(error, ConversationServiceError):
        service_error = error
    else:
        service_error = UnknownChatError()

    if service_error.code == ErrorCode.RATE_LIMIT:
        replies = _reply(orchestrator, replies, service_error.message)

    if isinstance(error, ConversationServiceError) and error.recoverable:
        fallback = generate_fallback_response(orchestrator.category)
        logger.info("Using fallback reply for %s", orchestrator.category)
        reply = fallback.assistant_message
    else:
        reply = GENERIC_RETRY_MESSAGE
    replies = _reply(orchestrator, replies, reply)

    suggest_guided = failures >= settings.max_consecutive_errors
    if suggest_guided:
        replies = _reply(orchestrator, replies, SWITCH_TO_GUIDED_MESSAGE)

    return {
        **state,
        "replies": replies,
        "service_error": service_error,
        "suggest_guided_mode": suggest_guided,
    }


# =============================================================================
# Routing Functions
# =============================================================================


def route_screened(state: AssistedTurnState) -> str:
    return state.get("route", "model")


def route_extraction(state: AssistedTurnState) -> str:
    """Route on the extraction outcome.

    Returns:
        "discarded" for a superseded turn, "ok" when a response arrived,
        "failed" otherwise.
    """
    if state.get("discarded", False):
        return "discarded"
    if state.get("response") is not None:
        return "ok"
    return "failed"


# =============================================================================
# Graph Construction
# =============================================================================


def create_assisted_turn_graph() -> StateGraph:
    """Create the assisted-mode turn graph.

    Returns:
        Configured StateGraph (not compiled).
    """
    graph = StateGraph(AssistedTurnState)

    graph.add_node("screen_message", screen_message_node)
    graph.add_node("advance_section", advance_section_node)
    graph.add_node("scripted_follow_up", scripted_follow_up_node)
    graph.add_node("request_extraction", request_extraction_node)
    graph.add_node("apply_response", apply_response_node)
    graph.add_node("apply_fallback", apply_fallback_node)

    graph.set_entry_point("screen_message")

    graph.add_conditional_edges(
        "screen_message",
        route_screened,
        {
            "escape": "advance_section",
            "vague": "scripted_follow_up",
            "model": "request_extraction",
        },
    )
    graph.add_edge("advance_section", END)
    graph.add_edge("scripted_follow_up", END)

    graph.add_conditional_edges(
        "request_extraction",
        route_extraction,
        {
            "ok": "apply_response",
            "failed": "apply_fallback",
            "discarded": END,
        },
    )
    graph.add_edge("apply_response", END)
    graph.add_edge("apply_fallback", END)

    return graph


# =============================================================================
# Singleton Graph Instance
# =============================================================================

_assisted_turn_graph: StateGraph | None = None


def get_assisted_turn_graph() -> StateGraph:
    """Get the compiled assisted turn graph (compiled once per process)."""
    global _assisted_turn_graph  # noqa: PLW0603
    if _assisted_turn_graph is None:
        _assisted_turn_graph = create_assisted_turn_graph().compile()  # type: ignore[assignment]
    return _assisted_turn_graph  # type: ignore[return-value]


def reset_assisted_turn_graph() -> None:
    """Reset the graph singleton. Useful for testing."""
    global _assisted_turn_graph  # noqa: PLW0603
    _assisted_turn_graph = None


# =============================================================================
# Convenience Functions
# =============================================================================


async def run_assisted_turn(
    orchestrator: AssistedOrchestrator,
    backend: ExtractionBackend,
    message: str,
    is_stale: Callable[[], bool] | None = None,
) -> AssistedTurnState:
    """Advance an assisted conversation by one user message.

    Args:
        orchestrator: Orchestrator of the conversation.
        backend: Extraction backend for model turns.
        message: The user's message.
        is_stale: Optional check, consulted after the extraction call,
            that reports whether a newer message superseded this one.

    Returns:
        Final turn state; ``replies`` holds the assistant messages added.

    Raises:
        ValueError: If the message is empty.
    """
    text = message.strip()
    if not text:
        raise ValueError("message is required")

    graph = get_assisted_turn_graph()

    initial_state: AssistedTurnState = {
        "orchestrator": orchestrator,
        "backend": backend,
        "message": text,
        "is_stale": is_stale,
        "replies": [],
        "discarded": False,
        "suggest_guided_mode": False,
    }

    final_state = await graph.ainvoke(initial_state)  # type: ignore[attr-defined]

    return final_state  # type: ignore[no-any-return]
