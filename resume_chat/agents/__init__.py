"""Conversation drivers for the résumé builder.

Two modes fill the same ConversationRecord:

    guided:   fixed question graph, one answer per question (no model)
    assisted: free-form chat; a model extracts fields from each reply

Modules:
    questions: Question graph, skip predicates and category helpers
    state: Record views and the unified ConversationRecord
    guided_flow: Guided-mode state machine
    assisted: Assisted-mode orchestrator (merging extracted fields)
    assisted_graph: LangGraph graph for one assisted turn
"""

from resume_chat.agents.assisted import AssistedOrchestrator
from resume_chat.agents.assisted_graph import (
    AssistedTurnState,
    create_assisted_turn_graph,
    get_assisted_turn_graph,
    reset_assisted_turn_graph,
    run_assisted_turn,
)
from resume_chat.agents.guided_flow import (
    GuidedAnswerOutcome,
    GuidedFlow,
    GuidedOutcomeKind,
    GuidedProgress,
)
from resume_chat.agents.questions import (
    CATEGORY_ORDER,
    QUESTIONS,
    Question,
    get_category_label,
    get_category_progress,
    get_first_question_index,
    get_question_index,
)
from resume_chat.agents.state import (
    AssistedCursor,
    ChatTurn,
    ConversationContext,
    ConversationRecord,
    GuidedCursor,
    ResumeRecord,
    create_empty_record,
)

__all__ = [
    # Questions
    "CATEGORY_ORDER",
    "QUESTIONS",
    "Question",
    "get_category_label",
    "get_category_progress",
    "get_first_question_index",
    "get_question_index",
    # State
    "AssistedCursor",
    "ChatTurn",
    "ConversationContext",
    "ConversationRecord",
    "GuidedCursor",
    "ResumeRecord",
    "create_empty_record",
    # Guided
    "GuidedAnswerOutcome",
    "GuidedFlow",
    "GuidedOutcomeKind",
    "GuidedProgress",
    # Assisted
    "AssistedOrchestrator",
    "AssistedTurnState",
    "create_assisted_turn_graph",
    "get_assisted_turn_graph",
    "reset_assisted_turn_graph",
    "run_assisted_turn",
]
