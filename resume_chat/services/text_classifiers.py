"""Rule-based classifiers for user replies.

These decide, before any model call, whether a reply asks to skip the
current topic, shows the user has no email, sounds frustrated, or is too
vague to extract from. Each classifier is an ordered list of compiled
patterns grouped by intent; a match on any pattern decides.

Patterns are case-insensitive and search anywhere in the message unless
anchored. Inputs are truncated to _MAX_REGEX_INPUT_LENGTH first.
"""

import re
from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from resume_chat.agents.questions import Question

_MAX_REGEX_INPUT_LENGTH = 2000

# Sections that open with a yes/no question, where "no" answers the question
# instead of asking to skip. Compare with derive_gate_sections(QUESTIONS).
YES_NO_GATE_SECTIONS: frozenset[str] = frozenset(
    {"work", "education", "volunteering", "references"}
)

_STANDALONE_NO = re.compile(r"^(no|nope|nah)\.?$", re.IGNORECASE)

# =============================================================================
# Escape Phrases
# =============================================================================

_DIRECT_ESCAPE_PATTERNS = [
    re.compile(r"move on", re.IGNORECASE),
    re.compile(r"skip( this)?", re.IGNORECASE),
    re.compile(r"next( question| section)?", re.IGNORECASE),
    re.compile(r"that'?s (enough|all|it)", re.IGNORECASE),
    re.compile(r"let'?s continue", re.IGNORECASE),
    re.compile(r"nothing (else|more)", re.IGNORECASE),
    re.compile(r"no more", re.IGNORECASE),
    re.compile(r"i'?m done( with this)?", re.IGNORECASE),
    re.compile(r"can we move", re.IGNORECASE),
]

_COMPLETION_ESCAPE_PATTERNS = [
    re.compile(r"that'?s (everything|all i have)", re.IGNORECASE),
    re.compile(r"i (don'?t|do not) have (any )?more", re.IGNORECASE),
    re.compile(r"i'?ve (said|told|given) (everything|all)", re.IGNORECASE),
    re.compile(r"there('?s| is) nothing (else|more)", re.IGNORECASE),
]

# Standalone "no" is deliberately absent: it is handled per section.
_NEGATIVE_ESCAPE_PATTERNS = [
    re.compile(
        r"i (don'?t|do not) (have|want)( any| to add)?"
        r"( (this|that|more|any(thing)?|references?))?$",
        re.IGNORECASE,
    ),
    re.compile(r"not (really|at this time|now)", re.IGNORECASE),
    re.compile(r"none( to add)?", re.IGNORECASE),
]

_FRUSTRATED_ESCAPE_PATTERNS = [
    re.compile(r"just (move|go) on", re.IGNORECASE),
    re.compile(r"can'?t we just", re.IGNORECASE),
    re.compile(r"i (just )?want(ed)? to (finish|move|continue)", re.IGNORECASE),
]

_TIME_PRESSURE_ESCAPE_PATTERNS = [
    re.compile(r"in a hurry", re.IGNORECASE),
    re.compile(r"short on time", re.IGNORECASE),
    re.compile(r"let'?s (speed|hurry) (this )?up", re.IGNORECASE),
]

ESCAPE_PATTERNS = (
    _DIRECT_ESCAPE_PATTERNS
    + _COMPLETION_ESCAPE_PATTERNS
    + _NEGATIVE_ESCAPE_PATTERNS
    + _FRUSTRATED_ESCAPE_PATTERNS
    + _TIME_PRESSURE_ESCAPE_PATTERNS
)

# =============================================================================
# No Email
# =============================================================================

NO_EMAIL_PATTERNS = [
    # Direct statements
    re.compile(r"don'?t have (an? )?email", re.IGNORECASE),
    re.compile(r"no email", re.IGNORECASE),
    re.compile(r"i need (to )?(get|create|make) (an? )?email", re.IGNORECASE),
    re.compile(r"don'?t (have|use) email", re.IGNORECASE),
    re.compile(r"never had (an )?email", re.IGNORECASE),
    # Questions about email
    re.compile(r"what'?s (an )?email", re.IGNORECASE),
    re.compile(r"what is (an )?email", re.IGNORECASE),
    re.compile(r"how do i (get|make|create) (an )?email", re.IGNORECASE),
    re.compile(r"how (can|do) i (set up|get|make) (an )?email", re.IGNORECASE),
    re.compile(r"i'?m not sure (how|what) email", re.IGNORECASE),
    re.compile(r"can you help( me)? (with|create|get|make) (an )?email", re.IGNORECASE),
    # Someone else handles email
    re.compile(r"i (only )?use (my )?phone", re.IGNORECASE),
    re.compile(r"i (just )?use facebook", re.IGNORECASE),
    re.compile(
        r"my (kid|child|grandkid|son|daughter|family) (does|handles) (my |the )?email",
        re.IGNORECASE,
    ),
    re.compile(r"someone else (does|handles|checks) (my |the )?email", re.IGNORECASE),
    # Confusion
    re.compile(r"confused about email", re.IGNORECASE),
    re.compile(r"email (is |seems )?(too )?(hard|complicated|confusing)", re.IGNORECASE),
    re.compile(
        r"not (good|great) with (technology|tech|computers|email)", re.IGNORECASE
    ),
]

# =============================================================================
# Frustration
# =============================================================================

FRUSTRATION_PATTERNS = [
    re.compile(r"i (already|just) (said|told)", re.IGNORECASE),
    re.compile(r"why (are you|do you keep) asking", re.IGNORECASE),
    re.compile(r"stop asking", re.IGNORECASE),
    re.compile(r"this is (taking|too)", re.IGNORECASE),
    re.compile(r"i don'?t (know|understand)", re.IGNORECASE),
    re.compile(r"can'?t (you|we) just", re.IGNORECASE),
    re.compile(r"forget it", re.IGNORECASE),
    re.compile(r"never ?mind", re.IGNORECASE),
]

_UNCERTAIN_PATTERNS = [
    re.compile(r"\b(idk|dunno)\b", re.IGNORECASE),
    re.compile(r"not sure", re.IGNORECASE),
    re.compile(r"\bmaybe\b", re.IGNORECASE),
    re.compile(r"\bi guess\b", re.IGNORECASE),
    re.compile(r"^(um+|uh+|hmm+)\b", re.IGNORECASE),
]

# =============================================================================
# Vague Answers
# =============================================================================

DETAIL_SECTIONS: frozenset[str] = frozenset({"work", "education", "skills"})

SECTION_FOLLOW_UPS: dict[str, str] = {
    "work": (
        "Could you tell me a bit more? What was the company name and your job title?"
    ),
    "education": (
        "Could you give me a few more details? What school and what degree?"
    ),
    "skills": (
        "Could you list a few specific skills? For example, software you know, "
        "certifications, or languages?"
    ),
}

# A None follow-up marks a recognized reply that is not vague.
_VAGUE_PATTERNS: list[tuple[re.Pattern[str], str | None]] = [
    (
        re.compile(r"^(yes|yeah|yep|sure|ok|okay)\.?$", re.IGNORECASE),
        "Great! Could you give me a bit more detail?",
    ),
    (re.compile(r"^(no|nope|nah)\.?$", re.IGNORECASE), None),
    (
        re.compile(r"^i (guess|think) so\.?$", re.IGNORECASE),
        "What would you like to include?",
    ),
    (
        re.compile(r"^(um+|uh+|hmm+)\.?$", re.IGNORECASE),
        "Take your time! What information would you like to share?",
    ),
    (
        re.compile(r"^(idk|dunno|not sure)\.?$", re.IGNORECASE),
        "No worries! Would you like me to give you some examples?",
    ),
    (
        re.compile(r"^maybe\.?$", re.IGNORECASE),
        "What are you thinking? I can help you decide.",
    ),
]


@dataclass(frozen=True)
class VagueAnswerResult:
    """Outcome of vague-answer detection.

    Attributes:
        is_vague: True when a scripted follow-up should be asked.
        follow_up: The follow-up to ask (None when not vague).
    """

    is_vague: bool
    follow_up: str | None = None


def _truncate(message: str) -> str:
    return message[:_MAX_REGEX_INPUT_LENGTH]


def _matches_any(patterns: Iterable[re.Pattern[str]], text: str) -> bool:
    return any(p.search(text) for p in patterns)


def detect_escape_phrase(message: str, category: str | None = None) -> bool:
    """Check whether the user wants to skip or end the current topic.

    A bare "no"/"nope"/"nah" answers the opening question of a yes/no gate
    section, so it is never an escape there. Elsewhere the escape rules
    decide, and no rule matches a bare "no".

    Args:
        message: The user's reply.
        category: Current section, if known.

    Returns:
        True if the reply is an escape phrase.
    """
    text = _truncate(message)
    if category in YES_NO_GATE_SECTIONS and _STANDALONE_NO.match(text.strip()):
        return False
    return _matches_any(ESCAPE_PATTERNS, text)


def derive_gate_sections(questions: Iterable["Question"]) -> frozenset[str]:
    """Sections whose first question is a yes/no confirm question.

    Derived from the question graph so it can be compared with
    YES_NO_GATE_SECTIONS.
    """
    first_kind: dict[str, str] = {}
    for question in questions:
        first_kind.setdefault(question.category, question.input_kind)
    return frozenset(
        category
        for category, kind in first_kind.items()
        if kind == "confirm" and category not in ("intro", "complete")
    )


def detect_no_email(message: str) -> bool:
    """Check whether the user says they have no email (or need help with one)."""
    return _matches_any(NO_EMAIL_PATTERNS, _truncate(message))


def detect_frustration(message: str) -> bool:
    return _matches_any(FRUSTRATION_PATTERNS, _truncate(message))


def detect_vague_answer(message: str, category: str) -> VagueAnswerResult:
    """Decide whether a reply needs a scripted follow-up instead of extraction.

    In work, education and skills, replies under three words that are not
    escape phrases (checked without a section) are vague. Otherwise a small
    table of filler replies decides; a bare "no" is recognized as not vague.
    """
    trimmed = _truncate(message).strip().lower()

    if (
        category in DETAIL_SECTIONS
        and len(trimmed.split()) < 3
        and not detect_escape_phrase(message)
    ):
        return VagueAnswerResult(is_vague=True, follow_up=SECTION_FOLLOW_UPS[category])

    for pattern, follow_up in _VAGUE_PATTERNS:
        if pattern.search(trimmed):
            return VagueAnswerResult(is_vague=follow_up is not None, follow_up=follow_up)

    return VagueAnswerResult(is_vague=False)


def detect_user_tone(message: str) -> str:
    """Classify the reply as frustrated, uncertain, confident or neutral."""
    text = _truncate(message).strip()
    if not text:
        return "neutral"
    if detect_frustration(text):
        return "frustrated"
    if _matches_any(_UNCERTAIN_PATTERNS, text):
        return "uncertain"
    return "confident"
