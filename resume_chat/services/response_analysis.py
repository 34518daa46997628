"""Reply analysis for model-driven turns.

Detectors that read the user's reply (and sometimes the previous assistant
message) to decide how a turn should be steered: did the user answer a
section's yes/no question, contradict data already collected, ask to
export, or finish a multi-entry loop. Also holds the fixed message tables
used to correct or force section transitions.
"""

import re
from dataclasses import dataclass
from typing import Any

_MAX_REGEX_INPUT_LENGTH = 2000

# =============================================================================
# Section Tables
# =============================================================================

SECTION_ORDER: tuple[str, ...] = (
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
)

# Exact opening question of each section that starts with a yes/no gate.
REQUIRED_FIRST_MESSAGES: dict[str, str] = {
    "work": "**Do you have any work experience you'd like to include? (Yes or No)**",
    "education": "**Do you have any education you'd like to include? (Yes or No)**",
    "volunteering": (
        "**Do you have any volunteer experience you'd like to include? (Yes or No)**"
    ),
    "skills": (
        "**Do you have any technical skills or software you'd like to highlight? "
        "(Yes or No)**"
    ),
    "references": "**Would you like to add professional references? (Yes or No)**",
}

# Reply used when the user says "no" to a section's opening question.
SECTION_TRANSITION_MESSAGES: dict[str, str] = {
    "work": (
        "That's totally fine! Let's move on to your education. "
        + REQUIRED_FIRST_MESSAGES["education"]
    ),
    "education": "That's perfectly fine! " + REQUIRED_FIRST_MESSAGES["volunteering"],
    "volunteering": "That's perfectly fine! " + REQUIRED_FIRST_MESSAGES["skills"],
    "skills": "No problem! " + REQUIRED_FIRST_MESSAGES["references"],
    "references": "That's fine! Let me review what we have so far.",
}

SECTION_ADVANCE_MAP: dict[str, str] = {
    "work": "education",
    "education": "volunteering",
    "volunteering": "skills",
    "skills": "references",
    "references": "review",
}

SECTION_FLAG_MAP: dict[str, str] = {
    "work": "hasWorkExperience",
    "education": "hasEducation",
    "volunteering": "hasVolunteering",
    "references": "hasReferences",
}

ADD_ANOTHER_QUESTIONS: dict[str, str] = {
    "work": "**Do you have another job you'd like to add? (Yes or No)**",
    "education": "**Do you have any other education to add? (Yes or No)**",
    "volunteering": "**Do you have any other volunteer experience? (Yes or No)**",
}

FIRST_DETAIL_QUESTIONS: dict[str, str] = {
    "work": "**What company did you work for?**",
    "education": "**What school did you attend?**",
    "volunteering": "**What organization did you volunteer with?**",
}

# Phrases in an assistant message that identify which gate question it asked.
SECTION_QUESTION_MARKERS: list[tuple[str, str]] = [
    ("do you have any work experience", "work"),
    ("do you have any education", "education"),
    ("do you have any volunteer", "volunteering"),
    ("do you have any technical skills", "skills"),
    ("add professional references", "references"),
    ("would you like to add references", "references"),
]

# =============================================================================
# Patterns
# =============================================================================

NO_WORK_PATTERNS = [
    re.compile(r"no work experience", re.IGNORECASE),
    re.compile(r"(this is|it'?s) my first job", re.IGNORECASE),
    re.compile(r"never (had a |worked)", re.IGNORECASE),
    re.compile(r"just (graduated|finished school)", re.IGNORECASE),
    re.compile(r"looking for (my )?first", re.IGNORECASE),
    re.compile(r"haven'?t worked (before|yet)", re.IGNORECASE),
]

# Explicit denials only; a bare "no" never contradicts.
CONTRADICTION_PATTERNS: dict[str, list[re.Pattern[str]]] = {
    "volunteering": [
        re.compile(r"i (don'?t|do not|dont) have (any )?(volunteer|volunteering)", re.IGNORECASE),
        re.compile(r"i have no volunteer", re.IGNORECASE),
        re.compile(r"actually.*(don'?t|no).*(volunteer)", re.IGNORECASE),
        re.compile(r"remove.*(volunteer|volunteering)", re.IGNORECASE),
        re.compile(r"delete.*(volunteer|volunteering)", re.IGNORECASE),
    ],
    "workExperience": [
        re.compile(r"i (don'?t|do not|dont) have (any )?(work|job) experience", re.IGNORECASE),
        re.compile(r"i have no work experience", re.IGNORECASE),
        re.compile(r"never (worked|had a job)", re.IGNORECASE),
        re.compile(r"actually.*(don'?t|no).*(work|job)", re.IGNORECASE),
        re.compile(r"remove.*(work|job)", re.IGNORECASE),
        re.compile(r"delete.*(work|job)", re.IGNORECASE),
    ],
    "education": [
        re.compile(r"i (don'?t|do not|dont) have (any )?(education|degree)", re.IGNORECASE),
        re.compile(r"i have no education", re.IGNORECASE),
        re.compile(r"actually.*(don'?t|no).*(education|school)", re.IGNORECASE),
        re.compile(r"remove.*(education|school)", re.IGNORECASE),
        re.compile(r"delete.*(education|school)", re.IGNORECASE),
    ],
    "references": [
        re.compile(r"i (don'?t|do not|dont) have (any )?reference", re.IGNORECASE),
        re.compile(r"i have no reference", re.IGNORECASE),
        re.compile(r"actually.*(don'?t|no).*(reference)", re.IGNORECASE),
        re.compile(r"remove.*(reference)", re.IGNORECASE),
        re.compile(r"delete.*(reference)", re.IGNORECASE),
    ],
}  # fmt: skip

# (field, fallback label, detail field, detail format) per section.
_SUMMARY_FIELDS: dict[str, tuple[str, str, str, str]] = {
    "volunteering": ("organizationName", "Unknown organization", "role", " as {}"),
    "workExperience": ("companyName", "Unknown company", "jobTitle", " as {}"),
    "education": ("schoolName", "Unknown school", "degree", " ({})"),
    "references": ("name", "Unknown reference", "jobTitle", " ({})"),
}

EXPORT_INTENT_PATTERNS = [
    re.compile(r"\bpdf\b", re.IGNORECASE),
    re.compile(r"download", re.IGNORECASE),
    re.compile(r"export", re.IGNORECASE),
    re.compile(r"generate.*resume", re.IGNORECASE),
    re.compile(r"create.*resume", re.IGNORECASE),
    re.compile(r"ready to (download|export|generate)", re.IGNORECASE),
    re.compile(r"get my resume", re.IGNORECASE),
    re.compile(r"finish(ed)?", re.IGNORECASE),
    re.compile(r"done", re.IGNORECASE),
    re.compile(r"\bword\b", re.IGNORECASE),
    re.compile(r"\bdocx?\b", re.IGNORECASE),
]

_SIMPLE_NEGATIVE = re.compile(r"^(no|nope|nah|none|nothing|skip|n/a)\.?$", re.IGNORECASE)
_YES_RESPONSE = re.compile(
    r"^(yes|yeah|yep|yup|sure|definitely|absolutely|i do|i have|y|ok|okay)\.?$",
    re.IGNORECASE,
)
_NO_RESPONSE = re.compile(
    r"^(no|nope|nah|none|nothing|skip|n/a|n|not really)\.?$", re.IGNORECASE
)

_GATE_QUESTION_PATTERNS = [
    re.compile(r"do you have any .+\?$", re.IGNORECASE),
    re.compile(r"would you like to (add|include) .+\?$", re.IGNORECASE),
    re.compile(r"is this your current (job|position)\?", re.IGNORECASE),
    re.compile(r"are you still (working|studying)", re.IGNORECASE),
    re.compile(r"do you speak any languages", re.IGNORECASE),
]

_SAID_NO_PATTERNS = [
    re.compile(r"^no\.?$", re.IGNORECASE),
    re.compile(r"^nope\.?$", re.IGNORECASE),
    re.compile(r"^nah\.?$", re.IGNORECASE),
    re.compile(r"^not really\.?$", re.IGNORECASE),
    re.compile(r"^no,?\s*(thanks|thank you)?\.?$", re.IGNORECASE),
    re.compile(r"^i (don'?t|do not|dont) have (any|that)", re.IGNORECASE),
    re.compile(r"^i have no", re.IGNORECASE),
    re.compile(r"^none\.?$", re.IGNORECASE),
    re.compile(r"^nothing\.?$", re.IGNORECASE),
    re.compile(r"^skip\.?$", re.IGNORECASE),
    re.compile(r"^n/a\.?$", re.IGNORECASE),
]

_SAID_YES_PATTERNS = [
    re.compile(r"^yes\.?$", re.IGNORECASE),
    re.compile(r"^yeah\.?$", re.IGNORECASE),
    re.compile(r"^yep\.?$", re.IGNORECASE),
    re.compile(r"^yup\.?$", re.IGNORECASE),
    re.compile(r"^sure\.?$", re.IGNORECASE),
    re.compile(r"^definitely\.?$", re.IGNORECASE),
    re.compile(r"^absolutely\.?$", re.IGNORECASE),
    re.compile(r"^of course\.?$", re.IGNORECASE),
    re.compile(r"^i do\.?$", re.IGNORECASE),
    re.compile(r"^i have\.?$", re.IGNORECASE),
    re.compile(r"^yes,?\s*(i do|i have|please)?\.?$", re.IGNORECASE),
    re.compile(r"^y$", re.IGNORECASE),
]

_RESPONSIBILITY_MARKERS = (
    "responsibilities",
    "duties",
    "what did you do",
    "main responsibilities",
    "key responsibilities",
    "would you like to use these",
    "use these or modify",
    "modify them",
    "would you like these",
    "from this list",
    "include any specific",
    "want to add more",
)

_SELECTION_PATTERNS = [
    re.compile(r"use\s+(\d+|all|some|those|these|them)", re.IGNORECASE),
    re.compile(r"^(perfect|great|good|fine|those work|those are good)", re.IGNORECASE),
    re.compile(r"i('ll| will)?\s*(take|pick|use|go with)", re.IGNORECASE),
]

_BARE_ANSWER = re.compile(r"^(yes|no|yeah|nope|skip|none|n/a)\.?$", re.IGNORECASE)

_ADD_ANOTHER_MARKERS: dict[str, tuple[str, ...]] = {
    "work": (
        "another job",
        "other job",
        "other jobs",
        "other work experience",
        "another work experience",
        "more work experience",
    ),
    "education": (
        "other education",
        "another school",
        "another degree",
        "more education",
    ),
    "volunteering": ("other volunteer", "another volunteer", "more volunteer"),
}

_WANTS_ANOTHER = re.compile(
    r"^(yes|yeah|yep|yup|sure|definitely|i do|one more|another)\.?$", re.IGNORECASE
)
_DONE_WITH_ENTRIES = re.compile(
    r"^(no|nope|nah|none|that'?s (it|all)|i'?m done|no more|nothing)\.?$",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class ContradictionResult:
    """A detected contradiction with data already collected.

    Attributes:
        section: Record key of the contradicted section ("workExperience", ...).
        existing_summary: Human-readable summary of the existing entries.
    """

    section: str
    existing_summary: str


def _truncate(message: str) -> str:
    return message[:_MAX_REGEX_INPUT_LENGTH]


# =============================================================================
# Data Checks
# =============================================================================


def _is_meaningful_entry(item: Any) -> bool:
    if not isinstance(item, dict):
        return False
    for key, value in item.items():
        if key == "id" or value is None or value == "":
            continue
        if isinstance(value, list) and not value:
            continue
        return True
    return False


def has_meaningful_data(entries: Any) -> bool:
    """True when a section list holds at least one entry with real content.

    Entries holding only an ``id`` (or empty values) do not count.
    """
    if not isinstance(entries, list) or not entries:
        return False
    return any(_is_meaningful_entry(item) for item in entries)


def _summarize_section(section: str, entries: list[Any]) -> str:
    key, fallback, detail_key, detail_fmt = _SUMMARY_FIELDS[section]
    parts = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        main = entry.get(key)
        detail = entry.get(detail_key)
        if not main and not detail:
            continue
        parts.append(f"{main or fallback}{detail_fmt.format(detail) if detail else ''}")
    return ", ".join(parts)


def detect_contradiction(
    message: str, record: dict[str, Any]
) -> ContradictionResult | None:
    """Check whether the user denies a section that already holds data.

    Requires an explicit denial ("I don't have any volunteer experience",
    "remove my job"); simple negatives never contradict. The section must
    hold meaningful entries and yield a non-empty summary.

    Args:
        message: The user's reply.
        record: Current résumé record.

    Returns:
        ContradictionResult, or None when there is no contradiction.
    """
    text = _truncate(message)
    if _SIMPLE_NEGATIVE.match(text.strip().lower()):
        return None

    for section, patterns in CONTRADICTION_PATTERNS.items():
        if not any(p.search(text) for p in patterns):
            continue
        entries = record.get(section)
        if not has_meaningful_data(entries):
            continue
        summary = _summarize_section(section, entries)
        if summary:
            return ContradictionResult(section=section, existing_summary=summary)

    return None


# =============================================================================
# Intent Detection
# =============================================================================


def detect_no_work_experience(message: str) -> bool:
    text = _truncate(message)
    return any(p.search(text) for p in NO_WORK_PATTERNS)


def detect_export_intent(message: str) -> bool:
    """Check whether the user wants to download or generate the résumé."""
    text = _truncate(message)
    return any(p.search(text) for p in EXPORT_INTENT_PATTERNS)


def is_yes_no_response(message: str) -> str | None:
    """Return "yes", "no", or None for a reply that is only a yes/no."""
    trimmed = _truncate(message).strip().lower()
    if _YES_RESPONSE.match(trimmed):
        return "yes"
    if _NO_RESPONSE.match(trimmed):
        return "no"
    return None


def is_gate_question(assistant_message: str) -> bool:
    """Check whether an assistant message asked a yes/no gate question."""
    lowered = _truncate(assistant_message).lower().strip()
    if "(yes or no)" in lowered or "yes or no?" in lowered:
        return True
    return any(p.search(lowered) for p in _GATE_QUESTION_PATTERNS)


def detect_section_from_question(assistant_message: str) -> str | None:
    """Identify which section's gate question an assistant message asked."""
    lowered = assistant_message.lower()
    for marker, section in SECTION_QUESTION_MARKERS:
        if marker in lowered:
            return section
    return None


def detect_user_said_no_to_section(
    message: str, category: str, follow_up_count: int
) -> bool:
    """Check for a "no" answer to the section's opening yes/no question.

    Only the first exchange of a section counts (``follow_up_count == 0``)
    and only sections that open with a yes/no question.
    """
    if follow_up_count != 0 or category not in REQUIRED_FIRST_MESSAGES:
        return False
    trimmed = _truncate(message).strip().lower()
    return any(p.search(trimmed) for p in _SAID_NO_PATTERNS)


def detect_user_said_yes_to_section(
    message: str, category: str, follow_up_count: int
) -> bool:
    """Mirror of detect_user_said_no_to_section for affirmative answers."""
    if follow_up_count != 0 or category not in REQUIRED_FIRST_MESSAGES:
        return False
    trimmed = _truncate(message).strip().lower()
    return any(p.search(trimmed) for p in _SAID_YES_PATTERNS)


# =============================================================================
# Multi-Entry Loop Detection
# =============================================================================


def detect_asked_for_responsibilities(assistant_message: str) -> bool:
    lowered = assistant_message.lower()
    return any(marker in lowered for marker in _RESPONSIBILITY_MARKERS)


def detect_provided_responsibilities(message: str) -> bool:
    """True for a substantive answer or a pick from suggested responsibilities."""
    trimmed = _truncate(message).strip()
    lowered = trimmed.lower()
    if any(p.search(lowered) for p in _SELECTION_PATTERNS):
        return True
    return len(trimmed) > 15 and not _BARE_ANSWER.match(trimmed)


def detect_asked_add_another(assistant_message: str, category: str) -> bool:
    lowered = assistant_message.lower()
    return any(marker in lowered for marker in _ADD_ANOTHER_MARKERS.get(category, ()))


def detect_user_wants_another(message: str) -> bool:
    return bool(_WANTS_ANOTHER.match(_truncate(message).strip().lower()))


def detect_user_done_with_entries(message: str) -> bool:
    return bool(_DONE_WITH_ENTRIES.match(_truncate(message).strip().lower()))


# =============================================================================
# Navigation
# =============================================================================


def get_next_section(category: str, record: dict[str, Any]) -> str:
    """Next section after ``category``, skipping sections flagged as empty.

    Sections whose gate flag is explicitly False are passed over. The end
    of the order is "complete".
    """
    if category not in SECTION_ORDER:
        msg = f"Unknown category: {category!r}"
        raise ValueError(msg)

    index = SECTION_ORDER.index(category) + 1
    while index < len(SECTION_ORDER) - 1:
        candidate = SECTION_ORDER[index]
        flag = SECTION_FLAG_MAP.get(candidate)
        if flag is None or record.get(flag) is not False:
            return candidate
        index += 1
    return "complete"
