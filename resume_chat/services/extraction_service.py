"""Model-side generation of one assisted-mode turn.

Pipeline for a single request:

    user message
         │
    pre-classify  (no email, escape, frustration, said no/yes to the
         │         section, contradiction, export intent)
    system prompt (base + section focus + context summary + guidance)
         │
    LLM call      (TaskType.CONVERSATION_TURN)
         │
    parse <extracted_data>, strip it from the reply
         │
    enforce section rules (required first question, transition on "no",
         │                 skills sub-questions)
    ExtractionResponse

The model is asked to follow the section rules, but replies are corrected
here so the conversation never stalls on a model that ignores them.
"""

import json
import re
from dataclasses import dataclass
from typing import Literal

import structlog

from resume_chat.prompts.extraction import (
    EMAIL_HELP_GUIDANCE,
    EXPORT_GUIDANCE,
    FOLLOW_UP_LIMIT_GUIDANCE,
    FRUSTRATION_GUIDANCE,
    MOVE_ON_GUIDANCE,
    build_context_summary,
    build_contradiction_guidance,
    build_said_yes_guidance,
    build_section_entry_guidance,
    build_system_prompt,
    get_inline_email_guide,
    strip_extraction_tags,
)
from resume_chat.core.config import settings
from resume_chat.providers.config import ProviderConfig
from resume_chat.providers.llm.base import (
    LLMMessage,
    LLMProvider,
    LLMResponse,
    TaskType,
)
from resume_chat.providers.retry import with_retries
from resume_chat.schemas.chat import (
    ExtractedField,
    ExtractionRequest,
    ExtractionResponse,
    SpecialContent,
    TokenUsage,
)
from resume_chat.services.response_analysis import (
    REQUIRED_FIRST_MESSAGES,
    SECTION_ADVANCE_MAP,
    SECTION_FLAG_MAP,
    SECTION_ORDER,
    SECTION_TRANSITION_MESSAGES,
    detect_contradiction,
    detect_export_intent,
    detect_section_from_question,
    detect_user_said_no_to_section,
    detect_user_said_yes_to_section,
    get_next_section,
)
from resume_chat.services.text_classifiers import (
    detect_escape_phrase,
    detect_frustration,
    detect_no_email,
)

logger = structlog.get_logger()

_EXTRACTED_DATA_PATTERN = re.compile(r"<extracted_data>([\s\S]*?)</extracted_data>")

_TURN_TEMPERATURE = 0.7
_TURN_MAX_TOKENS = 1000

_MAX_PREAMBLE_LENGTH = 50
"""Characters allowed before a section's required opening question."""

_ALLOWED_QUESTION_PATTERNS = (
    re.compile(r"would you like to keep", re.IGNORECASE),
    re.compile(r"did you mean", re.IGNORECASE),
    re.compile(r"yes or no", re.IGNORECASE),
)

# =============================================================================
# Skills Sub-Questions
# =============================================================================

SkillsSubCategory = Literal["technical", "certifications", "languages", "strengths"]

SKILLS_SUBCATEGORY_ORDER: tuple[SkillsSubCategory, ...] = (
    "technical",
    "certifications",
    "languages",
    "strengths",
)

SKILLS_QUESTIONS: dict[str, str] = {
    "technical": REQUIRED_FIRST_MESSAGES["skills"],
    "certifications": "**Do you have any certifications or licenses? (Yes or No)**",
    "languages": (
        "**Do you speak any languages you'd like to include on your resume? "
        "(Yes or No)**"
    ),
    "strengths": "**Would you like to highlight any personal strengths? (Yes or No)**",
}

# Checked in reverse order so the latest sub-question asked wins.
_SKILLS_QUESTION_MARKERS: dict[str, tuple[str, ...]] = {
    "technical": ("technical skills", "software you'd like to highlight"),
    "certifications": ("certifications or licenses", "certifications"),
    "languages": ("languages you'd like to include", "speak any languages"),
    "strengths": ("personal strengths",),
}

_SKILLS_YES = re.compile(
    r"^(yes|yeah|yep|yup|sure|definitely|absolutely|i do|i have|y)\.?$", re.IGNORECASE
)
_SKILLS_NO = re.compile(
    r"^(no|nope|nah|none|nothing|not really|skip|n/a)\.?$", re.IGNORECASE
)

_REFERENCES_QUESTION = REQUIRED_FIRST_MESSAGES["references"]


def detect_skills_subcategory(assistant_message: str) -> SkillsSubCategory | None:
    """Which skills sub-question an assistant message asked, if any."""
    lowered = assistant_message.lower()
    for subcategory in reversed(SKILLS_SUBCATEGORY_ORDER):
        if any(marker in lowered for marker in _SKILLS_QUESTION_MARKERS[subcategory]):
            return subcategory
    return None


def classify_skills_answer(message: str) -> Literal["yes", "no", "details"] | None:
    """Classify a reply to a skills sub-question.

    Longer replies that are neither yes nor no are treated as the details
    themselves.
    """
    trimmed = message.strip().lower()
    if _SKILLS_YES.match(trimmed):
        return "yes"
    if _SKILLS_NO.match(trimmed):
        return "no"
    if len(trimmed) > 5:
        return "details"
    return None


def next_skills_subcategory(
    current: SkillsSubCategory,
) -> SkillsSubCategory | Literal["done"]:
    index = SKILLS_SUBCATEGORY_ORDER.index(current)
    if index + 1 < len(SKILLS_SUBCATEGORY_ORDER):
        return SKILLS_SUBCATEGORY_ORDER[index + 1]
    return "done"


# =============================================================================
# Parsing
# =============================================================================


@dataclass
class ParsedExtraction:
    """Structured data the model appended to its reply."""

    fields: list[ExtractedField]
    suggested_section: str | None = None
    follow_up_needed: bool = False
    special_content: str | None = None
    is_complete: bool = False


def parse_extracted_data(content: str) -> ParsedExtraction | None:
    """Parse the ``<extracted_data>`` block of a model reply.

    Returns:
        The parsed block, or None when the tag is missing or its body is
        not a JSON object. Individual malformed fields are dropped.
    """
    match = _EXTRACTED_DATA_PATTERN.search(content)
    if match is None:
        return None

    try:
        data = json.loads(match.group(1).strip())
    except json.JSONDecodeError:
        logger.warning("extracted_data_invalid_json")
        return None
    if not isinstance(data, dict):
        return None

    fields: list[ExtractedField] = []
    for raw in data.get("fields") or []:
        if not isinstance(raw, dict):
            continue
        try:
            fields.append(ExtractedField.model_validate(raw))
        except ValueError:
            logger.debug("extracted_field_dropped", field=raw)

    suggested = data.get("suggestedSection")
    return ParsedExtraction(
        fields=fields,
        suggested_section=suggested if suggested in SECTION_ORDER else None,
        follow_up_needed=bool(data.get("followUpNeeded", False)),
        special_content=data.get("specialContent"),
        is_complete=bool(data.get("isComplete", False)),
    )


def clean_ai_response(content: str) -> str:
    """Remove the ``<extracted_data>`` block from a model reply."""
    return _EXTRACTED_DATA_PATTERN.sub("", content).strip()


# =============================================================================
# Validation
# =============================================================================


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of checking a reply against the section rules.

    Attributes:
        is_valid: True when the reply can be used as is.
        corrected: Replacement reply when invalid.
        violation: Short description of the broken rule.
    """

    is_valid: bool
    corrected: str | None = None
    violation: str | None = None


def _contains_other_required_question(response: str, section: str) -> bool:
    return any(
        message in response
        for other, message in REQUIRED_FIRST_MESSAGES.items()
        if other != section
    )


def validate_ai_response(
    response: str,
    section: str,
    follow_up_count: int,
    user_said_no: bool,
    user_said_yes: bool,
) -> ValidationResult:
    """Check a model reply against the section entry rules.

    Rules:
    1. On the first exchange of a yes/no section, the reply must be the
       section's opening question with at most a short preamble. A "yes"
       answer is exempt (the model moves on to details). A "no" answer is
       valid unless the reply jumps to an unrelated section's question.
    2. After a "no", the reply must not ask a new question other than a
       yes/no or clarification question.

    Args:
        response: Model reply without the extraction block.
        section: Section the user was answering.
        follow_up_count: Follow-ups asked so far in the section.
        user_said_no: User answered "no" to the opening question.
        user_said_yes: User answered "yes" to the opening question.

    Returns:
        ValidationResult with a corrected reply when invalid.
    """
    required = REQUIRED_FIRST_MESSAGES.get(section)
    transition = SECTION_TRANSITION_MESSAGES.get(section)

    if follow_up_count == 0 and required is not None:
        if user_said_no:
            if transition and _contains_other_required_question(response, section):
                return ValidationResult(
                    is_valid=False,
                    corrected=transition,
                    violation="Asked another section's question after 'no'",
                )
            return ValidationResult(is_valid=True)

        if user_said_yes:
            return ValidationResult(is_valid=True)

        position = response.find(required)
        if position == -1:
            return ValidationResult(
                is_valid=False,
                corrected=required,
                violation=f"Missing required opening question for {section}",
            )
        if position > _MAX_PREAMBLE_LENGTH:
            return ValidationResult(
                is_valid=False,
                corrected=required,
                violation="Too much text before the opening question",
            )

    if user_said_no and transition is not None and "?" in response:
        if not any(p.search(response) for p in _ALLOWED_QUESTION_PATTERNS):
            return ValidationResult(
                is_valid=False,
                corrected=transition,
                violation="Asked a new question after 'no'",
            )

    return ValidationResult(is_valid=True)


# =============================================================================
# Pipeline
# =============================================================================


@dataclass(frozen=True)
class TurnSignals:
    """Pre-classification of the user message."""

    section: str
    needs_email_help: bool
    wants_to_move_on: bool
    seems_frustrated: bool
    said_no: bool
    said_yes: bool
    contradiction_section: str | None
    contradiction_summary: str | None
    wants_export: bool


def _last_assistant_message(request: ExtractionRequest) -> str:
    for message in reversed(request.messages):
        if message.role == "assistant":
            return message.content
    return ""


def classify_turn(request: ExtractionRequest) -> TurnSignals:
    """Pre-classify the user message before prompting.

    The section being answered is read from the previous assistant message
    when it asked a section's opening question; otherwise the request's
    current section is used. The yes/no checks treat that question as the
    first exchange of its section.
    """
    message = request.user_message
    asked_section = detect_section_from_question(_last_assistant_message(request))
    section = asked_section or request.current_section

    said_no = detect_user_said_no_to_section(message, section, 0)
    said_yes = detect_user_said_yes_to_section(message, section, 0)

    contradiction = None if said_no else detect_contradiction(
        message, request.current_resume_data
    )
    wants_export = request.current_section in ("review", "complete") and (
        detect_export_intent(message)
    )

    return TurnSignals(
        section=section,
        needs_email_help=detect_no_email(message),
        wants_to_move_on=detect_escape_phrase(message),
        seems_frustrated=detect_frustration(message),
        said_no=said_no,
        said_yes=said_yes,
        contradiction_section=contradiction.section if contradiction else None,
        contradiction_summary=contradiction.existing_summary if contradiction else None,
        wants_export=wants_export,
    )


def build_additional_context(request: ExtractionRequest, signals: TurnSignals) -> str:
    """Context summary plus the guidance blocks the signals call for."""
    context = (
        request.conversation_context.model_dump()
        if request.conversation_context is not None
        else None
    )
    parts = [build_context_summary(context, request.current_resume_data)]

    if signals.wants_to_move_on:
        parts.append(MOVE_ON_GUIDANCE)
    if signals.seems_frustrated:
        parts.append(FRUSTRATION_GUIDANCE)
    if signals.needs_email_help:
        parts.append(EMAIL_HELP_GUIDANCE)
    if signals.contradiction_section and signals.contradiction_summary:
        parts.append(
            build_contradiction_guidance(
                signals.contradiction_section, signals.contradiction_summary
            )
        )
    if signals.wants_export:
        parts.append(EXPORT_GUIDANCE)

    limit = (
        settings.multi_entry_follow_up_limit
        if request.current_section in ("work", "education")
        else settings.follow_up_limit
    )
    if request.follow_up_count >= limit:
        parts.append(FOLLOW_UP_LIMIT_GUIDANCE)

    if (
        request.follow_up_count == 0
        and not signals.said_no
        and not signals.said_yes
        and request.current_section in REQUIRED_FIRST_MESSAGES
    ):
        parts.append(build_section_entry_guidance(request.current_section))

    if signals.said_yes:
        parts.append(build_said_yes_guidance(signals.section))

    return "\n\n".join(part for part in parts if part)


def _enforce_skills_flow(
    request: ExtractionRequest,
    message: str,
    parsed: ParsedExtraction,
) -> tuple[str, str | None]:
    """Keep the skills section asking its four sub-questions in order."""
    asked = detect_skills_subcategory(_last_assistant_message(request))
    if asked is None or classify_skills_answer(request.user_message) is None:
        return message, parsed.suggested_section

    acknowledgement = (
        "No problem!" if classify_skills_answer(request.user_message) == "no" else "Great!"
    )
    upcoming = next_skills_subcategory(asked)

    if upcoming == "done":
        suggested = parsed.suggested_section or "references"
        if "reference" not in message.lower():
            message = f"{acknowledgement} {_REFERENCES_QUESTION}"
        return message, suggested

    question = SKILLS_QUESTIONS[upcoming]
    if question not in message:
        message = f"{acknowledgement} {question}"
    parsed.follow_up_needed = True
    return message, parsed.suggested_section


async def generate_chat_turn(
    request: ExtractionRequest,
    provider: LLMProvider,
    retry_config: ProviderConfig | None = None,
) -> ExtractionResponse:
    """Generate one assisted-mode turn with the given provider.

    Args:
        request: The extraction request.
        provider: LLM provider used for the reply.
        retry_config: When given, transient provider errors are retried
            with its backoff settings.

    Returns:
        ExtractionResponse with the corrected reply and extracted fields.

    Raises:
        ProviderError: If the provider call fails (after retries).
    """
    signals = classify_turn(request)
    system_prompt = build_system_prompt(
        request.current_section,
        request.language,
        build_additional_context(request, signals),
    )

    messages = [LLMMessage(role="system", content=system_prompt)]
    messages.extend(
        LLMMessage(role=m.role, content=strip_extraction_tags(m.content))
        for m in request.messages
        if m.role in ("user", "assistant")
    )
    messages.append(
        LLMMessage(role="user", content=strip_extraction_tags(request.user_message))
    )

    async def _call() -> LLMResponse:
        return await provider.complete(
            messages=messages,
            task=TaskType.CONVERSATION_TURN,
            max_tokens=_TURN_MAX_TOKENS,
            temperature=_TURN_TEMPERATURE,
        )

    llm_response = (
        await with_retries(_call, retry_config)
        if retry_config is not None
        else await _call()
    )

    raw_content = llm_response.content or ""
    parsed = parse_extracted_data(raw_content) or ParsedExtraction(fields=[])
    assistant_message = clean_ai_response(raw_content)

    validation = validate_ai_response(
        assistant_message,
        signals.section,
        request.follow_up_count,
        signals.said_no,
        signals.said_yes,
    )
    if not validation.is_valid and validation.corrected:
        logger.info(
            "chat_turn_corrected",
            section=signals.section,
            violation=validation.violation,
        )
        assistant_message = validation.corrected

    if signals.said_no and signals.section in SECTION_TRANSITION_MESSAGES:
        assistant_message = SECTION_TRANSITION_MESSAGES[signals.section]

    suggested_section = parsed.suggested_section
    if suggested_section is None and signals.said_no:
        suggested_section = SECTION_ADVANCE_MAP.get(signals.section)
    if suggested_section is None and signals.wants_to_move_on:
        suggested_section = get_next_section(
            request.current_section, request.current_resume_data
        )

    fields = list(parsed.fields)
    gate_flag = SECTION_FLAG_MAP.get(signals.section)
    if signals.said_no and gate_flag is not None:
        fields.append(ExtractedField(path=gate_flag, value=False, confidence=0.95))

    if signals.said_yes:
        parsed.follow_up_needed = True

    if signals.section == "skills" and not signals.said_no:
        assistant_message, suggested_section = _enforce_skills_flow(
            request, assistant_message, parsed
        )

    special_content = None
    if signals.needs_email_help or parsed.special_content == "email_guide":
        special_content = SpecialContent(
            type="email_guide",
            content=get_inline_email_guide(request.language),
            expandable=True,
        )

    confidence = (
        sum(f.confidence for f in parsed.fields) / len(parsed.fields)
        if parsed.fields
        else 0.5
    )

    logger.info(
        "chat_turn_generated",
        section=request.current_section,
        fields=len(fields),
        suggested_section=suggested_section,
        tokens=llm_response.total_tokens,
    )

    return ExtractionResponse(
        success=True,
        assistant_message=assistant_message,
        extracted_fields=fields,
        suggested_section=suggested_section,  # type: ignore[arg-type]
        is_complete=parsed.is_complete,
        follow_up_needed=parsed.follow_up_needed,
        confidence=confidence,
        special_content=special_content,
        usage=TokenUsage(
            prompt_tokens=llm_response.input_tokens,
            completion_tokens=llm_response.output_tokens,
            total_tokens=llm_response.total_tokens,
        ),
    )
