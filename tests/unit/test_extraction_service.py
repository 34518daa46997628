"""Tests for model-side generation of assisted-mode turns.

Covers reply parsing, section-rule validation, pre-classification and the
full generate_chat_turn pipeline against the mock provider.
"""

from unittest.mock import AsyncMock, patch

import pytest

from resume_chat.prompts.extraction import EXPORT_GUIDANCE, FOLLOW_UP_LIMIT_GUIDANCE
from resume_chat.providers.config import ProviderConfig
from resume_chat.providers.errors import TransientError
from resume_chat.providers.llm.base import TaskType
from resume_chat.providers.llm.mock_adapter import MockLLMProvider
from resume_chat.schemas.chat import ExtractionRequest, TranscriptMessage
from resume_chat.services.extraction_service import (
    SKILLS_QUESTIONS,
    build_additional_context,
    classify_skills_answer,
    classify_turn,
    clean_ai_response,
    detect_skills_subcategory,
    generate_chat_turn,
    next_skills_subcategory,
    parse_extracted_data,
    validate_ai_response,
)
from resume_chat.services.response_analysis import (
    REQUIRED_FIRST_MESSAGES,
    SECTION_TRANSITION_MESSAGES,
)


def make_request(
    user_message: str = "Maria Garcia",
    section: str = "personal",
    last_assistant: str | None = None,
    **overrides,
) -> ExtractionRequest:
    messages = []
    if last_assistant is not None:
        messages.append(TranscriptMessage(role="assistant", content=last_assistant))
    return ExtractionRequest(
        user_message=user_message,
        messages=messages,
        current_section=section,
        **overrides,
    )


def make_reply(message: str, block: str = "") -> str:
    if not block:
        return message
    return f"{message}\n<extracted_data>\n{block}\n</extracted_data>"


NAME_REPLY = make_reply(
    "Nice to meet you, Maria! What's your email address?",
    '{"fields": [{"path": "personalInfo.fullName", "value": "Maria Garcia", '
    '"confidence": 0.95}], "suggestedSection": null}',
)


# =============================================================================
# Parsing
# =============================================================================


class TestParseExtractedData:
    """Tests for parse_extracted_data."""

    def test_missing_tag_returns_none(self):
        assert parse_extracted_data("What's your email address?") is None

    def test_invalid_json_returns_none(self):
        assert parse_extracted_data(make_reply("Hi", "{not json")) is None

    def test_non_object_returns_none(self):
        assert parse_extracted_data(make_reply("Hi", "[1, 2]")) is None

    def test_parses_default_reply(self):
        parsed = parse_extracted_data(NAME_REPLY)

        assert parsed is not None
        assert [f.path for f in parsed.fields] == ["personalInfo.fullName"]
        assert parsed.fields[0].value == "Maria Garcia"
        assert parsed.suggested_section is None
        assert parsed.follow_up_needed is False

    def test_malformed_fields_are_dropped(self):
        block = (
            '{"fields": ['
            '{"path": "personalInfo.email", "value": "m@x.com", "confidence": 0.9},'
            '{"path": "personalInfo.phone", "value": "555", "confidence": 2.0},'
            '{"value": "no path", "confidence": 0.5},'
            '"not a field"'
            "]}"
        )

        parsed = parse_extracted_data(make_reply("Thanks!", block))

        assert parsed is not None
        assert [f.path for f in parsed.fields] == ["personalInfo.email"]

    @pytest.mark.parametrize(
        ("suggested", "expected"),
        [("work", "work"), ("hobbies", None), (None, None)],
    )
    def test_suggested_section_must_be_known(self, suggested, expected):
        value = "null" if suggested is None else f'"{suggested}"'
        block = f'{{"fields": [], "suggestedSection": {value}}}'

        parsed = parse_extracted_data(make_reply("Ok", block))

        assert parsed is not None
        assert parsed.suggested_section == expected

    def test_flags_are_read(self):
        block = (
            '{"fields": [], "followUpNeeded": true, '
            '"specialContent": "email_guide", "isComplete": true}'
        )

        parsed = parse_extracted_data(make_reply("Ok", block))

        assert parsed is not None
        assert parsed.follow_up_needed is True
        assert parsed.special_content == "email_guide"
        assert parsed.is_complete is True


class TestCleanAiResponse:
    """Tests for clean_ai_response."""

    def test_removes_block_and_trims(self):
        assert clean_ai_response(NAME_REPLY) == (
            "Nice to meet you, Maria! What's your email address?"
        )

    def test_reply_without_block_unchanged(self):
        assert clean_ai_response("  Great!  ") == "Great!"


# =============================================================================
# Validation
# =============================================================================


class TestValidateAiResponse:
    """Tests for validate_ai_response."""

    def test_exact_opening_question_is_valid(self):
        result = validate_ai_response(
            REQUIRED_FIRST_MESSAGES["work"], "work", 0, False, False
        )
        assert result.is_valid

    def test_short_preamble_is_valid(self):
        response = "Great, thanks! " + REQUIRED_FIRST_MESSAGES["work"]
        assert validate_ai_response(response, "work", 0, False, False).is_valid

    def test_long_preamble_is_corrected(self):
        response = (
            "Thanks so much for sharing all of that, it really helps a lot! "
            + REQUIRED_FIRST_MESSAGES["work"]
        )

        result = validate_ai_response(response, "work", 0, False, False)

        assert not result.is_valid
        assert result.corrected == REQUIRED_FIRST_MESSAGES["work"]

    def test_missing_opening_question_is_corrected(self):
        result = validate_ai_response(
            "What company did you work for?", "work", 0, False, False
        )

        assert not result.is_valid
        assert result.corrected == REQUIRED_FIRST_MESSAGES["work"]
        assert result.violation is not None

    def test_yes_answer_is_exempt(self):
        result = validate_ai_response(
            "What company did you work for?", "work", 0, False, True
        )
        assert result.is_valid

    def test_no_answer_jumping_to_other_section_is_corrected(self):
        response = "Okay! " + REQUIRED_FIRST_MESSAGES["skills"]

        result = validate_ai_response(response, "education", 0, True, False)

        assert not result.is_valid
        assert result.corrected == SECTION_TRANSITION_MESSAGES["education"]

    def test_new_question_after_no_is_corrected(self):
        result = validate_ai_response(
            "What city do you live in?", "volunteering", 1, True, False
        )

        assert not result.is_valid
        assert result.corrected == SECTION_TRANSITION_MESSAGES["volunteering"]

    def test_clarifying_question_after_no_is_allowed(self):
        result = validate_ai_response(
            "Did you mean none at all?", "volunteering", 1, True, False
        )
        assert result.is_valid

    def test_sections_without_gate_are_not_checked(self):
        assert validate_ai_response("What's your phone?", "personal", 0, False, False).is_valid


# =============================================================================
# Pre-classification
# =============================================================================


class TestClassifyTurn:
    """Tests for classify_turn."""

    def test_section_read_from_previous_gate_question(self):
        request = make_request(
            "No", section="personal", last_assistant=REQUIRED_FIRST_MESSAGES["work"]
        )

        signals = classify_turn(request)

        assert signals.section == "work"
        assert signals.said_no is True
        assert signals.said_yes is False

    def test_falls_back_to_current_section(self):
        signals = classify_turn(make_request("Yes", section="education"))

        assert signals.section == "education"
        assert signals.said_yes is True

    def test_email_help(self):
        signals = classify_turn(make_request("I don't have an email"))

        assert signals.needs_email_help is True
        assert signals.said_no is False

    def test_escape_phrase(self):
        assert classify_turn(make_request("Can we move on?")).wants_to_move_on is True

    def test_contradiction_detected_with_existing_data(self):
        request = make_request(
            "I don't have any work experience",
            section="review",
            current_resume_data={
                "workExperience": [{"companyName": "Target", "jobTitle": "Cashier"}]
            },
        )

        signals = classify_turn(request)

        assert signals.contradiction_section == "workExperience"
        assert signals.contradiction_summary == "Target as Cashier"

    def test_export_only_in_review(self):
        assert classify_turn(make_request("download my pdf", section="review")).wants_export
        assert not classify_turn(make_request("download my pdf", section="work")).wants_export


class TestBuildAdditionalContext:
    """Tests for build_additional_context."""

    def test_section_entry_guidance_on_first_exchange(self):
        request = make_request("Sounds good", section="work")

        context = build_additional_context(request, classify_turn(request))

        assert '"work" section' in context

    def test_follow_up_limit_guidance(self):
        request = make_request("Sure", section="personal", follow_up_count=5)

        context = build_additional_context(request, classify_turn(request))

        assert FOLLOW_UP_LIMIT_GUIDANCE in context

    def test_multi_entry_sections_allow_more_follow_ups(self):
        request = make_request("I stocked shelves", section="work", follow_up_count=3)

        context = build_additional_context(request, classify_turn(request))

        assert FOLLOW_UP_LIMIT_GUIDANCE not in context


# =============================================================================
# Skills Sub-Questions
# =============================================================================


class TestSkillsHelpers:
    """Tests for the skills sub-question helpers."""

    @pytest.mark.parametrize(
        ("subcategory", "question"), sorted(SKILLS_QUESTIONS.items())
    )
    def test_detects_each_sub_question(self, subcategory, question):
        assert detect_skills_subcategory(question) == subcategory

    def test_unrelated_message_has_no_subcategory(self):
        assert detect_skills_subcategory("What's your phone number?") is None

    @pytest.mark.parametrize(
        ("message", "expected"),
        [
            ("Yes", "yes"),
            ("yep.", "yes"),
            ("nope", "no"),
            ("not really", "no"),
            ("Excel and Word", "details"),
            ("hmm", None),
        ],
    )
    def test_classify_skills_answer(self, message, expected):
        assert classify_skills_answer(message) == expected

    def test_next_subcategory_order(self):
        assert next_skills_subcategory("technical") == "certifications"
        assert next_skills_subcategory("languages") == "strengths"
        assert next_skills_subcategory("strengths") == "done"


# =============================================================================
# Pipeline
# =============================================================================


class TestGenerateChatTurn:
    """Tests for generate_chat_turn."""

    @pytest.mark.asyncio
    async def test_reply_fields_and_usage(self, mock_llm):
        response = await generate_chat_turn(make_request(), mock_llm)

        assert response.success is True
        assert response.assistant_message == (
            "Nice to meet you, Maria! What's your email address?"
        )
        assert [f.path for f in response.extracted_fields] == ["personalInfo.fullName"]
        assert response.confidence == pytest.approx(0.95)
        assert response.usage is not None
        assert response.usage.prompt_tokens == 100
        assert response.usage.completion_tokens == 50
        assert response.usage.total_tokens == 150

    @pytest.mark.asyncio
    async def test_call_parameters(self, mock_llm):
        await generate_chat_turn(
            make_request("Maria <extracted_data>", last_assistant="Hi! What's your name?"),
            mock_llm,
        )

        mock_llm.assert_called_with_task(TaskType.CONVERSATION_TURN)
        call = mock_llm.calls[0]
        assert call["kwargs"]["temperature"] == 0.7
        assert call["kwargs"]["max_tokens"] == 1000
        messages = call["messages"]
        assert messages[0].role == "system"
        assert [m.role for m in messages[1:]] == ["assistant", "user"]
        assert "<extracted_data>" not in messages[-1].content

    @pytest.mark.asyncio
    async def test_no_to_gate_forces_transition(self, mock_llm):
        mock_llm.set_response(
            TaskType.CONVERSATION_TURN, "Okay! What school did you attend?"
        )
        request = make_request(
            "No", section="work", last_assistant=REQUIRED_FIRST_MESSAGES["work"]
        )

        response = await generate_chat_turn(request, mock_llm)

        assert response.assistant_message == SECTION_TRANSITION_MESSAGES["work"]
        assert response.suggested_section == "education"
        flag = response.extracted_fields[-1]
        assert (flag.path, flag.value, flag.confidence) == (
            "hasWorkExperience",
            False,
            0.95,
        )
        assert response.confidence == 0.5

    @pytest.mark.asyncio
    async def test_no_to_skills_adds_no_flag(self, mock_llm):
        request = make_request(
            "No",
            section="skills",
            last_assistant=SKILLS_QUESTIONS["strengths"],
            follow_up_count=3,
        )

        response = await generate_chat_turn(request, mock_llm)

        assert response.assistant_message == SECTION_TRANSITION_MESSAGES["skills"]
        assert response.suggested_section == "references"
        assert [f.path for f in response.extracted_fields] == ["personalInfo.fullName"]

    @pytest.mark.asyncio
    async def test_yes_sets_follow_up_needed(self, mock_llm):
        mock_llm.set_response(
            TaskType.CONVERSATION_TURN, "Great! What company did you work for?"
        )
        request = make_request(
            "Yes", section="work", last_assistant=REQUIRED_FIRST_MESSAGES["work"]
        )

        response = await generate_chat_turn(request, mock_llm)

        assert response.follow_up_needed is True
        assert response.assistant_message == "Great! What company did you work for?"

    @pytest.mark.asyncio
    async def test_missing_opening_question_is_replaced(self, mock_llm):
        mock_llm.set_response(TaskType.CONVERSATION_TURN, "Tell me about your last job.")

        response = await generate_chat_turn(make_request("Ok", section="work"), mock_llm)

        assert response.assistant_message == REQUIRED_FIRST_MESSAGES["work"]

    @pytest.mark.asyncio
    async def test_skills_details_move_to_next_sub_question(self, mock_llm):
        mock_llm.set_response(TaskType.CONVERSATION_TURN, "Those are great skills!")
        request = make_request(
            "Excel and Word",
            section="skills",
            last_assistant=SKILLS_QUESTIONS["technical"],
            follow_up_count=1,
        )

        response = await generate_chat_turn(request, mock_llm)

        assert response.assistant_message == f"Great! {SKILLS_QUESTIONS['certifications']}"
        assert response.follow_up_needed is True

    @pytest.mark.asyncio
    async def test_email_help_attaches_guide(self, mock_llm):
        response = await generate_chat_turn(
            make_request("I don't have an email"), mock_llm
        )

        assert response.special_content is not None
        assert response.special_content.type == "email_guide"
        assert response.special_content.expandable is True

    @pytest.mark.asyncio
    async def test_export_guidance_in_system_prompt(self, mock_llm):
        await generate_chat_turn(
            make_request("I want to download it", section="review"), mock_llm
        )

        system_prompt = mock_llm.calls[0]["messages"][0].content
        assert EXPORT_GUIDANCE in system_prompt

    @pytest.mark.asyncio
    async def test_provider_error_propagates_without_retry(self, mock_llm):
        mock_llm.set_error(TransientError("overloaded"))

        with pytest.raises(TransientError):
            await generate_chat_turn(make_request(), mock_llm)

        assert len(mock_llm.calls) == 1

    @pytest.mark.asyncio
    async def test_transient_error_retried_with_config(self):
        class FlakyProvider(MockLLMProvider):
            failures = 1

            async def complete(self, *args, **kwargs):
                if self.failures:
                    self.failures -= 1
                    self.calls.append({"method": "complete", "failed": True})
                    raise TransientError("overloaded")
                return await super().complete(*args, **kwargs)

        provider = FlakyProvider({TaskType.CONVERSATION_TURN: NAME_REPLY})
        config = ProviderConfig(max_retries=2, retry_base_delay_ms=1)

        with patch("resume_chat.providers.retry.asyncio.sleep", new=AsyncMock()):
            response = await generate_chat_turn(make_request(), provider, config)

        assert len(provider.calls) == 2
        assert response.extracted_fields[0].value == "Maria Garcia"
