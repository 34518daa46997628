"""Tests for the guided-mode question graph."""

import pytest

from resume_chat.agents.questions import (
    ADD_MORE_SECTION_MAP,
    CATEGORY_ORDER,
    QUESTIONS,
    TRANSIENT_FIELDS,
    education_end_not_needed,
    get_category_label,
    get_category_progress,
    get_first_question_index,
    get_question_index,
    no_reference_details,
    questions_for_category,
    section_for_question,
    work_end_not_needed,
)

# =============================================================================
# Graph Shape
# =============================================================================


class TestQuestionGraph:
    """Structural guarantees of QUESTIONS."""

    def test_ids_are_unique(self):
        ids = [q.id for q in QUESTIONS]
        assert len(ids) == len(set(ids))

    def test_categories_follow_category_order(self):
        positions = [CATEGORY_ORDER.index(q.category) for q in QUESTIONS]
        assert positions == sorted(positions)

    def test_every_category_has_a_question(self):
        assert {q.category for q in QUESTIONS} == set(CATEGORY_ORDER)

    def test_add_more_targets_exist(self):
        for question_id, target in ADD_MORE_SECTION_MAP.items():
            assert get_question_index(question_id) >= 0
            assert get_question_index(target.first_question_id) >= 0

    def test_transient_fields(self):
        assert TRANSIENT_FIELDS == {
            "ready",
            "confirmGenerate",
            "complete",
            "addMoreWork",
            "addMoreEducation",
            "addMoreVolunteering",
            "addMoreReferences",
        }


# =============================================================================
# Skip Predicates
# =============================================================================


class TestSkipPredicates:
    """Skip predicates never raise, and missing data means ask."""

    @pytest.mark.parametrize("question", QUESTIONS, ids=lambda q: q.id)
    @pytest.mark.parametrize(
        "record",
        [
            {},
            {"workExperience": None, "education": "oops"},
            {"workExperience": [None, 3], "references": [{}]},
        ],
    )
    def test_missing_data_never_skips(self, question, record):
        assert question.should_skip(record, 1) is False

    def test_work_details_skipped_without_experience(self):
        record = {"hasWorkExperience": False}
        skipped = {q.id for q in questions_for_category("work") if q.should_skip(record)}

        assert {"work_company_1", "work_title_1", "work_responsibilities_1"} <= skipped
        assert "work_has_experience" not in skipped

    def test_end_date_uses_entry_index(self):
        record = {
            "workExperience": [{"isCurrentJob": False}, {"isCurrentJob": True}],
            "education": [{"isCurrentlyStudying": True}],
        }

        assert work_end_not_needed(record, 0) is False
        assert work_end_not_needed(record, 1) is True
        assert education_end_not_needed(record, 0) is True
        assert education_end_not_needed(record, 1) is False

    def test_reference_details_skipped_upon_request(self):
        assert no_reference_details({"referencesUponRequest": True}, 0) is True
        assert no_reference_details({"hasReferences": False}, 0) is True
        assert no_reference_details({"hasReferences": True}, 0) is False

    def test_skill_list_skipped_only_when_declined(self):
        question = QUESTIONS[get_question_index("skills_technical")]

        assert question.should_skip({"hasTechnicalSkills": False}) is True
        assert question.should_skip({"hasTechnicalSkills": True}) is False


# =============================================================================
# Lookups
# =============================================================================


class TestLookups:
    """Category and question lookups."""

    def test_category_label(self):
        assert get_category_label("intro") == "Getting Started"

    def test_category_progress(self):
        assert get_category_progress("language") == (1, 10)
        assert get_category_progress("complete") == (10, 10)

    def test_first_question_index(self):
        assert QUESTIONS[get_first_question_index("work")].id == "work_has_experience"

    def test_unknown_question_id(self):
        assert get_question_index("nope") == -1

    @pytest.mark.parametrize(
        "func", [get_category_label, get_category_progress, get_first_question_index]
    )
    def test_unknown_category_raises(self, func):
        with pytest.raises(ValueError, match="Unknown category"):
            func("hobbies")

    def test_section_for_question(self):
        work_q = QUESTIONS[get_question_index("work_title_1")]
        skills_q = QUESTIONS[get_question_index("skills_technical")]

        assert section_for_question(work_q) == "work"
        assert section_for_question(skills_q) is None
