"""Tests for guided-mode answer parsing."""

import pytest

from resume_chat.services.answer_parser import (
    ParsedAnswer,
    looks_like_company,
    looks_like_job_title,
    parse_answer,
    parse_date_range,
    parse_job_and_company,
    sibling_path,
)

_COMPANY_PATH = "workExperience[0].companyName"
_TITLE_PATH = "workExperience[0].jobTitle"


class TestLooksLike:
    """Known job titles and companies."""

    def test_job_titles(self):
        assert looks_like_job_title("Line Cook") is True
        assert looks_like_job_title("assistant store manager") is True

    def test_companies(self):
        assert looks_like_company("Dennys") is True
        assert looks_like_company("bank of america") is True


class TestParseJobAndCompany:
    """Tests for parse_job_and_company."""

    def test_title_at_company_when_asking_company(self):
        result = parse_job_and_company("line cook at dennys", _COMPANY_PATH)

        assert result == ParsedAnswer(
            primary_value="Dennys",
            extracted_fields={"jobTitle": "Line Cook"},
            fields_to_skip=("jobTitle",),
        )

    def test_title_at_company_when_asking_title(self):
        result = parse_job_and_company("cashier at walmart", _TITLE_PATH)

        assert result is not None
        assert result.primary_value == "Cashier"
        assert result.extracted_fields == {"companyName": "Walmart"}
        assert result.fields_to_skip == ("companyName",)

    def test_company_then_title_without_at(self):
        result = parse_job_and_company("walmart cashier", _COMPANY_PATH)

        assert result is not None
        assert result.primary_value == "Walmart"
        assert result.extracted_fields == {"jobTitle": "Cashier"}

    def test_single_word_is_not_split(self):
        assert parse_job_and_company("Walmart", _COMPANY_PATH) is None


class TestParseDateRange:
    """Tests for parse_date_range."""

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("January 2020 to March 2023", ("January 2020", "March 2023")),
            ("2019 - present", ("2019", "Present")),
            ("2018-2021", ("2018", "2021")),
            ("2021 to current", ("2021", "Present")),
        ],
    )
    def test_ranges(self, text, expected):
        assert parse_date_range(text) == expected

    def test_no_range(self):
        assert parse_date_range("since last spring") is None


class TestParseAnswer:
    """Tests for parse_answer."""

    def test_combined_answer_to_company_question(self):
        result = parse_answer("line cook at dennys", _COMPANY_PATH, "work_company_1")

        assert result.primary_value == "Dennys"
        assert result.fields_to_skip == ("jobTitle",)

    def test_plain_company_answer(self):
        result = parse_answer("  Acme Widgets ", _COMPANY_PATH, "work_company_1")

        assert result == ParsedAnswer(primary_value="Acme Widgets")

    def test_date_range_fills_end_date(self):
        result = parse_answer(
            "January 2020 to March 2023", "workExperience[0].startDate", "work_start_1"
        )

        assert result.primary_value == "January 2020"
        assert result.extracted_fields == {"endDate": "March 2023"}
        assert result.fields_to_skip == ("endDate",)

    def test_other_questions_are_not_split(self):
        result = parse_answer("cashier at walmart", "personalInfo.fullName", "personal_name")

        assert result.primary_value == "cashier at walmart"
        assert result.extracted_fields == {}


class TestSiblingPath:
    """Tests for sibling_path."""

    def test_same_entry(self):
        assert sibling_path("workExperience[1].companyName", "jobTitle") == (
            "workExperience[1].jobTitle"
        )

    def test_top_level(self):
        assert sibling_path("language", "templateStyle") == "templateStyle"
