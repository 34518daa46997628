"""Progress and completeness helpers shared by both modes."""

from typing import Any

from resume_chat.agents.questions import LANGUAGE_PROMPT
from resume_chat.services.response_analysis import SECTION_ORDER

_PROGRESS_SECTIONS = len(SECTION_ORDER)

SECTION_EXAMPLES: dict[str, str] = {
    "personal": (
        "For example:\n"
        '- Full name: "John Smith"\n'
        '- Email: "john.smith@gmail.com"\n'
        '- Phone: "(555) 123-4567"\n'
        '- City: "San Francisco, CA"'
    ),
    "work": (
        "For example:\n"
        '- "I worked at McDonald\'s as a cashier from 2020 to 2022"\n'
        '- "I was a delivery driver for Amazon for 6 months"\n'
        '- "I helped at my family\'s restaurant as a server"'
    ),
    "education": (
        "For example:\n"
        '- "I graduated from Lincoln High School in 2019"\n'
        '- "I have an Associate\'s degree from City College"\n'
        '- "I completed a certificate in Medical Billing"'
    ),
    "skills": (
        "For example:\n"
        '- Computer skills: "Microsoft Word, Excel, email"\n'
        '- Languages: "Fluent in Spanish and English"\n'
        '- Certifications: "Food Handler\'s License, CPR Certified"\n'
        '- Soft skills: "Customer service, teamwork, time management"'
    ),
}

# Fields counted by calculate_completion_percentage.
_COMPLETION_CHECKS: tuple[tuple[str, str], ...] = (
    ("personalInfo", "fullName"),
    ("personalInfo", "email"),
    ("personalInfo", "phone"),
    ("personalInfo", "city"),
    ("workExperience", ""),
    ("education", ""),
    ("skills", "technicalSkills"),
)


def get_welcome_message() -> str:
    """First assistant message of a new conversation (the language prompt)."""
    return LANGUAGE_PROMPT


def get_section_examples(section: str) -> str | None:
    return SECTION_EXAMPLES.get(section)


def has_minimum_required_fields(record: dict[str, Any]) -> bool:
    """A résumé needs a name and at least one way to reach the person."""
    personal = record.get("personalInfo") or {}
    return bool(personal.get("fullName")) and bool(
        personal.get("email") or personal.get("phone")
    )


def _is_filled(record: dict[str, Any], section: str, key: str) -> bool:
    value = record.get(section)
    if key:
        value = value.get(key) if isinstance(value, dict) else None
    if isinstance(value, list):
        return len(value) > 0
    return bool(value)


def calculate_completion_percentage(record: dict[str, Any]) -> int:
    """Share of the core résumé fields that are filled, 0-100.

    Counts name, email, phone, city, at least one job, at least one
    education entry and at least one technical skill.
    """
    filled = sum(
        1 for section, key in _COMPLETION_CHECKS if _is_filled(record, section, key)
    )
    return round(filled / len(_COMPLETION_CHECKS) * 100)


def get_assisted_progress(category: str) -> int:
    """Percentage shown for an assisted conversation in ``category``.

    Raises:
        ValueError: If the category is unknown.
    """
    if category not in SECTION_ORDER:
        msg = f"Unknown category: {category!r}"
        raise ValueError(msg)
    return round((SECTION_ORDER.index(category) + 1) / _PROGRESS_SECTIONS * 100)
