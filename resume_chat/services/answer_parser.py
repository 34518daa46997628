"""Guided-mode answer parsing.

Some guided answers carry more than was asked: "line cook at dennys" to the
company question, or "2020 to 2023" to the start date question. The parser
splits such answers into the primary value plus sibling fields, and names
the sibling fields so their questions can be skipped for the current entry.
"""

import re
from dataclasses import dataclass, field

from resume_chat.services.normalizers import title_case

_MAX_REGEX_INPUT_LENGTH = 2000

COMMON_JOB_TITLES: tuple[str, ...] = (
    "line cook", "cook", "chef", "sous chef", "prep cook",
    "server", "waiter", "waitress", "host", "hostess", "busser", "bartender",
    "cashier", "sales associate", "sales rep", "sales representative",
    "customer service", "customer service rep", "receptionist",
    "manager", "assistant manager", "shift manager", "store manager",
    "general manager",
    "supervisor", "team lead", "team leader",
    "driver", "delivery driver", "truck driver",
    "warehouse worker", "warehouse associate", "stocker", "forklift operator",
    "cleaner", "janitor", "housekeeper", "custodian",
    "security guard", "security officer",
    "barista", "crew member", "team member",
    "administrative assistant", "office assistant", "secretary", "clerk",
    "nurse", "nursing assistant", "cna", "medical assistant",
    "teacher", "tutor", "instructor", "teacher assistant",
    "intern", "internship",
    "developer", "software developer", "engineer", "software engineer",
    "designer", "graphic designer",
    "accountant", "bookkeeper",
    "technician", "mechanic", "electrician", "plumber",
)  # fmt: skip

COMMON_COMPANIES: tuple[str, ...] = (
    "denny's", "dennys", "mcdonalds", "mcdonald's", "burger king", "wendys",
    "wendy's", "starbucks", "dunkin", "dunkin' donuts", "subway", "chipotle",
    "taco bell", "olive garden", "applebees", "applebee's", "chilis", "chili's",
    "ihop", "outback",
    "walmart", "target", "costco", "walgreens", "cvs", "kroger", "safeway",
    "home depot", "lowes", "lowe's", "best buy", "staples", "office depot",
    "amazon", "ups", "fedex", "usps",
    "bank of america", "chase", "wells fargo", "citibank",
)  # fmt: skip

_AT_PATTERN = re.compile(r"^(.+?)\s+at\s+(.+)$", re.IGNORECASE)
_DATE_RANGE_PATTERN = re.compile(
    r"(\w+\s*\d{4}|\d{4})\s*(?:to|-|–)\s*(\w+\s*\d{4}|\d{4}|present|current)",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class ParsedAnswer:
    """Result of parsing one guided answer.

    Attributes:
        primary_value: The value for the field that was asked.
        extracted_fields: Sibling field name -> value, written next to the
            primary field (same entry).
        fields_to_skip: Sibling field names whose questions should be skipped.
    """

    primary_value: str
    extracted_fields: dict[str, str] = field(default_factory=dict)
    fields_to_skip: tuple[str, ...] = ()


def looks_like_job_title(text: str) -> bool:
    lowered = text.lower().strip()
    return any(t == lowered or t in lowered or lowered in t for t in COMMON_JOB_TITLES)


def looks_like_company(text: str) -> bool:
    lowered = text.lower().strip()
    return any(c == lowered or c in lowered or lowered in c for c in COMMON_COMPANIES)


def _job_company_result(
    job: str, company: str, asking_company: bool
) -> ParsedAnswer:
    if asking_company:
        return ParsedAnswer(
            primary_value=title_case(company.strip()),
            extracted_fields={"jobTitle": title_case(job.strip())},
            fields_to_skip=("jobTitle",),
        )
    return ParsedAnswer(
        primary_value=title_case(job.strip()),
        extracted_fields={"companyName": title_case(company.strip())},
        fields_to_skip=("companyName",),
    )


def parse_job_and_company(answer: str, field_path: str) -> ParsedAnswer | None:
    """Split a combined job title and company answer.

    Tries "<title> at <company>" first, then every split point of the words
    (longest first part first) looking for a known title next to a known
    company in either order.
    """
    trimmed = answer.strip()
    asking_company = "companyName" in field_path

    at_match = _AT_PATTERN.match(trimmed)
    if at_match:
        job, company = at_match.group(1), at_match.group(2)
        if looks_like_job_title(job) or looks_like_company(company):
            return _job_company_result(job, company, asking_company)
        return None

    words = trimmed.split()
    if len(words) < 2:
        return None

    for i in range(len(words) - 1, 0, -1):
        first = " ".join(words[:i])
        second = " ".join(words[i:])
        if looks_like_job_title(first) and looks_like_company(second):
            return _job_company_result(first, second, asking_company)
        if looks_like_company(first) and looks_like_job_title(second):
            return _job_company_result(second, first, asking_company)

    return None


def parse_date_range(answer: str) -> tuple[str, str] | None:
    """Find "<start> to <end>" in an answer; "present"/"current" end as "Present"."""
    match = _DATE_RANGE_PATTERN.search(answer)
    if not match:
        return None
    start, end = match.group(1).strip(), match.group(2).strip()
    if end.lower() in ("present", "current"):
        end = "Present"
    return start, end


def parse_answer(answer: str, field_path: str, question_id: str) -> ParsedAnswer:
    """Parse a guided answer in the context of the question it answers.

    Args:
        answer: Raw user answer.
        field_path: Path of the field being asked.
        question_id: Id of the question being asked.

    Returns:
        ParsedAnswer; with no extra fields when nothing beyond the primary
        value was recognized.
    """
    text = answer[:_MAX_REGEX_INPUT_LENGTH]

    if question_id.startswith(("work_company", "work_title")):
        combined = parse_job_and_company(text, field_path)
        if combined is not None:
            return combined

    if "startDate" in field_path or "Start" in field_path:
        date_range = parse_date_range(text)
        if date_range is not None:
            start, end = date_range
            return ParsedAnswer(
                primary_value=start,
                extracted_fields={"endDate": end},
                fields_to_skip=("endDate",),
            )

    return ParsedAnswer(primary_value=text.strip())


def sibling_path(field_path: str, sibling: str) -> str:
    """Path of a sibling field in the same entry ("workExperience[1].x" -> "workExperience[1].<sibling>")."""
    base, _, _ = field_path.rpartition(".")
    return f"{base}.{sibling}" if base else sibling
