"""Casing formatters for résumé field values.

Guided-mode answers are written through ``format_field_value``, which picks
a formatter from keywords in the field path. Non-string values pass through.
"""

import re
from collections.abc import Callable
from typing import Any

from resume_chat.services.normalizers import (
    normalize_city_state,
    normalize_phone,
    title_case,
)

COMPANY_DICTIONARY: dict[str, str] = {
    "walmart": "Walmart",
    "target": "Target",
    "mcdonalds": "McDonald's",
    "dennys": "Denny's",
    "arbys": "Arby's",
    "wendys": "Wendy's",
    "costco": "Costco",
    "amazon": "Amazon",
    "starbucks": "Starbucks",
    "cvs": "CVS",
    "walgreens": "Walgreens",
    "kroger": "Kroger",
    "home depot": "Home Depot",
    "lowes": "Lowe's",
    "best buy": "Best Buy",
    "dollar tree": "Dollar Tree",
    "dollar general": "Dollar General",
}

TECH_DICTIONARY: dict[str, str] = {
    "javascript": "JavaScript",
    "typescript": "TypeScript",
    "nodejs": "Node.js",
    "node.js": "Node.js",
    "reactjs": "React.js",
    "react.js": "React.js",
    "react": "React",
    "vuejs": "Vue.js",
    "vue.js": "Vue.js",
    "vue": "Vue",
    "angular": "Angular",
    "angularjs": "AngularJS",
    "mongodb": "MongoDB",
    "mysql": "MySQL",
    "postgresql": "PostgreSQL",
    "postgres": "PostgreSQL",
    "github": "GitHub",
    "gitlab": "GitLab",
    "bitbucket": "Bitbucket",
    "jquery": "jQuery",
    "wordpress": "WordPress",
    "photoshop": "Photoshop",
    "illustrator": "Illustrator",
    "indesign": "InDesign",
    "ms office": "Microsoft Office",
    "microsoft office": "Microsoft Office",
    "ms word": "Microsoft Word",
    "ms excel": "Microsoft Excel",
    "ms powerpoint": "Microsoft PowerPoint",
    "excel": "Excel",
    "word": "Word",
    "powerpoint": "PowerPoint",
    "outlook": "Outlook",
    "quickbooks": "QuickBooks",
    "salesforce": "Salesforce",
    "html": "HTML",
    "css": "CSS",
    "html5": "HTML5",
    "css3": "CSS3",
    "json": "JSON",
    "xml": "XML",
    "api": "API",
    "rest api": "REST API",
    "graphql": "GraphQL",
    "sql": "SQL",
    "nosql": "NoSQL",
    "aws": "AWS",
    "azure": "Azure",
    "google cloud": "Google Cloud",
    "docker": "Docker",
    "kubernetes": "Kubernetes",
    "python": "Python",
    "java": "Java",
    "c++": "C++",
    "c#": "C#",
    "php": "PHP",
    "ruby": "Ruby",
    "swift": "Swift",
    "kotlin": "Kotlin",
    "go": "Go",
    "rust": "Rust",
}

JOB_ABBREVIATIONS: frozenset[str] = frozenset(
    {
        "CEO", "CTO", "CFO", "COO", "VP", "SVP", "EVP",
        "IT", "HR", "PR", "QA", "UI", "UX", "RN", "LPN",
        "EMT", "CPA", "CNA", "MD", "DDS", "DVM", "PA",
    }
)  # fmt: skip

_MC_PREFIX = re.compile(r"\bMc([a-z])")
_MAC_PREFIX = re.compile(r"\bMac([a-z])")
_O_PREFIX = re.compile(r"\bO'([a-z])")


def format_name(name: str) -> str:
    """Title-case a person's name, keeping Mc/Mac/O' capitals (McDonald, O'Brien)."""
    if not name or not isinstance(name, str):
        return name
    trimmed = name.strip()
    if not trimmed:
        return trimmed

    formatted = title_case(trimmed)
    formatted = _MC_PREFIX.sub(lambda m: f"Mc{m.group(1).upper()}", formatted)
    formatted = _MAC_PREFIX.sub(lambda m: f"Mac{m.group(1).upper()}", formatted)
    return _O_PREFIX.sub(lambda m: f"O'{m.group(1).upper()}", formatted)


def format_job_title(title: str) -> str:
    """Title-case a job title, keeping known and short all-caps abbreviations."""
    if not title or not isinstance(title, str):
        return title
    trimmed = title.strip()
    if not trimmed:
        return trimmed

    words = []
    for word in trimmed.split(" "):
        upper = word.upper()
        if upper in JOB_ABBREVIATIONS or (2 <= len(word) <= 4 and word == upper):
            words.append(upper)
        else:
            words.append(word[:1].upper() + word[1:].lower())
    return " ".join(words)


def format_company_name(company: str) -> str:
    """Known brands get their canonical spelling; everything else is title-cased."""
    if not company or not isinstance(company, str):
        return company
    trimmed = company.strip()
    if not trimmed:
        return trimmed
    return COMPANY_DICTIONARY.get(trimmed.lower(), title_case(trimmed))


def format_email(email: str) -> str:
    if not email or not isinstance(email, str):
        return email
    return email.strip().lower()


def format_skill(skill: str) -> str:
    """Canonical casing for known technologies, title case otherwise.

    Handles ``.js`` suffixes ("vue.js") and " native" suffixes
    ("react native" -> "React Native").
    """
    if not skill or not isinstance(skill, str):
        return skill
    trimmed = skill.strip()
    if not trimmed:
        return trimmed

    lowered = trimmed.lower()
    if lowered in TECH_DICTIONARY:
        return TECH_DICTIONARY[lowered]

    if lowered.endswith(".js"):
        base = lowered[:-3]
        if base in TECH_DICTIONARY:
            return TECH_DICTIONARY[base] + ".js"

    if " native" in lowered:
        base = lowered.split(" native")[0].strip()
        if base in TECH_DICTIONARY:
            return TECH_DICTIONARY[base] + " Native"

    return title_case(trimmed)


def format_school(school: str) -> str:
    if not school or not isinstance(school, str):
        return school
    trimmed = school.strip()
    return title_case(trimmed) if trimmed else trimmed


def get_formatter_for_field(field_path: str) -> Callable[[str], str] | None:
    """Pick the formatter for a field from keywords in its path.

    Checked in order: name, email, phone, title/role, company, organization,
    school/degree/field of study, city/location, skills/certifications.
    Returns None when no keyword matches.
    """
    path = field_path.lower()

    if "fullname" in path or (
        "name" in path
        and "company" not in path
        and "organization" not in path
        and "school" not in path
    ):
        return format_name
    if "email" in path:
        return format_email
    if "phone" in path:
        return normalize_phone
    if "jobtitle" in path or "role" in path or "title" in path:
        return format_job_title
    if "company" in path:
        return format_company_name
    if "organization" in path:
        return format_company_name
    if "school" in path or "degree" in path or "fieldofstudy" in path:
        return format_school
    if "city" in path or "location" in path:
        return normalize_city_state
    if "skills" in path or "certifications" in path:
        return format_skill
    return None


def format_field_value(field_path: str, value: Any) -> Any:
    """Apply the field's formatter to a string or to each string in a list."""
    if not value:
        return value

    formatter = get_formatter_for_field(field_path)
    if formatter is None:
        return value
    if isinstance(value, str):
        return formatter(value)
    if isinstance(value, list):
        return [formatter(item) if isinstance(item, str) else item for item in value]
    return value
