"""Guided-mode question graph.

The guided flow asks a fixed, ordered list of questions. Branching comes
from per-question skip predicates evaluated against the record and the
index of the entry being collected; multi-entry sections (work, education,
volunteering, references) loop through their detail questions once per
entry via the "add more" questions.

Skip predicates never raise on missing data, and a missing value always
means "ask".
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Literal

InputKind = Literal[
    "text", "email", "phone", "textarea", "date", "select", "multiselect", "confirm"
]

SkipCondition = Callable[[dict[str, Any], int], bool]

CATEGORY_ORDER: tuple[str, ...] = (
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

CATEGORY_LABELS: dict[str, str] = {
    "language": "Language",
    "intro": "Getting Started",
    "personal": "Personal Information",
    "work": "Work Experience",
    "education": "Education",
    "volunteering": "Volunteering",
    "skills": "Skills",
    "references": "References",
    "review": "Review",
    "complete": "Complete",
}

# Multi-entry section -> its gate flag. Education has no guided gate question,
# but assisted mode may still set hasEducation to False.
MULTI_ENTRY_GATE_FLAGS: dict[str, str] = {
    "work": "hasWorkExperience",
    "education": "hasEducation",
    "volunteering": "hasVolunteering",
    "references": "hasReferences",
}

SUPPORTED_LANGUAGES: tuple[tuple[str, str, str], ...] = (
    ("en", "English", "English"),
    ("es", "Spanish", "Espanol"),
    ("fr", "French", "Francais"),
    ("de", "German", "Deutsch"),
    ("pt", "Portuguese", "Portugues"),
    ("zh", "Chinese", "中文"),
    ("ja", "Japanese", "日本語"),
    ("ko", "Korean", "한국어"),
    ("ar", "Arabic", "العربية"),
    ("hi", "Hindi", "हिन्दी"),
)

TEMPLATE_STYLES: tuple[str, ...] = ("classic", "modern", "professional")


@dataclass(frozen=True)
class Question:
    """One guided-mode question.

    Attributes:
        id: Stable question identifier.
        category: Section the question belongs to.
        field_path: Record path the answer is written to. Entry paths use
            index 0 and are rewritten to the current entry at answer time.
        input_kind: Expected answer shape.
        is_required: Whether the question may be left blank.
        prompt: Text shown to the user.
        placeholder: Example answer.
        options: Allowed values for select questions.
        skip_condition: Predicate ``(record, entry_index) -> bool``; True
            means skip.
    """

    id: str
    category: str
    field_path: str
    input_kind: InputKind
    is_required: bool
    prompt: str
    placeholder: str | None = None
    options: tuple[str, ...] | None = None
    skip_condition: SkipCondition | None = None

    def should_skip(self, record: dict[str, Any], entry_index: int = 0) -> bool:
        if self.skip_condition is None:
            return False
        return self.skip_condition(record, entry_index)


# =============================================================================
# Skip Predicates
# =============================================================================


def _entry_at(record: dict[str, Any], array_name: str, index: int) -> dict[str, Any]:
    entries = record.get(array_name)
    if not isinstance(entries, list) or not 0 <= index < len(entries):
        return {}
    entry = entries[index]
    return entry if isinstance(entry, dict) else {}


def no_work_experience(record: dict[str, Any], _entry_index: int) -> bool:
    return record.get("hasWorkExperience") is False


def work_end_not_needed(record: dict[str, Any], entry_index: int) -> bool:
    """Skip the end date for a job the user still holds."""
    if record.get("hasWorkExperience") is False:
        return True
    return _entry_at(record, "workExperience", entry_index).get("isCurrentJob") is True


def education_end_not_needed(record: dict[str, Any], entry_index: int) -> bool:
    return (
        _entry_at(record, "education", entry_index).get("isCurrentlyStudying") is True
    )


def no_volunteering(record: dict[str, Any], _entry_index: int) -> bool:
    return record.get("hasVolunteering") is False


def _flag_is_false(flag: str) -> SkipCondition:
    def predicate(record: dict[str, Any], _entry_index: int) -> bool:
        return record.get(flag) is False

    predicate.__name__ = f"no_{flag}"
    return predicate


def no_references(record: dict[str, Any], _entry_index: int) -> bool:
    return record.get("hasReferences") is False


def no_reference_details(record: dict[str, Any], _entry_index: int) -> bool:
    """Skip reference details when declined or given "upon request"."""
    return (
        record.get("hasReferences") is False
        or record.get("referencesUponRequest") is True
    )


# =============================================================================
# Question Graph
# =============================================================================

_RESPONSIBILITIES_PROMPT = (
    "Describe **2-3 key responsibilities** at this job. Try to include:\n\n"
    "• What you did (your main tasks)\n"
    "• How you did it (tools, methods, or skills used)\n"
    "• Results achieved (numbers, improvements, or outcomes if possible)\n\n"
    "Don't worry about making it sound perfect - I'll help polish it!"
)

_VOLUNTEER_DUTIES_PROMPT = (
    "Describe **2-3 things you did** as a volunteer. Include:\n\n"
    "• Your main tasks and activities\n"
    "• Any impact or results (people helped, events organized, etc.)\n"
    "• Skills you used or developed"
)

_TECHNICAL_SKILLS_PROMPT = (
    "List your **top 3-5 technical skills**. These are specific, job-related "
    "abilities like:\n\n"
    "• Software (Excel, QuickBooks, Photoshop)\n"
    "• Equipment (forklift, POS systems, medical devices)\n"
    "• Technical abilities (data entry, bookkeeping, programming)\n\n"
    "Separate each skill with a comma."
)

_SOFT_SKILLS_PROMPT = (
    "List **3-5 soft skills** (personal strengths that make you good at your "
    "job):\n\n"
    "• Communication: leadership, teamwork, customer service\n"
    "• Work ethic: reliable, punctual, detail-oriented\n"
    "• Problem-solving: analytical thinking, adaptability, creativity\n\n"
    "Separate each with a comma."
)

_TEMPLATE_PROMPT = (
    "Great job! Now let's choose how your resume will look. Which style would "
    "you prefer?\n\n"
    "1. **Classic** - Traditional and professional, works great for any industry\n"
    "2. **Modern** - Clean and contemporary with a fresh look\n"
    "3. **Professional** - Compact and efficient, fits more information\n\n"
    "Just type 1, 2, or 3:"
)

LANGUAGE_PROMPT = (
    "**What language would you like to use?**\n\n"
    "English | Espanol | Francais | Deutsch | Portugues\n"
    "中文 | 日本語 | 한국어 | العربية | हिन्दी\n\n"
    "Just type your preferred language!"
)

QUESTIONS: tuple[Question, ...] = (
    # Language
    Question(
        id="language_select",
        category="language",
        field_path="language",
        input_kind="select",
        is_required=True,
        prompt=LANGUAGE_PROMPT,
        options=tuple(f"{native} ({label})" for _, label, native in SUPPORTED_LANGUAGES),
    ),
    # Intro
    Question(
        id="intro_welcome",
        category="intro",
        field_path="ready",
        input_kind="confirm",
        is_required=True,
        prompt=(
            "Hello! I'm here to help you create a professional resume. I'll ask "
            "you some questions one at a time, and I'll help make your experience "
            "sound great to employers. Let's start with some basic information "
            "about you. Ready to begin?"
        ),
    ),
    # Personal
    Question(
        id="personal_name",
        category="personal",
        field_path="personalInfo.fullName",
        input_kind="text",
        is_required=True,
        prompt="What is your full name? (This will appear at the top of your resume)",
        placeholder="e.g., John Smith",
    ),
    Question(
        id="personal_email",
        category="personal",
        field_path="personalInfo.email",
        input_kind="email",
        is_required=True,
        prompt="What is your email address? (Employers will use this to contact you)",
        placeholder="e.g., john.smith@email.com",
    ),
    Question(
        id="personal_phone",
        category="personal",
        field_path="personalInfo.phone",
        input_kind="phone",
        is_required=True,
        prompt="What is your phone number?",
        placeholder="e.g., (555) 123-4567",
    ),
    Question(
        id="personal_city",
        category="personal",
        field_path="personalInfo.city",
        input_kind="text",
        is_required=False,
        prompt="What city do you live in? (You can skip your full address for privacy)",
        placeholder="e.g., New York, NY",
    ),
    Question(
        id="personal_zipcode",
        category="personal",
        field_path="personalInfo.zipCode",
        input_kind="text",
        is_required=False,
        prompt=(
            "What is your zip code? (Optional - some employers like to know your "
            "general area)"
        ),
        placeholder="e.g., 10001",
    ),
    # Work
    Question(
        id="work_has_experience",
        category="work",
        field_path="hasWorkExperience",
        input_kind="confirm",
        is_required=True,
        prompt=(
            "Do you have any work experience you'd like to include? (This can "
            "include part-time jobs, internships, or freelance work)"
        ),
    ),
    Question(
        id="work_company_1",
        category="work",
        field_path="workExperience[0].companyName",
        input_kind="text",
        is_required=True,
        prompt=(
            "Great! Let's start with your most recent job. What company or "
            "organization did you work for?"
        ),
        placeholder="e.g., ABC Company",
        skip_condition=no_work_experience,
    ),
    Question(
        id="work_title_1",
        category="work",
        field_path="workExperience[0].jobTitle",
        input_kind="text",
        is_required=True,
        prompt="What was your job title at this company?",
        placeholder="e.g., Sales Associate, Customer Service Rep",
        skip_condition=no_work_experience,
    ),
    Question(
        id="work_location_1",
        category="work",
        field_path="workExperience[0].location",
        input_kind="text",
        is_required=True,
        prompt="Where was this job located? (City, State or Country)",
        placeholder="e.g., Chicago, IL",
        skip_condition=no_work_experience,
    ),
    Question(
        id="work_start_1",
        category="work",
        field_path="workExperience[0].startDate",
        input_kind="text",
        is_required=True,
        prompt="When did you start this job? (Month and year)",
        placeholder="e.g., January 2022 or 01/2022",
        skip_condition=no_work_experience,
    ),
    Question(
        id="work_current_1",
        category="work",
        field_path="workExperience[0].isCurrentJob",
        input_kind="confirm",
        is_required=True,
        prompt="Do you still work here?",
        skip_condition=no_work_experience,
    ),
    Question(
        id="work_end_1",
        category="work",
        field_path="workExperience[0].endDate",
        input_kind="text",
        is_required=True,
        prompt="When did you leave this job? (Month and year)",
        placeholder="e.g., December 2023 or 12/2023",
        skip_condition=work_end_not_needed,
    ),
    Question(
        id="work_responsibilities_1",
        category="work",
        field_path="workExperience[0].responsibilities",
        input_kind="textarea",
        is_required=True,
        prompt=_RESPONSIBILITIES_PROMPT,
        placeholder=(
            "Example: Served 50+ customers daily, processed cash and card "
            "payments accurately, trained 3 new team members on register operations"
        ),
        skip_condition=no_work_experience,
    ),
    Question(
        id="work_add_more",
        category="work",
        field_path="addMoreWork",
        input_kind="confirm",
        is_required=True,
        prompt=(
            "Would you like to add another job? (It's recommended to add at least "
            "2-3 jobs if you have them)"
        ),
        skip_condition=no_work_experience,
    ),
    # Education
    Question(
        id="education_school",
        category="education",
        field_path="education[0].schoolName",
        input_kind="text",
        is_required=True,
        prompt=(
            "Now let's talk about your education. What school did you attend most "
            "recently? (High school counts too!)"
        ),
        placeholder="e.g., Lincoln High School or State University",
    ),
    Question(
        id="education_degree",
        category="education",
        field_path="education[0].degree",
        input_kind="text",
        is_required=True,
        prompt="What degree or diploma did you receive (or are working toward)?",
        placeholder="e.g., High School Diploma, Associate Degree, Bachelor of Science",
    ),
    Question(
        id="education_field",
        category="education",
        field_path="education[0].fieldOfStudy",
        input_kind="text",
        is_required=False,
        prompt=(
            "What was your field of study or major? (You can skip this if it "
            "doesn't apply)"
        ),
        placeholder="e.g., Business, Computer Science, General Studies",
    ),
    Question(
        id="education_current",
        category="education",
        field_path="education[0].isCurrentlyStudying",
        input_kind="confirm",
        is_required=True,
        prompt="Are you currently studying here?",
    ),
    Question(
        id="education_start",
        category="education",
        field_path="education[0].startYear",
        input_kind="text",
        is_required=True,
        prompt="What year did you start?",
        placeholder="e.g., 2020",
    ),
    Question(
        id="education_end",
        category="education",
        field_path="education[0].endYear",
        input_kind="text",
        is_required=True,
        prompt="What year did you graduate (or expect to graduate)?",
        placeholder="e.g., 2024",
        skip_condition=education_end_not_needed,
    ),
    Question(
        id="education_add_more",
        category="education",
        field_path="addMoreEducation",
        input_kind="confirm",
        is_required=True,
        prompt=(
            "Would you like to add another school or degree? (e.g., another "
            "college, certification program, or high school)"
        ),
    ),
    # Volunteering
    Question(
        id="volunteering_has",
        category="volunteering",
        field_path="hasVolunteering",
        input_kind="confirm",
        is_required=True,
        prompt=(
            "Have you done any volunteer work? This can look great on a resume, "
            "especially if you're just starting your career!"
        ),
    ),
    Question(
        id="volunteering_org",
        category="volunteering",
        field_path="volunteering[0].organizationName",
        input_kind="text",
        is_required=True,
        prompt="What organization did you volunteer with?",
        placeholder="e.g., Local Food Bank, Community Center",
        skip_condition=no_volunteering,
    ),
    Question(
        id="volunteering_role",
        category="volunteering",
        field_path="volunteering[0].role",
        input_kind="text",
        is_required=True,
        prompt="What was your role or what did you do there?",
        placeholder="e.g., Food Distribution Volunteer",
        skip_condition=no_volunteering,
    ),
    Question(
        id="volunteering_dates",
        category="volunteering",
        field_path="volunteering[0].startDate",
        input_kind="text",
        is_required=True,
        prompt=(
            "When did you volunteer there? (Start date - end date, or just the year)"
        ),
        placeholder="e.g., 2022 - 2023 or June 2022 - Present",
        skip_condition=no_volunteering,
    ),
    Question(
        id="volunteering_responsibilities",
        category="volunteering",
        field_path="volunteering[0].responsibilities",
        input_kind="textarea",
        is_required=True,
        prompt=_VOLUNTEER_DUTIES_PROMPT,
        skip_condition=no_volunteering,
    ),
    Question(
        id="volunteering_add_more",
        category="volunteering",
        field_path="addMoreVolunteering",
        input_kind="confirm",
        is_required=True,
        prompt="Would you like to add another volunteer experience?",
        skip_condition=no_volunteering,
    ),
    # Skills
    Question(
        id="skills_has_technical",
        category="skills",
        field_path="hasTechnicalSkills",
        input_kind="confirm",
        is_required=True,
        prompt=(
            "Do you have any technical or job-related skills? (Computer skills, "
            "equipment you can use, software you know, etc.)"
        ),
    ),
    Question(
        id="skills_technical",
        category="skills",
        field_path="skills.technicalSkills",
        input_kind="textarea",
        is_required=False,
        prompt=_TECHNICAL_SKILLS_PROMPT,
        placeholder="Example: Microsoft Excel, Point of Sale systems, QuickBooks",
        skip_condition=_flag_is_false("hasTechnicalSkills"),
    ),
    Question(
        id="skills_has_certifications",
        category="skills",
        field_path="hasCertifications",
        input_kind="confirm",
        is_required=True,
        prompt=(
            "Do you have any certifications or licenses? (Things like CPR, "
            "forklift license, food handler's card, etc.)"
        ),
    ),
    Question(
        id="skills_certifications",
        category="skills",
        field_path="skills.certifications",
        input_kind="text",
        is_required=False,
        prompt="What certifications or licenses do you have?",
        placeholder="e.g., CPR Certified, Food Handler Card, Driver License",
        skip_condition=_flag_is_false("hasCertifications"),
    ),
    Question(
        id="skills_has_languages",
        category="skills",
        field_path="hasLanguages",
        input_kind="confirm",
        is_required=True,
        prompt="Do you speak any languages other than English?",
    ),
    Question(
        id="skills_languages",
        category="skills",
        field_path="skills.languages",
        input_kind="textarea",
        is_required=False,
        prompt="What languages do you speak?",
        placeholder="e.g., Spanish (fluent), French (conversational)",
        skip_condition=_flag_is_false("hasLanguages"),
    ),
    Question(
        id="skills_has_soft",
        category="skills",
        field_path="hasSoftSkills",
        input_kind="confirm",
        is_required=True,
        prompt="Would you like to highlight any personal strengths?",
    ),
    Question(
        id="skills_soft",
        category="skills",
        field_path="skills.softSkills",
        input_kind="textarea",
        is_required=False,
        prompt=_SOFT_SKILLS_PROMPT,
        placeholder="Example: Strong communication, Team leadership, Problem-solving",
        skip_condition=_flag_is_false("hasSoftSkills"),
    ),
    # References
    Question(
        id="references_has",
        category="references",
        field_path="hasReferences",
        input_kind="confirm",
        is_required=True,
        prompt=(
            "Would you like to add references? (People who can recommend you, "
            "like former bosses or teachers)"
        ),
    ),
    Question(
        id="references_note",
        category="references",
        field_path="referencesUponRequest",
        input_kind="confirm",
        is_required=True,
        prompt=(
            "Note: Many people prefer to write 'References available upon request' "
            "instead of listing contacts. Would you like to do that instead?"
        ),
        skip_condition=no_references,
    ),
    Question(
        id="reference_name",
        category="references",
        field_path="references[0].name",
        input_kind="text",
        is_required=True,
        prompt="What is your reference's name?",
        placeholder="e.g., Jane Doe",
        skip_condition=no_reference_details,
    ),
    Question(
        id="reference_title",
        category="references",
        field_path="references[0].jobTitle",
        input_kind="text",
        is_required=True,
        prompt="What is their job title?",
        placeholder="e.g., Store Manager",
        skip_condition=no_reference_details,
    ),
    Question(
        id="reference_company",
        category="references",
        field_path="references[0].company",
        input_kind="text",
        is_required=True,
        prompt="What company do they work at?",
        placeholder="e.g., ABC Company",
        skip_condition=no_reference_details,
    ),
    Question(
        id="reference_contact",
        category="references",
        field_path="references[0].phone",
        input_kind="text",
        is_required=True,
        prompt="What is their phone number or email?",
        placeholder="e.g., (555) 123-4567 or jane@email.com",
        skip_condition=no_reference_details,
    ),
    Question(
        id="reference_relationship",
        category="references",
        field_path="references[0].relationship",
        input_kind="text",
        is_required=True,
        prompt="What is your relationship to this person?",
        placeholder="e.g., Former Supervisor, Manager, Teacher",
        skip_condition=no_reference_details,
    ),
    Question(
        id="references_add_more",
        category="references",
        field_path="addMoreReferences",
        input_kind="confirm",
        is_required=True,
        prompt=(
            "Would you like to add another reference? (Most employers like to see "
            "2-3 references)"
        ),
        skip_condition=no_reference_details,
    ),
    # Review
    Question(
        id="review_template",
        category="review",
        field_path="templateStyle",
        input_kind="select",
        is_required=True,
        prompt=_TEMPLATE_PROMPT,
        options=TEMPLATE_STYLES,
    ),
    Question(
        id="review_confirm",
        category="review",
        field_path="confirmGenerate",
        input_kind="confirm",
        is_required=True,
        prompt=(
            "I'm now going to create your resume! I'll improve the descriptions "
            "you gave me to make them sound more professional and attractive to "
            "employers. Ready to generate your resume?"
        ),
    ),
    # Complete
    Question(
        id="complete",
        category="complete",
        field_path="complete",
        input_kind="confirm",
        is_required=False,
        prompt=(
            "Your resume is ready! You can download it as a PDF or Word document. "
            "Would you like to make any changes?"
        ),
    ),
)


@dataclass(frozen=True)
class AddMoreTarget:
    """Where an "add more" question loops back to."""

    first_question_id: str
    section: str
    label: str


ADD_MORE_SECTION_MAP: dict[str, AddMoreTarget] = {
    "work_add_more": AddMoreTarget("work_company_1", "work", "work experience"),
    "education_add_more": AddMoreTarget("education_school", "education", "education"),
    "volunteering_add_more": AddMoreTarget(
        "volunteering_org", "volunteering", "volunteer experience"
    ),
    "references_add_more": AddMoreTarget("reference_name", "references", "reference"),
}

# Record fields that only drive the flow and are never stored.
TRANSIENT_FIELDS: frozenset[str] = frozenset(
    {"ready", "confirmGenerate", "complete"}
    | {q.field_path for q in QUESTIONS if q.id in ADD_MORE_SECTION_MAP}
)

_QUESTION_INDEX: dict[str, int] = {q.id: i for i, q in enumerate(QUESTIONS)}


# =============================================================================
# Lookup Helpers
# =============================================================================


def _check_category(category: str) -> None:
    if category not in CATEGORY_LABELS:
        msg = f"Unknown category: {category!r}"
        raise ValueError(msg)


def get_category_label(category: str) -> str:
    _check_category(category)
    return CATEGORY_LABELS[category]


def get_category_progress(category: str) -> tuple[int, int]:
    """Return (1-based position of the category, number of categories)."""
    _check_category(category)
    return CATEGORY_ORDER.index(category) + 1, len(CATEGORY_ORDER)


def get_question_index(question_id: str) -> int:
    """Index of a question by id, or -1 when unknown."""
    return _QUESTION_INDEX.get(question_id, -1)


def get_first_question_index(category: str) -> int:
    _check_category(category)
    return next(i for i, q in enumerate(QUESTIONS) if q.category == category)


def questions_for_category(category: str) -> tuple[Question, ...]:
    _check_category(category)
    return tuple(q for q in QUESTIONS if q.category == category)


def section_for_question(question: Question) -> str | None:
    """Multi-entry section a question belongs to, or None."""
    return question.category if question.category in MULTI_ENTRY_GATE_FLAGS else None
