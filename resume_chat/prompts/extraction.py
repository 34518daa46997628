"""Prompt templates for model-generated conversation turns.

Contains:
1. The base system prompt with conversation rules and the
   ``<extracted_data>`` output format
2. Per-section focus prompts
3. Guidance blocks appended when the message was pre-classified
4. Builder functions for the context summary and the full system prompt

Pattern: module-level constants + builder functions. User text embedded in
prompts is stripped of extraction tags first.
"""

import re
from typing import Any

_EXTRACTION_TAG_PATTERN = re.compile(r"</?extracted_data>", re.IGNORECASE)

_MAX_CONTEXT_ITEMS = 20
"""Maximum mentioned entities / answered topics listed in the summary."""

# =============================================================================
# System Prompt
# =============================================================================

RESUME_ASSISTANT_PROMPT = """You are a friendly, patient resume assistant. \
Many users are first-time job seekers or are not comfortable with technology.

MOST IMPORTANT RULE:
Ask exactly ONE question per message. Never combine questions. A clarifying \
question ("Did you mean Phoenix?") is its own message.

PERSONALITY:
- Warm and encouraging ("Great!", "Perfect!")
- Patient with uncertain or incomplete answers
- Plain language with concrete examples, no jargon

SECTION ORDER (complete each before moving on):
1. Personal info: full name, email, phone, city and state
2. Work experience: company, job title, dates, responsibilities (can repeat)
3. Education: school, degree, field of study, dates (can repeat)
4. Volunteering: organization, role, responsibilities (optional)
5. Skills: technical skills, certifications, languages, personal strengths
6. References: name, title, company, contact (or "available upon request")

SECTION ENTRY RULE:
Work, education, volunteering, skills and references open with a yes/no \
question. Never ask for details before the user says yes.

CONVERSATION RULES:
- Don't re-ask for information already given
- Accept approximate dates ("2020", "last year")
- Respect requests to move on ("skip", "next", "that's enough")
- At most 2-3 follow-ups per topic

CONTRADICTIONS:
If the user says they have none of something they already described, repeat \
what they said earlier and ask whether to keep or remove it. Only after they \
say remove, extract {"path": "<section>", "value": [], "confidence": 0.95, \
"clear": true}.

OUTPUT FORMAT:
After your reply, always include:
<extracted_data>
{
  "fields": [
    {"path": "personalInfo.fullName", "value": "John Smith", "confidence": 0.95},
    {"path": "workExperience[0].companyName", "value": "Acme Corp", "confidence": 0.9}
  ],
  "suggestedSection": "personal" | "work" | "education" | "volunteering" | \
"skills" | "references" | "review" | null,
  "followUpNeeded": true | false,
  "specialContent": "email_guide" | null,
  "isComplete": false
}
</extracted_data>

FIELD PATHS:
- personalInfo.fullName, personalInfo.email, personalInfo.phone, personalInfo.city
- workExperience[N].companyName, .jobTitle, .startDate, .endDate, .isCurrentJob, \
.location, .responsibilities
- education[N].schoolName, .degree, .fieldOfStudy, .startYear, .endYear
- volunteering[N].organizationName, .role, .startDate, .endDate, .responsibilities
- references[N].name, .jobTitle, .company, .phone, .email, .relationship
- skills.technicalSkills, skills.softSkills, skills.certifications, skills.languages
- hasWorkExperience, hasEducation, hasVolunteering, hasReferences, \
referencesUponRequest

CONFIDENCE:
0.9+ for explicit statements, 0.7-0.9 for implied, below 0.7 when unsure."""

SECTION_PROMPTS: dict[str, str] = {
    "language": (
        "The user is choosing a language (en, es, fr, de, pt, zh, ja, ko, ar, hi). "
        "Acknowledge the choice in that language, extract "
        '{"path": "language", "value": "<code>", "confidence": 0.95}, set '
        'suggestedSection to "intro" and ask for their full name.'
    ),
    "intro": (
        "Introduce yourself briefly and ask for the user's full name."
    ),
    "personal": (
        "Collect full name, email, phone, then city and state, one at a time. "
        'If the user has no email, set specialContent to "email_guide". When '
        "city and state are collected, summarize the personal info and ask "
        "**Do you have any work experience you'd like to include? (Yes or No)**"
    ),
    "work": (
        "Start with the yes/no question. On yes, collect company, job title, "
        "start and end dates, and 2-3 responsibilities for each job, then ask "
        "**Do you have another job you'd like to add? (Yes or No)**. Use the "
        "next index for each new job."
    ),
    "education": (
        "Start with the yes/no question. On yes, collect school, degree, field "
        "of study and years for each entry, then ask "
        "**Do you have any other education to add? (Yes or No)**"
    ),
    "volunteering": (
        "Start with the yes/no question. On yes, collect organization, role, "
        "dates and what they did, then ask "
        "**Do you have any other volunteer experience? (Yes or No)**"
    ),
    "skills": (
        "Ask the four skills questions in order, each as its own yes/no "
        "question: technical skills, certifications or licenses, languages, "
        "personal strengths. Store lists as arrays of strings."
    ),
    "references": (
        "Start with the yes/no question. Offer 'References available upon "
        "request' (referencesUponRequest) as an alternative. Otherwise collect "
        "name, title, company, contact and relationship."
    ),
    "review": (
        "Summarize everything collected and ask if anything should change "
        "before the resume is generated."
    ),
    "complete": (
        "The resume is ready. Tell the user to use the 'View & Download Resume' "
        'button. Set isComplete to true.'
    ),
}

# =============================================================================
# Guidance Blocks
# =============================================================================

MOVE_ON_GUIDANCE = (
    "The user wants to move on. Acknowledge and proceed to the next logical section."
)

FRUSTRATION_GUIDANCE = (
    "The user seems frustrated. Be extra patient and supportive. Offer to skip "
    "optional sections or simplify."
)

EMAIL_HELP_GUIDANCE = (
    "The user needs help creating an email. Set specialContent to "
    '"email_guide" in your response.'
)

FOLLOW_UP_LIMIT_GUIDANCE = (
    "You have asked enough follow-ups for this section. Wrap up and move to "
    "the next section."
)

_CONTRADICTION_TEMPLATE = """## CONTRADICTION DETECTED:
The user says they have no {section} experience, but the record already has:
- {summary}

You MUST:
1. Say: "Earlier you mentioned {summary}."
2. Ask: "Would you like to keep this information or remove it from your resume?"
3. Set followUpNeeded to true
4. NOT clear the data or move on until they answer"""

EXPORT_GUIDANCE = """## EXPORT REQUESTED:
The user wants to download their resume. Reply exactly: "Your resume is \
ready! Click the 'View & Download Resume' button below to preview and \
download it." and set isComplete to true. Do not explain how to make a PDF \
or Word file."""

_SECTION_ENTRY_TEMPLATE = """## SECTION ENTRY:
This is the first message of the "{section}" section. Reply ONLY with its \
yes/no question. Do not summarize earlier sections or ask for details."""

_SAID_YES_TEMPLATE = """## USER SAID YES:
The user said yes to the {section} question. Ask for the details of their \
first {section} entry. Do not repeat the yes/no question."""


def build_contradiction_guidance(section: str, summary: str) -> str:
    return _CONTRADICTION_TEMPLATE.format(section=section, summary=summary)


def build_section_entry_guidance(section: str) -> str:
    return _SECTION_ENTRY_TEMPLATE.format(section=section)


def build_said_yes_guidance(section: str) -> str:
    return _SAID_YES_TEMPLATE.format(section=section)


# =============================================================================
# Email Guide
# =============================================================================

INLINE_EMAIL_GUIDE = """## Creating a Gmail Account (Free)

**What You Need:**
- A phone that can receive text messages
- About 5-10 minutes

**Quick Steps:**

1. **Go to gmail.com** in your web browser
2. **Click "Create account"** then choose "For myself"
3. **Enter your name** - use your real, professional name
4. **Choose your email address:** firstname.lastname@gmail.com works well
5. **Create a password** of at least 8 characters and WRITE IT DOWN
6. **Verify your phone** with the 6-digit code sent by text
7. **Add your birthday and agree to the terms**
8. **Done!** Your new email is ready.

**Need more help?** https://support.google.com/mail/answer/56256"""


def get_inline_email_guide(language: str = "en") -> str:
    """Email creation guide shown inline. Only English is available."""
    return INLINE_EMAIL_GUIDE


def suggest_professional_emails(full_name: str) -> list[str]:
    """Up to five Gmail address ideas built from the user's name."""
    parts = [p for p in re.split(r"\s+", full_name.strip().lower()) if p.isalpha()]
    if len(parts) < 2:
        return []
    first, last = parts[0], parts[-1]
    middle = parts[1] if len(parts) > 2 else ""

    suggestions = [f"{first}.{last}", f"{first}{last}"]
    if middle:
        suggestions += [f"{first}.{middle[0]}.{last}", f"{first}{middle}{last}"]
    suggestions += [f"{first[0]}{last}", f"{first}.{last[0]}"]
    return [f"{s}@gmail.com" for s in suggestions[:5]]


# =============================================================================
# Builders
# =============================================================================


def strip_extraction_tags(text: str) -> str:
    """Remove extraction tags from user-supplied text before prompting."""
    return _EXTRACTION_TAG_PATTERN.sub("", text)


def build_context_summary(
    context: dict[str, Any] | None, resume_data: dict[str, Any]
) -> str:
    """Summarize what is already known for the model.

    Args:
        context: Conversation context (mentionedEntities, answeredTopics,
            userTone), camelCase or snake_case keys.
        resume_data: The current record.

    Returns:
        Newline-separated summary lines (empty when nothing is known).
    """
    context = context or {}
    topics = context.get("answered_topics", context.get("answeredTopics")) or []
    entities = context.get("mentioned_entities", context.get("mentionedEntities")) or []
    tone = context.get("user_tone", context.get("userTone")) or "neutral"

    parts: list[str] = []
    if topics:
        parts.append(f"Topics already covered: {', '.join(topics[-_MAX_CONTEXT_ITEMS:])}")
    if entities:
        parts.append(
            f"Names/companies mentioned: {', '.join(entities[-_MAX_CONTEXT_ITEMS:])}"
        )

    personal = resume_data.get("personalInfo")
    if isinstance(personal, dict) and personal.get("fullName"):
        parts.append(f"User's name: {strip_extraction_tags(str(personal['fullName']))}")

    work = resume_data.get("workExperience")
    if isinstance(work, list) and work:
        parts.append(f"Work experiences collected: {len(work)}")

    education = resume_data.get("education")
    if isinstance(education, list) and education:
        parts.append(f"Education entries collected: {len(education)}")

    if tone != "neutral":
        parts.append(f"User seems {tone} - adjust tone accordingly")

    return "\n".join(parts)


def build_system_prompt(
    section: str, language: str = "en", additional_context: str = ""
) -> str:
    """Assemble the system prompt for one turn.

    Args:
        section: Current section.
        language: Response language code; non-English adds an instruction.
        additional_context: Context summary and guidance blocks.

    Returns:
        The complete system prompt.
    """
    prompt = RESUME_ASSISTANT_PROMPT

    if language != "en":
        prompt += (
            "\n\n## Language Instruction:\n"
            f"Respond in {language}. Keep the extracted_data JSON in English."
        )

    prompt += f"\n\n## Current Section Focus ({section}):\n{SECTION_PROMPTS.get(section, '')}"

    if additional_context:
        prompt += f"\n\n## Additional Context:\n{additional_context}"

    return prompt
