"""Phone and location normalizers.

Applied to high-confidence model extractions and to guided-mode answers so
the record holds one canonical spelling. Both functions return their input
(or a title-cased copy) when it cannot be parsed; neither raises.
"""

import re

STATE_ABBREVIATIONS: dict[str, str] = {
    "alabama": "AL",
    "alaska": "AK",
    "arizona": "AZ",
    "arkansas": "AR",
    "california": "CA",
    "colorado": "CO",
    "connecticut": "CT",
    "delaware": "DE",
    "florida": "FL",
    "georgia": "GA",
    "hawaii": "HI",
    "idaho": "ID",
    "illinois": "IL",
    "indiana": "IN",
    "iowa": "IA",
    "kansas": "KS",
    "kentucky": "KY",
    "louisiana": "LA",
    "maine": "ME",
    "maryland": "MD",
    "massachusetts": "MA",
    "michigan": "MI",
    "minnesota": "MN",
    "mississippi": "MS",
    "missouri": "MO",
    "montana": "MT",
    "nebraska": "NE",
    "nevada": "NV",
    "new hampshire": "NH",
    "new jersey": "NJ",
    "new mexico": "NM",
    "new york": "NY",
    "north carolina": "NC",
    "north dakota": "ND",
    "ohio": "OH",
    "oklahoma": "OK",
    "oregon": "OR",
    "pennsylvania": "PA",
    "rhode island": "RI",
    "south carolina": "SC",
    "south dakota": "SD",
    "tennessee": "TN",
    "texas": "TX",
    "utah": "UT",
    "vermont": "VT",
    "virginia": "VA",
    "washington": "WA",
    "west virginia": "WV",
    "wisconsin": "WI",
    "wyoming": "WY",
    # Territories
    "district of columbia": "DC",
    "puerto rico": "PR",
    "guam": "GU",
    "virgin islands": "VI",
}

VALID_STATE_CODES: frozenset[str] = frozenset(STATE_ABBREVIATIONS.values())

_NON_DIGITS = re.compile(r"\D")
_CITY_CODE = re.compile(r"^(.+),\s*([A-Z]{2})$")
_CITY_COMMA_STATE = re.compile(r"^(.+),\s*(.+)$")


def title_case(text: str) -> str:
    """Lowercase, then capitalize the first letter of each space-separated word."""
    return " ".join(word[:1].upper() + word[1:] for word in text.lower().split(" "))


def normalize_phone(phone: str) -> str:
    """Format a US phone number as ``(AAA) BBB-CCCC``.

    Accepts any punctuation. Eleven digits with a leading country code 1 are
    formatted without it. Anything else (international, partial) is
    returned unchanged.

    Examples:
        >>> normalize_phone("555.123.4567")
        '(555) 123-4567'
        >>> normalize_phone("+1 555 123 4567")
        '(555) 123-4567'
        >>> normalize_phone("123")
        '123'
    """
    if not phone or not isinstance(phone, str):
        return phone or ""

    digits = _NON_DIGITS.sub("", phone)
    if len(digits) == 11 and digits[0] == "1":
        digits = digits[1:]
    if len(digits) == 10:
        return f"({digits[:3]}) {digits[3:6]}-{digits[6:]}"
    return phone


def normalize_city_state(value: str) -> str:
    """Format a location as ``City, ST``.

    Recognized shapes, in order:
    1. "City, ST" with a valid uppercase code
    2. "City, State Name" or "City, st" (any case)
    3. "city st" without a comma
    4. "city state name" without a comma; the longest matching state suffix
       wins, so "charleston west virginia" maps to WV rather than VA

    Unparseable input comes back title-cased. Empty input gives "".
    """
    if not value or not isinstance(value, str):
        return value or ""

    trimmed = value.strip()
    if not trimmed:
        return ""

    match = _CITY_CODE.match(trimmed)
    if match and match.group(2) in VALID_STATE_CODES:
        return f"{title_case(match.group(1).strip())}, {match.group(2)}"

    match = _CITY_COMMA_STATE.match(trimmed)
    if match:
        city = title_case(match.group(1).strip())
        state_part = match.group(2).strip().lower()
        if state_part in STATE_ABBREVIATIONS:
            return f"{city}, {STATE_ABBREVIATIONS[state_part]}"
        if state_part.upper() in VALID_STATE_CODES:
            return f"{city}, {state_part.upper()}"

    words = trimmed.lower().split()
    if len(words) >= 2:
        last = words[-1].upper()
        if len(last) == 2 and last in VALID_STATE_CODES:
            return f"{title_case(' '.join(words[:-1]))}, {last}"

        # Shortest city first means longest state suffix first.
        for i in range(1, len(words)):
            candidate = " ".join(words[i:])
            if candidate in STATE_ABBREVIATIONS:
                city = title_case(" ".join(words[:i]))
                return f"{city}, {STATE_ABBREVIATIONS[candidate]}"

    return title_case(trimmed)
