"""Tests for phone and location normalizers."""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from resume_chat.services.normalizers import (
    STATE_ABBREVIATIONS,
    normalize_city_state,
    normalize_phone,
    title_case,
)

_separators = st.sampled_from(["", " ", "-", ".", "(", ")", "/"])


def make_punctuated(digits: str, seps: list[str]) -> str:
    return "".join(sep + d for sep, d in zip(seps, digits, strict=True))


# =============================================================================
# Phone
# =============================================================================


class TestNormalizePhone:
    """Tests for normalize_phone."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("5551234567", "(555) 123-4567"),
            ("555.123.4567", "(555) 123-4567"),
            ("555-123-4567", "(555) 123-4567"),
            ("(555) 123 4567", "(555) 123-4567"),
            ("+1 555 123 4567", "(555) 123-4567"),
            ("15551234567", "(555) 123-4567"),
        ],
    )
    def test_formats_us_numbers(self, raw, expected):
        assert normalize_phone(raw) == expected

    @pytest.mark.parametrize(
        "raw", ["123", "+44 20 7946 0958", "25551234567", "call me", ""]
    )
    def test_returns_other_input_unchanged(self, raw):
        assert normalize_phone(raw) == raw

    @given(st.text(alphabet="0123456789", min_size=10, max_size=10), st.data())
    def test_ten_digits_always_formatted(self, digits, data):
        seps = data.draw(st.lists(_separators, min_size=10, max_size=10))

        result = normalize_phone(make_punctuated(digits, seps))

        assert result == f"({digits[:3]}) {digits[3:6]}-{digits[6:]}"

    @given(st.text())
    def test_never_raises_and_is_idempotent(self, raw):
        once = normalize_phone(raw)
        assert normalize_phone(once) == once


# =============================================================================
# City, State
# =============================================================================


class TestNormalizeCityState:
    """Tests for normalize_city_state."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("Austin, TX", "Austin, TX"),
            ("austin, tx", "Austin, TX"),
            ("san francisco, california", "San Francisco, CA"),
            ("Washington, District of Columbia", "Washington, DC"),
            ("portland or", "Portland, OR"),
            ("charleston west virginia", "Charleston, WV"),
            ("new york new york", "New York, NY"),
            ("  chicago, il  ", "Chicago, IL"),
        ],
    )
    def test_recognized_shapes(self, raw, expected):
        assert normalize_city_state(raw) == expected

    def test_west_virginia_is_not_virginia(self):
        assert normalize_city_state("Wheeling, West Virginia") == "Wheeling, WV"

    def test_invalid_code_falls_back_to_title_case(self):
        assert normalize_city_state("springfield, zz") == "Springfield, Zz"

    def test_unparseable_input_is_title_cased(self):
        assert normalize_city_state("somewhere in europe") == "Somewhere In Europe"

    @pytest.mark.parametrize("raw", ["", "   "])
    def test_empty_input(self, raw):
        assert normalize_city_state(raw) == ""

    @given(
        st.from_regex(r"[a-z]{1,10}( [a-z]{1,10})?", fullmatch=True),
        st.sampled_from(sorted(STATE_ABBREVIATIONS)),
    )
    def test_comma_state_name_maps_to_code(self, city, state):
        result = normalize_city_state(f"{city}, {state}")
        assert result == f"{title_case(city)}, {STATE_ABBREVIATIONS[state]}"

    @given(st.text(max_size=60))
    def test_never_raises(self, raw):
        assert normalize_city_state(raw) is not None
