"""Tests for profile parsing, phone formatting and profile merging.

@file test_profile.py
@description Profiles arrive as camelCase or snake_case JSON; values are
             trimmed once at the boundary and sections merge field by field.
"""

from __future__ import annotations

import pytest

from autofill.profile import (
    Contact,
    Profile,
    ProfileError,
    format_phone,
    merge_profiles,
    trim_string,
)


def test_from_dict_accepts_camel_case_and_trims(profile: Profile) -> None:
    assert profile.name.first == "Ada"
    assert profile.contact.phone_code == "+44"
    assert profile.contact.phone_number == "20 7946 0958"
    assert profile.career.desired_salary == "120,000"
    assert profile.work_auth.authorized == "Yes"
    assert profile.work_auth.needs_sponsorship == "No"


def test_from_dict_accepts_snake_case() -> None:
    parsed = Profile.from_dict(
        {
            "name": {"first": "  Grace "},
            "career": {"years_exp": 7.0, "current_company": "Navy"},
            "default_answers": {"start_date": "in two weeks", "pronouns": "  "},
        }
    )
    assert parsed.name.first == "Grace"
    assert parsed.career.years_exp == "7"
    assert parsed.career.current_company == "Navy"
    assert parsed.default_answers == {"start_date": "in two weeks"}


def test_from_dict_none_is_empty_profile() -> None:
    assert Profile.from_dict(None) == Profile()


@pytest.mark.parametrize("payload", [["not", "a", "mapping"], {"name": "Ada"}, {"defaultAnswers": ["yes"]}])
def test_from_dict_rejects_wrong_shapes(payload) -> None:
    with pytest.raises(ProfileError):
        Profile.from_dict(payload)


def test_trim_string() -> None:
    assert trim_string("  x ") == "x"
    assert trim_string(5) == "5"
    assert trim_string(2.5) == "2.5"
    assert trim_string(True) == ""
    assert trim_string(None) == ""
    assert trim_string(["x"]) == ""


def test_format_phone() -> None:
    assert format_phone(Contact(phone_code="+1", phone_number="5551234")) == "+1 5551234"
    assert format_phone(Contact(phone_number="5551234")) == "5551234"
    assert format_phone(Contact(phone="+1 555 1234")) == "+1 555 1234"
    assert format_phone(Contact()) == ""
    assert format_phone(None) == ""


def test_merge_keeps_existing_values_and_applies_non_empty_updates(profile: Profile) -> None:
    incoming = Profile.from_dict(
        {
            "location": {"city": "Paris", "country": ""},
            "contact": {"phoneNumber": "1 23 45 67 89", "phoneCode": "+33"},
            "defaultAnswers": {"notice_period": "2 weeks"},
        }
    )
    merged = merge_profiles(profile, incoming)
    assert merged.location.city == "Paris"
    assert merged.location.country == "United Kingdom"
    assert merged.contact.email == "ada@example.com"
    assert merged.contact.phone == "+33 1 23 45 67 89"
    assert merged.default_answers == {"notice_period": "2 weeks"}


def test_merge_handles_missing_sides(profile: Profile) -> None:
    assert merge_profiles(None, None) == Profile()
    assert merge_profiles(profile, None).name == profile.name


def test_to_dict_round_trips_sections(profile: Profile) -> None:
    payload = profile.to_dict()
    assert payload["contact"]["email"] == "ada@example.com"
    assert Profile.from_dict(payload) == profile
