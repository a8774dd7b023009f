"""Resolve canonical field keys to values from the applicant profile."""

from __future__ import annotations

import math
import re
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Union

from .profile import Profile, format_phone, trim_string

ValueMap = Mapping[str, str]

DEFAULT_START_DATE = "immediately"
DEFAULT_NOTICE_PERIOD = "0"
DEFAULT_PRONOUNS = "Prefer not to say"
DEFAULT_EEO_ANSWER = "Decline to self-identify"
HOURS_PER_MONTH = 160
MONTHS_PER_YEAR = 12


def parse_salary_number(value: Union[str, int, float, None]) -> Optional[float]:
    """Parse ``"120,000"`` or ``"$95k"``-style input into a number when possible."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    if not isinstance(value, str):
        return None
    cleaned = re.sub(r"[^0-9.]", "", re.sub(r"[, ]+", "", value))
    if not cleaned:
        return None
    try:
        parsed = float(cleaned)
    except ValueError:
        return None
    return parsed if math.isfinite(parsed) else None


def compute_hourly_rate(desired_salary: Union[str, int, float, None]) -> Optional[int]:
    annual = parse_salary_number(desired_salary)
    if not annual or annual <= 0:
        return None
    return math.floor(annual / MONTHS_PER_YEAR / HOURS_PER_MONTH)


def build_autofill_value_map(
    profile: Profile, job_context: Optional[Mapping[str, object]] = None
) -> ValueMap:
    """Compute every canonical value; unresolvable keys map to ``""``."""
    context = job_context or {}
    first_name = profile.name.first
    last_name = profile.name.last
    full_name = " ".join(part for part in (first_name, last_name) if part).strip()

    contact = profile.contact
    if contact.phone_code and contact.phone_number:
        phone = f"{contact.phone_code} {contact.phone_number}".strip()
    else:
        phone = format_phone(contact)
    if contact.phone_code:
        phone_country_code = contact.phone_code
    elif phone.startswith("+"):
        phone_country_code = phone.split()[0]
    else:
        phone_country_code = contact.phone

    location = profile.location
    current_location = ", ".join(
        part for part in (location.city, location.state, location.country) if part
    )

    career = profile.career
    job_title = career.job_title or trim_string(context.get("job_title"))
    current_company = (
        career.current_company
        or trim_string(context.get("company"))
        or trim_string(context.get("employer"))
    )
    hourly_rate = compute_hourly_rate(career.desired_salary)

    education = profile.education
    values: Dict[str, str] = {
        "full_name": full_name,
        "first_name": first_name,
        "last_name": last_name,
        "preferred_name": first_name or full_name,
        "pronouns": DEFAULT_PRONOUNS,
        "email": contact.email,
        "phone": phone,
        "phone_country_code": phone_country_code,
        "address_line1": location.address,
        "city": location.city,
        "state_province_region": location.state,
        "postal_code": location.postal_code,
        "country": location.country,
        "current_location": current_location,
        "linkedin_url": profile.links.linkedin,
        "github_url": profile.links.github,
        "website_url": profile.links.website,
        "job_title": job_title,
        "current_company": current_company,
        "years_experience": career.years_exp,
        "desired_salary": career.desired_salary,
        "hourly_rate": str(hourly_rate) if hourly_rate is not None else "",
        "start_date": DEFAULT_START_DATE,
        "notice_period": DEFAULT_NOTICE_PERIOD,
        "school": education.school,
        "degree": education.degree,
        "major_field": education.major_field,
        "graduation_date": education.graduation_at,
        "work_authorization": profile.work_auth.authorized,
        "visa_sponsorship": profile.work_auth.needs_sponsorship,
        "eeo_gender": DEFAULT_EEO_ANSWER,
        "eeo_race_ethnicity": DEFAULT_EEO_ANSWER,
        "eeo_veteran": DEFAULT_EEO_ANSWER,
        "eeo_disability": DEFAULT_EEO_ANSWER,
    }
    for key, answer in profile.default_answers.items():
        if key in values and answer:
            values[key] = answer
    return MappingProxyType(values)


__all__ = [
    "ValueMap",
    "build_autofill_value_map",
    "compute_hourly_rate",
    "parse_salary_number",
]
