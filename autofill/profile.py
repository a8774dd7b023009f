"""Structured applicant profile validated once at the boundary."""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from typing import Dict, Mapping, Optional, Type, TypeVar

SectionT = TypeVar("SectionT")


class ProfileError(ValueError):
    """Raised when a profile payload does not have the expected shape."""


def trim_string(value: object) -> str:
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, bool) or value is None:
        return ""
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return str(int(value)) if value.is_integer() else str(value)
    return ""


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


@dataclass(frozen=True, slots=True)
class Name:
    first: str = ""
    last: str = ""


@dataclass(frozen=True, slots=True)
class Contact:
    email: str = ""
    phone: str = ""
    phone_code: str = ""
    phone_number: str = ""


@dataclass(frozen=True, slots=True)
class Location:
    address: str = ""
    city: str = ""
    state: str = ""
    country: str = ""
    postal_code: str = ""


@dataclass(frozen=True, slots=True)
class Links:
    linkedin: str = ""
    github: str = ""
    website: str = ""


@dataclass(frozen=True, slots=True)
class Career:
    job_title: str = ""
    current_company: str = ""
    years_exp: str = ""
    desired_salary: str = ""


@dataclass(frozen=True, slots=True)
class Education:
    school: str = ""
    degree: str = ""
    major_field: str = ""
    graduation_at: str = ""


@dataclass(frozen=True, slots=True)
class WorkAuth:
    authorized: str = ""
    needs_sponsorship: str = ""


SECTIONS: Dict[str, type] = {
    "name": Name,
    "contact": Contact,
    "location": Location,
    "links": Links,
    "career": Career,
    "education": Education,
    "work_auth": WorkAuth,
}


@dataclass(frozen=True, slots=True)
class Profile:
    name: Name = field(default_factory=Name)
    contact: Contact = field(default_factory=Contact)
    location: Location = field(default_factory=Location)
    links: Links = field(default_factory=Links)
    career: Career = field(default_factory=Career)
    education: Education = field(default_factory=Education)
    work_auth: WorkAuth = field(default_factory=WorkAuth)
    default_answers: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, payload: Optional[Mapping[str, object]]) -> "Profile":
        """Build a profile from the store's camelCase or snake_case JSON."""
        if payload is None:
            return cls()
        if not isinstance(payload, Mapping):
            raise ProfileError("Profile payload must be a mapping")
        sections = {
            key: _build_section(section_cls, _lookup(payload, key), key)
            for key, section_cls in SECTIONS.items()
        }
        answers = _lookup(payload, "default_answers") or {}
        if not isinstance(answers, Mapping):
            raise ProfileError("defaultAnswers must be a mapping")
        default_answers = {
            str(key): trim_string(value)
            for key, value in answers.items()
            if trim_string(value)
        }
        return cls(default_answers=default_answers, **sections)

    def to_dict(self) -> Dict[str, object]:
        payload: Dict[str, object] = {}
        for key in SECTIONS:
            section = getattr(self, key)
            payload[key] = {
                item.name: getattr(section, item.name) for item in fields(section)
            }
        payload["default_answers"] = dict(self.default_answers)
        return payload


def _lookup(payload: Mapping[str, object], key: str) -> object:
    if key in payload:
        return payload[key]
    return payload.get(_camel(key))


def _section_value(value: object, section: str) -> str:
    if section == "work_auth" and isinstance(value, bool):
        return "Yes" if value else "No"
    return trim_string(value)


def _build_section(section_cls: Type[SectionT], raw: object, section: str) -> SectionT:
    if raw is None:
        return section_cls()
    if not isinstance(raw, Mapping):
        raise ProfileError(f"Profile section {section!r} must be a mapping")
    values = {
        item.name: _section_value(_lookup(raw, item.name), section)
        for item in fields(section_cls)
    }
    return section_cls(**values)


def format_phone(contact: Optional[Contact]) -> str:
    """Join phone code and number, falling back to the raw phone string."""
    if contact is None:
        return ""
    parts = [part for part in (contact.phone_code, contact.phone_number) if part]
    combined = " ".join(parts).strip()
    return combined or contact.phone


def merge_profiles(existing: Optional[Profile], incoming: Optional[Profile]) -> Profile:
    """Merge two profiles section by section; non-empty incoming values win."""
    current = existing or Profile()
    update = incoming or Profile()
    merged_sections = {}
    for key in SECTIONS:
        base = getattr(current, key)
        overrides = {
            item.name: getattr(getattr(update, key), item.name)
            for item in fields(base)
            if getattr(getattr(update, key), item.name)
        }
        merged_sections[key] = replace(base, **overrides)
    answers = {**current.default_answers, **update.default_answers}
    merged = Profile(default_answers=answers, **merged_sections)
    phone = format_phone(merged.contact)
    if phone:
        merged = replace(merged, contact=replace(merged.contact, phone=phone))
    return merged


__all__ = [
    "Career",
    "Contact",
    "Education",
    "Links",
    "Location",
    "Name",
    "Profile",
    "ProfileError",
    "WorkAuth",
    "format_phone",
    "merge_profiles",
    "trim_string",
]
