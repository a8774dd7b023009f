"""Canonical field keys, label aliases and the label matcher."""

from __future__ import annotations

import json
import re
import unicodedata
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional

AliasIndex = Mapping[str, str]

DEFAULT_LABEL_ALIASES: Dict[str, tuple] = {
    "full_name": ("full name", "name", "your name", "legal name", "full legal name"),
    "first_name": ("first name", "given name", "first", "forename", "legal first name"),
    "last_name": ("last name", "surname", "family name", "last", "legal last name"),
    "preferred_name": ("preferred name", "preferred first name", "nickname"),
    "pronouns": ("pronouns", "preferred pronouns"),
    "email": ("email", "email address", "e mail", "e mail address", "your email"),
    "phone": ("phone", "phone number", "mobile", "mobile number", "telephone", "cell phone"),
    "phone_country_code": ("phone code", "country code", "dial code", "phone country code"),
    "address_line1": ("address", "street address", "address line 1", "street"),
    "city": ("city", "town", "city town"),
    "state_province_region": ("state", "province", "region", "state province", "state province region"),
    "postal_code": ("postal code", "zip", "zip code", "postcode", "zip postal code"),
    "country": ("country", "country of residence", "nation"),
    "current_location": ("location", "current location", "where are you located", "city state"),
    "linkedin_url": ("linkedin", "linkedin profile", "linkedin url", "linkedin profile url"),
    "github_url": ("github", "github url", "github profile"),
    "website_url": ("website", "portfolio", "personal website", "portfolio url", "website url"),
    "job_title": ("job title", "current title", "current job title", "title", "position"),
    "current_company": ("current company", "company", "current employer", "employer", "company name"),
    "years_experience": ("years of experience", "years experience", "years exp", "total years of experience"),
    "desired_salary": ("desired salary", "salary expectations", "expected salary", "salary expectation", "compensation expectations"),
    "hourly_rate": ("hourly rate", "desired hourly rate", "expected hourly rate", "rate per hour"),
    "start_date": ("start date", "earliest start date", "when can you start", "available start date"),
    "notice_period": ("notice period", "notice period in weeks", "current notice period"),
    "school": ("school", "university", "college", "school name", "institution"),
    "degree": ("degree", "highest degree", "degree type"),
    "major_field": ("major", "field of study", "discipline", "major field", "area of study"),
    "graduation_date": ("graduation date", "graduation year", "graduation at", "date of graduation"),
    "work_authorization": ("are you legally authorized to work in the united states", "work authorization", "authorized to work"),
    "visa_sponsorship": ("will you now or in the future require sponsorship", "visa sponsorship", "require sponsorship"),
    "eeo_gender": ("gender", "gender identity"),
    "eeo_race_ethnicity": ("race", "ethnicity", "race ethnicity"),
    "eeo_veteran": ("veteran status", "protected veteran status", "are you a veteran"),
    "eeo_disability": ("disability status", "disability", "do you have a disability"),
    "cover_letter": ("cover letter", "coverletter", "motivation letter", "why do you want to work here"),
}

CANONICAL_LABEL_KEYS = frozenset(DEFAULT_LABEL_ALIASES)

MIN_ALIAS_LENGTH = 2

_NON_ALNUM = re.compile(r"[\W_]+")


class AliasError(ValueError):
    """Raised when an alias record cannot be added to the alias table."""


@dataclass(frozen=True, slots=True)
class LabelAlias:
    canonical_key: str
    alias: str
    normalized_alias: str
    id: Optional[str] = None

    @classmethod
    def from_dict(cls, payload: Mapping[str, object]) -> "LabelAlias":
        canonical_key = str(
            payload.get("canonicalKey") or payload.get("canonical_key") or ""
        ).strip()
        alias = str(payload.get("alias") or "").strip()
        record_id = payload.get("id")
        return cls(
            canonical_key=canonical_key,
            alias=alias,
            normalized_alias=normalize_label_alias(alias),
            id=str(record_id) if record_id else None,
        )


def normalize_label_alias(text: Optional[str]) -> str:
    """Fold case, punctuation and whitespace so equivalent labels compare equal."""
    if not text:
        return ""
    folded = unicodedata.normalize("NFKC", str(text)).casefold()
    folded = unicodedata.normalize("NFKC", folded).replace("&", " and ")
    return _NON_ALNUM.sub(" ", folded).strip()


def validate_alias(
    canonical_key: str,
    alias: str,
    existing: Iterable[LabelAlias] = (),
    *,
    alias_id: Optional[str] = None,
) -> LabelAlias:
    canonical_key = (canonical_key or "").strip()
    alias = (alias or "").strip()
    if canonical_key not in CANONICAL_LABEL_KEYS:
        raise AliasError(f"Unknown canonical key: {canonical_key!r}")
    if len(alias) < MIN_ALIAS_LENGTH:
        raise AliasError(f"Alias too short: {alias!r}")
    normalized = normalize_label_alias(alias)
    if not normalized:
        raise AliasError("Alias cannot be empty")
    for record in existing:
        if record.normalized_alias == normalized and record.id != alias_id:
            raise AliasError(f"Alias already exists: {alias!r}")
    return LabelAlias(
        canonical_key=canonical_key,
        alias=alias,
        normalized_alias=normalized,
        id=alias_id,
    )


def load_alias_table(path: Path) -> List[LabelAlias]:
    payload = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(payload, list):
        raise AliasError(f"Alias table must be a JSON list: {path}")
    records: List[LabelAlias] = []
    for index, entry in enumerate(payload):
        if not isinstance(entry, dict):
            raise AliasError(f"Alias entry #{index} is not an object")
        record = LabelAlias.from_dict(entry)
        records.append(
            validate_alias(
                record.canonical_key,
                record.alias,
                records,
                alias_id=record.id or f"alias-{index}",
            )
        )
    return records


def build_alias_index(
    records: Iterable[LabelAlias] = (), *, include_defaults: bool = True
) -> AliasIndex:
    index: Dict[str, str] = {}
    if include_defaults:
        for canonical_key, aliases in DEFAULT_LABEL_ALIASES.items():
            for alias in (canonical_key, *aliases):
                normalized = normalize_label_alias(alias)
                if normalized:
                    index.setdefault(normalized, canonical_key)
    # custom aliases override the defaults
    for record in records:
        normalized = record.normalized_alias or normalize_label_alias(record.alias)
        if normalized and record.canonical_key:
            index[normalized] = record.canonical_key
    return MappingProxyType(index)


def match_label_to_canonical(text: Optional[str], alias_index: AliasIndex) -> Optional[str]:
    normalized = normalize_label_alias(text)
    if not normalized:
        return None
    return alias_index.get(normalized)


__all__ = [
    "AliasError",
    "AliasIndex",
    "CANONICAL_LABEL_KEYS",
    "DEFAULT_LABEL_ALIASES",
    "LabelAlias",
    "build_alias_index",
    "load_alias_table",
    "match_label_to_canonical",
    "normalize_label_alias",
    "validate_alias",
]
