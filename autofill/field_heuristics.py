"""Text heuristics applied to scanned controls.

Everything here works on plain strings extracted from the page so that it can
be exercised without a browser. The scanner feeds these helpers the raw
label, aria, description and nearby prompt texts of each control.
"""

from __future__ import annotations

import json
import re
from typing import Dict, Iterable, List, Optional, Sequence

from .form_models import FieldKind, FieldLocator, PromptCandidate

INTERROGATIVE_PATTERN = re.compile(
    r"^(why|how|what|describe|explain|tell us|please describe|please explain)\b",
    re.IGNORECASE,
)
ROLE_VOCABULARY_PATTERN = re.compile(
    r"(position|role|motivation|interested|interest|experience|background|cover letter)",
    re.IGNORECASE,
)
REQUIREMENT_MARKER_PATTERN = re.compile(r"^(optional|required)\b", re.IGNORECASE)
ESSAY_PATTERN = re.compile(
    r"why|tell us|describe|explain|motivation|interest|cover letter|statement"
)
BOILERPLATE_KEYWORDS = (
    "privacy",
    "terms",
    "cookies",
    "equal opportunity",
    "eeo",
    "gdpr",
)

MAX_WORDS_PATTERN = re.compile(r"max(?:imum)?(?:\s+of)?\s*(\d+)\s*words?")
MIN_WORDS_PATTERN = re.compile(r"min(?:imum)?(?:\s+of)?\s*(\d+)\s*words?")
MAX_CHARS_PATTERN = re.compile(r"max(?:imum)?(?:\s+of)?\s*(\d+)\s*(?:characters|chars)")
MIN_CHARS_PATTERN = re.compile(r"min(?:imum)?(?:\s+of)?\s*(\d+)\s*(?:characters|chars)")

LABEL_SOURCE_BONUS = 8
ESSAY_CHAR_THRESHOLD = 180
MAX_QUESTION_CANDIDATES = 5

_WHITESPACE = re.compile(r"\s+")
_NON_SLUG = re.compile(r"[^a-z0-9]+")


def normalize_whitespace(text: Optional[str]) -> str:
    return _WHITESPACE.sub(" ", text or "").strip()


def looks_boilerplate(text: str) -> bool:
    lowered = text.lower()
    return any(keyword in lowered for keyword in BOILERPLATE_KEYWORDS)


def score_prompt(text: str, source: str) -> int:
    """Score how likely ``text`` is the question a control is asking."""
    score = 0
    if "?" in text:
        score += 6
    if INTERROGATIVE_PATTERN.search(text):
        score += 4
    if ROLE_VOCABULARY_PATTERN.search(text):
        score += 2
    if 20 <= len(text) <= 220:
        score += 3
    if source in {"label", "aria"}:
        score += 5
    if source == "describedby":
        score += 3
    if len(text) > 350:
        score -= 4
    if looks_boilerplate(text):
        score -= 6
    if REQUIREMENT_MARKER_PATTERN.search(text.strip()):
        score -= 5
    return score


def build_prompt_candidates(
    *,
    label: str = "",
    aria_name: str = "",
    placeholder: str = "",
    described_by: str = "",
    nearby: Sequence[PromptCandidate] = (),
) -> List[PromptCandidate]:
    candidates: List[PromptCandidate] = []
    if label:
        candidates.append(
            PromptCandidate("label", label, score_prompt(label, "label") + LABEL_SOURCE_BONUS)
        )
    if aria_name:
        candidates.append(PromptCandidate("aria", aria_name, score_prompt(aria_name, "aria")))
    if placeholder:
        candidates.append(
            PromptCandidate("placeholder", placeholder, score_prompt(placeholder, "placeholder"))
        )
    if described_by:
        candidates.append(
            PromptCandidate("describedby", described_by, score_prompt(described_by, "describedby"))
        )
    for prompt in nearby:
        if prompt.text:
            candidates.append(
                PromptCandidate(prompt.source, prompt.text, score_prompt(prompt.text, prompt.source))
            )
    return candidates


def rank_prompt_candidates(candidates: Iterable[PromptCandidate]) -> List[PromptCandidate]:
    # sorted() is stable, so equal scores keep their collection order
    return sorted(
        (candidate for candidate in candidates if candidate.text),
        key=lambda candidate: candidate.score,
        reverse=True,
    )


def choose_question_text(candidates: Sequence[PromptCandidate]) -> str:
    for candidate in candidates:
        if candidate.source == "label" and candidate.text:
            return candidate.text
    ranked = rank_prompt_candidates(candidates)
    return ranked[0].text if ranked else ""


def parse_text_constraints(text: str) -> Dict[str, int]:
    lowered = (text or "").lower()
    constraints: Dict[str, int] = {}
    for key, pattern in (
        ("max_words", MAX_WORDS_PATTERN),
        ("min_words", MIN_WORDS_PATTERN),
        ("max_chars", MAX_CHARS_PATTERN),
        ("min_chars", MIN_CHARS_PATTERN),
    ):
        match = pattern.search(lowered)
        if match:
            constraints[key] = int(match.group(1))
    return constraints


def parse_attribute_constraints(
    maxlength: Optional[str], minlength: Optional[str]
) -> Dict[str, int]:
    constraints: Dict[str, int] = {}
    for key, raw in (("maxlength", maxlength), ("minlength", minlength)):
        if raw is None:
            continue
        try:
            constraints[key] = int(str(raw).strip())
        except ValueError:
            continue
    return constraints


def is_likely_essay(
    kind: FieldKind,
    constraints: Dict[str, int],
    *,
    question_text: str = "",
    label: str = "",
    described_by: str = "",
) -> bool:
    if kind in {FieldKind.TEXTAREA, FieldKind.RICHTEXT}:
        return True
    if constraints.get("max_words"):
        return True
    if constraints.get("max_chars", 0) > ESSAY_CHAR_THRESHOLD:
        return True
    text = f"{question_text} {label} {described_by}".lower()
    return bool(ESSAY_PATTERN.search(text)) and bool(question_text or label)


def slugify(text: Optional[str]) -> str:
    return _NON_SLUG.sub("_", normalize_whitespace(text).lower()).strip("_")


def build_field_id(
    dom_id: Optional[str],
    name: Optional[str],
    texts: Iterable[Optional[str]],
    index: int,
) -> str:
    if dom_id:
        return dom_id
    if name:
        return name
    for text in texts:
        slug = slugify(text)
        if slug:
            return slug
    return f"field_{index}"


def css_escape(value: str) -> str:
    """Escape an identifier for use in a CSS selector, like ``CSS.escape``."""
    escaped: List[str] = []
    for position, char in enumerate(value):
        code = ord(char)
        if code == 0:
            escaped.append("\ufffd")
        elif (
            0x1 <= code <= 0x1F
            or code == 0x7F
            or (position == 0 and char in "0123456789")
            or (position == 1 and char in "0123456789" and value[0] == "-")
        ):
            escaped.append(f"\\{code:x} ")
        elif position == 0 and char == "-" and len(value) == 1:
            escaped.append("\\-")
        elif code >= 0x80 or char in "-_" or (char.isascii() and char.isalnum()):
            escaped.append(char)
        else:
            escaped.append(f"\\{char}")
    return "".join(escaped)


def css_string(value: str) -> str:
    """Escape a value for a double-quoted CSS attribute selector."""
    return re.sub(r'(["\\])', r"\\\1", value)


def build_locator(
    tag: str,
    *,
    dom_id: Optional[str] = None,
    name: Optional[str] = None,
    best_label: Optional[str] = None,
    placeholder: Optional[str] = None,
    option_value: Optional[str] = None,
) -> FieldLocator:
    if dom_id:
        css = f"#{css_escape(dom_id)}"
    elif name:
        css = f'{tag}[name="{css_string(name)}"]'
        if option_value:
            css += f'[value="{css_string(option_value)}"]'
    else:
        css = tag
    if best_label:
        accessor = f"get_by_label({json.dumps(best_label)})"
    elif placeholder:
        accessor = f"get_by_placeholder({json.dumps(placeholder)})"
    else:
        accessor = f"locator({json.dumps(css)})"
    return FieldLocator(css=css, accessor=accessor)


__all__ = [
    "build_field_id",
    "build_locator",
    "build_prompt_candidates",
    "choose_question_text",
    "css_escape",
    "css_string",
    "is_likely_essay",
    "looks_boilerplate",
    "normalize_whitespace",
    "parse_attribute_constraints",
    "parse_text_constraints",
    "rank_prompt_candidates",
    "score_prompt",
    "slugify",
]
