"""Data models shared across scanning, planning and execution."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from enum import Enum
from types import MappingProxyType
from typing import Dict, List, Literal, Mapping, Optional, Tuple

ActionKind = Literal["fill", "select", "check", "uncheck", "click", "upload", "skip"]

ACTION_KINDS = ("fill", "select", "check", "uncheck", "click", "upload", "skip")
EXECUTABLE_ACTIONS = frozenset({"fill", "select", "check", "uncheck"})


class FieldKind(str, Enum):
    TEXT = "text"
    TEXTAREA = "textarea"
    SELECT = "select"
    RICHTEXT = "richtext"
    CHECKBOX = "checkbox"
    RADIO = "radio"
    FILE = "file"


def field_kind_for(tag: str, input_type: Optional[str]) -> FieldKind:
    """Collapse a control's tag/type pair into one of the supported kinds."""
    tag = (tag or "").lower()
    input_type = (input_type or "").lower()
    if tag == "select" or input_type == "select":
        return FieldKind.SELECT
    if tag == "textarea" or input_type == "textarea":
        return FieldKind.TEXTAREA
    if input_type == "richtext":
        return FieldKind.RICHTEXT
    if input_type == "checkbox":
        return FieldKind.CHECKBOX
    if input_type == "radio":
        return FieldKind.RADIO
    if input_type == "file":
        return FieldKind.FILE
    return FieldKind.TEXT


@dataclass(frozen=True, slots=True)
class PromptCandidate:
    source: str
    text: str
    score: int = 0


@dataclass(frozen=True, slots=True)
class FieldLocator:
    css: str
    accessor: str


@dataclass(frozen=True, slots=True)
class FieldDescriptor:
    field_id: str
    tag: str
    input_type: str
    kind: FieldKind
    locator: Optional[FieldLocator] = None
    dom_id: Optional[str] = None
    name: Optional[str] = None
    label: Optional[str] = None
    aria_name: Optional[str] = None
    placeholder: Optional[str] = None
    described_by: Optional[str] = None
    autocomplete: Optional[str] = None
    required: bool = False
    question_text: Optional[str] = None
    question_candidates: Tuple[PromptCandidate, ...] = ()
    container_prompts: Tuple[PromptCandidate, ...] = ()
    constraints: Mapping[str, int] = field(default_factory=dict)
    likely_essay: bool = False
    options: Tuple[str, ...] = ()
    option_value: Optional[str] = None
    frame_url: str = ""
    frame_name: str = ""
    index: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "constraints", MappingProxyType(dict(self.constraints)))

    @property
    def selector(self) -> Optional[str]:
        return self.locator.css if self.locator else None

    def canonical_name(self) -> str:
        return self.field_id or f"field_{self.index}"

    def to_dict(self) -> Dict[str, object]:
        payload = {item.name: getattr(self, item.name) for item in fields(self)}
        payload["locator"] = asdict(self.locator) if self.locator else None
        payload["question_candidates"] = tuple(asdict(c) for c in self.question_candidates)
        payload["container_prompts"] = tuple(asdict(c) for c in self.container_prompts)
        payload["constraints"] = dict(self.constraints)
        payload["kind"] = self.kind.value
        return payload

    @classmethod
    def from_dict(cls, payload: Mapping[str, object], index: int = 0) -> "FieldDescriptor":
        """Build a descriptor from a client-supplied field mapping.

        Accepts the scanner's own ``to_dict`` output as well as the looser
        camelCase shape sent by browser extensions (``fieldId``, ``ariaName``,
        ``locators.css`` ...). Missing values stay empty; nothing is derived.
        """

        def text(*keys: str) -> Optional[str]:
            for key in keys:
                value = payload.get(key)
                if isinstance(value, str) and value.strip():
                    return value.strip()
            return None

        tag = (text("tag") or "").lower()
        input_type = (text("input_type", "inputType", "type") or "").lower()
        if not tag:
            tag = input_type if input_type in {"select", "textarea"} else "input"
        locator = None
        locators = payload.get("locators") or payload.get("locator")
        css = text("selector")
        accessor = None
        if isinstance(locators, Mapping):
            css = css or _mapping_text(locators, "css")
            accessor = _mapping_text(locators, "accessor", "playwright")
        if css:
            locator = FieldLocator(css=css, accessor=accessor or css)
        constraints = payload.get("constraints")
        return cls(
            field_id=text("field_id", "fieldId") or "",
            tag=tag,
            input_type=input_type or ("text" if tag == "input" else tag),
            kind=field_kind_for(tag, input_type),
            locator=locator,
            dom_id=text("dom_id", "id"),
            name=text("name"),
            label=text("label"),
            aria_name=text("aria_name", "ariaName"),
            placeholder=text("placeholder"),
            described_by=text("described_by", "describedBy"),
            autocomplete=text("autocomplete"),
            required=bool(payload.get("required")),
            question_text=text("question_text", "questionText"),
            question_candidates=_prompt_candidates(
                payload.get("question_candidates") or payload.get("questionCandidates")
            ),
            container_prompts=_prompt_candidates(
                payload.get("container_prompts") or payload.get("containerPrompts")
            ),
            constraints={
                str(key): value
                for key, value in (constraints.items() if isinstance(constraints, Mapping) else ())
                if isinstance(value, int) and not isinstance(value, bool)
            },
            likely_essay=bool(payload.get("likely_essay") or payload.get("likelyEssay")),
            options=tuple(
                str(option) for option in payload.get("options") or () if option
            ),
            option_value=text("option_value", "optionValue"),
            frame_url=text("frame_url", "frameUrl") or "",
            frame_name=text("frame_name", "frameName") or "",
            index=index,
        )


def _mapping_text(payload: Mapping[str, object], *keys: str) -> Optional[str]:
    for key in keys:
        value = payload.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _prompt_candidates(raw: object) -> Tuple[PromptCandidate, ...]:
    if not isinstance(raw, (list, tuple)):
        return ()
    candidates = []
    for entry in raw:
        if not isinstance(entry, Mapping):
            continue
        text = _mapping_text(entry, "text")
        if not text:
            continue
        score = entry.get("score")
        candidates.append(
            PromptCandidate(
                source=str(entry.get("source") or "unknown"),
                text=text,
                score=int(score) if isinstance(score, (int, float)) else 0,
            )
        )
    return tuple(candidates)


@dataclass(slots=True)
class FillPlanAction:
    field: str
    action: ActionKind = "fill"
    field_id: Optional[str] = None
    label: Optional[str] = None
    selector: Optional[str] = None
    value: str = ""
    confidence: Optional[float] = None
    requires_user_review: bool = False

    @property
    def is_executable(self) -> bool:
        return self.action in EXECUTABLE_ACTIONS


@dataclass(slots=True)
class FilledField:
    field: str
    value: str
    confidence: Optional[float] = None


@dataclass(slots=True)
class Suggestion:
    field: str
    suggestion: str


@dataclass(slots=True)
class FillPlanResult:
    """Aggregate outcome of planning or executing a fill.

    A field name is never listed in both ``filled`` and ``blocked``: blocking
    withdraws an earlier fill entry and later fills of a blocked field are
    refused.
    """

    filled: List[FilledField] = field(default_factory=list)
    suggestions: List[Suggestion] = field(default_factory=list)
    blocked: List[str] = field(default_factory=list)
    actions: List[FillPlanAction] = field(default_factory=list)

    def record_fill(
        self, field_name: str, value: str, confidence: Optional[float] = None
    ) -> bool:
        if field_name in self.blocked:
            return False
        self.filled.append(
            FilledField(field=field_name, value=value, confidence=confidence)
        )
        return True

    def record_block(self, field_name: str) -> None:
        self.filled = [entry for entry in self.filled if entry.field != field_name]
        if field_name not in self.blocked:
            self.blocked.append(field_name)

    def suggest(self, field_name: str, suggestion: str) -> None:
        self.suggestions.append(Suggestion(field=field_name, suggestion=suggestion))

    @property
    def has_fills(self) -> bool:
        return bool(self.filled)

    def is_empty(self) -> bool:
        return not (self.filled or self.suggestions or self.blocked)

    def to_dict(self) -> Dict[str, object]:
        return {
            "filled": [asdict(entry) for entry in self.filled],
            "suggestions": [asdict(entry) for entry in self.suggestions],
            "blocked": list(self.blocked),
            "actions": [asdict(action) for action in self.actions],
        }


__all__ = [
    "ACTION_KINDS",
    "ActionKind",
    "EXECUTABLE_ACTIONS",
    "FieldDescriptor",
    "FieldKind",
    "FieldLocator",
    "FillPlanAction",
    "FillPlanResult",
    "FilledField",
    "PromptCandidate",
    "Suggestion",
    "field_kind_for",
]
