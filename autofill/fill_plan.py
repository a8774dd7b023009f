"""Turn matched fields and resolved values into fill plans."""

from __future__ import annotations

import inspect
import json
import logging
from dataclasses import dataclass
from typing import (
    Awaitable,
    Callable,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    Union,
)

from .field_heuristics import css_escape, css_string
from .form_models import (
    ACTION_KINDS,
    FieldDescriptor,
    FieldKind,
    FillPlanAction,
    FillPlanResult,
)
from .label_aliases import AliasIndex, match_label_to_canonical, normalize_label_alias
from .profile import Profile, format_phone
from .value_resolver import ValueMap

LOGGER = logging.getLogger(__name__)

ALIAS_CONFIDENCE = 0.75
# canonical keys that need generated prose rather than a profile lookup
SKIP_KEYS = frozenset({"cover_letter"})
SENSITIVE_BLOCKED = ("EEO", "veteran_status", "disability")
AFFIRMATIVE_VALUES = {"yes", "y", "true", "1", "on", "checked"}
NEGATIVE_VALUES = {"no", "n", "false", "0", "off", "unchecked"}

DEFAULT_AUTOFILL_FIELDS = [
    {"field_id": "first_name", "label": "First name", "type": "text", "required": True},
    {"field_id": "last_name", "label": "Last name", "type": "text", "required": True},
    {"field_id": "email", "label": "Email", "type": "text", "required": True},
    {"field_id": "phone_code", "label": "Phone code", "type": "text"},
    {"field_id": "phone_number", "label": "Phone number", "type": "text"},
    {"field_id": "phone", "label": "Phone", "type": "text"},
    {"field_id": "address", "label": "Address", "type": "text"},
    {"field_id": "city", "label": "City", "type": "text"},
    {"field_id": "state", "label": "State/Province", "type": "text"},
    {"field_id": "country", "label": "Country", "type": "text"},
    {"field_id": "postal_code", "label": "Postal code", "type": "text"},
    {"field_id": "linkedin", "label": "LinkedIn", "type": "text"},
    {"field_id": "job_title", "label": "Job title", "type": "text"},
    {"field_id": "current_company", "label": "Current company", "type": "text"},
    {"field_id": "years_exp", "label": "Years of experience", "type": "number"},
    {"field_id": "desired_salary", "label": "Desired salary", "type": "text"},
    {"field_id": "school", "label": "School", "type": "text"},
    {"field_id": "degree", "label": "Degree", "type": "text"},
    {"field_id": "major_field", "label": "Major/Field", "type": "text"},
    {"field_id": "graduation_at", "label": "Graduation date", "type": "text"},
    {"field_id": "work_auth", "label": "Authorized to work?", "type": "checkbox"},
]

FieldInput = Union[FieldDescriptor, Mapping[str, object]]


def coerce_fields(fields: Optional[Iterable[FieldInput]]) -> List[FieldDescriptor]:
    descriptors: List[FieldDescriptor] = []
    for index, field in enumerate(fields or ()):
        if isinstance(field, FieldDescriptor):
            descriptors.append(field)
        elif isinstance(field, Mapping):
            descriptors.append(FieldDescriptor.from_dict(field, index=index))
    return descriptors


def collect_label_candidates(field: FieldDescriptor) -> List[str]:
    """Texts to try against the alias index, most specific first."""
    primary = field.question_candidates[0].text if field.question_candidates else None
    ordered = [
        primary,
        field.question_text,
        field.label,
        field.aria_name,
        field.placeholder,
        field.described_by,
        field.field_id,
        field.name,
        field.dom_id,
    ]
    ordered.extend(prompt.text for prompt in field.container_prompts)
    return [text for text in ordered if text and text.strip()]


def match_field(
    field: FieldDescriptor, alias_index: AliasIndex
) -> Tuple[Optional[str], str]:
    for candidate in collect_label_candidates(field):
        canonical_key = match_label_to_canonical(candidate, alias_index)
        if canonical_key:
            return canonical_key, candidate
    return None, ""


def build_field_selector(field: FieldDescriptor) -> Optional[str]:
    if field.selector:
        return field.selector
    if field.dom_id:
        return f"#{css_escape(field.dom_id)}"
    name = field.field_id or field.name
    if not name:
        return None
    selector = f'[name="{css_string(name)}"]'
    if field.kind == FieldKind.RADIO and field.option_value:
        selector += f'[value="{css_string(field.option_value)}"]'
    return selector


def _answer_class(text: str) -> str:
    answer = text.strip().lower()
    if answer in AFFIRMATIVE_VALUES:
        return "yes"
    if answer in NEGATIVE_VALUES:
        return "no"
    return ""


def radio_option_matches(field: FieldDescriptor, value: str) -> bool:
    """True when this radio option is the one that answers ``value``."""
    wanted = normalize_label_alias(value)
    if not wanted:
        return False
    for text in (field.label, field.aria_name, field.option_value):
        if text and normalize_label_alias(text) == wanted:
            return True
    wanted_class = _answer_class(value)
    return bool(wanted_class) and any(
        text and _answer_class(text) == wanted_class
        for text in (field.label, field.option_value)
    )


def infer_field_action(field: FieldDescriptor, value: str) -> Optional[str]:
    """Pick the action for a field, or ``None`` when it cannot be done safely."""
    if field.kind == FieldKind.SELECT:
        return "select"
    if field.kind == FieldKind.RADIO:
        return "check" if radio_option_matches(field, value) else None
    if field.kind == FieldKind.CHECKBOX:
        answer = _answer_class(value)
        if answer == "yes":
            return "check"
        if answer == "no":
            return "uncheck"
        return None
    if field.kind == FieldKind.FILE:
        return None
    return "fill"


def build_alias_fill_plan(
    fields: Optional[Iterable[FieldInput]],
    alias_index: AliasIndex,
    value_map: ValueMap,
    logger: Optional[logging.Logger] = None,
    *,
    confidence: float = ALIAS_CONFIDENCE,
) -> FillPlanResult:
    log = logger or LOGGER
    result = FillPlanResult()
    seen = set()
    # radio group -> first option's field name, for groups still unanswered
    open_groups: Dict[str, str] = {}

    for field in coerce_fields(fields):
        canonical_key, matched_label = match_field(field, alias_index)
        if not canonical_key:
            continue
        if canonical_key in SKIP_KEYS:
            log.debug("Skipping %s: %s is filled by hand", field.canonical_name(), canonical_key)
            continue

        field_name = (
            field.field_id or field.name or field.dom_id or matched_label or canonical_key
        ).strip() or canonical_key
        group = None
        if field.kind == FieldKind.RADIO:
            group = f"radio:{field.name or matched_label or field_name}"
            if group in seen:
                continue
        elif field_name in seen:
            continue

        value = (value_map.get(canonical_key) or "").strip()
        if not value:
            seen.add(group or field_name)
            result.suggest(field_name, f"No data available for {canonical_key}")
            continue

        selector = build_field_selector(field)
        action = infer_field_action(field, value)
        if group and selector and not action:
            # another option in the group may carry the answer
            open_groups.setdefault(group, field_name)
            continue
        seen.add(group or field_name)
        if group:
            open_groups.pop(group, None)
        if not selector or not action:
            log.debug("Blocking %s (selector=%s, action=%s)", field_name, selector, action)
            result.record_block(field_name)
            continue

        label = (
            matched_label
            or field.label
            or field.question_text
            or field.aria_name
            or field_name
        ).strip()
        result.actions.append(
            FillPlanAction(
                field=field_name,
                field_id=(field.field_id or field.name or field.dom_id or None),
                label=label or None,
                selector=selector,
                action=action,
                value=value,
                confidence=confidence,
            )
        )
        result.record_fill(field_name, value, confidence)

    for group, field_name in open_groups.items():
        log.debug("Blocking %s: no option matches the answer", group)
        result.record_block(field_name)

    log.debug(
        "Alias plan: %d filled, %d suggestions, %d blocked",
        len(result.filled),
        len(result.suggestions),
        len(result.blocked),
    )
    return result


def should_skip_plan_field(entry: Mapping[str, object], alias_index: AliasIndex) -> bool:
    for key in ("field_id", "label", "selector"):
        candidate = entry.get(key)
        if not isinstance(candidate, str) or not candidate.strip():
            continue
        if match_label_to_canonical(candidate, alias_index) in SKIP_KEYS:
            return True
    return False


def _plan_value(value: object) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value if value is not None else "")


def plan_from_generative_actions(
    raw_plan: Sequence[object],
    alias_index: AliasIndex,
    warnings: Sequence[object] = (),
) -> FillPlanResult:
    """Normalize an untrusted generated plan into a ``FillPlanResult``."""
    result = FillPlanResult()
    for entry in raw_plan:
        if not isinstance(entry, Mapping):
            continue
        if should_skip_plan_field(entry, alias_index):
            continue
        field_id = entry.get("field_id") if isinstance(entry.get("field_id"), str) else None
        selector = entry.get("selector") if isinstance(entry.get("selector"), str) else None
        label = entry.get("label") if isinstance(entry.get("label"), str) else None
        field_name = str(field_id or selector or label or "field")
        action_kind = str(entry.get("action") or "fill").lower()
        requires_review = bool(entry.get("requires_user_review"))
        if action_kind not in ACTION_KINDS:
            requires_review = True
        if requires_review:
            result.record_block(field_name)
        if action_kind == "skip" or action_kind not in ACTION_KINDS:
            continue
        confidence = entry.get("confidence")
        action = FillPlanAction(
            field=field_name,
            field_id=field_id,
            label=label,
            selector=selector,
            action=action_kind,  # type: ignore[arg-type]
            value=_plan_value(entry.get("value")),
            confidence=(
                float(confidence)
                if isinstance(confidence, (int, float)) and not isinstance(confidence, bool)
                else None
            ),
            requires_user_review=requires_review,
        )
        result.actions.append(action)
        if action.is_executable and not requires_review:
            result.record_fill(field_name, action.value, action.confidence)
    for warning in warnings:
        result.suggest("note", str(warning))
    return result


def build_safe_field_plan(profile: Profile) -> FillPlanResult:
    """Plan only the low-risk profile keys; sensitive categories stay blocked."""
    safe_fields = [
        ("first_name", profile.name.first, 0.98),
        ("last_name", profile.name.last, 0.98),
        ("email", profile.contact.email, 0.97),
        ("phone_code", profile.contact.phone_code, 0.75),
        ("phone_number", profile.contact.phone_number, 0.78),
        ("phone", format_phone(profile.contact), 0.8),
        ("address", profile.location.address, 0.75),
        ("city", profile.location.city, 0.75),
        ("state", profile.location.state, 0.72),
        ("country", profile.location.country, 0.72),
        ("postal_code", profile.location.postal_code, 0.72),
        ("linkedin", profile.links.linkedin, 0.78),
        ("job_title", profile.career.job_title, 0.7),
        ("current_company", profile.career.current_company, 0.68),
        ("years_exp", profile.career.years_exp, 0.6),
        ("desired_salary", profile.career.desired_salary, 0.62),
        ("school", profile.education.school, 0.66),
        ("degree", profile.education.degree, 0.65),
        ("major_field", profile.education.major_field, 0.64),
        ("graduation_at", profile.education.graduation_at, 0.6),
    ]
    result = FillPlanResult(blocked=list(SENSITIVE_BLOCKED))
    for key, value, confidence in safe_fields:
        if not value:
            continue
        result.actions.append(
            FillPlanAction(field=key, field_id=key, action="fill", value=value, confidence=confidence)
        )
        result.record_fill(key, value, confidence)
    return result


StrategyOutcome = Union[Optional[FillPlanResult], Awaitable[Optional[FillPlanResult]]]


@dataclass(slots=True)
class PlanStrategy:
    name: str
    build: Callable[[], StrategyOutcome]
    # only consulted when no earlier strategy produced anything at all
    last_resort: bool = False


@dataclass(slots=True)
class PlanOutcome:
    result: FillPlanResult
    strategy: Optional[str]


async def run_plan_strategies(
    strategies: Sequence[PlanStrategy], logger: Optional[logging.Logger] = None
) -> PlanOutcome:
    """Run strategies in order; the first plan with fill entries wins.

    Plans that only carry suggestions or blocked fields are kept as the
    partial answer, which suppresses ``last_resort`` strategies.
    """
    log = logger or LOGGER
    partial: Optional[PlanOutcome] = None
    for strategy in strategies:
        if strategy.last_resort and partial is not None:
            continue
        try:
            outcome = strategy.build()
            if inspect.isawaitable(outcome):
                outcome = await outcome
        except Exception as exc:  # noqa: BLE001
            log.warning("Plan strategy %s failed: %s", strategy.name, exc)
            continue
        if outcome is None:
            log.debug("Plan strategy %s produced nothing", strategy.name)
            continue
        if outcome.has_fills:
            log.info("Using %s plan with %d fills", strategy.name, len(outcome.filled))
            return PlanOutcome(result=outcome, strategy=strategy.name)
        if partial is None and not outcome.is_empty():
            partial = PlanOutcome(result=outcome, strategy=strategy.name)
    if partial is not None:
        log.info("No plan produced fills; keeping partial %s plan", partial.strategy)
        return partial
    return PlanOutcome(result=FillPlanResult(), strategy=None)


__all__ = [
    "ALIAS_CONFIDENCE",
    "DEFAULT_AUTOFILL_FIELDS",
    "PlanOutcome",
    "PlanStrategy",
    "SENSITIVE_BLOCKED",
    "SKIP_KEYS",
    "build_alias_fill_plan",
    "build_field_selector",
    "build_safe_field_plan",
    "coerce_fields",
    "collect_label_candidates",
    "infer_field_action",
    "match_field",
    "plan_from_generative_actions",
    "radio_option_matches",
    "run_plan_strategies",
    "should_skip_plan_field",
]
