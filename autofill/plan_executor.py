"""Dispatch fill-plan actions against a live page."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Mapping, Optional, Union

from playwright.async_api import Page

from .field_heuristics import css_escape, css_string
from .form_models import ACTION_KINDS, FillPlanAction, FillPlanResult

LOGGER = logging.getLogger(__name__)

ActionInput = Union[FillPlanAction, Mapping[str, object]]


@dataclass(slots=True)
class ExecutorConfig:
    # per dispatched action, in place of the page default
    action_timeout_ms: int = 5000


def derive_selector(action: FillPlanAction) -> Optional[str]:
    if action.selector and action.selector.strip():
        return action.selector.strip()
    field_id = (action.field_id or "").strip()
    if not field_id:
        return None
    return (
        f'[name="{css_string(field_id)}"], '
        f"#{css_escape(field_id)}, "
        f'[id*="{css_string(field_id)}"]'
    )


def _coerce_action(entry: ActionInput) -> Optional[FillPlanAction]:
    if isinstance(entry, FillPlanAction):
        return entry
    if not isinstance(entry, Mapping):
        return None

    def text(key: str) -> Optional[str]:
        value = entry.get(key)
        return value if isinstance(value, str) and value.strip() else None

    field_id = text("field_id") or text("fieldId")
    selector = text("selector")
    label = text("label")
    value = entry.get("value")
    confidence = entry.get("confidence")
    return FillPlanAction(
        field=text("field") or field_id or selector or label or "field",
        field_id=field_id,
        label=label,
        selector=selector,
        action=str(entry.get("action") or "fill").lower(),  # type: ignore[arg-type]
        value="" if value is None else str(value),
        confidence=(
            float(confidence)
            if isinstance(confidence, (int, float)) and not isinstance(confidence, bool)
            else None
        ),
        requires_user_review=bool(entry.get("requires_user_review")),
    )


async def _dispatch(
    page: Page, action: FillPlanAction, selector: str, timeout_ms: int
) -> str:
    if action.action == "fill":
        await page.fill(selector, action.value, timeout=timeout_ms)
        return action.value
    if action.action == "select":
        await page.select_option(selector, label=action.value, timeout=timeout_ms)
        return action.value
    if action.action == "check":
        await page.check(selector, timeout=timeout_ms)
        return "check"
    await page.uncheck(selector, timeout=timeout_ms)
    return "uncheck"


async def apply_fill_plan(
    page: Page,
    actions: Iterable[ActionInput],
    logger: Optional[logging.Logger] = None,
    *,
    config: Optional[ExecutorConfig] = None,
) -> FillPlanResult:
    """Run each action once, in order; a failing action never stops the rest."""
    log = logger or LOGGER
    cfg = config or ExecutorConfig()
    result = FillPlanResult()

    for entry in actions:
        action = _coerce_action(entry)
        if action is None:
            continue
        field_name = action.field_id or action.label or action.field
        if action.action == "skip":
            continue
        if action.requires_user_review:
            log.debug("Leaving %s for review", field_name)
            result.record_block(field_name)
            continue
        if not action.is_executable:
            if action.action not in ACTION_KINDS:
                log.warning("Unknown action %r for %s", action.action, field_name)
                result.record_block(field_name)
            else:
                log.info("Not dispatching %s action for %s", action.action, field_name)
            continue

        selector = derive_selector(action)
        if not selector:
            log.debug("No selector for %s", field_name)
            result.record_block(field_name)
            continue
        try:
            recorded = await _dispatch(page, action, selector, cfg.action_timeout_ms)
        except Exception as exc:  # noqa: BLE001
            log.warning("Failed to %s %s: %s", action.action, field_name, exc)
            result.record_block(field_name)
            continue
        log.debug("Applied %s to %s via %s", action.action, field_name, selector)
        result.record_fill(field_name, recorded, action.confidence)

    log.info(
        "Executed plan: %d filled, %d blocked", len(result.filled), len(result.blocked)
    )
    return result


__all__ = ["ExecutorConfig", "apply_fill_plan", "derive_selector"]
