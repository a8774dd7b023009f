"""Discover fillable controls across every frame of a loaded page."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Iterable, List, Mapping, Optional

from playwright.async_api import Frame, Page

from .field_heuristics import (
    MAX_QUESTION_CANDIDATES,
    build_field_id,
    build_locator,
    build_prompt_candidates,
    choose_question_text,
    is_likely_essay,
    normalize_whitespace,
    parse_attribute_constraints,
    parse_text_constraints,
    rank_prompt_candidates,
)
from .form_models import FieldDescriptor, PromptCandidate, field_kind_for

LOGGER = logging.getLogger(__name__)

IGNORED_INPUT_TYPES = {"hidden", "submit", "button", "image", "reset"}
PRIMARY_SOURCES = {"label", "aria", "placeholder", "describedby"}


@dataclass(slots=True)
class ScanConfig:
    max_fields: int = 300
    max_controls_per_frame: int = 80


FIELD_SCAN_SCRIPT = """
(options) => {
  const norm = (s) => (s || '').replace(/\\s+/g, ' ').trim();
  const textOf = (el) => norm(el ? (el.textContent || el.innerText || '') : '');
  const isVisible = (el) => {
    const cs = window.getComputedStyle(el);
    if (!cs || cs.display === 'none' || cs.visibility === 'hidden') return false;
    const r = el.getBoundingClientRect();
    return r.width > 0 && r.height > 0;
  };
  const esc = (v) => (window.CSS && CSS.escape) ? CSS.escape(v) : v.replace(/[^a-zA-Z0-9_-]/g, '\\\\$&');
  const textOfIds = (ids) => norm(ids).split(/\\s+/).filter(Boolean)
    .map((id) => textOf(document.getElementById(id))).filter(Boolean).join(' ');

  const labelText = (el) => {
    try {
      if (el.labels && el.labels.length) {
        const parts = Array.from(el.labels).map(textOf).filter(Boolean);
        if (parts.length) return parts.join(' ');
      }
    } catch (err) {
      // detached labels throw in some engines
    }
    const id = el.getAttribute('id');
    if (id) {
      const text = textOf(document.querySelector(`label[for="${esc(id)}"]`));
      if (text) return text;
    }
    return textOf(el.closest('label'));
  };
  const ariaName = (el) => norm(el.getAttribute('aria-label')) || textOfIds(el.getAttribute('aria-labelledby'));
  const container = (el) => el.closest(
    "fieldset, [role='group'], .form-group, .field, .input-group, .question, .formField, section, article, li, div"
  ) || el.parentElement;

  const nearbyPrompts = (el) => {
    const prompts = [];
    const box = container(el);
    if (!box) return prompts;
    const fieldset = el.closest('fieldset');
    if (fieldset) {
      const legend = textOf(fieldset.querySelector('legend'));
      if (legend) prompts.push({ source: 'legend', text: legend });
    }
    box.querySelectorAll("h1,h2,h3,h4,h5,h6,p,.help,.hint,.description,[data-help],[data-testid*='help']")
      .forEach((node) => {
        const text = textOf(node);
        if (text && text.length <= 350) prompts.push({ source: 'container_text', text });
      });
    const siblingTags = ['div', 'p', 'span', 'h1', 'h2', 'h3', 'h4', 'h5', 'h6', 'label'];
    let sibling = el.previousElementSibling;
    let steps = 0;
    while (sibling && steps < 4) {
      if (siblingTags.includes(sibling.tagName.toLowerCase())) {
        const text = textOf(sibling);
        if (text && text.length <= 350) prompts.push({ source: 'prev_sibling', text });
      }
      sibling = sibling.previousElementSibling;
      steps += 1;
    }
    return prompts;
  };

  const controlType = (el, tag) => {
    if (tag === 'input') return norm(el.type || el.getAttribute('type')).toLowerCase() || 'text';
    if (tag === 'textarea' || tag === 'select') return tag;
    if (el.getAttribute('role') === 'textbox' || el.getAttribute('contenteditable') === 'true') return 'richtext';
    return tag;
  };

  const controls = Array.from(
    document.querySelectorAll('input, textarea, select, [contenteditable="true"], [role="textbox"]')
  ).slice(0, options.maxControls);

  const fields = [];
  controls.forEach((el, rawIndex) => {
    const tag = el.tagName.toLowerCase();
    const type = controlType(el, tag);
    if (tag === 'input' && ['hidden', 'submit', 'button', 'image', 'reset'].includes(type)) return;
    if (!isVisible(el)) return;
    fields.push({
      rawIndex,
      tag,
      type,
      id: norm(el.getAttribute('id')) || null,
      name: norm(el.getAttribute('name')) || null,
      label: labelText(el),
      ariaName: ariaName(el),
      describedBy: textOfIds(el.getAttribute('aria-describedby')),
      placeholder: norm(el.getAttribute('placeholder')),
      autocomplete: norm(el.getAttribute('autocomplete')) || null,
      required: !!el.required || el.getAttribute('aria-required') === 'true',
      maxlength: el.getAttribute('maxlength'),
      minlength: el.getAttribute('minlength'),
      nearbyPrompts: nearbyPrompts(el),
      options: tag === 'select' ? Array.from(el.options || []).map((opt) => norm(opt.label || opt.textContent)).filter(Boolean) : [],
      optionValue: ['radio', 'checkbox'].includes(type) ? norm(el.getAttribute('value')) || null : null,
    });
  });
  return fields;
}
"""


def build_field_descriptor(
    raw: Mapping[str, object],
    *,
    frame_url: str = "",
    frame_name: str = "",
    index: int = 0,
) -> Optional[FieldDescriptor]:
    """Turn one raw control record from the page into a descriptor."""
    tag = str(raw.get("tag") or "input").lower()
    input_type = normalize_whitespace(str(raw.get("type") or "")).lower()
    if not input_type:
        input_type = "text" if tag == "input" else tag
    if tag == "input" and input_type in IGNORED_INPUT_TYPES:
        return None

    dom_id = normalize_whitespace(_text(raw.get("id"))) or None
    name = normalize_whitespace(_text(raw.get("name"))) or None
    label = normalize_whitespace(_text(raw.get("label")))
    aria_name = normalize_whitespace(_text(raw.get("ariaName")))
    described_by = normalize_whitespace(_text(raw.get("describedBy")))
    placeholder = normalize_whitespace(_text(raw.get("placeholder")))
    option_value = (
        normalize_whitespace(_text(raw.get("optionValue"))) or None
        if input_type in {"radio", "checkbox"}
        else None
    )

    nearby = [
        PromptCandidate(source=str(prompt.get("source") or "container_text"), text=text)
        for prompt in raw.get("nearbyPrompts") or []
        if isinstance(prompt, Mapping)
        for text in [normalize_whitespace(_text(prompt.get("text")))]
        if text
    ]
    candidates = build_prompt_candidates(
        label=label,
        aria_name=aria_name,
        placeholder=placeholder,
        described_by=described_by,
        nearby=nearby,
    )
    question_text = choose_question_text(candidates)

    constraints = parse_attribute_constraints(
        _optional_text(raw.get("maxlength")), _optional_text(raw.get("minlength"))
    )
    constraints.update(parse_text_constraints(f"{question_text} {described_by}"))

    kind = field_kind_for(tag, input_type)
    raw_index = raw.get("rawIndex")
    fallback_index = raw_index if isinstance(raw_index, int) else index
    field_id = build_field_id(
        dom_id,
        name,
        (label, aria_name, question_text, placeholder, name),
        fallback_index,
    )
    locator = build_locator(
        tag,
        dom_id=dom_id,
        name=name,
        best_label=label or aria_name or question_text or placeholder,
        placeholder=placeholder,
        option_value=option_value,
    )
    return FieldDescriptor(
        field_id=field_id,
        tag=tag,
        input_type=input_type,
        kind=kind,
        locator=locator,
        dom_id=dom_id,
        name=name,
        label=label or None,
        aria_name=aria_name or None,
        placeholder=placeholder or None,
        described_by=described_by or None,
        autocomplete=_optional_text(raw.get("autocomplete")),
        required=bool(raw.get("required")),
        question_text=question_text or None,
        question_candidates=tuple(
            rank_prompt_candidates(candidates)[:MAX_QUESTION_CANDIDATES]
        ),
        container_prompts=tuple(
            candidate for candidate in candidates if candidate.source not in PRIMARY_SOURCES
        ),
        constraints=constraints,
        likely_essay=is_likely_essay(
            kind,
            constraints,
            question_text=question_text,
            label=label,
            described_by=described_by,
        ),
        options=tuple(str(option) for option in raw.get("options") or [] if option),
        option_value=option_value,
        frame_url=frame_url,
        frame_name=frame_name,
        index=index,
    )


def _text(value: object) -> str:
    return value if isinstance(value, str) else ""


def _optional_text(value: object) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


async def collect_page_fields_from_frame(
    frame: Frame, *, frame_name: str, config: Optional[ScanConfig] = None
) -> List[FieldDescriptor]:
    cfg = config or ScanConfig()
    frame_url = frame.url
    raw_fields = await frame.evaluate(
        FIELD_SCAN_SCRIPT, {"maxControls": cfg.max_controls_per_frame}
    )
    descriptors: List[FieldDescriptor] = []
    for raw in raw_fields or []:
        if not isinstance(raw, Mapping):
            continue
        descriptor = build_field_descriptor(
            raw, frame_url=frame_url, frame_name=frame_name, index=len(descriptors)
        )
        if descriptor:
            descriptors.append(descriptor)
    return descriptors


async def _scan_frame_safely(
    frame: Frame, position: int, config: ScanConfig, logger: logging.Logger
) -> List[FieldDescriptor]:
    frame_name = frame.name or f"frame-{position}"
    try:
        fields = await collect_page_fields_from_frame(
            frame, frame_name=frame_name, config=config
        )
    except Exception as exc:  # noqa: BLE001
        logger.warning("Field scan failed for frame %s (%s): %s", frame_name, frame.url, exc)
        return []
    logger.debug("Frame %s yielded %d fields", frame_name, len(fields))
    return fields


def merge_frame_fields(
    batches: Iterable[List[FieldDescriptor]], max_fields: int
) -> List[FieldDescriptor]:
    """Flatten per-frame results in frame order, dropping repeats, capped."""
    merged: List[FieldDescriptor] = []
    seen = set()
    for batch in batches:
        for descriptor in batch:
            key = (
                descriptor.frame_url,
                descriptor.field_id,
                descriptor.selector,
                descriptor.index,
            )
            if key in seen:
                continue
            seen.add(key)
            merged.append(descriptor)
            if len(merged) >= max_fields:
                return _reindex(merged)
    return _reindex(merged)


def _reindex(fields: List[FieldDescriptor]) -> List[FieldDescriptor]:
    return [
        field if field.index == position else replace(field, index=position)
        for position, field in enumerate(fields)
    ]


async def collect_page_fields(
    page: Page,
    logger: Optional[logging.Logger] = None,
    *,
    config: Optional[ScanConfig] = None,
) -> List[FieldDescriptor]:
    """Scan every frame concurrently and merge the results in frame order."""
    log = logger or LOGGER
    cfg = config or ScanConfig()
    frames = list(page.frames)
    batches = await asyncio.gather(
        *(_scan_frame_safely(frame, position, cfg, log) for position, frame in enumerate(frames))
    )
    merged = merge_frame_fields(batches, cfg.max_fields)
    if merged:
        log.info("Collected %d fields from %d frames", len(merged), len(frames))
        return merged

    main_frame = page.main_frame
    log.debug("No fields found across frames, rescanning main frame")
    try:
        fields = await collect_page_fields_from_frame(
            main_frame, frame_name=main_frame.name or "main", config=cfg
        )
    except Exception as exc:  # noqa: BLE001
        log.warning("Main frame field scan failed: %s", exc)
        return []
    return fields[: cfg.max_fields]


__all__ = [
    "FIELD_SCAN_SCRIPT",
    "ScanConfig",
    "build_field_descriptor",
    "collect_page_fields",
    "collect_page_fields_from_frame",
    "merge_frame_fields",
]
