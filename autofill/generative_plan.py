"""Optional generated fill plans from an OpenAI-compatible chat endpoint.

The alias plan is deterministic and preferred. When it recognizes nothing the
orchestrator may ask a chat model for a plan instead; whatever comes back is
treated as untrusted input and normalized by ``fill_plan``.

Configuration is read from the environment at call time:
  OPENAI_API_KEY         -> required to enable the provider
  OPENAI_AUTOFILL_MODEL  -> model name (default: gpt-4o-mini)
  OPENAI_BASE_URL        -> endpoint root (default: https://api.openai.com/v1)
"""

from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Protocol, Sequence

import httpx

from .form_models import FieldDescriptor
from .profile import Profile

LOGGER = logging.getLogger(__name__)

_OPENAI_BASE = "https://api.openai.com/v1"
_DEFAULT_MODEL = "gpt-4o-mini"
_TIMEOUT = 60  # seconds
_FENCED_JSON = re.compile(r"```(?:json)?\s*([\s\S]*?)```", re.IGNORECASE)
_BRACKETED = re.compile(r"\[[\s\S]*\]")

AUTOFILL_PLAN_SYSTEM_PROMPT = (
    "You fill job application forms on behalf of a candidate. "
    "Only use facts present in the candidate profile. "
    "Never answer demographic, veteran, disability or other EEO questions; "
    "mark them requires_user_review. "
    "Return a single JSON object and nothing else."
)


@dataclass(slots=True)
class GenerativePlan:
    actions: List[Mapping[str, object]] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


class GenerativePlanProvider(Protocol):
    async def __call__(
        self,
        fields: Sequence[FieldDescriptor],
        profile: Profile,
        job_context: Mapping[str, object],
        page_context: Mapping[str, object],
    ) -> Optional[GenerativePlan]: ...


def _parse_json(text: str) -> object:
    try:
        return json.loads(text)
    except ValueError:
        return None


def extract_json_payload(text: str) -> Optional[object]:
    """Pull a JSON object out of a model reply (bare, fenced or embedded)."""
    trimmed = (text or "").strip()
    if not trimmed:
        return None
    direct = _parse_json(trimmed)
    if direct is not None:
        return direct
    fenced = _FENCED_JSON.search(trimmed)
    if fenced:
        parsed = _parse_json(fenced.group(1).strip())
        if parsed is not None:
            return parsed
    start, end = trimmed.find("{"), trimmed.rfind("}")
    if start >= 0 and end > start:
        return _parse_json(trimmed[start : end + 1])
    return None


def extract_json_array_payload(text: str) -> Optional[list]:
    trimmed = (text or "").strip()
    if not trimmed:
        return None
    direct = _parse_json(trimmed)
    if isinstance(direct, list):
        return direct
    fenced = _FENCED_JSON.search(trimmed)
    if fenced:
        parsed = _parse_json(fenced.group(1).strip())
        if isinstance(parsed, list):
            return parsed
    bracketed = _BRACKETED.search(trimmed)
    if bracketed:
        parsed = _parse_json(bracketed.group(0))
        if isinstance(parsed, list):
            return parsed
    return None


def parse_generative_plan(payload: object) -> Optional[GenerativePlan]:
    """Accept ``{"result": {"fill_plan": [...]}}``, ``{"fill_plan": [...]}`` or a bare list."""
    if isinstance(payload, list):
        return GenerativePlan(actions=[entry for entry in payload if isinstance(entry, Mapping)])
    if not isinstance(payload, Mapping):
        return None
    container = payload.get("result") if isinstance(payload.get("result"), Mapping) else payload
    actions = container.get("fill_plan")
    if not isinstance(actions, list):
        return None
    warnings = payload.get("warnings") or container.get("warnings") or []
    return GenerativePlan(
        actions=[entry for entry in actions if isinstance(entry, Mapping)],
        warnings=[str(warning) for warning in warnings] if isinstance(warnings, list) else [],
    )


def _field_summary(field: FieldDescriptor) -> Dict[str, object]:
    summary: Dict[str, object] = {
        "field_id": field.field_id,
        "type": field.kind.value,
        "question": field.question_text or field.label or field.placeholder or "",
        "required": field.required,
        "selector": field.selector,
    }
    if field.options:
        summary["options"] = list(field.options)
    if field.option_value:
        summary["option_label"] = field.label or field.option_value
    if field.constraints:
        summary["constraints"] = dict(field.constraints)
    if field.likely_essay:
        summary["likely_essay"] = True
    return summary


def build_autofill_plan_prompt(
    fields: Sequence[FieldDescriptor],
    profile: Profile,
    job_context: Optional[Mapping[str, object]] = None,
    page_context: Optional[Mapping[str, object]] = None,
) -> str:
    payload = {
        "page_fields": [_field_summary(field) for field in fields],
        "candidate_profile": profile.to_dict(),
        "job_context": dict(job_context or {}),
        "page_context": dict(page_context or {}),
    }
    return (
        "Plan how to fill the form fields below for this candidate.\n\n"
        f"{json.dumps(payload, indent=2, ensure_ascii=False)}\n\n"
        "Respond with JSON of the form:\n"
        '{"fill_plan": [{"field_id": "...", "selector": "...", "label": "...", '
        '"action": "fill|select|check|uncheck|skip", "value": "...", '
        '"confidence": 0.0, "requires_user_review": false}], "warnings": ["..."]}\n'
        "Use action skip for fields you cannot answer from the profile."
    )


@dataclass(frozen=True, slots=True)
class ChatCompletionConfig:
    api_key: str
    model: str = _DEFAULT_MODEL
    base_url: str = _OPENAI_BASE
    temperature: float = 0.2
    max_tokens: int = 2000


def resolve_chat_config(env: Optional[Mapping[str, str]] = None) -> Optional[ChatCompletionConfig]:
    env_map = env if env is not None else os.environ
    api_key = (env_map.get("OPENAI_API_KEY") or "").strip()
    if not api_key:
        return None
    return ChatCompletionConfig(
        api_key=api_key,
        model=(env_map.get("OPENAI_AUTOFILL_MODEL") or "").strip() or _DEFAULT_MODEL,
        base_url=((env_map.get("OPENAI_BASE_URL") or "").strip() or _OPENAI_BASE).rstrip("/"),
    )


class ChatCompletionPlanProvider:
    """Ask a chat-completion endpoint for a fill plan."""

    def __init__(
        self,
        config: ChatCompletionConfig,
        *,
        client: Optional[httpx.AsyncClient] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.config = config
        self._client = client or httpx.AsyncClient(timeout=_TIMEOUT)
        self._owns_client = client is None
        self._logger = logger or LOGGER

    async def __aenter__(self) -> "ChatCompletionPlanProvider":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        response = await self._client.post(
            f"{self.config.base_url}/chat/completions",
            headers={"Authorization": f"Bearer {self.config.api_key}"},
            json={
                "model": self.config.model,
                "messages": [
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                "temperature": self.config.temperature,
                "max_tokens": self.config.max_tokens,
            },
        )
        response.raise_for_status()
        data = response.json()
        choices = data.get("choices") or []
        if not choices:
            return ""
        return (choices[0].get("message") or {}).get("content") or ""

    async def __call__(
        self,
        fields: Sequence[FieldDescriptor],
        profile: Profile,
        job_context: Mapping[str, object],
        page_context: Mapping[str, object],
    ) -> Optional[GenerativePlan]:
        prompt = build_autofill_plan_prompt(fields, profile, job_context, page_context)
        content = await self.complete(AUTOFILL_PLAN_SYSTEM_PROMPT, prompt)
        if not content:
            self._logger.warning("Generated plan response was empty")
            return None
        payload = extract_json_payload(content)
        if payload is None:
            payload = extract_json_array_payload(content)
        plan = parse_generative_plan(payload)
        if plan is None:
            self._logger.warning("Generated plan response was not parseable")
        return plan


__all__ = [
    "AUTOFILL_PLAN_SYSTEM_PROMPT",
    "ChatCompletionConfig",
    "ChatCompletionPlanProvider",
    "GenerativePlan",
    "GenerativePlanProvider",
    "build_autofill_plan_prompt",
    "extract_json_array_payload",
    "extract_json_payload",
    "parse_generative_plan",
    "resolve_chat_config",
]
