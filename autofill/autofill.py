"""End-to-end autofill: resolve fields, choose a plan, optionally execute it."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from playwright.async_api import Page

from .fill_plan import (
    ALIAS_CONFIDENCE,
    DEFAULT_AUTOFILL_FIELDS,
    FieldInput,
    PlanStrategy,
    build_alias_fill_plan,
    build_safe_field_plan,
    coerce_fields,
    plan_from_generative_actions,
    run_plan_strategies,
)
from .form_models import FieldDescriptor, FillPlanResult
from .generative_plan import GenerativePlanProvider
from .label_aliases import AliasIndex, LabelAlias, build_alias_index
from .page_scanner import ScanConfig, collect_page_fields
from .page_utils import page_context_summary
from .plan_executor import ExecutorConfig, apply_fill_plan
from .profile import Profile
from .sessions import ApplicationSession, SessionStore
from .value_resolver import build_autofill_value_map

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class AutofillConfig:
    use_generative: bool = True
    generative_timeout_s: float = 30.0
    alias_confidence: float = ALIAS_CONFIDENCE
    scan: ScanConfig = field(default_factory=ScanConfig)
    executor: ExecutorConfig = field(default_factory=ExecutorConfig)


@dataclass(slots=True)
class AutofillRequest:
    profile: Profile
    # client-supplied fields skip the page scan
    fields: Optional[Sequence[FieldInput]] = None
    job_context: Dict[str, object] = field(default_factory=dict)
    page_context: Dict[str, object] = field(default_factory=dict)
    alias_records: Sequence[LabelAlias] = ()
    execute: bool = False


@dataclass(slots=True)
class AutofillResponse:
    plan: FillPlanResult
    strategy: Optional[str]
    fields: List[FieldDescriptor]
    field_source: str
    execution: Optional[FillPlanResult] = None

    def to_dict(self) -> Dict[str, object]:
        payload = self.plan.to_dict()
        payload["strategy"] = self.strategy
        payload["field_source"] = self.field_source
        payload["fields"] = [descriptor.to_dict() for descriptor in self.fields]
        payload["execution"] = self.execution.to_dict() if self.execution else None
        return payload


async def resolve_fields(
    request: AutofillRequest,
    page: Optional[Page],
    logger: logging.Logger,
    config: AutofillConfig,
) -> Tuple[List[FieldDescriptor], str]:
    """Client fields first, then a page scan, then the built-in default set."""
    if request.fields:
        fields = coerce_fields(request.fields)
        if fields:
            return fields, "client"
    if page is not None:
        fields = await collect_page_fields(page, logger, config=config.scan)
        if fields:
            return fields, "scan"
    logger.info("No fields supplied or found, using default field set")
    return coerce_fields(DEFAULT_AUTOFILL_FIELDS), "default"


async def _page_context(page: Optional[Page], logger: logging.Logger) -> Dict[str, object]:
    if page is None:
        return {}
    try:
        return dict(await page_context_summary(page))
    except Exception as exc:  # noqa: BLE001
        logger.debug("Page context unavailable: %s", exc)
        return {}


def build_plan_strategies(
    *,
    fields: List[FieldDescriptor],
    profile: Profile,
    alias_index: AliasIndex,
    job_context: Mapping[str, object],
    page_context: Mapping[str, object],
    provider: Optional[GenerativePlanProvider],
    config: AutofillConfig,
    logger: logging.Logger,
) -> List[PlanStrategy]:
    value_map = build_autofill_value_map(profile, job_context)
    strategies = [
        PlanStrategy(
            name="alias",
            build=lambda: build_alias_fill_plan(
                fields, alias_index, value_map, logger, confidence=config.alias_confidence
            ),
        )
    ]

    if provider is not None and config.use_generative:

        async def generative() -> Optional[FillPlanResult]:
            try:
                plan = await asyncio.wait_for(
                    provider(fields, profile, job_context, page_context),
                    timeout=config.generative_timeout_s,
                )
            except asyncio.TimeoutError:
                logger.warning(
                    "Generated plan timed out after %.1fs", config.generative_timeout_s
                )
                return None
            if plan is None:
                return None
            return plan_from_generative_actions(plan.actions, alias_index, plan.warnings)

        strategies.append(PlanStrategy(name="generative", build=generative))

    strategies.append(
        PlanStrategy(name="static", build=lambda: build_safe_field_plan(profile), last_resort=True)
    )
    return strategies


async def run_autofill(
    request: AutofillRequest,
    *,
    store: Optional[SessionStore] = None,
    session_id: Optional[str] = None,
    provider: Optional[GenerativePlanProvider] = None,
    logger: Optional[logging.Logger] = None,
    config: Optional[AutofillConfig] = None,
) -> AutofillResponse:
    log = logger or LOGGER
    cfg = config or AutofillConfig()

    session: Optional[ApplicationSession] = None
    if session_id is not None:
        if store is None:
            raise ValueError("session_id given without a session store")
        session = store.get(session_id)
        if session is None:
            raise KeyError(f"Unknown session {session_id}")
    page = session.page if session else None
    if session and not session.is_on_site(page.url):
        log.warning("Session %s page left %s: %s", session.session_id, session.domain, page.url)

    job_context: Dict[str, object] = dict(session.job_context if session else {})
    job_context.update(request.job_context)
    page_context = dict(request.page_context) or await _page_context(page, log)

    fields, field_source = await resolve_fields(request, page, log, cfg)
    log.info("Planning %d fields (%s)", len(fields), field_source)

    alias_index = build_alias_index(request.alias_records)
    strategies = build_plan_strategies(
        fields=fields,
        profile=request.profile,
        alias_index=alias_index,
        job_context=job_context,
        page_context=page_context,
        provider=provider,
        config=cfg,
        logger=log,
    )
    outcome = await run_plan_strategies(strategies, log)
    response = AutofillResponse(
        plan=outcome.result,
        strategy=outcome.strategy,
        fields=fields,
        field_source=field_source,
    )

    if not request.execute:
        return response
    if session is None:
        log.warning("Execution requested without a session; returning plan only")
        return response
    async with store.exclusive(session.session_id) as owned:
        response.execution = await apply_fill_plan(
            owned.page, outcome.result.actions, log, config=cfg.executor
        )
    return response


__all__ = [
    "AutofillConfig",
    "AutofillRequest",
    "AutofillResponse",
    "build_plan_strategies",
    "resolve_fields",
    "run_autofill",
]
