"""Command-line interface for scanning and autofilling application forms."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from .autofill import AutofillConfig, AutofillRequest, run_autofill
from .browser import BrowserConfig, BrowserSession
from .generative_plan import ChatCompletionPlanProvider, resolve_chat_config
from .io_utils import (
    RunPaths,
    generate_run_id,
    prepare_run_directories,
    read_json,
    read_json_object,
    write_json,
)
from .label_aliases import AliasError, LabelAlias, build_alias_index, load_alias_table
from .logging_utils import build_logger
from .page_scanner import collect_page_fields
from .profile import Profile, ProfileError
from .sessions import SessionStore


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Detect job application form fields and fill them from a profile"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--run-id", dest="run_id", help="Optional run identifier")
    common.add_argument("--verbose", action="store_true", help="Enable verbose logging")

    browser_opts = argparse.ArgumentParser(add_help=False)
    browser_opts.add_argument("--headed", action="store_true", help="Show the browser window")

    scan_parser = subparsers.add_parser(
        "scan", help="List the fillable fields on a page", parents=[common, browser_opts]
    )
    scan_parser.add_argument("--url", required=True, help="Application page URL")

    plan_parser = subparsers.add_parser(
        "plan",
        help="Build a fill plan without touching the page",
        parents=[common, browser_opts],
    )
    plan_parser.add_argument(
        "--url", help="Application page URL; omit to plan against --fields or the default set"
    )
    plan_parser.add_argument(
        "--fields", type=Path, help="JSON list of field descriptors to plan against"
    )
    _add_plan_arguments(plan_parser)

    apply_parser = subparsers.add_parser(
        "apply", help="Build a fill plan and execute it", parents=[common, browser_opts]
    )
    apply_parser.add_argument("--url", required=True, help="Application page URL")
    _add_plan_arguments(apply_parser)

    aliases_parser = subparsers.add_parser(
        "aliases", help="Print the effective label alias index", parents=[common]
    )
    aliases_parser.add_argument("--aliases", type=Path, help="Custom alias table (JSON list)")

    return parser


def _add_plan_arguments(subparser: argparse.ArgumentParser) -> None:
    subparser.add_argument("--profile", type=Path, required=True, help="Profile JSON file")
    subparser.add_argument("--aliases", type=Path, help="Custom alias table (JSON list)")
    subparser.add_argument(
        "--job-context", dest="job_context", type=Path, help="Job context JSON file"
    )
    subparser.add_argument(
        "--no-llm",
        dest="no_llm",
        action="store_true",
        help="Never ask a chat model for a plan",
    )
    subparser.add_argument(
        "--llm-timeout",
        dest="llm_timeout",
        type=float,
        default=30.0,
        help="Seconds to wait for a generated plan",
    )


def _load_aliases(path: Optional[Path]) -> List[LabelAlias]:
    return load_alias_table(path) if path else []


def _load_fields(path: Optional[Path]) -> Optional[List[Dict[str, Any]]]:
    if path is None:
        return None
    payload = read_json(path)
    if not isinstance(payload, list):
        raise ValueError(f"{path} must contain a JSON list of fields")
    return payload


async def _run_scan(args: argparse.Namespace, logger: logging.Logger) -> Dict[str, Any]:
    async with BrowserSession(BrowserConfig(headless=not args.headed), logger) as browser:
        page = await browser.goto(args.url)
        fields = await collect_page_fields(page, logger)
    return {
        "url": args.url,
        "count": len(fields),
        "fields": [descriptor.to_dict() for descriptor in fields],
    }


async def _run_plan(
    args: argparse.Namespace, run_paths: RunPaths, logger: logging.Logger
) -> Dict[str, Any]:
    request = AutofillRequest(
        profile=Profile.from_dict(read_json(args.profile)),
        fields=_load_fields(getattr(args, "fields", None)),
        job_context=read_json_object(args.job_context),
        alias_records=_load_aliases(args.aliases),
        execute=args.command == "apply",
    )
    config = AutofillConfig(use_generative=not args.no_llm, generative_timeout_s=args.llm_timeout)
    chat_config = None if args.no_llm else resolve_chat_config()
    provider = ChatCompletionPlanProvider(chat_config, logger=logger) if chat_config else None
    if provider is None and not args.no_llm:
        logger.info("OPENAI_API_KEY not set; generated plans disabled")

    try:
        if not args.url:
            response = await run_autofill(request, provider=provider, logger=logger, config=config)
            return response.to_dict()

        store = SessionStore(logger)
        async with BrowserSession(BrowserConfig(headless=not args.headed), logger) as browser:
            page = await browser.goto(args.url)
            session = store.register(page, url=args.url, job_context=request.job_context)
            response = await run_autofill(
                request,
                store=store,
                session_id=session.session_id,
                provider=provider,
                logger=logger,
                config=config,
            )
            if response.execution is not None:
                await browser.screenshot(run_paths.build_path("after_fill.png"))
            store.remove(session.session_id)
        return response.to_dict()
    finally:
        if provider is not None:
            await provider.aclose()


def _run_aliases(args: argparse.Namespace) -> Dict[str, Any]:
    index = build_alias_index(_load_aliases(args.aliases))
    grouped: Dict[str, List[str]] = {}
    for alias, canonical_key in sorted(index.items()):
        grouped.setdefault(canonical_key, []).append(alias)
    return {"count": len(index), "aliases": grouped}


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    run_id = getattr(args, "run_id", None) or generate_run_id()
    run_paths = prepare_run_directories(run_id, args.command)
    logger = build_logger(run_paths, verbose=getattr(args, "verbose", False))

    try:
        if args.command == "scan":
            result = asyncio.run(_run_scan(args, logger))
        elif args.command in {"plan", "apply"}:
            result = asyncio.run(_run_plan(args, run_paths, logger))
        elif args.command == "aliases":
            result = _run_aliases(args)
        else:
            parser.error(f"Unknown command: {args.command}")
    except (AliasError, ProfileError, ValueError, OSError) as exc:
        # unreadable or invalid input files
        parser.error(str(exc))

    summary_path = run_paths.base_dir / f"{args.command}.json"
    write_json(summary_path, result)

    print(json.dumps(result, indent=2, ensure_ascii=False))


if __name__ == "__main__":  # pragma: no cover
    main()
