"""Navigation helpers that tolerate pages which never reach ``load``."""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Dict, Optional, TypeVar

from playwright.async_api import Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

T = TypeVar("T")


async def _with_load_fallback(
    attempt: Callable[[str], Awaitable[T]],
    wait_until: str,
    logger: Optional[logging.Logger],
) -> T:
    try:
        return await attempt(wait_until)
    except PlaywrightTimeoutError:
        # only plain "load" is worth retrying; stricter states fail as asked
        if wait_until != "load":
            raise
        if logger:
            logger.debug("load state timed out, retrying with domcontentloaded")
        return await attempt("domcontentloaded")


async def safe_goto(
    page: Page,
    url: str,
    *,
    wait_until: str = "load",
    timeout_ms: int = 20000,
    logger: Optional[logging.Logger] = None,
):
    return await _with_load_fallback(
        lambda state: page.goto(url, wait_until=state, timeout=timeout_ms),
        wait_until,
        logger,
    )


async def wait_for_page_ready(
    page: Page,
    *,
    wait_until: str = "load",
    timeout_ms: int = 20000,
    logger: Optional[logging.Logger] = None,
) -> None:
    await _with_load_fallback(
        lambda state: page.wait_for_load_state(state, timeout=timeout_ms),
        wait_until,
        logger,
    )


async def page_context_summary(page: Page) -> Dict[str, str]:
    """URL and title of the page, handed to generated plans as context."""
    return {"url": page.url, "title": await page.title()}


__all__ = ["page_context_summary", "safe_goto", "wait_for_page_ready"]
