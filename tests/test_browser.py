"""Tests for navigation and page readiness.

@file test_browser.py
@description ``BrowserSession.goto`` navigates and then waits for the page to
             settle; a ``load`` state that never arrives falls back to
             ``domcontentloaded``. The browser itself is never launched.
"""

from __future__ import annotations

import asyncio
from typing import List, Optional

import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from autofill.browser import BrowserConfig, BrowserSession
from autofill.page_utils import wait_for_page_ready


class NavigationPage:
    def __init__(self, *, load_hangs: bool = False) -> None:
        self.load_hangs = load_hangs
        self.calls: List[tuple] = []

    async def goto(self, url: str, wait_until: str = "load", timeout: Optional[float] = None):
        self.calls.append(("goto", url, wait_until, timeout))
        if self.load_hangs and wait_until == "load":
            raise PlaywrightTimeoutError("Timeout exceeded while waiting for load")
        return None

    async def wait_for_load_state(self, state: str = "load", timeout: Optional[float] = None) -> None:
        self.calls.append(("wait_for_load_state", state, timeout))
        if self.load_hangs and state == "load":
            raise PlaywrightTimeoutError("Timeout exceeded while waiting for load")


def _session_with(page: NavigationPage) -> BrowserSession:
    session = BrowserSession(BrowserConfig(navigation_timeout_ms=1000, settle_timeout_ms=200))
    session._page = page  # type: ignore[assignment]
    return session


def test_goto_waits_for_the_page_to_settle() -> None:
    page = NavigationPage()
    returned = asyncio.run(_session_with(page).goto("https://jobs.example.com/apply"))

    assert returned is page
    assert page.calls == [
        ("goto", "https://jobs.example.com/apply", "load", 1000),
        ("wait_for_load_state", "load", 200),
    ]


def test_goto_falls_back_when_load_never_fires() -> None:
    page = NavigationPage(load_hangs=True)
    asyncio.run(_session_with(page).goto("https://jobs.example.com/apply"))

    assert [call[:3] for call in page.calls] == [
        ("goto", "https://jobs.example.com/apply", "load"),
        ("goto", "https://jobs.example.com/apply", "domcontentloaded"),
        ("wait_for_load_state", "load", 200),
        ("wait_for_load_state", "domcontentloaded", 200),
    ]


def test_stricter_ready_state_is_not_retried() -> None:
    page = NavigationPage(load_hangs=True)

    async def never_idle(state: str = "load", timeout: Optional[float] = None) -> None:
        page.calls.append(("wait_for_load_state", state, timeout))
        raise PlaywrightTimeoutError("Timeout exceeded while waiting for networkidle")

    page.wait_for_load_state = never_idle  # type: ignore[method-assign]
    with pytest.raises(PlaywrightTimeoutError):
        asyncio.run(wait_for_page_ready(page, wait_until="networkidle"))  # type: ignore[arg-type]
    assert page.calls == [("wait_for_load_state", "networkidle", 20000)]


def test_page_property_requires_a_started_session() -> None:
    with pytest.raises(RuntimeError):
        BrowserSession().page
