"""Async Playwright wrapper owning one browser and one application page."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from playwright.async_api import (
    Browser,
    BrowserContext,
    Page,
    Playwright,
    async_playwright,
)

from .page_utils import safe_goto, wait_for_page_ready


@dataclass(slots=True)
class BrowserConfig:
    headless: bool = True
    slow_mo: float = 0
    navigation_timeout_ms: int = 45000
    # extra wait for late-rendering forms before a scan
    settle_timeout_ms: int = 5000
    viewport_width: int = 1400
    viewport_height: int = 1400


class BrowserSession:
    """``async with`` context that launches Chromium and opens a single page."""

    def __init__(
        self,
        config: Optional[BrowserConfig] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.config = config or BrowserConfig()
        self._logger = logger
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None

    async def __aenter__(self) -> "BrowserSession":
        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(
            headless=self.config.headless, slow_mo=self.config.slow_mo
        )
        self._context = await self._browser.new_context(
            viewport={
                "width": self.config.viewport_width,
                "height": self.config.viewport_height,
            }
        )
        self._page = await self._context.new_page()
        self._page.set_default_timeout(self.config.navigation_timeout_ms)
        self._page.set_default_navigation_timeout(self.config.navigation_timeout_ms)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    @property
    def page(self) -> Page:
        if not self._page:
            raise RuntimeError("BrowserSession is not started")
        return self._page

    async def goto(self, url: str) -> Page:
        await safe_goto(
            self.page,
            url,
            timeout_ms=self.config.navigation_timeout_ms,
            logger=self._logger,
        )
        await wait_for_page_ready(
            self.page, timeout_ms=self.config.settle_timeout_ms, logger=self._logger
        )
        return self.page

    async def screenshot(self, path: Path, *, full_page: bool = True) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        await self.page.screenshot(path=str(path), full_page=full_page)
        return path

    async def close(self) -> None:
        if self._context:
            await self._context.close()
            self._context = None
        if self._browser:
            await self._browser.close()
            self._browser = None
        if self._playwright:
            await self._playwright.stop()
            self._playwright = None
        self._page = None


__all__ = ["BrowserConfig", "BrowserSession"]
