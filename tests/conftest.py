"""Shared fixtures for the autofill test suite.

@file conftest.py
@description Browser-free fakes for Playwright pages and frames, a sample
             applicant profile and a clean environment. No live browser,
             network or API calls.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

import pytest

from autofill.profile import Profile


class FakeFrame:
    """Stands in for ``playwright.async_api.Frame`` during scans.

    ``results`` is consumed one batch per ``evaluate`` call; the last batch
    repeats once the others are used up.
    """

    def __init__(
        self,
        results: Optional[List[List[Dict[str, Any]]]] = None,
        *,
        url: str = "https://jobs.example.com/apply",
        name: str = "",
        error: Optional[Exception] = None,
    ) -> None:
        self.url = url
        self.name = name
        self._results = list(results) if results is not None else [[]]
        self._error = error
        self.calls = 0

    async def evaluate(self, script: str, arg: Any = None) -> List[Dict[str, Any]]:
        self.calls += 1
        if self._error is not None:
            raise self._error
        if len(self._results) > 1:
            return self._results.pop(0)
        return self._results[0]


class FakePage:
    """Records dispatched actions; selectors in ``missing`` raise like a timeout."""

    def __init__(
        self,
        frames: Optional[List[FakeFrame]] = None,
        *,
        url: str = "https://jobs.example.com/apply",
        missing: Iterable[str] = (),
        title: str = "Apply",
    ) -> None:
        self.frames = frames or [FakeFrame(url=url)]
        self.main_frame = self.frames[0]
        self.url = url
        self.missing = set(missing)
        self.calls: List[tuple] = []
        self._title = title

    async def title(self) -> str:
        return self._title

    async def _act(self, name: str, selector: str, *args: Any, **kwargs: Any) -> None:
        self.calls.append((name, selector, args, kwargs))
        if selector in self.missing:
            raise TimeoutError(f"waiting for locator('{selector}')")

    async def fill(self, selector: str, value: str, timeout: Optional[float] = None) -> None:
        await self._act("fill", selector, value, timeout=timeout)

    async def select_option(
        self, selector: str, label: Optional[str] = None, timeout: Optional[float] = None
    ) -> None:
        await self._act("select_option", selector, label=label, timeout=timeout)

    async def check(self, selector: str, timeout: Optional[float] = None) -> None:
        await self._act("check", selector, timeout=timeout)

    async def uncheck(self, selector: str, timeout: Optional[float] = None) -> None:
        await self._act("uncheck", selector, timeout=timeout)


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch):
    """Keep a developer's chat credentials out of every test."""
    for key in ("OPENAI_API_KEY", "OPENAI_AUTOFILL_MODEL", "OPENAI_BASE_URL"):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def profile() -> Profile:
    return Profile.from_dict(
        {
            "name": {"first": "Ada", "last": "Lovelace"},
            "contact": {
                "email": "ada@example.com",
                "phoneCode": "+44",
                "phoneNumber": "20 7946 0958",
            },
            "location": {"city": "London", "country": "United Kingdom"},
            "links": {"linkedin": "https://www.linkedin.com/in/ada"},
            "career": {"jobTitle": "Analyst", "desiredSalary": "120,000"},
            "education": {"school": "University of London"},
            "workAuth": {"authorized": True, "needsSponsorship": False},
        }
    )


@pytest.fixture
def raw_email_field() -> Dict[str, Any]:
    """One control record shaped like the page scan script's output."""
    return {
        "rawIndex": 0,
        "tag": "input",
        "type": "email",
        "id": "email",
        "name": "email",
        "label": "Email *",
        "ariaName": "",
        "describedBy": "",
        "placeholder": "you@example.com",
        "autocomplete": "email",
        "required": True,
        "maxlength": "120",
        "minlength": None,
        "nearbyPrompts": [{"source": "container_text", "text": "We will contact you here"}],
        "options": [],
    }


@pytest.fixture
def fake_frame():
    return FakeFrame


@pytest.fixture
def fake_page():
    return FakePage
