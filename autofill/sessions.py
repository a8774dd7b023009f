"""Caller-owned registry of live application pages.

Each session owns exactly one page. Fill executions against that page are
serialized through the session's lock; scans and planning do not need it.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator, Dict, Mapping, Optional
from urllib.parse import urlparse

import tldextract
from playwright.async_api import Page

LOGGER = logging.getLogger(__name__)

# bundled suffix snapshot only, no fetch at runtime
_TLD_EXTRACTOR = tldextract.TLDExtract(suffix_list_urls=None)


def registered_domain(url: str) -> str:
    host = (urlparse(url or "").hostname or "").lower()
    if host.startswith("www."):
        host = host[4:]
    if not host:
        return ""
    extracted = _TLD_EXTRACTOR(host)
    if extracted.domain and extracted.suffix:
        return f"{extracted.domain}.{extracted.suffix}".lower()
    return host


@dataclass(slots=True)
class ApplicationSession:
    session_id: str
    page: Page
    url: str = ""
    job_context: Dict[str, object] = field(default_factory=dict)
    domain: str = ""
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    def is_on_site(self, url: str) -> bool:
        """True when ``url`` belongs to the site the session was opened on."""
        if not self.domain:
            return True
        return registered_domain(url) == self.domain


class SessionStore:
    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self._sessions: Dict[str, ApplicationSession] = {}
        self._logger = logger or LOGGER

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def register(
        self,
        page: Page,
        *,
        url: str = "",
        job_context: Optional[Mapping[str, object]] = None,
        session_id: Optional[str] = None,
    ) -> ApplicationSession:
        session_id = session_id or uuid.uuid4().hex
        if session_id in self._sessions:
            raise KeyError(f"Session {session_id} is already registered")
        session = ApplicationSession(
            session_id=session_id,
            page=page,
            url=url,
            job_context=dict(job_context or {}),
            domain=registered_domain(url),
        )
        self._sessions[session_id] = session
        self._logger.debug("Registered session %s for %s", session_id, session.domain or url)
        return session

    def get(self, session_id: str) -> Optional[ApplicationSession]:
        return self._sessions.get(session_id)

    def remove(self, session_id: str) -> Optional[ApplicationSession]:
        session = self._sessions.pop(session_id, None)
        if session:
            self._logger.debug("Removed session %s", session_id)
        return session

    @asynccontextmanager
    async def exclusive(self, session_id: str) -> AsyncIterator[ApplicationSession]:
        """Hold the session's page for one execution at a time."""
        session = self._sessions.get(session_id)
        if session is None:
            raise KeyError(f"Unknown session {session_id}")
        async with session.lock:
            yield session


__all__ = ["ApplicationSession", "SessionStore", "registered_domain"]
