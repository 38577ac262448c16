"""
Shared test configuration.

Environment variables are set before anything from ``myurl`` is imported,
because settings and the database engine are created at import time.
"""

import asyncio
import os
import tempfile

_tmp_dir = tempfile.mkdtemp(prefix="myurl-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_tmp_dir, 'sessions.db')}"
os.environ["API_URL"] = "http://backend.test/api"
os.environ["FRONTEND_URL"] = "http://frontend.test"
os.environ["SITE_NAME"] = "MyUrl.life"

import httpx  # noqa: E402
import pytest  # noqa: E402

from myurl.core.models import LinkRecord, PreviewMetadata  # noqa: E402
from myurl.services.backend_client import BackendClient  # noqa: E402

API_URL = "http://backend.test/api"


def link_payload(**overrides):
    """Backend JSON for an active link."""
    payload = {
        "shortCode": "abc123",
        "originalUrl": "https://example.com/article",
        "clicks": 3,
        "createdAt": "2026-01-01T00:00:00Z",
        "expiresAt": None,
        "isActive": True,
    }
    payload.update(overrides)
    return payload


def make_link(**overrides) -> LinkRecord:
    return LinkRecord.model_validate(link_payload(**overrides))


def make_client(handler) -> BackendClient:
    """BackendClient whose requests are answered by ``handler``."""
    return BackendClient(API_URL, timeout=5.0, transport=httpx.MockTransport(handler))


async def settle(rounds: int = 10) -> None:
    """Let pending tasks run until they block again."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class ManualClock:
    """
    Replacement for asyncio.sleep that only wakes up when advanced.

    Each ``advance`` releases every sleeper once, which is one countdown tick.
    """

    def __init__(self):
        self._waiters = []

    @property
    def pending(self) -> int:
        return len([w for w in self._waiters if not w.done()])

    async def sleep(self, delay: float) -> None:
        future = asyncio.get_running_loop().create_future()
        self._waiters.append(future)
        await future

    def release(self) -> None:
        """Wake every current sleeper without letting them run yet."""
        waiters, self._waiters = self._waiters, []
        for waiter in waiters:
            if not waiter.done():
                waiter.set_result(None)

    async def advance(self, ticks: int = 1) -> None:
        for _ in range(ticks):
            await settle()
            self.release()
            await settle()


class StubResolver:
    """Returns a fixed link or raises a fixed error; records calls."""

    def __init__(self, link=None, error=None):
        self.link = link
        self.error = error
        self.calls = []

    async def resolve(self, short_code):
        self.calls.append(short_code)
        if self.error is not None:
            raise self.error
        return self.link


class SequenceResolver:
    """Plays back one outcome per call (exceptions are raised)."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    async def resolve(self, short_code):
        self.calls.append(short_code)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class HangingResolver:
    """Never answers until cancelled."""

    def __init__(self):
        self.calls = []
        self.cancelled = False

    async def resolve(self, short_code):
        self.calls.append(short_code)
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            self.cancelled = True
            raise


class StubEnricher:
    def __init__(self, metadata=None, error=None):
        self.metadata = metadata or PreviewMetadata(
            title="Example Article",
            description="A long read about examples",
            image="https://example.com/cover.png",
            site_name="Example",
        )
        self.error = error
        self.calls = []

    async def enrich(self, original_url):
        self.calls.append(original_url)
        if self.error is not None:
            raise self.error
        return self.metadata


class GatedResolver:
    """Answers with ``link`` once ``gate`` is set."""

    def __init__(self, link):
        self.link = link
        self.gate = asyncio.Event()
        self.calls = []

    async def resolve(self, short_code):
        self.calls.append(short_code)
        await self.gate.wait()
        return self.link


class HangingEnricher:
    def __init__(self):
        self.calls = []

    async def enrich(self, original_url):
        self.calls.append(original_url)
        await asyncio.Event().wait()


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def navigations():
    return []
