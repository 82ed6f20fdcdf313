"""Shared test fixtures for the linksentry test suite."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable, Mapping
from typing import Union

import pytest

from linksentry.domain.entities import (
    LinkCheckRequest,
    LinkCheckResult,
    RetryPolicy,
    SchedulerLimits,
)
from linksentry.infrastructure.streaming import EventChannel

# ---------------------------------------------------------------------------
# Domain entity fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def page_url() -> str:
    return "https://www.sf.gov/departments"


@pytest.fixture()
def link_request(page_url: str) -> LinkCheckRequest:
    """Small valid batch across two hosts."""
    return LinkCheckRequest(
        urls=(
            "https://www.sf.gov/a",
            "https://www.sf.gov/b",
            "https://example.com/c",
        ),
        page_url=page_url,
    )


@pytest.fixture()
def fast_limits() -> SchedulerLimits:
    """Limits without pacing so timing-insensitive tests run fast."""
    return SchedulerLimits(max_concurrent=10, domain_delay=0.0, max_execution=5.0)


@pytest.fixture()
def retry_policy() -> RetryPolicy:
    return RetryPolicy()


# ---------------------------------------------------------------------------
# Streaming fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def channel() -> EventChannel:
    return EventChannel()


# ---------------------------------------------------------------------------
# Fake port fixtures
# ---------------------------------------------------------------------------

Scripted = Union[LinkCheckResult, Exception]


class FakeProber:
    """Scripted LinkProberPort.

    Each URL maps to a list of outcomes consumed one per call; the last
    outcome repeats. Unknown URLs answer ``ok``. Tracks call order, start
    times (event-loop clock) and the peak number of concurrent checks.
    """

    def __init__(
        self,
        script: Mapping[str, Iterable[Scripted]] | None = None,
        *,
        delay: float = 0.0,
        delays: Mapping[str, float] | None = None,
    ) -> None:
        self._script = {url: list(outcomes) for url, outcomes in (script or {}).items()}
        self._delay = delay
        self._delays = dict(delays or {})
        self.calls: list[str] = []
        self.started_at: dict[str, list[float]] = {}
        self.finished: list[str] = []
        self.in_flight = 0
        self.peak_in_flight = 0

    async def probe(self, url: str, page_url: str) -> LinkCheckResult:
        loop = asyncio.get_running_loop()
        self.calls.append(url)
        self.started_at.setdefault(url, []).append(loop.time())
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            delay = self._delays.get(url, self._delay)
            if delay:
                await asyncio.sleep(delay)
            outcomes = self._script.get(url)
            if not outcomes:
                return LinkCheckResult.ok(url, 200)
            outcome = outcomes.pop(0) if len(outcomes) > 1 else outcomes[0]
            if isinstance(outcome, Exception):
                raise outcome
            return outcome
        finally:
            self.in_flight -= 1
            self.finished.append(url)


class FakeSessionVerifier:
    """SessionVerifierPort answering a fixed verdict; records session ids."""

    def __init__(self, valid: bool = True) -> None:
        self.valid = valid
        self.seen: list[str] = []

    async def verify(self, session_id: str) -> bool:
        self.seen.append(session_id)
        return self.valid


@pytest.fixture()
def make_prober() -> Callable[..., FakeProber]:
    """Scripted prober factory: ``make_prober({url: [outcome, ...]}, delay=...)``."""
    return FakeProber


@pytest.fixture()
def make_verifier() -> Callable[..., FakeSessionVerifier]:
    return FakeSessionVerifier
