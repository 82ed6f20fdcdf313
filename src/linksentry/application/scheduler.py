"""Concurrency scheduler: drives one batch of links to completion.

A single coordinating coroutine owns all run state (queue, in-flight set,
pacing map, counters) and reacts to probe completions, so no locks are
needed. Per run it enforces:

- a concurrency ceiling (``max_concurrent`` probes in flight),
- per-host pacing (``domain_delay`` seconds between dispatches to a host),
- an execution budget (no dispatch after ``max_execution`` seconds),
- early stop when the caller's channel closes.

Run states: RUNNING (dispatching) -> DRAINING (budget spent, waiting for
in-flight probes) -> DONE. A channel close jumps straight to DONE and
abandons in-flight probes without awaiting them.
"""

from __future__ import annotations

import asyncio
import time
from collections import deque
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

import structlog

from linksentry.domain.entities import LinkCheckResult, RunOutcome, SchedulerLimits
from linksentry.domain.ports import EventSinkPort, LinkProberPort
from linksentry.infrastructure.common.domain_pacer import DomainPacer
from linksentry.infrastructure.common.url_normalizer import extract_domain

log = structlog.get_logger(__name__)


@dataclass
class RunState:
    """Bookkeeping for one batch run; never shared between runs."""

    queue: deque[str]
    total: int
    started_at: float
    in_flight: dict[asyncio.Task[LinkCheckResult], str] = field(default_factory=dict)
    checked: int = 0
    timed_out: bool = False
    disconnected: bool = False


class LinkCheckScheduler:
    """Fan-out/fan-in of link probes under concurrency, pacing and time limits.

    Results are written to the channel in completion order, each at most
    once. A probe that raises is reported as an ``error`` result for its
    URL; it never aborts the batch.

    Args:
        prober: Prober for a single link (normally a ``RetryingLinkProber``).
        limits: Concurrency ceiling, host pacing and execution budget.
        clock: Monotonic time source (injectable for tests).
    """

    def __init__(
        self,
        prober: LinkProberPort,
        limits: SchedulerLimits | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._prober = prober
        self._limits = limits or SchedulerLimits()
        self._clock = clock

    async def run(
        self,
        urls: Sequence[str],
        page_url: str,
        channel: EventSinkPort,
    ) -> RunOutcome:
        """Probe every URL (until budget or disconnect) and stream results."""
        state = RunState(queue=deque(urls), total=len(urls), started_at=self._clock())
        pacer = DomainPacer(self._limits.domain_delay, clock=self._clock)
        closed_waiter = asyncio.ensure_future(channel.wait_closed())

        try:
            while True:
                if channel.closed:
                    self._abandon(state)
                    break

                wake_in = self._dispatch_ready(state, pacer, page_url)

                if not state.in_flight and (not state.queue or state.timed_out):
                    break

                done, _ = await asyncio.wait(
                    {*state.in_flight, closed_waiter},
                    timeout=wake_in,
                    return_when=asyncio.FIRST_COMPLETED,
                )
                for task in done:
                    if task is closed_waiter:
                        continue
                    url = state.in_flight.pop(task)  # type: ignore[call-overload]
                    await self._emit(state, url, task, channel)
        finally:
            closed_waiter.cancel()
            for task in state.in_flight:
                task.cancel()

        elapsed = self._clock() - state.started_at
        log.debug(
            "link_check_run_finished",
            checked=state.checked,
            total=state.total,
            timed_out=state.timed_out,
            disconnected=state.disconnected,
            elapsed_seconds=round(elapsed, 3),
        )
        return RunOutcome(
            checked=state.checked,
            timed_out=state.timed_out,
            disconnected=state.disconnected,
        )

    def _budget_exceeded(self, state: RunState) -> bool:
        return self._clock() - state.started_at >= self._limits.max_execution

    def _dispatch_ready(
        self, state: RunState, pacer: DomainPacer, page_url: str
    ) -> float | None:
        """Start as many probes as limits allow.

        Returns the seconds until the queue head may be dispatched when it is
        held back by host pacing, otherwise ``None``.
        """
        while len(state.in_flight) < self._limits.max_concurrent and state.queue:
            if self._budget_exceeded(state):
                if not state.timed_out:
                    state.timed_out = True
                    log.info(
                        "link_check_budget_exceeded",
                        max_execution=self._limits.max_execution,
                        in_flight=len(state.in_flight),
                        undispatched=len(state.queue),
                    )
                return None

            url = state.queue[0]
            domain = extract_domain(url)
            delay = pacer.delay_for(domain)
            if delay > 0:
                return delay

            state.queue.popleft()
            pacer.record(domain)
            task = asyncio.create_task(self._probe_one(url, page_url))
            state.in_flight[task] = url

        return None

    async def _probe_one(self, url: str, page_url: str) -> LinkCheckResult:
        try:
            return await self._prober.probe(url, page_url)
        except Exception as e:  # noqa: BLE001
            log.error("link_check_unexpected_error", url=url, exc_info=True)
            return LinkCheckResult.failed(url, str(e) or "Unknown error")

    async def _emit(
        self,
        state: RunState,
        url: str,
        task: asyncio.Task[LinkCheckResult],
        channel: EventSinkPort,
    ) -> None:
        if channel.closed:
            return
        if task.cancelled():
            result = LinkCheckResult.failed(url, "Probe was cancelled")
        else:
            result = task.result()
        await channel.send(result)
        state.checked += 1

    def _abandon(self, state: RunState) -> None:
        """Caller went away: stop now and leave in-flight probes behind."""
        state.disconnected = True
        log.info(
            "link_check_client_disconnected",
            checked=state.checked,
            total=state.total,
            abandoned=len(state.in_flight),
        )
