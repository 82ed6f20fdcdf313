"""Tests for LinkCheckScheduler (concurrency, pacing, budget, disconnect)."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable
from typing import Any

import pytest

from linksentry.application.scheduler import LinkCheckScheduler
from linksentry.domain.entities import (
    LinkCheckEvent,
    LinkCheckResult,
    LinkStatus,
    SchedulerLimits,
)
from linksentry.infrastructure.streaming import EventChannel

PAGE = "https://www.sf.gov/page"


def _results(events: Iterable[LinkCheckEvent]) -> list[LinkCheckResult]:
    return [e for e in events if isinstance(e, LinkCheckResult)]


async def _run(
    scheduler: LinkCheckScheduler, urls: list[str], channel: EventChannel
):
    outcome = await scheduler.run(urls, PAGE, channel)
    channel.finish()
    return outcome, [event async for event in channel]


class TestCompletion:
    async def test_every_url_reported_once(
        self,
        fast_limits: SchedulerLimits,
        channel: EventChannel,
        make_prober: Callable[..., Any],
    ) -> None:
        urls = [f"https://host{i}.example/" for i in range(7)]
        scheduler = LinkCheckScheduler(make_prober(), fast_limits)

        outcome, events = await _run(scheduler, urls, channel)

        assert outcome.checked == 7
        assert outcome.timed_out is False
        assert outcome.disconnected is False
        assert sorted(r.url for r in _results(events)) == sorted(urls)

    async def test_duplicate_urls_each_reported(
        self,
        fast_limits: SchedulerLimits,
        channel: EventChannel,
        make_prober: Callable[..., Any],
    ) -> None:
        url = "https://a.example/"
        prober = make_prober()
        outcome, events = await _run(
            LinkCheckScheduler(prober, fast_limits), [url, url], channel
        )
        assert outcome.checked == 2
        assert [r.url for r in _results(events)] == [url, url]
        assert prober.calls == [url, url]

    async def test_results_in_completion_order(
        self,
        fast_limits: SchedulerLimits,
        channel: EventChannel,
        make_prober: Callable[..., Any],
    ) -> None:
        slow, fast = "https://slow.example/", "https://fast.example/"
        prober = make_prober(delays={slow: 0.1, fast: 0.0})
        _, events = await _run(
            LinkCheckScheduler(prober, fast_limits), [slow, fast], channel
        )
        assert [r.url for r in _results(events)] == [fast, slow]

    async def test_prober_exception_becomes_error_result(
        self,
        fast_limits: SchedulerLimits,
        channel: EventChannel,
        make_prober: Callable[..., Any],
    ) -> None:
        bad = "https://bad.example/"
        prober = make_prober({bad: [RuntimeError("kaput")]})
        outcome, events = await _run(
            LinkCheckScheduler(prober, fast_limits),
            [bad, "https://good.example/"],
            channel,
        )
        by_url = {r.url: r for r in _results(events)}
        assert outcome.checked == 2
        assert by_url[bad].status is LinkStatus.ERROR
        assert by_url[bad].error == "kaput"
        assert by_url["https://good.example/"].status is LinkStatus.OK

    async def test_empty_batch_finishes_immediately(
        self,
        fast_limits: SchedulerLimits,
        channel: EventChannel,
        make_prober: Callable[..., Any],
    ) -> None:
        outcome, events = await _run(
            LinkCheckScheduler(make_prober(), fast_limits), [], channel
        )
        assert outcome.checked == 0
        assert events == []


class TestConcurrency:
    async def test_ceiling_respected(
        self, channel: EventChannel, make_prober: Callable[..., Any]
    ) -> None:
        limits = SchedulerLimits(max_concurrent=10, domain_delay=0.0, max_execution=10)
        urls = [f"https://host{i}.example/" for i in range(30)]
        prober = make_prober(delay=0.05)

        outcome, _ = await _run(LinkCheckScheduler(prober, limits), urls, channel)

        assert outcome.checked == 30
        assert prober.peak_in_flight == 10

    async def test_ceiling_of_one_serializes(
        self, channel: EventChannel, make_prober: Callable[..., Any]
    ) -> None:
        limits = SchedulerLimits(max_concurrent=1, domain_delay=0.0, max_execution=10)
        urls = [f"https://host{i}.example/" for i in range(4)]
        prober = make_prober(delay=0.01)

        await _run(LinkCheckScheduler(prober, limits), urls, channel)

        assert prober.peak_in_flight == 1
        assert prober.calls == urls


class TestDomainPacing:
    async def test_same_host_dispatches_spaced(
        self, channel: EventChannel, make_prober: Callable[..., Any]
    ) -> None:
        limits = SchedulerLimits(max_concurrent=10, domain_delay=0.1, max_execution=10)
        urls = [f"https://same.example/{i}" for i in range(3)]
        prober = make_prober()

        await _run(LinkCheckScheduler(prober, limits), urls, channel)

        starts = sorted(t for url in urls for t in prober.started_at[url])
        gaps = [b - a for a, b in zip(starts, starts[1:])]
        assert all(gap >= 0.09 for gap in gaps), gaps

    async def test_pacing_uses_hostname_not_path(
        self, channel: EventChannel, make_prober: Callable[..., Any]
    ) -> None:
        limits = SchedulerLimits(max_concurrent=10, domain_delay=0.2, max_execution=10)
        urls = ["https://a.example/1", "https://b.example/1"]
        prober = make_prober()

        await _run(LinkCheckScheduler(prober, limits), urls, channel)

        gap = abs(prober.started_at[urls[1]][0] - prober.started_at[urls[0]][0])
        assert gap < 0.1

    async def test_head_of_queue_blocks_fifo(
        self, channel: EventChannel, make_prober: Callable[..., Any]
    ) -> None:
        limits = SchedulerLimits(max_concurrent=10, domain_delay=0.1, max_execution=10)
        urls = ["https://a.example/1", "https://a.example/2", "https://b.example/1"]
        prober = make_prober()

        await _run(LinkCheckScheduler(prober, limits), urls, channel)

        assert prober.calls == urls


class TestExecutionBudget:
    async def test_budget_stops_new_dispatches(
        self, channel: EventChannel, make_prober: Callable[..., Any]
    ) -> None:
        limits = SchedulerLimits(max_concurrent=2, domain_delay=0.0, max_execution=0.15)
        urls = [f"https://host{i}.example/" for i in range(10)]
        prober = make_prober(delay=0.1)

        outcome, events = await _run(LinkCheckScheduler(prober, limits), urls, channel)

        assert outcome.timed_out is True
        assert outcome.checked < len(urls)
        assert outcome.checked == len(_results(events))
        # In-flight probes at the deadline still finish and are reported.
        assert outcome.checked == len(prober.calls)

    async def test_budget_not_flagged_when_everything_dispatched(
        self, channel: EventChannel, make_prober: Callable[..., Any]
    ) -> None:
        limits = SchedulerLimits(max_concurrent=5, domain_delay=0.0, max_execution=0.05)
        urls = [f"https://host{i}.example/" for i in range(3)]
        prober = make_prober(delay=0.1)

        outcome, _ = await _run(LinkCheckScheduler(prober, limits), urls, channel)

        assert outcome.timed_out is False
        assert outcome.checked == 3


class TestDisconnect:
    async def test_close_stops_run_and_emission(
        self, make_prober: Callable[..., Any]
    ) -> None:
        limits = SchedulerLimits(max_concurrent=2, domain_delay=0.0, max_execution=10)
        urls = [f"https://host{i}.example/" for i in range(10)]
        prober = make_prober(delay=0.05)
        channel = EventChannel()
        scheduler = LinkCheckScheduler(prober, limits)

        run = asyncio.create_task(scheduler.run(urls, PAGE, channel))
        received: list[LinkCheckResult] = []
        async for event in channel:
            assert isinstance(event, LinkCheckResult)
            received.append(event)
            if len(received) == 2:
                channel.close()

        outcome = await asyncio.wait_for(run, timeout=1.0)

        assert outcome.disconnected is True
        assert outcome.checked == 2
        assert len(prober.calls) < len(urls)

    async def test_closed_before_start_dispatches_nothing(
        self, fast_limits: SchedulerLimits, make_prober: Callable[..., Any]
    ) -> None:
        channel = EventChannel()
        channel.close()
        prober = make_prober()

        outcome = await LinkCheckScheduler(prober, fast_limits).run(
            ["https://a.example/"], PAGE, channel
        )

        assert outcome.disconnected is True
        assert outcome.checked == 0
        assert prober.calls == []

    @pytest.mark.parametrize("max_concurrent", [1, 3])
    async def test_close_while_waiting_on_pacing(
        self, max_concurrent: int, make_prober: Callable[..., Any]
    ) -> None:
        limits = SchedulerLimits(
            max_concurrent=max_concurrent, domain_delay=5.0, max_execution=10
        )
        urls = ["https://same.example/1", "https://same.example/2"]
        prober = make_prober()
        channel = EventChannel()

        run = asyncio.create_task(
            LinkCheckScheduler(prober, limits).run(urls, PAGE, channel)
        )
        await asyncio.sleep(0.05)
        channel.close()
        outcome = await asyncio.wait_for(run, timeout=1.0)

        assert outcome.disconnected is True
        assert prober.calls == ["https://same.example/1"]
