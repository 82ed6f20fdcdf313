"""Single-producer / single-consumer event channel for one batch run."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator

import structlog

from linksentry.domain.entities import LinkCheckEvent

log = structlog.get_logger(__name__)

_END = object()


class EventChannel:
    """Async channel between the scheduler (producer) and the response (consumer).

    Two ways to end it:

    - ``finish()``: producer is done; the consumer drains queued events and
      its iteration stops.
    - ``close()``: the consumer side went away (client disconnect). Queued
      events are dropped, later ``send()`` calls are no-ops and
      ``wait_closed()`` wakes up so the producer can stop early.

    Both are idempotent and safe to call in any order.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[object] = asyncio.Queue()
        self._closed = asyncio.Event()
        self._finished = False

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    @property
    def finished(self) -> bool:
        return self._finished

    async def send(self, event: LinkCheckEvent) -> None:
        if self.closed or self._finished:
            return
        self._queue.put_nowait(event)

    def finish(self) -> None:
        if self._finished:
            return
        self._finished = True
        self._queue.put_nowait(_END)

    def close(self) -> None:
        if self.closed:
            return
        self._closed.set()
        dropped = self._queue.qsize()
        # Wake a consumer blocked in get().
        self._queue.put_nowait(_END)
        if dropped:
            log.debug("event_channel_closed_with_pending", dropped=dropped)

    async def wait_closed(self) -> None:
        await self._closed.wait()

    def __aiter__(self) -> AsyncIterator[LinkCheckEvent]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[LinkCheckEvent]:
        while True:
            item = await self._queue.get()
            if item is _END or self.closed:
                return
            yield item  # type: ignore[misc]
