"""Port for the outbound event stream of a batch run."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from linksentry.domain.entities import LinkCheckEvent


@runtime_checkable
class EventSinkPort(Protocol):
    """Single-consumer channel the scheduler writes events into.

    ``closed`` turns true when the caller goes away; writes after that
    are silently dropped.
    """

    @property
    def closed(self) -> bool: ...

    async def send(self, event: LinkCheckEvent) -> None: ...

    async def wait_closed(self) -> None:
        """Block until the caller side closes the channel."""
        ...

    def finish(self) -> None:
        """Mark end-of-stream (no more events will be sent)."""
        ...
