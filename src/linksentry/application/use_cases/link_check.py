"""Link-check use case: run one batch and close the stream properly."""

from __future__ import annotations

import structlog

from linksentry.application.scheduler import LinkCheckScheduler
from linksentry.domain.entities import (
    CompletionEvent,
    ErrorEvent,
    LinkCheckRequest,
    RunOutcome,
)
from linksentry.domain.ports import EventSinkPort

log = structlog.get_logger(__name__)


class LinkCheckUseCase:
    """Executes a validated batch and terminates its event stream.

    Flow:
        1. Run the scheduler; results are streamed as they complete.
        2. Caller still connected -> send ``CompletionEvent(total, checked)``.
        3. Scheduler failure -> send one ``ErrorEvent`` instead.
        4. Always mark the channel finished.
    """

    def __init__(self, scheduler: LinkCheckScheduler) -> None:
        self._scheduler = scheduler

    async def execute(
        self, request: LinkCheckRequest, channel: EventSinkPort
    ) -> RunOutcome | None:
        log.info(
            "link_check_started",
            total=request.total,
            page_url=request.page_url,
        )
        try:
            try:
                outcome = await self._scheduler.run(
                    request.urls, request.page_url, channel
                )
            except Exception as e:
                message = str(e) or "Unknown error during link checking"
                log.error("link_check_run_failed", error=message, exc_info=True)
                await channel.send(ErrorEvent(message))
                return None

            if outcome.disconnected or channel.closed:
                return outcome

            await channel.send(
                CompletionEvent(total=request.total, checked=outcome.checked)
            )
            log.info(
                "link_check_completed",
                checked=outcome.checked,
                total=request.total,
                timed_out=outcome.timed_out,
            )
            return outcome
        finally:
            channel.finish()
