"""Track in-flight batch runs so shutdown can drain or cancel them."""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from typing import Any, TypeVar

import structlog

log = structlog.get_logger(__name__)

T = TypeVar("T")


class RunTracker:
    """Owns the background tasks that execute link-check runs.

    The HTTP response only consumes a run's event channel; the run itself
    is a task started here, so it keeps a strong reference for its whole
    lifetime and is cancelled on shutdown.

    Usage::

        tracker = RunTracker()
        tracker.start(use_case.execute(request, channel))

        # In lifespan finally:
        await tracker.shutdown(timeout=5.0)
    """

    def __init__(self) -> None:
        self._runs: set[asyncio.Task[Any]] = set()
        self._shutting_down = False

    @property
    def active_runs(self) -> int:
        return len(self._runs)

    @property
    def is_shutting_down(self) -> bool:
        return self._shutting_down

    def start(self, coro: Coroutine[Any, Any, T]) -> asyncio.Task[T]:
        if self._shutting_down:
            coro.close()
            raise RuntimeError("Run tracker is shutting down")
        task = asyncio.create_task(coro)
        self._runs.add(task)
        task.add_done_callback(self._runs.discard)
        return task

    async def shutdown(self, *, timeout: float = 5.0) -> None:
        """Wait up to *timeout* seconds for runs to finish, then cancel the rest."""
        self._shutting_down = True
        if not self._runs:
            return
        log.info("run_tracker_draining", active_runs=len(self._runs))
        _, pending = await asyncio.wait(set(self._runs), timeout=timeout)
        if not pending:
            log.info("run_tracker_drained")
            return
        log.warning(
            "run_tracker_timeout",
            remaining_runs=len(pending),
            timeout=timeout,
        )
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
