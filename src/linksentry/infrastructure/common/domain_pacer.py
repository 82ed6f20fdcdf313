"""Per-domain dispatch pacing for one batch run."""

from __future__ import annotations

import time
from collections.abc import Callable


class DomainPacer:
    """Tracks the last dispatch time per host and the wait still owed.

    Unlike a token bucket, pacing is strict: two dispatches to the same
    host are always at least ``min_interval`` seconds apart. One instance
    belongs to exactly one run and is discarded with it.

    Args:
        min_interval: Minimum seconds between dispatches to one host.
        clock: Monotonic time source (injectable for tests).
    """

    def __init__(
        self,
        min_interval: float,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._min_interval = min_interval
        self._clock = clock
        self._last_dispatch: dict[str, float] = {}

    def delay_for(self, domain: str) -> float:
        """Seconds to wait before *domain* may be dispatched again (0 = now)."""
        if self._min_interval <= 0 or not domain:
            return 0.0
        last = self._last_dispatch.get(domain)
        if last is None:
            return 0.0
        return max(0.0, self._min_interval - (self._clock() - last))

    def record(self, domain: str) -> float:
        """Record a dispatch to *domain* now; returns the dispatch timestamp."""
        now = self._clock()
        if domain:
            self._last_dispatch[domain] = now
        return now
