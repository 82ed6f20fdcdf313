"""Domain entities for batch link checking.

Pure value objects without framework dependencies or I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal, Union


class LinkStatus(str, Enum):
    """Outcome of checking a single link."""

    OK = "ok"
    BROKEN = "broken"
    REDIRECT = "redirect"
    TIMEOUT = "timeout"
    ERROR = "error"
    INSECURE = "insecure"
    WARNING = "warning"


# Statuses that count as a failed attempt and may be retried.
RETRYABLE_STATUSES: frozenset[LinkStatus] = frozenset(
    {LinkStatus.ERROR, LinkStatus.TIMEOUT}
)


@dataclass(frozen=True)
class LinkCheckRequest:
    """A validated batch: 1..N absolute http(s) URLs plus the origin page."""

    urls: tuple[str, ...]
    page_url: str

    @property
    def total(self) -> int:
        return len(self.urls)


@dataclass(frozen=True)
class FieldError:
    """One validation violation on an inbound request field."""

    field: str
    message: str

    def to_payload(self) -> dict[str, str]:
        return {"field": self.field, "message": self.message}


@dataclass(frozen=True)
class LinkCheckResult:
    """Result of checking one link.

    ``url`` is always the caller-supplied URL, even when the probe used a
    normalized variant. ``final_url`` is only set for ``REDIRECT``.
    Prefer the named constructors; they only allow valid field combinations.
    """

    url: str
    status: LinkStatus
    status_code: int | None = None
    final_url: str | None = None
    error: str | None = None

    def __post_init__(self) -> None:
        if self.final_url is not None and self.status is not LinkStatus.REDIRECT:
            raise ValueError(
                f"final_url is only valid for redirect results, got {self.status.value}"
            )

    @classmethod
    def ok(
        cls, url: str, status_code: int | None = None, *, note: str | None = None
    ) -> LinkCheckResult:
        return cls(url=url, status=LinkStatus.OK, status_code=status_code, error=note)

    @classmethod
    def redirect(cls, url: str, status_code: int, final_url: str) -> LinkCheckResult:
        return cls(
            url=url,
            status=LinkStatus.REDIRECT,
            status_code=status_code,
            final_url=final_url,
        )

    @classmethod
    def broken(cls, url: str, status_code: int) -> LinkCheckResult:
        return cls(url=url, status=LinkStatus.BROKEN, status_code=status_code)

    @classmethod
    def warning(cls, url: str, status_code: int, message: str) -> LinkCheckResult:
        return cls(
            url=url, status=LinkStatus.WARNING, status_code=status_code, error=message
        )

    @classmethod
    def insecure(cls, url: str, message: str) -> LinkCheckResult:
        return cls(url=url, status=LinkStatus.INSECURE, error=message)

    @classmethod
    def timeout(cls, url: str, message: str) -> LinkCheckResult:
        return cls(url=url, status=LinkStatus.TIMEOUT, error=message)

    @classmethod
    def failed(cls, url: str, message: str) -> LinkCheckResult:
        """Transport/DNS/unexpected failure (status ``error``)."""
        return cls(url=url, status=LinkStatus.ERROR, error=message)

    @property
    def is_retryable(self) -> bool:
        return self.status in RETRYABLE_STATUSES

    def with_url(self, url: str) -> LinkCheckResult:
        """Return a copy reported under *url* (the caller's original URL)."""
        return LinkCheckResult(
            url=url,
            status=self.status,
            status_code=self.status_code,
            final_url=self.final_url,
            error=self.error,
        )

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"url": self.url, "status": self.status.value}
        if self.status_code is not None:
            payload["statusCode"] = self.status_code
        if self.final_url is not None:
            payload["finalUrl"] = self.final_url
        if self.error is not None:
            payload["error"] = self.error
        return payload


@dataclass(frozen=True)
class CompletionEvent:
    """Terminal summary: ``checked`` results were emitted out of ``total``."""

    total: int
    checked: int
    type: Literal["complete"] = field(default="complete", init=False)

    def to_payload(self) -> dict[str, Any]:
        return {"type": self.type, "total": self.total, "checked": self.checked}


@dataclass(frozen=True)
class ErrorEvent:
    """In-band failure after the stream has been opened."""

    message: str
    type: Literal["error"] = field(default="error", init=False)

    def to_payload(self) -> dict[str, Any]:
        return {"type": self.type, "message": self.message}


LinkCheckEvent = Union[LinkCheckResult, CompletionEvent, ErrorEvent]


@dataclass(frozen=True)
class RetryPolicy:
    """Retry behaviour for a single link.

    ``backoff_delays[i]`` is the pause (seconds) before retry ``i + 1``.
    Hosts in ``fail_fast_hosts`` are not retried after an error/timeout.
    """

    max_retries: int = 2
    backoff_delays: tuple[float, ...] = (0.1, 0.2)
    fail_fast_hosts: frozenset[str] = frozenset(
        {"twitter.com", "www.twitter.com", "x.com", "www.x.com"}
    )
    fail_fast_message: str = "Twitter/X domain validation failed"

    def delay_before_retry(self, attempt: int) -> float:
        """Backoff before retry number *attempt* (0-based), clamped to the schedule."""
        if not self.backoff_delays:
            return 0.0
        return self.backoff_delays[min(attempt, len(self.backoff_delays) - 1)]


@dataclass(frozen=True)
class SchedulerLimits:
    """Constraints for one batch run."""

    max_concurrent: int = 10
    domain_delay: float = 0.1  # seconds between dispatches to the same host
    max_execution: float = 60.0  # wall-clock budget in seconds


@dataclass(frozen=True)
class RunOutcome:
    """How a batch run ended."""

    checked: int
    timed_out: bool = False
    disconnected: bool = False
