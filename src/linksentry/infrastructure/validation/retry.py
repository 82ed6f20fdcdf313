"""Retry coordinator around a single-link prober."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

import structlog

from linksentry.domain.entities import LinkCheckResult, RetryPolicy
from linksentry.domain.ports import LinkProberPort
from linksentry.infrastructure.common.url_normalizer import (
    UrlNormalizer,
    extract_domain,
)

log = structlog.get_logger(__name__)


class RetryingLinkProber:
    """Wraps a prober with normalization and bounded retries.

    Flow per link:
        1. Normalize the URL (canonical host rewrite) for probing only.
        2. Probe; ``error``/``timeout`` results and unexpected exceptions
           count as failed attempts.
        3. Retry failed attempts after the policy's backoff delays.
        4. Fail-fast hosts return their first failure immediately.
        5. Report every result under the caller's original URL.

    Satisfies ``LinkProberPort`` itself, so the scheduler does not care
    whether it is given a bare or a retrying prober.

    Args:
        prober: Single-attempt prober.
        policy: Retry policy (attempt count, backoff, fail-fast hosts).
        normalizer: URL normalizer applied before probing.
        sleep: Awaitable sleep (injectable for tests).
    """

    def __init__(
        self,
        prober: LinkProberPort,
        policy: RetryPolicy | None = None,
        normalizer: UrlNormalizer | None = None,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._prober = prober
        self._policy = policy or RetryPolicy()
        self._normalizer = normalizer or UrlNormalizer()
        self._sleep = sleep

    async def probe(self, url: str, page_url: str) -> LinkCheckResult:
        target = self._normalizer.normalize(url)
        fail_fast = extract_domain(target) in self._policy.fail_fast_hosts
        max_retries = self._policy.max_retries
        last_error: str | None = None

        for attempt in range(max_retries + 1):
            try:
                result = await self._prober.probe(target, page_url)
            except Exception as e:  # noqa: BLE001
                result = LinkCheckResult.failed(url, str(e) or type(e).__name__)

            if not result.is_retryable:
                return result.with_url(url)

            if fail_fast:
                message = self._policy.fail_fast_message
                if result.error:
                    message = f"{message}: {result.error}"
                log.warning(
                    "link_check_failed",
                    url=url,
                    status=result.status.value,
                    error=message,
                    fail_fast=True,
                )
                return LinkCheckResult(url=url, status=result.status, error=message)

            last_error = result.error or "Request failed"

            if attempt < max_retries:
                delay = self._policy.delay_before_retry(attempt)
                log.debug(
                    "link_check_retry",
                    url=url,
                    attempt=attempt + 1,
                    delay=delay,
                    error=last_error,
                )
                await self._sleep(delay)

        message = last_error or "Request failed after all retries"
        log.warning(
            "link_check_failed",
            url=url,
            error=message,
            retry_count=max_retries,
        )
        return LinkCheckResult.failed(url, message)
