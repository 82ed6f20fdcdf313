"""Port for probing a single link."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from linksentry.domain.entities import LinkCheckResult


@runtime_checkable
class LinkProberPort(Protocol):
    """Checks one URL and classifies the outcome.

    Implementations must not raise for network failures; every failure
    mode is reported as a ``LinkCheckResult`` status.
    """

    async def probe(self, url: str, page_url: str) -> LinkCheckResult:
        """Check *url* as referenced from *page_url*.

        Args:
            url: Link to check.
            page_url: Page the link was found on (mixed-content detection).

        Returns:
            Classified result for *url*.
        """
        ...
