"""HTTP link prober using HEAD requests with GET fallback."""

from __future__ import annotations

import asyncio
import ssl
from collections.abc import Mapping
from typing import TYPE_CHECKING
from urllib.parse import urlsplit

import httpx
import structlog

from linksentry.domain.entities import LinkCheckResult

if TYPE_CHECKING:
    from httpx import AsyncClient

log = structlog.get_logger(__name__)

BROWSER_HEADERS: dict[str, str] = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": (
        "text/html,application/xhtml+xml,application/xml;q=0.9,"
        "image/avif,image/webp,image/apng,*/*;q=0.8"
    ),
    "Accept-Language": "en-US,en;q=0.9",
    "Cache-Control": "no-cache",
}

MIXED_CONTENT_MESSAGE = "HTTP link on HTTPS page (mixed content)"
FORBIDDEN_MESSAGE = (
    "403 Forbidden - may be bot protection or a real error, please verify manually"
)

# Markers of a certificate trust failure in OpenSSL/httpx error text.
_TLS_TRUST_MARKERS: tuple[str, ...] = (
    "CERTIFICATE_VERIFY_FAILED",
    "certificate verify failed",
    "self-signed certificate",
    "self signed certificate",
    "certificate has expired",
    "unable to get local issuer certificate",
    "unable to verify the first certificate",
)


def _scheme(url: str) -> str:
    try:
        return urlsplit(url).scheme.lower()
    except ValueError:
        return ""


def is_mixed_content(url: str, page_url: str) -> bool:
    """True for an ``http://`` link referenced from an ``https://`` page."""
    return _scheme(page_url) == "https" and _scheme(url) == "http"


def _exception_chain(exc: BaseException) -> list[BaseException]:
    chain: list[BaseException] = []
    current: BaseException | None = exc
    while current is not None and current not in chain:
        chain.append(current)
        current = current.__cause__ or current.__context__
    return chain


def tls_trust_failure(exc: BaseException) -> str | None:
    """Return a short reason if *exc* is a certificate trust failure, else None.

    Covers self-signed, expired and unverifiable chains. Other TLS errors
    (handshake/protocol problems) are ordinary transport errors.
    """
    for err in _exception_chain(exc):
        if isinstance(err, ssl.SSLCertVerificationError):
            reason = getattr(err, "verify_message", None)
            return reason or "certificate verification failed"
        text = str(err)
        for marker in _TLS_TRUST_MARKERS:
            if marker.lower() in text.lower():
                return marker
    return None


def _describe(exc: BaseException) -> str:
    message = str(exc).strip()
    return message or type(exc).__name__


class HttpLinkProber:
    """Classifies a single link via HTTP HEAD with GET fallback.

    Some servers answer 405 (or drop the connection) for HEAD but serve
    GET normally, so GET is tried once when HEAD is rejected or fails at
    the transport level. A timeout is final and is not retried here.

    Response bodies are never read: requests are sent in streaming mode
    and closed as soon as the status line and final URL are known.

    Redirect hops are followed by the client; the hop limit is the
    client's ``max_redirects``.

    Args:
        http_client: Shared httpx.AsyncClient (injected).
        timeout_seconds: Deadline per attempt (default: 10s).
        headers: Request headers (default: desktop browser headers).
    """

    def __init__(
        self,
        http_client: AsyncClient,
        timeout_seconds: float = 10.0,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        self.http_client = http_client
        self.timeout = timeout_seconds
        self._headers = dict(headers if headers is not None else BROWSER_HEADERS)

    async def probe(self, url: str, page_url: str) -> LinkCheckResult:
        """Check *url*; never raises."""
        if is_mixed_content(url, page_url):
            log.debug("link_probe_mixed_content", url=url, page_url=page_url)
            return LinkCheckResult.insecure(url, MIXED_CONTENT_MESSAGE)

        last_error: BaseException | None = None
        tls_reason: str | None = None

        for method in ("HEAD", "GET"):
            try:
                status_code, final_url, redirected = await asyncio.wait_for(
                    self._send(method, url), timeout=self.timeout
                )
            except (TimeoutError, httpx.TimeoutException):
                log.debug("link_probe_timeout", url=url, method=method)
                return LinkCheckResult.timeout(
                    url, f"Request timed out after {self.timeout:g} seconds"
                )
            except httpx.HTTPError as e:
                last_error = e
                tls_reason = tls_reason or tls_trust_failure(e)
                log.debug(
                    "link_probe_http_error", url=url, method=method, error=_describe(e)
                )
                continue
            except Exception as e:  # noqa: BLE001
                last_error = e
                tls_reason = tls_reason or tls_trust_failure(e)
                log.debug(
                    "link_probe_failed", url=url, method=method, error=_describe(e)
                )
                continue

            if status_code == 405 and method == "HEAD":
                log.debug("link_probe_head_not_allowed", url=url)
                continue

            log.debug(
                "link_probe_result",
                url=url,
                method=method,
                status_code=status_code,
                final_url=final_url,
            )
            return self._classify(url, status_code, final_url, redirected)

        if tls_reason is not None:
            # Browsers are often more lenient about trust chains than we are.
            return LinkCheckResult.ok(
                url,
                note=(
                    f"SSL certificate issue: {tls_reason} "
                    "(link may still work in browser)"
                ),
            )

        message = _describe(last_error) if last_error else "All request methods failed"
        return LinkCheckResult.failed(url, message)

    async def _send(self, method: str, url: str) -> tuple[int, str, bool]:
        """Send one request, following redirects; returns (status, final_url, redirected)."""
        request = self.http_client.build_request(
            method, url, headers=self._headers, timeout=self.timeout
        )
        response = await self.http_client.send(
            request, stream=True, follow_redirects=True
        )
        try:
            return response.status_code, str(response.url), bool(response.history)
        finally:
            await response.aclose()

    @staticmethod
    def _classify(
        url: str, status_code: int, final_url: str, redirected: bool
    ) -> LinkCheckResult:
        if 200 <= status_code < 300:
            if redirected and final_url != url:
                return LinkCheckResult.redirect(url, status_code, final_url)
            return LinkCheckResult.ok(url, status_code)
        if 300 <= status_code < 400:
            # Only reachable when the hop chain ends on a 3xx without Location.
            return LinkCheckResult.redirect(url, status_code, final_url)
        if status_code == 403:
            return LinkCheckResult.warning(url, status_code, FORBIDDEN_MESSAGE)
        return LinkCheckResult.broken(url, status_code)
