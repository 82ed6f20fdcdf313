"""Admin-session verification against the upstream CMS admin API."""

from __future__ import annotations

from collections.abc import Mapping
from http.cookies import CookieError, SimpleCookie
from typing import TYPE_CHECKING

import httpx
import structlog

if TYPE_CHECKING:
    from httpx import AsyncClient

log = structlog.get_logger(__name__)

SESSION_HEADER = "x-wagtail-session"
SESSION_COOKIE = "sessionid"
_VERIFIER_USER_AGENT = "linksentry-session-check/1.0"


def extract_session_id(headers: Mapping[str, str]) -> str | None:
    """Session id from the ``X-Wagtail-Session`` header, else the ``sessionid`` cookie.

    *headers* must be case-insensitive (starlette/httpx ``Headers``) or
    use lower-case keys.
    """
    session = headers.get(SESSION_HEADER)
    if session:
        return session

    raw_cookie = headers.get("cookie")
    if not raw_cookie:
        return None
    try:
        cookie = SimpleCookie()
        cookie.load(raw_cookie)
    except CookieError:
        return None
    morsel = cookie.get(SESSION_COOKIE)
    return morsel.value if morsel is not None and morsel.value else None


class AdminSessionVerifier:
    """Checks that a session cookie is accepted by the admin API.

    A ``GET {admin_api_url}/pages`` carrying the session cookie must
    answer 2xx or 3xx (redirects are not followed). Any failure, including
    timeouts, counts as an invalid session.

    Args:
        http_client: Shared httpx.AsyncClient (injected).
        admin_api_url: Base URL of the admin API.
        timeout_seconds: Max time per verification (default: 5s).
    """

    def __init__(
        self,
        http_client: AsyncClient,
        admin_api_url: str,
        timeout_seconds: float = 5.0,
    ) -> None:
        self.http_client = http_client
        self._validation_url = f"{admin_api_url.rstrip('/')}/pages"
        self.timeout = timeout_seconds

    async def verify(self, session_id: str) -> bool:
        try:
            response = await self.http_client.get(
                self._validation_url,
                headers={
                    "Cookie": f"{SESSION_COOKIE}={session_id}",
                    "User-Agent": _VERIFIER_USER_AGENT,
                },
                timeout=self.timeout,
                follow_redirects=False,
            )
        except httpx.TimeoutException:
            log.warning("session_verification_timeout", timeout=self.timeout)
            return False
        except httpx.HTTPError as e:
            log.warning("session_verification_http_error", error=str(e))
            return False

        valid = 200 <= response.status_code < 400
        log.debug(
            "session_verification_result",
            status_code=response.status_code,
            valid=valid,
        )
        return valid
