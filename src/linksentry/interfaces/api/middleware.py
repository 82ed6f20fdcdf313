"""FastAPI middleware for browser-extension origin checks and CORS headers."""

from __future__ import annotations

from collections.abc import Iterable
from urllib.parse import urlsplit

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

log = structlog.get_logger(__name__)

_LOCAL_HOSTS = frozenset({"localhost", "127.0.0.1"})
_GUARDED_METHODS = frozenset({"POST", "OPTIONS"})

CORS_ALLOW_METHODS = "POST, OPTIONS"
CORS_ALLOW_HEADERS = "Content-Type, X-Wagtail-Session, X-SF-Gov-Extension"
CORS_MAX_AGE = "86400"


def is_allowed_origin(
    origin: str | None,
    *,
    prefixes: Iterable[str],
    allow_localhost: bool,
) -> bool:
    """Extension origins by prefix, plus localhost when enabled."""
    if not origin:
        return False
    if any(origin.startswith(prefix) for prefix in prefixes):
        return True
    if allow_localhost:
        try:
            host = urlsplit(origin).hostname
        except ValueError:
            return False
        return host in _LOCAL_HOSTS
    return False


def cors_headers(origin: str) -> dict[str, str]:
    return {
        "Access-Control-Allow-Origin": origin,
        "Access-Control-Allow-Methods": CORS_ALLOW_METHODS,
        "Access-Control-Allow-Headers": CORS_ALLOW_HEADERS,
        "Access-Control-Max-Age": CORS_MAX_AGE,
        "Vary": "Origin",
    }


class ExtensionOriginMiddleware(BaseHTTPMiddleware):
    """Origin guard for the extension-facing endpoints.

    Only POST and OPTIONS on *protected_paths* are checked; other methods
    fall through so the router can answer 405. Preflights from allowed
    origins are answered here and never reach the router.

    Args:
        app: ASGI application.
        protected_paths: Exact request paths the guard applies to.
        allowed_prefixes: Origin prefixes accepted (e.g. ``chrome-extension://``).
        allow_localhost: Also accept ``localhost`` / ``127.0.0.1`` origins.
    """

    def __init__(
        self,
        app: object,
        *,
        protected_paths: Iterable[str],
        allowed_prefixes: Iterable[str],
        allow_localhost: bool = True,
    ) -> None:
        super().__init__(app)  # type: ignore[arg-type]
        self._paths = frozenset(protected_paths)
        self._prefixes = tuple(allowed_prefixes)
        self._allow_localhost = allow_localhost

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if (
            request.url.path not in self._paths
            or request.method not in _GUARDED_METHODS
        ):
            return await call_next(request)

        origin = request.headers.get("origin")
        if not is_allowed_origin(
            origin, prefixes=self._prefixes, allow_localhost=self._allow_localhost
        ):
            log.warning(
                "origin_rejected",
                origin=origin,
                method=request.method,
                path=request.url.path,
            )
            return JSONResponse(status_code=403, content={"error": "Invalid origin"})

        assert origin is not None
        if request.method == "OPTIONS":
            return Response(status_code=200, headers=cors_headers(origin))

        response = await call_next(request)
        response.headers.update(cors_headers(origin))
        return response
