"""FastAPI application factory (create_app)."""

from __future__ import annotations

import secrets
import time
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Any

import structlog
from fastapi import FastAPI, Request
from starlette.responses import Response

from linksentry import __version__
from linksentry.infrastructure.config import AppConfig
from linksentry.interfaces.api.middleware import ExtensionOriginMiddleware
from linksentry.interfaces.app_state import AppState
from linksentry.interfaces.composition import lifespan

log = structlog.get_logger(__name__)

API_PREFIX = "/api/v1"


def new_request_id() -> str:
    return f"req_{secrets.token_hex(8)}"


def create_app(config: AppConfig) -> FastAPI:
    """Create FastAPI app: configuration only, no resource initialization.

    Resources (HTTP client, prober chain, session verifier) are created in lifespan().
    """
    app = FastAPI(
        title="LinkSentry",
        description="Streaming broken-link checker for browser extensions",
        version=__version__,
        lifespan=lifespan,
    )

    app.state = AppState()
    app.state.config = config

    from linksentry.interfaces.api.link_check import router as link_check_router
    from linksentry.interfaces.api.link_check.router import LINK_CHECK_PATH

    app.include_router(link_check_router, prefix=API_PREFIX)

    app.add_middleware(
        ExtensionOriginMiddleware,
        protected_paths=[API_PREFIX + LINK_CHECK_PATH],
        allowed_prefixes=config.cors.allowed_origin_prefixes,
        allow_localhost=config.cors.allow_localhost,
    )

    @app.get("/api/v1/healthz")
    async def healthz() -> dict[str, Any]:
        """Liveness probe: 200 as long as the process is running."""
        tracker = getattr(app.state, "run_tracker", None)
        return {
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "environment": {
                "hasAdminApiUrl": bool(config.auth.admin_api_url),
            },
            "activeRuns": tracker.active_runs if tracker else 0,
        }

    @app.middleware("http")
    async def log_requests(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ):
        request_id = new_request_id()
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)
        start = time.perf_counter()
        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id
            return response
        finally:
            duration_ms = (time.perf_counter() - start) * 1000.0
            status_code = getattr(locals().get("response", None), "status_code", 500)

            log.info(
                "http_request",
                method=request.method,
                path=request.url.path,
                status_code=status_code,
                duration_ms=round(duration_ms, 2),
                client_host=(request.client.host if request.client else None),
            )

    return app
