"""Composition root: dependency injection via FastAPI lifespan."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, cast

import httpx
import structlog
from fastapi import FastAPI

from linksentry.application.scheduler import LinkCheckScheduler
from linksentry.application.use_cases.link_check import LinkCheckUseCase
from linksentry.infrastructure.auth import AdminSessionVerifier
from linksentry.infrastructure.common.url_normalizer import UrlNormalizer
from linksentry.infrastructure.config.schema import AppConfig
from linksentry.infrastructure.run_tracker import RunTracker
from linksentry.infrastructure.validation import HttpLinkProber, RetryingLinkProber
from linksentry.infrastructure.validation.http_link_prober import BROWSER_HEADERS
from linksentry.interfaces.app_state import AppState

log = structlog.get_logger(__name__)

_SHUTDOWN_DRAIN_SECONDS = 5.0


def create_http_client(config: AppConfig) -> httpx.AsyncClient:
    """Shared probe client: redirect cap and timeout from config."""
    return httpx.AsyncClient(
        timeout=httpx.Timeout(config.http_timeout_seconds),
        max_redirects=config.http_max_redirects,
        follow_redirects=True,
    )


def build_link_check_use_case(
    config: AppConfig, http_client: httpx.AsyncClient
) -> LinkCheckUseCase:
    """Wire prober -> retry coordinator -> scheduler -> use case."""
    headers = dict(BROWSER_HEADERS)
    if config.http_user_agent:
        headers["User-Agent"] = config.http_user_agent
    prober = HttpLinkProber(
        http_client=http_client,
        timeout_seconds=config.http_timeout_seconds,
        headers=headers,
    )
    retrying = RetryingLinkProber(
        prober,
        policy=config.link_check.retry_policy(),
        normalizer=UrlNormalizer(config.link_check.canonical_hosts),
    )
    scheduler = LinkCheckScheduler(retrying, config.link_check.scheduler_limits())
    return LinkCheckUseCase(scheduler)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan Hook: Initialize and cleanup all resources (DI Composition Root).

    Order matters:
        1. HTTP Client (required by prober and session verifier)
        2. Session verifier (optional)
        3. Link-check use case (prober chain + scheduler)
        4. Run tracker
    """
    state = cast(AppState, app.state)
    config = state.config

    # 1) Shared HTTP client
    state.http_client = create_http_client(config)
    log.info(
        "http_client_initialized",
        timeout_seconds=config.http_timeout_seconds,
        max_redirects=config.http_max_redirects,
    )

    # 2) Session verifier
    if config.auth.admin_api_url:
        state.session_verifier = AdminSessionVerifier(
            http_client=state.http_client,
            admin_api_url=config.auth.admin_api_url,
            timeout_seconds=config.auth.timeout_seconds,
        )
        log.info("session_verifier_initialized")
    else:
        state.session_verifier = None
        if config.auth.required:
            log.warning(
                "session_verifier_missing",
                reason="auth.required is set but auth.admin_api_url is empty",
            )

    # 3) Link-check use case
    state.link_check_uc = build_link_check_use_case(config, state.http_client)
    log.info(
        "link_check_initialized",
        max_concurrent=config.link_check.max_concurrent,
        max_execution_seconds=config.link_check.max_execution_seconds,
    )

    # 4) Run tracker
    state.run_tracker = RunTracker()

    log.info("app_startup_complete")

    try:
        yield
    finally:
        await state.run_tracker.shutdown(timeout=_SHUTDOWN_DRAIN_SECONDS)
        log.info("link_check_runs_stopped")

        await state.http_client.aclose()
        log.info("http_client_closed")

        log.info("app_shutdown_complete")
