"""Application state container for FastAPI dependency injection."""

from __future__ import annotations

import httpx
from starlette.datastructures import State

from linksentry.application.use_cases.link_check import LinkCheckUseCase
from linksentry.domain.ports import SessionVerifierPort
from linksentry.infrastructure.config import AppConfig
from linksentry.infrastructure.run_tracker import RunTracker


class AppState(State):
    """FastAPI application state with all DI resources.

    Lifecycle managed by composition.py::lifespan().
    """

    # Configuration
    config: AppConfig

    # Infrastructure
    http_client: httpx.AsyncClient

    # Session verification (None when auth.admin_api_url is not configured)
    session_verifier: SessionVerifierPort | None

    # Application Services
    link_check_uc: LinkCheckUseCase

    # Background runs (strong refs + shutdown drain)
    run_tracker: RunTracker
