"""Shared fixtures for integration tests.

These tests wire the real prober chain (HttpLinkProber, RetryingLinkProber,
LinkCheckScheduler) with network calls intercepted by respx.
"""

from __future__ import annotations

from collections.abc import AsyncIterator

import httpx
import pytest
import respx

from linksentry.infrastructure.config import AppConfig, load_config
from linksentry.interfaces.composition import create_http_client


@pytest.fixture()
def app_config() -> AppConfig:
    return load_config(
        cli_overrides={
            "environment": "test",
            "http_timeout_seconds": 2.0,
            "domain_delay_seconds": 0.0,
        }
    )


@pytest.fixture()
async def http_client(app_config: AppConfig) -> AsyncIterator[httpx.AsyncClient]:
    """Real httpx.AsyncClient configured like production, for respx mocking."""
    async with create_http_client(app_config) as client:
        yield client


@pytest.fixture()
def respx_mock() -> respx.MockRouter:
    """Explicit respx mock router for request interception."""
    with respx.mock(assert_all_called=False) as router:
        yield router
