"""Tests for admin session extraction and verification."""

from __future__ import annotations

from collections.abc import AsyncIterator

import httpx
import pytest
import respx

from linksentry.infrastructure.auth import AdminSessionVerifier, extract_session_id

ADMIN_API = "https://cms.example.gov/admin/api/main"


@pytest.fixture()
async def http_client() -> AsyncIterator[httpx.AsyncClient]:
    async with httpx.AsyncClient() as client:
        yield client


@pytest.fixture()
def verifier(http_client: httpx.AsyncClient) -> AdminSessionVerifier:
    return AdminSessionVerifier(http_client, ADMIN_API + "/", timeout_seconds=1.0)


class TestExtractSessionId:
    def test_header_wins(self) -> None:
        headers = httpx.Headers(
            {"X-Wagtail-Session": "from-header", "Cookie": "sessionid=from-cookie"}
        )
        assert extract_session_id(headers) == "from-header"

    def test_cookie_fallback(self) -> None:
        headers = httpx.Headers({"Cookie": "csrftoken=abc; sessionid=s3cr3t"})
        assert extract_session_id(headers) == "s3cr3t"

    def test_missing(self) -> None:
        assert extract_session_id(httpx.Headers({"Cookie": "csrftoken=abc"})) is None
        assert extract_session_id(httpx.Headers()) is None


class TestAdminSessionVerifier:
    @respx.mock
    async def test_valid_session(self, verifier: AdminSessionVerifier) -> None:
        route = respx.get(f"{ADMIN_API}/pages").respond(200, json={"items": []})

        assert await verifier.verify("s3cr3t") is True
        assert route.calls.last.request.headers["cookie"] == "sessionid=s3cr3t"

    @respx.mock
    async def test_redirect_counts_as_valid_and_is_not_followed(
        self, verifier: AdminSessionVerifier
    ) -> None:
        pages = respx.get(f"{ADMIN_API}/pages").respond(
            302, headers={"Location": "https://cms.example.gov/login"}
        )

        assert await verifier.verify("s3cr3t") is True
        assert pages.call_count == 1
        assert respx.calls.call_count == 1

    @pytest.mark.parametrize("status_code", [401, 403, 500])
    @respx.mock
    async def test_rejected_session(
        self, verifier: AdminSessionVerifier, status_code: int
    ) -> None:
        respx.get(f"{ADMIN_API}/pages").respond(status_code)

        assert await verifier.verify("expired") is False

    @respx.mock
    async def test_timeout_is_invalid(self, verifier: AdminSessionVerifier) -> None:
        respx.get(f"{ADMIN_API}/pages").mock(side_effect=httpx.ReadTimeout("slow"))

        assert await verifier.verify("s3cr3t") is False

    @respx.mock
    async def test_network_error_is_invalid(self, verifier: AdminSessionVerifier) -> None:
        respx.get(f"{ADMIN_API}/pages").mock(side_effect=httpx.ConnectError("refused"))

        assert await verifier.verify("s3cr3t") is False
