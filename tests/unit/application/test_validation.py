"""Tests for link-check request validation."""

from __future__ import annotations

from typing import Any

import pytest

from linksentry.application.validation import parse_link_check_request
from linksentry.domain.exceptions import RequestValidationError

PAGE = "https://www.sf.gov/page"


def _errors(payload: Any, **kwargs: Any) -> list[dict[str, str]]:
    with pytest.raises(RequestValidationError) as exc_info:
        parse_link_check_request(payload, **kwargs)
    return [e.to_payload() for e in exc_info.value.errors]


class TestValidPayload:
    def test_builds_request(self) -> None:
        request = parse_link_check_request(
            {"urls": ["https://a.example/", "http://b.example/x"], "pageUrl": PAGE}
        )
        assert request.urls == ("https://a.example/", "http://b.example/x")
        assert request.page_url == PAGE
        assert request.total == 2

    def test_exactly_max_urls_accepted(self) -> None:
        urls = [f"https://a.example/{i}" for i in range(200)]
        request = parse_link_check_request({"urls": urls, "pageUrl": PAGE})
        assert request.total == 200

    def test_duplicates_are_kept(self) -> None:
        url = "https://a.example/"
        request = parse_link_check_request({"urls": [url, url], "pageUrl": PAGE})
        assert request.urls == (url, url)


class TestInvalidPayload:
    def test_body_must_be_object(self) -> None:
        assert _errors(["https://a.example/"]) == [
            {"field": "body", "message": "Request body must be a JSON object"}
        ]

    def test_missing_fields_reported_together(self) -> None:
        errors = _errors({})
        assert [e["field"] for e in errors] == ["urls", "pageUrl"]
        assert errors[0]["message"] == "Missing required field: urls"
        assert errors[1]["message"] == "Missing required field: pageUrl"

    def test_urls_must_be_array(self) -> None:
        errors = _errors({"urls": "https://a.example/", "pageUrl": PAGE})
        assert errors == [{"field": "urls", "message": "Field 'urls' must be an array"}]

    def test_empty_urls_rejected(self) -> None:
        errors = _errors({"urls": [], "pageUrl": PAGE})
        assert errors[0]["field"] == "urls"

    def test_batch_over_limit(self) -> None:
        urls = [f"https://a.example/{i}" for i in range(201)]
        errors = _errors({"urls": urls, "pageUrl": PAGE})
        assert errors == [
            {
                "field": "urls",
                "message": "Batch size exceeds maximum: 201 URLs provided, maximum is 200",
            }
        ]

    def test_custom_limit(self) -> None:
        urls = ["https://a.example/1", "https://a.example/2"]
        errors = _errors({"urls": urls, "pageUrl": PAGE}, max_urls=1)
        assert "maximum is 1" in errors[0]["message"]

    def test_invalid_entries_listed_by_index(self) -> None:
        errors = _errors(
            {
                "urls": ["https://ok.example/", "ftp://files.example/", 42],
                "pageUrl": PAGE,
            }
        )
        assert len(errors) == 1
        message = errors[0]["message"]
        assert message.startswith("Invalid URLs found: ")
        assert 'Index 1: "ftp://files.example/" is not a valid HTTP/HTTPS URL' in message
        assert "Index 2: not a string" in message

    def test_page_url_must_be_http(self) -> None:
        errors = _errors({"urls": ["https://a.example/"], "pageUrl": "mailto:x@y"})
        assert errors == [
            {
                "field": "pageUrl",
                "message": 'Invalid pageUrl: "mailto:x@y" is not a valid HTTP/HTTPS URL',
            }
        ]

    def test_page_url_must_be_string(self) -> None:
        errors = _errors({"urls": ["https://a.example/"], "pageUrl": 7})
        assert errors[0]["message"] == "Field 'pageUrl' must be a string"

    def test_relative_url_rejected(self) -> None:
        errors = _errors({"urls": ["/relative/path"], "pageUrl": PAGE})
        assert "Index 0" in errors[0]["message"]

    @pytest.mark.parametrize(
        "url",
        [
            "https://exa mple.com/",
            "http://a<b>.com/",
            "https://example.com:/x y",
            "http://[::1/",
        ],
    )
    def test_malformed_url_rejected(self, url: str) -> None:
        errors = _errors({"urls": [url], "pageUrl": PAGE})
        assert errors[0]["field"] == "urls"
        assert f'Index 0: "{url}" is not a valid HTTP/HTTPS URL' in errors[0]["message"]

    def test_malformed_page_url_rejected(self) -> None:
        payload = {"urls": ["https://a.example/"], "pageUrl": "https://exa mple.com/"}
        errors = _errors(payload)
        assert errors[0]["field"] == "pageUrl"
