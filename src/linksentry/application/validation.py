"""Inbound request validation for link-check batches."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from linksentry.domain.entities import FieldError, LinkCheckRequest
from linksentry.domain.exceptions import RequestValidationError
from linksentry.infrastructure.common.url_normalizer import is_http_url

DEFAULT_MAX_URLS = 200


def _validate_urls(raw: Any, max_urls: int) -> list[FieldError]:
    if raw is None:
        return [FieldError("urls", "Missing required field: urls")]
    if not isinstance(raw, list):
        return [FieldError("urls", "Field 'urls' must be an array")]
    if not raw:
        return [FieldError("urls", "Field 'urls' must contain at least one URL")]

    errors: list[FieldError] = []
    if len(raw) > max_urls:
        errors.append(
            FieldError(
                "urls",
                f"Batch size exceeds maximum: {len(raw)} URLs provided, "
                f"maximum is {max_urls}",
            )
        )

    invalid: list[str] = []
    for index, url in enumerate(raw):
        if not isinstance(url, str):
            invalid.append(f"Index {index}: not a string")
        elif not is_http_url(url):
            invalid.append(f'Index {index}: "{url}" is not a valid HTTP/HTTPS URL')
    if invalid:
        errors.append(
            FieldError("urls", f"Invalid URLs found: {', '.join(invalid)}")
        )
    return errors


def _validate_page_url(raw: Any) -> list[FieldError]:
    if raw is None or raw == "":
        return [FieldError("pageUrl", "Missing required field: pageUrl")]
    if not isinstance(raw, str):
        return [FieldError("pageUrl", "Field 'pageUrl' must be a string")]
    if not is_http_url(raw):
        return [
            FieldError(
                "pageUrl", f'Invalid pageUrl: "{raw}" is not a valid HTTP/HTTPS URL'
            )
        ]
    return []


def parse_link_check_request(
    payload: Any, *, max_urls: int = DEFAULT_MAX_URLS
) -> LinkCheckRequest:
    """Validate a decoded JSON body and build a ``LinkCheckRequest``.

    All field violations are collected before raising. A body that is not
    a JSON object fails immediately.

    Raises:
        RequestValidationError: With one ``FieldError`` per violation.
    """
    if not isinstance(payload, Mapping):
        raise RequestValidationError(
            [FieldError("body", "Request body must be a JSON object")]
        )

    errors = [
        *_validate_urls(payload.get("urls"), max_urls),
        *_validate_page_url(payload.get("pageUrl")),
    ]
    if errors:
        raise RequestValidationError(errors)

    return LinkCheckRequest(urls=tuple(payload["urls"]), page_url=payload["pageUrl"])
