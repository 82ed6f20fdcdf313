"""URL helpers: http(s) detection, host extraction, canonical-host rewrite."""

from __future__ import annotations

from collections.abc import Mapping
from urllib.parse import urlsplit, urlunsplit

import httpx
import structlog

log = structlog.get_logger(__name__)

_HTTP_SCHEMES = frozenset({"http", "https"})
# Forbidden host code points (WHATWG URL standard).
_FORBIDDEN_HOST_CHARS = frozenset(" \t\n\r#%/:<>?@[\\]^|")


def is_http_url(value: str) -> bool:
    """True if *value* is an absolute http/https URL with a well-formed host.

    Surrounding whitespace is ignored. Whitespace or control characters
    anywhere else make the URL invalid, as do host names containing
    forbidden characters.
    """
    value = value.strip()
    if not value or any(ch.isspace() or not ch.isprintable() for ch in value):
        return False
    try:
        parts = urlsplit(value)
        # Accessing .port validates it ("http://host:abc" raises).
        parts.port  # noqa: B018
        httpx.URL(value)
    except (ValueError, httpx.InvalidURL):
        return False
    if parts.scheme.lower() not in _HTTP_SCHEMES:
        return False
    host = parts.hostname
    if not host:
        return False
    if ":" in host:
        # Bracketed IPv6 literal, already validated by urlsplit.
        return True
    return not any(ch in _FORBIDDEN_HOST_CHARS for ch in host)


def extract_domain(url: str) -> str:
    """Lower-cased hostname of *url*, or ``""`` if it has none."""
    try:
        return (urlsplit(url).hostname or "").lower()
    except ValueError:
        return ""


class UrlNormalizer:
    """Rewrites bare apex-domain root URLs to their canonical host.

    Some sites redirect ``https://example.gov/`` to ``https://www.example.gov/``.
    Probing the canonical form directly avoids reporting that redirect as
    noise. Only exact host matches on the site root (no path, query or
    fragment) are rewritten; every other URL is returned unchanged.

    Args:
        canonical_hosts: Mapping of apex host -> canonical host.
    """

    def __init__(self, canonical_hosts: Mapping[str, str] | None = None) -> None:
        self._hosts = {k.lower(): v for k, v in (canonical_hosts or {}).items()}

    def normalize(self, url: str) -> str:
        if not self._hosts:
            return url
        try:
            parts = urlsplit(url)
            hostname = (parts.hostname or "").lower()
        except ValueError:
            return url

        canonical = self._hosts.get(hostname)
        if canonical is None:
            return url
        if parts.path not in ("", "/") or parts.query or parts.fragment:
            return url

        netloc = canonical if parts.port is None else f"{canonical}:{parts.port}"
        normalized = urlunsplit((parts.scheme, netloc, "/", "", ""))
        log.debug("url_normalized", url=url, normalized=normalized)
        return normalized
