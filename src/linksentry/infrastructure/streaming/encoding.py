"""Wire encoding for link-check events."""

from __future__ import annotations

import json

from linksentry.domain.entities import LinkCheckEvent


def encode_event(event: LinkCheckEvent) -> str:
    """One compact, self-contained JSON object (no embedded newlines).

    Used as the SSE ``data:`` payload and as one NDJSON line by the CLI.
    """
    return json.dumps(event.to_payload(), separators=(",", ":"), ensure_ascii=False)
