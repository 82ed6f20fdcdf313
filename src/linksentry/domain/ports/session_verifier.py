"""Port for verifying a caller's admin session."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class SessionVerifierPort(Protocol):
    async def verify(self, session_id: str) -> bool:
        """Return ``True`` if *session_id* belongs to a live admin session."""
        ...
