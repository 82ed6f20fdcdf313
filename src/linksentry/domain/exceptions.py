"""Link-check domain exceptions."""

from __future__ import annotations

from linksentry.domain.entities import FieldError


class LinkSentryError(Exception):
    """Base class for all linksentry errors."""


class RequestValidationError(LinkSentryError):
    """Raised when an inbound batch fails validation.

    Carries every violation found, not only the first one.
    """

    def __init__(self, errors: list[FieldError]) -> None:
        self.errors = list(errors)
        super().__init__("; ".join(f"{e.field}: {e.message}" for e in self.errors))


class ConfigurationError(LinkSentryError):
    """Raised when required runtime configuration is missing."""
