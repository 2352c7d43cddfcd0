"""Domain exceptions raised while loading slug configuration and generating slugs."""

from __future__ import annotations


class SluggableError(RuntimeError):
    """Base class for errors that carry record type and field context."""

    def __init__(
        self,
        *,
        detail: str,
        record_type: str | None = None,
        field: str | None = None,
        hint: str | None = None,
    ) -> None:
        """Initialize an error scoped to an optional record type and field."""

        super().__init__(detail)
        self.detail = detail
        self.record_type = record_type
        self.field = field
        self.hint = hint


class ConfigurationError(SluggableError):
    """Raised at load time for malformed slug field or handler configuration."""


class SlugValidationError(SluggableError):
    """Raised during a commit cycle when a slug cannot be produced for a record."""


class CollaboratorError(SluggableError):
    """Raised when the persistence adapter lacks a capability the listener needs."""
