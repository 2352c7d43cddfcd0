"""Slug handler contract, no-op default handler, and handler registry.

Responsibilities:
- Define the hooks the generation engine invokes at fixed points per slug field.
- Carry per-field generation state that handlers may inspect and mutate.
- Resolve handler identifiers from configuration to handler classes.

Notes:
- Handler classes are constructed lazily by the listener and cached per record type.
- `validate` runs once at configuration load time, never per record.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar, Mapping, Protocol

from ..errors import ConfigurationError
from ..models.datatypes import RecordMetadata

if TYPE_CHECKING:
    from ..adapter import SluggableAdapter
    from ..config import RecordTypeConfig, SlugFieldConfig
    from ..listener import SluggableListener


@dataclass(slots=True)
class SlugBuildState:
    """Mutable generation state of one slug field on one record.

    Attributes:
        record_config: Configuration of the record type being processed.
        field_config: Configuration of the slug field being processed.
        slug: Current candidate, raw before post-build and final after completion.
        need_to_change: Whether the slug is regenerated in this pass.
        previous_slug: Slug value the record held before generation.
        is_insert: Whether the record is scheduled for insertion.
        changes: Changed fields of the record, name -> (old, new).
    """

    record_config: RecordTypeConfig
    field_config: SlugFieldConfig
    slug: str | None
    need_to_change: bool = False
    previous_slug: Any = None
    is_insert: bool = False
    changes: Mapping[str, tuple[Any, Any]] = field(default_factory=dict)


class SlugHandler(Protocol):
    """Protocol for extensions altering slug composition of one slug field."""

    identifier: ClassVar[str]

    def on_change_decision(
        self, adapter: SluggableAdapter, state: SlugBuildState, record: Any
    ) -> None:
        """Inspect the record and optionally force regeneration."""

    def on_post_build(
        self, adapter: SluggableAdapter, state: SlugBuildState, record: Any
    ) -> None:
        """Rewrite the raw candidate or substitute the active transliterator."""

    def on_completion(
        self,
        adapter: SluggableAdapter,
        state: SlugBuildState,
        record: Any,
        history_enabled: bool,
    ) -> None:
        """Observe the final slug value."""

    def handles_urlization(self) -> bool:
        """Return whether the handler's transliteration already urlized the slug."""

    @classmethod
    def validate(cls, options: Mapping[str, Any], metadata: RecordMetadata) -> None:
        """Validate handler options against record metadata at load time."""


class DefaultSlugHandler:
    """Handler base implementing every hook as a no-op."""

    identifier: ClassVar[str] = "default"

    def __init__(
        self,
        listener: SluggableListener,
        record_config: RecordTypeConfig,
        field_config: SlugFieldConfig,
        options: Mapping[str, Any],
    ) -> None:
        self.listener = listener
        self.record_config = record_config
        self.field_config = field_config
        self.options = dict(options)

    def on_change_decision(
        self, adapter: SluggableAdapter, state: SlugBuildState, record: Any
    ) -> None:
        return None

    def on_post_build(
        self, adapter: SluggableAdapter, state: SlugBuildState, record: Any
    ) -> None:
        return None

    def on_completion(
        self,
        adapter: SluggableAdapter,
        state: SlugBuildState,
        record: Any,
        history_enabled: bool,
    ) -> None:
        return None

    def handles_urlization(self) -> bool:
        return False

    @classmethod
    def validate(cls, options: Mapping[str, Any], metadata: RecordMetadata) -> None:
        return None

    @staticmethod
    def _require_option(
        options: Mapping[str, Any], name: str, handler: str, metadata: RecordMetadata
    ) -> str:
        """Return a required non-blank string option or raise `ConfigurationError`."""

        value = options.get(name)
        if not isinstance(value, str) or not value.strip():
            raise ConfigurationError(
                detail=(
                    f"SlugHandler [{handler}] requires option [{name}] "
                    f"in class - {metadata.name}."
                ),
                record_type=metadata.name,
            )
        return value.strip()


class HandlerRegistry:
    """Mapping of handler identifiers to handler classes."""

    def __init__(self, handlers: Mapping[str, type[DefaultSlugHandler]] | None = None) -> None:
        self._handlers: dict[str, type[DefaultSlugHandler]] = dict(handlers or {})

    @classmethod
    def default(cls) -> HandlerRegistry:
        """Return a fresh registry holding the built-in handlers."""

        from .inversed_relative import InversedRelativeSlugHandler
        from .relative import RelativeSlugHandler

        return cls(
            {
                RelativeSlugHandler.identifier: RelativeSlugHandler,
                InversedRelativeSlugHandler.identifier: InversedRelativeSlugHandler,
            }
        )

    def register(self, identifier: str, handler_class: type[DefaultSlugHandler]) -> None:
        self._handlers[identifier] = handler_class

    def unregister(self, identifier: str) -> None:
        self._handlers.pop(identifier, None)

    def resolve(
        self,
        identifier: str,
        *,
        record_type: str | None = None,
        field: str | None = None,
    ) -> type[DefaultSlugHandler]:
        """Return the handler class registered under `identifier`."""

        handler_class = self._handlers.get(identifier)
        if handler_class is None:
            supported = ", ".join(sorted(self._handlers)) or "none"
            raise ConfigurationError(
                detail=(
                    f"Unsupported slug handler `{identifier}`"
                    + (f" in class - {record_type}" if record_type else "")
                    + f"; registered: {supported}."
                ),
                record_type=record_type,
                field=field,
            )
        return handler_class

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._handlers

    @property
    def identifiers(self) -> tuple[str, ...]:
        return tuple(sorted(self._handlers))
