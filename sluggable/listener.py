"""Commit-cycle listener driving slug generation for a persistence host.

Responsibilities:
- Run the insert, update and delete passes of one commit cycle in order.
- Own the batch ledger, the active transliterator and managed query filters.
- Construct slug handlers lazily and cache them per record type.

Key public types:
- `SluggableListener`: lifecycle hooks invoked by hosts (`on_before_commit`,
  `on_after_commit`, `on_record_about_to_persist`).
"""

from __future__ import annotations

from typing import Any

from .adapter import SluggableAdapter
from .config import ConfigStore, RecordTypeConfig, SlugFieldConfig
from .engine import INSERT_SENTINEL, SlugGenerator
from .errors import ConfigurationError, SluggableError
from .filters import ManagedFilters
from .handlers.base import HandlerRegistry, SlugHandler
from .history import HistoryTracker
from .ledger import BatchLedger
from .telemetry.logger import SlugLogger
from .text.transliteration import Transliterator, transliterate
from .uniqueness import UniquenessResolver


class SluggableListener:
    """Maintain slug fields of configured record types across commit cycles."""

    def __init__(
        self,
        configs: ConfigStore,
        *,
        registry: HandlerRegistry | None = None,
        transliterator: Transliterator | None = None,
        slug_logger: SlugLogger | None = None,
        history: HistoryTracker | None = None,
    ) -> None:
        """Initialize the listener with an immutable configuration store."""

        self.configs = configs
        self.registry = registry if registry is not None else HandlerRegistry.default()
        self.slug_logger = slug_logger or SlugLogger()
        self.ledger = BatchLedger()
        self.resolver = UniquenessResolver(self.ledger, self.slug_logger)
        self.generator = SlugGenerator(self)
        self.history = history or HistoryTracker(self.slug_logger)
        self.managed_filters = ManagedFilters()
        self._transliterator: Transliterator = transliterate
        self._handlers: dict[str, dict[tuple[str, str], SlugHandler]] = {}
        if transliterator is not None:
            self.set_transliterator(transliterator)

    def set_transliterator(self, transliterator: Transliterator) -> None:
        """Set the callable `(text, separator, record) -> str` used to transliterate."""

        if not callable(transliterator):
            raise ConfigurationError(detail="Invalid transliterator callable parameter given.")
        self._transliterator = transliterator

    def get_transliterator(self) -> Transliterator:
        return self._transliterator

    def add_managed_filter(self, name: str, disable: bool = True) -> None:
        """Enable or disable the named query filter while slugs are generated."""

        self.managed_filters.add(name, disable)

    def remove_managed_filter(self, name: str) -> None:
        self.managed_filters.remove(name)

    def get_configuration(self, adapter: SluggableAdapter, record: Any) -> RecordTypeConfig | None:
        return self.configs.get(adapter.record_type(record))

    def get_handler(
        self,
        record_config: RecordTypeConfig,
        field_config: SlugFieldConfig,
        identifier: str,
    ) -> SlugHandler:
        """Return the cached handler instance of one slug field, creating it on first use."""

        cache = self._handlers.setdefault(record_config.record_type, {})
        key = (field_config.slug, identifier)
        handler = cache.get(key)
        if handler is None:
            handler_class = self.registry.resolve(
                identifier, record_type=record_config.record_type, field=field_config.slug
            )
            handler = handler_class(
                self, record_config, field_config, field_config.handler_options(identifier)
            )
            cache[key] = handler
        return handler

    def handlers_for(
        self, record_config: RecordTypeConfig, field_config: SlugFieldConfig
    ) -> list[SlugHandler]:
        return [
            self.get_handler(record_config, field_config, handler.identifier)
            for handler in field_config.handlers
        ]

    def on_record_about_to_persist(self, adapter: SluggableAdapter, record: Any) -> None:
        """Assign the insert sentinel to slug fields that are also the identifier."""

        record_config = self.get_configuration(adapter, record)
        if record_config is None:
            return
        for field_config in record_config.slugs:
            if field_config.is_identifier:
                setattr(record, field_config.slug, INSERT_SENTINEL)

    def on_before_commit(self, adapter: SluggableAdapter) -> None:
        """Generate slugs for inserted and updated records, drop history of deleted ones.

        Raises:
            SlugValidationError: If a record has no sluggable content; the whole
                cycle must be aborted by the host.
        """

        self.ledger.reset()
        insertions = list(adapter.scheduled_insertions())
        updates = list(adapter.scheduled_updates())
        deletions = list(adapter.scheduled_deletions())
        self.slug_logger.log_commit_start(len(insertions), len(updates), len(deletions))

        assigned = 0
        try:
            with self.managed_filters.suspended(adapter):
                for record in insertions:
                    record_config = self.get_configuration(adapter, record)
                    if record_config is None:
                        continue
                    assigned += self.generator.generate(adapter, record, record_config)
                    self._record_assigned(record, record_config)

                for record in updates:
                    record_config = self.get_configuration(adapter, record)
                    if record_config is None or adapter.is_new_record(record):
                        continue
                    assigned += self.generator.generate(adapter, record, record_config)
                    self._record_assigned(record, record_config)
                    self.history.track_update(adapter, record, record_config)

                for record in deletions:
                    record_config = self.get_configuration(adapter, record)
                    if record_config is None:
                        continue
                    self.history.forget(adapter, record, record_config)
        except SluggableError as exc:
            self.slug_logger.log_failure(type(exc).__name__)
            raise

        self.slug_logger.log_commit_complete(assigned)

    def on_after_commit(self, adapter: SluggableAdapter) -> None:
        """Discard the commit-scoped ledger."""

        self.ledger.reset()

    def _record_assigned(self, record: Any, record_config: RecordTypeConfig) -> None:
        for field_config in record_config.slugs:
            self.ledger.record(
                record_config.scope_type,
                field_config.slug,
                getattr(record, field_config.slug, None),
            )
