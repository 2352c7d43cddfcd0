"""Slug history tracking.

Responsibilities:
- Record superseded slug values of updated records with history enabled.
- Redefine an existing entry for the same field, value and type instead of
  duplicating it.
- Remove every history entry of a deleted record.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Callable

from .models.datatypes import HistoryEntry
from .telemetry.logger import SlugLogger

if TYPE_CHECKING:
    from .adapter import SluggableAdapter
    from .config import RecordTypeConfig


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class HistoryTracker:
    """Create and delete history entries through the persistence adapter."""

    def __init__(
        self,
        slug_logger: SlugLogger | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.slug_logger = slug_logger or SlugLogger()
        self.clock = clock

    def track_update(
        self, adapter: SluggableAdapter, record: Any, record_config: RecordTypeConfig
    ) -> int:
        """Store the previous value of every changed slug field.

        Returns:
            Number of history entries created or redefined.
        """

        if not record_config.history:
            return 0

        changes = adapter.get_changed_fields(record)
        stored = 0
        for field_config in record_config.slugs:
            change = changes.get(field_config.slug)
            if change is None:
                continue
            old_value, new_value = change
            if not old_value or old_value == new_value:
                continue
            self.create_entry(adapter, record, record_config, field_config.slug, str(old_value))
            stored += 1
        return stored

    def create_entry(
        self,
        adapter: SluggableAdapter,
        record: Any,
        record_config: RecordTypeConfig,
        slug_field: str,
        slug_value: str,
    ) -> HistoryEntry:
        """Create the entry of a superseded value, or redefine the existing one."""

        record_type = record_config.record_type
        entry_type = record_config.history_entry_type
        identity = adapter.get_identifier(record)
        created = self.clock()

        existing = adapter.find_history_entry(entry_type, record_type, slug_field, slug_value)
        if existing is not None:
            entry = replace(existing, record_id=identity, created=created)
        else:
            entry = HistoryEntry(
                record_type=record_type,
                record_id=identity,
                slug_field=slug_field,
                slug_value=slug_value,
                created=created,
            )
        adapter.upsert_history_entry(entry_type, entry)
        self.slug_logger.log_event(
            "history_recorded",
            record_type=record_type,
            field=slug_field,
            slug=slug_value,
            redefined=existing is not None,
        )
        return entry

    def forget(
        self, adapter: SluggableAdapter, record: Any, record_config: RecordTypeConfig
    ) -> int:
        """Delete every history entry of a record being deleted."""

        if not record_config.history:
            return 0

        removed = adapter.delete_history_entries_for(
            record_config.history_entry_type,
            record_config.record_type,
            adapter.get_identifier(record),
        )
        self.slug_logger.log_event(
            "history_forgotten", record_type=record_config.record_type, entries=removed
        )
        return removed
