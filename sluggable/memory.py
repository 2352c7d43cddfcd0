"""In-memory persistence host for plain Python records.

Responsibilities:
- Keep stored records with a snapshot of their persisted field values.
- Provide a unit of work (`InMemorySession`) that schedules insertions, updates
  and deletions and drives the listener on `flush`.
- Implement the `SluggableAdapter` protocol over the stored snapshots, so
  similar-slug queries see stored values rather than pending in-memory edits.

Key public types:
- `InMemoryFilterCollection`: named visibility predicates.
- `InMemoryStore`: stored records, history entries and identifier sequences.
- `InMemorySession`: unit of work and adapter for one store.
"""

from __future__ import annotations

from collections.abc import Collection, Mapping as AbcMapping
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Iterable, Mapping

from .errors import CollaboratorError
from .models.datatypes import HistoryEntry, RecordMetadata, SlugScope
from .telemetry.logger import SlugLogger

DEFAULT_HISTORY_ENTRY_TYPE = "SlugEntry"


def _freeze(value: Any) -> Any:
    """Copy to-many values so later in-place edits show up as changes."""

    if isinstance(value, Collection) and not isinstance(value, (str, bytes, AbcMapping)):
        return tuple(value)
    return value


class InMemoryFilterCollection:
    """Named record visibility predicates that can be toggled."""

    def __init__(self) -> None:
        self._predicates: dict[str, Callable[[Any], bool]] = {}
        self._enabled: set[str] = set()

    def register(self, name: str, predicate: Callable[[Any], bool], enabled: bool = True) -> None:
        self._predicates[name] = predicate
        if enabled:
            self._enabled.add(name)
        else:
            self._enabled.discard(name)

    def enabled_filters(self) -> list[str]:
        return [name for name in self._predicates if name in self._enabled]

    def enable(self, name: str) -> None:
        self._require(name)
        self._enabled.add(name)

    def disable(self, name: str) -> None:
        self._require(name)
        self._enabled.discard(name)

    def is_visible(self, record: Any) -> bool:
        return all(self._predicates[name](record) for name in self.enabled_filters())

    def _require(self, name: str) -> None:
        if name not in self._predicates:
            raise CollaboratorError(detail=f"Query filter `{name}` is not registered.")


@dataclass(slots=True)
class StoredRecord:
    """A stored record and the field values it was last persisted with."""

    record: Any
    record_type: str
    state: dict[str, Any]


@dataclass(slots=True)
class InMemoryStore:
    """Stored records, history entries and identifier sequences.

    Attributes:
        metadata: Record metadata keyed by record type name.
        filters: Query filter collection, or `None` to behave like a host without filters.
    """

    metadata: Mapping[str, RecordMetadata] = field(default_factory=dict)
    filters: InMemoryFilterCollection | None = field(default_factory=InMemoryFilterCollection)
    rows: dict[int, StoredRecord] = field(default_factory=dict)
    history: dict[str, list[HistoryEntry]] = field(default_factory=dict)
    _sequences: dict[str, int] = field(default_factory=dict)

    def metadata_for(self, record_type: str) -> RecordMetadata:
        metadata = self.metadata.get(record_type)
        if metadata is None:
            return RecordMetadata(name=record_type, identifier=("id",))
        return metadata

    def records(self, record_type: str) -> list[Any]:
        """Return stored records of a type, including subtypes sharing its scope."""

        return [
            row.record
            for row in self.rows.values()
            if self.in_scope(row, record_type)
        ]

    def history_entries(self, entry_type: str | None = None) -> list[HistoryEntry]:
        return list(self.history.get(entry_type or DEFAULT_HISTORY_ENTRY_TYPE, []))

    def next_identifier(self, scope_type: str) -> int:
        value = self._sequences.get(scope_type, 0) + 1
        self._sequences[scope_type] = value
        return value

    def snapshot(self, record: Any, record_type: str) -> dict[str, Any]:
        """Capture the persisted field values of `record`."""

        metadata = self.metadata_for(record_type)
        names: Iterable[str]
        if metadata.fields:
            names = [*metadata.fields, *metadata.associations]
        else:
            names = [name for name in vars(record) if not name.startswith("_")]
        return {name: _freeze(getattr(record, name, None)) for name in names}

    def in_scope(self, row: StoredRecord, scope_type: str) -> bool:
        return (
            row.record_type == scope_type
            or self.metadata_for(row.record_type).scope_type == scope_type
        )


class InMemorySession:
    """Unit of work over an `InMemoryStore`, usable as a `SluggableAdapter`."""

    def __init__(
        self,
        store: InMemoryStore,
        listener: Any = None,
        slug_logger: SlugLogger | None = None,
    ) -> None:
        self.store = store
        self.listener = listener
        self.slug_logger = slug_logger or SlugLogger()
        self.recomputed: list[Any] = []
        self._pending: list[Any] = []
        self._removed: list[Any] = []
        self._insertions: list[Any] = []
        self._updates: list[Any] = []
        self._deletions: list[Any] = []
        self._rewritten: list[tuple[Any, str, Any]] = []

    def add(self, record: Any) -> None:
        """Schedule a new record for insertion on the next flush."""

        if self._is_stored(record) or any(record is pending for pending in self._pending):
            return
        self._pending.append(record)
        if self.listener is not None:
            self.listener.on_record_about_to_persist(self, record)

    def delete(self, record: Any) -> None:
        """Schedule a stored record for deletion, or drop a pending one."""

        for index, pending in enumerate(self._pending):
            if pending is record:
                del self._pending[index]
                return
        if self._is_stored(record) and not any(record is removed for removed in self._removed):
            self._removed.append(record)

    def flush(self) -> None:
        """Run one commit cycle: notify the listener, then persist the changes.

        A failing listener leaves storage untouched and keeps the scheduled work:
        history entries and stored slugs rewritten during the cycle are restored.
        """

        removed_ids = {id(record) for record in self._removed}
        self._insertions = list(self._pending)
        self._deletions = list(self._removed)
        self._updates = [
            row.record
            for key, row in self.store.rows.items()
            if key not in removed_ids and self._has_changes(row)
        ]

        history_backup = {key: list(entries) for key, entries in self.store.history.items()}
        state_backup = {key: dict(row.state) for key, row in self.store.rows.items()}
        self._rewritten = []
        try:
            if self.listener is not None:
                try:
                    self.listener.on_before_commit(self)
                except Exception:
                    self._rollback(history_backup, state_backup)
                    raise

            for record in self._insertions:
                self._insert(record)
            for record in self._updates:
                row = self.store.rows[id(record)]
                row.state = self.store.snapshot(record, row.record_type)
            for record in self._deletions:
                self.store.rows.pop(id(record), None)

            self._pending.clear()
            self._removed.clear()
            if self.listener is not None:
                self.listener.on_after_commit(self)
        finally:
            self._insertions = []
            self._updates = []
            self._deletions = []
            self._rewritten = []

    def record_type(self, record: Any) -> str:
        return type(record).__name__

    def scheduled_insertions(self) -> list[Any]:
        return list(self._insertions)

    def scheduled_updates(self) -> list[Any]:
        return list(self._updates)

    def scheduled_deletions(self) -> list[Any]:
        return list(self._deletions)

    def is_new_record(self, record: Any) -> bool:
        return not self._is_stored(record)

    def get_changed_fields(self, record: Any) -> dict[str, tuple[Any, Any]]:
        row = self.store.rows.get(id(record))
        current = self.store.snapshot(record, self.record_type(record))
        if row is None:
            return {name: (None, value) for name, value in current.items()}
        return {
            name: (row.state.get(name), value)
            for name, value in current.items()
            if row.state.get(name) != value
        }

    def get_identifier(self, record: Any) -> Any:
        identifier = self.store.metadata_for(self.record_type(record)).identifier
        if not identifier:
            return None
        if len(identifier) == 1:
            return getattr(record, identifier[0], None)
        return tuple(getattr(record, name, None) for name in identifier)

    def find_similar_slugs(self, record: Any, scope: SlugScope, prefix: str) -> list[str]:
        folded_prefix = prefix.lower()
        similar: list[str] = []
        for row in self._rows_in_scope(scope):
            value = row.state.get(scope.slug_field)
            if isinstance(value, str) and value.lower().startswith(folded_prefix):
                similar.append(value)
        return similar

    def rewrite_slug_prefix(
        self, record: Any, scope: SlugScope, target: str, replacement: str
    ) -> int:
        rows = [
            row
            for row in self.store.rows.values()
            if self.store.in_scope(row, scope.record_type) and self._in_groups(row, scope)
        ]
        return self._rewrite(rows, scope.slug_field, target, replacement)

    def rewrite_inverse_slug_prefix(
        self,
        record: Any,
        scope: SlugScope,
        mapped_by: str,
        target: str,
        replacement: str,
    ) -> int:
        rows = [
            row
            for row in self.store.rows.values()
            if self.store.in_scope(row, scope.record_type)
            and self._in_groups(row, scope)
            and row.state.get(mapped_by) is record
        ]
        return self._rewrite(rows, scope.slug_field, target, replacement)

    def notify_change_set_recompute(self, record: Any) -> None:
        self.recomputed.append(record)

    def find_history_entry(
        self, entry_type: str | None, record_type: str, slug_field: str, slug_value: str
    ) -> HistoryEntry | None:
        for entry in self.store.history.get(entry_type or DEFAULT_HISTORY_ENTRY_TYPE, []):
            if (
                entry.record_type == record_type
                and entry.slug_field == slug_field
                and entry.slug_value == slug_value
            ):
                return replace(entry)
        return None

    def upsert_history_entry(self, entry_type: str | None, entry: HistoryEntry) -> None:
        entries = self.store.history.setdefault(entry_type or DEFAULT_HISTORY_ENTRY_TYPE, [])
        for index, existing in enumerate(entries):
            if (
                existing.record_type == entry.record_type
                and existing.slug_field == entry.slug_field
                and existing.slug_value == entry.slug_value
            ):
                entries[index] = entry
                return
        entries.append(entry)

    def delete_history_entries_for(
        self, entry_type: str | None, record_type: str, identity: Any
    ) -> int:
        key = entry_type or DEFAULT_HISTORY_ENTRY_TYPE
        entries = self.store.history.get(key, [])
        kept = [
            entry
            for entry in entries
            if not (entry.record_type == record_type and entry.record_id == identity)
        ]
        self.store.history[key] = kept
        return len(entries) - len(kept)

    def filter_collection(self) -> InMemoryFilterCollection | None:
        return self.store.filters

    def _insert(self, record: Any) -> None:
        record_type = self.record_type(record)
        metadata = self.store.metadata_for(record_type)
        if len(metadata.identifier) == 1 and getattr(record, metadata.identifier[0], None) is None:
            setattr(record, metadata.identifier[0], self.store.next_identifier(metadata.scope_type))
        self.store.rows[id(record)] = StoredRecord(
            record=record,
            record_type=record_type,
            state=self.store.snapshot(record, record_type),
        )

    def _is_stored(self, record: Any) -> bool:
        row = self.store.rows.get(id(record))
        return row is not None and row.record is record

    def _has_changes(self, row: StoredRecord) -> bool:
        return self.store.snapshot(row.record, row.record_type) != row.state

    def _rows_in_scope(self, scope: SlugScope) -> list[StoredRecord]:
        filters = self.store.filters
        rows: list[StoredRecord] = []
        for row in self.store.rows.values():
            if not self.store.in_scope(row, scope.record_type):
                continue
            if not self._in_groups(row, scope):
                continue
            if scope.exclude_identity is not None and self._stored_identity(row) == scope.exclude_identity:
                continue
            if filters is not None and not filters.is_visible(row.record):
                continue
            rows.append(row)
        return rows

    def _stored_identity(self, row: StoredRecord) -> Any:
        identifier = self.store.metadata_for(row.record_type).identifier
        if not identifier:
            return None
        if len(identifier) == 1:
            return row.state.get(identifier[0], getattr(row.record, identifier[0], None))
        return tuple(row.state.get(name) for name in identifier)

    @staticmethod
    def _in_groups(row: StoredRecord, scope: SlugScope) -> bool:
        return all(row.state.get(name) == value for name, value in scope.group_values)

    def _rewrite(
        self, rows: list[StoredRecord], slug_field: str, target: str, replacement: str
    ) -> int:
        folded_target = target.lower()
        rewritten = 0
        for row in rows:
            value = row.state.get(slug_field)
            if not isinstance(value, str) or not value.lower().startswith(folded_target):
                continue
            new_value = replacement + value[len(target):]
            self._rewritten.append((row.record, slug_field, getattr(row.record, slug_field, None)))
            row.state[slug_field] = new_value
            setattr(row.record, slug_field, new_value)
            rewritten += 1
        self.slug_logger.log_event(
            "prefix_rewritten", field=slug_field, target=target, replacement=replacement, rows=rewritten
        )
        return rewritten

    def _rollback(
        self,
        history_backup: dict[str, list[HistoryEntry]],
        state_backup: dict[int, dict[str, Any]],
    ) -> None:
        """Restore history entries, stored states and rewritten slugs of a failed cycle."""

        self.store.history.clear()
        self.store.history.update(history_backup)
        for key, state in state_backup.items():
            row = self.store.rows.get(key)
            if row is not None:
                row.state = state
        for record, slug_field, value in reversed(self._rewritten):
            setattr(record, slug_field, value)
        self._rewritten = []
