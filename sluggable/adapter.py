"""Collaborator protocols consumed by the sluggable listener.

Responsibilities:
- Describe the unit-of-work, query and history capabilities a persistence host
  must provide for one commit cycle.
- Describe the named query filter collection suspended during generation.

Hosts:
- `sluggable.memory.InMemorySession` for plain Python objects.
- `sluggable.orm.SqlAlchemyAdapter` for SQLAlchemy sessions.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Protocol, Sequence

from .models.datatypes import HistoryEntry, SlugScope


class FilterCollection(Protocol):
    """Protocol for named query filters that can be toggled at runtime."""

    def enabled_filters(self) -> Iterable[str]:
        """Return names of currently enabled filters."""

    def enable(self, name: str) -> None:
        """Enable a filter by name."""

    def disable(self, name: str) -> None:
        """Disable a filter by name."""


class SluggableAdapter(Protocol):
    """Protocol for the persistence host driving one commit cycle."""

    def record_type(self, record: Any) -> str:
        """Return the configured record type name of `record`."""

    def scheduled_insertions(self) -> Sequence[Any]:
        """Return records scheduled for insertion in this cycle, in order."""

    def scheduled_updates(self) -> Sequence[Any]:
        """Return records scheduled for update in this cycle, in order."""

    def scheduled_deletions(self) -> Sequence[Any]:
        """Return records scheduled for deletion in this cycle, in order."""

    def is_new_record(self, record: Any) -> bool:
        """Return whether `record` has not been stored yet."""

    def get_changed_fields(self, record: Any) -> Mapping[str, tuple[Any, Any]]:
        """Return changed fields as name -> (old value, new value)."""

    def get_identifier(self, record: Any) -> Any:
        """Return the single identifier value of `record`, or a tuple when composite."""

    def find_similar_slugs(self, record: Any, scope: SlugScope, prefix: str) -> Sequence[str]:
        """Return stored slugs in `scope` starting with `prefix`."""

    def rewrite_slug_prefix(
        self, record: Any, scope: SlugScope, target: str, replacement: str
    ) -> int:
        """Replace prefix `target` by `replacement` on stored slugs in `scope`."""

    def rewrite_inverse_slug_prefix(
        self,
        record: Any,
        scope: SlugScope,
        mapped_by: str,
        target: str,
        replacement: str,
    ) -> int:
        """Replace prefix `target` on stored slugs of records whose `mapped_by` is `record`."""

    def notify_change_set_recompute(self, record: Any) -> None:
        """Tell the host a field of `record` changed after its snapshot was taken."""

    def find_history_entry(
        self, entry_type: str | None, record_type: str, slug_field: str, slug_value: str
    ) -> HistoryEntry | None:
        """Return the history entry of a slug value, if one exists."""

    def upsert_history_entry(self, entry_type: str | None, entry: HistoryEntry) -> None:
        """Store `entry`, replacing the entry with the same field, value and type."""

    def delete_history_entries_for(
        self, entry_type: str | None, record_type: str, identity: Any
    ) -> int:
        """Delete every history entry of one record."""

    def filter_collection(self) -> FilterCollection | None:
        """Return the host's query filter collection, or `None` when unsupported."""
