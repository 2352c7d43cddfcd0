"""SQLAlchemy persistence host.

Responsibilities:
- Derive `RecordMetadata` from mapped classes.
- Implement the `SluggableAdapter` protocol over one `Session` flush.
- Install session events so slugs are generated on every flush.
- Provide a declarative mixin for slug history tables.

Key public types:
- `SlugEntryMixin`: columns of a slug history entry table.
- `CriteriaFilterCollection`: named query criteria toggled like filters.
- `SqlAlchemyAdapter`: adapter bound to one session.
- `SqlAlchemySluggable`: event wiring between sessions and a listener.

Notes:
- Changed fields come from attribute history, so previous values are only known
  for loaded attributes; sessions should use `expire_on_commit=False` or load
  records before editing them.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any, Callable, Iterable, Mapping

from sqlalchemy import (
    DateTime,
    Integer,
    String,
    Text,
    and_,
    delete,
    event,
    func,
    inspect,
    literal,
    not_,
    select,
    update,
)
from sqlalchemy.orm import Mapped, Session, mapped_column

from .config import ConfigLoader, ConfigStore
from .errors import CollaboratorError
from .models.datatypes import AssociationMetadata, FieldMetadata, HistoryEntry, RecordMetadata, SlugScope
from .telemetry.logger import SlugLogger

if TYPE_CHECKING:
    from .listener import SluggableListener

DEFAULT_HISTORY_ENTRY_TYPE = "SlugEntry"
LIKE_ESCAPE = "\\"

Criterion = Callable[[type], Any]


def _escape_like(value: str) -> str:
    return (
        value.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", f"{LIKE_ESCAPE}%")
        .replace("_", f"{LIKE_ESCAPE}_")
    )


def _column_type_name(column_type: Any) -> str:
    if isinstance(column_type, Text):
        return "text"
    if isinstance(column_type, String):
        return "string"
    if isinstance(column_type, Integer):
        return "integer"
    return type(column_type).__name__.lower()


def metadata_from_mapper(mapped_class: type) -> RecordMetadata:
    """Build record metadata from the mapper of a declarative class."""

    mapper = inspect(mapped_class)
    fields: dict[str, FieldMetadata] = {}
    for prop in mapper.column_attrs:
        column = prop.columns[0]
        column_type = getattr(column, "type", None)
        fields[prop.key] = FieldMetadata(
            name=prop.key,
            type=_column_type_name(column_type),
            length=getattr(column_type, "length", None),
            nullable=bool(getattr(column, "nullable", True)),
        )

    associations = {
        rel.key: AssociationMetadata(
            name=rel.key,
            target=rel.mapper.class_.__name__,
            to_many=bool(rel.uselist),
        )
        for rel in mapper.relationships
    }

    discriminator = None
    if mapper.polymorphic_on is not None:
        discriminator = mapper.get_property_by_column(mapper.polymorphic_on).key

    root_type = None
    if mapper.base_mapper is not mapper:
        root_type = mapper.base_mapper.class_.__name__

    return RecordMetadata(
        name=mapped_class.__name__,
        fields=fields,
        identifier=tuple(mapper.get_property_by_column(column).key for column in mapper.primary_key),
        associations=associations,
        discriminator=discriminator,
        root_type=root_type,
    )


def metadata_for_classes(*mapped_classes: type) -> dict[str, RecordMetadata]:
    """Return metadata of several mapped classes keyed by class name."""

    return {mapped_class.__name__: metadata_from_mapper(mapped_class) for mapped_class in mapped_classes}


class SlugEntryMixin:
    """Columns of a slug history table; combine with a declarative base.

    Example:
        class SlugEntry(SlugEntryMixin, Base):
            __tablename__ = "slug_entries"
    """

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    record_type: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    record_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    slug_field: Mapped[str] = mapped_column(String(255), nullable=False)
    slug_value: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    created: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class CriteriaFilterCollection:
    """Named criteria applied to similar-slug queries while enabled.

    A criterion receives the queried class and returns a WHERE clause, or `None`
    when it does not apply to that class.
    """

    def __init__(self) -> None:
        self._criteria: dict[str, Criterion] = {}
        self._enabled: set[str] = set()

    def register(self, name: str, criterion: Criterion, enabled: bool = True) -> None:
        self._criteria[name] = criterion
        if enabled:
            self._enabled.add(name)
        else:
            self._enabled.discard(name)

    def enabled_filters(self) -> list[str]:
        return [name for name in self._criteria if name in self._enabled]

    def enable(self, name: str) -> None:
        self._require(name)
        self._enabled.add(name)

    def disable(self, name: str) -> None:
        self._require(name)
        self._enabled.discard(name)

    def criteria_for(self, mapped_class: type) -> list[Any]:
        clauses = []
        for name in self.enabled_filters():
            clause = self._criteria[name](mapped_class)
            if clause is not None:
                clauses.append(clause)
        return clauses

    def _require(self, name: str) -> None:
        if name not in self._criteria:
            raise CollaboratorError(detail=f"Query filter `{name}` is not registered.")


class SqlAlchemyAdapter:
    """`SluggableAdapter` over the pending state of one SQLAlchemy session."""

    def __init__(
        self,
        session: Session,
        entry_classes: Iterable[type] = (),
        filters: CriteriaFilterCollection | None = None,
        slug_logger: SlugLogger | None = None,
    ) -> None:
        self.session = session
        self.entry_classes = {entry_class.__name__: entry_class for entry_class in entry_classes}
        self.filters = filters
        self.slug_logger = slug_logger or SlugLogger()

    def record_type(self, record: Any) -> str:
        return type(record).__name__

    def scheduled_insertions(self) -> list[Any]:
        return list(self.session.new)

    def scheduled_updates(self) -> list[Any]:
        return [record for record in self.session.dirty if self.session.is_modified(record)]

    def scheduled_deletions(self) -> list[Any]:
        return list(self.session.deleted)

    def is_new_record(self, record: Any) -> bool:
        return not inspect(record).has_identity

    def get_changed_fields(self, record: Any) -> dict[str, tuple[Any, Any]]:
        state = inspect(record)
        keys = [prop.key for prop in state.mapper.column_attrs]
        keys.extend(rel.key for rel in state.mapper.relationships)

        changes: dict[str, tuple[Any, Any]] = {}
        with self.session.no_autoflush:
            if not state.has_identity:
                for key in keys:
                    changes[key] = (None, getattr(record, key))
                return changes

            for key in keys:
                history = state.attrs[key].history
                if not history.has_changes():
                    continue
                old_value = history.deleted[0] if history.deleted else None
                changes[key] = (old_value, getattr(record, key))
        return changes

    def get_identifier(self, record: Any) -> Any:
        state = inspect(record)
        if state.identity is not None:
            identity = state.identity
        else:
            identity = tuple(state.mapper.primary_key_from_instance(record))
            if all(value is None for value in identity):
                return None
        return identity[0] if len(identity) == 1 else identity

    def find_similar_slugs(self, record: Any, scope: SlugScope, prefix: str) -> list[str]:
        mapped_class = self._mapped_class(record, scope.record_type)
        column = getattr(mapped_class, scope.slug_field)
        statement = select(column).where(
            column.ilike(f"{_escape_like(prefix)}%", escape=LIKE_ESCAPE),
            *self._scope_criteria(mapped_class, scope),
        )
        if self.filters is not None:
            statement = statement.where(*self.filters.criteria_for(mapped_class))

        with self.session.no_autoflush:
            return [value for value in self.session.scalars(statement) if value is not None]

    def rewrite_slug_prefix(
        self, record: Any, scope: SlugScope, target: str, replacement: str
    ) -> int:
        mapped_class = self._mapped_class(record, scope.record_type)
        return self._rewrite(
            mapped_class,
            scope,
            target,
            replacement,
            self._group_criteria(mapped_class, scope),
        )

    def rewrite_inverse_slug_prefix(
        self,
        record: Any,
        scope: SlugScope,
        mapped_by: str,
        target: str,
        replacement: str,
    ) -> int:
        mapped_class = self._mapped_class(record, scope.record_type)
        criteria = self._group_criteria(mapped_class, scope)
        criteria.append(getattr(mapped_class, mapped_by) == record)
        return self._rewrite(mapped_class, scope, target, replacement, criteria)

    def notify_change_set_recompute(self, record: Any) -> None:
        # Attribute changes made in before_flush are picked up by the flush itself.
        return None

    def find_history_entry(
        self, entry_type: str | None, record_type: str, slug_field: str, slug_value: str
    ) -> HistoryEntry | None:
        row = self._find_entry_row(entry_type, record_type, slug_field, slug_value)
        if row is None:
            return None
        return HistoryEntry(
            record_type=row.record_type,
            record_id=row.record_id,
            slug_field=row.slug_field,
            slug_value=row.slug_value,
            created=row.created,
        )

    def upsert_history_entry(self, entry_type: str | None, entry: HistoryEntry) -> None:
        row = self._find_entry_row(entry_type, entry.record_type, entry.slug_field, entry.slug_value)
        if row is None:
            row = self._entry_class(entry_type)()
            row.record_type = entry.record_type
            row.slug_field = entry.slug_field
            row.slug_value = entry.slug_value
            self.session.add(row)
        row.record_id = str(entry.record_id)
        row.created = entry.created

    def delete_history_entries_for(
        self, entry_type: str | None, record_type: str, identity: Any
    ) -> int:
        entry_class = self._entry_class(entry_type)
        result = self.session.execute(
            delete(entry_class).where(
                entry_class.record_type == record_type,
                entry_class.record_id == str(identity),
            )
        )
        return int(result.rowcount or 0)

    def filter_collection(self) -> CriteriaFilterCollection | None:
        return self.filters

    def _mapped_class(self, record: Any, type_name: str) -> type:
        for mapper in inspect(type(record)).registry.mappers:
            if mapper.class_.__name__ == type_name:
                return mapper.class_
        raise CollaboratorError(
            detail=f"Record type `{type_name}` is not mapped in the registry of {type(record).__name__}.",
            record_type=type_name,
        )

    def _entry_class(self, entry_type: str | None) -> type:
        name = entry_type
        if name is None:
            if len(self.entry_classes) == 1:
                return next(iter(self.entry_classes.values()))
            name = DEFAULT_HISTORY_ENTRY_TYPE
        entry_class = self.entry_classes.get(name)
        if entry_class is None:
            raise CollaboratorError(
                detail=f"Slug history entry class `{name}` is not registered.",
                hint="Pass the history entry class in `entry_classes`.",
            )
        return entry_class

    def _find_entry_row(
        self, entry_type: str | None, record_type: str, slug_field: str, slug_value: str
    ) -> Any:
        entry_class = self._entry_class(entry_type)
        for pending in self.session.new:
            if (
                isinstance(pending, entry_class)
                and pending.record_type == record_type
                and pending.slug_field == slug_field
                and pending.slug_value == slug_value
            ):
                return pending

        statement = select(entry_class).where(
            entry_class.record_type == record_type,
            entry_class.slug_field == slug_field,
            entry_class.slug_value == slug_value,
        )
        with self.session.no_autoflush:
            return self.session.scalars(statement).first()

    @staticmethod
    def _group_criteria(mapped_class: type, scope: SlugScope) -> list[Any]:
        return [getattr(mapped_class, name) == value for name, value in scope.group_values]

    def _scope_criteria(self, mapped_class: type, scope: SlugScope) -> list[Any]:
        criteria = self._group_criteria(mapped_class, scope)
        if scope.exclude_identity is not None:
            mapper = inspect(mapped_class)
            columns = [
                getattr(mapped_class, mapper.get_property_by_column(column).key)
                for column in mapper.primary_key
            ]
            identity = scope.exclude_identity
            values = identity if isinstance(identity, tuple) else (identity,)
            if len(columns) == 1:
                criteria.append(columns[0] != values[0])
            else:
                criteria.append(not_(and_(*(column == value for column, value in zip(columns, values)))))
        return criteria

    def _rewrite(
        self,
        mapped_class: type,
        scope: SlugScope,
        target: str,
        replacement: str,
        criteria: list[Any],
    ) -> int:
        column = getattr(mapped_class, scope.slug_field)
        statement = (
            update(mapped_class)
            .where(column.like(f"{_escape_like(target)}%", escape=LIKE_ESCAPE), *criteria)
            .values({scope.slug_field: literal(replacement) + func.substr(column, len(target) + 1)})
            .execution_options(synchronize_session="fetch")
        )
        result = self.session.execute(statement)
        rewritten = int(result.rowcount or 0)
        self.slug_logger.log_event(
            "prefix_rewritten",
            record_type=scope.record_type,
            field=scope.slug_field,
            target=target,
            replacement=replacement,
            rows=rewritten,
        )
        return rewritten


class SqlAlchemySluggable:
    """Wire a `SluggableListener` into SQLAlchemy session events."""

    def __init__(
        self,
        listener: SluggableListener,
        *,
        entry_classes: Iterable[type] = (),
        filters: CriteriaFilterCollection | None = None,
    ) -> None:
        self.listener = listener
        self.entry_classes = tuple(entry_classes)
        self.filters = filters

    def adapter_for(self, session: Session) -> SqlAlchemyAdapter:
        return SqlAlchemyAdapter(
            session,
            entry_classes=self.entry_classes,
            filters=self.filters,
            slug_logger=self.listener.slug_logger,
        )

    def install(self, target: Any) -> None:
        """Listen on a `Session`, a `sessionmaker`, or the `Session` class."""

        event.listen(target, "transient_to_pending", self._on_transient_to_pending)
        event.listen(target, "before_flush", self._on_before_flush)
        event.listen(target, "after_flush", self._on_after_flush)

    def uninstall(self, target: Any) -> None:
        event.remove(target, "transient_to_pending", self._on_transient_to_pending)
        event.remove(target, "before_flush", self._on_before_flush)
        event.remove(target, "after_flush", self._on_after_flush)

    def _on_transient_to_pending(self, session: Session, instance: Any) -> None:
        self.listener.on_record_about_to_persist(self.adapter_for(session), instance)

    def _on_before_flush(self, session: Session, flush_context: Any, instances: Any) -> None:
        self.listener.on_before_commit(self.adapter_for(session))

    def _on_after_flush(self, session: Session, flush_context: Any) -> None:
        self.listener.on_after_commit(self.adapter_for(session))


def configure_from_mapping(
    payload: Mapping[str, Any],
    *mapped_classes: type,
) -> ConfigStore:
    """Load slug configuration with metadata derived from `mapped_classes`."""

    return ConfigLoader.from_mapping(
        payload,
        metadata=metadata_for_classes(*mapped_classes),
        source_label="mapped classes",
    )
