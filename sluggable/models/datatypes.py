"""Core datatypes shared across sluggable modules.

Responsibilities:
- Describe storage metadata handed over by the mapping layer.
- Represent the resolved uniqueness scope passed to persistence adapters.
- Represent slug history rows independently of any storage backend.

Key types:
- `FieldMetadata`, `AssociationMetadata`, `RecordMetadata`, `SlugScope`,
  and `HistoryEntry`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping


SLUGGABLE_FIELD_TYPES = frozenset({"string", "text", "integer", "int"})


@dataclass(frozen=True, slots=True)
class FieldMetadata:
    """Storage metadata for one scalar field.

    Attributes:
        name: Attribute name on the record.
        type: Storage type name (`string`, `text`, `integer`, ...).
        length: Optional maximum length of stored values.
        nullable: Whether the storage column accepts null values.
    """

    name: str
    type: str = "string"
    length: int | None = None
    nullable: bool = False

    @property
    def is_sluggable(self) -> bool:
        """Return whether the field type may hold or feed a slug."""

        return self.type.lower() in SLUGGABLE_FIELD_TYPES


@dataclass(frozen=True, slots=True)
class AssociationMetadata:
    """Metadata for one association to another record type."""

    name: str
    target: str | None = None
    to_many: bool = False


@dataclass(frozen=True, slots=True)
class RecordMetadata:
    """Storage metadata for one record type.

    Attributes:
        name: Record type name.
        fields: Scalar field metadata keyed by attribute name.
        identifier: Identifier field names, in declaration order.
        associations: Association metadata keyed by attribute name.
        discriminator: Optional type discriminator field of an inheritance hierarchy.
        root_type: Optional name of the hierarchy root whose storage holds all rows.
    """

    name: str
    fields: Mapping[str, FieldMetadata] = field(default_factory=dict)
    identifier: tuple[str, ...] = ()
    associations: Mapping[str, AssociationMetadata] = field(default_factory=dict)
    discriminator: str | None = None
    root_type: str | None = None

    def has_field(self, name: str) -> bool:
        return name in self.fields

    def get_field(self, name: str) -> FieldMetadata:
        return self.fields[name]

    def has_association(self, name: str) -> bool:
        return name in self.associations

    def is_collection_association(self, name: str) -> bool:
        association = self.associations.get(name)
        return association is not None and association.to_many

    def is_identifier(self, name: str) -> bool:
        return name in self.identifier

    @property
    def scope_type(self) -> str:
        """Type name whose storage is queried for similar slugs."""

        return self.root_type or self.name


@dataclass(frozen=True, slots=True)
class SlugScope:
    """Resolved uniqueness scope for one similar-slug query or bulk rewrite.

    Attributes:
        record_type: Type name whose storage is queried.
        slug_field: Slug attribute name.
        group_values: Unique group field names paired with the record's values.
        exclude_identity: Identifier of the record itself, excluded from matches.
    """

    record_type: str
    slug_field: str
    group_values: tuple[tuple[str, Any], ...] = ()
    exclude_identity: Any = None


@dataclass(slots=True)
class HistoryEntry:
    """One superseded slug value of a record.

    Attributes:
        record_type: Owning record type name.
        record_id: Identifier of the owning record.
        slug_field: Slug attribute name.
        slug_value: Superseded slug value.
        created: Time the value was superseded (UTC).
    """

    record_type: str
    record_id: Any
    slug_field: str
    slug_value: str
    created: datetime
