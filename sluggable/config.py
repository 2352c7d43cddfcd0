"""Configuration model and loaders for sluggable record types.

Responsibilities:
- Define slug field and record type configuration as immutable dataclasses.
- Validate mappings against storage metadata before any record is processed.
- Provide loader entry points for YAML files and in-process mappings.

Key types:
- `HandlerConfig`: one handler identifier with its option mapping.
- `SlugFieldConfig`: options of one slug-bearing field.
- `RecordTypeConfig`: all slug fields of one record type plus history options.
- `ConfigStore`: immutable lookup of record type configurations.
- `ConfigLoader`: static construction helpers for `ConfigStore`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
import re
from types import MappingProxyType
from typing import Any, Iterator, Mapping

import yaml

from .errors import ConfigurationError
from .handlers.base import HandlerRegistry
from .models.datatypes import AssociationMetadata, FieldMetadata, RecordMetadata
from .parsing import normalize_optional_string, parse_name_list, parse_permissive_boolean
from .text.styles import STYLE_NONE, SUPPORTED_STYLES
from .text.urlizer import DEFAULT_ALLOWED, DEFAULT_SEPARATOR, validate_allowed


@dataclass(frozen=True, slots=True)
class HandlerConfig:
    """Handler identifier and the options it was configured with."""

    identifier: str
    options: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class SlugFieldConfig:
    """Options of one slug-bearing field.

    Attributes:
        slug: Slug attribute name.
        fields: Ordered source attribute names concatenated into the raw slug.
        separator: Token separator used by urlization and disambiguation suffixes.
        allowed: Character class body of characters kept by urlization.
        style: Case style (`none`, `lower`, `upper`, `camel`).
        updatable: Whether an existing slug may be regenerated on update.
        unique: Whether the slug must be unique within its scope.
        unique_groups: Fields partitioning the uniqueness scope.
        length: Optional maximum slug length taken from field metadata.
        nullable: Whether an empty slug is stored as `None`.
        handlers: Ordered handler configurations attached to the field.
        is_identifier: Whether the slug is the record identifier.
    """

    slug: str
    fields: tuple[str, ...]
    separator: str = DEFAULT_SEPARATOR
    allowed: str = DEFAULT_ALLOWED
    style: str = STYLE_NONE
    updatable: bool = True
    unique: bool = True
    unique_groups: tuple[str, ...] = ()
    length: int | None = None
    nullable: bool = False
    handlers: tuple[HandlerConfig, ...] = ()
    is_identifier: bool = False

    def handler_options(self, identifier: str) -> Mapping[str, Any]:
        """Return options of an attached handler, or an empty mapping."""

        for handler in self.handlers:
            if handler.identifier == identifier:
                return handler.options
        return {}


@dataclass(frozen=True, slots=True)
class RecordTypeConfig:
    """Slug configuration of one record type.

    Attributes:
        record_type: Record type name.
        metadata: Storage metadata of the record type.
        slugs: Slug field configurations in declaration order.
        history: Whether superseded slugs are kept as history entries.
        history_entry_type: Optional history entry type overriding the adapter default.
    """

    record_type: str
    metadata: RecordMetadata
    slugs: tuple[SlugFieldConfig, ...]
    history: bool = False
    history_entry_type: str | None = None

    @property
    def scope_type(self) -> str:
        """Type name whose storage holds every slug of this record type."""

        return self.metadata.scope_type

    def slug_config(self, slug_field: str) -> SlugFieldConfig | None:
        for slug_config in self.slugs:
            if slug_config.slug == slug_field:
                return slug_config
        return None


class ConfigStore:
    """Immutable lookup of record type configurations built once at startup."""

    def __init__(self, configs: Mapping[str, RecordTypeConfig] | None = None) -> None:
        self._configs = MappingProxyType(dict(configs or {}))

    def get(self, record_type: str) -> RecordTypeConfig | None:
        return self._configs.get(record_type)

    def __contains__(self, record_type: object) -> bool:
        return record_type in self._configs

    def __iter__(self) -> Iterator[RecordTypeConfig]:
        return iter(self._configs.values())

    def __len__(self) -> int:
        return len(self._configs)

    @property
    def record_types(self) -> tuple[str, ...]:
        return tuple(self._configs)


class ConfigLoader:
    """Factory methods for creating a `ConfigStore` from external sources."""

    _SUPPORTED_TYPE_KEYS = frozenset({"metadata", "slugs", "history", "history_entry_type"})
    _SUPPORTED_SLUG_KEYS = frozenset(
        {
            "fields",
            "separator",
            "allowed",
            "style",
            "updatable",
            "unique",
            "unique_groups",
            "handlers",
        }
    )
    _SUPPORTED_METADATA_KEYS = frozenset(
        {"identifier", "fields", "associations", "discriminator", "root_type"}
    )

    @staticmethod
    def from_yaml(
        path: Path,
        metadata: Mapping[str, RecordMetadata] | None = None,
        registry: HandlerRegistry | None = None,
    ) -> ConfigStore:
        """Create a validated store from a YAML mapping file."""

        path_text = path.read_text(encoding="utf-8")
        try:
            payload = yaml.safe_load(path_text)
        except yaml.YAMLError as exc:
            raise ConfigurationError(
                detail=f"YAML mapping `{path}` could not be parsed: {exc}",
                hint="Verify YAML syntax.",
            ) from exc
        if payload is None:
            payload = {}
        if not isinstance(payload, Mapping):
            raise ConfigurationError(
                detail=f"YAML mapping `{path}` must contain a top-level mapping/object."
            )
        return ConfigLoader.from_mapping(
            payload,
            metadata=metadata,
            registry=registry,
            source_label=f"YAML `{path}`",
        )

    @staticmethod
    def from_mapping(
        payload: Mapping[str, Any],
        metadata: Mapping[str, RecordMetadata] | None = None,
        registry: HandlerRegistry | None = None,
        source_label: str = "mapping",
    ) -> ConfigStore:
        """Create a validated store from a record type name -> options mapping.

        Metadata for each record type is taken from `metadata` when present,
        otherwise from the embedded `metadata` block of its options.
        """

        resolved_registry = registry if registry is not None else HandlerRegistry.default()
        known_metadata = metadata or {}

        configs: dict[str, RecordTypeConfig] = {}
        for raw_type, options in payload.items():
            record_type = normalize_optional_string(raw_type)
            if record_type is None:
                raise ConfigurationError(detail=f"{source_label} contains a blank record type.")
            if not isinstance(options, Mapping):
                raise ConfigurationError(
                    detail=f"{source_label} entry for `{record_type}` must be a mapping/object.",
                    record_type=record_type,
                )
            record_metadata = known_metadata.get(record_type)
            if record_metadata is None:
                record_metadata = ConfigLoader._parse_metadata(
                    record_type, options.get("metadata"), source_label
                )
            configs[record_type] = ConfigLoader.build_record_config(
                record_type,
                options,
                record_metadata,
                registry=resolved_registry,
                source_label=source_label,
            )
        return ConfigStore(configs)

    @staticmethod
    def build_record_config(
        record_type: str,
        options: Mapping[str, Any],
        metadata: RecordMetadata,
        registry: HandlerRegistry,
        source_label: str = "mapping",
    ) -> RecordTypeConfig:
        """Validate the options of one record type against its metadata."""

        ConfigLoader._validate_keys(
            options,
            ConfigLoader._SUPPORTED_TYPE_KEYS,
            f"{source_label} entry for `{record_type}`",
            record_type,
        )
        raw_slugs = options.get("slugs")
        if not isinstance(raw_slugs, Mapping) or not raw_slugs:
            raise ConfigurationError(
                detail=f"Record type `{record_type}` must declare at least one slug field.",
                record_type=record_type,
            )

        slugs = tuple(
            ConfigLoader._build_slug_config(record_type, str(slug_field), slug_options, metadata, registry)
            for slug_field, slug_options in raw_slugs.items()
        )

        history = ConfigLoader._boolean_option(
            options, "history", record_type, None, default=False
        )
        history_entry_type = normalize_optional_string(options.get("history_entry_type"))
        if history and len(metadata.identifier) != 1:
            raise ConfigurationError(
                detail=(
                    f"Slug history requires a single identifier field in class - {record_type}."
                ),
                record_type=record_type,
                hint="Disable `history` or map a non-composite identifier.",
            )

        return RecordTypeConfig(
            record_type=record_type,
            metadata=metadata,
            slugs=slugs,
            history=history,
            history_entry_type=history_entry_type,
        )

    @staticmethod
    def _build_slug_config(
        record_type: str,
        slug_field: str,
        options: Any,
        metadata: RecordMetadata,
        registry: HandlerRegistry,
    ) -> SlugFieldConfig:
        """Validate one slug field mapping and build its configuration."""

        if not isinstance(options, Mapping):
            raise ConfigurationError(
                detail=f"Slug [{slug_field}] options must be a mapping in class - {record_type}.",
                record_type=record_type,
                field=slug_field,
            )
        ConfigLoader._validate_keys(
            options,
            ConfigLoader._SUPPORTED_SLUG_KEYS,
            f"Slug [{slug_field}] in class - {record_type}",
            record_type,
            slug_field,
        )
        ConfigLoader._require_sluggable_field(record_type, slug_field, slug_field, metadata)

        handlers = ConfigLoader._build_handlers(
            record_type, slug_field, options.get("handlers"), metadata, registry
        )

        fields = parse_name_list(options.get("fields"))
        if not fields:
            raise ConfigurationError(
                detail=(
                    "Slug must contain at least one field for slug generation "
                    f"in class - {record_type}."
                ),
                record_type=record_type,
                field=slug_field,
            )
        for source_field in fields:
            ConfigLoader._require_sluggable_field(record_type, slug_field, source_field, metadata)

        updatable = ConfigLoader._boolean_option(
            options, "updatable", record_type, slug_field, default=True
        )
        unique = ConfigLoader._boolean_option(
            options, "unique", record_type, slug_field, default=True
        )
        is_identifier = metadata.is_identifier(slug_field)
        if is_identifier and not unique:
            raise ConfigurationError(
                detail=(
                    f"Identifier field - [{slug_field}] slug must be unique in order "
                    f"to maintain primary key in class - {record_type}."
                ),
                record_type=record_type,
                field=slug_field,
            )

        unique_groups = parse_name_list(options.get("unique_groups"))
        if unique_groups is None:
            raise ConfigurationError(
                detail=(
                    "Slug option [unique_groups] must be a list of field names "
                    f"in class - {record_type}."
                ),
                record_type=record_type,
                field=slug_field,
            )
        for group in unique_groups:
            if (
                not metadata.has_field(group)
                and not metadata.has_association(group)
                and metadata.discriminator != group
            ):
                raise ConfigurationError(
                    detail=(
                        f"Unable to find unique group [{group}] as mapped property "
                        f"in class - {record_type}."
                    ),
                    record_type=record_type,
                    field=slug_field,
                )

        separator = options.get("separator", DEFAULT_SEPARATOR)
        if not isinstance(separator, str) or not separator:
            raise ConfigurationError(
                detail=f"Slug option [separator] must be a non-empty string in class - {record_type}.",
                record_type=record_type,
                field=slug_field,
            )

        style = normalize_optional_string(options.get("style")) or STYLE_NONE
        style = style.lower()
        if style == "default":
            style = STYLE_NONE
        if style not in SUPPORTED_STYLES:
            supported = ", ".join(sorted(SUPPORTED_STYLES))
            raise ConfigurationError(
                detail=(
                    f"Unsupported slug style `{style}` in class - {record_type}; "
                    f"supported: {supported}."
                ),
                record_type=record_type,
                field=slug_field,
            )

        allowed = normalize_optional_string(options.get("allowed")) or DEFAULT_ALLOWED
        try:
            validate_allowed(allowed)
        except re.error as exc:
            raise ConfigurationError(
                detail=(
                    f"Slug option [allowed] is not a valid character class in class - "
                    f"{record_type}: {exc}"
                ),
                record_type=record_type,
                field=slug_field,
            ) from exc

        field_metadata = metadata.get_field(slug_field)
        return SlugFieldConfig(
            slug=slug_field,
            fields=fields,
            separator=separator,
            allowed=allowed,
            style=style,
            updatable=updatable,
            unique=unique,
            unique_groups=unique_groups,
            length=field_metadata.length,
            nullable=field_metadata.nullable,
            handlers=handlers,
            is_identifier=is_identifier,
        )

    @staticmethod
    def _build_handlers(
        record_type: str,
        slug_field: str,
        raw_handlers: Any,
        metadata: RecordMetadata,
        registry: HandlerRegistry,
    ) -> tuple[HandlerConfig, ...]:
        """Resolve handler identifiers and run each handler's load-time validation."""

        if raw_handlers is None:
            return ()
        if not isinstance(raw_handlers, Mapping):
            raise ConfigurationError(
                detail=(
                    f"Slug [{slug_field}] handlers must be a mapping of handler name to "
                    f"options in class - {record_type}."
                ),
                record_type=record_type,
                field=slug_field,
            )

        handlers: list[HandlerConfig] = []
        for raw_identifier, raw_options in raw_handlers.items():
            identifier = normalize_optional_string(raw_identifier)
            if identifier is None:
                raise ConfigurationError(
                    detail=f"SlugHandler name should be a valid name in class - {record_type}.",
                    record_type=record_type,
                    field=slug_field,
                )
            handler_class = registry.resolve(identifier, record_type=record_type, field=slug_field)
            if raw_options is None:
                raw_options = {}
            if not isinstance(raw_options, Mapping):
                raise ConfigurationError(
                    detail=(
                        f"SlugHandler [{identifier}] options must be a mapping "
                        f"in class - {record_type}."
                    ),
                    record_type=record_type,
                    field=slug_field,
                )
            options: dict[str, Any] = {}
            for option_name, option_value in raw_options.items():
                name = normalize_optional_string(option_name)
                if name is None:
                    raise ConfigurationError(
                        detail=(
                            f"SlugHandlerOption name should be a valid name "
                            f"in class - {record_type}."
                        ),
                        record_type=record_type,
                        field=slug_field,
                    )
                options[name] = option_value
            handler_class.validate(options, metadata)
            handlers.append(HandlerConfig(identifier=identifier, options=MappingProxyType(options)))
        return tuple(handlers)

    @staticmethod
    def _require_sluggable_field(
        record_type: str, slug_field: str, name: str, metadata: RecordMetadata
    ) -> None:
        """Require `name` to be a mapped text or integer field."""

        if not metadata.has_field(name):
            raise ConfigurationError(
                detail=f"Unable to find slug [{name}] as mapped property in class - {record_type}.",
                record_type=record_type,
                field=slug_field,
            )
        if not metadata.get_field(name).is_sluggable:
            raise ConfigurationError(
                detail=(
                    f"Cannot use field - [{name}] for slug storage, type is not valid and "
                    f"must be 'string', 'text' or 'integer' in class - {record_type}."
                ),
                record_type=record_type,
                field=slug_field,
            )

    @staticmethod
    def _boolean_option(
        options: Mapping[str, Any],
        key: str,
        record_type: str,
        slug_field: str | None,
        default: bool,
    ) -> bool:
        """Read a permissive boolean option."""

        if key not in options:
            return default
        parsed = parse_permissive_boolean(options[key])
        if parsed is None:
            raise ConfigurationError(
                detail=(
                    f"Slug option [{key}], type is not valid and must be 'boolean' "
                    f"in class - {record_type}."
                ),
                record_type=record_type,
                field=slug_field,
            )
        return parsed

    @staticmethod
    def _validate_keys(
        payload: Mapping[str, Any],
        supported: frozenset[str],
        source_label: str,
        record_type: str,
        slug_field: str | None = None,
    ) -> None:
        """Reject keys outside the supported set."""

        unknown = sorted(str(key) for key in set(payload).difference(supported))
        if unknown:
            key_list = ", ".join(unknown)
            raise ConfigurationError(
                detail=f"{source_label} includes unsupported key(s): {key_list}.",
                record_type=record_type,
                field=slug_field,
            )

    @staticmethod
    def _parse_metadata(record_type: str, raw: Any, source_label: str) -> RecordMetadata:
        """Build record metadata from an embedded `metadata` block."""

        if raw is None:
            raise ConfigurationError(
                detail=f"{source_label} has no metadata for record type `{record_type}`.",
                record_type=record_type,
                hint="Embed a `metadata` block or pass metadata to the loader.",
            )
        if not isinstance(raw, Mapping):
            raise ConfigurationError(
                detail=f"{source_label} metadata for `{record_type}` must be a mapping/object.",
                record_type=record_type,
            )
        ConfigLoader._validate_keys(
            raw,
            ConfigLoader._SUPPORTED_METADATA_KEYS,
            f"{source_label} metadata for `{record_type}`",
            record_type,
        )

        fields: dict[str, FieldMetadata] = {}
        raw_fields = raw.get("fields") or {}
        if not isinstance(raw_fields, Mapping):
            raise ConfigurationError(
                detail=f"{source_label} metadata fields for `{record_type}` must be a mapping.",
                record_type=record_type,
            )
        for name, definition in raw_fields.items():
            fields[str(name)] = ConfigLoader._parse_field_metadata(record_type, str(name), definition)

        associations: dict[str, AssociationMetadata] = {}
        raw_associations = raw.get("associations") or {}
        if not isinstance(raw_associations, Mapping):
            raise ConfigurationError(
                detail=(
                    f"{source_label} metadata associations for `{record_type}` must be a mapping."
                ),
                record_type=record_type,
            )
        for name, definition in raw_associations.items():
            definition = definition or {}
            if not isinstance(definition, Mapping):
                raise ConfigurationError(
                    detail=f"Association [{name}] must be a mapping in class - {record_type}.",
                    record_type=record_type,
                    field=str(name),
                )
            associations[str(name)] = AssociationMetadata(
                name=str(name),
                target=normalize_optional_string(definition.get("target")),
                to_many=bool(parse_permissive_boolean(definition.get("to_many", False))),
            )

        identifier = parse_name_list(raw.get("identifier"))
        if identifier is None:
            raise ConfigurationError(
                detail=f"Metadata [identifier] must be a list of field names in class - {record_type}.",
                record_type=record_type,
            )

        return RecordMetadata(
            name=record_type,
            fields=MappingProxyType(fields),
            identifier=identifier,
            associations=MappingProxyType(associations),
            discriminator=normalize_optional_string(raw.get("discriminator")),
            root_type=normalize_optional_string(raw.get("root_type")),
        )

    @staticmethod
    def _parse_field_metadata(record_type: str, name: str, definition: Any) -> FieldMetadata:
        """Parse one field metadata entry, either a type name or a mapping."""

        if isinstance(definition, str) or definition is None:
            return FieldMetadata(name=name, type=normalize_optional_string(definition) or "string")
        if not isinstance(definition, Mapping):
            raise ConfigurationError(
                detail=f"Field metadata [{name}] must be a type name or mapping in class - {record_type}.",
                record_type=record_type,
                field=name,
            )

        length = definition.get("length")
        if length is not None and (isinstance(length, bool) or not isinstance(length, int) or length <= 0):
            raise ConfigurationError(
                detail=f"Field metadata [{name}] length must be a positive integer in class - {record_type}.",
                record_type=record_type,
                field=name,
            )
        nullable = parse_permissive_boolean(definition.get("nullable", False))
        if nullable is None:
            raise ConfigurationError(
                detail=f"Field metadata [{name}] nullable must be a boolean in class - {record_type}.",
                record_type=record_type,
                field=name,
            )
        return FieldMetadata(
            name=name,
            type=normalize_optional_string(definition.get("type")) or "string",
            length=length,
            nullable=nullable,
        )
