"""Slug handler keeping dependent slugs in sync with their parent slug.

Attach it to the parent slug field when dependents use `RelativeSlugHandler`:
once the parent slug changes from `old` to `new`, every dependent of
`relation_type` whose `mapped_by` association points at the parent has its slug
prefix `old<separator>` rewritten to `new<separator>` in storage.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, ClassVar, Mapping

from ..models.datatypes import RecordMetadata, SlugScope
from .base import DefaultSlugHandler, SlugBuildState

if TYPE_CHECKING:
    from ..adapter import SluggableAdapter
    from ..config import RecordTypeConfig, SlugFieldConfig
    from ..listener import SluggableListener


class InversedRelativeSlugHandler(DefaultSlugHandler):
    """Rewrite dependent slug prefixes after the owning record slug changed."""

    identifier: ClassVar[str] = "inversed_relative"
    SEPARATOR: ClassVar[str] = "/"

    def __init__(
        self,
        listener: SluggableListener,
        record_config: RecordTypeConfig,
        field_config: SlugFieldConfig,
        options: Mapping[str, Any],
    ) -> None:
        super().__init__(listener, record_config, field_config, options)
        self.relation_type = str(self.options["relation_type"]).strip()
        self.mapped_by = str(self.options["mapped_by"]).strip()
        self.inverse_slug_field = str(self.options.get("inverse_slug_field") or "slug")
        self.separator = str(self.options.get("separator") or self.SEPARATOR)

    @classmethod
    def validate(cls, options: Mapping[str, Any], metadata: RecordMetadata) -> None:
        cls._require_option(options, "relation_type", cls.identifier, metadata)
        cls._require_option(options, "mapped_by", cls.identifier, metadata)

    def on_completion(
        self,
        adapter: SluggableAdapter,
        state: SlugBuildState,
        record: Any,
        history_enabled: bool,
    ) -> None:
        previous = state.previous_slug
        if state.is_insert or not previous or state.slug is None or previous == state.slug:
            return

        rewritten = adapter.rewrite_inverse_slug_prefix(
            record,
            self._dependent_scope(record),
            self.mapped_by,
            f"{previous}{self.separator}",
            f"{state.slug}{self.separator}",
        )
        self.listener.slug_logger.log_event(
            "inversed_relative_rewrite",
            record_type=self.relation_type,
            field=self.inverse_slug_field,
            rows=rewritten,
        )

    def _dependent_scope(self, record: Any) -> SlugScope:
        """Build the rewrite scope of dependents, grouped like their own slug."""

        dependent_config = self.listener.configs.get(self.relation_type)
        if dependent_config is None:
            return SlugScope(record_type=self.relation_type, slug_field=self.inverse_slug_field)

        group_values: tuple[tuple[str, Any], ...] = ()
        slug_config = dependent_config.slug_config(self.inverse_slug_field)
        if slug_config is not None and slug_config.unique:
            group_values = tuple(
                (group, getattr(record, group))
                for group in slug_config.unique_groups
                if group != dependent_config.metadata.discriminator and hasattr(record, group)
            )
        return SlugScope(
            record_type=dependent_config.scope_type,
            slug_field=self.inverse_slug_field,
            group_values=group_values,
        )
