"""Slug handler prefixing a slug with the slug of a related record.

A user may belong to a company; with `relation_field: company` the user slug
reads `company-name/user-name`, where `/` is the handler separator.

Options:
- `relation_field`: association path to the related record, dotted for several
  hops (`memberships.company`). A to-many hop resolves to its first element.
- `relation_slug_field`: slug attribute of the related record, `slug` by default.
- `separator`: text placed between the related slug and the local slug, `/` by default.
"""

from __future__ import annotations

from collections.abc import Collection, Mapping as AbcMapping
from typing import TYPE_CHECKING, Any, ClassVar, Mapping

from ..errors import ConfigurationError
from ..models.datatypes import RecordMetadata
from ..text.transliteration import Transliterator
from ..text.urlizer import urlize
from ..uniqueness import build_scope
from .base import DefaultSlugHandler, SlugBuildState

if TYPE_CHECKING:
    from ..adapter import SluggableAdapter
    from ..config import RecordTypeConfig, SlugFieldConfig
    from ..listener import SluggableListener


def first_related(value: Any) -> Any:
    """Return the first element of a to-many value, or the value itself."""

    if isinstance(value, Collection) and not isinstance(value, (str, bytes, AbcMapping)):
        return next(iter(value), None)
    return value


class RelativeSlugHandler(DefaultSlugHandler):
    """Prefix the generated slug with the slug of a related record."""

    identifier: ClassVar[str] = "relative"
    SEPARATOR: ClassVar[str] = "/"

    def __init__(
        self,
        listener: SluggableListener,
        record_config: RecordTypeConfig,
        field_config: SlugFieldConfig,
        options: Mapping[str, Any],
    ) -> None:
        super().__init__(listener, record_config, field_config, options)
        self.relation_path = tuple(str(self.options["relation_field"]).strip().split("."))
        self.relation_slug_field = str(self.options.get("relation_slug_field") or "slug")
        self.separator = str(self.options.get("separator") or self.SEPARATOR)
        self._original_transliterator: Transliterator | None = None

    @classmethod
    def validate(cls, options: Mapping[str, Any], metadata: RecordMetadata) -> None:
        relation_field = cls._require_option(options, "relation_field", cls.identifier, metadata)
        head = relation_field.split(".")[0]
        if not metadata.has_association(head):
            raise ConfigurationError(
                detail=(
                    f"Unable to find slug relation through field - [{head}] "
                    f"in class - {metadata.name}."
                ),
                record_type=metadata.name,
                field=head,
            )

    def on_change_decision(
        self, adapter: SluggableAdapter, state: SlugBuildState, record: Any
    ) -> None:
        if not state.is_insert and not state.need_to_change:
            if self.relation_path[0] in state.changes:
                state.need_to_change = True

    def on_post_build(
        self, adapter: SluggableAdapter, state: SlugBuildState, record: Any
    ) -> None:
        self._original_transliterator = self.listener.get_transliterator()
        self.listener.set_transliterator(self.transliterate)

    def transliterate(self, text: str, separator: str, record: Any) -> str:
        """Transliterate and urlize locally, then prefix the related record slug."""

        original = self._original_transliterator
        if original is None:
            raise RuntimeError("RelativeSlugHandler.transliterate called before post-build.")
        try:
            result = urlize(original(text, separator, record), separator, self.field_config.allowed)
        finally:
            self.listener.set_transliterator(original)
            self._original_transliterator = None

        related = self.resolve_related(record)
        if related is not None:
            prefix = getattr(related, self.relation_slug_field, None)
            if prefix:
                result = f"{prefix}{self.separator}{result}"
        return result

    def resolve_related(self, record: Any) -> Any:
        """Walk the relation path and return the related record, if any."""

        current = record
        for part in self.relation_path:
            if current is None:
                return None
            current = first_related(getattr(current, part, None))
        return current

    def handles_urlization(self) -> bool:
        return True

    def on_completion(
        self,
        adapter: SluggableAdapter,
        state: SlugBuildState,
        record: Any,
        history_enabled: bool,
    ) -> None:
        """Rewrite descendant slugs when a self-referencing parent slug changed."""

        if not self._is_self_referencing():
            return
        previous = state.previous_slug
        if state.is_insert or not previous or state.slug is None or previous == state.slug:
            return

        scope = build_scope(adapter, record, self.record_config, self.field_config)
        rewritten = adapter.rewrite_slug_prefix(
            record,
            scope,
            f"{previous}{self.separator}",
            f"{state.slug}{self.separator}",
        )
        self.listener.slug_logger.log_event(
            "relative_rewrite",
            record_type=self.record_config.record_type,
            field=self.field_config.slug,
            rows=rewritten,
        )

    def _is_self_referencing(self) -> bool:
        if len(self.relation_path) != 1:
            return False
        association = self.record_config.metadata.associations.get(self.relation_path[0])
        return association is not None and association.target == self.record_config.record_type
