"""Slug generation engine.

Responsibilities:
- Decide per slug field whether the slug must be (re)computed.
- Build the raw candidate from source fields or keep a manually set value.
- Run handler hooks, transliteration, urlization, styling and truncation.
- Delegate unique candidates to the uniqueness resolver and write the result.

Key public names:
- `INSERT_SENTINEL`: placeholder held by identifier slugs before generation.
- `compose_slug`: pure transliterate/urlize/style/truncate composition.
- `SlugGenerator`: per-record orchestration used by the listener.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Mapping

from .errors import SlugValidationError
from .handlers.base import SlugBuildState
from .text.styles import apply_style
from .text.transliteration import Transliterator
from .text.urlizer import urlize

if TYPE_CHECKING:
    from .adapter import SluggableAdapter
    from .config import RecordTypeConfig, SlugFieldConfig
    from .listener import SluggableListener

INSERT_SENTINEL = "__id__"


def compose_slug(
    text: str,
    field_config: SlugFieldConfig,
    record: Any,
    transliterator: Transliterator,
    urlized: bool = False,
) -> str:
    """Turn a raw candidate into a styled slug bounded by the field length.

    Args:
        text: Raw candidate text.
        field_config: Slug field options (separator, allowed characters, style, length).
        record: Record passed through to the transliterator.
        transliterator: Callable `(text, separator, record) -> str`.
        urlized: Whether the transliterator already produced urlized text.
    """

    separator = field_config.separator
    slug = transliterator(text, separator, record)
    if not urlized:
        slug = urlize(slug, separator, field_config.allowed)
    slug = apply_style(slug, field_config.style, separator)
    if field_config.length is not None and len(slug) > field_config.length:
        slug = slug[: field_config.length]
    return slug


class SlugGenerator:
    """Generate the slug fields of one record at a time."""

    def __init__(self, listener: SluggableListener) -> None:
        self.listener = listener

    def generate(self, adapter: SluggableAdapter, record: Any, record_config: RecordTypeConfig) -> int:
        """Generate every configured slug field of `record` in place.

        Returns:
            Number of slug fields that were (re)assigned.

        Raises:
            SlugValidationError: If a non-nullable slug has no sluggable content.
        """

        changes = adapter.get_changed_fields(record)
        is_insert = adapter.is_new_record(record)
        assigned = 0
        for field_config in record_config.slugs:
            if self._generate_field(adapter, record, record_config, field_config, changes, is_insert):
                assigned += 1
        return assigned

    def _generate_field(
        self,
        adapter: SluggableAdapter,
        record: Any,
        record_config: RecordTypeConfig,
        field_config: SlugFieldConfig,
        changes: Mapping[str, tuple[Any, Any]],
        is_insert: bool,
    ) -> bool:
        slug_field = field_config.slug
        current = getattr(record, slug_field, None)

        if not field_config.updatable and not is_insert:
            if slug_field not in changes or current == INSERT_SENTINEL:
                return False

        state = SlugBuildState(
            record_config=record_config,
            field_config=field_config,
            slug=None,
            previous_slug=changes[slug_field][0] if slug_field in changes else current,
            is_insert=is_insert,
            changes=changes,
        )

        if not current or current == INSERT_SENTINEL or slug_field not in changes:
            parts: list[str] = []
            for source_field in field_config.fields:
                if source_field in changes or slug_field in changes:
                    state.need_to_change = True
                value = getattr(record, source_field, None)
                parts.append("" if value is None else str(value))
            state.slug = " ".join(parts).strip()
        else:
            # manually assigned slug
            state.slug = str(current).strip()
            state.need_to_change = True

        handlers = self.listener.handlers_for(record_config, field_config)
        for handler in handlers:
            handler.on_change_decision(adapter, state, record)

        if not state.need_to_change:
            return False

        if not (state.slug or "").strip() and not field_config.nullable:
            raise SlugValidationError(
                detail=(
                    f"Unable to find any non empty sluggable fields for slug [{slug_field}] "
                    f"in class - {record_config.record_type}, make sure they have something "
                    "at least."
                ),
                record_type=record_config.record_type,
                field=slug_field,
                hint=f"Fill at least one of: {', '.join(field_config.fields)}.",
            )

        original_transliterator = self.listener.get_transliterator()
        try:
            urlized = False
            for handler in handlers:
                handler.on_post_build(adapter, state, record)
                if handler.handles_urlization():
                    urlized = True
            slug: str | None = compose_slug(
                state.slug or "",
                field_config,
                record,
                self.listener.get_transliterator(),
                urlized=urlized,
            )
        finally:
            self.listener.set_transliterator(original_transliterator)

        if field_config.nullable and not slug:
            slug = None
        if field_config.unique and slug is not None:
            slug = self.listener.resolver.resolve(adapter, record, slug, record_config, field_config)

        state.slug = slug
        for handler in handlers:
            handler.on_completion(adapter, state, record, record_config.history)

        setattr(record, slug_field, state.slug)
        adapter.notify_change_set_recompute(record)
        self.listener.slug_logger.log_slug_assigned(
            record_config.record_type, slug_field, state.slug
        )
        return True
