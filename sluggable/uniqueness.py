"""Uniqueness resolution of slug candidates.

Responsibilities:
- Resolve the uniqueness scope of a slug field for one record.
- Collect colliding slugs from storage and from the current commit cycle.
- Derive a deterministic numbered variant, shortening it to fit the field length.

Notes:
- Numbering continues from `10 ** exponent`, where the exponent only grows after a
  truncation round, so shortened prefixes keep a consistent suffix magnitude.
- Only exact string equality counts as a collision; the result is fully determined
  by the candidate and the set of existing slugs.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any, Iterable

from .errors import SlugValidationError
from .ledger import BatchLedger
from .models.datatypes import SlugScope
from .telemetry.logger import SlugLogger

if TYPE_CHECKING:
    from .adapter import SluggableAdapter
    from .config import RecordTypeConfig, SlugFieldConfig


def build_scope(
    adapter: SluggableAdapter,
    record: Any,
    record_config: RecordTypeConfig,
    field_config: SlugFieldConfig,
) -> SlugScope:
    """Resolve the storage scope in which `field_config.slug` must be unique.

    A unique group naming the type discriminator narrows the scope to the record's
    own type instead of filtering on a value.
    """

    scope_type = record_config.scope_type
    group_values: list[tuple[str, Any]] = []
    if field_config.unique:
        for group in field_config.unique_groups:
            if group == record_config.metadata.discriminator:
                scope_type = record_config.record_type
            else:
                group_values.append((group, getattr(record, group, None)))

    exclude_identity = None
    if not field_config.is_identifier and not adapter.is_new_record(record):
        exclude_identity = adapter.get_identifier(record)

    return SlugScope(
        record_type=scope_type,
        slug_field=field_config.slug,
        group_values=tuple(group_values),
        exclude_identity=exclude_identity,
    )


def filter_similar_slugs(similar: Iterable[str], candidate: str, separator: str) -> list[str]:
    """Keep slugs equal to `candidate` or to `candidate` + separator + digits.

    Longer slugs that merely share the prefix, such as `post-office` for `post`,
    are not collisions. A numeric-looking title such as `2024` stays
    indistinguishable from a numbered variant.
    """

    pattern = re.compile(
        f"^{re.escape(candidate)}(?:$|{re.escape(separator)}\\d+$)",
        re.IGNORECASE,
    )
    return [slug for slug in similar if pattern.match(slug)]


class UniquenessResolver:
    """Turn slug candidates into values unique within their scope."""

    def __init__(self, ledger: BatchLedger, slug_logger: SlugLogger | None = None) -> None:
        self.ledger = ledger
        self.slug_logger = slug_logger or SlugLogger()

    def resolve(
        self,
        adapter: SluggableAdapter,
        record: Any,
        candidate: str,
        record_config: RecordTypeConfig,
        field_config: SlugFieldConfig,
    ) -> str:
        """Return `candidate` or its first free numbered variant.

        Raises:
            SlugValidationError: If no unique variant fits the field length.
        """

        scope = build_scope(adapter, record, record_config, field_config)
        separator = field_config.separator
        max_length = field_config.length
        preferred = candidate
        exponent = 0
        truncated = False

        while True:
            similar = list(adapter.find_similar_slugs(record, scope, preferred))
            similar.extend(
                self.ledger.similar(record_config.scope_type, field_config.slug, preferred)
            )
            if not truncated:
                similar = filter_similar_slugs(similar, preferred, separator)
            if not similar:
                break

            taken = set(similar)
            counter = 10**exponent
            generated = f"{preferred}{separator}{counter}"
            while generated in taken:
                counter += 1
                generated = f"{preferred}{separator}{counter}"

            if max_length is None or len(generated) <= max_length:
                preferred = generated
                break

            next_counter = str(counter + 1)
            room = max_length - (len(next_counter) + len(separator))
            shortened = generated[:room] if room > 0 else ""
            if shortened.endswith(separator):
                shortened = shortened[: -len(separator)]
            if not shortened or len(shortened) >= len(preferred):
                raise SlugValidationError(
                    detail=(
                        f"Unable to fit a unique slug for [{field_config.slug}] into "
                        f"{max_length} characters in class - {record_config.record_type}."
                    ),
                    record_type=record_config.record_type,
                    field=field_config.slug,
                    hint="Increase the slug field length.",
                )
            exponent = len(next_counter) - 1
            preferred = shortened
            truncated = True

        if preferred != candidate:
            self.slug_logger.log_event(
                "slug_disambiguated",
                record_type=record_config.record_type,
                field=field_config.slug,
                candidate=candidate,
                slug=preferred,
            )
        return preferred
