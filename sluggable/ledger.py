"""Commit-scoped record of slugs assigned to records not yet in storage.

Responsibilities:
- Remember every slug assigned during the current commit cycle per scope and field.
- Expose prefix lookups so same-cycle siblings collide before reaching storage.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(slots=True)
class BatchLedger:
    """Slugs assigned in the current commit cycle keyed by (scope type, slug field)."""

    _assigned: dict[tuple[str, str], list[str]] = field(default_factory=dict)

    def reset(self) -> None:
        """Forget every recorded slug; called at the start and end of a cycle."""

        self._assigned.clear()

    def record(self, scope_type: str, slug_field: str, slug: object) -> None:
        """Remember a final slug value; `None` and empty values are ignored."""

        if not slug:
            return
        self._assigned.setdefault((scope_type, slug_field), []).append(str(slug))

    def similar(self, scope_type: str, slug_field: str, prefix: str) -> list[str]:
        """Return recorded values starting with `prefix`, compared case-insensitively."""

        folded_prefix = prefix.lower()
        return [
            value
            for value in self._assigned.get((scope_type, slug_field), [])
            if value.lower().startswith(folded_prefix)
        ]

    def assigned(self, scope_type: str, slug_field: str) -> tuple[str, ...]:
        return tuple(self._assigned.get((scope_type, slug_field), ()))

    def __len__(self) -> int:
        return sum(len(values) for values in self._assigned.values())
