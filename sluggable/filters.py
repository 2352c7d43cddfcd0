"""Managed query filters suspended while slugs are generated.

Filters registered here (typically a soft-delete visibility filter) are switched
to the requested state for the duration of a commit cycle and switched back to
their previous state afterwards, including when generation fails.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from .adapter import FilterCollection, SluggableAdapter
from .errors import CollaboratorError


class ManagedFilters:
    """Named filters and the state each must have during generation."""

    def __init__(self) -> None:
        self._disable: dict[str, bool] = {}

    def add(self, name: str, disable: bool = True) -> None:
        self._disable[name] = disable

    def remove(self, name: str) -> None:
        self._disable.pop(name, None)

    def __contains__(self, name: object) -> bool:
        return name in self._disable

    def __len__(self) -> int:
        return len(self._disable)

    def items(self) -> list[tuple[str, bool]]:
        return list(self._disable.items())

    @contextmanager
    def suspended(self, adapter: SluggableAdapter) -> Iterator[None]:
        """Apply managed filter states and restore the previous states on exit.

        Raises:
            CollaboratorError: If filters are managed and the adapter has no filter
                collection.
        """

        if not self._disable:
            yield
            return

        collection = adapter.filter_collection()
        if collection is None:
            raise CollaboratorError(
                detail="Persistence adapter does not support query filters.",
                hint="Remove managed filters or use an adapter with a filter collection.",
            )

        previously_enabled: dict[str, bool] = {}
        try:
            self._apply(collection, previously_enabled)
            yield
        finally:
            for name, was_enabled in previously_enabled.items():
                if was_enabled:
                    collection.enable(name)
                else:
                    collection.disable(name)

    def _apply(
        self, collection: FilterCollection, previously_enabled: dict[str, bool]
    ) -> None:
        """Switch each managed filter, recording its previous enabled state first."""

        enabled = set(collection.enabled_filters())
        for name, disable in self._disable.items():
            previously_enabled[name] = name in enabled
            if disable:
                collection.disable(name)
            else:
                collection.enable(name)
