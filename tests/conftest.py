"""Shared pytest fixtures for the full sluggable test suite."""

from __future__ import annotations

from typing import Any, Mapping

import pytest

from sluggable.config import ConfigLoader, ConfigStore
from sluggable.listener import SluggableListener
from sluggable.memory import InMemorySession, InMemoryStore
from sluggable.models.datatypes import RecordMetadata
from tests.records import SessionFactory, all_metadata

ARTICLE_MAPPING: dict[str, Any] = {
    "Article": {
        "slugs": {"slug": {"fields": ["title"]}},
    }
}


@pytest.fixture
def article_configs() -> ConfigStore:
    """Provide a validated store with one title-derived `Article.slug` field."""

    return ConfigLoader.from_mapping(ARTICLE_MAPPING, metadata=all_metadata())


@pytest.fixture
def make_session() -> SessionFactory:
    """Build an in-memory session wired to a listener for a given mapping."""

    def _make_session(
        mapping: Mapping[str, Any] | None = None,
        *,
        metadata: dict[str, RecordMetadata] | None = None,
        store: InMemoryStore | None = None,
        **listener_options: Any,
    ) -> InMemorySession:
        metadata = metadata or all_metadata()
        configs = ConfigLoader.from_mapping(
            mapping or ARTICLE_MAPPING,
            metadata=metadata,
            registry=listener_options.get("registry"),
        )
        listener = SluggableListener(configs, **listener_options)
        return InMemorySession(store or InMemoryStore(metadata=metadata), listener)

    return _make_session


@pytest.fixture
def session(make_session: SessionFactory) -> InMemorySession:
    """Provide an in-memory session configured for `Article` slugs."""

    return make_session()
