"""Integration tests for full commit cycles over the in-memory host."""

from __future__ import annotations

from pathlib import Path

import pytest

from sluggable import ConfigLoader, SluggableListener
from sluggable.errors import SlugValidationError
from sluggable.memory import InMemorySession, InMemoryStore
from tests.records import Article, Category, Page, SessionFactory, all_metadata


def test_batch_insert_disambiguates_siblings_and_stored_rows() -> None:
    """Siblings of one cycle and rows of earlier cycles should never share a slug."""

    metadata = all_metadata()
    listener = SluggableListener(
        ConfigLoader.from_mapping({"Article": {"slugs": {"slug": {"fields": ["title"]}}}}, metadata=metadata)
    )
    session = InMemorySession(InMemoryStore(metadata=metadata), listener)

    first = Article(title="Test Article")
    second = Article(title="Test Article")
    session.add(first)
    session.add(second)
    session.flush()

    third = Article(title="test article")
    session.add(third)
    session.flush()

    assert [first.slug, second.slug, third.slug] == ["test-article", "test-article-1", "test-article-2"]
    assert len(listener.ledger) == 0


def test_unique_groups_partition_scopes() -> None:
    """Stored slugs should only collide within the same unique group value."""

    metadata = all_metadata()
    listener = SluggableListener(
        ConfigLoader.from_mapping(
            {"Page": {"slugs": {"slug": {"fields": ["title"], "unique_groups": ["locale"]}}}},
            metadata=metadata,
        )
    )
    session = InMemorySession(InMemoryStore(metadata=metadata), listener)
    english = Page(title="About", locale="en")
    session.add(english)
    session.flush()

    czech = Page(title="About", locale="cs")
    session.add(czech)
    session.flush()

    another_czech = Page(title="About", locale="cs")
    session.add(another_czech)
    session.flush()

    assert english.slug == "about"
    assert czech.slug == "about"
    assert another_czech.slug == "about-1"


def test_yaml_mapping_drives_history_lifecycle(tmp_path: Path) -> None:
    """A YAML-configured type should keep history through rename and delete."""

    config_path = tmp_path / "slugs.yml"
    config_path.write_text(
        """
Article:
  history: true
  slugs:
    slug:
      fields: [title]
      style: camel
""".strip(),
        encoding="utf-8",
    )
    metadata = all_metadata()
    listener = SluggableListener(ConfigLoader.from_yaml(config_path, metadata=metadata))
    store = InMemoryStore(metadata=metadata)
    session = InMemorySession(store, listener)

    article = Article(title="first draft")
    session.add(article)
    session.flush()
    article.title = "final version"
    session.flush()

    assert article.slug == "Final-Version"
    assert [entry.slug_value for entry in store.history_entries()] == ["First-Draft"]

    session.delete(article)
    session.flush()

    assert store.records("Article") == []
    assert store.history_entries() == []


def test_failed_cycle_discards_history_of_earlier_updates(make_session: SessionFactory) -> None:
    """History stored before a later record fails should not survive the failed cycle."""

    session = make_session({"Article": {"history": True, "slugs": {"slug": {"fields": ["title"]}}}})
    alpha = Article(title="Alpha")
    beta = Article(title="Beta")
    session.add(alpha)
    session.add(beta)
    session.flush()

    alpha.title = "Alpha Two"
    beta.title = "   "
    with pytest.raises(SlugValidationError):
        session.flush()

    assert session.store.history_entries() == []

    beta.title = "Beta Two"
    session.flush()

    assert sorted(entry.slug_value for entry in session.store.history_entries()) == ["alpha", "beta"]


def test_failed_cycle_restores_rewritten_descendant_slugs(make_session: SessionFactory) -> None:
    """Prefix rewrites of a failed cycle should be undone in storage and on records."""

    session = make_session(
        {
            "Category": {
                "slugs": {
                    "slug": {
                        "fields": ["title"],
                        "handlers": {"relative": {"relation_field": "parent"}},
                    }
                }
            },
            "Article": {"slugs": {"slug": {"fields": ["title"]}}},
        }
    )
    root = Category(title="Root")
    child = Category(title="Child", parent=root)
    article = Article(title="Note")
    for record in (root, child, article):
        session.add(record)
    session.flush()
    assert child.slug == "root/child"

    root.title = "Renamed"
    article.title = "   "
    with pytest.raises(SlugValidationError):
        session.flush()

    assert child.slug == "root/child"
    assert session.store.rows[id(child)].state["slug"] == "root/child"
    assert session.store.rows[id(root)].state["slug"] == "root"
