"""Unit tests for managed query filters and slug history tracking."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from sluggable.errors import CollaboratorError
from sluggable.filters import ManagedFilters
from sluggable.history import HistoryTracker
from sluggable.memory import InMemoryFilterCollection, InMemorySession, InMemoryStore
from tests.records import Article, SessionFactory, all_metadata

HISTORY_MAPPING = {
    "Article": {
        "slugs": {"slug": {"fields": ["title"]}},
        "history": True,
    }
}


def _soft_delete_store() -> InMemoryStore:
    filters = InMemoryFilterCollection()
    filters.register("soft_delete", lambda record: not getattr(record, "deleted", False))
    return InMemoryStore(metadata=all_metadata(), filters=filters)


def _store_deleted_article(make_session: SessionFactory, store: InMemoryStore) -> None:
    seed = make_session(store=store)
    seed.add(Article(title="Post"))
    seed.flush()
    store.records("Article")[0].deleted = True
    seed.flush()


def test_enabled_filter_hides_soft_deleted_collisions(make_session: SessionFactory) -> None:
    """Without managed filters, soft-deleted rows should be invisible to lookups."""

    store = _soft_delete_store()
    _store_deleted_article(make_session, store)
    session = make_session(store=store)
    article = Article(title="Post")
    session.add(article)
    session.flush()

    assert article.slug == "post"


def test_managed_filter_is_disabled_during_generation(make_session: SessionFactory) -> None:
    """Managed filters should be switched off for lookups and restored afterwards."""

    store = _soft_delete_store()
    _store_deleted_article(make_session, store)
    session = make_session(store=store)
    session.listener.add_managed_filter("soft_delete")
    article = Article(title="Post")
    session.add(article)
    session.flush()

    assert article.slug == "post-1"
    assert store.filters is not None
    assert store.filters.enabled_filters() == ["soft_delete"]


def test_managed_filters_restore_state_after_failure() -> None:
    """Filter states should be restored even when the wrapped work raises."""

    collection = InMemoryFilterCollection()
    collection.register("soft_delete", lambda record: True)
    collection.register("published", lambda record: True, enabled=False)
    managed = ManagedFilters()
    managed.add("soft_delete")
    managed.add("published", disable=False)

    class _Adapter:
        def filter_collection(self) -> InMemoryFilterCollection:
            return collection

    with pytest.raises(RuntimeError, match="boom"):
        with managed.suspended(_Adapter()):  # type: ignore[arg-type]
            assert collection.enabled_filters() == ["published"]
            raise RuntimeError("boom")

    assert collection.enabled_filters() == ["soft_delete"]


def test_managed_filters_require_filter_support(make_session: SessionFactory) -> None:
    """Managing filters on a host without filter support should fail the cycle."""

    store = InMemoryStore(metadata=all_metadata(), filters=None)
    session = make_session(store=store)
    session.listener.add_managed_filter("soft_delete")
    session.add(Article(title="Post"))

    with pytest.raises(CollaboratorError, match="does not support query filters"):
        session.flush()

    assert store.records("Article") == []


def test_history_records_superseded_slug(make_session: SessionFactory) -> None:
    """Changing a slug should store its previous value for the record."""

    session = make_session(HISTORY_MAPPING)
    article = Article(title="Old Name")
    session.add(article)
    session.flush()

    article.title = "New Name"
    session.flush()

    entries = session.store.history_entries()
    assert [(entry.record_type, entry.record_id, entry.slug_field, entry.slug_value) for entry in entries] == [
        ("Article", article.id, "slug", "old-name")
    ]


def test_history_redefines_existing_entry_for_new_owner(make_session: SessionFactory) -> None:
    """A superseded value already in history should move to its latest owner."""

    session = make_session(HISTORY_MAPPING)
    first = Article(title="Shared")
    session.add(first)
    session.flush()
    first.title = "First Renamed"
    session.flush()

    second = Article(title="Shared")
    session.add(second)
    session.flush()
    second.title = "Second Renamed"
    session.flush()

    entries = session.store.history_entries()
    assert len(entries) == 1
    assert entries[0].slug_value == "shared"
    assert entries[0].record_id == second.id


def test_history_is_removed_with_record(make_session: SessionFactory) -> None:
    """Deleting a record should drop its history entries only."""

    session = make_session(HISTORY_MAPPING)
    kept = Article(title="Kept")
    removed = Article(title="Removed")
    session.add(kept)
    session.add(removed)
    session.flush()
    kept.title = "Kept Again"
    removed.title = "Removed Again"
    session.flush()
    assert len(session.store.history_entries()) == 2

    session.delete(removed)
    session.flush()

    assert [entry.slug_value for entry in session.store.history_entries()] == ["kept"]
    assert session.store.records("Article") == [kept]


def test_history_tracker_uses_injected_clock(make_session: SessionFactory) -> None:
    """History entries should be stamped with the tracker clock."""

    moment = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    session = make_session(HISTORY_MAPPING, history=HistoryTracker(clock=lambda: moment))
    article = Article(title="Before")
    session.add(article)
    session.flush()
    article.title = "After"
    session.flush()

    assert session.store.history_entries()[0].created == moment


def test_history_disabled_records_nothing(session: InMemorySession) -> None:
    """Record types without history should not create entries."""

    article = Article(title="Plain")
    session.add(article)
    session.flush()
    article.title = "Plain Renamed"
    session.flush()

    assert session.store.history_entries() == []
