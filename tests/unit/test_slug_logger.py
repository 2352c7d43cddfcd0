"""Unit tests for structured slug event logging."""

from __future__ import annotations

import io

from loguru import logger

from sluggable.telemetry.logger import SlugLogger
from tests.records import Article, SessionFactory


def test_slug_logger_formats_context_deterministically() -> None:
    """Log lines should sort context keys and sanitize values."""

    sink = io.StringIO()
    slug_logger = SlugLogger(sink=sink, level="DEBUG")
    try:
        slug_logger.log_event("sample", zeta="a b", alpha=None)
    finally:
        slug_logger.close()

    assert sink.getvalue().strip() == "[slug] level=DEBUG event=sample alpha=none zeta=a_b"


def test_slug_logger_respects_sink_level() -> None:
    """Debug events should be dropped by an INFO sink."""

    sink = io.StringIO()
    slug_logger = SlugLogger(sink=sink)
    try:
        slug_logger.log_slug_assigned("Article", "slug", "hello")
        slug_logger.log_commit_complete(1)
    finally:
        slug_logger.close()

    assert sink.getvalue().strip() == "[slug] level=INFO event=commit_complete assigned=1"


def test_listener_logs_commit_cycle(make_session: SessionFactory) -> None:
    """A commit cycle should log its start, assignments, and completion."""

    sink = io.StringIO()
    slug_logger = SlugLogger(sink=sink, level="DEBUG")
    try:
        session = make_session(slug_logger=slug_logger)
        session.add(Article(title="Logged"))
        session.flush()
    finally:
        slug_logger.close()

    lines = sink.getvalue().splitlines()
    assert lines[0] == "[slug] level=INFO event=commit_start deletions=0 inserts=1 updates=0"
    assert "[slug] level=DEBUG event=slug_assigned field=slug record_type=Article slug=logged" in lines
    assert lines[-1] == "[slug] level=INFO event=commit_complete assigned=1"


def test_slug_logger_close_disables_package_again() -> None:
    """Closing a sink-owning logger should silence package events for other handlers."""

    SlugLogger(sink=io.StringIO()).close()

    sink = io.StringIO()
    handler_id = logger.add(sink, format="{message}", level="DEBUG")
    try:
        SlugLogger().log_commit_complete(1)
    finally:
        logger.remove(handler_id)

    assert sink.getvalue() == ""
