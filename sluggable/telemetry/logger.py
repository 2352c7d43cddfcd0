"""Structured slug event logging utilities.

Responsibilities:
- Emit concise, deterministic commit-cycle and slug-level log lines.
- Route output through `loguru`; the package is disabled on import and enabled
  when a sink is attached, following the loguru convention for libraries.
"""

from __future__ import annotations

from typing import TextIO

from loguru import logger as _loguru_logger

_PACKAGE = "sluggable"


def _sanitize_context_value(value: object) -> str:
    """Convert context values into stable, shell-safe tokens."""

    if value is None:
        return "none"
    raw = str(value).strip()
    if not raw:
        return "none"
    return "".join(
        character if character.isalnum() or character in {"-", "_", ".", ":", "/"} else "_"
        for character in raw
    )


def _format_context(context: dict[str, object]) -> str:
    """Serialize context key/value pairs in deterministic key order."""

    if not context:
        return ""
    tokens = [
        f"{key}={_sanitize_context_value(context[key])}"
        for key in sorted(context.keys())
    ]
    return " " + " ".join(tokens)


class SlugLogger:
    """Emit deterministic slug generation events."""

    def __init__(self, sink: TextIO | None = None, level: str = "INFO") -> None:
        """Attach an optional sink; without one, events go to existing loguru handlers."""

        self._handler_id: int | None = None
        self._enabled_package = False
        if sink is not None:
            _loguru_logger.enable(_PACKAGE)
            self._enabled_package = True
            self._handler_id = _loguru_logger.add(
                sink,
                format="{message}",
                level=level,
                colorize=False,
                filter=_PACKAGE,
            )

    def close(self) -> None:
        """Detach the sink and re-disable the package if this logger enabled it."""

        if self._handler_id is not None:
            _loguru_logger.remove(self._handler_id)
            self._handler_id = None
        if self._enabled_package:
            _loguru_logger.disable(_PACKAGE)
            self._enabled_package = False

    def log_event(self, event: str, level: str = "DEBUG", **context: object) -> None:
        """Emit one structured slug log line."""

        line = f"[slug] level={level} event={event}{_format_context(context)}"
        _loguru_logger.log(level, line)

    def log_commit_start(self, inserts: int, updates: int, deletions: int) -> None:
        self.log_event(
            "commit_start", "INFO", inserts=inserts, updates=updates, deletions=deletions
        )

    def log_commit_complete(self, assigned: int) -> None:
        self.log_event("commit_complete", "INFO", assigned=assigned)

    def log_slug_assigned(self, record_type: str, field: str, slug: str | None) -> None:
        self.log_event("slug_assigned", record_type=record_type, field=field, slug=slug)

    def log_failure(self, error_type: str) -> None:
        """Emit a failure event without record payload details."""

        self.log_event("failure", "ERROR", error_type=error_type)
