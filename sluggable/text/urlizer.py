"""Deterministic urlization of transliterated slug text.

Responsibilities:
- Lowercase text and replace every run of disallowed characters with the separator.
- Collapse repeated separators and trim them from both edges.
"""

from __future__ import annotations

from functools import lru_cache
import re

DEFAULT_ALLOWED = "a-z0-9"
DEFAULT_SEPARATOR = "-"


@lru_cache(maxsize=64)
def _disallowed_pattern(allowed: str) -> re.Pattern[str]:
    """Compile the pattern matching runs of characters outside `allowed`."""

    return re.compile(f"[^{allowed}]+")


def validate_allowed(allowed: str) -> None:
    """Raise `re.error` when `allowed` is not a valid character class body."""

    _disallowed_pattern(allowed)


def urlize(
    text: str,
    separator: str = DEFAULT_SEPARATOR,
    allowed: str = DEFAULT_ALLOWED,
) -> str:
    """Return `text` as a separator-joined token sequence of allowed characters.

    Args:
        text: Transliterated text.
        separator: Token separator, inserted in place of disallowed characters.
        allowed: Regular expression character class body of permitted characters.
    """

    lowered = text.lower()
    replaced = _disallowed_pattern(allowed).sub(separator, lowered)
    if not separator:
        return replaced
    escaped = re.escape(separator)
    collapsed = re.sub(f"(?:{escaped}){{2,}}", separator, replaced)
    return re.sub(f"^(?:{escaped})+|(?:{escaped})+$", "", collapsed)
