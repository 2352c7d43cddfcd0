"""Shared parsing helpers for slug mapping option values."""

from __future__ import annotations

from typing import Any


_TRUE_BOOLEAN_TOKENS = frozenset({"1", "true", "yes", "on"})
_FALSE_BOOLEAN_TOKENS = frozenset({"0", "false", "no", "off"})


def normalize_optional_string(value: object) -> str | None:
    """Normalize an optional value to a stripped non-empty string.

    Args:
        value: Arbitrary mapping value.

    Returns:
        Stripped string value, or `None` when the value is empty after trimming.
    """

    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    return text


def parse_permissive_boolean(value: object) -> bool | None:
    """Parse a permissive boolean token and return `None` for invalid values."""

    if isinstance(value, bool):
        return value

    normalized = normalize_optional_string(value)
    if normalized is None:
        return None

    token = normalized.lower()
    if token in _TRUE_BOOLEAN_TOKENS:
        return True
    if token in _FALSE_BOOLEAN_TOKENS:
        return False
    return None


def parse_name_list(value: Any) -> tuple[str, ...] | None:
    """Parse a list of field names from a sequence or a comma separated string.

    Returns `None` when the value has an unsupported shape, so callers can raise
    an error that names the offending option.
    """

    if value is None:
        return ()
    if isinstance(value, str):
        return tuple(
            token for token in (part.strip() for part in value.split(",")) if token
        )
    if not isinstance(value, (list, tuple)):
        return None

    names: list[str] = []
    for item in value:
        name = normalize_optional_string(item)
        if name is None:
            return None
        names.append(name)
    return tuple(names)
