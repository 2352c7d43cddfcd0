"""Case styles applied to urlized slugs."""

from __future__ import annotations

import re

STYLE_NONE = "none"
STYLE_LOWER = "lower"
STYLE_UPPER = "upper"
STYLE_CAMEL = "camel"
SUPPORTED_STYLES = frozenset({STYLE_NONE, STYLE_LOWER, STYLE_UPPER, STYLE_CAMEL})


def apply_style(slug: str, style: str, separator: str) -> str:
    """Apply a case style to a slug.

    `camel` upper-cases the first letter and every letter following a separator,
    `lower` and `upper` case-fold the whole string, `none` leaves it untouched.
    """

    if style == STYLE_CAMEL:
        pattern = "^[a-z]"
        if separator:
            pattern += f"|{re.escape(separator)}[a-z]"
        return re.sub(
            pattern,
            lambda match: match.group(0).upper(),
            slug,
            flags=re.IGNORECASE | re.MULTILINE,
        )
    if style == STYLE_LOWER:
        return slug.lower()
    if style == STYLE_UPPER:
        return slug.upper()
    return slug
