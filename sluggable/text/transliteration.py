"""Default transliteration for slug candidates.

Responsibilities:
- Fold arbitrary Unicode text to ASCII before urlization.
- Define the callable shape every replacement transliterator must follow.
"""

from __future__ import annotations

from typing import Any, Callable

from unidecode import unidecode

Transliterator = Callable[[str, str, Any], str]


def transliterate(text: str, separator: str = "-", record: Any = None) -> str:
    """Return an ASCII rendition of `text`, e.g. `北京` becomes `Bei Jing`.

    The separator and record arguments are part of the transliterator signature so
    replacements can depend on them; the default folding ignores both.
    """

    return unidecode(text)
