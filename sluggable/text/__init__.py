"""Text processing stages of slug composition."""

from .styles import SUPPORTED_STYLES, apply_style
from .transliteration import Transliterator, transliterate
from .urlizer import DEFAULT_ALLOWED, DEFAULT_SEPARATOR, urlize

__all__ = [
    "DEFAULT_ALLOWED",
    "DEFAULT_SEPARATOR",
    "SUPPORTED_STYLES",
    "Transliterator",
    "apply_style",
    "transliterate",
    "urlize",
]
