"""Slug handlers altering slug composition per slug field."""

from .base import DefaultSlugHandler, HandlerRegistry, SlugBuildState, SlugHandler
from .inversed_relative import InversedRelativeSlugHandler
from .relative import RelativeSlugHandler

__all__ = [
    "DefaultSlugHandler",
    "HandlerRegistry",
    "InversedRelativeSlugHandler",
    "RelativeSlugHandler",
    "SlugBuildState",
    "SlugHandler",
]
