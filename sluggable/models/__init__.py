"""Shared typed data models for sluggable.

This package contains dataclasses used across the engine, adapters and loaders
to avoid cross-module coupling and circular imports.
"""

from .datatypes import (
    AssociationMetadata,
    FieldMetadata,
    HistoryEntry,
    RecordMetadata,
    SlugScope,
)

__all__ = [
    "AssociationMetadata",
    "FieldMetadata",
    "HistoryEntry",
    "RecordMetadata",
    "SlugScope",
]
