"""Top-level package for sluggable.

This package maintains URL-friendly slug fields on persisted records. The main
entry point is `SluggableListener`, driven once per commit cycle by a
persistence host such as `sluggable.memory.InMemorySession` or
`sluggable.orm.SqlAlchemySluggable`.
"""

from loguru import logger

from .config import ConfigLoader, ConfigStore, RecordTypeConfig, SlugFieldConfig
from .errors import CollaboratorError, ConfigurationError, SluggableError, SlugValidationError
from .listener import SluggableListener

logger.disable("sluggable")

__all__ = [
    "CollaboratorError",
    "ConfigLoader",
    "ConfigStore",
    "ConfigurationError",
    "RecordTypeConfig",
    "SlugFieldConfig",
    "SlugValidationError",
    "SluggableError",
    "SluggableListener",
    "__version__",
]

__version__ = "0.1.0"
