"""Core package - Configuration, logging, exceptions.

This package provides foundational infrastructure used by all other layers.

Modules:
    - config: Environment and configuration management
    - logging: Structured JSON logging
    - exceptions: Custom exception hierarchy
"""

from fieldstudio.core.exceptions import (
    AvailabilityPredicateError,
    ConfigurationError,
    FieldStudioError,
    PaletteError,
    PersistenceReadError,
    PersistenceWriteError,
    StorageError,
    ValidationError,
)

__all__ = [
    "FieldStudioError",
    "ConfigurationError",
    "ValidationError",
    "StorageError",
    "PersistenceReadError",
    "PersistenceWriteError",
    "PaletteError",
    "AvailabilityPredicateError",
]
