"""Field Studio Exception Hierarchy.

All custom exceptions inherit from FieldStudioError.
None of the storage or palette errors reach the user: the history store
and ranking engine catch them and degrade to "search without history".

Exception Hierarchy:
    FieldStudioError (base)
    ├── ConfigurationError
    ├── ValidationError
    ├── StorageError
    │   ├── PersistenceReadError
    │   └── PersistenceWriteError
    └── PaletteError
        └── AvailabilityPredicateError
"""


class FieldStudioError(Exception):
    """Base exception for all Field Studio errors.

    All custom exceptions inherit from this class,
    allowing for broad exception handling when needed.
    """

    pass


class ConfigurationError(FieldStudioError):
    """Configuration is invalid or missing.

    Raised when:
        - A numeric setting cannot be parsed
        - An unknown storage backend is requested
    """

    pass


class ValidationError(FieldStudioError):
    """Data validation failed.

    Raised when:
        - A command is built without an id or label
        - Persisted history data has the wrong shape
    """

    pass


class StorageError(FieldStudioError):
    """Key-value storage operation failed.

    Base class for backend-specific read and write failures.
    """

    pass


class PersistenceReadError(StorageError):
    """Persisted data could not be read.

    Raised when:
        - The backing file or database cannot be opened
        - The stored value cannot be decoded

    The history store treats this as an empty store.
    """

    pass


class PersistenceWriteError(StorageError):
    """Persisted data could not be written.

    Raised when:
        - The backing directory is not writable
        - The database is locked or read-only

    The history store swallows this; history simply does not persist.
    """

    pass


class PaletteError(FieldStudioError):
    """Command palette operation failed."""

    pass


class AvailabilityPredicateError(PaletteError):
    """A command's availability predicate raised.

    The command is excluded from the current computation only; the
    predicate is evaluated again on the next keystroke.
    """

    def __init__(self, command_id: str, cause: BaseException):
        super().__init__(f"Availability check failed for {command_id!r}: {cause}")
        self.command_id = command_id
        self.cause = cause
