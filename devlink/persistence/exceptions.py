"""Persistence layer exceptions.

Repositories translate SQLAlchemy errors into these so callers can catch a
single PersistenceError. A PersistenceError raised while selecting a job's
cohort fails the whole job run.
"""


class PersistenceError(Exception):
    """Base exception for all persistence layer errors."""

    pass


class DatabaseConnectionError(PersistenceError):
    """Raised when the database cannot be initialized or reached."""

    pass


class RecordNotFoundError(PersistenceError):
    """Raised when an operation requires a record that does not exist.

    Lookups that may legitimately miss return None instead.
    """

    pass


class DataIntegrityError(PersistenceError):
    """Raised when a write violates a database constraint."""

    pass
