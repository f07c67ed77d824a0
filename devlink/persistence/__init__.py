"""Persistence layer: read access to the DevLink database and the delivery ledger.

Public API:
    # Database initialization and session management
    - init_database(database_url: str) -> None
    - get_session() -> ContextManager[Session]
    - close_database() -> None
    - get_engine() -> Engine

    # Repository classes
    - UserRepository: user lookups and job cohorts
    - ActivityRepository: weekly activity counts
    - ContentRepository: projects and blog posts with their owner
    - CollaborationRepository: pending collaboration requests
    - DeliveryLogRepository: per-job delivery ledger (the only writer)

    # Exceptions
    - PersistenceError and its subclasses

Example usage:
    >>> from devlink.persistence import init_database, get_session, UserRepository
    >>>
    >>> init_database("sqlite:///./data/devlink.db")
    >>>
    >>> with get_session() as session:
    ...     users = UserRepository(session).list_notifiable()
"""

from .database import close_database, get_engine, get_session, init_database

from .repositories import (
    ActivityRepository,
    CollaborationRepository,
    ContentRepository,
    DeliveryLogRepository,
    UserRepository,
)

from .exceptions import (
    DatabaseConnectionError,
    DataIntegrityError,
    PersistenceError,
    RecordNotFoundError,
)

__all__ = [
    # Database functions
    "init_database",
    "get_session",
    "close_database",
    "get_engine",
    # Repositories
    "UserRepository",
    "ActivityRepository",
    "ContentRepository",
    "CollaborationRepository",
    "DeliveryLogRepository",
    # Exceptions
    "PersistenceError",
    "DatabaseConnectionError",
    "RecordNotFoundError",
    "DataIntegrityError",
]
