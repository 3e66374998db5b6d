"""Persistence layer for delivery records.

Public API:
    # Database initialization and session management
    - init_database(database_url: str) -> None
    - get_session() -> ContextManager[Session]
    - close_database() -> None
    - get_engine() -> Engine

    # Repository
    - DeliveryRecordRepository: lifecycle writes, retry and audit queries

    # Exceptions
    - PersistenceError and its subclasses

Example usage:
    >>> from notifier.persistence import init_database, get_session, DeliveryRecordRepository
    >>> init_database("sqlite:///./data/notifier.db")
    >>> with get_session() as session:
    ...     record = DeliveryRecordRepository(session).get_by_key("purchase:mercadopago:P1")
"""

from .database import close_database, get_engine, get_session, init_database
from .exceptions import (
    DatabaseConnectionError,
    DataIntegrityError,
    InvalidStatusTransitionError,
    PersistenceError,
    RecordNotFoundError,
)
from .repositories import DeliveryRecordRepository

__all__ = [
    # Database functions
    "init_database",
    "get_session",
    "close_database",
    "get_engine",
    # Repositories
    "DeliveryRecordRepository",
    # Exceptions
    "PersistenceError",
    "DatabaseConnectionError",
    "RecordNotFoundError",
    "DataIntegrityError",
    "InvalidStatusTransitionError",
]
