"""Persistence layer exceptions.

All persistence exceptions inherit from PersistenceError. The dispatcher
never swallows them: without a durable record idempotency cannot be
guaranteed, so storage failures propagate to the caller.
"""


class PersistenceError(Exception):
    """Base exception for all persistence layer errors."""

    pass


class DatabaseConnectionError(PersistenceError):
    """Raised when database connection or initialization fails.

    Examples:
    - Invalid database URL
    - Database file not accessible
    - Session requested before init_database()
    """

    pass


class RecordNotFoundError(PersistenceError):
    """Raised when an operation requires a delivery record that does not exist.

    Optional lookups return None instead.
    """

    pass


class DataIntegrityError(PersistenceError):
    """Raised when a database constraint is violated."""

    pass


class InvalidStatusTransitionError(PersistenceError):
    """Raised when a delivery record cannot move to the requested status.

    SENT is terminal; any attempt to move a SENT record raises this.
    """

    def __init__(self, idempotency_key: str, current_status: str, target_status: str):
        self.idempotency_key = idempotency_key
        self.current_status = current_status
        self.target_status = target_status
        super().__init__(
            f"Cannot transition delivery record {idempotency_key} "
            f"from {current_status} to {target_status}"
        )
