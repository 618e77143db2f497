"""
Exception classes for the data-access layer.
"""
import re

RETRYABLE_PATTERNS = [
    # Connection drops
    r'lost connection',
    r'server has gone away',
    r'connection.*(closed|reset|refused|lost|aborted|broken)',
    r'broken pipe',
    r"can't connect",
    r'could not connect',
    # Timeouts
    r'timeout',
    r'timed out',
    # Lock contention
    r'deadlock',
    r'lock wait',
    r'database is locked',
    # Server unavailable
    r'too many connections',
    r'server shutdown',
]

_RETRYABLE_REGEX = re.compile('|'.join(RETRYABLE_PATTERNS), re.IGNORECASE)


def is_retryable_error(exc: BaseException) -> bool:
    """Check if an exception represents a transient error worth retrying.

    Returns True for errors that are likely transient and may succeed on retry:
    - Connection drops ("server has gone away", "lost connection")
    - Timeouts
    - Deadlocks and lock wait timeouts
    - Server temporarily unavailable

    Returns False for errors that will definitely fail again, such as syntax
    errors, constraint violations or compile errors raised before the
    statement ever reached the server.

    Nothing in this package retries on its own; callers use this to decide.

    :param exc: The exception to check.
    :returns: True if the error is likely transient and worth retrying.
    """
    if isinstance(exc, CompileError | TransactionStateError | ConfigurationError):
        return False
    error_msg = str(exc).lower()
    return bool(_RETRYABLE_REGEX.search(error_msg))


class DatabaseError(Exception):
    """Base class for all crudsql errors.
    """


class ConfigurationError(DatabaseError, ValueError):
    """Missing or invalid connection parameters.
    """


class ConnectionFailure(DatabaseError):
    """The driver refused to connect, or the handle is not open.
    """


class CompileError(DatabaseError):
    """A statement could not be built from the supplied maps.

    Raised for empty value maps, empty condition maps on UPDATE/DELETE,
    empty membership lists, operators outside the allow-list and invalid
    identifiers.
    """


class ExecutionError(DatabaseError):
    """Prepare, bind or execute failure reported by the driver.
    """

    def __init__(self, message: str, sql: str | None = None) -> None:
        super().__init__(message)
        self.sql = sql


class TransactionStateError(DatabaseError):
    """Begin while a transaction is active, or commit/rollback while idle.
    """
