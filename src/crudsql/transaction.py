"""
Transaction context manager for database handles.
"""
import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from crudsql.connection import Database

logger = logging.getLogger(__name__)


class Transaction:
    """Context manager for running multiple commands in a transaction.

    Begins on enter, commits when the block exits cleanly and rolls back
    when an exception escapes it. The exception is re-raised. Façade
    operations return `Result` objects, so call `unwrap()` inside the block
    to turn a failed operation into a rollback.

    Nested transactions are not supported; entering while the handle is
    already in a transaction raises `TransactionStateError`.

    Examples
        with db.transaction() as tx:
            tx.insert('orders', {'user_id': 1, 'total': 99.5}).unwrap()
            tx.update('users', {'balance': 0}, {'id': 1}).unwrap()
    """

    def __init__(self, db: 'Database') -> None:
        self.db = db

    def __getattr__(self, name: str) -> Any:
        """Delegate façade operations to the handle."""
        return getattr(self.db, name)

    def __enter__(self) -> 'Transaction':
        self.db.begin_transaction().unwrap()
        logger.debug(f'Started transaction for handle {id(self.db)}')
        return self

    def __exit__(self, exc_type: type | None, value: Exception | None, traceback: Any | None) -> None:
        if exc_type is not None:
            if self.db.in_transaction:
                self.db.rollback()
            return

        result = self.db.commit()
        if not result:
            self.db.rollback()
            raise result.error
        logger.debug(f'Committed transaction for handle {id(self.db)}')
