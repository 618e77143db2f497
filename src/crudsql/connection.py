"""
Database handle and execution façade.

This module provides:
1. The `Database` class: an explicit, caller-owned handle holding one
   connection, the transaction flag and the error log
2. The `connect()` function for creating and opening a handle

Every public operation returns a `Result`. Failures of any stage (compile,
prepare, bind, execute, transaction state, connection) are recorded in the
handle's error log and returned as a failed result; nothing is raised to
the caller unless they call `Result.unwrap()`.

Example
    db = connect({'drivername': 'sqlite', 'database': ':memory:'}).unwrap()
    db.execute('CREATE TABLE users (id INTEGER PRIMARY KEY, name TEXT, age INTEGER)')
    user_id = db.insert('users', {'name': 'Alice', 'age': 30}).value
    adults = db.select('users', conditions={'age': {'operator': '>=', 'value': 18}}).value
    db.close()

A handle is not thread-safe. Use one handle per worker or serialize access.
"""
import logging
import math
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from functools import wraps
from typing import Any, Self

import sqlalchemy as sa
from crudsql.cursor import Cursor
from crudsql.errorlog import ErrorLog
from crudsql.exceptions import CompileError, ConfigurationError
from crudsql.exceptions import ConnectionFailure, DatabaseError
from crudsql.exceptions import ExecutionError, TransactionStateError
from crudsql.options import DatabaseOptions, use_iterdict_data_loader
from crudsql.result import Result
from crudsql.statements import Statement, build_count, build_delete
from crudsql.statements import build_insert, build_select, build_update
from crudsql.statements import build_upsert
from crudsql.strategy import get_strategy
from crudsql.transaction import Transaction
from crudsql.types import BindType
from sqlalchemy.pool import NullPool

__all__ = [
    'Database',
    'Page',
    'connect',
]

logger = logging.getLogger(__name__)

Params = Sequence[Any]
Types = Sequence[BindType | str] | str | None


@dataclass
class Page:
    """One page of rows plus pagination metadata.
    """
    data: Any
    current_page: int
    per_page: int
    total: int
    total_pages: int = field(init=False)
    has_next: bool = field(init=False)
    has_prev: bool = field(init=False)

    def __post_init__(self):
        self.total_pages = math.ceil(self.total / self.per_page)
        self.has_next = self.current_page < self.total_pages
        self.has_prev = self.current_page > 1


def returns_result(context: str) -> Callable:
    """Wrap a façade method so it returns a `Result`.

    Any `DatabaseError` raised by the wrapped method is recorded in the
    error log under `context` and returned as a failure.
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def inner(self: 'Database', *args: Any, **kwargs: Any) -> Result:
            try:
                return Result.success(func(self, *args, **kwargs))
            except DatabaseError as err:
                return self._fail(context, err)
        return inner
    return decorator


class Database:
    """Caller-owned database handle.

    Holds a single connection and an in/out-of-transaction flag. Writes
    outside a transaction are committed immediately (the connection runs in
    auto-commit mode); inside a transaction they wait for `commit()`.

    Raises
        ConfigurationError: From the constructor when options are invalid
    """

    def __init__(self, options: DatabaseOptions | Mapping[str, Any] | None = None,
                 **kw: Any) -> None:
        self.options = DatabaseOptions.load(options, **kw)
        self.strategy = get_strategy(self.options.drivername)
        self.error_log = ErrorLog(self.options.log_errors, self.options.log_file)
        self.engine: sa.Engine | None = None
        self.sa_connection: sa.Connection | None = None
        self.dbapi_connection: Any = None
        self.in_transaction = False
        self.calls = 0
        self.time = 0
        self._last_insert_id: int | None = None
        self._affected_rows = 0

    def __enter__(self) -> Self:
        """Support for context manager protocol; opens the handle if needed.
        """
        if not self.is_open:
            self.open().unwrap()
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None,
                 exc_tb: Any | None) -> None:
        self.close()

    def __repr__(self) -> str:
        state = 'open' if self.is_open else 'closed'
        return f'<Database {self.dialect} {self.options.database or ":memory:"} {state}>'

    @property
    def dialect(self) -> str:
        """Return the dialect name ('mysql' or 'sqlite')."""
        return self.strategy.dialect_name

    @property
    def is_open(self) -> bool:
        return self.sa_connection is not None and not self.sa_connection.closed

    @property
    def strict(self) -> bool:
        return self.options.strict_identifiers

    @property
    def last_insert_id(self) -> int | None:
        """Row id generated by the most recent INSERT or UPSERT."""
        return self._last_insert_id

    @property
    def affected_rows(self) -> int:
        """Row count reported by the most recent write."""
        return self._affected_rows

    def addcall(self, elapsed: float) -> None:
        """Track execution statistics
        """
        self.time += elapsed
        self.calls += 1

    # Lifecycle

    def open(self) -> Result[Self]:
        """Connect to the database.

        Returns a failed result carrying a `ConnectionFailure` when the
        driver refuses the connection.
        """
        if self.is_open:
            return Result.success(self)
        try:
            url = self.strategy.build_connection_url(self.options)
            self.engine = sa.create_engine(url, poolclass=NullPool,
                                           **self.strategy.get_engine_kwargs(self.options))
            self.sa_connection = self.engine.connect()
            self.dbapi_connection = self.sa_connection.connection
            self.strategy.configure_connection(self.dbapi_connection.driver_connection)
        except Exception as e:
            self._discard_connection()
            err = ConnectionFailure(f'Connection failed: {e}')
            return self._fail('Connection', err)

        logger.debug(f'Opened {self.dialect} connection')
        return Result.success(self)

    def close(self) -> None:
        """Close the connection, rolling back an open transaction first.
        """
        if self.is_open and self.in_transaction:
            logger.warning('Closing with an open transaction, rolling back')
            self.rollback()
        if self.sa_connection is not None:
            logger.debug(f'Connection closed: {self.calls} queries in {self.time:.2f}s (avg: {self.time/max(1,self.calls):.3f}s per query)')
        self._discard_connection()
        self.error_log.close()

    def _discard_connection(self) -> None:
        try:
            if self.sa_connection is not None and not self.sa_connection.closed:
                self.sa_connection.close()
        except Exception as e:
            logger.debug(f'Error closing connection: {e}')
        finally:
            if self.engine is not None:
                self.engine.dispose()
            self.sa_connection = None
            self.dbapi_connection = None
            self.engine = None
            self.in_transaction = False

    # Error log

    @property
    def errors(self) -> list[str]:
        return list(self.error_log.errors)

    @property
    def last_error(self) -> str | None:
        return self.error_log.last

    def clear_errors(self) -> None:
        self.error_log.clear()

    def set_error_logging(self, enabled: bool, log_file: str | None = None) -> None:
        """Enable or disable mirroring the error log to a file.
        """
        self.error_log.configure(enabled, log_file)

    def _fail(self, context: str, err: DatabaseError) -> Result:
        message = f'{context} Error: {err}'
        sql = getattr(err, 'sql', None)
        if sql:
            message += f' | Query: {sql}'
        self.error_log.record(message)
        return Result.failure(err)

    # Execution

    @property
    def _driver_errors(self) -> tuple[type[BaseException], ...]:
        dbapi = self.engine.dialect.loaded_dbapi
        return (dbapi.Error, ValueError, TypeError)

    def _cursor(self, sql: str, params: Params, types: Types) -> Cursor:
        """Prepare, bind and execute; the caller closes the returned cursor.
        """
        if not self.is_open:
            raise ConnectionFailure('No database connection available')

        cursor = Cursor(self.dbapi_connection.cursor(), self)
        try:
            cursor.execute(sql, tuple(params or ()), types)
        except DatabaseError:
            cursor.close()
            raise
        except self._driver_errors as e:
            cursor.close()
            raise ExecutionError(f'Execute failed: {e}', sql) from e
        return cursor

    def _read(self, sql: str, params: Params = (), types: Types = None) -> tuple[list[dict], list[str]]:
        cursor = self._cursor(sql, params, types)
        try:
            return cursor.fetchall(), cursor.columns
        except self._driver_errors as e:
            raise ExecutionError(f'Fetch failed: {e}', sql) from e
        finally:
            cursor.close()

    def _write(self, sql: str, params: Params = (), types: Types = None) -> int:
        cursor = self._cursor(sql, params, types)
        try:
            self._affected_rows = cursor.rowcount
            self._last_insert_id = cursor.lastrowid
        finally:
            cursor.close()
        logger.debug(f'Write affected {self._affected_rows} row(s)')
        return self._affected_rows

    def _load(self, sql: str, params: Params = (), types: Types = None) -> Any:
        rows, columns = self._read(sql, params, types)
        return self.options.data_loader(rows, columns)

    def _run(self, statement: Statement) -> int:
        return self._write(statement.sql, statement.params, statement.types)

    # Raw statements

    @returns_result('Query')
    def query(self, sql: str, params: Params = (), types: Types = None) -> Any:
        """Run a read statement and return rows through the data loader.

        Args:
            sql: SQL with ``?`` placeholders
            params: Positional parameters
            types: Optional explicit bind types (tags or letters like ``'is'``)
        """
        return self._load(sql, params, types)

    @returns_result('Query')
    def query_row(self, sql: str, params: Params = (), types: Types = None) -> dict[str, Any] | None:
        """Run a read statement and return the first row or None.
        """
        rows, _ = self._read(sql, params, types)
        return rows[0] if rows else None

    @returns_result('Query')
    def query_scalar(self, sql: str, params: Params = (), types: Types = None) -> Any:
        """Run a read statement and return the first column of the first row.
        """
        rows, _ = self._read(sql, params, types)
        if not rows:
            return None
        return next(iter(rows[0].values()), None)

    @returns_result('Query')
    def execute(self, sql: str, params: Params = (), types: Types = None) -> int:
        """Run a write statement and return the affected row count.
        """
        return self._write(sql, params, types)

    # CRUD

    @returns_result('Select')
    def select(self, table: str, columns: Sequence[str] | str | None = None,
               conditions: Mapping[str, Any] | None = None,
               order_by: Sequence[str] | str | None = None,
               limit: int | None = None, offset: int | None = None) -> Any:
        """Select rows from a table.

        Args:
            table: Table name
            columns: Columns to select (default: all)
            conditions: Condition map, see `crudsql.conditions`
            order_by: ``"name DESC, id"`` or a list of such items
            limit: Maximum rows
            offset: Rows to skip, requires limit
        """
        stmt = build_select(table, columns, conditions, order_by=order_by,
                            limit=limit, offset=offset, strict=self.strict)
        return self._load(stmt.sql, stmt.params, stmt.types)

    @use_iterdict_data_loader
    def select_one(self, table: str, columns: Sequence[str] | str | None = None,
                   conditions: Mapping[str, Any] | None = None,
                   order_by: Sequence[str] | str | None = None) -> Result[dict[str, Any] | None]:
        """Select the first matching row, or None when nothing matches.
        """
        result = self.select(table, columns, conditions, order_by=order_by, limit=1)
        if not result:
            return result
        return Result.success(result.value[0] if result.value else None)

    @returns_result('Insert')
    def insert(self, table: str, values: Mapping[str, Any]) -> int | None:
        """Insert one row and return its generated id.
        """
        self._run(build_insert(table, values, strict=self.strict))
        return self._last_insert_id

    @returns_result('Update')
    def update(self, table: str, values: Mapping[str, Any],
               conditions: Mapping[str, Any]) -> int:
        """Update matching rows and return the affected count.

        An empty condition map is rejected rather than updating every row.
        """
        return self._run(build_update(table, values, conditions, strict=self.strict))

    @returns_result('Delete')
    def delete(self, table: str, conditions: Mapping[str, Any]) -> int:
        """Delete matching rows and return the affected count.

        An empty condition map is rejected rather than deleting every row.
        """
        return self._run(build_delete(table, conditions, strict=self.strict))

    @returns_result('Upsert')
    def upsert(self, table: str, values: Mapping[str, Any],
               update_columns: Sequence[str] | None = None) -> int | None:
        """Insert a row, or update `update_columns` of the row it collides with.
        """
        self._run(build_upsert(table, values, update_columns,
                               dialect=self.dialect, strict=self.strict))
        return self._last_insert_id

    @returns_result('Count')
    def count(self, table: str, conditions: Mapping[str, Any] | None = None) -> int:
        """Count matching rows.
        """
        stmt = build_count(table, conditions, strict=self.strict)
        rows, _ = self._read(stmt.sql, stmt.params, stmt.types)
        return int(rows[0]['count']) if rows else 0

    def exists(self, table: str, conditions: Mapping[str, Any] | None) -> Result[bool]:
        """Whether at least one row matches.
        """
        result = self.count(table, conditions)
        if not result:
            return result
        return Result.success(result.value > 0)

    def paginate(self, table: str, page: int = 1, per_page: int = 10,
                 conditions: Mapping[str, Any] | None = None,
                 order_by: Sequence[str] | str | None = None,
                 columns: Sequence[str] | str | None = None) -> Result[Page]:
        """Select one page of rows along with the total count.
        """
        if page < 1 or per_page < 1:
            return self._fail('Paginate', CompileError('page and per_page must be positive'))

        rows = self.select(table, columns, conditions, order_by=order_by,
                           limit=per_page, offset=(page - 1) * per_page)
        if not rows:
            return rows
        total = self.count(table, conditions)
        if not total:
            return total
        return Result.success(Page(rows.value, page, per_page, total.value))

    # Transactions

    def begin_transaction(self) -> Result[None]:
        """Start a transaction. Fails when one is already active.
        """
        if not self.is_open:
            return self._fail('Transaction', ConnectionFailure('No database connection available'))
        if self.in_transaction:
            return self._fail('Transaction', TransactionStateError('Transaction already active'))
        try:
            self.strategy.begin(self.dbapi_connection)
        except self._driver_errors as e:
            return self._fail('Transaction', ExecutionError(f'Begin failed: {e}'))
        self.in_transaction = True
        logger.debug('Started transaction')
        return Result.success()

    def commit(self) -> Result[None]:
        """Commit the active transaction. Fails when idle.

        The handle stays in the transaction when the driver commit fails, so
        the caller can still roll back.
        """
        if not self.in_transaction:
            return self._fail('Transaction', TransactionStateError('No active transaction to commit'))
        try:
            self.dbapi_connection.commit()
        except self._driver_errors as e:
            return self._fail('Transaction', ExecutionError(f'Commit failed: {e}'))
        self.in_transaction = False
        logger.debug('Committed transaction')
        return Result.success()

    def rollback(self) -> Result[None]:
        """Roll back the active transaction. Fails when idle.

        The handle always returns to idle, even if the driver reports an
        error while rolling back.
        """
        if not self.in_transaction:
            return self._fail('Transaction', TransactionStateError('No active transaction to roll back'))
        try:
            self.dbapi_connection.rollback()
        except self._driver_errors as e:
            return self._fail('Transaction', ExecutionError(f'Rollback failed: {e}'))
        finally:
            self.in_transaction = False
        logger.warning('Rolled back the current transaction')
        return Result.success()

    def transaction(self) -> Transaction:
        """Context manager that commits on success and rolls back on exception.
        """
        return Transaction(self)

    # Utilities

    def escape(self, value: str) -> str:
        """Escape a raw string for use inside a quoted SQL literal.

        Prefer bound parameters; this exists for the rare statement that
        cannot use them.
        """
        return self.strategy.escape_string(str(value))


def connect(options: DatabaseOptions | Mapping[str, Any] | None = None,
            **kw: Any) -> Result[Database]:
    """Create and open a database handle.

    Args:
        options: Can be:
                - DatabaseOptions object
                - Dictionary of options
                - None, with options given as keyword arguments
        **kw: Additional keyword arguments to override options

    Returns
        Result carrying the open `Database`, or the ConfigurationError /
        ConnectionFailure that prevented it
    """
    try:
        db = Database(options, **kw)
    except ConfigurationError as err:
        logger.error(f'Configuration Error: {err}')
        return Result.failure(err)
    return db.open()
