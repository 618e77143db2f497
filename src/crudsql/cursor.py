"""
Cursor wrapper used by the execution façade.

Implements positional binding of typed parameters on top of a DB-API 2.0
(PEP-249) cursor, plus SQL/timing tracing.
"""
import logging
import time
from collections.abc import Iterator, Sequence
from functools import wraps
from typing import Any

from crudsql.types import BindType, bind_values

logger = logging.getLogger(__name__)


def dumpsql(func):
    """Decorator for logging SQL queries and parameters."""
    @wraps(func)
    def wrapper(self, operation: str, *args: Any, **kwargs: Any):
        start = time.time()
        logger.debug(f'SQL:\n{operation}\nargs: {args}')
        try:
            return func(self, operation, *args, **kwargs)
        except Exception:
            logger.error(f'Error with query:\nSQL:\n{operation}\nargs: {args}')
            raise
        finally:
            elapsed = time.time() - start
            self.db.addcall(elapsed)
            logger.debug(f'Query time: {elapsed:.4f}s')
    return wrapper


class Cursor:
    """Thin wrapper over a driver cursor.

    SQL arrives with ``?`` placeholders and is rewritten to the driver's
    paramstyle by the dialect strategy before execution.
    """

    def __init__(self, cursor: Any, db: Any) -> None:
        """Initialize cursor wrapper.

        Args:
            cursor: The underlying driver cursor
            db: The Database handle that created this cursor
        """
        self.dbapi_cursor = cursor
        self.db = db

    def __getattr__(self, name: str) -> Any:
        """Delegate members to underlying cursor."""
        return getattr(self.dbapi_cursor, name)

    def __enter__(self) -> 'Cursor':
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def __iter__(self) -> Iterator[dict[str, Any]]:
        return iter(self.fetchall())

    @property
    def columns(self) -> list[str]:
        """Column names of the last result set, in select order."""
        if self.dbapi_cursor.description is None:
            return []
        return [desc[0] for desc in self.dbapi_cursor.description]

    @property
    def rowcount(self) -> int:
        """Number of rows affected by last operation."""
        return self.dbapi_cursor.rowcount

    @property
    def lastrowid(self) -> int | None:
        """Row id generated by the last INSERT."""
        return self.dbapi_cursor.lastrowid

    def close(self) -> None:
        self.dbapi_cursor.close()

    @dumpsql
    def execute(self, operation: str, params: Sequence[Any] = (),
                types: Sequence[BindType | str] | str | None = None) -> 'Cursor':
        """Bind parameters positionally by type and execute.
        """
        expected = self.db.strategy.count_placeholders(operation)
        if expected != len(params):
            raise ValueError(f'Statement has {expected} placeholder(s) but {len(params)} parameter(s) were given')
        values = bind_values(params, types)
        sql = self.db.strategy.standardize_sql(operation)
        self.dbapi_cursor.execute(sql, values)
        return self

    def fetchall(self) -> list[dict[str, Any]]:
        """Fetch remaining rows as ordered column -> value dicts."""
        if self.dbapi_cursor.description is None:
            return []
        columns = self.columns
        return [dict(zip(columns, row)) for row in self.dbapi_cursor.fetchall()]

    def fetchone(self) -> dict[str, Any] | None:
        """Fetch next row as a dict."""
        if self.dbapi_cursor.description is None:
            return None
        row = self.dbapi_cursor.fetchone()
        if row is None:
            return None
        return dict(zip(self.columns, row))
