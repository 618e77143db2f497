"""
Declarative CRUD data-access layer for MySQL and SQLite.

Operations can be called either as:
- Database methods: db.select('users', conditions={'age': 30})
- Module functions: crudsql.select(db, 'users', conditions={'age': 30})

Every operation returns a `Result`; builders in `crudsql.statements` are
available separately for composing SQL without a connection.
"""
__version__ = '0.1.0'

from collections.abc import Mapping, Sequence
from typing import Any

from crudsql.conditions import Between, Compare, Eq, In
from crudsql.connection import Database, Page, connect
from crudsql.exceptions import CompileError, ConfigurationError
from crudsql.exceptions import ConnectionFailure, DatabaseError
from crudsql.exceptions import ExecutionError, TransactionStateError
from crudsql.exceptions import is_retryable_error
from crudsql.model import Model
from crudsql.options import DatabaseOptions, iterdict_data_loader
from crudsql.options import pandas_data_loader
from crudsql.result import Result
from crudsql.statements import Statement
from crudsql.transaction import Transaction as transaction
from crudsql.types import BindType


def query(db: Database, sql: str, params: Sequence[Any] = (), types: Any = None) -> Result:
    """Run a read statement and return rows.
    """
    return db.query(sql, params, types)


def execute(db: Database, sql: str, params: Sequence[Any] = (), types: Any = None) -> Result[int]:
    """Run a write statement and return the affected row count.
    """
    return db.execute(sql, params, types)


def select(db: Database, table: str, columns: Sequence[str] | str | None = None,
           conditions: Mapping[str, Any] | None = None, **kwargs: Any) -> Result:
    """Select rows from a table.
    """
    return db.select(table, columns, conditions, **kwargs)


def select_one(db: Database, table: str, columns: Sequence[str] | str | None = None,
               conditions: Mapping[str, Any] | None = None, **kwargs: Any) -> Result:
    """Select the first matching row or None.
    """
    return db.select_one(table, columns, conditions, **kwargs)


def insert(db: Database, table: str, values: Mapping[str, Any]) -> Result:
    """Insert a row and return its generated id.
    """
    return db.insert(table, values)


def update(db: Database, table: str, values: Mapping[str, Any],
           conditions: Mapping[str, Any]) -> Result[int]:
    """Update matching rows.
    """
    return db.update(table, values, conditions)


def delete(db: Database, table: str, conditions: Mapping[str, Any]) -> Result[int]:
    """Delete matching rows.
    """
    return db.delete(table, conditions)


def upsert(db: Database, table: str, values: Mapping[str, Any],
           update_columns: Sequence[str] | None = None) -> Result:
    """Insert a row or update it on key collision.
    """
    return db.upsert(table, values, update_columns)


def count(db: Database, table: str, conditions: Mapping[str, Any] | None = None) -> Result[int]:
    return db.count(table, conditions)


def exists(db: Database, table: str, conditions: Mapping[str, Any] | None) -> Result[bool]:
    return db.exists(table, conditions)


__all__ = [
    'connect',
    'Database',
    'DatabaseOptions',
    'Model',
    'Page',
    'Result',
    'Statement',
    'BindType',
    'transaction',
    'iterdict_data_loader',
    'pandas_data_loader',
    'Eq',
    'In',
    'Between',
    'Compare',
    'query',
    'execute',
    'select',
    'select_one',
    'insert',
    'update',
    'delete',
    'upsert',
    'count',
    'exists',
    'DatabaseError',
    'ConfigurationError',
    'ConnectionFailure',
    'CompileError',
    'ExecutionError',
    'TransactionStateError',
    'is_retryable_error',
]
