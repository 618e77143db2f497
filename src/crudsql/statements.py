"""
Statement builders for SELECT, INSERT, UPDATE, DELETE and UPSERT.

Every builder returns a `Statement` holding SQL text with ``?`` placeholders
and the parameters and bind types in placeholder order. Builders are pure:
they never touch a connection and raise `CompileError` on invalid input.
"""
import logging
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from crudsql.conditions import Fragment, bind, compile_conditions
from crudsql.exceptions import CompileError
from crudsql.sql import make_placeholders, quote_identifier
from crudsql.strategy import get_strategy
from crudsql.types import BindType

logger = logging.getLogger(__name__)

__all__ = [
    'Statement',
    'build_select',
    'build_count',
    'build_insert',
    'build_update',
    'build_delete',
    'build_upsert',
]

_ORDER_ITEM = re.compile(r'^\s*(?P<column>\S+?)(?:\s+(?P<direction>ASC|DESC))?\s*$', re.IGNORECASE)


@dataclass(frozen=True, slots=True)
class Statement:
    """Complete SQL statement ready for execution.
    """
    sql: str
    params: tuple = ()
    types: tuple[BindType, ...] = ()


def _require_values(values: Mapping[str, Any] | None, verb: str) -> None:
    if not values:
        raise CompileError(f'No data provided for {verb}')
    if not isinstance(values, Mapping):
        raise CompileError(f'{verb} data must be a mapping, got {type(values).__name__}')


def _where(fragment: Fragment) -> str:
    return f' WHERE {fragment.sql}' if fragment else ''


def _column_list(columns: Sequence[str] | str | None, strict: bool) -> str:
    if not columns or columns == '*':
        return '*'
    if isinstance(columns, str):
        columns = [columns]
    return ', '.join('*' if c == '*' else quote_identifier(c, strict=strict) for c in columns)


def _order_by(order_by: Sequence[str] | str, strict: bool) -> str:
    """Validate and quote ``col [ASC|DESC]`` items.
    """
    items = order_by.split(',') if isinstance(order_by, str) else list(order_by)
    clauses = []
    for item in items:
        match = _ORDER_ITEM.match(item)
        if not match:
            raise CompileError(f'Invalid ORDER BY item: {item!r}')
        clause = quote_identifier(match.group('column'), strict=strict)
        if match.group('direction'):
            clause += f" {match.group('direction').upper()}"
        clauses.append(clause)
    return ', '.join(clauses)


def _as_int(value: Any, name: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError) as e:
        raise CompileError(f'{name} must be an integer, got {value!r}') from e
    if number < 0:
        raise CompileError(f'{name} cannot be negative, got {number}')
    return number


def build_select(table: str, columns: Sequence[str] | str | None = None,
                 conditions: Mapping[str, Any] | None = None,
                 order_by: Sequence[str] | str | None = None,
                 limit: int | None = None, offset: int | None = None,
                 strict: bool = True) -> Statement:
    """Generate a SELECT statement.

    Args:
        table: Table name
        columns: Columns to select (None or ``*`` for all)
        conditions: Condition map; no WHERE clause when empty
        order_by: ``"name DESC, id"`` or a list of such items
        limit: LIMIT value, coerced to int and interpolated
        offset: OFFSET value, requires limit

    >>> build_select('users', ['*'], {'age': {'between': [25, 35]}}).sql
    'SELECT * FROM `users` WHERE `age` BETWEEN ? AND ?'
    """
    fragment = compile_conditions(conditions, strict=strict)
    sql = f'SELECT {_column_list(columns, strict)} FROM {quote_identifier(table, strict=strict)}'
    sql += _where(fragment)

    if order_by:
        sql += f' ORDER BY {_order_by(order_by, strict)}'

    if limit is not None:
        sql += f" LIMIT {_as_int(limit, 'limit')}"
        if offset is not None:
            sql += f" OFFSET {_as_int(offset, 'offset')}"
    elif offset is not None:
        raise CompileError('OFFSET requires LIMIT')

    return Statement(sql, fragment.params, fragment.types)


def build_count(table: str, conditions: Mapping[str, Any] | None = None,
                strict: bool = True) -> Statement:
    """Generate ``SELECT COUNT(*) AS `count` FROM ...``.
    """
    fragment = compile_conditions(conditions, strict=strict)
    sql = f'SELECT COUNT(*) AS `count` FROM {quote_identifier(table, strict=strict)}'
    sql += _where(fragment)
    return Statement(sql, fragment.params, fragment.types)


def build_insert(table: str, values: Mapping[str, Any], strict: bool = True) -> Statement:
    """Generate an INSERT statement with one placeholder per column.

    >>> stmt = build_insert('t', {'a': 1, 'b': 'x'})
    >>> stmt.sql
    'INSERT INTO `t` (`a`, `b`) VALUES (?, ?)'
    >>> stmt.params
    (1, 'x')
    """
    _require_values(values, 'insert')
    quoted_table = quote_identifier(table, strict=strict)
    quoted_columns = ', '.join(quote_identifier(col, strict=strict) for col in values)
    params, types = bind(list(values.values()))
    sql = f'INSERT INTO {quoted_table} ({quoted_columns}) VALUES ({make_placeholders(len(values))})'
    return Statement(sql, params, types)


def build_update(table: str, values: Mapping[str, Any],
                 conditions: Mapping[str, Any], strict: bool = True) -> Statement:
    """Generate an UPDATE statement. SET parameters precede WHERE parameters.

    Raises
        CompileError: If values or conditions are empty; an UPDATE without
            conditions would touch every row
    """
    _require_values(values, 'update')
    if not conditions:
        raise CompileError('No conditions provided for update - this would update all rows')

    fragment = compile_conditions(conditions, strict=strict)
    quoted_table = quote_identifier(table, strict=strict)
    set_clause = ', '.join(f'{quote_identifier(col, strict=strict)} = ?' for col in values)
    params, types = bind(list(values.values()))
    sql = f'UPDATE {quoted_table} SET {set_clause}{_where(fragment)}'
    return Statement(sql, params + fragment.params, types + fragment.types)


def build_delete(table: str, conditions: Mapping[str, Any], strict: bool = True) -> Statement:
    """Generate a DELETE statement.

    Raises
        CompileError: If conditions are empty
    """
    if not conditions:
        raise CompileError('No conditions provided for delete - this would delete all rows')

    fragment = compile_conditions(conditions, strict=strict)
    sql = f'DELETE FROM {quote_identifier(table, strict=strict)}{_where(fragment)}'
    return Statement(sql, fragment.params, fragment.types)


def build_upsert(table: str, values: Mapping[str, Any],
                 update_columns: Sequence[str] | None = None,
                 dialect: str = 'mysql', strict: bool = True) -> Statement:
    """Generate an INSERT that updates the existing row on a key conflict.

    The conflict clause comes from the dialect strategy: ``ON DUPLICATE KEY
    UPDATE`` for MySQL, ``ON CONFLICT DO UPDATE`` for SQLite. Update columns
    default to every column in `values`.

    >>> build_upsert('t', {'id': 1, 'n': 'a'}, ['n']).sql
    'INSERT INTO `t` (`id`, `n`) VALUES (?, ?) ON DUPLICATE KEY UPDATE `n` = VALUES(`n`)'
    """
    insert = build_insert(table, values, strict=strict)

    columns = list(update_columns) if update_columns else list(values)
    unknown = [c for c in columns if c not in values]
    if unknown:
        raise CompileError(f'Update columns not present in data: {unknown}')

    quoted = [quote_identifier(col, strict=strict) for col in columns]
    clause = get_strategy(dialect).upsert_clause(quoted)
    return Statement(f'{insert.sql} {clause}', insert.params, insert.types)
