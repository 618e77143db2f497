"""
Condition compiler: condition maps to WHERE fragments.

A condition map is an ordered mapping from column name to one of four
condition variants:

    Eq(value)               `col` = ?
    In(values)              `col` IN (?, ?, ...)
    Between(low, high)      `col` BETWEEN ? AND ?
    Compare(operator, value) `col` <operator> ?

Callers may also use the loose shapes accepted by `as_condition`; they are
normalized to a variant before compilation. Parameters are collected in the
same left-to-right order as the emitted placeholders.

Examples
    >>> frag = compile_conditions({'age': {'between': [25, 35]}, 'active': True})
    >>> frag.sql
    '`age` BETWEEN ? AND ? AND `active` = ?'
    >>> frag.params
    (25, 35, 1)
"""
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Union

from crudsql.exceptions import CompileError
from crudsql.sql import make_placeholders, quote_identifier
from crudsql.types import BindType, coerce_value, infer_type

logger = logging.getLogger(__name__)

__all__ = [
    'ALLOWED_OPERATORS',
    'Eq',
    'In',
    'Between',
    'Compare',
    'Condition',
    'Fragment',
    'as_condition',
    'compile_condition',
    'compile_conditions',
]

ALLOWED_OPERATORS = frozenset({'=', '!=', '<', '<=', '>', '>=', 'LIKE'})


@dataclass(frozen=True, slots=True)
class Eq:
    """Column equals value."""
    value: Any


@dataclass(frozen=True, slots=True)
class In:
    """Column is one of the values. Must not be empty."""
    values: tuple

    def __init__(self, values: Sequence[Any]) -> None:
        object.__setattr__(self, 'values', tuple(values))


@dataclass(frozen=True, slots=True)
class Between:
    """Column between low and high, inclusive, in the given order."""
    low: Any
    high: Any


@dataclass(frozen=True, slots=True)
class Compare:
    """Column compared to value with an allow-listed operator."""
    operator: str
    value: Any


Condition = Union[Eq, In, Between, Compare]


@dataclass(frozen=True, slots=True)
class Fragment:
    """SQL text with its ordered parameters and bind types.
    """
    sql: str = ''
    params: tuple = ()
    types: tuple[BindType, ...] = ()

    def __bool__(self) -> bool:
        return bool(self.sql)

    def __add__(self, other: 'Fragment') -> 'Fragment':
        """Concatenate parameters, joining non-empty SQL with AND."""
        sql = ' AND '.join(s for s in (self.sql, other.sql) if s)
        return Fragment(sql, self.params + other.params, self.types + other.types)


def bind(values: Sequence[Any]) -> tuple[tuple, tuple[BindType, ...]]:
    """Infer tags for values and coerce them for binding.
    """
    types = tuple(infer_type(v) for v in values)
    params = tuple(coerce_value(v, t) for v, t in zip(values, types))
    return params, types


def as_condition(value: Any) -> Condition:
    """Normalize a loose condition shape into a variant.

    - Condition instances are returned as is
    - ``{'in': [...]}`` -> In
    - ``{'between': [low, high]}`` -> Between
    - ``{'operator': op, 'value': v}`` or ``{'comparison': op, 'value': v}`` -> Compare
    - list / tuple / set -> In
    - any other value (including None and bytes) -> Eq

    Raises
        CompileError: For mappings that match none of the shapes above
    """
    if isinstance(value, Eq | In | Between | Compare):
        return value

    if isinstance(value, Mapping):
        if 'in' in value:
            members = value['in']
            if isinstance(members, str | bytes) or not isinstance(members, Sequence | set | frozenset):
                raise CompileError(f"'in' expects a sequence, got {type(members).__name__}")
            return In(members)
        if 'between' in value:
            pair = value['between']
            if isinstance(pair, str | bytes) or not isinstance(pair, Sequence) or len(pair) != 2:
                raise CompileError("'between' expects a (low, high) pair")
            return Between(pair[0], pair[1])
        operator = value.get('operator', value.get('comparison'))
        if operator is not None and 'value' in value:
            return Compare(operator, value['value'])
        raise CompileError(f'Unrecognized condition shape: {sorted(value)}')

    if isinstance(value, list | tuple | set | frozenset):
        return In(value)

    return Eq(value)


def _require_scalar(column: str, value: Any) -> None:
    if isinstance(value, list | tuple | set | frozenset | Mapping):
        raise CompileError(f'Expected a scalar value for column {column!r}, got {type(value).__name__}')


def _normalize_operator(operator: Any) -> str:
    if not isinstance(operator, str):
        raise CompileError(f'Operator must be a string, got {type(operator).__name__}')
    op = operator.strip().upper()
    if op not in ALLOWED_OPERATORS:
        raise CompileError(f'Operator not allowed: {operator!r}')
    return op


def compile_condition(column: str, condition: Condition, strict: bool = True) -> Fragment:
    """Compile a single column condition.
    """
    col = quote_identifier(column, strict=strict)

    if isinstance(condition, Eq):
        _require_scalar(column, condition.value)
        params, types = bind([condition.value])
        return Fragment(f'{col} = ?', params, types)

    if isinstance(condition, In):
        if not condition.values:
            raise CompileError(f'Empty IN list for column {column!r}')
        params, types = bind(condition.values)
        return Fragment(f'{col} IN ({make_placeholders(len(params))})', params, types)

    if isinstance(condition, Between):
        _require_scalar(column, condition.low)
        _require_scalar(column, condition.high)
        params, types = bind([condition.low, condition.high])
        return Fragment(f'{col} BETWEEN ? AND ?', params, types)

    if isinstance(condition, Compare):
        op = _normalize_operator(condition.operator)
        _require_scalar(column, condition.value)
        params, types = bind([condition.value])
        return Fragment(f'{col} {op} ?', params, types)

    raise CompileError(f'Unsupported condition type: {type(condition).__name__}')


def compile_conditions(conditions: Mapping[str, Any] | None, strict: bool = True) -> Fragment:
    """Compile a condition map into a WHERE fragment (without the keyword).

    An empty or missing map compiles to an empty fragment; callers that need
    a guard against full-table mutation check for it themselves.
    """
    if not conditions:
        return Fragment()
    if not isinstance(conditions, Mapping):
        raise CompileError(f'Conditions must be a mapping, got {type(conditions).__name__}')

    fragment = Fragment()
    for column, value in conditions.items():
        fragment += compile_condition(column, as_condition(value), strict=strict)

    logger.debug(f'Compiled {len(conditions)} condition(s) into {len(fragment.params)} parameter(s)')
    return fragment
