"""
Bind type inference for statement parameters.

Every value bound to a placeholder carries a `BindType` tag derived purely
from its runtime type, never from schema metadata:

- bool            -> INTEGER (value coerced to 0/1)
- integral number -> INTEGER
- real number     -> FLOAT
- None            -> STRING (value stays None, the server casts it)
- anything else   -> STRING (str, bytes, dates, decimals, ...)

BINARY is never inferred. Callers that need blob semantics pass it
explicitly in `types`.
"""
import logging
from collections.abc import Iterable, Sequence
from enum import Enum
from numbers import Integral, Real
from typing import Any

from crudsql.exceptions import CompileError

logger = logging.getLogger(__name__)

__all__ = [
    'BindType',
    'infer_type',
    'infer_types',
    'coerce_value',
    'resolve_types',
    'bind_values',
]


class BindType(Enum):
    """Wire-level type marker for a bound value.

    The member values are the classic prepared-statement type letters.
    """
    INTEGER = 'i'
    FLOAT = 'd'
    STRING = 's'
    BINARY = 'b'

    @classmethod
    def parse(cls, tag: 'BindType | str') -> 'BindType':
        """Accept an enum member, a type letter or a member name."""
        if isinstance(tag, cls):
            return tag
        if isinstance(tag, str):
            try:
                return cls(tag.lower())
            except ValueError:
                pass
            try:
                return cls[tag.upper()]
            except KeyError:
                pass
        raise CompileError(f'Unknown bind type: {tag!r}')


def infer_type(value: Any) -> BindType:
    """Map a runtime value to its bind type tag.

    The bool check comes first since bool is an int subclass and must be
    coerced to 0/1 before binding.

    >>> infer_type(True)
    <BindType.INTEGER: 'i'>
    >>> infer_type(1.5)
    <BindType.FLOAT: 'd'>
    >>> infer_type(None)
    <BindType.STRING: 's'>
    """
    if isinstance(value, bool):
        return BindType.INTEGER
    if isinstance(value, Integral):
        return BindType.INTEGER
    if isinstance(value, Real):
        return BindType.FLOAT
    return BindType.STRING


def infer_types(values: Iterable[Any]) -> tuple[BindType, ...]:
    """Infer a tag for every value, preserving order.
    """
    return tuple(infer_type(v) for v in values)


def coerce_value(value: Any, tag: BindType) -> Any:
    """Convert a value to the Python type the driver expects for `tag`.

    None always passes through untouched.
    """
    if value is None:
        return None
    if tag is BindType.INTEGER:
        return int(value)
    if tag is BindType.FLOAT:
        return float(value)
    if tag is BindType.BINARY:
        if isinstance(value, str):
            return value.encode()
        return bytes(value)
    if isinstance(value, str | bytes | bytearray):
        return value
    return str(value)


def resolve_types(values: Sequence[Any],
                  types: Sequence[BindType | str] | str | None = None) -> tuple[BindType, ...]:
    """Return explicit tags when given, otherwise infer them.

    `types` may be a sequence of tags or a string of type letters such as
    ``'isd'``. Its length must match the number of values.
    """
    if not types:
        return infer_types(values)
    tags = tuple(BindType.parse(t) for t in types)
    if len(tags) != len(values):
        raise CompileError(f'Expected {len(values)} bind types, got {len(tags)}')
    return tags


def bind_values(values: Sequence[Any],
                types: Sequence[BindType | str] | str | None = None) -> tuple[Any, ...]:
    """Coerce every value according to its tag, ready for positional binding.
    """
    tags = resolve_types(values, types)
    return tuple(coerce_value(v, t) for v, t in zip(values, tags))
