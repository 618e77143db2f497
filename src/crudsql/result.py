"""
Explicit success/failure result returned by every façade operation.
"""
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from crudsql.exceptions import DatabaseError, is_retryable_error

T = TypeVar('T')

__all__ = ['Result']


@dataclass(frozen=True, slots=True)
class Result(Generic[T]):
    """Outcome of a database operation.

    A successful result carries `value`; a failed one carries the `error`
    that caused it. Truthiness reflects success, so a successful count of
    zero is still truthy.

    Examples
        res = db.insert('users', {'name': 'Alice'})
        if res:
            user_id = res.value
        else:
            print(res.error)

        user_id = db.insert('users', {'name': 'Alice'}).unwrap()
    """
    ok: bool
    value: T | None = None
    error: DatabaseError | None = None

    @classmethod
    def success(cls, value: T = None) -> 'Result[T]':
        return cls(True, value, None)

    @classmethod
    def failure(cls, error: DatabaseError) -> 'Result[T]':
        return cls(False, None, error)

    def __bool__(self) -> bool:
        return self.ok

    @property
    def message(self) -> str | None:
        """Error description, or None on success."""
        return str(self.error) if self.error is not None else None

    @property
    def retryable(self) -> bool:
        """Whether the failure looks transient. Always False on success."""
        return self.error is not None and is_retryable_error(self.error)

    def unwrap(self) -> T:
        """Return the value or raise the carried error.
        """
        if not self.ok:
            raise self.error
        return self.value

    def unwrap_or(self, default: Any) -> T | Any:
        """Return the value, or `default` on failure."""
        return self.value if self.ok else default
