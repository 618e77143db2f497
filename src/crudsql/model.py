"""
Table-bound model base class.

Subclass `Model`, name the table and (optionally) the columns callers may
write, then bind an instance to a `Database` handle.

Example
    class User(Model):
        table = 'users'
        fillable = ('name', 'email', 'age', 'status')

    users = User(db)
    user_id = users.create({'name': 'Alice', 'email': 'a@example.com'}).unwrap()
    alice = users.find(user_id).value
"""
import datetime
import logging
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

from crudsql.result import Result

if TYPE_CHECKING:
    from crudsql.connection import Database, Page

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = '%Y-%m-%d %H:%M:%S'


class Model:
    """CRUD operations scoped to one table.

    Class attributes
        table: Table name (required)
        primary_key: Column used by find/update/delete (default ``id``)
        fillable: Columns accepted by create/update; empty accepts all
        timestamps: Stamp ``created_at``/``updated_at`` on writes
    """
    table: str = ''
    primary_key: str = 'id'
    fillable: Sequence[str] = ()
    timestamps: bool = True

    def __init__(self, db: 'Database') -> None:
        if not self.table:
            raise TypeError(f'{type(self).__name__} must define a table')
        self.db = db

    def __repr__(self) -> str:
        return f'<{type(self).__name__} table={self.table}>'

    def _filter_fillable(self, values: Mapping[str, Any]) -> dict[str, Any]:
        if not self.fillable:
            return dict(values)
        return {k: v for k, v in values.items() if k in self.fillable}

    @staticmethod
    def _now() -> str:
        return datetime.datetime.now().strftime(TIMESTAMP_FORMAT)

    def find(self, id: Any) -> Result[dict[str, Any] | None]:
        """Row with the given primary key, or None."""
        return self.db.select_one(self.table, conditions={self.primary_key: id})

    def find_all(self, conditions: Mapping[str, Any] | None = None,
                 order_by: Sequence[str] | str | None = None,
                 limit: int | None = None, offset: int | None = None) -> Result:
        return self.db.select(self.table, conditions=conditions, order_by=order_by,
                              limit=limit, offset=offset)

    def find_first(self, conditions: Mapping[str, Any] | None = None,
                   order_by: Sequence[str] | str | None = None) -> Result[dict[str, Any] | None]:
        return self.db.select_one(self.table, conditions=conditions, order_by=order_by)

    def create(self, values: Mapping[str, Any]) -> Result[int | None]:
        """Insert a row built from the fillable subset of `values`.

        Returns the generated id.
        """
        data = self._filter_fillable(values)
        if self.timestamps:
            now = self._now()
            data['created_at'] = now
            data['updated_at'] = now
        return self.db.insert(self.table, data)

    def update(self, id: Any, values: Mapping[str, Any]) -> Result[int]:
        """Update the row with the given primary key; returns the affected count.
        """
        data = self._filter_fillable(values)
        if self.timestamps:
            data['updated_at'] = self._now()
        return self.db.update(self.table, data, {self.primary_key: id})

    def delete(self, id: Any) -> Result[int]:
        return self.db.delete(self.table, {self.primary_key: id})

    def count(self, conditions: Mapping[str, Any] | None = None) -> Result[int]:
        return self.db.count(self.table, conditions)

    def exists(self, conditions: Mapping[str, Any] | None) -> Result[bool]:
        return self.db.exists(self.table, conditions)

    def paginate(self, page: int = 1, per_page: int = 10,
                 conditions: Mapping[str, Any] | None = None,
                 order_by: Sequence[str] | str | None = None) -> 'Result[Page]':
        return self.db.paginate(self.table, page, per_page, conditions=conditions,
                                order_by=order_by)

    # Transaction pass-throughs

    def begin_transaction(self) -> Result[None]:
        return self.db.begin_transaction()

    def commit(self) -> Result[None]:
        return self.db.commit()

    def rollback(self) -> Result[None]:
        return self.db.rollback()

    def transaction(self):
        return self.db.transaction()

    @property
    def last_error(self) -> str | None:
        return self.db.last_error

    @property
    def errors(self) -> list[str]:
        return self.db.errors
