"""
SQLite strategy implementation.

Used for local development and tests. SQLite accepts backtick-quoted
identifiers, so statements are shared with MySQL except for the upsert
conflict clause. Requires SQLite 3.35+ for ``ON CONFLICT DO UPDATE``
without a conflict target.
"""
import logging
from typing import TYPE_CHECKING, Any

import sqlalchemy as sa
from crudsql.strategy.base import DatabaseStrategy, register_strategy

if TYPE_CHECKING:
    from crudsql.options import DatabaseOptions

logger = logging.getLogger(__name__)


@register_strategy('sqlite')
class SQLiteStrategy(DatabaseStrategy):
    """SQLite-specific operations.
    """

    placeholder = '?'
    begin_sql = 'BEGIN'

    @property
    def dialect_name(self) -> str:
        """Return the dialect identifier for SQLite."""
        return 'sqlite'

    def build_connection_url(self, options: 'DatabaseOptions') -> sa.URL:
        """Build the SQLAlchemy connection URL for SQLite (in-memory when no database)."""
        return sa.URL.create(drivername='sqlite', database=options.database or None)

    def get_engine_kwargs(self, options: 'DatabaseOptions') -> dict[str, Any]:
        """Return SQLAlchemy create_engine kwargs for SQLite."""
        if options.timeout:
            return {'connect_args': {'timeout': options.timeout}}
        return {}

    def configure_connection(self, raw_conn: Any) -> None:
        """Enable foreign keys and switch to auto-commit mode.
        """
        raw_conn.isolation_level = None
        raw_conn.execute('PRAGMA foreign_keys = ON')
        logger.debug('Configured SQLite connection with autocommit')

    def upsert_clause(self, quoted_columns: list[str]) -> str:
        """``ON CONFLICT DO UPDATE SET `c` = excluded.`c``` for each column.
        """
        updates = ', '.join(f'{c} = excluded.{c}' for c in quoted_columns)
        return f'ON CONFLICT DO UPDATE SET {updates}'

    def escape_string(self, value: str) -> str:
        """Double single quotes.

        >>> SQLiteStrategy().escape_string("O'Brien")
        "O''Brien"
        """
        return value.replace("'", "''")

    @classmethod
    def get_required_options(cls) -> list[str]:
        """SQLite needs no options; an empty database means in-memory."""
        return []
