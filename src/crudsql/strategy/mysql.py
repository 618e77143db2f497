"""
MySQL / MariaDB strategy implementation.

Connections go through SQLAlchemy with the mysql-connector driver, which
uses ``%s`` placeholders. The connection runs in auto-commit mode and
explicit transactions are opened with ``START TRANSACTION``.
"""
import logging
from typing import TYPE_CHECKING, Any

import sqlalchemy as sa
from crudsql.strategy.base import DatabaseStrategy, register_strategy

if TYPE_CHECKING:
    from crudsql.options import DatabaseOptions

logger = logging.getLogger(__name__)

# Same replacements as mysql_real_escape_string
_ESCAPES = str.maketrans({
    '\\': '\\\\',
    '\0': '\\0',
    '\n': '\\n',
    '\r': '\\r',
    "'": "\\'",
    '"': '\\"',
    '\x1a': '\\Z',
})


@register_strategy('mysql')
class MySQLStrategy(DatabaseStrategy):
    """MySQL-specific operations.
    """

    placeholder = '%s'
    begin_sql = 'START TRANSACTION'
    backslash_escapes = True

    @property
    def dialect_name(self) -> str:
        """Return the dialect identifier for MySQL."""
        return 'mysql'

    def build_connection_url(self, options: 'DatabaseOptions') -> sa.URL:
        """Build the SQLAlchemy connection URL for MySQL."""
        return sa.URL.create(
            drivername='mysql+mysqlconnector',
            username=options.username,
            password=options.password,
            host=options.host,
            port=options.port,
            database=options.database or None,
            query={'charset': options.charset},
        )

    def get_engine_kwargs(self, options: 'DatabaseOptions') -> dict[str, Any]:
        """Return SQLAlchemy create_engine kwargs for MySQL."""
        if options.timeout:
            return {'connect_args': {'connection_timeout': options.timeout}}
        return {}

    def configure_connection(self, raw_conn: Any) -> None:
        """Put the connection in auto-commit mode.
        """
        raw_conn.autocommit = True
        logger.debug('Configured MySQL connection with autocommit')

    def upsert_clause(self, quoted_columns: list[str]) -> str:
        """``ON DUPLICATE KEY UPDATE `c` = VALUES(`c`)`` for each column.
        """
        updates = ', '.join(f'{c} = VALUES({c})' for c in quoted_columns)
        return f'ON DUPLICATE KEY UPDATE {updates}'

    def escape_string(self, value: str) -> str:
        """Backslash escaping as done by the MySQL client library.

        >>> MySQLStrategy().escape_string("O'Brien")
        "O\\\\'Brien"
        """
        return value.translate(_ESCAPES)

    @classmethod
    def get_required_options(cls) -> list[str]:
        """MySQL needs a host and a user."""
        return ['host', 'username']
