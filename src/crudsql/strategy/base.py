"""
Base strategy interface for dialect-specific behavior.

The strategy pattern keeps everything that differs between MySQL and SQLite
(connection URL, placeholder marker, upsert conflict clause, transaction
start, string escaping) behind one interface, so statement building and the
execution façade stay dialect-agnostic.
"""
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

import sqlalchemy as sa
from crudsql.exceptions import ConfigurationError
from crudsql.sql import count_placeholders, standardize_placeholders

if TYPE_CHECKING:
    from crudsql.options import DatabaseOptions

# Registry of dialect name -> strategy class
# Defined here to avoid circular imports (concrete strategies import from base)
_STRATEGY_REGISTRY: dict[str, type['DatabaseStrategy']] = {}


def register_strategy(dialect: str):
    """Decorator to register a strategy class for a dialect.

    Usage:
        @register_strategy('mysql')
        class MySQLStrategy(DatabaseStrategy):
            ...
    """
    def decorator(cls: type['DatabaseStrategy']) -> type['DatabaseStrategy']:
        _STRATEGY_REGISTRY[dialect] = cls
        return cls
    return decorator


class DatabaseStrategy(ABC):
    """Base class for dialect-specific operations.
    """

    #: Driver placeholder marker that ``?`` is rewritten to
    placeholder: str = '?'

    #: Statement that opens an explicit transaction
    begin_sql: str = 'BEGIN'

    #: Whether a backslash escapes the next character inside string literals
    backslash_escapes: bool = False

    @property
    @abstractmethod
    def dialect_name(self) -> str:
        """Return the dialect identifier (e.g., 'mysql', 'sqlite')."""

    @abstractmethod
    def build_connection_url(self, options: 'DatabaseOptions') -> sa.URL:
        """Build the SQLAlchemy connection URL for this dialect.
        """

    @abstractmethod
    def get_engine_kwargs(self, options: 'DatabaseOptions') -> dict[str, Any]:
        """Return SQLAlchemy create_engine kwargs for this dialect.
        """

    @abstractmethod
    def configure_connection(self, raw_conn: Any) -> None:
        """Apply per-connection settings, leaving it in auto-commit mode.

        Args:
            raw_conn: The raw driver connection (not wrapped)
        """

    @abstractmethod
    def upsert_clause(self, quoted_columns: list[str]) -> str:
        """Conflict clause appended to an INSERT to turn it into an upsert.

        Args:
            quoted_columns: Already quoted columns to overwrite on conflict
        """

    @abstractmethod
    def escape_string(self, value: str) -> str:
        """Escape a raw string for inclusion inside a quoted SQL literal.
        """

    @classmethod
    @abstractmethod
    def get_required_options(cls) -> list[str]:
        """Return list of required option field names for this dialect.
        """

    @classmethod
    def validate_options(cls, options: 'DatabaseOptions') -> None:
        """Validate options for this dialect.

        Raises
            ConfigurationError: If any required field is empty
        """
        for field in cls.get_required_options():
            if not getattr(options, field):
                raise ConfigurationError(f'field {field} cannot be empty for {options.drivername}')

    def standardize_sql(self, sql: str) -> str:
        """Rewrite ``?`` placeholders to this driver's marker.
        """
        return standardize_placeholders(sql, self.placeholder, self.backslash_escapes)

    def count_placeholders(self, sql: str) -> int:
        """Count ``?`` placeholders using this dialect's literal syntax.
        """
        return count_placeholders(sql, self.backslash_escapes)

    def begin(self, raw_conn: Any) -> None:
        """Open an explicit transaction on an auto-commit connection.
        """
        cursor = raw_conn.cursor()
        try:
            cursor.execute(self.begin_sql)
        finally:
            cursor.close()
