from collections.abc import Callable, Mapping
from dataclasses import dataclass, fields, replace
from functools import wraps
from typing import Any

import pandas as pd
from crudsql.exceptions import ConfigurationError
from crudsql.strategy import get_available_dialects, get_strategy_class
from crudsql.strategy import is_supported_dialect

__all__ = [
    'DatabaseOptions',
    'pandas_data_loader',
    'iterdict_data_loader',
    'use_iterdict_data_loader',
]


def use_iterdict_data_loader(func):
    """Temporarily use default dict loader over user-specified loader"""

    @wraps(func)
    def inner(*args, **kwargs):
        db = args[0]

        if hasattr(db, 'db') and not hasattr(db, 'options'):
            db = db.db

        original_data_loader = db.options.data_loader
        db.options.data_loader = iterdict_data_loader

        try:
            return func(*args, **kwargs)
        finally:
            db.options.data_loader = original_data_loader

    return inner


def iterdict_data_loader(rows, columns, **kwargs) -> list[dict]:
    """Minimal data loader returning the row dicts as a list.
    """
    if not rows:
        return []
    return list(rows)


def pandas_data_loader(rows, columns, **kwargs) -> pd.DataFrame:
    """pandas DataFrame loader.

    Always returns a DataFrame, never None, with columns preserved for empty results.
    """
    if not rows:
        return pd.DataFrame(columns=list(columns))
    return pd.DataFrame.from_records(list(rows), columns=list(columns))


@dataclass
class DatabaseOptions:
    """Options

    supported driver names: `mysql`, `sqlite`

    Connection defaults follow the usual MySQL client defaults. An empty
    `database` with the `sqlite` driver opens an in-memory database.

    Error logging options:
    - log_errors: Mirror the error log to `log_file` (default: True)
    - log_file: Destination of the mirrored error log

    Identifier options:
    - strict_identifiers: Reject table/column names outside
      ``[A-Za-z_][A-Za-z0-9_$]*`` (default: True)
    """
    drivername: str = 'mysql'
    host: str = 'localhost'
    username: str = 'root'
    password: str = ''
    database: str = ''
    charset: str = 'utf8mb4'
    port: int = 3306
    timeout: int = 0
    log_errors: bool = True
    log_file: str = 'logs/database_errors.log'
    strict_identifiers: bool = True
    data_loader: Callable[..., Any] | None = None

    def __post_init__(self):
        if not is_supported_dialect(self.drivername):
            available = get_available_dialects()
            raise ConfigurationError(f'drivername must be one of: {available}')
        try:
            self.port = int(self.port)
            self.timeout = int(self.timeout or 0)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f'port and timeout must be integers: {e}') from e
        if not 0 < self.port < 65536:
            raise ConfigurationError(f'port out of range: {self.port}')
        if self.timeout < 0:
            raise ConfigurationError('timeout cannot be negative')
        strategy_cls = get_strategy_class(self.drivername)
        strategy_cls.validate_options(self)
        if self.data_loader is None:
            self.data_loader = iterdict_data_loader

    @classmethod
    def load(cls, options: 'DatabaseOptions | Mapping[str, Any] | None' = None,
             **kw: Any) -> 'DatabaseOptions':
        """Build options from an instance, a mapping and/or keyword overrides.

        Keys with a None value fall back to the field default, so a partial
        configuration mapping is enough.
        An instance is always copied so every handle owns its options.
        """
        if isinstance(options, cls) and not kw:
            return replace(options)

        if isinstance(options, cls):
            merged = {f.name: getattr(options, f.name) for f in fields(cls)}
        elif options is None:
            merged = {}
        elif isinstance(options, Mapping):
            merged = dict(options)
        else:
            raise ConfigurationError(f'Cannot load options from {type(options).__name__}')
        merged.update(kw)

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(merged) - known)
        if unknown:
            raise ConfigurationError(f'Unknown option(s): {unknown}')

        return cls(**{k: v for k, v in merged.items() if v is not None})
