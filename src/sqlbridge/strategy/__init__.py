"""
Dialect strategies, looked up by dialect name or by connection.

Importing this package registers the SQL Server, PostgreSQL and SQLite
strategies.
"""
from functools import lru_cache

from sqlbridge.strategy.base import _STRATEGY_REGISTRY
from sqlbridge.strategy.base import DatabaseStrategy as DatabaseStrategy
from sqlbridge.strategy.base import register_strategy as register_strategy
from sqlbridge.strategy.postgres import PostgresStrategy as PostgresStrategy
from sqlbridge.strategy.sqlite import SQLiteStrategy as SQLiteStrategy
from sqlbridge.strategy.sqlserver import SQLServerStrategy as SQLServerStrategy
from sqlbridge.utils import get_dialect_name


def get_available_dialects() -> list[str]:
    return list(_STRATEGY_REGISTRY)


def is_supported_dialect(dialect: str) -> bool:
    return dialect in _STRATEGY_REGISTRY


def get_strategy_class(dialect: str) -> type[DatabaseStrategy]:
    """Registered strategy class for a dialect. Raises ValueError when unknown."""
    try:
        return _STRATEGY_REGISTRY[dialect]
    except KeyError:
        raise ValueError(f'Unsupported dialect: {dialect}. Available: {get_available_dialects()}') from None


@lru_cache(maxsize=8)
def get_strategy(dialect: str) -> DatabaseStrategy:
    """Shared strategy instance for a dialect name.

    Strategies hold no connection state, so one instance per dialect serves
    every connection.
    """
    return get_strategy_class(dialect)()


def get_db_strategy(cn) -> DatabaseStrategy:
    """Strategy for the dialect of a connection (wrapper, SQLAlchemy or driver)."""
    return get_strategy(get_dialect_name(cn))
