"""
Base strategy interface for database operations.

Defines the abstract base class that all database-specific strategy implementations
must inherit from. The strategy pattern keeps dialect-specific SQL (diagnostic
lookups, bulk transfer settings, constraint relaxation) behind one interface so
the mapping, classification and bulk loading code works against any dialect.
"""
import logging
from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from sqlbridge.utils import split_table_name

if TYPE_CHECKING:
    from sqlbridge.connection import ConnectionWrapper
    from sqlbridge.options import DatabaseOptions

logger = logging.getLogger(__name__)

# Registry of dialect name -> strategy class
# Defined here to avoid circular imports (concrete strategies import from base)
_STRATEGY_REGISTRY: dict[str, type['DatabaseStrategy']] = {}


def register_strategy(dialect: str):
    """Decorator to register a strategy class for a dialect.

    Usage:
        @register_strategy('postgresql')
        class PostgresStrategy(DatabaseStrategy):
            ...
    """
    def decorator(cls: type['DatabaseStrategy']) -> type['DatabaseStrategy']:
        _STRATEGY_REGISTRY[dialect] = cls
        cls.dialect = dialect
        return cls
    return decorator


class DatabaseStrategy(ABC):
    """Base class for database-specific operations.

    Diagnostic SQL attributes are single-value queries used to describe a
    live connection in error messages. ``None`` means the dialect has no such
    query and the connection URL is used instead.
    """

    dialect: str = ''
    server_name_sql: str | None = None
    database_name_sql: str | None = None
    principal_sql: str | None = None

    @classmethod
    def validate_options(cls, options: 'DatabaseOptions') -> None:
        """Validate dialect-specific options. Raise ValueError when invalid.
        """

    def engine_kwargs(self, options: 'DatabaseOptions') -> dict[str, Any]:
        """Extra keyword arguments for ``sqlalchemy.create_engine``.
        """
        return {}

    def _scalar(self, cn: 'ConnectionWrapper', sql: str) -> Any:
        """Execute a single-value query on the wrapped connection."""
        return cn.sa_connection.exec_driver_sql(sql).scalar()

    def _execute_raw(self, cn: 'ConnectionWrapper', sql: str) -> None:
        cn.sa_connection.exec_driver_sql(sql)

    def _names(self, cn: 'ConnectionWrapper', sql: str, parameters: Any) -> list[str]:
        """First column of every row of a catalog query."""
        return list(cn.sa_connection.exec_driver_sql(sql, parameters).scalars().all())

    def server_name(self, cn: 'ConnectionWrapper') -> str | None:
        """Server the connection points at."""
        if self.server_name_sql and not cn.closed:
            return self._scalar(cn, self.server_name_sql)
        return cn.url.host

    def database_name(self, cn: 'ConnectionWrapper') -> str | None:
        """Current database of the connection."""
        if self.database_name_sql and not cn.closed:
            return self._scalar(cn, self.database_name_sql)
        return cn.url.database

    def principal(self, cn: 'ConnectionWrapper') -> str | None:
        """Login the connection is authenticated as."""
        if self.principal_sql and not cn.closed:
            return self._scalar(cn, self.principal_sql)
        return cn.url.username

    @abstractmethod
    def quote_identifier(self, identifier: str) -> str:
        """Quote an identifier for this dialect"""

    def quote_table(self, table: str) -> str:
        """Quote an optionally schema-qualified table name."""
        schema, name = split_table_name(table)
        if schema:
            return f'{self.quote_identifier(schema)}.{self.quote_identifier(name)}'
        return self.quote_identifier(name)

    @abstractmethod
    def set_transfer_timeout(self, cn: 'ConnectionWrapper', seconds: int) -> None:
        """Bound the duration of statements issued during a bulk transfer.

        Called inside the transfer transaction.
        """

    @contextmanager
    def constraint_mode(self, cn: 'ConnectionWrapper', table: str,
                        enforce: bool) -> Iterator[None]:
        """Scope a bulk transfer with triggers and check constraints
        enforced or relaxed on the destination table.

        Runs inside the transfer transaction. The default leaves the
        destination untouched in both modes.
        """
        if not enforce:
            logger.debug(f'{self.dialect} cannot relax constraints on {table}, transferring with them enforced')
        yield
