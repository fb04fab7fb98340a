"""
Database connection handling with SQLAlchemy.

This module provides:
1. The `connect()` function resolving options, a URL or a mapping to a live connection
2. The `ConnectionWrapper` class that wraps SQLAlchemy connections
3. Engine creation and management through a thread-safe registry

Each mapping helper, query helper and bulk load opens its own connection
through `connect()` and closes it on every exit path.
"""
import atexit
import logging
import threading
from typing import Any, Self

import sqlalchemy as sa
from sqlalchemy.engine import Engine
from sqlalchemy.pool import NullPool

from sqlbridge.options import DatabaseOptions
from sqlbridge.params import Statement
from sqlbridge.strategy import get_strategy
from sqlbridge.utils import get_dialect_name

__all__ = [
    'ConnectionWrapper',
    'connect',
    'create_url_from_options',
    'get_engine_for_options',
    'get_engine_for_url',
    'dispose_all_engines',
]

logger = logging.getLogger(__name__)

_engine_registry: dict[str, Engine] = {}
_engine_registry_lock = threading.RLock()


def create_url_from_options(options: DatabaseOptions) -> sa.URL:
    """Convert DatabaseOptions to SQLAlchemy URL.
    """
    if options.drivername == 'sqlite':
        return sa.URL.create(
            drivername='sqlite',
            database=options.database
        )

    elif options.drivername == 'postgresql':
        query = {'application_name': options.appname}
        if options.timeout:
            query['connect_timeout'] = str(options.timeout)

        return sa.URL.create(
            drivername='postgresql+psycopg',
            username=options.username,
            password=options.password,
            host=options.hostname,
            port=options.port or None,
            database=options.database,
            query=query
        )

    elif options.drivername == 'mssql':
        query = {'driver': options.odbc_driver, 'APP': options.appname}
        if options.trust_server_certificate:
            query['TrustServerCertificate'] = 'yes'
        if options.timeout:
            query['timeout'] = str(options.timeout)

        return sa.URL.create(
            drivername='mssql+pyodbc',
            username=options.username,
            password=options.password,
            host=options.hostname,
            port=options.port or None,
            database=options.database,
            query=query
        )

    raise ValueError(f'Unsupported database type: {options.drivername}')


def _build_engine(key: str, url: sa.URL, engine_kwargs: dict[str, Any]) -> Engine:
    with _engine_registry_lock:
        if key in _engine_registry:
            logger.debug(f'Using existing engine for {url.get_backend_name()}')
            return _engine_registry[key]

        engine = sa.create_engine(url, **engine_kwargs)
        _engine_registry[key] = engine
        logger.debug(f'Created new engine for {url.get_backend_name()}')
        return engine


def get_engine_for_options(options: DatabaseOptions) -> Engine:
    """Get or create a SQLAlchemy engine for the given options.
    """
    key = f'{options!r}'
    url = create_url_from_options(options)

    engine_kwargs: dict[str, Any] = {'echo': False}
    engine_kwargs.update(get_strategy(options.drivername).engine_kwargs(options))

    if not options.use_pool:
        engine_kwargs['poolclass'] = NullPool
    else:
        engine_kwargs['pool_size'] = options.pool_max_connections
        engine_kwargs['pool_recycle'] = options.pool_max_idle_time
        engine_kwargs['pool_timeout'] = options.pool_wait_timeout
        engine_kwargs['max_overflow'] = 10
        engine_kwargs['pool_pre_ping'] = True
        engine_kwargs['pool_reset_on_return'] = 'rollback'

    return _build_engine(key, url, engine_kwargs)


def get_engine_for_url(url: str | sa.URL) -> Engine:
    """Get or create a SQLAlchemy engine for a connection URL.
    """
    url = sa.make_url(url)
    engine_kwargs: dict[str, Any] = {'echo': False, 'poolclass': NullPool}
    engine_kwargs.update(get_strategy(url.get_backend_name()).engine_kwargs(None))
    key = url.render_as_string(hide_password=False)
    return _build_engine(key, url, engine_kwargs)


def dispose_all_engines() -> None:
    """Dispose all engines in the registry.
    """
    with _engine_registry_lock:
        for engine in _engine_registry.values():
            engine.dispose()
        _engine_registry.clear()
        logger.debug('All database engines disposed')


atexit.register(dispose_all_engines)


class ConnectionWrapper:
    """Wraps a SQLAlchemy connection object to track calls and execution time

    This class provides a thin wrapper around SQLAlchemy connection objects that:
    1. Tracks statement execution counts
    2. Supports context manager protocol for explicit resource management
    3. Provides access to the underlying DBAPI connection via dbapi_connection
    4. Delegates attribute access to the SQLAlchemy connection object
    """

    def __init__(self, sa_connection: sa.engine.Connection,
                 options: DatabaseOptions | None = None) -> None:
        self.sa_connection = sa_connection
        self.engine = sa_connection.engine
        self.options = options
        self.dbapi_connection = sa_connection.connection
        self._dialect = get_dialect_name(sa_connection)
        self.calls = 0
        self.in_transaction = False

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None,
                 exc_tb: Any | None) -> None:
        """Return the connection to the pool when exiting the context manager
        """
        self.close()
        logger.debug('Closed connection via context manager')

    def __getattr__(self, name: str) -> Any:
        """Delegate attribute access to the SQLAlchemy connection.
        """
        return getattr(self.sa_connection, name)

    @property
    def dialect(self) -> str:
        """Return the dialect name ('mssql', 'postgresql' or 'sqlite')."""
        return self._dialect

    @property
    def url(self) -> sa.URL:
        return self.engine.url

    @property
    def closed(self) -> bool:
        return self.sa_connection.closed

    def close(self) -> None:
        """Close the SQLAlchemy connection. Uncommitted work is rolled back.
        """
        if not self.sa_connection.closed:
            self.sa_connection.close()
            logger.debug(f'Connection closed after {self.calls} statements')

    def execute(self, statement: Statement | str,
                parameters: list[dict[str, Any]] | None = None) -> sa.CursorResult:
        """Execute a statement and return the SQLAlchemy result.

        A list of parameter dicts runs the statement once per dict
        (executemany).
        """
        if isinstance(statement, str):
            statement = Statement(statement)
        clause = statement.to_clause()
        self.calls += 1
        if parameters is not None:
            return self.sa_connection.execute(clause, parameters)
        return self.sa_connection.execute(clause)


def connect(target: 'DatabaseOptions | dict[str, Any] | str | sa.URL',
            **kw: Any) -> ConnectionWrapper:
    """Connect to a database using SQLAlchemy for connection management

    Args:
        target: Can be:
                - DatabaseOptions object
                - Dictionary of options
                - SQLAlchemy URL or URL string
        **kw: Option overrides when target is a dictionary

    Returns
        ConnectionWrapper object for connecting to the database
    """
    if isinstance(target, DatabaseOptions):
        options = target
        engine = get_engine_for_options(options)
    elif isinstance(target, dict):
        options = DatabaseOptions.from_dict(target, **kw)
        engine = get_engine_for_options(options)
    elif isinstance(target, str | sa.URL):
        options = None
        engine = get_engine_for_url(target)
    else:
        raise TypeError(f'Cannot connect using {type(target).__name__}')

    sa_connection = engine.connect()
    return ConnectionWrapper(sa_connection, options)
