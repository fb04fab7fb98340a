import os
import sys
from dataclasses import dataclass, fields
from typing import Any, Self

from sqlbridge.strategy import get_available_dialects, get_strategy_class
from sqlbridge.strategy import is_supported_dialect

__all__ = ['DatabaseOptions']


def _scriptname() -> str | None:
    """Name of the running script, without extension."""
    argv0 = sys.argv[0] if sys.argv else ''
    if not argv0 or argv0 == '-c':
        return None
    return os.path.splitext(os.path.basename(argv0))[0] or None


@dataclass
class DatabaseOptions:
    """Options

    supported driver names: `mssql`, `postgresql`, `sqlite`

    SQL Server options:
    - odbc_driver: ODBC driver name passed to pyodbc (default: ODBC Driver 18 for SQL Server)
    - trust_server_certificate: Skip server certificate validation (default: False)

    Connection pooling options:
    - use_pool: Whether to use connection pooling (default: False)
    - pool_max_connections: Maximum connections in pool (default: 5)
    - pool_max_idle_time: Maximum seconds a connection can be idle (default: 300)
    - pool_wait_timeout: Maximum seconds to wait for a connection (default: 30)
    """
    drivername: str = 'mssql'
    hostname: str = None
    username: str = None
    password: str = None
    database: str = None
    port: int = 0
    timeout: int = 0
    appname: str = None
    odbc_driver: str = 'ODBC Driver 18 for SQL Server'
    trust_server_certificate: bool = False
    # Connection pooling parameters
    use_pool: bool = False
    pool_max_connections: int = 5
    pool_max_idle_time: int = 300
    pool_wait_timeout: int = 30

    def __post_init__(self):
        if not is_supported_dialect(self.drivername):
            available = get_available_dialects()
            raise ValueError(f'drivername must be one of: {available}')
        self.appname = self.appname or _scriptname() or 'python_console'
        strategy_cls = get_strategy_class(self.drivername)
        strategy_cls.validate_options(self)

    @classmethod
    def from_dict(cls, values: dict[str, Any], **kw: Any) -> Self:
        """Build options from a mapping, ignoring unknown keys.
        """
        known = {f.name for f in fields(cls)}
        merged = {**values, **kw}
        return cls(**{k: v for k, v in merged.items() if k in known})
