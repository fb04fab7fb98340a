"""
Best-effort description of a live connection for error messages.
"""
import logging
from functools import cached_property
from typing import Any

from sqlbridge.strategy import get_db_strategy

logger = logging.getLogger(__name__)

UNKNOWN = 'Unknown'


class DiagnosticContext:
    """Server, database and principal of a connection, each resolved on
    first access.

    Lookups that fail for any reason resolve to ``'Unknown'``; nothing is
    raised. Without a connection every value is ``'Unknown'``.
    """

    def __init__(self, connection: Any | None = None) -> None:
        self.connection = connection

    def _resolve(self, what: str) -> str:
        if self.connection is None:
            return UNKNOWN
        try:
            strategy = get_db_strategy(self.connection)
            value = getattr(strategy, what)(self.connection)
        except Exception as e:
            logger.debug(f'Could not resolve {what} for diagnostics: {e}')
            return UNKNOWN
        if value is None or value == '':
            return UNKNOWN
        return str(value)

    @cached_property
    def server(self) -> str:
        return self._resolve('server_name')

    @cached_property
    def database(self) -> str:
        return self._resolve('database_name')

    @cached_property
    def principal(self) -> str:
        return self._resolve('principal')
