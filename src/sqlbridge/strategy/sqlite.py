"""
SQLite-specific strategy implementation.
"""
import logging
from contextlib import contextmanager

from sqlbridge.strategy.base import DatabaseStrategy, register_strategy

logger = logging.getLogger(__name__)


@register_strategy('sqlite')
class SQLiteStrategy(DatabaseStrategy):
    """SQLite-specific operations"""

    database_name_sql = "SELECT file FROM pragma_database_list WHERE name = 'main'"

    @classmethod
    def validate_options(cls, options):
        if not options.database:
            raise ValueError('database is required for SQLite connections')

    def server_name(self, cn):
        """SQLite is embedded; there is no server"""
        return 'localhost'

    def quote_identifier(self, identifier):
        """Quote an identifier for SQLite"""
        return '"' + identifier.replace('"', '""') + '"'

    def set_transfer_timeout(self, cn, seconds):
        """sqlite3 only supports a busy timeout fixed at connect time"""
        logger.debug('SQLite has no statement timeout, ignoring transfer timeout')

    @contextmanager
    def constraint_mode(self, cn, table, enforce):
        """Ignore CHECK constraints for the transfer.

        The pragma is connection state rather than transactional state, so it
        is reset on every exit path. Triggers cannot be disabled in SQLite.
        """
        if enforce:
            yield
            return

        self._execute_raw(cn, 'PRAGMA ignore_check_constraints = ON')
        logger.debug(f'Ignoring check constraints while loading {table}')
        try:
            yield
        finally:
            self._execute_raw(cn, 'PRAGMA ignore_check_constraints = OFF')
