"""
SQL Server-specific strategy implementation.

This module implements the DatabaseStrategy interface with SQL Server-specific operations.
It handles SQL Server's unique features such as:
- Server, database and login lookup through system functions
- pyodbc fast_executemany for batched transfers
- Query timeouts through the pyodbc connection attribute
- Disabling triggers and check constraints for the length of a transaction
- Proper quoting of identifiers with square brackets
"""
import logging
from contextlib import contextmanager

from sqlbridge.strategy.base import DatabaseStrategy, register_strategy

logger = logging.getLogger(__name__)


@register_strategy('mssql')
class SQLServerStrategy(DatabaseStrategy):
    """SQL Server-specific operations"""

    server_name_sql = 'SELECT @@SERVERNAME'
    database_name_sql = 'SELECT DB_NAME()'
    principal_sql = 'SELECT SUSER_SNAME()'

    enabled_triggers_sql = (
        'SELECT name FROM sys.triggers '
        'WHERE parent_id = OBJECT_ID(?) AND is_disabled = 0')
    # NOCHECK covers foreign keys as well as check constraints
    enabled_constraints_sql = (
        'SELECT name FROM sys.check_constraints '
        'WHERE parent_object_id = OBJECT_ID(?) AND is_disabled = 0 '
        'UNION ALL '
        'SELECT name FROM sys.foreign_keys '
        'WHERE parent_object_id = OBJECT_ID(?) AND is_disabled = 0')

    @classmethod
    def validate_options(cls, options):
        if not options.hostname:
            raise ValueError('hostname is required for SQL Server connections')
        if not options.odbc_driver:
            raise ValueError('odbc_driver is required for SQL Server connections')

    def engine_kwargs(self, options):
        """Batch parameter arrays in a single round trip"""
        return {'fast_executemany': True}

    def quote_identifier(self, identifier):
        """Quote an identifier for SQL Server"""
        return f"[{identifier.replace(']', ']]')}]"

    def set_transfer_timeout(self, cn, seconds):
        """pyodbc applies Connection.timeout to every subsequent statement"""
        raw_conn = cn.dbapi_connection
        if hasattr(raw_conn, 'driver_connection'):
            raw_conn = raw_conn.driver_connection
        try:
            raw_conn.timeout = seconds
        except AttributeError:
            logger.debug(f'Driver connection {type(raw_conn).__name__} has no query timeout')

    @contextmanager
    def constraint_mode(self, cn, table, enforce):
        """Disable enabled triggers and constraints inside the transaction.

        Only objects enabled before the transfer are touched, so anything
        already disabled stays disabled. Both statements are transactional:
        a rollback restores the table, so re-enabling only happens on the
        success path. Constraints re-enabled without WITH CHECK stay
        untrusted, which matches a bulk copy that skipped them.
        """
        if enforce:
            yield
            return

        quoted = self.quote_table(table)
        triggers = ', '.join(self.quote_identifier(name) for name in
                             self._names(cn, self.enabled_triggers_sql, (quoted,)))
        constraints = ', '.join(self.quote_identifier(name) for name in
                                self._names(cn, self.enabled_constraints_sql, (quoted, quoted)))
        if constraints:
            self._execute_raw(cn, f'ALTER TABLE {quoted} NOCHECK CONSTRAINT {constraints}')
        if triggers:
            self._execute_raw(cn, f'DISABLE TRIGGER {triggers} ON {quoted}')
        logger.debug(f'Disabled triggers [{triggers}] and constraints [{constraints}] on {table}')
        yield
        if triggers:
            self._execute_raw(cn, f'ENABLE TRIGGER {triggers} ON {quoted}')
        if constraints:
            self._execute_raw(cn, f'ALTER TABLE {quoted} CHECK CONSTRAINT {constraints}')
        logger.debug(f'Re-enabled triggers and constraints on {table}')
