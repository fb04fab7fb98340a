"""
PostgreSQL-specific strategy implementation.
"""
import logging
from contextlib import contextmanager

from sqlbridge.strategy.base import DatabaseStrategy, register_strategy

logger = logging.getLogger(__name__)


@register_strategy('postgresql')
class PostgresStrategy(DatabaseStrategy):
    """PostgreSQL-specific operations"""

    server_name_sql = 'SELECT coalesce(host(inet_server_addr()), current_setting(\'cluster_name\'))'
    database_name_sql = 'SELECT current_database()'
    principal_sql = 'SELECT current_user'

    enabled_triggers_sql = (
        'SELECT tgname FROM pg_trigger '
        'WHERE tgrelid = %(table)s::regclass AND NOT tgisinternal AND tgenabled <> \'D\' '
        'ORDER BY tgname')

    @classmethod
    def validate_options(cls, options):
        if not options.hostname:
            raise ValueError('hostname is required for PostgreSQL connections')

    def quote_identifier(self, identifier):
        """Quote an identifier for PostgreSQL"""
        return '"' + identifier.replace('"', '""') + '"'

    def set_transfer_timeout(self, cn, seconds):
        """SET LOCAL lasts until the transaction ends"""
        self._execute_raw(cn, f"SET LOCAL statement_timeout = '{int(seconds)}s'")

    @contextmanager
    def constraint_mode(self, cn, table, enforce):
        """Disable the enabled user triggers for the transaction.

        Triggers already disabled are left as they are. CHECK constraints
        cannot be suspended in PostgreSQL and stay enforced.
        """
        if enforce:
            yield
            return

        quoted = self.quote_table(table)
        triggers = self._names(cn, self.enabled_triggers_sql, {'table': quoted})
        for name in triggers:
            self._execute_raw(cn, f'ALTER TABLE {quoted} DISABLE TRIGGER {self.quote_identifier(name)}')
        logger.debug(f'Disabled user triggers {triggers} on {table}')
        yield
        for name in triggers:
            self._execute_raw(cn, f'ALTER TABLE {quoted} ENABLE TRIGGER {self.quote_identifier(name)}')
        logger.debug(f'Re-enabled user triggers on {table}')
