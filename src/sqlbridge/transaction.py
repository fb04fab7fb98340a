"""
Transaction handling for database operations.
"""
import logging
import threading
from typing import Any

import sqlalchemy as sa

from sqlbridge.params import Statement

logger = logging.getLogger(__name__)


_local = threading.local()


class Transaction:
    """Context manager for running multiple commands in a transaction.

    Commits once on a clean exit and rolls back on any exception before it
    propagates. Transaction state is tracked in thread-local storage; nested
    transactions on the same connection within a thread are not supported.

    Examples
        with Transaction(cn) as tx:
            tx.execute('delete from ...')
            tx.executemany(sa.insert(table), rows)
    """

    def __init__(self, cn: Any) -> None:
        self.connection = cn
        self.sa_connection = cn.sa_connection
        self._sa_transaction = None

        if not hasattr(_local, 'active_transactions'):
            _local.active_transactions = {}

        if id(cn) in _local.active_transactions:
            raise RuntimeError('Nested transactions are not supported')

    def __enter__(self):
        _local.active_transactions[id(self.connection)] = True
        if self.sa_connection.in_transaction():
            # autobegun by an earlier statement on this connection
            self.sa_connection.commit()
        self._sa_transaction = self.sa_connection.begin()
        self.connection.in_transaction = True
        logger.debug(f'Started transaction for connection {id(self.connection)}')
        return self

    def __exit__(self, exc_type: type | None, value: Exception | None, traceback: Any | None) -> None:
        try:
            if exc_type is not None:
                self._sa_transaction.rollback()
                logger.warning('Rolling back the current transaction')
            else:
                self._sa_transaction.commit()
                logger.debug(f'Committed transaction for connection {id(self.connection)}')
        finally:
            _local.active_transactions.pop(id(self.connection), None)
            self.connection.in_transaction = False
            logger.debug(f'Transaction cleanup complete for connection {id(self.connection)}')

    def execute(self, statement: Statement | str) -> int:
        """Execute SQL within transaction context and return the row count"""
        return self.connection.execute(statement).rowcount

    def executemany(self, clause: sa.Executable, rows: list[dict[str, Any]]) -> int:
        """Execute a clause once per parameter dict and return the row count"""
        self.connection.calls += 1
        result = self.sa_connection.execute(clause, rows)
        return result.rowcount if result.rowcount >= 0 else len(rows)
