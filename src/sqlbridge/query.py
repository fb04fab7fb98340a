"""
Query helpers that open a connection, run one statement and map the result.

Every helper acquires its own connection and releases it before returning.
Statements use ``@name`` placeholders bound from ``parameters``.
"""
import asyncio
import logging
from typing import Any, TypeVar

import pandas as pd

from sqlbridge.classifier import classify_error
from sqlbridge.connection import ConnectionWrapper, connect
from sqlbridge.exceptions import DatabaseError, DataReadError, is_vendor_error
from sqlbridge.mapping import map_strict
from sqlbridge.params import Statement, configure
from sqlbridge.record import Record
from sqlbridge.table import empty_table, to_table
from sqlbridge.transaction import Transaction

logger = logging.getLogger(__name__)

T = TypeVar('T')

__all__ = [
    'execute_sql',
    'execute_sql_async',
    'get_record',
    'get_record_async',
    'get_records',
    'get_records_async',
    'load_table',
    'load_table_async',
]

ROWCOUNT_FAILED = -1


def _statement(sql: str, parameters: dict[str, Any] | None) -> Statement:
    return configure(Statement(sql), parameters)


def _open(target: Any) -> ConnectionWrapper:
    try:
        return connect(target)
    except Exception as exc:
        if is_vendor_error(exc):
            raise classify_error(exc) from exc
        raise DataReadError(f'Unable to open connection: {exc}') from exc


def _read(target: Any, sql: str, record_type: type[T],
          parameters: dict[str, Any] | None, limit: int | None = None) -> list[T]:
    statement = _statement(sql, parameters)
    with _open(target) as cn:
        try:
            result = cn.execute(statement)
            records = []
            for record in Record.from_result(result):
                records.append(map_strict(record, record_type))
                if limit is not None and len(records) >= limit:
                    break
            result.close()
        except DatabaseError:
            raise
        except Exception as exc:
            if is_vendor_error(exc):
                raise classify_error(exc, cn) from exc
            raise DataReadError(f'Unable to read {record_type.__name__} rows: {exc}') from exc
    logger.debug(f'Read {len(records)} {record_type.__name__} rows')
    return records


def get_records(target: Any, sql: str, record_type: type[T],
                parameters: dict[str, Any] | None = None) -> list[T]:
    """Map every result row to a new ``record_type`` instance.

    Mapping is strict: a value that cannot be converted raises
    TypeConversionError.
    """
    return _read(target, sql, record_type, parameters)


def get_record(target: Any, sql: str, record_type: type[T],
               parameters: dict[str, Any] | None = None) -> T | None:
    """Map the first result row, or return None when there are no rows.
    """
    records = _read(target, sql, record_type, parameters, limit=1)
    return records[0] if records else None


def execute_sql(target: Any, sql: str, parameters: dict[str, Any] | None = None) -> int:
    """Execute a statement in its own transaction and return the row count.

    Database failures, including failures to connect, raise a classified
    error. Any other failure is logged and reported as ``-1``.
    """
    statement = _statement(sql, parameters)
    try:
        cn = connect(target)
    except Exception as exc:
        if is_vendor_error(exc):
            raise classify_error(exc) from exc
        logger.warning(f'Unable to open connection, returning {ROWCOUNT_FAILED}: {exc}')
        return ROWCOUNT_FAILED

    with cn:
        try:
            with Transaction(cn) as tx:
                return tx.execute(statement)
        except Exception as exc:
            if is_vendor_error(exc):
                raise classify_error(exc, cn) from exc
            logger.warning(f'Statement failed, returning {ROWCOUNT_FAILED}: {exc}')
            return ROWCOUNT_FAILED


def load_table(target: Any, sql: str, record_type: type,
               parameters: dict[str, Any] | None = None) -> pd.DataFrame:
    """Query ``record_type`` rows into a DataFrame.

    Never raises: on any failure the error is logged and an empty DataFrame
    with every ``record_type`` column is returned.
    """
    try:
        records = get_records(target, sql, record_type, parameters)
    except Exception as exc:
        logger.warning(f'Unable to load {record_type.__name__} table: {exc}')
        return empty_table(record_type)
    return to_table(records, record_type)


async def get_records_async(target: Any, sql: str, record_type: type[T],
                            parameters: dict[str, Any] | None = None) -> list[T]:
    return await asyncio.to_thread(get_records, target, sql, record_type, parameters)


async def get_record_async(target: Any, sql: str, record_type: type[T],
                           parameters: dict[str, Any] | None = None) -> T | None:
    return await asyncio.to_thread(get_record, target, sql, record_type, parameters)


async def execute_sql_async(target: Any, sql: str,
                            parameters: dict[str, Any] | None = None) -> int:
    return await asyncio.to_thread(execute_sql, target, sql, parameters)


async def load_table_async(target: Any, sql: str, record_type: type,
                           parameters: dict[str, Any] | None = None) -> pd.DataFrame:
    return await asyncio.to_thread(load_table, target, sql, record_type, parameters)
