"""
Transactional, batched bulk loading of DataFrames into a destination table.

A load either lands every row durably or leaves the destination exactly as it
was: rows are validated before any connection is opened, then transferred in
batches inside one transaction that is committed once at the end.
"""
import asyncio
import logging
from collections.abc import Callable, Collection
from dataclasses import dataclass
from typing import Any

import pandas as pd
import sqlalchemy as sa
from more_itertools import chunked

from sqlbridge.classifier import classify_error
from sqlbridge.connection import connect
from sqlbridge.exceptions import ValidationError, is_vendor_error
from sqlbridge.strategy import get_db_strategy
from sqlbridge.transaction import Transaction
from sqlbridge.types import TypeConverter
from sqlbridge.utils import split_table_name

logger = logging.getLogger(__name__)

__all__ = [
    'BulkInsertRequest',
    'TRANSFER_TIMEOUT',
    'column_mapping',
    'load_bulk',
    'load_bulk_async',
]

TRANSFER_TIMEOUT = 60

Validator = Callable[[dict[str, Any]], str | None]


@dataclass
class BulkInsertRequest:
    """One bulk load.

    source: rows to load; its columns are the destination columns
    destination: table name, optionally schema-qualified
    excluded_columns: source columns never sent (matched ignoring case)
    validator: called with each row before any database work; a non-empty
        return value rejects the whole load
    batch_size: rows per executemany round trip
    enforce_constraints: honor destination triggers and check constraints
        during the transfer; off by default for speed
    """
    source: pd.DataFrame
    destination: str
    excluded_columns: Collection[str] = frozenset()
    validator: Validator | None = None
    batch_size: int = 1000
    enforce_constraints: bool = False

    def __post_init__(self):
        if self.source is None:
            raise ValueError('source table is required')
        if not self.destination:
            raise ValueError('destination table is required')
        if isinstance(self.batch_size, bool) or not isinstance(self.batch_size, int) \
                or self.batch_size <= 0:
            raise ValueError(f'batch_size must be a positive integer, got {self.batch_size!r}')


def column_mapping(columns: Collection[Any], excluded: Collection[str]) -> list[str]:
    """Source columns minus exclusions, in source order.

    Columns map to destination columns of the same name; there is no
    renaming.
    """
    excluded_lower = {c.lower() for c in excluded}
    mapped = []
    for col in map(str, columns):
        if col.lower() in excluded_lower:
            logger.debug(f'Excluding column {col} from bulk load')
            continue
        mapped.append(col)
    if not mapped:
        raise ValueError('No columns left to load after exclusions')
    return mapped


def _validate(rows: list[dict[str, Any]], validator: Validator | None) -> None:
    if validator is None:
        return
    for i, row in enumerate(rows):
        message = validator(row)
        if message:
            raise ValidationError(i, message)


def _insert_clause(destination: str, columns: list[str]) -> sa.Insert:
    schema, name = split_table_name(destination)
    table = sa.table(name, *[sa.column(c) for c in columns], schema=schema)
    return sa.insert(table)


def _transfer(cn: Any, request: BulkInsertRequest, columns: list[str],
              rows: list[dict[str, Any]]) -> int:
    strategy = get_db_strategy(cn)
    clause = _insert_clause(request.destination, columns)
    total = 0
    with Transaction(cn) as tx:
        strategy.set_transfer_timeout(cn, TRANSFER_TIMEOUT)
        with strategy.constraint_mode(cn, request.destination, request.enforce_constraints):
            for batch in chunked(rows, request.batch_size):
                params = [{c: row[c] for c in columns} for row in batch]
                total += tx.executemany(clause, params)
                logger.debug(f'Sent {total}/{len(rows)} rows to {request.destination}')
    return total


def load_bulk(target: Any, request: BulkInsertRequest) -> int:
    """Load ``request.source`` into ``request.destination``.

    Opens its own connection from ``target`` (anything `connect` accepts)
    and closes it on every exit path. Returns the number of rows loaded.

    Raises
        ValidationError: a row was rejected; nothing was sent
        ValueError: every column was excluded
        ClassifiedError: the database rejected the transfer; the transaction
            was rolled back and the driver error is chained
    """
    rows = [TypeConverter.convert_params(row)
            for row in request.source.to_dict(orient='records')]
    if not rows:
        logger.debug(f'No rows to load into {request.destination}')
        return 0

    _validate(rows, request.validator)
    columns = column_mapping(request.source.columns, request.excluded_columns)

    try:
        cn = connect(target)
    except Exception as exc:
        if is_vendor_error(exc):
            raise classify_error(exc) from exc
        raise

    with cn:
        try:
            total = _transfer(cn, request, columns, rows)
        except Exception as exc:
            if is_vendor_error(exc):
                raise classify_error(exc, cn) from exc
            raise

    logger.debug(f'Loaded {total} rows into {request.destination}')
    return total


async def load_bulk_async(target: Any, request: BulkInsertRequest) -> int:
    """`load_bulk` on a worker thread."""
    return await asyncio.to_thread(load_bulk, target, request)
