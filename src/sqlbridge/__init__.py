"""
Data access utilities for PostgreSQL, SQLite, and SQL Server.

- Map result rows to typed objects (strict or lenient) and objects to parameters
- Marshal typed objects into pandas DataFrames
- Translate driver errors into categorized, human-readable diagnostics
- Load DataFrames into tables in batches inside one transaction
"""
__version__ = '0.1.0'

from sqlbridge.bulk import BulkInsertRequest, load_bulk, load_bulk_async
from sqlbridge.classifier import ErrorEvent, classify, classify_error
from sqlbridge.connection import ConnectionWrapper, connect
from sqlbridge.diagnostics import DiagnosticContext
from sqlbridge.exceptions import ClassifiedError, ConcurrencyError
from sqlbridge.exceptions import ConnectivityError, ConstraintError, DatabaseError
from sqlbridge.exceptions import DataError, DataReadError, PermissionDeniedError
from sqlbridge.exceptions import SchemaError, TypeConversionError
from sqlbridge.exceptions import UnclassifiedError, ValidationError
from sqlbridge.mapping import map_lenient, map_strict, to_parameters
from sqlbridge.options import DatabaseOptions
from sqlbridge.params import AnsiString, Statement, configure, to_ansi
from sqlbridge.query import execute_sql, execute_sql_async, get_record
from sqlbridge.query import get_record_async, get_records, get_records_async
from sqlbridge.query import load_table, load_table_async
from sqlbridge.record import Field, Record
from sqlbridge.schema import TypeSchema, clear_schema_cache, column
from sqlbridge.schema import display_name, get_schema
from sqlbridge.table import empty_table, to_table
from sqlbridge.transaction import Transaction as transaction

__all__ = [
    'connect',
    'ConnectionWrapper',
    'DatabaseOptions',
    'transaction',
    # mapping
    'Field',
    'Record',
    'TypeSchema',
    'column',
    'display_name',
    'get_schema',
    'clear_schema_cache',
    'map_strict',
    'map_lenient',
    'to_parameters',
    'to_table',
    'empty_table',
    # parameters
    'AnsiString',
    'Statement',
    'configure',
    'to_ansi',
    # errors
    'DiagnosticContext',
    'ErrorEvent',
    'classify',
    'classify_error',
    'DatabaseError',
    'ClassifiedError',
    'ConnectivityError',
    'PermissionDeniedError',
    'SchemaError',
    'ConstraintError',
    'ConcurrencyError',
    'DataError',
    'UnclassifiedError',
    'TypeConversionError',
    'ValidationError',
    'DataReadError',
    # bulk and query helpers
    'BulkInsertRequest',
    'load_bulk',
    'load_bulk_async',
    'get_records',
    'get_record',
    'execute_sql',
    'load_table',
    'get_records_async',
    'get_record_async',
    'execute_sql_async',
    'load_table_async',
]
