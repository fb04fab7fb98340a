"""
Translate driver errors into categorized, human-readable diagnostics.

A single failed statement can report several vendor errors (SQL Server sends
"Violation of PRIMARY KEY..." followed by "The statement has been
terminated."). Entries are scanned in order and the first one whose code is in
the category table decides the message; the rest are ignored.

The table is keyed by SQL Server error numbers, with PostgreSQL SQLSTATEs and
SQLite extended error names listed alongside for the same categories. Codes
not in the table produce a generic message that embeds the raw code, the raw
message, and the server/database/principal of the connection.

Classification never raises and never modifies the error or the connection.
"""
import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Self

from sqlbridge.diagnostics import UNKNOWN, DiagnosticContext
from sqlbridge.exceptions import ClassifiedError, ConcurrencyError
from sqlbridge.exceptions import ConnectivityError, ConstraintError, DataError
from sqlbridge.exceptions import PermissionDeniedError, SchemaError
from sqlbridge.exceptions import UnclassifiedError

logger = logging.getLogger(__name__)

__all__ = [
    'CATEGORIES',
    'ErrorCategory',
    'ErrorEvent',
    'VendorErrorEntry',
    'classify',
    'classify_error',
    'extract_name',
    'find_category',
]

# "[SQL Server]<message> (<number>)" segments of a pyodbc error message
_ODBC_SEGMENT_RE = re.compile(
    r'\[SQL Server\](?P<message>.*?) \((?P<number>-?\d+)\)(?= \(SQL\w+\)|;|$)',
    re.DOTALL)

_ODBC_TIMEOUT_STATES = {'HYT00', 'HYT01'}


@dataclass(frozen=True)
class VendorErrorEntry:
    code: int | str | None
    message: str


@dataclass(frozen=True)
class ErrorEvent:
    """Ordered vendor error entries reported by one failure."""
    entries: tuple[VendorErrorEntry, ...]
    message: str

    @property
    def code(self) -> int | str | None:
        return self.entries[0].code if self.entries else None

    @classmethod
    def from_exception(cls, exc: BaseException) -> Self:
        """Extract vendor entries from a driver or SQLAlchemy exception.
        """
        orig = getattr(exc, 'orig', None) or exc
        message = _exception_message(orig)
        entries = (_odbc_entries(orig)
                   or _numbered_entry(orig)
                   or _coded_entry(orig, message)
                   or [VendorErrorEntry(None, message)])
        return cls(tuple(entries), message)


def _exception_message(exc: BaseException) -> str:
    args = getattr(exc, 'args', ())
    if len(args) >= 2 and isinstance(args[1], bytes | str):
        return _text(args[1])
    return str(exc)


def _text(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode('utf-8', errors='replace')
    return str(value)


def _odbc_entries(exc: BaseException) -> list[VendorErrorEntry]:
    """pyodbc: args are (sqlstate, message)"""
    if not type(exc).__module__.startswith('pyodbc'):
        return []
    args = exc.args
    sqlstate = str(args[0]) if args else ''
    message = _text(args[1]) if len(args) > 1 else str(exc)

    entries = [VendorErrorEntry(int(m.group('number')), m.group('message').strip())
               for m in _ODBC_SEGMENT_RE.finditer(message)]
    if entries:
        return entries
    if sqlstate in _ODBC_TIMEOUT_STATES:
        return [VendorErrorEntry(-2, message)]
    if sqlstate.startswith('08'):
        return [VendorErrorEntry(-1, message)]
    return [VendorErrorEntry(sqlstate or None, message)]


def _numbered_entry(exc: BaseException) -> list[VendorErrorEntry]:
    """pymssql and similar: args are (number, message)"""
    args = getattr(exc, 'args', ())
    if args and isinstance(args[0], int) and not isinstance(args[0], bool):
        message = _text(args[1]) if len(args) > 1 else str(exc)
        return [VendorErrorEntry(args[0], message)]
    return []


def _coded_entry(exc: BaseException, message: str) -> list[VendorErrorEntry]:
    """psycopg sqlstate, psycopg2 pgcode, sqlite3 extended error name"""
    for attr in ('sqlstate', 'pgcode', 'sqlite_errorname'):
        code = getattr(exc, attr, None)
        if code:
            return [VendorErrorEntry(code, message)]
    return []


def extract_name(message: str | None) -> str:
    """Text between the first and second single quote, else 'Unknown'.

    >>> extract_name("Invalid object name 'dbo.Users'.")
    'dbo.Users'
    >>> extract_name('bad request')
    'Unknown'
    """
    parts = (message or '').split("'")
    if len(parts) >= 3:
        return parts[1]
    return UNKNOWN


@dataclass(frozen=True)
class ErrorCategory:
    """A recognized failure: the codes that signal it, the exception raised
    for it, and its message template.

    Templates may reference {name}, {message}, {principal}, {server} and
    {database}; only referenced values are resolved.
    """
    name: str
    codes: frozenset
    error: type[ClassifiedError]
    template: str


def _category(name, codes, error, template) -> ErrorCategory:
    return ErrorCategory(name, frozenset(codes), error, template)


_DETAILS = '\n\nTechnical Details:\n{message}'

CATEGORIES: tuple[ErrorCategory, ...] = (
    _category('permission-denied-on-object', {229, '42501'}, PermissionDeniedError,
              "Database Permission Error:\n\n"
              "The user '{principal}' does not have permission on the object '{name}'.\n\n"
              'Please contact your database administrator to grant the necessary permissions.'
              + _DETAILS),
    _category('permission-denied-on-column', {230}, PermissionDeniedError,
              "Database Permission Error:\n\n"
              "The user '{principal}' does not have permission to access one or more columns."
              + _DETAILS),
    _category('permission-denied-on-database', {262}, PermissionDeniedError,
              "Database Permission Error:\n\n"
              "The user '{principal}' does not have permission in the database '{database}'."
              + _DETAILS),
    _category('permission-denied-on-action', {297, 'SQLITE_AUTH'}, PermissionDeniedError,
              "Database Permission Error:\n\n"
              "The user '{principal}' does not have permission to perform this action."
              + _DETAILS),
    _category('object-not-found', {208, '42P01'}, SchemaError,
              'Database Schema Error:\n\n'
              "The object '{name}' does not exist in the database.\n\n"
              'Please ensure the database schema has been created.'
              + _DETAILS),
    _category('column-not-found', {207, '42703'}, SchemaError,
              'Database Schema Error:\n\n'
              "Invalid column name '{name}'.\n\n"
              'Please verify the column exists in the table.'
              + _DETAILS),
    _category('column-count-mismatch', {213}, SchemaError,
              'Database Schema Error:\n\n'
              "Column name or number of supplied values doesn't match the table definition."
              + _DETAILS),
    _category('login-failed', {18456, '28P01', '28000'}, ConnectivityError,
              'Database Authentication Error:\n\n'
              "Login failed for user '{principal}'.\n\n"
              'Please verify the username and password in the connection settings.'
              + _DETAILS),
    _category('cannot-open-database', {4060, '3D000', 'SQLITE_CANTOPEN'}, ConnectivityError,
              'Database Connection Error:\n\n'
              "Cannot open the database '{database}'.\n\n"
              'Please verify the database name and that you have access.'
              + _DETAILS),
    _category('connection-broken-or-timeout', {-1, -2, '08003', '08006'}, ConnectivityError,
              'Database Connection Error:\n\n'
              'Unable to reach the database server or the connection was lost.\n\n'
              'Please check:\n'
              '  - the database server is running\n'
              '  - the server name is correct: {server}\n'
              '  - network connectivity and firewall settings'
              + _DETAILS),
    _category('unique-violation', {2627, '23505', 'SQLITE_CONSTRAINT_UNIQUE'}, ConstraintError,
              'Database Constraint Error:\n\n'
              "A record with this value already exists (constraint '{name}')."
              + _DETAILS),
    _category('duplicate-key', {2601, 'SQLITE_CONSTRAINT_PRIMARYKEY'}, ConstraintError,
              'Database Constraint Error:\n\n'
              "A record with this key already exists in '{name}'."
              + _DETAILS),
    _category('foreign-key-violation', {547, '23503', 'SQLITE_CONSTRAINT_FOREIGNKEY'}, ConstraintError,
              'Database Constraint Error:\n\n'
              'The change conflicts with a reference between records: '
              'the referenced record is missing or other records still refer to this one.'
              + _DETAILS),
    _category('check-violation', {'23514', 'SQLITE_CONSTRAINT_CHECK'}, ConstraintError,
              'Database Constraint Error:\n\n'
              'A value does not satisfy a check constraint on the table.'
              + _DETAILS),
    _category('null-not-allowed', {515, '23502', 'SQLITE_CONSTRAINT_NOTNULL'}, ConstraintError,
              'Database Constraint Error:\n\n'
              "Cannot insert NULL into the required field '{name}'."
              + _DETAILS),
    _category('string-truncated', {8152, 2628, '22001', 'SQLITE_TOOBIG'}, DataError,
              'Database Data Error:\n\n'
              'String or binary data would be truncated.\n\n'
              'One or more values are too long for the database field.'
              + _DETAILS),
    _category('type-conversion-failed', {245, 8114, '22P02', 'SQLITE_MISMATCH'}, DataError,
              'Database Data Type Error:\n\n'
              'Error converting data to the required type.\n\n'
              'Please check that all values are in the correct format.'
              + _DETAILS),
    _category('routine-not-found', {2812, '42883'}, SchemaError,
              'Database Schema Error:\n\n'
              "Could not find stored procedure '{name}'."
              + _DETAILS),
    _category('network-error', {53, 233, '08001'}, ConnectivityError,
              'Database Network Error:\n\n'
              'Unable to connect to the database server.\n\n'
              'Please check:\n'
              '  - the database server is running\n'
              '  - server name: {server}\n'
              '  - network connectivity\n'
              '  - the server accepts TCP/IP connections'
              + _DETAILS),
    _category('deadlock-victim', {1205, '40P01'}, ConcurrencyError,
              'Database Deadlock Error:\n\n'
              'The operation was chosen as a deadlock victim.\n\n'
              'Please try the operation again.'
              + _DETAILS),
    _category('lock-timeout', {1222, '55P03', 'SQLITE_BUSY', 'SQLITE_LOCKED'}, ConcurrencyError,
              'Database Timeout Error:\n\n'
              'Lock request timeout exceeded.\n\n'
              'The database is currently busy. Please try again.'
              + _DETAILS),
)

FALLBACK_TEMPLATE = (
    'Database Error:\n\n'
    'An unexpected database error occurred.\n\n'
    'Error Number: {code}\n'
    'Error Message: {message}\n\n'
    'Server: {server}\n'
    'Database: {database}\n'
    'User: {principal}'
)

_CODE_INDEX: dict[Any, ErrorCategory] = {}
for _cat in CATEGORIES:
    for _code in _cat.codes:
        _CODE_INDEX.setdefault(_code, _cat)


class _TemplateFields(Mapping):
    """Template values resolved on lookup, so a template that never
    mentions the principal never queries for it."""

    def __init__(self, entry: VendorErrorEntry, message: str,
                 context: DiagnosticContext) -> None:
        self._values = {
            'name': lambda: extract_name(entry.message),
            'message': lambda: message,
            'code': lambda: UNKNOWN if entry.code is None else str(entry.code),
            'server': lambda: context.server,
            'database': lambda: context.database,
            'principal': lambda: context.principal,
        }

    def __getitem__(self, key: str) -> str:
        return self._values[key]()

    def __iter__(self):
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)


def find_category(event: ErrorEvent) -> tuple[ErrorCategory | None, VendorErrorEntry | None]:
    """First entry whose code is recognized, with its category.
    """
    for entry in event.entries:
        category = _CODE_INDEX.get(entry.code)
        if category is not None:
            return category, entry
    return None, None


def _event(error: 'ErrorEvent | BaseException') -> ErrorEvent:
    if isinstance(error, ErrorEvent):
        return error
    return ErrorEvent.from_exception(error)


def _render(event: ErrorEvent, connection: Any | None) -> tuple[str, ErrorCategory | None, Any]:
    context = DiagnosticContext(connection)
    category, entry = find_category(event)
    if category is not None:
        fields = _TemplateFields(entry, entry.message, context)
        return category.template.format_map(fields), category, entry.code

    first = event.entries[0] if event.entries else VendorErrorEntry(None, event.message)
    fields = _TemplateFields(first, event.message, context)
    return FALLBACK_TEMPLATE.format_map(fields), None, first.code


def classify(error: 'ErrorEvent | BaseException', connection: Any | None = None) -> str:
    """Human-readable, categorized description of a database failure.

    Never raises and always returns non-empty text.
    """
    try:
        text, category, code = _render(_event(error), connection)
        logger.debug(f'Classified vendor error {code} as {category.name if category else "unclassified"}')
        return text
    except Exception as e:
        logger.debug(f'Error classification failed: {e}')
        return f'Database Error:\n\nAn unexpected database error occurred.\n\n{error!s}'


def classify_error(error: 'ErrorEvent | BaseException',
                   connection: Any | None = None) -> ClassifiedError:
    """Categorized exception for a database failure.

    The caller raises it, chained to the driver error:

        except VendorError as e:
            raise classify_error(e, cn) from e
    """
    try:
        text, category, code = _render(_event(error), connection)
    except Exception as e:
        logger.debug(f'Error classification failed: {e}')
        return UnclassifiedError(classify(error, connection), category='unclassified')
    if category is None:
        return UnclassifiedError(text, code=code, category='unclassified')
    return category.error(text, code=code, category=category.name)
