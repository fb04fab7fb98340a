"""
Database-specific exception classes.
"""
import sqlite3

import psycopg
import sqlalchemy.exc

# Driver modules whose exceptions are recognized without importing them
VENDOR_MODULES = ('pyodbc', 'pymssql', '_mssql')


class DatabaseError(Exception):
    """Base class for all sqlbridge errors.
    """


class ClassifiedError(DatabaseError):
    """Vendor failure translated into a human-readable diagnostic.

    Carries the vendor code and category name that produced the message.
    """

    def __init__(self, message: str, code: int | str | None = None,
                 category: str | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.category = category


class ConnectivityError(ClassifiedError):
    """Error opening, authenticating or keeping a connection.
    """


class PermissionDeniedError(ClassifiedError):
    """Principal lacks permission on an object, column, database or action.
    """


class SchemaError(ClassifiedError):
    """Missing table, column or routine, or a column count mismatch.
    """


class ConstraintError(ClassifiedError):
    """Uniqueness, referential or not-null violation.
    """


class ConcurrencyError(ClassifiedError):
    """Deadlock victim or lock timeout. Never retried by this package.
    """


class DataError(ClassifiedError):
    """Value truncation or type conversion failure.
    """


class UnclassifiedError(ClassifiedError):
    """Vendor failure with no recognized code.
    """


class TypeConversionError(DataError):
    """Error converting a source value to a target attribute type.
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message, category='type-conversion-failed')
        self.field = field


class ValidationError(DatabaseError):
    """Row rejected during bulk pre-flight validation.

    No database work has happened when this is raised.
    """

    def __init__(self, row_index: int, message: str) -> None:
        super().__init__(f'Validation failed at row {row_index}: {message}')
        self.row_index = row_index
        self.message = message


class DataReadError(DatabaseError):
    """Non-vendor failure while opening a connection or reading rows.
    """


VendorError = (
    sqlalchemy.exc.DBAPIError,
    psycopg.Error,
    sqlite3.Error,
    )


def is_vendor_error(exc: BaseException) -> bool:
    """Check whether an exception originated in the database driver.

    pyodbc and pymssql are matched by module name so neither needs to be
    installed for the check.
    """
    if isinstance(exc, VendorError):
        return True
    module = type(exc).__module__ or ''
    return module.split('.')[0] in VENDOR_MODULES
