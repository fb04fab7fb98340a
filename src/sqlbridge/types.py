"""
Consolidated type handling for mapping and loading.

This module provides:
- coerce: Convert a database value to a Python attribute type (Database -> Python)
- TypeConverter: Convert Python/NumPy/pandas values to driver-native values (Python -> Database)
- unwrap_optional, is_null: helpers shared by the mapper and the marshaller
"""
import datetime
import decimal
import enum
import logging
import math
import types
import typing
import uuid
from typing import Any

import dateutil.parser
import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

TRUE_STRINGS: set[str] = {'true', '1', 'yes'}
FALSE_STRINGS: set[str] = {'false', '0', 'no'}
NUMPY_FLOAT_TYPES = (np.floating,)
NUMPY_INT_TYPES = (np.integer, np.unsignedinteger)


def unwrap_optional(tp: Any) -> Any:
    """Return T for Optional[T] / T | None, otherwise tp unchanged.
    """
    origin = typing.get_origin(tp)
    if origin is typing.Union or origin is types.UnionType:
        args = [a for a in typing.get_args(tp) if a is not type(None)]
        if len(args) == 1:
            return args[0]
    return tp


def is_null(value: Any) -> bool:
    """True for None and scalar pandas/NumPy missing markers (NA, NaN, NaT)."""
    if value is None:
        return True
    if isinstance(value, str | bytes):
        return False
    try:
        return bool(pd.api.types.is_scalar(value) and pd.isna(value))
    except (TypeError, ValueError):
        return False


# Coercion - Database -> Python attribute types

def _to_enum(value: Any, target: type[enum.Enum]) -> enum.Enum:
    if isinstance(value, target):
        return value
    if isinstance(value, str):
        text = value.strip()
        if text in target.__members__:
            return target[text]
        try:
            return target(value)
        except ValueError:
            if text.lstrip('+-').isdigit():
                return target(int(text))
            raise
    if isinstance(value, float | decimal.Decimal) and value == int(value):
        value = int(value)
    return target(value)


def _to_uuid(value: Any) -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    if isinstance(value, bytes) and len(value) == 16:
        return uuid.UUID(bytes=value)
    text = str(value).strip()
    if not text:
        raise ValueError('empty value is not a valid identifier')
    return uuid.UUID(text)


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int | float | decimal.Decimal):
        return value != 0
    if isinstance(value, str):
        text = value.strip().lower()
        if text in TRUE_STRINGS:
            return True
        if text in FALSE_STRINGS:
            return False
    raise ValueError(f'cannot interpret {value!r} as bool')


def _to_int(value: Any) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float | decimal.Decimal):
        if not math.isfinite(value):
            raise ValueError(f'cannot convert {value!r} to int')
        return int(round(value))
    if isinstance(value, str):
        return int(value.strip())
    raise TypeError(f'cannot convert {type(value).__name__} to int')


def _to_float(value: Any) -> float:
    if isinstance(value, bool | int | float | decimal.Decimal):
        return float(value)
    if isinstance(value, str):
        return float(value.strip())
    raise TypeError(f'cannot convert {type(value).__name__} to float')


def _to_decimal(value: Any) -> decimal.Decimal:
    if isinstance(value, decimal.Decimal):
        return value
    if isinstance(value, bool):
        return decimal.Decimal(int(value))
    if isinstance(value, int | float):
        return decimal.Decimal(str(value))
    if isinstance(value, str):
        try:
            return decimal.Decimal(value.strip())
        except decimal.InvalidOperation as e:
            raise ValueError(f'cannot convert {value!r} to Decimal') from e
    raise TypeError(f'cannot convert {type(value).__name__} to Decimal')


def _to_str(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bytes | bytearray | memoryview):
        return bytes(value).decode('utf-8')
    if isinstance(value, datetime.date | datetime.time):
        return value.isoformat()
    return str(value)


def _to_bytes(value: Any) -> bytes:
    if isinstance(value, bytes | bytearray | memoryview):
        return bytes(value)
    if isinstance(value, str):
        return value.encode('utf-8')
    raise TypeError(f'cannot convert {type(value).__name__} to bytes')


def _to_datetime(value: Any) -> datetime.datetime:
    if isinstance(value, datetime.datetime):
        return value
    if isinstance(value, datetime.date):
        return datetime.datetime.combine(value, datetime.time())
    if isinstance(value, str):
        return dateutil.parser.parse(value)
    raise TypeError(f'cannot convert {type(value).__name__} to datetime')


def _to_date(value: Any) -> datetime.date:
    # datetime is a date subclass
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    if isinstance(value, str):
        return dateutil.parser.parse(value).date()
    raise TypeError(f'cannot convert {type(value).__name__} to date')


def _to_time(value: Any) -> datetime.time:
    if isinstance(value, datetime.datetime):
        return value.time()
    if isinstance(value, datetime.time):
        return value
    if isinstance(value, str):
        return dateutil.parser.parse(value).time()
    raise TypeError(f'cannot convert {type(value).__name__} to time')


_COERCIONS: dict[type, typing.Callable[[Any], Any]] = {
    bool: _to_bool,
    int: _to_int,
    float: _to_float,
    decimal.Decimal: _to_decimal,
    str: _to_str,
    bytes: _to_bytes,
    datetime.datetime: _to_datetime,
    datetime.date: _to_date,
    datetime.time: _to_time,
}


def coerce(value: Any, target: Any) -> Any:
    """Convert a non-null database value to ``target``.

    Priority: enumerations, then UUIDs, then the general coercion table.
    Raises ValueError or TypeError when the value cannot be converted.
    """
    target = unwrap_optional(target)

    if target is Any or target is object or not isinstance(target, type):
        return value

    if issubclass(target, enum.Enum):
        return _to_enum(value, target)

    if issubclass(target, uuid.UUID):
        return _to_uuid(value)

    if isinstance(value, (*NUMPY_FLOAT_TYPES, *NUMPY_INT_TYPES)):
        value = value.item()

    converter = _COERCIONS.get(target)
    if converter is not None:
        return converter(value)

    if isinstance(value, target):
        return value
    return target(value)


# Type Converter - Python -> Database value conversion

def _convert_numpy_value(val: Any) -> float | int | datetime.datetime | None:
    """Convert NumPy value to Python type."""
    if isinstance(val, np.floating) and np.isnan(val):
        return None

    if isinstance(val, np.datetime64) and np.isnat(val):
        return None

    if isinstance(val, (np.floating, np.integer | np.unsignedinteger, np.bool_)):
        return val.item()

    if isinstance(val, np.datetime64):
        return pd.Timestamp(val).to_pydatetime()

    return val


class TypeConverter:
    """Universal type conversion for database parameters.

    Handles NumPy and pandas scalars, so DataFrame cells can be handed to
    the driver directly. Strings are never reinterpreted.
    """

    @staticmethod
    def convert_value(value: Any) -> Any:
        """Convert a single value to a database-compatible format."""
        if value is None:
            return None

        if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
            return None

        if isinstance(value, (*NUMPY_FLOAT_TYPES, *NUMPY_INT_TYPES, np.bool_, np.datetime64)):
            return _convert_numpy_value(value)

        if is_null(value):
            return None

        if isinstance(value, pd.Timestamp):
            return value.to_pydatetime()

        if isinstance(value, pd.Timedelta):
            return value.to_pytimedelta()

        return value

    @staticmethod
    def convert_params(params: Any) -> Any:
        """Convert a collection of parameters for database operations."""
        if params is None:
            return None

        if isinstance(params, dict):
            return {k: TypeConverter.convert_value(v) for k, v in params.items()}

        if isinstance(params, list | tuple):
            if params and all(isinstance(p, (list, tuple, dict)) for p in params):
                return type(params)(TypeConverter.convert_params(p) for p in params)
            return type(params)(TypeConverter.convert_value(v) for v in params)

        return TypeConverter.convert_value(params)
