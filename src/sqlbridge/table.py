"""
Typed objects to pandas DataFrames.
"""
import logging
from collections.abc import Iterable
from typing import Any

import pandas as pd

from sqlbridge.schema import TypeSchema, get_schema

logger = logging.getLogger(__name__)

__all__ = ['to_table', 'empty_table']

# pandas nullable dtypes hold pd.NA without casting the column to float/object
_NULLABLE_DTYPES: dict[type, str] = {
    bool: 'boolean',
    int: 'Int64',
    float: 'Float64',
    str: 'string',
}


def _dtype(tp: Any) -> str:
    if isinstance(tp, type):
        for py_type, dtype in _NULLABLE_DTYPES.items():
            # exact match, enum subclasses stay in object columns
            if tp is py_type:
                return dtype
    return 'object'


def _column(values: list[Any], tp: Any) -> Any:
    dtype = _dtype(tp)
    try:
        return pd.array(values, dtype=dtype)
    except (TypeError, ValueError) as e:
        logger.debug(f'Values do not fit {dtype}, keeping object column: {e}')
        return pd.array(values, dtype='object')


def _frame(schema: TypeSchema, rows: list[list[Any]]) -> pd.DataFrame:
    columns = schema.names
    data = {
        name: _column([row[i] for row in rows], col.type)
        for i, (name, col) in enumerate(zip(columns, schema.columns))
    }
    df = pd.DataFrame(data, columns=columns, index=pd.RangeIndex(len(rows)))
    df.attrs['name'] = schema.type.__name__
    df.attrs['column_types'] = schema.column_types
    return df


def empty_table(item_type: type) -> pd.DataFrame:
    """Zero-row DataFrame carrying every column of ``item_type``.
    """
    return _frame(get_schema(item_type), [])


def _null_marker(value: Any) -> Any:
    return pd.NA if value is None else value


def to_table(items: Iterable[Any] | None,
             item_type: type | None = None) -> pd.DataFrame | None:
    """Build a DataFrame with one row per item and one column per attribute.

    Returns None when ``items`` is None, which is distinct from an empty
    DataFrame. Column names and order come from the cached schema of
    ``item_type`` (or the type of the first item), so every call with the
    same type yields the same columns. ``attrs['column_types']`` maps each
    column to its Optional-unwrapped Python type.

    Raises ValueError for an empty sequence without ``item_type``.
    """
    if items is None:
        return None

    items = list(items)
    if item_type is None:
        if not items:
            raise ValueError('item_type is required to build a table from an empty sequence')
        item_type = type(items[0])

    schema = get_schema(item_type)
    rows = [[_null_marker(v) for v in schema.values(item)] for item in items]
    logger.debug(f'Marshalled {len(rows)} {item_type.__name__} rows into {len(schema)} columns')
    return _frame(schema, rows)
