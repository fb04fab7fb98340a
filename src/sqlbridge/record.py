"""
Source rows as ordered (name, value, is_null) fields.
"""
from collections.abc import Iterable, Iterator, Mapping, Sequence
from typing import Any, NamedTuple, Self

from sqlbridge.types import is_null


class Field(NamedTuple):
    name: str
    value: Any
    is_null: bool


class Record:
    """One source row at a point in time.

    Field order follows the source columns; duplicate names are kept.
    """

    __slots__ = ('_fields',)

    def __init__(self, fields: Iterable[Field]) -> None:
        self._fields = tuple(fields)

    @classmethod
    def from_pairs(cls, names: Sequence[str], values: Sequence[Any]) -> Self:
        """Build from positionally aligned column names and values."""
        if len(names) != len(values):
            raise ValueError(f'Expected {len(names)} values, got {len(values)}')
        return cls(Field(n, v, is_null(v)) for n, v in zip(names, values))

    @classmethod
    def from_mapping(cls, row: Mapping[str, Any]) -> Self:
        return cls.from_pairs(list(row.keys()), list(row.values()))

    @classmethod
    def from_cursor(cls, cursor: Any, row: Sequence[Any]) -> Self:
        """Build from a DB-API cursor row using ``cursor.description``."""
        names = [d[0] for d in cursor.description]
        return cls.from_pairs(names, row)

    @classmethod
    def from_result(cls, result: Any) -> Iterator[Self]:
        """Yield one record per row of a SQLAlchemy result."""
        names = list(result.keys())
        for row in result:
            yield cls.from_pairs(names, tuple(row))

    def __iter__(self) -> Iterator[Field]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __repr__(self) -> str:
        body = ', '.join(f'{f.name}={f.value!r}' for f in self._fields)
        return f'Record({body})'

    @property
    def names(self) -> list[str]:
        return [f.name for f in self._fields]
