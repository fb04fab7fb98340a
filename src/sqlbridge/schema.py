"""
Per-class column schemas for typed objects.

Introspects the public attributes of a class (dataclass fields, properties and
plain annotations) and builds an ordered, immutable column descriptor list.
Schemas are memoized by class identity for the life of the process.
"""
import dataclasses
import logging
import operator
import threading
import typing
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any

import cachetools

from sqlbridge.types import unwrap_optional

logger = logging.getLogger(__name__)

__all__ = [
    'Attribute',
    'ColumnDescriptor',
    'TypeSchema',
    'class_attributes',
    'clear_schema_cache',
    'column',
    'display_name',
    'get_schema',
]

DISPLAY_NAME = 'display_name'

_schema_cache: dict[Any, 'TypeSchema'] = {}
_schema_lock = threading.RLock()


def column(*, display_name: str | None = None, **kwargs: Any) -> Any:
    """Dataclass field with a column name override.

    Examples
        @dataclass
        class Customer:
            customer_id: int = column(display_name='Customer Id', default=0)
    """
    metadata = dict(kwargs.pop('metadata', None) or {})
    if display_name is not None:
        metadata[DISPLAY_NAME] = display_name
    return dataclasses.field(metadata=metadata, **kwargs)


def display_name(name: str) -> Callable:
    """Mark a property getter with a column name override.

    Apply beneath ``@property``.
    """
    def decorator(fget: Callable) -> Callable:
        setattr(fget, DISPLAY_NAME, name)
        return fget
    return decorator


@dataclass(frozen=True)
class Attribute:
    """A public attribute of a class as seen by the mapper."""
    name: str
    type: Any
    column_name: str
    readable: bool = True
    writable: bool = True


@dataclass(frozen=True)
class ColumnDescriptor:
    name: str
    attribute: str
    type: Any
    accessor: Callable[[Any], Any]


@dataclass(frozen=True)
class TypeSchema:
    """Ordered column descriptors for one class."""
    type: type
    columns: tuple[ColumnDescriptor, ...] = ()

    def __iter__(self) -> Iterator[ColumnDescriptor]:
        return iter(self.columns)

    def __len__(self) -> int:
        return len(self.columns)

    @property
    def names(self) -> list[str]:
        return [c.name for c in self.columns]

    @property
    def column_types(self) -> dict[str, Any]:
        return {c.name: c.type for c in self.columns}

    def values(self, item: Any) -> list[Any]:
        """Read every column of one item, in column order."""
        return [c.accessor(item) for c in self.columns]


def _type_hints(obj: Any) -> dict[str, Any]:
    try:
        return typing.get_type_hints(obj)
    except Exception as e:
        logger.debug(f'Could not resolve type hints for {obj!r}: {e}')
        return dict(getattr(obj, '__annotations__', {}))


def _is_classvar(tp: Any) -> bool:
    return tp is typing.ClassVar or typing.get_origin(tp) is typing.ClassVar


def class_attributes(cls: type) -> list[Attribute]:
    """Public attributes of ``cls`` in declaration order.

    Dataclass fields come first, then properties (base classes before
    subclasses), then remaining annotated attributes.
    """
    hints = _type_hints(cls)
    found: dict[str, Attribute] = {}

    if dataclasses.is_dataclass(cls):
        frozen = cls.__dataclass_params__.frozen
        for f in dataclasses.fields(cls):
            if f.name.startswith('_'):
                continue
            found[f.name] = Attribute(
                name=f.name,
                type=hints.get(f.name, f.type),
                column_name=f.metadata.get(DISPLAY_NAME, f.name),
                writable=not frozen,
                )

    for klass in reversed(cls.__mro__):
        if klass is object:
            continue
        for name, member in vars(klass).items():
            if name.startswith('_') or not isinstance(member, property):
                continue
            if member.fget is None:
                found.pop(name, None)
                continue
            found[name] = Attribute(
                name=name,
                type=_type_hints(member.fget).get('return', Any),
                column_name=getattr(member.fget, DISPLAY_NAME, name),
                writable=member.fset is not None,
                )

    for name, tp in hints.items():
        if name.startswith('_') or name in found or _is_classvar(tp):
            continue
        found[name] = Attribute(name=name, type=tp, column_name=name)

    return list(found.values())


def _accessor(attr: Attribute, cls: type) -> Callable[[Any], Any]:
    if dataclasses.is_dataclass(cls) or isinstance(getattr(cls, attr.name, None), property):
        return operator.attrgetter(attr.name)
    # annotation-only attributes may never have been assigned
    return lambda item: getattr(item, attr.name, None)


def _build_schema(cls: type) -> TypeSchema:
    columns = tuple(
        ColumnDescriptor(
            name=attr.column_name,
            attribute=attr.name,
            type=unwrap_optional(attr.type),
            accessor=_accessor(attr, cls),
            )
        for attr in class_attributes(cls)
        if attr.readable
        )
    logger.debug(f'Built schema for {cls.__name__} with {len(columns)} columns')
    return TypeSchema(cls, columns)


@cachetools.cached(cache=_schema_cache, lock=_schema_lock)
def get_schema(cls: type) -> TypeSchema:
    """Get the cached column schema for a class.

    The builder runs outside the lock, so concurrent first calls may each
    build a schema; only the first stored value is kept and returned.
    """
    return _build_schema(cls)


def clear_schema_cache() -> None:
    """Drop every cached schema. Intended for tests."""
    with _schema_lock:
        _schema_cache.clear()
