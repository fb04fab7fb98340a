"""
Record to object mapping.

Both mappers match record fields to writable attributes by name, ignoring
case, skip null fields and unmatched names, and convert values with
`sqlbridge.types.coerce`. They differ only in how a failed conversion is
handled:

- map_strict raises TypeConversionError and returns nothing
- map_lenient leaves the attribute unset and carries on

Attribute lookups are rebuilt on every call, so result sets whose column
names vary between calls need no cache invalidation.
"""
import logging
from typing import Any, TypeVar

from sqlbridge.exceptions import TypeConversionError
from sqlbridge.record import Record
from sqlbridge.schema import Attribute, class_attributes, get_schema
from sqlbridge.types import coerce

logger = logging.getLogger(__name__)

T = TypeVar('T')

__all__ = ['map_strict', 'map_lenient', 'to_parameters']


def _writable_attributes(cls: type) -> dict[str, Attribute]:
    """Writable attributes keyed by lower-cased name; first declared wins."""
    lookup: dict[str, Attribute] = {}
    for attr in class_attributes(cls):
        if attr.writable:
            lookup.setdefault(attr.name.lower(), attr)
    return lookup


def _convert(value: Any, target: Any) -> tuple[Any, Exception | None]:
    try:
        return coerce(value, target), None
    except (ValueError, TypeError, ArithmeticError, OverflowError) as e:
        return None, e


def _map(record: Record, target_type: type[T], strict: bool) -> T:
    obj = target_type()
    attributes = _writable_attributes(target_type)

    for field in record:
        attr = attributes.get(field.name.lower())
        if attr is None or field.is_null:
            continue

        value, error = _convert(field.value, attr.type)
        if error is not None:
            if strict:
                raise TypeConversionError(
                    f'Cannot convert column {field.name!r} value {field.value!r} '
                    f'to {getattr(attr.type, "__name__", attr.type)} for '
                    f'{target_type.__name__}.{attr.name}: {error}',
                    field=field.name) from error
            logger.debug(f'Skipping {target_type.__name__}.{attr.name}: {error}')
            continue

        setattr(obj, attr.name, value)

    return obj


def map_strict(record: Record, target_type: type[T]) -> T:
    """Map one record to a new ``target_type`` instance.

    ``target_type`` must be constructible without arguments. Any field that
    fails conversion fails the whole call with TypeConversionError.
    """
    return _map(record, target_type, strict=True)


def map_lenient(record: Record, target_type: type[T]) -> T:
    """Map one record to a new ``target_type`` instance, skipping fields
    that fail conversion.
    """
    return _map(record, target_type, strict=False)


def to_parameters(obj: Any) -> dict[str, Any]:
    """Map one typed object to statement parameters keyed by attribute name.

    Display-name overrides are ignored since parameter names must be
    identifiers. Feed the result to `sqlbridge.params.configure`.
    """
    schema = get_schema(type(obj))
    return {c.attribute: c.accessor(obj) for c in schema}
