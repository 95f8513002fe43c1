"""
Field enumeration for plain records.

A record's fields are the positional parameters of its constructor, each
stored on the instance under the same attribute name (the dataclass,
NamedTuple and attrs convention). Nothing else is declared anywhere: the
count is discovered by trial binding and the names come from the
constructor's signature.

- count_fields(cls): how many fields the record has (0..MAX_FIELDS).
- field_names(cls):  their names, in declaration order.
- project(record):   the field objects themselves, in declaration order.
- visit(fields, op): apply op to each projected field, strictly in order.
"""
import functools
import inspect
import itertools

from .faults import SchemaDefect
from .utils import Unset, coalesce

MAX_FIELDS = 10


class Anything:
    """
    Placeholder accepted by any parameter during trial binding.

    It converts to whatever type is asked of it so that a probe never fails
    because of a field's type, only because of the number of arguments.
    """
    __slots__ = ()

    def __repr__(self):
        return "Anything"

    def __bool__(self):
        return False

    def __int__(self):
        return 0

    def __float__(self):
        return 0.0

    def __index__(self):
        return 0

    def __str__(self):
        return ""


@functools.cache
def _signature(cls, /):
    if not isinstance(cls, type):
        raise TypeError("record must be a type")
    try:
        return inspect.signature(cls)
    except (TypeError, ValueError):
        raise SchemaDefect(f"cannot introspect the fields of {cls.__qualname__!r}") from None


@functools.cache
def count_fields(cls, /):
    """
    Return the number of fields of a record type.

    The constructor is probed with an increasing number of placeholder
    arguments; the largest count that still binds is the field count. The
    probe only binds (it never calls the constructor), so it has no side
    effects and is cached per type.

    Raises
    - SchemaDefect: more than MAX_FIELDS fields (or a variadic constructor).
    """
    signature = _signature(cls)
    for count in itertools.count():
        if count > MAX_FIELDS:
            raise SchemaDefect(
                f"record {cls.__qualname__!r} has more than {MAX_FIELDS} fields"
            )
        try:
            signature.bind_partial(*itertools.repeat(Anything(), count + 1))
        except TypeError:
            return count


def field_names(cls, /):
    """
    Return the names of the record's fields, in declaration order.
    """
    return tuple(itertools.islice(_signature(cls).parameters, count_fields(cls)))


def project(record, count=Unset, /):
    """
    Return the fields of a record instance as an ordered tuple.

    The i-th element is the object stored in the i-th field (no copy), so
    mutating it mutates the record. No type validation is performed.
    """
    count = coalesce(count, count_fields(type(record)))
    if not isinstance(count, int) or not 0 <= count <= MAX_FIELDS:
        raise SchemaDefect(f"field count must be between 0 and {MAX_FIELDS}")
    names = tuple(_signature(type(record)).parameters)[:count]
    if len(names) < count:
        raise SchemaDefect(f"record {type(record).__qualname__!r} has fewer than {count} fields")
    return tuple(getattr(record, name) for name in names)


def visit(fields, operation, /):
    """
    Apply operation to every field, once each, in sequence order.
    """
    for field in fields:
        operation(field)


__all__ = (
    "MAX_FIELDS",
    "Anything",
    "count_fields",
    "field_names",
    "project",
    "visit",
)
