r"""
Structopt option descriptors and the @record decorator.

Overview
- Info[_T]: immutable per-field metadata (short/long alias, description,
  mandatory flag, default value). Aliases left Unset are filled in from the
  field name by OptionBuilder.
- Option[_T]: one resolved Info[_T] plus a value cell. Starts unbound (type
  default) and is bound exactly once by the parser. Reads through to its
  value for bool()/int()/float()/str()/format()/==.
- OptionBuilder: threads a field name into an authored Info and produces
  the Option for that field.
- @record: turns a class of `name: Option[T] = Info(...)` declarations into
  a dataclass whose instances carry fresh, alias-resolved options.

Supported kinds
- bool                       → "flag"    (presence only, no mandatory/default)
- enum.Enum subclasses       → "choice"  (one of the declared member names)
- int, float, str            → "scalar"

Quick example:
    >>> import enum
    >>> from structopt import record, Option, Info
    >>> @record
    ... class Options:
    ...     class Protocol(enum.Enum):
    ...         http = enum.auto()
    ...         ftp = enum.auto()
    ...     host: Option[str] = Info(descr="host name", mandatory=True)
    ...     port: Option[int] = Info(descr="port number", default=80)
    ...     type: Option[Protocol] = Info(descr="protocol type", default=Protocol.http)
    ...     gzip: Option[bool] = Info(short=None, descr="gzip when transfer")
    ...
    >>> Options().port.info.short
    'p'
"""
import dataclasses
import enum
import functools
import inspect
import operator
import re
import typing

from . import reflection
from .faults import SchemaDefect
from .fields import count_fields
from .utils import *

SCALARS = (int, float, str)


def kindof(type, /):
    """
    Classify a payload type as "flag", "choice" or "scalar".

    Raises
    - SchemaDefect: the type is not one of the supported kinds.
    """
    if type is bool:
        return "flag"
    if isinstance(type, enum.EnumType) and issubclass(type, enum.Enum):
        if not reflection.names_of(type):
            raise SchemaDefect(f"enumeration {type.__qualname__!r} has no members")
        return "choice"
    if type in SCALARS:
        return "scalar"
    raise SchemaDefect(f"unsupported option type {type!r} (expected bool, int, float, str or an enumeration)")


def zero(type, /):
    """
    Return the value a fresh, unbound cell of the given payload type holds.
    """
    if kindof(type) == "choice":
        return reflection.first_of(type)
    return type()


class DescriptorType(type):
    """
    Metaclass giving descriptor classes read-only, introspectable fields.

    Responsibilities
    - Expose every name in __introspectable__ as a read-only property
      mirroring the private "_{name}" attribute.
    - Provide stable __repr__/__rich_repr__ built from __displayable__
      (or __introspectable__ when no narrower view is declared).
    - Derive __typename__ from the class name for messages.
    """
    __introspectable__ = ()
    __displayable__ = Unset

    def __new__(cls, name, bases, namespace, **options):
        self = super().__new__(
            cls,
            name,
            bases,
            namespace | {
                "__typename__": re.sub(r"(?<!^)(?=[A-Z])", r"-", name).lower(),
            } | {
                name: mirror(name) for name in namespace.get("__introspectable__", ())
            },
            **options
        )

        @rename("__repr__")
        def __repr__(self):
            return f"{type(self).__typename__}({
                ", ".join(map(functools.partial(operator.mod, "%s=%r"), self.__rich_repr__()))
            })"
        self.__repr__ = __repr__

        @rename("__rich_repr__")
        def __rich_repr__(self):
            for name in coalesce(type(self).__displayable__, type(self).__introspectable__):
                yield name, getattr(self, name)
        self.__rich_repr__ = __rich_repr__

        return self


def _sanitize_info(cls, metadata, /):
    r"""
    Internal: validate and normalize authored Info metadata in place.

    Rules
    - short: Unset (derive later), None (no short form), or a single
      character that is not whitespace, '-' or '='.
    - long: Unset (derive later) or a name matching r"[^\W\d]\w*(-\w+)*"
      (word characters with inner hyphens, no leading digit or hyphen).
    - descr: string, trimmed (empty allowed, it is the authored default).
    - mandatory: coerced to bool.
    - default: any value; checked against the payload type by the builder.
    """
    if not isinstance(short := metadata["short"], str | Unset | None):
        raise TypeError(f"{cls.__typename__} 'short' must be a character or None")
    if isinstance(short, str) and (len(short) != 1 or short.isspace() or short in "-="):
        raise ValueError(f"{cls.__typename__} 'short' must be a single character other than '-' and '='")

    if not isinstance(long := metadata["long"], str | Unset):
        raise TypeError(f"{cls.__typename__} 'long' must be a string")
    if isinstance(long, str) and not re.fullmatch(r"[^\W\d]\w*(-\w+)*", long):
        raise ValueError(f"{cls.__typename__} 'long' must be a valid option name without leading dashes")

    if not isinstance(descr := metadata["descr"], str):
        raise TypeError(f"{cls.__typename__} 'descr' must be a string")
    metadata["descr"] = descr.strip()

    metadata["mandatory"] = bool(metadata["mandatory"])


class Info[_T](metaclass=DescriptorType):
    """
    Metadata describing one command-line option.

    Properties
    - short (Unset | None | str): single-character alias (-p). Unset means
      “derive from the field name”; None means “no short form”.
    - long (Unset | str): long alias without dashes (--port). Unset means
      “use the field name”.
    - descr (str): description shown in usage text.
    - mandatory (bool): the option must appear on the command line.
    - default (Unset | _T): value used when the option is absent. Unset
      means “the type's zero value”.

    Instances are immutable; use utils.replace(info, **changes) to derive a
    modified copy.
    """

    __introspectable__ = (
        "short",
        "long",
        "descr",
        "mandatory",
        "default",
    )

    def __new__(
            cls,
            *,
            short=Unset,
            long=Unset,
            descr="",
            mandatory=False,
            default=Unset,
    ):
        metadata = {
            "short": short,
            "long": long,
            "descr": descr,
            "mandatory": mandatory,
            "default": default,
        }
        _sanitize_info(cls, metadata)

        self = super().__new__(cls)
        for name, object in metadata.items():
            setattr(self, "_" + name, object)
        self._frozen = True
        return self

    def __setattr__(self, name, value, /):
        if getattr(self, "_frozen", False):
            raise AttributeError(f"{type(self).__typename__} is immutable")
        super().__setattr__(name, value)

    def __delattr__(self, name, /):
        raise AttributeError(f"{type(self).__typename__} is immutable")

    def __eq__(self, other, /):
        if not isinstance(other, Info):
            return NotImplemented
        return all(getattr(self, name) == getattr(other, name) for name in Info.__introspectable__)

    def __hash__(self):
        return hash(tuple(getattr(self, name) for name in Info.__introspectable__))

    def __replace__(self, /, **changes):
        unknown = changes.keys() - set(Info.__introspectable__)
        if unknown:
            raise TypeError(f"{type(self).__typename__} has no field {sorted(unknown)[0]!r}")
        return type(self)(**{name: getattr(self, name) for name in Info.__introspectable__} | changes)


class Option[_T](metaclass=DescriptorType):
    """
    One command-line option: resolved metadata plus a value cell.

    Lifecycle
    - unbound: just constructed, value is the type's zero value.
    - bound: value set by the parser (bind), exactly once.

    Read-through
    - bool(option), int(option), float(option), str(option), operator.index(option)
      and format(option, spec) all use option.value.
    - option == x compares option.value with x (or with x.value for another Option).
    """

    __introspectable__ = (
        "type",
        "info",
        "kind",
        "value",
        "bound",
    )

    def __new__(cls, type, info, /):
        if not isinstance(info, Info):
            raise TypeError(f"{cls.__typename__} metadata must be an info")
        self = super().__new__(cls)
        self._type = type
        self._kind = kindof(type)
        self._info = info
        self._value = zero(type)
        self._bound = False
        return self

    def bind(self, value, /):
        """
        Store the parsed value. An option can only be bound once.
        """
        if self._bound:
            raise RuntimeError(f"option {self._info.long!r} is already bound")
        self._value = value
        self._bound = True

    def __bool__(self):
        return bool(self._value)

    def __int__(self):
        return int(self._value)

    def __float__(self):
        return float(self._value)

    def __index__(self):
        return operator.index(self._value)

    def __str__(self):
        return str(self._value)

    def __format__(self, spec, /):
        return format(self._value, spec)

    def __eq__(self, other, /):
        if isinstance(other, Option):
            return self._value == other._value
        return self._value == other

    __hash__ = None


class OptionBuilder:
    """
    Builds the Option of one record field from its authored Info.

    The builder knows the field's declared name; aliases the author left
    Unset are derived from it (short: first character, long: whole name).
    Explicit aliases, including short=None, are never overwritten.
    """

    def __init__(self, name, /):
        if not isinstance(name, str) or not name:
            raise TypeError("OptionBuilder() argument must be a non-empty string")
        self.name = name

    def __repr__(self):
        return f"option-builder(name={self.name!r})"

    def resolve(self, info, /):
        """
        Return info with Unset aliases replaced by the field-derived ones.
        """
        changes = {}
        if info.short is Unset:
            changes["short"] = self.name[0]
        if info.long is Unset:
            changes["long"] = self.name
        return replace(info, **changes) if changes else info

    def build(self, type, info=Unset, /):
        """
        Produce a fresh, unbound Option for this field.

        Raises
        - SchemaDefect: unsupported type, a mandatory flag or default on a
          bool option, or a default that is not a value of the type.
        """
        info = self.resolve(coalesce(info, Info()))
        match kindof(type):
            case "flag":
                if info.mandatory:
                    raise SchemaDefect(f"flag {self.name!r} cannot be mandatory")
                if info.default is not Unset:
                    raise SchemaDefect(f"flag {self.name!r} cannot have a default")
                info = replace(info, default=False)
            case "choice":
                if info.default is Unset:
                    info = replace(info, default=zero(type))
                elif (
                    not isinstance(info.default, type)
                    or info.default.name not in reflection.names_of(type)
                ):
                    raise SchemaDefect(f"default of {self.name!r} must be a member of {type.__qualname__!r}")
            case "scalar":
                if info.default is Unset:
                    info = replace(info, default=zero(type))
                elif type is float and isinstance(info.default, int) and not isinstance(info.default, bool):
                    info = replace(info, default=float(info.default))
                elif not isinstance(info.default, type) or isinstance(info.default, bool):
                    raise SchemaDefect(f"default of {self.name!r} must be of type {type.__name__!r}")
        return Option(type, info)


def _payload(name, annotation, /):
    """
    Internal: extract T from an Option[T] annotation.
    """
    if typing.get_origin(annotation) is not Option:
        raise SchemaDefect(f"field {name!r} must be annotated as Option[T]")
    payload, = typing.get_args(annotation)
    kindof(payload)
    return payload


def record(cls, /):
    """
    Turn a class of option declarations into a record type.

    Each annotated attribute `name: Option[T] = Info(...)` (the Info may be
    omitted) becomes a dataclass field whose default factory builds a fresh
    Option through OptionBuilder(name). ClassVar annotations are ignored.

    Raises
    - SchemaDefect: a non-Option annotation, a class value that is not an
      Info, an unsupported payload type, or more than MAX_FIELDS fields.
    """
    if not isinstance(cls, type):
        raise TypeError("@record must be applied to a class")

    annotations = inspect.get_annotations(cls, eval_str=True)
    for name, annotation in annotations.items():
        if typing.get_origin(annotation) is typing.ClassVar or annotation is typing.ClassVar:
            continue
        payload = _payload(name, annotation)
        info = cls.__dict__.get(name, Unset)
        if not isinstance(info, Info | Unset):
            raise SchemaDefect(f"field {name!r} must be declared with an info")
        builder = OptionBuilder(name)
        # Fail at decoration time rather than at first construction.
        builder.build(payload, info)
        setattr(cls, name, dataclasses.field(default_factory=functools.partial(builder.build, payload, info)))

    cls = dataclasses.dataclass(cls)
    # Raises SchemaDefect past MAX_FIELDS, inherited fields included.
    count_fields(cls)
    return cls


__all__ = (
    # Classes
    "Info",
    "Option",
    "OptionBuilder",

    # Decorators
    "record",

    # Helpers
    "kindof",
    "zero",
)

# Internal metaclass, not part of the public API.
del DescriptorType
