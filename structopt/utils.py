"""
Structopt utilities (internal helpers shared by every layer).

Overview
- UnsetType / Unset
  • Singleton sentinel meaning “not authored”, distinct from None (None is a
    meaningful value, e.g. a disabled short alias).
  • Falsey, printable as "Unset", renders dimmed in Rich, non-subclassable.

- coalesce(value, default=None)
  • Replace Unset with a concrete default, keep every other value (None, 0, "").

- rename(callable, name) / @rename("name")
  • Assign stable __name__/__qualname__ to generated helpers.

- mirror("attr")
  • Read-only property exposing the private backing field self._attr.

- replace(object, **changes)
  • Build a modified copy through the object's __replace__ protocol.

Quick examples
    >>> coalesce(Unset, "fallback")
    'fallback'
    >>> coalesce(None, "fallback") is None
    True
"""
import builtins
import functools
from typing import final

from rich.text import Text


@final
class UnsetType:
    """
    Internal sentinel type representing a value that was not authored.

    Characteristics
    - Boolean-false: bool(Unset) is False, but it is distinct from None and 0.
    - Printable: repr(Unset) -> "Unset".
    - Non-subclassable and a singleton per process.
    """

    def __or__(self, other, /):
        """
        Support PEP 604 unions in isinstance checks (e.g., str | Unset).
        """
        try:
            return type(self) | other
        except TypeError:
            return NotImplemented

    def __ror__(self, other, /):
        try:
            return other | type(self)
        except TypeError:
            return NotImplemented

    @functools.cache
    def __new__(cls):
        return super().__new__(cls)

    def __bool__(self):
        return False

    def __repr__(self):
        return "Unset"

    def __rich__(self):
        return Text("Unset", style="dim")

    def __copy__(self):
        return self

    def __deepcopy__(self, memo, /):
        return self

    def __reduce__(self):
        return "Unset"

    def __init_subclass__(cls, **options):
        raise TypeError("type 'UnsetType' is not an acceptable base type")


def coalesce(object, default=None, /):
    """
    Resolve the Unset sentinel to a concrete default.

    Falsey values like None, 0 or "" are preserved as-is; only Unset is replaced.

    Examples
    - coalesce("name", "fallback") -> "name"
    - coalesce(Unset, "fallback")  -> "fallback"
    - coalesce(None, "fallback")   -> None
    """
    return object if object is not Unset else default


def rename(*parameters):
    """
    Set a stable __name__/__qualname__ on a callable, or return a decorator
    that will do so later.

    Forms
    - rename(callable, name) -> callable (renamed in place)
    - rename(name)           -> decorator
    """
    match len(parameters):
        case 2:
            callable, name = parameters
            if not builtins.callable(callable):
                raise TypeError("rename() first argument must be callable")
            if not isinstance(name, str):
                raise TypeError("rename() second argument must be a string")
            try:
                callable.__qualname__ = name
                callable.__name__ = name
            except (AttributeError, TypeError):
                raise TypeError("rename() first argument must be a updatable callable") from None
            return callable
        case 1:
            name, = parameters
            if not isinstance(name, str):
                raise TypeError("@rename() argument must be a string")

            def wrapper(callable):
                if not builtins.callable(callable):
                    raise TypeError("@rename() must be applied to a callable")
                return rename(callable, name)

            return rename(wrapper, "rename")
        case _:
            raise TypeError("rename takes 1 to 2 arguments but %d were given" % len(parameters))


def mirror(name, /):
    """
    Define a read-only property that mirrors the private attribute "_{name}".

    Lists are handed out as tuples so callers cannot grow internal state
    through the public API; every other value is returned as stored
    (including Unset, which carries meaning for authored metadata).
    """
    if not isinstance(name, str):
        raise TypeError("mirror() argument must be a string")

    @rename(name)
    def getter(self):
        object = getattr(self, "_" + name)
        if isinstance(object, list):
            return tuple(object)
        return object

    return property(getter)


def replace(object, /, **changes):
    """
    Return a copy of object with the given fields changed.

    The object must implement __replace__ (the same protocol copy.replace uses).
    """
    if not callable(getattr(type(object), "__replace__", None)):
        raise TypeError("replace() argument must implement __replace__")
    return type(object).__replace__(object, **changes)


Unset = UnsetType()
"""
Internal sentinel for “not authored”.

Distinct from None: Info(short=None) disables a short alias while
Info(short=Unset) (the default) asks the builder to derive one.
"""


__all__ = (
    # Functions
    "coalesce",
    "rename",
    "mirror",
    "replace",

    # Types
    "UnsetType",

    # Constants
    "Unset",
)
