"""
Enumeration reflection: map enumeration members to their declared names and back.

Only canonical members take part. Aliases (a second name bound to an
existing value) are neither listed nor decoded, so every name exposed at
the command-line boundary maps to exactly one member and back.
"""
import enum


def _enumeration(cls, /, caller):
    if not (isinstance(cls, type) and issubclass(cls, enum.Enum)):
        raise TypeError(f"{caller}() argument must be an enumeration type")
    return cls


def names_of(cls, /):
    """
    Return the declared member names of an enumeration, in declaration order.

    Example
    - names_of(Protocol) -> ("http", "https", "ssh", "ftp")
    """
    return tuple(member.name for member in _enumeration(cls, "names_of"))


def name_of(member, /):
    """
    Return the declared name of an enumeration member.
    """
    if not isinstance(member, enum.Enum):
        raise TypeError("name_of() argument must be an enumeration member")
    return member.name


def value_of(cls, name, /):
    """
    Decode a declared name back into its member, or None when nothing matches.

    Matching is exact and case-sensitive.
    """
    if not isinstance(name, str):
        raise TypeError("value_of() second argument must be a string")
    for member in _enumeration(cls, "value_of"):
        if member.name == name:
            return member
    return None


def first_of(cls, /):
    """
    Return the first declared member (the zero state of an enumeration cell).
    """
    for member in _enumeration(cls, "first_of"):
        return member
    raise ValueError(f"enumeration {cls.__name__!r} has no members")


__all__ = (
    "names_of",
    "name_of",
    "value_of",
    "first_of",
)
