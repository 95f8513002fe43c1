"""
Structopt faults (errors and warnings) and rendering.

Scope
- SchemaDefect / DuplicateAliasError: programming errors in a record or in
  the way options are registered. Raised immediately, never rendered.
- FaultCode: canonical numeric identifiers for every user-facing issue.
- ParseError / ParseWarning: base types for faults found while scanning the
  command line. They carry a message plus options and render themselves
  through rich.
- trigger(): central entry point to surface a fault (respecting shell/fancy/colorful).

Integration
- The engine builds faults while scanning argv and calls trigger(fault, **ctx).
- Outside shell mode, exceptions are raised and warnings go through the
  warnings module. In shell mode, both are printed to stderr via rich.

Host configuration (read from __main__ when present)
- __prog__:   program name shown in headers.
- __styles__: mapping of style-name -> rich style overriding the defaults.
- __codes__:  mapping of FaultCode -> label overriding the numeric code.
"""
import inspect
import sys
import warnings
from abc import ABC
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset

console = Console(stderr=True)


class SchemaDefect(TypeError):
    """
    A record cannot be turned into an option schema.

    Raised when a record has more fields than supported, declares a field
    of an unsupported kind, or carries metadata that is meaningless for its
    kind (e.g. a default on a boolean flag).
    """


class DuplicateAliasError(ValueError):
    """
    An alias was registered twice on the same engine.
    """


class FaultCode(IntEnum):
    """
    canonical fault codes used across the cli (stable identifiers).

    grouping
    - switches (2110x): MALFORMED_TOKEN, UNKNOWN_SWITCH, FLAG_ASSIGNMENT,
      DUPLICATED_SWITCH, OPTION_VALUE_REQUIRED
    - values (2112x): MISSING_MANDATORY, INVALID_VALUE, INVALID_CHOICE
    - warnings (2211x): EMPTY_INLINE_VALUE
    """
    # --- switch errors ---
    MALFORMED_TOKEN             = 21101
    UNKNOWN_SWITCH              = 21102
    FLAG_ASSIGNMENT             = 21103
    DUPLICATED_SWITCH           = 21104
    OPTION_VALUE_REQUIRED       = 21105

    # --- value errors ---
    MISSING_MANDATORY           = 21121
    INVALID_VALUE               = 21122
    INVALID_CHOICE              = 21123

    # --- warnings ---
    EMPTY_INLINE_VALUE          = 22111

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__
        to override numeric ids with friendlier labels.
        """
        return str(getattr(sys.modules["__main__"], "__codes__", {}).get(self, self.value))


def _render(self, title, palette, /):
    """
    Shared rich rendering for errors and warnings.

    palette maps the generic roles ("code", "title", "message", "arrow",
    "hint") onto concrete style names so errors and warnings can be styled
    separately through __styles__.
    """
    main = sys.modules["__main__"]
    styles = defaultdict(str, palette | getattr(main, "__styles__", {}))
    colorful = self.options.get("colorful", False)

    def text(fragment, style=""):
        if not fragment:
            return Text("")
        if isinstance(fragment, Text):
            return fragment if colorful else Text(fragment.plain)
        return Text(str(fragment), styles[style] if colorful else "")

    prog = getattr(main, "__prog__", self.options.get("prog", "")) or "program"
    code = self.options.get("code")

    header = Text.assemble(
        "[ ",
        text(prog, "prog-name"),
        " — ",
        text(code.normalize() if code is not None else "?", title + "-code"),
        " | ",
        text(self.options.get("title", type(self).__name__).title(), title + "-title"),
        " ]"
    )
    message = text(self.message, title + "-message")
    renders = [message]
    if hint := self.options.get("hint"):
        renders.append(Text.assemble(text(" → ", "hint-arrow"), text(hint, "hint")))

    if self.options.get("fancy", False):
        return Panel(Group(*renders), title=header, title_align="left")
    return Group(header, *renders)


class ParseError(Exception):
    """
    Base class for faults found while scanning the command line.

    The message is the first positional argument; every other piece of
    context (title, code, hint, prog, input, ...) is kept read-only in
    self.options.
    """

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(message)
        self.message = message
        self.options = MappingProxyType(options)

    def __str__(self):
        return self.message if self.message is not Unset else ""

    def __rich__(self):
        return _render(self, "error", {
            "prog-name": "bold #E6E6F0",
            "error-code": "bold #00E5FF",
            "error-title": "bold #FF4DA6",
            "error-message": "#C8C8D0",
            "hint-arrow": "#9CE19C dim",
            "hint": "italic #9CE19C",
        })

    def __trigger__(self) -> None:
        if not self.options.get("shell", False):
            raise self from None
        console.print(self)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class MalformedTokenError(ParseError): ...
class UnknownSwitchError(ParseError): ...
class FlagAssignmentError(ParseError): ...
class DuplicatedSwitchError(ParseError): ...
class OptionValueRequiredError(ParseError): ...
class MissingMandatoryError(ParseError): ...
class InvalidValueError(ParseError): ...
class InvalidChoiceError(InvalidValueError): ...


class ParseWarning(ABC, Warning):
    """
    Base class for non-fatal remarks about the command line.
    """

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(message)
        self.message = message
        self.options = MappingProxyType(options)

    def __str__(self):
        return self.message if self.message is not Unset else ""

    def __rich__(self):
        return _render(self, "warning", {
            "prog-name": "bold #E6E6F0",
            "warning-code": "bold #FFB400",
            "warning-title": "bold #FFC2E0",
            "warning-message": "#D6D6DE",
            "hint-arrow": "#B8EFAF dim",
            "hint": "italic #B8EFAF",
        })

    def __trigger__(self) -> None:
        if not self.options.get("shell", False):
            return warnings.warn(self, stacklevel=len(inspect.stack()))
        console.print(self)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class EmptyInlineValueWarning(ParseWarning): ...


def trigger(fault, /, **options):
    """
    surface a fault with the given runtime options.

    contract
    - fault must provide __trigger__ and __replace__ methods (see base classes).
    - options are merged into the fault via __replace__(**options) before triggering.
    - outside shell mode exceptions are raised; in shell mode they are printed.
    """
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    fault.__replace__(**options).__trigger__()


__all__ = (
    "SchemaDefect",
    "DuplicateAliasError",
    "FaultCode",
    "ParseError",
    "MalformedTokenError",
    "UnknownSwitchError",
    "FlagAssignmentError",
    "DuplicatedSwitchError",
    "OptionValueRequiredError",
    "MissingMandatoryError",
    "InvalidValueError",
    "InvalidChoiceError",
    "ParseWarning",
    "EmptyInlineValueWarning",
    "trigger",
)
