"""
Structopt parsing engine: scans argv against a registered option schema.

The driver (structopt.parser) only talks to this module through the
Engine methods below; it never looks at tokens itself.

Schema
- register(long, short, descr)                                  → presence-only flag
- register_typed(type, long, short, descr, mandatory, default)  → int/float/str option
- register_restricted(long, short, descr, mandatory, default, choices)
                                                                → string option limited to choices
Results
- run(argv), was_present(long), value_of(long), rest

Accepted token forms
- --name, --name=value, --name value
- -n, -n value, -nvalue, -n=value, clustered flags (-gv, -gvp 80)
- --            ends option scanning; every later token goes to rest
- anything else (including "-" and negative numbers) goes to rest

Fault policy
- Outside shell mode, the first error is raised as-is (see faults.trigger)
  and warnings go through the warnings module.
- In shell mode, faults are collected during the scan and finalized once:
  help requested (or empty argv that failed) → usage on stdout, exit 0;
  any error → faults and usage on stderr, exit 1.
"""
import collections
import difflib
import logging
import os.path
import re
import sys
from collections import deque

from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .faults import *
from .utils import *

logger = logging.getLogger(__name__)

Entry = collections.namedtuple("Entry", (
    "kind",
    "long",
    "short",
    "descr",
    "type",
    "mandatory",
    "default",
    "choices",
))


def _ordinal(number):
    """
    english ordinal for a 1-based token position (1 -> "1st", 12 -> "12th").
    """
    if 10 <= number % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(number % 10, "th")
    return "%d%s" % (number, suffix)


class Engine:
    """
    Command-line scanner for a flat set of named options.

    Settings
    - prog: program name for messages and usage (defaults to __main__.__prog__,
      then to the basename of sys.argv[0]).
    - shell: render faults and usage with rich and terminate the process
      instead of raising. Also registers --help/-? when the schema has no "help" option.
    - fancy: draw faults and usage inside panels.
    - colorful: style the output (styles can be overridden via __main__.__styles__).
    """

    def __init__(self, prog=Unset, /, *, shell=False, fancy=False, colorful=True):
        if not isinstance(prog, str | Unset):
            raise TypeError("engine 'prog' must be a string")
        if prog is Unset:
            prog = getattr(sys.modules["__main__"], "__prog__", Unset)
        if prog is Unset:
            prog = os.path.basename(sys.argv[0]) if sys.argv and sys.argv[0] else "program"
        self.prog = prog
        self.shell = bool(shell)
        self.fancy = bool(fancy)
        self.colorful = bool(colorful)

        self._entries = {}
        self._switches = {}
        self._present = set()
        self._values = {}
        self._rest = []
        self._faults = []
        self._index = 0

    def __repr__(self):
        return f"engine(prog={self.prog!r}, options={list(self._entries)!r})"

    def _add(self, entry, /):
        if not isinstance(entry.long, str) or not re.fullmatch(r"[^\W\d]\w*(-\w+)*", entry.long):
            raise ValueError(f"invalid long alias {entry.long!r}")
        if entry.short is not None and (not isinstance(entry.short, str) or len(entry.short) != 1 or entry.short in "-="):
            raise ValueError(f"invalid short alias {entry.short!r}")
        if not isinstance(entry.descr, str):
            raise TypeError("option description must be a string")

        if entry.long in self._entries:
            raise DuplicateAliasError(f"multiple definition of option '--{entry.long}'")
        if entry.short is not None and "-" + entry.short in self._switches:
            raise DuplicateAliasError(
                f"short alias '-{entry.short}' of '--{entry.long}' is already used by "
                f"'--{self._switches["-" + entry.short].long}'"
            )

        self._entries[entry.long] = entry
        self._switches["--" + entry.long] = entry
        if entry.short is not None:
            self._switches["-" + entry.short] = entry
        logger.debug("registered %s option --%s", entry.kind, entry.long)

    def register(self, long, short, descr, /):
        """
        Register a presence-only flag.
        """
        self._add(Entry("flag", long, short, descr, bool, False, False, ()))

    def register_typed(self, type, long, short, descr, mandatory, default, /):
        """
        Register an option taking one value converted with type (int, float or str).
        """
        if type not in (int, float, str):
            raise TypeError(f"unsupported value type {type!r}")
        self._add(Entry("scalar", long, short, descr, type, bool(mandatory), default, ()))

    def register_restricted(self, long, short, descr, mandatory, default, choices, /):
        """
        Register a string option whose value must be one of choices.
        """
        sanitized = []
        for choice in choices:
            if not isinstance(choice, str):
                raise TypeError("choices must be strings")
            if choice in sanitized:
                raise ValueError("choices cannot contain duplicates")
            sanitized.append(choice)
        if not sanitized:
            raise ValueError("choices cannot be empty")
        if default not in sanitized:
            raise ValueError(f"default {default!r} is not one of the choices")
        self._add(Entry("choice", long, short, descr, str, bool(mandatory), default, tuple(sanitized)))

    def _lookup(self, long, /):
        try:
            return self._entries[long]
        except KeyError:
            raise KeyError(f"undefined option '--{long}'") from None

    def was_present(self, long, /):
        """
        Whether the option appeared (successfully) on the command line.
        """
        return self._lookup(long).long in self._present

    def value_of(self, long, /):
        """
        The converted value of an option, or its registered default when absent.
        """
        entry = self._lookup(long)
        if entry.kind == "flag":
            raise TypeError(f"flag '--{long}' carries no value")
        return self._values.get(long, entry.default)

    @property
    def rest(self):
        """
        Tokens that were not options, in input order.
        """
        return tuple(self._rest)

    def trigger(self, fault, /):
        options = {
            "prog": self.prog,
            "shell": self.shell,
            "fancy": self.fancy,
            "colorful": self.colorful,
        }
        if self.shell:
            return self._faults.append(fault.__replace__(**options))
        trigger(fault, **options)

    def _numeric(self, token, /):
        """
        negative numbers are values, unless a digit is a registered short alias.
        """
        return (
            re.fullmatch(r"-(\d+\.?\d*|\.\d+)([eE][-+]?\d+)?", token) is not None
            and "-" + token[1] not in self._switches
        )

    def _peekable(self, tokens, /):
        return bool(tokens) and (
            not tokens[0].startswith("-") or tokens[0] == "-" or self._numeric(tokens[0])
        )

    def _convert(self, entry, input, value, /):
        """
        convert one raw value; Unset when a fault was collected instead.
        """
        if entry.kind == "choice":
            if value not in entry.choices:
                self.trigger(InvalidChoiceError(
                    "value %r for option %r at %s position is not a valid choice" % (
                        value, input, _ordinal(self._index)
                    ),
                    title="invalid choice",
                    code=FaultCode.INVALID_CHOICE,
                    input=input,
                    option=entry.long,
                    value=value,
                    index=self._index,
                    hint="use one of: %s" % " · ".join(entry.choices),
                ))
                return Unset
            return value
        try:
            return entry.type(value)
        except ValueError as exception:
            self.trigger(InvalidValueError(
                "value %r for option %r at %s position cannot be converted" % (
                    value, input, _ordinal(self._index)
                ),
                title="invalid value",
                code=FaultCode.INVALID_VALUE,
                input=input,
                option=entry.long,
                value=value,
                index=self._index,
                exception=exception,
                hint="use a valid %s for %r (for example: --%s=<%s>)" % (
                    entry.type.__name__, input, entry.long, entry.type.__name__
                ),
            ))
            return Unset

    def _accept(self, entry, input, value, tokens, /):
        """
        record one occurrence of an option; value is None when not given inline.
        """
        if entry.long in self._present:
            self.trigger(DuplicatedSwitchError(
                "option %r at %s position was already given" % (input, _ordinal(self._index)),
                title="duplicated option",
                code=FaultCode.DUPLICATED_SWITCH,
                input=input,
                option=entry.long,
                index=self._index,
                hint="give '--%s' only once" % entry.long,
            ))
            if entry.kind != "flag" and value is None and self._peekable(tokens):
                tokens.popleft()
                self._index += 1
            return

        if entry.kind == "flag":
            if value is not None:
                self.trigger(FlagAssignmentError(
                    "flag %r at %s position cannot have a value" % (input, _ordinal(self._index)),
                    title="flag cannot take a value",
                    code=FaultCode.FLAG_ASSIGNMENT,
                    input=input,
                    option=entry.long,
                    index=self._index,
                    hint="remove everything from '=' (for example: --%s)" % entry.long,
                ))
                return
            self._present.add(entry.long)
            return

        if value is None:
            if not self._peekable(tokens):
                self.trigger(OptionValueRequiredError(
                    "option %r at %s position requires a value" % (input, _ordinal(self._index)),
                    title="missing option value",
                    code=FaultCode.OPTION_VALUE_REQUIRED,
                    input=input,
                    option=entry.long,
                    index=self._index,
                    hint="provide a value (for example: --%s=<value>)" % entry.long,
                ))
                return
            value = tokens.popleft()
            self._index += 1
        elif not value:
            self.trigger(EmptyInlineValueWarning(
                "empty inline value for option %r at %s position" % (input, _ordinal(self._index)),
                title="empty inline value",
                code=FaultCode.EMPTY_INLINE_VALUE,
                input=input,
                option=entry.long,
                index=self._index,
                hint="add a value after '=' (for example: --%s=<value>)" % entry.long,
            ))

        if (converted := self._convert(entry, input, value)) is not Unset:
            self._present.add(entry.long)
            self._values[entry.long] = converted

    def _unknown(self, input, /):
        suggestions = difflib.get_close_matches(input, self._switches.keys(), 5)
        try:
            hint = "did you mean %r? you can also run '%s --help' to see all options" % (suggestions[0], self.prog)
        except IndexError:
            hint = "try '%s --help' to see all available options" % self.prog
        self.trigger(UnknownSwitchError(
            "unknown option %r at %s position" % (input, _ordinal(self._index)),
            title="unknown option",
            code=FaultCode.UNKNOWN_SWITCH,
            input=input,
            index=self._index,
            suggestions=suggestions,
            hint=hint,
        ))

    def _parse_long(self, token, tokens, /):
        match = re.fullmatch(r"--(?P<name>[^\W\d]\w*(-\w+)*)(=(?P<value>.*))?", token, re.DOTALL)
        if not match:
            return self.trigger(MalformedTokenError(
                "bad form of option %r at %s position" % (token, _ordinal(self._index)),
                title="malformed option",
                code=FaultCode.MALFORMED_TOKEN,
                input=token,
                index=self._index,
                hint="use --name or --name=value",
            ))
        try:
            entry = self._entries[match["name"]]
        except KeyError:
            return self._unknown("--" + match["name"])
        self._accept(entry, "--" + entry.long, match["value"], tokens)

    def _parse_short(self, token, tokens, /):
        body = token[1:]
        for position, character in enumerate(body):
            try:
                entry = self._switches["-" + character]
            except KeyError:
                return self._unknown("-" + character)
            tail = body[position + 1:]
            if entry.kind == "flag":
                if tail.startswith("="):
                    return self._accept(entry, "-" + character, tail[1:], tokens)
                self._accept(entry, "-" + character, None, tokens)
                continue
            if tail.startswith("="):
                return self._accept(entry, "-" + character, tail[1:], tokens)
            return self._accept(entry, "-" + character, tail or None, tokens)

    def run(self, argv, /):
        """
        Scan argv. Returns None on success; raises (or, in shell mode, exits) otherwise.
        """
        if isinstance(argv, str):
            raise TypeError("run() argument must be a sequence of strings")
        argv = list(argv)
        if not all(isinstance(token, str) for token in argv):
            raise TypeError("run() argument must be a sequence of strings")
        logger.debug("running %s over %d token(s)", self.prog, len(argv))

        if self.shell and "help" not in self._entries:
            self.register("help", "?" if "-?" not in self._switches else None, "print this message")

        self._present.clear()
        self._values.clear()
        self._rest.clear()
        self._faults.clear()
        self._index = 0

        tokens = deque(argv)
        while tokens:
            token = tokens.popleft()
            self._index += 1
            if token == "--":
                self._rest.extend(tokens)
                break
            if token.startswith("--"):
                self._parse_long(token, tokens)
            elif token.startswith("-") and token != "-" and not self._numeric(token):
                self._parse_short(token, tokens)
            else:
                self._rest.append(token)

        for entry in self._entries.values():
            if entry.mandatory and entry.long not in self._present and entry.long not in self._missing():
                self.trigger(MissingMandatoryError(
                    "mandatory option '--%s' was not given" % entry.long,
                    title="missing mandatory option",
                    code=FaultCode.MISSING_MANDATORY,
                    input="--" + entry.long,
                    option=entry.long,
                    hint="add '--%s=<%s>'" % (entry.long, self._metavar(entry)),
                ))

        if self.shell:
            self._finalize(argv)

    def _missing(self):
        """
        options that already produced a fault (so they are not reported twice).
        """
        return {fault.options.get("option") for fault in self._faults if isinstance(fault, ParseError)}

    def _finalize(self, argv, /):
        exceptions = [fault for fault in self._faults if isinstance(fault, ParseError)]
        if "help" in self._present or (not argv and exceptions):
            self.help()
            sys.exit(0)
        for fault in self._faults:
            if isinstance(fault, ParseWarning):
                fault.__trigger__()
        if not exceptions:
            return
        for exception in exceptions:
            exception.__trigger__()
        self.help(stderr=True)
        sys.exit(1)

    @staticmethod
    def _metavar(entry, /):
        if entry.kind == "choice":
            return "|".join(entry.choices)
        return entry.type.__name__

    def usage(self):
        """
        Build the usage text as a rich renderable.
        """
        main = sys.modules["__main__"]
        styles = collections.defaultdict(str, {
            "usage-label": "bold #00E5FF",
            "prog-name": "bold #E6E6F0",
            "options-label": "bold #00E5FF",
            "alias": "bold #FF4DA6",
            "descr": "#C8C8D0",
            "detail": "#9CE19C dim",
        } | getattr(main, "__styles__", {}))

        def text(fragment, style=""):
            return Text(str(fragment), styles[style] if self.colorful else "")

        line = Text.assemble(text("usage", "usage-label"), ": ", text(self.prog, "prog-name"))
        for entry in self._entries.values():
            if entry.mandatory:
                line.append(" --%s=<%s>" % (entry.long, self._metavar(entry)))
        line.append(" [options] ...")

        table = Table(box=None, show_header=False, padding=(0, 2), pad_edge=False)
        table.add_column("alias", no_wrap=True)
        table.add_column("descr")
        for entry in self._entries.values():
            alias = ("-%s, " % entry.short if entry.short is not None else "    ") + "--" + entry.long
            if entry.kind == "flag":
                detail = ""
            elif entry.mandatory:
                detail = " (%s)" % self._metavar(entry)
            else:
                detail = " (%s [=%s])" % (self._metavar(entry), entry.default)
            table.add_row(text(alias, "alias"), Text.assemble(text(entry.descr, "descr"), text(detail, "detail")))

        body = Group(text("options", "options-label") + Text(":"), table)
        if self.fancy:
            return Panel(body, title=line, title_align="left")
        return Group(line, body)

    def help(self, *, stderr=False):
        """
        Print the usage text to stdout (or stderr).
        """
        Console(stderr=stderr, no_color=not self.colorful).print(self.usage())


__all__ = (
    "Engine",
    "Entry",
)
