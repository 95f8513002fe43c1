"""
Structopt parser driver: from a record of options to a bound record.

Flow (one call to Parser.to)
1. project the record's fields in declaration order (structopt.fields);
2. phase A: register every option with a fresh Engine;
3. let the engine scan argv (faults propagate from here untouched);
4. phase B: bind every option from the engine's results.

Phase B never runs when the engine fails, so a record is either fully
bound or not bound at all.

Quick start
    from structopt import record, Option, Info, from_args

    @record
    class Options:
        host: Option[str] = Info(descr="host name", mandatory=True)
        port: Option[int] = Info(descr="port number", default=80)

    options = from_args(["--host=example.com"]).to(Options)
    print(f"{options.host}:{options.port}")   # example.com:80
"""
import functools
import logging
import sys

from . import reflection
from .engine import Engine
from .faults import SchemaDefect
from .fields import project, visit
from .options import Option
from .utils import *

logger = logging.getLogger(__name__)


def _check(option, /):
    if not isinstance(option, Option):
        raise SchemaDefect(f"record fields must be options, not {type(option).__name__!r}")
    if option.bound:
        raise RuntimeError("record was already parsed; construct a fresh record for every parse")


def _register(engine, option, /):
    info = option.info
    match option.kind:
        case "flag":
            engine.register(info.long, info.short, info.descr)
        case "choice":
            engine.register_restricted(
                info.long,
                info.short,
                info.descr,
                info.mandatory,
                reflection.name_of(info.default),
                reflection.names_of(option.type),
            )
        case "scalar":
            engine.register_typed(
                option.type,
                info.long,
                info.short,
                info.descr,
                info.mandatory,
                info.default,
            )


def _extract(engine, option, /):
    info = option.info
    match option.kind:
        case "flag":
            option.bind(engine.was_present(info.long))
        case "choice":
            if engine.was_present(info.long):
                option.bind(reflection.value_of(option.type, engine.value_of(info.long)))
            else:
                option.bind(info.default)
        case "scalar":
            if engine.was_present(info.long):
                option.bind(engine.value_of(info.long))
            else:
                option.bind(info.default)


class Parser:
    """
    Binds records from one argument vector.

    Parameters
    - argv: sequence of str (defaults to sys.argv[1:] at construction)
    - prog: program name used in messages and usage
    - shell: let the engine print faults/usage and exit instead of raising
    - fancy: render faults and usage inside panels
    - colorful: style rendered output

    A Parser can bind several records; each call to to() uses a fresh
    engine. The non-option tokens of the last call are kept in rest.
    """

    def __init__(self, argv=Unset, /, *, prog=Unset, shell=False, fancy=False, colorful=True):
        argv = coalesce(argv, sys.argv[1:])
        if isinstance(argv, str):
            raise TypeError("parser 'argv' must be a sequence of strings, not a string")
        self._argv = tuple(argv)
        if not all(isinstance(token, str) for token in self._argv):
            raise TypeError("parser 'argv' must only contain strings")
        self._settings = {"shell": shell, "fancy": fancy, "colorful": colorful}
        self._prog = prog
        self._rest = ()

    def __repr__(self):
        return f"parser(argv={list(self._argv)!r})"

    @property
    def argv(self):
        return self._argv

    @property
    def rest(self):
        """
        Non-option tokens left over by the last successful to() call.
        """
        return self._rest

    def to(self, target, /):
        """
        Bind a record from argv and return it.

        target is either a record type (a fresh instance is created) or a
        fresh record instance. Engine faults propagate unchanged.
        """
        record = target() if isinstance(target, type) else target
        fields = project(record)
        visit(fields, _check)

        engine = Engine(self._prog, **self._settings)
        visit(fields, functools.partial(_register, engine))
        logger.debug("registered %d option(s) for %s", len(fields), type(record).__qualname__)

        engine.run(self._argv)

        visit(fields, functools.partial(_extract, engine))
        logger.debug("bound %d option(s) for %s", len(fields), type(record).__qualname__)
        self._rest = engine.rest
        return record


def from_args(argv=Unset, /, **settings):
    """
    Start a parse over argv (sys.argv[1:] by default).

    Example
    - from_args(["--port", "8080"]).to(Options)
    """
    return Parser(argv, **settings)


def parse(target, argv=Unset, /, **settings):
    """
    Shortcut for from_args(argv, **settings).to(target).
    """
    return from_args(argv, **settings).to(target)


__all__ = (
    "Parser",
    "from_args",
    "parse",
)
