"""
Engine behavioral tests (token forms, faults, shell mode, usage).

Scope
- Validate every accepted token form and how leftovers reach rest.
- Validate the faults raised outside shell mode.
- Validate shell-mode finalization (help, exit codes, rendered output).
- Validate schema registration rules and usage rendering.

Conventions
- Test method names follow CamelCase per project convention.
- Output is captured through redirect_stdout/redirect_stderr; rich writes
  plain text when the stream is not a terminal.
"""
import io
import unittest
from contextlib import redirect_stderr, redirect_stdout
from unittest import TestCase

from rich.console import Console

from structopt.engine import Engine
from structopt.faults import (
    DuplicateAliasError,
    DuplicatedSwitchError,
    EmptyInlineValueWarning,
    FaultCode,
    FlagAssignmentError,
    InvalidChoiceError,
    InvalidValueError,
    MalformedTokenError,
    MissingMandatoryError,
    OptionValueRequiredError,
    ParseError,
    UnknownSwitchError,
)


def sample(**settings):
    """
    host (mandatory str), port (int = 80), type (choice = http), gzip/verbose (flags), ratio (float).
    """
    engine = Engine("fetch", **settings)
    engine.register_typed(str, "host", "h", "host name", True, "")
    engine.register_typed(int, "port", "p", "port number", False, 80)
    engine.register_restricted("type", "t", "protocol type", False, "http", ("http", "https", "ssh", "ftp"))
    engine.register("gzip", None, "gzip when transfer")
    engine.register("verbose", "v", "more output")
    engine.register_typed(float, "ratio", "r", "compression ratio", False, 0.5)
    return engine


class TestEngineTokens(TestCase):
    """Accepted token forms."""

    def testLongInline(self):
        engine = sample()
        engine.run(["--host=example.com"])
        self.assertTrue(engine.was_present("host"))
        self.assertEqual(engine.value_of("host"), "example.com")
        self.assertFalse(engine.was_present("port"))
        self.assertEqual(engine.value_of("port"), 80)

    def testLongSpaced(self):
        engine = sample()
        engine.run(["--host", "example.com", "--port", "8080"])
        self.assertEqual(engine.value_of("port"), 8080)

    def testInlineValueKeepsEqualSigns(self):
        engine = sample()
        engine.run(["--host=a=b"])
        self.assertEqual(engine.value_of("host"), "a=b")

    def testShortForms(self):
        for argv in (["-h", "x", "-p", "1"], ["-hx", "-p1"], ["-h=x", "-p=1"]):
            with self.subTest(argv=argv):
                engine = sample()
                engine.run(argv)
                self.assertEqual(engine.value_of("host"), "x")
                self.assertEqual(engine.value_of("port"), 1)

    def testClusteredFlags(self):
        engine = sample()
        engine.run(["-h", "x", "-vp", "8080"])
        self.assertTrue(engine.was_present("verbose"))
        self.assertEqual(engine.value_of("port"), 8080)

        engine = sample()
        engine.run(["-hx", "-vp8080"])
        self.assertEqual(engine.value_of("port"), 8080)

    def testFloatAndChoice(self):
        engine = sample()
        engine.run(["--host=x", "--ratio", "0.25", "--type=ftp"])
        self.assertEqual(engine.value_of("ratio"), 0.25)
        self.assertEqual(engine.value_of("type"), "ftp")

    def testDefaultsWhenAbsent(self):
        engine = sample()
        engine.run(["--host=x"])
        self.assertEqual(engine.value_of("type"), "http")
        self.assertEqual(engine.value_of("ratio"), 0.5)
        self.assertFalse(engine.was_present("gzip"))

    def testRestAndTerminator(self):
        engine = sample()
        engine.run(["input.txt", "--host=x", "-", "--", "--port=1", "-v"])
        self.assertEqual(engine.rest, ("input.txt", "-", "--port=1", "-v"))
        self.assertFalse(engine.was_present("port"))
        self.assertFalse(engine.was_present("verbose"))

    def testNegativeNumbers(self):
        engine = Engine("calc")
        engine.register_typed(int, "offset", "o", "offset", False, 0)
        engine.register_typed(float, "scale", "s", "scale", False, 1.0)
        engine.run(["--offset", "-5", "-s", "-.5", "-3"])
        self.assertEqual(engine.value_of("offset"), -5)
        self.assertEqual(engine.value_of("scale"), -0.5)
        self.assertEqual(engine.rest, ("-3",))

    def testDigitShortAliasWinsOverNegativeNumber(self):
        engine = Engine("calc")
        engine.register("one", "1", "first")
        engine.run(["-1"])
        self.assertTrue(engine.was_present("one"))

    def testRunResetsState(self):
        engine = sample()
        engine.run(["--host=x", "-v", "extra"])
        engine.run(["--host=y"])
        self.assertFalse(engine.was_present("verbose"))
        self.assertEqual(engine.rest, ())

    def testRunRejectsStringsAndNonStrings(self):
        with self.assertRaises(TypeError):
            sample().run("--host=x")
        with self.assertRaises(TypeError):
            sample().run(["--port", 1])


class TestEngineFaults(TestCase):
    """Faults raised outside shell mode."""

    def testMissingMandatory(self):
        with self.assertRaises(MissingMandatoryError) as context:
            sample().run([])
        self.assertEqual(context.exception.options["code"], FaultCode.MISSING_MANDATORY)
        self.assertEqual(context.exception.options["option"], "host")

    def testInvalidValue(self):
        with self.assertRaises(InvalidValueError) as context:
            sample().run(["--host=x", "--port=http"])
        self.assertIsInstance(context.exception.options["exception"], ValueError)
        self.assertIn("2nd position", str(context.exception))

    def testInvalidChoice(self):
        with self.assertRaises(InvalidChoiceError) as context:
            sample().run(["--host=x", "--type=carrierpigeon"])
        self.assertIsInstance(context.exception, InvalidValueError)
        self.assertEqual(context.exception.options["value"], "carrierpigeon")

    def testChoicesAreCaseSensitive(self):
        with self.assertRaises(InvalidChoiceError):
            sample().run(["--host=x", "--type=FTP"])

    def testUnknownSwitchSuggests(self):
        with self.assertRaises(UnknownSwitchError) as context:
            sample().run(["--host=x", "--prot=1"])
        self.assertIn("--port", context.exception.options["suggestions"])

    def testUnknownShortSwitch(self):
        with self.assertRaises(UnknownSwitchError):
            sample().run(["-hx", "-z"])

    def testDuplicatedSwitch(self):
        with self.assertRaises(DuplicatedSwitchError):
            sample().run(["--host=x", "--port", "1", "-p", "2"])

    def testDuplicatedFlag(self):
        with self.assertRaises(DuplicatedSwitchError):
            sample().run(["--host=x", "-vv"])

    def testFlagAssignment(self):
        for argv in (["--host=x", "--gzip=yes"], ["--host=x", "-v=1"]):
            with self.subTest(argv=argv), self.assertRaises(FlagAssignmentError):
                sample().run(argv)

    def testOptionValueRequired(self):
        for argv in (["--host"], ["--host=x", "--port"], ["--host=x", "-p", "--verbose"]):
            with self.subTest(argv=argv), self.assertRaises(OptionValueRequiredError):
                sample().run(argv)

    def testMalformedToken(self):
        for token in ("--1st", "---host", "--host-"):
            with self.subTest(token=token), self.assertRaises(MalformedTokenError):
                sample().run(["--host=x", token])

    def testEmptyInlineValueWarns(self):
        engine = sample()
        with self.assertWarns(EmptyInlineValueWarning):
            engine.run(["--host="])
        self.assertTrue(engine.was_present("host"))
        self.assertEqual(engine.value_of("host"), "")

    def testShortEmptyInlineValueWarns(self):
        engine = sample()
        with self.assertWarns(EmptyInlineValueWarning):
            engine.run(["-h=", "input.txt"])
        self.assertTrue(engine.was_present("host"))
        self.assertEqual(engine.value_of("host"), "")
        self.assertEqual(engine.rest, ("input.txt",))

    def testFaultsCarryRuntimeOptions(self):
        with self.assertRaises(ParseError) as context:
            sample(fancy=True).run([])
        self.assertEqual(context.exception.options["prog"], "fetch")
        self.assertTrue(context.exception.options["fancy"])
        self.assertFalse(context.exception.options["shell"])

    def testFaultsRenderWithoutColors(self):
        with self.assertRaises(ParseError) as context:
            sample(colorful=False).run(["--host=x", "--port=http"])
        console = Console(color_system=None, force_terminal=False, width=200)
        with console.capture() as capture:
            console.print(context.exception)
        output = capture.get()
        self.assertIn("[ fetch — 21122 | Invalid Value ]", output)
        self.assertIn("→ use a valid int", output)


class TestEngineSchema(TestCase):
    """Registration rules and lookups."""

    def testDuplicateLongAlias(self):
        engine = sample()
        with self.assertRaises(DuplicateAliasError):
            engine.register("host", None, "again")

    def testDuplicateShortAlias(self):
        engine = sample()
        with self.assertRaises(DuplicateAliasError):
            engine.register("hidden", "h", "clashes with --host")

    def testDuplicateAliasIsValueError(self):
        self.assertTrue(issubclass(DuplicateAliasError, ValueError))

    def testInvalidAliases(self):
        engine = Engine("x")
        with self.assertRaises(ValueError):
            engine.register("--bad", None, "")
        with self.assertRaises(ValueError):
            engine.register("good", "ab", "")

    def testUnsupportedTypedType(self):
        with self.assertRaises(TypeError):
            Engine("x").register_typed(bool, "flag", None, "", False, False)

    def testRestrictedValidation(self):
        engine = Engine("x")
        with self.assertRaises(ValueError):
            engine.register_restricted("mode", None, "", False, "a", ())
        with self.assertRaises(ValueError):
            engine.register_restricted("mode", None, "", False, "a", ("a", "a"))
        with self.assertRaises(ValueError):
            engine.register_restricted("mode", None, "", False, "c", ("a", "b"))
        with self.assertRaises(TypeError):
            engine.register_restricted("mode", None, "", False, "a", ("a", 1))

    def testLookups(self):
        engine = sample()
        engine.run(["--host=x"])
        with self.assertRaises(KeyError):
            engine.was_present("nothing")
        with self.assertRaises(TypeError):
            engine.value_of("gzip")

    def testUsage(self):
        console = Console(color_system=None, force_terminal=False, width=200)
        with console.capture() as capture:
            console.print(sample(colorful=False).usage())
        output = capture.get()
        self.assertIn("usage: fetch --host=<str> [options] ...", output)
        self.assertIn("-p, --port", output)
        self.assertIn("port number (int [=80])", output)
        self.assertIn("(http|https|ssh|ftp [=http])", output)
        self.assertIn("--gzip", output)
        self.assertNotIn("-g, --gzip", output)


class TestEngineShell(TestCase):
    """Shell-mode finalization."""

    def run_shell(self, argv):
        stdout, stderr = io.StringIO(), io.StringIO()
        engine = sample(shell=True, colorful=False)
        code = None
        with redirect_stdout(stdout), redirect_stderr(stderr):
            try:
                engine.run(argv)
            except SystemExit as exit:
                code = exit.code
        return engine, code, stdout.getvalue(), stderr.getvalue()

    def testSuccessDoesNotExit(self):
        engine, code, stdout, stderr = self.run_shell(["--host=x"])
        self.assertIsNone(code)
        self.assertEqual(stdout, "")
        self.assertFalse(engine.was_present("help"))

    def testHelpExitsZero(self):
        for argv in (["--help"], ["-?"], ["--port=bad", "--help"]):
            with self.subTest(argv=argv):
                _, code, stdout, _ = self.run_shell(argv)
                self.assertEqual(code, 0)
                self.assertIn("usage: fetch", stdout)
                self.assertIn("-?, --help", stdout)

    def testEmptyArgvFailureShowsUsage(self):
        _, code, stdout, stderr = self.run_shell([])
        self.assertEqual(code, 0)
        self.assertIn("usage: fetch", stdout)
        self.assertEqual(stderr, "")

    def testErrorsExitOne(self):
        _, code, stdout, stderr = self.run_shell(["--port=http"])
        self.assertEqual(code, 1)
        self.assertEqual(stdout, "")
        self.assertIn("Invalid Value", stderr)
        self.assertIn("Missing Mandatory Option", stderr)
        self.assertIn("usage: fetch", stderr)

    def testMandatoryNotReportedTwice(self):
        _, code, _, stderr = self.run_shell(["--host"])
        self.assertEqual(code, 1)
        self.assertIn("Missing Option Value", stderr)
        self.assertNotIn("Missing Mandatory Option", stderr)

    def testWarningsArePrinted(self):
        engine, code, _, stderr = self.run_shell(["--host="])
        self.assertIsNone(code)
        self.assertIn("Empty Inline Value", stderr)
        self.assertEqual(engine.value_of("host"), "")

    def testUserHelpOptionReplacesBuiltin(self):
        engine = Engine("x", shell=True, colorful=False)
        engine.register("help", "H", "show the manual")
        stdout = io.StringIO()
        with redirect_stdout(stdout), self.assertRaises(SystemExit) as context:
            engine.run(["-H"])
        self.assertEqual(context.exception.code, 0)
        self.assertIn("-H, --help", stdout.getvalue())
        self.assertNotIn("-?", stdout.getvalue())

    def testQuestionMarkTakenLeavesHelpLongOnly(self):
        engine = Engine("x", shell=True, colorful=False)
        engine.register("query", "?", "ask")
        stdout = io.StringIO()
        with redirect_stdout(stdout), self.assertRaises(SystemExit):
            engine.run(["--help"])
        self.assertIn("-?, --query", stdout.getvalue())
        self.assertIn("--help", stdout.getvalue())
        self.assertNotIn("-?, --help", stdout.getvalue())


if __name__ == "__main__":
    unittest.main()
