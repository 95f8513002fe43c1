"""
Tests for the shared helpers.

This module verifies:
- The `Unset` sentinel: singleton identity, falsy semantics, repr and rich
  rendering, copy/pickle identity, union support and finality.
- coalesce(), rename(), mirror() and replace().
"""
import copy
import pickle
import unittest
from unittest import TestCase

from rich.console import Console
from rich.text import Text

from structopt.utils import *


class UnsetTest(TestCase):
    """
    Test suite for the `UnsetType` singleton.
    """

    def testSingleton(self) -> None:
        """
        The constructor returns the exported instance on every call.
        """
        self.assertIs(UnsetType(), Unset)
        self.assertIs(UnsetType(), UnsetType())

    def testFalsy(self) -> None:
        self.assertFalse(Unset)

    def testNotEqualToNoneOrFalse(self) -> None:
        """
        Falsy does not imply equality with other falsy values.
        """
        self.assertNotEqual(Unset, None)
        self.assertNotEqual(Unset, False)  # noqa: E712
        self.assertNotEqual(Unset, 0)

    def testRepr(self) -> None:
        self.assertEqual(repr(Unset), "Unset")
        self.assertEqual(str(Unset), "Unset")

    def testRich(self) -> None:
        """
        __rich__() returns a dim-styled Text 'Unset'.
        """
        self.assertEqual(Unset.__rich__(), Text("Unset", style="dim"))

    def testRichConsolePrint(self) -> None:
        """
        Console.print(...) renders 'Unset' without ANSI when color is disabled.
        """
        console = Console(color_system=None, force_terminal=False)
        with console.capture() as capture:
            console.print(Unset)
        self.assertEqual(capture.get().strip(), "Unset")

    def testCopyDeepcopyPickle(self) -> None:
        """
        copy(), deepcopy() and pickle round-trips preserve identity.
        """
        self.assertIs(copy.copy(Unset), Unset)
        self.assertIs(copy.deepcopy(Unset), Unset)
        self.assertIs(pickle.loads(pickle.dumps(Unset)), Unset)

    def testUnionInIsinstance(self) -> None:
        """
        The sentinel composes into PEP 604 unions from either side.
        """
        self.assertTrue(isinstance(Unset, str | Unset))
        self.assertTrue(isinstance("x", Unset | str))
        self.assertFalse(isinstance(None, str | Unset))
        self.assertTrue(isinstance(None, str | Unset | None))

    def testCannotSubclass(self) -> None:
        with self.assertRaises(TypeError):
            class Derived(UnsetType):  # noqa: F841
                pass


class HelpersTest(TestCase):
    """
    Test suite for coalesce, rename, mirror and replace.
    """

    def testCoalesceReplacesOnlyUnset(self) -> None:
        self.assertEqual(coalesce(Unset, "fallback"), "fallback")
        self.assertIsNone(coalesce(Unset))
        self.assertIsNone(coalesce(None, "fallback"))
        self.assertEqual(coalesce(0, 1), 0)
        self.assertEqual(coalesce("", "fallback"), "")

    def testRenameDirectAndDecorator(self) -> None:
        def function():
            pass

        self.assertIs(rename(function, "renamed"), function)
        self.assertEqual(function.__name__, "renamed")
        self.assertEqual(function.__qualname__, "renamed")

        @rename("decorated")
        def other():
            pass

        self.assertEqual(other.__name__, "decorated")

    def testRenameRejectsBadArguments(self) -> None:
        with self.assertRaises(TypeError):
            rename(42, "name")
        with self.assertRaises(TypeError):
            rename(len, 42)
        with self.assertRaises(TypeError):
            rename()

    def testMirrorIsReadOnly(self) -> None:
        class Holder:
            items = mirror("items")
            marker = mirror("marker")

            def __init__(self):
                self._items = [1, 2]
                self._marker = Unset

        holder = Holder()
        self.assertEqual(holder.items, (1, 2))
        self.assertIs(holder.marker, Unset)
        with self.assertRaises(AttributeError):
            holder.items = ()

    def testReplaceUsesReplaceProtocol(self) -> None:
        class Point:
            def __init__(self, x, y):
                self.x, self.y = x, y

            def __replace__(self, **changes):
                return Point(changes.get("x", self.x), changes.get("y", self.y))

        point = replace(Point(1, 2), y=5)
        self.assertEqual((point.x, point.y), (1, 5))

    def testReplaceRejectsUnsupportedObjects(self) -> None:
        with self.assertRaises(TypeError):
            replace(object(), x=1)


if __name__ == "__main__":
    unittest.main()
