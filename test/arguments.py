"""
Entity declaration tests (Option, EnvVar, TypeEntry, Completion, Example).

Scope
- Validate flag sanitization: names, aliases, labels, keys, negation.
- Validate value slots and metadata checks.
- Validate environment variable declarations.

Conventions
- Test method names follow CamelCase per project convention.
"""

from __future__ import annotations

import unittest
from unittest import TestCase

from sprig import Option, EnvVar, TypeEntry, Completion, Example, NumberType, FunctionType
from sprig.faults import ValidationError, FaultCode
from sprig.grammar import Argument


class TestOption(TestCase):

    def testNamesAndAliases(self):
        option = Option("-p, --port <port:number>", "listen port")
        self.assertEqual(option.name, "port")
        self.assertEqual(option.aliases, ("p",))
        self.assertEqual(option.labels, ("-p", "--port"))
        self.assertEqual(option.names, ("port", "p"))
        self.assertEqual(option.arguments, (Argument("port", "number"),))
        self.assertEqual(option.description, "listen port")

    def testShortOnly(self):
        option = Option("-v")
        self.assertEqual(option.name, "v")
        self.assertTrue(option.boolean)

    def testKeyIsSnakeCase(self):
        self.assertEqual(Option("--dry-run").key, "dry_run")

    def testNegatableDefaultsToTrue(self):
        option = Option("--no-color")
        self.assertEqual(option.name, "color")
        self.assertTrue(option.negatable)
        self.assertIs(option.default, True)

    def testAffirmedNegatableHasNoDefault(self):
        from sprig.utils import Unset

        option = Option("--color, --no-color")
        self.assertEqual(option.labels, ("--color",))
        self.assertTrue(option.negatable)
        self.assertIs(option.default, Unset)

    def testRepeatedFlagCollapsed(self):
        self.assertEqual(Option("-f, -f, --force").labels, ("-f", "--force"))

    def testMalformedFlagRejected(self):
        with self.assertRaises(ValidationError) as context:
            Option("---bad")
        self.assertEqual(context.exception.options["code"], FaultCode.MALFORMED_DEFINITION)

    def testMissingFlagRejected(self):
        with self.assertRaises(ValidationError):
            Option("<value>")

    def testEmptyDescriptionRejected(self):
        with self.assertRaises(ValueError):
            Option("--port", "   ")

    def testSeparatorCarriedToListSlots(self):
        option = Option("--tags <tags:string[]>", separator=";")
        self.assertEqual(option.arguments[0].separator, ";")

    def testEmptySeparatorRejected(self):
        with self.assertRaises(ValueError):
            Option("--tags <tags:string[]>", separator="")

    def testActionMustBeCallable(self):
        with self.assertRaises(TypeError):
            Option("--help", action="help")

    def testRelationsAreStripped(self):
        option = Option("--json", conflicts=["--yaml", "yaml"], depends=("-o",))
        self.assertEqual(option.conflicts, ("yaml",))
        self.assertEqual(option.depends, ("o",))

    def testRelationsRejectString(self):
        with self.assertRaises(TypeError):
            Option("--json", conflicts="yaml")

    def testBooleanSlot(self):
        self.assertTrue(Option("--debug [enabled:boolean]").boolean)
        self.assertFalse(Option("--port <port:number>").boolean)

    def testRepr(self):
        self.assertTrue(repr(Option("-p, --port")).startswith("option(name='port'"))


class TestEnvVar(TestCase):

    def testDefaultsToBoolean(self):
        variable = EnvVar("MY_FLAG, MY_FLAG_ALT")
        self.assertEqual(variable.name, "MY_FLAG")
        self.assertEqual(variable.names, ("MY_FLAG", "MY_FLAG_ALT"))
        self.assertEqual(variable.type, "boolean")

    def testTypedSlot(self):
        self.assertEqual(EnvVar("PORT <port:number>").type, "number")

    def testSingleSlotOnly(self):
        with self.assertRaises(ValidationError):
            EnvVar("PAIR <a> <b>")

    def testOptionalSlotRejected(self):
        with self.assertRaises(ValidationError):
            EnvVar("PORT [port:number]")

    def testVariadicSlotRejected(self):
        with self.assertRaises(ValidationError):
            EnvVar("PORTS <...ports:number>")


class TestRegistryEntries(TestCase):

    def testTypeEntryWrapsCallable(self):
        entry = TypeEntry("upper", lambda info: info.value.upper())
        self.assertIsInstance(entry.handler, FunctionType)

    def testTypeEntryKeepsType(self):
        handler = NumberType()
        self.assertIs(TypeEntry("number", handler, global_=True).handler, handler)

    def testCompletionRequiresCallable(self):
        with self.assertRaises(TypeError):
            Completion("colors", ["red"])

    def testExample(self):
        example = Example("serve", "app serve localhost 8080")
        self.assertEqual(example.body, "app serve localhost 8080")
        with self.assertRaises(TypeError):
            Example("", "body")


if __name__ == "__main__":
    unittest.main()
