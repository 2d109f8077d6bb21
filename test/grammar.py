"""
Grammar tests (declaration splitting, argument groups, ordering rules).

Conventions
- Test method names follow CamelCase per project convention.
"""

from __future__ import annotations

import unittest
from unittest import TestCase

from sprig.faults import ValidationError, FaultCode
from sprig.grammar import Argument, split_spec, parse_argument_list, format_argument_list


class TestSplitSpec(TestCase):

    def testNamesAndGroups(self):
        spec = split_spec("-p, --port <port:number>")
        self.assertEqual(spec.flags, ("-p", "--port"))
        self.assertEqual(spec.arguments, "<port:number>")

    def testOnlyGroups(self):
        spec = split_spec("[file] <other>")
        self.assertEqual(spec.flags, ())
        self.assertEqual(spec.arguments, "[file] <other>")

    def testDuplicateNamesDropped(self):
        self.assertEqual(split_spec("serve serve, s").flags, ("serve", "s"))

    def testEqualsSeparatesNames(self):
        self.assertEqual(split_spec("--name=value").flags, ("--name", "value"))

    def testRejectsNonString(self):
        with self.assertRaises(TypeError):
            split_spec(None)


class TestParseArgumentList(TestCase):

    def testEmpty(self):
        self.assertEqual(parse_argument_list(""), ())

    def testRequiredAndOptional(self):
        self.assertEqual(parse_argument_list("<in:string> [out:number]"), (
            Argument("in", "string"),
            Argument("out", "number", optional=True),
        ))

    def testDefaultTypeIsString(self):
        self.assertEqual(parse_argument_list("<name>")[0].type, "string")

    def testVariadicList(self):
        (argument,) = parse_argument_list("[...files:string[]]")
        self.assertTrue(argument.variadic)
        self.assertTrue(argument.optional)
        self.assertTrue(argument.list)
        self.assertEqual(argument.name, "files")

    def testSeparatorIsCarried(self):
        (argument,) = parse_argument_list("<tags:string[]>", separator=";")
        self.assertEqual(argument.separator, ";")

    def testVariadicMustBeLast(self):
        with self.assertRaises(ValidationError) as context:
            parse_argument_list("<...a> <b>")
        self.assertEqual(context.exception.options["code"], FaultCode.MALFORMED_DEFINITION)

    def testRequiredAfterOptional(self):
        with self.assertRaises(ValidationError):
            parse_argument_list("[a] <b>")

    def testLeftoverText(self):
        with self.assertRaises(ValidationError):
            parse_argument_list("<a> junk")

    def testInvalidGroup(self):
        with self.assertRaises(ValidationError):
            parse_argument_list("<a:1bad>")


class TestFormatArgumentList(TestCase):

    def testRendering(self):
        arguments = parse_argument_list("<host:string> [...ports:number[]]")
        self.assertEqual(format_argument_list(arguments), "<host:string> [...ports:number[]]")
        self.assertEqual(parse_argument_list(format_argument_list(arguments)), arguments)


if __name__ == "__main__":
    unittest.main()
