"""
Commands module behavioral tests (registration, resolution, parsing, dispatch).

Scope
- Validate registration rules: duplicates, overrides, aliases, re-parenting.
- Validate downward-only global resolution for every entity kind.
- Validate parse(): routing, option/argument binding, literal tokens,
  environment variables, dry runs and executable hand-off.
- Validate dispatch: option actions, standalone actions, default commands,
  async handlers, handler failures and the parse-time lock.
- Validate fault surfacing in throw mode and in shell mode.

Conventions
- Test method names follow CamelCase per project convention.
- Trees are built in throw mode unless a test exercises shell mode.
"""

from __future__ import annotations

import contextlib
import io
import unittest
from unittest import TestCase

from sprig import Command, StringType
from sprig.faults import (
    FaultCode,
    ValidationError,
    UnknownOptionError,
    UnknownCommandError,
    UnknownTypeError,
    MissingArgumentError,
    EmptyInputError,
    TypeCoercionError,
    HandlerError,
    ExecutableNotFoundError,
)
from sprig.launcher import Launcher


def tree():
    app = Command("app", "demo application", version="1.0.0").set_throw()
    app.add_option("-d, --debug", "enable debug output", global_=True)
    app.add_option("--local", "root only")
    mid = app.add_command("mid", "middle level")
    mid.add_option("--level <level:number>", global_=True)
    leaf = mid.add_command("leaf", "bottom level")
    return app, mid, leaf


class FakeLauncher:

    def __init__(self, status=0):
        self.status = status
        self.calls = []

    def launch(self, command, tokens, /):
        self.calls.append((command.path, tokens))
        return self.status


class TestRegistration(TestCase):

    def testDuplicateOption(self):
        app = Command("app")
        app.add_option("-p, --port <port:number>")
        with self.assertRaises(ValidationError) as context:
            app.add_option("-p, --print")
        self.assertEqual(context.exception.options["code"], FaultCode.DUPLICATE_NAME)

    def testDuplicateOptionReversedOrder(self):
        app = Command("app")
        app.add_option("--print, -p")
        with self.assertRaises(ValidationError) as context:
            app.add_option("-p, --port <port:number>")
        self.assertEqual(context.exception.options["code"], FaultCode.DUPLICATE_NAME)
        self.assertEqual(app.get_option("p").name, "print")

    def testOverrideOption(self):
        app = Command("app").set_throw()
        app.add_option("-p, --port <port:number>")
        app.add_option("--port <port:string>", override=True)
        (option,) = app.get_base_options()
        self.assertEqual(option.arguments[0].type, "string")
        self.assertIsNone(app.get_option("p"))
        self.assertIs(app.get_option("port"), option)
        with self.assertRaises(UnknownOptionError):
            app.parse("-p 80", dry=True)
        self.assertEqual(app.parse("--port 80", dry=True).options, {"port": "80"})

    def testDuplicateCommand(self):
        app = Command("app")
        app.add_command("serve, s")
        with self.assertRaises(ValidationError):
            app.add_command("s")
        replacement = app.add_command("serve", override=True)
        self.assertIs(app.get_command("serve"), replacement)
        self.assertEqual(len(app.get_base_commands()), 1)

    def testAddCommandReturnsChild(self):
        app = Command("app")
        serve = app.add_command("serve, s <host:string> [port:number]", "start the server")
        self.assertIsNot(serve, app)
        self.assertIs(serve.parent, app)
        self.assertEqual(serve.names, ("serve", "s"))
        self.assertEqual(serve.path, "app serve")
        self.assertEqual(len(serve.arguments), 2)
        self.assertEqual(serve.description, "start the server")

    def testAttachExistingNode(self):
        app, other = Command("app"), Command("other")
        other.add_option("--force")
        tool = app.add_command("tool, t", other)
        self.assertIs(tool, other)
        self.assertEqual(tool.name, "tool")
        self.assertIs(app.get_command("t"), other)
        self.assertTrue(other.has_option("force"))

    def testAttachMovesNode(self):
        first, second = Command("first"), Command("second")
        child = first.add_command("child")
        second.add_command("child", child)
        self.assertFalse(first.has_command("child"))
        self.assertIs(child.parent, second)

    def testAttachClashLeavesNodeUntouched(self):
        first, second = Command("first"), Command("second")
        node = first.add_command("node, n")
        second.add_command("dup")
        with self.assertRaises(ValidationError):
            second.add_command("dup", node)
        self.assertIs(node.parent, first)
        self.assertEqual(node.name, "node")
        self.assertEqual(node.aliases, ["n"])
        self.assertIs(first.get_command("node"), node)
        with self.assertRaises(ValidationError):
            second.add_command("other, dup", node)
        self.assertEqual(node.aliases, ["n"])
        self.assertIs(node.parent, first)

    def testAttachAncestorRejected(self):
        app, mid, leaf = tree()
        with self.assertRaises(ValidationError):
            leaf.add_command("loop", app)

    def testAliasClashWithSibling(self):
        app = Command("app")
        app.add_command("serve")
        build = app.add_command("build")
        with self.assertRaises(ValidationError):
            build.add_alias("serve")
        build.add_alias("b")
        self.assertIs(app.get_command("b"), build)

    def testDuplicateEnvVar(self):
        app = Command("app")
        app.add_env_var("PORT, APP_PORT <port:number>")
        with self.assertRaises(ValidationError):
            app.add_env_var("APP_PORT")

    def testDuplicateType(self):
        app = Command("app")
        with self.assertRaises(ValidationError):
            app.add_type("number", lambda info: info.value)
        app.add_type("number", lambda info: len(info.value), override=True)
        self.assertEqual(app.set_throw().set_arguments("<n:number>").parse("abc", dry=True).args, (3,))

    def testCallableDescription(self):
        calls = []
        app = Command("app", lambda: calls.append(1) or "lazy\nsecond line")
        self.assertEqual(app.short_description, "lazy")
        self.assertEqual(app.description, "lazy\nsecond line")
        self.assertEqual(calls, [1])

    def testRemoval(self):
        app = Command("app")
        app.add_option("-p, --port <port:number>")
        serve = app.add_command("serve, s")
        self.assertEqual(app.remove_option("-p").name, "port")
        self.assertIsNone(app.remove_option("port"))
        self.assertIs(app.remove_command("s"), serve)
        self.assertIsNone(serve.parent)
        self.assertFalse(app.has_commands())

    def testSetName(self):
        app = Command("app")
        serve = app.add_command("serve")
        app.add_command("build")
        serve.set_name("run")
        self.assertIs(app.get_command("run"), serve)
        with self.assertRaises(ValidationError):
            serve.set_name("build")

    def testExamples(self):
        app = Command("app").add_example("serve", "app serve localhost")
        self.assertTrue(app.has_examples())
        self.assertEqual(app.get_example("serve").body, "app serve localhost")
        with self.assertRaises(ValidationError):
            app.add_example("serve", "again")


class TestResolution(TestCase):

    def testGlobalOptionsFlowDownward(self):
        app, mid, leaf = tree()
        self.assertIs(leaf.get_option("debug"), app.get_option("debug"))
        self.assertIsNone(leaf.get_option("local"))
        self.assertIsNotNone(leaf.get_global_option("level"))
        self.assertIsNotNone(mid.get_base_option("level"))
        self.assertIsNone(app.get_option("level"))

    def testLocalShadowsGlobal(self):
        app, mid, leaf = tree()
        leaf.add_option("-d, --debug <level:number>")
        self.assertIs(leaf.get_option("debug"), leaf.get_base_option("debug"))
        self.assertEqual(len([option for option in leaf.get_options() if option.name == "debug"]), 1)

    def testLocalAliasShadowsGlobalOption(self):
        app = Command("app").set_throw()
        serve = app.add_command("serve")
        serve.add_option("-h, --host <host:string>")
        result = app.parse("serve -h localhost", dry=True)
        self.assertEqual(result.options, {"host": "localhost"})
        self.assertEqual(result.args, ())
        self.assertEqual(serve.get_option("h").name, "host")
        self.assertIsNone(serve.get_option("help"))
        self.assertEqual([option.name for option in serve.get_options()], ["host"])
        self.assertIsNotNone(app.get_option("help"))

    def testGlobalShadowedByCloserAlias(self):
        app, mid, leaf = tree()
        mid.add_option("-d, --dump", global_=True)
        self.assertEqual(leaf.get_option("d").name, "dump")
        self.assertIsNone(leaf.get_option("debug"))

    def testGlobalCommand(self):
        app, mid, leaf = tree()
        config = app.add_command("config").set_global()
        self.assertIs(leaf.get_command("config"), config)
        self.assertIn(config, mid.get_global_commands())
        self.assertIsNone(config.get_command("config"))
        self.assertIs(app.parse("mid config", dry=True).command, config)

    def testHiddenEntities(self):
        app = Command("app")
        app.add_command("secret").set_hidden()
        app.add_option("--internal", hidden=True)
        self.assertFalse(app.has_commands())
        self.assertTrue(app.has_command("secret", hidden=True))
        self.assertIsNone(app.get_option("internal"))
        self.assertIsNotNone(app.get_option("internal", hidden=True))

    def testGlobalTypesAndCompletions(self):
        app, mid, leaf = tree()
        app.add_type("color", StringType("red", "green"), global_=True)
        self.assertIsNotNone(leaf.get_type("color"))
        self.assertTrue(leaf.has_completion("color"))
        self.assertEqual(leaf.get_completion("color").handler(leaf, mid), ["red", "green"])
        self.assertIsNone(leaf.get_base_type("color"))

    def testLocalTypeNotInherited(self):
        app, mid, leaf = tree()
        app.add_type("color", StringType("red"))
        self.assertFalse(leaf.has_type("color"))

    def testGlobalEnvVars(self):
        app, mid, leaf = tree()
        app.add_env_var("APP_TOKEN <token:string>", global_=True)
        app.add_env_var("APP_LOCAL")
        self.assertTrue(leaf.has_env_var("APP_TOKEN"))
        self.assertFalse(leaf.has_env_var("APP_LOCAL"))

    def testVersionInherited(self):
        app, mid, leaf = tree()
        self.assertEqual(leaf.get_version(), "1.0.0")
        leaf.set_version("2.0.0")
        self.assertEqual(leaf.get_version(), "2.0.0")
        self.assertEqual(mid.get_version(), "1.0.0")

    def testRenderingSwitchesInherited(self):
        app = Command("app", colorful=False, fancy=True)
        child = app.add_command("child")
        self.assertFalse(child.colorful)
        self.assertTrue(child.fancy)


class TestParsing(TestCase):

    def testRoutingThroughLevels(self):
        app, mid, leaf = tree()
        result = app.parse("mid leaf --debug --level 3", dry=True)
        self.assertIs(result.command, leaf)
        self.assertEqual(result.options, {"debug": True, "level": 3})
        self.assertEqual(result.args, ())

    def testAliasRouting(self):
        app = Command("app").set_throw()
        serve = app.add_command("serve, s <host:string>")
        self.assertIs(app.parse(["s", "localhost"], dry=True).command, serve)

    def testUnknownOptionSuggests(self):
        app, mid, leaf = tree()
        with self.assertRaises(UnknownOptionError) as context:
            app.parse("mid leaf --debgu")
        self.assertIn("--debug", context.exception.suggestions)
        self.assertIs(context.exception.command, leaf)

    def testLocalOptionNotVisibleBelow(self):
        app, mid, leaf = tree()
        with self.assertRaises(UnknownOptionError):
            app.parse("mid --local")

    def testUnknownCommandSuggests(self):
        app, mid, leaf = tree()
        with self.assertRaises(UnknownCommandError) as context:
            app.parse("mdi")
        self.assertEqual(context.exception.suggestions[0], "mid")

    def testArgumentBinding(self):
        app = Command("app").set_throw().set_arguments("<a> <b> [c]")
        self.assertEqual(app.parse("1 2", dry=True).args, ("1", "2"))
        self.assertEqual(app.parse("1 2 3", dry=True).args, ("1", "2", "3"))
        with self.assertRaises(MissingArgumentError) as context:
            app.parse("")
        self.assertEqual(context.exception.options["missing"], ["a", "b"])

    def testDryRunReturnsPartialArguments(self):
        calls = []
        app = Command("app").set_throw().set_arguments("<a:string>")
        app.set_action(lambda options, *args: calls.append(args))
        result = app.parse("", dry=True)
        self.assertEqual(result.args, ())
        self.assertIs(result.command, app)
        self.assertEqual(calls, [])
        partial = Command("app").set_throw().set_arguments("<a> <b:number>").parse("x", dry=True)
        self.assertEqual(partial.args, ("x",))

    def testDryRunStillReportsOtherFaults(self):
        app = Command("app").set_throw().set_arguments("<port:number>")
        with self.assertRaises(TypeCoercionError):
            app.parse("abc", dry=True)
        with self.assertRaises(UnknownOptionError):
            app.parse("--bogus", dry=True)

    def testStandaloneSkipsMissingArguments(self):
        app = Command("app").set_throw()
        app.add_command("serve <host:string> [port:number]")
        with self.assertRaises(MissingArgumentError):
            app.parse("serve")
        result = app.parse("serve --help", dry=True)
        self.assertEqual(result.options, {"help": True})
        self.assertEqual(result.args, ())

    def testLiteralAfterDoubleDash(self):
        app = Command("app").set_throw().set_arguments("[file:string]")
        app.add_option("--debug")
        result = app.parse("input.txt -- --debug x", dry=True)
        self.assertEqual(result.args, ("input.txt",))
        self.assertEqual(result.literal, ["--debug", "x"])
        self.assertEqual(result.options, {})

    def testStopEarly(self):
        app = Command("app").set_throw().set_stop_early().set_arguments("[...rest:string]")
        app.add_option("--debug")
        result = app.parse("--debug run --port 80", dry=True)
        self.assertEqual(result.options, {"debug": True})
        self.assertEqual(result.args, (["run", "--port", "80"],))

    def testEnvironment(self):
        app, mid, leaf = tree()
        app.add_env_var("MY_FLAG", "a boolean flag", global_=True)
        app.add_env_var("APP_PORT, PORT <port:number>", global_=True)
        result = app.parse("mid leaf", dry=True, environ={"MY_FLAG": "true", "PORT": "8080"})
        self.assertEqual(result.environment, {"MY_FLAG": True, "APP_PORT": 8080})
        self.assertEqual(app.parse("", dry=True, environ={}).environment, {})

    def testInvalidEnvironment(self):
        app = Command("app").set_throw().add_env_var("MY_FLAG")
        with self.assertRaises(TypeCoercionError) as context:
            app.parse("", dry=True, environ={"MY_FLAG": "maybe"})
        self.assertEqual(context.exception.options["label"], "Environment variable")

    def testUnknownTypeSuggests(self):
        app = Command("app").set_throw().set_arguments("<count:numbr>")
        with self.assertRaises(UnknownTypeError) as context:
            app.parse("3", dry=True)
        self.assertIn("number", context.exception.suggestions)

    def testCustomType(self):
        app = Command("app").set_throw().add_type("upper", lambda info: info.value.upper())
        app.set_arguments("<name:upper>")
        self.assertEqual(app.parse("bob", dry=True).args, ("BOB",))

    def testEmptyInput(self):
        app = Command("app").set_throw().set_allow_empty(False)
        with self.assertRaises(EmptyInputError):
            app.parse("")

    def testTokensTypeChecked(self):
        with self.assertRaises(TypeError):
            Command("app").parse(["ok", 1])

    def testBuiltinsRegisteredOnce(self):
        app, mid, leaf = tree()
        app.parse("", dry=True)
        app.parse("", dry=True)
        names = [option.name for option in app.get_options()]
        self.assertEqual(names[:2], ["version", "help"])
        self.assertEqual(names.count("help"), 1)
        self.assertIsNotNone(leaf.get_option("help"))
        self.assertIsNone(leaf.get_option("version"))

    def testHelpOptionCustomised(self):
        app = Command("app").set_throw().set_help_option("-u, --usage", "print usage")
        result = app.parse("--usage", dry=True)
        self.assertEqual(result.options, {"usage": True})
        app.set_help_option(False)
        with self.assertRaises(UnknownOptionError):
            app.parse("--usage", dry=True)


class TestDispatch(TestCase):

    def testHandlerReceivesOptionsAndArgs(self):
        calls = []
        app = Command("app").set_throw()
        serve = app.add_command("serve <host:string> [port:number]")
        serve.add_option("-w, --workers <count:number>", default=1)
        serve.set_action(lambda options, *args: calls.append((options, args)))
        app.parse("serve localhost 8080 -w 4")
        self.assertEqual(calls, [({"workers": 4}, ("localhost", 8080))])

    def testDryRunsNothing(self):
        calls = []
        app = Command("app").set_throw().set_action(lambda options: calls.append(options))
        app.parse("", dry=True)
        self.assertEqual(calls, [])

    def testOptionActionsRunBeforeHandler(self):
        order = []
        app = Command("app").set_throw()
        app.add_option("--trace", action=lambda command, options, *args: order.append("trace"))
        app.set_action(lambda options: order.append("handler"))
        app.parse("--trace")
        self.assertEqual(order, ["trace", "handler"])

    def testStandaloneActionReplacesHandler(self):
        order = []
        app = Command("app").set_throw().set_arguments("<file>")
        app.add_option("--list", standalone=True, action=lambda command, options, *args: order.append(command.name))
        app.set_action(lambda options, file: order.append("handler"))
        app.parse("--list")
        self.assertEqual(order, ["app"])

    def testHelpExits(self):
        app, mid, leaf = tree()
        output = io.StringIO()
        with contextlib.redirect_stdout(output), self.assertRaises(SystemExit) as context:
            app.parse("mid leaf --help")
        self.assertEqual(context.exception.code, 0)
        self.assertIn("app mid leaf", output.getvalue())

    def testVersionExits(self):
        app, mid, leaf = tree()
        output = io.StringIO()
        with contextlib.redirect_stdout(output), self.assertRaises(SystemExit) as context:
            app.parse("--version")
        self.assertEqual(context.exception.code, 0)
        self.assertIn("app 1.0.0", output.getvalue())

    def testDefaultCommand(self):
        seen = []
        app = Command("app").set_throw()
        app.add_option("--debug")
        serve = app.add_command("serve")
        serve.set_action(lambda options: seen.append((options, serve.invoked_through)))
        app.set_default_command("serve")
        app.parse("--debug")
        self.assertEqual(seen, [({"debug": True}, app)])
        self.assertIsNone(serve.invoked_through)

    def testMissingDefaultCommand(self):
        app = Command("app").set_throw().set_default_command("serv")
        app.add_command("serve")
        with self.assertRaises(UnknownCommandError) as context:
            app.parse("")
        self.assertEqual(context.exception.suggestions[0], "serve")

    def testInvokedThrough(self):
        seen = []
        app, mid, leaf = tree()
        leaf.set_action(lambda options: seen.append((leaf.invoked_through, mid.invoked_through)))
        app.parse("mid leaf")
        self.assertEqual(seen, [(mid, app)])
        self.assertIsNone(leaf.invoked_through)
        self.assertIsNone(mid.invoked_through)

    def testAsyncHandler(self):
        seen = []

        async def handler(options, name):
            seen.append(name)

        app = Command("app").set_throw().set_arguments("<name>").set_action(handler)
        app.parse("bob")
        self.assertEqual(seen, ["bob"])

    def testHandlerFailureIsWrapped(self):
        def handler(options):
            raise ValueError("boom")

        app = Command("app").set_throw().set_action(handler)
        with self.assertRaises(HandlerError) as context:
            app.parse("")
        self.assertIsInstance(context.exception.cause, ValueError)
        self.assertIsInstance(context.exception.__cause__, ValueError)

    def testHandlerFaultIsNotWrapped(self):
        def handler(options):
            raise UnknownCommandError("unknown command 'x'")

        app = Command("app").set_throw().set_action(handler)
        with self.assertRaises(UnknownCommandError):
            app.parse("")

    def testLockedDuringParse(self):
        app = Command("app").set_throw()
        serve = app.add_command("serve")
        serve.set_action(lambda options: serve.add_option("--late"))
        with self.assertRaises(ValidationError) as context:
            app.parse("serve")
        self.assertEqual(context.exception.options["code"], FaultCode.LOCKED_COMMAND)
        serve.add_option("--late")
        self.assertTrue(serve.has_option("late"))

    def testRawArgs(self):
        calls = []
        app = Command("app").set_throw()
        run = app.add_command("run").set_raw_args()
        run.set_action(lambda options, *args: calls.append((options, args)))
        result = app.parse("run --x -y z")
        self.assertEqual(calls, [({}, ("--x", "-y", "z"))])
        self.assertEqual(result.args, ("--x", "-y", "z"))


class TestExecutables(TestCase):

    def testLauncherReceivesTokens(self):
        launcher = FakeLauncher(status=3)
        app = Command("app").set_throw()
        app.add_command("remote").set_executable()
        result = app.parse("remote add origin", launcher=launcher)
        self.assertEqual(result.status, 3)
        self.assertEqual(launcher.calls, [("app remote", ["add", "origin"])])

    def testDryDoesNotLaunch(self):
        launcher = FakeLauncher()
        app = Command("app").set_throw()
        app.add_command("remote").set_executable()
        self.assertIsNone(app.parse("remote add", dry=True, launcher=launcher).status)
        self.assertEqual(launcher.calls, [])

    def testExecutableName(self):
        app = Command("tool.py")
        remote = app.add_command("remote").add_command("add")
        self.assertEqual(Launcher().executable(remote), "tool-remote-add")

    def testExecutableNotFound(self):
        app = Command("sprig-test-missing-program").set_throw()
        app.add_command("nothing").set_executable()
        with self.assertRaises(ExecutableNotFoundError) as context:
            app.parse("nothing", launcher=Launcher(directory="/nonexistent"))
        self.assertIn("/nonexistent/sprig-test-missing-program-nothing", context.exception.options["candidates"])


class TestShellMode(TestCase):

    def testFaultExitsWithStatusOne(self):
        app = Command("app")
        app.add_option("--debug")
        errors = io.StringIO()
        with contextlib.redirect_stderr(errors), self.assertRaises(SystemExit) as context:
            app.parse("--debgu")
        self.assertEqual(context.exception.code, 1)

    def testThrowModeInherited(self):
        app = Command("app").set_throw()
        child = app.add_command("child")
        self.assertTrue(child.should_throw)
        self.assertFalse(Command("other").should_throw)

    def testHelpText(self):
        app, mid, leaf = tree()
        app.add_example("debug", "app --debug mid leaf")
        text = app.get_help()
        self.assertIn("usage: app", text)
        self.assertIn("--debug", text)
        self.assertIn("mid", text)
        self.assertIn("version: 1.0.0", text)
        self.assertIn("app --debug mid leaf", text)


if __name__ == "__main__":
    unittest.main()
