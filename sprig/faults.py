"""
Sprig faults (errors) and rendering.

Scope
- FaultCode: canonical, stable numeric identifiers for every user-facing issue.
  Codes are grouped by domain so logs and searches stay predictable.
- CommandException: base type that carries a message + read-only options and
  knows how to render itself (rich) and how to surface itself (__trigger__).
- The taxonomy:
  • ValidationError: build-time mistakes (duplicate names, malformed declarations).
  • ParseError and its family: problems with the user's tokens.
  • TypeCoercionError: a literal a type handler refused.
  • HandlerError: a failure inside a user-supplied handler (cause preserved).
- trigger(): central entry point to surface any fault.

UX goals
- Soft but technical language: short titles, one-sentence bodies, a single hint.
- Suggestions: faults about a mistyped name carry `suggestions` (near matches
  visible in scope) and fold the best one into the hint.

Integration
- Internals raise faults. Command.parse() catches them at the top and hands
  them to the command being parsed, which either re-raises them (throw mode) or
  prints help + the fault and exits with status 1.
"""
import copy
import os
import sys
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text
from rich.traceback import Traceback

console = Console(stderr=True)


class FaultCode(IntEnum):
    """
    canonical fault codes (stable identifiers).

    grouping
    - build (101xx): DUPLICATE_NAME, MALFORMED_DEFINITION, LOCKED_COMMAND
    - routing (111xx): UNKNOWN_COMMAND, EXECUTABLE_NOT_FOUND
    - options (1111x): UNKNOWN_OPTION, MISSING_VALUE, DUPLICATE_OPTION,
      STANDALONE_OPTION, MISSING_REQUIRED_OPTION, CONFLICTING_OPTION,
      DEPENDENT_OPTION, EMPTY_INPUT
    - arguments (1112x): MISSING_ARGUMENT, TOO_MANY_ARGUMENTS
    - types (1113x): UNKNOWN_TYPE, INVALID_VALUE
    - handlers (1114x): HANDLER_FAILURE

    normalize() lets the host remap codes to its own labels.
    """
    # --- build errors (10xxx) ---
    DUPLICATE_NAME          = 10101
    MALFORMED_DEFINITION    = 10102
    LOCKED_COMMAND          = 10103

    # --- routing errors (11xxx) ---
    UNKNOWN_COMMAND         = 11101
    EXECUTABLE_NOT_FOUND    = 11102

    # --- option errors (11xxx) ---
    UNKNOWN_OPTION          = 11111
    MISSING_VALUE           = 11112
    DUPLICATE_OPTION        = 11113
    STANDALONE_OPTION       = 11114
    MISSING_REQUIRED_OPTION = 11115
    CONFLICTING_OPTION      = 11116
    DEPENDENT_OPTION        = 11117
    EMPTY_INPUT             = 11118

    # --- argument errors (11xxx) ---
    MISSING_ARGUMENT        = 11121
    TOO_MANY_ARGUMENTS      = 11122

    # --- type errors (11xxx) ---
    UNKNOWN_TYPE            = 11131
    INVALID_VALUE           = 11132

    # --- handler errors (11xxx) ---
    HANDLER_FAILURE         = 11141

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__
        to override numeric ids with friendlier labels.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


class CommandException(Exception):
    """
    Base of every sprig fault.

    - message: one-sentence, lowercased description of what went wrong.
    - options: read-only mapping with rendering context (title, code, hint,
      suggestions, command, shell, colorful, fancy, ...).

    Subclasses declare a default `__code__` and `__title__`; per-instance
    options override them.
    """
    __code__ = FaultCode.MALFORMED_DEFINITION
    __title__ = "command error"

    def __init__(self, message, /, **options):
        assert isinstance(message, str)
        super().__init__(message)
        self.message = message
        self.options = MappingProxyType({
            "code": type(self).__code__,
            "title": type(self).__title__,
        } | options)

    @property
    def suggestions(self):
        return tuple(self.options.get("suggestions", ()))

    @property
    def command(self):
        return self.options.get("command")

    def __rich__(self):
        main = __import__("__main__")
        colorful = self.options.get("colorful", True)
        fancy = self.options.get("fancy", False)

        styles = defaultdict(str, {
            # header parts
            "prog-name": "bold #E6E6F0",
            "code": "bold #00E5FF",
            "error-title": "bold #FF4DA6",

            # body
            "error-message": "#C8C8D0",
            "hint-arrow": "#9CE19C dim",
            "hint": "italic #9CE19C",
        } | getattr(main, "__styles__", {}))

        def text(fragment, style=""):
            if not fragment:
                return Text("")
            if not colorful:
                return Text(str(fragment))
            return Text(str(fragment), styles[style])

        command = self.options.get("command")
        prog = getattr(main, "__prog__", command.root.name if command is not None else "sprig")

        header = Text.assemble(
            "[ ",
            text(prog, "prog-name"),
            " — ",
            text(self.options["code"].normalize(), "code"),
            " | ",
            text(self.options["title"].title(), "error-title"),
            " ]"
        )
        message = text(self.message, "error-message")
        parts = [message]
        if hint := self.options.get("hint"):
            parts.append(Text.assemble(text(" → ", "hint-arrow"), text(hint, "hint")))

        if fancy:
            return Panel(Group(*parts), title=header, title_align="left")
        return Group(header, *parts)

    def __trigger__(self):
        if not self.options.get("shell", False):
            raise self
        console.print(self)
        if self.options.get("debug", False) and self.__cause__ is not None:
            cause = self.__cause__
            console.print(Traceback.from_exception(type(cause), cause, cause.__traceback__))
        sys.exit(1)

    def __replace__(self, *unused, **overrides):
        assert not unused, "unused arguments are not allowed"
        clone = type(self)(self.message, **{**self.options, **overrides})
        clone.__cause__ = self.__cause__
        clone.__traceback__ = self.__traceback__
        return clone


class ValidationError(CommandException):
    """Build-time mistake: duplicate names, malformed declarations, locked nodes."""
    __code__ = FaultCode.DUPLICATE_NAME
    __title__ = "invalid declaration"


class ParseError(CommandException):
    """Base for problems found in the user's tokens."""
    __title__ = "invalid input"


class UnknownOptionError(ParseError):
    __code__ = FaultCode.UNKNOWN_OPTION
    __title__ = "unknown option"


class MissingValueError(ParseError):
    __code__ = FaultCode.MISSING_VALUE
    __title__ = "missing option value"


class UnknownTypeError(ParseError):
    __code__ = FaultCode.UNKNOWN_TYPE
    __title__ = "unknown type"


class UnknownCommandError(ParseError):
    __code__ = FaultCode.UNKNOWN_COMMAND
    __title__ = "unknown command"


class MissingArgumentError(ParseError):
    __code__ = FaultCode.MISSING_ARGUMENT
    __title__ = "missing argument"


class TooManyArgumentsError(ParseError):
    __code__ = FaultCode.TOO_MANY_ARGUMENTS
    __title__ = "too many arguments"


class DuplicateOptionError(ParseError):
    __code__ = FaultCode.DUPLICATE_OPTION
    __title__ = "duplicated option"


class StandaloneOptionError(ParseError):
    __code__ = FaultCode.STANDALONE_OPTION
    __title__ = "standalone option"


class MissingRequiredOptionError(ParseError):
    __code__ = FaultCode.MISSING_REQUIRED_OPTION
    __title__ = "missing required option"


class ConflictingOptionError(ParseError):
    __code__ = FaultCode.CONFLICTING_OPTION
    __title__ = "conflicting options"


class DependentOptionError(ParseError):
    __code__ = FaultCode.DEPENDENT_OPTION
    __title__ = "missing dependent option"


class EmptyInputError(ParseError):
    __code__ = FaultCode.EMPTY_INPUT
    __title__ = "no arguments"


class ExecutableNotFoundError(ParseError):
    __code__ = FaultCode.EXECUTABLE_NOT_FOUND
    __title__ = "executable not found"


class TypeCoercionError(CommandException):
    """
    A type handler refused a literal.

    options
    - value: the offending literal.
    - expected: the expected type name.
    - label: "Option", "Argument" or "Environment variable".
    - name: the option/argument/variable the literal belongs to.
    """
    __code__ = FaultCode.INVALID_VALUE
    __title__ = "invalid value"


class HandlerError(CommandException):
    """Wraps a failure raised by a user-supplied handler; `cause` is the original error."""
    __code__ = FaultCode.HANDLER_FAILURE
    __title__ = "command failed"

    @property
    def cause(self):
        return self.options.get("cause", self.__cause__)


def hint_for(suggestions, fallback, /):
    """
    build the one-line hint for a fault about a mistyped name.

    - with suggestions: "did you mean 'x'? <fallback>"
    - without: fallback unchanged
    """
    if suggestions:
        return "did you mean %r? %s" % (suggestions[0], fallback)
    return fallback


def trigger(fault, /, **options):
    """
    surface a fault with the given runtime options.

    contract
    - fault must provide __trigger__ and __replace__ methods (see CommandException).
    - options are merged into the fault via copy.replace before triggering.
    - with shell=True the fault is printed and the process exits; otherwise it is raised.
    """
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    copy.replace(fault, **options).__trigger__()


def debugging(environ=os.environ, /):
    """
    whether the error path should also print the cause's traceback.

    enabled by SPRIG_DEBUG=1 or SPRIG_DEBUG=true.
    """
    return environ.get("SPRIG_DEBUG", "").lower() in ("1", "true")


__all__ = (
    "FaultCode",
    "CommandException",
    "ValidationError",
    "ParseError",
    "UnknownOptionError",
    "MissingValueError",
    "UnknownTypeError",
    "UnknownCommandError",
    "MissingArgumentError",
    "TooManyArgumentsError",
    "DuplicateOptionError",
    "StandaloneOptionError",
    "MissingRequiredOptionError",
    "ConflictingOptionError",
    "DependentOptionError",
    "EmptyInputError",
    "ExecutableNotFoundError",
    "TypeCoercionError",
    "HandlerError",
    "hint_for",
    "trigger",
    "debugging",
)
