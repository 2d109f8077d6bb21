"""
Sprig type handlers.

A type handler turns one raw literal into a typed value. Every handler speaks
the same interface:

- coerce(info) -> value          raise TypeCoercionError on an invalid literal
- complete(command, parent)      candidate values for shell completion, only
                                 meaningful when `completable` is True

Plain callables are accepted wherever a handler is expected and are wrapped in
FunctionType, so the registry never has to sniff shapes.

Built-ins
- BooleanType  "true"/"false"/"1"/"0", case-insensitive
- NumberType   decimal, hex (0x), octal (0o), binary (0b) and scientific literals
- StringType   any literal, optionally restricted to a set of choices
"""
import re
from typing import NamedTuple

from .faults import TypeCoercionError

_NUMBER = re.compile(r"""
    [+-]?
    (?:
        0[xX][0-9a-fA-F]+
      | 0[oO][0-7]+
      | 0[bB][01]+
      | (?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?
    )
""", re.VERBOSE)


class TypeInfo(NamedTuple):
    """Context handed to a handler: where the literal came from and what it is."""
    label: str
    type: str
    name: str
    value: str


def is_number(literal, /):
    """whether literal is a number the NumberType accepts ("-5", "0x1F", "1e3")."""
    return _NUMBER.fullmatch(literal) is not None


def invalid(info, /, expected=None, hint=None):
    """build the TypeCoercionError for an invalid literal."""
    expected = expected or info.type
    return TypeCoercionError(
        "%s %r must be of type %r, but got %r" % (info.label.lower(), info.name, expected, info.value),
        value=info.value,
        expected=expected,
        label=info.label,
        name=info.name,
        hint=hint
    )


class Type:
    """
    Base type handler.

    Subclasses override coerce(); completable subclasses also override
    complete() and set `completable = True`.
    """
    completable = False

    def coerce(self, info, /):
        raise NotImplementedError

    def complete(self, command, parent, /):
        return []

    def __call__(self, info, /):
        return self.coerce(info)

    def __repr__(self):
        return "%s()" % type(self).__name__


class BooleanType(Type):
    completable = True

    def coerce(self, info, /):
        match info.value.lower():
            case "true" | "1":
                return True
            case "false" | "0":
                return False
        raise invalid(info, hint="use one of 'true', 'false', '1' or '0'")

    def complete(self, command, parent, /):
        return ["true", "false"]


class NumberType(Type):

    def coerce(self, info, /):
        value = info.value.strip()
        if not is_number(value):
            raise invalid(info)
        unsigned = value.lstrip("+-")
        if unsigned[:2].lower() in ("0x", "0o", "0b"):
            return int(value, 0)
        if any(character in unsigned for character in ".eE"):
            return float(value)
        return int(value, 10)


class StringType(Type):

    def __init__(self, *choices):
        for choice in choices:
            if not isinstance(choice, str):
                raise TypeError("StringType() choices must be strings")
        self.choices = tuple(dict.fromkeys(choices))

    @property
    def completable(self):
        return bool(self.choices)

    def coerce(self, info, /):
        if self.choices and info.value not in self.choices:
            raise invalid(info, "one of %s" % ", ".join(map(repr, self.choices)))
        return info.value

    def complete(self, command, parent, /):
        return list(self.choices)

    def __repr__(self):
        return "StringType(%s)" % ", ".join(map(repr, self.choices))


class FunctionType(Type):
    """
    Adapter for plain callables: handler(info) -> value.

    A ValueError raised by the callable is reported as a TypeCoercionError.
    """

    def __init__(self, handler):
        if not callable(handler):
            raise TypeError("FunctionType() argument must be callable")
        self.handler = handler

    def coerce(self, info, /):
        try:
            return self.handler(info)
        except ValueError as error:
            raise invalid(info, hint=str(error) or None) from error

    def __repr__(self):
        return "FunctionType(%s)" % getattr(self.handler, "__qualname__", repr(self.handler))


def as_type(handler, /):
    """return handler as a Type, wrapping plain callables in FunctionType."""
    if isinstance(handler, Type):
        return handler
    if callable(handler):
        return FunctionType(handler)
    raise TypeError("type handler must be a Type instance or a callable")


BUILTINS = {
    "string": StringType,
    "number": NumberType,
    "boolean": BooleanType,
}


__all__ = (
    "TypeInfo",
    "Type",
    "BooleanType",
    "NumberType",
    "StringType",
    "FunctionType",
    "as_type",
    "invalid",
    "is_number",
)
