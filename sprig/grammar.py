r"""
Sprig declaration grammar.

A declaration is a comma/space separated list of names followed by an ordered
sequence of argument groups:

    "-p, --port <port:number>"
    "serve <host:string> [port:number]"
    "MY_FLAG, MY_OTHER_FLAG <value:boolean>"
    "<files:string> [...rest:string[]]"

Groups
- <name:type>  required slot
- [name:type]  optional slot
- ...name      variadic slot (consumes every remaining token); must be last
- type         identifier, or identifier[] for a list value; defaults to "string"

Ordering rules (checked at build time, ValidationError)
- at most one variadic slot, and it is the last one;
- no required slot after an optional or variadic one.
"""
import re
from typing import NamedTuple

from .faults import ValidationError, FaultCode

_GROUP = re.compile(r"""
    \s*
    (?:
        <(?P<required>[^<>]*)>
      | \[(?P<optional>(?:[^\[\]]|\[\])*)\]
    )
""", re.VERBOSE)

_BODY = re.compile(r"""
    \s*
    (?P<variadic>\.\.\.)?
    (?P<name>[^\s:<>\[\]]+)
    \s*
    (?:
        :\s*(?P<type>[^\W\d][\w-]*)(?P<list>\[\])?
    )?
    \s*
""", re.VERBOSE)


class Argument(NamedTuple):
    """One declared positional slot (or one value slot of an option)."""
    name: str
    type: str = "string"
    optional: bool = False
    variadic: bool = False
    list: bool = False
    separator: str = ","


class Spec(NamedTuple):
    """Result of split_spec(): the leading names and the raw argument groups."""
    flags: tuple
    arguments: str


def split_spec(spec, /):
    """
    separate a declaration into its names and its argument groups.

    - names are the comma/space/'=' separated tokens before the first '<' or '['
      (order preserved, duplicates dropped);
    - arguments is the remainder starting at that bracket, stripped ("" when absent).

    Examples
    - split_spec("-f, --foo <value:string>") -> Spec(("-f", "--foo"), "<value:string>")
    - split_spec("[file]") -> Spec((), "[file]")
    """
    if not isinstance(spec, str):
        raise TypeError("split_spec() argument must be a string")
    match = re.search(r"[<\[]", spec)
    head, tail = (spec[:match.start()], spec[match.start():]) if match else (spec, "")
    flags = tuple(dict.fromkeys(token for token in re.split(r"[,\s=]+", head.strip()) if token))
    return Spec(flags, tail.strip())


def _malformed(definition, detail):
    return ValidationError(
        "malformed argument declaration %r: %s" % (definition, detail),
        code=FaultCode.MALFORMED_DEFINITION,
        hint="expected groups like '<name:type>' or '[...name:type[]]'"
    )


def parse_argument_list(definition, /, separator=","):
    """
    parse zero or more argument groups into a tuple of Argument slots.

    separator is carried into every list-typed slot (an option's `separator`).
    """
    if not isinstance(definition, str):
        raise TypeError("parse_argument_list() argument must be a string")

    arguments = []
    optional = False
    variadic = False
    position = 0
    definition = definition.rstrip()

    while position < len(definition):
        if not (group := _GROUP.match(definition, position)):
            raise _malformed(definition, "unexpected text %r" % definition[position:].strip())
        position = group.end()

        required = group["required"] is not None
        body = group["required"] if required else group["optional"]
        if not (match := _BODY.fullmatch(body)):
            raise _malformed(definition, "invalid group %r" % group.group().strip())

        if variadic:
            raise _malformed(definition, "only the last argument can be variadic")
        if required and optional:
            raise _malformed(definition, "required argument %r cannot follow an optional one" % match["name"])

        optional = optional or not required
        variadic = bool(match["variadic"])
        arguments.append(Argument(
            match["name"],
            match["type"] or "string",
            not required,
            variadic,
            bool(match["list"]),
            separator
        ))

    return tuple(arguments)


def format_argument_list(arguments, /):
    """
    render Argument slots back into declaration syntax.

    parse_argument_list(format_argument_list(slots)) == slots for any slots
    produced by parse_argument_list() with the default separator.
    """
    groups = []
    for argument in arguments:
        body = ("..." if argument.variadic else "") + argument.name + ":" + argument.type
        body += "[]" if argument.list else ""
        groups.append(("[%s]" if argument.optional else "<%s>") % body)
    return " ".join(groups)


__all__ = (
    "Argument",
    "Spec",
    "split_spec",
    "parse_argument_list",
    "format_argument_list",
)
