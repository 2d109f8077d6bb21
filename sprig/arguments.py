r"""
Sprig entity declarations.

Overview
- Specs
  • Option: named, optionally value-bearing entity declared from a flag spec
    ("-p, --port <port:number>").
  • EnvVar: one environment variable under one or more alias names, with exactly
    one value slot ("MY_FLAG <value:boolean>").
  • TypeEntry: a named type handler registered on a command.
  • Completion: a named completion provider registered on a command.
  • Example: a named usage example.

- Introspection & representation
  • ArgumentType metaclass provides stable __repr__/__rich_repr__ and exposes
    fields via read-only properties declared in __introspectable__.

Metadata (sanitized on construction)
- Shared
  • description: Unset | str, trimmed; empty strings rejected.
  • global_/hidden: bool.
- Option only
  • flags: the raw declaration; names must match r"--?[^\W\d_](-?[^\W_]+)*".
    A "--no-name" flag declares a negatable "name" option defaulting to True.
  • standalone/prepend/collect/required: bool.
  • separator: Unset | non-empty str, carried into list slots.
  • default: any value or a zero-argument callable evaluated at parse time.
  • action: Unset | callable(command, options, *args).
  • value: Unset | callable(value, previous) post-processing each value.
  • conflicts/depends: Iterable[str] of option names.

Validation highlights
- Option names must be unique within one declaration.
- EnvVar declarations resolve to exactly one non-optional, non-variadic slot;
  a declaration without groups defaults to "<value:boolean>".

Quick example:
    >>> from sprig.arguments import Option
    >>> Option("-p, --port <port:number>", "listen port").key
    'port'
"""
import functools
import operator
import re
from collections.abc import Iterable

from .coercions import as_type
from .faults import ValidationError, FaultCode
from .grammar import split_spec, parse_argument_list
from .utils import *


class ArgumentType(type):
    """
    Metaclass that turns specs into introspectable records.

    Responsibilities
    - Provide stable, readable __repr__/__rich_repr__ implementations for
      diagnostics and help output.
    - Expose selected fields as read-only properties using mirror() for all
      names listed in __introspectable__.

    Conventions
    - __typename__ is derived from the class name (camel-case split with hyphens)
      and used in messages.
    - __displayable__ (if set) narrows which properties are shown by __rich_repr__;
      otherwise __introspectable__ is used.
    """
    __introspectable__ = ()
    __displayable__ = Unset

    def __new__(cls, name, bases, namespace, **options):
        self = super().__new__(
            cls,
            name,
            bases,
            namespace | {
                "__typename__": re.sub(r"(?<!^)(?=[A-Z])", r"-", name).lower(),
            } | {
                name: mirror(name) for name in namespace.get("__introspectable__", ())
            },
        )

        @rename("__repr__")
        def __repr__(self):
            """
            Return a concise, stable representation with key metadata.

            Example
            - option(name='port', aliases=('p',), ...)
            """
            return f"{type(self).__typename__}({
                ", ".join(map(functools.partial(operator.mod, "%s=%r"), self.__rich_repr__()))
            })"
        self.__repr__ = __repr__

        @rename("__rich_repr__")
        def __rich_repr__(self):
            """
            Yield a sequence of (name, object) pairs for pretty printers.
            """
            for name in coalesce(type(self).__displayable__, type(self).__introspectable__):
                yield name, getattr(self, name)
        self.__rich_repr__ = __rich_repr__

        return self


def _sanitize_metadata(cls, metadata, /):
    """
    Internal: normalize the shared 'description' field.

    - Unset stays Unset (rendered as empty in help).
    - Strings are trimmed and must not be empty.
    """
    if not isinstance(description := metadata["description"], str | Unset):
        raise TypeError(f"{cls.__typename__} 'description' must be a string")
    elif isinstance(description, str) and not (description := description.strip()):
        raise ValueError(f"{cls.__typename__} 'description' cannot be empty")
    metadata["description"] = description


def _sanitize_flag_metadata(cls, metadata, /):
    r"""
    Internal: split an option declaration into names and value slots.

    Responsibilities
    - names: every flag before the first group; each must match
      r"--?[^\W\d_](-?[^\W_]+)*". "--no-name" is rewritten to "--name" and marks
      the option negatable (default True when no default was given).
    - name: first long flag without dashes, else the first flag without dashes.
    - aliases: every other name, without dashes.
    - labels: the names as they are typed ("-p", "--port"), used in messages.
    - arguments: parse_argument_list() of the groups, with the option separator.

    Raises
    - ValidationError: no names, a malformed name, or a duplicate name.
    """
    spec = split_spec(metadata["flags"])
    if not spec.flags:
        raise ValidationError(
            f"{cls.__typename__} declaration {metadata['flags']!r} must specify at least one flag",
            code=FaultCode.MALFORMED_DEFINITION
        )

    labels = []
    negatable = False
    for flag in spec.flags:
        if not re.fullmatch(r"--?[^\W\d_](-?[^\W_]+)*", flag):
            raise ValidationError(
                f"{cls.__typename__} flag {flag!r} is not a valid shell-style option name",
                code=FaultCode.MALFORMED_DEFINITION,
                hint="use '-x' or '--long-name'"
            )
        if negation := flag.startswith("--no-"):
            flag = "--" + flag.removeprefix("--no-")
            negatable = True
        if flag in labels:
            # "--color, --no-color" declares one negatable option
            if negation or "--no-" + flag.removeprefix("--") in spec.flags:
                continue
            raise ValidationError(f"{cls.__typename__} flag {flag!r} is declared twice")
        labels.append(flag)

    names = [label.lstrip("-") for label in labels]
    longs = [label.lstrip("-") for label in labels if label.startswith("--")]
    metadata["name"] = name = longs[0] if longs else names[0]
    metadata["aliases"] = tuple(alias for alias in names if alias != name)
    metadata["labels"] = tuple(labels)
    metadata["negatable"] = negatable
    affirmed = any("--" + flag.removeprefix("--no-") in spec.flags for flag in spec.flags if flag.startswith("--no-"))
    if negatable and not affirmed and metadata["default"] is Unset:
        metadata["default"] = True

    if not isinstance(separator := metadata["separator"], str | Unset):
        raise TypeError(f"{cls.__typename__} 'separator' must be a string")
    elif isinstance(separator, str) and not separator:
        raise ValueError(f"{cls.__typename__} 'separator' cannot be empty")
    metadata["arguments"] = parse_argument_list(spec.arguments, coalesce(separator, ","))


def _sanitize_callable_metadata(cls, metadata, /, *names):
    """
    Internal: 'action' and 'value' style fields must be Unset or callable.
    """
    for name in names:
        if metadata[name] is not Unset and not callable(metadata[name]):
            raise TypeError(f"{cls.__typename__} {name!r} must be callable")


def _sanitize_relations(cls, metadata, /, *names):
    """
    Internal: 'conflicts'/'depends' become tuples of option names without dashes.
    """
    for name in names:
        if isinstance(related := metadata[name], str) or not isinstance(related, Iterable):
            raise TypeError(f"{cls.__typename__} {name!r} must be an iterable of option names")
        sanitized = []
        for item in related:
            if not isinstance(item, str):
                raise TypeError(f"{cls.__typename__} {name!r} must contain only strings")
            sanitized.append(item.lstrip("-"))
        metadata[name] = tuple(dict.fromkeys(sanitized))


class Option(metaclass=ArgumentType):
    """
    Named option declaration.

    Highlights
    - Declared from a flag spec: "-f, --force", "-p, --port <port:number>",
      "--tags <tags:string[]>", "--files [...files:string]".
    - Zero value slots: a boolean toggle; one slot: a scalar (or a list for
      "type[]" and variadic slots); several slots: a list of each slot's value.
    - "--no-name" declares a negatable option named "name" (default True).
    - Prepend options (built-in help/version) sort ahead of user options.

    Properties
    - The names listed in __introspectable__ are exposed as read-only attributes
      on instances, mirroring the sanitized metadata values.
    """

    __introspectable__ = (
        "name",
        "aliases",
        "labels",
        "key",
        "description",
        "flags",
        "arguments",
        "global_",
        "hidden",
        "standalone",
        "prepend",
        "collect",
        "required",
        "negatable",
        "separator",
        "default",
        "action",
        "value",
        "conflicts",
        "depends",
    )

    __displayable__ = (
        "name",
        "aliases",
        "description",
        "arguments",
        "global_",
        "standalone",
    )

    def __init__(
            self,
            flags,
            description=Unset,
            /,
            *,
            global_=False,
            hidden=False,
            standalone=False,
            prepend=False,
            collect=False,
            required=False,
            separator=Unset,
            default=Unset,
            action=Unset,
            value=Unset,
            conflicts=(),
            depends=()
    ):
        """
        Construct an Option from its declaration.

        Parameters
        - flags: str
          Flag names and optional argument groups, e.g. "-p, --port <port:number>".
        - description: Unset | str
          Short help text.
        - global_: bool
          Visible to every descendant of the declaring command.
        - hidden: bool
          Suppressed from help; still parsed.
        - standalone: bool
          Must be supplied alone; its action replaces the command handler and it
          suppresses required-argument/option validation.
        - prepend: bool
          Sorted ahead of user options.
        - collect: bool
          May be repeated; values are collected into a list.
        - required: bool
          Must be supplied (unless a standalone option is).
        - separator: Unset | str
          Separator for "type[]" list slots (default ",").
        - default: Any
          Value (or zero-argument callable) used when the option is absent.
        - action: Unset | callable(command, options, *args)
        - value: Unset | callable(value, previous) -> value
        - conflicts / depends: Iterable[str]
          Option names that must not / must be supplied alongside this one.
        """
        if not isinstance(flags, str):
            raise TypeError(f"{type(self).__typename__} 'flags' must be a string")

        metadata = {
            "flags": flags,
            "description": description,
            "global_": bool(global_),
            "hidden": bool(hidden),
            "standalone": bool(standalone),
            "prepend": bool(prepend),
            "collect": bool(collect),
            "required": bool(required),
            "separator": separator,
            "default": default,
            "action": action,
            "value": value,
            "conflicts": conflicts,
            "depends": depends,
        }
        _sanitize_metadata(type(self), metadata)
        _sanitize_flag_metadata(type(self), metadata)
        _sanitize_callable_metadata(type(self), metadata, "action", "value")
        _sanitize_relations(type(self), metadata, "conflicts", "depends")
        metadata["key"] = keyify(metadata["name"])

        for name, object in metadata.items():
            setattr(self, "_" + name, object)

    @property
    def names(self):
        """Canonical name followed by the aliases."""
        return (self._name, *self._aliases)

    @property
    def boolean(self):
        """Toggle-like: no value slot, or a single boolean slot."""
        return not self._arguments or (len(self._arguments) == 1 and self._arguments[0].type == "boolean")


class EnvVar(metaclass=ArgumentType):
    """
    Environment variable declaration.

    One variable under one or more alias names ("MY_FLAG, MY_FLAG_ALT"), bound
    to exactly one value slot. Without argument groups the slot defaults to
    "<value:boolean>".
    """

    __introspectable__ = (
        "names",
        "description",
        "argument",
        "global_",
        "hidden",
    )

    def __init__(self, spec, description=Unset, /, *, global_=False, hidden=False):
        if not isinstance(spec, str):
            raise TypeError(f"{type(self).__typename__} 'spec' must be a string")

        metadata = {
            "description": description,
            "global_": bool(global_),
            "hidden": bool(hidden),
        }
        _sanitize_metadata(type(self), metadata)

        split = split_spec(spec)
        if not split.flags:
            raise ValidationError(
                f"{type(self).__typename__} declaration {spec!r} must specify at least one name",
                code=FaultCode.MALFORMED_DEFINITION
            )
        arguments = parse_argument_list(split.arguments or "<value:boolean>")
        if len(arguments) != 1:
            raise ValidationError(
                f"an environment variable can only have one value but {split.flags[0]!r} has {len(arguments)}",
                code=FaultCode.MALFORMED_DEFINITION
            )
        if arguments[0].optional:
            raise ValidationError(
                f"an environment variable cannot have an optional value but {split.flags[0]!r} is declared as optional",
                code=FaultCode.MALFORMED_DEFINITION
            )
        if arguments[0].variadic:
            raise ValidationError(
                f"an environment variable cannot have a variadic value but {split.flags[0]!r} is declared as variadic",
                code=FaultCode.MALFORMED_DEFINITION
            )
        metadata["names"] = split.flags
        metadata["argument"] = arguments[0]

        for name, object in metadata.items():
            setattr(self, "_" + name, object)

    @property
    def name(self):
        return self._names[0]

    @property
    def type(self):
        return self._argument.type


class TypeEntry(metaclass=ArgumentType):
    """Named type handler; `handler` is always a Type (callables are wrapped)."""

    __introspectable__ = (
        "name",
        "handler",
        "global_",
    )

    def __init__(self, name, handler, /, *, global_=False):
        if not isinstance(name, str) or not (name := name.strip()):
            raise TypeError(f"{type(self).__typename__} 'name' must be a non-empty string")
        self._name = name
        self._handler = as_type(handler)
        self._global_ = bool(global_)


class Completion(metaclass=ArgumentType):
    """Named completion provider: handler(command, parent) -> list of candidates."""

    __introspectable__ = (
        "name",
        "handler",
        "global_",
    )

    def __init__(self, name, handler, /, *, global_=False):
        if not isinstance(name, str) or not (name := name.strip()):
            raise TypeError(f"{type(self).__typename__} 'name' must be a non-empty string")
        if not callable(handler):
            raise TypeError(f"{type(self).__typename__} 'handler' must be callable")
        self._name = name
        self._handler = handler
        self._global_ = bool(global_)


class Example(metaclass=ArgumentType):

    __introspectable__ = (
        "name",
        "body",
    )

    def __init__(self, name, body, /):
        if not isinstance(name, str) or not (name := name.strip()):
            raise TypeError(f"{type(self).__typename__} 'name' must be a non-empty string")
        if not isinstance(body, str):
            raise TypeError(f"{type(self).__typename__} 'body' must be a string")
        self._name = name
        self._body = body


__all__ = (
    "Option",
    "EnvVar",
    "TypeEntry",
    "Completion",
    "Example",
)

# Remove the internal metaclass from the module namespace to avoid accidental
# exposure in docs, autocompletion, or star-imports. Not part of the public API.
del ArgumentType
