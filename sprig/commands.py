"""
Sprig command layer: build a command tree, resolve names through it, and run it.

What this module provides
- Command: one node of a command tree with:
  • Registries for options, sub-commands, types, environment variables,
    completions, examples and aliases, each with local and global entries.
  • One generic ancestor walk resolving global entries for every entity kind.
  • parse(): resolve the target node, tokenize flags, read environment
    variables, bind positionals and dispatch to the right handler.
- ParseResult: what parse() returns.

Core ideas
- Build, then parse: registrations are refused while a parse pass runs.
- Downward-only globals: an entry marked global is visible to every descendant
  of the node that declared it, never to its siblings or ancestors, and a local
  entry of the same name always shadows it.
- No builder cursor: add_command() returns the child, the caller holds it.
- Uniform failures: every fault reaching the top of parse() is handed to the
  node being parsed, which raises it (throw mode) or prints help + the fault and
  exits with status 1.

Quick start
    from sprig import Command

    app = Command("app", "demo application", version="1.0.0")
    app.add_option("-d, --debug", "enable debug output", global_=True)

    serve = app.add_command("serve <port:number>", "start the server")
    serve.set_action(lambda options, port: print(options, port))

    if __name__ == "__main__":
        app.parse()

Dispatch order (after a successful parse)
1. A supplied standalone option with an action runs instead of the handler.
2. Actions of the other supplied options run first, then the handler.
3. Without a handler, the default sub-command is dispatched with the same values.
4. Otherwise nothing runs and the bound result is returned.
"""
import asyncio
import copy
import functools
import inspect
import logging
import operator
import os
import re
import shlex
import sys
from collections.abc import Iterable
from typing import NamedTuple

from rich.console import Console

from .arguments import Option, EnvVar, TypeEntry, Completion, Example
from .binder import bind_arguments
from .coercions import TypeInfo, BUILTINS
from .faults import *
from .flags import parse_flags
from .grammar import split_spec, parse_argument_list
from .helper import render_help, render_version
from .launcher import Launcher
from .utils import *

logger = logging.getLogger(__name__)

console = Console()


class ParseResult(NamedTuple):
    """
    Outcome of Command.parse().

    - options: typed option values keyed by option key ("dry-run" -> "dry_run").
    - args: bound positional values, in slot order.
    - command: the resolved target node.
    - literal: tokens found after "--", untouched.
    - environment: coerced environment values keyed by the variable's primary name.
    - status: exit status of an executable hand-off, else None.
    """
    options: dict
    args: tuple
    command: object
    literal: list
    environment: dict
    status: object = None


class _Kind(NamedTuple):
    label: str
    members: object
    names: object


_KINDS = {
    "option": _Kind("option", lambda command: command._options, operator.attrgetter("names")),
    "command": _Kind("command", lambda command: command._children.values(), operator.attrgetter("names")),
    "type": _Kind("type", lambda command: command._types.values(), lambda entry: (entry.name,)),
    "env": _Kind("environment variable", lambda command: command._env_vars, operator.attrgetter("names")),
    "completion": _Kind("completion", lambda command: command._completions.values(), lambda entry: (entry.name,)),
}


class CommandType(type):
    """
    Metaclass giving commands stable __repr__/__rich_repr__ and mirrored,
    read-only properties for every name in __introspectable__.
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
            - command(name='serve', aliases=['s'], ...)
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


def _show_help(command, options, *args):
    command.help()
    sys.exit(0)


def _show_version(command, options, *args):
    command.show_version()
    sys.exit(0)


async def _wait(awaitable):
    return await awaitable


def _settle(result):
    """drive an awaitable handler result to completion."""
    if inspect.isawaitable(result):
        return asyncio.run(_wait(result))
    return result


class Command(metaclass=CommandType):
    """
    One node of a command tree.

    Responsibilities
    - Registration: options, sub-commands, types, environment variables,
      completions, examples, aliases and the argument list, each checked for
      uniqueness against this node's own scope.
    - Resolution: local entries first, then the global entries of ancestors
      (closest first), through one generic walk.
    - Execution: parse() resolves the target node and dispatches to it.

    Lifecycle
    - Created directly (a root) or through add_command() (a child, re-parented
      when an existing node is passed).
    - The built-in help and version options are registered on the root on the
      first parse(), ahead of user options.

    Notes
    - Collections are exposed as read-only copies; mutate through the add_*,
      set_* and remove_* methods.
    - The parent is a back-reference used for resolution only; children are
      owned by name.
    """

    __introspectable__ = (
        "name",
        "aliases",
        "parent",
        "children",
        "arguments",
        "hidden",
        "global_",
        "allow_empty",
        "stop_early",
        "raw_args",
        "default_command",
        "executable",
        "invoked_through",
    )

    __displayable__ = (
        "name",
        "aliases",
        "arguments",
        "hidden",
        "global_",
        "executable",
    )

    def __init__(self, name=Unset, description=Unset, /, *, version=Unset, colorful=Unset, fancy=Unset):
        """
        Construct a command node.

        Parameters
        - name: Unset | str
          Defaults to the running program's file name.
        - description: Unset | str | Callable[[], str]
          A callable is evaluated once, on first access.
        - version: Unset | str
          Inherited by descendants that do not set their own.
        - colorful, fancy: Unset | bool
          Rendering switches; inherited from the parent when Unset.
        """
        name = coalesce(name, os.path.basename(sys.argv[0]))
        if not isinstance(name, str) or not (name := name.strip()):
            raise TypeError(f"{type(self).__typename__} 'name' must be a non-empty string")
        if not isinstance(description, str | Unset) and not callable(description):
            raise TypeError(f"{type(self).__typename__} 'description' must be a string or a callable")
        if not isinstance(version, str | Unset):
            raise TypeError(f"{type(self).__typename__} 'version' must be a string")

        self._name = name
        self._description = description
        self._version = version
        self._colorful = colorful
        self._fancy = fancy
        self._aliases = []
        self._parent = None
        self._children = {}
        self._options = []
        self._arguments = ()
        self._examples = []
        self._env_vars = []
        self._types = {}
        self._completions = {}
        self._action = Unset
        self._hidden = False
        self._global_ = False
        self._allow_empty = True
        self._stop_early = False
        self._raw_args = False
        self._default_command = Unset
        self._executable = False
        self._throw = False
        self._help_option = Unset
        self._version_option = Unset
        self._builtins = []
        self._defaults = False
        self._busy = False
        self._invoked_through = None

        for type_name, handler in BUILTINS.items():
            self.add_type(type_name, handler())

    # ── identity ───────────────────────────────────────────────────────────────

    @property
    def root(self):
        """Return the topmost command of the tree this node belongs to."""
        command = self
        while command._parent is not None:
            command = command._parent
        return command

    @property
    def path(self):
        """Space-joined names from the root to this node ("app serve start")."""
        names = [self._name]
        command = self._parent
        while command is not None:
            names.append(command._name)
            command = command._parent
        return " ".join(reversed(names))

    @property
    def names(self):
        return (self._name, *self._aliases)

    @property
    def description(self):
        """The description; a callable description is evaluated once."""
        if callable(self._description):
            self._description = str(self._description())
        return coalesce(self._description, "")

    @property
    def short_description(self):
        return self.description.strip().split("\n", 1)[0]

    @property
    def version(self):
        return self._version

    def get_version(self):
        """Own version, else the closest ancestor's, else Unset."""
        command = self
        while command is not None:
            if command._version is not Unset:
                return command._version
            command = command._parent
        return Unset

    @property
    def colorful(self):
        if self._colorful is not Unset:
            return bool(self._colorful)
        return self._parent.colorful if self._parent is not None else True

    @property
    def fancy(self):
        if self._fancy is not Unset:
            return bool(self._fancy)
        return self._parent.fancy if self._parent is not None else False

    @property
    def should_throw(self):
        """Throw mode is inherited downward: set on this node or any ancestor."""
        return self._throw or (self._parent is not None and self._parent.should_throw)

    # ── generic resolution ─────────────────────────────────────────────────────

    def _own(self, kind, /, hidden=False):
        return [entity for entity in _KINDS[kind].members(self) if hidden or not getattr(entity, "hidden", False)]

    def _inherited(self, kind, /, hidden=False):
        """
        Collect the global entities of every ancestor, closest first.

        An ancestor entity is skipped when any of its names or aliases is
        owned by this node, or was already provided by a closer ancestor.
        """
        kind = _KINDS[kind]
        seen = {name for entity in kind.members(self) for name in kind.names(entity)}
        found = []
        ancestor = self._parent
        while ancestor is not None:
            for entity in kind.members(ancestor):
                if entity is self or not getattr(entity, "global_", False):
                    continue
                if not hidden and getattr(entity, "hidden", False):
                    continue
                if not seen.isdisjoint(names := kind.names(entity)):
                    continue
                seen.update(names)
                found.append(entity)
            ancestor = ancestor._parent
        return found

    def _lookup_own(self, kind, name, /, hidden=False):
        return next((entity for entity in self._own(kind, hidden) if name in _KINDS[kind].names(entity)), None)

    def _lookup_inherited(self, kind, name, /, hidden=False):
        return next((entity for entity in self._inherited(kind, hidden) if name in _KINDS[kind].names(entity)), None)

    def _lookup(self, kind, name, /, hidden=False):
        if (entity := self._lookup_own(kind, name, hidden)) is not None:
            return entity
        return self._lookup_inherited(kind, name, hidden)

    def _all(self, kind, /, hidden=False):
        return self._own(kind, hidden) + self._inherited(kind, hidden)

    # ── registration ───────────────────────────────────────────────────────────

    def _check_open(self):
        command = self
        while command is not None:
            if command._busy:
                raise ValidationError(
                    f"command {self.path!r} cannot be modified while it is being parsed",
                    code=FaultCode.LOCKED_COMMAND
                )
            command = command._parent

    def _duplicate(self, kind, name):
        return ValidationError(
            f"{_KINDS[kind].label} {name!r} is already declared on command {self.path!r}",
            input=name,
            hint="pass override=True to replace it"
        )

    def _claim(self, kind, names, override, /, skip=None):
        """the own entries sharing one of names; refused unless override."""
        names = set(names)
        clashes = [
            other for other in _KINDS[kind].members(self)
            if other is not skip and names & set(_KINDS[kind].names(other))
        ]
        if clashes and not override:
            raise self._duplicate(kind, sorted(names & set(_KINDS[kind].names(clashes[0])))[0])
        return clashes

    def add_option(self, flags, description=Unset, /, *, override=False, **options):
        """
        Declare an option.

        Parameters
        - flags: str, e.g. "-p, --port <port:number>" or "--no-color".
        - description: Unset | str.
        - override: replace any own option sharing a name or alias.
        - **options: global_, hidden, standalone, prepend, collect, required,
          separator, default, action, value, conflicts, depends (see Option).

        Returns self.
        """
        self._check_open()
        self._insert_option(Option(flags, description, **options), override)
        return self

    def _insert_option(self, option, override):
        for clash in self._claim("option", option.names, override):
            self._options.remove(clash)
        if option.prepend:
            position = sum(1 for other in self._options if other.prepend)
            self._options.insert(position, option)
        else:
            self._options.append(option)
        logger.debug("registered option %r on %r", option.name, self.path)
        return option

    def add_command(self, spec, description_or_node=Unset, /, override=False):
        """
        Declare a sub-command and return it.

        Parameters
        - spec: "name [aliases...] [argument groups]", e.g. "serve, s <port:number>".
        - description_or_node: a description, or a pre-built Command to attach
          (detached from its previous parent and renamed).
        - override: replace an own sub-command sharing a name or alias.

        Returns the child, which is the builder cursor for further calls.
        """
        self._check_open()
        if not isinstance(spec, str):
            raise TypeError(f"{type(self).__typename__} command 'spec' must be a string")
        split = split_spec(spec)
        if not split.flags:
            raise ValidationError(
                f"command declaration {spec!r} must specify a name",
                code=FaultCode.MALFORMED_DEFINITION
            )
        name, *aliases = split.flags
        arguments = parse_argument_list(split.arguments) if split.arguments else Unset

        node = description_or_node if isinstance(description_or_node, Command) else None
        if node is not None:
            ancestor = self
            while ancestor is not None:
                if ancestor is node:
                    raise ValidationError(f"command {node.path!r} cannot be attached to itself or to one of its descendants")
                ancestor = ancestor._parent

        # the node is only touched once its future names are known to be free
        names = (name, *(node._aliases if node is not None else ()), *aliases)
        clashes = self._claim("command", names, override, skip=node)

        if node is not None:
            node._detach()
            node._name = name
        else:
            node = Command(name, description_or_node)
        for alias in aliases:
            if alias not in node._aliases:
                node._aliases.append(alias)
        for clash in clashes:
            clash._parent = None
            del self._children[clash._name]
        node._parent = self
        self._children[node._name] = node
        if arguments is not Unset:
            node._arguments = arguments
        logger.debug("registered command %r", node.path)
        return node

    def _detach(self):
        """leave the current parent and drop root-only built-ins."""
        if self._parent is not None and self._parent._children.get(self._name) is self:
            del self._parent._children[self._name]
        self._parent = None
        self._reset_defaults()

    def add_alias(self, alias, /):
        """Add an alias; it must not clash with this node's names or its siblings'."""
        self._check_open()
        if not isinstance(alias, str) or not (alias := alias.strip()):
            raise TypeError(f"{type(self).__typename__} alias must be a non-empty string")
        if alias in self.names:
            raise ValidationError(f"alias {alias!r} is already declared on command {self.path!r}", input=alias)
        if self._parent is not None:
            for sibling in self._parent._children.values():
                if sibling is not self and alias in sibling.names:
                    raise ValidationError(
                        f"alias {alias!r} is already used by command {sibling.path!r}",
                        input=alias
                    )
        self._aliases.append(alias)
        return self

    def set_arguments(self, spec, /):
        """Declare the positional arguments, e.g. "<in:string> [out:number]"."""
        self._check_open()
        self._arguments = parse_argument_list(spec)
        return self

    def add_env_var(self, spec, description=Unset, /, *, override=False, **options):
        """
        Declare an environment variable, e.g. "MY_FLAG" or "PORT, APP_PORT <port:number>".

        Options: global_, hidden.
        """
        self._check_open()
        variable = EnvVar(spec, description, **options)
        for clash in self._claim("env", variable.names, override):
            self._env_vars.remove(clash)
        self._env_vars.append(variable)
        return self

    def add_type(self, name, handler, /, *, global_=False, override=False):
        """
        Register a named type handler (a Type or a plain callable(info)).

        Completable handlers also register a completion under the same name.
        """
        self._check_open()
        entry = TypeEntry(name, handler, global_=global_)
        if entry.name in self._types and not override:
            raise self._duplicate("type", entry.name)
        self._types[entry.name] = entry
        if entry.handler.completable:
            self._completions[entry.name] = Completion(entry.name, entry.handler.complete, global_=global_)
        return self

    def add_completion(self, name, handler, /, *, global_=False, override=False):
        """Register a completion provider: handler(command, parent) -> list."""
        self._check_open()
        completion = Completion(name, handler, global_=global_)
        if completion.name in self._completions and not override:
            raise self._duplicate("completion", completion.name)
        self._completions[completion.name] = completion
        return self

    def add_example(self, name, body, /):
        self._check_open()
        example = Example(name, body)
        if any(other.name == example.name for other in self._examples):
            raise ValidationError(
                f"example {example.name!r} is already declared on command {self.path!r}",
                input=example.name
            )
        self._examples.append(example)
        return self

    # ── configuration ──────────────────────────────────────────────────────────

    def set_action(self, handler, /):
        """Set the primary handler: handler(options, *args); may return an awaitable."""
        self._check_open()
        if not callable(handler):
            raise TypeError(f"{type(self).__typename__} action must be callable")
        self._action = handler
        return self

    def set_default_command(self, name, /):
        self._check_open()
        if not isinstance(name, str):
            raise TypeError(f"{type(self).__typename__} default command must be a string")
        self._default_command = name
        return self

    def set_help_option(self, flags=Unset, description=Unset, /, **options):
        """
        Customize the built-in help option, or disable it with set_help_option(False).
        """
        self._check_open()
        self._help_option = False if flags is False else (flags, description, options)
        self._reset_defaults()
        return self

    def set_version_option(self, flags=Unset, description=Unset, /, **options):
        """
        Customize the built-in version option, or disable it with set_version_option(False).
        """
        self._check_open()
        self._version_option = False if flags is False else (flags, description, options)
        self._reset_defaults()
        return self

    def set_name(self, name, /):
        self._check_open()
        if not isinstance(name, str) or not (name := name.strip()):
            raise TypeError(f"{type(self).__typename__} 'name' must be a non-empty string")
        if (parent := self._parent) is not None:
            for sibling in parent._children.values():
                if sibling is not self and name in sibling.names:
                    raise parent._duplicate("command", name)
            del parent._children[self._name]
            parent._children[name] = self
        self._name = name
        return self

    def set_description(self, description, /):
        self._check_open()
        if not isinstance(description, str) and not callable(description):
            raise TypeError(f"{type(self).__typename__} 'description' must be a string or a callable")
        self._description = description
        return self

    def set_version(self, version, /):
        self._check_open()
        if not isinstance(version, str):
            raise TypeError(f"{type(self).__typename__} 'version' must be a string")
        self._version = version
        self._reset_defaults()
        return self

    def set_hidden(self, hidden=True, /):
        self._check_open()
        self._hidden = bool(hidden)
        return self

    def set_global(self, global_=True, /):
        self._check_open()
        self._global_ = bool(global_)
        return self

    def set_allow_empty(self, allow_empty=True, /):
        self._check_open()
        self._allow_empty = bool(allow_empty)
        return self

    def set_stop_early(self, stop_early=True, /):
        self._check_open()
        self._stop_early = bool(stop_early)
        return self

    def set_raw_args(self, raw_args=True, /):
        self._check_open()
        self._raw_args = bool(raw_args)
        return self

    def set_executable(self, executable=True, /):
        self._check_open()
        self._executable = bool(executable)
        return self

    def set_throw(self, throw=True, /):
        self._check_open()
        self._throw = bool(throw)
        return self

    # ── removal ────────────────────────────────────────────────────────────────

    def remove_option(self, name, /):
        """Remove an own option by name or alias; return it, or None."""
        self._check_open()
        if (option := self._lookup_own("option", name.lstrip("-"), hidden=True)) is not None:
            self._options.remove(option)
        return option

    def remove_command(self, name, /):
        """Detach an own sub-command by name or alias; return it, or None."""
        self._check_open()
        if (command := self._lookup_own("command", name, hidden=True)) is not None:
            del self._children[command._name]
            command._parent = None
        return command

    # ── getters ────────────────────────────────────────────────────────────────

    def get_options(self, hidden=False):
        """Own and inherited options, prepend options first."""
        return sorted(self._all("option", hidden), key=lambda option: not option.prepend)

    def get_base_options(self, hidden=False):
        return self._own("option", hidden)

    def get_global_options(self, hidden=False):
        return self._inherited("option", hidden)

    def get_option(self, name, hidden=False):
        return self._lookup("option", name.lstrip("-"), hidden)

    def get_base_option(self, name, hidden=False):
        return self._lookup_own("option", name.lstrip("-"), hidden)

    def get_global_option(self, name, hidden=False):
        return self._lookup_inherited("option", name.lstrip("-"), hidden)

    def has_options(self, hidden=False):
        return bool(self.get_options(hidden))

    def has_option(self, name, hidden=False):
        return self.get_option(name, hidden) is not None

    def get_commands(self, hidden=False):
        return self._all("command", hidden)

    def get_base_commands(self, hidden=False):
        return self._own("command", hidden)

    def get_global_commands(self, hidden=False):
        return self._inherited("command", hidden)

    def get_command(self, name, hidden=False):
        return self._lookup("command", name, hidden)

    def get_base_command(self, name, hidden=False):
        return self._lookup_own("command", name, hidden)

    def get_global_command(self, name, hidden=False):
        return self._lookup_inherited("command", name, hidden)

    def has_commands(self, hidden=False):
        return bool(self.get_commands(hidden))

    def has_command(self, name, hidden=False):
        return self.get_command(name, hidden) is not None

    def get_types(self):
        return self._all("type")

    def get_base_types(self):
        return self._own("type")

    def get_global_types(self):
        return self._inherited("type")

    def get_type(self, name):
        return self._lookup("type", name)

    def get_base_type(self, name):
        return self._lookup_own("type", name)

    def get_global_type(self, name):
        return self._lookup_inherited("type", name)

    def has_type(self, name):
        return self.get_type(name) is not None

    def get_env_vars(self, hidden=False):
        return self._all("env", hidden)

    def get_base_env_vars(self, hidden=False):
        return self._own("env", hidden)

    def get_global_env_vars(self, hidden=False):
        return self._inherited("env", hidden)

    def get_env_var(self, name, hidden=False):
        return self._lookup("env", name, hidden)

    def get_base_env_var(self, name, hidden=False):
        return self._lookup_own("env", name, hidden)

    def get_global_env_var(self, name, hidden=False):
        return self._lookup_inherited("env", name, hidden)

    def has_env_vars(self, hidden=False):
        return bool(self.get_env_vars(hidden))

    def has_env_var(self, name, hidden=False):
        return self.get_env_var(name, hidden) is not None

    def get_completions(self):
        return self._all("completion")

    def get_base_completions(self):
        return self._own("completion")

    def get_global_completions(self):
        return self._inherited("completion")

    def get_completion(self, name):
        return self._lookup("completion", name)

    def get_base_completion(self, name):
        return self._lookup_own("completion", name)

    def get_global_completion(self, name):
        return self._lookup_inherited("completion", name)

    def has_completion(self, name):
        return self.get_completion(name) is not None

    def get_examples(self):
        return list(self._examples)

    def get_example(self, name):
        return next((example for example in self._examples if example.name == name), None)

    def has_examples(self):
        return bool(self._examples)

    # ── types ──────────────────────────────────────────────────────────────────

    def coerce(self, info, /):
        """
        Convert info.value through the type registered under info.type.

        Raises UnknownTypeError (with suggestions over the visible type names)
        when no such type is in scope.
        """
        if (entry := self._lookup("type", info.type)) is None:
            suggestions = suggest(info.type, (entry.name for entry in self.get_types()))
            raise UnknownTypeError(
                f"unknown type {info.type!r} for {info.label.lower()} {info.name!r}",
                input=info.type,
                suggestions=suggestions,
                hint=hint_for(suggestions, f"register it with add_type({info.type!r}, handler)")
            )
        return entry.handler.coerce(info)

    # ── rendering ──────────────────────────────────────────────────────────────

    def get_help(self):
        """Return the help text as a plain string."""
        capture = Console(width=console.width, color_system=None, force_terminal=False)
        with capture.capture() as captured:
            capture.print(render_help(self))
        return captured.get()

    def help(self, *, stderr=False):
        """Print the help to stdout (or stderr)."""
        (Console(stderr=True) if stderr else console).print(render_help(self))

    def show_version(self):
        console.print(render_version(self))

    # ── built-ins ──────────────────────────────────────────────────────────────

    def _reset_defaults(self):
        for option in self._builtins:
            if option in self._options:
                self._options.remove(option)
        self._builtins = []
        self._defaults = False

    def _register_defaults(self):
        """register -V/--version (when versioned) and -h/--help on the root, once."""
        if self._defaults or self._parent is not None:
            return
        self._defaults = True

        if self._version is not Unset and self._version_option is not False:
            flags, description, options = coalesce(self._version_option, (Unset, Unset, {}))
            self._builtins.append(self._insert_option(Option(
                coalesce(flags, "-V, --version"),
                coalesce(description, "show the version number for this program"),
                **{"standalone": True, "prepend": True, "action": _show_version} | options
            ), False))

        if self._help_option is not False:
            flags, description, options = coalesce(self._help_option, (Unset, Unset, {}))
            self._builtins.append(self._insert_option(Option(
                coalesce(flags, "-h, --help"),
                coalesce(description, "show this help"),
                **{"standalone": True, "global_": True, "prepend": True, "action": _show_help} | options
            ), False))

    # ── execution ──────────────────────────────────────────────────────────────

    def trigger(self, fault, /, **options):
        """
        Surface a fault in this command's context.

        Throw mode re-raises it; otherwise the help goes to stderr, then the
        fault, and the process exits with status 1.
        """
        if (
                not hasattr(fault, "__trigger__") or
                not callable(fault.__trigger__) or
                not hasattr(fault, "__replace__") or
                not callable(fault.__replace__)
        ):
            raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
        fault = copy.replace(
            fault,
            **options,
            command=self,
            shell=not self.should_throw,
            colorful=self.colorful,
            fancy=self.fancy,
            debug=debugging()
        )
        if not self.should_throw:
            self.help(stderr=True)
        fault.__trigger__()

    def _read_environment(self, environ):
        values = {}
        for variable in self.get_env_vars(hidden=True):
            name = next((name for name in variable.names if environ.get(name)), None)
            if name is None:
                continue
            argument = variable.argument
            raw = environ[name]
            if argument.list:
                values[variable.name] = [
                    self.coerce(TypeInfo("Environment variable", argument.type, name, part))
                    for part in raw.split(argument.separator)
                ]
            else:
                values[variable.name] = self.coerce(TypeInfo("Environment variable", argument.type, name, raw))
        return values

    def _run(self, handler, *args):
        try:
            return _settle(handler(*args))
        except CommandException:
            raise
        except Exception as error:
            raise HandlerError(
                f"command {self.path!r} failed: {error}",
                cause=error,
                hint="set SPRIG_DEBUG=1 to see the traceback"
            ) from error

    def _dispatch(self, options, args, trail):
        if self._action is not Unset:
            logger.debug("running handler of %r", self.path)
            self._run(self._action, options, *args)
        elif self._default_command is not Unset:
            if (command := self._lookup("command", self._default_command, hidden=True)) is None:
                suggestions = suggest(self._default_command, (name for command in self.get_commands(True) for name in command.names))
                raise UnknownCommandError(
                    f"default command {self._default_command!r} not found on command {self.path!r}",
                    input=self._default_command,
                    suggestions=suggestions,
                    hint=hint_for(suggestions, "check set_default_command()")
                )
            command._invoked_through = self
            trail.append(command)
            logger.debug("dispatching %r to default command %r", self.path, command.path)
            command._dispatch(options, args, trail)

    def _execute(self, result, supplied, trail):
        for option in supplied:
            if option.standalone and option.action is not Unset:
                logger.debug("running standalone option %r of %r", option.name, self.path)
                self._run(option.action, self, result.options, *result.args)
                return
        for option in supplied:
            if option.action is not Unset:
                self._run(option.action, self, result.options, *result.args)
        self._dispatch(result.options, result.args, trail)

    def _parse(self, tokens, dry, environ, launcher, trail):
        command = self
        while tokens and (child := command._lookup("command", tokens[0], hidden=True)) is not None:
            child._invoked_through = command
            trail.append(child)
            logger.debug("resolved %r through token %r", child.path, tokens[0])
            command, tokens = child, tokens[1:]

        if command._executable:
            status = None if dry else launcher.launch(command, list(tokens))
            return ParseResult({}, tuple(tokens), command, [], {}, status)

        if command._raw_args:
            result = ParseResult({}, tuple(tokens), command, [], {})
            if not dry:
                command._dispatch({}, result.args, trail)
            return result

        flags = parse_flags(
            tokens,
            command._all("option", hidden=True),
            stop_early=command._stop_early,
            allow_empty=command._allow_empty,
            coerce=command.coerce
        )
        environment = command._read_environment(environ)
        args = bind_arguments(
            flags.unknown,
            command._arguments,
            coerce=command.coerce,
            standalone=any(option.standalone for option in flags.supplied),
            partial=dry,
            commands=[name for child in command.get_commands(hidden=True) for name in child.names],
            path=command.path
        )
        result = ParseResult(flags.flags, args, command, flags.literal, environment)
        if not dry:
            command._execute(result, flags.supplied, trail)
        return result

    def parse(self, tokens=Unset, /, dry=False, *, environ=Unset, launcher=Unset):
        """
        Resolve, parse and dispatch a token stream.

        Parameters
        - tokens:
          • Unset: sys.argv[1:].
          • str: shell-like string, split with shlex.split.
          • Iterable[str]: pre-tokenized sequence.
        - dry: resolve, tokenize and bind without running any handler, action
          or executable. Missing required arguments end binding early and the
          partial result is returned; every other fault still surfaces.
        - environ: mapping of environment variables (default os.environ).
        - launcher: executable launcher (default Launcher()).

        Returns
        - ParseResult(options, args, command, literal, environment, status).
        """
        if tokens is Unset:
            tokens = sys.argv[1:]
        elif isinstance(tokens, str):
            tokens = shlex.split(tokens)
        elif isinstance(tokens, Iterable):
            tokens = list(tokens)
            if not all(isinstance(token, str) for token in tokens):
                raise TypeError("parse() argument must be a string or an iterable of strings")
        else:
            raise TypeError("parse() argument must be a string or an iterable of strings")

        self.root._register_defaults()
        environ = coalesce(environ, os.environ)
        launcher = Launcher() if launcher is Unset else launcher

        trail = [self]
        busy, self._busy = self._busy, True
        try:
            return self._parse(tuple(tokens), dry, environ, launcher, trail)
        except CommandException as fault:
            failure = fault
        finally:
            self._busy = busy
            for command in trail[1:]:
                command._invoked_through = None

        logger.debug("parse of %r failed: %s", trail[-1].path, failure.message)
        trail[-1].trigger(failure)


__all__ = (
    "Command",
    "ParseResult",
)

# Remove the internal metaclass from the module namespace to avoid accidental
# exposure in docs, autocompletion, or star-imports. Not part of the public API.
del CommandType
