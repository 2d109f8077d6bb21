r"""
Sprig flag tokenizer.

parse_flags() walks raw tokens strictly left to right against a merged option
set and splits them into typed option values, leftover positionals and literal
tokens.

Token shapes
- "--"              ends flag interpretation; the rest are literal tokens.
- "--name"          long flag; "--name=value" carries an inline value.
- "--no-name"       negation of a boolean-like option (zero slots or one boolean slot).
- "-x", "-x=value"  short flag.
- "-abc"            cluster of toggles; the last member may take its value from
                    the next token. A value-taking member in the middle takes the
                    rest of the cluster as inline value ("-p80").
- "-5", "-.5", "-"  values, not flags.

Values
- zero slots: True (an inline value is coerced as a boolean).
- one slot: the inline value or the next non-flag token. A missing required
  value fails MissingValueError, a missing optional value yields True.
- variadic slot: every following token up to the next flag-shaped token or "--".
- list slot ("type[]"): the value is split on the slot separator.
- several slots: a list of each slot's value.

Post-conditions (validated after the walk)
- repeated options need `collect`;
- a standalone option must be supplied alone;
- required options must be supplied unless a standalone option was;
- `conflicts` / `depends` relations hold;
- defaults fill absent options.
"""
from typing import NamedTuple

from .coercions import TypeInfo, is_number, invalid
from .faults import *
from .utils import *


class FlagsResult(NamedTuple):
    """Typed option map, leftover positionals, literal tokens and supplied options (in order)."""
    flags: dict
    unknown: list
    literal: list
    supplied: tuple


def is_flag(token, /):
    """flag-shaped: starts with '-', is longer than one character and is not a number."""
    return len(token) > 1 and token.startswith("-") and not is_number(token)


def _labels(options):
    for option in options:
        yield from option.labels
        if option.negatable:
            yield "--no-" + option.name


def _unknown(label, options):
    suggestions = suggest(label, _labels(options))
    return UnknownOptionError(
        "unknown option %r" % label,
        input=label,
        suggestions=suggestions,
        hint=hint_for(suggestions, "check the available options with --help")
    )


class _Tokenizer:
    """
    One pass over one token list.

    Holds the cursor and the per-pass state so the public function stays a
    plain call; never shared between passes.
    """

    def __init__(self, tokens, options, coerce):
        self.tokens = list(tokens)
        self.options = list(dict.fromkeys(options))
        self.coerce = coerce
        self.index = 0
        self.flags = {}
        self.supplied = []
        self.lookup = {}
        for option in self.options:
            for name in option.names:
                self.lookup.setdefault(name, option)

    def _next_value(self, argument):
        """
        the next token if it can serve as a value for argument, else None.

        boolean slots only take an explicit boolean literal, so "--debug serve"
        leaves "serve" alone.
        """
        if self.index >= len(self.tokens):
            return None
        token = self.tokens[self.index]
        if token == "--" or is_flag(token):
            return None
        if argument.type == "boolean" and token.lower() not in ("true", "false", "1", "0"):
            return None
        self.index += 1
        return token

    def _convert(self, option, argument, raw):
        if argument.list:
            return [
                self.coerce(TypeInfo("Option", argument.type, option.name, part))
                for part in raw.split(argument.separator)
            ]
        return self.coerce(TypeInfo("Option", argument.type, option.name, raw))

    def _values(self, option, label, inline):
        values = []
        for position, argument in enumerate(option.arguments):
            if argument.variadic:
                raws = [inline] if position == 0 and inline is not None else []
                while (raw := self._next_value(argument)) is not None:
                    raws.append(raw)
                if not raws:
                    if not argument.optional:
                        raise self._missing(option, label, argument)
                    if position == 0:
                        values.append(True)
                    break
                values.append([self._convert(option, argument, raw) for raw in raws])
                continue

            raw = inline if position == 0 and inline is not None else self._next_value(argument)
            if raw is None:
                if not argument.optional:
                    raise self._missing(option, label, argument)
                if position == 0:
                    values.append(True)
                break
            values.append(self._convert(option, argument, raw))

        return values[0] if len(option.arguments) == 1 else values

    @staticmethod
    def _missing(option, label, argument):
        return MissingValueError(
            "missing value for option %r" % label,
            input=label,
            hint="expected %s" % ("<%s:%s>" % (argument.name, argument.type)),
            option=option.name
        )

    def _store(self, option, value):
        key = option.key
        previous = self.flags.get(key)
        if option in self.supplied and not option.collect:
            raise DuplicateOptionError(
                "option %r cannot be specified more than once" % option.labels[-1],
                input=option.labels[-1],
                hint="declare the option with collect=True to accept repetitions"
            )
        if option not in self.supplied:
            self.supplied.append(option)
            previous = None

        if option.value is not Unset:
            try:
                value = option.value(value, previous)
            except ValueError as error:
                raise invalid(TypeInfo("Option", "value", option.name, str(value)), hint=str(error) or None) from error
        elif option.collect:
            value = [*(previous if isinstance(previous, list) else ()), value]
        self.flags[key] = value

    def _long(self, token):
        name, equals, inline = token[2:].partition("=")
        inline = inline if equals else None
        option = self.lookup.get(name)
        negated = False
        if option is None and name.startswith("no-"):
            candidate = self.lookup.get(name.removeprefix("no-"))
            if candidate is not None and candidate.boolean and inline is None:
                option, negated = candidate, True
        if option is None:
            raise _unknown("--" + name, self.options)

        if negated:
            self._store(option, False)
        elif not option.arguments:
            self._store(option, True if inline is None else self.coerce(TypeInfo("Option", "boolean", option.name, inline)))
        else:
            self._store(option, self._values(option, "--" + name, inline))

    def _short(self, token):
        body = token[1:]
        name, equals, inline = body.partition("=")

        # single-dash names ("-x", "-long") before clusters
        if (option := self.lookup.get(name)) is not None:
            if not option.arguments:
                self._store(option, True if not equals else self.coerce(TypeInfo("Option", "boolean", option.name, inline)))
            else:
                self._store(option, self._values(option, "-" + name, inline if equals else None))
            return

        for position, character in enumerate(body):
            if character == "=":
                raise _unknown(token, self.options)
            if (option := self.lookup.get(character)) is None:
                raise _unknown("-" + character, self.options)
            rest = body[position + 1:]
            last = not rest or rest.startswith("=")
            if not option.arguments:
                if rest.startswith("="):
                    self._store(option, self.coerce(TypeInfo("Option", "boolean", option.name, rest[1:])))
                    return
                self._store(option, True)
            elif last:
                self._store(option, self._values(option, "-" + character, rest[1:] if rest else None))
                return
            elif option.boolean:
                self._store(option, True)
            else:
                self._store(option, self._values(option, "-" + character, rest))
                return

    def _validate(self):
        standalone = [option for option in self.supplied if option.standalone]
        if standalone and len(self.supplied) > 1:
            label = standalone[0].labels[-1]
            raise StandaloneOptionError(
                "option %r cannot be combined with other options" % label,
                input=label,
                hint="use %r on its own" % label
            )

        for option in self.options:
            if option.key not in self.flags and option.default is not Unset:
                self.flags[option.key] = option.default() if callable(option.default) else option.default

        if not standalone:
            for option in self.options:
                if option.required and option not in self.supplied and option.default is Unset:
                    raise MissingRequiredOptionError(
                        "missing required option %r" % option.labels[-1],
                        input=option.labels[-1],
                        hint="add %r to the command line" % option.labels[-1]
                    )

        names = {name for option in self.supplied for name in option.names}
        for option in self.supplied:
            for conflict in option.conflicts:
                if conflict in names:
                    raise ConflictingOptionError(
                        "option %r conflicts with option %r" % (option.labels[-1], conflict),
                        input=option.labels[-1],
                        hint="drop one of them"
                    )
            for dependency in option.depends:
                if dependency not in names:
                    raise DependentOptionError(
                        "option %r depends on option %r" % (option.labels[-1], dependency),
                        input=option.labels[-1],
                        hint="add the option %r" % dependency
                    )

    def run(self, stop_early):
        unknown = []
        literal = []
        stopped = False

        while self.index < len(self.tokens):
            token = self.tokens[self.index]
            self.index += 1
            if token == "--":
                literal.extend(self.tokens[self.index:])
                break
            if stopped or not is_flag(token):
                unknown.append(token)
                stopped = stopped or stop_early
                continue
            if token.startswith("--"):
                self._long(token)
            else:
                self._short(token)

        self._validate()
        return FlagsResult(self.flags, unknown, literal, tuple(self.supplied))


def parse_flags(tokens, options, /, *, stop_early=False, allow_empty=True, coerce):
    """
    tokenize raw tokens against the given options.

    Parameters
    - tokens: Iterable[str]
    - options: Iterable[Option], the local and inherited options of the target command.
    - stop_early: the first positional token stops interpretation; every
      following token (flag-shaped or not) is left over, up to a "--".
    - allow_empty: when False, an empty token list fails EmptyInputError.
    - coerce: callable(TypeInfo) -> value, the command's type registry.

    Returns
    - FlagsResult(flags, unknown, literal, supplied); flags are keyed by option key.
    """
    tokens = list(tokens)
    if not tokens and not allow_empty:
        raise EmptyInputError("no arguments given", hint="pass at least one option or argument")
    return _Tokenizer(tokens, options, coerce).run(stop_early)


__all__ = (
    "FlagsResult",
    "is_flag",
    "parse_flags",
)
