"""
Sprig argument binder.

bind_arguments() matches the positional tokens left over by the tokenizer
against a command's declared argument slots.

- No slots: any leftover token is an error. UnknownCommandError (with
  suggestions) when the command has sub-commands, else TooManyArgumentsError.
- Slots are walked in order. A variadic slot takes every remaining token; any
  other slot takes exactly one. List slots split their token on the separator.
- Running out of tokens on an optional (or variadic) slot ends binding; on a
  required slot it is MissingArgumentError naming every missing required slot,
  unless a standalone option was supplied or the binding is partial (dry runs).
- Tokens left after the last slot: TooManyArgumentsError.
"""
from .coercions import TypeInfo
from .faults import *
from .utils import *


def _coerce(coerce, argument, raw):
    if argument.list:
        return [coerce(TypeInfo("Argument", argument.type, argument.name, part)) for part in raw.split(argument.separator)]
    return coerce(TypeInfo("Argument", argument.type, argument.name, raw))


def bind_arguments(tokens, arguments, /, *, coerce, standalone=False, partial=False, commands=(), path=Unset):
    """
    bind leftover tokens to argument slots and return the bound values as a tuple.

    Parameters
    - tokens: Sequence[str], leftover positionals in their original order.
    - arguments: Sequence[Argument], the command's own slots.
    - coerce: callable(TypeInfo) -> value, the command's type registry.
    - standalone: a standalone option was supplied (missing arguments are tolerated).
    - partial: stop at the first missing required slot and return what was bound.
    - commands: names (and aliases) of the sub-commands visible from the command.
    - path: command path used in messages.
    """
    tokens = list(tokens)
    where = " for command %r" % path if path else ""

    if not arguments:
        if not tokens:
            return ()
        if commands:
            suggestions = suggest(tokens[0], commands)
            raise UnknownCommandError(
                "unknown command %r%s" % (tokens[0], where),
                input=tokens[0],
                suggestions=suggestions,
                hint=hint_for(suggestions, "check the available commands with --help")
            )
        raise TooManyArgumentsError(
            "no arguments allowed%s, but got %s" % (where, " ".join(map(repr, tokens))),
            input=tokens[0],
            hint="remove the extra arguments"
        )

    values = []
    for position, argument in enumerate(arguments):
        if not tokens:
            if argument.optional:
                break
            if standalone or partial:
                break
            missing = [argument.name for argument in arguments[position:] if not argument.optional]
            raise MissingArgumentError(
                "missing argument%s: %s" % ("s" if len(missing) > 1 else "", ", ".join(missing)),
                missing=missing,
                hint="expected %s" % " ".join("<%s>" % name for name in missing)
            )
        if argument.variadic:
            values.append([_coerce(coerce, argument, raw) for raw in tokens])
            tokens.clear()
        else:
            values.append(_coerce(coerce, argument, tokens.pop(0)))

    if tokens:
        raise TooManyArgumentsError(
            "too many arguments%s: %s" % (where, " ".join(tokens)),
            input=tokens[0],
            hint="remove the extra arguments"
        )
    return tuple(values)


__all__ = (
    "bind_arguments",
)
