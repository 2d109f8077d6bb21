"""
Sprig utilities (internal helpers, carefully exposed)

Scope
- Small building blocks shared by the grammar, registry, tokenizer, binder and
  command layers so that sentinels, read-only views and suggestions behave the
  same everywhere.

Overview
- UnsetType / Unset
  • Singleton sentinel for “value not provided” without conflating with None.
  • Falsey, printable as "Unset", non-subclassable.

- coalesce(value, default=None)
  • Replace Unset with a concrete default; None/0/""/[] are preserved.

- rename(callable, name) / @rename("name")
  • Assign stable __name__/__qualname__ to generated helpers.

- mirror("attr")
  • Read-only property exposing self._attr through a fresh container copy.

- keyify(name)
  • Turn a flag name ("debug-level") into the key used in option maps ("debug_level").

- suggest(input, candidates)
  • Near matches for a mistyped name, best first (difflib similarity).

Quick examples
    >>> coalesce(Unset, "fallback")
    'fallback'
    >>> keyify("dry-run")
    'dry_run'
    >>> suggest("--verbos", ["--verbose", "--version"])
    ['--verbose', '--version']
"""
import builtins
import difflib
import functools
from collections.abc import Sequence, Mapping, Set
from typing import final


@final
class UnsetType:
    """
    Internal sentinel type representing a value that was not provided.

    Used wherever None is a legitimate user value (an option default, a
    description) and the API still needs to tell “not provided” apart.

    Characteristics
    - Boolean-false: bool(Unset) is False, but it is distinct from None and 0.
    - Printable: repr(Unset) -> "Unset".
    - Non-subclassable and a process-wide singleton.
    """

    def __or__(self, other, /):
        """
        Support PEP 604 unions in annotations (e.g., str | UnsetType).
        """
        try:
            return other | type(self)
        except TypeError:
            return NotImplemented

    def __ror__(self, other, /):
        try:
            return other | type(self)
        except TypeError:
            return NotImplemented

    @functools.cache
    def __new__(cls):
        return super().__new__(cls)

    def __bool__(self):
        return False

    def __repr__(self):
        return "Unset"

    def __copy__(self):
        return self

    def __deepcopy__(self, memo, /):
        return self

    def __init_subclass__(cls, **options):
        raise TypeError("type 'UnsetType' is not an acceptable base type")


def coalesce(object, default=None, /):
    """
    Resolve the Unset sentinel to a concrete default.

    Falsey values like None, 0, "" or [] are preserved as-is; only Unset is
    replaced.

    Examples
    - coalesce("name", "fallback") -> "name"
    - coalesce(Unset, "fallback")  -> "fallback"
    - coalesce(None, "fallback")   -> None
    """
    return object if object is not Unset else default


def rename(*parameters):
    """
    Set a stable __name__/__qualname__ on a callable, or return a decorator
    that will do so later.

    Forms
    - rename(callable, name) -> callable (renamed in place)
    - rename(name)           -> decorator
    """
    match len(parameters):
        case 2:
            callable, name = parameters
            if not builtins.callable(callable):
                raise TypeError("rename() first argument must be callable")
            if not isinstance(name, str):
                raise TypeError("rename() second argument must be a string")
            try:
                callable.__qualname__ = name
                callable.__name__ = name
            except (AttributeError, TypeError):
                raise TypeError("rename() first argument must be a updatable callable") from None
            return callable
        case 1:
            name, = parameters
            if not isinstance(name, str):
                raise TypeError("@rename() argument must be a string")

            def wrapper(callable):
                if not builtins.callable(callable):
                    raise TypeError("@rename() must be applied to a callable")
                return rename(callable, name)

            return rename(wrapper, "rename")
        case _:
            raise TypeError("rename takes 1 to 2 arguments but %d were given" % len(parameters))


def _immortalize(object):
    """
    Copy containers one level at a time so callers never hold the backing store.

    - Sequence (non-string, non-tuple): new list
    - Mapping: new dict with the same keys
    - Set: new set
    - Tuples and everything else: returned as-is (already immutable or a leaf)
    """
    if isinstance(object, Sequence) and not isinstance(object, str | tuple):
        return list(object)
    elif isinstance(object, Mapping):
        return dict(object)
    elif isinstance(object, Set) and not isinstance(object, frozenset):
        return set(object)
    return object


def mirror(name, /):
    """
    Define a read-only property that mirrors a private backing attribute.

    The property reads "_{name}" from the instance and hands out a copy for
    container types, so mutating the result never touches the registry.

    Example
    - Given self._aliases, declare aliases = mirror("aliases").
    """
    if not isinstance(name, str):
        raise TypeError("mirror() argument must be a string")

    @rename(name)
    def getter(self):
        return _immortalize(getattr(self, "_" + name))

    return property(getter)


@functools.cache
def keyify(name, /):
    """
    Return the option-map key for a flag name: dashes become underscores.

    - keyify("debug") -> "debug"
    - keyify("dry-run") -> "dry_run"
    """
    if not isinstance(name, str):
        raise TypeError("keyify() argument must be a string")
    return name.replace("-", "_")


def suggest(input, candidates, /, limit=5):
    """
    Return near matches for a mistyped name, best first.

    Similarity follows difflib's ratio (a normalised edit measure); candidates
    below 0.6 are dropped, so an unrelated input yields an empty list.

    Parameters
    - input: str, the name the user typed.
    - candidates: Iterable[str], the names visible in the current scope.
    - limit: int, maximum number of suggestions.
    """
    if not isinstance(input, str):
        raise TypeError("suggest() first argument must be a string")
    return difflib.get_close_matches(input, list(dict.fromkeys(candidates)), limit)


Unset = UnsetType()
"""
Internal sentinel for “not provided”.

Use Unset as a default when None is a valid, user-meaningful value; materialize
with coalesce(value, default).
"""


__all__ = (
    # Functions
    "coalesce",
    "rename",
    "mirror",
    "keyify",
    "suggest",

    # Types
    "UnsetType",

    # Constants
    "Unset",
)
