"""
fmtscan: typed scanning of strings with format strings, the inverse of
``str.format``.

Public API surface:

- ``compile(format_string, *type_bindings)`` -- **recommended entry point**.
  Builds a reusable ``ComposedMatcher``; ``matcher.run(text)`` returns one
  typed value per placeholder or raises a ``MatchError``.

- ``scan(format_string, text, *type_bindings)`` -- one-shot compile + run.

- ``finditer(format_string, text, *type_bindings)`` -- values of every
  match inside a longer text (also ``matcher.finditer(text)``).

- ``{u8?}`` -- any type name followed by ``?`` matches that type or
  nothing, giving None.

- ``register_type`` / ``register_record`` / ``register_variant`` -- make
  new types available to placeholders by name.

- ``load_definitions`` / ``save_definitions`` / ``register_definitions``
  -- declare records and variants in YAML.

- ``scan_frame(lines, matcher)`` -- scan many lines into a DataFrame.

Example::

    >>> import fmtscan
    >>> fmtscan.scan("Position<{f32},{f32}>", "Position<5,-1.5>")
    (5.0, -1.5)
    >>> fmtscan.scan("{}-{}", "7-ab", "u8", "str")
    (7, 'ab')
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterator

from fmtscan.composer import Binding, CaptureSpec, ComposedMatcher, compose
from fmtscan.config import (
    ScanConfig,
    load_definitions,
    register_definitions,
    save_definitions,
)
from fmtscan.exceptions import (
    ArityError,
    BuildError,
    CompileError,
    ConfigValidationError,
    ConflictingOptions,
    DuplicateType,
    FieldConversionError,
    FmtScanError,
    InternalPatternError,
    InvalidField,
    InvalidOption,
    MatchError,
    NoMatch,
    NoVariantMatched,
    UnescapedBrace,
    UnknownType,
)
from fmtscan.executor import run
from fmtscan.frame import scan_frame
from fmtscan.options import PlaceholderOptions, PrefixPolicy, check_fragment
from fmtscan.registry import TypeRegistry, get_default_registry
from fmtscan.structured import (
    TYPE_DEFAULT,
    FieldSpec,
    RecordType,
    Tagged,
    VariantSpec,
    VariantType,
    register_record,
    register_variant,
)
from fmtscan.tokenizer import placeholders, tokenize
from fmtscan.types.base import NO_DEFAULT, Captured, SimpleType, TypeCapability
from fmtscan.types.optional import OptionalType

__all__ = [
    "compile",
    "run",
    "scan",
    "finditer",
    "register_type",
    "register_record",
    "register_variant",
    "load_definitions",
    "save_definitions",
    "register_definitions",
    "scan_frame",
    "get_default_registry",
    "ComposedMatcher",
    "TypeRegistry",
    "TypeCapability",
    "SimpleType",
    "OptionalType",
    "Captured",
    "PlaceholderOptions",
    "PrefixPolicy",
    "FieldSpec",
    "VariantSpec",
    "RecordType",
    "VariantType",
    "Tagged",
    "TYPE_DEFAULT",
    "ScanConfig",
    "FmtScanError",
    "CompileError",
    "UnescapedBrace",
    "ConflictingOptions",
    "InvalidOption",
    "UnknownType",
    "ArityError",
    "DuplicateType",
    "InvalidField",
    "MatchError",
    "NoMatch",
    "FieldConversionError",
    "NoVariantMatched",
    "BuildError",
    "InternalPatternError",
    "ConfigValidationError",
    "CaptureSpec",
]

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------

def _as_capability(binding: str | TypeCapability, registry: TypeRegistry) -> TypeCapability:
    if isinstance(binding, TypeCapability):
        return binding
    if isinstance(binding, str):
        return registry.resolve(binding)
    raise TypeError(
        f"type bindings are type names or TypeCapability objects, got {binding!r}"
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def compile(
    format_string: str,
    *type_bindings: str | TypeCapability,
    escape: bool = True,
    registry: TypeRegistry | None = None,
) -> ComposedMatcher:
    """Compile a format string into a reusable matcher.

    ``{}`` placeholders take their type from *type_bindings*. With as many
    bindings as ``{}`` placeholders, they bind those in order; with as many
    bindings as placeholders overall, they are consumed positionally and
    placeholders that name their own type ignore their slot.

    Args:
        format_string: e.g. ``"{u8}.{u8}.{u8}.{u8}"`` or ``"{}: {}"``.
        *type_bindings: Type names or capabilities for ``{}`` placeholders.
        escape: If False, literal text is used as raw pattern text.
        registry: Registry to resolve names in. Defaults to the process-wide one.

    Returns:
        A ComposedMatcher.

    Raises:
        ArityError: If the number of bindings fits neither rule.
        CompileError: On any other problem with the format string.
    """
    registry = registry if registry is not None else get_default_registry()
    tokens = tokenize(format_string)
    slots = placeholders(tokens)
    inferred = [p for p in slots if p.options.is_inferred]

    if len(type_bindings) == len(inferred):
        assigned = dict(zip((p.index for p in inferred), type_bindings))
    elif len(type_bindings) == len(slots):
        assigned = {
            p.index: b for p, b in zip(slots, type_bindings) if p.options.is_inferred
        }
    else:
        raise ArityError(
            len(inferred),
            len(type_bindings),
            f"{format_string!r} has {len(inferred)} '{{}}' placeholder(s) out of "
            f"{len(slots)}, got {len(type_bindings)} type binding(s)",
        )

    bindings = []
    for p in slots:
        if p.options.is_inferred:
            capability = _as_capability(assigned[p.index], registry)
        else:
            capability = registry.resolve(p.options.type_name)
        capability.check_options(p.options)
        bindings.append(Binding(capability, p.options))

    return compose(tokens, bindings, escape=escape, format_string=format_string)


def scan(
    format_string: str,
    text: str,
    *type_bindings: str | TypeCapability,
    escape: bool = True,
    registry: TypeRegistry | None = None,
) -> tuple[Any, ...]:
    """Compile *format_string* and run it on *text* in one step."""
    matcher = compile(format_string, *type_bindings, escape=escape, registry=registry)
    return run(matcher, text)


def finditer(
    format_string: str,
    text: str,
    *type_bindings: str | TypeCapability,
    escape: bool = True,
    registry: TypeRegistry | None = None,
) -> Iterator[tuple[Any, ...]]:
    """Compile *format_string* and yield the values of every match in *text*.

    Matches need not cover the whole text. Matches whose conversion fails
    are skipped.

    Example::

        >>> list(fmtscan.finditer("<{u8}>", "a <1> b <2> c <999>"))
        [(1,), (2,)]
    """
    matcher = compile(format_string, *type_bindings, escape=escape, registry=registry)
    return matcher.finditer(text)


def register_type(
    name: str,
    capability_or_pattern: TypeCapability | str,
    convert: Callable[[str], Any] | None = None,
    default: Any = NO_DEFAULT,
    registry: TypeRegistry | None = None,
) -> TypeCapability:
    """Register a type under *name*.

    Either pass a ready TypeCapability, or a pattern plus a ``convert``
    callable taking the matched text::

        register_type("hexcolor", r"#[0-9a-f]{6}", lambda s: int(s[1:], 16))

    Raises:
        DuplicateType: If the name is taken.
        InvalidOption: If the pattern does not compile, names its groups,
            uses backreferences, or ``convert`` is missing.
    """
    registry = registry if registry is not None else get_default_registry()
    if isinstance(capability_or_pattern, TypeCapability):
        capability = capability_or_pattern
    else:
        if convert is None:
            raise InvalidOption(f"type {name!r} is given as a pattern but has no convert function")
        check_fragment(
            capability_or_pattern, f"pattern {capability_or_pattern!r} of type {name!r}"
        )
        capability = SimpleType(name, capability_or_pattern, convert, default=default)
    return registry.register(name, capability)
