"""
Structured types for fmtscan: records and variants.

A **record** is a named group of fields scanned with its own format string.
Placeholders in the format reference fields instead of types:

    {x}      the field named ``x``
    {2}      the third field in declaration order
    {}       the next field in declaration order
    {x:x}    field ``x``, options applied to the field's type

Fields that no placeholder references are filled after all placeholder
fields, in declaration order, from a default, a default factory, the
type's registered default (``TYPE_DEFAULT``) or a derive function that
receives earlier fields as keyword arguments.

A **variant** is an ordered list of alternatives, each of which is a record
with a tag. The first alternative that matches and converts wins; the
result is ``Tagged(tag, value)``.

Both kinds are TypeCapabilities, so once registered they can be used as
placeholder types in any other format string. Their fragment is the body of
their own matcher; their conversion runs the value extraction on the group
view of the enclosing match.
"""

from __future__ import annotations

import inspect
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, NamedTuple, Sequence

from fmtscan.composer import Binding, compose
from fmtscan.exceptions import (
    BuildError,
    InternalPatternError,
    InvalidField,
    MatchError,
    NoMatch,
    NoVariantMatched,
)
from fmtscan.executor import CONVERSION_ERRORS, extract, run
from fmtscan.options import PlaceholderOptions
from fmtscan.registry import TypeRegistry, get_default_registry
from fmtscan.tokenizer import placeholders, tokenize
from fmtscan.types.base import Captured, TypeCapability

logger = logging.getLogger(__name__)


class _Sentinel:
    def __init__(self, name: str) -> None:
        self._name = name

    def __repr__(self) -> str:
        return self._name


MISSING: Any = _Sentinel("MISSING")
TYPE_DEFAULT: Any = _Sentinel("TYPE_DEFAULT")


@dataclass(frozen=True)
class FieldSpec:
    """One field of a record.

    A field gets its value from exactly one source: a placeholder in the
    record's format string, ``default``, ``default_factory`` or ``derive``.

    Attributes:
        name: Field name, also the keyword passed to the factory.
        type: Type name or capability. Required for placeholder fields and
            for ``default=TYPE_DEFAULT``.
        default: Constant value, or ``TYPE_DEFAULT`` for the type's default.
        default_factory: Called without arguments for every result.
        derive: Called with earlier fields as keyword arguments.
        map: Applied to the converted placeholder value.
        filter_map: Like ``map``; returning ``None`` rejects the input.
    """
    name: str
    type: str | TypeCapability | None = None
    default: Any = MISSING
    default_factory: Callable[[], Any] | None = None
    derive: Callable[..., Any] | None = None
    map: Callable[[Any], Any] | None = None
    filter_map: Callable[[Any], Any] | None = None

    def value_sources(self) -> list[str]:
        sources = []
        if self.default is not MISSING:
            sources.append("default")
        if self.default_factory is not None:
            sources.append("default_factory")
        if self.derive is not None:
            sources.append("derive")
        return sources


class Tagged(NamedTuple):
    """Result of a variant: the winning alternative's tag and its value."""
    tag: str
    value: Any


@dataclass(frozen=True)
class VariantSpec:
    """One alternative of a variant.

    ``format`` may be left out when the variant has an ``autogen`` casing;
    the alternative then matches its tag, converted to that casing.
    """
    tag: str
    format: str | None = None
    fields: Sequence[FieldSpec] = ()
    factory: Callable[..., Any] | None = None


def _resolve(type_ref: str | TypeCapability, registry: TypeRegistry) -> TypeCapability:
    if isinstance(type_ref, TypeCapability):
        return type_ref
    return registry.resolve(type_ref)


class _MappedField(TypeCapability):
    """Wraps a field's capability to apply its ``map`` / ``filter_map``."""

    def __init__(self, inner: TypeCapability, spec: FieldSpec) -> None:
        self.name = inner.name
        self.inner = inner
        self.spec = spec
        self.accepts_radix = inner.accepts_radix
        self.accepts_sub_format = inner.accepts_sub_format

    def fragment(self, options: PlaceholderOptions) -> str:
        return self.inner.fragment(options)

    def convert(self, captured: Captured, options: PlaceholderOptions) -> Any:
        value = self.inner.convert(captured, options)
        if self.spec.map is not None:
            return self.spec.map(value)
        mapped = self.spec.filter_map(value)
        if mapped is None:
            raise ValueError(f"field {self.spec.name!r} rejected the value {value!r}")
        return mapped


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

class RecordType(TypeCapability):
    """A named group of fields scanned with one format string.

    Raises (on construction):
        InvalidField: On inconsistent field definitions.
        CompileError: On errors in the format string or unknown types.
    """

    def __init__(
        self,
        name: str,
        fields: Sequence[FieldSpec],
        format_string: str,
        factory: Callable[..., Any] | None = None,
        escape: bool = True,
        registry: TypeRegistry | None = None,
    ) -> None:
        registry = registry if registry is not None else get_default_registry()
        self.name = name
        self.fields = tuple(fields)
        self.format_string = format_string
        self.factory = factory

        self._check_fields()
        tokens = tokenize(format_string)
        bindings, self._placeholder_fields = self._bind_placeholders(tokens, registry)
        self._fill_plan = self._plan_fill(registry)
        self.matcher = compose(tokens, bindings, escape=escape, format_string=format_string)
        logger.debug(
            "Built record %r with %d field(s) from %r",
            name, len(self.fields), format_string,
        )

    # -- construction -----------------------------------------------------

    def _check_fields(self) -> None:
        seen: set[str] = set()
        for spec in self.fields:
            if spec.name in seen:
                raise InvalidField(f"field {spec.name!r} is declared twice in {self.name!r}")
            seen.add(spec.name)
            if spec.map is not None and spec.filter_map is not None:
                raise InvalidField(
                    f"field {spec.name!r} of {self.name!r} has both map and filter_map"
                )
            if (
                spec.default is not MISSING
                and spec.default is not TYPE_DEFAULT
                and type(spec.default).__hash__ is None
            ):
                raise InvalidField(
                    f"mutable default {type(spec.default).__name__} for field "
                    f"{spec.name!r} of {self.name!r}; use default_factory"
                )

    def _field_for(self, ref: str, auto_index: int, source: str) -> FieldSpec:
        if not ref:
            if auto_index >= len(self.fields):
                raise InvalidField(
                    f"{self.format_string!r} has more '{{}}' placeholders than "
                    f"{self.name!r} has fields"
                )
            return self.fields[auto_index]
        if ref.isdigit():
            index = int(ref)
            if index >= len(self.fields):
                raise InvalidField(
                    f"placeholder {{{source}}} refers to field {index}, but "
                    f"{self.name!r} has {len(self.fields)} field(s)"
                )
            return self.fields[index]
        for spec in self.fields:
            if spec.name == ref:
                return spec
        raise InvalidField(
            f"placeholder {{{source}}} in {self.format_string!r} names no field "
            f"of {self.name!r}"
        )

    def _bind_placeholders(
        self, tokens, registry: TypeRegistry
    ) -> tuple[list[Binding], tuple[str, ...]]:
        bindings: list[Binding] = []
        bound: list[str] = []
        auto_index = 0
        for placeholder in placeholders(tokens):
            options = placeholder.options
            spec = self._field_for(options.type_name, auto_index, options.source)
            if not options.type_name:
                auto_index += 1
            if spec.name in bound:
                raise InvalidField(
                    f"field {spec.name!r} of {self.name!r} is referenced twice in "
                    f"{self.format_string!r}"
                )
            if spec.type is None:
                raise InvalidField(
                    f"field {spec.name!r} of {self.name!r} is bound to a placeholder "
                    "but has no type"
                )
            capability = _resolve(spec.type, registry)
            capability.check_options(options)
            if spec.map is not None or spec.filter_map is not None:
                capability = _MappedField(capability, spec)
            bound.append(spec.name)
            bindings.append(Binding(capability, options))
        return bindings, tuple(bound)

    def _plan_fill(self, registry: TypeRegistry) -> list[tuple[FieldSpec, Any]]:
        """Validate the non-placeholder fields and plan how each is filled."""
        filled = set(self._placeholder_fields)
        plan: list[tuple[FieldSpec, Any]] = []
        for spec in self.fields:
            sources = spec.value_sources()
            if spec.name in filled:
                if sources:
                    raise InvalidField(
                        f"field {spec.name!r} of {self.name!r} is bound to a "
                        f"placeholder and also has a {sources[0]}"
                    )
                continue
            if spec.map is not None or spec.filter_map is not None:
                raise InvalidField(
                    f"field {spec.name!r} of {self.name!r} has map/filter_map but "
                    "no placeholder"
                )
            if len(sources) != 1:
                raise InvalidField(
                    f"field {spec.name!r} of {self.name!r} needs exactly one of a "
                    f"placeholder, default, default_factory or derive, got "
                    f"{sources or 'none'}"
                )

            if spec.default is TYPE_DEFAULT:
                if spec.type is None:
                    raise InvalidField(
                        f"field {spec.name!r} of {self.name!r} asks for its type's "
                        "default but has no type"
                    )
                capability = _resolve(spec.type, registry)
                if not capability.has_default:
                    raise InvalidField(
                        f"type {capability.name!r} of field {spec.name!r} has no default"
                    )
                plan.append((spec, capability))
            elif spec.derive is not None:
                plan.append((spec, self._derive_arguments(spec, filled)))
            else:
                plan.append((spec, None))
            filled.add(spec.name)
        return plan

    def _derive_arguments(self, spec: FieldSpec, available: set[str]) -> tuple[str, ...] | None:
        """Names passed to a derive function; None means every filled field."""
        try:
            signature = inspect.signature(spec.derive)
        except (TypeError, ValueError) as e:
            raise InvalidField(
                f"cannot inspect derive function of field {spec.name!r}: {e}"
            ) from e
        names = []
        for param in signature.parameters.values():
            if param.kind is inspect.Parameter.VAR_KEYWORD:
                return None
            if param.kind is inspect.Parameter.VAR_POSITIONAL:
                continue
            if param.kind is inspect.Parameter.POSITIONAL_ONLY:
                raise InvalidField(
                    f"derive function of field {spec.name!r} takes positional-only "
                    f"parameter {param.name!r}; fields are passed by keyword"
                )
            if param.name in available:
                names.append(param.name)
            elif param.default is inspect.Parameter.empty:
                raise InvalidField(
                    f"derive function of field {spec.name!r} reads {param.name!r}, "
                    f"which is not filled before it in {self.name!r}"
                )
        return tuple(names)

    # -- matching ---------------------------------------------------------

    @staticmethod
    def _fill(spec: FieldSpec, plan: Any, filled: dict[str, Any]) -> Any:
        if spec.default is TYPE_DEFAULT:
            return plan.default()
        if spec.derive is not None:
            if plan is None:
                return spec.derive(**filled)
            return spec.derive(**{n: filled[n] for n in plan})
        if spec.default_factory is not None:
            return spec.default_factory()
        return spec.default

    def _build(self, values: tuple[Any, ...]) -> Any:
        """Fill the remaining fields and apply the factory.

        Raises:
            BuildError: If a derive function, default factory or the record
                factory rejects the values.
        """
        filled = dict(zip(self._placeholder_fields, values))
        for spec, plan in self._fill_plan:
            try:
                filled[spec.name] = self._fill(spec, plan, filled)
            except CONVERSION_ERRORS as e:
                raise BuildError(self.name, spec.name, e) from e
        ordered = {spec.name: filled[spec.name] for spec in self.fields}
        if self.factory is None:
            return ordered
        try:
            return self.factory(**ordered)
        except CONVERSION_ERRORS as e:
            raise BuildError(self.name, None, e) from e

    def build_from_view(self, view: Sequence[str | None]) -> Any:
        """Build a result from a group view of this record's body."""
        return self._build(extract(self.matcher, view))

    def parse(self, text: str) -> Any:
        """Scan *text* in full with this record's own format.

        Raises:
            NoMatch, FieldConversionError: As ``run``.
            BuildError: If filling a field or the factory fails.
        """
        return self._build(run(self.matcher, text))

    # -- capability -------------------------------------------------------

    def fragment(self, options: PlaceholderOptions) -> str:
        return self.matcher.body

    def convert(self, captured: Captured, options: PlaceholderOptions) -> Any:
        if options.custom_pattern is not None:
            return self.parse(captured.text)
        return self.build_from_view((captured.text, *captured.groups))


# ---------------------------------------------------------------------------
# Variants
# ---------------------------------------------------------------------------

_WORD_RE = re.compile(r"[A-Z]+(?=[A-Z][a-z])|[A-Z]?[a-z]+|[A-Z]+|[0-9]+")

_CASINGS: dict[str, Callable[[list[str]], str]] = {
    "lowercase": lambda words: "".join(w.lower() for w in words),
    "UPPERCASE": lambda words: "".join(w.upper() for w in words),
    "PascalCase": lambda words: "".join(w.capitalize() for w in words),
    "camelCase": lambda words: words[0].lower() + "".join(w.capitalize() for w in words[1:]),
    "snake_case": lambda words: "_".join(w.lower() for w in words),
    "SCREAMING_SNAKE_CASE": lambda words: "_".join(w.upper() for w in words),
    "kebab-case": lambda words: "-".join(w.lower() for w in words),
    "SCREAMING-KEBAB-CASE": lambda words: "-".join(w.upper() for w in words),
}

AUTOGEN_CASINGS = (*_CASINGS, "case_sensitive", "case_insensitive")


def _escape_braces(text: str) -> str:
    return text.replace("{", "{{").replace("}", "}}")


def autogen_format(tag: str, casing: str) -> tuple[str, bool]:
    """Format string matching *tag* in *casing*.

    Returns:
        Tuple of (format string, escape flag for the format).

    Raises:
        InvalidField: If the casing is unknown.
    """
    if casing == "case_sensitive":
        return _escape_braces(tag), True
    if casing == "case_insensitive":
        return "(?i:" + _escape_braces(re.escape(tag)) + ")", False
    if casing not in _CASINGS:
        raise InvalidField(
            f"unknown autogen casing {casing!r}; expected one of {', '.join(AUTOGEN_CASINGS)}"
        )
    words = _WORD_RE.findall(tag) or [tag]
    return _escape_braces(_CASINGS[casing](words)), True


class VariantType(TypeCapability):
    """An ordered choice between tagged record alternatives.

    Raises (on construction):
        InvalidField: On an empty or inconsistent alternative list.
        CompileError: From building the alternatives' records.
    """

    def __init__(
        self,
        name: str,
        alternatives: Sequence[VariantSpec],
        autogen: str | None = None,
        escape: bool = True,
        registry: TypeRegistry | None = None,
    ) -> None:
        registry = registry if registry is not None else get_default_registry()
        self.name = name
        self.autogen = autogen
        if not alternatives:
            raise InvalidField(f"variant {name!r} has no alternatives")

        records: list[tuple[str, RecordType]] = []
        for alt in alternatives:
            if any(tag == alt.tag for tag, _ in records):
                raise InvalidField(f"tag {alt.tag!r} appears twice in variant {name!r}")
            fmt, alt_escape = alt.format, escape
            if fmt is None:
                if autogen is None:
                    raise InvalidField(
                        f"alternative {alt.tag!r} of {name!r} has no format and the "
                        "variant has no autogen casing"
                    )
                fmt, alt_escape = autogen_format(alt.tag, autogen)
            record = RecordType(
                f"{name}::{alt.tag}", alt.fields, fmt,
                factory=alt.factory, escape=alt_escape, registry=registry,
            )
            records.append((alt.tag, record))

        self.alternatives = tuple(records)
        self._group_counts = tuple(1 + r.matcher.group_count for _, r in records)
        self.body = "(?:" + "|".join(f"({r.matcher.body})" for _, r in records) + ")"
        logger.debug("Built variant %r with %d alternative(s)", name, len(records))

    @property
    def tags(self) -> list[str]:
        return [tag for tag, _ in self.alternatives]

    def _try_from(self, start: int, text: str, attempts: list) -> Tagged:
        for tag, record in self.alternatives[start:]:
            try:
                return Tagged(tag, record.parse(text))
            except MatchError as e:
                attempts.append((tag, e))
        raise NoVariantMatched(self.name, attempts)

    def parse(self, text: str) -> Tagged:
        """Try every alternative on *text* in order.

        Raises:
            NoVariantMatched: If none matches and converts, with every
                alternative's reason.
        """
        return self._try_from(0, text, [])

    # -- capability -------------------------------------------------------

    def fragment(self, options: PlaceholderOptions) -> str:
        return self.body

    def convert(self, captured: Captured, options: PlaceholderOptions) -> Tagged:
        if options.custom_pattern is not None:
            return self.parse(captured.text)

        attempts: list[tuple[str, MatchError]] = []
        groups = captured.groups
        offset = 0
        for i, ((tag, record), count) in enumerate(zip(self.alternatives, self._group_counts)):
            alt_text = groups[offset]
            if alt_text is None:
                # the regex tried this alternative before the winning one
                attempts.append((tag, NoMatch(record.matcher.pattern, captured.text)))
                offset += count
                continue
            try:
                value = record.build_from_view((alt_text, *groups[offset + 1:offset + count]))
            except MatchError as e:
                attempts.append((tag, e))
                return self._try_from(i + 1, captured.text, attempts)
            return Tagged(tag, value)
        raise InternalPatternError(
            f"no alternative of {self.name!r} participated in the match of "
            f"{captured.text!r}"
        )


# ---------------------------------------------------------------------------
# Registration helpers
# ---------------------------------------------------------------------------

def register_record(
    name: str,
    fields: Sequence[FieldSpec],
    format_string: str,
    factory: Callable[..., Any] | None = None,
    escape: bool = True,
    registry: TypeRegistry | None = None,
) -> RecordType:
    """Build a RecordType and register it under *name*."""
    registry = registry if registry is not None else get_default_registry()
    record = RecordType(
        name, fields, format_string, factory=factory, escape=escape, registry=registry
    )
    registry.register(name, record)
    return record


def register_variant(
    name: str,
    alternatives: Sequence[VariantSpec],
    autogen: str | None = None,
    escape: bool = True,
    registry: TypeRegistry | None = None,
) -> VariantType:
    """Build a VariantType and register it under *name*."""
    registry = registry if registry is not None else get_default_registry()
    variant = VariantType(name, alternatives, autogen=autogen, escape=escape, registry=registry)
    registry.register(name, variant)
    return variant
