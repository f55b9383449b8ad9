"""
Match executor and value extractor for fmtscan.

``run`` matches one complete input against a ComposedMatcher and converts
every placeholder's capture. ``extract`` does the conversion part on a group
view, so a structured type can reuse it on its slice of an enclosing match.
``finditer`` scans for every non-overlapping match inside a longer text.

A group view is ``(whole_text, group_1, group_2, ...)``, the shape of
``(m.group(0), *m.groups())``.

Conversion failures are reported, never retried: the regex engine has
already committed to a split of the input, and no other split is tried.
"""

from __future__ import annotations

import logging
from typing import Any, Iterator, Sequence

from fmtscan.composer import Binding, ComposedMatcher
from fmtscan.exceptions import (
    FieldConversionError,
    InternalPatternError,
    MatchError,
    NoMatch,
)
from fmtscan.types.base import Captured

logger = logging.getLogger(__name__)

# Exceptions a conversion may raise for bad input
CONVERSION_ERRORS = (ValueError, TypeError, ArithmeticError, LookupError, MatchError)


def convert_capture(placeholder_index: int, binding: Binding, captured: Captured) -> Any:
    """Run one capability conversion, wrapping failures.

    Raises:
        FieldConversionError: If the conversion rejects the captured text.
    """
    try:
        return binding.capability.convert(captured, binding.options)
    except CONVERSION_ERRORS as e:
        raise FieldConversionError(
            placeholder_index, binding.type_name, captured.text, e
        ) from e


def extract(matcher: ComposedMatcher, view: Sequence[str | None]) -> tuple[Any, ...]:
    """Convert every placeholder of *matcher* from a group view.

    In a raw format string a placeholder may sit inside an optional group,
    e.g. ``"n(?: says {u8})?"``; it yields None when that group is absent.

    Raises:
        InternalPatternError: If a placeholder's group did not participate
            in a pattern that has no optional raw groups.
        FieldConversionError: If a conversion fails.
    """
    values = []
    for spec, binding in zip(matcher.captures, matcher.bindings):
        start, count = spec.group_range
        text = view[start]
        if text is None:
            if not matcher.escape:
                values.append(None)
                continue
            raise InternalPatternError(
                f"placeholder {spec.placeholder_index} of {matcher.format_string!r} "
                "did not participate in the match"
            )
        captured = Captured(text, tuple(view[start + 1:start + count]))
        values.append(convert_capture(spec.placeholder_index, binding, captured))
    return tuple(values)


def run(matcher: ComposedMatcher, text: str) -> tuple[Any, ...]:
    """Match *text* in full and return the converted values.

    Raises:
        NoMatch: If the pattern does not match the whole input.
        FieldConversionError: If a captured substring fails conversion.
    """
    m = matcher.regex.match(text)
    if m is None:
        raise NoMatch(matcher.pattern, text)
    return extract(matcher, (m.group(0), *m.groups()))


def finditer(matcher: ComposedMatcher, text: str) -> Iterator[tuple[Any, ...]]:
    """Yield the converted values of every non-overlapping match in *text*.

    A match whose conversion fails is skipped as a whole and the search
    continues after it, so an overlapping valid match can be missed.
    """
    for m in matcher.search_regex.finditer(text):
        try:
            yield extract(matcher, (m.group(0), *m.groups()))
        except FieldConversionError as e:
            logger.debug("Skipping match %r at offset %d: %s", m.group(0), m.start(), e)
