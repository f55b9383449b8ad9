"""
Pattern composer for fmtscan.

Turns a token sequence plus one resolved binding per placeholder into a
``ComposedMatcher``: a single anchored pattern and the capture-group ranges
that belong to each placeholder.

Group bookkeeping:
- Every placeholder is wrapped in one capture group ``( fragment )``.
- A fragment may bring its own capture groups (structured types do). They
  are counted by compiling the fragment on its own.
- A running counter, starting at 1, gives each placeholder the range
  ``(start, 1 + inner groups)``; the next placeholder starts right after.
- The compiled pattern's group count must equal the counter at the end.
- Fragments may not name their groups or refer back to groups; both break
  once the fragment sits next to others (``InvalidOption``).
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import TYPE_CHECKING, Any, Iterator, Sequence

from fmtscan.exceptions import InternalPatternError, InvalidOption
from fmtscan.options import PlaceholderOptions, fragment_problem
from fmtscan.tokenizer import LiteralSpan, Placeholder, Token
from fmtscan.types.base import TypeCapability

if TYPE_CHECKING:
    import pandas as pd

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Binding:
    """A placeholder's resolved capability and its options."""
    capability: TypeCapability
    options: PlaceholderOptions

    @property
    def type_name(self) -> str:
        return self.capability.name

    def fragment(self) -> str:
        if self.options.custom_pattern is not None:
            return self.capability.custom_fragment(self.options.custom_pattern)
        return self.capability.fragment(self.options)


@dataclass(frozen=True)
class CaptureSpec:
    """Capture-group range of one placeholder.

    ``start`` is the number of the placeholder's own group; ``count`` is
    ``1 + groups inside the fragment``.
    """
    placeholder_index: int
    start: int
    count: int

    @property
    def group_range(self) -> tuple[int, int]:
        return self.start, self.count


@dataclass(frozen=True)
class ComposedMatcher:
    """A compiled format string.

    Attributes:
        pattern: The anchored pattern.
        body: The unanchored pattern, embedded by structured types.
        captures: One CaptureSpec per placeholder, in placeholder order.
        bindings: One Binding per placeholder, in placeholder order.
        format_string: The format string the matcher was built from.
        escape: False for raw format strings. Placeholders inside optional
            raw groups then yield None when their group did not take part.
    """
    pattern: str
    body: str
    captures: tuple[CaptureSpec, ...]
    bindings: tuple[Binding, ...]
    format_string: str = ""
    escape: bool = True
    regex: re.Pattern | None = field(default=None, repr=False, compare=False)
    search_regex: re.Pattern | None = field(default=None, repr=False, compare=False)

    @property
    def placeholder_count(self) -> int:
        return len(self.captures)

    @property
    def group_count(self) -> int:
        return sum(spec.count for spec in self.captures)

    def run(self, text: str) -> tuple[Any, ...]:
        """Match *text* and return one converted value per placeholder."""
        from fmtscan.executor import run

        return run(self, text)

    def finditer(self, text: str) -> Iterator[tuple[Any, ...]]:
        """Yield the values of every non-overlapping match inside *text*."""
        from fmtscan.executor import finditer

        return finditer(self, text)

    def scan_frame(self, lines, columns=None, errors: str = "raise") -> pd.DataFrame:
        from fmtscan.frame import scan_frame

        return scan_frame(lines, self, columns=columns, errors=errors)


@lru_cache(maxsize=1024)
def group_count(fragment: str) -> int:
    """Number of capture groups in *fragment*.

    Raises:
        re.error: If the fragment does not compile.
    """
    return re.compile(fragment).groups


def compose(
    tokens: Sequence[Token],
    bindings: Sequence[Binding],
    escape: bool = True,
    format_string: str = "",
) -> ComposedMatcher:
    """Build the anchored pattern for a token sequence.

    Args:
        tokens: Output of ``tokenize``.
        bindings: One Binding per placeholder, indexed by placeholder index.
        escape: When False, literal text is inserted as raw pattern text.
        format_string: Kept on the matcher for messages.

    Raises:
        InvalidOption: If raw literal text (``escape=False``) does not
            compile or opens capture groups, or a fragment uses named groups
            or backreferences.
        InternalPatternError: If a fragment does not compile or the group
            count disagrees with the bookkeeping.
    """
    parts: list[str] = []
    captures: list[CaptureSpec] = []
    counter = 1

    for token in tokens:
        if isinstance(token, LiteralSpan):
            parts.append(re.escape(token.text) if escape else token.text)
            continue

        if not isinstance(token, Placeholder):
            raise InternalPatternError(f"unexpected token {token!r} in {format_string!r}")
        binding = bindings[token.index]
        fragment = binding.fragment()
        try:
            inner = group_count(fragment)
        except re.error as e:
            raise InternalPatternError(
                f"fragment {fragment!r} of type {binding.type_name!r} does not "
                f"compile: {e}"
            ) from e
        problem = fragment_problem(fragment)
        if problem is not None:
            raise InvalidOption(
                f"fragment {fragment!r} of type {binding.type_name!r} {problem}"
            )
        parts.append(f"({fragment})")
        captures.append(CaptureSpec(token.index, counter, 1 + inner))
        counter += 1 + inner

    body = "".join(parts)
    # raw literals may contain a top-level '|'
    pattern = rf"\A(?:{body})\Z"
    try:
        regex = re.compile(pattern)
    except re.error as e:
        if not escape:
            raise InvalidOption(
                f"raw format string {format_string!r} is not a valid pattern: {e}"
            ) from e
        raise InternalPatternError(f"composed pattern {pattern!r} does not compile: {e}") from e

    if regex.groups != counter - 1:
        if not escape and regex.groups > counter - 1:
            raise InvalidOption(
                f"raw format string {format_string!r} opens capture groups outside "
                "of placeholders; use (?:...) instead"
            )
        raise InternalPatternError(
            f"pattern {pattern!r} has {regex.groups} groups, expected {counter - 1}"
        )

    logger.debug(
        "Composed %r into %r (%d placeholder(s), %d group(s))",
        format_string, pattern, len(captures), regex.groups,
    )
    return ComposedMatcher(
        pattern=pattern,
        body=body,
        captures=tuple(captures),
        bindings=tuple(bindings),
        format_string=format_string,
        escape=escape,
        regex=regex,
        search_regex=re.compile(f"(?:{body})"),
    )
