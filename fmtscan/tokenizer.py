"""
Format string tokenizer for fmtscan.

Splits a format string into an ordered sequence of tokens:

- ``LiteralSpan(text)``: text that has to appear verbatim in the input.
- ``Placeholder(options, index, position)``: a typed slot, parsed by
  ``fmtscan.options.parse_placeholder``.

Escaping rules:

- In literal text, ``{{`` is a literal ``{`` and ``}}`` a literal ``}``.
- Inside a placeholder, ``\\{`` / ``\\}`` put a literal brace into the
  placeholder body, and ``\\\\{`` / ``\\\\}`` put a backslash followed by a
  brace (so that a custom sub-pattern can contain an escaped brace). Other
  backslashes are kept verbatim.

Adjacent literal text is merged into a single span, so literal spans and
placeholders always alternate in the output.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Union

from fmtscan.exceptions import UnescapedBrace
from fmtscan.options import PlaceholderOptions, parse_placeholder

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LiteralSpan:
    """Literal text between placeholders (already brace-unescaped)."""
    text: str


@dataclass(frozen=True)
class Placeholder:
    """A placeholder in a format string.

    Attributes:
        options: The parsed placeholder descriptor.
        index: Zero-based position among the placeholders of the format string.
        position: Offset of the opening brace in the format string.
    """
    options: PlaceholderOptions
    index: int
    position: int


Token = Union[LiteralSpan, Placeholder]


def _read_placeholder(format_string: str, start: int) -> tuple[str, int]:
    """Read a placeholder body starting at the '{' at *start*.

    Returns:
        Tuple of (unescaped body, index just past the closing '}').
    """
    out: list[str] = []
    n = len(format_string)
    j = start + 1
    while j < n:
        c = format_string[j]
        if c == "\\":
            if format_string.startswith(("\\\\{", "\\\\}"), j):
                out.append("\\" + format_string[j + 2])
                j += 3
                continue
            if j + 1 < n and format_string[j + 1] in "{}":
                out.append(format_string[j + 1])
                j += 2
                continue
            out.append(c)
            j += 1
            continue
        if c == "}":
            return "".join(out), j + 1
        if c == "{":
            raise UnescapedBrace(
                format_string, j, "unescaped '{' inside a placeholder (use '\\{')"
            )
        out.append(c)
        j += 1
    raise UnescapedBrace(
        format_string, start,
        "missing '}' to close a placeholder. If the '{' was intended to be "
        "a literal, escape it with '{{'",
    )


def tokenize(format_string: str) -> tuple[Token, ...]:
    """Split a format string into literal spans and placeholders.

    Args:
        format_string: e.g. ``"Position<{f32},{f32}> {{raw}}"``.

    Returns:
        Tuple of tokens in textual order.

    Raises:
        UnescapedBrace: On a lone ``}``, an unterminated placeholder, or a
            ``{`` inside a placeholder.
        InvalidOption, ConflictingOptions: From placeholder option parsing.
    """
    tokens: list[Token] = []
    buf: list[str] = []
    n = len(format_string)
    i = 0
    index = 0

    def flush() -> None:
        if buf:
            tokens.append(LiteralSpan("".join(buf)))
            buf.clear()

    while i < n:
        c = format_string[i]
        if c == "{":
            if i + 1 < n and format_string[i + 1] == "{":
                buf.append("{")
                i += 2
                continue
            flush()
            body, end = _read_placeholder(format_string, i)
            tokens.append(Placeholder(parse_placeholder(body), index=index, position=i))
            index += 1
            i = end
        elif c == "}":
            if i + 1 < n and format_string[i + 1] == "}":
                buf.append("}")
                i += 2
                continue
            raise UnescapedBrace(format_string, i, "unmatched '}'")
        else:
            buf.append(c)
            i += 1
    flush()

    logger.debug(
        "Tokenized %r into %d token(s)", format_string, len(tokens)
    )
    return tuple(tokens)


def placeholders(tokens: tuple[Token, ...]) -> list[Placeholder]:
    """Return only the placeholder tokens, in order."""
    return [t for t in tokens if isinstance(t, Placeholder)]
