"""
Placeholder configuration parser for fmtscan.

Turns the text between ``{`` and ``}`` (already extracted and brace-unescaped
by the tokenizer) into a ``PlaceholderOptions`` descriptor.

Grammar::

    placeholder := name? (":" option)?
    option      := "/" sub-pattern "/"          custom sub-pattern
                 | "#"? ("x" | "o" | "b")       radix 16 / 8 / 2
                 | "r" digits                    explicit radix 2..36
                 | anything else                 sub-format for the type

The three option classes are mutually exclusive. Whether a radix or a
sub-format is acceptable depends on the resolved type, which is checked by
the compiler once the type is known.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, replace
from functools import lru_cache
from typing import Literal

from fmtscan.exceptions import ConflictingOptions, InvalidOption

# "x", "#x", "o", "#o", "b", "#b" at the start of the option text
_BASE_TOKEN_RE = re.compile(r"(#?)([xob])")
_EXPLICIT_RADIX_RE = re.compile(r"(#?)r(\d+)")

_BASE_HINTS: dict[str, tuple[int, Literal["hex", "oct", "bin"]]] = {
    "x": (16, "hex"),
    "o": (8, "oct"),
    "b": (2, "bin"),
}


class PrefixPolicy(enum.Enum):
    """Whether a ``0x``/``0o``/``0b`` prefix may precede the digits."""

    FORBIDDEN = "forbidden"
    OPTIONAL = "optional"
    REQUIRED = "required"


@dataclass(frozen=True)
class PlaceholderOptions:
    """Structured form of one placeholder.

    Attributes:
        type_name: Type (or, inside a record format, field) named by the
            placeholder. Empty for ``{}`` and ``{:...}``.
        custom_pattern: Sub-pattern replacing the type's own fragment.
        radix: Number base for integer types.
        numeric_base_hint: ``"hex"``, ``"oct"`` or ``"bin"`` when the radix
            was given with a letter (``x``/``o``/``b``).
        prefix: Prefix policy that comes with the radix option.
        sub_format: Free-form option text handed to the type.
        source: The raw placeholder body, for error messages.
    """

    type_name: str = ""
    custom_pattern: str | None = None
    radix: int | None = None
    numeric_base_hint: Literal["hex", "oct", "bin"] | None = None
    prefix: PrefixPolicy = PrefixPolicy.FORBIDDEN
    sub_format: str | None = None
    source: str = ""

    def __post_init__(self) -> None:
        given = [
            label
            for label, value in (
                ("custom pattern", self.custom_pattern),
                ("radix", self.radix),
                ("sub-format", self.sub_format),
            )
            if value is not None
        ]
        if len(given) > 1:
            raise ConflictingOptions(
                f"placeholder {{{self.source}}} combines {' and '.join(given)}; "
                "only one option class is allowed"
            )
        if self.radix is not None and not 2 <= self.radix <= 36:
            raise InvalidOption(
                f"radix has to be a number between 2 and 36, got {self.radix} "
                f"in placeholder {{{self.source}}}"
            )

    @property
    def is_inferred(self) -> bool:
        """True when the type comes from the call site (``{}``)."""
        return not self.type_name

    @property
    def effective_radix(self) -> int:
        return self.radix if self.radix is not None else 10

    def with_type_name(self, type_name: str) -> PlaceholderOptions:
        return replace(self, type_name=type_name)


def _split_name(body: str) -> tuple[str, str | None]:
    """Split on the first ':' that is not preceded by a backslash."""
    i = 0
    while i < len(body):
        c = body[i]
        if c == "\\":
            i += 2
            continue
        if c == ":":
            return body[:i], body[i + 1:]
        i += 1
    return body, None


def _read_custom_pattern(text: str, source: str) -> tuple[str, str]:
    """Read ``/.../`` from the start of *text*.

    Returns:
        Tuple of (sub-pattern, remaining text after the closing slash).
    """
    out: list[str] = []
    i = 1
    while i < len(text):
        c = text[i]
        if c == "\\" and i + 1 < len(text):
            nxt = text[i + 1]
            # "\/" is a literal slash; any other pair is kept as is
            out.append("/" if nxt == "/" else c + nxt)
            i += 2
            continue
        if c == "/":
            return "".join(out), text[i + 1:]
        out.append(c)
        i += 1
    raise InvalidOption(
        f"custom sub-pattern in placeholder {{{source}}} is missing its closing '/'"
    )


def _starts_with_radix(text: str) -> bool:
    return bool(_BASE_TOKEN_RE.fullmatch(text) or _EXPLICIT_RADIX_RE.fullmatch(text))


def _parse_radix(text: str, source: str) -> dict | None:
    """Parse a radix token; returns None when *text* is not one."""
    m = _BASE_TOKEN_RE.fullmatch(text)
    if m:
        hashtag, letter = m.groups()
        radix, hint = _BASE_HINTS[letter]
        return {
            "radix": radix,
            "numeric_base_hint": hint,
            "prefix": PrefixPolicy.REQUIRED if hashtag else PrefixPolicy.OPTIONAL,
        }
    m = _EXPLICIT_RADIX_RE.fullmatch(text)
    if m:
        hashtag, digits = m.groups()
        if hashtag:
            raise InvalidOption(
                f"radix option 'r' cannot be used with '#' in placeholder {{{source}}} "
                "since it can't have a prefix"
            )
        radix = int(digits)
        if not 2 <= radix <= 36:
            raise InvalidOption(
                f"radix has to be a number between 2 and 36, got {radix} "
                f"in placeholder {{{source}}}"
            )
        return {"radix": radix, "prefix": PrefixPolicy.FORBIDDEN}
    return None


# ---------------------------------------------------------------------------
# Fragment checks
# ---------------------------------------------------------------------------

# \1 .. \9 followed by two more octal digits is an octal escape, not a group
_OCTAL_ESCAPE_RE = re.compile(r"[0-7]{3}")


@lru_cache(maxsize=1024)
def fragment_problem(pattern: str) -> str | None:
    """Say why *pattern* cannot be embedded in a larger pattern, or None.

    Embeddable fragments compile on their own and use neither named groups
    nor backreferences.
    """
    try:
        compiled = re.compile(pattern)
    except re.error as e:
        return f"does not compile: {e}"
    if compiled.groupindex:
        names = ", ".join(repr(name) for name in compiled.groupindex)
        return f"names its groups ({names}); use plain (...) groups instead"

    i, n = 0, len(pattern)
    in_class = False
    while i < n:
        c = pattern[i]
        if c == "\\":
            nxt = pattern[i + 1:i + 2]
            if (
                not in_class
                and nxt
                and nxt in "123456789"
                and not _OCTAL_ESCAPE_RE.match(pattern, i + 1)
            ):
                return f"uses the backreference \\{nxt}"
            i += 2
            continue
        if in_class:
            if c == "]":
                in_class = False
        elif c == "[":
            in_class = True
            # a ']' right after '[' or '[^' is a literal
            i += 1
            if pattern[i:i + 1] == "^":
                i += 1
            if pattern[i:i + 1] == "]":
                i += 1
            continue
        elif pattern.startswith("(?P=", i) or pattern.startswith("(?(", i):
            return "refers back to a group"
        i += 1
    return None


def check_fragment(pattern: str, what: str) -> None:
    """Raise InvalidOption if *pattern* cannot be used as a fragment.

    Args:
        pattern: The pattern text.
        what: Description for the message, e.g. ``"pattern '...' of type 'kv'"``.
    """
    problem = fragment_problem(pattern)
    if problem is not None:
        raise InvalidOption(f"{what} {problem}")


def parse_options(option_text: str, source: str = "") -> dict:
    """Parse the text after ':' into keyword arguments for PlaceholderOptions.

    Raises:
        InvalidOption: On a malformed custom sub-pattern or radix.
        ConflictingOptions: When a radix is combined with a sub-pattern.
    """
    if option_text == "":
        return {}

    if option_text.startswith("/"):
        pattern, rest = _read_custom_pattern(option_text, source)
        if rest:
            if _starts_with_radix(rest):
                raise ConflictingOptions(
                    f"placeholder {{{source}}} combines a custom sub-pattern "
                    f"and a radix ({rest!r})"
                )
            raise InvalidOption(
                f"unexpected {rest!r} after the custom sub-pattern in placeholder {{{source}}}"
            )
        check_fragment(pattern, f"custom sub-pattern {pattern!r} in placeholder {{{source}}}")
        return {"custom_pattern": pattern}

    # radix directly followed by a sub-pattern, e.g. "x/[0-9a-f]+/"
    slash = option_text.find("/")
    if slash > 0 and _starts_with_radix(option_text[:slash]):
        raise ConflictingOptions(
            f"placeholder {{{source}}} combines a radix ({option_text[:slash]!r}) "
            "and a custom sub-pattern"
        )

    radix = _parse_radix(option_text, source)
    if radix is not None:
        return radix

    return {"sub_format": option_text}


def parse_placeholder(body: str) -> PlaceholderOptions:
    """Parse the text between the braces of one placeholder.

    Args:
        body: e.g. ``"u8"``, ``"u8:x"``, ``":/[a-z]+/"``, ``"date:%d.%m.%Y"``.

    Returns:
        The PlaceholderOptions descriptor.

    Raises:
        InvalidOption: On malformed options, or a sub-pattern written
            without the leading ':'.
        ConflictingOptions: When more than one option class is given.
    """
    name, option_text = _split_name(body)
    name = name.strip()

    if len(name) >= 2 and name.startswith("/") and name.endswith("/"):
        raise InvalidOption(
            f"missing ':' in front of custom sub-pattern. Write {{:{name}}} instead of {{{name}}}"
        )

    kwargs = parse_options(option_text, body) if option_text is not None else {}
    return PlaceholderOptions(type_name=name, source=body, **kwargs)
