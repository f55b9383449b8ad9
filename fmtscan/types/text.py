"""Character, string and boolean capabilities."""

from __future__ import annotations

from fmtscan.types.base import SimpleType

CHAR_PATTERN = r"."
# Lazy: takes as little as the surrounding literals allow, the rest of the
# input when the placeholder comes last.
STR_PATTERN = r".+?"
BOOL_PATTERN = r"true|false"


def _to_bool(text: str) -> bool:
    if text == "true":
        return True
    if text == "false":
        return False
    raise ValueError(f"expected 'true' or 'false', got {text!r}")


def _to_char(text: str) -> str:
    if len(text) != 1:
        raise ValueError(f"expected exactly one character, got {text!r}")
    return text


def text_types() -> list[SimpleType]:
    return [
        SimpleType("char", CHAR_PATTERN, _to_char, default="\0"),
        SimpleType("str", STR_PATTERN, str, default=""),
        SimpleType("String", STR_PATTERN, str, default=""),
        SimpleType("bool", BOOL_PATTERN, _to_bool, default=False),
    ]
