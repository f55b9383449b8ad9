"""
Integer and floating point capabilities.

Fixed-width integer fragments are value-bounded: besides the optional sign
and radix prefix, they only admit digit strings whose value fits the type.
For ``u8`` the decimal fragment accepts ``0``..``255`` (leading zeros
allowed up to three digits) and rejects ``256`` or ``999`` at the pattern
level. This keeps adjacent integer placeholders from being split at an
offset whose conversion is bound to fail.

Conversion re-checks the range, because a custom sub-pattern can hand any
text to the conversion.

Every fixed-width type also has a ``NonZero`` form (``NonZeroU8``,
``NonZeroI32``, ...) that rejects zero at conversion and has no default.
"""

from __future__ import annotations

import re
from functools import lru_cache

import numpy as np

from fmtscan.options import PlaceholderOptions, PrefixPolicy
from fmtscan.types.base import Captured, SimpleType, TypeCapability

FLOAT_PATTERN = (
    r"[+-]?(?i:inf|infinity|nan|"
    r"(?:[0-9]+|[0-9]+\.[0-9]*|[0-9]*\.[0-9]+)(?:e[+-]?[0-9]+)?)"
)

_PREFIX_LETTERS = {"hex": "x", "oct": "o", "bin": "b"}

# (name, bits, signed); isize/usize follow a 64-bit target
INTEGER_TYPES: tuple[tuple[str, int, bool], ...] = (
    ("i8", 8, True),
    ("i16", 16, True),
    ("i32", 32, True),
    ("i64", 64, True),
    ("i128", 128, True),
    ("isize", 64, True),
    ("u8", 8, False),
    ("u16", 16, False),
    ("u32", 32, False),
    ("u64", 64, False),
    ("u128", 128, False),
    ("usize", 64, False),
)


# ---------------------------------------------------------------------------
# Digit patterns
# ---------------------------------------------------------------------------

def _digit_value_char(value: int) -> str:
    return "0123456789abcdefghijklmnopqrstuvwxyz"[value]


def digit_class(radix: int) -> str:
    """Character class of the digits valid in *radix* (letters in either case)."""
    if radix <= 10:
        return f"[0-{radix - 1}]"
    last = _digit_value_char(radix - 1)
    return f"[0-9a-{last}A-{last.upper()}]"


def _digit_literal(char: str) -> str:
    if char.isalpha():
        return f"[{char}{char.upper()}]"
    return char


def _to_base(value: int, radix: int) -> str:
    if value == 0:
        return "0"
    out = []
    while value:
        value, rem = divmod(value, radix)
        out.append(_digit_value_char(rem))
    return "".join(reversed(out))


@lru_cache(maxsize=None)
def bounded_digits(max_value: int, radix: int) -> str:
    """Pattern for digit strings whose value is ``<= max_value``.

    Digit strings up to the length of *max_value* written in *radix* are
    accepted, leading zeros included. Longer candidates are listed first so
    the fragment is greedy.
    """
    top = _to_base(max_value, radix)
    width = len(top)
    any_digit = digit_class(radix)
    alternatives = []
    for i, char in enumerate(top):
        value = int(char, radix)
        if value == 0:
            continue
        head = "".join(_digit_literal(c) for c in top[:i])
        tail = f"{any_digit}{{{width - i - 1}}}" if width - i - 1 else ""
        alternatives.append(f"{head}{digit_class(value)}{tail}")
    alternatives.append("".join(_digit_literal(c) for c in top))
    if width > 1:
        alternatives.append(f"{any_digit}{{1,{width - 1}}}")
    return "(?:" + "|".join(alternatives) + ")"


def _prefix_pattern(options: PlaceholderOptions) -> str:
    letter = _PREFIX_LETTERS.get(options.numeric_base_hint or "")
    if letter is None or options.prefix is PrefixPolicy.FORBIDDEN:
        return ""
    prefix = f"0[{letter}{letter.upper()}]"
    if options.prefix is PrefixPolicy.OPTIONAL:
        return f"(?:{prefix})?"
    return prefix


# ---------------------------------------------------------------------------
# Capabilities
# ---------------------------------------------------------------------------

class IntegerType(TypeCapability):
    """An integer type, fixed-width (``bits``) or unbounded (``bits=None``)."""

    accepts_radix = True

    def __init__(
        self, name: str, bits: int | None, signed: bool = True, nonzero: bool = False
    ) -> None:
        self.name = name
        self.bits = bits
        self.signed = signed
        self.nonzero = nonzero
        if bits is None:
            self.min_value = self.max_value = None
        elif signed:
            self.min_value = -(2 ** (bits - 1))
            self.max_value = 2 ** (bits - 1) - 1
        else:
            self.min_value = 0
            self.max_value = 2 ** bits - 1

    @property
    def has_default(self) -> bool:
        return not self.nonzero

    def default(self) -> int:
        if self.nonzero:
            return super().default()
        return 0

    def fragment(self, options: PlaceholderOptions) -> str:
        radix = options.effective_radix
        prefix = _prefix_pattern(options)
        if self.bits is None:
            return f"[+-]?{prefix}{digit_class(radix)}+"
        positive = bounded_digits(self.max_value, radix)
        if self.signed:
            negative = bounded_digits(-self.min_value, radix)
            return f"(?:-{prefix}{negative}|\\+?{prefix}{positive})"
        return f"\\+?{prefix}{positive}"

    def convert(self, captured: Captured, options: PlaceholderOptions) -> int:
        radix = options.effective_radix
        text = captured.text
        negative = text.startswith("-")
        digits = text[1:] if text[:1] in ("+", "-") else text

        letter = _PREFIX_LETTERS.get(options.numeric_base_hint or "")
        if letter is not None and options.prefix is not PrefixPolicy.FORBIDDEN:
            if digits[:2].lower() == "0" + letter:
                digits = digits[2:]
            elif options.prefix is PrefixPolicy.REQUIRED:
                raise ValueError(f"missing '0{letter}' prefix in {text!r}")

        # int() also takes underscores, whitespace and its own prefixes
        if not re.fullmatch(f"{digit_class(radix)}+", digits):
            raise ValueError(f"invalid digits for radix {radix}: {text!r}")

        value = int(digits, radix)
        if negative:
            value = -value
        if self.bits is not None and not self.min_value <= value <= self.max_value:
            raise OverflowError(
                f"{value} is out of range for {self.name} "
                f"[{self.min_value}, {self.max_value}]"
            )
        if self.nonzero and value == 0:
            raise ValueError(f"{self.name} does not accept zero")
        return value


def _to_f32(text: str) -> float:
    with np.errstate(over="ignore"):
        return float(np.float32(float(text)))


def integer_types() -> list[IntegerType]:
    types = [IntegerType(name, bits, signed) for name, bits, signed in INTEGER_TYPES]
    types.append(IntegerType("int", None))
    types.extend(
        IntegerType(f"NonZero{name.capitalize()}", bits, signed, nonzero=True)
        for name, bits, signed in INTEGER_TYPES
    )
    return types


def float_types() -> list[SimpleType]:
    return [
        SimpleType("f32", FLOAT_PATTERN, _to_f32, default=0.0),
        SimpleType("f64", FLOAT_PATTERN, float, default=0.0),
        SimpleType("float", FLOAT_PATTERN, float, default=0.0),
    ]
