"""
Date and time capabilities driven by strftime-style formats.

``{date}``, ``{time}`` and ``{datetime}`` take an optional sub-format, for
example ``{date:%d.%m.%Y}``. The format is translated twice:

- into the pattern fragment used in the composed matcher, where every
  directive becomes a non-capturing group, and
- into a private field pattern with one capturing group per directive,
  used by the conversion to pick the individual fields out of the
  captured text.

Supported directives::

    %Y %C %y %G %g    years, century
    %m %b %h %B       month number, abbreviated / full English name
    %d %e %j          day of month, day of year
    %a %A %w %u       weekday name / number
    %U %W %V          week numbers (Sunday-first, Monday-first, ISO)
    %H %k %I %l %p %P hours, AM/PM
    %M %S             minutes, seconds
    %f %.f %Nf %.Nf   fractional seconds
    %z %:z %#z %Z     UTC offset, time zone name (ignored)
    %s                seconds since the epoch
    %D %x %F %v %R %T %X %r %c %+   composites
    %t %n %%          tab, newline, percent

Numeric directives take the padding modifiers ``-`` (none), ``0`` (zeros)
and ``_`` (spaces), e.g. ``%-d``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from functools import lru_cache
from typing import Callable

from fmtscan.exceptions import InvalidOption
from fmtscan.options import PlaceholderOptions
from fmtscan.types.base import Captured, TypeCapability

_MONTHS = (
    "january", "february", "march", "april", "may", "june",
    "july", "august", "september", "october", "november", "december",
)
_WEEKDAYS = (
    "monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday",
)

_PADDING = {"-": "", "0": "0", "_": " "}

_COMPOSITES = {
    "D": "%m/%d/%y",
    "x": "%m/%d/%y",
    "F": "%Y-%m-%d",
    "v": "%e-%b-%Y",
    "R": "%H:%M",
    "T": "%H:%M:%S",
    "X": "%H:%M:%S",
    "r": "%I:%M:%S %p",
    "c": "%a %b %e %H:%M:%S %Y",
    "+": "%Y-%m-%dT%H:%M:%S%.f%:z",
}


def _padded_number(pad: str, width: int) -> str:
    alternatives = [
        pad * i + "[1-9]" + r"\d" * (width - i - 1) for i in range(width)
    ]
    alternatives.append(pad * (width - 1) + "0")
    return "|".join(alternatives)


# letter -> (field key, default padding, pattern builder)
_NUMERIC: dict[str, tuple[str, str, Callable[[str], str]]] = {
    "Y": ("Y", "0", lambda p: _padded_number(p, 4)),
    "G": ("G", "0", lambda p: _padded_number(p, 4)),
    "C": ("C", "0", lambda p: _padded_number(p, 2)),
    "y": ("y", "0", lambda p: _padded_number(p, 2)),
    "g": ("g", "0", lambda p: _padded_number(p, 2)),
    "m": ("m", "0", lambda p: rf"1[0-2]|{p}\d"),
    "d": ("d", "0", lambda p: rf"[12]\d|3[01]|{p}\d"),
    "e": ("d", " ", lambda p: rf"[12]\d|3[01]|{p}\d"),
    "j": ("j", "0", lambda p: rf"[1-3][0-5]\d|[1-3]6[0-6]|{p}\d\d|{p}{p}[1-9]"),
    "U": ("U", "0", lambda p: rf"[1-4]\d|5[0-3]|{p}\d"),
    "W": ("W", "0", lambda p: rf"[1-4]\d|5[0-3]|{p}\d"),
    "V": ("V", "0", lambda p: rf"[1-4]\d|5[0-3]|{p}[1-9]"),
    "H": ("H", "0", lambda p: rf"1\d|2[0-3]|{p}\d"),
    "k": ("H", " ", lambda p: rf"1\d|2[0-3]|{p}\d"),
    "I": ("I", "0", lambda p: rf"1[0-2]|{p}[1-9]"),
    "l": ("I", " ", lambda p: rf"1[0-2]|{p}[1-9]"),
    "M": ("M", "0", lambda p: rf"[1-5]\d|{p}\d"),
    "S": ("S", "0", lambda p: rf"[1-5]\d|60|{p}\d"),
}

# letter -> (field key, pattern)
_FIXED: dict[str, tuple[str, str]] = {
    "b": ("b", r"[a-zA-Z]{3}"),
    "h": ("b", r"[a-zA-Z]{3}"),
    "B": ("B", r"[a-zA-Z]{3,9}"),
    "a": ("a", r"[a-zA-Z]{3}"),
    "A": ("A", r"[a-zA-Z]+"),
    "w": ("w", r"[0-6]"),
    "u": ("u", r"[1-7]"),
    "p": ("p", r"AM|PM"),
    "P": ("p", r"am|pm"),
    "f": ("f", r"\d{9}"),
    "Z": ("Z", r"\w+"),
    "z": ("z", r"[+-]\d\d\d\d"),
    "s": ("s", r"\d+"),
}

_LITERALS = {"t": "\t", "n": "\n", "%": "%"}

_OFFSET_RE = re.compile(r"([+-])(\d\d):?(\d\d)?")


@dataclass(frozen=True)
class _Directive:
    key: str
    pattern: str


def _char_at(fmt: str, i: int) -> str:
    if i >= len(fmt):
        raise InvalidOption(
            f"incomplete directive at the end of date/time format {fmt!r}. "
            "A literal '%' is written as '%%'"
        )
    return fmt[i]


def _translate(fmt: str, padding: str | None = None) -> list[str | _Directive]:
    """Translate a strftime-style format into literal and directive pieces."""
    pieces: list[str | _Directive] = []
    i = 0
    while i < len(fmt):
        c = fmt[i]
        if c != "%":
            pieces.append(re.escape(c))
            i += 1
            continue

        letter = _char_at(fmt, i + 1)
        pad = padding
        i += 2
        if letter in _PADDING:
            pad = _PADDING[letter]
            letter = _char_at(fmt, i)
            i += 1

        if letter in _COMPOSITES:
            pieces.extend(_translate(_COMPOSITES[letter], pad))
        elif letter in _NUMERIC:
            key, default_pad, build = _NUMERIC[letter]
            pieces.append(_Directive(key, build(default_pad if pad is None else pad)))
        elif letter in _FIXED:
            key, pattern = _FIXED[letter]
            pieces.append(_Directive(key, pattern))
        elif letter in _LITERALS:
            pieces.append(re.escape(_LITERALS[letter]))
        elif letter == ".":
            nxt = _char_at(fmt, i)
            if nxt == "f":
                pieces.append(_Directive("f", r"\.\d{0,9}"))
                i += 1
            elif nxt in "123456789" and _char_at(fmt, i + 1) == "f":
                pieces.append(_Directive("f", rf"\.\d{{{nxt}}}"))
                i += 2
            else:
                raise InvalidOption(
                    f"incomplete %f directive in {fmt!r} "
                    "('.' can only appear in combination with f)"
                )
        elif letter in "123456789":
            if _char_at(fmt, i) != "f":
                raise InvalidOption(
                    f"incomplete %f directive in {fmt!r} "
                    "(numbers can only appear in combination with f)"
                )
            pieces.append(_Directive("f", rf"\d{{{letter}}}"))
            i += 1
        elif letter in ":#":
            if _char_at(fmt, i) != "z":
                raise InvalidOption(
                    f"incomplete %z directive in {fmt!r} "
                    f"({letter!r} can only appear in combination with z)"
                )
            pattern = r"[+-]\d\d:\d\d" if letter == ":" else r"[+-]\d\d(?:\d\d)?"
            pieces.append(_Directive("z", pattern))
            i += 1
        else:
            raise InvalidOption(f"unknown date/time directive '%{letter}' in {fmt!r}")
    return pieces


@dataclass(frozen=True)
class TemporalFormat:
    """A translated date/time format.

    Attributes:
        source: The strftime-style format.
        fragment: Pattern fragment without capture groups.
        fields: Pattern with one group per directive, in order.
        keys: Field key of every group in ``fields``.
    """
    source: str
    fragment: str
    fields: re.Pattern
    keys: tuple[str, ...]

    def extract(self, text: str) -> dict[str, str]:
        m = self.fields.fullmatch(text)
        if m is None:
            raise ValueError(f"{text!r} does not follow the format {self.source!r}")
        out: dict[str, str] = {}
        for key, value in zip(self.keys, m.groups()):
            if key in out and out[key] != value:
                raise ValueError(
                    f"conflicting values {out[key]!r} and {value!r} for the same "
                    f"field in {text!r}"
                )
            out[key] = value
        return out


@lru_cache(maxsize=256)
def compile_format(fmt: str) -> TemporalFormat:
    """Translate *fmt* into a TemporalFormat.

    Raises:
        InvalidOption: On an unknown directive or a dangling ``%``.
    """
    pieces = _translate(fmt)
    fragment = "".join(
        p if isinstance(p, str) else f"(?:{p.pattern})" for p in pieces
    )
    fields = "".join(p if isinstance(p, str) else f"({p.pattern})" for p in pieces)
    keys = tuple(p.key for p in pieces if isinstance(p, _Directive))
    return TemporalFormat(fmt, fragment, re.compile(fields), keys)


# ---------------------------------------------------------------------------
# Field assembly
# ---------------------------------------------------------------------------

def _name_index(text: str, names: tuple[str, ...], full: bool) -> int:
    lowered = text.lower()
    for i, name in enumerate(names):
        if lowered == name[:3] or (full and lowered == name):
            return i
    raise ValueError(f"unknown name {text!r}")


def _two_digit_year(fields: dict[str, str], key: str) -> int:
    yy = int(fields[key])
    if "C" in fields:
        return int(fields["C"]) * 100 + yy
    return 2000 + yy if yy < 69 else 1900 + yy


def _year(fields: dict[str, str]) -> int | None:
    if "Y" in fields:
        return int(fields["Y"])
    if "y" in fields:
        return _two_digit_year(fields, "y")
    return None


def _iso_year(fields: dict[str, str]) -> int | None:
    if "G" in fields:
        return int(fields["G"])
    if "g" in fields:
        return _two_digit_year(fields, "g")
    return None


def _month(fields: dict[str, str]) -> int | None:
    candidates = set()
    if "m" in fields:
        candidates.add(int(fields["m"]))
    if "b" in fields:
        candidates.add(_name_index(fields["b"], _MONTHS, full=False) + 1)
    if "B" in fields:
        candidates.add(_name_index(fields["B"], _MONTHS, full=True) + 1)
    if len(candidates) > 1:
        raise ValueError(f"conflicting month values {sorted(candidates)}")
    return candidates.pop() if candidates else None


def _weekday(fields: dict[str, str]) -> int | None:
    """Monday-based weekday (0..6) from whichever weekday directives are present."""
    candidates = set()
    if "u" in fields:
        candidates.add(int(fields["u"]) - 1)
    if "w" in fields:
        candidates.add((int(fields["w"]) - 1) % 7)
    if "a" in fields:
        candidates.add(_name_index(fields["a"], _WEEKDAYS, full=False))
    if "A" in fields:
        candidates.add(_name_index(fields["A"], _WEEKDAYS, full=True))
    if len(candidates) > 1:
        raise ValueError("conflicting weekday values")
    return candidates.pop() if candidates else None


def _resolve_date(fields: dict[str, str]) -> date | None:
    weekday = _weekday(fields)
    iso_year = _iso_year(fields)

    if iso_year is not None and "V" in fields:
        if weekday is None:
            raise ValueError("an ISO week date needs a weekday")
        result = date.fromisocalendar(iso_year, int(fields["V"]), weekday + 1)
    else:
        year = _year(fields)
        if year is None:
            return None
        month = _month(fields)
        if "j" in fields:
            ordinal = int(fields["j"])
            if ordinal < 1:
                raise ValueError("day of year has to be at least 1")
            result = date(year, 1, 1) + timedelta(days=ordinal - 1)
            if result.year != year:
                raise ValueError(f"day of year {ordinal} is out of range for {year}")
        elif month is not None and "d" in fields:
            result = date(year, month, int(fields["d"]))
        elif ("U" in fields or "W" in fields) and weekday is not None:
            week = "U" if "U" in fields else "W"
            # strptime's %w counts from Sunday = 0
            result = datetime.strptime(
                f"{year:04d} {int(fields[week])} {(weekday + 1) % 7}",
                f"%Y %{week} %w",
            ).date()
        else:
            return None

    if weekday is not None and result.weekday() != weekday:
        raise ValueError(
            f"weekday {_WEEKDAYS[weekday]} does not match {result.isoformat()}"
        )
    return result


def _microseconds(fields: dict[str, str]) -> int:
    digits = fields.get("f", "").lstrip(".")
    if not digits:
        return 0
    return int((digits + "000000")[:6])


def _tzinfo(fields: dict[str, str]) -> timezone | None:
    if "z" not in fields:
        return None
    m = _OFFSET_RE.fullmatch(fields["z"])
    if m is None:
        raise ValueError(f"invalid UTC offset {fields['z']!r}")
    sign, hours, minutes = m.groups()
    if int(hours) > 23 or int(minutes or 0) > 59:
        raise ValueError(f"UTC offset out of range: {fields['z']!r}")
    delta = timedelta(hours=int(hours), minutes=int(minutes or 0))
    return timezone(-delta if sign == "-" else delta)


def _resolve_time(fields: dict[str, str], tz: timezone | None) -> time | None:
    if "H" in fields:
        hour = int(fields["H"])
    elif "I" in fields:
        if "p" not in fields:
            raise ValueError("a 12-hour clock value needs %p or %P")
        hour = int(fields["I"]) % 12 + (12 if fields["p"].lower() == "pm" else 0)
    else:
        return None
    if "M" not in fields:
        raise ValueError("a time needs minutes")
    second = int(fields.get("S", 0))
    return time(hour, int(fields["M"]), second, _microseconds(fields), tzinfo=tz)


def _from_timestamp(fields: dict[str, str], tz: timezone | None) -> datetime:
    value = datetime.fromtimestamp(int(fields["s"]), timezone.utc)
    if tz is None:
        return value.replace(tzinfo=None)
    return value.astimezone(tz)


# ---------------------------------------------------------------------------
# Capability
# ---------------------------------------------------------------------------

class TemporalType(TypeCapability):
    """``date``, ``time`` or ``datetime`` with a strftime-style sub-format."""

    accepts_sub_format = True

    def __init__(self, name: str, kind: str, default_format: str) -> None:
        self.name = name
        self.kind = kind
        self.default_format = default_format

    def _format(self, options: PlaceholderOptions) -> TemporalFormat:
        fmt = options.sub_format if options.sub_format is not None else self.default_format
        return compile_format(fmt)

    def fragment(self, options: PlaceholderOptions) -> str:
        return self._format(options).fragment

    def convert(self, captured: Captured, options: PlaceholderOptions) -> date | time | datetime:
        fields = self._format(options).extract(captured.text)
        tz = _tzinfo(fields)

        if self.kind == "date":
            if "s" in fields:
                return _from_timestamp(fields, tz).date()
            result = _resolve_date(fields)
        elif self.kind == "time":
            if "s" in fields:
                stamp = _from_timestamp(fields, tz)
                return stamp.timetz() if tz is not None else stamp.time()
            result = _resolve_time(fields, tz)
        else:
            if "s" in fields:
                return _from_timestamp(fields, tz)
            day = _resolve_date(fields)
            clock = _resolve_time(fields, tz)
            if day is None or clock is None:
                result = None
            else:
                result = datetime.combine(day, clock)

        if result is None:
            raise ValueError(
                f"not enough fields in {captured.text!r} to build a {self.kind}"
            )
        return result


def temporal_types() -> list[TemporalType]:
    return [
        TemporalType("date", "date", "%Y-%m-%d"),
        TemporalType("time", "time", "%H:%M:%S"),
        TemporalType("datetime", "datetime", "%Y-%m-%dT%H:%M:%S"),
    ]
