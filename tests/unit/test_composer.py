"""
Unit tests for the pattern composer (fmtscan.composer).

Focuses on capture-group bookkeeping: every placeholder owns the range
``(start, 1 + inner groups)`` and the ranges tile the compiled pattern.
"""

import re

import pytest

from fmtscan.composer import Binding, compose, group_count
from fmtscan.exceptions import InternalPatternError, InvalidOption
from fmtscan.options import parse_placeholder
from fmtscan.registry import get_default_registry
from fmtscan.tokenizer import placeholders, tokenize
from fmtscan.types.base import SimpleType


def _bindings(fmt: str, *types) -> list[Binding]:
    """Bind the placeholders of *fmt* to *types* (names or capabilities)."""
    registry = get_default_registry()
    out = []
    for placeholder, type_ref in zip(placeholders(tokenize(fmt)), types):
        cap = registry.resolve(type_ref) if isinstance(type_ref, str) else type_ref
        out.append(Binding(cap, placeholder.options))
    return out


def _compose(fmt: str, *types, escape: bool = True):
    return compose(tokenize(fmt), _bindings(fmt, *types), escape=escape, format_string=fmt)


class TestCompose:
    """Tests for compose()."""

    def test_anchored_pattern(self):
        matcher = _compose("a{}b", "u8")
        assert matcher.pattern.startswith(r"\A")
        assert matcher.pattern.endswith(r"\Z")
        assert matcher.regex.match("a7b")
        assert not matcher.regex.match("a7bc")

    def test_literals_escaped(self):
        matcher = _compose("1+1={}", "u8")
        assert matcher.regex.match("1+1=2")
        assert not matcher.regex.match("11=2")

    def test_simple_group_ranges(self):
        matcher = _compose("{}-{}", "u8", "str")
        assert [c.group_range for c in matcher.captures] == [(1, 1), (2, 1)]
        assert matcher.placeholder_count == 2
        assert matcher.group_count == matcher.regex.groups == 2

    def test_inner_groups_shift_later_ranges(self):
        pair = SimpleType("pair", r"(\d)(\d)", str)
        matcher = _compose("{}{}{}", pair, "char", pair)
        assert [c.group_range for c in matcher.captures] == [(1, 3), (4, 1), (5, 3)]
        assert matcher.regex.groups == 7

    def test_custom_pattern_replaces_fragment(self):
        fmt = "{:/(a)(b)?/}"
        matcher = _compose(fmt, "str")
        assert matcher.captures[0].group_range == (1, 3)
        assert matcher.regex.match("a")

    def test_identical_inputs_identical_pattern(self):
        assert _compose("{}:{}", "i32", "f64") == _compose("{}:{}", "i32", "f64")

    def test_unescaped_mode_uses_raw_literals(self):
        matcher = _compose(r"\d+ {}", "str", escape=False)
        assert matcher.regex.match("123 abc")
        assert not matcher.regex.match(r"\d+ abc")

    def test_unescaped_mode_top_level_alternation_stays_anchored(self):
        matcher = _compose("a|b{}", "u8", escape=False)
        assert not matcher.regex.match("ab5")

    def test_unescaped_mode_rejects_capture_groups(self):
        with pytest.raises(InvalidOption, match="capture groups"):
            _compose("(x){}", "u8", escape=False)

    def test_unescaped_mode_rejects_invalid_pattern(self):
        with pytest.raises(InvalidOption, match="not a valid pattern"):
            _compose("?{}", "u8", escape=False)

    def test_broken_fragment(self):
        broken = SimpleType("broken", r"(\d", int)
        with pytest.raises(InternalPatternError, match="broken"):
            _compose("{}", broken)

    def test_named_group_fragment_rejected(self):
        named = SimpleType("kv", r"(?P<k>[a-z]+)=\d", str)
        with pytest.raises(InvalidOption, match="names its groups"):
            _compose("{},{}", named, named)

    def test_backreference_fragment_rejected(self):
        twice = SimpleType("twice", r"(\w)\1", str)
        with pytest.raises(InvalidOption, match="backreference"):
            _compose("{}", twice)

    def test_unexpected_token(self):
        with pytest.raises(InternalPatternError, match="unexpected token"):
            compose(["oops"], [], format_string="x")

    def test_optional_fragment_groups(self):
        matcher = _compose("{}-{}", "u8?", "u8")
        assert [c.group_range for c in matcher.captures] == [(1, 2), (3, 1)]
        assert matcher.regex.match("-7").group(3) == "7"


class TestGroupCount:
    """Tests for group_count()."""

    def test_counts(self):
        assert group_count(r"\d+") == 0
        assert group_count(r"(a)(?:b)(c(d))") == 3

    def test_invalid(self):
        with pytest.raises(re.error):
            group_count("(")
