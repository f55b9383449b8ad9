"""
Unit tests for the public entry points in fmtscan/__init__.py:
compile(), scan() and register_type().
"""

import pytest

import fmtscan
from fmtscan.exceptions import (
    ArityError,
    DuplicateType,
    FieldConversionError,
    InvalidOption,
    NoMatch,
    UnknownType,
)
from fmtscan.types.base import SimpleType


# ---------------------------------------------------------------------------
# compile() bindings
# ---------------------------------------------------------------------------

class TestCompileBindings:
    """Tests for how call-site type bindings map onto placeholders."""

    def test_bindings_fill_inferred_placeholders(self):
        matcher = fmtscan.compile("{}:{u8}:{}", "str", "f64")
        assert matcher.run("a:1:2.5") == ("a", 1, 2.5)

    def test_bindings_positional_over_all_placeholders(self):
        matcher = fmtscan.compile("{}:{u8}:{}", "str", "ignored", "f64")
        assert matcher.run("a:1:2.5") == ("a", 1, 2.5)

    def test_no_bindings_for_explicit_format(self):
        assert fmtscan.compile("{u8}.{u8}").run("1.2") == (1, 2)

    def test_too_few_bindings(self):
        with pytest.raises(ArityError) as exc_info:
            fmtscan.compile("{} {} {}", "u8")
        assert exc_info.value.expected == 3
        assert exc_info.value.got == 1

    def test_too_many_bindings(self):
        with pytest.raises(ArityError):
            fmtscan.compile("{u8}", "u8", "u8")

    def test_capability_as_binding(self):
        word = SimpleType("word", r"[a-z]+", str.upper)
        assert fmtscan.compile("{}!", word).run("hey!") == ("HEY",)

    def test_invalid_binding_object(self):
        with pytest.raises(TypeError):
            fmtscan.compile("{}", 42)

    def test_unknown_type_in_format(self):
        with pytest.raises(UnknownType) as exc_info:
            fmtscan.compile("{u33}")
        assert exc_info.value.suggestion in {"u32", "i32", "u8"}

    def test_unknown_type_binding(self):
        with pytest.raises(UnknownType):
            fmtscan.compile("{}", "nope")

    def test_options_on_inferred_placeholder(self):
        assert fmtscan.compile("{:x}", "u8").run("ff") == (255,)

    def test_radix_on_inferred_non_integer(self):
        with pytest.raises(InvalidOption):
            fmtscan.compile("{:x}", "f64")

    def test_idempotent(self):
        a = fmtscan.compile("{}/{}", "i32", "str")
        b = fmtscan.compile("{}/{}", "i32", "str")
        assert a.pattern == b.pattern
        assert a.run("-3/x") == b.run("-3/x") == (-3, "x")


# ---------------------------------------------------------------------------
# scan()
# ---------------------------------------------------------------------------

class TestScan:
    """Tests for scan()."""

    def test_position(self):
        assert fmtscan.scan("Position<{f32},{f32}>", "Position<5,-1.5>") == (5.0, -1.5)

    def test_escaped_braces(self):
        assert fmtscan.scan("{{{u8}}}", "{7}") == (7,)

    def test_escaped_braces_not_placeholders(self):
        with pytest.raises(NoMatch):
            fmtscan.scan("{{u8}}", "5")
        assert fmtscan.scan("{{u8}}", "{u8}") == ()

    def test_unescaped_format(self):
        assert fmtscan.scan(r"\s*{u8}\s*", "  42 ", escape=False) == (42,)

    def test_custom_registry(self, registry):
        fmtscan.register_type("yes", r"y(?:es)?", lambda s: True, registry=registry)
        assert fmtscan.scan("{yes}", "y", registry=registry) == (True,)
        with pytest.raises(UnknownType):
            fmtscan.compile("{yes}")


# ---------------------------------------------------------------------------
# register_type()
# ---------------------------------------------------------------------------

class TestRegisterType:
    """Tests for register_type()."""

    def test_pattern_and_convert(self, registry):
        cap = fmtscan.register_type(
            "hexcolor", r"#[0-9a-f]{6}", lambda s: int(s[1:], 16), default=0,
            registry=registry,
        )
        assert cap.has_default
        assert fmtscan.scan("c={hexcolor}", "c=#00ff10", registry=registry) == (0x00FF10,)

    def test_capability_object(self, registry):
        cap = SimpleType("word", r"[a-z]+", str)
        assert fmtscan.register_type("word", cap, registry=registry) is cap
        assert registry.resolve("word") is cap

    def test_pattern_without_convert(self, registry):
        with pytest.raises(InvalidOption, match="convert"):
            fmtscan.register_type("bad", r"\d+", registry=registry)

    def test_pattern_does_not_compile(self, registry):
        with pytest.raises(InvalidOption, match="does not compile"):
            fmtscan.register_type("bad", r"(\d+", int, registry=registry)

    def test_duplicate(self, registry):
        with pytest.raises(DuplicateType):
            fmtscan.register_type("u8", r"\d+", int, registry=registry)

    def test_pattern_with_groups(self, registry):
        fmtscan.register_type("kv", r"(\w+)=(\w+)", lambda s: tuple(s.split("=")), registry=registry)
        assert fmtscan.scan("{kv};{u8}", "a=b;3", registry=registry) == (("a", "b"), 3)

    def test_pattern_with_named_group(self, registry):
        with pytest.raises(InvalidOption, match="names its groups"):
            fmtscan.register_type("kv", r"(?P<k>[a-z]+)=\d", str, registry=registry)
        assert "kv" not in registry

    def test_pattern_with_backreference(self, registry):
        with pytest.raises(InvalidOption, match="backreference"):
            fmtscan.register_type("dbl", r"(\w)\1", str, registry=registry)

    def test_same_grouped_type_twice(self, registry):
        fmtscan.register_type("kv", r"([a-z]+)=(\d)", lambda s: s.split("="), registry=registry)
        assert fmtscan.scan("{kv},{kv}", "a=1,b=2", registry=registry) == (["a", "1"], ["b", "2"])

    def test_octal_escape_is_not_a_backreference(self, registry):
        fmtscan.register_type("capital_a", r"\101+", len, registry=registry)
        assert fmtscan.scan("{capital_a}!", "AAA!", registry=registry) == (3,)


# ---------------------------------------------------------------------------
# Optional types
# ---------------------------------------------------------------------------

class TestOptional:
    """Tests for ``T?`` placeholders."""

    def test_present_and_absent(self):
        assert fmtscan.scan("{u8?}-{str}", "5-x") == (5, "x")
        assert fmtscan.scan("{u8?}-{str}", "-x") == (None, "x")

    def test_inferred_binding(self):
        assert fmtscan.compile("{}:{}", "u8?", "str").run(":a") == (None, "a")

    def test_radix(self):
        assert fmtscan.scan("{u8?:x}|", "ff|") == (255,)
        assert fmtscan.scan("{u8?:x}|", "|") == (None,)

    def test_custom_pattern(self):
        assert fmtscan.scan("[{u8?:/[0-9]+/}]", "[]") == (None,)
        with pytest.raises(FieldConversionError):
            fmtscan.scan("[{u8?:/[0-9]+/}]", "[300]")

    def test_unknown_inner_type(self):
        with pytest.raises(UnknownType):
            fmtscan.compile("{u9?}")


# ---------------------------------------------------------------------------
# Raw format strings with optional groups
# ---------------------------------------------------------------------------

class TestRawOptionalGroups:
    """Tests for placeholders inside optional groups of a raw format string."""

    def test_absent_group_gives_none(self):
        assert fmtscan.scan(r"n(?: says {u8})?", "n", escape=False) == (None,)

    def test_present_group_converts(self):
        assert fmtscan.scan(r"n(?: says {u8})?", "n says 5", escape=False) == (5,)

    def test_alternation(self):
        matcher = fmtscan.compile(r"(?:a{u8}|b{str})", escape=False)
        assert matcher.run("a7") == (7, None)
        assert matcher.run("bxy") == (None, "xy")


# ---------------------------------------------------------------------------
# finditer()
# ---------------------------------------------------------------------------

class TestFinditer:
    """Tests for finditer()."""

    def test_every_match(self):
        assert list(fmtscan.finditer("<{u8}>", "a <1> b <2> c <999>")) == [(1,), (2,)]

    def test_conversion_failure_skipped(self):
        found = fmtscan.finditer("<{u8:/[0-9]+/}>", "<1><300><3>")
        assert list(found) == [(1,), (3,)]

    def test_no_matches(self):
        assert list(fmtscan.finditer("{u8}", "abc")) == []

    def test_matcher_method(self, registry):
        fmtscan.register_type("word", r"[a-z]+", str.upper, registry=registry)
        matcher = fmtscan.compile("{word}={i32}", registry=registry)
        assert list(matcher.finditer("x=1, y=-2; z=")) == [("X", 1), ("Y", -2)]
