"""
Unit tests for the match executor (fmtscan.executor).
"""

import pytest

import fmtscan
from fmtscan.composer import Binding, CaptureSpec, ComposedMatcher
from fmtscan.exceptions import FieldConversionError, InternalPatternError, NoMatch
from fmtscan.executor import extract, finditer, run
from fmtscan.options import PlaceholderOptions
from fmtscan.types.base import Captured, SimpleType, TypeCapability


class _Groups(TypeCapability):
    """Test type that returns the inner groups it was handed."""

    name = "groups"

    def fragment(self, options):
        return r"(\w)=(\d)?"

    def convert(self, captured, options):
        return captured.groups


class TestRun:
    """Tests for run()."""

    def test_values_in_placeholder_order(self):
        matcher = fmtscan.compile("{}|{}|{}", "u8", "str", "f64")
        assert run(matcher, "1|a|2.5") == (1, "a", 2.5)

    def test_matcher_run_method(self):
        matcher = fmtscan.compile("<{u16}>")
        assert matcher.run("<65535>") == (65535,)

    def test_no_placeholders_returns_empty_tuple(self):
        assert run(fmtscan.compile("fixed"), "fixed") == ()

    def test_no_match(self):
        matcher = fmtscan.compile("x={u8}")
        with pytest.raises(NoMatch) as exc_info:
            run(matcher, "y=1")
        assert exc_info.value.input == "y=1"
        assert exc_info.value.pattern == matcher.pattern

    def test_partial_input_does_not_match(self):
        with pytest.raises(NoMatch):
            run(fmtscan.compile("{u8}"), "12 ")

    def test_conversion_error_wraps_cause(self):
        def reject(text):
            raise ValueError("nope")

        cap = SimpleType("picky", r"[a-z]+", reject)
        matcher = fmtscan.compile("{} {}", "u8", cap)
        with pytest.raises(FieldConversionError) as exc_info:
            run(matcher, "5 abc")
        err = exc_info.value
        assert err.placeholder_index == 1
        assert err.type_name == "picky"
        assert err.input_slice == "abc"
        assert isinstance(err.cause, ValueError)
        assert err.__cause__ is err.cause

    def test_no_retry_after_conversion_failure(self):
        calls = []

        def only_short(text):
            calls.append(text)
            if len(text) > 1:
                raise ValueError("too long")
            return text

        cap = SimpleType("short", r"a+", only_short)
        matcher = fmtscan.compile("{}{}", cap, "str")
        with pytest.raises(FieldConversionError):
            run(matcher, "aaab")
        assert calls == ["aaa"]

    def test_inner_groups_reach_conversion(self):
        matcher = fmtscan.compile("{} {}", _Groups(), _Groups())
        assert run(matcher, "a=1 b=") == (("a", "1"), ("b", None))


class TestExtract:
    """Tests for extract() on group views."""

    def test_view(self):
        matcher = fmtscan.compile("{}-{}", "u8", "u8")
        assert extract(matcher, ("1-2", "1", "2")) == (1, 2)

    def test_missing_group_is_internal_error(self):
        cap = SimpleType("word", r"\w+", str)
        matcher = ComposedMatcher(
            pattern=r"\A(\w+)\Z",
            body=r"(\w+)",
            captures=(CaptureSpec(0, 1, 1),),
            bindings=(Binding(cap, PlaceholderOptions(type_name="word")),),
            format_string="{word}",
        )
        with pytest.raises(InternalPatternError, match="did not participate"):
            extract(matcher, ("", None))

    def test_missing_group_in_raw_format_is_none(self):
        cap = SimpleType("word", r"\w+", str)
        matcher = ComposedMatcher(
            pattern=r"\A(?:x(\w+))?\Z",
            body=r"(?:x(\w+))?",
            captures=(CaptureSpec(0, 1, 1),),
            bindings=(Binding(cap, PlaceholderOptions(type_name="word")),),
            format_string=r"(?:x{word})?",
            escape=False,
        )
        assert extract(matcher, ("", None)) == (None,)

    def test_captured_is_plain_data(self):
        assert Captured("x") == Captured("x", ())


class TestFinditer:
    """Tests for finditer() on a matcher."""

    def test_unanchored(self):
        matcher = fmtscan.compile("{u8}+{u8}")
        assert list(finditer(matcher, "1+2 and 30+4")) == [(1, 2), (30, 4)]

    def test_lazy(self):
        matcher = fmtscan.compile("#{u8}")
        found = finditer(matcher, "#1 #2")
        assert next(found) == (1,)
        assert next(found) == (2,)
        with pytest.raises(StopIteration):
            next(found)

    def test_skipped_match_is_logged(self, caplog):
        def even(text):
            if int(text) % 2:
                raise ValueError(f"{text} is odd")
            return int(text)

        cap = SimpleType("even", r"\d", even)
        matcher = fmtscan.compile("[{}]", cap)
        with caplog.at_level("DEBUG", logger="fmtscan.executor"):
            assert list(finditer(matcher, "[1][2][3][4]")) == [(2,), (4,)]
        assert "Skipping match '[1]'" in caplog.text
