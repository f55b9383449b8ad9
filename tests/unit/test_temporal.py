"""
Unit tests for date/time capabilities (fmtscan.types.temporal).

Tests format translation (directives, padding, composites), field
assembly into date/time/datetime values and the errors for malformed
formats or inconsistent fields.
"""

import re
from datetime import date, datetime, time, timedelta, timezone

import pytest

import fmtscan
from fmtscan.exceptions import FieldConversionError, InvalidOption, NoMatch
from fmtscan.types.temporal import compile_format


# ---------------------------------------------------------------------------
# Format translation
# ---------------------------------------------------------------------------

class TestCompileFormat:
    """Tests for compile_format()."""

    def test_fragment_has_no_capture_groups(self):
        fmt = compile_format("%Y-%m-%dT%H:%M:%S%.f%:z")
        assert re.compile(fmt.fragment).groups == 0

    def test_one_group_per_directive(self):
        fmt = compile_format("%d.%m.%Y")
        assert fmt.keys == ("d", "m", "Y")
        assert fmt.fields.groups == 3

    def test_composite_expands(self):
        assert compile_format("%F").keys == ("Y", "m", "d")
        assert compile_format("%T").keys == ("H", "M", "S")

    def test_literals_escaped(self):
        fmt = compile_format("%H.%M (%S)")
        assert re.fullmatch(fmt.fragment, "12.30 (15)")
        assert not re.fullmatch(fmt.fragment, "12x30 (15)")

    def test_no_padding_modifier(self):
        fmt = compile_format("%-d/%-m")
        assert re.fullmatch(fmt.fragment, "5/7")
        assert not re.fullmatch(fmt.fragment, "05/07")

    def test_space_padding_modifier(self):
        fmt = compile_format("%_d")
        assert re.fullmatch(fmt.fragment, " 5")

    @pytest.mark.parametrize("bad", ["%Q", "%", "abc%", "%.x", "%3x", "%:x", "%-"])
    def test_invalid_directives(self, bad):
        with pytest.raises(InvalidOption):
            compile_format(bad)


# ---------------------------------------------------------------------------
# Scanning dates, times and datetimes
# ---------------------------------------------------------------------------

class TestDate:
    """Tests for the date type."""

    def test_default_format(self):
        assert fmtscan.scan("{date}", "2024-02-29") == (date(2024, 2, 29),)

    def test_custom_format(self):
        assert fmtscan.scan("on {date:%d.%m.%Y}", "on 03.11.2021") == (date(2021, 11, 3),)

    def test_month_names(self):
        assert fmtscan.scan("{date:%d %b %Y}", "05 Mar 2020") == (date(2020, 3, 5),)
        assert fmtscan.scan("{date:%B %d, %Y}", "July 04, 1999") == (date(1999, 7, 4),)

    def test_two_digit_year(self):
        assert fmtscan.scan("{date:%y%m%d}", "690101") == (date(1969, 1, 1),)
        assert fmtscan.scan("{date:%y%m%d}", "000101") == (date(2000, 1, 1),)

    def test_day_of_year(self):
        assert fmtscan.scan("{date:%Y-%j}", "2023-032") == (date(2023, 2, 1),)

    def test_iso_week(self):
        assert fmtscan.scan("{date:%G-W%V-%u}", "2020-W53-5") == (date(2021, 1, 1),)

    def test_weekday_consistency(self):
        assert fmtscan.scan("{date:%a %F}", "Fri 2021-01-01") == (date(2021, 1, 1),)
        with pytest.raises(FieldConversionError, match="does not match"):
            fmtscan.scan("{date:%a %F}", "Mon 2021-01-01")

    def test_invalid_day(self):
        with pytest.raises(FieldConversionError) as exc_info:
            fmtscan.scan("{date}", "2023-02-30")
        assert isinstance(exc_info.value.cause, ValueError)

    def test_insufficient_fields(self):
        with pytest.raises(FieldConversionError, match="not enough fields"):
            fmtscan.scan("{date:%m-%d}", "02-03")

    def test_month_out_of_pattern(self):
        with pytest.raises(NoMatch):
            fmtscan.scan("{date}", "2023-13-01")


class TestTime:
    """Tests for the time type."""

    def test_default_format(self):
        assert fmtscan.scan("{time}", "23:59:01") == (time(23, 59, 1),)

    def test_twelve_hour_clock(self):
        assert fmtscan.scan("{time:%I:%M %p}", "07:15 PM") == (time(19, 15),)
        assert fmtscan.scan("{time:%I:%M %p}", "12:00 AM") == (time(0, 0),)

    def test_fraction(self):
        assert fmtscan.scan("{time:%H:%M:%S%.f}", "10:00:00.25") == (time(10, 0, 0, 250000),)
        assert fmtscan.scan("{time:%H:%M:%S.%3f}", "10:00:00.001") == (time(10, 0, 0, 1000),)

    def test_twelve_hour_without_meridiem(self):
        with pytest.raises(FieldConversionError, match="%p"):
            fmtscan.scan("{time:%I:%M}", "07:15")

    def test_hour_out_of_pattern(self):
        with pytest.raises(NoMatch):
            fmtscan.scan("{time}", "24:00:00")


class TestDatetime:
    """Tests for the datetime type."""

    def test_default_format(self):
        assert fmtscan.scan("{datetime}", "2024-05-06T07:08:09") == (
            datetime(2024, 5, 6, 7, 8, 9),
        )

    def test_offset(self):
        (value,) = fmtscan.scan("{datetime:%F %T %z}", "2024-05-06 07:08:09 -0130")
        assert value.utcoffset() == -timedelta(hours=1, minutes=30)
        assert value.hour == 7

    def test_rfc3339(self):
        (value,) = fmtscan.scan("{datetime:%+}", "2024-05-06T07:08:09.5+02:00")
        assert value == datetime(2024, 5, 6, 7, 8, 9, 500000, tzinfo=timezone(timedelta(hours=2)))

    def test_timestamp(self):
        assert fmtscan.scan("{datetime:%s}", "86400") == (datetime(1970, 1, 2),)

    def test_needs_date_and_time(self):
        with pytest.raises(FieldConversionError, match="not enough fields"):
            fmtscan.scan("{datetime:%F}", "2024-05-06")

    def test_in_larger_format(self):
        result = fmtscan.scan("[{datetime:%F %R}] {str}", "[2024-01-02 03:04] boot ok")
        assert result == (datetime(2024, 1, 2, 3, 4), "boot ok")

    def test_radix_rejected(self):
        with pytest.raises(InvalidOption):
            fmtscan.compile("{datetime:x}")
