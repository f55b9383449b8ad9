"""
Integration tests: one compiled matcher shared by many threads.

A ComposedMatcher holds only immutable data and compiled patterns, so
worker threads run it without locking and get the same values a single
thread would.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

import pytest

import fmtscan
from fmtscan import FieldSpec
from fmtscan.exceptions import MatchError


@dataclass
class Point:
    x: int
    y: int


def _line(i: int) -> str:
    return f"{i}: ({i},{-i}) tag{i % 7}"


@pytest.fixture
def matcher(registry):
    fmtscan.register_record(
        "Point", [FieldSpec("x", "i32"), FieldSpec("y", "i32")], "({x},{y})",
        factory=Point, registry=registry,
    )
    return fmtscan.compile("{u32}: {Point} {str}", registry=registry)


@pytest.mark.integration
class TestSharedMatcher:
    """Tests for running one matcher from a thread pool."""

    def test_results_match_sequential_run(self, matcher):
        lines = [_line(i) for i in range(500)]
        expected = [(i, Point(i, -i), f"tag{i % 7}") for i in range(500)]

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(matcher.run, lines))

        assert results == expected

    def test_failures_stay_with_their_input(self, matcher):
        lines = [_line(i) if i % 3 else f"bad line {i}" for i in range(300)]

        def outcome(line):
            try:
                return matcher.run(line)
            except MatchError as e:
                return type(e).__name__

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(outcome, lines))

        for i, result in enumerate(results):
            if i % 3:
                assert result == (i, Point(i, -i), f"tag{i % 7}")
            else:
                assert result == "NoMatch"
