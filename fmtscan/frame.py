"""
Bulk scanning of many lines into a pandas DataFrame.

One row per input line, one column per placeholder. The row index is the
zero-based line number, so rows dropped with ``errors="skip"`` leave a gap.
"""

from __future__ import annotations

import logging
from typing import Iterable, Literal, Sequence

import pandas as pd

from fmtscan.composer import ComposedMatcher
from fmtscan.exceptions import MatchError
from fmtscan.executor import run

logger = logging.getLogger(__name__)

ErrorPolicy = Literal["raise", "coerce", "skip"]


def scan_frame(
    lines: Iterable[str],
    matcher: ComposedMatcher,
    columns: Sequence[str] | None = None,
    errors: ErrorPolicy = "raise",
) -> pd.DataFrame:
    """Scan every line with *matcher* and collect the values in a DataFrame.

    Trailing ``\\n`` / ``\\r\\n`` are removed from each line first, so an
    open text file can be passed directly.

    Args:
        lines: Input lines.
        matcher: A compiled format string.
        columns: Column names, one per placeholder. Defaults to 0..n-1.
        errors: ``"raise"`` propagates the first MatchError, ``"coerce"``
            keeps failing lines as rows of missing values, ``"skip"`` drops
            them (each logged as a warning).

    Returns:
        DataFrame indexed by line number.

    Raises:
        ValueError: If *columns* has the wrong length or *errors* is unknown.
        MatchError: On the first failing line when ``errors="raise"``.
    """
    if errors not in ("raise", "coerce", "skip"):
        raise ValueError(f"errors must be 'raise', 'coerce' or 'skip', got {errors!r}")
    width = matcher.placeholder_count
    if columns is None:
        columns = list(range(width))
    elif len(columns) != width:
        raise ValueError(
            f"got {len(columns)} column name(s) for {width} placeholder(s) "
            f"in {matcher.format_string!r}"
        )

    rows: list[tuple] = []
    index: list[int] = []
    failed = 0
    total = 0
    for line_no, line in enumerate(lines):
        total += 1
        text = line.rstrip("\r\n")
        try:
            values = run(matcher, text)
        except MatchError as e:
            if errors == "raise":
                raise
            failed += 1
            if errors == "skip":
                logger.warning("Skipping line %d (%r): %s", line_no, text, e)
                continue
            values = (None,) * width
        rows.append(values)
        index.append(line_no)

    logger.info(
        "Scanned %d line(s) with %r: %d row(s), %d failed (errors=%s)",
        total,
        matcher.format_string, len(rows), failed, errors,
    )
    return pd.DataFrame(rows, index=index, columns=list(columns))
