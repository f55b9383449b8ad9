"""
Optional types: ``{u8?}`` matches a u8 or nothing.

The registry builds an OptionalType for any name ending in ``?``. Its
fragment is the inner fragment in an optional group; when that group does
not take part in the match the value is None.
"""

from __future__ import annotations

from typing import Any

from fmtscan.options import PlaceholderOptions
from fmtscan.types.base import Captured, TypeCapability


class OptionalType(TypeCapability):
    """Wraps another capability so that its text may be absent."""

    def __init__(self, inner: TypeCapability) -> None:
        self.inner = inner
        self.name = f"{inner.name}?"
        self.accepts_radix = inner.accepts_radix
        self.accepts_sub_format = inner.accepts_sub_format

    @property
    def has_default(self) -> bool:
        return True

    def default(self) -> None:
        return None

    def fragment(self, options: PlaceholderOptions) -> str:
        return f"({self.inner.fragment(options)})?"

    def custom_fragment(self, pattern: str) -> str:
        return f"({self.inner.custom_fragment(pattern)})?"

    def convert(self, captured: Captured, options: PlaceholderOptions) -> Any:
        text, *inner_groups = captured.groups
        if text is None:
            return None
        return self.inner.convert(Captured(text, tuple(inner_groups)), options)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, OptionalType) and other.inner == self.inner

    def __hash__(self) -> int:
        return hash((OptionalType, self.inner))
