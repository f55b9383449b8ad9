"""
Base capability ABC for fmtscan types.

Every type a placeholder can name implements this interface. The contract is:
1. fragment() returns the regular-expression fragment that matches the
   textual form of a value, for the given placeholder options. The fragment
   may contain its own capture groups; the composer counts them.
2. convert() turns the captured text (plus the fragment's inner groups) into
   a value, raising ValueError / ArithmeticError / MatchError on failure.

Capabilities are immutable once registered and are shared by every matcher
built from the registry.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable

from fmtscan.exceptions import InvalidOption
from fmtscan.options import PlaceholderOptions


class _NoDefault:
    def __repr__(self) -> str:
        return "NO_DEFAULT"


NO_DEFAULT: Any = _NoDefault()


@dataclass(frozen=True)
class Captured:
    """The part of a match handed to ``TypeCapability.convert``.

    Attributes:
        text: The full substring captured by the placeholder.
        groups: Texts of the fragment's own capture groups, in order.
            ``None`` marks a group that did not participate in the match.
    """
    text: str
    groups: tuple[str | None, ...] = ()


class TypeCapability(ABC):
    """Abstract base class for everything a placeholder can resolve to.

    Subclasses must implement fragment() and convert(). Types that take a
    radix or a sub-format set the matching class attribute so that the
    compiler can reject options the type does not understand.
    """

    name: str = ""
    accepts_radix: bool = False
    accepts_sub_format: bool = False

    @abstractmethod
    def fragment(self, options: PlaceholderOptions) -> str:
        """Return the pattern fragment for one placeholder.

        Raises:
            InvalidOption: If the options are not valid for this type.
        """

    @abstractmethod
    def convert(self, captured: Captured, options: PlaceholderOptions) -> Any:
        """Convert a captured substring into a value.

        Raises:
            ValueError, ArithmeticError: If the text is not a valid value.
            MatchError: For structured types whose own matching failed.
        """

    def custom_fragment(self, pattern: str) -> str:
        """Fragment used when the placeholder gives its own sub-pattern."""
        return pattern

    @property
    def has_default(self) -> bool:
        return False

    def default(self) -> Any:
        raise LookupError(f"type {self.name!r} has no default value")

    def check_options(self, options: PlaceholderOptions) -> None:
        """Reject option classes this type does not take."""
        if options.radix is not None and not self.accepts_radix:
            raise InvalidOption(
                f"type {self.name!r} does not take a radix "
                f"(placeholder {{{options.source}}})"
            )
        if options.sub_format is not None and not self.accepts_sub_format:
            raise InvalidOption(
                f"type {self.name!r} does not take a format option, got "
                f"{options.sub_format!r} (placeholder {{{options.source}}})"
            )

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r}>"


class SimpleType(TypeCapability):
    """A type with a fixed fragment and a plain ``str -> value`` conversion."""

    def __init__(
        self,
        name: str,
        pattern: str,
        convert: Callable[[str], Any],
        default: Any = NO_DEFAULT,
    ) -> None:
        self.name = name
        self.pattern = pattern
        self._convert = convert
        self._default = default

    def fragment(self, options: PlaceholderOptions) -> str:
        return self.pattern

    def convert(self, captured: Captured, options: PlaceholderOptions) -> Any:
        return self._convert(captured.text)

    @property
    def has_default(self) -> bool:
        return self._default is not NO_DEFAULT

    def default(self) -> Any:
        if self._default is NO_DEFAULT:
            return super().default()
        return self._default
