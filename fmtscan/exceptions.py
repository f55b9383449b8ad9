"""
Custom exception hierarchy for fmtscan.

Two families, matching the two phases of the library:

- ``CompileError`` subclasses are raised while a matcher or a structured
  type is being built (format-string syntax, type resolution, registration,
  field definitions). A construction error never produces a matcher.
- ``MatchError`` subclasses are raised by a single ``run()`` call on an
  already built matcher. They are never retried.

``InternalPatternError`` sits outside both: it signals a composer invariant
violation (a malformed built-in fragment, a capture-group count mismatch) and
always indicates a defect rather than bad input.
"""

from __future__ import annotations


class FmtScanError(Exception):
    """Base exception for all fmtscan errors."""


# ---------------------------------------------------------------------------
# Construction-time errors
# ---------------------------------------------------------------------------

class CompileError(FmtScanError):
    """Raised when a format string, type or field definition is invalid."""


class UnescapedBrace(CompileError):
    """Raised when a ``{`` or ``}`` is neither escaped nor part of a placeholder.

    Carries the format string and the character offset of the offending brace.
    """

    def __init__(self, format_string: str, position: int, message: str = "") -> None:
        self.format_string = format_string
        self.position = position
        detail = message or "unescaped brace"
        super().__init__(
            f"{detail} at position {position} in format string {format_string!r}. "
            "Literal braces are written as '{{' and '}}'"
        )


class ConflictingOptions(CompileError):
    """Raised when a placeholder combines mutually exclusive option classes.

    For example a radix and a custom sub-pattern: ``{u8:x/[0-9]+/}``.
    """


class InvalidOption(CompileError):
    """Raised when a placeholder option is malformed or not valid for its type.

    This can happen if:
    - A custom sub-pattern is unterminated or does not compile.
    - A radix is outside 2..36, or is applied to a non-integer type.
    - A sub-format is given to a type that takes none, or is malformed.
    """


class UnknownType(CompileError):
    """Raised when a placeholder names a type that is not registered.

    ``suggestion`` holds the closest registered name (edit distance <= 2),
    or ``None`` when nothing is close enough.
    """

    def __init__(self, name: str, suggestion: str | None = None) -> None:
        self.name = name
        self.suggestion = suggestion
        message = f"unknown type {name!r}"
        if suggestion is not None:
            message += f". Did you mean {suggestion!r}?"
        super().__init__(message)


class ArityError(CompileError):
    """Raised when the number of type bindings does not fit the format string."""

    def __init__(self, expected: int, got: int, message: str = "") -> None:
        self.expected = expected
        self.got = got
        super().__init__(
            message or f"expected {expected} type binding(s), got {got}"
        )


class DuplicateType(CompileError):
    """Raised when a type name is registered twice."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"type {name!r} is already registered")


class InvalidField(CompileError):
    """Raised when a record or variant definition is inconsistent.

    For example a field that is both bound to a placeholder and given a
    default, a placeholder naming an unknown field, or a derive function
    that reads a field which is not filled before it.
    """


# ---------------------------------------------------------------------------
# Match-time errors
# ---------------------------------------------------------------------------

class MatchError(FmtScanError):
    """Raised when an input string cannot be scanned by a matcher."""


class NoMatch(MatchError):
    """Raised when the composed pattern does not match the whole input."""

    def __init__(self, pattern: str, input: str) -> None:
        self.pattern = pattern
        self.input = input
        super().__init__(f"input {input!r} does not match pattern {pattern!r}")


class FieldConversionError(MatchError):
    """Raised when a captured substring matched but failed typed conversion.

    Attributes:
        placeholder_index: Zero-based index of the placeholder.
        type_name: Name of the placeholder's type.
        input_slice: The captured text handed to the conversion.
        cause: The original exception.
    """

    def __init__(
        self,
        placeholder_index: int,
        type_name: str,
        input_slice: str,
        cause: BaseException,
    ) -> None:
        self.placeholder_index = placeholder_index
        self.type_name = type_name
        self.input_slice = input_slice
        self.cause = cause
        super().__init__(
            f"placeholder {placeholder_index} ({type_name}) failed to convert "
            f"{input_slice!r}: {cause}"
        )


class BuildError(MatchError):
    """Raised when a record matched but assembling its value failed.

    Covers derive functions, default factories and the record factory.

    Attributes:
        type_name: Name of the record.
        field_name: The field being filled, or None for the factory.
        cause: The original exception.
    """

    def __init__(self, type_name: str, field_name: str | None, cause: BaseException) -> None:
        self.type_name = type_name
        self.field_name = field_name
        self.cause = cause
        where = f"field {field_name!r}" if field_name is not None else "factory"
        super().__init__(f"building {type_name!r} failed in {where}: {cause}")


class NoVariantMatched(MatchError):
    """Raised when no alternative of a variant type accepts the input.

    ``attempts`` lists every ``(tag, reason)`` pair in the order tried.
    """

    def __init__(self, type_name: str, attempts: list[tuple[str, MatchError]]) -> None:
        self.type_name = type_name
        self.attempts = attempts
        details = "\n".join(f"  {tag}: {reason}" for tag, reason in attempts)
        super().__init__(
            f"no variant of {type_name!r} matched; tried {len(attempts)}:\n{details}"
        )


# ---------------------------------------------------------------------------
# Defects and configuration
# ---------------------------------------------------------------------------

class InternalPatternError(FmtScanError):
    """Raised when the composer produced an inconsistent pattern."""


class ConfigValidationError(FmtScanError):
    """Raised when a type-definition YAML file fails validation.

    This can happen if:
    - The file is empty.
    - A definition references a type that is not registered.
    """
