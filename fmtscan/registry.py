"""
Type registry for fmtscan.

Maps type names (``u8``, ``f64``, ``date``, user records, ...) to their
capabilities. Names are unique; registering a name twice raises
``DuplicateType`` rather than shadowing the earlier type.

A name with a trailing ``?`` resolves to the optional form of the type
before it (``u8?`` matches a u8 or nothing); such names cannot be
registered.

The process-wide registry is built on first use with the built-in types.
Registration is not synchronized: register everything before matchers are
used from several threads.
"""

from __future__ import annotations

import logging
from typing import Iterator

from fmtscan.exceptions import DuplicateType, InvalidOption, UnknownType
from fmtscan.types.base import TypeCapability
from fmtscan.types.optional import OptionalType

logger = logging.getLogger(__name__)

# Maximum edit distance for "did you mean" suggestions
_SUGGESTION_DISTANCE = 2

_INVALID_NAME_CHARS = set("{}:")


def _levenshtein(a: str, b: str) -> int:
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, 1):
        current = [i]
        for j, cb in enumerate(b, 1):
            current.append(min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + (ca != cb),
            ))
        previous = current
    return previous[-1]


class TypeRegistry:
    """Name -> TypeCapability mapping, append-only."""

    def __init__(self) -> None:
        self._types: dict[str, TypeCapability] = {}

    def register(self, name: str, capability: TypeCapability) -> TypeCapability:
        """Add *capability* under *name*.

        Raises:
            DuplicateType: If *name* is already registered.
            InvalidOption: If *name* is empty, contains ``{``, ``}`` or ``:``,
                or ends in ``?``.
        """
        if (
            not name
            or _INVALID_NAME_CHARS & set(name)
            or name != name.strip()
            or name.endswith("?")
        ):
            raise InvalidOption(f"{name!r} is not a valid type name")
        if name in self._types:
            raise DuplicateType(name)
        self._types[name] = capability
        logger.debug("Registered type %r (%s)", name, type(capability).__name__)
        return capability

    def resolve(self, name: str) -> TypeCapability:
        """Look up a type by name.

        Raises:
            UnknownType: If nothing is registered under *name*. The error
                carries the closest registered name, if any is near enough.
        """
        capability = self._types.get(name)
        if capability is not None:
            return capability
        if len(name) > 1 and name.endswith("?"):
            return OptionalType(self.resolve(name[:-1]))
        raise UnknownType(name, self.suggest(name))

    def suggest(self, name: str) -> str | None:
        best: tuple[int, str] | None = None
        for candidate in self._types:
            distance = _levenshtein(name, candidate)
            if distance > _SUGGESTION_DISTANCE:
                continue
            if best is None or distance < best[0]:
                best = (distance, candidate)
        return best[1] if best else None

    def names(self) -> list[str]:
        return list(self._types)

    def copy(self) -> TypeRegistry:
        """Return an independent registry with the same registrations."""
        clone = TypeRegistry()
        clone._types = dict(self._types)
        return clone

    def __contains__(self, name: object) -> bool:
        return name in self._types

    def __iter__(self) -> Iterator[str]:
        return iter(self._types)

    def __len__(self) -> int:
        return len(self._types)


_DEFAULT_REGISTRY: TypeRegistry | None = None


def get_default_registry() -> TypeRegistry:
    """Lazily build the process-wide registry with the built-in types."""
    global _DEFAULT_REGISTRY
    if _DEFAULT_REGISTRY is None:
        from fmtscan.types import register_builtins

        registry = TypeRegistry()
        register_builtins(registry)
        _DEFAULT_REGISTRY = registry
        logger.debug("Built default registry with %d types", len(registry))
    return _DEFAULT_REGISTRY
