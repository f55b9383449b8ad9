"""Built-in type capabilities and their registration."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fmtscan.types.base import NO_DEFAULT, Captured, SimpleType, TypeCapability
from fmtscan.types.numeric import IntegerType, float_types, integer_types
from fmtscan.types.optional import OptionalType
from fmtscan.types.temporal import TemporalType, temporal_types
from fmtscan.types.text import text_types

if TYPE_CHECKING:
    from fmtscan.registry import TypeRegistry

__all__ = [
    "NO_DEFAULT",
    "Captured",
    "IntegerType",
    "OptionalType",
    "SimpleType",
    "TemporalType",
    "TypeCapability",
    "builtin_types",
    "register_builtins",
]


def builtin_types() -> list[TypeCapability]:
    return [*integer_types(), *float_types(), *text_types(), *temporal_types()]


def register_builtins(registry: TypeRegistry) -> None:
    """Register every built-in type into *registry*."""
    for capability in builtin_types():
        registry.register(capability.name, capability)
