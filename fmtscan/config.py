"""
Type-definition files for fmtscan.

Records and variants can be declared in YAML instead of code:

    types:
      - kind: record
        name: Point
        format: "({x},{y})"
        fields:
          - {name: x, type: i32}
          - {name: y, type: i32}
          - {name: label, type: str, default: origin}
      - kind: variant
        name: Shape
        autogen: lowercase
        variants:
          - {tag: Circle, format: "circle {r}", fields: [{name: r, type: f64}]}
          - {tag: Empty}

Key models:
- ScanConfig: Top-level file (an ordered list of type definitions).
- RecordDefinition / VariantDefinition: one structured type each,
  discriminated by ``kind``.
- FieldDefinition: one field; a field with neither ``default`` nor
  ``type_default`` has to be referenced by a placeholder.

Key functions:
- load_definitions(path) -> ScanConfig: Load and validate from YAML.
- save_definitions(config, path): Serialize to YAML.
- register_definitions(config, registry): Build and register the types,
  in file order, so later definitions can use earlier ones.

Definitions only describe data; derive functions, factories and map /
filter_map callbacks need the Python API.
"""

from __future__ import annotations

import copy
import logging
from functools import partial
from pathlib import Path
from typing import Annotated, Any, Literal, Union

import yaml
from pydantic import BaseModel, Field, model_validator

from fmtscan.exceptions import CompileError, ConfigValidationError
from fmtscan.registry import TypeRegistry, get_default_registry
from fmtscan.structured import (
    TYPE_DEFAULT,
    FieldSpec,
    RecordType,
    VariantSpec,
    VariantType,
    register_record,
    register_variant,
)

logger = logging.getLogger(__name__)

AutogenCasing = Literal[
    "lowercase",
    "UPPERCASE",
    "PascalCase",
    "camelCase",
    "snake_case",
    "SCREAMING_SNAKE_CASE",
    "kebab-case",
    "SCREAMING-KEBAB-CASE",
    "case_sensitive",
    "case_insensitive",
]


def _check_unique(names: list[str], what: str, owner: str) -> None:
    seen: set[str] = set()
    for name in names:
        if name in seen:
            raise ValueError(f"{what} {name!r} appears more than once in {owner}")
        seen.add(name)


class FieldDefinition(BaseModel):
    """One field of a record or variant alternative."""

    name: str
    type: str | None = Field(None, description="Registered type name")
    default: Any = Field(None, description="Constant value when no placeholder fills the field")
    type_default: bool = Field(
        False, description="If True, use the type's registered default"
    )

    @model_validator(mode="after")
    def _check_default_source(self) -> FieldDefinition:
        if self.type_default and "default" in self.model_fields_set:
            raise ValueError(
                f"Field '{self.name}' sets both 'default' and 'type_default'."
            )
        if self.type_default and self.type is None:
            raise ValueError(
                f"Field '{self.name}' uses 'type_default' but has no 'type'."
            )
        return self

    def to_spec(self) -> FieldSpec:
        if self.type_default:
            return FieldSpec(name=self.name, type=self.type, default=TYPE_DEFAULT)
        if "default" not in self.model_fields_set:
            return FieldSpec(name=self.name, type=self.type)
        if isinstance(self.default, (list, dict)):
            # every result gets its own copy
            return FieldSpec(
                name=self.name,
                type=self.type,
                default_factory=partial(copy.deepcopy, self.default),
            )
        return FieldSpec(name=self.name, type=self.type, default=self.default)


class RecordDefinition(BaseModel):
    """A record type: fields plus the format string that scans them."""

    kind: Literal["record"]
    name: str
    format: str
    fields: list[FieldDefinition] = Field(default_factory=list)
    escape: bool = True

    @model_validator(mode="after")
    def _check_field_names(self) -> RecordDefinition:
        _check_unique([f.name for f in self.fields], "Field", f"record '{self.name}'")
        return self

    def build(self, registry: TypeRegistry) -> RecordType:
        return register_record(
            self.name,
            [f.to_spec() for f in self.fields],
            self.format,
            escape=self.escape,
            registry=registry,
        )


class AlternativeDefinition(BaseModel):
    """One alternative of a variant type."""

    tag: str
    format: str | None = None
    fields: list[FieldDefinition] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_field_names(self) -> AlternativeDefinition:
        _check_unique([f.name for f in self.fields], "Field", f"alternative '{self.tag}'")
        return self


class VariantDefinition(BaseModel):
    """A variant type: tagged alternatives tried in order."""

    kind: Literal["variant"]
    name: str
    autogen: AutogenCasing | None = None
    escape: bool = True
    variants: list[AlternativeDefinition]

    @model_validator(mode="after")
    def _check_variants(self) -> VariantDefinition:
        if not self.variants:
            raise ValueError(f"Variant '{self.name}' has no alternatives.")
        _check_unique([v.tag for v in self.variants], "Tag", f"variant '{self.name}'")
        missing = [v.tag for v in self.variants if v.format is None]
        if missing and self.autogen is None:
            raise ValueError(
                f"Variant '{self.name}' needs 'autogen' for alternatives without "
                f"a format: {missing}"
            )
        return self

    def build(self, registry: TypeRegistry) -> VariantType:
        alternatives = [
            VariantSpec(
                tag=v.tag,
                format=v.format,
                fields=tuple(f.to_spec() for f in v.fields),
            )
            for v in self.variants
        ]
        return register_variant(
            self.name, alternatives, autogen=self.autogen,
            escape=self.escape, registry=registry,
        )


TypeDefinition = Annotated[
    Union[RecordDefinition, VariantDefinition], Field(discriminator="kind")
]


class ScanConfig(BaseModel):
    """Top-level type-definition file.

    Definitions are registered in list order.
    """

    types: list[TypeDefinition] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_type_names(self) -> ScanConfig:
        _check_unique([t.name for t in self.types], "Type", "the definition file")
        return self


def load_definitions(path: str | Path) -> ScanConfig:
    """Read a type-definition file.

    Raises:
        FileNotFoundError: If *path* does not exist.
        ConfigValidationError: If the file holds no YAML document, or the
            document is not a mapping.
        pydantic.ValidationError: If a definition does not fit the schema.
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise FileNotFoundError(f"No type-definition file at {path}") from None

    raw = yaml.safe_load(text)
    if raw is None:
        raise ConfigValidationError(f"Type-definition file {path} is empty")
    if not isinstance(raw, dict):
        raise ConfigValidationError(
            f"Type-definition file {path} must hold a mapping with a 'types' list, "
            f"got {type(raw).__name__}"
        )

    config = ScanConfig.model_validate(raw)
    logger.info("%s: %d type definition(s)", path, len(config.types))
    return config


def save_definitions(config: ScanConfig, path: str | Path) -> None:
    """Write *config* as YAML, creating parent directories as needed.

    Fields left at their defaults are omitted, so loading the file gives
    back an equal ScanConfig.
    """
    path = Path(path)
    body = yaml.dump(
        config.model_dump(mode="json", exclude_unset=True),
        allow_unicode=True,
        default_flow_style=False,
        sort_keys=False,
    )
    names = ", ".join(t.name for t in config.types) or "none"
    header = f"# fmtscan type definitions: {names}\n\n"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(header + body, encoding="utf-8")
    logger.info("Wrote %d type definition(s) to %s", len(config.types), path)


def register_definitions(
    config: ScanConfig, registry: TypeRegistry | None = None
) -> list[RecordType | VariantType]:
    """Build every definition and register it, in file order.

    Types registered before a failing definition stay registered.

    Raises:
        ConfigValidationError: If a definition cannot be built (unknown
            field type, bad format string, name already registered, ...).
    """
    registry = registry if registry is not None else get_default_registry()
    built = []
    for definition in config.types:
        try:
            built.append(definition.build(registry))
        except CompileError as e:
            raise ConfigValidationError(
                f"{definition.kind} definition '{definition.name}' is invalid: {e}"
            ) from e
    logger.info("Registered %d type definition(s)", len(built))
    return built
