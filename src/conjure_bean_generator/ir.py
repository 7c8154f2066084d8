"""Load Conjure IR documents and turn their type definitions into declarations."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from conjure_bean_generator import helper
from conjure_bean_generator.conjure_types import (
    ConjureDefinitionKind,
    LocalType,
    TypeName,
    TypeResolver,
    class_name_for,
    module_name_for,
)
from conjure_bean_generator.declarations import (
    AliasDeclaration,
    BeanDeclaration,
    Declaration,
    EnumDeclaration,
    EnumValue,
)
from conjure_bean_generator.errors import IrFormatError
from conjure_bean_generator.writer_dto import PythonField, PythonPackage

logger = logging.getLogger(__name__)

SUPPORTED_DEFINITIONS = (ConjureDefinitionKind.OBJECT, ConjureDefinitionKind.ENUM, ConjureDefinitionKind.ALIAS)


@dataclass
class IrDefinition:
    """The type definitions of an IR document."""

    types: list[Mapping[str, Any]] = field(default_factory=list)
    version: int = 1

    @classmethod
    def from_dict(cls, raw: Any) -> IrDefinition:
        """Validate the top level structure of a decoded IR document.

        Args:
            raw (Any): The decoded JSON.

        Returns:
            IrDefinition: The definition.
        """
        if not isinstance(raw, Mapping):
            raise IrFormatError(f"Expected the IR document to be an object, got {type(raw).__name__}.")

        types = raw.get("types", [])
        if not isinstance(types, list):
            raise IrFormatError("'types' must be a list.")

        for index, definition in enumerate(types):
            if not isinstance(definition, Mapping) or not isinstance(definition.get("type"), str):
                raise IrFormatError(f"types[{index}]: expected a definition object with a 'type' key.")
            if not isinstance(definition.get(definition["type"]), Mapping):
                raise IrFormatError(f"types[{index}]: missing the '{definition['type']}' body.")

        version = raw.get("version", 1)
        if not isinstance(version, int):
            raise IrFormatError(f"'version' must be an integer, got {version!r}.")

        return cls(types=list(types), version=version)

    def merge(self, other: IrDefinition) -> IrDefinition:
        """Combine the type definitions of two documents."""
        return IrDefinition(types=self.types + other.types, version=max(self.version, other.version))


def load_ir(path: str | Path) -> IrDefinition:
    """Read an IR document from a JSON file.

    Args:
        path (str | Path): The path of the file.

    Returns:
        IrDefinition: The loaded definition.
    """
    try:
        with open(path, encoding="utf8") as ir_file:
            raw = json.load(ir_file)
    except json.JSONDecodeError as e:
        raise IrFormatError(f"{path}: invalid JSON ({e}).") from e

    logger.debug("Loaded IR document %s.", path)
    return IrDefinition.from_dict(raw)


def _docs(body: Mapping[str, Any], location: str) -> str | None:
    docs = body.get("docs")
    if docs is not None and not isinstance(docs, str):
        raise IrFormatError(f"{location}: 'docs' must be a string.")
    return docs


def _collect_known_types(ir: IrDefinition) -> dict[TypeName, LocalType]:
    known_types: dict[TypeName, LocalType] = {}

    for index, definition in enumerate(ir.types):
        kind = definition["type"]
        if kind not in SUPPORTED_DEFINITIONS:
            continue

        location = f"types[{index}]"
        type_name = TypeName.from_dict(definition[kind].get("typeName"), f"{location}.typeName")
        if type_name in known_types:
            raise IrFormatError(f"{location}: type '{type_name.package}.{type_name.name}' is defined twice.")

        known_types[type_name] = LocalType(module_name_for(type_name.package), class_name_for(type_name))

    return known_types


def _build_bean(
    body: Mapping[str, Any], type_name: TypeName, resolver: TypeResolver, package: PythonPackage, location: str
) -> BeanDeclaration:
    raw_fields = body.get("fields", [])
    if not isinstance(raw_fields, list):
        raise IrFormatError(f"{location}: 'fields' must be a list.")

    fields: list[PythonField] = []
    extra_imports = []
    for index, raw_field in enumerate(raw_fields):
        field_location = f"{location}.fields[{index}]"
        if not isinstance(raw_field, Mapping) or not isinstance(raw_field.get("fieldName"), str):
            raise IrFormatError(f"{field_location}: expected a field object with a 'fieldName'.")

        resolved = resolver.resolve(raw_field.get("type"), f"{field_location}.type")
        fields.append(
            PythonField(
                attribute_name=helper.to_snake_case(raw_field["fieldName"]),
                wire_name=raw_field["fieldName"],
                type_expr=resolved.type_expr,
                declared_type_expr=resolved.declared_type_expr,
                docs=_docs(raw_field, field_location),
                is_optional=resolved.is_optional,
            )
        )
        extra_imports.extend(resolved.imports)

    return BeanDeclaration(
        class_name=class_name_for(type_name),
        definition_name=type_name.name,
        definition_package=package,
        fields=tuple(fields),
        docs=_docs(body, location),
        extra_imports=tuple(extra_imports),
    )


def _build_enum(body: Mapping[str, Any], type_name: TypeName, package: PythonPackage, location: str) -> EnumDeclaration:
    raw_values = body.get("values", [])
    if not isinstance(raw_values, list):
        raise IrFormatError(f"{location}: 'values' must be a list.")

    values = []
    for index, raw_value in enumerate(raw_values):
        value_location = f"{location}.values[{index}]"
        if not isinstance(raw_value, Mapping) or not isinstance(raw_value.get("value"), str):
            raise IrFormatError(f"{value_location}: expected an enum value object with a 'value'.")
        values.append(EnumValue(raw_value["value"], _docs(raw_value, value_location)))

    return EnumDeclaration(
        class_name=class_name_for(type_name),
        definition_name=type_name.name,
        definition_package=package,
        values=tuple(values),
        docs=_docs(body, location),
    )


def _build_alias(body: Mapping[str, Any], type_name: TypeName, resolver: TypeResolver, location: str) -> AliasDeclaration:
    resolved = resolver.resolve(body.get("alias"), f"{location}.alias")
    return AliasDeclaration(
        class_name=class_name_for(type_name),
        type_expr=resolved.type_expr,
        extra_imports=resolved.imports,
        references=resolved.references,
        definition_name=type_name.name,
    )


def build_declarations(ir: IrDefinition, root_package: str) -> dict[str, list[Declaration]]:
    """Create the declarations of all supported type definitions.

    Args:
        ir (IrDefinition): The IR document.
        root_package (str): The package that contains all generated modules.

    Returns:
        dict[str, list[Declaration]]: The declarations, grouped by module name, in definition order.
    """
    known_types = _collect_known_types(ir)
    modules: dict[str, list[Declaration]] = {}

    for index, definition in enumerate(ir.types):
        kind = definition["type"]
        location = f"types[{index}]"
        body = definition[kind]

        if kind not in SUPPORTED_DEFINITIONS:
            logger.warning("Skipping %s: definitions of kind '%s' are not supported.", location, kind)
            continue

        type_name = TypeName.from_dict(body.get("typeName"), f"{location}.typeName")
        module = known_types[type_name].module
        resolver = TypeResolver(root_package, module, known_types)
        package = PythonPackage(root_package).child(module)

        match kind:
            case ConjureDefinitionKind.OBJECT:
                declaration = _build_bean(body, type_name, resolver, package, location)
            case ConjureDefinitionKind.ENUM:
                declaration = _build_enum(body, type_name, package, location)
            case _:
                declaration = _build_alias(body, type_name, resolver, location)

        modules.setdefault(module, []).append(declaration)

    return modules
