"""Types definitions of the Conjure IR and their Python type expressions."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from conjure_bean_generator import helper
from conjure_bean_generator.errors import IrFormatError
from conjure_bean_generator.writer_dto import PythonImport

CONJURE_PYTHON_CLIENT = "conjure_python_client"
TYPING = "typing"

# (runtime type expression, declared type expression, imports)
CONJURE_PRIMITIVE_TO_PYTHON: dict[str, tuple[str, str, tuple[PythonImport, ...]]] = {
    "STRING": ("str", "str", ()),
    "RID": ("str", "str", ()),
    "BEARERTOKEN": ("str", "str", ()),
    "DATETIME": ("str", "str", ()),
    "UUID": ("str", "str", ()),
    "INTEGER": ("int", "int", ()),
    "SAFELONG": ("int", "int", ()),
    "DOUBLE": ("float", "float", ()),
    "BOOLEAN": ("bool", "bool", ()),
    "BINARY": (
        "BinaryType()",
        "Any",
        (PythonImport.of(CONJURE_PYTHON_CLIENT, "BinaryType"), PythonImport.of(TYPING, "Any")),
    ),
    "ANY": ("object", "Any", (PythonImport.of(TYPING, "Any"),)),
}


class ConjureTypeKind:
    """Kinds of types in the Conjure IR."""

    PRIMITIVE = "primitive"
    OPTIONAL = "optional"
    LIST = "list"
    SET = "set"
    MAP = "map"
    REFERENCE = "reference"
    EXTERNAL = "external"


class ConjureDefinitionKind:
    """Kinds of type definitions in the Conjure IR."""

    OBJECT = "object"
    ENUM = "enum"
    ALIAS = "alias"
    UNION = "union"


@dataclass(frozen=True)
class TypeName:
    """The fully qualified name of a defined type."""

    name: str
    package: str

    @classmethod
    def from_dict(cls, raw: Any, location: str) -> TypeName:
        """Parse a `{"name": ..., "package": ...}` object."""
        if not isinstance(raw, Mapping) or not isinstance(raw.get("name"), str) or not isinstance(
            raw.get("package"), str
        ):
            raise IrFormatError(f"{location}: expected an object with 'name' and 'package', got {raw!r}.")
        return cls(raw["name"], raw["package"])


@dataclass(frozen=True)
class LocalType:
    """Where a defined type is rendered."""

    module: str
    class_name: str


@dataclass(frozen=True)
class ResolvedType:
    """The Python rendering of an IR type.

    Attributes:
        type_expr: Expression evaluated at runtime by the serialization runtime.
        declared_type_expr: Type annotation for signatures.
        imports: Imports both expressions depend on.
        is_optional: Whether a field of this type may be absent.
        references: Class names of the current module the runtime expression refers to.
    """

    type_expr: str
    declared_type_expr: str
    imports: tuple[PythonImport, ...] = ()
    is_optional: bool = False
    references: frozenset[str] = field(default_factory=frozenset)


def module_name_for(package: str) -> str:
    """The Python module name for an IR package: its last segment, e.g. 'com.palantir.product' -> 'product'."""
    return helper.sanitize_name(package.rsplit(".", 1)[-1].lower().replace("-", "_"))


def class_name_for(type_name: TypeName) -> str:
    """The identifier of the rendered class, prefixed with its module to avoid clashes across packages."""
    return f"{module_name_for(type_name.package)}_{type_name.name}"


class TypeResolver:
    """Resolves IR types into Python type expressions for one generated module."""

    def __init__(self, root_package: str, module: str, known_types: Mapping[TypeName, LocalType]):
        """Initialize the resolver.

        Args:
            root_package (str): The package all generated modules are placed in.
            module (str): The module the resolved expressions are used in.
            known_types (Mapping[TypeName, LocalType]): All types defined in the IR.
        """
        self.root_package = root_package
        self.module = module
        self._known_types = known_types

    def resolve(self, raw: Any, location: str = "type") -> ResolvedType:
        """Resolve an IR type object.

        Args:
            raw (Any): The decoded JSON of the IR type.
            location (str): Where the type occurs, used in error messages.

        Returns:
            ResolvedType: The Python rendering.
        """
        if not isinstance(raw, Mapping) or not isinstance(raw.get("type"), str):
            raise IrFormatError(f"{location}: expected a type object with a 'type' key, got {raw!r}.")

        kind = raw["type"]
        body = raw.get(kind)

        match kind:
            case ConjureTypeKind.PRIMITIVE:
                return self._resolve_primitive(body, location)
            case ConjureTypeKind.OPTIONAL:
                return self._resolve_optional(self._item_type(body, "itemType", location), location)
            case ConjureTypeKind.LIST | ConjureTypeKind.SET:
                return self._resolve_list(self._item_type(body, "itemType", location), location)
            case ConjureTypeKind.MAP:
                return self._resolve_map(
                    self._item_type(body, "keyType", location), self._item_type(body, "valueType", location), location
                )
            case ConjureTypeKind.REFERENCE:
                return self._resolve_reference(TypeName.from_dict(body, location))
            case ConjureTypeKind.EXTERNAL:
                return self.resolve(self._item_type(body, "fallback", location), f"{location}.fallback")
            case _:
                raise IrFormatError(f"{location}: unknown type kind '{kind}'.")

    @staticmethod
    def _item_type(body: Any, key: str, location: str) -> Any:
        if not isinstance(body, Mapping) or key not in body:
            raise IrFormatError(f"{location}: missing '{key}'.")
        return body[key]

    def _resolve_primitive(self, primitive: Any, location: str) -> ResolvedType:
        try:
            type_expr, declared_type_expr, imports = CONJURE_PRIMITIVE_TO_PYTHON[primitive]
        except (KeyError, TypeError) as e:
            raise IrFormatError(f"{location}: unknown primitive type {primitive!r}.") from e

        return ResolvedType(type_expr, declared_type_expr, imports)

    def _resolve_optional(self, item: Any, location: str) -> ResolvedType:
        inner = self.resolve(item, f"{location}.optional")
        return ResolvedType(
            helper.new_group("OptionalTypeWrapper", [inner.type_expr]),
            helper.new_group("Optional", [inner.declared_type_expr]),
            inner.imports
            + (PythonImport.of(CONJURE_PYTHON_CLIENT, "OptionalTypeWrapper"), PythonImport.of(TYPING, "Optional")),
            is_optional=True,
            references=inner.references,
        )

    def _resolve_list(self, item: Any, location: str) -> ResolvedType:
        inner = self.resolve(item, f"{location}.list")
        return ResolvedType(
            helper.new_group("List", [inner.type_expr]),
            helper.new_group("List", [inner.declared_type_expr]),
            inner.imports + (PythonImport.of(TYPING, "List"),),
            references=inner.references,
        )

    def _resolve_map(self, key: Any, value: Any, location: str) -> ResolvedType:
        key_type = self.resolve(key, f"{location}.key")
        value_type = self.resolve(value, f"{location}.value")
        return ResolvedType(
            helper.new_group("Dict", [key_type.type_expr, value_type.type_expr]),
            helper.new_group("Dict", [key_type.declared_type_expr, value_type.declared_type_expr]),
            key_type.imports + value_type.imports + (PythonImport.of(TYPING, "Dict"),),
            references=key_type.references | value_type.references,
        )

    def _resolve_reference(self, type_name: TypeName) -> ResolvedType:
        try:
            local_type = self._known_types[type_name]
        except KeyError as e:
            raise IrFormatError(f"Reference to undefined type '{type_name.package}.{type_name.name}'.") from e

        class_name = local_type.class_name
        # Annotations are quoted, the referenced class may be declared further down the module.
        declared_type_expr = f'"{class_name}"'

        if local_type.module == self.module:
            return ResolvedType(class_name, declared_type_expr, references=frozenset({class_name}))

        return ResolvedType(
            class_name,
            declared_type_expr,
            (PythonImport.of(f"{self.root_package}.{local_type.module}", class_name),),
        )
