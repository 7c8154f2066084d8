"""Declarations that render themselves into a `PoetWriter`.

A declaration is one of `BeanDeclaration`, `EnumDeclaration` or `AliasDeclaration`. All of them
are immutable, expose a `sort_key` for ordering declarations inside a module and the imports
their rendered text needs. `render_declaration` dispatches to the renderer of the variant.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field

from conjure_bean_generator import helper
from conjure_bean_generator.conjure_types import CONJURE_PYTHON_CLIENT, TYPING
from conjure_bean_generator.errors import DeclarationError
from conjure_bean_generator.writer import PoetWriter, UnbalancedIndentError
from conjure_bean_generator.writer_dto import ImportSet, PythonField, PythonImport, PythonPackage

logger = logging.getLogger(__name__)

# Name of the class level field registry. A backing slot of a field called `fields` would
# otherwise be `_fields` and shadow it.
FIELDS_ACCESSOR = "_fields"
PROTECTED_FIELDS = frozenset({"fields"})
# Names a field cannot take as constructor parameter or class body attribute: `self` is the
# receiver of the constructor and `builtins` is looked up by the decorators of the class body.
RESERVED_ATTRIBUTES = frozenset({"self", "builtins"})

BEAN_DEFAULT_IMPORTS = (
    PythonImport.of(CONJURE_PYTHON_CLIENT, "ConjureBeanType", "ConjureFieldDefinition"),
    PythonImport.of("builtins"),
    PythonImport.of(TYPING, "Dict", "List"),
)
ENUM_DEFAULT_IMPORTS = (PythonImport.of(CONJURE_PYTHON_CLIENT, "ConjureEnumType"),)

UNKNOWN_ENUM_VALUE = "UNKNOWN"


def _check_name(declaration: str, value: str, what: str):
    if not isinstance(value, str) or not value:
        raise DeclarationError(declaration or "<unnamed>", f"{what} must be a non-empty string.")


def _duplicates(names: Iterable[str]) -> list[str]:
    return sorted(name for name, count in Counter(names).items() if count > 1)


@dataclass(frozen=True)
class BeanDeclaration:
    """A record type with named, typed and optionally documented fields.

    Attributes:
        class_name: The identifier of the rendered class, e.g. "product_Address".
        definition_name: The name of the type in the definition, e.g. "Address".
        definition_package: The package the class is exported from.
        fields: The fields, in declared order.
        docs: The documentation of the bean, if any.
        sort_key: Key for ordering declarations in a module, defaults to the class name.
        extra_imports: Imports needed by the field types.
    """

    class_name: str
    definition_name: str
    definition_package: PythonPackage
    fields: tuple[PythonField, ...] = ()
    docs: str | None = None
    sort_key: str = ""
    extra_imports: tuple[PythonImport, ...] = field(default=(), compare=False)

    def __post_init__(self):
        object.__setattr__(self, "fields", tuple(self.fields))
        object.__setattr__(self, "extra_imports", tuple(self.extra_imports))
        if not self.sort_key:
            object.__setattr__(self, "sort_key", self.class_name)

    @property
    def imports(self) -> ImportSet:
        """The imports needed by the rendered bean."""
        return ImportSet(BEAN_DEFAULT_IMPORTS + self.extra_imports)

    @property
    def parameter_fields(self) -> list[PythonField]:
        """The fields in constructor parameter order: required fields first, then optional ones.

        The sort is stable, so that fields keep their declared order within each group.
        """
        return sorted(self.fields, key=lambda f: f.parameter_sort_key)

    def validate(self):
        """Check the input contract of the bean renderer.

        Raises:
            DeclarationError: If a name is missing, or if two fields end up with the same
                parameter or backing slot name after sanitization.
        """
        _check_name(self.class_name, self.class_name, "The class name")
        _check_name(self.class_name, self.definition_name, "The definition name")
        if not isinstance(self.definition_package, PythonPackage):
            raise DeclarationError(self.class_name, "The definition package is missing.")

        for python_field in self.fields:
            _check_name(self.class_name, python_field.attribute_name, "The attribute name of a field")
            _check_name(self.class_name, python_field.wire_name, f"The wire name of '{python_field.attribute_name}'")

        colliding_parameters = _duplicates(attribute_name(f) for f in self.fields)
        if colliding_parameters:
            raise DeclarationError(
                self.class_name,
                "Several fields map to the same attribute name.",
                tuple(f.attribute_name for f in self.fields if attribute_name(f) in colliding_parameters),
            )

        colliding_slots = _duplicates(backing_name(f) for f in self.fields)
        if colliding_slots:
            raise DeclarationError(
                self.class_name,
                "Several fields map to the same backing slot.",
                tuple(f.attribute_name for f in self.fields if backing_name(f) in colliding_slots),
            )


@dataclass(frozen=True)
class EnumValue:
    """One value of an enum."""

    name: str
    docs: str | None = None


@dataclass(frozen=True)
class EnumDeclaration:
    """An enum type, rendered with an additional `UNKNOWN` member for values unknown at generation time."""

    class_name: str
    definition_name: str
    definition_package: PythonPackage
    values: tuple[EnumValue, ...] = ()
    docs: str | None = None
    sort_key: str = ""

    def __post_init__(self):
        object.__setattr__(self, "values", tuple(self.values))
        if not self.sort_key:
            object.__setattr__(self, "sort_key", self.class_name)

    @property
    def imports(self) -> ImportSet:
        """The imports needed by the rendered enum."""
        return ImportSet(ENUM_DEFAULT_IMPORTS)

    @property
    def member_names(self) -> list[str]:
        """The names of all rendered members, including the implicit `UNKNOWN`."""
        names = [value.name for value in self.values]
        if UNKNOWN_ENUM_VALUE not in names:
            names.append(UNKNOWN_ENUM_VALUE)
        return names

    def validate(self):
        """Check the input contract of the enum renderer."""
        _check_name(self.class_name, self.class_name, "The class name")
        _check_name(self.class_name, self.definition_name, "The definition name")
        if not isinstance(self.definition_package, PythonPackage):
            raise DeclarationError(self.class_name, "The definition package is missing.")

        for value in self.values:
            _check_name(self.class_name, value.name, "An enum value")
            if value.name != helper.sanitize_name(value.name):
                raise DeclarationError(self.class_name, f"The enum value '{value.name}' is a reserved word.")

        duplicates = _duplicates(value.name for value in self.values)
        if duplicates:
            raise DeclarationError(self.class_name, "Enum values must be unique.", tuple(duplicates))


@dataclass(frozen=True)
class AliasDeclaration:
    """A module level name for another type expression.

    When `definition_name` is set and differs from `class_name`, the alias is also bound to its
    definition name, like the exported beans and enums.
    """

    class_name: str
    type_expr: str
    sort_key: str = ""
    extra_imports: tuple[PythonImport, ...] = field(default=(), compare=False)
    references: frozenset[str] = frozenset()
    definition_name: str = ""

    def __post_init__(self):
        object.__setattr__(self, "extra_imports", tuple(self.extra_imports))
        if not self.sort_key:
            object.__setattr__(self, "sort_key", self.class_name)

    @property
    def imports(self) -> ImportSet:
        """The imports needed by the aliased type expression."""
        return ImportSet(self.extra_imports)

    def validate(self):
        """Check the input contract of the alias renderer."""
        _check_name(self.class_name, self.class_name, "The alias name")
        _check_name(self.class_name, self.type_expr, "The aliased type")


Declaration = BeanDeclaration | EnumDeclaration | AliasDeclaration


def attribute_name(python_field: PythonField) -> str:
    """The name of the constructor parameter, property and registry key of a field."""
    return helper.sanitize_name(python_field.attribute_name, RESERVED_ATTRIBUTES)


def backing_name(python_field: PythonField) -> str:
    """The name of the private slot that stores the value of a field."""
    return f"_{helper.sanitize_name(python_field.attribute_name, PROTECTED_FIELDS)}"


def write_docs(writer: PoetWriter, docs: str | None):
    """Write a docstring block, one line per physical line of the docs.

    Nothing is written for missing or blank docs.
    """
    if docs is None or not docs.strip():
        return

    writer.write_indented_line(helper.DOCSTRING_DELIMITER)
    for line in helper.docstring_lines(docs):
        if line:
            writer.write_indented_line(line)
        else:
            writer.write_line()
    writer.write_indented_line(helper.DOCSTRING_DELIMITER)


def rename_class(writer: PoetWriter, class_name: str, definition_package: PythonPackage, definition_name: str):
    """Bind the rendered class to the name and module it is known by in the definition.

    E.g. `product_Address` is exported as `Address` from `generated.product`. The class is expected
    to be rendered into the module of the definition package.
    """
    writer.write_indented_line(f'{class_name}.__name__ = "{definition_name}"')
    writer.write_indented_line(f'{class_name}.__qualname__ = "{definition_name}"')
    writer.write_indented_line(f'{class_name}.__module__ = "{definition_package}"')
    if definition_name != class_name:
        writer.write_indented_line(f"{definition_name} = {class_name}")


def _write_fields_registry(writer: PoetWriter, fields: tuple[PythonField, ...]):
    writer.write_indented_line(helper.new_decorator("builtins.classmethod"))
    writer.write_indented_line(
        helper.new_function_declaration(FIELDS_ACCESSOR, ["cls"], "Dict[str, ConjureFieldDefinition]")
    )
    with writer.indented():
        if not fields:
            writer.write_indented_line("return {}")
            return

        writer.write_indented_line("return {")
        with writer.indented():
            for index, python_field in enumerate(fields):
                separator = "," if index < len(fields) - 1 else ""
                writer.write_indented_line(
                    f"{helper.quote_literal(attribute_name(python_field))}: ConjureFieldDefinition("
                    f"{helper.quote_literal(python_field.wire_name)}, {python_field.type_expr}){separator}"
                )
        writer.write_indented_line("}")


def _write_constructor(writer: PoetWriter, bean: BeanDeclaration):
    parameters = ["self"]
    for python_field in bean.parameter_fields:
        default = "None" if python_field.is_optional else ""
        parameters.append(
            helper.new_typed_parameter(attribute_name(python_field), python_field.declared_type_expr, default)
        )

    writer.write_indented_line(helper.new_function_declaration("__init__", parameters))
    with writer.indented():
        for python_field in bean.fields:
            writer.write_indented_line(f"self.{backing_name(python_field)} = {attribute_name(python_field)}")


def _write_property(writer: PoetWriter, python_field: PythonField):
    writer.write_indented_line(helper.new_decorator("builtins.property"))
    writer.write_indented_line(
        helper.new_function_declaration(attribute_name(python_field), ["self"], python_field.declared_type_expr)
    )
    with writer.indented():
        write_docs(writer, python_field.docs)
        writer.write_indented_line(f"return self.{backing_name(python_field)}")


def render_bean(bean: BeanDeclaration, writer: PoetWriter):
    """Render a bean class, followed by the statements that export it under its definition name.

    The field registry and the constructor body follow the declared field order. The constructor
    parameters list required fields before optional ones, which default to `None`.

    Args:
        bean (BeanDeclaration): The bean to render.
        writer (PoetWriter): The writer to render into, at the depth the class is declared at.

    Raises:
        DeclarationError: If the bean violates the input contract. Nothing is written in that case.
    """
    bean.validate()
    logger.debug("Rendering bean %s with %d field(s).", bean.class_name, len(bean.fields))
    start_depth = writer.indent_depth

    writer.write_indented_line(helper.new_class_declaration(bean.class_name, ["ConjureBeanType"]))
    with writer.indented():
        write_docs(writer, bean.docs)
        writer.write_line()

        _write_fields_registry(writer, bean.fields)
        writer.write_line()

        slots = helper.join_parameters([helper.quote_literal(backing_name(f)) for f in bean.fields])
        writer.write_indented_line(f"__slots__: List[str] = [{slots}]")

        # Without fields there is nothing to assign.
        if bean.fields:
            writer.write_line()
            _write_constructor(writer, bean)

        for python_field in bean.fields:
            writer.write_line()
            _write_property(writer, python_field)

    writer.write_line()
    rename_class(writer, bean.class_name, bean.definition_package, bean.definition_name)

    if writer.indent_depth != start_depth:
        raise UnbalancedIndentError(f"Rendering '{bean.class_name}' left the indentation unbalanced.")


def render_enum(enum: EnumDeclaration, writer: PoetWriter):
    """Render an enum class, followed by the statements that export it under its definition name."""
    enum.validate()
    logger.debug("Rendering enum %s with %d value(s).", enum.class_name, len(enum.values))

    writer.write_indented_line(helper.new_class_declaration(enum.class_name, ["ConjureEnumType"]))
    with writer.indented():
        write_docs(writer, enum.docs)
        writer.write_line()

        for value in enum.values:
            writer.write_indented_line(f"{value.name} = {helper.quote_literal(value.name)}")
            write_docs(writer, value.docs)
        if UNKNOWN_ENUM_VALUE not in (value.name for value in enum.values):
            writer.write_indented_line(f"{UNKNOWN_ENUM_VALUE} = {helper.quote_literal(UNKNOWN_ENUM_VALUE)}")
        writer.write_line()

        writer.write_indented_line("def __reduce_ex__(self, proto):")
        with writer.indented():
            writer.write_indented_line("return self.__class__, (self.name,)")

    writer.write_line()
    rename_class(writer, enum.class_name, enum.definition_package, enum.definition_name)


def render_alias(alias: AliasDeclaration, writer: PoetWriter):
    """Render an alias as a module level assignment."""
    alias.validate()
    writer.write_indented_line(f"{alias.class_name} = {alias.type_expr}")
    if alias.definition_name and alias.definition_name != alias.class_name:
        writer.write_indented_line(f"{alias.definition_name} = {alias.class_name}")


def render_declaration(declaration: Declaration, writer: PoetWriter):
    """Render any declaration into a writer.

    Args:
        declaration (Declaration): The declaration to render.
        writer (PoetWriter): The writer that receives the lines.
    """
    match declaration:
        case BeanDeclaration():
            render_bean(declaration, writer)
        case EnumDeclaration():
            render_enum(declaration, writer)
        case AliasDeclaration():
            render_alias(declaration, writer)
        case _:
            raise TypeError(f"Cannot render a declaration of type {type(declaration).__name__}.")
