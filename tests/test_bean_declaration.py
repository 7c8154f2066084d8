"""Tests for rendering bean declarations."""

from __future__ import annotations

import builtins
import collections
import itertools
import re
from typing import Dict, List

import pytest

from conftest import PRODUCT_PACKAGE, STREET, UNIT
from conjure_bean_generator.declarations import BeanDeclaration, render_bean
from conjure_bean_generator.errors import DeclarationError
from conjure_bean_generator.writer import PoetWriter
from conjure_bean_generator.writer_dto import PythonField

ADDRESS_OUTPUT = '''\
class Address(ConjureBeanType):

    @builtins.classmethod
    def _fields(cls) -> Dict[str, ConjureFieldDefinition]:
        return {
            'street': ConjureFieldDefinition('street', StrType()),
            'unit': ConjureFieldDefinition('unit', OptionalType(StrType()))
        }

    __slots__: List[str] = ['_street', '_unit']

    def __init__(self, street: str, unit: Optional[str] = None) -> None:
        self._street = street
        self._unit = unit

    @builtins.property
    def street(self) -> str:
        return self._street

    @builtins.property
    def unit(self) -> Optional[str]:
        return self._unit

Address.__name__ = "Address"
Address.__qualname__ = "Address"
Address.__module__ = "generated.product"
'''


def new_bean(*fields: PythonField, docs: str | None = None, class_name: str = "Address") -> BeanDeclaration:
    return BeanDeclaration(
        class_name=class_name,
        definition_name="Address",
        definition_package=PRODUCT_PACKAGE,
        fields=fields,
        docs=docs,
    )


def render(bean: BeanDeclaration) -> str:
    writer = PoetWriter()
    render_bean(bean, writer)
    return writer.dumps()


def required(name: str, wire_name: str | None = None) -> PythonField:
    return PythonField(name, wire_name or name, "str", "str")


def optional(name: str) -> PythonField:
    return PythonField(name, name, "OptionalTypeWrapper[str]", "Optional[str]", is_optional=True)


def registry_keys(output: str) -> list[str]:
    return re.findall(r"^ {12}'(\w+)': ConjureFieldDefinition", output, re.MULTILINE)


def constructor_line(output: str) -> str:
    return next(line.strip() for line in output.splitlines() if "def __init__" in line)


class TestBeanRendering:
    def test_address(self, address_bean: BeanDeclaration):
        assert render(address_bean) == ADDRESS_OUTPUT

    def test_optional_declared_first(self):
        """The registry keeps the declared order while the constructor lists required fields first."""
        output = render(new_bean(UNIT, STREET))

        assert registry_keys(output) == ["unit", "street"]
        assert constructor_line(output) == "def __init__(self, street: str, unit: Optional[str] = None) -> None:"
        assert "    __slots__: List[str] = ['_unit', '_street']" in output
        assert output.index("self._unit = unit") < output.index("self._street = street")

    def test_empty_bean(self):
        output = render(new_bean())

        assert output == (
            "class Address(ConjureBeanType):\n"
            "\n"
            "    @builtins.classmethod\n"
            "    def _fields(cls) -> Dict[str, ConjureFieldDefinition]:\n"
            "        return {}\n"
            "\n"
            "    __slots__: List[str] = []\n"
            "\n"
            'Address.__name__ = "Address"\n'
            'Address.__qualname__ = "Address"\n'
            'Address.__module__ = "generated.product"\n'
        )
        assert "__init__" not in output

    def test_field_named_like_the_registry(self):
        output = render(new_bean(required("fields"), required("street")))

        assert "    __slots__: List[str] = ['_fields_', '_street']" in output
        assert "self._fields_ = fields" in output
        # The registry key and the public property keep the field name.
        assert "'fields': ConjureFieldDefinition('fields', str)" in output
        assert "    def fields(self) -> str:" in output
        assert "return self._fields_" in output

    def test_keyword_field_names(self):
        output = render(new_bean(required("class"), optional("from")))

        assert "'class_': ConjureFieldDefinition('class', str)" in output
        assert "def __init__(self, class_: str, from_: Optional[str] = None) -> None:" in output
        assert "self._class_ = class_" in output
        assert "    def from_(self) -> Optional[str]:" in output

    def test_fields_named_like_the_receiver_or_builtins(self):
        output = render(new_bean(required("self"), required("builtins"), optional("street")))

        assert "def __init__(self, self_: str, builtins_: str, street: Optional[str] = None) -> None:" in output
        assert "'self_': ConjureFieldDefinition('self', str)" in output
        assert "'builtins_': ConjureFieldDefinition('builtins', str)" in output
        assert "    def builtins_(self) -> str:" in output
        assert "    __slots__: List[str] = ['_self', '_builtins', '_street']" in output

    @pytest.mark.parametrize("names", [("self",), ("builtins", "street"), ("street", "List"), ("cls", "unit")])
    def test_generated_bean_executes(self, names: tuple[str, ...]):
        bean = new_bean(*(required(name) for name in names), class_name="product_Address")
        namespace = {
            "builtins": builtins,
            "ConjureBeanType": object,
            "ConjureFieldDefinition": collections.namedtuple("ConjureFieldDefinition", "identifier field_type"),
            "Dict": Dict,
            "List": List,
        }

        exec(compile(render(bean), "<address>", "exec"), namespace)

        address = namespace["Address"](*names)
        fields = address._fields()
        assert [definition.identifier for definition in fields.values()] == list(names)
        assert [getattr(address, attribute) for attribute in fields] == list(names)

    def test_wire_names_are_literals(self):
        output = render(new_bean(PythonField("street_name", "streetName", "str", "str")))

        assert "'street_name': ConjureFieldDefinition('streetName', str)" in output

    def test_bean_docs(self):
        output = render(new_bean(STREET, docs="\n  A postal address.\n\n  Used for shipping.  \n"))

        assert output.startswith(
            "class Address(ConjureBeanType):\n"
            '    """\n'
            "    A postal address.\n"
            "\n"
            "      Used for shipping.\n"
            '    """\n'
            "\n"
            "    @builtins.classmethod\n"
        )

    def test_field_docs(self):
        documented = PythonField("street", "street", "str", "str", docs="The street.")

        output = render(new_bean(documented))

        assert (
            "    @builtins.property\n"
            "    def street(self) -> str:\n"
            '        """\n'
            "        The street.\n"
            '        """\n'
            "        return self._street\n"
        ) in output

    def test_blank_docs_are_skipped(self):
        assert render(new_bean(STREET, docs="   ")) == render(new_bean(STREET))

    def test_renamed_class_is_exported(self):
        output = render(new_bean(STREET, class_name="product_Address"))

        assert output.endswith(
            'product_Address.__name__ = "Address"\n'
            'product_Address.__qualname__ = "Address"\n'
            'product_Address.__module__ = "generated.product"\n'
            "Address = product_Address\n"
        )

    def test_no_setters(self, address_bean: BeanDeclaration):
        assert ".setter" not in render(address_bean)

    def test_renders_at_the_current_depth(self, address_bean: BeanDeclaration):
        writer = PoetWriter()
        writer.write_indented_line("if True:")
        writer.increase_indent()

        render_bean(address_bean, writer)

        assert writer.indent_depth == 1
        assert writer.lines[1] == "    class Address(ConjureBeanType):"
        assert writer.lines[-1] == '    Address.__module__ = "generated.product"'
        writer.decrease_indent()

    def test_generated_code_compiles(self, address_bean: BeanDeclaration):
        compile(render(address_bean), "<address>", "exec")


class TestBeanProperties:
    """Properties that hold for all beans."""

    FIELDS = [required("a"), optional("b"), required("c"), optional("d"), required("class"), optional("fields")]

    @pytest.fixture(params=range(0, 7))
    def bean(self, request) -> BeanDeclaration:
        size = request.param
        return new_bean(*self.FIELDS[:size])

    def test_balanced_indentation(self, bean: BeanDeclaration):
        writer = PoetWriter()
        render_bean(bean, writer)

        assert writer.indent_depth == 0

    def test_no_adjacent_blank_lines(self, bean: BeanDeclaration):
        lines = render(bean).splitlines()

        for previous, current in itertools.pairwise(lines):
            assert previous or current

    def test_no_adjacent_blank_lines_with_docs(self):
        documented = PythonField("street", "street", "str", "str", docs="The street.\n\n\n\nNot the avenue.")
        bean = new_bean(documented, docs="A postal address.\n\n  \n\nUsed for shipping.")

        lines = render(bean).splitlines()

        assert "    Used for shipping." in lines
        assert "        Not the avenue." in lines
        for previous, current in itertools.pairwise(lines):
            assert previous or current

    def test_rendering_is_repeatable(self, bean: BeanDeclaration):
        assert render(bean) == render(bean)

    def test_registry_follows_declared_order(self, bean: BeanDeclaration):
        output = render(bean)

        assert registry_keys(output) == [f.attribute_name if f.attribute_name != "class" else "class_" for f in bean.fields]

    def test_constructor_lists_required_fields_first(self):
        for permutation in itertools.permutations(self.FIELDS[:4]):
            bean = new_bean(*permutation)

            parameters = [f.attribute_name for f in bean.parameter_fields]

            expected = [f.attribute_name for f in permutation if not f.is_optional] + [
                f.attribute_name for f in permutation if f.is_optional
            ]
            assert parameters == expected
            assert constructor_line(render(bean)) == (
                "def __init__(self, "
                + ", ".join(f"{name}: str" if name in "ac" else f"{name}: Optional[str] = None" for name in expected)
                + ") -> None:"
            )


class TestBeanValidation:
    def test_colliding_attribute_names(self):
        writer = PoetWriter()

        with pytest.raises(DeclarationError, match="same attribute name") as exc_info:
            render_bean(new_bean(required("class"), required("class_")), writer)

        assert exc_info.value.declaration == "Address"
        assert exc_info.value.fields == ("class", "class_")
        assert writer.lines == ()

    def test_colliding_backing_slots(self):
        with pytest.raises(DeclarationError, match="same backing slot") as exc_info:
            render(new_bean(required("fields"), required("fields_")))

        assert exc_info.value.fields == ("fields", "fields_")

    def test_duplicate_fields(self):
        with pytest.raises(DeclarationError, match="'Address'"):
            render(new_bean(STREET, STREET))

    def test_missing_class_name(self):
        with pytest.raises(DeclarationError, match="class name"):
            render(new_bean(STREET, class_name=""))

    def test_missing_wire_name(self):
        with pytest.raises(DeclarationError, match="wire name"):
            render(new_bean(PythonField("street", "", "str", "str")))

    def test_missing_package(self):
        bean = BeanDeclaration("Address", "Address", None, (STREET,))  # type: ignore[arg-type]

        with pytest.raises(DeclarationError, match="package"):
            render(bean)

    def test_failed_render_leaves_other_writers_untouched(self, address_bean: BeanDeclaration):
        writer = PoetWriter()
        render_bean(address_bean, writer)
        before = writer.lines

        with pytest.raises(DeclarationError):
            render_bean(new_bean(STREET, STREET), writer)

        assert writer.lines == before
        assert writer.indent_depth == 0


class TestBeanDeclaration:
    def test_sort_key_defaults_to_class_name(self, address_bean: BeanDeclaration):
        assert address_bean.sort_key == "Address"

    def test_explicit_sort_key(self):
        bean = BeanDeclaration("Address", "Address", PRODUCT_PACKAGE, sort_key="0")

        assert bean.sort_key == "0"

    def test_fields_are_stored_as_tuple(self):
        bean = BeanDeclaration("Address", "Address", PRODUCT_PACKAGE, [STREET, UNIT])  # type: ignore[arg-type]

        assert bean.fields == (STREET, UNIT)

    def test_imports(self, address_bean: BeanDeclaration):
        assert address_bean.imports.lines() == [
            "import builtins",
            "from conjure_python_client import ConjureBeanType, ConjureFieldDefinition",
            "from typing import Dict, List",
        ]
