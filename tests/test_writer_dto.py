"""Tests for writer_dto.py - the value objects passed to the renderers."""

from __future__ import annotations

import dataclasses

import pytest

from conjure_bean_generator.writer_dto import ImportSet, NamedImport, PythonField, PythonImport, PythonPackage

from conftest import STREET, UNIT


class TestPythonField:
    def test_value_equality(self):
        copy = PythonField("street", "street", "StrType()", "str")

        assert copy == STREET
        assert hash(copy) == hash(STREET)

    def test_immutable(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            STREET.attribute_name = "road"  # type: ignore[misc]

    def test_parameter_sort_key(self):
        assert STREET.parameter_sort_key < UNIT.parameter_sort_key

    def test_defaults(self):
        python_field = PythonField("a", "a", "int", "int")

        assert python_field.docs is None
        assert python_field.is_optional is False


class TestPythonImport:
    def test_module_import(self):
        assert str(PythonImport.of("builtins")) == "import builtins"
        assert PythonImport.of("builtins").is_module_import

    def test_named_imports_are_sorted(self):
        python_import = PythonImport.of("typing", "List", "Dict", "Optional")

        assert str(python_import) == "from typing import Dict, List, Optional"

    def test_aliased_import(self):
        python_import = PythonImport("generated.product", frozenset({NamedImport("product_Address", "Address")}))

        assert str(python_import) == "from generated.product import product_Address as Address"


class TestImportSet:
    def test_merges_named_imports_per_module(self):
        imports = ImportSet([PythonImport.of("typing", "List"), PythonImport.of("typing", "Dict", "List")])

        assert len(imports) == 1
        assert imports.names_for("typing") == {"Dict", "List"}

    def test_union_operator(self):
        left = ImportSet([PythonImport.of("typing", "List")])
        right = ImportSet([PythonImport.of("typing", "Optional"), PythonImport.of("builtins")])

        merged = left | right

        assert merged.names_for("typing") == {"List", "Optional"}
        assert "builtins" in merged
        # The operands are left untouched.
        assert "builtins" not in left

    def test_lines_are_independent_of_insertion_order(self):
        imports = [
            PythonImport.of("typing", "List"),
            PythonImport.of("conjure_python_client", "ConjureBeanType"),
            PythonImport.of("builtins"),
            PythonImport.of("abc"),
            PythonImport.of("typing", "Dict"),
        ]

        forward = ImportSet(imports)
        backward = ImportSet(reversed(imports))

        assert forward == backward
        assert forward.lines() == backward.lines()
        assert forward.lines() == [
            "import abc",
            "import builtins",
            "from conjure_python_client import ConjureBeanType",
            "from typing import Dict, List",
        ]

    def test_iteration_is_sorted_by_module(self):
        imports = ImportSet([PythonImport.of("typing", "List"), PythonImport.of("builtins")])

        assert [i.module_specifier for i in imports] == ["builtins", "typing"]

    @pytest.mark.parametrize("named_first", [True, False])
    def test_module_import_survives_named_imports_of_the_same_module(self, named_first: bool):
        imports = [PythonImport.of("builtins"), PythonImport.of("builtins", "property")]
        if named_first:
            imports.reverse()

        import_set = ImportSet(imports)

        assert import_set.lines() == ["import builtins", "from builtins import property"]
        assert import_set.names_for("builtins") == {"property"}
        assert len(import_set) == 2
        assert import_set != ImportSet([PythonImport.of("builtins", "property")])


class TestPythonPackage:
    def test_parts(self):
        package = PythonPackage("generated.product")

        assert package.parts == ["generated", "product"]
        assert package.module_name == "product"
        assert str(package) == "generated.product"

    def test_child(self):
        assert PythonPackage("generated").child("crm") == PythonPackage("generated.crm")

    @pytest.mark.parametrize("name", ["", "generated.", ".product", "a..b"])
    def test_invalid_names(self, name):
        with pytest.raises(ValueError):
            PythonPackage(name)
