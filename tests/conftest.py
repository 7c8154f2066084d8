"""Pytest configuration and fixtures for conjure bean generator tests."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from conjure_bean_generator.declarations import BeanDeclaration
from conjure_bean_generator.writer import PoetWriter
from conjure_bean_generator.writer_dto import PythonField, PythonPackage

TESTS_DIR = Path(__file__).parent

PRODUCT_PACKAGE = PythonPackage("generated.product")

STREET = PythonField(
    attribute_name="street",
    wire_name="street",
    type_expr="StrType()",
    declared_type_expr="str",
    is_optional=False,
)
UNIT = PythonField(
    attribute_name="unit",
    wire_name="unit",
    type_expr="OptionalType(StrType())",
    declared_type_expr="Optional[str]",
    is_optional=True,
)


def primitive(name: str) -> dict:
    return {"type": "primitive", "primitive": name}


def optional(item: dict) -> dict:
    return {"type": "optional", "optional": {"itemType": item}}


def reference(name: str, package: str) -> dict:
    return {"type": "reference", "reference": {"name": name, "package": package}}


SAMPLE_IR = {
    "version": 1,
    "errors": [],
    "types": [
        {
            "type": "object",
            "object": {
                "typeName": {"name": "Address", "package": "com.example.product"},
                "docs": "A postal address.",
                "fields": [
                    {"fieldName": "streetName", "type": primitive("STRING"), "docs": "The street."},
                    {"fieldName": "unit", "type": optional(primitive("STRING"))},
                    {"fieldName": "tags", "type": {"type": "list", "list": {"itemType": primitive("STRING")}}},
                ],
            },
        },
        {
            "type": "enum",
            "enum": {
                "typeName": {"name": "Color", "package": "com.example.product"},
                "values": [{"value": "RED"}, {"value": "BLUE", "docs": "Like the sky."}],
            },
        },
        {
            "type": "alias",
            "alias": {
                "typeName": {"name": "AddressList", "package": "com.example.product"},
                "alias": {"type": "list", "list": {"itemType": reference("Address", "com.example.product")}},
            },
        },
        {
            "type": "object",
            "object": {
                "typeName": {"name": "Customer", "package": "com.example.crm"},
                "fields": [
                    {"fieldName": "name", "type": primitive("STRING")},
                    {"fieldName": "address", "type": optional(reference("Address", "com.example.product"))},
                    {"fieldName": "favoriteColor", "type": reference("Color", "com.example.product")},
                    {
                        "fieldName": "scores",
                        "type": {"type": "map", "map": {"keyType": primitive("STRING"), "valueType": primitive("DOUBLE")}},
                    },
                ],
            },
        },
    ],
    "services": [],
}


@pytest.fixture
def writer() -> PoetWriter:
    """A fresh writer at depth zero."""
    return PoetWriter()


@pytest.fixture
def address_bean() -> BeanDeclaration:
    """The bean of a street address with a required and an optional field."""
    return BeanDeclaration(
        class_name="Address",
        definition_name="Address",
        definition_package=PRODUCT_PACKAGE,
        fields=(STREET, UNIT),
    )


@pytest.fixture
def sample_ir() -> dict:
    """A decoded IR document with beans, an enum and an alias in two packages."""
    return json.loads(json.dumps(SAMPLE_IR))


@pytest.fixture
def ir_file(tmp_path: Path, sample_ir: dict) -> Path:
    """The sample IR document, written to a file."""
    path = tmp_path / "ir" / "example.conjure.json"
    path.parent.mkdir(parents=True)
    path.write_text(json.dumps(sample_ir), encoding="utf8")
    return path
