"""Helper functionality that is used in other modules of this package."""

from __future__ import annotations

import keyword
import re
from collections.abc import Iterable, Sequence

INDENT_UNIT = "    "
DOCSTRING_DELIMITER = '"""'


def sanitize_name(name: str, protected: Iterable[str] = ()) -> str:
    """Sanitize a name to avoid Python keywords and protected names.

    If the name is a Python keyword, or one of the protected names, append an underscore.
    E.g. 'lambda' becomes 'lambda_', 'class' becomes 'class_'.

    Names that are already safe are returned unchanged, so that sanitizing twice yields
    the same result as sanitizing once.

    Args:
        name (str): The original name.
        protected (Iterable[str]): Additional names that must not be used verbatim.

    Returns:
        str: The sanitized name.
    """
    if keyword.iskeyword(name) or name in protected:
        return f"{name}_"
    return name


def to_snake_case(name: str) -> str:
    """Convert a camelCase or kebab-case wire name to snake_case.

    E.g. 'streetName' becomes 'street_name', 'HTTPCode' becomes 'http_code'.
    """
    name = name.replace("-", "_")
    name = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1_\2", name)
    name = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", name)
    return name.lower()


def quote_literal(value: str) -> str:
    """Create a single quoted Python string literal.

    Args:
        value (str): The raw string.

    Returns:
        str: The literal, with backslashes and single quotes escaped.
    """
    escaped = value.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


def docstring_lines(docs: str) -> list[str]:
    """Split documentation into the physical lines of a docstring body.

    The documentation is trimmed of surrounding whitespace. Backslashes and triple quotes are
    escaped, so that the docs cannot terminate the docstring early. Runs of blank lines are
    collapsed into one.

    Args:
        docs (str): The raw documentation.

    Returns:
        list[str]: One entry per line, without trailing whitespace.
    """
    escaped = docs.strip().replace("\\", "\\\\").replace(DOCSTRING_DELIMITER, '\\"\\"\\"')
    lines: list[str] = []
    for line in escaped.splitlines():
        line = line.rstrip()
        if line or (lines and lines[-1]):
            lines.append(line)
    return lines


def join_parameters(parameters: Sequence[str] | None) -> str:
    """Joins parameters by means of ', '.

    Args:
        parameters (Sequence[str] | None): The parameters to join.

    Returns:
        str: The joined parameters.
    """
    if parameters:
        return ", ".join(str(p) for p in parameters if p)

    else:
        return ""


def new_group(name: str, members: Sequence[str]) -> str:
    """Create a string for a group name and its members.

    For example, when the group name is 'Dict', and the members are 'str', and 'int',
    the output will be 'Dict[str, int]'.

    Args:
        name (str): The name of the group.
        members (Sequence[str]): The members of the group

    Returns:
        str: The resulting group string.
    """
    return f"{name}[{join_parameters(members)}]"


def new_typed_parameter(name: str, type_hint: str, default: str = "") -> str:
    """Create a typed parameter, e.g. 'unit: Optional[str] = None'."""
    parameter = f"{name}: {type_hint}"
    if default:
        parameter = f"{parameter} = {default}"
    return parameter


def new_function_declaration(
    name: str,
    parameters: Sequence[str] | None = None,
    return_type: str | None = None,
) -> str:
    """Create the header line of a function that is followed by an indented body.

    Args:
        name (str): The function name.
        parameters (Sequence[str] | None, optional): The function parameters, if any. Defaults to None.
        return_type (str | None, optional): The function's return type. Defaults to None.

    Returns:
        str: The function header, ending in a colon.
    """
    if return_type is None:
        return_type = "None"

    arguments = join_parameters(parameters)
    return f"def {name}({arguments}) -> {return_type}:"


def new_decorator(name: str, parameters: Sequence[str] | None = None) -> str:
    """Create a new decorator.

    Args:
        name (str): The name of the decorator.
        parameters (Sequence[str] | None, optional): The parameters (args, kwargs) of the decorator,
            if any. Defaults to None.

    Returns:
        str: The decorator string.
    """
    if parameters:
        return f"@{name}({join_parameters(parameters)})"

    else:
        return f"@{name}"


def new_class_declaration(name: str, parameters: Sequence[str] | None = None) -> str:
    """Creates a string for declaring a class.

    For example, for a name of 'SomeClass' and a list of parameters that is 'ConjureBeanType', the output
    will be 'class SomeClass(ConjureBeanType):'.

    If no parameters are provided, the output is just 'class SomeClass:'.

    Args:
        name (str): The class name.
        parameters (Sequence[str] | None, optional):
            A list of parameters that are part of the class declaration. Defaults to None.

    Returns:
        str: The class declaration.
    """
    if parameters:
        return f"class {name}({join_parameters(parameters)}):"
    else:
        return f"class {name}:"
