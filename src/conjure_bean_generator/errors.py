"""Exceptions that are raised during code generation."""

from __future__ import annotations


class GeneratorError(Exception):
    """Base class of all errors that abort the generation of a declaration or module."""

    pass


class DeclarationError(GeneratorError):
    """Raised when a declaration violates the input contract of its renderer.

    Attributes:
        declaration: The class name of the declaration at fault.
        fields: The names of the fields at fault, if any.
    """

    def __init__(self, declaration: str, message: str, fields: tuple[str, ...] = ()):
        self.declaration = declaration
        self.fields = fields

        location = f"'{declaration}'"
        if fields:
            location = f"{location} (fields: {', '.join(fields)})"

        super().__init__(f"Invalid declaration {location}: {message}")


class IrFormatError(GeneratorError):
    """Raised when an IR document does not have the expected structure."""

    pass
