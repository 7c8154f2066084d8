"""Line based writer for generated Python source.

The writer owns the current indentation depth, so renderers never compute
indentation themselves. Every renderer gets its own writer instance.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import override

from conjure_bean_generator.errors import GeneratorError
from conjure_bean_generator.helper import INDENT_UNIT

logger = logging.getLogger(__name__)


class UnbalancedIndentError(GeneratorError):
    """Raised when indentation is decreased below zero or left open."""

    pass


class PoetWriter:
    """An append-only sink for lines of generated code that tracks the indentation depth."""

    def __init__(self, indent_unit: str = INDENT_UNIT):
        """Initialize an empty writer at depth zero.

        Args:
            indent_unit (str): The text that is emitted once per indentation level.
        """
        self.indent_unit = indent_unit
        self._lines: list[str] = []
        self._indent_depth = 0

    @property
    def lines(self) -> tuple[str, ...]:
        """The lines written so far, in emission order."""
        return tuple(self._lines)

    @property
    def indent_depth(self) -> int:
        """The current indentation depth."""
        return self._indent_depth

    def write_line(self):
        """Append an empty line, ignoring the current depth."""
        self._lines.append("")

    def write_indented_line(self, text: str):
        """Append a line, prefixed by the indentation of the current depth.

        Args:
            text (str): The line content. Multi-line content has to be written line by line.
        """
        if "\n" in text:
            raise ValueError(f"Cannot write an indented line that contains line breaks: {text!r}")

        self._lines.append(f"{self.indent_unit * self._indent_depth}{text}")

    def increase_indent(self):
        """Increase the indentation depth by one."""
        self._indent_depth += 1

    def decrease_indent(self):
        """Decrease the indentation depth by one."""
        if self._indent_depth == 0:
            raise UnbalancedIndentError("Cannot decrease the indentation below zero.")

        self._indent_depth -= 1

    @contextmanager
    def indented(self) -> Iterator[PoetWriter]:
        """Write the lines of the block one indentation level deeper.

        The depth is only restored when the block completes, an exception leaves the writer
        as it was at the time of the failure.
        """
        self.increase_indent()
        yield self
        self.decrease_indent()

    def dumps(self) -> str:
        """Generates the string output of all lines that were written.

        Returns:
            str: The output string, terminated by a line break.
        """
        if self._indent_depth != 0:
            raise UnbalancedIndentError(f"Indentation is still open at depth {self._indent_depth}.")

        return "\n".join(self._lines) + "\n"

    @override
    def __repr__(self) -> str:
        """Return a readable representation for debugging."""
        return f"PoetWriter(lines={len(self._lines)}, indent_depth={self._indent_depth})"
