"""Top-level module for code generation."""

from __future__ import annotations

import argparse
import glob
import logging
import os.path
import subprocess
import tempfile
from collections.abc import Sequence
from pathlib import Path

from conjure_bean_generator.declarations import AliasDeclaration, Declaration, render_declaration
from conjure_bean_generator.errors import GeneratorError
from conjure_bean_generator.ir import IrDefinition, build_declarations, load_ir
from conjure_bean_generator.writer import PoetWriter
from conjure_bean_generator.writer_dto import ImportSet, PythonPackage

logger = logging.getLogger(__name__)

PY_SUFFIX = ".py"
IR_SUFFIX = ".json"
INIT_FILE_NAME = "__init__.py"
PY_TYPED_FILE_NAME = "py.typed"


class PyrightValidationError(GeneratorError):
    """Raised when pyright validation finds type errors in generated code."""

    pass


class PythonModule:
    """A generated module that holds the declarations of one IR package."""

    def __init__(self, package: PythonPackage, declarations: Sequence[Declaration]):
        """Initialize the module.

        Args:
            package (PythonPackage): The package the module is importable as.
            declarations (Sequence[Declaration]): The declarations of the module, in any order.
        """
        self.package = package
        self.declarations = list(declarations)
        self.docstring = f'"""This is automatically generated code for the `{package}` types."""'

    @property
    def imports(self) -> ImportSet:
        """The imports of all declarations, merged per module."""
        imports = ImportSet()
        for declaration in self.declarations:
            imports.update(declaration.imports)
        return imports

    def ordered_declarations(self) -> list[Declaration]:
        """Order the declarations for rendering.

        Classes come first, sorted by their sort key. Aliases follow, because they are evaluated at
        import time: each alias is placed after the aliases it refers to, and otherwise sorted by
        its sort key.

        Returns:
            list[Declaration]: The declarations in rendering order.
        """
        classes = sorted(
            (d for d in self.declarations if not isinstance(d, AliasDeclaration)), key=lambda d: d.sort_key
        )
        pending = sorted((d for d in self.declarations if isinstance(d, AliasDeclaration)), key=lambda d: d.sort_key)

        alias_names = {alias.class_name for alias in pending}
        placed: set[str] = set()
        aliases: list[AliasDeclaration] = []

        while pending:
            for alias in pending:
                if (alias.references & alias_names) <= placed:
                    break
            else:
                cycle = ", ".join(alias.class_name for alias in pending)
                raise GeneratorError(f"The aliases of '{self.package}' refer to each other in a cycle: {cycle}.")

            pending.remove(alias)
            placed.add(alias.class_name)
            aliases.append(alias)

        return [*classes, *aliases]

    def dumps(self) -> str:
        """Generates the string output of the module.

        Every declaration is rendered into its own writer, the blocks are joined in the order of
        `ordered_declarations` below the merged import block.

        Returns:
            str: The output string.
        """
        out: list[str] = [self.docstring]
        out.extend(self.imports.lines())

        for declaration in self.ordered_declarations():
            writer = PoetWriter()
            render_declaration(declaration, writer)

            out.append("")
            out.append("")
            out.append(writer.dumps().rstrip("\n"))

        return "\n".join(out) + "\n"


def format_outputs(raw_input: str) -> str:
    """Formats raw input using ruff.

    Args:
        raw_input (str): The unformatted input.

    Returns:
        str: The formatted outputs, or the raw input if ruff failed.
    """
    try:
        with tempfile.NamedTemporaryFile(mode="w", suffix=PY_SUFFIX, delete=False, encoding="utf-8") as f:
            temp_path = Path(f.name)
            f.write(raw_input)

        try:
            # Import ordering only, the remaining rules may legitimately fail on generated code.
            subprocess.run(
                ["ruff", "check", "--fix", "--select", "I", str(temp_path)],
                capture_output=True,
                check=False,
            )

            subprocess.run(
                ["ruff", "format", str(temp_path)],
                capture_output=True,
                check=True,
            )

            return temp_path.read_text(encoding="utf-8")

        finally:
            temp_path.unlink(missing_ok=True)

    except subprocess.CalledProcessError as e:
        logger.error("Ruff formatting failed: %s", e)
        logger.error("Stderr: %s", e.stderr.decode("utf-8", errors="replace"))
        return raw_input
    except OSError as e:
        logger.error("Could not run ruff: %s", e)
        return raw_input


def validate_with_pyright(paths: Sequence[Path]) -> None:
    """Validate generated files using pyright.

    Args:
        paths (Sequence[Path]): The generated Python files.

    Raises:
        PyrightValidationError: If pyright finds any type errors.
    """
    python_files = [str(path) for path in paths if path.suffix == PY_SUFFIX]

    if not python_files:
        logger.warning("No generated files found to validate")
        return

    logger.info("Validating %d generated file(s) with pyright...", len(python_files))

    try:
        result = subprocess.run(
            ["pyright", *python_files],
            capture_output=True,
            text=True,
            check=False,
        )
    except FileNotFoundError as e:
        logger.error("pyright not found. Please install pyright: pip install pyright")
        raise PyrightValidationError("pyright command not found. Please install pyright.") from e
    except subprocess.SubprocessError as e:
        raise PyrightValidationError(f"Error running pyright: {e}") from e

    error_count = result.stdout.count(" error:")
    if error_count > 0 or result.returncode != 0:
        error_msg = f"Pyright validation failed with {error_count} error(s):\n\n{result.stdout}"
        logger.error(error_msg)
        raise PyrightValidationError(error_msg)

    logger.info("Pyright validation passed - no type errors found")


def _write(path: Path, content: str):
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf8") as output_file:
        output_file.write(content)


def generate_package(
    ir: IrDefinition,
    root_package: str,
    output_directory: str | Path,
    format_code: bool = False,
) -> list[Path]:
    """Entry-point for generating a Python package from an IR document.

    Every IR package becomes the module `<root_package>.<name>`, written to
    `<output_directory>/<root_package>/<name>/__init__.py`.

    Args:
        ir (IrDefinition): The IR document.
        root_package (str): The dotted name of the generated package.
        output_directory (str | Path): The directory the package is written to.
        format_code (bool): Whether to format the generated modules with ruff.

    Returns:
        list[Path]: The written files.
    """
    root = PythonPackage(root_package)
    package_directory = Path(output_directory).joinpath(*root.parts)
    written: list[Path] = []

    modules = build_declarations(ir, root.name)

    for module_name in sorted(modules):
        module = PythonModule(root.child(module_name), modules[module_name])
        output = module.dumps()
        if format_code:
            output = format_outputs(output)

        module_path = package_directory / module_name / INIT_FILE_NAME
        _write(module_path, output)
        written.append(module_path)
        logger.info("Wrote module '%s' to '%s'.", module.package, module_path)

    root_init_path = package_directory / INIT_FILE_NAME
    _write(root_init_path, f'"""This is automatically generated code for the `{root}` package."""\n')
    written.append(root_init_path)

    # PEP 561 marker
    py_typed_path = package_directory / PY_TYPED_FILE_NAME
    _write(py_typed_path, "")
    written.append(py_typed_path)

    return written


def collect_input_paths(
    paths: Sequence[str], excludes: Sequence[str], root_directory: str, recursive: bool = False
) -> list[str]:
    """Find the IR files matched by paths, directories or glob expressions.

    Args:
        paths (Sequence[str]): Files, directories or glob expressions, relative to the root directory.
        excludes (Sequence[str]): Files or glob expressions to leave out.
        root_directory (str): The directory, from which the generator is executed.
        recursive (bool): Whether directories and `**` patterns are searched recursively.

    Returns:
        list[str]: The sorted paths of all matched IR files.
    """
    excluded_paths: set[str] = set()
    for exclude in excludes:
        excluded_paths = excluded_paths.union(glob.glob(os.path.join(root_directory, exclude), recursive=recursive))

    search_paths: set[str] = set()
    for path in paths:
        search_path = os.path.join(root_directory, path)

        if os.path.isdir(search_path):
            pattern = os.path.join(search_path, "**" if recursive else "", f"*{IR_SUFFIX}")
            search_paths = search_paths.union(glob.glob(pattern, recursive=recursive))
        else:
            search_paths = search_paths.union(glob.glob(search_path, recursive=recursive))

    return sorted(search_paths - excluded_paths)


def run(args: argparse.Namespace, root_directory: str) -> list[Path]:
    """Run the generator on a set of paths that point to IR documents.

    All matched documents are merged into one definition, so that types may refer to types of
    another document.

    Args:
        args (argparse.Namespace): The arguments that were passed when calling the generator.
        root_directory (str): The directory, from which the generator is executed.

    Returns:
        list[Path]: The written files.
    """
    clean: list[str] = getattr(args, "clean", [])
    output_dir: str = os.path.join(root_directory, getattr(args, "output_dir", ""))
    recursive: bool = getattr(args, "recursive", False)

    cleanup_paths: set[str] = set()
    for c in clean:
        cleanup_paths = cleanup_paths.union(glob.glob(os.path.join(root_directory, c), recursive=recursive))

    for cleanup_path in sorted(cleanup_paths):
        if os.path.isfile(cleanup_path):
            os.remove(cleanup_path)

    input_paths = collect_input_paths(args.paths, getattr(args, "excludes", []), root_directory, recursive)
    if not input_paths:
        raise GeneratorError(f"No IR files found for {', '.join(args.paths)}.")

    ir = IrDefinition()
    for input_path in input_paths:
        logger.info("Reading IR from '%s'.", input_path)
        ir = ir.merge(load_ir(input_path))

    try:
        root_package = PythonPackage(args.root_package)
    except ValueError as e:
        raise GeneratorError(str(e)) from e

    written = generate_package(ir, root_package.name, output_dir, format_code=getattr(args, "format", False))

    if getattr(args, "pyright", False):
        validate_with_pyright(written)

    return written
