"""Command-line interface for generating Python beans from Conjure IR documents.

Notes:
    - The generated code depends on `conjure-python-client` at runtime.
"""

from __future__ import annotations

import argparse
import logging
import os
from collections.abc import Sequence

from conjure_bean_generator.errors import GeneratorError
from conjure_bean_generator.run import run

logger = logging.getLogger(__name__)

DEFAULT_ROOT_PACKAGE = "generated"


def _add_recursive_argument(parser: argparse.ArgumentParser):
    """Add a recursive argument to a parser.

    Args:
        parser (argparse.ArgumentParser): The parser to add the argument to.
    """
    parser.add_argument(
        "-r",
        "--recursive",
        dest="recursive",
        default=False,
        action="store_true",
        help="recursively search for IR files with a given glob expression or directory.",
    )


def setup_parser() -> argparse.ArgumentParser:
    """Setup for the parser.

    Returns:
        argparse.ArgumentParser: The parser after setup.
    """
    parser = argparse.ArgumentParser(description="Generate Python beans for Conjure IR files.")

    parser.add_argument(
        "-c",
        "--clean",
        type=str,
        nargs="+",
        default=[],
        help="path or glob expressions that match files to clean up before generation.",
    )

    parser.add_argument(
        "-p",
        "--paths",
        type=str,
        nargs="+",
        default=["*.json"],
        help="path, directory or glob expressions that match IR files for generation.",
    )

    parser.add_argument(
        "-e",
        "--excludes",
        type=str,
        nargs="+",
        default=[],
        help="path or glob expressions to exclude from path matches.",
    )

    parser.add_argument(
        "-o",
        "--output-dir",
        type=str,
        default="",
        help="directory to write the generated package to; defaults to the working directory.",
    )

    parser.add_argument(
        "--root-package",
        type=str,
        default=DEFAULT_ROOT_PACKAGE,
        help=f"dotted name of the generated package (default: {DEFAULT_ROOT_PACKAGE}).",
    )

    parser.add_argument(
        "--format",
        dest="format",
        default=False,
        action="store_true",
        help="format the generated modules with ruff.",
    )

    parser.add_argument(
        "--pyright",
        dest="pyright",
        default=False,
        action="store_true",
        help="validate the generated modules with pyright.",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        dest="verbose",
        default=False,
        action="store_true",
        help="log debug output.",
    )

    _add_recursive_argument(parser)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point of the generator.

    Args:
        argv (Sequence[str] | None, optional): Run arguments. Defaults to None.

    Returns:
        int: Error code.
    """
    parser = setup_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    root_directory = os.getcwd()
    logger.info("Working from root directory: %s", root_directory)

    try:
        run(args, root_directory)
    except (GeneratorError, OSError) as e:
        logger.error("Generation failed: %s", e)
        return 1

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
