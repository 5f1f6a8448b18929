"""Command-line options of the v2{2}(pT) analysis step."""

from __future__ import annotations

import os
import sys
from collections.abc import Sequence
from dataclasses import dataclass

from blastwave.option_values import derive_default_v2pt_output_path


@dataclass(frozen=True)
class AnalyzeOptions:
    """Parsed analysis options; ``show_help`` is set when ``--help`` was given."""

    input_path: str = ""
    output_path: str = ""
    inplace: bool = False
    show_help: bool = False


def derive_default_output_path(input_path: str | os.PathLike[str]) -> str:
    """Return ``<dir>/<stem>_v2pt.root`` next to the input file."""
    return derive_default_v2pt_output_path(input_path)


def format_analyze_usage(program_name: str) -> str:
    """Return the usage text of the analysis command."""
    return (
        f"Usage: {program_name} --input <result.root> "
        "[--output <analysis.root> | --inplace]\n"
    )


def parse_analyze_options(argv: Sequence[str] | None = None) -> AnalyzeOptions:
    """Parse analysis arguments (without the program name).

    Raises ``ValueError`` for missing, unknown or conflicting options.
    """
    arguments = list(sys.argv[1:] if argv is None else argv)
    input_path = ""
    output_path = ""
    inplace = False
    saw_output = False

    tokens = iter(arguments)
    for option in tokens:
        if option == "--help":
            return AnalyzeOptions(show_help=True)
        if option in ("--input", "--output"):
            value = next(tokens, None)
            if value is None:
                raise ValueError(f"Missing value for {option}")
            if option == "--input":
                input_path = value
            else:
                output_path = value
                saw_output = True
        elif option == "--inplace":
            inplace = True
        else:
            raise ValueError(f"Unknown option: {option}")

    if not input_path:
        raise ValueError("--input is required.")
    if inplace and saw_output:
        raise ValueError("--output and --inplace are mutually exclusive.")
    if not inplace:
        if not saw_output:
            output_path = derive_default_output_path(input_path)
        if not output_path:
            raise ValueError("Output path must not be empty.")
    return AnalyzeOptions(input_path=input_path, output_path=output_path, inplace=inplace)