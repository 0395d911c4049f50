"""Output formatting utilities for CLI commands."""

from __future__ import annotations

import json
import sys
from typing import TYPE_CHECKING, Any, NoReturn

import rich_click as click

if TYPE_CHECKING:
    from dx.core.modules import ModuleMap


def print_table(
    headers: list[str],
    rows: list[list[str]],
    separator_width: int = 70,
) -> None:
    """Print a formatted table with headers.

    Args:
        headers: Column header strings
        rows: List of rows, each row is a list of cell values
        separator_width: Width of the separator line
    """
    widths = [
        max([len(headers[i])] + [len(row[i]) for row in rows if i < len(row)])
        for i in range(len(headers))
    ]

    # Last column is not padded
    fmt = " ".join(
        "{}" if i == len(widths) - 1 else f"{{:<{width}}}" for i, width in enumerate(widths)
    )

    click.echo(fmt.format(*headers))
    click.echo("-" * separator_width)
    for row in rows:
        padded_row = list(row) + [""] * (len(headers) - len(row))
        click.echo(fmt.format(*padded_row[: len(headers)]))


def output_json(data: Any, indent: int = 2) -> None:
    """Output data as formatted JSON."""
    click.echo(json.dumps(data, indent=indent))


def print_module_map(entries: ModuleMap, json_flag: bool = False) -> None:
    """Print the persistent module map as a table or JSON."""
    if json_flag:
        output_json({name: entry.to_dict() for name, entry in sorted(entries.items())})
        return

    if not entries:
        click.echo("Module map is empty.")
        return

    rows = [[name, entry.url] for name, entry in sorted(entries.items())]
    print_table(["NAME", "SPECIFIER"], rows)


def error_print(message: str) -> None:
    """Print error message without exiting."""
    click.echo(f"Error: {message}", err=True)


def error_exit(message: str, code: int = 1) -> NoReturn:
    """Print error message and exit with code."""
    error_print(message)
    sys.exit(code)
