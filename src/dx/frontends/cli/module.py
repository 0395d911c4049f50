"""Module map subcommands: ``dx module add|remove|list``."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import rich_click as click

from dx.core.errors import DxError
from dx.core.modules import ImportMap, ModuleMapStore, find_import_map, load_import_map
from dx.frontends.cli.output import error_exit, error_print, print_module_map

if TYPE_CHECKING:
    from dx.core.config import DxConfig


def load_active_import_map(explicit: Path | None) -> ImportMap:
    """Import map from --import-map / DX_IMPORT_MAP, else ./dx.json, else empty.

    Raises:
        FileAccessFailure: An explicitly named import map is missing.
        UsageError: The import map is malformed.
    """
    path = find_import_map(explicit)
    if path is None:
        return {}
    return load_import_map(path)


@click.group()
def module() -> None:
    """Manage the persistent module map.

    Entries in the module map are loaded into `_imports` every time the
    REPL starts.

    **Commands:**

        dx module add       Add (or overwrite) a named module

        dx module remove    Remove a named module

        dx module list      List the module map
    """
    pass


@module.command("add")
@click.argument("name")
@click.argument("specifier")
@click.pass_obj
def module_add(config: DxConfig, name: str, specifier: str) -> None:
    """Add a module to the map.

    SPECIFIER is a URL, an `@std/` shorthand, a `jsr:`/`npm:` specifier or
    an import-map key. It is resolved before it is stored.

    **Examples:**

        dx module add json @std/json

        dx module add fmt https://example.com/fmt.py

        dx module add dateutil npm:python-dateutil
    """
    store = ModuleMapStore(path=config.module_map_path)
    try:
        import_map = load_active_import_map(config.import_map_path)
        entry, saved = store.add_persistent(name, specifier, import_map)
    except DxError as e:
        error_exit(str(e))

    click.echo(f'Module "{name}" ({entry.url}) added to map.')
    if not saved:
        error_print(f"Module map could not be written to {store.path}")


@module.command("remove")
@click.argument("name")
@click.pass_obj
def module_remove(config: DxConfig, name: str) -> None:
    """Remove a module from the map.

    **Examples:**

        dx module remove json
    """
    store = ModuleMapStore(path=config.module_map_path)
    if store.remove(name):
        click.echo(f'Module "{name}" removed from map.')
    else:
        click.echo(f'Module "{name}" not found in map.')


@module.command("list")
@click.option("--json", "-j", "json_output", is_flag=True, help="Output as JSON")
@click.pass_obj
def module_list(config: DxConfig, json_output: bool) -> None:
    """List the module map.

    **Examples:**

        dx module list

        dx module list --json
    """
    store = ModuleMapStore(path=config.module_map_path)
    print_module_map(store.load_persistent(), json_flag=json_output)
