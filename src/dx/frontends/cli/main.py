"""CLI entry point."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import rich_click as click

from dx import __version__
from dx.core.config import DxConfig
from dx.core.errors import DxError
from dx.core.input import read_piped_input
from dx.core.logging_config import configure_logging
from dx.frontends.cli.module import load_active_import_map, module
from dx.frontends.cli.output import error_exit

# Configure rich-click styling
click.rich_click.USE_RICH_MARKUP = True
click.rich_click.USE_MARKDOWN = True
click.rich_click.SHOW_ARGUMENTS = True
click.rich_click.GROUP_ARGUMENTS_OPTIONS = True
click.rich_click.STYLE_ERRORS_SUGGESTION = "magenta italic"
click.rich_click.ERRORS_SUGGESTION = "Try running '--help' for more information."
click.rich_click.ERRORS_EPILOGUE = ""
click.rich_click.MAX_WIDTH = 100

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="dx")
@click.option("--code", "-c", default=None, help="Evaluate CODE, print its value and exit")
@click.option(
    "--file",
    "-f",
    "script",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Evaluate a Python script and exit",
)
@click.option(
    "--import-map",
    "import_map_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Import map JSON (default: $DX_IMPORT_MAP, then ./dx.json)",
)
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default=None,
    help="Log level (default: $DX_LOG_LEVEL or WARNING)",
)
@click.pass_context
def cli(
    ctx: click.Context,
    code: str | None,
    script: Path | None,
    import_map_path: Path | None,
    log_level: str | None,
) -> None:
    """dx - pipe data into a Python REPL.

    Piped stdin is decoded (JSON when possible) into `_input`. Modules from
    the module map are loaded into `_imports`.

    **Examples:**

        dx                                  Start the REPL

        cat data.json | dx                  REPL with the data in _input

        echo '{"a": 1}' | dx -c '_input["a"]'

        dx -f transform.py < data.json

        dx module add json @std/json
    """
    configure_logging(level=log_level, force=True)

    config = DxConfig.from_env()
    if import_map_path is not None:
        config.import_map_path = import_map_path
    ctx.obj = config

    if ctx.invoked_subcommand is not None:
        return

    if code is not None and script is not None:
        error_exit("--code and --file cannot be used together")

    sys.exit(asyncio.run(_run(config, code, script)))


cli.add_command(module)


async def _run(config: DxConfig, code: str | None, script: Path | None) -> int:
    """Run the REPL or a one-shot evaluation. Returns the exit code."""
    from dx.frontends.cli.repl import REPLState, run_code, run_file, run_interactive

    try:
        import_map = load_active_import_map(config.import_map_path)
    except DxError as e:
        error_exit(str(e))

    state = REPLState.from_config(
        config,
        input_value=read_piped_input(),
        import_map=import_map,
    )

    if code is not None:
        return await run_code(code, state)
    if script is not None:
        return await run_file(script, state)
    return await run_interactive(
        state,
        theme_name=config.theme,
        history_path=config.prompt_history_path,
    )


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
