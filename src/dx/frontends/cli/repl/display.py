"""Display and output formatting utilities for REPL.

REPL chrome (notices, listings, errors) goes to the chrome console:
stderr, or the direct terminal when stdin is piped. Values of evaluated
code go to the output console (stdout).
"""

from __future__ import annotations

import types
from typing import TYPE_CHECKING, Any

from rich.markup import escape
from rich.pretty import Pretty

if TYPE_CHECKING:
    from rich.console import Console

    from dx.core.buffer import BufferEngine
    from dx.core.context import ReplContext
    from dx.core.evaluator import EvalResult
    from dx.core.modules import ModuleLoadError, ModuleMap, ModuleMapEntry

CLEAR_SCREEN = "\x1b[2J\x1b[H"

PREVIEW_LINES = 2
PREVIEW_WIDTH = 40

HELP_TEXT = """
Welcome to dx.

How it works:
- Input lines of Python code. They are added to a buffer.
- To execute the buffered code:
    - Press Enter on an empty line.
    - Type the .run command.
- After execution, the buffer is cleared for the next block of code.
  The executed buffer is added to a history for later recall.
- Names assigned in a block persist for later blocks.
- The value of a trailing expression is printed.
- Top-level await is allowed.

Available commands (executed immediately):
  .exit (or .q)        Exit the REPL.
  .help (or .h)        Show this help message.
  .run (or .r)         Execute the current code buffer.
  .do <filepath>       Execute a Python file. Example: .do ./myscript.py
                       (File content is NOT added to buffer history)
  .import <name> <specifier> [--save]
        (or .im)       Import a module into _imports[name].
                       Example: .import json @std/json
                       --save also records it in the persistent module map.
  .modules (or .ms)    List the module map (* marks session-only entries).
  .clear (or .cl)      Clear the terminal screen.
  .context (or .cx)    Show current _input and _imports.

Buffer Commands:
  .bclear (or .bc)     Clear the current code buffer (and exit history view).
  .bshow (or .bs)      Show the current code buffer content.

Buffer History Commands (for manually entered blocks):
  .bhprev (or .hp)     Load previous executed buffer into current buffer.
  .bhnext (or .hn)     Load next executed buffer (or clear buffer if at newest).
  .bhlist (or .hl)     List all executed buffers from history.
  .bhload <index>      Load a specific executed buffer by index (1-based).
        (or .hg)
  .bhclear (or .hc)    Clear all executed buffer history.

Module specifiers:
  https://... file://... data:...   Python source
  @std/<module>                     Standard library, e.g. @std/json
  jsr:<...> npm:<package>           Installed package
  <key>                             Entry of the import map (dx.json or --import-map)

Globals:
  _imports    Imported modules by name.
  _input      Data piped from stdin (JSON-decoded when possible).
"""


def print_help(console: Console) -> None:
    """Print usage help."""
    console.print(HELP_TEXT, markup=False, highlight=False)


def print_welcome(console: Console, has_input: bool) -> None:
    console.print("[banner]Welcome to dx[/]")
    if has_input:
        console.print("[hint]Data from stdin pipe is available in `_input`.[/]")


def print_start_hints(console: Console) -> None:
    console.print("[hint]Type code lines. Press Enter on an empty line or type .run to execute.[/]")
    console.print("[hint]Type .help for more commands and info. Type .exit to quit.[/]")


def print_notice(console: Console, message: str) -> None:
    console.print(f"[notice]{escape(message)}[/]")


def print_warning(console: Console, message: str) -> None:
    console.print(f"[warning]{escape(message)}[/]")


def print_success(console: Console, message: str) -> None:
    console.print(f"[success]{escape(message)}[/]")


def print_error(console: Console, error: BaseException | str) -> None:
    """Print an error message (prefixed with ``Error:`` for dx errors)."""
    text = error if isinstance(error, str) else f"Error: {error}"
    console.print(f"[error]{escape(text)}[/]")
    hint = getattr(error, "hint", None)
    if hint:
        console.print(f"[warning]Hint: {escape(hint)}[/]")


def print_module_loads(
    console: Console,
    loaded: dict[str, ModuleMapEntry],
    failed: dict[str, ModuleLoadError],
    entries: ModuleMap,
) -> None:
    """Report startup module loading, one line per entry."""
    if not entries:
        return

    console.print("[notice]Loading modules from map...[/]")
    for name, entry in entries.items():
        if name in loaded:
            console.print(f'[hint]  Loaded "{escape(name)}" from {escape(entry.url)}[/]')
        elif name in failed:
            console.print(
                f'[error]  Error loading module "{escape(name)}" from {escape(entry.url)}:[/] '
                f"{escape(failed[name].reason)}"
            )


def print_buffer(console: Console, buffer: BufferEngine) -> None:
    """Show the buffer, and the history position while viewing history."""
    position = buffer.position
    if position is not None:
        console.print(f"[heading](Currently viewing history item {position[0]}/{position[1]})[/]")

    lines = buffer.lines
    if not lines:
        print_warning(console, "Code buffer is empty.")
        return

    console.print("[heading]Current buffer content:[/]")
    console.print("[line_number]--- start of buffer ---[/]")
    for number, line in enumerate(lines, 1):
        console.print(f"[line_number]{number}: [/]{escape(line)}", highlight=False)
    console.print("[line_number]--- end of buffer ---[/]")


def preview(lines: list[str]) -> str:
    """First lines of a history entry, each cut to PREVIEW_WIDTH characters."""
    shown = [
        line if len(line) <= PREVIEW_WIDTH else line[: PREVIEW_WIDTH - 3] + "..."
        for line in lines[:PREVIEW_LINES]
    ]
    return " \\n ".join(shown)


def print_history(console: Console, buffer: BufferEngine) -> None:
    """List executed buffers with a short preview each."""
    history = buffer.history
    if not history:
        print_warning(console, "No history available.")
        return

    console.print("[heading]Executed Buffer History:[/]")
    for number, entry in enumerate(history, 1):
        console.print(
            f"[success]{number}: [/]{escape(preview(entry))} ({len(entry)} lines)",
            highlight=False,
        )


def print_context(console: Console, context: ReplContext) -> None:
    """Dump ``_input`` and the names bound in ``_imports``."""
    console.print("[heading]_input:[/]")
    console.print(Pretty(context.input, max_depth=4, max_string=200))

    console.print("[heading]_imports:[/]")
    if not context.imports:
        console.print("[hint](empty)[/]")
        return
    for name, value in context.imports.items():
        kind = "[Module]" if isinstance(value, types.ModuleType) else escape(repr(value))
        console.print(f"[success]  {escape(name)}:[/] {kind}", highlight=False)


def print_modules(console: Console, entries: ModuleMap, session_names: set[str]) -> None:
    """List the effective module map; session-only entries are starred."""
    if not entries:
        print_warning(console, "Module map is empty.")
        return

    console.print("[heading]Current module map:[/]")
    for name, entry in sorted(entries.items()):
        marker = "*" if name in session_names else " "
        console.print(
            f"{marker} [label]{escape(name)}[/]: [url]{escape(entry.url)}[/]", highlight=False
        )


def print_value(out: Console, value: Any) -> None:
    """Pretty-print a value on the output console."""
    out.print(Pretty(value, max_depth=4, max_string=500))


def print_eval_result(console: Console, out: Console, result: EvalResult | None) -> None:
    """Print a value (stdout) or a ``Kind: message`` error (chrome)."""
    if result is None:
        return
    if result.error is not None:
        print_error(console, str(result.error))
    elif result.value is not None:
        print_value(out, result.value)
