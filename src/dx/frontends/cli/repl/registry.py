"""Command registry and dispatch for REPL.

This module provides:
- CommandKind: The closed set of REPL commands
- parse_command: Dot-command recognition (``.name args``)
- CommandContext: All shared state needed by command handlers
- CommandResult: Result of command execution with control flow signals
- Command registry with handler functions

Every CommandKind has exactly one handler. The table is checked when
this module is imported, so a new kind without a handler fails at once.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Coroutine
from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING, Any

from dx.core.buffer import Move
from dx.core.errors import UnknownCommand, UsageError
from dx.core.modules import resolve
from dx.core.validation import validate_module_name
from dx.frontends.cli.repl import display
from dx.frontends.cli.repl.file_runner import read_script
from dx.frontends.cli.repl.signals import run_interruptible

if TYPE_CHECKING:
    from rich.console import Console

    from dx.frontends.cli.repl.state import REPLState

COMMAND_PATTERN = re.compile(r"^\.(\w+)(?:\s+(.*))?$", re.DOTALL)

SAVE_FLAG = "--save"


class CommandKind(Enum):
    """REPL commands. Values are the canonical command names."""

    EXIT = "exit"
    HELP = "help"
    RUN = "run"
    DO = "do"
    IMPORT = "import"
    MODULES = "modules"
    CLEAR = "clear"
    CONTEXT = "context"
    BCLEAR = "bclear"
    BSHOW = "bshow"
    BHPREV = "bhprev"
    BHNEXT = "bhnext"
    BHLIST = "bhlist"
    BHLOAD = "bhload"
    BHCLEAR = "bhclear"


ALIASES: dict[str, CommandKind] = {
    "q": CommandKind.EXIT,
    "h": CommandKind.HELP,
    "r": CommandKind.RUN,
    "im": CommandKind.IMPORT,
    "ms": CommandKind.MODULES,
    "cl": CommandKind.CLEAR,
    "cx": CommandKind.CONTEXT,
    "bc": CommandKind.BCLEAR,
    "bs": CommandKind.BSHOW,
    "hp": CommandKind.BHPREV,
    "hn": CommandKind.BHNEXT,
    "hl": CommandKind.BHLIST,
    "hg": CommandKind.BHLOAD,
    "hc": CommandKind.BHCLEAR,
}

# Token (without the dot) -> kind. Tokens are case-sensitive.
COMMAND_TOKENS: dict[str, CommandKind] = {
    **{kind.value: kind for kind in CommandKind},
    **ALIASES,
}


@dataclass(frozen=True)
class ParsedCommand:
    """A recognized dot-command."""

    kind: CommandKind
    token: str
    args: str = ""  # Remainder of the line, trimmed


def parse_command(line: str) -> ParsedCommand | None:
    """Recognize a dot-command.

    Args:
        line: Input line.

    Returns:
        ParsedCommand, or None if the line is not a dot-command (it is code).

    Raises:
        UnknownCommand: If the line is a dot-command with an unknown token.
    """
    match = COMMAND_PATTERN.match(line.strip())
    if match is None:
        return None

    token, args = match.group(1), match.group(2) or ""
    kind = COMMAND_TOKENS.get(token)
    if kind is None:
        raise UnknownCommand(token)
    return ParsedCommand(kind=kind, token=token, args=args.strip())


class CommandAction(Enum):
    """Control flow actions from command handlers."""

    CONTINUE = auto()  # Continue REPL loop
    BREAK = auto()  # Exit REPL loop (normal exit)


@dataclass
class CommandContext:
    """All state needed by command handlers.

    Attributes:
        state: Buffer, namespace, modules and evaluator of this session.
        console: REPL chrome (stderr or the direct terminal).
        out: Values of evaluated code (stdout).
    """

    state: REPLState
    console: Console
    out: Console


@dataclass
class CommandResult:
    """Result from a command handler."""

    action: CommandAction = CommandAction.CONTINUE


# Type alias for command handlers
CommandHandler = Callable[[CommandContext, str], Coroutine[Any, Any, CommandResult]]


# =============================================================================
# Command Handlers
# =============================================================================


async def cmd_exit(ctx: CommandContext, args: str) -> CommandResult:
    """Exit the REPL."""
    display.print_warning(ctx.console, "Exiting REPL.")
    return CommandResult(action=CommandAction.BREAK)


async def cmd_help(ctx: CommandContext, args: str) -> CommandResult:
    """Show help."""
    display.print_help(ctx.console)
    return CommandResult()


async def cmd_run(ctx: CommandContext, args: str) -> CommandResult:
    """Execute the buffer and archive it in history."""
    state = ctx.state
    line_count = len(state.buffer.lines)
    if line_count == 0:
        display.print_warning(ctx.console, "Buffer is empty. Nothing to execute.")
        return CommandResult()

    display.print_notice(ctx.console, f"Executing buffered code ({line_count} lines)...")
    result = await run_interruptible(
        state.buffer.execute(state.evaluator, state.context), state.context.namespace
    )
    display.print_eval_result(ctx.console, ctx.out, result)
    return CommandResult()


async def cmd_do(ctx: CommandContext, args: str) -> CommandResult:
    """Execute a file. Buffer and history are not touched."""
    if not args:
        raise UsageError("Usage: .do <filepath>")

    display.print_notice(ctx.console, f"Executing file: {args}...")
    source = read_script(args)
    state = ctx.state
    result = await run_interruptible(
        state.evaluator.execute(source, state.context), state.context.namespace
    )
    display.print_eval_result(ctx.console, ctx.out, result)
    return CommandResult()


async def cmd_import(ctx: CommandContext, args: str) -> CommandResult:
    """Resolve, load and bind a module; record it in the module map."""
    parts = args.split()
    save = SAVE_FLAG in parts
    parts = [part for part in parts if part != SAVE_FLAG]
    if len(parts) != 2:
        raise UsageError(f"Usage: .import <name> <specifier> [{SAVE_FLAG}]")

    name, specifier = parts
    state = ctx.state

    # Everything that can fail happens before the map or _imports change
    validate_module_name(name)
    resolved = resolve(specifier, state.import_map)
    module = await state.load_module(name, resolved)

    saved = False
    if save:
        _, saved = state.modules.add_persistent(name, specifier, state.import_map)
    if saved:
        state.modules.discard_session(name)
    else:
        state.modules.add_session(name, specifier, state.import_map)
    state.context.bind_import(name, module)

    if save and not saved:
        display.print_warning(
            ctx.console,
            f"Module map could not be written to {state.modules.path}. "
            "Keeping the module for this session only.",
        )

    where = "module map" if saved else "session"
    display.print_success(
        ctx.console, f'Imported {resolved} as _imports["{name}"] (saved to {where}).'
    )
    return CommandResult()


async def cmd_modules(ctx: CommandContext, args: str) -> CommandResult:
    """List the effective module map."""
    modules = ctx.state.modules
    entries = modules.list()
    session_names = {name for name in entries if modules.is_session(name)}
    display.print_modules(ctx.console, entries, session_names)
    return CommandResult()


async def cmd_clear(ctx: CommandContext, args: str) -> CommandResult:
    """Clear the terminal screen."""
    ctx.console.file.write(display.CLEAR_SCREEN)
    ctx.console.file.flush()
    return CommandResult()


async def cmd_context(ctx: CommandContext, args: str) -> CommandResult:
    """Show _input and _imports."""
    display.print_context(ctx.console, ctx.state.context)
    return CommandResult()


async def cmd_bclear(ctx: CommandContext, args: str) -> CommandResult:
    """Clear the buffer and leave history view."""
    ctx.state.buffer.clear()
    display.print_warning(ctx.console, "Code buffer cleared. Switched to live input.")
    return CommandResult()


async def cmd_bshow(ctx: CommandContext, args: str) -> CommandResult:
    """Show the buffer."""
    display.print_buffer(ctx.console, ctx.state.buffer)
    return CommandResult()


async def cmd_bhprev(ctx: CommandContext, args: str) -> CommandResult:
    """Load the previous history entry."""
    buffer = ctx.state.buffer
    move = buffer.navigate_prev()
    if move is Move.NO_HISTORY:
        display.print_warning(ctx.console, "No history available.")
        return CommandResult()
    if move is Move.ALREADY_OLDEST:
        display.print_warning(ctx.console, "Already at the oldest history item.")
    display.print_buffer(ctx.console, buffer)
    return CommandResult()


async def cmd_bhnext(ctx: CommandContext, args: str) -> CommandResult:
    """Load the next history entry, or return to live input past the newest."""
    buffer = ctx.state.buffer
    move = buffer.navigate_next()
    if move is Move.NO_HISTORY:
        display.print_warning(ctx.console, "No history available.")
        return CommandResult()
    if move is Move.ON_LIVE:
        display.print_warning(
            ctx.console, "Currently on live buffer. Type .hp or .bhprev to enter history."
        )
        return CommandResult()
    if move is Move.BACK_TO_LIVE:
        display.print_warning(
            ctx.console, "At the newest history item. Cleared buffer for new live input."
        )
    display.print_buffer(ctx.console, buffer)
    return CommandResult()


async def cmd_bhlist(ctx: CommandContext, args: str) -> CommandResult:
    """List executed buffers."""
    display.print_history(ctx.console, ctx.state.buffer)
    return CommandResult()


async def cmd_bhload(ctx: CommandContext, args: str) -> CommandResult:
    """Load history entry n (1-based)."""
    try:
        index = int(args)
    except ValueError:
        raise UsageError("Usage: .bhload <history_index> (1-based)") from None

    buffer = ctx.state.buffer
    buffer.load_by_index(index)
    display.print_success(ctx.console, f"Loaded history item {index} into buffer.")
    display.print_buffer(ctx.console, buffer)
    return CommandResult()


async def cmd_bhclear(ctx: CommandContext, args: str) -> CommandResult:
    """Drop all history."""
    ctx.state.buffer.clear_history()
    display.print_warning(ctx.console, "Executed buffer history cleared.")
    return CommandResult()


# =============================================================================
# Command Registry
# =============================================================================

HANDLERS: dict[CommandKind, CommandHandler] = {
    CommandKind.EXIT: cmd_exit,
    CommandKind.HELP: cmd_help,
    CommandKind.RUN: cmd_run,
    CommandKind.DO: cmd_do,
    CommandKind.IMPORT: cmd_import,
    CommandKind.MODULES: cmd_modules,
    CommandKind.CLEAR: cmd_clear,
    CommandKind.CONTEXT: cmd_context,
    CommandKind.BCLEAR: cmd_bclear,
    CommandKind.BSHOW: cmd_bshow,
    CommandKind.BHPREV: cmd_bhprev,
    CommandKind.BHNEXT: cmd_bhnext,
    CommandKind.BHLIST: cmd_bhlist,
    CommandKind.BHLOAD: cmd_bhload,
    CommandKind.BHCLEAR: cmd_bhclear,
}

_missing = set(CommandKind) - set(HANDLERS)
if _missing:
    raise RuntimeError(f"No handler for commands: {sorted(kind.value for kind in _missing)}")


async def dispatch_command(ctx: CommandContext, command: ParsedCommand) -> CommandResult:
    """Dispatch a parsed command to its handler.

    Raises:
        DxError: Whatever the handler raises; the REPL loop reports it.
    """
    return await HANDLERS[command.kind](ctx, command.args)
