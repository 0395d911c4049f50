"""Core REPL loop.

Each input line is one of:
- empty: run the buffer if it has code, else prompt again
- a dot-command: dispatched immediately, never added to the buffer
- anything else: appended to the buffer (leaving history view first)

Ctrl+C and Ctrl+D at the prompt never end the loop. With code in the
buffer (or a history entry loaded) they discard it; otherwise they just
print a blank line. Only .exit leaves.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol, TextIO

from prompt_toolkit import PromptSession
from prompt_toolkit.history import FileHistory, History, InMemoryHistory
from prompt_toolkit.input import create_input
from prompt_toolkit.output import create_output
from prompt_toolkit.styles import Style

from dx.core.errors import DxError
from dx.frontends.cli.repl import display
from dx.frontends.cli.repl.registry import (
    CommandAction,
    CommandContext,
    dispatch_command,
    parse_command,
)
from dx.frontends.cli.repl.signals import sigterm_exits
from dx.frontends.cli.repl.terminal import TerminalHandle
from dx.frontends.cli.theme import make_console

if TYPE_CHECKING:
    from pathlib import Path

    from rich.console import Console

    from dx.core.buffer import BufferEngine
    from dx.frontends.cli.repl.state import REPLState

logger = logging.getLogger(__name__)

PROMPT_LIVE = "> "
PROMPT_BUFFER = "... "

PROMPT_STYLE = Style.from_dict(
    {
        "prompt.live": "ansigreen",
        "prompt.buffer": "ansiyellow",
        "prompt.history": "ansimagenta",
    }
)


class LineReader(Protocol):
    """Source of input lines.

    read_line raises KeyboardInterrupt for Ctrl+C and EOFError for Ctrl+D.
    """

    async def read_line(self, prompt: str, style: str) -> str: ...


@dataclass
class PromptReader:
    """LineReader backed by a prompt_toolkit session."""

    session: PromptSession[str]

    async def read_line(self, prompt: str, style: str) -> str:
        return await self.session.prompt_async([(f"class:{style}", prompt)])

    @classmethod
    def create(
        cls,
        history_path: Path | None = None,
        terminal: TerminalHandle | None = None,
    ) -> PromptReader:
        """Prompt on the process's terminal, or on a direct terminal handle.

        Args:
            history_path: File for line history (in-memory if None or unusable).
            terminal: Direct terminal to read from and write to.
        """
        kwargs: dict[str, Any] = {}
        if terminal is not None:
            kwargs["input"] = create_input(stdin=terminal.reader)
            kwargs["output"] = create_output(stdout=terminal.writer)
        session: PromptSession[str] = PromptSession(
            history=_line_history(history_path), style=PROMPT_STYLE, **kwargs
        )
        return cls(session)


def _line_history(path: Path | None) -> History:
    if path is None:
        return InMemoryHistory()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.warning("Line history disabled, cannot create %s: %s", path.parent, e)
        return InMemoryHistory()
    return FileHistory(str(path))


def prompt_for(buffer: BufferEngine) -> tuple[str, str]:
    """Prompt text and style class for the buffer's current mode."""
    position = buffer.position
    if position is not None:
        return f"H {position[0]}/{position[1]}> ", "prompt.history"
    if buffer.is_empty():
        return PROMPT_LIVE, "prompt.live"
    return PROMPT_BUFFER, "prompt.buffer"


def abandon_buffer(ctx: CommandContext, key: str) -> None:
    """Ctrl+C / Ctrl+D at the prompt: drop the buffer, never exit."""
    buffer = ctx.state.buffer
    if buffer.is_empty() and not buffer.in_history_view:
        ctx.console.print()
        return

    buffer.clear()
    display.print_warning(
        ctx.console, f"\nCode buffer cleared and exited history view by {key} at prompt."
    )


async def handle_line(ctx: CommandContext, line: str) -> CommandAction:
    """Process one input line.

    DxErrors raised by commands are reported here; the loop always goes on.
    """
    buffer = ctx.state.buffer
    if not line.strip():
        if not buffer.is_empty():
            return await _dispatch_line(ctx, ".run")
        return CommandAction.CONTINUE

    return await _dispatch_line(ctx, line)


async def _dispatch_line(ctx: CommandContext, line: str) -> CommandAction:
    try:
        command = parse_command(line)
        if command is None:
            if ctx.state.buffer.append_line(line):
                display.print_notice(ctx.console, "(Exited history view. Started new live buffer)")
            return CommandAction.CONTINUE

        result = await dispatch_command(ctx, command)
    except DxError as e:
        logger.debug("Command failed: %s", e, exc_info=True)
        display.print_error(ctx.console, e)
        return CommandAction.CONTINUE

    return result.action


async def _startup(ctx: CommandContext) -> None:
    """Report piped input and load the module map into _imports."""
    state = ctx.state
    display.print_welcome(ctx.console, has_input=state.context.input is not None)

    entries = state.modules.effective_map()
    loaded, failed = await state.load_module_map()
    display.print_module_loads(ctx.console, loaded, failed, entries)

    display.print_start_hints(ctx.console)


async def repl_loop(ctx: CommandContext, reader: LineReader) -> None:
    """Read and handle lines until .exit."""
    while True:
        prompt, style = prompt_for(ctx.state.buffer)
        try:
            line = await reader.read_line(prompt, style)
        except KeyboardInterrupt:
            abandon_buffer(ctx, "Ctrl+C")
            continue
        except EOFError:
            abandon_buffer(ctx, "Ctrl+D")
            continue

        if await handle_line(ctx, line) is CommandAction.BREAK:
            break


async def run_interactive(
    state: REPLState,
    reader: LineReader | None = None,
    console: Console | None = None,
    out: Console | None = None,
    theme_name: str = "default",
    history_path: Path | None = None,
    stdin: TextIO | None = None,
) -> int:
    """Run the interactive REPL.

    Args:
        state: Session state (piped input already decoded into it).
        reader: Line source. Default: prompt_toolkit on stdin, or on the
            direct terminal when stdin is not a terminal.
        console: Console for REPL chrome (default: stderr or direct terminal).
        out: Console for evaluated values (default: stdout).
        theme_name: Color theme for the default consoles.
        history_path: Line history file, used only when stdin is a terminal.
        stdin: Standard input (default: sys.stdin), checked for a terminal.

    Returns:
        Exit code: 0 after .exit, 1 if no terminal could be opened.
    """
    stdin = stdin if stdin is not None else sys.stdin
    out = out or make_console(theme_name)
    terminal: TerminalHandle | None = None

    if reader is None:
        if stdin is not None and stdin.isatty():
            reader = PromptReader.create(history_path=history_path)
        else:
            chrome = console or make_console(theme_name, stderr=True)
            display.print_notice(
                chrome, "Stdin is piped. Attempting to use direct TTY for REPL interaction."
            )
            try:
                terminal = TerminalHandle.open()
            except OSError as e:
                display.print_error(chrome, f"Failed to open TTY: {e}")
                display.print_warning(chrome, "No terminal available for REPL input.")
                return 1
            display.print_notice(chrome, f"Using {terminal.description}.")
            reader = PromptReader.create(terminal=terminal)
            if console is None:
                console = make_console(theme_name, file=terminal.writer)

    ctx = CommandContext(
        state=state,
        console=console or make_console(theme_name, stderr=True),
        out=out,
    )

    try:
        with sigterm_exits():
            await _startup(ctx)
            await repl_loop(ctx, reader)
    finally:
        if terminal is not None:
            terminal.close()
    return 0
