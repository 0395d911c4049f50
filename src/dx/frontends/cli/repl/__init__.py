"""Interactive REPL for dx.

Public API:
    run_interactive: Main interactive REPL function
    run_code: Evaluate inline code once (dx -c)
    run_file: Evaluate a script file once (dx -f)
    REPLState: REPL state management
    LineReader: Protocol for line sources
"""

from __future__ import annotations

from dx.frontends.cli.repl.core import LineReader, PromptReader, run_interactive
from dx.frontends.cli.repl.file_runner import run_code, run_file
from dx.frontends.cli.repl.state import REPLState

__all__ = [
    "run_interactive",
    "run_code",
    "run_file",
    "REPLState",
    "LineReader",
    "PromptReader",
]
