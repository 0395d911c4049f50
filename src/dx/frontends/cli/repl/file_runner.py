"""One-shot execution: ``dx -c CODE`` and ``dx -f FILE``.

No REPL chrome is printed. stdout carries only the program's output (and,
for ``-c``, the value of a trailing expression); errors go to stderr.
Every failure ends with exit code 1.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from dx.core.errors import EvaluationFailure, FileAccessFailure
from dx.frontends.cli.repl import display
from dx.frontends.cli.theme import make_console

if TYPE_CHECKING:
    from rich.console import Console

    from dx.frontends.cli.repl.state import REPLState

logger = logging.getLogger(__name__)


def read_script(path: str | Path) -> str:
    """Read a script file.

    Raises:
        FileAccessFailure: Missing, unreadable or not a file.
    """
    target = Path(path).expanduser()
    try:
        return target.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise FileAccessFailure(str(path), "File not found") from None
    except PermissionError:
        raise FileAccessFailure(
            str(path),
            "Permission denied",
            hint="Check that the file is readable by the current user.",
        ) from None
    except IsADirectoryError:
        raise FileAccessFailure(str(path), "Is a directory") from None
    except UnicodeDecodeError as e:
        raise FileAccessFailure(str(path), f"Not a UTF-8 text file ({e.reason})") from e
    except OSError as e:
        raise FileAccessFailure(str(path), f"Cannot read file ({e.strerror or e})") from e


async def _load_modules_quietly(state: REPLState) -> None:
    _, failed = await state.load_module_map()
    for name, error in failed.items():
        logger.warning('Module "%s" not loaded: %s', name, error.reason)


async def run_code(
    code: str,
    state: REPLState,
    out: Console | None = None,
    err: Console | None = None,
    echo_value: bool = True,
) -> int:
    """Evaluate code once.

    Args:
        code: Source to evaluate.
        state: Session state (module map entries are loaded first).
        out: Console for the trailing value (default: stdout).
        err: Console for errors (default: stderr).
        echo_value: Print the value of a trailing expression.

    Returns:
        Process exit code: 0 on success, 1 on evaluation failure.
    """
    out = out or make_console()
    err = err or make_console(stderr=True)

    await _load_modules_quietly(state)
    result = await state.evaluator.execute(code, state.context)

    try:
        value = result.unwrap()
    except EvaluationFailure as e:
        err.print(str(e), style="error", markup=False, highlight=False)
        if result.error.traceback:
            logger.debug("Traceback:\n%s", result.error.traceback)
        return 1

    if echo_value and value is not None:
        display.print_value(out, value)
    return 0


async def run_file(
    path: str | Path,
    state: REPLState,
    out: Console | None = None,
    err: Console | None = None,
) -> int:
    """Evaluate a script file once.

    Returns:
        Process exit code: 0 on success, 1 if the file cannot be read or
        evaluation fails.
    """
    err = err or make_console(stderr=True)
    try:
        code = read_script(path)
    except FileAccessFailure as e:
        display.print_error(err, e)
        return 1
    return await run_code(code, state, out=out, err=err, echo_value=False)

