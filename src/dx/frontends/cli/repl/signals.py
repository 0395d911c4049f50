"""Signal handling for the REPL.

Ctrl+C while evaluated code runs must stop that code and nothing else.
Two cases:
- Synchronous user code (a busy loop, a blocking call): the interrupt is
  raised as KeyboardInterrupt inside it, and the evaluator reports it.
- User code awaiting something: the event loop is idle in select(), so
  raising there would tear down asyncio.run(). The evaluation task is
  cancelled instead and the cancellation is reported as an interrupt.

Module loads (an HTTP fetch, mostly) take the second path: the load is
cancelled and the REPL reports it as a failed load.

SIGTERM is turned into SystemExit so ``finally`` blocks (closing the
direct terminal) run on termination too.
"""

from __future__ import annotations

import asyncio
import logging
import signal
import threading
from collections.abc import Awaitable, Iterator
from contextlib import contextmanager
from types import FrameType
from typing import Any, TypeVar

from dx.core.evaluator import EvalError, EvalResult

logger = logging.getLogger(__name__)

T = TypeVar("T")

INTERRUPTED = EvalError("KeyboardInterrupt", "execution interrupted")


class Interrupted(Exception):
    """An awaited operation was cancelled by Ctrl+C."""


def _in_main_thread() -> bool:
    return threading.current_thread() is threading.main_thread()


def _runs_user_code(frame: FrameType | None, namespace: dict[str, Any] | None) -> bool:
    """True if any frame on the stack executes with ``namespace`` as globals."""
    if namespace is None:
        return False
    while frame is not None:
        if frame.f_globals is namespace:
            return True
        frame = frame.f_back
    return False


async def cancel_on_sigint(
    awaitable: Awaitable[T], namespace: dict[str, Any] | None = None
) -> T:
    """Await with Ctrl+C scoped to the awaitable.

    Args:
        awaitable: The operation to run.
        namespace: Globals of evaluated user code. A SIGINT arriving while
            a frame with these globals is on the stack is raised there as
            KeyboardInterrupt; any other SIGINT cancels the operation.

    Raises:
        Interrupted: If the operation was cancelled by Ctrl+C.
    """
    task = asyncio.ensure_future(awaitable)
    if not _in_main_thread():
        return await task

    loop = asyncio.get_running_loop()
    interrupted = False

    def on_sigint(signum: int, frame: FrameType | None) -> None:
        nonlocal interrupted
        if _runs_user_code(frame, namespace):
            raise KeyboardInterrupt
        interrupted = True
        loop.call_soon_threadsafe(task.cancel)

    previous = signal.signal(signal.SIGINT, on_sigint)
    try:
        return await task
    except asyncio.CancelledError:
        if not interrupted:
            raise
        logger.debug("Cancelled by SIGINT")
        raise Interrupted from None
    finally:
        signal.signal(signal.SIGINT, previous)


async def run_interruptible(
    awaitable: Awaitable[EvalResult], namespace: dict[str, Any]
) -> EvalResult:
    """Await an evaluation with Ctrl+C scoped to it.

    Args:
        awaitable: The evaluation (buffer run or file run).
        namespace: Globals of the evaluated code.

    Returns:
        The evaluation's result, or an EvalResult carrying a
        KeyboardInterrupt error if it was cancelled by Ctrl+C.
    """
    try:
        return await cancel_on_sigint(awaitable, namespace)
    except Interrupted:
        return EvalResult(error=INTERRUPTED)


def _raise_system_exit(signum: int, frame: FrameType | None) -> None:
    logger.info("Received signal %d, exiting", signum)
    raise SystemExit(128 + signum)


@contextmanager
def sigterm_exits() -> Iterator[None]:
    """Convert SIGTERM into SystemExit for the duration of the block."""
    if not _in_main_thread():
        yield
        return

    previous = signal.signal(signal.SIGTERM, _raise_system_exit)
    try:
        yield
    finally:
        signal.signal(signal.SIGTERM, previous)
