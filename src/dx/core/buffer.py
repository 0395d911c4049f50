"""Code buffer and executed-buffer history.

The REPL accumulates lines in a live buffer and runs them as one block.
Every executed block is archived in a bounded history (oldest dropped
first) that can be browsed and loaded back for editing or re-running.

Pointer semantics:
    pointer == -1       Live mode: the buffer is new input
    0 <= pointer < n    History view: the buffer is a copy of history[pointer]

History entries are never mutated. Loading copies an entry into the
buffer, and executing archives a copy of the buffer.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import TYPE_CHECKING

from dx.core.config import DEFAULT_HISTORY_LIMIT
from dx.core.errors import UsageError

if TYPE_CHECKING:
    from dx.core.context import ReplContext
    from dx.core.evaluator import EvalResult, Evaluator

LIVE = -1


class Move(Enum):
    """Outcome of a history navigation."""

    NO_HISTORY = auto()  # History is empty, nothing changed
    LOADED = auto()  # Pointer moved, entry copied into the buffer
    ALREADY_OLDEST = auto()  # At entry 0, entry re-copied into the buffer
    ON_LIVE = auto()  # next() in live mode, nothing changed
    BACK_TO_LIVE = auto()  # next() past the newest entry, buffer cleared


@dataclass
class BufferEngine:
    """Live code buffer plus bounded history of executed buffers."""

    history_limit: int = DEFAULT_HISTORY_LIMIT
    _lines: list[str] = field(default_factory=list, init=False)
    _history: deque[list[str]] = field(init=False)
    _pointer: int = field(default=LIVE, init=False)

    def __post_init__(self) -> None:
        self._history = deque(maxlen=self.history_limit)

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def lines(self) -> list[str]:
        """Copy of the live buffer."""
        return list(self._lines)

    @property
    def history(self) -> list[list[str]]:
        """Copy of the executed-buffer history, oldest first."""
        return [list(entry) for entry in self._history]

    @property
    def pointer(self) -> int:
        return self._pointer

    @property
    def in_history_view(self) -> bool:
        return self._pointer != LIVE

    @property
    def position(self) -> tuple[int, int] | None:
        """(1-based entry number, history length) while viewing history."""
        if not self.in_history_view:
            return None
        return self._pointer + 1, len(self._history)

    def is_empty(self) -> bool:
        return not self._lines

    def text(self) -> str:
        return "\n".join(self._lines)

    # -------------------------------------------------------------------------
    # Editing
    # -------------------------------------------------------------------------

    def append_line(self, line: str) -> bool:
        """Append a line to the live buffer.

        Typing while viewing history starts a fresh live buffer; the loaded
        copy is dropped and the history entry is unchanged.

        Returns:
            True if this left history view.
        """
        left_history = self.in_history_view
        if left_history:
            self._lines = []
            self._pointer = LIVE
        self._lines.append(line)
        return left_history

    def clear(self) -> None:
        """Empty the live buffer and return to live mode."""
        self._lines = []
        self._pointer = LIVE

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------

    def commit(self) -> str | None:
        """Archive the buffer and hand back its text.

        Returns:
            Joined buffer text, or None if the buffer is empty (nothing
            archived).
        """
        if not self._lines:
            return None

        snapshot = list(self._lines)
        self._history.append(snapshot)
        self._pointer = len(self._history) - 1
        self._lines = []
        return "\n".join(snapshot)

    async def execute(self, evaluator: Evaluator, context: ReplContext) -> EvalResult | None:
        """Archive the buffer and evaluate it.

        Returns:
            The evaluator's result, or None if the buffer was empty (the
            evaluator is not called).
        """
        code = self.commit()
        if code is None:
            return None
        return await evaluator.execute(code, context)

    # -------------------------------------------------------------------------
    # History navigation
    # -------------------------------------------------------------------------

    def navigate_prev(self) -> Move:
        """Step back in history. From live mode, jumps to the newest entry."""
        if not self._history:
            return Move.NO_HISTORY

        move = Move.LOADED
        if self._pointer == LIVE:
            self._pointer = len(self._history) - 1
        elif self._pointer > 0:
            self._pointer -= 1
        else:
            move = Move.ALREADY_OLDEST

        self._load_current()
        return move

    def navigate_next(self) -> Move:
        """Step forward in history. Past the newest entry, back to live mode."""
        if not self._history:
            return Move.NO_HISTORY
        if self._pointer == LIVE:
            return Move.ON_LIVE

        if self._pointer < len(self._history) - 1:
            self._pointer += 1
            self._load_current()
            return Move.LOADED

        self.clear()
        return Move.BACK_TO_LIVE

    def load_by_index(self, index: int) -> None:
        """Load history entry ``index`` (1-based) into the buffer.

        Raises:
            UsageError: If the index is out of range.
        """
        if not 1 <= index <= len(self._history):
            if self._history:
                raise UsageError(
                    f"Invalid history index {index}. "
                    f"Use .bhlist to see available history (1 to {len(self._history)})."
                )
            raise UsageError(f"Invalid history index {index}. History is empty.")

        self._pointer = index - 1
        self._load_current()

    def clear_history(self) -> None:
        """Drop all history, the live buffer, and any history view."""
        self._history.clear()
        self.clear()

    def _load_current(self) -> None:
        self._lines = list(self._history[self._pointer])
