"""Code evaluation.

SECURITY BOUNDARY:
- Code runs in-process with the user's full privileges
- No sandboxing, no resource limits
- The only isolation is a dedicated globals dict (ReplContext.namespace)

The REPL and one-shot runners depend on the Evaluator protocol only, so
tests can substitute a scripted fake.
"""

from __future__ import annotations

import ast
import inspect
import logging
import traceback
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

from dx.core.errors import EvaluationFailure

if TYPE_CHECKING:
    from dx.core.context import ReplContext

logger = logging.getLogger(__name__)


@dataclass
class EvalError:
    """Structured failure from evaluated code."""

    kind: str  # Exception class name, e.g. "NameError"
    message: str
    traceback: str | None = None

    def __str__(self) -> str:
        return f"{self.kind}: {self.message}" if self.message else self.kind


@dataclass
class EvalResult:
    """Value of the trailing expression, or the error raised."""

    value: Any = None
    error: EvalError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> Any:
        """Return the value, or raise EvaluationFailure for an error result."""
        if self.error is not None:
            raise EvaluationFailure(self.error.kind, self.error.message)
        return self.value


class Evaluator(Protocol):
    """Executes a block of code with the shared namespace in scope."""

    async def execute(self, code: str, context: ReplContext) -> EvalResult:
        """Run code and capture its result. Must not raise for user errors."""
        ...


@dataclass
class PythonEvaluator:
    """Evaluates Python source in the context namespace.

    - Top-level ``await`` is allowed (the block runs as a coroutine)
    - If the last statement is an expression, its value is returned
    - Errors, including KeyboardInterrupt, come back as EvalResult.error

    Example:
        >>> evaluator = PythonEvaluator()
        >>> ctx = ReplContext.create({"items": [1, 2, 3]})
        >>> (await evaluator.execute("total = sum(_input['items'])\\ntotal * 2", ctx)).value
        12
    """

    filename: str = "<dx>"

    async def execute(self, code: str, context: ReplContext) -> EvalResult:
        if not code.strip():
            return EvalResult()

        namespace = context.namespace
        try:
            body, trailing = self._compile(code)
            await self._run(body, namespace)
            value = await self._run(trailing, namespace) if trailing is not None else None
            return EvalResult(value=value)
        except SyntaxError as e:
            return EvalResult(error=EvalError("SyntaxError", _syntax_message(e)))
        except KeyboardInterrupt:
            return EvalResult(error=EvalError("KeyboardInterrupt", "execution interrupted"))
        except Exception as e:
            logger.debug("Evaluation raised %s", type(e).__name__, exc_info=True)
            return EvalResult(
                error=EvalError(type(e).__name__, str(e), traceback.format_exc())
            )

    def _compile(self, code: str) -> tuple[Any, Any | None]:
        """Compile code into (statements, trailing expression or None)."""
        flags = ast.PyCF_ALLOW_TOP_LEVEL_AWAIT
        tree = ast.parse(code, self.filename, "exec")

        trailing = None
        if tree.body and isinstance(tree.body[-1], ast.Expr):
            last = tree.body.pop()
            trailing = compile(ast.Expression(last.value), self.filename, "eval", flags=flags)

        body = compile(tree, self.filename, "exec", flags=flags)
        return body, trailing

    async def _run(self, code: Any, namespace: dict[str, Any]) -> Any:
        result = eval(code, namespace)
        if code.co_flags & inspect.CO_COROUTINE:
            result = await result
        return result


def _syntax_message(e: SyntaxError) -> str:
    if e.lineno is None:
        return str(e.msg)
    return f"{e.msg} (line {e.lineno})"
