"""Core dx logic: no terminal or CLI dependencies.

Modules:
    buffer      Live code buffer and executed-buffer history
    context     Shared namespace with the ``_input`` and ``_imports`` slots
    evaluator   Evaluator protocol and the Python implementation
    input       Piped stdin decoding
    modules/    Specifier resolution, module map persistence, module loading
    config      Paths and tunables from the environment
    errors      Exception hierarchy
"""

from dx.core.buffer import BufferEngine, Move
from dx.core.context import IMPORTS_SLOT, INPUT_SLOT, ReplContext
from dx.core.errors import (
    DxError,
    EvaluationFailure,
    FileAccessFailure,
    PersistenceFailure,
    UnknownCommand,
    UnresolvableSpecifier,
    UsageError,
)
from dx.core.evaluator import EvalError, EvalResult, Evaluator, PythonEvaluator

__all__ = [
    "BufferEngine",
    "Move",
    "ReplContext",
    "INPUT_SLOT",
    "IMPORTS_SLOT",
    "DxError",
    "EvaluationFailure",
    "FileAccessFailure",
    "PersistenceFailure",
    "UnknownCommand",
    "UnresolvableSpecifier",
    "UsageError",
    "EvalError",
    "EvalResult",
    "Evaluator",
    "PythonEvaluator",
]
