"""Shared namespace for evaluated code.

Evaluated code runs with ``ReplContext.namespace`` as its globals. Two
slots in it are owned by dx:

    _input      Decoded piped stdin (set once at startup)
    _imports    Imported modules by name (grows as imports succeed)

Everything else in the namespace belongs to the user's code and persists
across executed blocks.
"""

from __future__ import annotations

import types
from dataclasses import dataclass, field
from typing import Any

INPUT_SLOT = "_input"
IMPORTS_SLOT = "_imports"


@dataclass
class ReplContext:
    """Globals for the evaluator plus the two dx-owned slots."""

    namespace: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.namespace.setdefault("__name__", "__dx__")
        self.namespace.setdefault(INPUT_SLOT, None)
        self.namespace.setdefault(IMPORTS_SLOT, {})

    @classmethod
    def create(cls, input_value: Any = None) -> ReplContext:
        """Create a context holding the decoded piped input."""
        return cls(namespace={INPUT_SLOT: input_value})

    @property
    def input(self) -> Any:
        return self.namespace[INPUT_SLOT]

    @property
    def imports(self) -> dict[str, Any]:
        return self.namespace[IMPORTS_SLOT]

    def bind_import(self, name: str, module: types.ModuleType) -> None:
        """Expose a loaded module as ``_imports[name]``."""
        self.imports[name] = module
