"""REPL state management."""

from __future__ import annotations

import logging
import types
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from dx.core.buffer import BufferEngine
from dx.core.context import ReplContext
from dx.core.evaluator import Evaluator, PythonEvaluator
from dx.core.modules import (
    ImportMap,
    ModuleLoader,
    ModuleLoadError,
    ModuleMapEntry,
    ModuleMapStore,
)
from dx.frontends.cli.repl.signals import Interrupted, cancel_on_sigint

if TYPE_CHECKING:
    from dx.core.config import DxConfig

logger = logging.getLogger(__name__)


@dataclass
class REPLState:
    """Everything a dx session owns: buffer, namespace, modules, evaluator."""

    context: ReplContext
    modules: ModuleMapStore
    buffer: BufferEngine = field(default_factory=BufferEngine)
    evaluator: Evaluator = field(default_factory=PythonEvaluator)
    loader: ModuleLoader = field(default_factory=ModuleLoader)
    import_map: ImportMap = field(default_factory=dict)

    @classmethod
    def from_config(
        cls,
        config: DxConfig,
        input_value: Any = None,
        import_map: ImportMap | None = None,
        evaluator: Evaluator | None = None,
    ) -> REPLState:
        """Build the state for one dx process."""
        return cls(
            context=ReplContext.create(input_value),
            modules=ModuleMapStore(path=config.module_map_path),
            buffer=BufferEngine(history_limit=config.history_limit),
            evaluator=evaluator if evaluator is not None else PythonEvaluator(),
            loader=ModuleLoader(timeout=config.fetch_timeout),
            import_map=dict(import_map or {}),
        )

    async def load_module(self, name: str, specifier: str) -> types.ModuleType:
        """Load one module with Ctrl+C scoped to the load.

        Raises:
            ModuleLoadError: If loading fails or is interrupted.
        """
        try:
            return await cancel_on_sigint(self.loader.load(name, specifier))
        except Interrupted:
            raise ModuleLoadError(specifier, "interrupted") from None

    async def load_module_map(
        self,
    ) -> tuple[dict[str, ModuleMapEntry], dict[str, ModuleLoadError]]:
        """Load every effective module map entry into ``_imports``.

        Entries load one at a time; a failing entry never stops the others.

        Returns:
            (entries that loaded and were bound, load errors by name).
        """
        loaded: dict[str, ModuleMapEntry] = {}
        failed: dict[str, ModuleLoadError] = {}
        for name, entry in self.modules.effective_map().items():
            try:
                module = await self.load_module(name, entry.url)
            except ModuleLoadError as e:
                logger.info("Module %s failed to load: %s", name, e.reason)
                failed[name] = e
                continue
            self.context.bind_import(name, module)
            loaded[name] = entry
        return loaded, failed
