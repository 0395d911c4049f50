"""Pytest configuration and fixtures."""

from __future__ import annotations

import io
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest
from rich.console import Console

from dx.core.config import DxConfig
from dx.core.context import ReplContext
from dx.core.evaluator import EvalError, EvalResult
from dx.core.modules import ModuleMapStore
from dx.frontends.cli.repl.registry import CommandContext
from dx.frontends.cli.repl.state import REPLState
from dx.frontends.cli.theme import DEFAULT_THEME


class TextConsole(Console):
    """Console writing plain text (no colors, wide lines) to a StringIO."""

    def __init__(self) -> None:
        super().__init__(
            file=io.StringIO(),
            theme=DEFAULT_THEME,
            width=200,
            color_system=None,
            force_terminal=False,
        )

    @property
    def text(self) -> str:
        """Everything printed so far."""
        return self.file.getvalue()


@dataclass
class FakeEvaluator:
    """Evaluator that records code and returns scripted results."""

    results: list[EvalResult] = field(default_factory=list)
    calls: list[str] = field(default_factory=list)

    async def execute(self, code: str, context: ReplContext) -> EvalResult:
        self.calls.append(code)
        if self.results:
            return self.results.pop(0)
        return EvalResult()

    def fail_next(self, kind: str, message: str) -> None:
        self.results.append(EvalResult(error=EvalError(kind, message)))


@dataclass
class ScriptedReader:
    """LineReader that replays lines; exception instances are raised.

    Once the script runs out it answers ``.exit`` so loops always end.
    """

    script: list[Any]
    prompts: list[str] = field(default_factory=list)

    async def read_line(self, prompt: str, style: str) -> str:
        self.prompts.append(prompt)
        if not self.script:
            return ".exit"
        item = self.script.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


@pytest.fixture
def config(tmp_path: Path) -> DxConfig:
    """Config rooted in a temporary directory."""
    return DxConfig(config_dir=tmp_path / "config")


@pytest.fixture
def store(config: DxConfig) -> ModuleMapStore:
    return ModuleMapStore(path=config.module_map_path)


@pytest.fixture
def fake_evaluator() -> FakeEvaluator:
    return FakeEvaluator()


@pytest.fixture
def state(config: DxConfig) -> REPLState:
    """State with the real Python evaluator and an isolated module map."""
    return REPLState.from_config(config)


@pytest.fixture
def make_console() -> Callable[[], TextConsole]:
    """Factory for extra test consoles."""
    return TextConsole


@pytest.fixture
def chrome() -> TextConsole:
    return TextConsole()


@pytest.fixture
def out() -> TextConsole:
    return TextConsole()


@pytest.fixture
def scripted_reader() -> Callable[..., ScriptedReader]:
    """Build a ScriptedReader from lines and exception instances."""

    def make(*items: Any) -> ScriptedReader:
        return ScriptedReader(list(items))

    return make


@pytest.fixture
def command_context(state: REPLState, chrome: Console, out: Console) -> CommandContext:
    return CommandContext(state=state, console=chrome, out=out)


@pytest.fixture
def broken_package(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> str:
    """An installed package whose import raises RuntimeError.

    Returns:
        Its npm: specifier.
    """
    site = tmp_path / "site"
    site.mkdir()
    (site / "dx_broken_pkg.py").write_text('raise RuntimeError("init failed")\n')
    monkeypatch.syspath_prepend(str(site))
    return "npm:dx-broken-pkg"
