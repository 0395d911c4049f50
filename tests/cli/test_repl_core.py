"""Tests for REPL core functionality."""

from __future__ import annotations

import io

import pytest

from dx.core.buffer import BufferEngine
from dx.frontends.cli.repl import core
from dx.frontends.cli.repl.core import prompt_for, run_interactive
from dx.frontends.cli.repl.state import REPLState


@pytest.fixture
def run_script(state, chrome, out, scripted_reader):
    """Run the REPL over scripted lines; returns (exit code, reader)."""

    async def run(*lines, session=None):
        reader = scripted_reader(*lines)
        code = await run_interactive(
            session or state, reader=reader, console=chrome, out=out
        )
        return code, reader

    return run


class TestPromptFor:
    """Tests for prompt_for function."""

    def test_live_empty(self):
        assert prompt_for(BufferEngine()) == ("> ", "prompt.live")

    def test_accumulating(self):
        buffer = BufferEngine()
        buffer.append_line("def f():")

        assert prompt_for(buffer) == ("... ", "prompt.buffer")

    def test_history_view(self):
        buffer = BufferEngine()
        for line in ("a = 1", "b = 2"):
            buffer.append_line(line)
            buffer.commit()
        buffer.load_by_index(1)

        assert prompt_for(buffer) == ("H 1/2> ", "prompt.history")


class TestRunInteractive:
    """Tests for run_interactive function."""

    @pytest.mark.asyncio
    async def test_empty_line_runs_buffer(self, chrome, out, run_script):
        code, reader = await run_script("x = 1", "x + 1", "")

        assert code == 0
        assert out.text == "2\n"
        assert reader.prompts == ["> ", "... ", "... ", "H 1/1> "]
        assert "Exiting REPL." in chrome.text

    @pytest.mark.asyncio
    async def test_empty_line_on_empty_buffer(self, state, run_script):
        code, reader = await run_script("", "   ")

        assert code == 0
        assert reader.prompts == ["> ", "> ", "> "]
        assert state.buffer.history == []

    @pytest.mark.asyncio
    async def test_names_persist_between_blocks(self, out, run_script):
        await run_script("total = 40", "", "total + 2", "")

        assert out.text == "42\n"

    @pytest.mark.asyncio
    async def test_startup_banner_and_hints(self, chrome, run_script):
        await run_script()

        text = chrome.text
        assert "Welcome to dx" in text
        assert "Type .help for more commands and info." in text
        assert "_input" not in text

    @pytest.mark.asyncio
    async def test_piped_input_is_announced(self, config, chrome, out, run_script):
        state = REPLState.from_config(config, input_value={"message": "pipe data"})

        await run_script("_input['message']", "", session=state)

        assert "Data from stdin pipe is available in `_input`." in chrome.text
        assert out.text == "'pipe data'\n"

    @pytest.mark.asyncio
    async def test_module_map_loaded_at_startup(self, state, chrome, out, run_script):
        state.modules.add_persistent("json", "@std/json")
        state.modules.add_persistent("broken", "npm:surely-not-installed-pkg")

        await run_script("_imports['json'].dumps([1])", "")

        text = chrome.text
        assert 'Loaded "json" from jsr:@std/json' in text
        assert 'Error loading module "broken" from npm:surely-not-installed-pkg:' in text
        assert out.text == "'[1]'\n"
        assert "broken" not in state.context.imports

    @pytest.mark.asyncio
    async def test_package_failing_at_startup_is_reported(
        self, state, chrome, out, run_script, broken_package
    ):
        state.modules.add_persistent("boom", broken_package)
        state.modules.add_persistent("json", "@std/json")

        code, _ = await run_script("_imports['json'].dumps(2)", "")

        text = chrome.text
        assert code == 0
        assert 'Error loading module "boom" from npm:dx-broken-pkg:' in text
        assert "RuntimeError: init failed" in text
        assert out.text == "'2'\n"
        assert set(state.context.imports) == {"json"}

    @pytest.mark.asyncio
    async def test_failing_imports_keep_loop_alive(
        self, state, chrome, out, run_script, broken_package
    ):
        code, _ = await run_script(
            ".import rel @std/.foo", f".import boom {broken_package}", "1 + 1", ""
        )

        text = chrome.text
        assert code == 0
        assert "invalid module name '.foo'" in text
        assert "RuntimeError: init failed" in text
        assert out.text == "2\n"
        assert state.context.imports == {}
        assert state.modules.list() == {}

    @pytest.mark.asyncio
    async def test_eval_error_keeps_loop_alive(self, chrome, out, run_script):
        code, _ = await run_script("undefined_name", "", "1 + 1", "")

        assert code == 0
        assert "NameError: name 'undefined_name' is not defined" in chrome.text
        assert out.text == "2\n"

    @pytest.mark.asyncio
    async def test_unknown_command_not_buffered(self, state, chrome, run_script):
        await run_script("x = 1", ".nope", ".bshow")

        text = chrome.text
        assert "Error: Unknown command: .nope. Not added to buffer." in text
        assert state.buffer.lines == ["x = 1"]

    @pytest.mark.asyncio
    async def test_command_errors_are_reported(self, chrome, run_script):
        await run_script(".bhload 3")

        assert "Error: Invalid history index 3. History is empty." in chrome.text

    @pytest.mark.asyncio
    async def test_typing_in_history_view_starts_live_buffer(self, state, chrome, run_script):
        await run_script("a = 1", "", "b = 2")

        assert "(Exited history view. Started new live buffer)" in chrome.text
        assert state.buffer.lines == ["b = 2"]
        assert state.buffer.history == [["a = 1"]]


class TestInterruptAtPrompt:
    """Ctrl+C and Ctrl+D while waiting for input."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("signal", "key"), [(KeyboardInterrupt(), "Ctrl+C"), (EOFError(), "Ctrl+D")]
    )
    async def test_clears_buffer(self, state, chrome, signal, key, run_script):
        code, reader = await run_script("x = 1", signal)

        assert code == 0
        expected = f"Code buffer cleared and exited history view by {key} at prompt."
        assert expected in chrome.text
        assert state.buffer.is_empty()
        assert reader.prompts[-1] == "> "

    @pytest.mark.asyncio
    async def test_leaves_history_view(self, state, run_script):
        await run_script("a = 1", "", KeyboardInterrupt())

        assert not state.buffer.in_history_view
        assert state.buffer.history == [["a = 1"]]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("signal", [KeyboardInterrupt(), EOFError()])
    async def test_empty_prompt_does_not_exit(self, chrome, out, signal, run_script):
        """Neither key ends the loop; only .exit does."""
        code, reader = await run_script(signal, signal, "1 + 1", "")

        assert code == 0
        assert out.text == "2\n"
        assert "Code buffer cleared" not in chrome.text
        assert len(reader.prompts) == 5


class TestDirectTerminal:
    """Tests for the piped-stdin path."""

    @pytest.mark.asyncio
    async def test_no_terminal_returns_1(self, state, chrome, out, monkeypatch):
        def no_tty():
            raise OSError("No such device or address: '/dev/tty'")

        monkeypatch.setattr(core.TerminalHandle, "open", no_tty)

        code = await run_interactive(state, console=chrome, out=out, stdin=io.StringIO(""))

        text = chrome.text
        assert code == 1
        assert "Stdin is piped. Attempting to use direct TTY" in text
        assert "Failed to open TTY: No such device or address" in text
        assert "Welcome to dx" not in text
