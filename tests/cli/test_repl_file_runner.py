"""Tests for one-shot code and file execution."""

from __future__ import annotations

import os
import sys

import pytest

from dx.core.errors import FileAccessFailure
from dx.frontends.cli.repl.file_runner import read_script, run_code, run_file


class TestReadScript:
    """Tests for read_script function."""

    def test_reads_utf8(self, tmp_path):
        path = tmp_path / "script.py"
        path.write_text("name = 'dx ✓'\n", encoding="utf-8")

        assert read_script(path) == "name = 'dx ✓'\n"

    def test_missing(self, tmp_path):
        with pytest.raises(FileAccessFailure, match="File not found"):
            read_script(tmp_path / "missing.py")

    def test_directory(self, tmp_path):
        with pytest.raises(FileAccessFailure, match="Is a directory"):
            read_script(tmp_path)

    def test_not_utf8(self, tmp_path):
        path = tmp_path / "binary.py"
        path.write_bytes(b"\xff\xfe\x00")

        with pytest.raises(FileAccessFailure, match="Not a UTF-8 text file"):
            read_script(path)

    @pytest.mark.skipif(
        sys.platform == "win32" or os.geteuid() == 0, reason="needs POSIX permissions"
    )
    def test_permission_denied_has_hint(self, tmp_path):
        path = tmp_path / "locked.py"
        path.write_text("x = 1\n")
        path.chmod(0)

        with pytest.raises(FileAccessFailure, match="Permission denied") as exc_info:
            read_script(path)
        assert exc_info.value.hint


class TestRunCode:
    """Tests for run_code function."""

    @pytest.mark.asyncio
    async def test_trailing_value_printed(self, state, out, chrome):
        code = await run_code("1 + 2", state, out=out, err=chrome)

        assert code == 0
        assert out.text == "3\n"
        assert chrome.text == ""

    @pytest.mark.asyncio
    async def test_no_value(self, state, out, chrome):
        code = await run_code("x = 1", state, out=out, err=chrome)

        assert code == 0
        assert out.text == ""

    @pytest.mark.asyncio
    async def test_error_exit_code(self, state, out, chrome):
        code = await run_code("1 / 0", state, out=out, err=chrome)

        assert code == 1
        assert chrome.text == "ZeroDivisionError: division by zero\n"
        assert out.text == ""

    @pytest.mark.asyncio
    async def test_module_map_loaded_first(self, state, out, chrome):
        state.modules.add_persistent("json", "@std/json")

        code = await run_code("_imports['json'].loads('[1, 2]')", state, out=out, err=chrome)

        assert code == 0
        assert out.text == "[1, 2]\n"

    @pytest.mark.asyncio
    async def test_failed_module_is_logged_not_fatal(self, state, out, chrome, caplog):
        state.modules.add_persistent("broken", "npm:surely-not-installed-pkg")

        code = await run_code("'still runs'", state, out=out, err=chrome)

        assert code == 0
        assert out.text == "'still runs'\n"
        assert 'Module "broken" not loaded' in caplog.text

    @pytest.mark.asyncio
    async def test_package_raising_on_import_is_not_fatal(
        self, state, out, chrome, caplog, broken_package
    ):
        state.modules.add_persistent("boom", broken_package)

        code = await run_code("'still runs'", state, out=out, err=chrome)

        assert code == 0
        assert out.text == "'still runs'\n"
        assert 'Module "boom" not loaded' in caplog.text


class TestRunFile:
    """Tests for run_file function."""

    @pytest.mark.asyncio
    async def test_value_not_echoed(self, state, out, chrome, tmp_path):
        path = tmp_path / "script.py"
        path.write_text("result = 42\nresult\n")

        code = await run_file(path, state, out=out, err=chrome)

        assert code == 0
        assert out.text == ""
        assert state.context.namespace["result"] == 42

    @pytest.mark.asyncio
    async def test_missing_file(self, state, out, chrome, tmp_path):
        path = tmp_path / "missing.py"

        code = await run_file(path, state, out=out, err=chrome)

        assert code == 1
        assert chrome.text == f"Error: File not found: {path}\n"

    @pytest.mark.asyncio
    async def test_error_in_file(self, state, out, chrome, tmp_path):
        path = tmp_path / "bad.py"
        path.write_text("raise ValueError('bad data')\n")

        code = await run_file(path, state, out=out, err=chrome)

        assert code == 1
        assert "ValueError: bad data" in chrome.text