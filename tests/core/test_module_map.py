"""Tests for the persistent module map and session overlay."""

from __future__ import annotations

import json
import logging

import pytest

from dx.core.errors import UnresolvableSpecifier, UsageError
from dx.core.modules import ModuleMapEntry, ModuleMapStore


class TestPersistentLayer:
    """Tests for load_persistent and save_persistent."""

    def test_missing_file_is_empty(self, store):
        assert store.load_persistent() == {}

    def test_empty_file_is_empty(self, store):
        store.path.parent.mkdir(parents=True)
        store.path.write_text("")

        assert store.load_persistent() == {}

    def test_malformed_file_is_empty_and_logged(self, store, caplog):
        store.path.parent.mkdir(parents=True)
        store.path.write_text("{oops")

        with caplog.at_level(logging.WARNING):
            assert store.load_persistent() == {}
        assert "Error loading module map" in caplog.text

    def test_malformed_entry_is_empty_and_logged(self, store, caplog):
        store.path.parent.mkdir(parents=True)
        store.path.write_text(json.dumps({"json": "jsr:@std/json"}))

        with caplog.at_level(logging.WARNING):
            assert store.load_persistent() == {}
        assert '"url" string' in caplog.text

    def test_save_creates_directory(self, store):
        assert not store.path.parent.exists()

        assert store.save_persistent({"json": ModuleMapEntry("json", "jsr:@std/json")})
        assert store.path.exists()

    def test_save_format(self, store):
        """Pretty-printed, sorted keys, {name: {name, url}}."""
        store.save_persistent(
            {
                "zz": ModuleMapEntry("zz", "npm:zz"),
                "aa": ModuleMapEntry("aa", "npm:aa"),
            }
        )

        text = store.path.read_text()
        assert json.loads(text) == {
            "aa": {"name": "aa", "url": "npm:aa"},
            "zz": {"name": "zz", "url": "npm:zz"},
        }
        assert text.index('"aa"') < text.index('"zz"')
        assert '\n  "aa"' in text

    def test_save_failure_returns_false(self, tmp_path, caplog):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        store = ModuleMapStore(path=blocker / "module_map.json")

        with caplog.at_level(logging.ERROR):
            assert store.save_persistent({}) is False
        assert "Error saving module map" in caplog.text

    def test_roundtrip_through_file(self, store):
        store.add_persistent("json", "@std/json")

        reopened = ModuleMapStore(path=store.path)
        assert reopened.load_persistent() == {"json": ModuleMapEntry("json", "jsr:@std/json")}


class TestAdd:
    """Tests for add_persistent and add_session."""

    def test_add_persistent_resolves(self, store):
        entry, saved = store.add_persistent("json", "@std/json")

        assert entry == ModuleMapEntry("json", "jsr:@std/json")
        assert saved is True
        assert store.load_persistent()["json"].url == "jsr:@std/json"

    def test_add_persistent_with_import_map(self, store):
        entry, _ = store.add_persistent("fmt", "fmt", {"fmt": "https://example.com/fmt.py"})

        assert entry.url == "https://example.com/fmt.py"

    def test_add_persistent_unresolvable_writes_nothing(self, store):
        store.add_persistent("json", "@std/json")
        before = store.path.read_text()

        with pytest.raises(UnresolvableSpecifier):
            store.add_persistent("bad", "not-a-specifier")

        assert store.path.read_text() == before

    def test_add_persistent_unresolvable_creates_no_file(self, store):
        with pytest.raises(UnresolvableSpecifier):
            store.add_persistent("bad", "not-a-specifier")

        assert not store.path.exists()

    def test_add_invalid_name(self, store):
        with pytest.raises(UsageError):
            store.add_persistent("my-mod", "@std/json")
        with pytest.raises(UsageError):
            store.add_session("class", "@std/json")

    def test_overwrite_warns(self, store, caplog):
        store.add_persistent("m", "@std/json")

        with caplog.at_level(logging.WARNING):
            store.add_persistent("m", "@std/csv")

        assert 'Module name "m" already exists' in caplog.text
        assert store.load_persistent()["m"].url == "jsr:@std/csv"

    def test_add_session_never_writes(self, store):
        store.add_session("json", "@std/json")

        assert not store.path.exists()
        assert store.get("json") == ModuleMapEntry("json", "jsr:@std/json")

    def test_session_overwrite_warns(self, store, caplog):
        store.add_session("m", "@std/json")

        with caplog.at_level(logging.WARNING):
            store.add_session("m", "@std/csv")

        assert "already exists in the session map" in caplog.text

    def test_session_shadowing_persistent_warns(self, store, caplog):
        store.add_persistent("m", "@std/json")

        with caplog.at_level(logging.WARNING):
            store.add_session("m", "@std/csv")

        assert 'Module name "m" already exists in the module map' in caplog.text
        assert store.get("m").url == "jsr:@std/csv"

    def test_add_persistent_reports_failed_write(self, tmp_path, caplog):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        store = ModuleMapStore(path=blocker / "module_map.json")

        with caplog.at_level(logging.ERROR):
            entry, saved = store.add_persistent("json", "@std/json")

        assert saved is False
        assert entry.url == "jsr:@std/json"
        assert "Error saving module map" in caplog.text


class TestLookup:
    """Tests for the two-layer lookup."""

    def test_session_wins(self, store):
        store.add_persistent("m", "@std/json")
        store.add_session("m", "@std/csv")

        assert store.get("m").url == "jsr:@std/csv"
        assert store.effective_map()["m"].url == "jsr:@std/csv"
        assert store.is_session("m")

    def test_list_merges_layers(self, store):
        store.add_persistent("a", "@std/json")
        store.add_session("b", "@std/csv")

        assert sorted(store.list()) == ["a", "b"]

    def test_get_missing(self, store):
        assert store.get("nothing") is None

    def test_sees_writes_from_other_store(self, store):
        """Another process editing the file is visible without reloading."""
        other = ModuleMapStore(path=store.path)
        other.add_persistent("json", "@std/json")

        assert "json" in store.list()


class TestRemove:
    """Tests for remove, discard_session and clear_session."""

    def test_remove_existing(self, store):
        store.add_persistent("json", "@std/json")

        assert store.remove("json") is True
        assert store.load_persistent() == {}

    def test_remove_missing(self, store):
        assert store.remove("json") is False

    def test_remove_leaves_session_overlay(self, store):
        """remove() only touches the persistent map."""
        store.add_persistent("m", "@std/json")
        store.add_session("m", "@std/csv")

        assert store.remove("m") is True
        assert store.list()["m"].url == "jsr:@std/csv"

    def test_discard_session(self, store):
        store.add_session("m", "@std/csv")

        assert store.discard_session("m") is True
        assert store.discard_session("m") is False
        assert store.get("m") is None

    def test_clear_session(self, store):
        store.add_session("a", "@std/csv")
        store.add_session("b", "@std/json")

        store.clear_session()

        assert store.list() == {}
