"""Module map: named module specifiers, persistent and per-session.

Two layers:
- Persistent map: JSON file at ``<config_dir>/module_map.json``, survives
  restarts. Written by ``dx module add`` and ``.import --save``.
- Session overlay: in memory, gone when the process exits. Written by
  ``.import``. Wins over the persistent map on name collisions.

File format (pretty-printed, sorted keys)::

    {
      "json": {"name": "json", "url": "jsr:@std/json"},
      "fmt": {"name": "fmt", "url": "https://example.com/fmt.py"}
    }

Error Handling Policy: FAIL-SOFT for persistence
- Missing, empty or malformed files read as an empty map
- Failed writes are logged and reported via the return value
- Resolution and name errors are raised before anything is written
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from dx.core.errors import PersistenceFailure
from dx.core.modules.specifier import ImportMap, resolve
from dx.core.validation import validate_module_name

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModuleMapEntry:
    """A named, resolved module specifier."""

    name: str
    url: str

    def to_dict(self) -> dict[str, str]:
        return asdict(self)


ModuleMap = dict[str, ModuleMapEntry]


@dataclass
class ModuleMapStore:
    """Persistent module map plus an in-memory session overlay.

    The persistent file is re-read on every access, so edits made by
    another dx process (``dx module add`` in a second terminal) are seen
    by a running REPL.

    Example:
        >>> store = ModuleMapStore(path=tmp_path / "module_map.json")
        >>> store.add_persistent("json", "@std/json")
        (ModuleMapEntry(name='json', url='jsr:@std/json'), True)
        >>> store.add_session("fmt", "https://example.com/fmt.py")
        ModuleMapEntry(name='fmt', url='https://example.com/fmt.py')
        >>> sorted(store.list())
        ['fmt', 'json']
    """

    path: Path
    _session: ModuleMap = field(default_factory=dict, repr=False)

    # -------------------------------------------------------------------------
    # Persistent layer
    # -------------------------------------------------------------------------

    def load_persistent(self) -> ModuleMap:
        """Read the persistent map. Never raises."""
        try:
            return self._read_document()
        except PersistenceFailure as e:
            logger.warning("Error loading module map from %s: %s", self.path, e)
            return {}

    def save_persistent(self, entries: ModuleMap) -> bool:
        """Overwrite the persistent map.

        Returns:
            True if written, False if the write failed (already logged).
        """
        document = {name: entry.to_dict() for name, entry in entries.items()}
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(
                json.dumps(document, indent=2, sort_keys=True) + "\n", encoding="utf-8"
            )
        except OSError as e:
            logger.error("Error saving module map to %s: %s", self.path, e)
            return False
        logger.debug("Saved %d module map entries to %s", len(entries), self.path)
        return True

    def _read_document(self) -> ModuleMap:
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as e:
            raise PersistenceFailure(f"cannot read file ({e})") from e

        if not text.strip():
            return {}

        try:
            document = json.loads(text)
        except json.JSONDecodeError as e:
            raise PersistenceFailure(f"invalid JSON ({e})") from e

        if not isinstance(document, dict):
            raise PersistenceFailure("expected a JSON object")

        return {name: _parse_entry(name, raw) for name, raw in document.items()}

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    def get(self, name: str) -> ModuleMapEntry | None:
        """Look up a name: session overlay first, then the persistent map."""
        entry = self._session.get(name)
        if entry is not None:
            return entry
        return self.load_persistent().get(name)

    def is_session(self, name: str) -> bool:
        """True if the name currently resolves through the session overlay."""
        return name in self._session

    def effective_map(self) -> ModuleMap:
        """Persistent entries overlaid by session entries."""
        return {**self.load_persistent(), **self._session}

    def list(self) -> ModuleMap:
        """All entries visible to the REPL."""
        return self.effective_map()

    # -------------------------------------------------------------------------
    # Mutation
    # -------------------------------------------------------------------------

    def add_persistent(
        self, name: str, specifier: str, import_map: ImportMap | None = None
    ) -> tuple[ModuleMapEntry, bool]:
        """Resolve a specifier and record it in the persistent map.

        Returns:
            (the entry, whether the map file was written).

        Raises:
            UsageError: Invalid name.
            UnresolvableSpecifier: Specifier cannot be resolved. Nothing is written.
        """
        entry = _make_entry(name, specifier, import_map)
        current = self.load_persistent()
        if name in current:
            logger.warning('Module name "%s" already exists in the map. Overwriting.', name)
        current[name] = entry
        return entry, self.save_persistent(current)

    def add_session(
        self, name: str, specifier: str, import_map: ImportMap | None = None
    ) -> ModuleMapEntry:
        """Resolve a specifier and record it in the session overlay only.

        Raises:
            UsageError: Invalid name.
            UnresolvableSpecifier: Specifier cannot be resolved. Nothing is recorded.
        """
        entry = _make_entry(name, specifier, import_map)
        if name in self._session:
            logger.warning(
                'Module name "%s" already exists in the session map. Overwriting.', name
            )
        elif name in self.load_persistent():
            logger.warning(
                'Module name "%s" already exists in the module map. '
                "The session entry takes precedence.",
                name,
            )
        self._session[name] = entry
        return entry

    def remove(self, name: str) -> bool:
        """Remove a name from the persistent map.

        The session overlay is not touched; see discard_session().

        Returns:
            True if the name existed and was removed.
        """
        current = self.load_persistent()
        if name not in current:
            return False
        del current[name]
        self.save_persistent(current)
        return True

    def discard_session(self, name: str) -> bool:
        """Remove a name from the session overlay."""
        return self._session.pop(name, None) is not None

    def clear_session(self) -> None:
        """Forget every session entry."""
        self._session.clear()


def _make_entry(name: str, specifier: str, import_map: ImportMap | None) -> ModuleMapEntry:
    validate_module_name(name)
    return ModuleMapEntry(name=name, url=resolve(specifier, import_map))


def _parse_entry(name: Any, raw: Any) -> ModuleMapEntry:
    if not isinstance(raw, dict) or not isinstance(raw.get("url"), str):
        raise PersistenceFailure(f'entry "{name}" must be an object with a "url" string')
    return ModuleMapEntry(name=str(raw.get("name") or name), url=raw["url"])
