"""Module specifier resolution.

Turns what the user typed (``@std/json``, ``npm:rich``, a URL, or an
import-map key) into a loadable specifier string. Resolution is a pure
function of (specifier, import map): no I/O, no state.

Resolution order, first match wins:
    1. Import-map key (exact, case-sensitive) is replaced by its value,
       once. The replacement is not resolved through the map again.
    2. Absolute URLs are returned unchanged.
    3. ``@std/`` shorthand becomes ``jsr:@std/...``.
    4. ``jsr:`` and ``npm:`` specifiers are returned unchanged.
    5. Anything else raises UnresolvableSpecifier.

Import maps are JSON documents of the form::

    {"imports": {"fmt": "https://example.com/fmt.py", "j": "@std/json"}}
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Mapping
from pathlib import Path

from dx.core.errors import FileAccessFailure, UnresolvableSpecifier, UsageError

logger = logging.getLogger(__name__)

ImportMap = Mapping[str, str]

STD_SHORTHAND_PREFIX = "@std/"
STD_REGISTRY_SCHEME = "jsr:"
REGISTRY_SCHEMES = ("jsr:", "npm:")

# Project-level import map picked up from the working directory
PROJECT_IMPORT_MAP = "dx.json"

# RFC 3986 scheme. Two characters minimum so "C:/x" is a path, not a URL.
_URL_PATTERN = re.compile(r"^([a-zA-Z][a-zA-Z0-9+.-]+):(.+)$", re.DOTALL)


def is_absolute_url(text: str) -> bool:
    """True if text parses as an absolute URL (scheme plus non-empty rest)."""
    return bool(_URL_PATTERN.match(text))


def resolve(specifier: str, import_map: ImportMap | None = None) -> str:
    """Resolve a module specifier.

    Args:
        specifier: Specifier as typed by the user.
        import_map: Optional bare-key to specifier mapping.

    Returns:
        A URL or registry-tagged specifier.

    Raises:
        UnresolvableSpecifier: If nothing matches. The message names the
            original specifier, not the import-map replacement.

    Example:
        >>> resolve("@std/json")
        'jsr:@std/json'
        >>> resolve("npm:rich")
        'npm:rich'
        >>> resolve("fmt", {"fmt": "https://example.com/fmt.py"})
        'https://example.com/fmt.py'
    """
    candidate = specifier
    if import_map is not None and specifier in import_map:
        candidate = import_map[specifier]
        logger.debug("Import map: %s -> %s", specifier, candidate)

    if is_absolute_url(candidate):
        return candidate

    if candidate.startswith(STD_SHORTHAND_PREFIX):
        return f"{STD_REGISTRY_SCHEME}{candidate}"

    if candidate.startswith(REGISTRY_SCHEMES):
        return candidate

    raise UnresolvableSpecifier(specifier)


def load_import_map(path: Path) -> dict[str, str]:
    """Read an import map document.

    Args:
        path: Path to a JSON file with an "imports" object.

    Returns:
        The imports mapping (possibly empty).

    Raises:
        FileAccessFailure: If the file is missing or unreadable.
        UsageError: If the document is not a valid import map.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise FileAccessFailure(str(path), "Import map not found") from None
    except OSError as e:
        raise FileAccessFailure(str(path), f"Cannot read import map ({e.strerror or e})") from e

    try:
        document = json.loads(text) if text.strip() else {}
    except json.JSONDecodeError as e:
        raise UsageError(f"Invalid import map {path}: {e}") from e

    if not isinstance(document, dict):
        raise UsageError(f"Invalid import map {path}: expected a JSON object")

    imports = document.get("imports", {})
    if not isinstance(imports, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in imports.items()
    ):
        raise UsageError(f'Invalid import map {path}: "imports" must map strings to strings')

    return dict(imports)


def find_import_map(explicit: Path | None = None, cwd: Path | None = None) -> Path | None:
    """Locate the import map to use.

    Args:
        explicit: --import-map option or DX_IMPORT_MAP (via DxConfig).
        cwd: Directory searched for ``dx.json`` (default: working directory).

    Returns:
        Path to the import map, or None if there is none.
    """
    if explicit is not None:
        return explicit

    project = (cwd or Path.cwd()) / PROJECT_IMPORT_MAP
    if project.is_file():
        return project

    return None
