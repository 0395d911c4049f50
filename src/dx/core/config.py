"""Paths and tunables for dx.

Everything is read from the environment once, at startup:

    DX_CONFIG_DIR       Config directory (default: $XDG_CONFIG_HOME/dx or ~/.config/dx)
    DX_HISTORY_LIMIT    Executed-buffer history capacity (default: 100)
    DX_FETCH_TIMEOUT    Timeout in seconds for fetching URL modules (default: 30)
    DX_IMPORT_MAP       Import map used when --import-map is not given
    DX_THEME            REPL color theme: default, mono (default: default)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 100
DEFAULT_FETCH_TIMEOUT = 30.0

MODULE_MAP_FILENAME = "module_map.json"
PROMPT_HISTORY_FILENAME = "repl_history"


def default_config_dir() -> Path:
    """Per-user config directory for dx."""
    override = os.environ.get("DX_CONFIG_DIR", "").strip()
    if override:
        return Path(override).expanduser()

    xdg = os.environ.get("XDG_CONFIG_HOME", "").strip()
    if xdg:
        return Path(xdg).expanduser() / "dx"

    return Path.home() / ".config" / "dx"


@dataclass
class DxConfig:
    """Runtime configuration.

    Attributes:
        config_dir: Directory holding the module map and prompt history.
        history_limit: Maximum number of executed buffers kept for recall.
        fetch_timeout: Total timeout (seconds) for fetching URL modules.
        import_map_path: Import map from the environment, if any.
        theme: Name of the REPL color theme.
    """

    config_dir: Path
    history_limit: int = DEFAULT_HISTORY_LIMIT
    fetch_timeout: float = DEFAULT_FETCH_TIMEOUT
    import_map_path: Path | None = None
    theme: str = "default"

    @property
    def module_map_path(self) -> Path:
        return self.config_dir / MODULE_MAP_FILENAME

    @property
    def prompt_history_path(self) -> Path:
        return self.config_dir / PROMPT_HISTORY_FILENAME

    @classmethod
    def from_env(cls) -> DxConfig:
        """Build configuration from DX_* environment variables."""
        import_map = os.environ.get("DX_IMPORT_MAP", "").strip()
        return cls(
            config_dir=default_config_dir(),
            history_limit=_env_int("DX_HISTORY_LIMIT", DEFAULT_HISTORY_LIMIT),
            fetch_timeout=_env_float("DX_FETCH_TIMEOUT", DEFAULT_FETCH_TIMEOUT),
            import_map_path=Path(import_map).expanduser() if import_map else None,
            theme=os.environ.get("DX_THEME", "").strip() or "default",
        )


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r: not an integer", name, raw)
        return default
    if value < 1:
        logger.warning("Ignoring %s=%r: must be at least 1", name, raw)
        return default
    return value


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r: not a number", name, raw)
        return default
    if value <= 0:
        logger.warning("Ignoring %s=%r: must be positive", name, raw)
        return default
    return value
