"""Dynamic module loading from resolved specifiers.

Supported specifiers (as produced by ``specifier.resolve``):

    http://, https://    Python source fetched with aiohttp
    file://              Python source read from disk
    data:                Inline Python source (percent-encoded or ;base64)
    jsr:@std/<path>      Standard-library module <path> ("/" becomes ".")
    jsr:@scope/<pkg>     Installed package <pkg>
    npm:<pkg>[@version]  Installed package <pkg>

Source-based modules are executed in a fresh module object that is not
registered in sys.modules; each load gives a new module.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import importlib
import logging
import types
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import unquote, urlsplit
from urllib.request import url2pathname

import aiohttp

from dx.core.config import DEFAULT_FETCH_TIMEOUT
from dx.core.errors import DxError
from dx.core.modules.specifier import REGISTRY_SCHEMES, STD_SHORTHAND_PREFIX

logger = logging.getLogger(__name__)


class ModuleLoadError(DxError):
    """A resolved specifier could not be loaded into a module."""

    def __init__(self, specifier: str, reason: str):
        super().__init__(f"Cannot load {specifier}: {reason}")
        self.specifier = specifier
        self.reason = reason


def registry_module_name(specifier: str) -> str:
    """Python import name for a jsr:/npm: specifier.

    Example:
        >>> registry_module_name("jsr:@std/json")
        'json'
        >>> registry_module_name("jsr:@std/os/path")
        'os.path'
        >>> registry_module_name("npm:python-dateutil@2.9")
        'python_dateutil'
        >>> registry_module_name("jsr:@luca/flag")
        'flag'
    """
    body = specifier.split(":", 1)[1]
    if body.startswith(STD_SHORTHAND_PREFIX):
        body = body[len(STD_SHORTHAND_PREFIX) :]
    elif body.startswith("@"):
        # Scoped package: drop the scope
        body = body.split("/", 1)[1] if "/" in body else ""

    parts = [p for p in body.split("/") if p]
    if parts:
        parts[0] = parts[0].split("@", 1)[0]

    name = ".".join(p.replace("-", "_") for p in parts if p)
    if not name:
        raise ModuleLoadError(specifier, "no module name in specifier")
    if "" in name.split("."):
        raise ModuleLoadError(specifier, f"invalid module name {name!r}")
    return name


def decode_data_url(url: str) -> str:
    """Return the text payload of a data: URL."""
    rest = url.split(":", 1)[1]
    header, sep, payload = rest.partition(",")
    if not sep:
        raise ModuleLoadError(url, "malformed data: URL (missing ',')")

    if header.endswith(";base64"):
        try:
            return base64.b64decode(payload, validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as e:
            raise ModuleLoadError(url, f"invalid base64 payload ({e})") from e
    return unquote(payload)


@dataclass
class ModuleLoader:
    """Loads modules by resolved specifier.

    Args:
        timeout: Total timeout in seconds for HTTP fetches.
    """

    timeout: float = DEFAULT_FETCH_TIMEOUT

    async def load(self, name: str, specifier: str) -> types.ModuleType:
        """Load one module.

        Args:
            name: Name the module is bound to (used as module __name__ for
                source-based modules).
            specifier: Resolved specifier.

        Raises:
            ModuleLoadError: If fetching, reading, importing or executing fails.
                Any other exception from those steps is wrapped in one.
        """
        logger.debug("Loading %s from %s", name, specifier)
        try:
            return await self._load(name, specifier)
        except ModuleLoadError:
            raise
        except Exception as e:
            raise ModuleLoadError(specifier, f"{type(e).__name__}: {e}") from e

    async def _load(self, name: str, specifier: str) -> types.ModuleType:
        scheme = specifier.split(":", 1)[0].lower() if ":" in specifier else ""

        if specifier.startswith(REGISTRY_SCHEMES):
            return self._import_installed(specifier)
        if scheme in ("http", "https"):
            source = await self._fetch(specifier)
            return self._module_from_source(name, source, specifier)
        if scheme == "file":
            source = self._read_file_url(specifier)
            return self._module_from_source(name, source, specifier)
        if scheme == "data":
            return self._module_from_source(name, decode_data_url(specifier), f"<{name}>")

        raise ModuleLoadError(specifier, f'unsupported scheme "{scheme or specifier}"')

    def _import_installed(self, specifier: str) -> types.ModuleType:
        module_name = registry_module_name(specifier)
        try:
            return importlib.import_module(module_name)
        except ImportError as e:
            raise ModuleLoadError(specifier, f"cannot import {module_name!r} ({e})") from e
        except Exception as e:
            # The package was found but failed while importing
            raise ModuleLoadError(
                specifier, f"importing {module_name!r} raised {type(e).__name__}: {e}"
            ) from e

    async def _fetch(self, url: str) -> str:
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(url) as response:
                    if response.status >= 400:
                        raise ModuleLoadError(url, f"HTTP {response.status}")
                    return await response.text()
        except ModuleLoadError:
            raise
        except aiohttp.ClientError as e:
            raise ModuleLoadError(url, str(e) or type(e).__name__) from e
        except asyncio.TimeoutError as e:
            raise ModuleLoadError(url, f"timed out after {self.timeout:g}s") from e
        except UnicodeDecodeError as e:
            raise ModuleLoadError(url, f"response is not valid text ({e.reason})") from e
        except Exception as e:
            raise ModuleLoadError(url, f"{type(e).__name__}: {e}") from e

    def _read_file_url(self, url: str) -> str:
        path = Path(url2pathname(urlsplit(url).path))
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise ModuleLoadError(url, f"file not found: {path}") from None
        except OSError as e:
            raise ModuleLoadError(url, f"cannot read {path} ({e.strerror or e})") from e

    def _module_from_source(self, name: str, source: str, origin: str) -> types.ModuleType:
        module = types.ModuleType(name)
        module.__file__ = origin
        try:
            exec(compile(source, origin, "exec"), module.__dict__)
        except Exception as e:
            raise ModuleLoadError(origin, f"{type(e).__name__}: {e}") from e
        return module
