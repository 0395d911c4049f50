"""Module specifiers, the module map, and dynamic loading."""

from dx.core.modules.loader import ModuleLoader, ModuleLoadError
from dx.core.modules.module_map import ModuleMap, ModuleMapEntry, ModuleMapStore
from dx.core.modules.specifier import (
    ImportMap,
    find_import_map,
    is_absolute_url,
    load_import_map,
    resolve,
)

__all__ = [
    "ImportMap",
    "ModuleLoadError",
    "ModuleLoader",
    "ModuleMap",
    "ModuleMapEntry",
    "ModuleMapStore",
    "find_import_map",
    "is_absolute_url",
    "load_import_map",
    "resolve",
]
