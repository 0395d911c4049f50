"""Name validation for module map entries.

Module names become keys of ``_imports`` and are meant to be usable as
Python identifiers (``_imports["json"]`` or after ``globals().update``).
"""

from __future__ import annotations

import keyword

from dx.core.errors import UsageError

MAX_NAME_LENGTH = 64


def validate_module_name(name: str) -> None:
    """Validate a module map name.

    Rules:
    - 1-64 characters
    - A valid Python identifier
    - Not a Python keyword

    Args:
        name: The name to validate.

    Raises:
        UsageError: If the name is invalid.

    Example:
        >>> validate_module_name("json_tools")  # OK
        >>> validate_module_name("_private")    # OK
        >>> validate_module_name("my-mod")      # UsageError
        >>> validate_module_name("class")       # UsageError
    """
    if not name:
        raise UsageError("Module name is required")

    if len(name) > MAX_NAME_LENGTH:
        raise UsageError(f"Module name must be {MAX_NAME_LENGTH} characters or less")

    if not name.isidentifier():
        raise UsageError(
            f'Invalid module name "{name}": use letters, digits and underscores, '
            "not starting with a digit"
        )

    if keyword.iskeyword(name):
        raise UsageError(f'Invalid module name "{name}": it is a Python keyword')


def is_valid_module_name(name: str) -> bool:
    """Check if a module name is valid without raising."""
    try:
        validate_module_name(name)
        return True
    except UsageError:
        return False
