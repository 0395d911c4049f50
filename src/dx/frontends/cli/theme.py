"""Color themes for REPL output.

Themes define the styles used in markup such as ``[error]...[/]``.
Switch themes with DX_THEME; unknown names fall back to the default.
"""

from typing import Any

from rich.console import Console
from rich.theme import Theme


def create_theme(
    *,
    # Prompts
    prompt_live: str = "green",
    prompt_buffer: str = "yellow",
    prompt_history: str = "magenta",
    # Messages
    banner: str = "bold italic cyan",
    heading: str = "cyan",
    hint: str = "bright_black",
    notice: str = "italic dim",
    error: str = "red",
    warning: str = "yellow",
    success: str = "green",
    # Listings
    label: str = "bold",
    line_number: str = "bright_black",
    url: str = "bright_black",
) -> Theme:
    """Create a theme with the given styles.

    Every style the REPL uses gets a value, so custom themes only
    override what they change.
    """
    return Theme(
        {
            "prompt.live": prompt_live,
            "prompt.buffer": prompt_buffer,
            "prompt.history": prompt_history,
            "banner": banner,
            "heading": heading,
            "hint": hint,
            "notice": notice,
            "error": error,
            "warning": warning,
            "success": success,
            "label": label,
            "line_number": line_number,
            "url": url,
        }
    )


# =============================================================================
# Built-in Themes
# =============================================================================

DEFAULT_THEME = create_theme()

MONO_THEME = create_theme(
    prompt_live="bold",
    prompt_buffer="bold",
    prompt_history="bold",
    banner="bold",
    heading="bold",
    hint="dim",
    notice="dim",
    error="bold",
    warning="bold",
    success="bold",
    label="bold",
    line_number="dim",
    url="dim",
)

THEMES: dict[str, Theme] = {
    "default": DEFAULT_THEME,
    "mono": MONO_THEME,
}


def get_theme(name: str) -> Theme:
    """Get a theme by name.

    Args:
        name: Theme name (default, mono)

    Returns:
        The theme, or DEFAULT_THEME if not found.
    """
    return THEMES.get(name.lower(), DEFAULT_THEME)


def make_console(theme_name: str = "default", **kwargs: Any) -> Console:
    """Create a rich Console using the named theme."""
    return Console(theme=get_theme(theme_name), **kwargs)
