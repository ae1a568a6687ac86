"""Theme loader for page CSS themes and Pygments code themes."""
from pathlib import Path
from typing import List

from pygments.formatters import HtmlFormatter
from pygments.styles import get_all_styles, get_style_by_name
from pygments.util import ClassNotFound

from .errors import ConfigurationError

THEMES_DIR = Path(__file__).parent / "themes"
HIGHLIGHT_CLASS = "highlight"


def get_css(theme: str = "default") -> str:
    """
    Load CSS content for the specified theme.

    Args:
        theme: Theme name (default, dark, paper, ...)

    Returns:
        CSS content as string

    Raises:
        ConfigurationError: If the theme name is invalid or doesn't exist
    """
    # Validate theme name (security: prevent path traversal)
    if not theme or not theme.replace("_", "").replace("-", "").isalnum():
        raise ConfigurationError(f"Invalid theme name: {theme}")

    theme_path = THEMES_DIR / f"{theme}.css"
    if not theme_path.is_file():
        raise ConfigurationError(
            f"Theme '{theme}' not found. Available themes: {list_available_themes()}"
        )

    with open(theme_path, "r", encoding="utf-8") as f:
        return f.read()


def list_available_themes() -> List[str]:
    """
    List all available themes.

    Returns:
        Sorted list of theme names
    """
    if not THEMES_DIR.exists():
        return []
    return sorted(f.stem for f in THEMES_DIR.glob("*.css") if f.is_file())


def validate_theme(theme: str) -> bool:
    """
    Check if a theme exists.

    Args:
        theme: Theme name to validate

    Returns:
        True if theme exists, False otherwise
    """
    try:
        get_css(theme)
        return True
    except ConfigurationError:
        return False


def list_code_themes() -> List[str]:
    return sorted(get_all_styles())


def check_code_theme(code_theme: str) -> str:
    """Return *code_theme* if Pygments knows it, else raise ConfigurationError."""
    try:
        get_style_by_name(code_theme)
    except ClassNotFound:
        raise ConfigurationError(
            f"Code theme '{code_theme}' not found. Available code themes: {list_code_themes()}"
        )
    return code_theme


def get_code_css(code_theme: str = "default") -> str:
    """Pygments style definitions for highlighted blocks."""
    check_code_theme(code_theme)
    return HtmlFormatter(style=code_theme).get_style_defs(f".{HIGHLIGHT_CLASS}")
