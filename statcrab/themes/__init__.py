"""
Card themes.

The stylesheets in this package are scanned once at import time into
THEME_STYLES (identifier -> CSS bytes) and the closed Theme enum, one
member per file stem. Adding a theme means dropping a new .css file here.
"""

from enum import Enum
from importlib import resources
from typing import Dict, Optional

from ..errors import ValidationError

DEFAULT_THEME = "light"


def _scan_themes() -> Dict[str, bytes]:
    styles: Dict[str, bytes] = {}
    for entry in resources.files(__name__).iterdir():
        if entry.is_file() and entry.name.endswith(".css"):
            styles[entry.name[: -len(".css")]] = entry.read_bytes()
    return dict(sorted(styles.items()))


THEME_STYLES: Dict[str, bytes] = _scan_themes()

Theme = Enum(  # type: ignore[misc]
    "Theme",
    {name.upper().replace("-", "_"): name for name in THEME_STYLES},
)


def resolve_theme(name: Optional[str] = None) -> "Theme":
    """Map a theme identifier to a Theme member; None or blank means the default."""
    if not name or not name.strip():
        return Theme(DEFAULT_THEME)
    try:
        return Theme(name.strip().lower())
    except ValueError:
        raise ValidationError("theme", f"unknown theme: {name}") from None


def theme_stylesheet(theme: "Theme") -> bytes:
    return THEME_STYLES[theme.value]
