"""
Accessibility preferences.

A single immutable value holds the four user settings; the root CSS classes
and the flat key/value storage form are both derived from it. Where the
storage lives (browser storage, a file, a database) is up to the caller.
"""

import logging
from dataclasses import dataclass, replace
from typing import Mapping

logger = logging.getLogger(__name__)

FONT_SIZES = ("small", "medium", "large")
DEFAULT_FONT_SIZE = "medium"

# attribute -> storage key
STORAGE_KEYS = {
    "dark_mode": "darkMode",
    "high_contrast": "highContrast",
    "colorblind_mode": "colorblindMode",
    "font_size": "fontSize",
}


@dataclass(frozen=True)
class Preferences:
    dark_mode: bool = False
    high_contrast: bool = False
    colorblind_mode: bool = False
    font_size: str = DEFAULT_FONT_SIZE

    def __post_init__(self):
        if self.font_size not in FONT_SIZES:
            raise ValueError(f"font_size must be one of {FONT_SIZES}, got {self.font_size!r}")

    def css_classes(self) -> list[str]:
        """Class names to set on the document root, in a stable order."""
        classes = []
        if self.dark_mode:
            classes.append("dark-mode")
        if self.high_contrast:
            classes.append("high-contrast")
        if self.colorblind_mode:
            classes.append("colorblind-mode")
        classes.append(f"font-{self.font_size}")
        return classes

    def with_changes(self, **changes) -> "Preferences":
        return replace(self, **changes)

    def to_storage(self) -> dict[str, str]:
        stored = {}
        for attr, key in STORAGE_KEYS.items():
            value = getattr(self, attr)
            stored[key] = str(value).lower() if isinstance(value, bool) else value
        return stored

    @classmethod
    def from_storage(cls, stored: Mapping[str, str | None]) -> "Preferences":
        """Read stored string values; only the literal "true" enables a flag.

        A missing or unrecognised font size falls back to medium.
        """
        font_size = stored.get(STORAGE_KEYS["font_size"]) or DEFAULT_FONT_SIZE
        if font_size not in FONT_SIZES:
            logger.warning("Ignoring unknown font size %r", font_size)
            font_size = DEFAULT_FONT_SIZE

        flags = {
            attr: stored.get(key) == "true"
            for attr, key in STORAGE_KEYS.items()
            if attr != "font_size"
        }
        return cls(font_size=font_size, **flags)


def reset() -> Preferences:
    """Default preferences, as after clearing storage."""
    return Preferences()
