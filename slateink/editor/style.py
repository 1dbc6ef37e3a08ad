"""
Style helpers for annotations: colour parsing, QColor conversion and the
theme-dependent defaults applied to new text annotations.
"""

import math
import re
from dataclasses import dataclass
from typing import Optional

from PySide6.QtGui import QColor

# Highlight yellow left over from a previous tool; unreadable as text colour
LEGACY_HIGHLIGHT_YELLOW = "#ffff00"

_HEX6 = re.compile(r"^#[0-9a-f]{6}$", re.IGNORECASE)
_HEX3 = re.compile(r"^#[0-9a-f]{3}$", re.IGNORECASE)


@dataclass(frozen=True)
class TextDefaults:
    text_color: str
    background_color: str
    background_opacity: float


def text_defaults(dark: bool = False) -> TextDefaults:
    """Default text/background colours for the current theme."""
    if dark:
        return TextDefaults("#f5f5f5", "#0a0a0a", 0.72)
    return TextDefaults("#0a0a0a", "#ffffff", 0.82)


def normalize_hex_color(value: Optional[str]) -> Optional[str]:
    """
    Normalize "#rgb" / "#rrggbb" strings to "#rrggbb".

    Returns None for anything else.
    """
    if not value:
        return None

    trimmed = value.strip()
    if _HEX6.match(trimmed):
        return trimmed
    if _HEX3.match(trimmed):
        r, g, b = trimmed[1], trimmed[2], trimmed[3]
        return f"#{r}{r}{g}{g}{b}{b}"
    return None


def clamp_opacity(opacity: Optional[float], fallback: float) -> float:
    """Clamp to 0..1; non-numeric or non-finite input yields fallback."""
    if isinstance(opacity, bool) or not isinstance(opacity, (int, float)):
        return fallback
    if not math.isfinite(opacity):
        return fallback
    return max(0.0, min(1.0, float(opacity)))


def to_qcolor(
    value: Optional[str],
    opacity: Optional[float] = None,
    fallback: str = "#000000",
) -> QColor:
    """Build a QColor from a hex string and an opacity."""
    color = QColor(normalize_hex_color(value) or fallback)
    color.setAlphaF(clamp_opacity(opacity, 1.0))
    return color


def is_legacy_highlight_yellow(value: Optional[str]) -> bool:
    return (normalize_hex_color(value) or "").lower() == LEGACY_HIGHLIGHT_YELLOW
