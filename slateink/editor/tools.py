"""
Drawing tool configuration for SlateInk.

The active tool is an AnnotationType (or None for plain selection). This
module holds the style each tool stamps onto new annotations and the
cursor a canvas should show while the tool is active.

Tools:
- HIGHLIGHT: translucent box over text
- RECTANGLE / CIRCLE: outlined shapes
- ARROW: start-to-end vector
- FREE_DRAW: freehand stroke
- TEXT: click to place a text box
"""

from dataclasses import dataclass, replace
from typing import Any, Dict, Optional

from PySide6.QtCore import Qt

from slateink.editor.annotations import AnnotationType
from slateink.editor.style import clamp_opacity, normalize_hex_color
from slateink.services.logging_service import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ToolConfig:
    """Style stamped onto annotations created by a tool."""
    color: str = "#ff0000"
    opacity: float = 1.0
    stroke_width: float = 2
    font_size: Optional[int] = None


DEFAULT_TOOL_CONFIGS: Dict[AnnotationType, ToolConfig] = {
    AnnotationType.HIGHLIGHT: ToolConfig("#ffff00", 0.5, 2),
    AnnotationType.RECTANGLE: ToolConfig("#ff0000", 0.8, 2),
    AnnotationType.CIRCLE: ToolConfig("#00ff00", 0.8, 2),
    AnnotationType.ARROW: ToolConfig("#0000ff", 0.8, 3),
    AnnotationType.FREE_DRAW: ToolConfig("#ff0000", 1.0, 3),
    AnnotationType.TEXT: ToolConfig("#000000", 1.0, 1, font_size=16),
}

_STROKE_WIDTH_RANGE = (0.5, 50.0)
_FONT_SIZE_RANGE = (6, 96)


def cursor_for_tool(tool: Optional[AnnotationType]) -> Qt.CursorShape:
    """Return the cursor to use while a tool is active."""
    if tool in (AnnotationType.HIGHLIGHT, AnnotationType.TEXT):
        return Qt.CursorShape.IBeamCursor
    if tool in (
        AnnotationType.RECTANGLE,
        AnnotationType.CIRCLE,
        AnnotationType.ARROW,
        AnnotationType.FREE_DRAW,
    ):
        return Qt.CursorShape.CrossCursor
    return Qt.CursorShape.ArrowCursor


def sanitize_tool_config(raw: Any, base: ToolConfig) -> ToolConfig:
    """
    Merge a user-supplied override (camelCase or snake_case keys) into a
    base config, dropping anything that is not a valid value.
    """
    if not isinstance(raw, dict):
        return base

    changes: Dict[str, Any] = {}

    color = normalize_hex_color(raw.get("color")) if isinstance(raw.get("color"), str) else None
    if color:
        changes["color"] = color

    if "opacity" in raw:
        changes["opacity"] = clamp_opacity(raw.get("opacity"), base.opacity)

    stroke = raw.get("strokeWidth", raw.get("stroke_width"))
    if isinstance(stroke, (int, float)) and not isinstance(stroke, bool):
        low, high = _STROKE_WIDTH_RANGE
        changes["stroke_width"] = max(low, min(high, float(stroke)))

    font_size = raw.get("fontSize", raw.get("font_size"))
    if isinstance(font_size, (int, float)) and not isinstance(font_size, bool):
        low, high = _FONT_SIZE_RANGE
        changes["font_size"] = int(max(low, min(high, round(font_size))))

    return replace(base, **changes)


def tool_configs_from_overrides(overrides: Dict[str, Any]) -> Dict[AnnotationType, ToolConfig]:
    """Default tool configs with per-tool overrides applied."""
    configs = dict(DEFAULT_TOOL_CONFIGS)
    for key, raw in overrides.items():
        try:
            tool = AnnotationType(key)
        except ValueError:
            logger.warning(f"Ignoring settings for unknown tool '{key}'")
            continue
        if tool not in configs:
            logger.warning(f"Ignoring settings for non-drawing tool '{key}'")
            continue
        configs[tool] = sanitize_tool_config(raw, configs[tool])
    return configs
