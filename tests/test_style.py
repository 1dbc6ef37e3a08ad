"""Tests for colour helpers and tool configuration."""

import pytest
from PySide6.QtCore import Qt

from slateink.editor.annotations import AnnotationType
from slateink.editor.style import (
    clamp_opacity,
    is_legacy_highlight_yellow,
    normalize_hex_color,
    to_qcolor,
)
from slateink.editor.tools import (
    DEFAULT_TOOL_CONFIGS,
    ToolConfig,
    cursor_for_tool,
    sanitize_tool_config,
    tool_configs_from_overrides,
)


@pytest.mark.parametrize("value, expected", [
    ("#abc", "#aabbcc"),
    (" #A0B1C2 ", "#A0B1C2"),
    ("red", None),
    ("", None),
    (None, None),
])
def test_normalize_hex_color(value, expected):
    assert normalize_hex_color(value) == expected


def test_clamp_opacity():
    assert clamp_opacity(1.7, 0.5) == 1.0
    assert clamp_opacity(float("nan"), 0.5) == 0.5
    assert clamp_opacity(True, 0.5) == 0.5


def test_to_qcolor():
    color = to_qcolor("#ff0000", 0.5)
    assert color.red() == 255
    assert color.alphaF() == pytest.approx(0.5, abs=0.01)
    assert to_qcolor("nonsense").name() == "#000000"


def test_legacy_yellow():
    assert is_legacy_highlight_yellow("#FF0")
    assert not is_legacy_highlight_yellow("#ffcc00")


def test_cursor_for_tool():
    assert cursor_for_tool(AnnotationType.HIGHLIGHT) == Qt.CursorShape.IBeamCursor
    assert cursor_for_tool(AnnotationType.ARROW) == Qt.CursorShape.CrossCursor
    assert cursor_for_tool(AnnotationType.STAMP) == Qt.CursorShape.ArrowCursor
    assert cursor_for_tool(None) == Qt.CursorShape.ArrowCursor


def test_sanitize_tool_config():
    base = ToolConfig()
    config = sanitize_tool_config(
        {"color": "#0f0", "opacity": 3, "strokeWidth": 500, "fontSize": 13.6},
        base,
    )
    assert config == ToolConfig("#00ff00", 1.0, 50.0, 14)
    assert sanitize_tool_config({"color": "blue", "strokeWidth": "x"}, base) == base
    assert sanitize_tool_config("oops", base) is base


def test_tool_overrides_skip_unknown():
    configs = tool_configs_from_overrides({
        "arrow": {"strokeWidth": 6},
        "hexagon": {"color": "#000"},
        "stamp": {"color": "#000"},
    })
    assert configs[AnnotationType.ARROW].stroke_width == 6
    assert configs[AnnotationType.ARROW].color == DEFAULT_TOOL_CONFIGS[AnnotationType.ARROW].color
    assert AnnotationType.STAMP not in configs
