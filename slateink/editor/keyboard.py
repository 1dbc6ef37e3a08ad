"""
Keyboard commands for the annotation canvas.

Maps Qt key codes and modifiers to engine commands, and computes the
geometry changes for arrow-key nudges and Alt+arrow resizes.

Shortcuts:
- Escape: cancel gesture, clear selection
- Delete / Backspace: delete selection
- Ctrl+D: duplicate selection
- Ctrl+Z: undo, Ctrl+Shift+Z / Ctrl+Y: redo
- Arrows: nudge (Shift for a large step)
- Alt+Arrows: resize (Shift for a large step)
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Dict, Optional, Tuple

from PySide6.QtCore import Qt

from slateink.editor.annotations import MIN_ANNOTATION_SIZE, Annotation, AnnotationType, translate


class KeyCommand(Enum):
    CANCEL = auto()
    DELETE = auto()
    DUPLICATE = auto()
    UNDO = auto()
    REDO = auto()
    NUDGE = auto()
    RESIZE = auto()


@dataclass(frozen=True)
class KeyAction:
    """A classified key press; dx/dy are unit directions for arrows."""
    command: KeyCommand
    dx: int = 0
    dy: int = 0
    large_step: bool = False


_ARROWS: Dict[int, Tuple[int, int]] = {
    Qt.Key.Key_Left.value: (-1, 0),
    Qt.Key.Key_Right.value: (1, 0),
    Qt.Key.Key_Up.value: (0, -1),
    Qt.Key.Key_Down.value: (0, 1),
}

# Cmd on macOS arrives as ControlModifier; Meta covers the remaining case
_COMMAND_MODIFIERS = (
    Qt.KeyboardModifier.ControlModifier,
    Qt.KeyboardModifier.MetaModifier,
)


def key_code(key: Any) -> int:
    """Normalize a Qt.Key member or a raw QKeyEvent.key() int."""
    if isinstance(key, Enum):
        return int(key.value)
    return int(key)


def arrow_direction(key: Any) -> Optional[Tuple[int, int]]:
    return _ARROWS.get(key_code(key))


def _has(modifiers: Qt.KeyboardModifier, flag: Qt.KeyboardModifier) -> bool:
    return bool(modifiers & flag)


def classify_key(
    key: Any,
    modifiers: Qt.KeyboardModifier = Qt.KeyboardModifier.NoModifier,
    typing: bool = False,
) -> Optional[KeyAction]:
    """
    Classify a key press.

    Args:
        key: Qt.Key or the int from QKeyEvent.key().
        modifiers: Keyboard modifiers held.
        typing: True while focus is inside a text input; only Escape
            is handled then.

    Returns:
        The KeyAction, or None if the key is not a canvas shortcut.
    """
    code = key_code(key)

    if code == Qt.Key.Key_Escape.value:
        return KeyAction(KeyCommand.CANCEL)

    if typing:
        return None

    command = any(_has(modifiers, flag) for flag in _COMMAND_MODIFIERS)
    shift = _has(modifiers, Qt.KeyboardModifier.ShiftModifier)

    if command:
        if code == Qt.Key.Key_Z.value:
            return KeyAction(KeyCommand.REDO if shift else KeyCommand.UNDO)
        if code == Qt.Key.Key_Y.value:
            return KeyAction(KeyCommand.REDO)
        if code == Qt.Key.Key_D.value:
            return KeyAction(KeyCommand.DUPLICATE)

    direction = arrow_direction(code)
    if direction is not None:
        dx, dy = direction
        if _has(modifiers, Qt.KeyboardModifier.AltModifier):
            return KeyAction(KeyCommand.RESIZE, dx, dy, shift)
        return KeyAction(KeyCommand.NUDGE, dx, dy, shift)

    if code in (Qt.Key.Key_Delete.value, Qt.Key.Key_Backspace.value):
        return KeyAction(KeyCommand.DELETE)

    return None


def nudge_changes(annotation: Annotation, dx: float, dy: float) -> Dict[str, Any]:
    """Move by (dx, dy) document units; free-draw points move too."""
    return translate(annotation, dx, dy)


def keyboard_resize_changes(
    annotation: Annotation,
    dx: float,
    dy: float,
    min_size: float = MIN_ANNOTATION_SIZE,
) -> Optional[Dict[str, Any]]:
    """
    Grow or shrink an annotation by (dx, dy) document units.

    Arrow vectors keep their direction: a component that would drop
    below min_size in magnitude snaps to min_size with its original
    sign. Free-draw has no resize and yields None.
    """
    if annotation.type == AnnotationType.FREE_DRAW:
        return None

    width = annotation.width + dx
    height = annotation.height + dy

    if annotation.type == AnnotationType.ARROW:
        width_sign = 1 if annotation.width >= 0 else -1
        height_sign = 1 if annotation.height >= 0 else -1
        if abs(width) < min_size:
            width = width_sign * min_size
        if abs(height) < min_size:
            height = height_sign * min_size
        return {"width": width, "height": height}

    return {"width": max(min_size, width), "height": max(min_size, height)}
