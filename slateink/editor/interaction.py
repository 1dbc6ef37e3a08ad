"""
Pointer interaction state machine for SlateInk.

The live, uncommitted state of exactly one gesture is held in an explicit
state value:

- IdleState: nothing in progress
- DrawingState: dragging out a new shape, or accumulating a freehand stroke
- DraggingState: moving an existing annotation
- ResizingState: reshaping an existing annotation through a named handle

transition(state, event, context) is a pure function returning the next
state and a list of effects (create/update/delete/select, history group
markers, open the text editor). The engine applies the effects; nothing
here calls out to a sink.

All coordinates are document space. Every move recomputes geometry from
the gesture's fixed anchor and the current pointer, never from the
previous frame, so long drags do not drift.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union
from uuid import uuid4

from PySide6.QtCore import Qt

from slateink.editor.annotations import (
    ASPECT_LOCK_TYPES,
    CORNER_HANDLES,
    RECTANGLE_STYLE_TYPES,
    Annotation,
    AnnotationType,
    ResizeHandle,
    bounding_box,
    duplicate,
    resize_handles_for,
    serialize_points,
    translate,
)
from slateink.editor.geometry import Point
from slateink.editor.settings import EngineSettings
from slateink.editor.style import is_legacy_highlight_yellow, text_defaults
from slateink.editor.tools import ToolConfig
from slateink.services.logging_service import get_logger

logger = get_logger(__name__)

# New text boxes (document units)
TEXT_BOX_WIDTH = 200
TEXT_BOX_HEIGHT = 30
TEXT_FONT_SIZE = 16

# Pointer travel below this does not count as a move
DRAG_MOVE_THRESHOLD = 0.1

DUPLICATE_MODIFIER = Qt.KeyboardModifier.AltModifier
ASPECT_LOCK_MODIFIER = Qt.KeyboardModifier.ShiftModifier

_LEFT_HANDLES = frozenset({ResizeHandle.NW, ResizeHandle.W, ResizeHandle.SW})
_RIGHT_HANDLES = frozenset({ResizeHandle.NE, ResizeHandle.E, ResizeHandle.SE})
_TOP_HANDLES = frozenset({ResizeHandle.NW, ResizeHandle.N, ResizeHandle.NE})
_BOTTOM_HANDLES = frozenset({ResizeHandle.SW, ResizeHandle.S, ResizeHandle.SE})


# ─── States ───────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class IdleState:
    pass


@dataclass(frozen=True)
class DrawingState:
    """
    A new annotation being drawn.

    For freehand strokes, points is owned by the gesture and grows in
    place on every move.
    """
    tool: AnnotationType
    start: Point
    current: Point
    points: List[Point] = field(default_factory=list)


@dataclass(frozen=True)
class DraggingState:
    annotation_id: str
    start: Point
    origin: Annotation
    has_moved: bool = False


@dataclass(frozen=True)
class ResizingState:
    annotation_id: str
    handle: ResizeHandle
    start: Point
    origin: Annotation
    has_moved: bool = False


InteractionState = Union[IdleState, DrawingState, DraggingState, ResizingState]
IDLE = IdleState()


# ─── Events ───────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class CanvasPress:
    """Pointer-down over empty canvas."""
    point: Point
    modifiers: Qt.KeyboardModifier = Qt.KeyboardModifier.NoModifier


@dataclass(frozen=True)
class AnnotationPress:
    """Pointer-down over an annotation's hit area."""
    annotation_id: str
    point: Point
    modifiers: Qt.KeyboardModifier = Qt.KeyboardModifier.NoModifier
    button: Qt.MouseButton = Qt.MouseButton.LeftButton


@dataclass(frozen=True)
class HandlePress:
    """Pointer-down over a resize handle of the selected annotation."""
    handle: ResizeHandle
    point: Point
    modifiers: Qt.KeyboardModifier = Qt.KeyboardModifier.NoModifier


@dataclass(frozen=True)
class PointerMove:
    point: Point
    modifiers: Qt.KeyboardModifier = Qt.KeyboardModifier.NoModifier


@dataclass(frozen=True)
class PointerRelease:
    point: Optional[Point] = None
    modifiers: Qt.KeyboardModifier = Qt.KeyboardModifier.NoModifier


@dataclass(frozen=True)
class PointerLeave:
    pass


@dataclass(frozen=True)
class Cancel:
    """Escape: abandon the gesture and clear the selection."""
    pass


InteractionEvent = Union[
    CanvasPress,
    AnnotationPress,
    HandlePress,
    PointerMove,
    PointerRelease,
    PointerLeave,
    Cancel,
]


# ─── Effects ──────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class CreateAnnotation:
    annotation: Annotation


@dataclass(frozen=True)
class UpdateAnnotation:
    annotation_id: str
    changes: Dict[str, Any]


@dataclass(frozen=True)
class DeleteAnnotation:
    annotation_id: str


@dataclass(frozen=True)
class SelectAnnotation:
    annotation_id: Optional[str]


@dataclass(frozen=True)
class BeginHistoryGroup:
    pass


@dataclass(frozen=True)
class EndHistoryGroup:
    pass


@dataclass(frozen=True)
class OpenTextEditor:
    annotation: Annotation


Effect = Union[
    CreateAnnotation,
    UpdateAnnotation,
    DeleteAnnotation,
    SelectAnnotation,
    BeginHistoryGroup,
    EndHistoryGroup,
    OpenTextEditor,
]


def _new_id() -> str:
    return str(uuid4())


@dataclass
class InteractionContext:
    """Everything a transition may read besides the state itself."""
    annotations: Sequence[Annotation] = ()
    selected_id: Optional[str] = None
    active_tool: Optional[AnnotationType] = None
    tool_config: ToolConfig = field(default_factory=ToolConfig)
    page_number: int = 1
    settings: EngineSettings = field(default_factory=EngineSettings)
    id_factory: Callable[[], str] = _new_id
    clock: Callable[[], datetime] = datetime.now

    def find(self, annotation_id: Optional[str]) -> Optional[Annotation]:
        if annotation_id is None:
            return None
        for annotation in self.annotations:
            if annotation.id == annotation_id:
                return annotation
        return None

    @property
    def selected(self) -> Optional[Annotation]:
        return self.find(self.selected_id)


Transition = Tuple[InteractionState, List[Effect]]


def transition(
    state: InteractionState,
    event: InteractionEvent,
    context: InteractionContext,
) -> Transition:
    """
    Advance the state machine by one event.

    Presses while a gesture is active are ignored, so at most one of
    drawing/dragging/resizing is ever live.
    """
    if isinstance(event, Cancel):
        if not isinstance(state, IdleState):
            logger.debug(f"Gesture cancelled: {type(state).__name__}")
        return IDLE, [SelectAnnotation(None), EndHistoryGroup()]

    if isinstance(event, (CanvasPress, AnnotationPress, HandlePress)):
        if not isinstance(state, IdleState):
            logger.debug(f"Ignoring {type(event).__name__} during {type(state).__name__}")
            return state, []
        if isinstance(event, CanvasPress):
            return _press_canvas(event, context)
        if isinstance(event, AnnotationPress):
            return _press_annotation(event, context)
        return _press_handle(event, context)

    if isinstance(event, PointerMove):
        return _move(state, event, context)

    if isinstance(event, (PointerRelease, PointerLeave)):
        return _release(state, event, context)

    raise TypeError(f"Unknown interaction event: {event!r}")


# ─── Press ────────────────────────────────────────────────────────────────


def _press_canvas(event: CanvasPress, context: InteractionContext) -> Transition:
    effects: List[Effect] = [SelectAnnotation(None)]
    tool = context.active_tool
    point = event.point

    if tool is None:
        return IDLE, effects

    if tool == AnnotationType.TEXT:
        annotation = new_text_annotation(point, context)
        effects.append(CreateAnnotation(annotation))
        effects.append(OpenTextEditor(annotation))
        logger.debug(f"Text annotation {annotation.id} placed at ({point.x}, {point.y})")
        return IDLE, effects

    if tool == AnnotationType.FREE_DRAW:
        return DrawingState(tool, point, point, [point]), effects

    if tool in RECTANGLE_STYLE_TYPES:
        return DrawingState(tool, point, point, []), effects

    logger.debug(f"Tool {tool.value} does not draw")
    return IDLE, effects


def _press_annotation(event: AnnotationPress, context: InteractionContext) -> Transition:
    annotation = context.find(event.annotation_id)
    if annotation is None:
        logger.debug(f"Press on unknown annotation {event.annotation_id}")
        return IDLE, []

    primary = event.button == Qt.MouseButton.LeftButton

    if primary and event.modifiers & DUPLICATE_MODIFIER:
        copied = duplicate(annotation, 0, 0, context.id_factory(), context.clock())
        logger.debug(f"Duplicating {annotation.id} as {copied.id} for drag")
        effects: List[Effect] = [
            BeginHistoryGroup(),
            CreateAnnotation(copied),
            SelectAnnotation(copied.id),
        ]
        return DraggingState(copied.id, event.point, copied), effects

    effects = [SelectAnnotation(annotation.id)]
    if not primary:
        return IDLE, effects

    effects.append(BeginHistoryGroup())
    return DraggingState(annotation.id, event.point, annotation), effects


def _press_handle(event: HandlePress, context: InteractionContext) -> Transition:
    selected = context.selected
    if selected is None:
        return IDLE, []
    if event.handle not in resize_handles_for(selected):
        logger.debug(f"Handle {event.handle.value} not available on {selected.type.value}")
        return IDLE, []

    state = ResizingState(selected.id, event.handle, event.point, selected)
    return state, [SelectAnnotation(selected.id), BeginHistoryGroup()]


# ─── Move ─────────────────────────────────────────────────────────────────


def _move(state: InteractionState, event: PointerMove, context: InteractionContext) -> Transition:
    point = event.point

    if isinstance(state, ResizingState):
        dx = point.x - state.start.x
        dy = point.y - state.start.y
        changes = resize_geometry(
            state.origin,
            state.handle,
            dx,
            dy,
            keep_aspect=bool(event.modifiers & ASPECT_LOCK_MODIFIER),
            min_size=context.settings.min_annotation_size,
        )
        return replace(state, has_moved=True), [UpdateAnnotation(state.annotation_id, changes)]

    if isinstance(state, DraggingState):
        dx = point.x - state.start.x
        dy = point.y - state.start.y
        changes = translate(state.origin, dx, dy)
        moved = state.has_moved or abs(dx) > DRAG_MOVE_THRESHOLD or abs(dy) > DRAG_MOVE_THRESHOLD
        next_state = state if moved == state.has_moved else replace(state, has_moved=moved)
        return next_state, [UpdateAnnotation(state.annotation_id, changes)]

    if isinstance(state, DrawingState):
        if state.tool == AnnotationType.FREE_DRAW:
            state.points.append(point)
        return replace(state, current=point), []

    return state, []


# ─── Release ──────────────────────────────────────────────────────────────


def _release(
    state: InteractionState,
    event: Union[PointerRelease, PointerLeave],
    context: InteractionContext,
) -> Transition:
    if isinstance(state, (DraggingState, ResizingState)):
        effects: List[Effect] = []
        if state.has_moved:
            effects.append(UpdateAnnotation(state.annotation_id, {"modified": context.clock()}))
        effects.append(EndHistoryGroup())
        logger.debug(f"{type(state).__name__} of {state.annotation_id} finished")
        return IDLE, effects

    if isinstance(state, DrawingState):
        point = getattr(event, "point", None)
        if point is not None and point != state.current:
            state, _ = _move(state, PointerMove(point), context)
        return IDLE, _commit_drawing(state, context)

    return IDLE, []


def _commit_drawing(state: DrawingState, context: InteractionContext) -> List[Effect]:
    min_size = context.settings.min_annotation_size
    config = context.tool_config
    now = context.clock()

    if state.tool == AnnotationType.FREE_DRAW:
        if len(state.points) <= 2:
            logger.debug(f"Discarding freehand stroke with {len(state.points)} points")
            return []
        points = list(state.points)
        box = bounding_box(points)
        annotation = Annotation(
            id=context.id_factory(),
            type=AnnotationType.FREE_DRAW,
            page_number=context.page_number,
            x=box.x,
            y=box.y,
            width=box.width,
            height=box.height,
            content=serialize_points(points),
            color=config.color,
            opacity=config.opacity,
            stroke_width=config.stroke_width,
            points=points,
            created=now,
            modified=now,
        )
        return [CreateAnnotation(annotation)]

    start, current = state.start, state.current
    dx = current.x - start.x
    dy = current.y - start.y

    if not (abs(dx) > min_size and abs(dy) > min_size):
        logger.debug(f"Discarding {state.tool.value} of {abs(dx)}x{abs(dy)}")
        return []

    if state.tool == AnnotationType.ARROW:
        # Arrows keep their signed start-to-end vector
        x, y, width, height = start.x, start.y, dx, dy
    else:
        width, height = abs(dx), abs(dy)
        x, y = min(start.x, current.x), min(start.y, current.y)

    annotation = Annotation(
        id=context.id_factory(),
        type=state.tool,
        page_number=context.page_number,
        x=x,
        y=y,
        width=width,
        height=height,
        content="",
        color=config.color,
        opacity=config.opacity,
        stroke_width=config.stroke_width,
        created=now,
        modified=now,
    )
    return [CreateAnnotation(annotation)]


def new_text_annotation(point: Point, context: InteractionContext) -> Annotation:
    """An empty text box at point, styled for the current theme."""
    defaults = text_defaults(context.settings.dark_theme)
    color = context.tool_config.color
    if is_legacy_highlight_yellow(color):
        color = defaults.text_color
    now = context.clock()
    return Annotation(
        id=context.id_factory(),
        type=AnnotationType.TEXT,
        page_number=context.page_number,
        x=point.x,
        y=point.y,
        width=TEXT_BOX_WIDTH,
        height=TEXT_BOX_HEIGHT,
        content="",
        color=color,
        opacity=1.0,
        font_size=context.tool_config.font_size or TEXT_FONT_SIZE,
        background_color=defaults.background_color,
        background_opacity=defaults.background_opacity,
        created=now,
        modified=now,
    )


# ─── Resize ───────────────────────────────────────────────────────────────


def resize_geometry(
    origin: Annotation,
    handle: ResizeHandle,
    dx: float,
    dy: float,
    keep_aspect: bool = False,
    min_size: float = 5.0,
) -> Dict[str, Any]:
    """
    Geometry update for dragging a handle by (dx, dy) from its origin.

    Arrows move one endpoint. Box shapes move the edges the handle
    controls, clamp the controlled edge so neither side drops below
    min_size, and optionally keep the origin aspect ratio on corners.
    """
    if origin.type == AnnotationType.ARROW:
        end_x = origin.x + origin.width
        end_y = origin.y + origin.height
        if handle == ResizeHandle.START:
            x = origin.x + dx
            y = origin.y + dy
            return {"x": x, "y": y, "width": end_x - x, "height": end_y - y}
        if handle == ResizeHandle.END:
            return {"width": origin.width + dx, "height": origin.height + dy}
        return {}

    left = origin.x
    top = origin.y
    right = origin.x + origin.width
    bottom = origin.y + origin.height

    if handle in _LEFT_HANDLES:
        left += dx
    if handle in _RIGHT_HANDLES:
        right += dx
    if handle in _TOP_HANDLES:
        top += dy
    if handle in _BOTTOM_HANDLES:
        bottom += dy

    width = right - left
    height = bottom - top
    if width < min_size:
        width = min_size
        if handle in _LEFT_HANDLES:
            left = right - min_size
    if height < min_size:
        height = min_size
        if handle in _TOP_HANDLES:
            top = bottom - min_size

    if keep_aspect and origin.type in ASPECT_LOCK_TYPES and handle in CORNER_HANDLES:
        width, height = _lock_aspect(origin, width, height, min_size)
        if handle in _LEFT_HANDLES:
            left = right - width
        if handle in _TOP_HANDLES:
            top = bottom - height

    return {"x": left, "y": top, "width": width, "height": height}


def _lock_aspect(
    origin: Annotation,
    width: float,
    height: float,
    min_size: float,
) -> Tuple[float, float]:
    if origin.type == AnnotationType.CIRCLE:
        ratio = 1.0
    else:
        ratio = origin.width / origin.height if origin.height != 0 else 1.0

    w = max(min_size, width)
    h = max(min_size, height)
    if ratio > 0:
        # Shrink whichever side outgrew the ratio
        if w / h > ratio:
            w = h * ratio
        else:
            h = w / ratio

    return max(min_size, w), max(min_size, h)
