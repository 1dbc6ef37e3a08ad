"""
Annotation engine for SlateInk.

AnnotationEngine is the controller a canvas widget talks to. It owns:
- the interaction state (idle / drawing / dragging / resizing)
- the selected annotation id
- the text-editor session and style-panel toggle
- history grouping for gestures and key-repeat bursts

Pointer handlers take widget-space QPointF positions and convert them to
document space with the current Viewport. Render outputs (selection box,
drawing preview, toolbar position) are page-relative screen space, that
is document coordinates multiplied by the viewport scale.

Edits go to an AnnotationSink. The engine never mutates annotations
itself; the caller feeds the updated list back with set_annotations().
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional
from uuid import uuid4

from PySide6.QtCore import QLineF, QPointF, QRectF, QSizeF, Qt
from PySide6.QtGui import QColor

from slateink.editor.annotations import (
    Annotation,
    AnnotationType,
    ResizeHandle,
    annotation_box,
    bounding_box,
    duplicate,
    find_annotation_at,
    hit_test_handle,
)
from slateink.editor.geometry import Point, SmoothPath, smooth_path
from slateink.editor.history import HistoryGroupCoordinator, Scheduler
from slateink.editor.interaction import (
    IDLE,
    AnnotationPress,
    BeginHistoryGroup,
    Cancel,
    CanvasPress,
    CreateAnnotation,
    DeleteAnnotation,
    DraggingState,
    DrawingState,
    Effect,
    EndHistoryGroup,
    HandlePress,
    IdleState,
    InteractionContext,
    InteractionEvent,
    InteractionState,
    OpenTextEditor,
    PointerLeave,
    PointerMove,
    PointerRelease,
    ResizingState,
    SelectAnnotation,
    UpdateAnnotation,
    transition,
)
from slateink.editor.keyboard import (
    KeyCommand,
    classify_key,
    keyboard_resize_changes,
    nudge_changes,
)
from slateink.editor.settings import EngineSettings
from slateink.editor.sink import AnnotationSink
from slateink.editor.style import to_qcolor
from slateink.editor.toolbar import compute_toolbar_position
from slateink.editor.tools import ToolConfig, cursor_for_tool
from slateink.services.logging_service import get_logger


@dataclass(frozen=True)
class Viewport:
    """
    Rendered page size and zoom.

    origin_x/origin_y locate the page's top-left inside the widget that
    delivers pointer events.
    """
    width: float
    height: float
    scale: float = 1.0
    origin_x: float = 0.0
    origin_y: float = 0.0

    def __post_init__(self) -> None:
        if not self.scale > 0:
            raise ValueError(f"Viewport scale must be positive, got {self.scale}")

    @property
    def size(self) -> QSizeF:
        return QSizeF(self.width, self.height)

    def to_document(self, pos: QPointF) -> Point:
        local = pos - QPointF(self.origin_x, self.origin_y)
        return Point.from_qpointf(local / self.scale)

    def to_page(self, point: Point) -> QPointF:
        return QPointF(point.x * self.scale, point.y * self.scale)


@dataclass(frozen=True)
class DrawingPreview:
    """
    Live geometry of a shape being drawn, in page-relative screen space.

    rect is the normalized gesture box and color the active tool style.
    Arrows also get line (start to current pointer); freehand strokes get a
    smoothed path.
    """
    tool: AnnotationType
    rect: QRectF
    color: QColor
    line: Optional[QLineF] = None
    path: Optional[SmoothPath] = None


class AnnotationEngine:
    """
    Selection, gesture and keyboard controller for one annotated page.

    Args:
        sink: Receiver for create/update/delete, undo/redo and history
            group calls.
        settings: Engine settings; defaults when omitted.
        scheduler: Timer source for nudge grouping; a QtScheduler when
            omitted.
        id_factory: New annotation ids; uuid4 strings when omitted.
        clock: Timestamp source for created/modified.
    """

    def __init__(
        self,
        sink: AnnotationSink,
        settings: Optional[EngineSettings] = None,
        scheduler: Optional[Scheduler] = None,
        id_factory: Optional[Callable[[], str]] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._logger = get_logger(__name__)
        self._sink = sink
        self._settings = settings or EngineSettings()
        self._history = HistoryGroupCoordinator(
            sink, scheduler, self._settings.nudge_group_ms
        )
        self._id_factory = id_factory or (lambda: str(uuid4()))
        self._clock = clock or datetime.now

        self._state: InteractionState = IDLE
        self._annotations: List[Annotation] = []
        self._selected_id: Optional[str] = None
        self._active_tool: Optional[AnnotationType] = None
        self._tool_config: Optional[ToolConfig] = None
        self._page_number = 1
        self._viewport = Viewport(0, 0, 1.0)

        self._editing_text: Optional[Annotation] = None
        self._show_style_panel = False
        self._toolbar_size = QSizeF(
            self._settings.toolbar_default_width,
            self._settings.toolbar_default_height,
        )

    # ─── Inputs ───────────────────────────────────────────────────────────

    def set_annotations(self, annotations: Iterable[Annotation]) -> None:
        """Replace the annotations of the current page (paint order)."""
        self._annotations = list(annotations)

    def set_viewport(self, viewport: Viewport) -> None:
        self._viewport = viewport

    def set_active_tool(self, tool: Optional[AnnotationType]) -> None:
        """Switch tool; abandons any gesture and closes the history group."""
        if not isinstance(self._state, IdleState):
            self._logger.debug(f"Tool change abandons {type(self._state).__name__}")
            self._state = IDLE
        self._history.end_group()
        self._active_tool = tool
        self._logger.debug(f"Active tool: {tool.value if tool else 'select'}")

    def set_tool_config(self, config: Optional[ToolConfig]) -> None:
        """Override the active tool's style; None restores its default."""
        self._tool_config = config

    def set_page_number(self, page_number: int) -> None:
        self._page_number = page_number

    def set_toolbar_size(self, width: float, height: float) -> None:
        """Report the toolbar's measured size (sizes below 1 are raised to 1)."""
        self._toolbar_size = QSizeF(max(1.0, round(width)), max(1.0, round(height)))

    # ─── Outputs ──────────────────────────────────────────────────────────

    @property
    def settings(self) -> EngineSettings:
        return self._settings

    @property
    def state(self) -> InteractionState:
        return self._state

    @property
    def annotations(self) -> List[Annotation]:
        return list(self._annotations)

    @property
    def active_tool(self) -> Optional[AnnotationType]:
        return self._active_tool

    @property
    def tool_config(self) -> ToolConfig:
        if self._tool_config is not None:
            return self._tool_config
        if self._active_tool is None:
            return ToolConfig()
        return self._settings.tool_config(self._active_tool)

    @property
    def viewport(self) -> Viewport:
        return self._viewport

    @property
    def selected_annotation_id(self) -> Optional[str]:
        return self._selected_id

    @property
    def selected_annotation(self) -> Optional[Annotation]:
        return self._find(self._selected_id)

    @property
    def editing_text_annotation(self) -> Optional[Annotation]:
        if self._editing_text is None:
            return None
        return self._find(self._editing_text.id) or self._editing_text

    @property
    def is_nudging(self) -> bool:
        return self._history.is_nudging

    @property
    def cursor(self) -> Qt.CursorShape:
        return cursor_for_tool(self._active_tool)

    @property
    def drawing_preview(self) -> Optional[DrawingPreview]:
        state = self._state
        if not isinstance(state, DrawingState):
            return None

        scale = self._viewport.scale
        config = self.tool_config
        color = to_qcolor(config.color, config.opacity)
        if state.tool == AnnotationType.FREE_DRAW:
            box = bounding_box(state.points)
            path = smooth_path(state.points, scale, self._settings.simplify_tolerance)
            rect = QRectF(box.x * scale, box.y * scale, box.width * scale, box.height * scale)
            return DrawingPreview(state.tool, rect, color, path=path)

        start = self._viewport.to_page(state.start)
        current = self._viewport.to_page(state.current)
        rect = QRectF(start, current).normalized()
        line = QLineF(start, current) if state.tool == AnnotationType.ARROW else None
        return DrawingPreview(state.tool, rect, color, line=line)

    @property
    def selection_box(self) -> Optional[QRectF]:
        selected = self.selected_annotation
        if selected is None:
            return None
        box = annotation_box(selected)
        scale = self._viewport.scale
        return QRectF(box.x * scale, box.y * scale, box.width * scale, box.height * scale)

    @property
    def toolbar_size(self) -> QSizeF:
        return QSizeF(self._toolbar_size)

    @property
    def toolbar_position(self) -> Optional[QPointF]:
        selection = self.selection_box
        if selection is None:
            return None
        return compute_toolbar_position(
            selection,
            self._toolbar_size,
            self._viewport.size,
            padding=self._settings.toolbar_padding,
            handle_padding=self._settings.toolbar_handle_padding,
        )

    @property
    def toolbar_disabled(self) -> bool:
        """True while a gesture is visibly in progress."""
        state = self._state
        if isinstance(state, (DraggingState, ResizingState)):
            return state.has_moved
        return isinstance(state, DrawingState)

    @property
    def show_style_panel(self) -> bool:
        return self._show_style_panel

    def toggle_style_panel(self) -> bool:
        self._show_style_panel = not self._show_style_panel
        return self._show_style_panel

    def screen_to_document(self, pos: QPointF) -> Point:
        return self._viewport.to_document(pos)

    # ─── Pointer ──────────────────────────────────────────────────────────

    def on_mouse_press(
        self,
        pos: QPointF,
        modifiers: Qt.KeyboardModifier = Qt.KeyboardModifier.NoModifier,
        button: Qt.MouseButton = Qt.MouseButton.LeftButton,
    ) -> None:
        """
        Handle a press anywhere on the page.

        Resolves, in order, a resize handle of the selection, the top-most
        annotation under the pointer, then the empty canvas.
        """
        if not isinstance(self._state, IdleState):
            return

        point = self.screen_to_document(pos)
        scale = self._viewport.scale

        selected = self.selected_annotation
        if selected is not None and button == Qt.MouseButton.LeftButton:
            handle = hit_test_handle(selected, point, self._settings.handle_radius_px / scale)
            if handle is not None:
                self._dispatch(HandlePress(handle, point, modifiers))
                return

        hit = find_annotation_at(
            self._annotations, point, self._settings.hit_tolerance_px / scale
        )
        if hit is not None:
            self._dispatch(AnnotationPress(hit.id, point, modifiers, button))
            return

        if button == Qt.MouseButton.LeftButton:
            self._dispatch(CanvasPress(point, modifiers))
        else:
            self._apply([SelectAnnotation(None)])

    def on_annotation_press(
        self,
        annotation_id: str,
        pos: QPointF,
        modifiers: Qt.KeyboardModifier = Qt.KeyboardModifier.NoModifier,
        button: Qt.MouseButton = Qt.MouseButton.LeftButton,
    ) -> None:
        """Press already resolved to an annotation by the caller's scene."""
        point = self.screen_to_document(pos)
        self._dispatch(AnnotationPress(annotation_id, point, modifiers, button))

    def on_handle_press(
        self,
        handle: ResizeHandle,
        pos: QPointF,
        modifiers: Qt.KeyboardModifier = Qt.KeyboardModifier.NoModifier,
    ) -> None:
        """Press already resolved to a handle of the selection."""
        point = self.screen_to_document(pos)
        self._dispatch(HandlePress(handle, point, modifiers))

    def on_mouse_move(
        self,
        pos: QPointF,
        modifiers: Qt.KeyboardModifier = Qt.KeyboardModifier.NoModifier,
    ) -> None:
        if isinstance(self._state, IdleState):
            return
        self._dispatch(PointerMove(self.screen_to_document(pos), modifiers))

    def on_mouse_release(
        self,
        pos: Optional[QPointF] = None,
        modifiers: Qt.KeyboardModifier = Qt.KeyboardModifier.NoModifier,
    ) -> None:
        if isinstance(self._state, IdleState):
            return
        point = self.screen_to_document(pos) if pos is not None else None
        self._dispatch(PointerRelease(point, modifiers))

    def on_mouse_leave(self) -> None:
        if isinstance(self._state, IdleState):
            return
        self._dispatch(PointerLeave())

    # ─── Keyboard ─────────────────────────────────────────────────────────

    def on_key_press(
        self,
        key: Any,
        modifiers: Qt.KeyboardModifier = Qt.KeyboardModifier.NoModifier,
        typing: bool = False,
    ) -> bool:
        """
        Handle a canvas shortcut.

        Args:
            key: Qt.Key or the int from QKeyEvent.key().
            modifiers: Keyboard modifiers held.
            typing: True while focus is in a text input; only Escape is
                handled then.

        Returns:
            True if the key was consumed.
        """
        action = classify_key(key, modifiers, typing)
        if action is None:
            return False

        command = action.command
        if command == KeyCommand.CANCEL:
            self.cancel()
            return True
        if command == KeyCommand.UNDO:
            self.undo()
            return True
        if command == KeyCommand.REDO:
            self.redo()
            return True

        # Selection edits wait for the pointer gesture to finish
        if not isinstance(self._state, IdleState):
            return False

        if command == KeyCommand.DELETE:
            if self._selected_id is None:
                return False
            self.delete_selected()
            return True

        selected = self.selected_annotation
        if selected is None:
            return False

        if command == KeyCommand.DUPLICATE:
            self.duplicate_selected()
            return True

        settings = self._settings
        step_px = settings.nudge_large_step_px if action.large_step else settings.nudge_step_px
        step = step_px / self._viewport.scale
        dx = action.dx * step
        dy = action.dy * step

        if command == KeyCommand.RESIZE:
            changes = keyboard_resize_changes(selected, dx, dy, settings.min_annotation_size)
            if changes is None:
                return True
        else:
            changes = nudge_changes(selected, dx, dy)

        self._history.nudge()
        changes["modified"] = self._clock()
        self._sink.update_annotation(selected.id, changes)
        return True

    # ─── Actions ──────────────────────────────────────────────────────────

    def cancel(self) -> None:
        """Abandon any gesture, clear the selection and close the group."""
        self._dispatch(Cancel())

    def select(self, annotation_id: Optional[str]) -> None:
        """Select an annotation (or None); an in-progress draw is dropped."""
        if isinstance(self._state, DrawingState):
            self._state = IDLE
        self._set_selection(annotation_id)

    def delete_selected(self) -> None:
        annotation_id = self._selected_id
        if annotation_id is None:
            return
        self._sink.delete_annotation(annotation_id)
        if self._editing_text is not None and self._editing_text.id == annotation_id:
            self._editing_text = None
        self._set_selection(None)

    def duplicate_selected(self) -> Optional[Annotation]:
        """Clone the selection offset down-right and select the clone."""
        selected = self.selected_annotation
        if selected is None:
            return None

        self._history.end_group()
        offset = self._settings.duplicate_offset_px / self._viewport.scale
        copied = duplicate(selected, offset, offset, self._id_factory(), self._clock())

        self._history.begin_group()
        self._sink.create_annotation(copied)
        self._set_selection(copied.id)
        self._history.end_group()
        self._logger.debug(f"Duplicated {selected.id} as {copied.id}")
        return copied

    def update_selected(self, changes: Dict[str, Any]) -> bool:
        """
        Apply a style edit to the selection.

        None values and values equal to the current ones are dropped;
        nothing is sent when no real change remains.

        Returns:
            True if an update was sent.
        """
        selected = self.selected_annotation
        if selected is None:
            return False

        deduped = {
            name: value
            for name, value in changes.items()
            if value is not None and getattr(selected, name) != value
        }
        if not deduped:
            return False

        deduped["modified"] = self._clock()
        self._sink.update_annotation(selected.id, deduped)
        return True

    def undo(self) -> None:
        self._history.end_group()
        self._sink.undo()

    def redo(self) -> None:
        self._history.end_group()
        self._sink.redo()

    # ─── Text editing ─────────────────────────────────────────────────────

    def start_text_edit(self, annotation_id: str) -> bool:
        """Open the text editor on an existing text annotation."""
        annotation = self._find(annotation_id)
        if annotation is None or annotation.type != AnnotationType.TEXT:
            return False
        self._editing_text = annotation
        return True

    def save_text_edit(self, changes: Dict[str, Any]) -> None:
        editing = self.editing_text_annotation
        if editing is None:
            return
        changes = dict(changes)
        changes.setdefault("modified", self._clock())
        self._sink.update_annotation(editing.id, changes)
        self._editing_text = None

    def cancel_text_edit(self) -> None:
        """Close the editor; a text annotation left empty is deleted."""
        editing = self.editing_text_annotation
        if editing is None:
            return
        if not editing.content:
            self._sink.delete_annotation(editing.id)
            if self._selected_id == editing.id:
                self._set_selection(None)
        self._editing_text = None

    def delete_text_edit(self) -> None:
        editing = self.editing_text_annotation
        if editing is None:
            return
        self._sink.delete_annotation(editing.id)
        if self._selected_id == editing.id:
            self._set_selection(None)
        self._editing_text = None

    # ─── Internals ────────────────────────────────────────────────────────

    def _find(self, annotation_id: Optional[str]) -> Optional[Annotation]:
        if annotation_id is None:
            return None
        for annotation in self._annotations:
            if annotation.id == annotation_id:
                return annotation
        return None

    def _context(self) -> InteractionContext:
        return InteractionContext(
            annotations=self._annotations,
            selected_id=self._selected_id,
            active_tool=self._active_tool,
            tool_config=self.tool_config,
            page_number=self._page_number,
            settings=self._settings,
            id_factory=self._id_factory,
            clock=self._clock,
        )

    def _dispatch(self, event: InteractionEvent) -> None:
        state, effects = transition(self._state, event, self._context())
        self._state = state
        self._apply(effects)

    def _apply(self, effects: List[Effect]) -> None:
        for effect in effects:
            if isinstance(effect, CreateAnnotation):
                self._sink.create_annotation(effect.annotation)
            elif isinstance(effect, UpdateAnnotation):
                self._sink.update_annotation(effect.annotation_id, effect.changes)
            elif isinstance(effect, DeleteAnnotation):
                self._sink.delete_annotation(effect.annotation_id)
            elif isinstance(effect, SelectAnnotation):
                self._set_selection(effect.annotation_id)
            elif isinstance(effect, BeginHistoryGroup):
                self._history.begin_group()
            elif isinstance(effect, EndHistoryGroup):
                self._history.end_group()
            elif isinstance(effect, OpenTextEditor):
                self._editing_text = effect.annotation

    def _set_selection(self, annotation_id: Optional[str]) -> None:
        if annotation_id != self._selected_id:
            self._show_style_panel = False
            self._logger.debug(f"Selection: {annotation_id}")
        self._selected_id = annotation_id
