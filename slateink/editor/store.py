"""
Reference annotation store backed by QUndoStack.

Implements AnnotationSink so an engine can be wired straight to it:
- Add/Delete/Update commands on a QUndoStack
- History groups become undo macros, opened lazily on the first edit so
  an empty group leaves no undo step
- Change listeners are called after every edit, undo and redo
"""

from typing import Any, Callable, Dict, List, Optional

from PySide6.QtGui import QUndoCommand, QUndoStack

from slateink.editor.annotations import Annotation
from slateink.editor.sink import AnnotationSink
from slateink.services.logging_service import get_logger


# ─── Undo Commands ────────────────────────────────────────────────────────


class AddAnnotationCommand(QUndoCommand):
    """Command for adding an annotation."""

    def __init__(self, store: "UndoStackAnnotationStore", annotation: Annotation) -> None:
        super().__init__("Add Annotation")
        self._store = store
        self._annotation = annotation

    def redo(self) -> None:
        self._store._annotations.append(self._annotation)
        self._store._notify()

    def undo(self) -> None:
        index = self._store._index_of(self._annotation.id)
        if index >= 0:
            del self._store._annotations[index]
        self._store._notify()


class DeleteAnnotationCommand(QUndoCommand):
    """Command for deleting an annotation."""

    def __init__(self, store: "UndoStackAnnotationStore", annotation_id: str) -> None:
        super().__init__("Delete Annotation")
        self._store = store
        self._annotation_id = annotation_id
        self._annotation: Optional[Annotation] = None
        self._index = -1

    def redo(self) -> None:
        self._index = self._store._index_of(self._annotation_id)
        if self._index >= 0:
            self._annotation = self._store._annotations.pop(self._index)
        self._store._notify()

    def undo(self) -> None:
        if self._annotation is None:
            return
        if self._index >= 0:
            self._store._annotations.insert(self._index, self._annotation)
        else:
            self._store._annotations.append(self._annotation)
        self._store._notify()


class UpdateAnnotationCommand(QUndoCommand):
    """Command for a partial update (move, resize, style, text)."""

    def __init__(
        self,
        store: "UndoStackAnnotationStore",
        annotation: Annotation,
        changes: Dict[str, Any],
    ) -> None:
        super().__init__("Update Annotation")
        self._store = store
        self._annotation_id = annotation.id
        self._new_values = dict(changes)
        self._old_values = {name: getattr(annotation, name) for name in changes}

    def redo(self) -> None:
        self._apply(self._new_values)

    def undo(self) -> None:
        self._apply(self._old_values)

    def _apply(self, values: Dict[str, Any]) -> None:
        index = self._store._index_of(self._annotation_id)
        if index < 0:
            return
        current = self._store._annotations[index]
        self._store._annotations[index] = current.apply(values)
        self._store._notify()


# ─── Store ────────────────────────────────────────────────────────────────


class UndoStackAnnotationStore(AnnotationSink):
    """
    In-memory annotation list with Qt undo/redo.

    Annotations keep insertion order, which is also paint order.
    """

    def __init__(self, annotations: Optional[List[Annotation]] = None) -> None:
        self._logger = get_logger(__name__)
        self._annotations: List[Annotation] = list(annotations or [])
        self._undo_stack = QUndoStack()
        self._listeners: List[Callable[[], None]] = []
        self._group_requested = False
        self._macro_open = False

    # ─── Queries ──────────────────────────────────────────────────────────

    @property
    def annotations(self) -> List[Annotation]:
        return list(self._annotations)

    def annotations_for_page(self, page_number: int) -> List[Annotation]:
        return [a for a in self._annotations if a.page_number == page_number]

    def get(self, annotation_id: str) -> Optional[Annotation]:
        index = self._index_of(annotation_id)
        return self._annotations[index] if index >= 0 else None

    @property
    def undo_stack(self) -> QUndoStack:
        return self._undo_stack

    def can_undo(self) -> bool:
        return self._undo_stack.canUndo()

    def can_redo(self) -> bool:
        return self._undo_stack.canRedo()

    # ─── Listeners ────────────────────────────────────────────────────────

    def add_listener(self, callback: Callable[[], None]) -> None:
        """Call callback after every change to the annotation list."""
        self._listeners.append(callback)

    def remove_listener(self, callback: Callable[[], None]) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    # ─── AnnotationSink ───────────────────────────────────────────────────

    def create_annotation(self, annotation: Annotation) -> None:
        self._push(AddAnnotationCommand(self, annotation.copy()))
        self._logger.debug(f"Created {annotation.type.value} annotation {annotation.id}")

    def update_annotation(self, annotation_id: str, changes: Dict[str, Any]) -> None:
        current = self.get(annotation_id)
        if current is None:
            raise KeyError(f"Unknown annotation id: {annotation_id}")
        if not changes:
            return
        # Validate field names before anything reaches the stack
        current.apply(changes)
        self._push(UpdateAnnotationCommand(self, current, changes))

    def delete_annotation(self, annotation_id: str) -> None:
        if self._index_of(annotation_id) < 0:
            raise KeyError(f"Unknown annotation id: {annotation_id}")
        self._push(DeleteAnnotationCommand(self, annotation_id))
        self._logger.debug(f"Deleted annotation {annotation_id}")

    def undo(self) -> None:
        self.end_history_group()
        if self._undo_stack.canUndo():
            self._undo_stack.undo()

    def redo(self) -> None:
        self.end_history_group()
        if self._undo_stack.canRedo():
            self._undo_stack.redo()

    def begin_history_group(self) -> None:
        self.end_history_group()
        self._group_requested = True

    def end_history_group(self) -> None:
        self._group_requested = False
        if self._macro_open:
            self._undo_stack.endMacro()
            self._macro_open = False

    # ─── Internals ────────────────────────────────────────────────────────

    def _push(self, command: QUndoCommand) -> None:
        if self._group_requested and not self._macro_open:
            self._undo_stack.beginMacro("Edit Annotation")
            self._macro_open = True
        self._undo_stack.push(command)

    def _index_of(self, annotation_id: str) -> int:
        for index, annotation in enumerate(self._annotations):
            if annotation.id == annotation_id:
                return index
        return -1

    def _notify(self) -> None:
        for callback in list(self._listeners):
            callback()
