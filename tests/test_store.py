"""Tests for the QUndoStack-backed store, alone and wired to an engine."""

import pytest
from PySide6.QtCore import QPointF, Qt

from slateink.editor.annotations import AnnotationType
from slateink.editor.engine import AnnotationEngine, Viewport
from slateink.editor.store import UndoStackAnnotationStore

from conftest import FIXED_NOW, id_sequence, make_annotation


@pytest.fixture
def store():
    return UndoStackAnnotationStore()


def test_create_update_delete_with_undo(store):
    store.create_annotation(make_annotation())
    store.update_annotation("a1", {"x": 5})
    assert store.get("a1").x == 5

    store.delete_annotation("a1")
    assert store.get("a1") is None

    store.undo()
    assert store.get("a1").x == 5
    store.undo()
    assert store.get("a1").x == 100
    store.undo()
    assert store.annotations == []
    assert not store.can_undo()

    store.redo()
    assert store.get("a1").x == 100
    assert store.can_redo()


def test_delete_undo_restores_order(store):
    for annotation_id in ("a", "b", "c"):
        store.create_annotation(make_annotation(annotation_id))
    store.delete_annotation("b")
    store.undo()
    assert [a.id for a in store.annotations] == ["a", "b", "c"]


def test_group_undoes_in_one_step(store):
    store.create_annotation(make_annotation())
    store.begin_history_group()
    for x in (110, 120, 130):
        store.update_annotation("a1", {"x": x})
    store.end_history_group()

    store.undo()
    assert store.get("a1").x == 100
    store.undo()
    assert store.annotations == []


def test_empty_group_leaves_no_step(store):
    store.create_annotation(make_annotation())
    store.begin_history_group()
    store.end_history_group()
    assert store.undo_stack.count() == 1


def test_unknown_id_raises(store):
    with pytest.raises(KeyError):
        store.update_annotation("missing", {"x": 1})
    with pytest.raises(KeyError):
        store.delete_annotation("missing")
    with pytest.raises(KeyError):
        store.create_annotation(make_annotation())
        store.update_annotation("a1", {"not_a_field": 1})
    assert store.undo_stack.count() == 1


def test_listeners_and_pages(store):
    changes = []
    store.add_listener(lambda: changes.append(len(store.annotations)))
    store.create_annotation(make_annotation("a1", page_number=1))
    store.create_annotation(make_annotation("a2", page_number=2))
    store.undo()
    assert changes == [1, 2, 1]
    store.redo()
    assert [a.id for a in store.annotations_for_page(2)] == ["a2"]


def test_engine_drag_undoes_in_one_step(store):
    engine = AnnotationEngine(store, id_factory=id_sequence(), clock=lambda: FIXED_NOW)
    engine.set_viewport(Viewport(800, 600, 1.0))
    store.add_listener(lambda: engine.set_annotations(store.annotations))
    store.create_annotation(make_annotation(type=AnnotationType.HIGHLIGHT))

    engine.on_mouse_press(QPointF(140, 120))
    for x in range(141, 180, 5):
        engine.on_mouse_move(QPointF(x, 130))
    engine.on_mouse_release()
    assert store.get("a1").x == 136

    engine.on_key_press(Qt.Key.Key_Z, Qt.KeyboardModifier.ControlModifier)
    assert store.get("a1").x == 100
    assert store.get("a1").modified == FIXED_NOW
    assert len(store.annotations) == 1


def test_engine_duplicate_then_undo(store):
    engine = AnnotationEngine(store, id_factory=id_sequence(), clock=lambda: FIXED_NOW)
    store.add_listener(lambda: engine.set_annotations(store.annotations))
    store.create_annotation(make_annotation())
    engine.select("a1")

    engine.on_key_press(Qt.Key.Key_D, Qt.KeyboardModifier.ControlModifier)
    assert engine.selected_annotation.x == 112
    engine.undo()
    assert [a.id for a in store.annotations] == ["a1"]
    assert engine.selected_annotation is None
