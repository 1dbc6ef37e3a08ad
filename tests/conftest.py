"""Shared fixtures: a Qt core application, a recording sink and a manual clock."""

import itertools
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest
from PySide6.QtCore import QCoreApplication

from slateink.editor.annotations import Annotation, AnnotationType
from slateink.editor.engine import AnnotationEngine, Viewport
from slateink.editor.history import Scheduler
from slateink.editor.sink import AnnotationSink

FIXED_NOW = datetime(2024, 5, 1, 12, 0, 0)


@pytest.fixture(scope="session", autouse=True)
def qapp():
    app = QCoreApplication.instance() or QCoreApplication([])
    yield app


class RecordingSink(AnnotationSink):
    """Records every call as (method, *args)."""

    def __init__(self) -> None:
        self.calls: List[Tuple[Any, ...]] = []

    def create_annotation(self, annotation: Annotation) -> None:
        self.calls.append(("create", annotation))

    def update_annotation(self, annotation_id: str, changes: Dict[str, Any]) -> None:
        self.calls.append(("update", annotation_id, changes))

    def delete_annotation(self, annotation_id: str) -> None:
        self.calls.append(("delete", annotation_id))

    def undo(self) -> None:
        self.calls.append(("undo",))

    def redo(self) -> None:
        self.calls.append(("redo",))

    def begin_history_group(self) -> None:
        self.calls.append(("begin",))

    def end_history_group(self) -> None:
        self.calls.append(("end",))

    def names(self) -> List[str]:
        return [call[0] for call in self.calls]

    def of(self, name: str) -> List[Tuple[Any, ...]]:
        return [call for call in self.calls if call[0] == name]

    def clear(self) -> None:
        self.calls.clear()


class ManualScheduler(Scheduler):
    """Scheduler driven by advance() instead of wall-clock time."""

    def __init__(self) -> None:
        self.now = 0
        self._ids = itertools.count(1)
        self._pending: Dict[int, Tuple[int, Callable[[], None]]] = {}

    def schedule(self, delay_ms: int, callback: Callable[[], None]) -> int:
        handle = next(self._ids)
        self._pending[handle] = (self.now + delay_ms, callback)
        return handle

    def cancel(self, handle: Optional[int]) -> None:
        self._pending.pop(handle, None)

    @property
    def pending(self) -> int:
        return len(self._pending)

    def advance(self, ms: int) -> None:
        self.now += ms
        due = sorted(
            (when, handle) for handle, (when, _) in self._pending.items() if when <= self.now
        )
        for _, handle in due:
            entry = self._pending.pop(handle, None)
            if entry is not None:
                entry[1]()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


def id_sequence(prefix: str = "new") -> Callable[[], str]:
    counter = itertools.count(1)
    return lambda: f"{prefix}-{next(counter)}"


@pytest.fixture
def engine(sink, scheduler) -> AnnotationEngine:
    engine = AnnotationEngine(
        sink,
        scheduler=scheduler,
        id_factory=id_sequence(),
        clock=lambda: FIXED_NOW,
    )
    engine.set_viewport(Viewport(800, 600, 1.0))
    return engine


def make_annotation(
    annotation_id: str = "a1",
    type: AnnotationType = AnnotationType.RECTANGLE,
    x: float = 100,
    y: float = 100,
    width: float = 80,
    height: float = 40,
    **kwargs: Any,
) -> Annotation:
    return Annotation(
        id=annotation_id,
        type=type,
        x=x,
        y=y,
        width=width,
        height=height,
        created=FIXED_NOW,
        modified=FIXED_NOW,
        **kwargs,
    )
