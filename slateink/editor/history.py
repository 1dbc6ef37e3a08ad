"""
History grouping for SlateInk.

A gesture (drag, resize, duplicate, a burst of arrow-key nudges) should
undo as one step. The coordinator tracks whether a group is open so the
sink always sees balanced begin/end calls, and folds key repeats that
arrive within an idle window into the same group.

Timers go through the Scheduler interface so the same logic runs on a
Qt event loop (QtScheduler) or a manual clock in tests.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

from PySide6.QtCore import QTimer

from slateink.editor.sink import AnnotationSink
from slateink.services.logging_service import get_logger

DEFAULT_NUDGE_IDLE_MS = 350


class Scheduler(ABC):
    """Cancellable one-shot timers."""

    @abstractmethod
    def schedule(self, delay_ms: int, callback: Callable[[], None]) -> Any:
        """Run callback once after delay_ms; returns a handle for cancel()."""
        pass

    @abstractmethod
    def cancel(self, handle: Any) -> None:
        """Cancel a pending callback. Unknown or fired handles are ignored."""
        pass


class QtScheduler(Scheduler):
    """Scheduler backed by single-shot QTimers on the Qt event loop."""

    def schedule(self, delay_ms: int, callback: Callable[[], None]) -> QTimer:
        timer = QTimer()
        timer.setSingleShot(True)
        timer.timeout.connect(callback)
        timer.start(max(0, int(delay_ms)))
        return timer

    def cancel(self, handle: Optional[QTimer]) -> None:
        if handle is None:
            return
        handle.stop()


class HistoryGroupCoordinator:
    """
    Marks the start and end of continuous gestures on the sink.

    Only one group is open at a time; beginning a new group closes the
    current one first.
    """

    def __init__(
        self,
        sink: AnnotationSink,
        scheduler: Optional[Scheduler] = None,
        idle_ms: int = DEFAULT_NUDGE_IDLE_MS,
    ) -> None:
        self._logger = get_logger(__name__)
        self._sink = sink
        self._scheduler = scheduler or QtScheduler()
        self._idle_ms = idle_ms
        self._open = False
        self._nudging = False
        self._timer: Any = None

    @property
    def is_open(self) -> bool:
        return self._open

    @property
    def is_nudging(self) -> bool:
        return self._nudging

    def begin_group(self) -> None:
        """Open a group for a new gesture."""
        if self._open:
            self.end_group()
        self._sink.begin_history_group()
        self._open = True
        self._logger.debug("History group opened")

    def end_group(self) -> None:
        """Close the open group, if any. Safe to call at any time."""
        self._cancel_timer()
        self._nudging = False
        if not self._open:
            return
        self._open = False
        self._sink.end_history_group()
        self._logger.debug("History group closed")

    def nudge(self) -> None:
        """
        Record one key-repeat of a nudge burst.

        The first repeat opens a group; each repeat restarts the idle
        timer, and the group closes when the timer fires.
        """
        if not (self._open and self._nudging):
            self.begin_group()
            self._nudging = True
        self._cancel_timer()
        self._timer = self._scheduler.schedule(self._idle_ms, self._on_idle)

    def _on_idle(self) -> None:
        self._timer = None
        self.end_group()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._scheduler.cancel(self._timer)
            self._timer = None
