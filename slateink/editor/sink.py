"""
The interface the engine uses to talk to whoever owns the annotations.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict

from slateink.editor.annotations import Annotation


class AnnotationSink(ABC):
    """
    Receiver for the engine's edits.

    Calls are synchronous and best-effort: the engine does not retry, and
    any exception a sink raises propagates to the caller of the engine.
    """

    @abstractmethod
    def create_annotation(self, annotation: Annotation) -> None:
        """Store a new annotation (id already assigned)."""
        pass

    @abstractmethod
    def update_annotation(self, annotation_id: str, changes: Dict[str, Any]) -> None:
        """Apply a partial update keyed by Annotation field names."""
        pass

    @abstractmethod
    def delete_annotation(self, annotation_id: str) -> None:
        pass

    @abstractmethod
    def undo(self) -> None:
        pass

    @abstractmethod
    def redo(self) -> None:
        pass

    @abstractmethod
    def begin_history_group(self) -> None:
        """Following edits undo as one step until end_history_group()."""
        pass

    @abstractmethod
    def end_history_group(self) -> None:
        pass
