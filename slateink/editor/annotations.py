"""
Annotation models for SlateInk.

This module provides the persisted annotation record the engine edits and
the pure helpers that derive geometry from it:
- Extract/normalize freehand points (structured field or legacy JSON content)
- Bounding boxes, translation and duplication
- Resize handle layout and hit-testing

Annotation Types:
- HIGHLIGHT, RECTANGLE, CIRCLE: box shapes with eight resize handles
- ARROW: x/y is the start point, width/height the vector to the end point
- FREE_DRAW: freehand stroke, move-only
- TEXT: editable text box
- UNDERLINE, STRIKETHROUGH, STAMP, NOTE: legacy records (never created here)
"""

import json
import math
from dataclasses import dataclass, field, fields, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from slateink.editor.geometry import (
    BoundingBox,
    Point,
    distance,
    distance_to_polyline,
    perpendicular_distance,
)

# Smallest width/height a box shape may have after a resize (document units)
MIN_ANNOTATION_SIZE = 5.0


class AnnotationType(Enum):
    """Enum for annotation types."""
    TEXT = "text"
    HIGHLIGHT = "highlight"
    UNDERLINE = "underline"
    STRIKETHROUGH = "strikethrough"
    ARROW = "arrow"
    RECTANGLE = "rectangle"
    CIRCLE = "circle"
    FREE_DRAW = "free_draw"
    STAMP = "stamp"
    NOTE = "note"


# Tools that draw by dragging out a rectangle between two anchor points
RECTANGLE_STYLE_TYPES = frozenset({
    AnnotationType.HIGHLIGHT,
    AnnotationType.RECTANGLE,
    AnnotationType.CIRCLE,
    AnnotationType.ARROW,
})

# Types whose corner handles honour the proportional lock
ASPECT_LOCK_TYPES = frozenset({
    AnnotationType.HIGHLIGHT,
    AnnotationType.RECTANGLE,
    AnnotationType.CIRCLE,
})


class ResizeHandle(Enum):
    """Named control points on a selected annotation."""
    NW = "nw"
    N = "n"
    NE = "ne"
    E = "e"
    SE = "se"
    S = "s"
    SW = "sw"
    W = "w"
    START = "start"
    END = "end"


BOX_HANDLES: Tuple[ResizeHandle, ...] = (
    ResizeHandle.NW,
    ResizeHandle.N,
    ResizeHandle.NE,
    ResizeHandle.E,
    ResizeHandle.SE,
    ResizeHandle.S,
    ResizeHandle.SW,
    ResizeHandle.W,
)
ARROW_HANDLES: Tuple[ResizeHandle, ...] = (ResizeHandle.START, ResizeHandle.END)
CORNER_HANDLES = frozenset({
    ResizeHandle.NW,
    ResizeHandle.NE,
    ResizeHandle.SE,
    ResizeHandle.SW,
})


@dataclass
class Annotation:
    """
    The persisted annotation record.

    For arrows, width/height encode the vector from start to end and may
    be negative. For free-draw, x/y/width/height are always the tight
    bounding box of points and content mirrors points as JSON.
    """
    id: str
    type: AnnotationType
    page_number: int = 1
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0
    content: str = ""
    color: str = "#ff0000"
    opacity: float = 1.0
    stroke_width: Optional[float] = None
    font_size: Optional[int] = None
    background_color: Optional[str] = None
    background_opacity: Optional[float] = None
    points: Optional[List[Point]] = None
    created: datetime = field(default_factory=datetime.now)
    modified: datetime = field(default_factory=datetime.now)
    visible: bool = True

    def apply(self, changes: Dict[str, Any]) -> "Annotation":
        """Return a copy with a partial update applied."""
        unknown = set(changes) - ANNOTATION_FIELDS
        if unknown:
            raise KeyError(f"Unknown annotation fields: {sorted(unknown)}")
        updated = replace(self, **changes)
        if updated.points is not None:
            updated.points = list(updated.points)
        return updated

    def copy(self) -> "Annotation":
        return self.apply({})

    def to_dict(self) -> Dict[str, Any]:
        """Serialize using the camelCase keys of the stored record format."""
        data: Dict[str, Any] = {}
        for name in _FIELD_ORDER:
            value = getattr(self, name)
            if name == "type":
                value = value.value
            elif name == "points":
                if value is None:
                    continue
                value = [p.to_dict() for p in value]
            elif name in ("created", "modified"):
                value = value.isoformat()
            elif value is None:
                continue
            data[_CAMEL_KEYS.get(name, name)] = value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Annotation":
        """
        Build an annotation from a stored record.

        Raises:
            ValueError: If the type is not a known annotation type.
        """
        kwargs: Dict[str, Any] = {}
        for name in _FIELD_ORDER:
            key = _CAMEL_KEYS.get(name, name)
            if key not in data:
                continue
            kwargs[name] = data[key]

        kwargs["type"] = AnnotationType(kwargs.get("type"))
        kwargs["id"] = str(kwargs.get("id", ""))
        kwargs["points"] = _parse_points(kwargs.get("points"))
        for stamp in ("created", "modified"):
            if stamp in kwargs:
                kwargs[stamp] = _parse_timestamp(kwargs[stamp])
        return cls(**kwargs)


_FIELD_ORDER: Tuple[str, ...] = tuple(f.name for f in fields(Annotation))
ANNOTATION_FIELDS = frozenset(_FIELD_ORDER)
_CAMEL_KEYS = {
    "page_number": "pageNumber",
    "stroke_width": "strokeWidth",
    "font_size": "fontSize",
    "background_color": "backgroundColor",
    "background_opacity": "backgroundOpacity",
}


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            pass
    return datetime.now()


def _is_finite_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def _parse_points(value: Any) -> Optional[List[Point]]:
    if not isinstance(value, list):
        return None

    points: List[Point] = []
    for entry in value:
        if isinstance(entry, Point):
            points.append(entry)
            continue
        if not isinstance(entry, dict):
            continue
        x = entry.get("x")
        y = entry.get("y")
        if not _is_finite_number(x) or not _is_finite_number(y):
            continue
        points.append(Point(float(x), float(y)))

    return points or None


# ─── Point helpers ────────────────────────────────────────────────────────


def points_of(annotation: Annotation) -> Optional[List[Point]]:
    """
    Get the point list of an annotation.

    Prefers the structured points field; falls back to parsing content as
    JSON for legacy records. Entries without finite x/y are dropped.

    Returns:
        The points, or None when no valid point remains. Never raises.
    """
    if annotation.points:
        return list(annotation.points)

    try:
        parsed = json.loads(annotation.content or "[]")
    except (TypeError, ValueError, RecursionError):
        return None
    return _parse_points(parsed)


def serialize_points(points: Iterable[Point]) -> str:
    """JSON mirror of a point list, as stored in content."""
    return json.dumps([p.to_dict() for p in points], separators=(",", ":"))


def bounding_box(points: Sequence[Point]) -> BoundingBox:
    """
    Tight bounding box of a non-empty point list.

    A single point yields a zero-size box.
    """
    xs = [p.x for p in points]
    ys = [p.y for p in points]
    min_x, max_x = min(xs), max(xs)
    min_y, max_y = min(ys), max(ys)
    return BoundingBox(min_x, min_y, max_x - min_x, max_y - min_y)


def _freehand_geometry(points: List[Point]) -> Dict[str, Any]:
    box = bounding_box(points)
    return {
        "x": box.x,
        "y": box.y,
        "width": box.width,
        "height": box.height,
        "points": points,
        "content": serialize_points(points),
    }


def translate(annotation: Annotation, dx: float, dy: float) -> Dict[str, Any]:
    """
    Partial update that moves an annotation by (dx, dy).

    Free-draw annotations also get shifted points, a recomputed bounding
    box and a refreshed content mirror.
    """
    changes: Dict[str, Any] = {
        "x": annotation.x + dx,
        "y": annotation.y + dy,
    }

    if annotation.type == AnnotationType.FREE_DRAW:
        points = points_of(annotation)
        if points:
            moved = [p.offset(dx, dy) for p in points]
            changes.update(_freehand_geometry(moved))

    return changes


def duplicate(
    annotation: Annotation,
    dx: float,
    dy: float,
    new_id: str,
    now: Optional[datetime] = None,
) -> Annotation:
    """Clone an annotation under a new id, offset by (dx, dy)."""
    now = now or datetime.now()
    copied = annotation.apply({
        "id": new_id,
        "created": now,
        "modified": now,
        "x": annotation.x + dx,
        "y": annotation.y + dy,
    })

    if annotation.type == AnnotationType.FREE_DRAW:
        points = points_of(annotation)
        if points:
            shifted = [p.offset(dx, dy) for p in points]
            copied = copied.apply(_freehand_geometry(shifted))

    return copied


# ─── Box and handle geometry ──────────────────────────────────────────────


def annotation_box(annotation: Annotation) -> BoundingBox:
    """Normalized document-space box (arrow vectors may point anywhere)."""
    left = min(annotation.x, annotation.x + annotation.width)
    top = min(annotation.y, annotation.y + annotation.height)
    return BoundingBox(left, top, abs(annotation.width), abs(annotation.height))


def resize_handles_for(annotation: Annotation) -> Tuple[ResizeHandle, ...]:
    """Handles a selected annotation exposes; free-draw is move-only."""
    if annotation.type == AnnotationType.FREE_DRAW:
        return ()
    if annotation.type == AnnotationType.ARROW:
        return ARROW_HANDLES
    return BOX_HANDLES


def handle_positions(annotation: Annotation) -> Dict[ResizeHandle, Point]:
    """Document-space centre of every handle the annotation exposes."""
    handles = resize_handles_for(annotation)
    if annotation.type == AnnotationType.ARROW:
        return {
            ResizeHandle.START: Point(annotation.x, annotation.y),
            ResizeHandle.END: Point(
                annotation.x + annotation.width,
                annotation.y + annotation.height,
            ),
        }

    left = annotation.x
    top = annotation.y
    right = annotation.x + annotation.width
    bottom = annotation.y + annotation.height
    cx = left + annotation.width / 2
    cy = top + annotation.height / 2
    layout = {
        ResizeHandle.NW: Point(left, top),
        ResizeHandle.N: Point(cx, top),
        ResizeHandle.NE: Point(right, top),
        ResizeHandle.E: Point(right, cy),
        ResizeHandle.SE: Point(right, bottom),
        ResizeHandle.S: Point(cx, bottom),
        ResizeHandle.SW: Point(left, bottom),
        ResizeHandle.W: Point(left, cy),
    }
    return {handle: layout[handle] for handle in handles}


def hit_test_handle(
    annotation: Annotation,
    point: Point,
    radius: float,
) -> Optional[ResizeHandle]:
    """
    Test if a point hits a resize handle.

    Returns:
        The handle under the point, or None.
    """
    for handle, position in handle_positions(annotation).items():
        if distance(point, position) <= radius:
            return handle
    return None


def hit_test(annotation: Annotation, point: Point, tolerance: float = 0.0) -> bool:
    """
    Test if a point hits an annotation's visible mark.

    Rectangles and circles are outlines and only hit near their stroke;
    highlights, text and legacy boxes hit anywhere inside.
    """
    if not annotation.visible:
        return False

    slop = tolerance + (annotation.stroke_width or 2) / 2

    if annotation.type == AnnotationType.ARROW:
        start = Point(annotation.x, annotation.y)
        end = Point(annotation.x + annotation.width, annotation.y + annotation.height)
        return perpendicular_distance(point, start, end) <= slop

    if annotation.type == AnnotationType.FREE_DRAW:
        points = points_of(annotation)
        if not points:
            return False
        return distance_to_polyline(point, points) <= slop

    box = annotation_box(annotation)

    if annotation.type == AnnotationType.RECTANGLE:
        outer = box.contains(point, slop)
        inner = (
            box.width > 2 * slop
            and box.height > 2 * slop
            and box.contains(point, -slop)
        )
        return outer and not inner

    if annotation.type == AnnotationType.CIRCLE:
        a = box.width / 2
        b = box.height / 2
        if a == 0 or b == 0:
            return box.contains(point, slop)
        cx = box.x + a
        cy = box.y + b
        # Radial distance to the ellipse outline, approximated along the ray
        nx = (point.x - cx) / a
        ny = (point.y - cy) / b
        norm = math.hypot(nx, ny)
        if norm == 0:
            return min(a, b) <= slop
        edge_x = cx + (point.x - cx) / norm
        edge_y = cy + (point.y - cy) / norm
        return distance(point, Point(edge_x, edge_y)) <= slop

    return box.contains(point, tolerance)


def find_annotation_at(
    annotations: Sequence[Annotation],
    point: Point,
    tolerance: float = 0.0,
) -> Optional[Annotation]:
    """Find the top-most annotation at a document-space point."""
    for annotation in reversed(annotations):
        if hit_test(annotation, point, tolerance):
            return annotation
    return None
