"""
Geometry primitives for SlateInk.

Pure functions used by the annotation engine and by renderers:
- Point / BoundingBox value types (document space)
- Douglas-Peucker polyline simplification
- Catmull-Rom derived cubic path smoothing for freehand strokes

Nothing in here keeps state, and every function is total over its
documented input: degenerate input (duplicate points, zero-length
baselines) yields a well-defined result instead of an exception.
"""

import math
from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

from PySide6.QtCore import QPointF, QRectF
from PySide6.QtGui import QPainterPath

# Douglas-Peucker tolerance applied before smoothing (document units)
SIMPLIFY_TOLERANCE = 1.5

# Catmull-Rom tension used to derive the cubic control points
CURVE_TENSION = 0.5


@dataclass(frozen=True)
class Point:
    """A point in document (unscaled) coordinates."""
    x: float
    y: float

    def offset(self, dx: float, dy: float) -> "Point":
        return Point(self.x + dx, self.y + dy)

    def scaled(self, factor: float) -> "Point":
        return Point(self.x * factor, self.y * factor)

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y}

    def to_qpointf(self) -> QPointF:
        return QPointF(self.x, self.y)

    @classmethod
    def from_qpointf(cls, point: QPointF) -> "Point":
        return cls(point.x(), point.y())


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned box in document coordinates."""
    x: float
    y: float
    width: float
    height: float

    @property
    def left(self) -> float:
        return self.x

    @property
    def top(self) -> float:
        return self.y

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def contains(self, point: Point, margin: float = 0.0) -> bool:
        return (
            self.left - margin <= point.x <= self.right + margin
            and self.top - margin <= point.y <= self.bottom + margin
        )

    def to_qrectf(self) -> QRectF:
        return QRectF(self.x, self.y, self.width, self.height)


def distance(a: Point, b: Point) -> float:
    """Euclidean distance between two points."""
    return math.hypot(a.x - b.x, a.y - b.y)


def perpendicular_distance(point: Point, line_start: Point, line_end: Point) -> float:
    """
    Distance from a point to the segment line_start..line_end.

    When the segment has zero length the distance to line_start is
    returned, so coincident endpoints never divide by zero.
    """
    dx = line_end.x - line_start.x
    dy = line_end.y - line_start.y
    length_sq = dx * dx + dy * dy

    if length_sq == 0:
        return distance(point, line_start)

    t = ((point.x - line_start.x) * dx + (point.y - line_start.y) * dy) / length_sq
    t = max(0.0, min(1.0, t))

    proj_x = line_start.x + t * dx
    proj_y = line_start.y + t * dy
    return math.hypot(point.x - proj_x, point.y - proj_y)


def distance_to_polyline(point: Point, points: Sequence[Point]) -> float:
    """Smallest distance from point to any segment of the polyline."""
    if not points:
        return math.inf
    if len(points) == 1:
        return distance(point, points[0])
    return min(
        perpendicular_distance(point, points[i], points[i + 1])
        for i in range(len(points) - 1)
    )


def simplify(points: Sequence[Point], tolerance: float) -> List[Point]:
    """
    Douglas-Peucker simplification.

    Inputs of two points or fewer are returned unchanged. Otherwise the
    interior point farthest from the first..last baseline splits the run
    when its distance exceeds tolerance; runs within tolerance collapse to
    their endpoints. The first and last points are always kept.

    Uses an explicit work stack so long freehand strokes never hit the
    interpreter recursion limit.
    """
    if len(points) <= 2:
        return list(points)

    keep = [False] * len(points)
    keep[0] = True
    keep[-1] = True

    stack: List[Tuple[int, int]] = [(0, len(points) - 1)]
    while stack:
        first, last = stack.pop()
        if last - first < 2:
            continue

        start = points[first]
        end = points[last]
        max_dist = 0.0
        max_index = first
        for i in range(first + 1, last):
            dist = perpendicular_distance(points[i], start, end)
            if dist > max_dist:
                max_dist = dist
                max_index = i

        if max_dist > tolerance:
            keep[max_index] = True
            stack.append((max_index, last))
            stack.append((first, max_index))

    return [p for p, kept in zip(points, keep) if kept]


@dataclass(frozen=True)
class PathCommand:
    """One path instruction: "M" (move), "L" (line) or "C" (cubic)."""
    op: str
    points: Tuple[Point, ...]


@dataclass(frozen=True)
class SmoothPath:
    """
    Screen-space path description produced by smooth_path().

    Renders to an SVG path string or a QPainterPath.
    """
    commands: Tuple[PathCommand, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.commands

    @property
    def is_curve(self) -> bool:
        return any(cmd.op == "C" for cmd in self.commands)

    @property
    def start(self) -> Point:
        if not self.commands:
            raise ValueError("Empty path has no start point")
        return self.commands[0].points[0]

    def to_svg(self) -> str:
        parts = []
        for cmd in self.commands:
            coords = " ".join(f"{_fmt(p.x)},{_fmt(p.y)}" for p in cmd.points)
            parts.append(f"{cmd.op} {coords}")
        return " ".join(parts)

    def to_painter_path(self) -> QPainterPath:
        path = QPainterPath()
        for cmd in self.commands:
            if cmd.op == "M":
                path.moveTo(cmd.points[0].to_qpointf())
            elif cmd.op == "L":
                path.lineTo(cmd.points[0].to_qpointf())
            elif cmd.op == "C":
                c1, c2, end = cmd.points
                path.cubicTo(c1.to_qpointf(), c2.to_qpointf(), end.to_qpointf())
        return path


def _fmt(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def smooth_path(
    points: Sequence[Point],
    scale: float = 1.0,
    tolerance: float = SIMPLIFY_TOLERANCE,
) -> SmoothPath:
    """
    Build a smooth path through a freehand stroke.

    Args:
        points: Stroke points in document coordinates.
        scale: Document-to-screen zoom factor applied to the output.
        tolerance: Simplification tolerance in document units.

    Returns:
        Empty path for fewer than two points, a single straight segment
        for exactly two, otherwise a chain of cubic segments passing
        through every simplified point with continuous tangents.
    """
    if len(points) < 2:
        return SmoothPath()

    if len(points) == 2:
        return SmoothPath((
            PathCommand("M", (points[0].scaled(scale),)),
            PathCommand("L", (points[1].scaled(scale),)),
        ))

    simplified = simplify(points, tolerance)
    if len(simplified) < 2:
        return SmoothPath()

    scaled = [p.scaled(scale) for p in simplified]
    last = len(scaled) - 1
    commands = [PathCommand("M", (scaled[0],))]

    for i in range(last):
        p0 = scaled[max(0, i - 1)]
        p1 = scaled[i]
        p2 = scaled[min(last, i + 1)]
        p3 = scaled[min(last, i + 2)]

        cp1 = Point(
            p1.x + (p2.x - p0.x) * CURVE_TENSION / 3,
            p1.y + (p2.y - p0.y) * CURVE_TENSION / 3,
        )
        cp2 = Point(
            p2.x - (p3.x - p1.x) * CURVE_TENSION / 3,
            p2.y - (p3.y - p1.y) * CURVE_TENSION / 3,
        )
        commands.append(PathCommand("C", (cp1, cp2, p2)))

    return SmoothPath(tuple(commands))
