"""
Placement of the floating contextual toolbar.

The toolbar sits beside the selection without covering it or its resize
handles, and stays inside the viewport.
"""

from typing import List, Tuple

from PySide6.QtCore import QPointF, QRectF, QSizeF

DEFAULT_PADDING = 8
DEFAULT_HANDLE_PADDING = 12
OVERLAP_WEIGHT = 1000


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(value, high))


def _overlap_area(a: QRectF, b: QRectF) -> float:
    horizontal = max(0.0, min(a.right(), b.right()) - max(a.left(), b.left()))
    vertical = max(0.0, min(a.bottom(), b.bottom()) - max(a.top(), b.top()))
    return horizontal * vertical


def toolbar_candidates(
    selection: QRectF,
    toolbar_size: QSizeF,
    padding: float = DEFAULT_PADDING,
) -> List[Tuple[float, float]]:
    """
    Unclamped top-left positions, in preference order: right-above,
    right-below, left-above, left-below, centre-above, centre-below.
    """
    w = toolbar_size.width()
    h = toolbar_size.height()
    right = selection.x() + selection.width() + padding
    left = selection.x() - w - padding
    centre = selection.x() + (selection.width() - w) / 2
    above = selection.y() - h - padding
    below = selection.y() + selection.height() + padding
    return [
        (right, above),
        (right, below),
        (left, above),
        (left, below),
        (centre, above),
        (centre, below),
    ]


def compute_toolbar_position(
    selection: QRectF,
    toolbar_size: QSizeF,
    viewport_size: QSizeF,
    padding: float = DEFAULT_PADDING,
    handle_padding: float = DEFAULT_HANDLE_PADDING,
    overlap_weight: float = OVERLAP_WEIGHT,
) -> QPointF:
    """
    Choose the toolbar's top-left corner in screen space.

    Each candidate is clamped into the padded viewport, then scored by
    its overlap with the selection (inflated by handle_padding) times
    overlap_weight plus the Manhattan distance it was clamped. The
    lowest score wins; ties keep candidate order.

    Args:
        selection: Screen-space selection box.
        toolbar_size: Measured toolbar size.
        viewport_size: Rendered page size.

    Returns:
        The top-left corner for the toolbar.
    """
    w = toolbar_size.width()
    h = toolbar_size.height()
    min_left = padding
    min_top = padding
    max_left = max(padding, viewport_size.width() - w - padding)
    max_top = max(padding, viewport_size.height() - h - padding)

    guarded = selection.normalized().adjusted(
        -handle_padding, -handle_padding, handle_padding, handle_padding
    )

    best = QPointF(min_left, min_top)
    best_score = None
    for cand_left, cand_top in toolbar_candidates(selection.normalized(), toolbar_size, padding):
        left = _clamp(cand_left, min_left, max_left)
        top = _clamp(cand_top, min_top, max_top)
        overlap = _overlap_area(QRectF(left, top, w, h), guarded)
        travel = abs(left - cand_left) + abs(top - cand_top)
        score = overlap * overlap_weight + travel
        if best_score is None or score < best_score:
            best_score = score
            best = QPointF(left, top)

    return best
