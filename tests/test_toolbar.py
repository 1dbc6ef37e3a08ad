"""Tests for floating toolbar placement."""

import pytest
from PySide6.QtCore import QRectF, QSizeF

from slateink.editor.toolbar import compute_toolbar_position, toolbar_candidates

VIEWPORT = QSizeF(800, 600)
TOOLBAR = QSizeF(120, 36)


def test_candidate_order():
    selection = QRectF(200, 200, 100, 50)
    candidates = toolbar_candidates(selection, TOOLBAR, 8)
    assert candidates == [
        (308, 156),
        (308, 258),
        (72, 156),
        (72, 258),
        (190, 156),
        (190, 258),
    ]


def test_prefers_right_above_when_clear():
    # Selection small enough that right-above clears the handle margin
    selection = QRectF(300, 300, 20, 20)
    position = compute_toolbar_position(selection, TOOLBAR, VIEWPORT, padding=16, handle_padding=12)
    assert (position.x(), position.y()) == (336, 248)


def test_avoids_clamping_into_selection():
    # Right-above would be clamped into the top edge over the selection
    selection = QRectF(300, 10, 200, 100)
    position = compute_toolbar_position(selection, TOOLBAR, VIEWPORT)
    assert (position.x(), position.y()) == (508, 118)


@pytest.mark.parametrize("x, y, w, h", [
    (700, 550, 90, 40),
    (780, 590, 20, 10),
    (600, 500, 200, 100),
    (790, 300, 10, 300),
    (0, 560, 800, 40),
])
def test_near_bottom_right_stays_inside(x, y, w, h):
    selection = QRectF(x, y, w, h)
    position = compute_toolbar_position(selection, TOOLBAR, VIEWPORT)
    assert 0 <= position.x() <= VIEWPORT.width() - TOOLBAR.width()
    assert 0 <= position.y() <= VIEWPORT.height() - TOOLBAR.height()


def test_tiny_viewport_pins_to_padding():
    position = compute_toolbar_position(QRectF(10, 10, 5, 5), TOOLBAR, QSizeF(50, 20))
    assert (position.x(), position.y()) == (8, 8)
