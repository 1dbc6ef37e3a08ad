"""Tests for history grouping and schedulers."""

from slateink.editor.history import HistoryGroupCoordinator, QtScheduler


def test_begin_end_balanced(sink, scheduler):
    history = HistoryGroupCoordinator(sink, scheduler)
    history.begin_group()
    assert history.is_open
    history.end_group()
    history.end_group()
    assert not history.is_open
    assert sink.names() == ["begin", "end"]


def test_begin_closes_open_group(sink, scheduler):
    history = HistoryGroupCoordinator(sink, scheduler)
    history.begin_group()
    history.begin_group()
    history.end_group()
    assert sink.names() == ["begin", "end", "begin", "end"]


def test_nudges_within_window_share_group(sink, scheduler):
    history = HistoryGroupCoordinator(sink, scheduler, idle_ms=350)
    history.nudge()
    scheduler.advance(300)
    history.nudge()
    scheduler.advance(300)
    assert sink.names() == ["begin"]
    scheduler.advance(50)
    assert sink.names() == ["begin", "end"]
    assert not history.is_nudging


def test_nudge_after_other_group_starts_fresh(sink, scheduler):
    history = HistoryGroupCoordinator(sink, scheduler)
    history.begin_group()
    history.nudge()
    assert sink.names() == ["begin", "end", "begin"]


def test_end_cancels_idle_timer(sink, scheduler):
    history = HistoryGroupCoordinator(sink, scheduler)
    history.nudge()
    history.end_group()
    assert scheduler.pending == 0
    scheduler.advance(1000)
    assert sink.names() == ["begin", "end"]


def test_qt_scheduler_cancel_stops_timer():
    fired = []
    scheduler = QtScheduler()
    timer = scheduler.schedule(10_000, lambda: fired.append(True))
    assert timer.isActive()
    scheduler.cancel(timer)
    assert not timer.isActive()
    scheduler.cancel(None)
    assert fired == []
