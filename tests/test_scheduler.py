from __future__ import annotations

from towerflip.engine.scheduler import Scheduler


def test_tasks_run_in_due_then_insertion_order() -> None:
    s = Scheduler()
    ran: list[str] = []
    s.schedule(1.0, "late", lambda: ran.append("late"))
    s.schedule(0.5, "early", lambda: ran.append("early"))
    s.schedule(0.5, "early2", lambda: ran.append("early2"))
    assert s.advance(0.6) == 2
    assert ran == ["early", "early2"]
    assert s.pending_labels() == ["late"]
    s.advance(0.4)
    assert ran == ["early", "early2", "late"]
    assert s.idle


def test_zero_delay_follow_up_runs_in_same_advance() -> None:
    s = Scheduler()
    ran: list[str] = []
    s.schedule(0.1, "first", lambda: s.schedule(0.0, "second", lambda: ran.append("second")))
    s.advance(0.2)
    assert ran == ["second"]


def test_cancel_all_drops_pending_work() -> None:
    s = Scheduler()
    ran: list[str] = []
    s.schedule(1.0, "a", lambda: ran.append("a"))
    s.schedule(2.0, "b", lambda: ran.append("b"))
    assert s.cancel_all() == 2
    assert s.run_until_idle() == 0
    assert ran == []


def test_non_blocking_tasks_do_not_make_scheduler_busy() -> None:
    s = Scheduler()
    s.schedule(2.5, "peek_hide", lambda: None, blocking=False)
    assert not s.busy
    assert not s.idle
    s.schedule(1.0, "mismatch", lambda: None)
    assert s.busy


def test_run_next_moves_clock_to_task() -> None:
    s = Scheduler()
    s.schedule(1.5, "x", lambda: None)
    assert s.run_next()
    assert s.now == 1.5
    assert not s.run_next()
