import pytest

from core.timers import ManualScheduler, TimerSlot


def test_manual_scheduler_fires_in_due_order() -> None:
    scheduler = ManualScheduler()
    fired: list[str] = []
    scheduler.call_later(200, lambda: fired.append("b"))
    scheduler.call_later(100, lambda: fired.append("a"))
    scheduler.call_later(500, lambda: fired.append("c"))

    assert scheduler.advance(250) == 2
    assert fired == ["a", "b"]
    assert scheduler.now_ms() == 250
    assert len(scheduler.pending) == 1


def test_cancelled_timer_never_fires() -> None:
    scheduler = ManualScheduler()
    fired: list[int] = []
    timer = scheduler.call_later(100, lambda: fired.append(1))
    timer.cancel()
    timer.cancel()

    assert scheduler.advance(1000) == 0
    assert fired == []
    assert not timer.active


def test_callbacks_can_reschedule_within_one_advance() -> None:
    scheduler = ManualScheduler()
    fired: list[float] = []

    def tick() -> None:
        fired.append(scheduler.now_ms())
        scheduler.call_later(100, tick)

    scheduler.call_later(100, tick)
    scheduler.advance(350)
    assert fired == [100, 200, 300]


def test_set_time_rejects_going_backwards() -> None:
    scheduler = ManualScheduler(start_ms=1000)
    with pytest.raises(ValueError):
        scheduler.set_time(500)


def test_timer_slot_supersedes_previous_timer() -> None:
    scheduler = ManualScheduler()
    slot = TimerSlot(scheduler, "test")
    fired: list[str] = []
    slot.schedule(300, lambda: fired.append("first"))
    scheduler.advance(100)
    slot.schedule(300, lambda: fired.append("second"))

    scheduler.advance(1000)
    assert fired == ["second"]
    assert not slot.active


def test_timer_slot_cancel() -> None:
    scheduler = ManualScheduler()
    slot = TimerSlot(scheduler, "test")
    slot.schedule(100, lambda: None)
    assert slot.active
    slot.cancel()
    assert not slot.active
    assert scheduler.pending == []
