import pytest

from smilecam.reaction.timers import ManualClock, TimerRegistry


def test_timers_fire_in_due_order(clock):
    timers = TimerRegistry(clock)
    fired = []
    timers.schedule(2.0, lambda: fired.append("b"))
    timers.schedule(0.5, lambda: fired.append("a"))
    assert timers.pending == 2
    assert timers.next_due() == clock() + 0.5

    clock.advance(0.4)
    assert timers.run_due() == 0
    clock.advance(0.1)
    assert timers.run_due() == 1
    clock.advance(5)
    timers.run_due()
    assert fired == ["a", "b"]
    assert timers.pending == 0


def test_failing_callback_does_not_block_others(clock):
    timers = TimerRegistry(clock)
    fired = []

    def boom():
        raise RuntimeError("boom")

    timers.schedule(0.1, boom, name="boom")
    timers.schedule(0.1, lambda: fired.append(1))
    clock.advance(1)
    assert timers.run_due() == 2
    assert fired == [1]


def test_clear_drops_pending(clock):
    timers = TimerRegistry(clock)
    timers.schedule(1.0, lambda: pytest.fail("should not run"))
    timers.clear()
    clock.advance(2)
    assert timers.run_due() == 0


def test_manual_clock_rejects_negative_advance():
    c = ManualClock()
    with pytest.raises(ValueError):
        c.advance(-1)
