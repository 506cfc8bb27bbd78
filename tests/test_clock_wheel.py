import threading

import pytest

from iolab.clock_wheel import ClockWheel, main


class FakeClock:
    def __init__(self, start=0):
        self.now = start

    def __call__(self):
        return self.now


class TickingClock:
    """Moves forward by one on every reading."""

    def __init__(self):
        self.now = 0

    def __call__(self):
        self.now += 1
        return self.now


def make_wheel():
    clock = FakeClock()
    return ClockWheel(clock), clock


@pytest.mark.parametrize("delay", [1, 3, 59, 60, 61, 125, 3599, 3600, 3700])
def test_timer_fires_on_its_tick(delay):
    wheel, _ = make_wheel()
    fired = []
    node = wheel.add_timer(delay, fired.append)
    for _ in range(delay - 1):
        wheel.update()
    assert fired == []
    wheel.update()
    assert fired == [node]
    assert node.expire == delay
    assert len(wheel) == 0


@pytest.mark.parametrize("delay", [0, -2])
def test_non_positive_delay_runs_at_once(delay):
    wheel, _ = make_wheel()
    fired = []
    result = wheel.add_timer(delay, fired.append)
    assert result is None
    assert len(fired) == 1
    assert len(wheel) == 0


def test_cancelled_timer_does_not_run():
    wheel, _ = make_wheel()
    fired = []
    node = wheel.add_timer(5, fired.append)
    wheel.del_timer(node)
    assert node.cancel is True
    assert len(wheel) == 1
    for _ in range(5):
        wheel.update()
    assert fired == []
    assert len(wheel) == 0


def test_len_counts_timers_on_every_level():
    wheel, _ = make_wheel()
    for delay in (10, 600, 7200):
        wheel.add_timer(delay, lambda node: None)
    assert len(wheel) == 3


def test_same_slot_runs_in_insertion_order():
    wheel, _ = make_wheel()
    fired = []
    first = wheel.add_timer(4, fired.append)
    second = wheel.add_timer(4, fired.append)
    for _ in range(4):
        wheel.update()
    assert fired == [first, second]


def test_callback_can_rearm_itself():
    wheel, _ = make_wheel()
    period, ticks = 2, 10
    fired = []

    def again(node):
        fired.append(node)
        wheel.add_timer(period, again)

    first = wheel.add_timer(period, again)
    for _ in range(ticks):
        wheel.update()
    assert fired[0] is first
    assert [n.expire for n in fired] == list(range(period, ticks + 1, period))
    assert wheel.time == ticks
    assert len(wheel) == 1


def test_advance_follows_the_clock():
    wheel, clock = make_wheel()
    fired = []
    wheel.add_timer(3, fired.append)
    clock.now = 4
    assert wheel.advance() == 4
    assert len(fired) == 1
    assert wheel.advance() == 0
    assert wheel.time == 4


def test_check_timer_stops_when_event_is_set():
    wheel = ClockWheel(TickingClock())
    stop = threading.Event()
    fired = []

    def done(node):
        fired.append(node)
        stop.set()

    wheel.add_timer(3, done)
    wheel.check_timer(stop, 0)
    assert len(fired) == 1
    assert wheel.time == 3


def test_clear_drops_pending_timers():
    wheel, _ = make_wheel()
    fired = []
    wheel.add_timer(2, fired.append)
    wheel.add_timer(200, fired.append)
    wheel.clear()
    assert len(wheel) == 0
    for _ in range(3):
        wheel.update()
    assert fired == []


def test_main_reports_expired_timer(capsys):
    assert main(["0"]) == 0
    assert "do_timer expired now_time:" in capsys.readouterr().out