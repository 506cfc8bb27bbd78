import pytest

from iolab.hierarchical_wheel import TIME_NEAR, TimeWheel, main


class FakeClock:
    def __init__(self, start=0):
        self.now = start

    def __call__(self):
        return self.now


def make_wheel():
    clock = FakeClock()
    return TimeWheel(clock), clock


@pytest.mark.parametrize("delay", [1, 255, 256, 300, 16383, 16384, 20000])
def test_timer_fires_on_its_tick(delay):
    wheel, _ = make_wheel()
    fired = []
    node = wheel.add_timer(delay, fired.append, 7)
    for _ in range(delay - 1):
        wheel.update()
    assert fired == []
    wheel.update()
    assert fired == [node]
    assert node.expire == delay
    assert node.id == 7
    assert len(wheel) == 0


def test_timer_one_near_wheel_away():
    wheel, _ = make_wheel()
    fired = []
    node = wheel.add_timer(TIME_NEAR, fired.append, 1)
    assert node.expire == 256
    for _ in range(255):
        wheel.update()
    assert fired == []
    wheel.update()
    assert fired == [node]


@pytest.mark.parametrize("delay", [0, -5])
def test_non_positive_delay_runs_at_once(delay):
    wheel, _ = make_wheel()
    fired = []
    assert wheel.add_timer(delay, fired.append, 3) is None
    assert len(fired) == 1
    assert fired[0].id == 3


def test_cancelled_timer_does_not_run():
    wheel, _ = make_wheel()
    fired = []
    node = wheel.add_timer(10, fired.append)
    wheel.del_timer(node)
    for _ in range(10):
        wheel.update()
    assert fired == []
    assert len(wheel) == 0


def test_same_slot_runs_in_insertion_order():
    wheel, _ = make_wheel()
    fired = []
    first = wheel.add_timer(300, fired.append, 1)
    second = wheel.add_timer(300, fired.append, 2)
    for _ in range(300):
        wheel.update()
    assert fired == [first, second]


def test_callback_can_rearm_itself():
    wheel, _ = make_wheel()
    period, ticks = 100, 1000
    fired = []

    def again(node):
        fired.append(node)
        wheel.add_timer(period, again, node.id)

    first = wheel.add_timer(period, again, 1)
    for _ in range(ticks):
        wheel.update()
    assert fired[0] is first
    assert [n.expire for n in fired] == list(range(period, ticks + 1, period))
    assert len(wheel) == 1


def test_expire_timer_follows_the_clock():
    wheel, clock = make_wheel()
    fired = []
    wheel.add_timer(40, fired.append)
    clock.now = 50
    assert wheel.expire_timer() == 50
    assert len(fired) == 1
    assert wheel.expire_timer() == 0
    assert wheel.time == 50


def test_clear_and_len():
    wheel, _ = make_wheel()
    fired = []
    for delay in (5, 500, 50000, 5000000, 500000000):
        wheel.add_timer(delay, fired.append)
    assert len(wheel) == 5
    wheel.clear()
    assert len(wheel) == 0
    for _ in range(6):
        wheel.update()
    assert fired == []


def test_main_runs_until_quit(capsys):
    assert main(["--duration", "50", "--threads", "1"]) == 0
    out = capsys.readouterr().out
    assert "---time = 1 ---" in out
    assert "all thread is closed" in out