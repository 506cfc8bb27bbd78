import pytest

from iolab.rbtree_timer import RBTreeTimer, main


class FakeClock:
    def __init__(self, now=0):
        self.now = now

    def __call__(self):
        return self.now


def test_fires_in_order():
    clock = FakeClock()
    timer = RBTreeTimer(clock)
    fired = []
    for delay in (50, 10, 30, 20, 40):
        timer.add_timer(delay, lambda e: fired.append(e.key))
    clock.now = 100
    assert timer.expire_timer() == 5
    assert fired == sorted(fired)
    assert len(fired) == 5
    assert timer.tree.is_empty()


def test_only_due_timers_fire():
    clock = FakeClock()
    timer = RBTreeTimer(clock)
    fired = []
    timer.add_timer(10, lambda e: fired.append(e.key))
    timer.add_timer(100, lambda e: fired.append(e.key))
    clock.now = 50
    assert timer.expire_timer() == 1
    assert fired == [10]
    assert [n.key for n in timer.tree] == [100]


def test_find_nearest():
    clock = FakeClock()
    timer = RBTreeTimer(clock)
    assert timer.find_nearest_expire_timer() == -1
    timer.add_timer(300, lambda e: None)
    timer.add_timer(200, lambda e: None)
    assert timer.find_nearest_expire_timer() == 200
    clock.now = 500
    assert timer.find_nearest_expire_timer() == 0


def test_nearest_across_wrap_around():
    clock = FakeClock(0xFFFFFFF0)
    timer = RBTreeTimer(clock)
    entry = timer.add_timer(0x20, lambda e: None)
    assert entry.key < clock.now
    assert timer.find_nearest_expire_timer() == 0x20


def test_del_timer():
    clock = FakeClock()
    timer = RBTreeTimer(clock)
    fired = []
    gone = timer.add_timer(5, fired.append)
    keep = timer.add_timer(6, fired.append)
    timer.del_timer(gone)
    with pytest.raises(ValueError):
        timer.del_timer(gone)
    clock.now = 10
    timer.expire_timer()
    assert fired == [keep]


def test_main_runs_demo(capsys):
    assert main(["0"]) == 0
    assert "hello world time =" in capsys.readouterr().out