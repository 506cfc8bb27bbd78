"""Hierarchical timing wheel with a 256-slot near wheel and four outer levels.

Timers within 256 ticks sit in the near wheel; farther ones sit in one of
four 64-slot levels and cascade inwards as the wheel turns.
"""

from __future__ import annotations

import argparse
import logging
import random
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

__all__ = [
    "TIME_NEAR_SHIFT", "TIME_NEAR", "TIME_LEVEL_SHIFT", "TIME_LEVEL",
    "TimerNode", "TimeWheel", "gettime", "main",
]

TIME_NEAR_SHIFT = 8
TIME_NEAR = 1 << TIME_NEAR_SHIFT
TIME_LEVEL_SHIFT = 6
TIME_LEVEL = 1 << TIME_LEVEL_SHIFT
TIME_NEAR_MASK = TIME_NEAR - 1
TIME_LEVEL_MASK = TIME_LEVEL - 1

_MASK32 = 0xFFFFFFFF

_log = logging.getLogger(__name__)


def gettime() -> int:
    """Monotonic time in milliseconds."""
    return time.monotonic_ns() // 1_000_000


@dataclass(eq=False)
class TimerNode:
    """A scheduled timer carrying the id of the thread that set it."""

    expire: int
    callback: Callable[["TimerNode"], Any]
    id: int = 0
    cancel: bool = False


class TimeWheel:
    """Hierarchical timer wheel with one tick per millisecond of the clock."""

    def __init__(self, clock: Optional[Callable[[], int]] = None) -> None:
        self._clock = clock if clock is not None else gettime
        self._near: list[list[TimerNode]] = [[] for _ in range(TIME_NEAR)]
        self._levels: list[list[list[TimerNode]]] = [
            [[] for _ in range(TIME_LEVEL)] for _ in range(4)
        ]
        self._lock = threading.Lock()
        self.time = 0
        self.current_point = self._clock()

    def __len__(self) -> int:
        with self._lock:
            return sum(len(s) for s in self._near) + sum(
                len(s) for level in self._levels for s in level
            )

    def _add_node(self, node: TimerNode) -> None:
        expire = node.expire
        msec = (expire - self.time) & _MASK32
        if msec < TIME_NEAR:
            self._near[expire & TIME_NEAR_MASK].append(node)
            return
        for level in range(3):
            if msec < 1 << (TIME_NEAR_SHIFT + (level + 1) * TIME_LEVEL_SHIFT):
                break
        else:
            level = 3
        shift = TIME_NEAR_SHIFT + level * TIME_LEVEL_SHIFT
        self._levels[level][(expire >> shift) & TIME_LEVEL_MASK].append(node)

    def _move_list(self, level: int, idx: int) -> None:
        nodes = self._levels[level][idx]
        self._levels[level][idx] = []
        for node in nodes:
            self._add_node(node)

    def _shift(self) -> None:
        self.time = (self.time + 1) & _MASK32
        ct = self.time
        if ct == 0:
            self._move_list(3, 0)
            return
        mask = TIME_NEAR
        t = ct >> TIME_NEAR_SHIFT
        level = 0
        while ct & (mask - 1) == 0:
            idx = t & TIME_LEVEL_MASK
            if idx != 0:
                self._move_list(level, idx)
                break
            mask <<= TIME_LEVEL_SHIFT
            t >>= TIME_LEVEL_SHIFT
            level += 1

    def _execute(self) -> None:
        # Called with the lock held; callbacks run without it.
        idx = self.time & TIME_NEAR_MASK
        while self._near[idx]:
            nodes = self._near[idx]
            self._near[idx] = []
            self._lock.release()
            try:
                for node in nodes:
                    if not node.cancel:
                        node.callback(node)
            finally:
                self._lock.acquire()

    def add_timer(self, time: int, func: Callable[[TimerNode], Any],
                  thread_id: int = 0) -> Optional[TimerNode]:
        """Schedule ``func`` ``time`` ticks from now on behalf of ``thread_id``.

        A non-positive delay runs ``func`` at once and returns None.
        """
        node = TimerNode(0, func, thread_id)
        with self._lock:
            node.expire = (time + self.time) & _MASK32
            if time > 0:
                self._add_node(node)
                return node
        func(node)
        return None

    def del_timer(self, node: TimerNode) -> None:
        """Cancel a timer; it is dropped when its slot comes round."""
        node.cancel = True

    def update(self) -> None:
        """Turn the wheel by one tick, running whatever falls due."""
        with self._lock:
            self._execute()
            self._shift()
            self._execute()

    def expire_timer(self) -> int:
        """Catch up with the clock; return how many ticks were taken."""
        cp = self._clock()
        if cp == self.current_point:
            return 0
        diff = (cp - self.current_point) & _MASK32
        self.current_point = cp
        for _ in range(diff):
            self.update()
        return diff

    def clear(self) -> None:
        """Drop every pending timer."""
        with self._lock:
            self._near = [[] for _ in range(TIME_NEAR)]
            self._levels = [[[] for _ in range(TIME_LEVEL)] for _ in range(4)]


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Run a hierarchical timing wheel demo.")
    parser.add_argument("--threads", type=int, default=2, help="number of worker threads")
    parser.add_argument("--duration", type=int, default=6000,
                        help="milliseconds until the demo quits")
    parser.add_argument("--period", type=int, default=100,
                        help="milliseconds between repeated timers")
    args = parser.parse_args(argv)

    wheel = TimeWheel()
    quit_event = threading.Event()
    rng = random.Random()
    ticks = 0

    def do_timer(node: TimerNode) -> None:
        print(f"do_timer expired:{node.expire} - thread-id:{node.id}")
        wheel.add_timer(args.period, do_timer, node.id)

    def do_clock(node: TimerNode) -> None:
        nonlocal ticks
        ticks += 1
        print(f"---time = {ticks} ---")
        wheel.add_timer(args.period, do_clock, node.id)

    def do_quit(node: TimerNode) -> None:
        quit_event.set()

    def worker(worker_id: int) -> None:
        wheel.add_timer(rng.randrange(200), do_timer, worker_id)
        quit_event.wait()
        print(f"thread_worker:{worker_id} exit!")

    wheel.add_timer(args.duration, do_quit, 100)
    wheel.add_timer(0, do_clock, 100)
    threads = [threading.Thread(target=worker, args=(i,)) for i in range(args.threads)]
    for thread in threads:
        thread.start()

    while not quit_event.is_set():
        wheel.expire_timer()
        time.sleep(0.00025)
    wheel.clear()
    for thread in threads:
        thread.join()
    print("all thread is closed")
    return 0