"""Three-level clock-face timing wheel: seconds, minutes and hours.

Timers are kept in one of 60 second slots, 60 minute slots or 12 hour
slots depending on how far away they are.  As the wheel turns, timers in
coarser slots are moved down until they land in a second slot and run.
"""

from __future__ import annotations

import argparse
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

__all__ = ["WheelNode", "ClockWheel", "now_time", "main"]

SECONDS = 60
MINUTES = 60
HOURS = 12
ONE_MINUTE = 60
ONE_HOUR = 3600
HALF_DAY = 43200

_MASK32 = 0xFFFFFFFF

_log = logging.getLogger(__name__)


def now_time() -> int:
    """Monotonic time in whole seconds."""
    return int(time.monotonic())


@dataclass(eq=False)
class WheelNode:
    """A scheduled timer; ``expire`` is the wheel tick it runs on."""

    expire: int
    callback: Callable[["WheelNode"], Any]
    cancel: bool = False


class ClockWheel:
    """Timer wheel with one tick per second of the supplied clock."""

    def __init__(self, clock: Optional[Callable[[], int]] = None) -> None:
        self._clock = clock if clock is not None else now_time
        self._second: list[list[WheelNode]] = [[] for _ in range(SECONDS)]
        self._minute: list[list[WheelNode]] = [[] for _ in range(MINUTES)]
        self._hour: list[list[WheelNode]] = [[] for _ in range(HOURS)]
        self._lock = threading.Lock()
        self.time = 0
        self.current_point = self._clock()

    def __len__(self) -> int:
        with self._lock:
            return sum(len(slot) for level in self._levels() for slot in level)

    def _levels(self) -> tuple:
        return (self._second, self._minute, self._hour)

    @staticmethod
    def _take(level: list, idx: int) -> list[WheelNode]:
        nodes = level[idx]
        level[idx] = []
        return nodes

    def _add_node(self, node: WheelNode) -> None:
        expire = node.expire
        msec = (expire - self.time) & _MASK32
        if msec < ONE_MINUTE:
            self._second[expire % SECONDS].append(node)
        elif msec < ONE_HOUR:
            self._minute[(expire // ONE_MINUTE) % MINUTES].append(node)
        else:
            self._hour[(expire // ONE_HOUR) % HOURS].append(node)

    def _remap(self, level: list, idx: int) -> None:
        for node in self._take(level, idx):
            self._add_node(node)

    def _shift(self) -> None:
        self.time = (self.time + 1) & _MASK32
        ct = self.time % HALF_DAY
        if ct == 0:
            self._remap(self._hour, 0)
            return
        if ct % SECONDS == 0:
            idx = (ct // ONE_MINUTE) % MINUTES
            if idx != 0:
                self._remap(self._minute, idx)
                return
            idx = (ct // ONE_HOUR) % HOURS
            if idx != 0:
                self._remap(self._hour, idx)

    def _execute(self) -> None:
        # Called with the lock held; callbacks run without it so they may
        # schedule new timers.
        idx = self.time % SECONDS
        while self._second[idx]:
            nodes = self._take(self._second, idx)
            self._lock.release()
            try:
                for node in nodes:
                    if not node.cancel:
                        node.callback(node)
            finally:
                self._lock.acquire()

    def add_timer(self, time: int, func: Callable[[WheelNode], Any]) -> Optional[WheelNode]:
        """Schedule ``func`` ``time`` ticks from now.

        A non-positive delay runs ``func`` at once and returns None.
        """
        node = WheelNode(0, func)
        with self._lock:
            node.expire = (time + self.time) & _MASK32
            _log.debug("add timer at %d, expire at %d, now_time at %d",
                       self.time, node.expire, self._clock())
            if time > 0:
                self._add_node(node)
                return node
        func(node)
        return None

    def del_timer(self, node: WheelNode) -> None:
        """Cancel a timer; it is dropped when its slot comes round."""
        node.cancel = True

    def update(self) -> None:
        """Turn the wheel by one tick, running whatever falls due."""
        with self._lock:
            self._execute()
            self._shift()
            self._execute()

    def advance(self) -> int:
        """Catch up with the clock; return how many ticks were taken."""
        cp = self._clock()
        if cp == self.current_point:
            return 0
        diff = (cp - self.current_point) & _MASK32
        self.current_point = cp
        for _ in range(diff):
            self.update()
        return diff

    def check_timer(self, stop: threading.Event, interval: float = 0.2) -> None:
        """Keep the wheel in step with the clock until ``stop`` is set."""
        while not stop.is_set():
            self.advance()
            stop.wait(interval)

    def clear(self) -> None:
        """Drop every pending timer."""
        with self._lock:
            for level in self._levels():
                for idx in range(len(level)):
                    level[idx] = []


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Run a clock-face timing wheel demo.")
    parser.add_argument("seconds", nargs="?", type=int, default=3,
                        help="delay of the demo timer in seconds")
    args = parser.parse_args(argv)

    stop = threading.Event()

    def do_timer(node: WheelNode) -> None:
        print(f"do_timer expired now_time:{now_time()}")
        stop.set()

    wheel = ClockWheel()
    wheel.add_timer(args.seconds, do_timer)
    wheel.check_timer(stop)
    wheel.clear()
    return 0