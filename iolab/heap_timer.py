"""Timer queue kept in a binary min-heap, driven by millisecond deadlines."""

from __future__ import annotations

import argparse
import logging
import time
from typing import Any, Callable, Optional

from .minheap import HeapEntry, MinHeap

__all__ = ["HeapTimer", "current_time", "main"]

_MASK32 = 0xFFFFFFFF

_log = logging.getLogger(__name__)

Clock = Callable[[], int]


def current_time() -> int:
    """Monotonic time in milliseconds, truncated to 32 bits."""
    return (time.monotonic_ns() // 1_000_000) & _MASK32


def _signed32(value: int) -> int:
    value &= _MASK32
    return value - (1 << 32) if value & 0x80000000 else value


class HeapTimer:
    """One-shot timers ordered by expiry in a :class:`MinHeap`."""

    def __init__(self, clock: Optional[Clock] = None) -> None:
        self._clock = clock if clock is not None else current_time
        self._heap = MinHeap()

    def __len__(self) -> int:
        return len(self._heap)

    def add_timer(self, msec: int, callback: Callable[[HeapEntry], Any]) -> HeapEntry:
        """Schedule ``callback`` to run ``msec`` milliseconds from now."""
        entry = HeapEntry(time=(self._clock() + msec) & _MASK32, handler=callback)
        self._heap.push(entry)
        _log.debug("add timer time = %d now = %d", entry.time, self._clock())
        return entry

    def del_timer(self, entry: HeapEntry) -> bool:
        """Cancel a pending timer; return False if it was not pending."""
        try:
            self._heap.erase(entry)
        except ValueError:
            return False
        return True

    def find_nearest_expire_timer(self) -> int:
        """Milliseconds until the earliest timer is due, 0 if overdue, -1 if none."""
        entry = self._heap.top()
        if entry is None:
            return -1
        diff = _signed32(entry.time) - _signed32(self._clock())
        return diff if diff > 0 else 0

    def expire_timer(self) -> int:
        """Run every timer that is due; return how many ran."""
        now = self._clock()
        fired = 0
        while True:
            entry = self._heap.top()
            if entry is None or entry.time > now:
                break
            self._heap.pop()
            entry.handler(entry)
            fired += 1
        return fired


def _hello_world(entry: HeapEntry) -> None:
    print(f"hello world time = {entry.time}")


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Run a min-heap timer demo.")
    parser.add_argument("msec", nargs="?", type=int, default=3000,
                        help="delay of the demo timer in milliseconds")
    args = parser.parse_args(argv)

    timer = HeapTimer()
    timer.add_timer(args.msec, _hello_world)
    while True:
        nearest = timer.find_nearest_expire_timer()
        if nearest < 0:
            break
        time.sleep(nearest / 1000)
        timer.expire_timer()
    return 0