"""Timer queue ordered by (expiry, id), with lazy cancellation."""

from __future__ import annotations

import argparse
import heapq
import itertools
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

__all__ = ["TimerNode", "Timer", "main"]


def _steady_ms() -> int:
    return time.monotonic_ns() // 1_000_000


@dataclass(order=True)
class TimerNode:
    """A timer; nodes sort by expiry, then by id."""

    expire: int
    id: int
    func: Callable[["TimerNode"], Any] = field(compare=False, repr=False)


class Timer:
    """Timer set; ids grow by one for each timer added."""

    def __init__(self, clock: Optional[Callable[[], int]] = None) -> None:
        self._clock = clock if clock is not None else _steady_ms
        self._ids = itertools.count()
        self._nodes: dict[tuple[int, int], TimerNode] = {}
        self._heap: list[tuple[int, int]] = []

    def __len__(self) -> int:
        return len(self._nodes)

    def get_tick(self) -> int:
        """Current time in milliseconds."""
        return self._clock()

    def add_timer(self, msec: int, func: Callable[[TimerNode], Any]) -> TimerNode:
        """Schedule ``func`` to run ``msec`` milliseconds from now."""
        node = TimerNode(self.get_tick() + msec, next(self._ids), func)
        key = (node.expire, node.id)
        self._nodes[key] = node
        heapq.heappush(self._heap, key)
        return node

    def del_timer(self, node: TimerNode) -> bool:
        """Cancel a timer; return False if it was not pending."""
        return self._nodes.pop((node.expire, node.id), None) is not None

    def _first(self) -> Optional[TimerNode]:
        while self._heap:
            node = self._nodes.get(self._heap[0])
            if node is not None:
                return node
            heapq.heappop(self._heap)
        return None

    def handle_timer(self, now: int) -> int:
        """Run every timer expiring at or before ``now``; return how many ran."""
        fired = 0
        while True:
            node = self._first()
            if node is None or node.expire > now:
                break
            heapq.heappop(self._heap)
            del self._nodes[(node.expire, node.id)]
            node.func(node)
            fired += 1
        return fired

    def time_to_sleep(self) -> int:
        """Milliseconds until the earliest timer, 0 if overdue, -1 if none."""
        node = self._first()
        if node is None:
            return -1
        diff = node.expire - self.get_tick()
        return diff if diff > 0 else 0

    def next_deadline(self) -> Optional[int]:
        """Absolute expiry of the earliest timer, or None when there is none."""
        node = self._first()
        return None if node is None else node.expire


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Run an ordered-set timer demo.")
    parser.add_argument("delays", nargs="*", type=int, default=[1000, 1000, 3000],
                        help="timer delays in milliseconds")
    parser.add_argument("--cancelled", type=int, default=2100,
                        help="delay of a timer that is added and then cancelled")
    args = parser.parse_args(argv)

    timer = Timer()
    revoked = 0

    def report(node: TimerNode) -> None:
        nonlocal revoked
        revoked += 1
        print(f"{timer.get_tick()} node id:{node.id} revoked times:{revoked}")

    for delay in args.delays:
        timer.add_timer(delay, report)
    cancelled = timer.add_timer(args.cancelled, report)
    timer.del_timer(cancelled)

    print(f"now time:{timer.get_tick()}")
    while True:
        wait = timer.time_to_sleep()
        if wait < 0:
            break
        time.sleep(wait / 1000)
        timer.handle_timer(timer.get_tick())
    return 0