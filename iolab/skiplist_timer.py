"""Timer queue kept in a skip list ordered by expiry."""

from __future__ import annotations

import argparse
import logging
import time
from typing import Any, Callable, Optional

from .heap_timer import current_time
from .skiplist import SkipList, SkipListNode

__all__ = ["SkipListTimer", "main"]

_MASK32 = 0xFFFFFFFF

_log = logging.getLogger(__name__)


class SkipListTimer:
    """One-shot timers whose expiry is the score of a skip-list node."""

    def __init__(self, clock: Optional[Callable[[], int]] = None, rng: Any = None) -> None:
        self._clock = clock if clock is not None else current_time
        self.list = SkipList(rng)

    def __len__(self) -> int:
        return len(self.list)

    def add_timer(self, msec: int, handler: Callable[[SkipListNode], Any]) -> SkipListNode:
        """Schedule ``handler`` to run ``msec`` milliseconds from now."""
        score = (msec + self._clock()) & _MASK32
        _log.debug("add_timer expire at msec = %d", score)
        return self.list.insert(score, handler)

    def del_timer(self, node: SkipListNode) -> Optional[SkipListNode]:
        """Remove the first timer with the node's expiry; return it or None."""
        return self.list.delete(node)

    def expire_timer(self) -> int:
        """Run every timer that is due; return how many ran."""
        now = self._clock()
        fired = 0
        while True:
            node = self.list.minimum()
            if node is None or node.score > now:
                break
            _log.debug("touch timer expire time=%d, now = %d", node.score, now)
            self.list.delete_head()
            node.handler(node)
            fired += 1
        return fired


def _print_hello(node: SkipListNode) -> None:
    print(f"hello world time = {node.score}")


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Run a skip-list timer demo.")
    parser.add_argument("delays", nargs="*", type=int,
                        default=[3010, 4004, 5008, 7003],
                        help="timer delays in milliseconds")
    parser.add_argument("--cancelled", type=int, default=3005,
                        help="delay of a timer that is added and then cancelled")
    args = parser.parse_args(argv)

    timer = SkipListTimer()
    for delay in args.delays:
        timer.add_timer(delay, _print_hello)
    cancelled = timer.add_timer(args.cancelled, _print_hello)
    timer.del_timer(cancelled)
    while len(timer):
        timer.expire_timer()
        time.sleep(0.01)
    return 0