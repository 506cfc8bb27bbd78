"""Timer queue kept in a red-black tree with wrap-around key order."""

from __future__ import annotations

import argparse
import logging
import time
from typing import Any, Callable, Optional

from .heap_timer import current_time
from .rbtree import RBNode, RBTree, insert_timer_value

__all__ = ["TimerEntry", "RBTreeTimer", "main"]

_MASK32 = 0xFFFFFFFF

_log = logging.getLogger(__name__)


def _signed32(value: int) -> int:
    value &= _MASK32
    return value - (1 << 32) if value & 0x80000000 else value


class TimerEntry:
    """A pending timer: its tree node and the handler to run."""

    __slots__ = ("node", "handler")

    def __init__(self, key: int, handler: Callable[["TimerEntry"], Any]) -> None:
        self.node = RBNode(key, self)
        self.handler = handler

    @property
    def key(self) -> int:
        """Expiry time in milliseconds."""
        return self.node.key

    def __repr__(self) -> str:
        return f"TimerEntry(key={self.key})"


class RBTreeTimer:
    """One-shot timers ordered by expiry in a red-black tree."""

    def __init__(self, clock: Optional[Callable[[], int]] = None) -> None:
        self._clock = clock if clock is not None else current_time
        self.tree = RBTree(insert_timer_value)

    def add_timer(self, msec: int, handler: Callable[[TimerEntry], Any]) -> TimerEntry:
        """Schedule ``handler`` to run ``msec`` milliseconds from now."""
        key = (msec + self._clock()) & _MASK32
        _log.debug("add_timer expire at msec = %d", key)
        entry = TimerEntry(key, handler)
        self.tree.insert(entry.node)
        return entry

    def del_timer(self, entry: TimerEntry) -> None:
        """Cancel a pending timer; raise ValueError if it is not pending."""
        if entry.node.left is None:
            raise ValueError("timer is not pending")
        self.tree.delete(entry.node)

    def find_nearest_expire_timer(self) -> int:
        """Milliseconds until the earliest timer is due, 0 if overdue, -1 if none."""
        node = self.tree.minimum()
        if node is None:
            return -1
        diff = _signed32(node.key) - _signed32(self._clock())
        return diff if diff > 0 else 0

    def expire_timer(self) -> int:
        """Run every timer that is due; return how many ran."""
        now = self._clock()
        fired = 0
        while True:
            node = self.tree.minimum()
            if node is None or node.key > now:
                break
            _log.debug("touch timer expire time=%d, now = %d", node.key, now)
            entry: TimerEntry = node.data
            self.tree.delete(node)
            entry.handler(entry)
            fired += 1
        return fired


def _hello_world(entry: TimerEntry) -> None:
    print(f"hello world time = {entry.key}")


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Run a red-black tree timer demo.")
    parser.add_argument("msec", nargs="?", type=int, default=3000,
                        help="delay of the demo timer in milliseconds")
    args = parser.parse_args(argv)

    timer = RBTreeTimer()
    timer.add_timer(args.msec, _hello_world)
    while True:
        nearest = timer.find_nearest_expire_timer()
        if nearest < 0:
            break
        time.sleep(nearest / 1000)
        timer.expire_timer()
    return 0