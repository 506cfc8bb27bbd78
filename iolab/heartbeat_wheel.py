"""Single-level timing wheel that drops idle connections.

Every heartbeat adds a reference to a connection in the slot ``expire``
ticks ahead; when the wheel reaches that slot the reference is released.
A connection whose references all run out is reported as dead.
"""

from __future__ import annotations

import argparse
import time
from dataclasses import dataclass
from typing import Callable, Optional

__all__ = ["Connection", "HeartbeatWheel", "main"]

TW_SIZE = 16
EXPIRE = 10


@dataclass(eq=False)
class Connection:
    """A connection and the number of heartbeats still pending for it."""

    id: int
    used: int = 0


def _report(conn: Connection, killed: bool) -> None:
    if killed:
        print(f"fd:{conn.id} kill down")
    else:
        print(f"fd:{conn.id} used:{conn.used}")


class HeartbeatWheel:
    """Wheel of ``size`` slots; a heartbeat lives for ``expire`` ticks."""

    def __init__(self, size: int = TW_SIZE, expire: int = EXPIRE,
                 on_event: Optional[Callable[[Connection, bool], None]] = None) -> None:
        if size <= 0:
            raise ValueError("wheel size must be positive")
        if expire < 0:
            raise ValueError("expiry must not be negative")
        self.size = size
        self.expire = expire
        self.tick = 0
        self._on_event = on_event if on_event is not None else _report
        self._slots: list[list[Connection]] = [[] for _ in range(size)]

    def __len__(self) -> int:
        return sum(len(slot) for slot in self._slots)

    def add_conn(self, conn: Connection, delay: int = 0) -> None:
        """Record a heartbeat that holds ``conn`` for ``expire + delay`` ticks."""
        slot = (self.tick + self.expire + delay) % self.size
        conn.used += 1
        self._slots[slot].append(conn)

    def check_conn(self) -> list[Connection]:
        """Advance one tick; return the connections that ran out of heartbeats."""
        slot = self.tick % self.size
        self.tick += 1
        entries, self._slots[slot] = self._slots[slot], []
        killed = []
        for conn in entries:
            conn.used -= 1
            dead = conn.used == 0
            if dead:
                killed.append(conn)
            self._on_event(conn, dead)
        return killed


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Run a heartbeat wheel demo.")
    parser.add_argument("--tick-seconds", type=float, default=1.0,
                        help="length of one wheel tick in seconds")
    args = parser.parse_args(argv)
    if args.tick_seconds <= 0:
        parser.error("--tick-seconds must be positive")

    wheel = HeartbeatWheel()
    first = Connection(10001)
    wheel.add_conn(first, 0)
    wheel.add_conn(first, 5)
    wheel.add_conn(Connection(10002), 0)
    wheel.add_conn(Connection(10003), 3)

    def now() -> int:
        return int(time.monotonic() / args.tick_seconds)

    pause = min(0.02, args.tick_seconds)
    start = now()
    while len(wheel):
        current = now()
        if current > start:
            for _ in range(current - start):
                wheel.check_conn()
            start = current
            print(f"check conn tick:{wheel.tick}")
        time.sleep(pause)
    return 0