"""Fixed-size, lock-protected ring buffer of network log records.

One slot is always kept free to tell a full buffer from an empty one, so
a buffer of ``size`` slots holds at most ``size - 1`` records.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Optional

__all__ = ["NetLog", "BufferFull", "BufferEmpty", "RingBuffer"]


@dataclass(frozen=True)
class NetLog:
    """One observed flow: endpoints, protocol, device type, size and time."""

    src_ip: str
    dst_ip: str
    protocol: str
    device_type: str
    bytes: int
    ts_ms: int


class BufferFull(Exception):
    """Raised when pushing to a full ring buffer."""


class BufferEmpty(Exception):
    """Raised when popping from an empty ring buffer."""


class RingBuffer:
    """Bounded FIFO of :class:`NetLog` records, safe to share between threads."""

    def __init__(self, size: int) -> None:
        if size < 1:
            raise ValueError("size must be at least 1")
        self.size = size
        self._entries: list[Optional[NetLog]] = [None] * size
        self._head = 0
        self._tail = 0
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return (self._tail - self._head) % self.size

    def push(self, log: NetLog) -> None:
        """Append a record; raise BufferFull when there is no room."""
        with self._lock:
            next_tail = (self._tail + 1) % self.size
            if next_tail == self._head:
                raise BufferFull("ring buffer is full")
            self._entries[self._tail] = log
            self._tail = next_tail

    def pop(self) -> NetLog:
        """Remove and return the oldest record; raise BufferEmpty when empty."""
        with self._lock:
            if self._head == self._tail:
                raise BufferEmpty("ring buffer is empty")
            log = self._entries[self._head]
            self._entries[self._head] = None
            self._head = (self._head + 1) % self.size
            return log