"""Binary min-heap of timer entries ordered by expiry time.

Each entry remembers its own position in the heap, so it can be removed
or re-positioned in logarithmic time without a search.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Optional

__all__ = ["HeapEntry", "MinHeap"]


@dataclass(eq=False)
class HeapEntry:
    """A timer entry; ``heap_index`` is -1 while it sits in no heap."""

    time: int
    handler: Optional[Callable[["HeapEntry"], Any]] = None
    data: Any = None
    heap_index: int = field(default=-1, repr=False)


class MinHeap:
    """Min-heap of :class:`HeapEntry` objects keyed on ``time``."""

    def __init__(self) -> None:
        self._items: list[HeapEntry] = []

    def __len__(self) -> int:
        return len(self._items)

    def top(self) -> Optional[HeapEntry]:
        """Return the entry with the smallest time, or None when empty."""
        return self._items[0] if self._items else None

    def is_top(self, entry: HeapEntry) -> bool:
        """Tell whether the entry is at the root of a heap."""
        return entry.heap_index == 0

    def push(self, entry: HeapEntry) -> None:
        """Insert an entry."""
        self._items.append(entry)
        self._shift_up(len(self._items) - 1, entry)

    def pop(self) -> Optional[HeapEntry]:
        """Remove and return the smallest entry, or None when empty."""
        if not self._items:
            return None
        first = self._items[0]
        last = self._items.pop()
        if self._items:
            self._shift_down(0, last)
        first.heap_index = -1
        return first

    def erase(self, entry: HeapEntry) -> None:
        """Remove an entry from anywhere in the heap.

        Raises ValueError if the entry is not in this heap.
        """
        index = self._index_of(entry)
        last = self._items.pop()
        if last is not entry:
            self._reposition(index, last)
        entry.heap_index = -1

    def adjust(self, entry: HeapEntry) -> None:
        """Restore heap order after the entry's time changed.

        An entry that is in no heap is pushed.
        """
        if entry.heap_index == -1:
            self.push(entry)
            return
        self._reposition(self._index_of(entry), entry)

    def _index_of(self, entry: HeapEntry) -> int:
        index = entry.heap_index
        if index < 0 or index >= len(self._items) or self._items[index] is not entry:
            raise ValueError("entry is not in this heap")
        return index

    def _reposition(self, index: int, entry: HeapEntry) -> None:
        parent = (index - 1) // 2
        if index > 0 and self._items[parent].time > entry.time:
            self._shift_up_unconditional(index, entry)
        else:
            self._shift_down(index, entry)

    def _place(self, index: int, entry: HeapEntry) -> None:
        self._items[index] = entry
        entry.heap_index = index

    def _shift_up(self, hole: int, entry: HeapEntry) -> None:
        while hole:
            parent = (hole - 1) // 2
            if not self._items[parent].time > entry.time:
                break
            self._place(hole, self._items[parent])
            hole = parent
        self._place(hole, entry)

    def _shift_up_unconditional(self, hole: int, entry: HeapEntry) -> None:
        parent = (hole - 1) // 2
        self._place(hole, self._items[parent])
        hole = parent
        self._shift_up(hole, entry)

    def _shift_down(self, hole: int, entry: HeapEntry) -> None:
        items = self._items
        size = len(items)
        child = 2 * (hole + 1)
        while child <= size:
            if child == size or items[child].time > items[child - 1].time:
                child -= 1
            if not entry.time > items[child].time:
                break
            self._place(hole, items[child])
            hole = child
            child = 2 * (hole + 1)
        self._place(hole, entry)