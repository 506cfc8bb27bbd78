"""Skip list ordered by score, used as a timer queue keyed on expiry."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator, Optional

__all__ = ["MAX_LEVEL", "P", "SkipListNode", "SkipList"]

MAX_LEVEL = 32
P = 0.25

_log = logging.getLogger(__name__)


@dataclass(eq=False)
class SkipListNode:
    """A node holding a score, an optional handler and its forward links."""

    score: int
    handler: Optional[Callable[["SkipListNode"], Any]] = None
    forward: list = field(default_factory=list, repr=False)

    @property
    def level(self) -> int:
        return len(self.forward)


class SkipList:
    """Skip list of :class:`SkipListNode`; new equal scores go first."""

    def __init__(self, rng: Any = None) -> None:
        self._rng = rng if rng is not None else random.Random()
        self.header = SkipListNode(0, None, [None] * MAX_LEVEL)
        self.level = 1
        self._length = 0

    def __len__(self) -> int:
        return self._length

    def __iter__(self) -> Iterator[SkipListNode]:
        node = self.header.forward[0]
        while node is not None:
            yield node
            node = node.forward[0]

    def random_level(self) -> int:
        """Draw a level in [1, MAX_LEVEL], each step up with probability P."""
        level = 1
        while level < MAX_LEVEL and self._rng.random() < P:
            level += 1
        return level

    def _predecessors(self, score: int) -> list:
        update: list = [None] * MAX_LEVEL
        x = self.header
        for i in reversed(range(self.level)):
            while (nxt := x.forward[i]) is not None and nxt.score < score:
                x = nxt
            update[i] = x
        return update

    def insert(self, score: int, handler: Callable[[SkipListNode], Any]) -> SkipListNode:
        """Insert a node and return it."""
        update = self._predecessors(score)
        level = self.random_level()
        _log.debug("skip list node level = %d", level)
        if level > self.level:
            for i in range(self.level, level):
                update[i] = self.header
            self.level = level
        node = SkipListNode(score, handler, [None] * level)
        for i in range(level):
            node.forward[i] = update[i].forward[i]
            update[i].forward[i] = node
        self._length += 1
        return node

    def minimum(self) -> Optional[SkipListNode]:
        """Return the first node, or None when empty."""
        return self.header.forward[0]

    def _shrink(self) -> None:
        while self.level > 1 and self.header.forward[self.level - 1] is None:
            self.level -= 1

    def delete_head(self) -> Optional[SkipListNode]:
        """Remove and return the first node, or None when empty."""
        x = self.minimum()
        if x is None:
            return None
        for i in reversed(range(self.level)):
            if self.header.forward[i] is x:
                self.header.forward[i] = x.forward[i]
        self._shrink()
        self._length -= 1
        return x

    def delete(self, node: SkipListNode) -> Optional[SkipListNode]:
        """Remove the first node whose score equals ``node.score``.

        Returns the removed node, or None if no node has that score.
        """
        update = self._predecessors(node.score)
        x = update[0].forward[0]
        if x is None or x.score != node.score:
            return None
        for i in range(self.level):
            if update[i].forward[i] is x:
                update[i].forward[i] = x.forward[i]
        self._shrink()
        self._length -= 1
        return x