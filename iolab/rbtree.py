"""Red-black tree with a pluggable insertion policy and a shared sentinel.

Two insertion policies are provided: plain key order, and timer order,
which compares 32-bit keys by their signed difference so that keys close
together keep their order across wrap-around.
"""

from __future__ import annotations

from typing import Any, Callable, Iterator, Optional

__all__ = ["RBNode", "RBTree", "insert_value", "insert_timer_value"]

_MASK32 = 0xFFFFFFFF


class RBNode:
    """A tree node; ``red`` holds its colour."""

    __slots__ = ("key", "left", "right", "parent", "red", "data")

    def __init__(self, key: int = 0, data: Any = None) -> None:
        self.key = key
        self.data = data
        self.left: Optional[RBNode] = None
        self.right: Optional[RBNode] = None
        self.parent: Optional[RBNode] = None
        self.red = False

    def __repr__(self) -> str:
        return f"RBNode(key={self.key!r}, red={self.red})"


InsertFunc = Callable[[RBNode, RBNode, RBNode], None]


def _attach(temp: RBNode, node: RBNode, sentinel: RBNode,
            goes_left: Callable[[RBNode, RBNode], bool]) -> None:
    while True:
        if goes_left(node, temp):
            if temp.left is sentinel:
                temp.left = node
                break
            temp = temp.left
        else:
            if temp.right is sentinel:
                temp.right = node
                break
            temp = temp.right
    node.parent = temp
    node.left = sentinel
    node.right = sentinel
    node.red = True


def _signed32(value: int) -> int:
    value &= _MASK32
    return value - (1 << 32) if value & 0x80000000 else value


def insert_value(temp: RBNode, node: RBNode, sentinel: RBNode) -> None:
    """Link ``node`` below ``temp`` in plain key order; equal keys go right."""
    _attach(temp, node, sentinel, lambda n, t: n.key < t.key)


def insert_timer_value(temp: RBNode, node: RBNode, sentinel: RBNode) -> None:
    """Link ``node`` below ``temp`` comparing 32-bit keys with wrap-around."""
    _attach(temp, node, sentinel, lambda n, t: _signed32(n.key - t.key) < 0)


class RBTree:
    """Red-black tree of :class:`RBNode` objects."""

    def __init__(self, insert: InsertFunc = insert_value) -> None:
        self.sentinel = RBNode()
        self.root: RBNode = self.sentinel
        self._insert = insert

    def is_empty(self) -> bool:
        return self.root is self.sentinel

    def _min(self, node: RBNode) -> RBNode:
        while node.left is not self.sentinel:
            node = node.left
        return node

    def minimum(self) -> Optional[RBNode]:
        """Return the leftmost node, or None when the tree is empty."""
        if self.is_empty():
            return None
        return self._min(self.root)

    def next(self, node: RBNode) -> Optional[RBNode]:
        """Return the in-order successor of ``node``, or None."""
        if node.right is not self.sentinel:
            return self._min(node.right)
        root = self.root
        while True:
            parent = node.parent
            if node is root:
                return None
            if node is parent.left:
                return parent
            node = parent

    def __iter__(self) -> Iterator[RBNode]:
        node = self.minimum()
        while node is not None:
            yield node
            node = self.next(node)

    def insert(self, node: RBNode) -> None:
        """Add a node and rebalance."""
        sentinel = self.sentinel
        if self.root is sentinel:
            node.parent = None
            node.left = sentinel
            node.right = sentinel
            node.red = False
            self.root = node
            return

        self._insert(self.root, node, sentinel)

        while node is not self.root and node.parent.red:
            parent = node.parent
            grand = parent.parent
            if parent is grand.left:
                uncle = grand.right
                if uncle.red:
                    parent.red = False
                    uncle.red = False
                    grand.red = True
                    node = grand
                else:
                    if node is parent.right:
                        node = parent
                        self._left_rotate(node)
                    node.parent.red = False
                    node.parent.parent.red = True
                    self._right_rotate(node.parent.parent)
            else:
                uncle = grand.left
                if uncle.red:
                    parent.red = False
                    uncle.red = False
                    grand.red = True
                    node = grand
                else:
                    if node is parent.left:
                        node = parent
                        self._right_rotate(node)
                    node.parent.red = False
                    node.parent.parent.red = True
                    self._left_rotate(node.parent.parent)

        self.root.red = False

    def delete(self, node: RBNode) -> None:
        """Remove a node that is in the tree and rebalance."""
        sentinel = self.sentinel

        if node.left is sentinel:
            temp = node.right
            subst = node
        elif node.right is sentinel:
            temp = node.left
            subst = node
        else:
            subst = self._min(node.right)
            temp = subst.left if subst.left is not sentinel else subst.right

        if subst is self.root:
            self.root = temp
            temp.red = False
            if temp is not sentinel:
                temp.parent = None
            self._detach(node)
            return

        red = subst.red

        if subst is subst.parent.left:
            subst.parent.left = temp
        else:
            subst.parent.right = temp

        if subst is node:
            temp.parent = subst.parent
        else:
            temp.parent = subst if subst.parent is node else subst.parent
            subst.left = node.left
            subst.right = node.right
            subst.parent = node.parent
            subst.red = node.red

            if node is self.root:
                self.root = subst
            elif node is node.parent.left:
                node.parent.left = subst
            else:
                node.parent.right = subst

            if subst.left is not sentinel:
                subst.left.parent = subst
            if subst.right is not sentinel:
                subst.right.parent = subst

        self._detach(node)

        if red:
            return

        while temp is not self.root and not temp.red:
            if temp is temp.parent.left:
                w = temp.parent.right
                if w.red:
                    w.red = False
                    temp.parent.red = True
                    self._left_rotate(temp.parent)
                    w = temp.parent.right
                if not w.left.red and not w.right.red:
                    w.red = True
                    temp = temp.parent
                else:
                    if not w.right.red:
                        w.left.red = False
                        w.red = True
                        self._right_rotate(w)
                        w = temp.parent.right
                    w.red = temp.parent.red
                    temp.parent.red = False
                    w.right.red = False
                    self._left_rotate(temp.parent)
                    temp = self.root
            else:
                w = temp.parent.left
                if w.red:
                    w.red = False
                    temp.parent.red = True
                    self._right_rotate(temp.parent)
                    w = temp.parent.left
                if not w.left.red and not w.right.red:
                    w.red = True
                    temp = temp.parent
                else:
                    if not w.left.red:
                        w.right.red = False
                        w.red = True
                        self._left_rotate(w)
                        w = temp.parent.left
                    w.red = temp.parent.red
                    temp.parent.red = False
                    w.left.red = False
                    self._right_rotate(temp.parent)
                    temp = self.root

        temp.red = False

    @staticmethod
    def _detach(node: RBNode) -> None:
        node.left = None
        node.right = None
        node.parent = None

    def _left_rotate(self, node: RBNode) -> None:
        temp = node.right
        node.right = temp.left
        if temp.left is not self.sentinel:
            temp.left.parent = node
        temp.parent = node.parent
        if node is self.root:
            self.root = temp
        elif node is node.parent.left:
            node.parent.left = temp
        else:
            node.parent.right = temp
        temp.left = node
        node.parent = temp

    def _right_rotate(self, node: RBNode) -> None:
        temp = node.left
        node.left = temp.right
        if temp.right is not self.sentinel:
            temp.right.parent = node
        temp.parent = node.parent
        if node is self.root:
            self.root = temp
        elif node is node.parent.right:
            node.parent.right = temp
        else:
            node.parent.left = temp
        temp.right = node
        node.parent = temp