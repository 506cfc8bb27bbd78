import random

from iolab.skiplist import MAX_LEVEL, SkipList


class FixedRng:
    def __init__(self, value):
        self.value = value

    def random(self):
        return self.value


def noop(node):
    return None


def test_empty_list():
    sl = SkipList(random.Random(1))
    assert len(sl) == 0
    assert sl.minimum() is None
    assert sl.delete_head() is None
    assert list(sl) == []


def test_insert_keeps_scores_sorted():
    rng = random.Random(2)
    sl = SkipList(random.Random(3))
    scores = [rng.randrange(10_000) for _ in range(300)]
    for score in scores:
        sl.insert(score, noop)
    assert len(sl) == 300
    assert [n.score for n in sl] == sorted(scores)
    assert sl.minimum().score == min(scores)


def test_random_level_bounds():
    assert SkipList(FixedRng(0.0)).random_level() == MAX_LEVEL
    assert SkipList(FixedRng(0.9)).random_level() == 1
    sl = SkipList(random.Random(4))
    levels = [sl.random_level() for _ in range(1000)]
    assert min(levels) >= 1
    assert max(levels) <= MAX_LEVEL


def test_delete_head_pops_in_order():
    sl = SkipList(random.Random(5))
    for score in (3010, 4004, 3005, 5008, 7003):
        sl.insert(score, noop)
    popped = []
    while (node := sl.delete_head()) is not None:
        popped.append(node.score)
    assert popped == sorted([3010, 4004, 3005, 5008, 7003])
    assert len(sl) == 0
    assert sl.level == 1


def test_delete_removes_node():
    sl = SkipList(random.Random(6))
    sl.insert(3010, noop)
    sl.insert(4004, noop)
    node = sl.insert(3005, noop)
    sl.insert(5008, noop)
    removed = sl.delete(node)
    assert removed is node
    assert [n.score for n in sl] == [3010, 4004, 5008]
    assert len(sl) == 3


def test_delete_missing_score_is_noop():
    sl = SkipList(random.Random(7))
    sl.insert(10, noop)
    other = SkipList(random.Random(8)).insert(99, noop)
    assert sl.delete(other) is None
    assert len(sl) == 1


def test_level_shrinks_after_tall_node_removed():
    sl = SkipList(FixedRng(0.0))
    node = sl.insert(1, noop)
    assert node.level == MAX_LEVEL
    assert sl.level == MAX_LEVEL
    sl.delete_head()
    assert sl.level == 1


def test_handler_is_kept():
    calls = []
    sl = SkipList(random.Random(9))
    sl.insert(5, calls.append)
    head = sl.minimum()
    head.handler(head)
    assert calls == [head]


def test_equal_scores_newest_first():
    sl = SkipList(random.Random(10))
    first = sl.insert(7, noop)
    second = sl.insert(7, noop)
    assert list(sl) == [second, first]