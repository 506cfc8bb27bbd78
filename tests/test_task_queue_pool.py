import threading
import time

import pytest

from iolab.task_queue_pool import PoolStopped, TaskQueue, ThreadPool, main


def _drain(queue):
    count = 0
    while len(queue):
        assert queue.pop() is not None
        count += 1
    return count


def test_task_queue_normal():
    queue = TaskQueue()
    for i in range(10):
        queue.add(object())
    assert _drain(queue) == 10

    for i in range(10):
        queue.add(object())
    assert _drain(queue) == 10


def test_task_queue_is_fifo():
    queue = TaskQueue()
    for i in range(5):
        queue.add(i)
    assert [queue.pop() for _ in range(5)] == list(range(5))
    assert queue.pop() is None


def test_get_returns_none_after_nonblock():
    queue = TaskQueue()
    queue.nonblock()
    assert queue.get() is None


def test_get_waits_for_task():
    queue = TaskQueue()
    results = []
    consumer = threading.Thread(target=lambda: results.append(queue.get()))
    consumer.start()
    time.sleep(0.05)
    queue.add("job")
    consumer.join(timeout=5)
    assert results == ["job"]
    assert len(queue) == 0
    assert queue.pop() is None


def test_get_wakes_on_nonblock():
    queue = TaskQueue()
    results = []
    consumer = threading.Thread(target=lambda: results.append(queue.get()))
    consumer.start()
    time.sleep(0.05)
    queue.nonblock()
    consumer.join(timeout=5)
    assert results == [None]
    assert queue.get() is None


def test_add_none_rejected():
    with pytest.raises(ValueError):
        TaskQueue().add(None)


def test_pool_with_producers():
    n = 2000
    nproducer = 4
    lock = threading.Lock()
    count = 0

    def just_task(ctx):
        nonlocal count
        with lock:
            count += 1

    pool = ThreadPool(4)

    def producer():
        for _ in range(n):
            pool.post(just_task, None)

    producers = [threading.Thread(target=producer) for _ in range(nproducer)]
    for thread in producers:
        thread.start()
    deadline = time.monotonic() + 30
    while count != n * nproducer and time.monotonic() < deadline:
        time.sleep(0.01)
    for thread in producers:
        thread.join()
    pool.terminate()
    pool.wait_done()
    assert count == n * nproducer
    with pytest.raises(PoolStopped):
        pool.post(just_task, None)


def test_single_worker_runs_in_order():
    pool = ThreadPool(1)
    seen = []
    finished = threading.Event()
    for i in range(20):
        pool.post(seen.append, i)
    pool.post(lambda _: finished.set())
    assert finished.wait(5)
    pool.terminate()
    pool.wait_done()
    assert seen == list(range(20))


def test_post_after_terminate_raises():
    pool = ThreadPool(2)
    pool.terminate()
    pool.wait_done()
    with pytest.raises(PoolStopped):
        pool.post(print, "late")


def test_failing_task_keeps_worker_alive():
    pool = ThreadPool(1)
    finished = threading.Event()

    def boom(_):
        raise RuntimeError("task failure")

    pool.post(boom)
    pool.post(lambda _: finished.set())
    assert finished.wait(5)
    pool.terminate()
    pool.wait_done()


def test_invalid_thread_count():
    with pytest.raises(ValueError):
        ThreadPool(0)


def test_main_runs_until_limit(capsys):
    assert main(["--threads", "2", "--tasks", "50"]) == 0
    out = capsys.readouterr().out
    assert "doing 1 task" in out
    assert "doing 50 task" in out