"""Fixed-size worker pool fed from a FIFO task queue.

Workers block on the queue until a task arrives or the queue is switched
to non-blocking mode.  Once the pool is terminated, workers stop picking
up tasks and new posts are refused.
"""

from __future__ import annotations

import argparse
import logging
import threading
from collections import deque
from typing import Any, Callable, Optional

__all__ = ["PoolStopped", "TaskQueue", "ThreadPool", "main"]

_log = logging.getLogger(__name__)


class PoolStopped(RuntimeError):
    """Raised when a task is posted to a pool that has been terminated."""


class TaskQueue:
    """Thread-safe FIFO of tasks with an optional blocking ``get``."""

    def __init__(self) -> None:
        self._tasks: deque = deque()
        self._cond = threading.Condition()
        self._block = True

    def __len__(self) -> int:
        with self._cond:
            return len(self._tasks)

    def add(self, task: Any) -> None:
        """Append a task and wake one waiting consumer."""
        if task is None:
            raise ValueError("a task must not be None")
        with self._cond:
            self._tasks.append(task)
            self._cond.notify()

    def pop(self) -> Any:
        """Remove and return the oldest task, or None when the queue is empty."""
        with self._cond:
            return self._tasks.popleft() if self._tasks else None

    def get(self) -> Any:
        """Return the oldest task, waiting for one while the queue blocks.

        Returns None once the queue is empty and no longer blocking.
        """
        with self._cond:
            while True:
                if self._tasks:
                    return self._tasks.popleft()
                if not self._block:
                    return None
                self._cond.wait()

    def nonblock(self) -> None:
        """Stop blocking in ``get`` and wake every waiting consumer."""
        with self._cond:
            self._block = False
            self._cond.notify_all()


class ThreadPool:
    """Pool of worker threads that run ``func(arg)`` for each posted task."""

    def __init__(self, thread_count: int) -> None:
        if thread_count < 1:
            raise ValueError("thread_count must be at least 1")
        self._queue = TaskQueue()
        self._quit = threading.Event()
        self._threads: list[threading.Thread] = []
        try:
            for _ in range(thread_count):
                thread = threading.Thread(target=self._worker, daemon=True)
                thread.start()
                self._threads.append(thread)
        except RuntimeError:
            self.terminate()
            self.wait_done()
            raise

    @property
    def thread_count(self) -> int:
        return len(self._threads)

    def _worker(self) -> None:
        while not self._quit.is_set():
            task = self._queue.get()
            if task is None:
                break
            func, arg = task
            try:
                func(arg)
            except Exception:
                _log.exception("task raised an exception")

    def post(self, func: Callable[[Any], Any], arg: Any = None) -> None:
        """Queue ``func(arg)``; raise PoolStopped once the pool is terminated."""
        if self._quit.is_set():
            raise PoolStopped("cannot post to a terminated pool")
        self._queue.add((func, arg))

    def terminate(self) -> None:
        """Ask the workers to stop; tasks not yet started are dropped."""
        self._quit.set()
        self._queue.nonblock()

    def wait_done(self) -> None:
        """Wait for every worker to exit; call ``terminate`` first."""
        current = threading.current_thread()
        for thread in self._threads:
            if thread is not current:
                thread.join()


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Run a task-queue thread pool demo.")
    parser.add_argument("--threads", type=int, default=8, help="number of workers")
    parser.add_argument("--tasks", type=int, default=1000,
                        help="tasks to run before the pool terminates")
    args = parser.parse_args(argv)

    lock = threading.Lock()
    done = 0

    def do_task(pool: ThreadPool) -> None:
        nonlocal done
        with lock:
            done += 1
            count = done
            print(f"doing {count} task")
        if count >= args.tasks:
            pool.terminate()

    pool = ThreadPool(args.threads)
    while True:
        try:
            pool.post(do_task, pool)
        except PoolStopped:
            break
    pool.wait_done()
    return 0