"""Thread pool whose submissions return futures."""

from __future__ import annotations

import argparse
import threading
import time
from collections import deque
from concurrent.futures import Future
from typing import Any, Callable, Optional

__all__ = ["FuturePool", "main"]


class FuturePool:
    """Fixed set of worker threads; ``shutdown`` drains queued tasks first."""

    def __init__(self, num_threads: int) -> None:
        if num_threads < 1:
            raise ValueError("num_threads must be at least 1")
        self._lock = threading.Lock()
        self._work = threading.Condition(self._lock)
        self._idle = threading.Condition(self._lock)
        self._tasks: deque = deque()
        self._stop = False
        self._active = 0
        self._workers = [
            threading.Thread(target=self._worker_loop, daemon=True)
            for _ in range(num_threads)
        ]
        for worker in self._workers:
            worker.start()

    def _worker_loop(self) -> None:
        while True:
            with self._lock:
                self._work.wait_for(lambda: self._stop or bool(self._tasks))
                if self._stop and not self._tasks:
                    return
                future, fn, args, kwargs = self._tasks.popleft()
                self._active += 1
            try:
                if future.set_running_or_notify_cancel():
                    try:
                        result = fn(*args, **kwargs)
                    except BaseException as exc:
                        future.set_exception(exc)
                    else:
                        future.set_result(result)
            finally:
                with self._lock:
                    self._active -= 1
                    if not self._tasks and self._active == 0:
                        self._idle.notify_all()

    def submit(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Future:
        """Queue ``fn(*args, **kwargs)`` and return a future for its result."""
        future: Future = Future()
        with self._lock:
            if self._stop:
                raise RuntimeError("Cannot submit to stopped ThreadPool")
            self._tasks.append((future, fn, args, kwargs))
            self._work.notify()
        return future

    def wait_done(self) -> None:
        """Block until the queue is empty and no task is running."""
        with self._lock:
            self._idle.wait_for(lambda: not self._tasks and self._active == 0)

    def shutdown(self) -> None:
        """Refuse new tasks, finish queued ones and join the workers."""
        with self._lock:
            self._stop = True
            self._work.notify_all()
        current = threading.current_thread()
        for worker in self._workers:
            if worker is not current:
                worker.join()

    def __enter__(self) -> "FuturePool":
        return self

    def __exit__(self, *args: Any) -> None:
        self.shutdown()


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Run a future-returning thread pool demo.")
    parser.add_argument("--threads", type=int, default=4, help="number of workers")
    parser.add_argument("--tasks", type=int, default=10, help="number of tasks")
    parser.add_argument("--delay", type=float, default=0.1,
                        help="seconds each task sleeps")
    args = parser.parse_args(argv)

    def sample_task(task_id: int) -> None:
        print(f"Task {task_id} running on thread {threading.get_ident()}")
        time.sleep(args.delay)

    with FuturePool(args.threads) as pool:
        for i in range(args.tasks):
            pool.submit(sample_task, i)
        pool.wait_done()
    return 0