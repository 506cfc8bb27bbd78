"""Multi-threaded echo server: one acceptor, several event-loop workers.

The acceptor hands each new connection to the workers in turn; each
worker runs its own readiness loop and echoes whatever its clients send.
"""

from __future__ import annotations

import argparse
import itertools
import logging
import select
import selectors
import socket
import threading
from collections import deque
from typing import Optional

__all__ = ["PORT", "BACKLOG", "BUF_SIZE", "THREAD_COUNT",
           "EchoWorker", "EchoServer", "main"]

PORT = 8888
BACKLOG = 512
BUF_SIZE = 2048
THREAD_COUNT = 4
_POLL_INTERVAL = 0.1

_log = logging.getLogger(__name__)


class EchoWorker:
    """An event loop that echoes the connections submitted to it."""

    def __init__(self, worker_id: int) -> None:
        self.worker_id = worker_id
        self.accepted = 0
        self._lock = threading.Lock()
        self._pending: deque = deque()
        self._stopped = threading.Event()
        self._selector = selectors.DefaultSelector()
        self._wake_r, self._wake_w = socket.socketpair()
        self._wake_r.setblocking(False)
        self._wake_w.setblocking(False)
        self._selector.register(self._wake_r, selectors.EVENT_READ)

    def _wake(self) -> None:
        try:
            self._wake_w.send(b"\0")
        except OSError:
            pass

    def submit(self, conn: socket.socket) -> None:
        """Hand a connected socket to this worker."""
        with self._lock:
            self._pending.append(conn)
            self.accepted += 1
        self._wake()

    def stop(self) -> None:
        """Ask the loop to finish; its connections are closed on the way out."""
        self._stopped.set()
        self._wake()

    def _adopt_pending(self) -> None:
        with self._lock:
            conns = list(self._pending)
            self._pending.clear()
        for conn in conns:
            conn.settimeout(None)
            self._selector.register(conn, selectors.EVENT_READ)

    def _drain_wakeups(self) -> None:
        try:
            while self._wake_r.recv(4096):
                pass
        except BlockingIOError:
            pass

    def _drop(self, conn: socket.socket) -> None:
        self._selector.unregister(conn)
        conn.close()

    def _serve(self, conn: socket.socket) -> None:
        try:
            data = conn.recv(BUF_SIZE)
        except BlockingIOError:
            return
        except OSError:
            data = b""
        if not data:
            self._drop(conn)
            return
        try:
            conn.sendall(data)
        except OSError:
            self._drop(conn)

    def _close_all(self) -> None:
        with self._lock:
            pending = list(self._pending)
            self._pending.clear()
        for conn in pending:
            conn.close()
        for key in list(self._selector.get_map().values()):
            key.fileobj.close()
        self._selector.close()
        self._wake_w.close()

    def run(self) -> None:
        """Run the loop in the calling thread until ``stop`` is called."""
        _log.info("[Thread %d] Event loop started", self.worker_id)
        try:
            while not self._stopped.is_set():
                for key, _ in self._selector.select():
                    if key.fileobj is self._wake_r:
                        self._drain_wakeups()
                        self._adopt_pending()
                    else:
                        self._serve(key.fileobj)
        finally:
            self._close_all()


class EchoServer:
    """Listening socket plus a fixed set of :class:`EchoWorker` threads."""

    def __init__(self, port: int = PORT, host: str = "0.0.0.0",
                 workers: int = THREAD_COUNT) -> None:
        if workers < 1:
            raise ValueError("workers must be at least 1")
        self.socket = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            self.socket.bind((host, port))
            self.socket.listen(BACKLOG)
        except OSError:
            self.socket.close()
            raise
        self.workers = [EchoWorker(i) for i in range(workers)]
        self._stop = threading.Event()

    @property
    def server_address(self) -> tuple:
        return self.socket.getsockname()

    def serve_forever(self) -> None:
        """Accept connections and deal them out until ``shutdown`` is called."""
        threads = [threading.Thread(target=w.run, daemon=True) for w in self.workers]
        for thread in threads:
            thread.start()
        target = itertools.cycle(self.workers)
        try:
            while not self._stop.is_set():
                ready, _, _ = select.select([self.socket], [], [], _POLL_INTERVAL)
                if not ready:
                    continue
                try:
                    conn, _ = self.socket.accept()
                except OSError:
                    continue
                next(target).submit(conn)
        finally:
            for worker in self.workers:
                worker.stop()
            for thread in threads:
                thread.join()
            self.socket.close()

    def shutdown(self) -> None:
        """Make ``serve_forever`` return and close everything it opened."""
        self._stop.set()


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Run a multi-threaded echo server.")
    parser.add_argument("--port", type=int, default=PORT, help="port to listen on")
    parser.add_argument("--host", default="0.0.0.0", help="address to bind")
    parser.add_argument("--workers", type=int, default=THREAD_COUNT,
                        help="number of event-loop threads")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(message)s")
    server = EchoServer(args.port, args.host, args.workers)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        server.shutdown()
    return 0