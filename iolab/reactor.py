"""Event-driven TCP server: readiness events dispatched to callbacks.

Listening sockets call ``accept_cb``; a readable client calls ``recv_cb``,
which passes the request to a handler and waits for the socket to become
writable; ``send_cb`` then sends the reply and waits for the next request.
"""

from __future__ import annotations

import argparse
import logging
import selectors
import socket
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

__all__ = ["BUFFER_LENGTH", "MAX_PORTS", "Connection", "Reactor", "echo", "main"]

BUFFER_LENGTH = 1024
MAX_PORTS = 20
DEFAULT_PORT = 2000
_BACKLOG = 10
_POLL_INTERVAL = 0.1

_log = logging.getLogger(__name__)


@dataclass(eq=False)
class Connection:
    """A client socket with its last request and the reply to send."""

    sock: socket.socket
    fd: int
    rbuffer: bytes = b""
    wbuffer: bytes = b""
    status: int = 0

    @property
    def rlength(self) -> int:
        return len(self.rbuffer)

    @property
    def wlength(self) -> int:
        return len(self.wbuffer)


Handler = Callable[[Connection], Any]


def echo(conn: Connection) -> None:
    """Reply with the request unchanged."""
    conn.wbuffer = conn.rbuffer


class Reactor:
    """Selector-driven server; ``handler`` turns ``rbuffer`` into ``wbuffer``."""

    def __init__(self, handler: Optional[Handler] = None) -> None:
        self.handler = handler if handler is not None else echo
        self.connections: dict[int, Connection] = {}
        self._listeners: dict[int, socket.socket] = {}
        self._selector = selectors.DefaultSelector()
        self._begin = time.monotonic()

    def listen(self, port: int = DEFAULT_PORT, host: str = "0.0.0.0") -> socket.socket:
        """Open a listening socket and watch it for new clients."""
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            sock.bind((host, port))
            sock.listen(_BACKLOG)
        except OSError:
            sock.close()
            raise
        self._listeners[sock.fileno()] = sock
        self._selector.register(sock, selectors.EVENT_READ)
        return sock

    def _connection(self, sock: socket.socket) -> Connection:
        try:
            return self.connections[sock.fileno()]
        except KeyError:
            raise KeyError("socket is not a connection of this reactor") from None

    def _drop(self, conn: Connection) -> None:
        self._selector.unregister(conn.sock)
        conn.sock.close()
        del self.connections[conn.fd]

    def accept_cb(self, sock: socket.socket) -> Optional[socket.socket]:
        """Accept a client and watch it for requests; None if accept failed."""
        try:
            client, _ = sock.accept()
        except OSError as exc:
            _log.warning("accept errno: %s --> %s", exc.errno, exc.strerror)
            return None
        fd = client.fileno()
        self.connections[fd] = Connection(client, fd)
        self._selector.register(client, selectors.EVENT_READ)
        if fd % 1000 == 0:
            now = time.monotonic()
            used = int((now - self._begin) * 1000)
            self._begin = now
            _log.info("accept finished: %d, time_used: %d", fd, used)
        return client

    def recv_cb(self, sock: socket.socket) -> int:
        """Read a request and hand it to the handler; return bytes read.

        Returns 0 when the client has gone, after closing it.
        """
        conn = self._connection(sock)
        try:
            data = sock.recv(BUFFER_LENGTH)
        except OSError as exc:
            _log.warning("recv errno: %s, %s", exc.errno, exc.strerror)
            self._drop(conn)
            return 0
        if not data:
            _log.info("client disconnect: %d", conn.fd)
            self._drop(conn)
            return 0
        conn.rbuffer = data
        self.handler(conn)
        self._selector.modify(sock, selectors.EVENT_WRITE)
        return len(data)

    def send_cb(self, sock: socket.socket) -> int:
        """Send the pending reply, if any, and wait for the next request."""
        conn = self._connection(sock)
        count = sock.send(conn.wbuffer) if conn.wbuffer else 0
        self._selector.modify(sock, selectors.EVENT_READ)
        return count

    def run_once(self, timeout: Optional[float] = None) -> int:
        """Wait for events and dispatch them; return how many arrived."""
        events = self._selector.select(timeout)
        for key, mask in events:
            fd = key.fd
            if mask & selectors.EVENT_READ:
                if fd in self._listeners:
                    self.accept_cb(key.fileobj)
                elif fd in self.connections:
                    self.recv_cb(key.fileobj)
            if mask & selectors.EVENT_WRITE and fd in self.connections:
                self.send_cb(key.fileobj)
        return len(events)

    def run(self, stop: Optional[threading.Event] = None) -> None:
        """Dispatch events until ``stop`` is set, or for ever without one."""
        timeout = None if stop is None else _POLL_INTERVAL
        while stop is None or not stop.is_set():
            self.run_once(timeout)

    def close(self) -> None:
        """Close every client and listening socket."""
        for conn in list(self.connections.values()):
            self._drop(conn)
        for sock in self._listeners.values():
            self._selector.unregister(sock)
            sock.close()
        self._listeners.clear()
        self._selector.close()


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Run an event-driven echo server.")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT, help="first port")
    parser.add_argument("--count", type=int, default=MAX_PORTS,
                        help="number of consecutive ports to listen on")
    parser.add_argument("--host", default="0.0.0.0", help="address to bind")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(message)s")
    reactor = Reactor()
    try:
        for offset in range(args.count):
            try:
                reactor.listen(args.port + offset, args.host)
            except OSError as exc:
                _log.error("bind failed: %s", exc.strerror)
        reactor.run()
    except KeyboardInterrupt:
        pass
    finally:
        reactor.close()
    return 0