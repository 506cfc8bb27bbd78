"""Blocking, thread-per-client and multiplexed TCP echo servers.

Each server reads at most 1024 bytes at a time and sends the bytes back.
The loops that run until stopped accept an optional ``threading.Event``;
without one they run for ever.
"""

from __future__ import annotations

import argparse
import logging
import select
import selectors
import socket
import sys
import threading
from typing import Optional

__all__ = [
    "BUFFER_SIZE", "DEFAULT_PORT", "DEFAULT_BACKLOG",
    "create_server", "serve_single", "serve_loop", "serve_threaded",
    "serve_multiplexed", "main",
]

BUFFER_SIZE = 1024
DEFAULT_PORT = 2000
DEFAULT_BACKLOG = 10
_POLL_INTERVAL = 0.1

_log = logging.getLogger(__name__)


def create_server(port: int = DEFAULT_PORT, host: str = "0.0.0.0",
                  backlog: int = DEFAULT_BACKLOG) -> socket.socket:
    """Return a TCP socket bound to ``host:port`` and listening.

    Raises OSError when the address cannot be bound.
    """
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.bind((host, port))
        sock.listen(backlog)
    except OSError:
        sock.close()
        raise
    _log.info("listen finished: %d", sock.fileno())
    return sock


def _stopped(stop: Optional[threading.Event]) -> bool:
    return stop is not None and stop.is_set()


def _readable(server: socket.socket, stop: Optional[threading.Event]) -> bool:
    if stop is None:
        return True
    ready, _, _ = select.select([server], [], [], _POLL_INTERVAL)
    return bool(ready)


def _recv(conn: socket.socket) -> bytes:
    try:
        return conn.recv(BUFFER_SIZE)
    except ConnectionError:
        return b""


def _echo(conn: socket.socket, data: bytes) -> int:
    _log.info("RECV: %r", data)
    count = conn.send(data)
    _log.info("SEND: %d", count)
    return count


def serve_single(server: socket.socket) -> int:
    """Accept one client, echo one read back, close it; return bytes sent."""
    _log.info("accept")
    conn, _ = server.accept()
    with conn:
        _log.info("accept finished")
        return _echo(conn, _recv(conn))


def serve_loop(server: socket.socket, stop: Optional[threading.Event] = None) -> int:
    """Serve clients one after another, one echo each; return how many."""
    served = 0
    while not _stopped(stop):
        if not _readable(server, stop):
            continue
        _log.info("accept")
        conn, _ = server.accept()
        with conn:
            _log.info("accept finished")
            _echo(conn, _recv(conn))
        served += 1
    return served


def _client_thread(conn: socket.socket) -> None:
    with conn:
        fd = conn.fileno()
        while True:
            data = _recv(conn)
            if not data:
                _log.info("client disconnect: %d", fd)
                break
            _echo(conn, data)


def serve_threaded(server: socket.socket, stop: Optional[threading.Event] = None) -> int:
    """Echo each client in its own thread until it disconnects.

    Returns the number of clients accepted once ``stop`` is set.
    """
    accepted = 0
    while not _stopped(stop):
        if not _readable(server, stop):
            continue
        conn, _ = server.accept()
        _log.info("accept finished: %d", conn.fileno())
        threading.Thread(target=_client_thread, args=(conn,), daemon=True).start()
        accepted += 1
    return accepted


def serve_multiplexed(server: socket.socket, stop: Optional[threading.Event] = None) -> int:
    """Echo every client from one thread using readiness notification.

    Returns the number of clients accepted once ``stop`` is set; clients
    still connected then are closed.
    """
    accepted = 0
    timeout = None if stop is None else _POLL_INTERVAL
    sel = selectors.DefaultSelector()
    sel.register(server, selectors.EVENT_READ)
    try:
        while not _stopped(stop):
            for key, _ in sel.select(timeout):
                sock = key.fileobj
                if sock is server:
                    conn, _ = server.accept()
                    _log.info("accept finished: %d", conn.fileno())
                    sel.register(conn, selectors.EVENT_READ)
                    accepted += 1
                    continue
                data = _recv(sock)
                if not data:
                    _log.info("client disconnect: %d", key.fd)
                    sel.unregister(sock)
                    sock.close()
                    continue
                _echo(sock, data)
    finally:
        for key in list(sel.get_map().values()):
            if key.fileobj is not server:
                key.fileobj.close()
        sel.close()
    return accepted


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Run a TCP echo server.")
    parser.add_argument("--mode", choices=["single", "loop", "thread", "multiplex"],
                        default="multiplex", help="how clients are served")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT, help="port to listen on")
    parser.add_argument("--host", default="0.0.0.0", help="address to bind")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(message)s")
    try:
        server = create_server(args.port, args.host)
    except OSError as exc:
        print(f"bind failed: {exc.strerror}", file=sys.stderr)
        return 1

    serve = {
        "single": lambda: serve_single(server),
        "loop": lambda: serve_loop(server),
        "thread": lambda: serve_threaded(server),
        "multiplex": lambda: serve_multiplexed(server),
    }[args.mode]
    with server:
        try:
            serve()
        except KeyboardInterrupt:
            pass
    return 0