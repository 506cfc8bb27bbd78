"""Network traffic records exported as metrics lines over HTTP.

Records are classified by port and address, formatted as
``net_bytes{...} <bytes> <timestamp_ms>`` lines and posted one per
connection to an ``/api/v1/import`` endpoint.
"""

from __future__ import annotations

import argparse
import logging
import socket
import sys
import threading
import time
from typing import Iterable, Optional

from .ringbuf import BufferEmpty, BufferFull, NetLog, RingBuffer

__all__ = [
    "DEFAULT_HOST", "DEFAULT_PORT", "RING_SIZE",
    "get_protocol_by_port", "get_device_type_by_ip", "make_log",
    "format_line", "build_request", "send_log", "writer_loop", "main",
]

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8428
RING_SIZE = 1024

_SRC_IP = "192.168.0.1"
_DST_IP = "192.168.0.100"
_CAPTURE_PORT = 9100

_LINE_LIMIT = 1024
_REQUEST_LIMIT = 2048
_IDLE_WAIT = 0.001

_PROTOCOLS = {502: "modbus", 9100: "printer"}

_log = logging.getLogger(__name__)


def get_protocol_by_port(port: int) -> str:
    """Name the industrial protocol usually found on ``port``."""
    return _PROTOCOLS.get(port, "unknown")


def get_device_type_by_ip(ip: str) -> str:
    """Guess the kind of device from a fragment of its address."""
    if ".100" in ip:
        return "printer"
    if ".50" in ip:
        return "PLC"
    return "unknown"


def make_log(length: int, now_ms: Optional[int] = None) -> NetLog:
    """Build the record for one captured packet of ``length`` bytes."""
    if now_ms is None:
        now_ms = time.time_ns() // 1_000_000
    return NetLog(
        src_ip=_SRC_IP,
        dst_ip=_DST_IP,
        protocol=get_protocol_by_port(_CAPTURE_PORT),
        device_type=get_device_type_by_ip(_DST_IP),
        bytes=length,
        ts_ms=now_ms,
    )


def format_line(log: NetLog) -> str:
    """Render a record as one metrics import line, newline included."""
    line = (
        f'net_bytes{{src_ip="{log.src_ip}",dst_ip="{log.dst_ip}",'
        f'proto="{log.protocol}",type="{log.device_type}"}} '
        f"{log.bytes} {log.ts_ms}\n"
    )
    return line[:_LINE_LIMIT - 1]


def build_request(line: str) -> bytes:
    """Wrap a metrics line in an HTTP POST to the import endpoint."""
    body = line.encode("utf-8")
    head = (
        "POST /api/v1/import HTTP/1.1\r\n"
        "Host: localhost\r\n"
        "Content-Type: text/plain\r\n"
        f"Content-Length: {len(body)}\r\n\r\n"
    ).encode("ascii")
    return (head + body)[:_REQUEST_LIMIT - 1]


def send_log(log: NetLog, host: str = DEFAULT_HOST, port: int = DEFAULT_PORT) -> int:
    """Post one record on a fresh connection; return the bytes written.

    Raises OSError when the endpoint cannot be reached.
    """
    request = build_request(format_line(log))
    with socket.create_connection((host, port)) as sock:
        sock.sendall(request)
    return len(request)


def writer_loop(ring: RingBuffer, stop: Optional[threading.Event] = None,
                host: str = DEFAULT_HOST, port: int = DEFAULT_PORT) -> int:
    """Drain ``ring`` to the endpoint until ``stop`` is set.

    Records that cannot be delivered are dropped. Returns how many were sent.
    """
    if stop is None:
        stop = threading.Event()
    sent = 0
    while not stop.is_set():
        try:
            log = ring.pop()
        except BufferEmpty:
            stop.wait(_IDLE_WAIT)
            continue
        try:
            send_log(log, host, port)
        except OSError as exc:
            _log.warning("send to %s:%d failed: %s", host, port, exc)
            continue
        sent += 1
    return sent


def _read_lengths(stream: Iterable[str]) -> Iterable[int]:
    for raw in stream:
        raw = raw.strip()
        if raw:
            yield int(raw)


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Export packet sizes as net_bytes metrics lines.")
    parser.add_argument("lengths", nargs="*", type=int,
                        help="packet sizes; read one per line from stdin if none")
    parser.add_argument("--host", default=DEFAULT_HOST, help="metrics endpoint host")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT,
                        help="metrics endpoint port")
    args = parser.parse_args(argv)

    ring = RingBuffer(RING_SIZE)
    stop = threading.Event()
    writer = threading.Thread(target=writer_loop,
                              args=(ring, stop, args.host, args.port), daemon=True)
    writer.start()

    lengths = args.lengths if args.lengths else _read_lengths(sys.stdin)
    try:
        for length in lengths:
            log = make_log(length)
            while True:
                try:
                    ring.push(log)
                    break
                except BufferFull:
                    time.sleep(_IDLE_WAIT)
        while len(ring):
            time.sleep(_IDLE_WAIT)
    finally:
        stop.set()
        writer.join()
    return 0