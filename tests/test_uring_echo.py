import socket
import threading
import time

import pytest

from iolab.uring_echo import EchoServer, EchoWorker


def _wait_closed(sock):
    for _ in range(500):
        if sock.fileno() == -1:
            return True
        time.sleep(0.01)
    return False


def test_worker_echoes_submitted_connection():
    worker = EchoWorker(7)
    thread = threading.Thread(target=worker.run, daemon=True)
    thread.start()
    served, client = socket.socketpair()
    client.settimeout(5)
    with client:
        worker.submit(served)
        client.sendall(b"ping")
        assert client.recv(2048) == b"ping"
        client.sendall(b"pong")
        assert client.recv(2048) == b"pong"
    worker.stop()
    thread.join(5)
    assert not thread.is_alive()
    assert worker.accepted == 1


def test_worker_closes_connection_when_peer_leaves():
    worker = EchoWorker(0)
    thread = threading.Thread(target=worker.run, daemon=True)
    thread.start()
    served, client = socket.socketpair()
    worker.submit(served)
    client.sendall(b"x")
    client.settimeout(5)
    assert client.recv(16) == b"x"
    client.close()
    assert _wait_closed(served)
    assert served.fileno() == -1
    worker.stop()
    thread.join(5)
    assert not thread.is_alive()
    assert worker.accepted == 1


def test_stopped_worker_closes_pending_connections():
    worker = EchoWorker(1)
    served, client = socket.socketpair()
    worker.submit(served)
    worker.stop()
    worker.run()
    client.close()
    assert served.fileno() == -1


def test_server_deals_connections_round_robin():
    server = EchoServer(port=0, host="127.0.0.1", workers=2)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    messages = [b"a1", b"b2", b"c3", b"d4"]
    for message in messages:
        with socket.create_connection(server.server_address, timeout=5) as client:
            client.sendall(message)
            assert client.recv(2048) == message
    server.shutdown()
    thread.join(5)
    assert [w.accepted for w in server.workers] == [2, 2]
    assert server.socket.fileno() == -1


def test_server_needs_a_worker():
    with pytest.raises(ValueError):
        EchoServer(port=0, host="127.0.0.1", workers=0)