import socket
import threading

import pytest

from iolab.reactor import Connection, Reactor


@pytest.fixture
def reactor():
    r = Reactor()
    yield r
    r.close()


def _connect(listener):
    return socket.create_connection(listener.getsockname(), timeout=5)


def test_callbacks_echo_a_request(reactor):
    listener = reactor.listen(0, "127.0.0.1")
    with _connect(listener) as client:
        served = reactor.accept_cb(listener)
        conn = reactor.connections[served.fileno()]
        client.sendall(b"ping")
        assert reactor.recv_cb(served) == len(b"ping")
        assert conn.rbuffer == b"ping"
        assert conn.wlength == conn.rlength
        assert reactor.send_cb(served) == len(b"ping")
        assert client.recv(1024) == b"ping"


def test_recv_cb_drops_disconnected_client(reactor):
    listener = reactor.listen(0, "127.0.0.1")
    client = _connect(listener)
    served = reactor.accept_cb(listener)
    fd = served.fileno()
    client.close()
    assert reactor.recv_cb(served) == 0
    assert fd not in reactor.connections
    assert served.fileno() == -1


def test_send_cb_with_empty_reply_sends_nothing():
    def silent(conn):
        conn.wbuffer = b""

    r = Reactor(silent)
    try:
        listener = r.listen(0, "127.0.0.1")
        with _connect(listener) as client:
            served = r.accept_cb(listener)
            client.sendall(b"hello")
            assert r.recv_cb(served) == len(b"hello")
            assert r.send_cb(served) == 0
    finally:
        r.close()


def test_run_dispatches_with_custom_handler():
    def upper(conn: Connection) -> None:
        conn.wbuffer = conn.rbuffer.upper()

    r = Reactor(upper)
    listener = r.listen(0, "127.0.0.1")
    stop = threading.Event()
    thread = threading.Thread(target=r.run, args=(stop,), daemon=True)
    thread.start()
    try:
        with _connect(listener) as a, _connect(listener) as b:
            a.sendall(b"abc")
            assert a.recv(1024) == b"ABC"
            b.sendall(b"xyz")
            assert b.recv(1024) == b"XYZ"
            a.sendall(b"again")
            assert a.recv(1024) == b"AGAIN"
    finally:
        stop.set()
        thread.join(5)
        r.close()
    assert listener.fileno() == -1


def test_unknown_socket_is_rejected(reactor):
    a, b = socket.socketpair()
    with a, b:
        with pytest.raises(KeyError):
            reactor.send_cb(a)


def test_close_closes_clients():
    r = Reactor()
    listener = r.listen(0, "127.0.0.1")
    with _connect(listener):
        served = r.accept_cb(listener)
        r.close()
        assert served.fileno() == -1
        assert listener.fileno() == -1
        assert r.connections == {}