import socket
import threading
import time

import pytest

from statsd_instrument.transport.udp import Connection, UDPTransport


@pytest.fixture
def receiver():
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sock.bind(("127.0.0.1", 0))
    sock.settimeout(2.0)
    yield sock
    sock.close()


def test_udp_transport_delivers_one_datagram(receiver):
    transport = UDPTransport()
    transport.connect("127.0.0.1", receiver.getsockname()[1])
    try:
        transport.send(b"gorets:1|c")
        data, _ = receiver.recvfrom(1024)
    finally:
        transport.close()
    assert data == b"gorets:1|c"


def test_udp_transport_send_before_connect_raises_oserror():
    with pytest.raises(OSError):
        UDPTransport().send(b"x:1|c")


def test_udp_transport_close_is_idempotent():
    transport = UDPTransport()
    transport.close()
    transport.close()


class _Recorder:
    def __init__(self, delay=0.0):
        self.created = []
        self.delay = delay

    def __call__(self):
        recorder = self

        class _T:
            def __init__(self):
                self.endpoint = None
                self.closed = False

            def connect(self, host, port):
                time.sleep(recorder.delay)
                self.endpoint = (host, port)

            def send(self, data):
                return len(data)

            def close(self):
                self.closed = True

        t = _T()
        self.created.append(t)
        return t


def test_connection_is_lazy_and_cached():
    factory = _Recorder()
    conn = Connection(factory)
    assert conn.connected is False
    first = conn.get("h", 1)
    assert conn.get("h", 1) is first
    assert len(factory.created) == 1
    assert conn.endpoint == ("h", 1)


def test_connection_invalidate_closes_and_reopens():
    factory = _Recorder()
    conn = Connection(factory)
    first = conn.get("h", 1)
    conn.invalidate()
    assert first.closed is True
    assert conn.connected is False
    assert conn.get("h", 1) is not first


def test_concurrent_first_use_creates_single_transport():
    factory = _Recorder(delay=0.01)
    conn = Connection(factory)
    barrier = threading.Barrier(8)
    seen = []

    def worker():
        barrier.wait()
        seen.append(conn.get("h", 1))

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(factory.created) == 1
    assert all(t is seen[0] for t in seen)


class _UntouchableLock:
    def __enter__(self):
        raise AssertionError("lock taken on the send path")

    def __exit__(self, *exc):
        return False


def test_cached_transport_is_returned_without_locking():
    factory = _Recorder()
    conn = Connection(factory)
    first = conn.get("h", 1)
    conn._lock = _UntouchableLock()

    assert conn.get("h", 1) is first
    assert conn.endpoint == ("h", 1)
    assert conn.connected is True


def test_endpoint_change_still_reconnects_under_lock():
    factory = _Recorder()
    conn = Connection(factory)
    first = conn.get("h", 1)
    second = conn.get("h", 2)
    assert first.closed is True
    assert second.endpoint == ("h", 2)
    assert conn.endpoint == ("h", 2)
