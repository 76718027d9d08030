import socket
import threading
from typing import Callable, Optional, Protocol

from structlog import get_logger

logger = get_logger("transport.udp")


class DatagramTransport(Protocol):
    def connect(self, host: str, port: int) -> None: ...

    def send(self, data: bytes) -> int: ...

    def close(self) -> None: ...


class UDPTransport:
    """Connected UDP socket; one ``send`` is one datagram."""

    def __init__(self) -> None:
        self._sock: Optional[socket.socket] = None

    def connect(self, host: str, port: int) -> None:
        family, socktype, proto, _, addr = socket.getaddrinfo(host, port, 0, socket.SOCK_DGRAM)[0]
        sock = socket.socket(family, socktype, proto)
        try:
            sock.connect(addr)
        except OSError:
            sock.close()
            raise
        self._sock = sock

    def send(self, data: bytes) -> int:
        if self._sock is None:
            raise OSError("UDP transport is not connected")
        return self._sock.send(data)

    def close(self) -> None:
        if self._sock is not None:
            self._sock.close()
            self._sock = None


class Connection:
    """Lazily connected transport shared by one emitter.

    Creation is serialised by a lock so concurrent first sends open a single
    socket. The handle is dropped on ``invalidate`` and whenever the requested
    endpoint differs from the one it was opened for. Sends to the current
    endpoint never take the lock.
    """

    def __init__(self, factory: Callable[[], DatagramTransport] = UDPTransport):
        self._factory = factory
        self._lock = threading.Lock()
        # (endpoint, transport), swapped as one reference
        self._current: Optional[tuple[tuple[str, int], DatagramTransport]] = None

    @property
    def endpoint(self) -> Optional[tuple[str, int]]:
        current = self._current
        return current[0] if current is not None else None

    @property
    def connected(self) -> bool:
        return self._current is not None

    def get(self, host: str, port: int) -> DatagramTransport:
        current = self._current
        if current is not None and current[0] == (host, port):
            return current[1]
        with self._lock:
            current = self._current
            if current is not None and current[0] == (host, port):
                return current[1]
            self._close_locked()
            transport = self._factory()
            transport.connect(host, port)
            self._current = ((host, port), transport)
            logger.debug("StatsD socket connected", host=host, port=port)
            return transport

    def invalidate(self) -> None:
        with self._lock:
            self._close_locked()

    def _close_locked(self) -> None:
        current, self._current = self._current, None
        if current is None:
            return
        try:
            current[1].close()
        except OSError as exc:
            logger.warning("Failed to close StatsD socket", error=str(exc))
