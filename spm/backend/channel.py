"""
Point-to-point channels between the two parties.

A channel carries whole messages (bytes) in order. Two implementations:
- LocalChannel: in-process queue pair for running both parties in threads
- TCPChannel: socket with 4-byte big-endian length-prefixed framing

Transport errors surface as BackendFailure.
"""

import logging
import queue
import socket
import struct
import time
from typing import Optional, Protocol

from ..errors import BackendFailure
from .stats import CommunicationStats

logger = logging.getLogger(__name__)

_LENGTH = struct.Struct("!I")
MAX_MESSAGE_SIZE = 1 << 30


class ChannelProtocol(Protocol):
    """An ordered, reliable, message-oriented link to the peer."""

    stats: CommunicationStats

    def send(self, data: bytes) -> None:
        ...

    def recv(self) -> bytes:
        ...

    def close(self) -> None:
        ...


_CLOSED = object()


class LocalChannel:
    """
    One end of an in-process channel.

    Use LocalChannel.pair() to create two connected ends.
    """

    def __init__(self, inbox: queue.Queue, outbox: queue.Queue, timeout: Optional[float] = 30.0):
        self._inbox = inbox
        self._outbox = outbox
        self._timeout = timeout
        self._closed = False
        self.stats = CommunicationStats()

    @classmethod
    def pair(cls, timeout: Optional[float] = 30.0) -> tuple["LocalChannel", "LocalChannel"]:
        a_to_b: queue.Queue = queue.Queue()
        b_to_a: queue.Queue = queue.Queue()
        return cls(b_to_a, a_to_b, timeout), cls(a_to_b, b_to_a, timeout)

    def send(self, data: bytes) -> None:
        if self._closed:
            raise BackendFailure("send on closed channel")
        self._outbox.put(bytes(data))
        self.stats.record_send(len(data))

    def recv(self) -> bytes:
        if self._closed:
            raise BackendFailure("recv on closed channel")
        try:
            data = self._inbox.get(timeout=self._timeout)
        except queue.Empty:
            raise BackendFailure(f"timed out after {self._timeout}s waiting for peer") from None
        if data is _CLOSED:
            raise BackendFailure("peer closed channel")
        self.stats.record_recv(len(data))
        return data

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._outbox.put(_CLOSED)


class TCPChannel:
    """Length-prefixed message channel over a connected TCP socket."""

    def __init__(self, sock: socket.socket):
        self._sock = sock
        self.stats = CommunicationStats()

    @classmethod
    def listen(cls, host: str, port: int, timeout: Optional[float] = 60.0) -> "TCPChannel":
        """Accept exactly one peer connection on (host, port)."""
        try:
            with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as server:
                server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
                server.settimeout(timeout)
                server.bind((host, port))
                server.listen(1)
                logger.info("waiting for peer on %s:%d", host, port)
                sock, addr = server.accept()
        except OSError as e:
            raise BackendFailure(f"failed to accept peer on {host}:{port}: {e}") from e
        logger.info("peer connected from %s:%d", addr[0], addr[1])
        sock.settimeout(timeout)
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        return cls(sock)

    @classmethod
    def connect(
        cls,
        host: str,
        port: int,
        retries: int = 50,
        delay: float = 0.1,
        timeout: Optional[float] = 60.0,
    ) -> "TCPChannel":
        """Connect to a listening peer, retrying while it starts up."""
        last_error: Optional[OSError] = None
        for _ in range(retries):
            try:
                sock = socket.create_connection((host, port), timeout=timeout)
            except OSError as e:
                last_error = e
                time.sleep(delay)
                continue
            sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
            logger.info("connected to peer at %s:%d", host, port)
            return cls(sock)
        raise BackendFailure(f"could not connect to {host}:{port}: {last_error}")

    def _recv_exact(self, n: int) -> bytes:
        buf = bytearray()
        while len(buf) < n:
            chunk = self._sock.recv(n - len(buf))
            if not chunk:
                raise BackendFailure("peer closed connection")
            buf += chunk
        return bytes(buf)

    def send(self, data: bytes) -> None:
        try:
            self._sock.sendall(_LENGTH.pack(len(data)) + data)
        except OSError as e:
            raise BackendFailure(f"send failed: {e}") from e
        self.stats.record_send(_LENGTH.size + len(data))

    def recv(self) -> bytes:
        try:
            (length,) = _LENGTH.unpack(self._recv_exact(_LENGTH.size))
            if length > MAX_MESSAGE_SIZE:
                raise BackendFailure(f"message too large: {length} bytes")
            data = self._recv_exact(length)
        except OSError as e:
            raise BackendFailure(f"recv failed: {e}") from e
        self.stats.record_recv(_LENGTH.size + length)
        return data

    def close(self) -> None:
        try:
            self._sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            # Already disconnected by the peer.
            pass
        self._sock.close()


def open_tcp_channel(my_id: int, parties: dict[int, tuple[str, int]]) -> TCPChannel:
    """
    Establish the channel between party 0 and party 1.

    Party 0 listens on its own address, party 1 connects to party 0.
    """
    if set(parties) != {0, 1}:
        raise ValueError("need addresses for parties 0 and 1")
    if my_id == 0:
        host, port = parties[0]
        return TCPChannel.listen(host, port)
    host, port = parties[0]
    return TCPChannel.connect(host, port)
