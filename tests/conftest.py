"""Shared test fixtures for the StatsD SDK tests."""

import socket
from typing import List

import pytest

from statsd_sdk.errors import WriteError


class UdpListener:
    """A UDP socket on loopback standing in for the metrics collector."""

    def __init__(self, timeout: float = 2.0):
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        self.sock.setsockopt(socket.SOL_SOCKET, socket.SO_RCVBUF, 1 << 22)
        self.sock.bind(('127.0.0.1', 0))
        self.sock.settimeout(timeout)

    @property
    def address(self) -> str:
        return '127.0.0.1:%d' % self.sock.getsockname()[1]

    def receive(self, count: int) -> List[bytes]:
        """Read exactly ``count`` datagrams."""
        return [self.sock.recv(65535) for _ in range(count)]

    def receive_lines(self, count: int) -> List[str]:
        """Read datagrams until ``count`` lines have arrived."""
        lines = []
        while len(lines) < count:
            lines.extend(split_lines(self.sock.recv(65535)))
        return lines

    def drain(self, timeout: float = 0.3) -> List[bytes]:
        """Read every datagram that arrives before the socket goes quiet."""
        self.sock.settimeout(timeout)
        datagrams = []
        while True:
            try:
                datagrams.append(self.sock.recv(65535))
            except socket.timeout:
                return datagrams

    def close(self) -> None:
        self.sock.close()


def split_lines(datagram: bytes) -> List[str]:
    return [line for line in datagram.decode('utf-8').strip().split('\n') if line]


class RecordingTransport:
    """Transport double that keeps every payload it is asked to send."""

    def __init__(self):
        self.sent: List[bytes] = []

    def send(self, data: bytes) -> int:
        self.sent.append(data)
        return len(data)


class FailingTransport:
    """Transport double whose writes always fail."""

    def __init__(self):
        self.attempts = 0

    def send(self, data: bytes) -> int:
        self.attempts += 1
        raise WriteError("network unreachable")


@pytest.fixture
def listener():
    udp = UdpListener()
    yield udp
    udp.close()


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def hostname() -> str:
    return socket.gethostname()
