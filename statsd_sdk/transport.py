"""
UDP transport to the metrics collector.
"""
import logging
import socket
import threading
from typing import Optional, Tuple

from .errors import ResolutionError, SocketError, WriteError

logger = logging.getLogger(__name__)


def parse_address(address: str) -> Tuple[str, int]:
    """
    Split a "host:port" address.

    IPv6 hosts may be bracketed ("[::1]:8125"); an empty host means
    localhost.

    Raises:
        ResolutionError: If the address has no valid port
    """
    host, sep, port = address.rpartition(':')
    if not sep:
        raise ResolutionError(f"Missing port in address {address!r}")
    try:
        port_number = int(port)
    except ValueError:
        raise ResolutionError(f"Invalid port in address {address!r}")
    if not 0 < port_number < 65536:
        raise ResolutionError(f"Port out of range in address {address!r}")
    host = host.strip('[]') or 'localhost'
    return host, port_number


class UdpTransport:
    """
    Owns one connected, non-blocking UDP socket.

    Every ``send`` is a single write with no retry. A send that would block
    or fails for any other reason raises ``WriteError`` and the datagram is
    lost. ``close`` and ``send`` share a lock, so a send racing a close either
    completes or fails cleanly.
    """

    def __init__(self, server_address: str):
        self.server_address = server_address
        self._socket: Optional[socket.socket] = None
        self._lock = threading.Lock()

    @property
    def is_open(self) -> bool:
        return self._socket is not None

    def create_socket(self) -> None:
        """
        Resolve the collector address and open the socket.

        Raises:
            ResolutionError: If the address cannot be parsed or resolved
            SocketError: If the socket cannot be created or connected
        """
        host, port = parse_address(self.server_address)
        try:
            infos = socket.getaddrinfo(host, port, type=socket.SOCK_DGRAM)
        except socket.gaierror as e:
            raise ResolutionError(f"Cannot resolve {self.server_address}: {e}") from e
        if not infos:
            raise ResolutionError(f"No address found for {self.server_address}")

        family, sock_type, proto, _, sockaddr = infos[0]
        try:
            sock = socket.socket(family, sock_type, proto)
        except OSError as e:
            raise SocketError(f"Cannot create socket for {self.server_address}: {e}") from e
        try:
            sock.setblocking(False)
            sock.connect(sockaddr)
        except OSError as e:
            sock.close()
            raise SocketError(f"Cannot connect to {self.server_address}: {e}") from e

        with self._lock:
            previous, self._socket = self._socket, sock
        if previous is not None:
            previous.close()
        logger.info("statsd: sending to %s (%s)", self.server_address, sockaddr[0])

    def send(self, data: bytes) -> int:
        """
        Write one datagram.

        Args:
            data (bytes): The datagram payload

        Returns:
            int: Number of bytes written

        Raises:
            WriteError: If the socket is closed or the write fails
        """
        with self._lock:
            if self._socket is None:
                raise WriteError("statsd socket is closed")
            try:
                return self._socket.send(data)
            except OSError as e:
                raise WriteError(f"Failed to write {len(data)} bytes to {self.server_address}: {e}") from e

    def close(self) -> None:
        """Close the socket; does nothing if it was never opened."""
        with self._lock:
            sock, self._socket = self._socket, None
        if sock is not None:
            sock.close()
            logger.info("statsd: closed socket to %s", self.server_address)
