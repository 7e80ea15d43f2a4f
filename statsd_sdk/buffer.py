"""
Packs serialized lines into size-bounded datagrams.
"""
import logging
import threading
from datetime import datetime
from typing import Any, Dict, List, Optional

import pytz

from .errors import WriteError

logger = logging.getLogger(__name__)

SEPARATOR = b'\n'


class DatagramBuffer:
    """
    Accumulates lines until the next one would overflow ``capacity`` bytes.

    Lines within a datagram are newline separated and never split. A line
    longer than ``capacity`` on its own is sent alone. A capacity of 0 sends
    every line as its own datagram (unbuffered mode).

    A datagram whose write fails is dropped together with every line in it.
    """

    def __init__(self, transport, capacity: int = 0):
        """
        Initialize the buffer.

        Args:
            transport: Object with a ``send(bytes)`` method
            capacity (int): Maximum datagram size in bytes
        """
        if capacity < 0:
            raise ValueError("Buffer capacity must not be negative")
        self.transport = transport
        self.capacity = capacity
        self._pending: List[bytes] = []
        self._pending_size = 0
        self._lock = threading.Lock()
        self._last_flush: Optional[datetime] = None
        self._stats = {
            'datagrams_sent': 0,
            'lines_sent': 0,
            'lines_dropped': 0,
            'send_errors': 0,
        }

    def add(self, line: bytes) -> None:
        """
        Add one serialized line, flushing first if it would not fit.

        Args:
            line (bytes): A single wire line without separator

        Raises:
            WriteError: If a datagram flushed by this call could not be sent
        """
        with self._lock:
            outgoing = []
            if self._pending and self._pending_size + len(SEPARATOR) + len(line) > self.capacity:
                outgoing.append(self._take())

            if len(line) > self.capacity:
                outgoing.append([line])
            else:
                if self._pending:
                    self._pending_size += len(SEPARATOR)
                self._pending.append(line)
                self._pending_size += len(line)

            self._send_all(outgoing)

    def flush_all(self) -> None:
        """
        Send whatever is pending, even if the datagram is not full.

        Raises:
            WriteError: If the datagram could not be sent
        """
        with self._lock:
            if self._pending:
                self._send_all([self._take()])

    def _take(self) -> List[bytes]:
        # caller holds self._lock
        batch = self._pending
        self._pending = []
        self._pending_size = 0
        return batch

    def _send_all(self, batches: List[List[bytes]]) -> None:
        # caller holds self._lock
        error = None
        for batch in batches:
            payload = SEPARATOR.join(batch)
            try:
                self.transport.send(payload)
            except WriteError as e:
                self._stats['send_errors'] += 1
                self._stats['lines_dropped'] += len(batch)
                logger.warning("statsd: dropped datagram with %d lines: %s", len(batch), e)
                error = error or e
                continue
            self._stats['datagrams_sent'] += 1
            self._stats['lines_sent'] += len(batch)
            self._last_flush = datetime.now(pytz.UTC)
        if error is not None:
            raise error

    @property
    def pending_bytes(self) -> int:
        """Size of the datagram that would be sent right now."""
        return self._pending_size

    @property
    def stats(self) -> Dict[str, Any]:
        """Get buffer statistics."""
        return {
            **self._stats,
            'pending_lines': len(self._pending),
            'pending_bytes': self._pending_size,
            'last_flush_at': self._last_flush.isoformat() if self._last_flush else None,
        }
