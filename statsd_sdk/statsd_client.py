"""
StatsD client for emitting metrics over UDP.

Two modes share the same datagram buffer:

- unbuffered (``buffer_size=0``): every producer call is serialized at once
  and each line goes out as its own datagram
- buffered (``buffer_size > 0``): producer calls are aggregated per key in an
  event registry, and a background thread drains the registry every
  ``flush_interval`` seconds, packing lines into datagrams of at most
  ``buffer_size`` bytes

Delivery is fire-and-forget: a datagram that fails to send is dropped with
all the lines it carried.
"""
import logging
import random
import threading
from datetime import timedelta
from typing import Any, Dict, Optional, Union

from . import config
from .buffer import DatagramBuffer
from .errors import StatsdError, WriteError
from .events import Absolute, Counter, Event, Gauge, GaugeDelta, Number, Set, Timer
from .registry import EventRegistry
from .serializer import LineSerializer, parse_sample_mode
from .transport import UdpTransport

logger = logging.getLogger(__name__)


class StatsdClient:
    """Client for sending metrics to a StatsD collector."""

    def __init__(
        self,
        server_address: Optional[str] = None,
        prefix: Optional[str] = None,
        sample_mode: Optional[str] = None,
        buffer_size: int = 0,
        flush_interval: Optional[float] = None,
        evict_after: Optional[int] = None,
        hostname: Optional[str] = None
    ):
        """
        Initialize the client. No socket is opened until ``create_socket``.

        Args:
            server_address (str, optional): Collector "host:port". Defaults to config.SERVER_ADDRESS.
            prefix (str, optional): Prepended to every key. Defaults to config.PREFIX.
            sample_mode (str, optional): "none" or a sample rate. Defaults to config.SAMPLE_MODE.
            buffer_size (int): Datagram capacity in bytes; 0 disables buffering.
            flush_interval (float, optional): Seconds between flushes in buffered mode.
                Defaults to config.FLUSH_INTERVAL.
            evict_after (int, optional): Idle flushes before a key is evicted.
                Defaults to config.EVICT_AFTER.
            hostname (str, optional): Replacement for %HOST%. Defaults to config.HOSTNAME,
                then to the local hostname.

        Raises:
            ValueError: If the sample mode, buffer size or flush interval is invalid
        """
        self.server_address = server_address or config.SERVER_ADDRESS
        self.sample_rate = parse_sample_mode(config.SAMPLE_MODE if sample_mode is None else sample_mode)
        self.flush_interval = config.FLUSH_INTERVAL if flush_interval is None else flush_interval
        if self.flush_interval <= 0:
            raise ValueError("Flush interval must be positive")

        self.transport = UdpTransport(self.server_address)
        self.serializer = LineSerializer(
            prefix=config.PREFIX if prefix is None else prefix,
            sample_rate=self.sample_rate,
            hostname=hostname or config.HOSTNAME
        )
        self.buffer = DatagramBuffer(self.transport, buffer_size)
        self.registry = EventRegistry(evict_after) if buffer_size > 0 else None

        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def buffered(self) -> bool:
        return self.registry is not None

    @property
    def prefix(self) -> str:
        return self.serializer.prefix

    def create_socket(self) -> None:
        """
        Open the UDP socket and, in buffered mode, start the flush thread.

        Raises:
            ResolutionError: If the collector address cannot be resolved
            SocketError: If the socket cannot be opened
        """
        self.transport.create_socket()
        if self.buffered and self._thread is None:
            self._stop.clear()
            self._thread = threading.Thread(target=self._flush_loop, name='statsd-flush', daemon=True)
            self._thread.start()
            logger.info("statsd: flushing every %.2fs, datagram size %d bytes",
                        self.flush_interval, self.buffer.capacity)

    def close(self) -> None:
        """
        Stop the flush thread, flush what is left and close the socket.

        Does nothing on a client whose socket was never opened.

        Raises:
            WriteError: If the final flush could not be sent (the socket is closed anyway)
        """
        if self._thread is not None:
            self._stop.set()
            self._thread.join(timeout=max(5.0, self.flush_interval * 2))
            if self._thread.is_alive():
                logger.warning("statsd flush thread did not stop cleanly")
            self._thread = None

        if not self.transport.is_open:
            return
        try:
            self.flush()
        finally:
            if self.registry is not None:
                self.registry.clear()
            self.transport.close()

    def flush(self) -> None:
        """
        Drain the registry into datagrams and send everything pending.

        Raises:
            WriteError: If any datagram could not be sent; the remaining lines
                are still sent before the first error is raised
        """
        error = None
        if self.registry is not None:
            for event, lines in self.registry.drain(self.flush_interval):
                for line in lines:
                    try:
                        self.buffer.add(self.serializer.render(event.type, line))
                    except WriteError as e:
                        error = error or e
        try:
            self.buffer.flush_all()
        except WriteError as e:
            error = error or e
        if error is not None:
            raise error

    def _flush_loop(self) -> None:
        logger.debug("statsd flush loop started")
        while not self._stop.wait(self.flush_interval):
            try:
                self.flush()
            except StatsdError as e:
                logger.error("statsd flush failed: %s", e)
            except Exception:
                logger.exception("statsd flush raised an unexpected error")

    def _sampled(self) -> bool:
        return self.sample_rate >= 1.0 or random.random() < self.sample_rate

    def _record(self, event: Event) -> None:
        if self.registry is not None:
            self.registry.record(event)
            return
        error = None
        for line in event.stats():
            try:
                self.buffer.add(self.serializer.render(event.type, line))
            except WriteError as e:
                error = error or e
        if error is not None:
            raise error

    def incr(self, stat: str, count: Number = 1) -> None:
        """
        Increment a counter.

        Args:
            stat (str): Metric key
            count (int or float): Amount to add
        """
        if count and self._sampled():
            self._record(Counter(stat, count))

    def decr(self, stat: str, count: Number = 1) -> None:
        """Decrement a counter."""
        if count and self._sampled():
            self._record(Counter(stat, -count))

    def absolute(self, stat: str, value: Number) -> None:
        """
        Record an absolute value; every sample is sent individually.

        Args:
            stat (str): Metric key
            value (int or float): The sample
        """
        self._record(Absolute(stat, value))

    total = absolute

    def timing(self, stat: str, millis: Number) -> None:
        """Record a timing in milliseconds."""
        if self._sampled():
            self._record(Timer(stat, millis))

    def precision_timing(self, stat: str, elapsed: Union[float, timedelta]) -> None:
        """
        Record a timing with sub-millisecond precision.

        Args:
            stat (str): Metric key
            elapsed (float or timedelta): Duration, in seconds when given as a float
        """
        if isinstance(elapsed, timedelta):
            elapsed = elapsed.total_seconds()
        if self._sampled():
            self._record(Timer(stat, elapsed * 1000.0))

    def gauge(self, stat: str, value: Number) -> None:
        """Set a gauge to an absolute value."""
        self._record(Gauge(stat, value))

    def gauge_delta(self, stat: str, delta: Number) -> None:
        """Move a gauge up or down by ``delta``."""
        self._record(GaugeDelta(stat, delta))

    def set(self, stat: str, member: Any) -> None:
        """Add a member to a set; the collector counts distinct members."""
        self._record(Set(stat, member))

    @property
    def stats(self) -> Dict[str, Any]:
        """Get client statistics."""
        return {
            **self.buffer.stats,
            'buffered': self.buffered,
            'registered_keys': len(self.registry) if self.registry is not None else 0,
        }

    def __enter__(self) -> 'StatsdClient':
        self.create_socket()
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()


class NoopClient:
    """A client that accepts every call and sends nothing."""

    def __init__(self, *args, **kwargs):
        pass

    def create_socket(self) -> None:
        pass

    def close(self) -> None:
        pass

    def flush(self) -> None:
        pass

    def incr(self, stat: str, count: Number = 1) -> None:
        pass

    def decr(self, stat: str, count: Number = 1) -> None:
        pass

    def absolute(self, stat: str, value: Number) -> None:
        pass

    total = absolute

    def timing(self, stat: str, millis: Number) -> None:
        pass

    def precision_timing(self, stat: str, elapsed: Union[float, timedelta]) -> None:
        pass

    def gauge(self, stat: str, value: Number) -> None:
        pass

    def gauge_delta(self, stat: str, delta: Number) -> None:
        pass

    def set(self, stat: str, member: Any) -> None:
        pass

    @property
    def stats(self) -> Dict[str, Any]:
        return {}

    def __enter__(self) -> 'NoopClient':
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        pass


def new_statsd_client(server_address: str, prefix: str = '', sample_mode: str = 'none') -> StatsdClient:
    """
    Create an unbuffered client: one datagram per metric line.

    Args:
        server_address (str): Collector "host:port"
        prefix (str): Prepended to every key
        sample_mode (str): "none" or a sample rate
    """
    return StatsdClient(server_address, prefix, sample_mode)


def new_statsd_client_buffered(
    server_address: str,
    prefix: str = '',
    sample_mode: str = 'none',
    buffer_size: Optional[int] = None,
    flush_interval: Optional[float] = None
) -> StatsdClient:
    """
    Create a buffered client that aggregates per key and packs datagrams.

    Args:
        server_address (str): Collector "host:port"
        prefix (str): Prepended to every key
        sample_mode (str): "none" or a sample rate
        buffer_size (int, optional): Datagram capacity in bytes. Defaults to config.BUFFER_SIZE.
        flush_interval (float, optional): Seconds between flushes. Defaults to config.FLUSH_INTERVAL.
    """
    buffer_size = config.BUFFER_SIZE if buffer_size is None else buffer_size
    if buffer_size <= 0:
        raise ValueError("Buffered client needs a positive buffer size")
    return StatsdClient(server_address, prefix, sample_mode, buffer_size=buffer_size,
                        flush_interval=flush_interval)
