"""
StatsD SDK for aggregating metrics and sending them to a collector over UDP.
"""
from .buffer import DatagramBuffer
from .collector import Collector
from .errors import (
    StatsdError,
    TypeConflictError,
    ResolutionError,
    SocketError,
    WriteError,
)
from .events import (
    Event,
    EventType,
    Counter,
    Timer,
    Gauge,
    GaugeDelta,
    Set,
    Absolute,
    format_value,
)
from .metrics_manager import MetricsManager
from .registry import EventRegistry
from .serializer import LineSerializer, parse_sample_mode
from .statsd_client import (
    StatsdClient,
    NoopClient,
    new_statsd_client,
    new_statsd_client_buffered,
)
from .transport import UdpTransport

__all__ = [
    'Absolute',
    'Collector',
    'Counter',
    'DatagramBuffer',
    'Event',
    'EventRegistry',
    'EventType',
    'Gauge',
    'GaugeDelta',
    'LineSerializer',
    'MetricsManager',
    'NoopClient',
    'ResolutionError',
    'Set',
    'SocketError',
    'StatsdClient',
    'StatsdError',
    'Timer',
    'TypeConflictError',
    'UdpTransport',
    'WriteError',
    'format_value',
    'new_statsd_client',
    'new_statsd_client_buffered',
    'parse_sample_mode',
]
