"""
Aggregation events, one live instance per metric key.

Each variant decides how updates for the same key are merged during a flush
interval and how the merged state is rendered as StatsD lines:

- Counter: values are summed into a single ``|c`` line
- Timer: every sample is kept and emitted as its own ``|ms`` line
- Gauge: last write wins, emitted as ``|g``
- Set: members are deduplicated, one ``|s`` line per distinct member
- Absolute: every sample is kept and emitted as its own ``|c`` line
- GaugeDelta: deltas are summed and emitted as a signed ``|g`` line
"""
import math
import threading
from abc import ABC, abstractmethod
from enum import IntEnum
from typing import Any, Dict, List, Optional, Union

from .errors import TypeConflictError

Number = Union[int, float]


class EventType(IntEnum):
    """Type tag of an event; never changes once the event exists."""
    COUNTER = 1
    TIMER = 2
    GAUGE = 3
    SET = 4
    ABSOLUTE = 5
    GAUGE_DELTA = 6


def format_value(value: Number) -> str:
    """
    Render a number for the wire.

    Integers (and integral floats) render without a decimal point, other
    floats use the shortest representation that round-trips.

    Args:
        value (int or float): The value to render

    Returns:
        str: The rendered value
    """
    if isinstance(value, int):
        return str(value)
    if value.is_integer():
        return str(int(value))
    return repr(float(value))


def check_text(text: str, what: str) -> str:
    """
    Validate a key or set member that is written to the wire.

    Raises:
        ValueError: If the text contains a newline or cannot be UTF-8 encoded
    """
    if '\n' in text:
        raise ValueError(f"{what} must not contain a newline: {text!r}")
    try:
        text.encode('utf-8')
    except UnicodeEncodeError:
        raise ValueError(f"{what} is not valid UTF-8: {text!r}") from None
    return text


def check_value(value: Any) -> Number:
    """
    Validate a numeric sample.

    Raises:
        TypeError: If the value is not a real number
        ValueError: If the value is NaN or infinite
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"Metric value must be a number, got {type(value).__name__}")
    if isinstance(value, float) and not math.isfinite(value):
        raise ValueError(f"Metric value must be finite, got {value}")
    return value


class Event(ABC):
    """
    Abstract base class for all events.

    Subclasses implement the variant-specific state through ``_merge``,
    ``_reset``, ``_payload`` and ``_stats``; those are always called with the
    event lock held. The public methods take the lock themselves.
    """

    event_type: EventType
    wire_type: str

    def __init__(self, key: str):
        if not key:
            raise ValueError("Metric key must not be empty")
        self._key = check_text(key, "Metric key")
        self._lock = threading.Lock()
        # True from the first sample until the next reset
        self._dirty = True
        self._idle_intervals = 0
        self._retired = False

    @property
    def key(self) -> str:
        """The metric name this event aggregates."""
        return self._key

    @property
    def type(self) -> EventType:
        """The type tag of this event."""
        return self.event_type

    @property
    def retired(self) -> bool:
        return self._retired

    def update(self, other: 'Event') -> bool:
        """
        Merge the payload of another event of the same type into this one.

        Args:
            other (Event): A freshly recorded event for the same key

        Returns:
            bool: False if this event was retired from its registry and
                did not take the update, True otherwise

        Raises:
            TypeConflictError: If the two events have different types
        """
        if other.type != self.type:
            raise TypeConflictError(self, other)
        payload = other.payload()
        with self._lock:
            if self._retired:
                return False
            self._merge(payload)
            self._dirty = True
            return True

    def reset(self) -> None:
        """Clear the aggregated state."""
        with self._lock:
            self._reset()
            self._dirty = False

    def payload(self) -> Any:
        """Return a snapshot of the aggregated state."""
        with self._lock:
            return self._payload()

    def stats(self, interval: float = 0.0) -> List[str]:
        """
        Render the aggregated state as StatsD lines without resetting it.

        Args:
            interval (float): Length of the flush interval in seconds

        Returns:
            list: Zero or more ``<key>:<value>|<type>`` lines
        """
        with self._lock:
            if not self._dirty:
                return []
            return self._stats(interval)

    def flush(self, interval: float = 0.0) -> List[str]:
        """
        Snapshot the aggregated state as lines and reset it in one step.

        An event that took no update since the previous flush returns no
        lines and counts the interval as idle.
        """
        with self._lock:
            if not self._dirty:
                self._idle_intervals += 1
                return []
            lines = self._stats(interval)
            self._reset()
            self._dirty = False
            self._idle_intervals = 0
            return lines

    def retire_if_idle(self, limit: int) -> bool:
        """
        Retire the event if it has been idle for at least ``limit`` flushes.

        A retired event refuses further updates, so a producer racing with
        eviction records into a new registry entry instead.
        """
        with self._lock:
            if self._dirty or self._idle_intervals < limit:
                return False
            self._retired = True
            return True

    @abstractmethod
    def _merge(self, payload: Any) -> None:
        pass

    @abstractmethod
    def _reset(self) -> None:
        pass

    @abstractmethod
    def _payload(self) -> Any:
        pass

    @abstractmethod
    def _stats(self, interval: float) -> List[str]:
        pass

    def _line(self, value: str) -> str:
        return f"{self._key}:{value}|{self.wire_type}"

    def __str__(self) -> str:
        return f"{{Type: {self.type.name}, Key: {self._key}, Payload: {self._payload()}}}"


class Counter(Event):
    """Sums every increment into a single delta per interval."""

    event_type = EventType.COUNTER
    wire_type = 'c'

    def __init__(self, key: str, value: Number = 1):
        super().__init__(key)
        self._value = check_value(value)

    def _merge(self, payload: Number) -> None:
        self._value += payload

    def _reset(self) -> None:
        self._value = 0

    def _payload(self) -> Number:
        return self._value

    def _stats(self, interval: float) -> List[str]:
        return [self._line(format_value(self._value))]


class Timer(Event):
    """Keeps every timing sample, in milliseconds."""

    event_type = EventType.TIMER
    wire_type = 'ms'

    def __init__(self, key: str, millis: Number):
        super().__init__(key)
        self._values = [check_value(millis)]

    def _merge(self, payload: List[Number]) -> None:
        self._values.extend(payload)

    def _reset(self) -> None:
        self._values = []

    def _payload(self) -> List[Number]:
        return list(self._values)

    def _stats(self, interval: float) -> List[str]:
        return [self._line(format_value(v)) for v in self._values]


class Gauge(Event):
    """
    Keeps the last value written in the interval.

    A leading sign on a gauge line is read by the collector as a delta, so a
    negative gauge is sent as a reset to zero followed by the value.
    """

    event_type = EventType.GAUGE
    wire_type = 'g'

    def __init__(self, key: str, value: Number):
        super().__init__(key)
        self._value = check_value(value)

    def _merge(self, payload: Optional[Number]) -> None:
        # a reset gauge carries no value
        if payload is not None:
            self._value = payload

    def _reset(self) -> None:
        self._value = None

    def _payload(self) -> Optional[Number]:
        return self._value

    def _stats(self, interval: float) -> List[str]:
        if self._value is None:
            return []
        if self._value < 0:
            return [self._line('0'), self._line(format_value(self._value))]
        return [self._line(format_value(self._value))]


class GaugeDelta(Event):
    """Sums relative gauge changes; emitted with an explicit sign."""

    event_type = EventType.GAUGE_DELTA
    wire_type = 'g'

    def __init__(self, key: str, delta: Number):
        super().__init__(key)
        self._value = check_value(delta)

    def _merge(self, payload: Number) -> None:
        self._value += payload

    def _reset(self) -> None:
        self._value = 0

    def _payload(self) -> Number:
        return self._value

    def _stats(self, interval: float) -> List[str]:
        sign = '+' if self._value >= 0 else ''
        return [self._line(sign + format_value(self._value))]


class Set(Event):
    """Collects the distinct members seen in the interval."""

    event_type = EventType.SET
    wire_type = 's'

    def __init__(self, key: str, member: Any):
        super().__init__(key)
        member = check_text(str(member), "Set member")
        self._members: Dict[str, None] = {member: None}

    def _merge(self, payload: List[str]) -> None:
        self._members.update(dict.fromkeys(payload))

    def _reset(self) -> None:
        self._members = {}

    def _payload(self) -> List[str]:
        return list(self._members)

    def _stats(self, interval: float) -> List[str]:
        return [self._line(member) for member in self._members]


class Absolute(Event):
    """
    A metric that is not averaged or aggregated.

    Every value is kept distinct and flushed individually as a counter line,
    so the collector sees each data point rather than a sum.
    """

    event_type = EventType.ABSOLUTE
    wire_type = 'c'

    def __init__(self, key: str, value: Number):
        super().__init__(key)
        self._values = [check_value(value)]

    def _merge(self, payload: List[Number]) -> None:
        self._values.extend(payload)

    def _reset(self) -> None:
        self._values = []

    def _payload(self) -> List[Number]:
        return list(self._values)

    def _stats(self, interval: float) -> List[str]:
        return [self._line(format_value(v)) for v in self._values]
