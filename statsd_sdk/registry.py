"""
Registry of live events, keyed by metric name.
"""
import logging
import threading
from typing import Dict, List, Tuple

from . import config
from .events import Event

logger = logging.getLogger(__name__)


class EventRegistry:
    """
    Maps metric keys to their live event.

    The registry lock only guards membership (lookup, insert, evict). Updates
    to an event are serialized by that event's own lock, so producers
    recording unrelated keys never wait on each other.

    Entries persist across flush intervals and are reset after each flush.
    An entry that takes no update for ``evict_after`` consecutive flushes is
    retired and dropped; ``evict_after=0`` keeps every entry forever.
    """

    def __init__(self, evict_after: int = None):
        """
        Initialize the registry.

        Args:
            evict_after (int, optional): Idle flushes before an entry is evicted.
                Defaults to config.EVICT_AFTER.
        """
        self.evict_after = config.EVICT_AFTER if evict_after is None else evict_after
        self._events: Dict[str, Event] = {}
        self._lock = threading.Lock()

    def record(self, event: Event) -> Event:
        """
        Merge a freshly created event into the live entry for its key.

        The event itself becomes the live entry the first time its key is
        seen.

        Args:
            event (Event): Event carrying the new sample(s)

        Returns:
            Event: The live entry that now holds the sample(s)

        Raises:
            TypeConflictError: If the key is already live with another type
        """
        while True:
            with self._lock:
                current = self._events.get(event.key)
                if current is None:
                    self._events[event.key] = event
                    return event
            if current.update(event):
                return current
            # Evicted between lookup and update
            logger.debug("Event %s was retired, recording into a new entry", event.key)

    def drain(self, interval: float = 0.0) -> List[Tuple[Event, List[str]]]:
        """
        Snapshot and reset every live event, then evict idle entries.

        Args:
            interval (float): Length of the flush interval in seconds

        Returns:
            list: ``(event, lines)`` pairs for every event that had activity
        """
        with self._lock:
            events = list(self._events.values())

        drained = []
        for event in events:
            lines = event.flush(interval)
            if lines:
                drained.append((event, lines))

        self._evict_idle()
        return drained

    def _evict_idle(self) -> None:
        if self.evict_after <= 0:
            return
        with self._lock:
            for key, event in list(self._events.items()):
                if event.retire_if_idle(self.evict_after):
                    del self._events[key]
                    logger.debug("Evicted idle event %s", key)

    def get(self, key: str) -> Event:
        with self._lock:
            return self._events.get(key)

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._events)

    def clear(self) -> None:
        """Drop every entry."""
        with self._lock:
            self._events.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)
