"""
Turns event lines into wire-ready bytes.
"""
import socket
from typing import Optional

from .events import EventType, format_value

HOST_TOKEN = '%HOST%'

# Only counters and timers are sampled
SAMPLED_TYPES = frozenset({EventType.COUNTER, EventType.TIMER})


def parse_sample_mode(mode: Optional[str]) -> float:
    """
    Convert a sample mode flag into a sample rate.

    Args:
        mode (str): "none" (or empty) for no sampling, else a rate in (0, 1]

    Returns:
        float: The sample rate

    Raises:
        ValueError: If the mode is neither "none" nor a valid rate
    """
    if mode is None or mode.strip().lower() in ('', 'none'):
        return 1.0
    try:
        rate = float(mode)
    except ValueError:
        raise ValueError(f"Invalid sample mode: {mode!r}")
    if not 0.0 < rate <= 1.0:
        raise ValueError(f"Sample rate must be in (0, 1], got {mode!r}")
    return rate


class LineSerializer:
    """
    Applies the key prefix, ``%HOST%`` substitution and sample rate suffix.

    The hostname is resolved the first time a line containing the token is
    serialized, not when the metric is recorded.
    """

    def __init__(self, prefix: str = '', sample_rate: float = 1.0, hostname: Optional[str] = None):
        self.prefix = prefix or ''
        self.sample_rate = sample_rate
        self._hostname = hostname

    @property
    def hostname(self) -> str:
        if self._hostname is None:
            self._hostname = socket.gethostname()
        return self._hostname

    def render(self, event_type: EventType, line: str) -> bytes:
        """
        Serialize one event line.

        Args:
            event_type (EventType): Type of the event that produced the line
            line (str): A ``<key>:<value>|<type>`` line

        Returns:
            bytes: The UTF-8 encoded wire line
        """
        line = self.prefix + line
        if HOST_TOKEN in line:
            line = line.replace(HOST_TOKEN, self.hostname)
        if self.sample_rate < 1.0 and event_type in SAMPLED_TYPES:
            line = f"{line}|@{format_value(self.sample_rate)}"
        return line.encode('utf-8')
