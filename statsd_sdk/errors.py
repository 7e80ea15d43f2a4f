"""
Exceptions raised by the StatsD SDK.
"""


class StatsdError(Exception):
    """Base class for all SDK errors."""


class TypeConflictError(StatsdError):
    """An event was merged into an event of a different type under the same key."""

    def __init__(self, current, incoming):
        self.current = current
        self.incoming = incoming
        super().__init__(f"statsd event type conflict: {current} vs {incoming}")


class ResolutionError(StatsdError):
    """The collector address could not be parsed or resolved."""


class SocketError(StatsdError):
    """The outbound UDP socket could not be created or connected."""


class WriteError(StatsdError):
    """A datagram could not be written; its contents are dropped."""
