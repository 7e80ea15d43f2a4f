"""Tests for datagram packing."""

import pytest

from conftest import FailingTransport
from statsd_sdk.buffer import DatagramBuffer
from statsd_sdk.errors import WriteError


class TestDatagramBuffer:
    def test_lines_are_packed_until_full(self, transport):
        buffer = DatagramBuffer(transport, capacity=11)
        buffer.add(b"a:1|c")  # 5 bytes
        buffer.add(b"b:2|c")  # 5 + 1 + 5 = 11
        assert transport.sent == []

        buffer.add(b"c:3|c")
        assert transport.sent == [b"a:1|c\nb:2|c"]
        assert buffer.pending_bytes == 5

    def test_flush_all_sends_partial_datagram(self, transport):
        buffer = DatagramBuffer(transport, capacity=100)
        buffer.add(b"a:1|c")
        buffer.flush_all()
        buffer.flush_all()

        assert transport.sent == [b"a:1|c"]

    def test_oversized_line_is_sent_alone(self, transport):
        buffer = DatagramBuffer(transport, capacity=10)
        buffer.add(b"a:1|c")
        buffer.add(b"a.very.long.key:12345|c")
        buffer.add(b"b:2|c")
        buffer.flush_all()

        assert transport.sent == [b"a:1|c", b"a.very.long.key:12345|c", b"b:2|c"]

    def test_zero_capacity_sends_every_line(self, transport):
        buffer = DatagramBuffer(transport, capacity=0)
        buffer.add(b"a:1|c")
        buffer.add(b"b:1|c")

        assert transport.sent == [b"a:1|c", b"b:1|c"]

    def test_datagrams_never_exceed_capacity(self, transport):
        capacity = 64
        buffer = DatagramBuffer(transport, capacity=capacity)
        for i in range(200):
            buffer.add(("metric.%d:%d|c" % (i, i * 7)).encode())
        buffer.flush_all()

        assert all(len(datagram) <= capacity for datagram in transport.sent)
        lines = [line for datagram in transport.sent for line in datagram.split(b"\n")]
        assert len(lines) == 200

    def test_negative_capacity(self, transport):
        with pytest.raises(ValueError):
            DatagramBuffer(transport, capacity=-1)

    def test_failed_write_drops_datagram(self):
        failing = FailingTransport()
        buffer = DatagramBuffer(failing, capacity=100)
        buffer.add(b"a:1|c")
        buffer.add(b"b:1|c")

        with pytest.raises(WriteError):
            buffer.flush_all()
        assert failing.attempts == 1
        assert buffer.pending_bytes == 0

        buffer.flush_all()
        assert failing.attempts == 1
        assert buffer.stats["lines_dropped"] == 2
        assert buffer.stats["send_errors"] == 1

    def test_stats(self, transport):
        buffer = DatagramBuffer(transport, capacity=100)
        assert buffer.stats["last_flush_at"] is None

        buffer.add(b"a:1|c")
        buffer.add(b"b:1|c")
        buffer.flush_all()

        stats = buffer.stats
        assert stats["datagrams_sent"] == 1
        assert stats["lines_sent"] == 2
        assert stats["pending_lines"] == 0
        assert stats["last_flush_at"].endswith("+00:00")
