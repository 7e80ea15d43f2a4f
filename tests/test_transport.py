"""Tests for the UDP transport."""

import pytest

from statsd_sdk.errors import ResolutionError, WriteError
from statsd_sdk.transport import UdpTransport, parse_address


class TestParseAddress:
    def test_host_and_port(self):
        assert parse_address("127.0.0.1:8125") == ("127.0.0.1", 8125)

    def test_empty_host_is_localhost(self):
        assert parse_address(":8125") == ("localhost", 8125)

    def test_bracketed_ipv6(self):
        assert parse_address("[::1]:8125") == ("::1", 8125)

    @pytest.mark.parametrize("address", ["localhost", "localhost:port", "localhost:0", "localhost:70000"])
    def test_invalid(self, address):
        with pytest.raises(ResolutionError):
            parse_address(address)


class TestUdpTransport:
    def test_send_one_datagram(self, listener):
        transport = UdpTransport(listener.address)
        transport.create_socket()
        try:
            assert transport.send(b"a:1|c\nb:2|c") == 11
        finally:
            transport.close()

        assert listener.receive(1) == [b"a:1|c\nb:2|c"]

    def test_invalid_address_fails_create(self):
        with pytest.raises(ResolutionError):
            UdpTransport("nowhere").create_socket()

    def test_close_never_opened_is_noop(self):
        transport = UdpTransport("127.0.0.1:8125")
        transport.close()
        transport.close()

        assert not transport.is_open

    def test_send_after_close_fails(self, listener):
        transport = UdpTransport(listener.address)
        transport.create_socket()
        transport.close()

        with pytest.raises(WriteError):
            transport.send(b"a:1|c")

    def test_send_before_open_fails(self):
        with pytest.raises(WriteError):
            UdpTransport("127.0.0.1:8125").send(b"a:1|c")
