"""Tests for line serialization and sample modes."""

import pytest

from statsd_sdk.events import EventType
from statsd_sdk.serializer import LineSerializer, parse_sample_mode


class TestParseSampleMode:
    @pytest.mark.parametrize("mode", [None, "", "none", "NONE"])
    def test_no_sampling(self, mode):
        assert parse_sample_mode(mode) == 1.0

    def test_rate(self):
        assert parse_sample_mode("0.25") == 0.25

    @pytest.mark.parametrize("mode", ["0", "1.5", "-0.1", "sometimes"])
    def test_invalid(self, mode):
        with pytest.raises(ValueError):
            parse_sample_mode(mode)


class TestLineSerializer:
    def test_prefix(self):
        serializer = LineSerializer(prefix="myproject.")

        assert serializer.render(EventType.COUNTER, "a:b:c:5|c") == b"myproject.a:b:c:5|c"

    def test_host_token_replaced(self):
        serializer = LineSerializer(hostname="web01")

        assert serializer.render(EventType.GAUGE, "zz.%HOST%.load:1|g") == b"zz.web01.load:1|g"

    def test_host_token_defaults_to_local_hostname(self, hostname):
        serializer = LineSerializer(prefix="%HOST%.")

        assert serializer.render(EventType.COUNTER, "x:1|c") == ("%s.x:1|c" % hostname).encode()

    def test_sample_rate_suffix_on_counters_and_timers(self):
        serializer = LineSerializer(sample_rate=0.5)

        assert serializer.render(EventType.COUNTER, "a:1|c") == b"a:1|c|@0.5"
        assert serializer.render(EventType.TIMER, "t:3|ms") == b"t:3|ms|@0.5"
        assert serializer.render(EventType.GAUGE, "g:3|g") == b"g:3|g"
        assert serializer.render(EventType.ABSOLUTE, "a:1|c") == b"a:1|c"

    def test_no_suffix_without_sampling(self):
        assert LineSerializer().render(EventType.COUNTER, "a:1|c") == b"a:1|c"
