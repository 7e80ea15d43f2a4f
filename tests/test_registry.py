"""Tests for the event registry."""

import threading

import pytest

from statsd_sdk.errors import TypeConflictError
from statsd_sdk.events import Absolute, Counter, Gauge
from statsd_sdk.registry import EventRegistry


def counter_total(lines):
    return sum(int(line.rsplit(':', 1)[1].split('|')[0]) for line in lines)


class TestRecord:
    def test_first_event_becomes_entry(self):
        registry = EventRegistry(evict_after=0)
        event = Counter("hits", 2)

        assert registry.record(event) is event
        assert registry.get("hits") is event
        assert len(registry) == 1

    def test_same_key_is_merged(self):
        registry = EventRegistry(evict_after=0)
        first = registry.record(Absolute("a", 1))
        second = registry.record(Absolute("a", 2))

        assert second is first
        assert first.payload() == [1, 2]

    def test_type_conflict_is_raised(self):
        registry = EventRegistry(evict_after=0)
        registry.record(Counter("k", 1))

        with pytest.raises(TypeConflictError):
            registry.record(Gauge("k", 1))
        assert registry.get("k").payload() == 1


class TestDrain:
    def test_drain_returns_active_events_only(self):
        registry = EventRegistry(evict_after=0)
        registry.record(Counter("a", 1))
        registry.record(Counter("b", 2))

        drained = dict((event.key, lines) for event, lines in registry.drain())
        assert drained == {"a": ["a:1|c"], "b": ["b:2|c"]}
        assert registry.drain() == []

    def test_entries_are_kept_when_eviction_disabled(self):
        registry = EventRegistry(evict_after=0)
        registry.record(Counter("a", 1))
        for _ in range(10):
            registry.drain()

        assert registry.keys() == ["a"]

    def test_idle_entries_are_evicted(self):
        registry = EventRegistry(evict_after=2)
        registry.record(Counter("a", 1))

        registry.drain()  # active
        registry.drain()  # idle 1
        assert len(registry) == 1
        registry.drain()  # idle 2
        assert len(registry) == 0

    def test_record_after_eviction_creates_new_entry(self):
        registry = EventRegistry(evict_after=1)
        old = registry.record(Counter("a", 1))
        registry.drain()
        registry.drain()

        new = registry.record(Counter("a", 5))
        assert new is not old
        assert old.retired
        assert [lines for _, lines in registry.drain()] == [["a:5|c"]]

    def test_clear(self):
        registry = EventRegistry(evict_after=0)
        registry.record(Counter("a", 1))
        registry.clear()

        assert len(registry) == 0


class TestConcurrency:
    def test_no_update_lost_while_draining(self):
        registry = EventRegistry(evict_after=1)
        keys = ["k%d" % i for i in range(5)]
        threads_count = 6
        per_thread = 300
        collected = {key: [] for key in keys}
        done = threading.Event()

        def produce():
            for _ in range(per_thread):
                for key in keys:
                    registry.record(Counter(key, 1))

        def drain():
            while not done.is_set():
                for event, lines in registry.drain():
                    collected[event.key].extend(lines)

        drainer = threading.Thread(target=drain)
        drainer.start()
        producers = [threading.Thread(target=produce) for _ in range(threads_count)]
        for t in producers:
            t.start()
        for t in producers:
            t.join()
        done.set()
        drainer.join()
        for event, lines in registry.drain():
            collected[event.key].extend(lines)

        for key in keys:
            assert counter_total(collected[key]) == threads_count * per_thread
