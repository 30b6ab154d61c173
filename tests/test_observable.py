"""Tests for the subscribe/notify base class."""
import logging

from eminent_notes.observable import Observable


class Counter(Observable[int]):
    def __init__(self):
        super().__init__()
        self.value = 0

    def snapshot(self) -> int:
        return self.value

    def increment(self):
        self.value += 1
        self._publish()


class TestObservable:
    def test_subscribers_receive_snapshots(self):
        counter = Counter()
        seen = []
        counter.subscribe(seen.append)
        counter.increment()
        counter.increment()
        assert seen == [1, 2]

    def test_unsubscribe(self):
        counter = Counter()
        seen = []
        unsubscribe = counter.subscribe(seen.append)
        counter.increment()
        unsubscribe()
        unsubscribe()
        counter.increment()
        assert seen == [1]
        assert counter.subscriber_count == 0

    def test_failing_subscriber_does_not_stop_others(self, caplog):
        counter = Counter()
        seen = []

        def broken(value):
            raise RuntimeError("subscriber bug")

        counter.subscribe(broken)
        counter.subscribe(seen.append)
        with caplog.at_level(logging.ERROR, logger="eminent_notes.observable"):
            counter.increment()

        assert seen == [1]
        assert "Counter failed" in caplog.text
