"""Tests for the reference producers."""

import threading

from streamline import Background, Batches, Fail, Just, Subject


class _Recorder:
    """Collects producer events in order."""

    def __init__(self):
        self.events = []
        self.done = threading.Event()

    def on_value(self, batch):
        self.events.append(("value", batch))

    def on_error(self, error):
        self.events.append(("error", error))
        self.done.set()

    def on_complete(self):
        self.events.append(("complete",))
        self.done.set()

    def subscribe(self, producer):
        return producer.subscribe(self.on_value, self.on_error, self.on_complete)


class TestJustFailBatches:
    def test_just(self):
        rec = _Recorder()
        rec.subscribe(Just([1, 2, 3]))
        assert rec.events == [("value", [1, 2, 3]), ("complete",)]

    def test_fail(self):
        rec = _Recorder()
        error = KeyError("missing")
        rec.subscribe(Fail(error))
        assert rec.events == [("error", error)]

    def test_batches(self):
        rec = _Recorder()
        rec.subscribe(Batches([[1], [2]]))
        assert rec.events == [("value", [1]), ("value", [2]), ("complete",)]

    def test_batches_resubscribe_replays(self):
        producer = Batches(iter([[1]]))
        first, second = _Recorder(), _Recorder()
        first.subscribe(producer)
        second.subscribe(producer)
        assert first.events == second.events


class TestSubject:
    def test_emit_to_all_subscribers(self):
        subject = Subject()
        a, b = _Recorder(), _Recorder()
        handles = [a.subscribe(subject), b.subscribe(subject)]
        subject.emit(["x"])
        assert a.events == [("value", ["x"])]
        assert b.events == [("value", ["x"])]
        assert all(not h.cancelled for h in handles)

    def test_unsubscribe(self):
        subject = Subject()
        rec = _Recorder()
        handle = rec.subscribe(subject)
        subject.emit([1])
        handle.cancel()
        subject.emit([2])
        assert rec.events == [("value", [1])]

    def test_released_handle_unsubscribes(self):
        subject = Subject()
        _Recorder().subscribe(subject)
        assert subject.subscriber_count == 0

    def test_unsubscribe_idempotent(self):
        subject = Subject()
        handle = _Recorder().subscribe(subject)
        handle.cancel()
        handle.cancel()  # should not raise

    def test_terminal_once(self):
        subject = Subject()
        rec = _Recorder()
        handle = rec.subscribe(subject)
        subject.complete()
        subject.fail(RuntimeError())
        subject.emit([1])
        subject.complete()
        assert rec.events == [("complete",)]
        assert subject.terminated

    def test_late_subscriber_gets_terminal(self):
        subject = Subject()
        error = RuntimeError("gone")
        subject.fail(error)
        rec = _Recorder()
        rec.subscribe(subject)
        assert rec.events == [("error", error)]
        assert subject.subscriber_count == 0


class TestBackground:
    def test_emits_result_from_worker(self):
        threads = []

        def _fetch(url):
            threads.append(threading.current_thread())
            return [url]

        rec = _Recorder()
        rec.subscribe(Background(_fetch, "https://example.test"))

        assert rec.done.wait(timeout=1)
        assert rec.events == [("value", ["https://example.test"]), ("complete",)]
        assert threads[0] is not threading.current_thread()

    def test_exception_becomes_error(self):
        error = ConnectionError("refused")

        def _fetch():
            raise error

        rec = _Recorder()
        rec.subscribe(Background(_fetch))

        assert rec.done.wait(timeout=1)
        assert rec.events == [("error", error)]

    def test_cancel_suppresses_events(self):
        release = threading.Event()
        finished = threading.Event()

        def _fetch():
            release.wait(timeout=1)
            finished.set()
            return [1]

        rec = _Recorder()
        handle = rec.subscribe(Background(_fetch))
        handle.cancel()
        release.set()

        assert finished.wait(timeout=1)
        assert not rec.done.wait(timeout=0.05)
        assert rec.events == []
