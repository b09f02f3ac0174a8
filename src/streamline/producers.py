"""Reference producers.

Real data sources (HTTP clients, database cursors, ...) live outside this
package; anything with subscribe(on_value, on_error, on_complete) works.
These cover the common shapes: a fixed result, a fixed failure, a push
source and a blocking fetch run off the calling thread.
"""

from __future__ import annotations

import threading
from typing import Callable, Generic, Iterable, Sequence, TypeVar

from streamline.cancellable import Cancellable

T = TypeVar("T")

OnValue = Callable[[Sequence[T]], None]
OnError = Callable[[BaseException], None]
OnComplete = Callable[[], None]


class Just(Generic[T]):
    """Emit one batch and complete, synchronously on subscribe."""

    __slots__ = ("_batch",)

    def __init__(self, batch: Sequence[T]) -> None:
        self._batch = batch

    def subscribe(self, on_value: OnValue, on_error: OnError, on_complete: OnComplete) -> Cancellable:
        on_value(self._batch)
        on_complete()
        return Cancellable()

    def __repr__(self) -> str:
        return f"Just({self._batch!r})"


class Fail:
    """Fail immediately with the given error."""

    __slots__ = ("_error",)

    def __init__(self, error: BaseException) -> None:
        self._error = error

    def subscribe(self, on_value: OnValue, on_error: OnError, on_complete: OnComplete) -> Cancellable:
        on_error(self._error)
        return Cancellable()

    def __repr__(self) -> str:
        return f"Fail({self._error!r})"


class Batches(Generic[T]):
    """Emit each batch in order, then complete."""

    __slots__ = ("_batches",)

    def __init__(self, batches: Iterable[Sequence[T]]) -> None:
        self._batches = list(batches)

    def subscribe(self, on_value: OnValue, on_error: OnError, on_complete: OnComplete) -> Cancellable:
        for batch in self._batches:
            on_value(batch)
        on_complete()
        return Cancellable()

    def __repr__(self) -> str:
        return f"Batches({len(self._batches)} batches)"


class Subject(Generic[T]):
    """Push-based producer: emit batches by hand, then complete or fail.

    Any number of subscribers. Events after the terminal one are ignored;
    a late subscriber gets the terminal event straight away.
    """

    def __init__(self) -> None:
        self._subscribers: list[tuple[OnValue, OnError, OnComplete]] = []
        self._lock = threading.Lock()
        self._terminal: Callable[[tuple[OnValue, OnError, OnComplete]], None] | None = None

    @property
    def terminated(self) -> bool:
        return self._terminal is not None

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def emit(self, batch: Sequence[T]) -> None:
        """Push a batch to all subscribers."""
        with self._lock:
            if self._terminal is not None:
                return
            subscribers = list(self._subscribers)
        for on_value, _, _ in subscribers:
            on_value(batch)

    def complete(self) -> None:
        self._end(lambda s: s[2]())

    def fail(self, error: BaseException) -> None:
        self._end(lambda s: s[1](error))

    def _end(self, deliver) -> None:
        with self._lock:
            if self._terminal is not None:
                return
            self._terminal = deliver
            subscribers, self._subscribers = self._subscribers, []
        for subscriber in subscribers:
            deliver(subscriber)

    def subscribe(self, on_value: OnValue, on_error: OnError, on_complete: OnComplete) -> Cancellable:
        """Register callbacks. Returns a handle that removes them."""
        subscriber = (on_value, on_error, on_complete)
        with self._lock:
            terminal = self._terminal
            if terminal is None:
                self._subscribers.append(subscriber)
        if terminal is not None:
            terminal(subscriber)
            return Cancellable()

        def _unsubscribe() -> None:
            with self._lock:
                try:
                    self._subscribers.remove(subscriber)
                except ValueError:
                    pass  # already removed

        return Cancellable(_unsubscribe)

    def __repr__(self) -> str:
        state = "terminated" if self.terminated else f"{len(self._subscribers)} subscribers"
        return f"Subject({state})"


class Background(Generic[T]):
    """Run a blocking fetch(*args) on a daemon thread per subscription.

    The returned batch is emitted, then completion. An exception raised by
    fetch becomes the failure. Cancelling before fetch returns suppresses
    both.

        link = Link(Background(requests_get_json, url), chain, url=url)
    """

    __slots__ = ("_fetch", "_args")

    def __init__(self, fetch: Callable[..., Sequence[T]], *args) -> None:
        self._fetch = fetch
        self._args = args

    def subscribe(self, on_value: OnValue, on_error: OnError, on_complete: OnComplete) -> Cancellable:
        handle = Cancellable()

        def _run() -> None:
            try:
                batch = self._fetch(*self._args)
            except Exception as error:
                if not handle.cancelled:
                    on_error(error)
                return
            if handle.cancelled:
                return
            on_value(batch)
            on_complete()

        threading.Thread(target=_run, daemon=True).start()
        return handle

    def __repr__(self) -> str:
        name = getattr(self._fetch, "__name__", repr(self._fetch))
        return f"Background({name})"
