"""Delivery contexts — where a chain's callbacks run.

A delivery context is anything with schedule(fn): it arranges for fn to run
later on its own execution context and returns without waiting. Link hands
every producer event to the chain's context, so callbacks always observe a
single thread no matter where the producer emits from.

The main context stands in for "the UI thread". Configure it once at startup
from the UI thread:

    streamline.set_main(app.call_later)

Until then it is a serial worker queue named "main".
"""

from __future__ import annotations

import logging
import queue
import threading
from typing import Callable

logger = logging.getLogger("streamline.context")

Callback = Callable[[], None]


class ContextClosed(RuntimeError):
    """Raised when scheduling on a context that no longer accepts work."""


class DeliveryContext:
    """Base class for delivery contexts."""

    __slots__ = ()

    def schedule(self, fn: Callback) -> None:
        raise NotImplementedError


class ImmediateContext(DeliveryContext):
    """Run callbacks inline on whichever thread scheduled them."""

    __slots__ = ()

    def schedule(self, fn: Callback) -> None:
        fn()

    def __repr__(self) -> str:
        return "ImmediateContext()"


class CallbackContext(DeliveryContext):
    """Adapt a plain scheduler function, e.g. a toolkit's call-later hook."""

    __slots__ = ("_scheduler",)

    def __init__(self, scheduler: Callable[[Callback], object]) -> None:
        self._scheduler = scheduler

    def schedule(self, fn: Callback) -> None:
        self._scheduler(fn)

    def __repr__(self) -> str:
        return f"CallbackContext({self._scheduler!r})"


class LoopContext(DeliveryContext):
    """Hand callbacks to an asyncio event loop, from any thread."""

    __slots__ = ("_loop",)

    def __init__(self, loop) -> None:
        self._loop = loop

    def schedule(self, fn: Callback) -> None:
        self._loop.call_soon_threadsafe(fn)

    def __repr__(self) -> str:
        return f"LoopContext({self._loop!r})"


_STOP = object()


class SerialQueue(DeliveryContext):
    """Named serial queue backed by one daemon worker thread.

    Callbacks run one at a time in FIFO order. A callback that raises is
    logged and the worker carries on with the next one.
    """

    def __init__(self, name: str = "serial") -> None:
        self.name = name
        self._queue: queue.Queue = queue.Queue()
        self._closed = False
        self._lock = threading.Lock()
        self._thread = threading.Thread(
            target=self._drain, name=f"streamline-{name}", daemon=True
        )
        self._thread.start()

    @property
    def thread(self) -> threading.Thread:
        return self._thread

    def schedule(self, fn: Callback) -> None:
        with self._lock:
            if self._closed:
                raise ContextClosed(f"SerialQueue {self.name!r} is closed")
            self._queue.put(fn)

    def join(self) -> None:
        """Block until every callback scheduled so far has run."""
        self._queue.join()

    def close(self) -> None:
        """Stop the worker once the queued callbacks have run."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._queue.put(_STOP)

    def _drain(self) -> None:
        while True:
            fn = self._queue.get()
            try:
                if fn is _STOP:
                    return
                fn()
            except Exception:
                logger.exception("Callback failed on queue %r", self.name)
            finally:
                self._queue.task_done()

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"SerialQueue({self.name!r}, {state})"


# ─── Main context ────────────────────────────────────────────────────────────
_main: DeliveryContext | None = None
_main_lock = threading.Lock()


def main() -> DeliveryContext:
    """Return the process-wide main context, starting the default if needed."""
    global _main
    with _main_lock:
        if _main is None:
            _main = SerialQueue("main")
        return _main


def set_main(context: DeliveryContext | Callable[[Callback], object]) -> None:
    """Replace the main context.

    Accepts a DeliveryContext or a plain scheduler function. Call once from
    the UI thread, before links that rely on the default start delivering.
    """
    global _main
    if not isinstance(context, DeliveryContext):
        context = CallbackContext(context)
    with _main_lock:
        _main = context
    logger.debug("Main delivery context set to %r", context)


def reset_main() -> None:
    """Drop the configured main context. The default is recreated on demand.

    Testing aid: a default queue still in use is closed, and links that
    deliver through it afterwards log and drop their events.
    """
    global _main
    with _main_lock:
        previous, _main = _main, None
    if isinstance(previous, SerialQueue):
        previous.close()
