"""Link — attaches one producer to one Chain, exactly once.

Constructing a Link subscribes immediately. Every producer event is handed
to the chain's delivery context; the chain's callbacks only ever run there.
Per batch: on_receive(batch), then on_store(batch, registry). Then exactly
one of on_failure(error) / on_finish(), unless the producer never ends or
the subscription is cancelled first.

The producer only ever holds the subscription state, never the handle, so
the subscription lives as long as link.cancellable (or link.chain, which
carries it) is referenced. The Chain passed in is never changed.
"""

from __future__ import annotations

import collections
import enum
import functools
import logging
import threading
from typing import Callable, Generic, Protocol, Sequence, TypeVar

from streamline import context as _context
from streamline.cancellable import Cancellable, as_cancellable
from streamline.chain import Chain

T = TypeVar("T")

logger = logging.getLogger("streamline.link")


class Producer(Protocol[T]):
    """Anything that can be subscribed to with three callbacks.

    Emits zero or more batches, then at most one of error/complete, from any
    thread. subscribe() returns a handle: a Cancellable, an object with
    cancel() or dispose(), a disposer function, or None.
    """

    def subscribe(
        self,
        on_value: Callable[[Sequence[T]], None],
        on_error: Callable[[BaseException], None],
        on_complete: Callable[[], None],
    ) -> object: ...


class LinkState(enum.Enum):
    """IDLE -> SUBSCRIBED -> COMPLETED | FAILED | CANCELLED. Terminal states are final."""

    IDLE = "idle"
    SUBSCRIBED = "subscribed"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


_TERMINAL = frozenset({LinkState.COMPLETED, LinkState.FAILED, LinkState.CANCELLED})


class _Subscription(Generic[T]):
    """Live state of one link. Producer callbacks are bound to this object."""

    def __init__(self, chain: Chain[T], context, url) -> None:
        self.chain = chain
        self.context = context
        self.url = url
        self.state = LinkState.IDLE
        self.upstream: Cancellable | None = None
        # Handles from the chain plus whatever on_store adds.
        self.registry: set[Cancellable] = set(chain.cancellables)
        # Serialises delivery and registry mutation.
        self.lock = threading.RLock()
        # Producer-side gate: set once a terminal event arrives or on cancel.
        self._gate = threading.Lock()
        self._closed = False
        # Events that arrived while another one was being delivered.
        self._pending: collections.deque[Callable[[], None]] = collections.deque()
        self._draining = False

    def subscribe(self, producer: Producer[T]) -> None:
        self.state = LinkState.SUBSCRIBED
        logger.debug("Subscribing %r (url=%s)", producer, self.url)
        handle = producer.subscribe(self.on_value, self.on_error, self.on_complete)
        upstream = as_cancellable(handle)
        with self.lock:
            if self.state is LinkState.SUBSCRIBED:
                self.upstream = upstream
                return
        # Cancelled from inside subscribe(); anything else already ended.
        if self.state is LinkState.CANCELLED:
            upstream.cancel()

    # ─── Producer side (any thread) ──────────────────────────────────────────

    def on_value(self, batch: Sequence[T]) -> None:
        if self._closed:
            return
        self._schedule(functools.partial(self._deliver_batch, batch))

    def on_error(self, error: BaseException) -> None:
        if self._close_gate():
            self._schedule(functools.partial(self._deliver_failure, error))

    def on_complete(self) -> None:
        if self._close_gate():
            self._schedule(self._deliver_finish)

    def _close_gate(self) -> bool:
        with self._gate:
            if self._closed:
                return False
            self._closed = True
            return True

    def _schedule(self, event: Callable[[], None]) -> None:
        try:
            self.context.schedule(functools.partial(self._dispatch, event))
        except _context.ContextClosed:
            logger.warning("Dropped event from %s: delivery context closed", self.url or "producer")

    # ─── Delivery side (chain's context) ─────────────────────────────────────

    def _dispatch(self, event: Callable[[], None]) -> None:
        """Run event, or queue it if a delivery is already under way."""
        with self.lock:
            self._pending.append(event)
            if self._draining:
                return
            self._draining = True
            try:
                while self._pending:
                    self._pending.popleft()()
            finally:
                self._draining = False

    def _deliver_batch(self, batch: Sequence[T]) -> None:
        if self.state is not LinkState.SUBSCRIBED:
            return
        chain = self.chain
        if chain.on_receive is not None:
            chain.on_receive(batch)
        if chain.on_store is not None and self.state is LinkState.SUBSCRIBED:
            chain.on_store(batch, self.registry)

    def _deliver_failure(self, error: BaseException) -> None:
        if not self._finish(LinkState.FAILED):
            return
        if self.chain.on_failure is None:
            logger.warning("Dropped failure from %s: %r", self.url or "producer", error)
            return
        self.chain.on_failure(error)

    def _deliver_finish(self) -> None:
        if self._finish(LinkState.COMPLETED) and self.chain.on_finish is not None:
            self.chain.on_finish()

    def _finish(self, state: LinkState) -> bool:
        if self.state is not LinkState.SUBSCRIBED:
            return False
        self.state = state
        self.upstream = None
        logger.debug("Link to %s %s", self.url or "producer", state.value)
        return True

    def cancel(self) -> None:
        with self._gate:
            self._closed = True
        with self.lock:
            if self.state in _TERMINAL:
                return
            self.state = LinkState.CANCELLED
            self._pending.clear()
            upstream, self.upstream = self.upstream, None
        logger.debug("Link to %s cancelled", self.url or "producer")
        if upstream is not None:
            upstream.cancel()


class Link(Generic[T]):
    """One-shot connection from a producer to a Chain's callbacks."""

    def __init__(self, producer: Producer[T], chain: Chain[T], *, url=None) -> None:
        self.url = url
        context = chain.delivery_context
        if context is None:
            context = _context.main()
        self._subscription = _Subscription(chain, context, url)
        self.cancellable = Cancellable(self._subscription.cancel)
        self._subscription.subscribe(producer)

    @property
    def state(self) -> LinkState:
        return self._subscription.state

    @property
    def chain(self) -> Chain[T]:
        """The chain passed in, with this link's handles swapped in."""
        return self._subscription.chain.with_updated_cancellables(self.cancellables)

    @property
    def cancellables(self) -> frozenset[Cancellable]:
        """The live registry plus this link's own handle."""
        subscription = self._subscription
        with subscription.lock:
            return frozenset(subscription.registry) | {self.cancellable}

    def __repr__(self) -> str:
        return f"Link({self.url!r}, {self.state.value})"
