"""Cancellation handles — tokens that keep a subscription alive.

A Cancellable stands for one live subscription. Calling cancel(), or
dropping the last reference to the handle, stops delivery and releases the
upstream resources. Identity is the handle's equality, so a plain set of
handles works as a registry.
"""

from __future__ import annotations

import threading
from typing import Callable

Disposer = Callable[[], None]


class Cancellable:
    """Opaque handle for one live subscription."""

    __slots__ = ("_on_cancel", "_cancelled", "_lock", "__weakref__")

    def __init__(self, on_cancel: Disposer | None = None) -> None:
        self._on_cancel = on_cancel
        self._cancelled = False
        self._lock = threading.Lock()

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        """Run the cancel action once. Later calls do nothing."""
        with self._lock:
            if self._cancelled:
                return
            self._cancelled = True
            on_cancel, self._on_cancel = self._on_cancel, None
        if on_cancel is not None:
            on_cancel()

    def store(self, registry: set) -> Cancellable:
        """Add this handle to a registry and return it."""
        registry.add(self)
        return self

    def __del__(self) -> None:
        # Handles are released with their last reference.
        if not getattr(self, "_cancelled", True):
            self.cancel()

    def __repr__(self) -> str:
        state = "cancelled" if self._cancelled else "active"
        return f"Cancellable({state})"


def as_cancellable(handle) -> Cancellable:
    """Normalise whatever a producer's subscribe() returned into a Cancellable.

    Accepts a Cancellable, anything with cancel() or dispose(), a bare
    disposer function, or None (an inert handle).
    """
    if isinstance(handle, Cancellable):
        return handle
    if handle is None:
        return Cancellable()
    for name in ("cancel", "dispose"):
        method = getattr(handle, name, None)
        if callable(method):
            return Cancellable(method)
    if callable(handle):
        return Cancellable(handle)
    raise TypeError(f"cannot use {handle!r} as a cancellation handle")
