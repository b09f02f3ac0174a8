"""Chain — the consumer side of a stream: callbacks plus a handle registry.

A Chain is inert configuration. It holds up to four optional callbacks, the
delivery context they run on, and the set of cancellation handles it owns.
It never touches a producer; Link does that. Chains are immutable, so one
Chain can be shared across several links and threads.
"""

from __future__ import annotations

from typing import Callable, Generic, Iterable, Sequence, TypeVar

from streamline.cancellable import Cancellable
from streamline.context import DeliveryContext

T = TypeVar("T")

_FIELDS = (
    "on_failure",
    "on_finish",
    "on_receive",
    "on_store",
    "delivery_context",
    "cancellables",
)


class Chain(Generic[T]):
    """Callback configuration consumed by a Link.

    on_failure(error)         once, on terminal failure
    on_finish()               once, on terminal success
    on_receive(batch)         once per batch
    on_store(batch, registry) once per batch, right after on_receive; may add
                              handles to the live registry set

    delivery_context=None means the main context (see streamline.context.main),
    looked up when a Link subscribes.
    """

    __slots__ = _FIELDS

    on_failure: Callable[[BaseException], None] | None
    on_finish: Callable[[], None] | None
    on_receive: Callable[[Sequence[T]], None] | None
    on_store: Callable[[Sequence[T], set[Cancellable]], None] | None
    delivery_context: DeliveryContext | None
    cancellables: frozenset[Cancellable]

    def __init__(
        self,
        *,
        on_failure: Callable[[BaseException], None] | None = None,
        on_finish: Callable[[], None] | None = None,
        on_receive: Callable[[Sequence[T]], None] | None = None,
        on_store: Callable[[Sequence[T], set[Cancellable]], None] | None = None,
        delivery_context: DeliveryContext | None = None,
        cancellables: Iterable[Cancellable] = (),
    ) -> None:
        _init = object.__setattr__
        _init(self, "on_failure", on_failure)
        _init(self, "on_finish", on_finish)
        _init(self, "on_receive", on_receive)
        _init(self, "on_store", on_store)
        _init(self, "delivery_context", delivery_context)
        _init(self, "cancellables", frozenset(cancellables))

    def replace(self, **changes) -> Chain[T]:
        """Return a copy of this chain with some fields replaced."""
        unknown = set(changes) - set(_FIELDS)
        if unknown:
            raise TypeError(f"unknown Chain fields: {sorted(unknown)}")
        fields = {name: getattr(self, name) for name in _FIELDS}
        fields.update(changes)
        return Chain(**fields)

    def with_updated_cancellables(self, cancellables: Iterable[Cancellable]) -> Chain[T]:
        """Return a copy of this chain whose registry is `cancellables`."""
        return self.replace(cancellables=cancellables)

    def __setattr__(self, name: str, value) -> None:
        raise AttributeError(f"Chain is immutable; use replace() to change {name!r}")

    def __delattr__(self, name: str) -> None:
        raise AttributeError(f"Chain is immutable; cannot delete {name!r}")

    def __repr__(self) -> str:
        slots = [n for n in _FIELDS[:4] if getattr(self, n) is not None]
        return (
            f"Chain(callbacks={slots}, context={self.delivery_context!r}, "
            f"cancellables={len(self.cancellables)})"
        )
