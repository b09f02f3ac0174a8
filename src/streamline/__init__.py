"""Streamline: one-shot links from an asynchronous producer to a chain of callbacks."""

from importlib.metadata import version as _version

__version__ = _version("streamline")

from streamline.cancellable import Cancellable, as_cancellable
from streamline.context import (
    CallbackContext,
    DeliveryContext,
    ImmediateContext,
    LoopContext,
    ContextClosed,
    SerialQueue,
    main,
    reset_main,
    set_main,
)
from streamline.chain import Chain
from streamline.link import Link, LinkState, Producer
from streamline.producers import Background, Batches, Fail, Just, Subject
# textual NOT auto-imported — opt-in only

__all__ = [
    "Cancellable",
    "as_cancellable",
    "DeliveryContext",
    "ImmediateContext",
    "CallbackContext",
    "LoopContext",
    "ContextClosed",
    "SerialQueue",
    "main",
    "set_main",
    "reset_main",
    "Chain",
    "Link",
    "LinkState",
    "Producer",
    "Just",
    "Fail",
    "Batches",
    "Subject",
    "Background",
]
