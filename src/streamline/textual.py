"""Textual integration for Streamline. Opt-in — requires textual.

AppContext makes a Textual App the delivery context for a chain, so chain
callbacks can touch widgets directly:

    streamline.set_main(AppContext(app))   # or per chain:
    Chain(on_receive=table.add_rows, delivery_context=AppContext(app))
"""

import functools

from textual.css.query import NoMatches

from streamline.context import Callback, DeliveryContext


class AppContext(DeliveryContext):
    """Deliver callbacks on a Textual app's message loop.

    Uses app.call_later, which posts to the app's queue without waiting, so
    producers on worker threads are never blocked. NoMatches raised by a
    callback (the widget it queried is gone) is swallowed.
    """

    __slots__ = ("_app",)

    def __init__(self, app) -> None:
        self._app = app

    @property
    def app(self):
        return self._app

    def schedule(self, fn: Callback) -> None:
        self._app.call_later(functools.partial(_safe, fn))

    def __repr__(self) -> str:
        return f"AppContext({self._app!r})"


def _safe(fn: Callback) -> None:
    try:
        fn()
    except NoMatches:
        pass
