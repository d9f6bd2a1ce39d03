"""
The notification port between the session controller and whatever displays it.
"""

import asyncio
import threading
from collections.abc import Callable
from typing import Any, Protocol


class Notifier(Protocol):
    """Status/log sink the controller reports to."""

    def on_status(self, text: str) -> None: ...

    def on_log(self, text: str, is_also_status: bool = False) -> None: ...

    def on_save_intent_changed(self, value: bool) -> None: ...


class LoopNotifier:
    """
    Forwards notifications to the thread that owns the event loop.

    Calls made on the loop's thread run immediately; calls from any other thread
    are queued onto the loop with `call_soon_threadsafe`, preserving their order.
    """

    def __init__(self, inner: Notifier, loop: asyncio.AbstractEventLoop | None = None):
        self.inner = inner
        self._loop = loop or asyncio.get_running_loop()
        self._owner_thread = threading.get_ident()

    def _dispatch(self, fn: Callable[..., Any], *args: Any) -> None:
        if threading.get_ident() == self._owner_thread or self._loop.is_closed():
            fn(*args)
        else:
            self._loop.call_soon_threadsafe(fn, *args)

    def on_status(self, text: str) -> None:
        self._dispatch(self.inner.on_status, text)

    def on_log(self, text: str, is_also_status: bool = False) -> None:
        self._dispatch(self.inner.on_log, text, is_also_status)

    def on_save_intent_changed(self, value: bool) -> None:
        self._dispatch(self.inner.on_save_intent_changed, value)
