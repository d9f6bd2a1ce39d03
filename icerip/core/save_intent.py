"""
The one-shot "save the next completed track" flag.
"""

import threading
from collections.abc import Callable


class SaveIntent:
    """
    Holds whether the track currently playing should be saved when it completes.

    Every `set()` synchronously notifies the observer with the new value, even if
    the value did not change, so a display bound to it never goes stale.
    """

    def __init__(
        self,
        observer: Callable[[bool], None] | None = None,
        initial: bool = False,
    ):
        self._value = initial
        self._observer = observer
        self._lock = threading.Lock()

    def get(self) -> bool:
        with self._lock:
            return self._value

    def set(self, value: bool) -> None:
        with self._lock:
            self._value = bool(value)
        if self._observer:
            self._observer(bool(value))

    def __bool__(self) -> bool:
        return self.get()
