from __future__ import annotations

import threading
from typing import Any, Callable, Dict, Hashable, List

from xbeelink.runtime.logging import EventLogger, NullLogger

Callback = Callable[[Any], None]


def _key_name(key: Hashable) -> str:
    if isinstance(key, type):
        return key.__name__
    if isinstance(key, (bytes, bytearray)):
        return bytes(key).decode("ascii", errors="replace")
    return str(key)


class Observers:
    """
    Callback lists keyed by frame class, parameter name or channel name.

    Callbacks run on the reader context. One that raises is reported as a
    ``callback_failed`` event and delivery continues with the next callback.
    """

    def __init__(self, logger: EventLogger | None = None) -> None:
        self._callbacks: Dict[Hashable, List[Callback]] = {}
        self._lock = threading.Lock()
        self._logger = logger or NullLogger()

    def subscribe(self, key: Hashable, callback: Callback) -> None:
        with self._lock:
            self._callbacks.setdefault(key, []).append(callback)

    def unsubscribe(self, key: Hashable, callback: Callback) -> bool:
        with self._lock:
            callbacks = self._callbacks.get(key)
            if not callbacks or callback not in callbacks:
                return False
            callbacks.remove(callback)
            return True

    def emit(self, key: Hashable, value: Any) -> int:
        with self._lock:
            callbacks = list(self._callbacks.get(key, ()))
        for callback in callbacks:
            try:
                callback(value)
            except Exception as exc:
                self._logger.log_event(
                    "callback_failed",
                    {"key": _key_name(key), "error": type(exc).__name__, "reason": str(exc)},
                )
        return len(callbacks)
