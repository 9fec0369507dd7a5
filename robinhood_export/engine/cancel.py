"""Cooperative cancellation signal handed to every fetch function."""

from __future__ import annotations

from threading import Event, Lock
from typing import Callable

from ..errors import FetchCancelled


class CancelToken:
    """One-shot cancellation flag with wake-up callbacks.

    Cancelling is idempotent. Callbacks registered with :meth:`on_cancel` run once,
    on the thread that calls :meth:`cancel`; a callback registered after the fact
    runs immediately.
    """

    def __init__(self) -> None:
        self._event = Event()
        self._lock = Lock()
        self._callbacks: list[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()

    def on_cancel(self, callback: Callable[[], None]) -> None:
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                return
        callback()

    def remove_callback(self, callback: Callable[[], None]) -> None:
        with self._lock:
            try:
                self._callbacks.remove(callback)
            except ValueError:
                pass

    def child(self) -> "CancelToken":
        """Return a token cancelled together with this one, but not vice versa.

        Pass the child to :meth:`detach` once it is no longer needed.
        """

        token = CancelToken()
        self.on_cancel(token.cancel)
        return token

    def detach(self, child: "CancelToken") -> None:
        self.remove_callback(child.cancel)

    def wait(self, timeout: float | None = None) -> bool:
        return self._event.wait(timeout)

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise FetchCancelled("operation cancelled")


__all__ = ["CancelToken"]
