"""Cooperative cancellation tokens."""

from __future__ import annotations

import logging
from collections.abc import Callable

logger = logging.getLogger(__name__)

CancelCallback = Callable[["CancellationToken"], object]


class CancellationToken:
    """Single-loop cancellation signal observed at checkpoints.

    Usage:
        token = CancellationToken()
        unsubscribe = token.on_cancel(lambda t: print(t.reason))
        token.cancel("no longer needed")
        assert token.is_cancelled
    """

    __slots__ = ("_callbacks", "_cancelled", "_reason")

    def __init__(self) -> None:
        self._cancelled = False
        self._reason: str | None = None
        self._callbacks: list[CancelCallback] = []

    @classmethod
    def none(cls) -> CancellationToken:
        """A token nobody else holds, so it is never cancelled."""
        return cls()

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    @property
    def reason(self) -> str | None:
        return self._reason

    def cancel(self, reason: str | None = None) -> None:
        """Cancel the token and notify subscribers. Repeat calls are no-ops."""
        if self._cancelled:
            return
        self._cancelled = True
        self._reason = reason
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            self._invoke(callback)

    def on_cancel(self, callback: CancelCallback) -> Callable[[], None]:
        """Register callback; it runs at once if already cancelled.

        Returns a function that unregisters the callback.
        """
        if self._cancelled:
            self._invoke(callback)
            return lambda: None
        self._callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return unsubscribe

    def _invoke(self, callback: CancelCallback) -> None:
        try:
            callback(self)
        except Exception:
            logger.warning("Cancellation callback %r failed", callback, exc_info=True)


__all__ = ["CancellationToken"]
