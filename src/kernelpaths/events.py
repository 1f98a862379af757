"""Minimal synchronous event emitter."""

import logging
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)


class EventEmitter:
    """Fan out a signal to subscribed listeners."""

    def __init__(self, name: str = "event") -> None:
        self._name = name
        self._listeners: list[Callable[..., Any]] = []

    def subscribe(self, listener: Callable[..., Any]) -> Callable[[], None]:
        """Add listener. Returns a function that removes it again."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def fire(self, *args: Any) -> None:
        """Call every listener; one failing listener does not stop the rest."""
        for listener in list(self._listeners):
            try:
                listener(*args)
            except Exception:
                logger.warning("Listener %r for %s failed", listener, self._name, exc_info=True)

    def __len__(self) -> int:
        return len(self._listeners)
