"""
Minimal synchronous event emitter.

Listeners are plain callables invoked in registration order. ``subscribe``
returns the matching unsubscribe function so owners can tear listeners down
without keeping a separate handle.
"""

from __future__ import annotations

from typing import Callable, Generic, TypeVar

from shared.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T")

Listener = Callable[[T], None]
Unsubscribe = Callable[[], None]


class EventEmitter(Generic[T]):
    def __init__(self, name: str = "event") -> None:
        self._name = name
        self._listeners: list[Callable[[T], None]] = []

    def subscribe(self, listener: Callable[[T], None]) -> Unsubscribe:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def emit(self, value: T) -> None:
        # Copy so listeners may unsubscribe themselves while being notified
        for listener in list(self._listeners):
            try:
                listener(value)
            except Exception as e:
                log.error(
                    "event_listener_failed",
                    emitter=self._name,
                    error=str(e),
                    error_type=type(e).__name__,
                )

    @property
    def listener_count(self) -> int:
        return len(self._listeners)
