"""Signal — in-process publisher holding the latest value of one upstream input.

Invariants:
    - value always reflects the most recently published value
    - Listeners are notified synchronously, in subscription order, only on change
    - A failing listener is logged and skipped; it never blocks the others
    - unsubscribe() is idempotent

Design Decisions:
    - No lock: the orchestrator runs on one event loop thread (ADR: single-threaded core)
    - Listener list copied before notification: listeners may (un)subscribe re-entrantly
"""

import logging
from typing import Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Signal(Generic[T]):
    """Observable value: publish() replaces it and notifies subscribers."""

    def __init__(self, name: str, initial: T):
        self.name = name
        self._value = initial
        self._listeners: list[Callable[[T], None]] = []

    @property
    def value(self) -> T:
        return self._value

    @property
    def subscriber_count(self) -> int:
        return len(self._listeners)

    def subscribe(self, listener: Callable[[T], None]) -> Callable[[], None]:
        """Register listener; returns a callable that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(self, value: T) -> bool:
        """Store value and notify listeners. Returns False when unchanged."""
        if value == self._value:
            return False
        self._value = value
        for listener in list(self._listeners):
            try:
                listener(value)
            except Exception as e:
                logger.error(
                    "Listener failed on signal %s: %s", self.name, e,
                    exc_info=True,
                )
        return True
